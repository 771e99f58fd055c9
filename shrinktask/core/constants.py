"""
ShrinkTask Core: Constants and Type Definitions

This module provides system-wide constants, error codes, and type definitions
shared by the pattern lists, the jar ledger and the specification builders.
"""
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Optional, TypeAlias

# Version information
SHRINKTASK_VERSION = "1.0.0"
SHRINKTASK_API_VERSION = 1


# Error codes
class ErrorCode(IntEnum):
    """Standardized error codes for ShrinkTask operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad descriptor, malformed rule text
    NOT_FOUND = 2  # Configuration file or resource doesn't exist
    PERMISSION_DENIED = 3  # Insufficient permissions
    CONFLICT = 4  # Conflicting modifiers
    DEPENDENCY_ERROR = 5  # Missing optional library
    INTERNAL_ERROR = 6  # Bug in ShrinkTask


# Type aliases for clarity
Location: TypeAlias = Any  # path string, Path, or any caller-supplied object
FilterArgs: TypeAlias = Optional[Dict[str, str]]
Pattern: TypeAlias = str


class _StdOut:
    """Marker for reports that go to standard output instead of a file."""

    _instance: Optional["_StdOut"] = None

    def __new__(cls) -> "_StdOut":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "STD_OUT"

    def __bool__(self) -> bool:
        return True


STD_OUT = _StdOut()


# Filter keys understood by the engine on input, output and library entries
class FilterKey:
    """Keys of an entry filter mapping."""

    FILTER = "filter"  # General file name filter
    APK = "apkfilter"
    AAB = "aabfilter"
    JAR = "jarfilter"
    AAR = "aarfilter"
    WAR = "warfilter"
    EAR = "earfilter"
    JMOD = "jmodfilter"
    ZIP = "zipfilter"
    FEATURE = "feature"  # Feature name, not a pattern list

    ARCHIVE_FILTERS = (APK, AAB, JAR, AAR, WAR, EAR, JMOD, ZIP)
    ALL = (FILTER,) + ARCHIVE_FILTERS + (FEATURE,)

    # Printed left to right; a reader assigns them from the right, file filter first
    POSITIONAL = (AAR, AAB, APK, ZIP, JMOD, EAR, WAR, JAR, FILTER)


# Java access flags as stored in class files
class AccessFlag(IntEnum):
    """Class and member access flags."""

    PUBLIC = 0x0001
    PRIVATE = 0x0002
    PROTECTED = 0x0004
    STATIC = 0x0008
    FINAL = 0x0010
    SYNCHRONIZED = 0x0020
    VOLATILE = 0x0040
    BRIDGE = 0x0040
    TRANSIENT = 0x0080
    VARARGS = 0x0080
    NATIVE = 0x0100
    INTERFACE = 0x0200
    ABSTRACT = 0x0400
    STRICT = 0x0800
    SYNTHETIC = 0x1000
    ANNOTATION = 0x2000
    ENUM = 0x4000


CLASS_ACCESS_MODIFIERS: Dict[str, int] = {
    "public": AccessFlag.PUBLIC,
    "final": AccessFlag.FINAL,
    "abstract": AccessFlag.ABSTRACT,
    "synthetic": AccessFlag.SYNTHETIC,
    "@": AccessFlag.ANNOTATION,
}

MEMBER_ACCESS_MODIFIERS: Dict[str, int] = {
    "public": AccessFlag.PUBLIC,
    "private": AccessFlag.PRIVATE,
    "protected": AccessFlag.PROTECTED,
    "static": AccessFlag.STATIC,
    "final": AccessFlag.FINAL,
    "synchronized": AccessFlag.SYNCHRONIZED,
    "volatile": AccessFlag.VOLATILE,
    "transient": AccessFlag.TRANSIENT,
    "bridge": AccessFlag.BRIDGE,
    "varargs": AccessFlag.VARARGS,
    "native": AccessFlag.NATIVE,
    "abstract": AccessFlag.ABSTRACT,
    "strictfp": AccessFlag.STRICT,
    "synthetic": AccessFlag.SYNTHETIC,
}

# Java primitive types and their internal descriptor characters
PRIMITIVE_TYPES: Dict[str, str] = {
    "void": "V",
    "boolean": "Z",
    "byte": "B",
    "char": "C",
    "short": "S",
    "int": "I",
    "long": "J",
    "float": "F",
    "double": "D",
}

METHOD_NAME_INIT = "<init>"


# Configuration keys
class ConfigKey:
    """Configuration key constants."""

    # Ambient settings
    LOGGING_LEVEL = "shrinktask.logging.level"
    LOGGING_FILE = "shrinktask.logging.file"
    CONFIG_PREFIX = "shrinktask.resources.config_prefix"

    # Task document keys
    JARS = "jars"
    INJARS = "injars"
    OUTJARS = "outjars"
    LIBRARYJARS = "libraryjars"
    CONFIGURATION = "configuration"
    LOCATION = "path"


DEFAULT_CONFIG_RESOURCE_PREFIX = "/lib"

# Default configuration values
DEFAULT_CONFIG = {
    "shrinktask": {
        "logging": {
            "level": "INFO",
            "file": None,
        },
        "resources": {
            "config_prefix": DEFAULT_CONFIG_RESOURCE_PREFIX,
        },
    }
}


def internal_class_name(external_name: str) -> str:
    """Convert an external class name (com.example.Foo) to internal form (com/example/Foo)."""
    return external_name.replace(".", "/")


def external_class_name(internal_name: str) -> str:
    """Convert an internal class name back to its dotted external form."""
    return internal_name.replace("/", ".")


def optional_file(location: Any) -> Optional[Path]:
    """Return the report location as a Path, or None for unset and standard output."""
    if location is None or location is STD_OUT:
        return None
    return Path(location)
