#!/usr/bin/env python3
"""Declarative task documents in YAML.

A task document names task entry points as keys, for example:

    jars:
      - injars: build/classes
      - injars: {path: libs/util.jar, filter: "!META-INF/**"}
      - outjars: build/app-min.jar
    libraryjars: [rt.jar]
    keepattributes: "Signature,*Annotation*"
    keep:
      - "public class com.example.Main { public static void main(java.lang.String[]); }"
      - {name: "com.example.Api", allowobfuscation: true,
         members: [{method: {access: public, type: void, name: run, parameters: ""}}]}
    dontobfuscate: true
    printmapping: build/mapping.txt

The "jars" sequence is applied in document order, so each outjars entry
closes the inputs listed before it. Top-level injars/outjars lists are
applied inputs first, then outputs.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import yaml

from shrinktask.core.constants import ConfigKey, ErrorCode
from shrinktask.infrastructure.config_manager import ConfigError
from shrinktask.infrastructure.logger import get_logger
from shrinktask.rules.records import MemberBlock, SpecificationError
from shrinktask.task import ShrinkTask

JAR_KEYS = (ConfigKey.INJARS, ConfigKey.OUTJARS, ConfigKey.LIBRARYJARS)

PATTERN_KEYS = (
    "keepdirectories",
    "keepattributes",
    "adaptresourcefilenames",
    "adaptresourcefilecontents",
    "keeppackagenames",
    "adaptclassstrings",
    "optimizations",
    "dontnote",
    "dontwarn",
)

RULE_KEYS = (
    "keep",
    "keepclassmembers",
    "keepclasseswithmembers",
    "keepnames",
    "keepclassmembernames",
    "keepclasseswithmembernames",
    "keepcode",
    "whyareyoukeeping",
    "assumenosideeffects",
    "assumenoexternalsideeffects",
    "assumenoescapingparameters",
    "assumenoexternalreturnvalues",
    "assumevalues",
)

SWITCH_KEYS = (
    "dontshrink",
    "dontoptimize",
    "dontobfuscate",
    "dontpreverify",
    "allowaccessmodification",
    "mergeinterfacesaggressively",
    "overloadaggressively",
    "useuniqueclassmembernames",
    "dontusemixedcaseclassnames",
    "keepparameternames",
    "keepkotlinmetadata",
    "skipnonpubliclibraryclasses",
    "dontskipnonpubliclibraryclassmembers",
    "microedition",
    "android",
    "verbose",
    "ignorewarnings",
    "addconfigurationdebugging",
    "forceprocessing",
)

VALUE_KEYS = (
    "extra_jar",
    "target",
    "optimizationpasses",
    "flattenpackagehierarchy",
    "repackageclasses",
    "renamesourcefileattribute",
    "applymapping",
    "obfuscationdictionary",
    "classobfuscationdictionary",
    "packageobfuscationdictionary",
)

MULTI_VALUE_KEYS = ("keystore", "keystorepassword", "keyalias", "keypassword")

REPORT_KEYS = ("printseeds", "printusage", "printmapping", "printconfiguration", "dump")

MEMBER_KINDS = ("field", "method", "constructor")

# Values YAML may read as numbers but the task takes as text
TEXT_VALUE_KEYS = ("target", "renamesourcefileattribute")


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _location(key: str, location: Any) -> str:
    if not isinstance(location, str):
        raise ConfigError(f"Location in '{key}' must be text: {location!r}")
    return location


def _text_value(key: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise ConfigError(f"Value of '{key}' must be text or a number: {value!r}")
    return value


def _apply_jar(task: ShrinkTask, key: str, item: Any) -> None:
    if isinstance(item, Mapping):
        if ConfigKey.LOCATION not in item:
            raise ConfigError(f"Missing '{ConfigKey.LOCATION}' in {key} entry: {item!r}")
        filter_args = {k: v for k, v in item.items() if k != ConfigKey.LOCATION}
        getattr(task, key)(_location(key, item[ConfigKey.LOCATION]), filter_args or None)
    else:
        getattr(task, key)(_location(key, item))


def _apply_jars_sequence(task: ShrinkTask, sequence: Any) -> None:
    for step in _as_list(sequence):
        if not isinstance(step, Mapping) or len(step) != 1:
            raise ConfigError(f"Each 'jars' step needs exactly one of {JAR_KEYS}: {step!r}")
        ((key, value),) = step.items()
        if key not in JAR_KEYS:
            raise ConfigError(f"Unknown 'jars' step '{key}'")
        for item in _as_list(value):
            _apply_jar(task, key, item)


def _member_declarations(declarations: Any) -> Callable[[MemberBlock], None]:
    declarations = _as_list(declarations)

    for declaration in declarations:
        if (
            not isinstance(declaration, Mapping)
            or len(declaration) != 1
            or next(iter(declaration)) not in MEMBER_KINDS
        ):
            raise ConfigError(f"Each member needs exactly one of {MEMBER_KINDS}: {declaration!r}")

    def declare(block: MemberBlock) -> None:
        for declaration in declarations:
            ((kind, args),) = declaration.items()
            getattr(block, kind)(args or {})

    return declare


def _apply_rule(task: ShrinkTask, key: str, item: Any) -> None:
    if isinstance(item, str):
        getattr(task, key)(item)
    elif isinstance(item, Mapping):
        descriptor = dict(item)
        members = descriptor.pop("members", None)
        declare = _member_declarations(members) if members is not None else None
        getattr(task, key)(descriptor, declare)
    else:
        raise ConfigError(f"Rule in '{key}' must be text or a mapping: {item!r}")


def apply_document(task: ShrinkTask, document: Mapping[str, Any]) -> ShrinkTask:
    """Apply a task document to an existing task.

    Args:
        task: Task to mutate
        document: Parsed task document

    Returns:
        The same task

    Raises:
        ConfigError: On unknown keys or invalid values
    """
    if ConfigKey.JARS in document:
        _apply_jars_sequence(task, document[ConfigKey.JARS])

    for key in JAR_KEYS:
        for item in _as_list(document.get(key)):
            _apply_jar(task, key, item)

    for key, value in document.items():
        if key in JAR_KEYS or key == ConfigKey.JARS:
            continue

        try:
            if key == ConfigKey.CONFIGURATION:
                task.configuration([_location(key, item) for item in _as_list(value)])
            elif key in PATTERN_KEYS:
                if value is not None and not isinstance(value, str):
                    raise ConfigError(
                        f"Patterns in '{key}' must be comma-separated text: {value!r}"
                    )
                getattr(task, key)(value)
            elif key in RULE_KEYS:
                for item in _as_list(value):
                    _apply_rule(task, key, item)
            elif key in SWITCH_KEYS:
                if value:
                    getattr(task, key)()
            elif key in VALUE_KEYS:
                if key in TEXT_VALUE_KEYS:
                    value = _text_value(key, value)
                getattr(task, key)(value)
            elif key in MULTI_VALUE_KEYS:
                for item in _as_list(value):
                    getattr(task, key)(item)
            elif key in REPORT_KEYS:
                if value is True:
                    getattr(task, key)()
                elif value:
                    getattr(task, key)(value)
            else:
                raise ConfigError(f"Unknown task setting '{key}'")
        except SpecificationError as e:
            raise ConfigError(f"Invalid rule in '{key}': {e.message}", e.error_code) from e

    return task


def load_document(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a task document from a YAML file.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Task document not found: {path}", ErrorCode.NOT_FOUND)

    try:
        with open(path, "r") as f:
            document = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", ErrorCode.INVALID_INPUT)
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}", ErrorCode.PERMISSION_DENIED)

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigError(f"Task document must be a mapping: {path}", ErrorCode.INVALID_INPUT)
    return document


def parse_document(text: str) -> Dict[str, Any]:
    """Parse a task document from YAML text.

    Raises:
        ConfigError: If the text is not valid YAML or not a mapping
    """
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}", ErrorCode.INVALID_INPUT)

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigError("Task document must be a mapping", ErrorCode.INVALID_INPUT)
    return document


def load_task(
    source: Union[str, Path, Mapping[str, Any]],
    task: Optional[ShrinkTask] = None,
) -> ShrinkTask:
    """Build a task from a YAML file path or an already parsed document.

    Args:
        source: Path to a YAML task document, or a mapping
        task: Optional task to apply the document to, a fresh one by default

    Returns:
        The configured task

    Raises:
        ConfigError: If the document can't be read or applied
    """
    if isinstance(source, Mapping):
        document = source
    else:
        get_logger().info("Loading task document", path=str(source))
        document = load_document(source)

    return apply_document(task or ShrinkTask(), document)
