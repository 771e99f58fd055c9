#!/usr/bin/env python3
"""Class and member specification records.

This module provides the records that keep and assumption rules are made of:
- ClassSpecification: class pattern with access flags and member patterns
- MemberSpecification / MemberValueSpecification: field and method patterns
- KeepClassSpecification: class pattern plus keep modifiers
- MemberBlock: nested declaration of members for descriptor-built records

Records are built either by a rule-text parser or directly from a key/value
descriptor, for example:

    >>> spec = create_class_specification({"access": "public", "name": "com.example.**"})
    >>> spec.class_name
    'com/example/**'
"""

from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from shrinktask.core.constants import (
    CLASS_ACCESS_MODIFIERS,
    MEMBER_ACCESS_MODIFIERS,
    METHOD_NAME_INIT,
    PRIMITIVE_TYPES,
    AccessFlag,
    ErrorCode,
    internal_class_name,
)

ANY_CLASS = "*"
ARGUMENTS_WILDCARD = "..."


class SpecificationError(Exception):
    """Invalid class or member specification."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize SpecificationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


@dataclass
class MemberSpecification:
    """Pattern for fields or methods."""

    required_set_access_flags: int = 0
    required_unset_access_flags: int = 0
    annotation_type: Optional[str] = None
    name: Optional[str] = None
    descriptor: Optional[str] = None


@dataclass
class MemberValueSpecification(MemberSpecification):
    """Member pattern with an assumed value or inclusive value range."""

    values: Tuple[int, ...] = ()


@dataclass
class ClassSpecification:
    """Pattern for classes and their members."""

    comments: Optional[str] = None
    required_set_access_flags: int = 0
    required_unset_access_flags: int = 0
    annotation_type: Optional[str] = None
    class_name: Optional[str] = None
    extends_annotation_type: Optional[str] = None
    extends_class_name: Optional[str] = None
    field_specifications: List[MemberSpecification] = field(default_factory=list)
    method_specifications: List[MemberSpecification] = field(default_factory=list)

    def add_field(self, member: MemberSpecification) -> None:
        self.field_specifications.append(member)

    def add_method(self, member: MemberSpecification) -> None:
        self.method_specifications.append(member)


@dataclass
class KeepClassSpecification(ClassSpecification):
    """Class pattern with the modifiers of a keep rule."""

    mark_classes: bool = True
    mark_class_members: bool = True
    mark_conditionally: bool = False
    mark_descriptor_classes: bool = False
    mark_code_attributes: bool = False
    allow_shrinking: bool = False
    allow_optimization: bool = False
    allow_obfuscation: bool = False
    condition: Optional[ClassSpecification] = None


@dataclass(frozen=True)
class KeepDefaults:
    """Default modifiers of one keep rule family."""

    allow_shrinking: bool
    allow_optimization: bool
    allow_obfuscation: bool
    mark_classes: bool
    mark_class_members: bool
    mark_code_attributes: bool
    mark_conditionally: bool


KEEP_FAMILIES: Dict[str, KeepDefaults] = {
    "keep": KeepDefaults(False, False, False, True, True, False, False),
    "keepclassmembers": KeepDefaults(False, False, False, False, True, False, False),
    "keepclasseswithmembers": KeepDefaults(False, False, False, False, True, False, True),
    "keepnames": KeepDefaults(True, False, False, True, True, False, False),
    "keepclassmembernames": KeepDefaults(True, False, False, False, True, False, False),
    "keepclasseswithmembernames": KeepDefaults(True, False, False, False, True, False, True),
    "keepcode": KeepDefaults(True, False, False, False, False, True, True),
}


# Type conversions

def internal_type(external_type: str) -> str:
    """Convert an external Java type (int[], java.lang.String) to a descriptor."""
    if external_type == ARGUMENTS_WILDCARD:
        return ARGUMENTS_WILDCARD

    dimensions = 0
    while external_type.endswith("[]"):
        external_type = external_type[:-2]
        dimensions += 1

    if external_type in PRIMITIVE_TYPES:
        base = PRIMITIVE_TYPES[external_type]
    elif external_type == "%":
        base = "%"
    else:
        base = "L" + internal_class_name(external_type) + ";"

    return "[" * dimensions + base


def external_type(descriptor: str) -> str:
    """Convert a field descriptor back to its external Java type."""
    if descriptor == ARGUMENTS_WILDCARD:
        return ARGUMENTS_WILDCARD

    dimensions = len(descriptor) - len(descriptor.lstrip("["))
    base = descriptor[dimensions:]

    primitives = {code: name for name, code in PRIMITIVE_TYPES.items()}
    if base in primitives:
        name = primitives[base]
    elif base.startswith("L") and base.endswith(";"):
        name = base[1:-1].replace("/", ".")
    else:
        name = base

    return name + "[]" * dimensions


def internal_method_descriptor(return_type: str, parameters: List[str]) -> str:
    """Build a method descriptor from external return and parameter types."""
    return "(" + "".join(internal_type(p) for p in parameters) + ")" + internal_type(return_type)


def split_method_descriptor(descriptor: str) -> Tuple[List[str], str]:
    """Split a method descriptor into parameter descriptors and return descriptor."""
    close = descriptor.index(")")
    arguments = descriptor[1:close]
    return_descriptor = descriptor[close + 1:]

    parameters: List[str] = []
    index = 0
    while index < len(arguments):
        if arguments.startswith(ARGUMENTS_WILDCARD, index):
            parameters.append(ARGUMENTS_WILDCARD)
            index += len(ARGUMENTS_WILDCARD)
            continue

        start = index
        while arguments[index] == "[":
            index += 1
        if arguments[index] == "L":
            index = arguments.index(";", index)
        index += 1
        parameters.append(arguments[start:index])

    return parameters, return_descriptor


def parameter_list(parameters: str) -> List[str]:
    """Split a parameters attribute ("int,java.lang.String") into types."""
    return [p.strip() for p in parameters.split(",") if p.strip()]


# Access flags

def _access_tokens(access: Optional[str]) -> List[str]:
    if access is None:
        return []
    return [token for token in access.replace(",", " ").split() if token]


def required_class_access_flags(
    set_flags: bool, access: Optional[str], class_type: Optional[str]
) -> int:
    """Parse the class access flags that must be set (or unset).

    Args:
        set_flags: True for flags that must be set, False for negated ones
        access: Space or comma separated modifiers, "!" negates
        class_type: "class", "interface", "enum", optionally negated

    Returns:
        Combined access flags

    Raises:
        SpecificationError: On unknown modifiers or types
    """
    access_flags = 0

    for token in _access_tokens(access):
        negated = token.startswith("!")
        if negated ^ set_flags:
            stripped = token[1:] if negated else token
            flag = CLASS_ACCESS_MODIFIERS.get(stripped)
            if flag is None:
                raise SpecificationError(f"Incorrect class access modifier [{stripped}]")
            access_flags |= flag

    if class_type is not None and (class_type.startswith("!") ^ set_flags):
        stripped = class_type.lstrip("!")
        if class_type == "class":
            flag = 0
        elif stripped == "interface":
            flag = AccessFlag.INTERFACE
        elif stripped == "enum":
            flag = AccessFlag.ENUM
        else:
            raise SpecificationError(f"Incorrect class type [{class_type}]")
        access_flags |= flag

    return access_flags


def required_member_access_flags(set_flags: bool, access: Optional[str]) -> int:
    """Parse the member access flags that must be set (or unset).

    Raises:
        SpecificationError: On unknown modifiers
    """
    access_flags = 0

    for token in _access_tokens(access):
        negated = token.startswith("!")
        if negated ^ set_flags:
            stripped = token[1:] if negated else token
            flag = MEMBER_ACCESS_MODIFIERS.get(stripped)
            if flag is None:
                raise SpecificationError(f"Incorrect class member access modifier [{stripped}]")
            access_flags |= flag

    return access_flags


# Values

def _decode_int(string: str) -> int:
    """Decode an integer the way Java's Integer.decode does."""
    text = string
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    lowered = text.lower()
    if lowered.startswith("0x"):
        value = int(text[2:], 16)
    elif text.startswith("#"):
        value = int(text[1:], 16)
    elif text.startswith("0") and len(text) > 1:
        value = int(text[1:], 8)
    else:
        value = int(text, 10)

    return sign * value


def parse_value(type_name: str, string: str) -> int:
    """Parse a single constant of the given primitive type.

    Booleans become 0 or 1. Only boolean, byte, char, short and int constants
    are supported.

    Raises:
        SpecificationError: If the constant can't be parsed
    """
    code = internal_type(type_name)[0]

    if code == "Z":
        if string == "false":
            return 0
        if string == "true":
            return 1
        raise SpecificationError(f"Unknown boolean constant [{string}]")

    if code in ("B", "C", "S", "I"):
        try:
            return _decode_int(string)
        except ValueError:
            raise SpecificationError(f"Can't parse {type_name} constant [{string}]")

    raise SpecificationError(f"Can't handle '{type_name}' constant [{string}]")


def parse_values(type_name: str, string: str) -> Tuple[int, ...]:
    """Parse a value ("123") or inclusive range ("100..199")."""
    range_index = string.rfind("..")
    if range_index >= 0:
        return (
            parse_value(type_name, string[:range_index]),
            parse_value(type_name, string[range_index + 2:]),
        )
    return (parse_value(type_name, string),)


# Builders

def create_member_specification(
    is_method: bool,
    is_constructor: bool,
    allow_values: bool,
    args: Mapping[str, Any],
) -> MemberSpecification:
    """Create a field or method pattern from a descriptor mapping.

    Args:
        is_method: True for methods and constructors
        is_constructor: True for constructors
        allow_values: Whether the "value" attribute is permitted
        args: Keys access, type, annotation, name, parameters, value

    Returns:
        Member pattern, with values if "value" was given

    Raises:
        SpecificationError: On invalid attribute combinations
    """
    access = args.get("access")
    member_type = args.get("type")
    annotation = args.get("annotation")
    name = args.get("name")
    parameters = args.get("parameters")
    values = args.get("value")

    if annotation is not None:
        annotation = internal_type(annotation)

    if is_method:
        if is_constructor:
            if member_type is not None:
                raise SpecificationError(
                    f"Type attribute not allowed in constructor specification [{member_type}]"
                )
            if parameters is not None:
                member_type = "void"
            if values is not None:
                raise SpecificationError(
                    f"Values attribute not allowed in constructor specification [{values}]"
                )
            name = METHOD_NAME_INIT
        elif (member_type is not None) ^ (parameters is not None):
            raise SpecificationError(
                "Type and parameters attributes must always be present in combination "
                "in method specification"
            )
    elif parameters is not None:
        raise SpecificationError(
            f"Parameters attribute not allowed in field specification [{parameters}]"
        )

    if values is not None:
        if not allow_values:
            raise SpecificationError(
                f"Values attribute not allowed in this class specification [{values}]"
            )
        if member_type is None:
            raise SpecificationError(
                "Values attribute must be specified in combination with type attribute "
                f"in class member specification [{values}]"
            )

    if parameters is not None:
        descriptor = internal_method_descriptor(member_type, parameter_list(parameters))
    elif member_type is not None:
        descriptor = internal_type(member_type)
    else:
        descriptor = None

    common = dict(
        required_set_access_flags=required_member_access_flags(True, access),
        required_unset_access_flags=required_member_access_flags(False, access),
        annotation_type=annotation,
        name=name,
        descriptor=descriptor,
    )

    if values is not None:
        return MemberValueSpecification(values=parse_values(member_type, values), **common)
    return MemberSpecification(**common)


class MemberBlock:
    """Receiver for nested member declarations of one class specification.

    The block is only open while its declaring callable runs; declarations
    on a closed block raise SpecificationError.
    """

    def __init__(self, class_specification: ClassSpecification, allow_values: bool = False):
        self._class_specification: Optional[ClassSpecification] = class_specification
        self._allow_values = allow_values

    def _target(self, kind: str) -> ClassSpecification:
        if self._class_specification is None:
            raise SpecificationError(
                f"The '{kind}' method can only be used nested inside a class specification."
            )
        return self._class_specification

    def field(self, args: Optional[Mapping[str, Any]] = None, **kwargs) -> None:
        """Declare a field pattern."""
        target = self._target("field")
        declaration = {**(args or {}), **kwargs}
        target.add_field(create_member_specification(False, False, self._allow_values, declaration))

    def constructor(self, args: Optional[Mapping[str, Any]] = None, **kwargs) -> None:
        """Declare a constructor pattern."""
        target = self._target("constructor")
        target.add_method(
            create_member_specification(True, True, self._allow_values, {**(args or {}), **kwargs})
        )

    def method(self, args: Optional[Mapping[str, Any]] = None, **kwargs) -> None:
        """Declare a method pattern."""
        target = self._target("method")
        target.add_method(
            create_member_specification(True, False, self._allow_values, {**(args or {}), **kwargs})
        )

    def close(self) -> None:
        self._class_specification = None


MemberDeclarations = Callable[[MemberBlock], Any]


def create_class_specification(
    args: Mapping[str, Any],
    members: Optional[MemberDeclarations] = None,
    allow_values: bool = False,
) -> ClassSpecification:
    """Create a class pattern from a descriptor mapping.

    Args:
        args: Keys access, annotation, type, name, extendsannotation,
            extends (or implements)
        members: Optional callable declaring nested members on a MemberBlock
        allow_values: Whether nested members may carry values

    Returns:
        Class pattern

    Raises:
        SpecificationError: On invalid modifiers, types or members
    """
    access = args.get("access")
    annotation = args.get("annotation")
    class_type = args.get("type")
    name = args.get("name")
    extends_annotation = args.get("extendsannotation")
    extends = args.get("extends")
    if extends is None:
        extends = args.get("implements")

    specification = ClassSpecification(
        required_set_access_flags=required_class_access_flags(True, access, class_type),
        required_unset_access_flags=required_class_access_flags(False, access, class_type),
        annotation_type=internal_type(annotation) if annotation is not None else None,
        class_name=internal_class_name(name) if name is not None else None,
        extends_annotation_type=(
            internal_type(extends_annotation) if extends_annotation is not None else None
        ),
        extends_class_name=internal_class_name(extends) if extends is not None else None,
    )

    if members is not None:
        block = MemberBlock(specification, allow_values)
        try:
            members(block)
        finally:
            block.close()

    return specification


def retrieve_boolean(args: Optional[Mapping[str, Any]], name: str, default: bool) -> bool:
    """Read an optional boolean flag from a descriptor mapping."""
    if args is None:
        return default
    value = args.get(name)
    return default if value is None else bool(value)


def create_keep_class_specification(
    family: str,
    keep_args: Optional[Mapping[str, Any]],
    specification: ClassSpecification,
    condition: Optional[ClassSpecification] = None,
) -> KeepClassSpecification:
    """Wrap a class pattern with the keep modifiers of a rule family.

    Args:
        family: Key of KEEP_FAMILIES, e.g. "keepclassmembers"
        keep_args: Optional overrides: includedescriptorclasses, includecode,
            allowshrinking, allowoptimization, allowobfuscation
        specification: Class pattern to keep
        condition: Optional class pattern from the "if" key

    Returns:
        Keep specification
    """
    defaults = KEEP_FAMILIES[family]
    base = {f.name: getattr(specification, f.name) for f in fields(ClassSpecification)}

    return KeepClassSpecification(
        mark_classes=defaults.mark_classes,
        mark_class_members=defaults.mark_class_members,
        mark_conditionally=defaults.mark_conditionally,
        mark_descriptor_classes=retrieve_boolean(keep_args, "includedescriptorclasses", False),
        mark_code_attributes=(
            retrieve_boolean(keep_args, "includecode", False) or defaults.mark_code_attributes
        ),
        allow_shrinking=retrieve_boolean(keep_args, "allowshrinking", defaults.allow_shrinking),
        allow_optimization=retrieve_boolean(
            keep_args, "allowoptimization", defaults.allow_optimization
        ),
        allow_obfuscation=retrieve_boolean(
            keep_args, "allowobfuscation", defaults.allow_obfuscation
        ),
        condition=condition,
        **base,
    )
