#!/usr/bin/env python3
"""Rule-text parsing for class specifications.

This module turns a single textual class specification into a record:
- Class annotations and access modifiers, with "!" negation
- class / interface / enum / @interface keywords
- extends / implements clauses with optional annotation
- Member bodies: *, <fields>, <methods>, <init>, fields and methods
- "return" values for assumption rules

Example:
    >>> parser = SimpleRuleParser()
    >>> spec = parser.parse("public class com.example.Main { public void run(); }")
    >>> spec.class_name
    'com/example/Main'

Only single class specifications are handled here; whole configuration files
belong to a richer parser that can be plugged in through the RuleParser
protocol.
"""

import re
from typing import List, Optional, Protocol, Tuple

from shrinktask.core.constants import (
    CLASS_ACCESS_MODIFIERS,
    MEMBER_ACCESS_MODIFIERS,
    METHOD_NAME_INIT,
    AccessFlag,
    internal_class_name,
)
from shrinktask.rules.records import (
    ANY_CLASS,
    ClassSpecification,
    MemberSpecification,
    MemberValueSpecification,
    SpecificationError,
    internal_method_descriptor,
    internal_type,
    parameter_list,
    parse_values,
)

CLASS_KEYWORDS = ("class", "interface", "enum", "@interface")

_MEMBER_PATTERN = re.compile(
    r"^(?P<head>[^()]*?)\s*(?:\((?P<params>[^()]*)\))?\s*(?:\breturn\s+(?P<value>\S+))?$"
)


class RuleParser(Protocol):
    """Collaborator that converts rule text into a class specification."""

    def parse(self, text: str, allow_values: bool = False) -> ClassSpecification:
        ...


class SimpleRuleParser:
    """Parser for single class specifications in the classic rule syntax."""

    def parse(self, text: str, allow_values: bool = False) -> ClassSpecification:
        """Parse one class specification.

        Args:
            text: Rule text, e.g. "class * extends android.app.Activity"
            allow_values: Whether members may carry "return" values

        Returns:
            Parsed class specification

        Raises:
            SpecificationError: If the text is malformed
        """
        header, body = self._split_body(text)
        specification = self._parse_header(header)

        if body is not None:
            for member_text in body.split(";"):
                member_text = member_text.strip()
                if member_text:
                    self._parse_member(specification, member_text, allow_values)

        return specification

    def _split_body(self, text: str) -> Tuple[str, Optional[str]]:
        open_index = text.find("{")
        if open_index < 0:
            if "}" in text:
                raise SpecificationError(f"Unexpected '}}' in class specification [{text}]")
            return text.strip(), None

        close_index = text.rfind("}")
        if close_index < open_index:
            raise SpecificationError(f"Missing '}}' in class specification [{text}]")
        if text[close_index + 1:].strip():
            raise SpecificationError(f"Unexpected text after class specification [{text}]")

        return text[:open_index].strip(), text[open_index + 1:close_index]

    def _parse_header(self, header: str) -> ClassSpecification:
        tokens = header.split()
        specification = ClassSpecification()
        index = 0

        # Annotations and access modifiers until the class keyword.
        while True:
            if index >= len(tokens):
                raise SpecificationError(
                    f"Expecting keyword 'class', 'interface', or 'enum' in [{header}]"
                )

            token = tokens[index]
            index += 1

            negated = token.startswith("!")
            word = token[1:] if negated else token

            if word.startswith("@") and word != "@interface" and len(word) > 1:
                if negated:
                    raise SpecificationError(f"Annotation types can't be negated [{token}]")
                specification.annotation_type = internal_type(word[1:])
                continue

            if word in CLASS_KEYWORDS:
                flag = {
                    "class": 0,
                    "interface": AccessFlag.INTERFACE,
                    "enum": AccessFlag.ENUM,
                    "@interface": AccessFlag.ANNOTATION | AccessFlag.INTERFACE,
                }[word]
                self._add_flag(specification, flag, negated, word)
                break

            flag = CLASS_ACCESS_MODIFIERS.get(word)
            if flag is None:
                raise SpecificationError(f"Incorrect class access modifier [{word}]")
            self._add_flag(specification, flag, negated, word)

        if index >= len(tokens):
            raise SpecificationError(f"Expecting class name in [{header}]")

        name = tokens[index]
        index += 1
        specification.class_name = None if name == ANY_CLASS else internal_class_name(name)

        if index < len(tokens):
            if tokens[index] not in ("extends", "implements"):
                raise SpecificationError(f"Unexpected '{tokens[index]}' in [{header}]")
            index += 1

            if index < len(tokens) and tokens[index].startswith("@"):
                specification.extends_annotation_type = internal_type(tokens[index][1:])
                index += 1

            if index >= len(tokens):
                raise SpecificationError(f"Expecting class name or interface name in [{header}]")

            extends = tokens[index]
            index += 1
            specification.extends_class_name = (
                None if extends == ANY_CLASS else internal_class_name(extends)
            )

        if index < len(tokens):
            raise SpecificationError(f"Unexpected '{tokens[index]}' in [{header}]")

        return specification

    def _add_flag(
        self, specification: ClassSpecification, flag: int, negated: bool, word: str
    ) -> None:
        if negated:
            specification.required_unset_access_flags |= flag
        else:
            specification.required_set_access_flags |= flag

        if specification.required_set_access_flags & specification.required_unset_access_flags:
            raise SpecificationError(f"Conflicting class access modifiers for '{word}'")

    def _parse_member(
        self, specification: ClassSpecification, text: str, allow_values: bool
    ) -> None:
        match = _MEMBER_PATTERN.match(text)
        if match is None:
            raise SpecificationError(f"Malformed class member specification [{text}]")

        tokens = match.group("head").split()
        params = match.group("params")
        value = match.group("value")

        if value is not None and not allow_values:
            raise SpecificationError(f"Values not allowed in this class specification [{text}]")

        annotation = None
        set_flags = 0
        unset_flags = 0

        while tokens:
            token = tokens[0]
            if token.startswith("@") and len(token) > 1:
                annotation = internal_type(token[1:])
                tokens.pop(0)
                continue

            negated = token.startswith("!")
            word = token[1:] if negated else token
            flag = MEMBER_ACCESS_MODIFIERS.get(word)
            if flag is None:
                break
            if negated:
                unset_flags |= flag
            else:
                set_flags |= flag
            tokens.pop(0)

        def member(
            name: Optional[str], descriptor: Optional[str], value_type: Optional[str] = None
        ):
            common = dict(
                required_set_access_flags=set_flags,
                required_unset_access_flags=unset_flags,
                annotation_type=annotation,
                name=name,
                descriptor=descriptor,
            )
            if value is not None:
                if value_type is None:
                    raise SpecificationError(f"Values require a member type [{text}]")
                return MemberValueSpecification(values=parse_values(value_type, value), **common)
            return MemberSpecification(**common)

        if params is None:
            if tokens in (["*"], ["<fields>"], ["<methods>"]):
                if value is not None:
                    raise SpecificationError(f"Values require a member type [{text}]")
                if tokens[0] in ("*", "<fields>"):
                    specification.add_field(member(None, None))
                if tokens[0] in ("*", "<methods>"):
                    specification.add_method(member(None, None))
                return

            if len(tokens) != 2:
                raise SpecificationError(f"Expecting field type and name in [{text}]")
            field_type, name = tokens
            specification.add_field(member(name, internal_type(field_type), field_type))
            return

        parameters: List[str] = parameter_list(params)

        if len(tokens) == 1:
            constructor = tokens[0] == METHOD_NAME_INIT
            if not constructor and not self._is_constructor_name(specification, tokens[0]):
                raise SpecificationError(f"Expecting method return type in [{text}]")
            if value is not None:
                raise SpecificationError(f"Values not allowed for constructors [{text}]")
            specification.add_method(
                member(METHOD_NAME_INIT, internal_method_descriptor("void", parameters))
            )
            return

        if len(tokens) != 2:
            raise SpecificationError(f"Expecting method return type and name in [{text}]")

        return_type, name = tokens
        specification.add_method(
            member(name, internal_method_descriptor(return_type, parameters), return_type)
        )

    def _is_constructor_name(self, specification: ClassSpecification, name: str) -> bool:
        if specification.class_name is None:
            return False
        simple_name = specification.class_name.rsplit("/", 1)[-1]
        return name == simple_name or internal_class_name(name) == specification.class_name
