#!/usr/bin/env python3
"""Ordered lists of class specifications for one rule family.

A ClassSpecificationList stays None-valued until its first append; after
that it is an append-only list whose identity never changes. Records come
either from rule text, through a RuleParser collaborator, or from a
key/value descriptor plus optional nested member declarations.

Example:
    >>> rules = ClassSpecificationList("assume_no_side_effects", allow_values=True)
    >>> rules.append_text("class android.util.Log { int d(...); }")
    >>> rules.append_descriptor({"name": "com.example.Debug"},
    ...                         lambda m: m.method(type="void", name="trace", parameters=""))
    >>> len(rules)
    2
"""

from typing import Any, Iterator, List, Mapping, Optional

from shrinktask.rules.parser import RuleParser, SimpleRuleParser
from shrinktask.rules.records import (
    KEEP_FAMILIES,
    ClassSpecification,
    KeepClassSpecification,
    MemberDeclarations,
    create_class_specification,
    create_keep_class_specification,
)


class ClassSpecificationList:
    """Append-only, lazily created list of class specifications."""

    def __init__(
        self,
        name: Optional[str] = None,
        allow_values: bool = False,
        parser: Optional[RuleParser] = None,
    ):
        """Initialize specification list.

        Args:
            name: Rule family name, e.g. "assume_no_side_effects"
            allow_values: Whether members may carry assumed values
            parser: Rule-text parser, SimpleRuleParser by default
        """
        self.name = name
        self.allow_values = allow_values
        self.parser: RuleParser = parser if parser is not None else SimpleRuleParser()
        self._specifications: Optional[List[ClassSpecification]] = None

    def append(self, specification: ClassSpecification) -> ClassSpecification:
        """Append an already built record."""
        if self._specifications is None:
            self._specifications = []
        self._specifications.append(specification)
        return specification

    def append_text(self, rule_text: str) -> ClassSpecification:
        """Parse rule text into a record and append it."""
        return self.append(self.parser.parse(rule_text, self.allow_values))

    def append_descriptor(
        self,
        descriptor: Mapping[str, Any],
        members: Optional[MemberDeclarations] = None,
    ) -> ClassSpecification:
        """Build a record from a descriptor and append it.

        Args:
            descriptor: Class keys (access, annotation, type, name, extends, ...)
            members: Optional callable declaring nested members

        Returns:
            The appended record
        """
        return self.append(create_class_specification(descriptor, members, self.allow_values))

    @property
    def value(self) -> Optional[List[ClassSpecification]]:
        """The live record list, or None before the first append."""
        return self._specifications

    @property
    def is_set(self) -> bool:
        return self._specifications is not None

    def __len__(self) -> int:
        return len(self._specifications) if self._specifications is not None else 0

    def __iter__(self) -> Iterator[ClassSpecification]:
        return iter(self._specifications or ())

    def __getitem__(self, index: int) -> ClassSpecification:
        if self._specifications is None:
            raise IndexError(f"{self.name or 'specification list'} is empty")
        return self._specifications[index]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, size={len(self)})"


class KeepSpecificationList(ClassSpecificationList):
    """Specification list whose records carry keep modifiers.

    Every keep family (keep, keepnames, keepclassmembers, ...) appends to the
    same list; the family only selects the default modifiers.
    """

    def append_text(
        self,
        rule_text: str,
        family: str = "keep",
        keep_args: Optional[Mapping[str, Any]] = None,
    ) -> KeepClassSpecification:
        """Parse rule text and append it as a keep rule.

        Args:
            rule_text: Class specification text
            family: Keep rule family selecting the default modifiers
            keep_args: Optional modifier overrides and "if" condition text

        Returns:
            The appended keep record
        """
        self._check_family(family)
        specification = self.parser.parse(rule_text, self.allow_values)
        keep = create_keep_class_specification(
            family, keep_args, specification, self._condition(keep_args)
        )
        self.append(keep)
        return keep

    def append_descriptor(
        self,
        descriptor: Mapping[str, Any],
        members: Optional[MemberDeclarations] = None,
        family: str = "keep",
    ) -> KeepClassSpecification:
        """Build a keep rule from a descriptor holding class keys and modifiers."""
        self._check_family(family)
        specification = create_class_specification(descriptor, members, self.allow_values)
        keep = create_keep_class_specification(
            family, descriptor, specification, self._condition(descriptor)
        )
        self.append(keep)
        return keep

    def _condition(self, args: Optional[Mapping[str, Any]]) -> Optional[ClassSpecification]:
        if args is None:
            return None
        condition_text = args.get("if")
        if condition_text is None:
            return None
        return self.parser.parse(condition_text, False)

    def _check_family(self, family: str) -> None:
        if family not in KEEP_FAMILIES:
            raise KeyError(f"Unknown keep rule family: {family}")
