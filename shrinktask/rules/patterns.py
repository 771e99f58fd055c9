#!/usr/bin/env python3
"""Three-state pattern lists for task filter settings.

This module provides the pattern list used by settings such as kept
attributes, kept directories and adaptable resource names:
- UNSET: never touched, the engine applies its own default
- EMPTY: explicitly cleared, matches everything
- POPULATED: ordered comma-separated patterns, duplicates kept

Example:
    >>> attributes = PatternListField("keep_attributes")
    >>> attributes.add("Signature,*Annotation*")
    >>> attributes.value
    ['Signature', '*Annotation*']
    >>> attributes.reset()
    >>> attributes.value
    []
"""

from enum import Enum
from typing import Iterator, List, Optional

from shrinktask.core.constants import internal_class_name


class PatternState(Enum):
    """State of a pattern list."""

    UNSET = "unset"  # Use the engine default
    EMPTY = "empty"  # Explicitly cleared, match everything
    POPULATED = "populated"  # Match the listed patterns


def comma_separated_list(spec: str) -> List[str]:
    """Split a filter string into its pattern tokens.

    Tokens are neither trimmed nor case-normalized; empty tokens survive.

    Args:
        spec: Comma-separated filter string

    Returns:
        List of pattern tokens in order
    """
    return spec.split(",")


class PatternListField:
    """A named, lazily-initialized ordered list of patterns.

    The list object is created by the first mutation and then kept for the
    lifetime of the field; reset() clears it in place.
    """

    def __init__(self, name: Optional[str] = None, convert_class_names: bool = False):
        """Initialize pattern list field.

        Args:
            name: Setting name, used in reprs and printed configurations
            convert_class_names: Convert dotted class names to internal form on add
        """
        self.name = name
        self.convert_class_names = convert_class_names
        self._patterns: Optional[List[str]] = None

    def reset(self) -> None:
        """Clear the list so that it matches everything."""
        if self._patterns is None:
            self._patterns = []
        else:
            self._patterns.clear()

    def add(self, spec: Optional[str]) -> None:
        """Append the comma-separated patterns of spec.

        Args:
            spec: Filter string, or None to reset the list
        """
        if spec is None:
            self.reset()
            return

        if self.convert_class_names:
            spec = internal_class_name(spec)

        if self._patterns is None:
            self._patterns = []

        self._patterns.extend(comma_separated_list(spec))

    @property
    def value(self) -> Optional[List[str]]:
        """The live pattern list, or None while unset."""
        return self._patterns

    @property
    def state(self) -> PatternState:
        if self._patterns is None:
            return PatternState.UNSET
        if not self._patterns:
            return PatternState.EMPTY
        return PatternState.POPULATED

    @property
    def is_set(self) -> bool:
        """Return True once the field has been reset or added to."""
        return self._patterns is not None

    def __len__(self) -> int:
        return len(self._patterns) if self._patterns is not None else 0

    def __iter__(self) -> Iterator[str]:
        return iter(self._patterns or ())

    def __bool__(self) -> bool:
        """Return True if any patterns are registered."""
        return bool(self._patterns)

    def __repr__(self) -> str:
        return f"PatternListField(name={self.name!r}, patterns={self._patterns!r})"
