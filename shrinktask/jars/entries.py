#!/usr/bin/env python3
"""Ordered sets of archive entries with optional filters.

A JarEntrySet keeps two parallel lists: the locations and, at the same
index, the filter mapping given with each location (or None). Locations are
stored exactly as handed in: strings, paths, arbitrary objects and even
collections, which are never flattened. Filter mappings are stored by
reference, so later changes to the caller's dict are visible here.

Example:
    >>> inputs = JarEntrySet("in")
    >>> inputs.append("app.jar", {"filter": "!META-INF/**"})
    >>> inputs.append("lib/")
    >>> inputs.filters
    [{'filter': '!META-INF/**'}, None]
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional

from shrinktask.core.constants import ErrorCode, FilterArgs, FilterKey, Location
from shrinktask.rules.patterns import comma_separated_list


class IntegrityError(AssertionError):
    """Internal invariant violated; a defect in ShrinkTask, not bad input."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


@dataclass(frozen=True)
class JarEntry:
    """View of one registered location and its optional filter."""

    location: Location
    filter: FilterArgs = None

    @property
    def feature_name(self) -> Optional[str]:
        if self.filter is None:
            return None
        return self.filter.get(FilterKey.FEATURE)

    def filter_patterns(self, kind: str = FilterKey.FILTER) -> Optional[List[str]]:
        """Return the patterns of one filter kind, or None if absent.

        Args:
            kind: Filter key, e.g. "filter" or "jarfilter"
        """
        if self.filter is None:
            return None
        spec = self.filter.get(kind)
        if spec is None:
            return None
        return comma_separated_list(spec)


class JarEntrySet:
    """Append-only locations with a parallel list of filters."""

    def __init__(self, name: str = "jars"):
        """Initialize entry set.

        Args:
            name: Side name used in messages, e.g. "in" or "out"
        """
        self.name = name
        self._entries: List[Location] = []
        self._filters: List[FilterArgs] = []

    def append(self, location: Location, filter: FilterArgs = None) -> int:
        """Register a location and its optional filter.

        Args:
            location: Any location object; stored without validation
            filter: Optional filter mapping; stored by reference

        Returns:
            Index of the new entry
        """
        self._entries.append(location)
        self._filters.append(filter)
        self.check_integrity()
        return len(self._entries) - 1

    def check_integrity(self) -> None:
        """Fail loudly if the parallel lists ever diverge.

        Raises:
            IntegrityError: If entries and filters differ in length
        """
        if len(self._entries) != len(self._filters):
            raise IntegrityError(
                f"{self.name} entries ({len(self._entries)}) and filters "
                f"({len(self._filters)}) are out of step"
            )

    @property
    def entries(self) -> List[Location]:
        """The live list of locations."""
        return self._entries

    @property
    def filters(self) -> List[FilterArgs]:
        """The live list of filters, parallel to entries."""
        return self._filters

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[JarEntry]:
        for location, filter_args in zip(self._entries, self._filters):
            yield JarEntry(location, filter_args)

    def __getitem__(self, index: int) -> JarEntry:
        return JarEntry(self._entries[index], self._filters[index])

    def __repr__(self) -> str:
        return f"JarEntrySet(name={self.name!r}, size={len(self)})"
