"""Backup exclusion patterns.

Patterns are plain names with at most one ``*`` wildcard segment
(``node_modules``, ``*.log``, ``tmp-*``, ``*cache*``, ``npm-*.log``). They
are compiled once into ExclusionPattern values and matched against the
entry name only, never the full path.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable


class MatchKind(enum.Enum):
    EXACT = "exact"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    CONTAINS = "contains"
    AFFIX = "affix"  # prefix*suffix


@dataclass(frozen=True)
class ExclusionPattern:
    kind: MatchKind
    text: str
    tail: str = ""

    @classmethod
    def compile(cls, pattern: str) -> ExclusionPattern:
        """Compile a pattern string.

        Raises:
            ValueError: If the pattern is empty or has a wildcard in a
                position other than start, end, both ends, or one interior spot.
        """
        if not pattern or pattern == "*":
            raise ValueError(f"Invalid exclusion pattern: {pattern!r}")

        stars = pattern.count("*")
        if stars == 0:
            return cls(MatchKind.EXACT, pattern)
        if stars == 2 and pattern.startswith("*") and pattern.endswith("*") and len(pattern) > 2:
            return cls(MatchKind.CONTAINS, pattern[1:-1])
        if stars == 1:
            if pattern.startswith("*"):
                return cls(MatchKind.SUFFIX, pattern[1:])
            if pattern.endswith("*"):
                return cls(MatchKind.PREFIX, pattern[:-1])
            head, tail = pattern.split("*")
            return cls(MatchKind.AFFIX, head, tail)
        raise ValueError(f"Only one wildcard is supported per pattern: {pattern!r}")

    def matches(self, name: str) -> bool:
        if self.kind is MatchKind.EXACT:
            return name == self.text
        if self.kind is MatchKind.PREFIX:
            return name.startswith(self.text)
        if self.kind is MatchKind.SUFFIX:
            return name.endswith(self.text)
        if self.kind is MatchKind.CONTAINS:
            return self.text in name
        return (
            len(name) >= len(self.text) + len(self.tail)
            and name.startswith(self.text)
            and name.endswith(self.tail)
        )


class ExclusionSet:
    """A compiled, ordered collection of exclusion patterns."""

    def __init__(self, patterns: Iterable[str]):
        self.patterns: list[ExclusionPattern] = []
        seen: set[str] = set()
        for pattern in patterns:
            if pattern in seen:
                continue
            seen.add(pattern)
            self.patterns.append(ExclusionPattern.compile(pattern))

    def __contains__(self, name: str) -> bool:
        return self.excludes(name)

    def excludes(self, name: str) -> bool:
        return any(p.matches(name) for p in self.patterns)
