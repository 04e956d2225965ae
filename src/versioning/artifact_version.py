"""Maven-style artifact version ordering.

A version literal is split into alternating numeric and qualifier
segments (``1.2.0-beta3`` -> ``1, 2, 0, beta, 3``) and normalized before
comparison: release markers (``ga``, ``final``, ``release``) are dropped,
and zeros directly before a qualifier or at the end are trimmed, so
``1``, ``1.0`` and ``1.0.0.Final`` are all equal.

Ordering rules:
  * numbers compare numerically and always beat a qualifier,
  * known qualifiers rank alpha < beta < milestone < rc < snapshot < sp;
    unknown qualifiers rank after ``sp`` and compare lexically,
  * a missing segment behaves like ``0`` against a number and beats any
    qualifier, so a release sorts after every qualified version with the
    same leading numbers: ``1.0-rc1 < 1.0-sp1 < 1.0 < 1.0.1``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import List, Optional, Tuple, Union

Segment = Union[int, str]

_TOKEN_RE = re.compile(r"(\d+)|([A-Za-z]+)")

# Single-letter shorthands only count when a number follows directly ("a1", "b2").
_SHORTHANDS = {"a": "alpha", "b": "beta", "m": "milestone"}
_ALIASES = {"cr": "rc"}
_RELEASE_MARKERS = frozenset({"ga", "final", "release"})
_RANKS = {
    "alpha": 0,
    "beta": 1,
    "milestone": 2,
    "rc": 3,
    "snapshot": 4,
    "sp": 6,
}
_UNKNOWN_RANK = 7


def _trim_zeros(segments: List[Segment]) -> None:
    while segments and segments[-1] == 0 and isinstance(segments[-1], int):
        segments.pop()


def _segments(raw: str) -> Tuple[Segment, ...]:
    """Split and normalize a version literal."""
    segments: List[Segment] = []
    matches = list(_TOKEN_RE.finditer(raw))
    for index, match in enumerate(matches):
        digits, letters = match.groups()
        if digits is not None:
            segments.append(int(digits))
            continue
        qualifier = letters.lower()
        following = matches[index + 1] if index + 1 < len(matches) else None
        if (
            qualifier in _SHORTHANDS
            and following is not None
            and following.start() == match.end()
            and following.group(1) is not None
        ):
            qualifier = _SHORTHANDS[qualifier]
        qualifier = _ALIASES.get(qualifier, qualifier)
        if qualifier in _RELEASE_MARKERS:
            continue
        _trim_zeros(segments)
        segments.append(qualifier)
    _trim_zeros(segments)

    if not matches and raw.strip():
        # Nothing recognizable: order by the literal alone.
        return (raw.strip().lower(),)
    return tuple(segments)


def _qualifier_key(qualifier: str) -> Tuple[int, str]:
    rank = _RANKS.get(qualifier, _UNKNOWN_RANK)
    return rank, qualifier if rank == _UNKNOWN_RANK else ""


def _compare_segment(left: Optional[Segment], right: Optional[Segment]) -> int:
    if left is None and right is None:
        return 0
    if left is None:
        return -_compare_segment(right, None)
    if right is None:
        if isinstance(left, int):
            return 1 if left > 0 else 0
        return -1
    if isinstance(left, int) and isinstance(right, int):
        return (left > right) - (left < right)
    if isinstance(left, int):
        return 1
    if isinstance(right, int):
        return -1
    left_key, right_key = _qualifier_key(left), _qualifier_key(right)
    return (left_key > right_key) - (left_key < right_key)


@total_ordering
@dataclass(frozen=True, eq=False)
class ArtifactVersion:
    """A parsed version literal with a total order.

    Parsing never fails. ``str()`` returns the original literal verbatim,
    surrounding whitespace included, while equality and hashing use the
    normalized segments.
    """

    raw: str
    segments: Tuple[Segment, ...] = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "segments", _segments(self.raw))

    @classmethod
    def parse(cls, raw: str) -> "ArtifactVersion":
        """Build a version from its literal."""
        return cls(raw)

    def compare(self, other: "ArtifactVersion") -> int:
        """Return -1, 0 or 1 as ``self`` sorts before, equal to or after ``other``."""
        length = max(len(self.segments), len(other.segments))
        for index in range(length):
            left = self.segments[index] if index < len(self.segments) else None
            right = other.segments[index] if index < len(other.segments) else None
            result = _compare_segment(left, right)
            if result:
                return result
        return 0

    def __eq__(self, other):
        if not isinstance(other, ArtifactVersion):
            return NotImplemented
        return self.segments == other.segments

    def __lt__(self, other):
        if not isinstance(other, ArtifactVersion):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self):
        return hash(self.segments)

    def __str__(self):
        return self.raw

    def __repr__(self):
        return f"ArtifactVersion({self.raw!r})"
