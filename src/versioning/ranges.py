"""Maven bracket-notation version ranges.

``[`` / ``]`` are inclusive bounds, ``(`` / ``)`` exclusive ones, an empty
bound is unbounded, and several intervals may be joined with commas:
``[1.0,2.0),[3.0,)``. A bare version (``1.0``) is a recommendation that
permits any version.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from common.errors import MalformedRange

from .artifact_version import ArtifactVersion

_BRACKETS = "[]()"


def _pick_raw(left: ArtifactVersion, right: ArtifactVersion) -> ArtifactVersion:
    """Choose between two equal versions by literal, independent of argument order."""
    return left if left.raw >= right.raw else right


@dataclass(frozen=True)
class Restriction:
    """One interval of a version range.

    A ``None`` bound is unbounded and is always stored as exclusive.
    """

    lower: Optional[ArtifactVersion] = None
    lower_inclusive: bool = False
    upper: Optional[ArtifactVersion] = None
    upper_inclusive: bool = False

    def __post_init__(self):
        if self.lower is None and self.lower_inclusive:
            object.__setattr__(self, "lower_inclusive", False)
        if self.upper is None and self.upper_inclusive:
            object.__setattr__(self, "upper_inclusive", False)
        if self.lower is not None and self.upper is not None:
            order = self.lower.compare(self.upper)
            if order > 0:
                raise MalformedRange(self._render(), "lower bound is greater than upper bound")
            if order == 0 and not (self.lower_inclusive and self.upper_inclusive):
                raise MalformedRange(self._render(), "interval contains no version")

    @classmethod
    def exact(cls, version: ArtifactVersion) -> "Restriction":
        """Interval holding exactly ``version``."""
        return cls(version, True, version, True)

    @property
    def is_exact(self) -> bool:
        return (
            self.lower is not None
            and self.upper is not None
            and self.lower_inclusive
            and self.upper_inclusive
            and self.lower == self.upper
        )

    @property
    def is_unbounded(self) -> bool:
        return self.lower is None and self.upper is None

    def contains(self, version: ArtifactVersion) -> bool:
        """True when ``version`` lies inside this interval."""
        if self.lower is not None:
            order = version.compare(self.lower)
            if order < 0 or (order == 0 and not self.lower_inclusive):
                return False
        if self.upper is not None:
            order = version.compare(self.upper)
            if order > 0 or (order == 0 and not self.upper_inclusive):
                return False
        return True

    def intersect(self, other: "Restriction") -> Optional["Restriction"]:
        """Overlap of two intervals, or None when they are disjoint."""
        lower, lower_inclusive = _tighter_lower(self, other)
        upper, upper_inclusive = _tighter_upper(self, other)
        if lower is not None and upper is not None:
            order = lower.compare(upper)
            if order > 0 or (order == 0 and not (lower_inclusive and upper_inclusive)):
                return None
        return Restriction(lower, lower_inclusive, upper, upper_inclusive)

    def _render(self) -> str:
        if self.is_exact:
            return f"[{self.lower}]"
        return "{}{},{}{}".format(
            "[" if self.lower_inclusive else "(",
            "" if self.lower is None else self.lower,
            "" if self.upper is None else self.upper,
            "]" if self.upper_inclusive else ")",
        )

    def __str__(self):
        return self._render()


def _tighter_lower(left: Restriction, right: Restriction) -> Tuple[Optional[ArtifactVersion], bool]:
    if left.lower is None:
        return right.lower, right.lower_inclusive
    if right.lower is None:
        return left.lower, left.lower_inclusive
    order = left.lower.compare(right.lower)
    if order > 0:
        return left.lower, left.lower_inclusive
    if order < 0:
        return right.lower, right.lower_inclusive
    return _pick_raw(left.lower, right.lower), left.lower_inclusive and right.lower_inclusive


def _tighter_upper(left: Restriction, right: Restriction) -> Tuple[Optional[ArtifactVersion], bool]:
    if left.upper is None:
        return right.upper, right.upper_inclusive
    if right.upper is None:
        return left.upper, left.upper_inclusive
    order = left.upper.compare(right.upper)
    if order < 0:
        return left.upper, left.upper_inclusive
    if order > 0:
        return right.upper, right.upper_inclusive
    return _pick_raw(left.upper, right.upper), left.upper_inclusive and right.upper_inclusive


def _compare_lower(left: Restriction, right: Restriction) -> int:
    if left.lower is None or right.lower is None:
        return (left.lower is not None) - (right.lower is not None)
    order = left.lower.compare(right.lower)
    if order:
        return order
    if left.lower_inclusive != right.lower_inclusive:
        return -1 if left.lower_inclusive else 1
    return (left.lower.raw > right.lower.raw) - (left.lower.raw < right.lower.raw)


def _ordered(restrictions: Iterable[Restriction]) -> List[Restriction]:
    # Pieces cut from canonical operands never overlap or touch, so ordering them is enough.
    return sorted(restrictions, key=functools.cmp_to_key(_compare_lower))


def _greater_hint(
    left: Optional[ArtifactVersion], right: Optional[ArtifactVersion]
) -> Optional[ArtifactVersion]:
    if left is None:
        return right
    if right is None:
        return left
    order = left.compare(right)
    if order:
        return left if order > 0 else right
    return _pick_raw(left, right)


def _parse_restriction(spec: str, text: str) -> Restriction:
    lower_inclusive = text.startswith("[")
    upper_inclusive = text.endswith("]")
    inner = text[1:-1].strip()
    if any(ch in inner for ch in _BRACKETS):
        raise MalformedRange(spec, f"unexpected bracket in interval '{text}'")

    if "," not in inner:
        if not inner:
            raise MalformedRange(spec, "empty interval")
        if not (lower_inclusive and upper_inclusive):
            raise MalformedRange(spec, "a single version must be surrounded by []")
        return Restriction.exact(ArtifactVersion.parse(inner))

    parts = inner.split(",")
    if len(parts) != 2:
        raise MalformedRange(spec, f"interval '{text}' must have exactly one comma")
    lower_text, upper_text = (part.strip() for part in parts)
    lower = ArtifactVersion.parse(lower_text) if lower_text else None
    upper = ArtifactVersion.parse(upper_text) if upper_text else None
    try:
        return Restriction(lower, lower_inclusive, upper, upper_inclusive)
    except MalformedRange as exc:
        raise MalformedRange(spec, exc.reason) from None


@dataclass(frozen=True)
class VersionRange:
    """A non-empty, ascending set of disjoint intervals.

    ``recommended`` carries the version named by a bare spec such as
    ``1.0``; it is only meaningful on the unbounded range ``(,)``.
    """

    restrictions: Tuple[Restriction, ...]
    recommended: Optional[ArtifactVersion] = None

    def __post_init__(self):
        restrictions = tuple(self.restrictions)
        object.__setattr__(self, "restrictions", restrictions)
        if not restrictions:
            raise MalformedRange("", "a version range needs at least one interval")
        for previous, current in zip(restrictions, restrictions[1:]):
            if previous.upper is None or current.lower is None:
                raise MalformedRange(self._render(), "intervals overlap")
            order = current.lower.compare(previous.upper)
            if order < 0 or (order == 0 and previous.upper_inclusive and current.lower_inclusive):
                raise MalformedRange(self._render(), "intervals overlap or are out of order")
            # Touching intervals have a single-interval spelling; only that one is accepted.
            if order == 0 and (previous.upper_inclusive or current.lower_inclusive):
                raise MalformedRange(self._render(), "adjacent intervals must be written as one interval")
        if self.recommended is not None and not (
            len(restrictions) == 1 and restrictions[0].is_unbounded
        ):
            raise MalformedRange(self._render(), "a recommended version only applies to an unbounded range")

    @classmethod
    def parse(cls, spec: str) -> "VersionRange":
        """Parse bracket notation or a bare recommended version."""
        if spec is None:
            raise MalformedRange("None", "empty specification")
        process = spec.strip()
        if not process:
            raise MalformedRange(spec, "empty specification")

        restrictions: List[Restriction] = []
        while process.startswith(("[", "(")):
            closes = [index for index in (process.find("]"), process.find(")")) if index >= 0]
            if not closes:
                raise MalformedRange(spec, "unterminated interval")
            end = min(closes)
            restrictions.append(_parse_restriction(spec, process[: end + 1]))
            process = process[end + 1:].strip()
            if process.startswith(","):
                process = process[1:].strip()
                if not process:
                    raise MalformedRange(spec, "trailing comma")

        if process:
            if restrictions:
                raise MalformedRange(spec, "only bracketed intervals may follow an interval")
            if any(ch in process for ch in _BRACKETS + ","):
                raise MalformedRange(spec, "unbalanced brackets")
            return cls((Restriction(),), ArtifactVersion.parse(process))

        try:
            return cls(tuple(restrictions))
        except MalformedRange as exc:
            raise MalformedRange(spec, exc.reason) from None

    @classmethod
    def unbounded(cls) -> "VersionRange":
        """The range ``(,)`` permitting every version."""
        return cls((Restriction(),))

    @classmethod
    def exactly(cls, version: ArtifactVersion) -> "VersionRange":
        return cls((Restriction.exact(version),))

    @property
    def is_unbounded(self) -> bool:
        return len(self.restrictions) == 1 and self.restrictions[0].is_unbounded

    def contains(self, version: ArtifactVersion) -> bool:
        """True when any interval contains ``version``."""
        return any(restriction.contains(version) for restriction in self.restrictions)

    def __contains__(self, version: ArtifactVersion) -> bool:
        return self.contains(version)

    def intersect(self, other: "VersionRange") -> Optional["VersionRange"]:
        """Versions permitted by both ranges; None when they share none."""
        survivors: List[Restriction] = []
        for mine in self.restrictions:
            for theirs in other.restrictions:
                overlap = mine.intersect(theirs)
                if overlap is not None:
                    survivors.append(overlap)
        if not survivors:
            return None
        ordered = _ordered(survivors)
        recommended = None
        if len(ordered) == 1 and ordered[0].is_unbounded:
            recommended = _greater_hint(self.recommended, other.recommended)
        return VersionRange(tuple(ordered), recommended)

    def _render(self) -> str:
        if self.recommended is not None and self.is_unbounded:
            return str(self.recommended)
        return ",".join(str(restriction) for restriction in self.restrictions)

    def __str__(self):
        return self._render()


def parse_range(spec: str) -> VersionRange:
    """Module-level alias for ``VersionRange.parse``."""
    return VersionRange.parse(spec)


def intersect_all(ranges: Iterable[VersionRange]) -> Optional[VersionRange]:
    """Fold ``intersect`` over ``ranges``; None as soon as the result is empty."""
    iterator = iter(ranges)
    try:
        result: Optional[VersionRange] = next(iterator)
    except StopIteration:
        raise ValueError("intersect_all() needs at least one range") from None
    for version_range in iterator:
        result = result.intersect(version_range)
        if result is None:
            return None
    return result
