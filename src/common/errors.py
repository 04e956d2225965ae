"""Error taxonomy shared by the planner, codec, selection engine and cache."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple


class JarJarError(Exception):
    """Base class for every jar-in-jar failure."""


class MalformedRange(JarJarError, ValueError):
    """Raised when a version range specification cannot be parsed."""

    def __init__(self, spec: str, reason: str):
        super().__init__(f"Malformed version range '{spec}': {reason}")
        self.spec = spec
        self.reason = reason


class MalformedMetadata(JarJarError, ValueError):
    """Raised when a metadata document fails its own invariants on decode."""


class DuplicateCoordinate(JarJarError):
    """Raised when one build declares the same coordinate twice."""

    def __init__(self, coordinate):
        super().__init__(f"Coordinate {coordinate} is declared more than once")
        self.coordinate = coordinate


class VersionOutOfRange(JarJarError):
    """Raised when a resolved version falls outside its own declared range."""

    def __init__(self, version, version_range, coordinate=None):
        where = f" for {coordinate}" if coordinate is not None else ""
        super().__init__(f"Resolved version {version}{where} is not in range {version_range}")
        self.version = version
        self.version_range = version_range
        self.coordinate = coordinate


class UnsatisfiableVersionConstraint(JarJarError):
    """Raised when the declared ranges of a coordinate have no common version."""

    def __init__(self, coordinate, declarations: Iterable[Tuple[str, object]]):
        self.coordinate = coordinate
        self.declarations: Sequence[Tuple[str, object]] = tuple(declarations)
        listing = ", ".join(f"{source} requires {rng}" for source, rng in self.declarations)
        super().__init__(f"No version of {coordinate} satisfies every declared range: {listing}")

    @property
    def sources(self) -> Tuple[str, ...]:
        """Source archives that took part in the conflict."""
        return tuple(source for source, _ in self.declarations)


class NoSatisfyingVersion(JarJarError):
    """Raised when no embedded copy lies inside the agreed range."""

    def __init__(self, coordinate, version_range, offered: Iterable[Tuple[str, object]]):
        self.coordinate = coordinate
        self.version_range = version_range
        self.offered: Sequence[Tuple[str, object]] = tuple(offered)
        listing = ", ".join(f"{version} from {source}" for source, version in self.offered) or "none"
        super().__init__(
            f"No embedded version of {coordinate} lies in {version_range} (offered: {listing})"
        )


class ExtractionFailure(JarJarError):
    """Raised when an embedded jar cannot be materialized."""

    def __init__(self, source: str, path: str, reason: Optional[str] = None):
        detail = f": {reason}" if reason else ""
        super().__init__(f"Failed to extract {path} from {source}{detail}")
        self.source = source
        self.path = path
