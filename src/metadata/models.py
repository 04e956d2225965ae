"""Data models describing the jars embedded in an artifact."""

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from common.errors import DuplicateCoordinate, VersionOutOfRange
from versioning import ArtifactVersion, VersionRange


@dataclass(frozen=True)
class ArtifactCoordinate:
    """Version-independent identity of a dependency (groupId, artifactId)."""
    group: str
    artifact: str

    @classmethod
    def parse(cls, token: str) -> "ArtifactCoordinate":
        """Parse ``group:artifact``; any other shape is rejected."""
        parts = token.strip().split(":")
        if len(parts) != 2 or not all(part.strip() for part in parts):
            raise ValueError(f"Expected 'group:artifact', got '{token}'")
        return cls(parts[0].strip(), parts[1].strip())

    def __str__(self):
        return f"{self.group}:{self.artifact}"


@dataclass(frozen=True)
class ContainedVersion:
    """Declared compatibility range plus the version actually packaged."""
    range: Optional[VersionRange]
    resolved: Optional[ArtifactVersion]

    def __post_init__(self):
        if self.range is not None and self.resolved is not None and not self.range.contains(self.resolved):
            raise VersionOutOfRange(self.resolved, self.range)


@dataclass(frozen=True)
class ContainedJarEntry:
    """One manifest entry; ``path`` is recorded even for constraint-only entries."""
    coordinate: ArtifactCoordinate
    version: Optional[ContainedVersion]
    path: str
    obfuscated: bool = False
    constraint_only: bool = False

    @property
    def range(self) -> Optional[VersionRange]:
        return self.version.range if self.version is not None else None

    @property
    def resolved(self) -> Optional[ArtifactVersion]:
        return self.version.resolved if self.version is not None else None


@dataclass(frozen=True)
class Metadata:
    """Ordered manifest of embedded jars, unique by coordinate."""
    entries: Tuple[ContainedJarEntry, ...] = ()

    def __post_init__(self):
        entries = tuple(self.entries)
        object.__setattr__(self, "entries", entries)
        seen = set()
        for entry in entries:
            if entry.coordinate in seen:
                raise DuplicateCoordinate(entry.coordinate)
            seen.add(entry.coordinate)

    def __iter__(self) -> Iterator[ContainedJarEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def by_coordinate(self) -> Dict[ArtifactCoordinate, ContainedJarEntry]:
        """Entries keyed by coordinate, in document order."""
        return {entry.coordinate: entry for entry in self.entries}

    def find(self, coordinate: ArtifactCoordinate) -> Optional[ContainedJarEntry]:
        return self.by_coordinate().get(coordinate)


# A manifest together with the archive it was read from.
SourcedMetadata = Tuple[str, Metadata]
