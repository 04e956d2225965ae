"""Classpath-facing lookup: coordinate -> materialized jar."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from constants import Constants
from extraction.cache import ExtractionCache
from metadata.codec import read_metadata
from metadata.models import ArtifactCoordinate, Metadata

from .engine import Selection, select

logger = logging.getLogger(__name__)


class JarJarResolver:
    """Answers ``resolve(coordinate)`` for a fixed set of classpath archives.

    Selection runs once, up front, so conflicts surface at startup.
    Extraction happens lazily on the first ``resolve`` of a coordinate.
    """

    def __init__(self, sources: Iterable[Tuple[str, Metadata]], cache: ExtractionCache):
        self._selections: Dict[ArtifactCoordinate, Selection] = select(sources)
        self._cache = cache

    @classmethod
    def from_archives(
        cls,
        archives: Iterable[str],
        cache: ExtractionCache,
        metadata_path: str = Constants.METADATA_PATH,
    ) -> "JarJarResolver":
        """Read the manifest of every archive; archives without one are skipped."""
        sources: List[Tuple[str, Metadata]] = []
        for archive in archives:
            metadata = read_metadata(str(archive), metadata_path)
            if metadata is None:
                logger.debug("No jar-in-jar metadata in %s", archive)
                continue
            sources.append((str(archive), metadata))
        return cls(sources, cache)

    @property
    def selections(self) -> Dict[ArtifactCoordinate, Selection]:
        return dict(self._selections)

    def resolve(self, coordinate: ArtifactCoordinate) -> Optional[Path]:
        """Materialized jar for ``coordinate``, or None if nothing embeds it."""
        selection = self._selections.get(coordinate)
        if selection is None:
            return None
        return self._cache.materialize(selection)

    def resolve_all(self) -> Dict[ArtifactCoordinate, Path]:
        """Materialize every selected coordinate."""
        return {coordinate: self._cache.materialize(selection) for coordinate, selection in self._selections.items()}
