"""Reconcile the manifests of every artifact on a classpath.

For each coordinate the declared ranges of all manifests are intersected
(constraint-only entries included) and the greatest embedded version
inside that intersection wins. Ties go to the earliest source.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from common.errors import NoSatisfyingVersion, UnsatisfiableVersionConstraint
from common.logging_utils import Timer, extra_context, is_debug_enabled
from metadata.models import ArtifactCoordinate, ContainedJarEntry, Metadata
from versioning import ArtifactVersion, VersionRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """The embedded copy chosen for one coordinate."""
    coordinate: ArtifactCoordinate
    source: str
    path: str
    version: ArtifactVersion
    range: Optional[VersionRange]  # None when no manifest declared a range


def _group(sources: Iterable[Tuple[str, Metadata]]) -> Dict[ArtifactCoordinate, List[Tuple[str, ContainedJarEntry]]]:
    grouped: Dict[ArtifactCoordinate, List[Tuple[str, ContainedJarEntry]]] = {}
    for source, metadata in sources:
        for entry in metadata.entries:
            grouped.setdefault(entry.coordinate, []).append((source, entry))
    return grouped


def _agreed_range(
    coordinate: ArtifactCoordinate, declared: List[Tuple[str, ContainedJarEntry]]
) -> Optional[VersionRange]:
    ranged = [(source, entry.range) for source, entry in declared if entry.range is not None]
    if not ranged:
        return None
    agreed: Optional[VersionRange] = ranged[0][1]
    for _, version_range in ranged[1:]:
        agreed = agreed.intersect(version_range)
        if agreed is None:
            raise UnsatisfiableVersionConstraint(coordinate, ranged)
    return agreed


def select_coordinate(
    coordinate: ArtifactCoordinate, declared: List[Tuple[str, ContainedJarEntry]]
) -> Optional[Selection]:
    """Pick the copy of ``coordinate`` to materialize.

    Returns None when every declaration is constraint-only: something
    outside the classpath manifests is expected to provide it.
    """
    agreed = _agreed_range(coordinate, declared)
    embedded = [(source, entry) for source, entry in declared if not entry.constraint_only]
    if not embedded:
        return None

    best: Optional[Tuple[str, ContainedJarEntry]] = None
    for source, entry in embedded:
        resolved = entry.resolved
        if resolved is None:
            continue
        if agreed is not None and not agreed.contains(resolved):
            continue
        if best is None or resolved > best[1].resolved:
            best = (source, entry)

    if best is None:
        offered = [(source, entry.resolved) for source, entry in embedded]
        raise NoSatisfyingVersion(coordinate, agreed, offered)

    source, entry = best
    return Selection(coordinate, source, entry.path, entry.resolved, agreed)


def select(sources: Iterable[Tuple[str, Metadata]]) -> Dict[ArtifactCoordinate, Selection]:
    """Resolve every coordinate declared by ``sources``.

    Args:
        sources: ``(source archive id, manifest)`` pairs.

    Returns:
        Selections keyed by coordinate, in order of first appearance.
        Coordinates that are only ever constrained are left out.

    Raises:
        UnsatisfiableVersionConstraint: declared ranges share no version.
        NoSatisfyingVersion: no embedded version lies in the shared range.
    """
    with Timer() as t:
        grouped = _group(sources)
        selections: Dict[ArtifactCoordinate, Selection] = {}
        for coordinate, declared in grouped.items():
            selection = select_coordinate(coordinate, declared)
            if selection is None:
                logger.debug("No embedded copy of %s; left to the environment", coordinate)
                continue
            if len(declared) > 1:
                logger.info(
                    "Selected %s %s from %s out of %d declarations",
                    coordinate, selection.version, selection.source, len(declared),
                )
            selections[coordinate] = selection

    if is_debug_enabled(logger):
        logger.debug(
            "Selection complete",
            extra=extra_context(
                event="function_exit",
                component="selection",
                action="select",
                count=len(selections),
                duration_ms=t.duration_ms(),
            ),
        )
    return selections
