"""Turn one build's jar-in-jar declarations into a manifest and write instructions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from common.errors import DuplicateCoordinate, VersionOutOfRange
from common.logging_utils import Timer, extra_context, is_debug_enabled
from config import JarJarConfig
from metadata.models import ArtifactCoordinate, ContainedJarEntry, ContainedVersion, Metadata
from versioning import ArtifactVersion, VersionRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Declaration:
    """A dependency the build asks to embed (or only to constrain)."""
    coordinate: ArtifactCoordinate
    resolved_version: str
    range_spec: Optional[str] = None  # None -> config.default_range ("[resolved,)")
    constraint_only: bool = False
    obfuscated: bool = False
    source: Optional[str] = None  # path of the dependency jar to copy in


@dataclass(frozen=True)
class ArchiveWrite:
    """Copy ``source`` into the produced archive at ``destination``."""
    coordinate: ArtifactCoordinate
    source: Optional[str]
    destination: str


@dataclass(frozen=True)
class PackagingPlan:
    """Planner output: the manifest plus what the archiver has to copy."""
    metadata: Metadata
    writes: Tuple[ArchiveWrite, ...]


def _check_unique(declarations: List[Declaration]) -> None:
    seen = set()
    for declaration in declarations:
        if declaration.coordinate in seen:
            raise DuplicateCoordinate(declaration.coordinate)
        seen.add(declaration.coordinate)


def _plan_entry(declaration: Declaration, config: JarJarConfig) -> ContainedJarEntry:
    resolved = ArtifactVersion.parse(declaration.resolved_version.strip())
    spec = declaration.range_spec
    if spec is None:
        spec = config.default_range_for(str(resolved))
    version_range = VersionRange.parse(spec)
    if not version_range.contains(resolved):
        raise VersionOutOfRange(resolved, version_range, declaration.coordinate)

    return ContainedJarEntry(
        coordinate=declaration.coordinate,
        version=ContainedVersion(version_range, resolved),
        path=config.embedded_path(declaration.coordinate.artifact, str(resolved)),
        obfuscated=declaration.obfuscated,
        constraint_only=declaration.constraint_only,
    )


def plan(declarations: Iterable[Declaration], config: Optional[JarJarConfig] = None) -> PackagingPlan:
    """Plan the embedded jars of one build.

    Args:
        declarations: Declarations in build order; the manifest keeps it.
        config: Options; defaults to ``JarJarConfig()``.

    Returns:
        PackagingPlan whose writes cover every non-constraint entry.

    Raises:
        DuplicateCoordinate: a coordinate is declared twice.
        MalformedRange: a range spec cannot be parsed.
        VersionOutOfRange: a resolved version is outside its declared range.
    """
    config = config or JarJarConfig()
    declarations = list(declarations)
    _check_unique(declarations)

    with Timer() as t:
        entries: List[ContainedJarEntry] = []
        writes: List[ArchiveWrite] = []
        for declaration in declarations:
            entry = _plan_entry(declaration, config)
            entries.append(entry)
            if entry.constraint_only:
                logger.debug("Constraint-only entry %s reserved at %s", entry.coordinate, entry.path)
                continue
            writes.append(ArchiveWrite(entry.coordinate, declaration.source, entry.path))

    if is_debug_enabled(logger):
        logger.debug(
            "Planned embedded jars",
            extra=extra_context(
                event="function_exit",
                component="planner",
                action="plan",
                count=len(entries),
                writes=len(writes),
                duration_ms=t.duration_ms(),
            ),
        )
    return PackagingPlan(Metadata(tuple(entries)), tuple(writes))


def _as_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Field '{field_name}' must be true or false, got {value!r}")


def parse_declaration(record: Dict[str, Any]) -> Declaration:
    """Build a Declaration from a mapping of manifest-style fields.

    Accepts either ``coordinate: group:artifact`` or separate ``group`` and
    ``artifact`` keys; ``version`` is required, ``range`` optional.
    """
    if "coordinate" in record:
        coordinate = ArtifactCoordinate.parse(str(record["coordinate"]))
    else:
        group, artifact = record.get("group"), record.get("artifact")
        if not group or not artifact:
            raise ValueError(f"Declaration needs 'group' and 'artifact': {record!r}")
        coordinate = ArtifactCoordinate(str(group), str(artifact))

    version = record.get("version")
    if isinstance(version, float):
        # YAML reads 3.10 as 3.1; only quoted literals are safe.
        raise ValueError(f"Version of {coordinate} must be quoted, got {version!r}")
    if version is None or not str(version).strip():
        raise ValueError(f"Declaration for {coordinate} needs a 'version'")
    range_spec = record.get("range")

    return Declaration(
        coordinate=coordinate,
        resolved_version=str(version).strip(),
        range_spec=None if range_spec is None else str(range_spec),
        constraint_only=_as_bool(record.get("constraint", False), "constraint"),
        obfuscated=_as_bool(record.get("obfuscated", False), "obfuscated"),
        source=None if record.get("source") is None else str(record["source"]),
    )


def load_declarations(path: str) -> List[Declaration]:
    """Read declarations from a YAML file.

    The file holds either a list of records or a mapping with a
    ``dependencies`` list.
    """
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ValueError(f"{path} is not valid YAML: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("dependencies", [])
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of declarations")
    return [parse_declaration(record) for record in data]
