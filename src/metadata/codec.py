"""JSON codec for the embedded-jar manifest (``META-INF/jarjar/metadata.json``).

The document is validated against a Draft-7 schema before it is turned
back into model objects. Unknown fields are tolerated so newer writers
stay readable; anything that breaks the model invariants is rejected with
``MalformedMetadata`` instead of being repaired.
"""

from __future__ import annotations

import json
import logging
import zipfile
from typing import Any, Dict, List, Optional, Union

from jsonschema import Draft7Validator

from common.errors import DuplicateCoordinate, MalformedMetadata, MalformedRange, VersionOutOfRange
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from versioning import ArtifactVersion, VersionRange

from .models import ArtifactCoordinate, ContainedJarEntry, ContainedVersion, Metadata

logger = logging.getLogger(__name__)

METADATA_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["jars"],
    "properties": {
        "jars": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["identifier", "path"],
                "properties": {
                    "identifier": {
                        "type": "object",
                        "required": ["group", "artifact"],
                        "properties": {
                            "group": {"type": "string", "minLength": 1},
                            "artifact": {"type": "string", "minLength": 1},
                        },
                    },
                    "version": {
                        "type": "object",
                        "properties": {
                            "range": {"type": "string"},
                            "artifactVersion": {"type": "string"},
                        },
                    },
                    "path": {"type": "string"},
                    "isObfuscated": {"type": "boolean"},
                    "isConstraint": {"type": "boolean"},
                },
            },
        },
    },
}

_VALIDATOR = Draft7Validator(METADATA_SCHEMA)


def _validate(document: Any) -> None:
    """Raise MalformedMetadata on the first schema violation."""
    errs = sorted(_VALIDATOR.iter_errors(document), key=lambda e: "/".join(str(p) for p in e.path))
    if errs:
        first = errs[0]
        path = "/".join([str(p) for p in first.path])
        raise MalformedMetadata(f"Invalid metadata at '{path}': {first.message}")


def _encode_entry(entry: ContainedJarEntry) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "identifier": {
            "group": entry.coordinate.group,
            "artifact": entry.coordinate.artifact,
        },
    }
    if entry.version is not None:
        version: Dict[str, str] = {}
        if entry.version.range is not None:
            version["range"] = str(entry.version.range)
        if entry.version.resolved is not None:
            version["artifactVersion"] = str(entry.version.resolved)
        record["version"] = version
    record["path"] = entry.path
    record["isObfuscated"] = entry.obfuscated
    if entry.constraint_only:
        record["isConstraint"] = True
    return record


def encode(metadata: Metadata) -> bytes:
    """Serialize ``metadata``; equal inputs always produce identical bytes."""
    document = {"jars": [_encode_entry(entry) for entry in metadata.entries]}
    return (json.dumps(document, indent=2) + "\n").encode("utf-8")


def _decode_entry(index: int, record: Dict[str, Any]) -> ContainedJarEntry:
    identifier = record["identifier"]
    coordinate = ArtifactCoordinate(identifier["group"], identifier["artifact"])

    version = None
    raw_version = record.get("version")
    if raw_version is not None:
        version_range = None
        if raw_version.get("range") is not None:
            try:
                version_range = VersionRange.parse(raw_version["range"])
            except MalformedRange as exc:
                raise MalformedMetadata(f"Entry {index} ({coordinate}): {exc}") from exc
        resolved = None
        if raw_version.get("artifactVersion") is not None:
            resolved = ArtifactVersion.parse(raw_version["artifactVersion"])
        try:
            version = ContainedVersion(version_range, resolved)
        except VersionOutOfRange as exc:
            raise MalformedMetadata(f"Entry {index} ({coordinate}): {exc}") from exc

    return ContainedJarEntry(
        coordinate=coordinate,
        version=version,
        path=record["path"],
        obfuscated=record.get("isObfuscated", False),
        constraint_only=record.get("isConstraint", False),
    )


def decode(data: Union[bytes, str]) -> Metadata:
    """Parse a manifest document.

    Raises:
        MalformedMetadata: the document is not valid JSON, violates the
            schema, repeats a coordinate, carries an unparsable range, or
            records a resolved version outside its own range.
    """
    try:
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        document = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedMetadata(f"Metadata is not valid JSON: {exc}") from exc

    _validate(document)
    entries: List[ContainedJarEntry] = [
        _decode_entry(index, record) for index, record in enumerate(document["jars"])
    ]
    try:
        metadata = Metadata(tuple(entries))
    except DuplicateCoordinate as exc:
        raise MalformedMetadata(str(exc)) from exc

    if is_debug_enabled(logger):
        logger.debug(
            "Decoded metadata",
            extra=extra_context(event="decode", component="codec", action="decode", count=len(entries)),
        )
    return metadata


def read_metadata(archive: str, metadata_path: str = Constants.METADATA_PATH) -> Optional[Metadata]:
    """Read the manifest stored in ``archive``; None when it carries none.

    ``zipfile.BadZipFile`` and ``OSError`` propagate to the caller.
    """
    with zipfile.ZipFile(archive) as zf:
        try:
            data = zf.read(metadata_path)
        except KeyError:
            if is_debug_enabled(logger):
                logger.debug(
                    "Archive has no metadata",
                    extra=extra_context(event="lookup", component="codec", action="read_metadata",
                                        outcome="missing", target=str(archive)),
                )
            return None
    return decode(data)
