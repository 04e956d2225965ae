"""Shared fixtures for building small jars on disk."""

import zipfile

import pytest

from metadata.codec import encode
from metadata.models import ArtifactCoordinate, ContainedJarEntry, ContainedVersion, Metadata
from versioning import ArtifactVersion, VersionRange

METADATA_PATH = "META-INF/jarjar/metadata.json"


def entry(coordinate, range_spec=None, resolved=None, path=None, constraint=False, obfuscated=False):
    """Helper to create manifest entries."""
    coord = ArtifactCoordinate.parse(coordinate)
    version = None
    if range_spec is not None or resolved is not None:
        version = ContainedVersion(
            VersionRange.parse(range_spec) if range_spec is not None else None,
            ArtifactVersion.parse(resolved) if resolved is not None else None,
        )
    if path is None:
        path = f"META-INF/jarjar/{coord.artifact}-{resolved or 'unknown'}.jar"
    return ContainedJarEntry(coord, version, path, obfuscated=obfuscated, constraint_only=constraint)


@pytest.fixture
def make_jar(tmp_path):
    """Return a factory writing a zip with the given {name: bytes} entries."""

    def _make(name, files=None, metadata=None):
        target = tmp_path / name
        with zipfile.ZipFile(target, "w") as zf:
            for arcname, data in (files or {}).items():
                zf.writestr(arcname, data)
            if metadata is not None:
                zf.writestr(METADATA_PATH, encode(metadata))
        return str(target)

    return _make


@pytest.fixture
def embedding_jar(make_jar):
    """Return a factory for a jar that embeds one dependency and describes it."""

    def _make(name, coordinate, range_spec, resolved, payload=None, constraint=False):
        item = entry(coordinate, range_spec, resolved, constraint=constraint)
        files = {} if constraint else {item.path: payload if payload is not None else f"{name}:{resolved}".encode()}
        return make_jar(name, files, Metadata((item,)))

    return _make
