"""Artifact version ordering and version range algebra."""

from .artifact_version import ArtifactVersion
from .ranges import Restriction, VersionRange, intersect_all, parse_range

__all__ = [
    "ArtifactVersion",
    "Restriction",
    "VersionRange",
    "intersect_all",
    "parse_range",
]
