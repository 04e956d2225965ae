"""Embedded-jar manifest model and codec."""

from .codec import decode, encode, read_metadata
from .models import ArtifactCoordinate, ContainedJarEntry, ContainedVersion, Metadata

__all__ = [
    "ArtifactCoordinate",
    "ContainedJarEntry",
    "ContainedVersion",
    "Metadata",
    "decode",
    "encode",
    "read_metadata",
]
