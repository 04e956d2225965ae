"""Runtime reconciliation of embedded-jar manifests."""

from .engine import Selection, select, select_coordinate
from .resolver import JarJarResolver

__all__ = ["JarJarResolver", "Selection", "select", "select_coordinate"]
