"""Build-time planning of embedded jars."""

from .archive import write_jar
from .plan import ArchiveWrite, Declaration, PackagingPlan, load_declarations, parse_declaration, plan

__all__ = [
    "ArchiveWrite",
    "Declaration",
    "PackagingPlan",
    "load_declarations",
    "parse_declaration",
    "plan",
    "write_jar",
]
