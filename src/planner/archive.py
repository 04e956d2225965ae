"""Write a packaging plan into a jar.

This is the archiving side of a build: it copies the host jar's own
entries, the planned dependency jars and the encoded manifest into a new
archive. Entry timestamps are fixed so unchanged inputs give identical
bytes.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import zipfile
from typing import Optional, Set

from common.logging_utils import Timer, extra_context, is_debug_enabled
from config import JarJarConfig
from constants import Constants
from metadata.codec import encode

from .plan import PackagingPlan

logger = logging.getLogger(__name__)


def _info(name: str, compress_type: int) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=Constants.ARCHIVE_TIMESTAMP)
    info.compress_type = compress_type
    info.external_attr = 0o644 << 16
    return info


def _copy_base(base: str, out: zipfile.ZipFile, skip: Set[str]) -> None:
    with zipfile.ZipFile(base) as src:
        for item in src.infolist():
            if item.is_dir() or item.filename in skip:
                continue
            with src.open(item) as reader, out.open(_info(item.filename, item.compress_type), "w") as writer:
                shutil.copyfileobj(reader, writer, Constants.COPY_CHUNK_SIZE)


def write_jar(
    packaging_plan: PackagingPlan,
    target: str,
    base: Optional[str] = None,
    config: Optional[JarJarConfig] = None,
) -> str:
    """Write ``packaging_plan`` to ``target`` and return its path.

    Constraint-only entries have no write instruction, so only their
    manifest record ends up in the archive. The file appears atomically.
    """
    config = config or JarJarConfig()
    for write in packaging_plan.writes:
        if write.source is None:
            raise ValueError(f"No source jar given for {write.coordinate}")

    directory = os.path.dirname(os.path.abspath(target))
    os.makedirs(directory, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(suffix=".jar", prefix=".jarjar-", dir=directory)
    os.close(fd)
    try:
        with Timer() as t:
            with zipfile.ZipFile(temp_path, "w") as out:
                if base is not None:
                    skip = {config.metadata_path}
                    skip.update(write.destination for write in packaging_plan.writes)
                    _copy_base(base, out, skip)
                for write in packaging_plan.writes:
                    info = _info(write.destination, zipfile.ZIP_STORED)
                    with open(write.source, "rb") as reader, out.open(info, "w") as writer:
                        shutil.copyfileobj(reader, writer, Constants.COPY_CHUNK_SIZE)
                out.writestr(
                    _info(config.metadata_path, zipfile.ZIP_DEFLATED),
                    encode(packaging_plan.metadata),
                )
        os.replace(temp_path, target)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise

    if is_debug_enabled(logger):
        logger.debug(
            "Wrote jar",
            extra=extra_context(
                event="function_exit",
                component="archive",
                action="write_jar",
                target=target,
                count=len(packaging_plan.writes),
                duration_ms=t.duration_ms(),
            ),
        )
    return target
