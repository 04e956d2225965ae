"""On-disk materialization of embedded jars.

Each ``(source, path, version)`` key is extracted at most once. The first
caller for a key becomes its writer; concurrent callers wait on the same
future and receive either the finished path or the writer's error. The
table lock only guards bookkeeping, so unrelated keys extract in
parallel. Files are written under a temporary name and renamed into
place, so a partial jar is never visible. Failed keys are forgotten and
may be requested again; the cache never retries on its own.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
import threading
import zipfile
import zlib
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from common.errors import ExtractionFailure
from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionKey:
    """Identity of one materialization."""
    source: str
    path: str
    version: str

    def digest(self) -> str:
        material = "\0".join((self.source, self.path, self.version)).encode("utf-8")
        return hashlib.sha256(material).hexdigest()[:16]


class ExtractionCache:
    """Per-key single-writer cache of extracted jars."""

    def __init__(self, cache_dir: str):
        """Initialize the cache.

        Args:
            cache_dir: Directory that receives the extracted jars.
        """
        self._cache_dir = Path(cache_dir)
        self._lock = threading.Lock()
        self._pending: Dict[ExtractionKey, "Future[Path]"] = {}
        self._done: Dict[ExtractionKey, Path] = {}
        self._extractions = 0
        self._reused = 0
        self._shared = 0
        self._failures = 0

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def target_for(self, key: ExtractionKey) -> Path:
        """Stable location of ``key`` inside the cache directory."""
        name = os.path.basename(key.path) or "embedded.jar"
        return self._cache_dir / key.digest() / name

    def materialize(self, selection) -> Path:
        """Materialize a ``selection.engine.Selection`` and return its path."""
        return self.materialize_entry(selection.source, selection.path, str(selection.version))

    def materialize_entry(self, source: str, path: str, version: str) -> Path:
        """Extract ``path`` from archive ``source`` unless already done.

        Raises:
            ExtractionFailure: the archive could not be read; every caller
                waiting on the same key receives the same error.
        """
        key = ExtractionKey(str(source), path, version)
        with self._lock:
            done = self._done.get(key)
            if done is not None:
                self._shared += 1
                return done
            future = self._pending.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._pending[key] = future
            else:
                self._shared += 1

        if not owner:
            return future.result()

        try:
            target = self._extract(key)
        except BaseException as exc:
            with self._lock:
                self._pending.pop(key, None)
                self._failures += 1
            future.set_exception(exc)
            raise

        with self._lock:
            self._done[key] = target
            self._pending.pop(key, None)
        future.set_result(target)
        return target

    def _extract(self, key: ExtractionKey) -> Path:
        target = self.target_for(key)
        if target.is_file():
            with self._lock:
                self._reused += 1
            logger.debug("Reusing %s for %s!%s", target, key.source, key.path)
            return target

        with Timer() as t:
            temp_path = None
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                fd, temp_path = tempfile.mkstemp(prefix=".", suffix=".part", dir=target.parent)
                with os.fdopen(fd, "wb") as writer, zipfile.ZipFile(key.source) as archive:
                    with archive.open(key.path) as reader:
                        shutil.copyfileobj(reader, writer, Constants.COPY_CHUNK_SIZE)
                os.replace(temp_path, target)
                temp_path = None
            except KeyError as exc:
                raise ExtractionFailure(key.source, key.path, "entry not found in archive") from exc
            except (OSError, zipfile.BadZipFile, zlib.error) as exc:
                raise ExtractionFailure(key.source, key.path, str(exc)) from exc
            finally:
                if temp_path is not None and os.path.exists(temp_path):
                    os.unlink(temp_path)

        with self._lock:
            self._extractions += 1
        if is_debug_enabled(logger):
            logger.debug(
                "Extracted embedded jar",
                extra=extra_context(
                    event="extract",
                    component="extraction_cache",
                    action="materialize",
                    target=str(target),
                    duration_ms=t.duration_ms(),
                ),
            )
        return target

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                "extractions": self._extractions,
                "reused": self._reused,
                "shared": self._shared,
                "failures": self._failures,
                "pending": len(self._pending),
                "entries": len(self._done),
            }
