"""Tests for the single-writer extraction cache."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from common.errors import ExtractionFailure
from extraction import ExtractionCache, ExtractionKey
from selection import Selection
from metadata import ArtifactCoordinate
from versioning import ArtifactVersion

EMBEDDED = "META-INF/jarjar/lib-1.0.jar"


def files_under(path):
    return [p for p in path.rglob("*") if p.is_file()]


def wait_for(predicate, timeout=10.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)


@pytest.fixture
def source(make_jar):
    return make_jar("host.jar", {EMBEDDED: b"embedded-bytes"})


@pytest.fixture
def cache(tmp_path):
    return ExtractionCache(str(tmp_path / "cache"))


class TestMaterialize:
    """Basic extraction behaviour."""

    def test_extracts_once(self, cache, source):
        first = cache.materialize_entry(source, EMBEDDED, "1.0")
        second = cache.materialize_entry(source, EMBEDDED, "1.0")
        assert first == second
        assert first.read_bytes() == b"embedded-bytes"
        assert first.name == "lib-1.0.jar"
        stats = cache.stats()
        assert stats["extractions"] == 1
        assert stats["shared"] == 1
        assert stats["entries"] == 1

    def test_materialize_selection(self, cache, source):
        selection = Selection(
            ArtifactCoordinate("g", "lib"), source, EMBEDDED, ArtifactVersion.parse("1.0"), None
        )
        assert cache.materialize(selection) == cache.materialize_entry(source, EMBEDDED, "1.0")

    def test_distinct_keys_get_distinct_paths(self, cache, source):
        one = cache.materialize_entry(source, EMBEDDED, "1.0")
        other = cache.materialize_entry(source, EMBEDDED, "1.0.1")
        assert one != other
        assert cache.stats()["extractions"] == 2

    def test_target_is_stable(self, cache, source):
        key = ExtractionKey(source, EMBEDDED, "1.0")
        assert cache.target_for(key) == cache.target_for(ExtractionKey(source, EMBEDDED, "1.0"))
        assert cache.materialize_entry(source, EMBEDDED, "1.0") == cache.target_for(key)

    def test_reuses_files_from_an_earlier_run(self, tmp_path, source):
        directory = str(tmp_path / "cache")
        path = ExtractionCache(directory).materialize_entry(source, EMBEDDED, "1.0")
        again = ExtractionCache(directory)
        assert again.materialize_entry(source, EMBEDDED, "1.0") == path
        assert again.stats()["reused"] == 1
        assert again.stats()["extractions"] == 0


class TestFailures:
    """Errors surface as ExtractionFailure and leave nothing behind."""

    def test_missing_entry(self, tmp_path, cache, source):
        with pytest.raises(ExtractionFailure) as excinfo:
            cache.materialize_entry(source, "META-INF/jarjar/absent.jar", "1.0")
        assert excinfo.value.path == "META-INF/jarjar/absent.jar"
        assert files_under(tmp_path / "cache") == []
        assert cache.stats()["failures"] == 1
        assert cache.stats()["pending"] == 0

    def test_corrupt_archive(self, tmp_path, cache):
        broken = tmp_path / "broken.jar"
        broken.write_bytes(b"this is not a zip file")
        with pytest.raises(ExtractionFailure):
            cache.materialize_entry(str(broken), EMBEDDED, "1.0")
        assert files_under(tmp_path / "cache") == []

    def test_missing_archive(self, tmp_path, cache):
        with pytest.raises(ExtractionFailure):
            cache.materialize_entry(str(tmp_path / "nowhere.jar"), EMBEDDED, "1.0")

    def test_failure_is_not_cached(self, tmp_path, cache, make_jar):
        target = tmp_path / "late.jar"
        with pytest.raises(ExtractionFailure):
            cache.materialize_entry(str(target), EMBEDDED, "1.0")
        late = make_jar("late.jar", {EMBEDDED: b"late"})
        assert cache.materialize_entry(late, EMBEDDED, "1.0").read_bytes() == b"late"


class TestConcurrency:
    """One writer per key regardless of how many callers race for it."""

    def test_concurrent_requests_extract_once(self, cache, source):
        callers = 50
        barrier = threading.Barrier(callers)

        def request():
            barrier.wait()
            return cache.materialize_entry(source, EMBEDDED, "1.0")

        with ThreadPoolExecutor(max_workers=callers) as pool:
            paths = list(pool.map(lambda _: request(), range(callers)))

        assert len(set(paths)) == 1
        assert paths[0].read_bytes() == b"embedded-bytes"
        stats = cache.stats()
        assert stats["extractions"] == 1
        assert stats["shared"] == callers - 1
        assert stats["pending"] == 0

    def test_failure_reaches_every_waiter(self, monkeypatch, cache, source):
        callers = 8
        release = threading.Event()
        original = cache._extract
        attempts = []

        def failing_once(key):
            attempts.append(key)
            if len(attempts) == 1:
                release.wait(10)
                raise ExtractionFailure(key.source, key.path, "simulated")
            return original(key)

        monkeypatch.setattr(cache, "_extract", failing_once)

        with ThreadPoolExecutor(max_workers=callers) as pool:
            futures = [pool.submit(cache.materialize_entry, source, EMBEDDED, "1.0") for _ in range(callers)]
            wait_for(lambda: cache.stats()["shared"] == callers - 1)
            release.set()
            errors = [f.exception(timeout=10) for f in futures]

        assert all(isinstance(err, ExtractionFailure) for err in errors)
        assert len({id(err) for err in errors}) == 1
        assert len(attempts) == 1
        assert cache.stats()["failures"] == 1
        assert cache.stats()["pending"] == 0

        path = cache.materialize_entry(source, EMBEDDED, "1.0")
        assert path.read_bytes() == b"embedded-bytes"
        assert len(attempts) == 2

    def test_unrelated_keys_do_not_block_each_other(self, monkeypatch, cache, source, make_jar):
        other = make_jar("other.jar", {"META-INF/jarjar/other-2.0.jar": b"other"})
        release = threading.Event()
        original = cache._extract

        def slow_for_source(key):
            if key.source == source:
                release.wait(10)
            return original(key)

        monkeypatch.setattr(cache, "_extract", slow_for_source)

        with ThreadPoolExecutor(max_workers=2) as pool:
            blocked = pool.submit(cache.materialize_entry, source, EMBEDDED, "1.0")
            wait_for(lambda: cache.stats()["pending"] == 1)
            free = cache.materialize_entry(other, "META-INF/jarjar/other-2.0.jar", "2.0")
            assert free.read_bytes() == b"other"
            assert not blocked.done()
            release.set()
            assert blocked.result(timeout=10).read_bytes() == b"embedded-bytes"
