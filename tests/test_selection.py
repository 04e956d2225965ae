"""Tests for classpath reconciliation."""

import pytest

from common.errors import NoSatisfyingVersion, UnsatisfiableVersionConstraint
from conftest import entry
from extraction import ExtractionCache
from metadata import ArtifactCoordinate, Metadata
from selection import JarJarResolver, select
from versioning import ArtifactVersion

COORD = ArtifactCoordinate("com.example", "lib")


def manifest(*entries):
    return Metadata(tuple(entries))


class TestSelect:
    """Range intersection and version choice."""

    def test_single_declaration(self):
        result = select([("a.jar", manifest(entry("com.example:lib", "[1.0,)", "1.2")))])
        chosen = result[COORD]
        assert chosen.source == "a.jar"
        assert chosen.version == ArtifactVersion.parse("1.2")
        assert chosen.path == "META-INF/jarjar/lib-1.2.jar"
        assert str(chosen.range) == "[1.0,)"

    def test_greatest_version_inside_intersection(self):
        result = select([
            ("a.jar", manifest(entry("com.example:lib", "[1.0,2.0)", "1.2"))),
            ("b.jar", manifest(entry("com.example:lib", "[1.5,3.0)", "1.8"))),
        ])
        chosen = result[COORD]
        assert chosen.source == "b.jar"
        assert str(chosen.version) == "1.8"
        assert str(chosen.range) == "[1.5,2.0)"

    def test_copy_outside_intersection_is_skipped(self):
        result = select([
            ("a.jar", manifest(entry("com.example:lib", "[1.0,)", "3.0"))),
            ("b.jar", manifest(entry("com.example:lib", "[1.0,2.0)", "1.5"))),
        ])
        assert result[COORD].source == "b.jar"

    def test_disjoint_ranges(self):
        with pytest.raises(UnsatisfiableVersionConstraint) as excinfo:
            select([
                ("a.jar", manifest(entry("com.example:lib", "[1.0,2.0)", "1.2"))),
                ("b.jar", manifest(entry("com.example:lib", "[2.0,3.0)", "2.5"))),
            ])
        assert excinfo.value.coordinate == COORD
        assert excinfo.value.sources == ("a.jar", "b.jar")

    def test_no_copy_inside_intersection(self):
        with pytest.raises(NoSatisfyingVersion) as excinfo:
            select([
                ("a.jar", manifest(entry("com.example:lib", "[1.0,2.0)", "1.2"))),
                ("b.jar", manifest(entry("com.example:lib", "[1.5,3.0)", "2.5"))),
            ])
        assert str(excinfo.value.version_range) == "[1.5,2.0)"
        assert [source for source, _ in excinfo.value.offered] == ["a.jar", "b.jar"]

    def test_tie_goes_to_earliest_source(self):
        result = select([
            ("first.jar", manifest(entry("com.example:lib", "[1.0,)", "1.5"))),
            ("second.jar", manifest(entry("com.example:lib", "[1.0,)", "1.5.0"))),
        ])
        assert result[COORD].source == "first.jar"

    def test_constraint_narrows_the_choice(self):
        result = select([
            ("a.jar", manifest(entry("com.example:lib", "[1.0,)", "3.0"))),
            ("b.jar", manifest(entry("com.example:lib", "[1.0,)", "2.2"))),
            ("c.jar", manifest(entry("com.example:lib", "[2.0,3.0)", "2.5", constraint=True))),
        ])
        chosen = result[COORD]
        assert chosen.source == "b.jar"
        assert str(chosen.range) == "[2.0,3.0)"

    def test_constraint_without_resolved_version(self):
        constraint = entry("com.example:lib", "[1.0,)", None, path="META-INF/jarjar/lib.jar", constraint=True)
        result = select([
            ("constraint.jar", manifest(constraint)),
            ("embedding.jar", manifest(entry("com.example:lib", "[1.0,)", "1.5"))),
        ])
        chosen = result[COORD]
        assert chosen.source == "embedding.jar"
        assert chosen.version == ArtifactVersion.parse("1.5")
        assert chosen.path == "META-INF/jarjar/lib-1.5.jar"

    def test_constraint_can_make_copies_unusable(self):
        with pytest.raises(NoSatisfyingVersion):
            select([
                ("a.jar", manifest(entry("com.example:lib", "[1.0,)", "1.5"))),
                ("b.jar", manifest(entry("com.example:lib", "[2.0,)", "2.0", constraint=True))),
            ])

    def test_constraint_only_coordinate_is_omitted(self):
        result = select([
            ("a.jar", manifest(entry("com.example:lib", "[1.0,)", "1.5", constraint=True))),
            ("b.jar", manifest(entry("com.example:lib", "[1.2,)", "1.3", constraint=True))),
        ])
        assert result == {}

    def test_constraint_only_conflict_still_raises(self):
        with pytest.raises(UnsatisfiableVersionConstraint):
            select([
                ("a.jar", manifest(entry("com.example:lib", "[1.0,2.0)", "1.5", constraint=True))),
                ("b.jar", manifest(entry("com.example:lib", "[3.0,)", "3.0", constraint=True))),
            ])

    def test_without_any_range_the_greatest_copy_wins(self):
        result = select([
            ("a.jar", manifest(entry("com.example:lib", None, "1.0"))),
            ("b.jar", manifest(entry("com.example:lib", None, "1.1"))),
        ])
        assert result[COORD].source == "b.jar"
        assert result[COORD].range is None

    def test_copy_without_resolved_version_is_unusable(self):
        with pytest.raises(NoSatisfyingVersion):
            select([("a.jar", manifest(entry("com.example:lib", "[1.0,)", None, path="META-INF/jarjar/lib.jar")))])

    def test_coordinates_are_independent_and_ordered(self):
        result = select([
            ("a.jar", manifest(entry("g:zeta", "[1.0,)", "1.0"), entry("g:alpha", "[1.0,)", "1.0"))),
            ("b.jar", manifest(entry("g:mid", "[1.0,)", "1.0"), entry("g:zeta", "[1.0,)", "1.1"))),
        ])
        assert [str(c) for c in result] == ["g:zeta", "g:alpha", "g:mid"]
        assert result[ArtifactCoordinate("g", "zeta")].source == "b.jar"

    def test_order_of_sources_does_not_change_the_version(self):
        a = ("a.jar", manifest(entry("com.example:lib", "[1.0,2.0)", "1.2")))
        b = ("b.jar", manifest(entry("com.example:lib", "[1.0,3.0)", "1.8")))
        assert select([a, b])[COORD].version == select([b, a])[COORD].version

    def test_empty_classpath(self):
        assert select([]) == {}


class TestResolver:
    """Resolver over real archives."""

    def test_resolve_from_archives(self, tmp_path, make_jar, embedding_jar):
        first = embedding_jar("a.jar", "com.example:lib", "[1.0,2.0)", "1.2")
        second = embedding_jar("b.jar", "com.example:lib", "[1.5,3.0)", "1.8", payload=b"lib-1.8")
        plain = make_jar("plain.jar", {"x.txt": b"x"})
        resolver = JarJarResolver.from_archives([first, plain, second], ExtractionCache(str(tmp_path / "cache")))

        path = resolver.resolve(COORD)
        assert path.read_bytes() == b"lib-1.8"
        assert resolver.resolve(ArtifactCoordinate("com.example", "other")) is None
        assert list(resolver.selections) == [COORD]

    def test_conflicts_surface_at_construction(self, tmp_path, embedding_jar):
        first = embedding_jar("a.jar", "com.example:lib", "[1.0,2.0)", "1.2")
        second = embedding_jar("b.jar", "com.example:lib", "[2.0,3.0)", "2.5")
        with pytest.raises(UnsatisfiableVersionConstraint):
            JarJarResolver.from_archives([first, second], ExtractionCache(str(tmp_path / "cache")))

    def test_resolve_all(self, tmp_path, embedding_jar):
        lib = embedding_jar("a.jar", "com.example:lib", "[1.0,)", "1.0")
        other = embedding_jar("b.jar", "com.example:other", "[2.0,)", "2.0")
        cache = ExtractionCache(str(tmp_path / "cache"))
        resolved = JarJarResolver.from_archives([lib, other], cache).resolve_all()
        assert set(resolved) == {COORD, ArtifactCoordinate("com.example", "other")}
        assert all(path.is_file() for path in resolved.values())
        assert cache.stats()["extractions"] == 2
