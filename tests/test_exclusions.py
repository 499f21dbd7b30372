"""Tests for backup exclusion patterns."""

import pytest

from fsd_migrate.core.exclusions import ExclusionPattern, ExclusionSet, MatchKind


class TestCompile:
    @pytest.mark.parametrize(
        "pattern, kind",
        [
            ("node_modules", MatchKind.EXACT),
            ("tmp-*", MatchKind.PREFIX),
            ("*.log", MatchKind.SUFFIX),
            ("*cache*", MatchKind.CONTAINS),
            ("npm-*.log", MatchKind.AFFIX),
        ],
    )
    def test_kinds(self, pattern, kind):
        assert ExclusionPattern.compile(pattern).kind is kind

    @pytest.mark.parametrize("pattern", ["", "*", "a*b*c", "**"])
    def test_rejects_invalid(self, pattern):
        with pytest.raises(ValueError):
            ExclusionPattern.compile(pattern)


class TestMatches:
    def test_exact_matches_name_only(self):
        p = ExclusionPattern.compile("dist")
        assert p.matches("dist")
        assert not p.matches("dist-old")
        assert not p.matches("my-dist")

    def test_suffix(self):
        p = ExclusionPattern.compile("*.log")
        assert p.matches("npm-debug.log")
        assert not p.matches("log.txt")

    def test_prefix(self):
        p = ExclusionPattern.compile("tmp-*")
        assert p.matches("tmp-123")
        assert not p.matches("my-tmp-1")

    def test_contains(self):
        p = ExclusionPattern.compile("*cache*")
        assert p.matches(".eslintcache")
        assert p.matches("cache")
        assert not p.matches("cach")

    def test_affix_does_not_overlap(self):
        p = ExclusionPattern.compile("ab*ba")
        assert p.matches("abba")
        assert p.matches("ab-xyz-ba")
        assert not p.matches("aba")


class TestExclusionSet:
    def test_membership(self):
        exclusions = ExclusionSet([".fsd-backups", "node_modules", "*.log"])
        assert "node_modules" in exclusions
        assert "error.log" in exclusions
        assert "src" not in exclusions

    def test_duplicates_compiled_once(self):
        exclusions = ExclusionSet(["dist", "dist", "*.log"])
        assert len(exclusions.patterns) == 2

    def test_empty_set_excludes_nothing(self):
        assert not ExclusionSet([]).excludes("anything")
