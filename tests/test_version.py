"""Tests for version guessing and ordering."""

import functools

import pytest

from gcsindex.version import Version, compare_descending, guess_version


def _v(name: str) -> Version:
    result = guess_version(name)
    assert result is not None, name
    return result[0]


class TestGuessVersion:
    """Tests for guess_version."""

    def test_full_example(self):
        version, offset = guess_version("app-v1.2.3-rc.1+build5.tar.gz")
        assert offset == 4
        assert version.text == "v1.2.3-rc.1+build5"
        assert version.segments == (1, 2, 3)
        assert version.prerelease == ("rc", "1")
        assert version.build == "build5"

    def test_no_version(self):
        assert guess_version("no-version-here") is None

    def test_extension_not_taken_as_prerelease(self):
        version, offset = guess_version("tool-1.0.tar.gz")
        assert offset == 5
        assert version.segments == (1, 0)
        assert version.prerelease == ()

    def test_numeric_prerelease(self):
        assert _v("pkg-1.0.0-1").prerelease == ("1",)

    def test_prerelease_without_dash(self):
        assert _v("pkg-2.0beta1").prerelease == ("beta1",)

    def test_first_version_wins(self):
        _, offset = guess_version("a1-b2")
        assert offset == 1


class TestCompare:
    """Tests for Version.compare."""

    def test_missing_segments_are_zero(self):
        assert _v("1.2").compare(_v("1.2.0")) == 0
        assert _v("1").compare(_v("1.0.0.0")) == 0

    def test_numeric_segments(self):
        assert _v("1.10.0").compare(_v("1.9.0")) > 0
        assert _v("2").compare(_v("1.99")) > 0

    def test_release_beats_prerelease(self):
        assert _v("1.0.0").compare(_v("1.0.0-rc.1")) > 0
        assert _v("1.0.0-rc.1").compare(_v("1.0.0")) < 0

    def test_build_metadata_ignored(self):
        assert _v("1.0.0+abc").compare(_v("1.0.0+xyz")) == 0

    def test_prerelease_precedence(self):
        ordered = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
        ]
        versions = [_v(text) for text in ordered]
        for lower, higher in zip(versions, versions[1:]):
            assert lower.compare(higher) < 0, (lower.text, higher.text)
            assert higher.compare(lower) > 0, (lower.text, higher.text)


class TestCompareDescending:
    """Tests for compare_descending."""

    def test_highest_first(self):
        versions = [_v(t) for t in ("1.0.0", "1.10.0", "1.2.0", "1.10.0-rc.1")]
        versions.sort(key=functools.cmp_to_key(compare_descending))
        assert [v.text for v in versions] == ["1.10.0", "1.10.0-rc.1", "1.2.0", "1.0.0"]

    @pytest.mark.parametrize("text", ["1.0.0", "2.1-beta"])
    def test_equal_is_zero(self, text):
        assert compare_descending(_v(text), _v(text)) == 0
