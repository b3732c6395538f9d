"""Tests for mount specification parsing and validation."""

import pytest

from gcsindex.validation import (
    InvalidMountSpec,
    build_mount,
    normalize_mount_path,
    parse_mount_spec,
    validate_bucket_name,
)


class TestNormalizeMountPath:
    """Tests for normalize_mount_path."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("/", "/"),
            ("", "/"),
            ("docs", "/docs/"),
            ("/docs", "/docs/"),
            ("docs/", "/docs/"),
            ("/a/b/", "/a/b/"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_mount_path(raw) == expected


class TestValidateBucketName:
    """Tests for validate_bucket_name."""

    @pytest.mark.parametrize(
        "name", ["abc", "my-bucket", "my.bucket.example.com", "bucket_1", "bucketX"]
    )
    def test_valid(self, name):
        validate_bucket_name(name)

    @pytest.mark.parametrize("name", ["", "ab", "-bucket", "bucket-", "has space", "a/b"])
    def test_invalid(self, name):
        with pytest.raises(InvalidMountSpec):
            validate_bucket_name(name)


class TestParseMountSpec:
    """Tests for parse_mount_spec."""

    def test_three_parts(self):
        mount = parse_mount_spec("/docs/:docs-bucket:site/")
        assert mount.path == "/docs/"
        assert mount.bucket == "docs-bucket"
        assert mount.prefix == "site/"

    def test_empty_prefix(self):
        mount = parse_mount_spec("/:root-bucket:")
        assert mount.path == "/"
        assert mount.prefix == ""

    def test_path_is_normalized(self):
        assert parse_mount_spec("docs:docs-bucket:").path == "/docs/"

    def test_prefix_may_contain_colons(self):
        assert parse_mount_spec("/:root-bucket:a:b/").prefix == "a:b/"

    @pytest.mark.parametrize("spec", ["/docs/", "/docs/:bucket"])
    def test_too_few_parts(self, spec):
        with pytest.raises(InvalidMountSpec):
            parse_mount_spec(spec)

    def test_bad_bucket(self):
        with pytest.raises(InvalidMountSpec):
            parse_mount_spec("/:-bad-:")

    def test_invalid_mount_spec_is_value_error(self):
        with pytest.raises(ValueError):
            build_mount("/", "x")
