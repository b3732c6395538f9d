"""Mount specification parsing and validation for gcs-index.

A mount is given on the command line as ``path:bucket:prefix`` (the prefix
may be empty and may itself contain ``:``) or in YAML as a mapping with the
same three keys. Each function raises ``InvalidMountSpec`` on bad input.
"""

import re

from gcsindex.mounts import Mount

# GCS bucket naming rules, loosely: 3-222 characters of letters,
# digits, dashes, underscores and dots, starting and ending with a letter or
# digit.
_BUCKET_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._\-]{1,220}[A-Za-z0-9]$")


class InvalidMountSpec(ValueError):
    """Raised when a mount specification cannot be parsed."""


def normalize_mount_path(path: str) -> str:
    """Ensure a virtual path starts and ends with ``/``.

    Args:
        path: The configured virtual path, e.g. ``docs`` or ``/docs/``.

    Returns:
        The normalized path, e.g. ``/docs/``.
    """
    if not path.startswith("/"):
        path = "/" + path
    if not path.endswith("/"):
        path += "/"
    return path


def validate_bucket_name(bucket: str) -> None:
    """Validate a bucket name.

    Raises:
        InvalidMountSpec: If the name cannot be a GCS bucket name.
    """
    if not _BUCKET_RE.match(bucket):
        raise InvalidMountSpec(f"invalid bucket name: {bucket!r}")


def build_mount(path: str, bucket: str, prefix: str = "") -> Mount:
    """Build a Mount from its three parts, normalizing the path."""
    validate_bucket_name(bucket)
    return Mount(path=normalize_mount_path(path), bucket=bucket, prefix=prefix)


def parse_mount_spec(spec: str) -> Mount:
    """Parse a ``path:bucket:prefix`` mount specification.

    Args:
        spec: The raw specification string.

    Returns:
        The parsed Mount.

    Raises:
        InvalidMountSpec: If the spec does not have three parts.
    """
    parts = spec.split(":", 2)
    if len(parts) != 3:
        raise InvalidMountSpec(f"expected 'path:bucket:prefix', got {spec!r}")
    return build_mount(*parts)
