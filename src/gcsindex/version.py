"""Version guessing and ordering for version-aware listing sorts."""

from __future__ import annotations

import re
from dataclasses import dataclass

# A semantic-version-like run anywhere in a name. Greedier than a strict
# semver matcher: pre-release identifiers may follow the core without a
# dash when they start with a letter, and take every dotted part they can.
# Build metadata is a single identifier so file extensions are left alone.
_VERSION_RE = re.compile(
    r"v?(?P<core>[0-9]+(?:\.[0-9]+)*)"
    r"(?:-(?P<pre>[0-9]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*)"
    r"|-?(?P<alpha>[A-Za-z\-~]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-~]+))?"
)

# Core segments are compared as if padded with zeros to at least this length.
_MIN_SEGMENTS = 3


@dataclass(frozen=True)
class Version:
    """A parsed version.

    Attributes:
        text: The exact substring the version was parsed from.
        segments: Numeric core segments.
        prerelease: Dot-separated pre-release identifiers, empty if none.
        build: Build metadata, ignored for ordering.
    """

    text: str
    segments: tuple[int, ...]
    prerelease: tuple[str, ...] = ()
    build: str = ""

    def compare(self, other: Version) -> int:
        """Three-way comparison: negative, zero or positive."""
        width = max(len(self.segments), len(other.segments), _MIN_SEGMENTS)
        mine = self.segments + (0,) * (width - len(self.segments))
        theirs = other.segments + (0,) * (width - len(other.segments))
        if mine != theirs:
            return -1 if mine < theirs else 1

        # A release outranks any of its pre-releases.
        if not self.prerelease or not other.prerelease:
            return (not self.prerelease) - (not other.prerelease)

        for a, b in zip(self.prerelease, other.prerelease):
            cmp = _compare_identifier(a, b)
            if cmp:
                return cmp
        return (len(self.prerelease) > len(other.prerelease)) - (
            len(self.prerelease) < len(other.prerelease)
        )


def _compare_identifier(a: str, b: str) -> int:
    """Compare pre-release identifiers: numbers numerically and below words."""
    a_num, b_num = a.isdigit(), b.isdigit()
    if a_num and b_num:
        x, y = int(a), int(b)
    elif a_num != b_num:
        return -1 if a_num else 1
    else:
        x, y = a, b
    return (x > y) - (x < y)


def guess_version(name: str) -> tuple[Version, int] | None:
    """Find the first version-like substring in ``name``.

    Args:
        name: A file or directory name, e.g. ``app-v1.2.3-rc.1+build5.tar.gz``.

    Returns:
        The parsed version and its offset in ``name``, or None if the name
        contains no version.
    """
    match = _VERSION_RE.search(name)
    if match is None:
        return None

    pre = match.group("pre") or match.group("alpha") or ""
    version = Version(
        text=match.group(0),
        segments=tuple(int(s) for s in match.group("core").split(".")),
        prerelease=tuple(pre.lstrip("-").split(".")) if pre.lstrip("-") else (),
        build=match.group("build") or "",
    )
    return version, match.start()


def compare_descending(a: Version, b: Version) -> int:
    """Order versions so that higher versions come first."""
    return b.compare(a)
