"""Mount table: maps virtual paths onto (bucket, backend prefix) pairs."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Mount:
    """A virtual directory bound to a bucket and a prefix inside it.

    Attributes:
        path: Virtual path, always starting and ending with ``/``.
        bucket: The backend bucket name.
        prefix: Backend object-name prefix, possibly empty.
    """

    path: str
    bucket: str
    prefix: str = ""

    def __post_init__(self) -> None:
        if not (self.path.startswith("/") and self.path.endswith("/")):
            raise ValueError(f"Mount path must start and end with '/': {self.path!r}")

    def backend_name(self, path: str) -> str:
        """Translate a request path under this mount into a backend object name."""
        return self.prefix + path[len(self.path) :]


def _sort_key(mount: Mount) -> tuple[int, str]:
    return (-len(mount.path), mount.path)


class MountTable:
    """The configured mounts, sorted once for longest-prefix resolution.

    Mounts are ordered by descending path length, then ascending path, so a
    forward scan meets the most specific match first and ties resolve to the
    lexicographically earliest path. The table is immutable after
    construction and safe to share between concurrent requests.
    """

    def __init__(self, mounts: Iterable[Mount]) -> None:
        self._mounts: tuple[Mount, ...] = tuple(sorted(mounts, key=_sort_key))

    def __iter__(self):
        return iter(self._mounts)

    def __len__(self) -> int:
        return len(self._mounts)

    def resolve(self, path: str) -> Mount | None:
        """Return the mount whose path is the longest prefix of ``path``."""
        for mount in self._mounts:
            if path.startswith(mount.path):
                return mount
        return None

    def children_of(self, path: str) -> list[str]:
        """Immediate child directory names contributed by nested mounts.

        Each name is slash-terminated. Duplicates are kept; the listing
        merge collapses them.
        """
        children = []
        for mount in self._mounts:
            if mount.path != path and mount.path.startswith(path):
                rest = mount.path[len(path) :]
                children.append(rest[: rest.index("/") + 1])
        return children
