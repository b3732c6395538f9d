"""Directory listing aggregation.

A directory view merges two sources: child directories contributed by
nested mounts, and one delimited backend listing under the mount that
covers the directory. The merged entries are stable-sorted (objects before
directories) and adjacent duplicates are dropped.

Because only *adjacent* names are merged, a directory and an object with
the same name land in different bands and both stay in the listing.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import gcsindex.metrics as _metrics
from gcsindex.mounts import MountTable
from gcsindex.storage.backend import ObjectAttributes, StorageBackend
from gcsindex.version import compare_descending, guess_version

logger = logging.getLogger(__name__)

DELIMITER = "/"


@dataclass
class Entry:
    """One row of a directory listing.

    Only ``name`` is always present. Entries without ``size`` are
    directories (nested mounts or backend common prefixes).
    """

    name: str
    size: int | None = None
    fingerprint: str | None = None
    content_type: str | None = None
    timestamp: datetime | None = None
    metadata: dict[str, str] | None = None

    @property
    def is_dir(self) -> bool:
        return self.size is None

    @classmethod
    def from_attributes(cls, name: str, attrs: ObjectAttributes) -> Entry:
        return cls(
            name=name,
            size=attrs.size,
            fingerprint=attrs.md5 or None,
            content_type=attrs.content_type or None,
            timestamp=attrs.updated,
            metadata=attrs.metadata or None,
        )

    def to_json(self) -> dict[str, Any]:
        """Serialize for the JSON listing, omitting absent fields."""
        data: dict[str, Any] = {"item": self.name}
        if self.size is not None:
            data["size"] = self.size
        if self.fingerprint is not None:
            data["fingerprint"] = self.fingerprint
        if self.content_type is not None:
            data["content_type"] = self.content_type
        if self.timestamp is not None:
            data["timestamp"] = _format_timestamp(self.timestamp)
        if self.metadata:
            data["metadata"] = self.metadata
        return data


def _format_timestamp(ts: datetime) -> str:
    """RFC 3339 with a ``Z`` suffix for UTC."""
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class Listing:
    """Result of aggregating one directory."""

    entries: list[Entry] = field(default_factory=list)
    readme: ObjectAttributes | None = None


def compare_entries(a: Entry, b: Entry, version_sort: bool = False) -> int:
    """Three-way comparison for listing order.

    Objects sort before directories. Within a band, names sharing the text
    before an embedded version order by version, highest first, when
    ``version_sort`` is on; everything else orders by name.
    """
    if a.is_dir != b.is_dir:
        return 1 if a.is_dir else -1

    if version_sort:
        va, vb = guess_version(a.name), guess_version(b.name)
        if va is not None and vb is not None:
            (version_a, i), (version_b, j) = va, vb
            head_a, head_b = a.name[:i], b.name[:j]
            if head_a != head_b:
                return -1 if head_a < head_b else 1
            cmp = compare_descending(version_a, version_b)
            if cmp:
                return cmp

    return (a.name > b.name) - (a.name < b.name)


def merge_entries(entries: list[Entry], version_sort: bool = False) -> list[Entry]:
    """Stable-sort entries and drop each one named like its predecessor.

    Only a predecessor in the same band counts, so a directory and an object
    sharing a name both survive.
    """
    ordered = sorted(
        entries,
        key=functools.cmp_to_key(functools.partial(compare_entries, version_sort=version_sort)),
    )
    merged: list[Entry] = []
    for entry in ordered:
        if merged and merged[-1].name == entry.name and merged[-1].is_dir == entry.is_dir:
            continue
        merged.append(entry)
    return merged


class ListingAggregator:
    """Builds the merged entry list for a directory path.

    Attributes:
        mounts: The mount table.
        storage: Backend to list objects from.
        readme_name: README file name, matched case-insensitively.
        skip_readme: Leave the README object out of the entries.
        version_sort: Enable version-aware ordering.
    """

    def __init__(
        self,
        mounts: MountTable,
        storage: StorageBackend,
        readme_name: str = "readme.md",
        skip_readme: bool = False,
        version_sort: bool = False,
    ) -> None:
        self.mounts = mounts
        self.storage = storage
        self.readme_name = readme_name.lower()
        self.skip_readme = skip_readme
        self.version_sort = version_sort

    async def list(self, path: str) -> Listing:
        """Aggregate the listing of a directory path (ending in ``/``)."""
        entries = [Entry(name=name) for name in self.mounts.children_of(path)]
        backend_entries, readme = await self._list_backend(path)
        entries.extend(backend_entries)
        _metrics.inc(_metrics.listings_total)
        return Listing(entries=merge_entries(entries, self.version_sort), readme=readme)

    async def _list_backend(self, path: str) -> tuple[list[Entry], ObjectAttributes | None]:
        mount = self.mounts.resolve(path)
        if mount is None:
            return [], None

        prefix = mount.backend_name(path)
        entries: list[Entry] = []
        readme: ObjectAttributes | None = None
        logger.debug("Listing objects: bucket=%s prefix=%r", mount.bucket, prefix)

        try:
            async for item in self.storage.list_objects(mount.bucket, prefix, DELIMITER):
                if item.is_prefix:
                    entries.append(Entry(name=item.prefix[len(prefix) :]))
                    continue

                attrs = item.attrs
                if attrs.name == prefix:
                    # Folder placeholder object
                    continue
                name = attrs.name[len(prefix) :]
                if name.lower() == self.readme_name:
                    readme = attrs
                    if self.skip_readme:
                        continue
                entries.append(Entry.from_attributes(name, attrs))
        except Exception:
            _metrics.inc(_metrics.listing_failures_total)
            logger.exception(
                "Failed to list objects: bucket=%s prefix=%r (serving %d entries)",
                mount.bucket,
                prefix,
                len(entries),
            )

        return entries, readme
