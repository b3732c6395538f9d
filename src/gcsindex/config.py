"""Configuration loading and Pydantic models for gcs-index."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from gcsindex.mounts import Mount, MountTable
from gcsindex.validation import build_mount


def _default_port() -> int:
    return int(os.environ.get("PORT", "8080"))


class ServerConfig(BaseModel):
    """Server binding and runtime configuration."""

    host: str = "0.0.0.0"
    port: int = Field(default_factory=_default_port)
    unix_socket: str = ""
    log_level: str = "INFO"
    log_format: str = "text"
    shutdown_timeout: int = 10


class IndexConfig(BaseModel):
    """Directory listing and object serving behaviour."""

    json_listing: bool = True
    readme: bool = True
    skip_readme: bool = False
    version_sort: bool = False
    readme_name: str = "readme.md"
    readme_cache_max_bytes: int = 16 * 1024 * 1024
    default_cache_control: str = "public, max-age=60"
    favicon_not_found: bool = True


class StorageConfig(BaseModel):
    """Object storage backend configuration."""

    backend: str = "gcp"
    gcp_credentials_file: str = ""


class ObservabilityConfig(BaseModel):
    """Metrics configuration."""

    metrics: bool = False


class MountConfig(BaseModel):
    """One ``path:bucket:prefix`` mount."""

    path: str
    bucket: str
    prefix: str = ""

    def to_mount(self) -> Mount:
        return build_mount(self.path, self.bucket, self.prefix)


class GCSIndexConfig(BaseModel):
    """Top-level gcs-index configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    mounts: list[MountConfig] = Field(default_factory=list)

    def mount_table(self) -> MountTable:
        """Build the sorted mount table from the configured mounts.

        Raises:
            InvalidMountSpec: If a mount has an invalid bucket name.
        """
        return MountTable(m.to_mount() for m in self.mounts)


def _parse_server(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the server section from YAML data into a dict for Pydantic."""
    if data is None:
        return {}
    result = {
        key: data[key]
        for key in ("host", "port", "log_level", "log_format", "shutdown_timeout")
        if key in data
    }
    if "socket" in data:
        result["unix_socket"] = data["socket"] or ""
    return result


def _parse_index(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the index section from YAML data.

    Handles nested structure: index.readme.{enabled,skip,name,cache_max_bytes}
    """
    if data is None:
        return {}
    result = {
        key: data[key]
        for key in ("version_sort", "default_cache_control", "favicon_not_found")
        if key in data
    }
    if "json" in data:
        result["json_listing"] = data["json"]
    readme_section = data.get("readme")
    if isinstance(readme_section, dict):
        if "enabled" in readme_section:
            result["readme"] = readme_section["enabled"]
        if "skip" in readme_section:
            result["skip_readme"] = readme_section["skip"]
        if "name" in readme_section:
            result["readme_name"] = readme_section["name"]
        if "cache_max_bytes" in readme_section:
            result["readme_cache_max_bytes"] = readme_section["cache_max_bytes"]
    elif readme_section is not None:
        result["readme"] = readme_section
    return result


def _parse_storage(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the storage section from YAML data.

    Handles nested structure: storage.gcp.credentials_file -> gcp_credentials_file
    """
    if data is None:
        return {}
    result: dict[str, Any] = {"backend": data.get("backend", "gcp")}
    gcp_section = data.get("gcp")
    if isinstance(gcp_section, dict):
        result["gcp_credentials_file"] = gcp_section.get("credentials_file", "")
    return result


def _parse_observability(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the observability section from YAML data."""
    if data is None:
        return {}
    return {"metrics": data.get("metrics", False)}


def _parse_mounts(data: list[Any] | None) -> list[dict[str, Any]]:
    """Parse the mounts list; entries are mappings or ``path:bucket:prefix`` strings."""
    if not data:
        return []
    result = []
    for item in data:
        if isinstance(item, str):
            path, _, rest = item.partition(":")
            bucket, _, prefix = rest.partition(":")
            result.append({"path": path, "bucket": bucket, "prefix": prefix})
        else:
            result.append(
                {
                    "path": item.get("path", "/"),
                    "bucket": item.get("bucket", ""),
                    "prefix": item.get("prefix") or "",
                }
            )
    return result


def load_config(path: Path) -> GCSIndexConfig:
    """Load a GCSIndexConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated GCSIndexConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return GCSIndexConfig(
        server=ServerConfig(**_parse_server(raw.get("server"))),
        index=IndexConfig(**_parse_index(raw.get("index"))),
        storage=StorageConfig(**_parse_storage(raw.get("storage"))),
        observability=ObservabilityConfig(**_parse_observability(raw.get("observability"))),
        mounts=[MountConfig(**m) for m in _parse_mounts(raw.get("mounts"))],
    )
