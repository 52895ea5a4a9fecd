"""TOML-based settings and cluster definition.

Loads ~/.skyforge/defaults.toml (global) and skyforge.toml (project),
merges them, and resolves the ``[settings]`` and ``[cluster]`` tables.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, TypeAlias

from skyforge.cluster import Cluster
from skyforge.core.exceptions import ConfigurationError

RawConfig: TypeAlias = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".skyforge" / "defaults.toml"
PROJECT_CONFIG_NAME = "skyforge.toml"


@dataclass(frozen=True, slots=True)
class Settings:
    """Reconciliation settings.

    Attributes:
        token: DigitalOcean API token. Falls back to DIGITALOCEAN_TOKEN.
        master_ip_attempts: Polls before giving up on master discovery.
        master_ip_interval: Seconds between master discovery polls.
        kubeconfig_attempts: Attempts to fetch the kubeconfig.
        kubeconfig_interval: Seconds between kubeconfig attempts.
        kubeconfig_path: Local file the fetched kubeconfig is appended to.
    """

    token: str | None = None
    master_ip_attempts: int = 40
    master_ip_interval: float = 3.0
    kubeconfig_attempts: int = 120
    kubeconfig_interval: float = 2.0
    kubeconfig_path: str = "~/.kube/config"

    @property
    def api_token(self) -> str:
        token = self.token or os.environ.get("DIGITALOCEAN_TOKEN")
        if not token:
            raise ConfigurationError(
                "DigitalOcean API token not provided. "
                "Set DIGITALOCEAN_TOKEN environment variable or settings.token"
            )
        return token

    @classmethod
    def from_dict(cls, raw: RawConfig) -> Settings:
        known = {f.name for f in fields(cls)}
        unknown = set(raw) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown settings: {', '.join(sorted(unknown))}. Valid: {', '.join(sorted(known))}"
            )
        return cls(**raw)


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("settings", {})
    return merged


def resolve_settings(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> Settings:
    config = load_config(project_dir=project_dir, global_path=global_path)
    return Settings.from_dict(config["settings"])


def resolve_cluster(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> Cluster:
    config = load_config(project_dir=project_dir, global_path=global_path)
    raw_cluster = config.get("cluster")
    if raw_cluster is None:
        raise ConfigurationError(f"No [cluster] table found in {PROJECT_CONFIG_NAME}")
    return Cluster.from_dict(raw_cluster)
