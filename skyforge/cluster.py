"""Desired-state document for a cluster.

The Cluster is built before reconciliation, mutated in place by resources
during apply/render (discovered endpoint, injected template values) and
persisted back out with ``to_dict`` once the pass completes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeAlias

from skyforge.core.exceptions import ConfigurationError

RawDocument: TypeAlias = dict[str, Any]


class ServerPoolType(StrEnum):
    MASTER = "master"
    NODE = "node"


@dataclass
class Disk:
    """Attached storage descriptor."""

    boot_disk: bool = False
    size_gb: int = 0
    image: str = ""

    def to_dict(self) -> RawDocument:
        raw: RawDocument = {}
        if self.boot_disk:
            raw["bootdisk"] = True
        if self.size_gb:
            raw["sizegb"] = self.size_gb
        if self.image:
            raw["image"] = self.image
        return raw

    @classmethod
    def from_dict(cls, raw: RawDocument) -> Disk:
        return cls(
            boot_disk=bool(raw.get("bootdisk", False)),
            size_gb=int(raw.get("sizegb", 0)),
            image=raw.get("image", ""),
        )


@dataclass
class SSH:
    """SSH material used to create droplets and reach the master."""

    user: str = "root"
    public_key_path: str = "~/.ssh/id_rsa.pub"
    public_key_fingerprint: str = ""
    identifier: str = ""


@dataclass
class KubernetesAPI:
    endpoint: str = ""
    port: str = "443"


@dataclass
class ServerPool:
    """A named group of same-role, same-configuration droplets.

    The pool name doubles as the provider-side tag used to find its droplets.
    """

    name: str
    type: ServerPoolType = ServerPoolType.NODE
    size: str = ""
    image: str = ""
    max_count: int = 1
    bootstrap_script: str = ""

    @property
    def is_master(self) -> bool:
        return self.type == ServerPoolType.MASTER

    def to_dict(self) -> RawDocument:
        return {
            "name": self.name,
            "type": str(self.type),
            "size": self.size,
            "image": self.image,
            "max_count": self.max_count,
            "bootstrap_script": self.bootstrap_script,
        }

    @classmethod
    def from_dict(cls, raw: RawDocument) -> ServerPool:
        if "name" not in raw:
            raise ConfigurationError("Server pool missing 'name' field")
        try:
            pool_type = ServerPoolType(raw.get("type", ServerPoolType.NODE))
        except ValueError as e:
            raise ConfigurationError(
                f"Server pool '{raw['name']}' has unknown type {raw.get('type')!r}"
            ) from e
        return cls(
            name=raw["name"],
            type=pool_type,
            size=raw.get("size", ""),
            image=raw.get("image", ""),
            max_count=int(raw.get("max_count", 1)),
            bootstrap_script=raw.get("bootstrap_script", ""),
        )


@dataclass
class Cluster:
    """Desired state of a cluster.

    Attributes:
        name: Cluster name, injected into bootstrap scripts.
        location: Provider region (e.g. "nyc3").
        ssh: SSH descriptor.
        kubernetes_api: API endpoint, filled in once the master is up.
        server_pools: Ordered server pools.
        values: Template substitution map shared by every resource in a pass.
    """

    name: str
    location: str = ""
    ssh: SSH = field(default_factory=SSH)
    kubernetes_api: KubernetesAPI = field(default_factory=KubernetesAPI)
    server_pools: list[ServerPool] = field(default_factory=list)
    values: dict[str, str] = field(default_factory=dict)

    def master_pool(self) -> ServerPool:
        """Return the master pool.

        Raises:
            ConfigurationError: If the cluster declares no master pool.
        """
        for pool in self.server_pools:
            if pool.is_master:
                return pool
        raise ConfigurationError(f"Unable to find master pool for cluster [{self.name}]")

    def pool(self, name: str) -> ServerPool | None:
        return next((p for p in self.server_pools if p.name == name), None)

    def to_dict(self) -> RawDocument:
        return {
            "name": self.name,
            "location": self.location,
            "ssh": {
                "user": self.ssh.user,
                "public_key_path": self.ssh.public_key_path,
                "public_key_fingerprint": self.ssh.public_key_fingerprint,
                "identifier": self.ssh.identifier,
            },
            "kubernetes_api": {
                "endpoint": self.kubernetes_api.endpoint,
                "port": self.kubernetes_api.port,
            },
            "server_pools": [p.to_dict() for p in self.server_pools],
            "values": dict(self.values),
        }

    @classmethod
    def from_dict(cls, raw: RawDocument) -> Cluster:
        if "name" not in raw:
            raise ConfigurationError("Cluster missing 'name' field")
        api = raw.get("kubernetes_api", {})
        try:
            ssh = SSH(**raw.get("ssh", {}))
        except TypeError as e:
            raise ConfigurationError(f"Invalid ssh section for cluster '{raw['name']}': {e}") from e
        return cls(
            name=raw["name"],
            location=raw.get("location", ""),
            ssh=ssh,
            kubernetes_api=KubernetesAPI(
                endpoint=api.get("endpoint", ""),
                port=str(api.get("port", "443")),
            ),
            server_pools=[ServerPool.from_dict(p) for p in raw.get("server_pools", [])],
            values={k: str(v) for k, v in raw.get("values", {}).items()},
        )
