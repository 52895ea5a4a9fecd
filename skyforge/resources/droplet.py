"""Droplet resource: one DigitalOcean compute instance per server pool."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from loguru import logger

from skyforge.bootstrap import INJECTED_MASTER, INJECTED_NAME, INJECTED_PORT, AssetStore, inject
from skyforge.cluster import Cluster, ServerPool
from skyforge.compare import differing_fields, is_equal
from skyforge.core.exceptions import (
    ConfigurationError,
    InvalidSSHIdentifierError,
    MasterNotFoundError,
    ProviderError,
    ProviderInconsistencyError,
    RetryExhaustedError,
)
from skyforge.providers.base import ComputeProvider, CreateInstanceRequest, InstanceInfo
from skyforge.resources.base import Resource
from skyforge.retry import RetryPolicy

MASTER_IP_ATTEMPTS = 40
MASTER_IP_SLEEP_SECONDS_PER_ATTEMPT = 3.0

DEFAULT_DISCOVERY = RetryPolicy(
    attempts=MASTER_IP_ATTEMPTS,
    interval=MASTER_IP_SLEEP_SECONDS_PER_ATTEMPT,
)


@dataclass(frozen=True, slots=True)
class DropletState:
    """Provider-relevant configuration of a droplet.

    ``cloud_id`` is assigned by the provider and excluded from comparison.
    """

    name: str
    size: str = ""
    region: str = ""
    image: str = ""
    count: int = 0
    ssh_fingerprint: str = ""
    cloud_id: str = field(default="", compare=False)

    @property
    def exists(self) -> bool:
        return bool(self.cloud_id)


class _MasterNotReadyError(Exception):
    """Master droplet not discoverable yet - retry."""


def resolve_ssh_key_id(identifier: str) -> int:
    """Convert the cluster's SSH key identifier to DigitalOcean's numeric key id."""
    value = identifier.strip()
    if not value.isdigit():
        raise InvalidSSHIdentifierError(identifier)
    return int(value)


def discover_master(
    provider: ComputeProvider,
    tag: str,
    policy: RetryPolicy = DEFAULT_DISCOVERY,
) -> InstanceInfo:
    """Poll the provider until exactly one droplet tagged ``tag`` has addresses.

    A failed query, an empty result and a droplet without IPv4 addresses
    all mean "not booted yet" and are retried alike. More than one match
    is fatal immediately.

    Raises:
        ProviderInconsistencyError: If the tag resolves to several droplets.
        MasterNotFoundError: If the attempt budget runs out.
    """

    def poll() -> InstanceInfo:
        try:
            found = provider.list_by_tag(tag)
        except ProviderError as e:
            raise _MasterNotReadyError(f"query for tag [{tag}] failed: {e}") from e

        if not found:
            raise _MasterNotReadyError(f"no droplets tagged [{tag}] yet")
        if len(found) > 1:
            raise ProviderInconsistencyError(tag, len(found))

        droplet = found[0]
        if not droplet.private_ip or not droplet.public_ip:
            raise _MasterNotReadyError(f"droplet [{droplet.id}] has no IPv4 addresses yet")
        return droplet

    try:
        master = policy.run(
            poll,
            on=_MasterNotReadyError,
            description=f"Hanging for master IP [{tag}]",
        )
    except RetryExhaustedError as e:
        raise MasterNotFoundError(
            f"Unable to find master IP for tag [{tag}] after defined wait "
            f"({e.attempts} attempts): {e.last_error}",
            attempts=e.attempts,
            last_error=e.last_error,
        ) from e

    logger.debug(f"Found master [{master.id}] private={master.private_ip} public={master.public_ip}")
    return master


class Droplet(Resource[DropletState]):
    """Droplet backing a server pool.

    The pool name is the droplet name and its provider tag, which is how
    actual state and the master's addresses are found.
    """

    def __init__(
        self,
        server_pool: ServerPool,
        provider: ComputeProvider,
        assets: AssetStore,
        discovery: RetryPolicy = DEFAULT_DISCOVERY,
    ) -> None:
        super().__init__(server_pool.name)
        self.server_pool = server_pool
        self.provider = provider
        self.assets = assets
        self.discovery = discovery

    def _query_actual(self, cluster: Cluster) -> DropletState:
        actual = DropletState(
            name=self.name,
            count=self.server_pool.max_count,
            ssh_fingerprint=cluster.ssh.public_key_fingerprint,
        )

        droplets = self.provider.list_by_tag(self.name)
        if len(droplets) > 1:
            raise ProviderInconsistencyError(self.name, len(droplets))
        if not droplets:
            return actual

        droplet = droplets[0]
        return replace(
            actual,
            cloud_id=str(droplet.id),
            size=droplet.size,
            region=droplet.region,
            image=droplet.image,
        )

    def exists(self, state: DropletState) -> bool:
        return state.exists

    def _derive_expected(self, cluster: Cluster) -> DropletState:
        return DropletState(
            name=self.name,
            size=self.server_pool.size,
            region=cluster.location,
            image=self.server_pool.image,
            count=self.server_pool.max_count,
            ssh_fingerprint=cluster.ssh.public_key_fingerprint,
        )

    def apply(self, actual: DropletState, expected: DropletState, cluster: Cluster) -> DropletState:
        logger.debug(f"droplet.apply {self.name}")
        if is_equal(actual, expected):
            return expected
        if actual.exists:
            changed = ", ".join(differing_fields(actual, expected))
            raise ConfigurationError(
                f"Droplet [{actual.cloud_id}] for pool [{self.name}] differs from the "
                f"cluster on: {changed}. Delete it before changing the pool"
            )

        script = self.assets.load(self.server_pool.bootstrap_script)

        master: InstanceInfo | None = None
        if not self.server_pool.is_master:
            master_pool = cluster.master_pool()
            master = discover_master(self.provider, master_pool.name, self.discovery)
            cluster.values[INJECTED_MASTER] = f"{master.private_ip}:{cluster.kubernetes_api.port}"

        cluster.values[INJECTED_NAME] = cluster.name
        cluster.values[INJECTED_PORT] = cluster.kubernetes_api.port
        user_data = inject(script, cluster.values)

        ssh_key_id = resolve_ssh_key_id(cluster.ssh.identifier)

        droplet = self.provider.create(
            CreateInstanceRequest(
                name=expected.name,
                region=expected.region,
                size=expected.size,
                image=expected.image,
                ssh_key_id=ssh_key_id,
                ssh_fingerprint=expected.ssh_fingerprint,
                user_data=user_data.decode("utf-8"),
                tags=(expected.name,),
                private_networking=True,
            )
        )
        logger.info(f"Created droplet [{droplet.id}]")

        if self.server_pool.is_master:
            master = droplet if droplet.public_ip else discover_master(
                self.provider, self.name, self.discovery
            )
        if master is not None:
            cluster.kubernetes_api.endpoint = master.public_ip

        return DropletState(
            name=droplet.name,
            cloud_id=str(droplet.id),
            image=droplet.image,
            size=droplet.size,
            region=droplet.region,
            count=expected.count,
            ssh_fingerprint=expected.ssh_fingerprint,
        )

    def delete(self, actual: DropletState, cluster: Cluster) -> None:
        logger.debug(f"droplet.delete {self.name}")
        if not actual.name:
            raise ConfigurationError("Unable to delete droplet resource without name")

        droplets = self.provider.list_by_tag(actual.name)
        if len(droplets) != 1:
            raise ProviderInconsistencyError(actual.name, len(droplets))

        droplet = droplets[0]
        self.provider.delete(droplet.id)
        logger.info(f"Deleted droplet [{droplet.id}]")

    def render(self, state: DropletState, cluster: Cluster) -> Cluster:
        logger.debug(f"droplet.render {self.name}")
        pool = cluster.pool(state.name)
        if pool is None:
            cluster.server_pools.append(
                ServerPool(
                    name=state.name,
                    type=self.server_pool.type,
                    size=state.size,
                    image=state.image,
                    max_count=state.count,
                    bootstrap_script=self.server_pool.bootstrap_script,
                )
            )
        else:
            pool.size = state.size
            pool.image = state.image
            pool.max_count = state.count
        cluster.location = state.region
        return cluster
