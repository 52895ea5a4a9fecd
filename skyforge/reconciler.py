"""Sequential reconciliation of a cluster's resources.

One pass walks the resources in order (master pools first), and for each
one computes actual and expected state, applies the difference and renders
the result back into the cluster. Later resources read what earlier ones
recorded on the cluster (master address, endpoint), so ordering matters and
nothing runs concurrently.
"""

from __future__ import annotations

import time
from pathlib import Path

from loguru import logger

from skyforge.bootstrap import INJECTED_TOKEN, AssetStore, PackageAssets, kubeadm_token
from skyforge.cluster import Cluster
from skyforge.config import Settings
from skyforge.core.exceptions import ConfigurationError
from skyforge.kubeconfig import KubeconfigRetriever, target_for
from skyforge.providers.base import ComputeProvider
from skyforge.resources.base import Resource
from skyforge.resources.droplet import Droplet
from skyforge.retry import RetryPolicy, Sleeper


def resources_for(
    cluster: Cluster,
    provider: ComputeProvider,
    *,
    assets: AssetStore,
    discovery: RetryPolicy,
) -> list[Resource]:
    """One droplet per server pool, master pools first, declared order otherwise."""
    masters = [p for p in cluster.server_pools if p.is_master]
    if len(masters) > 1:
        raise ConfigurationError(
            f"Cluster [{cluster.name}] declares {len(masters)} master pools: "
            f"{', '.join(p.name for p in masters)}"
        )
    ordered = masters + [p for p in cluster.server_pools if not p.is_master]
    return [Droplet(pool, provider, assets, discovery) for pool in ordered]


class Reconciler:
    """Drives a cluster toward its declared state.

    Example:
        reconciler = Reconciler(cluster, DigitalOceanClient(token))
        cluster = reconciler.reconcile()
        reconciler.fetch_kubeconfig()
    """

    def __init__(
        self,
        cluster: Cluster,
        provider: ComputeProvider,
        *,
        settings: Settings | None = None,
        assets: AssetStore | None = None,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self.cluster = cluster
        self.provider = provider
        self.settings = settings or Settings()
        self.assets = assets or PackageAssets()
        self.sleep = sleep

    @property
    def discovery(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=self.settings.master_ip_attempts,
            interval=self.settings.master_ip_interval,
            sleep=self.sleep,
        )

    def resources(self) -> list[Resource]:
        return resources_for(
            self.cluster, self.provider, assets=self.assets, discovery=self.discovery
        )

    def reconcile(self) -> Cluster:
        """Run one reconciliation pass and return the updated cluster."""
        if INJECTED_TOKEN not in self.cluster.values:
            self.cluster.values[INJECTED_TOKEN] = kubeadm_token()

        for resource in self.resources():
            logger.debug(f"Reconciling {resource.kind} [{resource.name}]")
            expected = resource.expected(self.cluster)
            actual = resource.actual(self.cluster)
            applied = resource.apply(actual, expected, self.cluster)
            self.cluster = resource.render(applied, self.cluster)

        logger.info(f"Cluster [{self.cluster.name}] reconciled")
        return self.cluster

    def destroy(self) -> Cluster:
        """Delete every provisioned resource, nodes before the master."""
        for resource in reversed(self.resources()):
            actual = resource.actual(self.cluster)
            if not resource.exists(actual):
                logger.debug(f"Skipping {resource.kind} [{resource.name}]: not provisioned")
                continue
            resource.delete(actual, self.cluster)
        return self.cluster

    def fetch_kubeconfig(self) -> Path:
        """Fetch the admin kubeconfig from the master once it's serving it."""
        retriever = KubeconfigRetriever(
            target_for(self.cluster, self.settings.kubeconfig_path),
            policy=RetryPolicy(
                attempts=self.settings.kubeconfig_attempts,
                interval=self.settings.kubeconfig_interval,
                sleep=self.sleep,
            ),
        )
        return retriever.retrieve()
