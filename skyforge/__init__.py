"""skyforge: converge DigitalOcean droplets into a Kubernetes cluster.

Example:
    from skyforge import Reconciler, resolve_cluster, resolve_settings
    from skyforge.providers.digitalocean import DigitalOceanClient

    settings = resolve_settings()
    cluster = resolve_cluster()
    reconciler = Reconciler(cluster, DigitalOceanClient(settings.api_token), settings=settings)
    reconciler.reconcile()
    reconciler.fetch_kubeconfig()
"""

from skyforge.cluster import SSH, Cluster, Disk, KubernetesAPI, ServerPool, ServerPoolType
from skyforge.config import Settings, load_config, resolve_cluster, resolve_settings
from skyforge.core.exceptions import SkyforgeError
from skyforge.kubeconfig import KubeconfigRetriever, retrieve_kubeconfig
from skyforge.logging import LogConfig, setup_logging, teardown_logging
from skyforge.reconciler import Reconciler
from skyforge.resources import Droplet, DropletState, Resource

__all__ = [
    "SSH",
    "Cluster",
    "Disk",
    "Droplet",
    "DropletState",
    "KubeconfigRetriever",
    "KubernetesAPI",
    "LogConfig",
    "Reconciler",
    "Resource",
    "ServerPool",
    "ServerPoolType",
    "Settings",
    "SkyforgeError",
    "load_config",
    "resolve_cluster",
    "resolve_settings",
    "retrieve_kubeconfig",
    "setup_logging",
    "teardown_logging",
]
