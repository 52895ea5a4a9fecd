"""Bootstrap scripts and template injection for droplet user data."""

from skyforge.bootstrap.assets import AssetStore, DirectoryAssets, PackageAssets
from skyforge.bootstrap.inject import (
    INJECTED_MASTER,
    INJECTED_NAME,
    INJECTED_PORT,
    INJECTED_TOKEN,
    RESERVED_KEYS,
    inject,
    kubeadm_token,
)

__all__ = [
    "INJECTED_MASTER",
    "INJECTED_NAME",
    "INJECTED_PORT",
    "INJECTED_TOKEN",
    "RESERVED_KEYS",
    "AssetStore",
    "DirectoryAssets",
    "PackageAssets",
    "inject",
    "kubeadm_token",
]
