from skyforge.resources.base import Resource
from skyforge.resources.droplet import Droplet, DropletState, discover_master, resolve_ssh_key_id

__all__ = ["Droplet", "DropletState", "Resource", "discover_master", "resolve_ssh_key_id"]
