"""DigitalOcean provider for skyforge.

Example:
    from skyforge.providers.digitalocean import DigitalOceanClient

    provider = DigitalOceanClient(token="...")
"""

from skyforge.providers.digitalocean.client import DigitalOceanClient, get_token, parse_droplet

__all__ = ["DigitalOceanClient", "get_token", "parse_droplet"]
