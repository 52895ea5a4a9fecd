"""DigitalOcean API client wrapper using pydo SDK."""

from __future__ import annotations

import os
from typing import Any

from loguru import logger
from pydo import Client

from skyforge.core.exceptions import ConfigurationError, ProviderError
from skyforge.providers.base import CreateInstanceRequest, InstanceInfo

PAGE_SIZE = 200


def get_token(token: str | None = None) -> str:
    """Get API token from argument or environment."""
    token = token or os.environ.get("DIGITALOCEAN_TOKEN")
    if not token:
        raise ConfigurationError(
            "DigitalOcean API token not provided. "
            "Set DIGITALOCEAN_TOKEN environment variable or configure settings.token"
        )
    return token


def parse_droplet(data: dict[str, Any]) -> InstanceInfo:
    """Convert a droplet API payload into an InstanceInfo."""
    public_ip = ""
    private_ip = ""
    for network in (data.get("networks") or {}).get("v4", []):
        if network.get("type") == "public":
            public_ip = network.get("ip_address", "")
        elif network.get("type") == "private":
            private_ip = network.get("ip_address", "")

    size = data.get("size_slug") or (data.get("size") or {}).get("slug", "")
    return InstanceInfo(
        id=int(data["id"]),
        name=data.get("name", ""),
        size=size,
        region=(data.get("region") or {}).get("slug", ""),
        image=(data.get("image") or {}).get("slug") or "",
        status=data.get("status", ""),
        private_ip=private_ip,
        public_ip=public_ip,
        tags=tuple(data.get("tags") or ()),
    )


class DigitalOceanClient:
    """ComputeProvider backed by pydo.

    Every SDK failure is re-raised as ProviderError with the original
    message, so callers see one error type per provider call.

    Example:
        client = DigitalOceanClient(token=settings.api_token)
        droplets = client.list_by_tag("master-pool")
    """

    def __init__(self, token: str | None = None, client: Client | None = None) -> None:
        self._client = client or Client(token=get_token(token))

    @property
    def client(self) -> Client:
        return self._client

    def list_by_tag(self, tag: str) -> list[InstanceInfo]:
        droplets: list[InstanceInfo] = []
        page = 1
        try:
            while True:
                result = self._client.droplets.list(tag_name=tag, page=page, per_page=PAGE_SIZE)
                page_droplets = result.get("droplets", [])
                droplets.extend(parse_droplet(d) for d in page_droplets)
                if len(page_droplets) < PAGE_SIZE:
                    break
                page += 1
        except Exception as e:
            raise ProviderError(f"Failed to list droplets for tag [{tag}]: {e}") from e
        return droplets

    def create(self, request: CreateInstanceRequest) -> InstanceInfo:
        body: dict[str, Any] = {
            "name": request.name,
            "region": request.region,
            "size": request.size,
            "image": request.image,
            "ssh_keys": [request.ssh_key_id],
            "private_networking": request.private_networking,
            "user_data": request.user_data,
            "tags": list(request.tags),
        }

        try:
            result = self._client.droplets.create(body=body)
        except Exception as e:
            raise ProviderError(f"Failed to create droplet [{request.name}]: {e}") from e

        droplet = result.get("droplet")
        if not droplet:
            raise ProviderError(f"Failed to create droplet [{request.name}]: empty response")
        logger.debug(f"DigitalOcean accepted droplet {droplet.get('id')} ({request.name})")
        return parse_droplet(droplet)

    def delete(self, instance_id: int) -> None:
        try:
            self._client.droplets.destroy(droplet_id=instance_id)
        except Exception as e:
            raise ProviderError(f"Failed to delete droplet [{instance_id}]: {e}") from e
