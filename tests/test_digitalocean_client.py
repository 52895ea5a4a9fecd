from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from skyforge.core.exceptions import ConfigurationError, ProviderError
from skyforge.providers.base import CreateInstanceRequest
from skyforge.providers.digitalocean import DigitalOceanClient, get_token, parse_droplet
from skyforge.providers.digitalocean.client import PAGE_SIZE

pytestmark = [pytest.mark.unit]


def _payload(id: int, name: str = "master-pool", **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": id,
        "name": name,
        "status": "active",
        "size_slug": "s-2vcpu-2gb",
        "region": {"slug": "nyc3", "name": "New York 3"},
        "image": {"slug": "ubuntu-16-04-x64"},
        "networks": {
            "v4": [
                {"type": "private", "ip_address": "10.0.0.5"},
                {"type": "public", "ip_address": "203.0.113.5"},
            ]
        },
        "tags": [name],
    }
    data.update(overrides)
    return data


@pytest.fixture
def pydo_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(pydo_client) -> DigitalOceanClient:
    return DigitalOceanClient(client=pydo_client)


class TestParseDroplet:
    def test_addresses_and_slugs(self):
        info = parse_droplet(_payload(42))
        assert info.id == 42
        assert (info.private_ip, info.public_ip) == ("10.0.0.5", "203.0.113.5")
        assert (info.size, info.region, info.image) == ("s-2vcpu-2gb", "nyc3", "ubuntu-16-04-x64")
        assert info.tags == ("master-pool",)

    def test_no_networks_yet(self):
        info = parse_droplet(_payload(42, networks={"v4": []}))
        assert info.private_ip == ""
        assert info.public_ip == ""

    def test_size_object_fallback(self):
        data = _payload(42, size={"slug": "s-1vcpu-1gb"})
        del data["size_slug"]
        assert parse_droplet(data).size == "s-1vcpu-1gb"

    def test_image_without_slug(self):
        assert parse_droplet(_payload(42, image={"slug": None, "id": 7})).image == ""


class TestGetToken:
    def test_explicit(self, monkeypatch):
        monkeypatch.delenv("DIGITALOCEAN_TOKEN", raising=False)
        assert get_token("abc") == "abc"

    def test_env(self, monkeypatch):
        monkeypatch.setenv("DIGITALOCEAN_TOKEN", "from-env")
        assert get_token() == "from-env"

    def test_missing(self, monkeypatch):
        monkeypatch.delenv("DIGITALOCEAN_TOKEN", raising=False)
        with pytest.raises(ConfigurationError, match="DIGITALOCEAN_TOKEN"):
            get_token()


class TestListByTag:
    def test_single_page(self, client, pydo_client):
        pydo_client.droplets.list.return_value = {"droplets": [_payload(1)]}
        [info] = client.list_by_tag("master-pool")
        assert info.id == 1
        pydo_client.droplets.list.assert_called_once_with(tag_name="master-pool", page=1, per_page=PAGE_SIZE)

    def test_paginates(self, client, pydo_client):
        first = [_payload(i) for i in range(PAGE_SIZE)]
        pydo_client.droplets.list.side_effect = [{"droplets": first}, {"droplets": [_payload(999)]}]
        assert len(client.list_by_tag("node-pool")) == PAGE_SIZE + 1
        assert pydo_client.droplets.list.call_count == 2

    def test_empty(self, client, pydo_client):
        pydo_client.droplets.list.return_value = {"droplets": []}
        assert client.list_by_tag("node-pool") == []

    def test_errors_are_wrapped(self, client, pydo_client):
        pydo_client.droplets.list.side_effect = RuntimeError("503 Service Unavailable")
        with pytest.raises(ProviderError, match=r"tag \[node-pool\]: 503 Service Unavailable"):
            client.list_by_tag("node-pool")


class TestCreate:
    @pytest.fixture
    def request_(self) -> CreateInstanceRequest:
        return CreateInstanceRequest(
            name="node-pool",
            region="nyc3",
            size="s-1vcpu-2gb",
            image="ubuntu-16-04-x64",
            ssh_key_id=12345,
            ssh_fingerprint="aa:bb:cc:dd",
            user_data="#!/usr/bin/env bash\n",
            tags=("node-pool",),
        )

    def test_body(self, client, pydo_client, request_):
        pydo_client.droplets.create.return_value = {"droplet": _payload(7, "node-pool", networks={})}

        info = client.create(request_)

        assert info.id == 7
        assert info.public_ip == ""
        pydo_client.droplets.create.assert_called_once_with(
            body={
                "name": "node-pool",
                "region": "nyc3",
                "size": "s-1vcpu-2gb",
                "image": "ubuntu-16-04-x64",
                "ssh_keys": [12345],
                "private_networking": True,
                "user_data": "#!/usr/bin/env bash\n",
                "tags": ["node-pool"],
            }
        )

    def test_api_error(self, client, pydo_client, request_):
        pydo_client.droplets.create.side_effect = RuntimeError("422 Unprocessable Entity")
        with pytest.raises(ProviderError, match="422"):
            client.create(request_)

    def test_empty_response(self, client, pydo_client, request_):
        pydo_client.droplets.create.return_value = {}
        with pytest.raises(ProviderError, match="empty response"):
            client.create(request_)


class TestDelete:
    def test_destroy(self, client, pydo_client):
        client.delete(7)
        pydo_client.droplets.destroy.assert_called_once_with(droplet_id=7)

    def test_error(self, client, pydo_client):
        pydo_client.droplets.destroy.side_effect = RuntimeError("404 Not Found")
        with pytest.raises(ProviderError, match=r"\[7\]: 404"):
            client.delete(7)
