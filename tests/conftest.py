from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeAlias

import pytest

from skyforge.bootstrap import INJECTED_TOKEN, PackageAssets
from skyforge.cluster import SSH, Cluster, KubernetesAPI, ServerPool, ServerPoolType
from skyforge.providers.base import CreateInstanceRequest, InstanceInfo
from skyforge.retry import RetryPolicy

MASTER_SCRIPT = "digitalocean_k8s_ubuntu_16.04_master.sh"
NODE_SCRIPT = "digitalocean_k8s_ubuntu_16.04_node.sh"

ListResult: TypeAlias = Sequence[InstanceInfo] | Exception


class FakeProvider:
    """In-memory ComputeProvider.

    ``queue(tag, *results)`` scripts the next list_by_tag answers for a tag
    (a list of droplets or an exception to raise). Once the queue for a tag
    is drained, answers come from the droplets created so far.
    """

    def __init__(self) -> None:
        self.droplets: dict[int, InstanceInfo] = {}
        self.created: list[CreateInstanceRequest] = []
        self.deleted: list[int] = []
        self.list_calls: list[str] = []
        self.addresses: dict[str, tuple[str, str]] = {}
        self._queued: dict[str, list[ListResult]] = {}
        self._next_id = 1000

    def queue(self, tag: str, *results: ListResult) -> None:
        self._queued.setdefault(tag, []).extend(results)

    def add(self, info: InstanceInfo) -> InstanceInfo:
        self.droplets[info.id] = info
        return info

    def list_by_tag(self, tag: str) -> list[InstanceInfo]:
        self.list_calls.append(tag)
        queued = self._queued.get(tag)
        if queued:
            result = queued.pop(0)
            if isinstance(result, Exception):
                raise result
            return list(result)
        return [d for d in self.droplets.values() if tag in d.tags]

    def create(self, request: CreateInstanceRequest) -> InstanceInfo:
        self.created.append(request)
        private_ip, public_ip = self.addresses.get(request.name, ("", ""))
        info = InstanceInfo(
            id=self._next_id,
            name=request.name,
            size=request.size,
            region=request.region,
            image=request.image,
            status="new",
            private_ip=private_ip,
            public_ip=public_ip,
            tags=request.tags,
        )
        self._next_id += 1
        return self.add(info)

    def delete(self, instance_id: int) -> None:
        self.deleted.append(instance_id)
        self.droplets.pop(instance_id)


def droplet(
    id: int,
    name: str,
    *,
    private_ip: str = "10.0.0.5",
    public_ip: str = "203.0.113.5",
    size: str = "s-2vcpu-2gb",
    region: str = "nyc3",
    image: str = "ubuntu-16-04-x64",
) -> InstanceInfo:
    return InstanceInfo(
        id=id,
        name=name,
        size=size,
        region=region,
        image=image,
        status="active",
        private_ip=private_ip,
        public_ip=public_ip,
        tags=(name,),
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def no_sleep(sleeps: list[float]) -> Callable[[float], None]:
    return sleeps.append


@pytest.fixture
def discovery(no_sleep: Callable[[float], None]) -> RetryPolicy:
    return RetryPolicy(attempts=5, interval=3.0, sleep=no_sleep)


@pytest.fixture
def assets() -> PackageAssets:
    return PackageAssets()


@pytest.fixture
def master_pool() -> ServerPool:
    return ServerPool(
        name="master-pool",
        type=ServerPoolType.MASTER,
        size="s-2vcpu-2gb",
        image="ubuntu-16-04-x64",
        max_count=1,
        bootstrap_script=MASTER_SCRIPT,
    )


@pytest.fixture
def node_pool() -> ServerPool:
    return ServerPool(
        name="node-pool",
        type=ServerPoolType.NODE,
        size="s-1vcpu-2gb",
        image="ubuntu-16-04-x64",
        max_count=2,
        bootstrap_script=NODE_SCRIPT,
    )


@pytest.fixture
def cluster(master_pool: ServerPool, node_pool: ServerPool) -> Cluster:
    return Cluster(
        name="forge",
        location="nyc3",
        ssh=SSH(
            user="root",
            public_key_path="~/.ssh/id_rsa.pub",
            public_key_fingerprint="aa:bb:cc:dd",
            identifier="12345",
        ),
        kubernetes_api=KubernetesAPI(port="6443"),
        server_pools=[master_pool, node_pool],
        values={INJECTED_TOKEN: "abcdef.0123456789abcdef"},
    )
