"""Compute provider abstraction.

Resources talk to the cloud through this protocol so the reconciliation
logic can be exercised against an in-memory provider.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True, slots=True)
class InstanceInfo:
    """Provider-side view of a compute instance."""

    id: int
    name: str
    size: str = ""
    region: str = ""
    image: str = ""
    status: str = ""
    private_ip: str = ""
    public_ip: str = ""
    tags: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CreateInstanceRequest:
    """Everything needed to create one instance."""

    name: str
    region: str
    size: str
    image: str
    ssh_key_id: int
    ssh_fingerprint: str
    user_data: str
    tags: tuple[str, ...] = field(default_factory=tuple)
    private_networking: bool = True


class ComputeProvider(Protocol):
    """Synchronous, tag-filterable compute API.

    Implementations raise ProviderError for any failed call.
    """

    def list_by_tag(self, tag: str) -> Sequence[InstanceInfo]:
        """List instances carrying ``tag``. Empty when none exist."""
        ...

    def create(self, request: CreateInstanceRequest) -> InstanceInfo:
        """Create an instance and return the provider's view of it."""
        ...

    def delete(self, instance_id: int) -> None:
        """Destroy an instance by provider id."""
        ...
