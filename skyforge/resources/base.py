"""Reconciliation contract shared by every provisionable resource kind.

A resource compares the real world (``actual``) with the desired-state
document (``expected``), converges one toward the other (``apply``) and
folds the result back into the document (``render``). Each concrete kind
is parametrized by its own state type, so apply/render work on strongly
typed states.

Actual and expected snapshots are cached on the resource for the lifetime
of one reconciliation pass. The reconciler builds fresh resources for
every pass, and ``reset_cache`` is available for callers that reuse them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from loguru import logger

from skyforge.cluster import Cluster

S = TypeVar("S")


class Resource(ABC, Generic[S]):
    """One provisionable unit (droplet, network, volume, ...)."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.cached_actual: S | None = None
        self.cached_expected: S | None = None

    @property
    def kind(self) -> str:
        return type(self).__name__.lower()

    def actual(self, cluster: Cluster) -> S:
        """Real-world state for this resource, queried by stable name/tag.

        Returns an empty state when the resource does not exist yet.
        Provider query failures propagate.
        """
        if self.cached_actual is not None:
            logger.debug(f"Using cached {self.kind} [actual] for {self.name}")
            return self.cached_actual
        logger.debug(f"{self.kind}.actual {self.name}")
        self.cached_actual = self._query_actual(cluster)
        return self.cached_actual

    def expected(self, cluster: Cluster) -> S:
        """State derived from the desired-state document. Never queries the provider."""
        if self.cached_expected is not None:
            logger.debug(f"Using cached {self.kind} [expected] for {self.name}")
            return self.cached_expected
        logger.debug(f"{self.kind}.expected {self.name}")
        self.cached_expected = self._derive_expected(cluster)
        return self.cached_expected

    def reset_cache(self) -> None:
        self.cached_actual = None
        self.cached_expected = None

    @abstractmethod
    def _query_actual(self, cluster: Cluster) -> S: ...

    @abstractmethod
    def _derive_expected(self, cluster: Cluster) -> S: ...

    @abstractmethod
    def exists(self, state: S) -> bool:
        """Whether ``state`` describes a provisioned provider object."""

    @abstractmethod
    def apply(self, actual: S, expected: S, cluster: Cluster) -> S:
        """Converge provider state toward ``expected``.

        Returns ``expected`` unchanged when it already matches ``actual``.
        Never creates a second provider object for a resource that exists.
        May record discovered facts (endpoints, addresses) on ``cluster``.
        """

    @abstractmethod
    def delete(self, actual: S, cluster: Cluster) -> None:
        """Destroy the provider object identified by ``actual``."""

    @abstractmethod
    def render(self, state: S, cluster: Cluster) -> Cluster:
        """Fold ``state`` back into the desired-state document. Idempotent."""

    def tag(self, tags: dict[str, str]) -> None:
        """Attach provider-side metadata. No-op unless the kind supports tags."""
        return None
