"""
Base Clients — Abstract interfaces to the cluster and to HTTP endpoints.

Checks only talk to these interfaces, so tests can swap in fakes and the
cluster backend (kubectl today) can be replaced without touching a check.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ReplicaStatus:
    """Declared vs. observed replica counts of a deployment."""
    desired: int
    ready: int

    @property
    def is_ready(self) -> bool:
        return self.ready == self.desired and self.desired > 0

    def __str__(self) -> str:
        return f"{self.ready}/{self.desired} replicas ready"


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    body: str


class ClusterClient(ABC):
    """
    Read-only view of the cluster objects the waits observe.

    Every method returns None (or False) when the object does not exist and
    raises ClusterQueryError when the query itself failed.
    """

    @abstractmethod
    def get_deployment_replicas(self, namespace: str, name: str) -> Optional[ReplicaStatus]:
        ...

    @abstractmethod
    def get_ingress_rule_count(self, namespace: str, name: str) -> Optional[int]:
        ...

    @abstractmethod
    def rollout_complete(self, namespace: str, name: str) -> tuple[bool, str]:
        """Whether the deployment's latest rollout finished, plus the status message."""
        ...

    @abstractmethod
    def resource_exists(self, namespace: str, kind: str, name: str) -> bool:
        ...

    @abstractmethod
    def list_pod_phases(self, namespace: str, selector: str) -> dict[str, str]:
        """Map pod name -> status.phase for pods matching a label selector."""
        ...

    @abstractmethod
    def describe(self, namespace: str, kind: str, name: str) -> str:
        ...

    @abstractmethod
    def get_pods_text(self, namespace: str, selector: str) -> str:
        """Human-readable pod listing, for diagnostics."""
        ...


class HttpProber(ABC):
    """Issues GET requests routed by a virtual-host header."""

    @abstractmethod
    def get(self, url: str, host: str) -> HttpResponse:
        """
        Args:
            url:  Full URL to request.
            host: Value of the Host header.

        Raises:
            ProbeConnectionError: no response at all was received.
        """
        ...
