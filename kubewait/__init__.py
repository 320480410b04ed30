# kubewait — Readiness gates for Kubernetes CI pipelines
# Polls deployments, ingresses and HTTP endpoints until ready or timed out.

__version__ = "0.1.0"

from .protocol import (
    OperationReport,
    OutcomeKind,
    PollOutcome,
    PollResult,
    PollSpec,
    StepResult,
    UsageError,
)
from .poller import Poller, settle
from pathlib import Path
from typing import Optional

__all__ = [
    "OperationReport",
    "OutcomeKind",
    "PollOutcome",
    "PollResult",
    "PollSpec",
    "StepResult",
    "UsageError",
    "Poller",
    "settle",
    "wait_for_deployment",
    "wait_for_ingress",
    "check_health",
]


def wait_for_deployment(
    name: str,
    namespace: Optional[str] = None,
    timeout: Optional[float] = None,
    project_root: str | Path | None = None,
) -> OperationReport:
    """
    Wait for a deployment using the project's kubewait.yaml and environment.

    Args:
        name:          Deployment name.
        namespace:     Namespace (default from config, usually "default").
        timeout:       Seconds to wait (default from config, 300).
        project_root:  Where to look for kubewait.yaml (default: cwd).

    Returns:
        The OperationReport; check `.passed`.
    """
    from .cli import _make_cluster
    from .config import load_settings
    from .waits import wait_for_deployment as _wait

    settings = load_settings(project_root)
    return _wait(_make_cluster(settings), settings, name, namespace=namespace, timeout=timeout)


def wait_for_ingress(
    name: str,
    timeout: Optional[float] = None,
    namespace: Optional[str] = None,
    project_root: str | Path | None = None,
) -> OperationReport:
    """Wait for an ingress to have rules, then apply the settling delay."""
    from .cli import _make_cluster
    from .config import load_settings
    from .waits import wait_for_ingress as _wait

    settings = load_settings(project_root)
    return _wait(_make_cluster(settings), settings, name, namespace=namespace, timeout=timeout)


def check_health(project_root: str | Path | None = None) -> OperationReport:
    """Run the multi-phase health check."""
    from .cli import _make_cluster, _make_prober
    from .config import load_settings
    from .health import run_health_check

    settings = load_settings(project_root)
    return run_health_check(_make_cluster(settings), _make_prober(settings), settings)
