"""
Waits — Deployment and ingress wait operations.

Each operation polls one readiness check, runs its follow-up step (a rollout
verification or a settling delay), dumps diagnostics on failure, and returns
an OperationReport. Nothing here raises for a failed wait; the caller maps
the report to an exit code.
"""

from __future__ import annotations

import logging
from typing import Optional

from . import console
from .checks import deployment_ready_check, ingress_ready_check
from .clients.base import ClusterClient
from .config import Settings
from .poller import Poller, settle
from .protocol import ClusterQueryError, OperationReport, PollSpec, StepResult, UsageError

logger = logging.getLogger(__name__)


def wait_for_deployment(
    client: ClusterClient,
    settings: Settings,
    name: str,
    namespace: Optional[str] = None,
    timeout: Optional[float] = None,
    poller: Optional[Poller] = None,
) -> OperationReport:
    """
    Wait until every desired replica of a deployment is ready.

    Args:
        client:     Cluster to query.
        settings:   Frozen configuration.
        name:       Deployment name (required).
        namespace:  Defaults to settings.cluster.namespace.
        timeout:    Seconds; defaults to settings.deployment.timeout_seconds.
        poller:     Poller to use (tests inject a fake clock through it).

    Returns:
        Report with a "ready" step and, if that passed, a "rollout" step.
    """
    if not name:
        raise UsageError("Deployment name is required")
    namespace = namespace or settings.cluster.namespace
    timeout = timeout if timeout is not None else settings.deployment.timeout_seconds
    poller = poller or Poller()
    report = OperationReport(operation=f"deployment {namespace}/{name}")

    console.step(f"Waiting for deployment {name} in namespace {namespace}")
    result = poller.poll(
        PollSpec(
            description=f"deployment {name}",
            check_fn=deployment_ready_check(client, namespace, name),
            timeout=timeout,
            interval=settings.deployment.poll_interval_seconds,
        )
    )
    report.add(StepResult("ready", result.succeeded, result.last_reason or "", poll=result))

    if result.succeeded:
        try:
            complete, message = client.rollout_complete(namespace, name)
        except ClusterQueryError as e:
            complete, message = False, str(e)
        report.add(StepResult("rollout", complete, message))
        if complete:
            console.success(f"Deployment {name} is fully ready and healthy")
        else:
            console.error(f"Replicas are ready but the rollout is not complete: {message}")
    else:
        console.error(f"Timeout waiting for deployment {name}")

    if not report.passed:
        console.info("Gathering debug information…")
        _dump(lambda: client.describe(namespace, "deployment", name))
        _dump(lambda: client.get_pods_text(namespace, f"app={name}"))
    return report


def wait_for_ingress(
    client: ClusterClient,
    settings: Settings,
    name: str,
    namespace: Optional[str] = None,
    timeout: Optional[float] = None,
    poller: Optional[Poller] = None,
) -> OperationReport:
    """
    Wait until an ingress has routing rules, then let the controller catch up.

    The settling delay is its own step, applied only after a successful poll.
    """
    if not name:
        raise UsageError("Ingress name is required")
    namespace = namespace or settings.cluster.namespace
    timeout = timeout if timeout is not None else settings.ingress.timeout_seconds
    poller = poller or Poller()
    report = OperationReport(operation=f"ingress {namespace}/{name}")

    console.step(f"Waiting for ingress {name} in namespace {namespace}")
    result = poller.poll(
        PollSpec(
            description=f"ingress {name}",
            check_fn=ingress_ready_check(client, namespace, name),
            timeout=timeout,
            interval=settings.ingress.poll_interval_seconds,
        )
    )
    report.add(StepResult("ready", result.succeeded, result.last_reason or "", poll=result))

    if not result.succeeded:
        console.error(f"Timeout waiting for ingress {name}")
        _dump(lambda: client.describe(namespace, "ingress", name))
        return report

    slept = settle(settings.ingress.settle_seconds, "the ingress to stabilize", sleep=poller.sleep)
    report.add(StepResult("settle", True, f"{slept:g}s"))
    console.success(f"Ingress {name} ready for traffic")
    return report


def _dump(query) -> None:
    """Best-effort diagnostics; a failing query is logged, never fatal."""
    try:
        console.detail(query())
    except ClusterQueryError as e:
        console.warning(f"Could not gather diagnostics: {e}")
