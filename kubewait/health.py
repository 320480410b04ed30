"""
Health Check — Multi-phase validation that the demo stack serves traffic.

Phases:
    1. Kubernetes resources: deployments, services, ingress, pod phases
    2. Ingress controller pods are running
    3. Settle, so freshly routed services can stabilize
    4. End-to-end HTTP checks of every configured endpoint

Phases never short-circuit: a failure is recorded and the remaining phases
still run, so a single report shows everything that is wrong.
"""

from __future__ import annotations

import logging
from typing import Optional

from . import console
from .checks import http_endpoint_check
from .clients.base import ClusterClient, HttpProber
from .config import Settings
from .poller import Poller, settle
from .protocol import ClusterQueryError, OperationReport, PollSpec, StepResult

logger = logging.getLogger(__name__)


def run_health_check(
    client: ClusterClient,
    prober: HttpProber,
    settings: Settings,
    poller: Optional[Poller] = None,
) -> OperationReport:
    """Run every phase and return the combined report."""
    poller = poller or Poller()
    cfg = settings.health
    report = OperationReport(operation="health")

    console.step("🏥 Starting comprehensive health validation…")

    # Phase 1
    console.step("Validating Kubernetes resources…")
    for step in validate_resources(client, settings):
        report.add(step)

    # Phase 2
    console.step("Validating ingress controller…")
    report.add(validate_ingress_controller(client, settings))

    # Phase 3
    slept = settle(cfg.stabilize_seconds, "services to stabilize", sleep=poller.sleep)
    report.add(StepResult("stabilize", True, f"{slept:g}s"))

    # Phase 4
    console.step("🌐 Testing end-to-end connectivity…")
    for endpoint in cfg.endpoints:
        console.info(f"Testing endpoint: {endpoint.host} (expecting: '{endpoint.expected}')")
        result = poller.poll(
            PollSpec(
                description=endpoint.host,
                check_fn=http_endpoint_check(prober, cfg.base_url, endpoint.host, endpoint.expected),
                timeout=cfg.endpoint_timeout,
                interval=cfg.delay_seconds,
            )
        )
        report.add(
            StepResult(f"endpoint {endpoint.host}", result.succeeded, result.last_reason or "", poll=result)
        )

    if report.passed:
        console.success("🎉 All health checks passed! System is ready for load testing.")
    else:
        failed = ", ".join(s.name for s in report.failed_steps)
        console.error(f"Health check failures detected: {failed}")
    return report


def validate_resources(client: ClusterClient, settings: Settings) -> list[StepResult]:
    """One-shot checks of the stack's Kubernetes objects."""
    cfg = settings.health
    namespace = settings.cluster.namespace
    steps: list[StepResult] = []

    for name in cfg.deployments:
        try:
            status = client.get_deployment_replicas(namespace, name)
        except ClusterQueryError as e:
            steps.append(_fail(f"deployment {name}", str(e)))
            continue
        if status is None:
            steps.append(_fail(f"deployment {name}", "not found"))
        elif status.is_ready:
            steps.append(_pass(f"deployment {name}", str(status)))
        else:
            steps.append(_fail(f"deployment {name}", str(status)))

    for name in cfg.services:
        steps.append(_exists(client, namespace, "service", name))

    if cfg.ingress:
        steps.append(_exists(client, namespace, "ingress", cfg.ingress))

    if cfg.pod_selector:
        try:
            phases = client.list_pod_phases(namespace, cfg.pod_selector)
        except ClusterQueryError as e:
            steps.append(_fail("pods", str(e)))
        else:
            unhealthy = sorted(p for p, phase in phases.items() if phase != "Running")
            if not phases:
                steps.append(_fail("pods", f"no pods match {cfg.pod_selector}"))
            elif unhealthy:
                steps.append(_fail("pods", f"{len(unhealthy)} unhealthy: {', '.join(unhealthy)}"))
            else:
                steps.append(_pass("pods", f"{len(phases)} running"))
    return steps


def validate_ingress_controller(client: ClusterClient, settings: Settings) -> StepResult:
    cfg = settings.health
    try:
        phases = client.list_pod_phases(cfg.controller_namespace, cfg.controller_selector)
    except ClusterQueryError as e:
        return _fail("ingress controller", str(e))
    running = sum(1 for phase in phases.values() if phase == "Running")
    if running > 0:
        return _pass("ingress controller", f"{running} healthy pod(s)")
    step = _fail("ingress controller", "no running controller pods")
    try:
        console.detail(client.get_pods_text(cfg.controller_namespace, cfg.controller_selector))
    except ClusterQueryError as e:
        logger.warning("Could not list controller pods: %s", e)
    return step


def _exists(client: ClusterClient, namespace: str, kind: str, name: str) -> StepResult:
    try:
        found = client.resource_exists(namespace, kind, name)
    except ClusterQueryError as e:
        return _fail(f"{kind} {name}", str(e))
    if found:
        return _pass(f"{kind} {name}", "found")
    return _fail(f"{kind} {name}", "not found")


def _pass(name: str, detail: str) -> StepResult:
    console.success(f"  {name}: {detail}")
    return StepResult(name, True, detail)


def _fail(name: str, detail: str) -> StepResult:
    console.error(f"  {name}: {detail}")
    return StepResult(name, False, detail)
