"""
Checks — Factories for the check functions the Poller runs.

Each factory closes over its collaborators and returns a zero-argument
callable producing a PollOutcome. Expected "not ready" states are reported,
not raised; query failures become ERROR outcomes.
"""

from __future__ import annotations

from .clients.base import ClusterClient, HttpProber
from .protocol import CheckFn, ClusterQueryError, PollOutcome, ProbeConnectionError


def deployment_ready_check(client: ClusterClient, namespace: str, name: str) -> CheckFn:
    """Ready when every desired replica (at least one) is ready."""

    def check() -> PollOutcome:
        try:
            status = client.get_deployment_replicas(namespace, name)
        except ClusterQueryError as e:
            return PollOutcome.error(e, reason=str(e))
        if status is None:
            return PollOutcome.not_ready(f"deployment {namespace}/{name} not found")
        if status.is_ready:
            return PollOutcome.ready()
        return PollOutcome.not_ready(str(status))

    return check


def ingress_ready_check(client: ClusterClient, namespace: str, name: str) -> CheckFn:
    """Ready when the ingress exists and has at least one routing rule."""

    def check() -> PollOutcome:
        try:
            rules = client.get_ingress_rule_count(namespace, name)
        except ClusterQueryError as e:
            return PollOutcome.error(e, reason=str(e))
        if rules is None:
            return PollOutcome.not_ready(f"ingress {namespace}/{name} not found")
        if rules > 0:
            return PollOutcome.ready()
        return PollOutcome.not_ready("no rules configured")

    return check


def http_endpoint_check(
    prober: HttpProber,
    base_url: str,
    host: str,
    expected_body: str,
) -> CheckFn:
    """
    Ready on HTTP 200 with a body equal to `expected_body`.

    Trailing newlines are stripped from the body before comparing, so an
    echo server answering "foo\\n" matches "foo".
    """
    url = base_url.rstrip("/") + "/"

    def check() -> PollOutcome:
        try:
            resp = prober.get(url, host)
        except ProbeConnectionError as e:
            return PollOutcome.not_ready(f"connection failed: {e}")
        body = resp.body.rstrip("\r\n")
        if resp.status_code != 200:
            return PollOutcome.not_ready(f"HTTP {resp.status_code}, got '{body[:200]}'")
        if body != expected_body:
            return PollOutcome.not_ready(
                f"HTTP 200, got '{body[:200]}', expected '{expected_body}'"
            )
        return PollOutcome.ready()

    return check
