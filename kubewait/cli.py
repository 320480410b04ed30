"""
kubewait CLI — Readiness gates for CI pipelines.

Commands:
    kubewait deployment <namespace> <name> [timeout_seconds]
    kubewait ingress <ingress_name> [timeout_seconds] [namespace]
    kubewait health [--base-url URL] [--retries N] [--delay S]

Exit code 0 when every step passed, 1 on any failure (including a missing
required argument), 2 on an unreadable config file.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys

from . import console
from .config import Settings, load_settings
from .poller import Poller
from .protocol import OperationReport, UsageError


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that reports usage problems with exit code 1."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        print(f"{self.prog}: error: {message}", file=sys.stderr)
        sys.exit(1)


def _seconds(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number of seconds: '{value}'")
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"seconds must be > 0, got {value}")
    return seconds


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: '{value}'")
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {value}")
    return n


# Seams for tests: swap the cluster, prober or clock without touching argv.

def _make_poller() -> Poller:
    return Poller()


def _make_cluster(settings: Settings):
    from .clients.kubectl import KubectlClient

    return KubectlClient(
        kubectl_command=settings.cluster.kubectl_command,
        extra_args=settings.cluster.extra_args,
        timeout_seconds=settings.cluster.request_timeout_seconds,
    )


def _make_prober(settings: Settings):
    from .clients.http import RequestsProber

    return RequestsProber(timeout_seconds=settings.health.request_timeout_seconds)


def _finish(report: OperationReport, args: argparse.Namespace) -> None:
    if args.json:
        print(report.to_json())
    sys.exit(report.exit_code)


def cmd_deployment(args: argparse.Namespace) -> None:
    """Wait for a deployment's replicas to become ready."""
    from .waits import wait_for_deployment

    if not args.name:
        raise UsageError("Deployment name is required")
    settings = load_settings(args.project_root, fail_on_error=True)
    try:
        cluster = _make_cluster(settings)
    except ValueError as e:
        raise UsageError(str(e))
    report = wait_for_deployment(
        cluster,
        settings,
        args.name,
        namespace=args.namespace,
        timeout=args.timeout,
        poller=_make_poller(),
    )
    _finish(report, args)


def cmd_ingress(args: argparse.Namespace) -> None:
    """Wait for an ingress to have routing rules, then settle."""
    from .waits import wait_for_ingress

    if not args.name:
        raise UsageError("Ingress name is required")
    settings = load_settings(args.project_root, fail_on_error=True)
    try:
        cluster = _make_cluster(settings)
    except ValueError as e:
        raise UsageError(str(e))
    report = wait_for_ingress(
        cluster,
        settings,
        args.name,
        namespace=args.namespace,
        timeout=args.timeout,
        poller=_make_poller(),
    )
    _finish(report, args)


def cmd_health(args: argparse.Namespace) -> None:
    """Run the multi-phase health check."""
    from .health import run_health_check

    settings = load_settings(args.project_root, fail_on_error=True)
    health = settings.health
    if args.base_url:
        health = dataclasses.replace(health, base_url=args.base_url.rstrip("/"))
    if args.retries is not None:
        health = dataclasses.replace(health, retries=args.retries)
    if args.delay is not None:
        health = dataclasses.replace(health, delay_seconds=args.delay)
    settings = dataclasses.replace(settings, health=health)
    if args.namespace:
        settings = dataclasses.replace(
            settings, cluster=dataclasses.replace(settings.cluster, namespace=args.namespace)
        )

    try:
        cluster = _make_cluster(settings)
    except ValueError as e:
        raise UsageError(str(e))
    report = run_health_check(cluster, _make_prober(settings), settings, poller=_make_poller())
    _finish(report, args)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="kubewait",
        description="⏳ kubewait — Wait for Kubernetes workloads to become ready",
    )
    parser.add_argument(
        "--project-root", "-p",
        default=".",
        help="Directory containing kubewait.yaml (default: current dir)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Print the final report as JSON",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ── deployment ────────────────────────────────────────────────────
    dep_parser = subparsers.add_parser(
        "deployment", help="Wait for a deployment's replicas to be ready"
    )
    dep_parser.add_argument("namespace", nargs="?", default=None, help="Namespace (default: config)")
    dep_parser.add_argument("name", nargs="?", default=None, help="Deployment name")
    dep_parser.add_argument(
        "timeout", nargs="?", type=_seconds, default=None,
        help="Timeout in seconds (default: 300)",
    )
    dep_parser.set_defaults(func=cmd_deployment)

    # ── ingress ───────────────────────────────────────────────────────
    ing_parser = subparsers.add_parser(
        "ingress", help="Wait for an ingress to have routing rules"
    )
    ing_parser.add_argument("name", nargs="?", default=None, help="Ingress name")
    ing_parser.add_argument(
        "timeout", nargs="?", type=_seconds, default=None,
        help="Timeout in seconds (default: 120)",
    )
    ing_parser.add_argument("namespace", nargs="?", default=None, help="Namespace (default: config)")
    ing_parser.set_defaults(func=cmd_ingress)

    # ── health ────────────────────────────────────────────────────────
    health_parser = subparsers.add_parser(
        "health", help="Validate resources, controller and endpoints"
    )
    health_parser.add_argument("--base-url", default=None, help="Base URL of the ingress")
    health_parser.add_argument(
        "--retries", type=_positive_int, default=None,
        help="Attempts per endpoint (default: 20)",
    )
    health_parser.add_argument(
        "--delay", type=_seconds, default=None,
        help="Seconds between endpoint attempts (default: 3)",
    )
    health_parser.add_argument("--namespace", "-n", default=None, help="Namespace (default: config)")
    health_parser.set_defaults(func=cmd_health)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        args.func(args)
    except UsageError as e:
        console.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        console.warning("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
