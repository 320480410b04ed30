"""
Configuration — Load and merge config from kubewait.yaml and the environment.

Looks for `kubewait.yaml` in the project root, merges it onto the defaults,
applies environment variable overrides, and freezes the result into a
Settings record that is passed explicitly into every operation.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

CONFIG_FILENAME = "kubewait.yaml"

# env var -> (section, key)
_ENV_OVERRIDES: dict[str, tuple[tuple[str, str], ...]] = {
    "NAMESPACE": (("cluster", "namespace"),),
    "KUBECTL": (("cluster", "kubectl_command"),),
    "DEPLOYMENT_TIMEOUT": (("deployment", "timeout_seconds"),),
    "INGRESS_TIMEOUT": (("ingress", "timeout_seconds"),),
    "INGRESS_SETTLE_SECONDS": (("ingress", "settle_seconds"),),
    "POLL_INTERVAL": (
        ("deployment", "poll_interval_seconds"),
        ("ingress", "poll_interval_seconds"),
    ),
    "HEALTH_CHECK_RETRIES": (("health", "retries"),),
    "HEALTH_CHECK_DELAY": (("health", "delay_seconds"),),
    "HEALTH_STABILIZE_SECONDS": (("health", "stabilize_seconds"),),
    "BASE_URL": (("health", "base_url"),),
}

_NUMERIC_KEYS: dict[str, tuple[str, ...]] = {
    "cluster": ("request_timeout_seconds",),
    "deployment": ("timeout_seconds", "poll_interval_seconds"),
    "ingress": ("timeout_seconds", "poll_interval_seconds", "settle_seconds"),
    "health": ("retries", "delay_seconds", "stabilize_seconds", "request_timeout_seconds"),
}

# Poll budgets and intervals; zero is only valid for the settle delays.
_POSITIVE_KEYS: frozenset[tuple[str, str]] = frozenset({
    ("cluster", "request_timeout_seconds"),
    ("deployment", "timeout_seconds"),
    ("deployment", "poll_interval_seconds"),
    ("ingress", "timeout_seconds"),
    ("ingress", "poll_interval_seconds"),
    ("health", "retries"),
    ("health", "delay_seconds"),
    ("health", "request_timeout_seconds"),
})

_INTEGER_KEYS: frozenset[tuple[str, str]] = frozenset({("health", "retries")})


def load_config(
    project_root: str | Path | None = None,
    env: Optional[Mapping[str, str]] = None,
    fail_on_error: bool = False,
) -> dict[str, Any]:
    """
    Load configuration from kubewait.yaml in the project root.

    Args:
        project_root:  Path to the project root. Defaults to cwd.
        env:           Environment mapping. Defaults to os.environ.
        fail_on_error: Exit with status 2 instead of raising / falling back
                       (the CLI sets this).

    Returns:
        Merged configuration dict with numeric values coerced.
    """
    import yaml

    if project_root is None:
        project_root = Path.cwd()
    else:
        project_root = Path(project_root)
    if env is None:
        env = os.environ

    def _handle_error(msg: str):
        if fail_on_error:
            print(msg, file=sys.stderr)
            raise SystemExit(2)
        # non-CLI callers get an exception
        raise ValueError(msg)

    config = _defaults()
    config_path = project_root / CONFIG_FILENAME

    if config_path.exists():
        user_config: Any = {}
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            msg = f"Failed to load {CONFIG_FILENAME}: {e}"
            if fail_on_error:
                print(msg, file=sys.stderr)
                raise SystemExit(2)
            print(f"Warning: {msg}; using defaults.", file=sys.stderr)
            user_config = {}

        if not isinstance(user_config, dict):
            _handle_error(f"{CONFIG_FILENAME} must contain a mapping at the top level")
        _deep_merge(config, user_config)

    for var, targets in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value is None or value == "":
            continue
        for section, key in targets:
            config.setdefault(section, {})[key] = value

    # Basic type validation / coercion for numeric settings
    for section, keys in _NUMERIC_KEYS.items():
        values = config.get(section, {})
        for key in keys:
            val = values.get(key)
            if isinstance(val, bool) or val is None:
                _handle_error(
                    f"Invalid type for {section}.{key}: expected number, got {type(val).__name__}"
                )
            if isinstance(val, str):
                try:
                    val = float(val) if "." in val else int(val)
                except ValueError:
                    _handle_error(
                        f"Invalid value for {section}.{key}: expected number, got '{val}'"
                    )
            elif not isinstance(val, (int, float)):
                _handle_error(
                    f"Invalid type for {section}.{key}: expected number, got {type(val).__name__}"
                )
            if val < 0:
                _handle_error(f"Invalid value for {section}.{key}: must be >= 0, got {val}")
            if val == 0 and (section, key) in _POSITIVE_KEYS:
                _handle_error(f"Invalid value for {section}.{key}: must be > 0, got {val}")
            if (section, key) in _INTEGER_KEYS and val != int(val):
                _handle_error(f"Invalid value for {section}.{key}: expected integer, got {val}")
            if (section, key) in _INTEGER_KEYS:
                val = int(val)
            values[key] = val

    endpoints = config.get("health", {}).get("endpoints")
    if not isinstance(endpoints, list):
        _handle_error(
            f"Invalid type for health.endpoints: expected list, got {type(endpoints).__name__}"
        )
    for i, entry in enumerate(endpoints):
        if not isinstance(entry, dict) or not entry.get("host") or "expected" not in entry:
            _handle_error(
                f"Invalid health.endpoints[{i}]: expected a mapping with 'host' and 'expected', got {entry!r}"
            )

    return config


def _defaults() -> dict[str, Any]:
    """Return the default configuration."""
    return {
        "cluster": {
            "namespace": "default",
            "kubectl_command": "kubectl",
            "extra_args": [],
            "request_timeout_seconds": 30,
        },
        "deployment": {
            "timeout_seconds": 300,
            "poll_interval_seconds": 3,
        },
        "ingress": {
            "timeout_seconds": 120,
            "poll_interval_seconds": 3,
            "settle_seconds": 15,
        },
        "health": {
            "base_url": "http://localhost",
            "retries": 20,
            "delay_seconds": 3,
            "stabilize_seconds": 10,
            "request_timeout_seconds": 5,
            "deployments": ["foo", "bar"],
            "services": ["foo", "bar"],
            "ingress": "echo-ingress",
            "pod_selector": "component=http-echo",
            "controller_namespace": "ingress-nginx",
            "controller_selector": "app.kubernetes.io/component=controller",
            "endpoints": [
                {"host": "foo.localhost", "expected": "foo"},
                {"host": "bar.localhost", "expected": "bar"},
            ],
        },
    }


def _deep_merge(base: dict, override: dict) -> None:
    """Recursively merge `override` into `base` in place."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


# ── Frozen settings ──────────────────────────────────────────────────

@dataclass(frozen=True)
class ClusterSettings:
    namespace: str = "default"
    kubectl_command: str = "kubectl"
    extra_args: tuple[str, ...] = ()
    request_timeout_seconds: float = 30


@dataclass(frozen=True)
class DeploymentSettings:
    timeout_seconds: float = 300
    poll_interval_seconds: float = 3


@dataclass(frozen=True)
class IngressSettings:
    timeout_seconds: float = 120
    poll_interval_seconds: float = 3
    settle_seconds: float = 15


@dataclass(frozen=True)
class Endpoint:
    host: str
    expected: str


@dataclass(frozen=True)
class HealthSettings:
    base_url: str = "http://localhost"
    retries: int = 20
    delay_seconds: float = 3
    stabilize_seconds: float = 10
    request_timeout_seconds: float = 5
    deployments: tuple[str, ...] = ("foo", "bar")
    services: tuple[str, ...] = ("foo", "bar")
    ingress: str = "echo-ingress"
    pod_selector: str = "component=http-echo"
    controller_namespace: str = "ingress-nginx"
    controller_selector: str = "app.kubernetes.io/component=controller"
    endpoints: tuple[Endpoint, ...] = (
        Endpoint("foo.localhost", "foo"),
        Endpoint("bar.localhost", "bar"),
    )

    @property
    def endpoint_timeout(self) -> float:
        """Total budget per endpoint: `retries` attempts, `delay_seconds` apart."""
        return self.retries * self.delay_seconds


@dataclass(frozen=True)
class Settings:
    """Immutable configuration record handed to each operation."""
    cluster: ClusterSettings = ClusterSettings()
    deployment: DeploymentSettings = DeploymentSettings()
    ingress: IngressSettings = IngressSettings()
    health: HealthSettings = HealthSettings()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        cluster = data.get("cluster", {})
        deployment = data.get("deployment", {})
        ingress = data.get("ingress", {})
        health = data.get("health", {})
        return cls(
            cluster=ClusterSettings(
                namespace=str(cluster.get("namespace", "default")),
                kubectl_command=str(cluster.get("kubectl_command", "kubectl")),
                extra_args=tuple(str(a) for a in cluster.get("extra_args") or []),
                request_timeout_seconds=cluster.get("request_timeout_seconds", 30),
            ),
            deployment=DeploymentSettings(
                timeout_seconds=deployment.get("timeout_seconds", 300),
                poll_interval_seconds=deployment.get("poll_interval_seconds", 3),
            ),
            ingress=IngressSettings(
                timeout_seconds=ingress.get("timeout_seconds", 120),
                poll_interval_seconds=ingress.get("poll_interval_seconds", 3),
                settle_seconds=ingress.get("settle_seconds", 15),
            ),
            health=HealthSettings(
                base_url=str(health.get("base_url", "http://localhost")).rstrip("/"),
                retries=int(health.get("retries", 20)),
                delay_seconds=health.get("delay_seconds", 3),
                stabilize_seconds=health.get("stabilize_seconds", 10),
                request_timeout_seconds=health.get("request_timeout_seconds", 5),
                deployments=tuple(health.get("deployments") or ()),
                services=tuple(health.get("services") or ()),
                ingress=str(health.get("ingress", "")),
                pod_selector=str(health.get("pod_selector", "")),
                controller_namespace=str(health.get("controller_namespace", "ingress-nginx")),
                controller_selector=str(
                    health.get("controller_selector", "app.kubernetes.io/component=controller")
                ),
                endpoints=tuple(
                    Endpoint(host=str(e["host"]), expected=str(e["expected"]))
                    for e in health.get("endpoints") or ()
                ),
            ),
        )


def load_settings(
    project_root: str | Path | None = None,
    env: Optional[Mapping[str, str]] = None,
    fail_on_error: bool = False,
) -> Settings:
    """load_config() frozen into a Settings record."""
    return Settings.from_dict(load_config(project_root, env=env, fail_on_error=fail_on_error))
