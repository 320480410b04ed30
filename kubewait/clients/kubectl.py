"""
Kubectl Client — Cluster queries through the `kubectl` command line.

Every query runs `kubectl` with an argv list (no shell), a per-call timeout
and `-o json` where the result is parsed. "Not found" is recognised from
kubectl's `(NotFound)` error and reported as None/False; any other failure
raises ClusterQueryError so the poller can treat it as transient.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Any, Optional

from ..protocol import ClusterQueryError
from .base import ClusterClient, ReplicaStatus

logger = logging.getLogger(__name__)

_SAFE_FLAG_RE = re.compile(r"^-{1,2}[A-Za-z0-9][A-Za-z0-9_\-]*(=[A-Za-z0-9@._:/\\\-]+)?$")
_SAFE_VAL_RE = re.compile(r"^[A-Za-z0-9@._:/\\\-]+$")
_NOT_FOUND_MARKER = "(NotFound)"


class KubectlClient(ClusterClient):
    """
    ClusterClient backed by the kubectl binary.

    Args:
        kubectl_command:  Command name or absolute path of kubectl.
        extra_args:       Global arguments added to every call, e.g.
                          ["--context", "kind-ci"]. Only plain flag/value
                          tokens are accepted.
        timeout_seconds:  Per-call timeout.
    """

    def __init__(
        self,
        kubectl_command: str = "kubectl",
        extra_args: list[str] | tuple[str, ...] | None = None,
        timeout_seconds: float = 30,
    ):
        self.kubectl_command = kubectl_command
        self.timeout_seconds = float(timeout_seconds)
        self.extra_args = list(extra_args or [])
        for a in self.extra_args:
            if not (_SAFE_FLAG_RE.match(a) or _SAFE_VAL_RE.match(a)):
                raise ValueError(f"Invalid extra kubectl arg: {a}")
        self._exe: Optional[str] = None

    # ── Queries ──────────────────────────────────────────────────────

    def get_deployment_replicas(self, namespace: str, name: str) -> Optional[ReplicaStatus]:
        obj = self._get_json(["get", "deployment", name, "-n", namespace])
        if obj is None:
            return None
        # readyReplicas is omitted from status while it is zero
        desired = (obj.get("spec") or {}).get("replicas", 0) or 0
        ready = (obj.get("status") or {}).get("readyReplicas", 0) or 0
        return ReplicaStatus(desired=int(desired), ready=int(ready))

    def get_ingress_rule_count(self, namespace: str, name: str) -> Optional[int]:
        obj = self._get_json(["get", "ingress", name, "-n", namespace])
        if obj is None:
            return None
        return len((obj.get("spec") or {}).get("rules") or [])

    def rollout_complete(self, namespace: str, name: str) -> tuple[bool, str]:
        proc = self._run(
            ["rollout", "status", f"deployment/{name}", "-n", namespace, "--watch=false"]
        )
        message = (proc.stdout or proc.stderr or "").strip()
        if proc.returncode != 0:
            if _is_not_found(proc.stderr):
                return False, f"deployment {name} not found"
            raise ClusterQueryError(_failure_message(proc))
        return "successfully rolled out" in message, message

    def resource_exists(self, namespace: str, kind: str, name: str) -> bool:
        proc = self._run(["get", kind, name, "-n", namespace, "-o", "name"])
        if proc.returncode == 0:
            return True
        if _is_not_found(proc.stderr):
            return False
        raise ClusterQueryError(_failure_message(proc))

    def list_pod_phases(self, namespace: str, selector: str) -> dict[str, str]:
        obj = self._get_json(["get", "pods", "-n", namespace, "-l", selector])
        if obj is None:
            return {}
        phases: dict[str, str] = {}
        for item in obj.get("items") or []:
            pod_name = (item.get("metadata") or {}).get("name", "?")
            phases[pod_name] = (item.get("status") or {}).get("phase", "Unknown")
        return phases

    def describe(self, namespace: str, kind: str, name: str) -> str:
        return self._text(["describe", kind, name, "-n", namespace])

    def get_pods_text(self, namespace: str, selector: str) -> str:
        return self._text(["get", "pods", "-n", namespace, "-l", selector, "-o", "wide"])

    # ── Plumbing ─────────────────────────────────────────────────────

    def _resolve(self) -> str:
        if self._exe is None:
            exe = shutil.which(self.kubectl_command)
            if not exe:
                # If an absolute path was provided, check directly
                if Path(self.kubectl_command).is_absolute() and os.access(self.kubectl_command, os.X_OK):
                    exe = self.kubectl_command
                else:
                    raise ClusterQueryError(
                        f"Command '{self.kubectl_command}' not found or not executable"
                    )
            self._exe = exe
        return self._exe

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        cmd = [self._resolve(), *self.extra_args, *args]
        logger.debug("Running %s", cmd)
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            raise ClusterQueryError(
                f"kubectl {' '.join(args)} timed out after {self.timeout_seconds:g}s"
            )
        except OSError as e:
            raise ClusterQueryError(f"Could not run kubectl: {e}") from e

    def _get_json(self, args: list[str]) -> Optional[dict[str, Any]]:
        proc = self._run([*args, "-o", "json"])
        if proc.returncode != 0:
            if _is_not_found(proc.stderr):
                return None
            raise ClusterQueryError(_failure_message(proc))
        try:
            return json.loads(proc.stdout)
        except json.JSONDecodeError as e:
            raise ClusterQueryError(f"kubectl returned invalid JSON: {e}") from e

    def _text(self, args: list[str]) -> str:
        proc = self._run(args)
        if proc.returncode != 0:
            raise ClusterQueryError(_failure_message(proc))
        return proc.stdout


def _is_not_found(stderr: Optional[str]) -> bool:
    return bool(stderr) and _NOT_FOUND_MARKER in stderr


def _failure_message(proc: subprocess.CompletedProcess) -> str:
    err = (proc.stderr or "").strip() or f"exit code {proc.returncode}"
    return f"kubectl failed: {err}"
