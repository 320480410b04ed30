"""
kubewait Protocol — Poll specs, outcomes and results.

This module defines the canonical data structures used by the entire system:
poller, checks, wait operations and the CLI all speak this protocol.

Assumptions and edge cases:
- PollSpec, PollOutcome and PollResult are frozen; a spec is built per wait
  operation and consumed exactly once by the Poller.
- A check function reports "not ready" through a PollOutcome rather than by
  raising. Anything it does raise is turned into an ERROR outcome by the
  Poller, so transient failures never abort a poll early.
- OperationReport collects every step of an operation, including the ones
  that ran after an earlier failure, so a partial success is visible.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional


class UsageError(ValueError):
    """A required argument is missing or invalid; nothing was polled."""


class ClusterQueryError(RuntimeError):
    """A single cluster query failed (API unreachable, kubectl crashed…)."""


class ProbeConnectionError(ConnectionError):
    """An HTTP probe could not get any response from the endpoint."""


class OutcomeKind(str, Enum):
    """What a single check attempt observed."""
    READY = "READY"
    NOT_READY = "NOT_READY"
    ERROR = "ERROR"


@dataclass(frozen=True)
class PollOutcome:
    """
    Result of one invocation of a check function.

    Use the constructors rather than building one by hand:

        PollOutcome.ready()
        PollOutcome.not_ready("2/3 replicas ready")
        PollOutcome.error(exc)
    """
    kind: OutcomeKind
    reason: str = ""
    cause: Optional[BaseException] = None

    @classmethod
    def ready(cls) -> PollOutcome:
        return cls(OutcomeKind.READY)

    @classmethod
    def not_ready(cls, reason: str) -> PollOutcome:
        return cls(OutcomeKind.NOT_READY, reason=reason)

    @classmethod
    def error(cls, cause: BaseException, reason: str = "") -> PollOutcome:
        return cls(OutcomeKind.ERROR, reason=reason or f"{type(cause).__name__}: {cause}", cause=cause)

    @property
    def is_ready(self) -> bool:
        return self.kind == OutcomeKind.READY


CheckFn = Callable[[], PollOutcome]


@dataclass(frozen=True)
class PollSpec:
    """
    What to poll and for how long.

    Attributes:
        description:  Human-readable name used in every progress line.
        check_fn:     Zero-argument callable returning a PollOutcome.
        timeout:      Total budget in seconds (> 0).
        interval:     Delay between attempts in seconds (> 0).
    """
    description: str
    check_fn: CheckFn
    timeout: float
    interval: float

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        if self.interval <= 0:
            raise ValueError(f"interval must be > 0, got {self.interval}")


@dataclass(frozen=True)
class PollResult:
    """Returned once by the Poller when a poll terminates."""
    succeeded: bool
    elapsed: float
    attempts: int
    last_reason: Optional[str] = None
    description: str = ""

    # ── Serialization ────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "succeeded": self.succeeded,
            "elapsed": round(self.elapsed, 3),
            "attempts": self.attempts,
            "last_reason": self.last_reason,
        }

    def __str__(self) -> str:
        icon = "✅" if self.succeeded else "❌"
        text = f"{icon} {self.description}: {self.attempts} attempt(s) in {self.elapsed:.1f}s"
        if self.last_reason:
            text += f" (last: {self.last_reason})"
        return text


@dataclass
class StepResult:
    """Outcome of one named step of an operation."""
    name: str
    passed: bool
    detail: str = ""
    poll: Optional[PollResult] = None

    def to_dict(self) -> dict:
        data: dict = {"name": self.name, "passed": self.passed, "detail": self.detail}
        if self.poll is not None:
            data["poll"] = self.poll.to_dict()
        return data


@dataclass
class OperationReport:
    """
    Every step an operation ran, in order.

    The operation passed only if every step passed. Steps are never
    short-circuited, so one report may hold both passing and failing steps.
    """
    operation: str
    steps: list[StepResult] = field(default_factory=list)

    def add(self, step: StepResult) -> StepResult:
        self.steps.append(step)
        return step

    @property
    def passed(self) -> bool:
        return bool(self.steps) and all(s.passed for s in self.steps)

    @property
    def failed_steps(self) -> list[StepResult]:
        return [s for s in self.steps if not s.passed]

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "passed": self.passed,
            "steps": [s.to_dict() for s in self.steps],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
