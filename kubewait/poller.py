"""
Poller — Run a check on a fixed cadence until it is ready or time runs out.

The same primitive backs every wait in kubewait; only the check function
differs. A timeout is a normal, reported outcome (``succeeded=False``), not
an exception. The caller decides whether it is fatal.

Usage:
    result = Poller().poll(PollSpec("deployment foo", check, timeout=300, interval=3))
    if result.succeeded:
        settle(15, "ingress propagation")
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from . import console
from .protocol import OutcomeKind, PollOutcome, PollResult, PollSpec

logger = logging.getLogger(__name__)


class Poller:
    """
    Polls a PollSpec to completion on the calling thread.

    Args:
        clock:  Monotonic time source in seconds.
        sleep:  Blocking sleep function.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.clock = clock
        self.sleep = sleep

    def poll(self, spec: PollSpec) -> PollResult:
        """Check, then decide whether to loop. Never raises for check failures."""
        start = self.clock()
        attempts = 0
        last_reason: str | None = None

        while True:
            outcome = self._invoke(spec)
            attempts += 1
            elapsed = self.clock() - start

            if outcome.is_ready:
                console.success(
                    f"{spec.description}: ready after {attempts} attempt(s) ({elapsed:.0f}s)"
                )
                return PollResult(
                    succeeded=True,
                    elapsed=elapsed,
                    attempts=attempts,
                    last_reason=None,
                    description=spec.description,
                )

            last_reason = outcome.reason
            progress = (
                f"{spec.description}: attempt {attempts}, "
                f"{elapsed:.0f}s/{spec.timeout:.0f}s: {outcome.reason}"
            )
            if outcome.kind == OutcomeKind.ERROR:
                console.warning(progress)
            else:
                console.info(progress)

            if elapsed >= spec.timeout:
                break

            # No further attempt can start inside the budget: use it up and stop.
            if elapsed + spec.interval >= spec.timeout:
                self.sleep(spec.timeout - elapsed)
                elapsed = self.clock() - start
                break

            self.sleep(spec.interval)

        console.error(
            f"{spec.description}: not ready after {attempts} attempt(s) "
            f"({elapsed:.0f}s/{spec.timeout:.0f}s), last: {last_reason}"
        )
        return PollResult(
            succeeded=False,
            elapsed=elapsed,
            attempts=attempts,
            last_reason=last_reason,
            description=spec.description,
        )

    def _invoke(self, spec: PollSpec) -> PollOutcome:
        try:
            outcome = spec.check_fn()
        except Exception as e:
            logger.debug("Check for %s raised", spec.description, exc_info=True)
            return PollOutcome.error(e)
        if not isinstance(outcome, PollOutcome):
            return PollOutcome.error(
                TypeError(f"check returned {type(outcome).__name__}, expected PollOutcome")
            )
        return outcome


def settle(
    seconds: float,
    description: str,
    sleep: Callable[[float], None] = time.sleep,
) -> float:
    """
    Fixed, unconditional grace period after a readiness signal.

    Separate from Poller.poll: it is never retried and always waits the full
    delay. Returns the number of seconds slept.
    """
    if seconds <= 0:
        return 0.0
    console.info(f"⏳ Allowing {seconds:g}s for {description}…")
    sleep(seconds)
    return float(seconds)
