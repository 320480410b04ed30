"""
Console — Timestamped, colored progress lines for CI logs.
"""

from __future__ import annotations

import time


# ── ANSI colors for terminal output ──────────────────────────────────

class _C:
    RESET   = "\033[0m"
    BOLD    = "\033[1m"
    DIM     = "\033[2m"
    GREEN   = "\033[92m"
    YELLOW  = "\033[93m"
    RED     = "\033[91m"
    CYAN    = "\033[96m"
    BLUE    = "\033[94m"


def _log(icon: str, msg: str, color: str = _C.RESET) -> None:
    ts = time.strftime("%H:%M:%S")
    print(f"{_C.BLUE}[{ts}]{_C.RESET} {icon} {color}{msg}{_C.RESET}", flush=True)


def info(msg: str) -> None:
    _log("•", msg)


def step(msg: str) -> None:
    _log("▶", msg, _C.CYAN)


def success(msg: str) -> None:
    _log("✅", msg, _C.GREEN)


def warning(msg: str) -> None:
    _log("⚠️ ", msg, _C.YELLOW)


def error(msg: str) -> None:
    _log("❌", msg, _C.RED)


def detail(text: str) -> None:
    """Echo multi-line command output (kubectl describe…) dimmed."""
    for line in text.rstrip().splitlines():
        print(f"    {_C.DIM}{line}{_C.RESET}")
