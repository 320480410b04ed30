"""
Tests for kubewait.protocol — outcomes, specs, results and reports.
"""

import json

import pytest

from kubewait.protocol import (
    OperationReport,
    OutcomeKind,
    PollOutcome,
    PollResult,
    PollSpec,
    StepResult,
)


class TestPollOutcome:
    def test_kind_values(self):
        assert OutcomeKind.READY.value == "READY"
        assert OutcomeKind.NOT_READY.value == "NOT_READY"
        assert OutcomeKind.ERROR.value == "ERROR"

    def test_ready(self):
        outcome = PollOutcome.ready()
        assert outcome.is_ready
        assert outcome.reason == ""

    def test_not_ready_keeps_reason(self):
        outcome = PollOutcome.not_ready("0/3 replicas ready")
        assert not outcome.is_ready
        assert outcome.kind == OutcomeKind.NOT_READY
        assert outcome.reason == "0/3 replicas ready"

    def test_error_derives_reason_from_cause(self):
        cause = RuntimeError("connection refused")
        outcome = PollOutcome.error(cause)
        assert outcome.kind == OutcomeKind.ERROR
        assert outcome.cause is cause
        assert outcome.reason == "RuntimeError: connection refused"

    def test_error_explicit_reason(self):
        outcome = PollOutcome.error(RuntimeError("x"), reason="kubectl failed")
        assert outcome.reason == "kubectl failed"


class TestPollSpec:
    def test_valid(self):
        spec = PollSpec("thing", PollOutcome.ready, timeout=10, interval=3)
        assert spec.timeout == 10
        assert spec.interval == 3

    @pytest.mark.parametrize("timeout,interval", [(0, 3), (-1, 3), (10, 0), (10, -2)])
    def test_rejects_non_positive(self, timeout, interval):
        with pytest.raises(ValueError):
            PollSpec("thing", PollOutcome.ready, timeout=timeout, interval=interval)

    def test_frozen(self):
        spec = PollSpec("thing", PollOutcome.ready, timeout=10, interval=3)
        with pytest.raises(Exception):
            spec.timeout = 20


class TestPollResult:
    def test_to_dict(self):
        result = PollResult(succeeded=False, elapsed=9.0004, attempts=3, last_reason="nope", description="foo")
        d = result.to_dict()
        assert d == {
            "description": "foo",
            "succeeded": False,
            "elapsed": 9.0,
            "attempts": 3,
            "last_reason": "nope",
        }

    def test_str(self):
        ok = PollResult(succeeded=True, elapsed=6.0, attempts=3, description="deployment foo")
        assert "✅" in str(ok)
        assert "3 attempt(s)" in str(ok)

        bad = PollResult(succeeded=False, elapsed=9.0, attempts=3, last_reason="wrong", description="bar")
        assert "❌" in str(bad)
        assert "wrong" in str(bad)


class TestOperationReport:
    def test_empty_report_does_not_pass(self):
        report = OperationReport("noop")
        assert not report.passed
        assert report.exit_code == 1

    def test_all_steps_pass(self):
        report = OperationReport("deployment default/foo")
        report.add(StepResult("ready", True))
        report.add(StepResult("rollout", True, "done"))
        assert report.passed
        assert report.exit_code == 0
        assert report.failed_steps == []

    def test_partial_success_fails(self):
        report = OperationReport("health")
        report.add(StepResult("endpoint foo.localhost", True))
        report.add(StepResult("endpoint bar.localhost", False, "HTTP 503"))
        assert not report.passed
        assert report.exit_code == 1
        assert [s.name for s in report.failed_steps] == ["endpoint bar.localhost"]

    def test_to_json_includes_poll(self):
        report = OperationReport("ingress default/echo")
        poll = PollResult(succeeded=True, elapsed=12, attempts=5, description="ingress echo")
        report.add(StepResult("ready", True, poll=poll))
        report.add(StepResult("settle", True, "15s"))

        data = json.loads(report.to_json())
        assert data["operation"] == "ingress default/echo"
        assert data["passed"] is True
        assert data["steps"][0]["poll"]["attempts"] == 5
        assert "poll" not in data["steps"][1]
