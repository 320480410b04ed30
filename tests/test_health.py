"""
Tests for kubewait.health — the multi-phase health check.
"""

import dataclasses

from fakes import FakeCluster, FakeProber, healthy_cluster, ok
from kubewait.clients.base import HttpResponse, ReplicaStatus
from kubewait.config import HealthSettings, Settings
from kubewait.health import run_health_check, validate_ingress_controller, validate_resources
from kubewait.protocol import ProbeConnectionError


SETTINGS = Settings()


def healthy_prober():
    return FakeProber({"foo.localhost": [ok("foo\n")], "bar.localhost": [ok("bar\n")]})


def step_names(steps):
    return [s.name for s in steps]


class TestRunHealthCheck:
    def test_all_phases_pass(self, poller, clock, capsys):
        report = run_health_check(healthy_cluster(), healthy_prober(), SETTINGS, poller=poller)

        assert report.passed
        assert step_names(report.steps) == [
            "deployment foo",
            "deployment bar",
            "service foo",
            "service bar",
            "ingress echo-ingress",
            "pods",
            "ingress controller",
            "stabilize",
            "endpoint foo.localhost",
            "endpoint bar.localhost",
        ]
        # only the stabilization delay; both endpoints answered first time
        assert clock.sleeps == [10]
        assert "All health checks passed" in capsys.readouterr().out

    def test_failing_endpoint_does_not_skip_the_next(self, poller):
        prober = FakeProber(
            {
                "foo.localhost": [ProbeConnectionError("Connection refused")],
                "bar.localhost": [ok("bar")],
            }
        )
        report = run_health_check(healthy_cluster(), prober, SETTINGS, poller=poller)

        assert not report.passed
        foo = next(s for s in report.steps if s.name == "endpoint foo.localhost")
        bar = next(s for s in report.steps if s.name == "endpoint bar.localhost")
        assert not foo.passed
        assert foo.poll.attempts == 20
        assert "Connection refused" in foo.detail
        assert bar.passed
        assert bar.poll.attempts == 1
        assert [s.name for s in report.failed_steps] == ["endpoint foo.localhost"]

    def test_resource_failure_still_runs_endpoint_checks(self, poller):
        cluster = healthy_cluster()
        cluster.replicas["bar"] = [ReplicaStatus(desired=2, ready=1)]
        prober = healthy_prober()
        report = run_health_check(cluster, prober, SETTINGS, poller=poller)

        assert not report.passed
        assert [s.name for s in report.failed_steps] == ["deployment bar"]
        assert len(prober.requests) == 2

    def test_retries_and_delay_shape_the_endpoint_poll(self, poller, clock):
        settings = dataclasses.replace(
            SETTINGS, health=dataclasses.replace(SETTINGS.health, retries=4, delay_seconds=2)
        )
        prober = FakeProber(
            {"foo.localhost": [HttpResponse(404, "nope")], "bar.localhost": [ok("bar")]}
        )
        report = run_health_check(healthy_cluster(), prober, settings, poller=poller)

        foo = next(s for s in report.steps if s.name == "endpoint foo.localhost")
        assert foo.poll.attempts == 4
        assert clock.sleeps == [10, 2, 2, 2, 2]

    def test_custom_endpoints(self, poller):
        settings = Settings(
            health=HealthSettings(
                deployments=(),
                services=(),
                ingress="",
                pod_selector="",
                endpoints=(),
            )
        )
        cluster = healthy_cluster()
        report = run_health_check(cluster, FakeProber(), settings, poller=poller)
        assert step_names(report.steps) == ["ingress controller", "stabilize"]
        assert report.passed


class TestValidateResources:
    def test_missing_objects(self):
        cluster = FakeCluster(replicas={"foo": [ReplicaStatus(1, 1)]})
        steps = validate_resources(cluster, SETTINGS)
        failed = {s.name: s.detail for s in steps if not s.passed}
        assert failed == {
            "deployment bar": "not found",
            "service foo": "not found",
            "service bar": "not found",
            "ingress echo-ingress": "not found",
            "pods": "no pods match component=http-echo",
        }

    def test_unhealthy_pods_named(self):
        cluster = healthy_cluster()
        cluster.pod_phases["component=http-echo"] = {
            "foo-abc": "Running",
            "bar-def": "Pending",
            "bar-ghi": "Failed",
        }
        pods = next(s for s in validate_resources(cluster, SETTINGS) if s.name == "pods")
        assert not pods.passed
        assert pods.detail == "2 unhealthy: bar-def, bar-ghi"

    def test_uses_configured_namespace(self):
        settings = dataclasses.replace(
            SETTINGS, cluster=dataclasses.replace(SETTINGS.cluster, namespace="demo")
        )
        cluster = healthy_cluster()
        validate_resources(cluster, settings)
        assert {c[1] for c in cluster.calls} == {"demo"}


class TestValidateIngressController:
    def test_running(self):
        step = validate_ingress_controller(healthy_cluster(), SETTINGS)
        assert step.passed
        assert step.detail == "1 healthy pod(s)"

    def test_not_running_lists_pods(self):
        cluster = FakeCluster(
            pod_phases={"app.kubernetes.io/component=controller": {"ctrl": "CrashLoopBackOff"}}
        )
        step = validate_ingress_controller(cluster, SETTINGS)
        assert not step.passed
        assert cluster.called("pods_text") == [
            ("pods_text", "ingress-nginx", "app.kubernetes.io/component=controller")
        ]
