"""
Tests for the package-level helpers that load config and build real clients.
"""

import textwrap

import requests

import kubewait
from kubewait import cli
from fakes import FakeCluster, healthy_cluster, ready


class DummyResponse:
    def __init__(self, status_code, text):
        self.status_code = status_code
        self.text = text


def write_config(tmp_path, content):
    (tmp_path / "kubewait.yaml").write_text(textwrap.dedent(content), encoding="utf-8")


def test_wait_for_deployment_uses_config(tmp_path, monkeypatch):
    write_config(tmp_path, """
    cluster:
      namespace: staging
    """)
    cluster = FakeCluster(replicas={"foo": [ready(2)]})
    monkeypatch.setattr(cli, "_make_cluster", lambda settings: cluster)

    report = kubewait.wait_for_deployment("foo", project_root=tmp_path)
    assert report.passed
    assert cluster.calls[0] == ("replicas", "staging", "foo")


def test_wait_for_ingress_without_settle(tmp_path, monkeypatch):
    write_config(tmp_path, """
    ingress:
      settle_seconds: 0
    """)
    monkeypatch.setattr(cli, "_make_cluster", lambda settings: FakeCluster(ingress_rules={"echo": [1]}))

    report = kubewait.wait_for_ingress("echo", project_root=tmp_path)
    assert report.passed
    assert report.steps[-1].detail == "0s"


def test_check_health_with_requests(tmp_path, monkeypatch):
    write_config(tmp_path, """
    health:
      stabilize_seconds: 0
      base_url: http://ingress.test
    """)
    monkeypatch.setattr(cli, "_make_cluster", lambda settings: healthy_cluster())
    bodies = {"foo.localhost": "foo\n", "bar.localhost": "bar\n"}
    monkeypatch.setattr(
        requests,
        "get",
        lambda url, headers, **kw: DummyResponse(200, bodies[headers["Host"]]),
    )

    report = kubewait.check_health(project_root=tmp_path)
    assert report.passed


def test_cluster_built_from_settings():
    from kubewait.config import ClusterSettings, Settings

    settings = Settings(cluster=ClusterSettings(kubectl_command="/opt/kubectl", extra_args=("--context", "ci")))
    client = cli._make_cluster(settings)
    assert client.kubectl_command == "/opt/kubectl"
    assert client.extra_args == ["--context", "ci"]
