"""
Pytest config.

Pins the repo root and this directory on sys.path so `kube_flare` and the
`k8s_objects` builders import without an editable install.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_on_syspath() -> None:
    here = Path(__file__).resolve().parent
    for path in (str(here.parent), str(here)):
        if path not in sys.path:
            sys.path.insert(0, path)


_ensure_on_syspath()

from k8s_objects import (  # noqa: E402
    container_status,
    make_cron_job,
    make_endpoints,
    make_event,
    make_mutating_config,
    make_node,
    make_pod,
    make_validating_config,
)

from kube_flare.errors import ProviderError  # noqa: E402
from kube_flare.provider import SnapshotProvider  # noqa: E402


@pytest.fixture
def healthy_snapshot() -> SnapshotProvider:
    return SnapshotProvider(
        nodes=[make_node("node-1"), make_node("node-2")],
        pods=[
            make_pod("web-0", node="node-1", limits=[{"cpu": "1", "memory": "1Gi"}], statuses=[container_status()]),
            make_pod("coredns", namespace="kube-system", node="node-2", statuses=[container_status("coredns")]),
        ],
        endpoints=[make_endpoints("web")],
        mutating_webhook_configurations=[make_mutating_config("injector", **{"inject.example.com": "Ignore"})],
        validating_webhook_configurations=[make_validating_config("policy", **{"policy.example.com": "Ignore"})],
        events=[make_event("web-0.started", type_="Normal", reason="Started", message="Started container")],
        cron_jobs=[make_cron_job("backup", active=1)],
    )


@pytest.fixture
def broken_snapshot() -> SnapshotProvider:
    return SnapshotProvider(
        nodes=[make_node("node-1", cpu="4"), make_node("node-2", ready="False")],
        pods=[
            make_pod("api-0", node="node-1", limits=[{"cpu": "3"}]),
            make_pod("api-1", node="node-1", limits=[{"cpu": "3"}]),
            make_pod("etcd-node-1", namespace="kube-system", node="node-1",
                     statuses=[container_status("etcd", restarts=4)]),
            make_pod("cache-0", namespace="shop", node="node-2",
                     statuses=[container_status("redis", last_reason="OOMKilled")]),
        ],
        endpoints=[make_endpoints("web"), make_endpoints("orphan", backed=False)],
        mutating_webhook_configurations=[make_mutating_config("injector", **{"inject.example.com": "Fail"})],
        events=[make_event("api-0.backoff")],
        cron_jobs=[make_cron_job("report", active=101)],
    )


class FailingProvider(SnapshotProvider):
    """Snapshot provider whose listed resources raise ProviderError."""

    def __init__(self, failing=(), **kwargs):
        super().__init__(**kwargs)
        self.failing = set(failing)

    def _maybe_fail(self, resource):
        if resource in self.failing:
            raise ProviderError(resource, "(403) Forbidden")

    def list_nodes(self, label_selector=None):
        self._maybe_fail("nodes")
        return super().list_nodes(label_selector)

    def list_pods(self, namespace=None, field_selector=None, label_selector=None):
        self._maybe_fail("pods")
        return super().list_pods(namespace, field_selector, label_selector)

    def list_endpoints(self, namespace=None, field_selector=None, label_selector=None):
        self._maybe_fail("endpoints")
        return super().list_endpoints(namespace, field_selector, label_selector)

    def list_mutating_webhook_configurations(self, label_selector=None):
        self._maybe_fail("mutatingwebhookconfigurations")
        return super().list_mutating_webhook_configurations(label_selector)

    def list_validating_webhook_configurations(self, label_selector=None):
        self._maybe_fail("validatingwebhookconfigurations")
        return super().list_validating_webhook_configurations(label_selector)

    def list_events(self, namespace=None, field_selector=None):
        self._maybe_fail("events")
        return super().list_events(namespace, field_selector)

    def list_cron_jobs(self, namespace=None, label_selector=None):
        self._maybe_fail("cronjobs")
        return super().list_cron_jobs(namespace, label_selector)


@pytest.fixture
def failing_provider():
    def _make(*failing, **snapshot):
        return FailingProvider(failing=failing, **snapshot)

    return _make
