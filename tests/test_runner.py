from __future__ import annotations

import random
import threading
import time

import pytest

from kube_flare import checks
from kube_flare.models import Result
from kube_flare.provider import SnapshotProvider
from kube_flare.registry import ALL_CHECKS, Check, CheckRegistry, default_registry
from kube_flare.runner import CheckRunner, run_checks


class JitteryProvider:
    """Delegates to a snapshot, sleeping a random interval before each call."""

    def __init__(self, snapshot: SnapshotProvider, max_delay: float = 0.02):
        self.snapshot = snapshot
        self.max_delay = max_delay

    def __getattr__(self, name):
        method = getattr(self.snapshot, name)

        def _delayed(*args, **kwargs):
            time.sleep(random.uniform(0, self.max_delay))
            return method(*args, **kwargs)

        return _delayed


def test_one_result_per_check_in_registry_order(broken_snapshot) -> None:
    results = run_checks(broken_snapshot)
    assert [r.name for r in results] == ALL_CHECKS
    assert all(r.duration_ms >= 0 for r in results)


def test_broken_cluster_outcomes(broken_snapshot) -> None:
    by_name = {r.name: r for r in run_checks(broken_snapshot)}
    assert by_name[checks.CONTROL_PLANE].passed
    failing = {name for name, r in by_name.items() if not r.passed}
    assert failing == {
        checks.NODE_READINESS, checks.OVERCOMMIT, checks.SERVICE_ENDPOINTS, checks.ADMISSION_WEBHOOKS,
        checks.WARNING_EVENTS, checks.INFRA_PODS, checks.CRONJOBS, checks.OOM_KILLED,
    }
    assert not any(r.degraded for r in by_name.values())


def test_repeated_runs_over_fixed_snapshot_are_identical(broken_snapshot) -> None:
    assert run_checks(broken_snapshot) == run_checks(broken_snapshot)


def test_random_latency_never_loses_or_corrupts_results(broken_snapshot) -> None:
    baseline = run_checks(broken_snapshot)
    provider = JitteryProvider(broken_snapshot)
    for _ in range(15):
        assert run_checks(provider) == baseline


def test_capped_worker_pool_still_runs_everything(healthy_snapshot) -> None:
    results = run_checks(JitteryProvider(healthy_snapshot, 0.005), max_workers=2)
    assert len(results) == len(ALL_CHECKS)
    assert all(r.passed for r in results)


def test_partial_provider_failure_keeps_completeness(failing_provider) -> None:
    provider = failing_provider("nodes", "events")
    results = run_checks(provider)
    assert len(results) == len(ALL_CHECKS)
    degraded = {r.name for r in results if r.degraded}
    assert degraded == {checks.CONTROL_PLANE, checks.NODE_READINESS, checks.OVERCOMMIT, checks.WARNING_EVENTS}


def test_crashing_check_is_contained(healthy_snapshot) -> None:
    def _boom(provider):
        raise RuntimeError("boom")

    registry = CheckRegistry([
        Check("boom", _boom),
        Check(checks.NODE_READINESS, checks.check_node_readiness),
    ])
    results = CheckRunner(registry).run(healthy_snapshot)
    assert [r.name for r in results] == ["boom", checks.NODE_READINESS]
    assert results[0].error == "RuntimeError: boom"
    assert "unexpected error" in results[0].details
    assert results[1].passed


def test_system_exit_in_check_does_not_abort_the_run(healthy_snapshot) -> None:
    def _exit(provider):
        raise SystemExit(3)

    registry = CheckRegistry([Check("exit", _exit), Check(checks.CONTROL_PLANE, checks.check_control_plane)])
    results = CheckRunner(registry).run(healthy_snapshot)
    assert [r.name for r in results] == ["exit", checks.CONTROL_PLANE]
    assert results[0].error == "SystemExit: 3"
    assert results[1].passed


def test_misnamed_result_is_reported_as_degraded(healthy_snapshot) -> None:
    registry = CheckRegistry([Check("readiness-alias", checks.check_node_readiness)])
    (result,) = CheckRunner(registry).run(healthy_snapshot)
    assert result.name == "readiness-alias"
    assert result.degraded
    assert "node-readiness" in result.error


def test_hung_check_is_reported_as_timeout(healthy_snapshot) -> None:
    release = threading.Event()

    def _hang(provider):
        release.wait(10)
        return Result.ok("hang")

    registry = CheckRegistry([Check("hang", _hang), Check(checks.CONTROL_PLANE, checks.check_control_plane)])
    start = time.monotonic()
    try:
        results = CheckRunner(registry, timeout=0.3).run(healthy_snapshot)
    finally:
        release.set()
    assert time.monotonic() - start < 5
    hang, control_plane = results
    assert not hang.passed
    assert hang.error.startswith("TimeoutError")
    assert "did not complete" in hang.details
    assert control_plane.passed


def test_empty_registry_returns_no_results(healthy_snapshot) -> None:
    assert CheckRunner(CheckRegistry()).run(healthy_snapshot) == []


@pytest.mark.parametrize("kwargs", [{"timeout": 0}, {"timeout": -1}, {"max_workers": 0}])
def test_runner_rejects_bad_limits(kwargs) -> None:
    with pytest.raises(ValueError):
        CheckRunner(default_registry(), **kwargs)
