# SPDX-License-Identifier: MIT

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Iterable, Iterator

from kube_flare import checks
from kube_flare.models import Result
from kube_flare.provider import ClusterResourceProvider


@dataclass(frozen=True)
class Check:
    name: str
    func: Callable[[ClusterResourceProvider], Result]

    def run(self, provider: ClusterResourceProvider) -> Result:
        return self.func(provider)


@dataclass
class CheckRegistry:
    """Ordered, duplicate-free collection of checks for one run."""

    checks: list[Check] = field(default_factory=list)

    def __post_init__(self) -> None:
        initial, self.checks = self.checks, []
        for check in initial:
            self.register(check)

    def register(self, check: Check) -> None:
        if check.name in self.names:
            raise ValueError(f"check {check.name!r} is already registered")
        self.checks.append(check)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.checks]

    def select(self, names: Iterable[str]) -> CheckRegistry:
        wanted = set(names)
        unknown = wanted - set(self.names)
        if unknown:
            raise KeyError(f"unknown check(s): {', '.join(sorted(unknown))}")
        return CheckRegistry([c for c in self.checks if c.name in wanted])

    def __iter__(self) -> Iterator[Check]:
        return iter(self.checks)

    def __len__(self) -> int:
        return len(self.checks)


def default_registry(
    namespace: str | None = None,
    infra_namespace: str = checks.INFRA_NAMESPACE,
    cronjob_active_threshold: int = checks.CRONJOB_ACTIVE_THRESHOLD,
) -> CheckRegistry:
    return CheckRegistry([
        Check(checks.CONTROL_PLANE, checks.check_control_plane),
        Check(checks.NODE_READINESS, checks.check_node_readiness),
        Check(checks.OVERCOMMIT, checks.check_overcommit),
        Check(checks.SERVICE_ENDPOINTS, partial(checks.check_service_endpoints, namespace=namespace)),
        Check(checks.ADMISSION_WEBHOOKS, checks.check_admission_webhooks),
        Check(checks.WARNING_EVENTS, partial(checks.check_warning_events, namespace=namespace)),
        Check(checks.INFRA_PODS, partial(checks.check_infra_pods, infra_namespace=infra_namespace)),
        Check(
            checks.CRONJOBS,
            partial(checks.check_cronjobs, namespace=namespace, threshold=cronjob_active_threshold),
        ),
        Check(checks.OOM_KILLED, partial(checks.check_oom_killed, namespace=namespace)),
    ])


ALL_CHECKS = default_registry().names
