# SPDX-License-Identifier: MIT

"""The diagnostic checks.

Every check takes a ``ClusterResourceProvider`` and returns one ``Result``:
clean -> passed with empty details, symptom found -> failed with one line per
finding, provider call failed -> failed with ``error`` set.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from kubernetes.utils import parse_quantity

from kube_flare.errors import ProviderError
from kube_flare.models import Result
from kube_flare.provider import ClusterResourceProvider

logger = logging.getLogger(__name__)

CONTROL_PLANE = "control-plane"
NODE_READINESS = "node-readiness"
OVERCOMMIT = "overcommit"
SERVICE_ENDPOINTS = "service-endpoints"
ADMISSION_WEBHOOKS = "admission-webhooks"
WARNING_EVENTS = "warning-events"
INFRA_PODS = "infra-pods"
CRONJOBS = "cronjobs"
OOM_KILLED = "oom-killed"

INFRA_NAMESPACE = "kube-system"
CRONJOB_ACTIVE_THRESHOLD = 100


def _degraded(name: str, action: str, exc: ProviderError) -> Result:
    logger.warning("check %s could not %s: %s", name, action, exc)
    return Result.degraded_by(name, f"check could not complete: failed to {action}", exc)


def _verdict(name: str, findings: list[str]) -> Result:
    if findings:
        return Result.symptom(name, "\n".join(findings))
    return Result.ok(name)


# =====================================================================
# Quantity helpers
# =====================================================================

def _quantity(resources: dict | None, key: str) -> Decimal:
    value = (resources or {}).get(key)
    if value is None:
        return Decimal(0)
    return parse_quantity(value)


def _plain(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def _fmt_cpu(cores: Decimal) -> str:
    millis = cores * 1000
    if cores != cores.to_integral_value() and millis == millis.to_integral_value():
        return f"{int(millis)}m"
    return _plain(cores)


def _fmt_memory(bytes_val: Decimal) -> str:
    # binary suffix only when it divides exactly
    for suffix, unit in (("Gi", 1024**3), ("Mi", 1024**2), ("Ki", 1024)):
        if bytes_val >= unit and bytes_val % unit == 0:
            return f"{int(bytes_val / unit)}{suffix}"
    return _plain(bytes_val)


# =====================================================================
# Control plane / nodes
# =====================================================================

def check_control_plane(provider: ClusterResourceProvider) -> Result:
    try:
        provider.list_nodes()
    except ProviderError as exc:
        return _degraded(CONTROL_PLANE, "reach the API server (list nodes)", exc)
    return Result.ok(CONTROL_PLANE)


def check_node_readiness(provider: ClusterResourceProvider) -> Result:
    try:
        nodes = provider.list_nodes()
    except ProviderError as exc:
        return _degraded(NODE_READINESS, "list nodes", exc)

    findings = []
    for node in nodes:
        conditions = (node.status.conditions if node.status else None) or []
        if any(cond.type == "Ready" and cond.status == "False" for cond in conditions):
            findings.append(f"Node {node.metadata.name} is NotReady")
    return _verdict(NODE_READINESS, findings)


def check_overcommit(provider: ClusterResourceProvider) -> Result:
    """Flag nodes whose summed container limits exceed allocatable.

    Limits, not requests, are summed. The scheduler places pods by requests,
    so this reports limit overcommit rather than scheduling pressure.
    """
    try:
        nodes = provider.list_nodes()
    except ProviderError as exc:
        return _degraded(OVERCOMMIT, "list nodes", exc)

    findings = []
    for node in nodes:
        name = node.metadata.name
        allocatable = (node.status.allocatable if node.status else None) or {}
        alloc_cpu = _quantity(allocatable, "cpu")
        alloc_mem = _quantity(allocatable, "memory")

        try:
            pods = provider.list_pods(field_selector=f"spec.nodeName={name}")
        except ProviderError as exc:
            return _degraded(OVERCOMMIT, f"list pods on node {name}", exc)

        lim_cpu = Decimal(0)
        lim_mem = Decimal(0)
        for pod in pods:
            for container in pod.spec.containers or []:
                limits = container.resources.limits if container.resources else None
                lim_cpu += _quantity(limits, "cpu")
                lim_mem += _quantity(limits, "memory")

        if lim_cpu > alloc_cpu:
            findings.append(
                f"Node {name} is overcommitted on CPU: limits {_fmt_cpu(lim_cpu)}, allocatable {_fmt_cpu(alloc_cpu)}"
            )
        if lim_mem > alloc_mem:
            findings.append(
                f"Node {name} is overcommitted on memory: limits {_fmt_memory(lim_mem)}, "
                f"allocatable {_fmt_memory(alloc_mem)}"
            )
    return _verdict(OVERCOMMIT, findings)


# =====================================================================
# Services / admission
# =====================================================================

def check_service_endpoints(provider: ClusterResourceProvider, namespace: str | None = None) -> Result:
    try:
        endpoints = provider.list_endpoints(namespace=namespace)
    except ProviderError as exc:
        return _degraded(SERVICE_ENDPOINTS, "list endpoints", exc)

    findings = [
        f"Service {ep.metadata.namespace}/{ep.metadata.name} has no active endpoints"
        for ep in endpoints
        if not ep.subsets
    ]
    return _verdict(SERVICE_ENDPOINTS, findings)


def check_admission_webhooks(provider: ClusterResourceProvider) -> Result:
    try:
        mutating = provider.list_mutating_webhook_configurations()
    except ProviderError as exc:
        return _degraded(ADMISSION_WEBHOOKS, "list mutating webhook configurations", exc)
    try:
        validating = provider.list_validating_webhook_configurations()
    except ProviderError as exc:
        return _degraded(ADMISSION_WEBHOOKS, "list validating webhook configurations", exc)

    findings = []
    for kind, configs in (("Mutating", mutating), ("Validating", validating)):
        for cfg in configs:
            for webhook in cfg.webhooks or []:
                if webhook.failure_policy == "Fail":
                    findings.append(
                        f"{kind} webhook {webhook.name} ({cfg.metadata.name}) has failurePolicy 'Fail'"
                    )
    return _verdict(ADMISSION_WEBHOOKS, findings)


# =====================================================================
# Events / workloads
# =====================================================================

def check_warning_events(provider: ClusterResourceProvider, namespace: str | None = None) -> Result:
    try:
        events = provider.list_events(namespace=namespace)
    except ProviderError as exc:
        return _degraded(WARNING_EVENTS, "list events", exc)

    findings = []
    for event in events:
        if event.type != "Warning":
            continue
        obj = event.involved_object
        findings.append(
            f"{event.metadata.namespace} {obj.kind}/{obj.name} {event.reason or ''}: {event.message or ''}".rstrip()
        )
    return _verdict(WARNING_EVENTS, findings)


def check_infra_pods(provider: ClusterResourceProvider, infra_namespace: str = INFRA_NAMESPACE) -> Result:
    try:
        pods = provider.list_pods(namespace=infra_namespace)
    except ProviderError as exc:
        return _degraded(INFRA_PODS, f"list pods in {infra_namespace}", exc)

    findings = []
    for pod in pods:
        statuses = (pod.status.container_statuses if pod.status else None) or []
        for cs in statuses:
            if (cs.restart_count or 0) > 0:
                findings.append(
                    f"Pod {pod.metadata.name} container {cs.name} has restarted {cs.restart_count} time(s)"
                )
            if not cs.ready:
                findings.append(f"Pod {pod.metadata.name} container {cs.name} is not ready")
    return _verdict(INFRA_PODS, findings)


def check_cronjobs(
    provider: ClusterResourceProvider,
    namespace: str | None = None,
    threshold: int = CRONJOB_ACTIVE_THRESHOLD,
) -> Result:
    """Fail on cron jobs with too many active runs.

    A concurrency policy of ``Allow`` is reported as an advisory and does not
    fail the check.
    """
    try:
        cron_jobs = provider.list_cron_jobs(namespace=namespace)
    except ProviderError as exc:
        return _degraded(CRONJOBS, "list cronjobs", exc)

    passed = True
    lines = []
    for cron in cron_jobs:
        ref = f"{cron.metadata.namespace}/{cron.metadata.name}"
        active = len((cron.status.active if cron.status else None) or [])
        if active > threshold:
            passed = False
            lines.append(f"CronJob {ref} has too many active jobs: {active} (threshold {threshold})")
        if cron.spec.concurrency_policy == "Allow":
            lines.append(f"Advisory: CronJob {ref} allows concurrent runs (concurrencyPolicy=Allow)")

    details = "\n".join(lines)
    if passed:
        return Result.ok(CRONJOBS, details)
    return Result.symptom(CRONJOBS, details)


def check_oom_killed(provider: ClusterResourceProvider, namespace: str | None = None) -> Result:
    try:
        pods = provider.list_pods(namespace=namespace)
    except ProviderError as exc:
        return _degraded(OOM_KILLED, "list pods", exc)

    findings = []
    for pod in pods:
        statuses = (pod.status.container_statuses if pod.status else None) or []
        for cs in statuses:
            terminated = cs.last_state.terminated if cs.last_state else None
            if terminated and terminated.reason == "OOMKilled":
                findings.append(
                    f"Pod {pod.metadata.namespace}/{pod.metadata.name} container {cs.name} was previously OOMKilled"
                )
    return _verdict(OOM_KILLED, findings)
