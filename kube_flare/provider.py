# SPDX-License-Identifier: MIT

"""Read-only access to the cluster objects the checks inspect.

Checks only ever see the ``ClusterResourceProvider`` protocol. The live
implementation wraps the official ``kubernetes`` client; the snapshot
implementation serves a fixed set of objects, which keeps checks testable
without a cluster.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

import urllib3
from kubernetes import client
from kubernetes.client.exceptions import ApiException

from kube_flare.errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0


class ClusterResourceProvider(Protocol):
    def list_nodes(self, label_selector: str | None = None) -> list[Any]: ...

    def list_pods(
        self,
        namespace: str | None = None,
        field_selector: str | None = None,
        label_selector: str | None = None,
    ) -> list[Any]: ...

    def list_endpoints(
        self,
        namespace: str | None = None,
        field_selector: str | None = None,
        label_selector: str | None = None,
    ) -> list[Any]: ...

    def list_mutating_webhook_configurations(self, label_selector: str | None = None) -> list[Any]: ...

    def list_validating_webhook_configurations(self, label_selector: str | None = None) -> list[Any]: ...

    def list_events(self, namespace: str | None = None, field_selector: str | None = None) -> list[Any]: ...

    def list_cron_jobs(self, namespace: str | None = None, label_selector: str | None = None) -> list[Any]: ...


# =====================================================================
# Live cluster
# =====================================================================

class KubernetesProvider:
    """Provider backed by the Kubernetes API server."""

    def __init__(self, api_client: client.ApiClient | None = None, request_timeout: float | None = DEFAULT_REQUEST_TIMEOUT):
        self.core = client.CoreV1Api(api_client)
        self.admission = client.AdmissionregistrationV1Api(api_client)
        self.batch = client.BatchV1Api(api_client)
        self.request_timeout = request_timeout

    def _list(self, resource: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> list[Any]:
        kwargs = {k: v for k, v in kwargs.items() if v is not None}
        if self.request_timeout:
            kwargs["_request_timeout"] = self.request_timeout
        logger.debug("listing %s via %s %s", resource, getattr(func, "__name__", "?"), kwargs)
        try:
            result = func(*args, **kwargs)
        except ApiException as exc:
            raise ProviderError(resource, f"({exc.status}) {exc.reason}") from exc
        except (urllib3.exceptions.HTTPError, OSError) as exc:
            raise ProviderError(resource, str(exc)) from exc
        return list(result.items or [])

    def _namespaced(self, resource: str, namespaced_fn, all_ns_fn, namespace: str | None, **kwargs: Any) -> list[Any]:
        if namespace:
            return self._list(resource, namespaced_fn, namespace, **kwargs)
        return self._list(resource, all_ns_fn, **kwargs)

    def list_nodes(self, label_selector=None):
        return self._list("nodes", self.core.list_node, label_selector=label_selector)

    def list_pods(self, namespace=None, field_selector=None, label_selector=None):
        return self._namespaced(
            "pods", self.core.list_namespaced_pod, self.core.list_pod_for_all_namespaces, namespace,
            field_selector=field_selector, label_selector=label_selector,
        )

    def list_endpoints(self, namespace=None, field_selector=None, label_selector=None):
        return self._namespaced(
            "endpoints", self.core.list_namespaced_endpoints, self.core.list_endpoints_for_all_namespaces, namespace,
            field_selector=field_selector, label_selector=label_selector,
        )

    def list_mutating_webhook_configurations(self, label_selector=None):
        return self._list(
            "mutatingwebhookconfigurations", self.admission.list_mutating_webhook_configuration,
            label_selector=label_selector,
        )

    def list_validating_webhook_configurations(self, label_selector=None):
        return self._list(
            "validatingwebhookconfigurations", self.admission.list_validating_webhook_configuration,
            label_selector=label_selector,
        )

    def list_events(self, namespace=None, field_selector=None):
        return self._namespaced(
            "events", self.core.list_namespaced_event, self.core.list_event_for_all_namespaces, namespace,
            field_selector=field_selector,
        )

    def list_cron_jobs(self, namespace=None, label_selector=None):
        return self._namespaced(
            "cronjobs", self.batch.list_namespaced_cron_job, self.batch.list_cron_job_for_all_namespaces, namespace,
            label_selector=label_selector,
        )


# =====================================================================
# Fixed snapshot
# =====================================================================

_SELECTOR_TERM = re.compile(r"^\s*([^!=\s]+)\s*(==|!=|=)\s*(\S*)\s*$")


def _snake(segment: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", segment).lower()


def _parse_selector(selector: str | None) -> list[tuple[str, str, str]]:
    if not selector:
        return []
    terms = []
    for raw in selector.split(","):
        m = _SELECTOR_TERM.match(raw)
        if not m:
            raise ProviderError("snapshot", f"unsupported selector term {raw!r}")
        key, op, value = m.groups()
        terms.append((key, "!=" if op == "!=" else "=", value))
    return terms


def _field_value(obj: Any, path: str) -> str:
    value = obj
    for segment in path.split("."):
        value = getattr(value, _snake(segment), None)
        if value is None:
            return ""
    return str(value)


def _matches(actual: str, op: str, expected: str) -> bool:
    return actual == expected if op == "=" else actual != expected


@dataclass
class SnapshotProvider:
    """Provider over a fixed set of cluster objects.

    Honours namespace scope and equality-based field and label selectors
    (``spec.nodeName=node-1``, ``app=web,tier!=cache``).
    """

    nodes: list[Any] = field(default_factory=list)
    pods: list[Any] = field(default_factory=list)
    endpoints: list[Any] = field(default_factory=list)
    mutating_webhook_configurations: list[Any] = field(default_factory=list)
    validating_webhook_configurations: list[Any] = field(default_factory=list)
    events: list[Any] = field(default_factory=list)
    cron_jobs: list[Any] = field(default_factory=list)

    def _select(self, items, namespace=None, field_selector=None, label_selector=None):
        fields = _parse_selector(field_selector)
        labels = _parse_selector(label_selector)
        out = []
        for obj in items:
            meta = obj.metadata
            if namespace and meta.namespace != namespace:
                continue
            if not all(_matches(_field_value(obj, k), op, v) for k, op, v in fields):
                continue
            obj_labels = meta.labels or {}
            if not all(_matches(obj_labels.get(k, ""), op, v) for k, op, v in labels):
                continue
            out.append(obj)
        return out

    def list_nodes(self, label_selector=None):
        return self._select(self.nodes, label_selector=label_selector)

    def list_pods(self, namespace=None, field_selector=None, label_selector=None):
        return self._select(self.pods, namespace, field_selector, label_selector)

    def list_endpoints(self, namespace=None, field_selector=None, label_selector=None):
        return self._select(self.endpoints, namespace, field_selector, label_selector)

    def list_mutating_webhook_configurations(self, label_selector=None):
        return self._select(self.mutating_webhook_configurations, label_selector=label_selector)

    def list_validating_webhook_configurations(self, label_selector=None):
        return self._select(self.validating_webhook_configurations, label_selector=label_selector)

    def list_events(self, namespace=None, field_selector=None):
        return self._select(self.events, namespace, field_selector)

    def list_cron_jobs(self, namespace=None, label_selector=None):
        return self._select(self.cron_jobs, namespace, label_selector=label_selector)
