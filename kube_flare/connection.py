# SPDX-License-Identifier: MIT

from __future__ import annotations

import logging

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from kube_flare.errors import ClusterConnectionError

logger = logging.getLogger(__name__)


def build_api_client(kubeconfig: str | None = None, context: str | None = None) -> client.ApiClient:
    """Load credentials from kubeconfig, falling back to the in-cluster service account."""
    try:
        try:
            config.load_kube_config(config_file=kubeconfig, context=context)
        except ConfigException as exc:
            logger.debug("kubeconfig %s unusable (%s); trying in-cluster config", kubeconfig, exc)
            config.load_incluster_config()
        return client.ApiClient()
    except (ConfigException, OSError) as exc:
        raise ClusterConnectionError(f"Failed to load Kubernetes credentials: {exc}") from exc


def describe_context(kubeconfig: str | None = None, context: str | None = None) -> tuple[str, str]:
    """Return ``(cluster_name, context_name)`` for the report header."""
    try:
        contexts, active = config.list_kube_config_contexts(config_file=kubeconfig)
    except (ConfigException, OSError):
        return "in-cluster", context or "in-cluster"
    if context:
        active = next((c for c in contexts if c.get("name") == context), active)
    return active.get("context", {}).get("cluster", "unknown"), active.get("name", "unknown")
