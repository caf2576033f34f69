# SPDX-License-Identifier: MIT

"""Read-only Kubernetes cluster diagnostics.

Nine independent checks run concurrently against a shared cluster provider
and produce one result each, reported in a fixed order.
"""

from kube_flare.errors import ClusterConnectionError, FlareError, ProviderError
from kube_flare.models import Result
from kube_flare.provider import ClusterResourceProvider, KubernetesProvider, SnapshotProvider
from kube_flare.registry import ALL_CHECKS, Check, CheckRegistry, default_registry
from kube_flare.report import TextReporter, generate_report_text, summarize
from kube_flare.runner import CheckRunner, run_checks

__version__ = "1.0.0"

__all__ = [
    "ALL_CHECKS",
    "Check",
    "CheckRegistry",
    "CheckRunner",
    "ClusterConnectionError",
    "ClusterResourceProvider",
    "FlareError",
    "KubernetesProvider",
    "ProviderError",
    "Result",
    "SnapshotProvider",
    "TextReporter",
    "default_registry",
    "generate_report_text",
    "run_checks",
    "summarize",
]
