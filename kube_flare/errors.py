# SPDX-License-Identifier: MIT

from __future__ import annotations


class FlareError(Exception):
    """Base class for kube-flare errors."""


class ProviderError(FlareError):
    """A read call against the cluster failed."""

    def __init__(self, resource: str, message: str) -> None:
        super().__init__(f"listing {resource} failed: {message}")
        self.resource = resource


class ClusterConnectionError(FlareError):
    """Cluster credentials could not be loaded."""


def describe_error(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"
