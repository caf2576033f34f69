# SPDX-License-Identifier: MIT

"""Concurrent execution of a check registry.

Each check runs on its own worker thread and hands its single ``Result`` back
through its future. The join waits for every check, or until the caller's
deadline, after which unfinished checks are reported as timeouts. Results are
returned in registry order, never in completion order.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait

from kube_flare.errors import describe_error
from kube_flare.models import Result
from kube_flare.provider import ClusterResourceProvider
from kube_flare.registry import Check, CheckRegistry, default_registry

logger = logging.getLogger(__name__)


def _crashed(check: Check, exc: BaseException) -> Result:
    return Result(
        name=check.name, passed=False,
        details="check raised an unexpected error and did not complete",
        error=describe_error(exc),
    )


def _execute(check: Check, provider: ClusterResourceProvider) -> Result:
    start = time.monotonic()
    try:
        result = check.run(provider)
        if not isinstance(result, Result):
            raise TypeError(f"check returned {type(result).__name__}, not Result")
        if result.name != check.name:
            raise ValueError(f"check returned a result named {result.name!r}")
    except Exception as exc:
        logger.exception("check %s raised", check.name)
        result = _crashed(check, exc)
    return dataclasses.replace(result, duration_ms=(time.monotonic() - start) * 1000)


def _timed_out(check: Check, timeout: float) -> Result:
    logger.warning("check %s did not finish within %.1fs; abandoning it", check.name, timeout)
    return Result(
        name=check.name, passed=False,
        details=f"check did not complete within {timeout:g}s and was abandoned",
        error=f"TimeoutError: no result after {timeout:g}s",
        duration_ms=timeout * 1000,
    )


class CheckRunner:
    def __init__(self, registry: CheckRegistry, timeout: float | None = None, max_workers: int | None = None):
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.registry = registry
        self.timeout = timeout
        self.max_workers = max_workers

    def run(self, provider: ClusterResourceProvider) -> list[Result]:
        checks = list(self.registry)
        if not checks:
            return []

        logger.info("running %d checks", len(checks))
        start = time.monotonic()
        executor = ThreadPoolExecutor(
            max_workers=self.max_workers or len(checks),
            thread_name_prefix="kube-flare-check",
        )
        try:
            futures: list[Future[Result]] = [executor.submit(_execute, check, provider) for check in checks]
            _, not_done = wait(futures, timeout=self.timeout)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        results = []
        for check, future in zip(checks, futures):
            if future in not_done:
                results.append(_timed_out(check, self.timeout))
                continue
            exc = future.exception()
            if exc is None:
                results.append(future.result())
            elif isinstance(exc, KeyboardInterrupt):
                raise exc
            else:
                # SystemExit and other BaseExceptions escape _execute
                logger.error("check %s aborted with %s", check.name, describe_error(exc))
                results.append(_crashed(check, exc))

        failed = sum(1 for r in results if not r.passed)
        logger.info(
            "finished %d checks in %.0fms (%d failing)", len(results), (time.monotonic() - start) * 1000, failed,
        )
        return results


def run_checks(
    provider: ClusterResourceProvider,
    registry: CheckRegistry | None = None,
    timeout: float | None = None,
    max_workers: int | None = None,
) -> list[Result]:
    if registry is None:
        registry = default_registry()
    return CheckRunner(registry, timeout=timeout, max_workers=max_workers).run(provider)
