# SPDX-License-Identifier: MIT

from __future__ import annotations

import io
import logging
from typing import IO, Any, Protocol, Sequence

from kube_flare.models import Result

logger = logging.getLogger(__name__)


class Reporter(Protocol):
    def report(self, results: Sequence[Result]) -> int: ...


def render_result(result: Result) -> str:
    """Header line, then the details exactly as the check wrote them."""
    marker = "[PASS]" if result.passed else "[FAIL]"
    out = f"{marker} {result.name}\n"
    if result.details:
        out += result.details
        if not result.details.endswith("\n"):
            out += "\n"
    if result.error:
        out += f"error: {result.error}\n"
    return out


class TextReporter:
    """Writes one block per result to a text stream, in the order given."""

    def __init__(self, stream: IO[str]):
        self.stream = stream

    def report(self, results: Sequence[Result]) -> int:
        written = 0
        for result in results:
            try:
                self.stream.write(render_result(result))
            except (OSError, ValueError) as exc:
                logger.warning("could not write result %s: %s", result.name, exc)
                continue
            written += 1
        try:
            self.stream.flush()
        except (OSError, ValueError) as exc:
            logger.warning("could not flush report stream: %s", exc)
        return written


def summarize(results: Sequence[Result]) -> dict[str, Any]:
    failed = [r for r in results if not r.passed]
    return {
        "overall_health": "failing" if failed else "ok",
        "total": len(results),
        "passed": len(results) - len(failed),
        "failed": len(failed),
        "degraded": sum(1 for r in failed if r.degraded),
    }


def generate_report_text(results: Sequence[Result], cluster_name: str = "unknown", context_name: str = "unknown") -> str:
    summary = summarize(results)
    buf = io.StringIO()
    buf.write(f"# Kubernetes Cluster Diagnostic: {cluster_name}\n")
    buf.write(f"Context: {context_name}\n")
    buf.write(
        f"## Summary: {summary['total']} checks ({summary['passed']} passed, "
        f"{summary['failed']} failed, {summary['degraded']} degraded)\n\n"
    )
    TextReporter(buf).report(results)
    return buf.getvalue().rstrip("\n")
