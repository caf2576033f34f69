# SPDX-License-Identifier: MIT

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kube_flare.errors import describe_error


@dataclass(frozen=True)
class Result:
    """Outcome of one check invocation.

    ``passed`` False with no ``error`` means the check ran cleanly and found
    its symptom. ``error`` set means the check itself could not complete.
    ``details`` may carry advisory text on a passing result.
    """

    name: str
    passed: bool
    details: str = ""
    error: str | None = None
    duration_ms: float = field(default=0.0, compare=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("result name must not be empty")
        if not self.passed and not self.details and self.error is None:
            raise ValueError(f"failing result {self.name!r} must carry details or an error")
        if self.passed and self.error is not None:
            raise ValueError(f"result {self.name!r} cannot pass with an error")

    @classmethod
    def ok(cls, name: str, details: str = "") -> Result:
        return cls(name=name, passed=True, details=details)

    @classmethod
    def symptom(cls, name: str, details: str) -> Result:
        return cls(name=name, passed=False, details=details)

    @classmethod
    def degraded_by(cls, name: str, details: str, exc: BaseException) -> Result:
        return cls(name=name, passed=False, details=details, error=describe_error(exc))

    @property
    def degraded(self) -> bool:
        return self.error is not None

    @property
    def status(self) -> str:
        if self.degraded:
            return "error"
        return "pass" if self.passed else "fail"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "status": self.status,
            "details": self.details,
            "error": self.error,
            "duration_ms": round(self.duration_ms, 1),
        }
