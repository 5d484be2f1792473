"""
Tagged results returned by every external collaborator of the expiry scan.

The orchestrator applies a different policy per kind (skip, retry next run,
disable channel) so collaborators never signal "not found" and "network down"
the same way.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class OutcomeKind(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    TRANSIENT_FAILURE = "transient_failure"
    CONFIGURATION_FAILURE = "configuration_failure"


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @classmethod
    def success(cls, value=None) -> "Outcome":
        return cls(OutcomeKind.OK, value=value)

    @classmethod
    def not_found(cls, error: str) -> "Outcome":
        return cls(OutcomeKind.NOT_FOUND, error=error)

    @classmethod
    def transient(cls, error: str) -> "Outcome":
        return cls(OutcomeKind.TRANSIENT_FAILURE, error=error)

    @classmethod
    def misconfigured(cls, error: str) -> "Outcome":
        return cls(OutcomeKind.CONFIGURATION_FAILURE, error=error)
