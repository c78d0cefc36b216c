"""
Domain DTOs for the guardrail pipeline.

Fix and violation records, the aggregated Verdict, the fiscal period
snapshot returned by the period lookup, and the per-request context that
carries the organization binding through a call.

All types are frozen dataclasses: created fresh for one validation call,
returned to the caller, never persisted by the kernel.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from guardrail_kernel.domain.clock import Deadline
from guardrail_kernel.domain.payloads import Payload


class Severity(str, Enum):
    """
    How serious a violation is.

    Only ERROR blocks the write; WARNING and INFO are advisory.
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class FixRecord:
    """
    One correction applied to a payload field.

    Contract:
        ``confidence`` is in [0, 1].  Deterministic remaps (alias tables,
        version casing) carry 1.0.
    """

    field: str
    old_value: Any
    new_value: Any
    reason: str
    confidence: float = 1.0
    rule: str | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Fix confidence must be in [0, 1], got {self.confidence}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "reason": self.reason,
            "confidence": self.confidence,
            "rule": self.rule,
        }


@dataclass(frozen=True)
class Violation:
    """
    An uncorrectable problem found in a payload.

    Carries enough detail (field, code, message, details) for a caller to
    render an actionable message without re-deriving the reason.
    """

    field: str
    message: str
    severity: Severity = Severity.ERROR
    code: str = "GUARDRAIL_VIOLATION"
    details: Mapping[str, Any] | None = None

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "field": self.field,
            "message": self.message,
            "severity": self.severity.value,
            "code": self.code,
        }
        if self.details is not None:
            out["details"] = dict(self.details)
        return out


@dataclass(frozen=True)
class Verdict:
    """
    Aggregate result of one guardrail run.

    Contract:
        ``validation_passed`` is True exactly when no violation has
        ``Severity.ERROR``.  ``corrected_payload`` has every accepted fix
        applied; fields whose fix was rejected keep their original value.
    """

    validation_passed: bool
    corrected_payload: Payload
    fixes: tuple[FixRecord, ...] = ()
    violations: tuple[Violation, ...] = ()

    @classmethod
    def from_checks(
        cls,
        corrected_payload: Payload,
        fixes: list[FixRecord] | tuple[FixRecord, ...],
        violations: list[Violation] | tuple[Violation, ...],
    ) -> Verdict:
        return cls(
            validation_passed=not any(v.is_blocking for v in violations),
            corrected_payload=corrected_payload,
            fixes=tuple(fixes),
            violations=tuple(violations),
        )

    @property
    def confidence(self) -> float:
        """Mean fix confidence; 1.0 when nothing needed fixing."""
        if not self.fixes:
            return 1.0
        return sum(f.confidence for f in self.fixes) / len(self.fixes)

    @property
    def errors(self) -> tuple[Violation, ...]:
        return tuple(v for v in self.violations if v.severity == Severity.ERROR)

    @property
    def warnings(self) -> tuple[Violation, ...]:
        return tuple(v for v in self.violations if v.severity != Severity.ERROR)

    def to_dict(self) -> dict[str, Any]:
        return {
            "validation_passed": self.validation_passed,
            "confidence": self.confidence,
            "corrected_payload": self.corrected_payload.to_dict(),
            "fixes": [f.to_dict() for f in self.fixes],
            "violations": [v.to_dict() for v in self.violations],
        }


class PeriodStatus(str, Enum):
    """
    Status of a fiscal period.

    Lifecycle: OPEN -> CLOSING -> CLOSED -> LOCKED.  Only OPEN accepts
    postings.
    """

    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    LOCKED = "locked"


@dataclass(frozen=True)
class FiscalPeriodInfo:
    """
    Snapshot of the fiscal period covering a date, as returned by a lookup.

    Non-goals:
        - Does NOT decide whether a posting is allowed (period_policy does).
    """

    period_label: str
    status: PeriodStatus
    organization_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> FiscalPeriodInfo:
        """Read the lookup boundary shape ``{status, periodLabel}``."""
        label = raw.get("period_label", raw.get("periodLabel"))
        return cls(
            period_label=str(label) if label is not None else "",
            status=PeriodStatus(str(raw["status"]).lower()),
            organization_id=raw.get("organization_id"),
            start_date=raw.get("start_date"),
            end_date=raw.get("end_date"),
        )

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN


@dataclass(frozen=True)
class PostingDecision:
    """Whether a transaction date may be posted for an organization."""

    allowed: bool
    reason: str | None = None
    period: FiscalPeriodInfo | None = None

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class BalanceTotals:
    """Debit and credit sums for one currency."""

    currency: str
    debit_total: Decimal
    credit_total: Decimal
    line_count: int

    @property
    def delta(self) -> Decimal:
        return self.debit_total - self.credit_total


@dataclass(frozen=True)
class GuardrailContext:
    """
    Per-request context threaded explicitly through one validation call.

    Replaces any shared "current organization" state: two requests for
    different tenants each carry their own context.

    Attributes:
        organization_id: The tenant the caller is acting for.  When set, a
            payload naming a different organization is rejected.  Never
            copied into a payload that lacks one.
        actor_id: Who is writing; logged only.
        deadline: Bound on the period lookup.
        cancel_event: Set by the caller to abandon a pending period lookup.
        system_operation: Platform-level system writes may target the
            reserved platform organization.
        correlation_id: Propagated into structured logs.
    """

    organization_id: str | None = None
    actor_id: str | None = None
    deadline: Deadline | None = None
    cancel_event: threading.Event | None = field(default=None, compare=False)
    system_operation: bool = False
    correlation_id: str | None = None
