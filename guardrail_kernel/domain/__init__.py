"""
Pure domain layer.

This module contains the guardrail checks and their data transfer objects
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Configuration files
- I/O

All domain objects are immutable and deterministic.
"""

from guardrail_kernel.domain.clock import Clock, Deadline, DeterministicClock, SystemClock
from guardrail_kernel.domain.currency import DOCUMENT_CURRENCY, effective_tolerance, minor_units
from guardrail_kernel.domain.dtos import (
    BalanceTotals,
    FiscalPeriodInfo,
    FixRecord,
    GuardrailContext,
    PeriodStatus,
    PostingDecision,
    Severity,
    Verdict,
    Violation,
)
from guardrail_kernel.domain.entity_types import (
    ENTITY_TYPE_ALIASES,
    CanonicalType,
    canonicalize,
)
from guardrail_kernel.domain.gl_balance import (
    BalanceError,
    BalanceResult,
    BalanceWarning,
    LineSide,
    normalize_gl_account,
    validate_balance,
)
from guardrail_kernel.domain.payloads import (
    EntityPayload,
    Payload,
    RecordTable,
    RelationshipPayload,
    TransactionLine,
    TransactionPayload,
    parse_payload,
)
from guardrail_kernel.domain.period_policy import decide_posting, parse_transaction_date
from guardrail_kernel.domain.smart_code import (
    SmartCodeRule,
    SmartCodeValidation,
    build_smart_code,
    is_gl_smart_code,
)

__all__ = [
    # Clock
    "Clock",
    "Deadline",
    "DeterministicClock",
    "SystemClock",
    # Currency
    "DOCUMENT_CURRENCY",
    "effective_tolerance",
    "minor_units",
    # DTOs
    "BalanceTotals",
    "FiscalPeriodInfo",
    "FixRecord",
    "GuardrailContext",
    "PeriodStatus",
    "PostingDecision",
    "Severity",
    "Verdict",
    "Violation",
    # Entity types
    "ENTITY_TYPE_ALIASES",
    "CanonicalType",
    "canonicalize",
    # GL balance
    "BalanceError",
    "BalanceResult",
    "BalanceWarning",
    "LineSide",
    "normalize_gl_account",
    "validate_balance",
    # Payloads
    "EntityPayload",
    "Payload",
    "RecordTable",
    "RelationshipPayload",
    "TransactionLine",
    "TransactionPayload",
    "parse_payload",
    # Period policy
    "decide_posting",
    "parse_transaction_date",
    # Smart codes
    "SmartCodeRule",
    "SmartCodeValidation",
    "build_smart_code",
    "is_gl_smart_code",
]
