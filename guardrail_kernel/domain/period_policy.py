"""
PeriodPolicy -- Pure posting decision for a resolved fiscal period.

Responsibility:
    Given the fiscal period covering a transaction date (or None), decides
    whether a posting is allowed.  The lookup itself is I/O and lives in
    services/period_validator.py.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Only OPEN periods accept postings; CLOSING, CLOSED and LOCKED reject.
    - No period configured for the date => allowed, unless the policy flag
      ``allow_without_period`` is turned off.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from guardrail_kernel.domain.dtos import FiscalPeriodInfo, PostingDecision


def decide_posting(
    period: FiscalPeriodInfo | None,
    transaction_date: date,
    *,
    allow_without_period: bool = True,
) -> PostingDecision:
    """Decide whether ``transaction_date`` may be posted into ``period``."""
    if period is None:
        if allow_without_period:
            return PostingDecision(allowed=True)
        return PostingDecision(
            allowed=False,
            reason=f"No fiscal period is configured for {transaction_date.isoformat()}",
        )

    if period.is_open:
        return PostingDecision(allowed=True, period=period)

    return PostingDecision(
        allowed=False,
        reason=(
            f"Fiscal period {period.period_label} is {period.status.value}; "
            f"cannot post transaction dated {transaction_date.isoformat()}"
        ),
        period=period,
    )


def parse_transaction_date(value: Any) -> date | None:
    """
    Read a transaction date from a payload value.

    Accepts ``date``, ``datetime`` and ISO-8601 strings (date or
    timestamp, ``Z`` suffix allowed).  Returns None when unparseable.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None
