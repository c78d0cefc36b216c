"""
PeriodPostingValidator -- fiscal period posting control for guarded writes.

Responsibility:
    Resolves the fiscal period covering a transaction date through an
    injected lookup collaborator and decides whether posting is allowed.
    Honors the caller's deadline and cancellation signal.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by GuardrailOrchestrator for the transactions table only.  The
    decision itself is the pure ``decide_posting()`` in domain/period_policy.

Invariants enforced:
    - No posting into CLOSING, CLOSED or LOCKED periods.
    - No period configured => allowed (``allow_posting_without_period``).
    - A lookup failure is never reported as a "period closed" decision.

Failure modes:
    - PeriodLookupError: the lookup raised or returned an unreadable period.
    - PeriodLookupTimeoutError: the caller's deadline expired.
    - PeriodLookupCancelledError: the caller's cancel event was set.

Audit relevance:
    Blocked postings are logged at WARNING with organization, date and
    period label; collaborator failures at ERROR with the exception.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import date
from typing import Any, Protocol, runtime_checkable

from guardrail_kernel.domain.clock import Clock, Deadline, SystemClock
from guardrail_kernel.domain.dtos import FiscalPeriodInfo, PostingDecision
from guardrail_kernel.domain.period_policy import decide_posting
from guardrail_kernel.exceptions import (
    PeriodLookupCancelledError,
    PeriodLookupError,
    PeriodLookupTimeoutError,
)
from guardrail_kernel.logging_config import get_logger

logger = get_logger("services.period_validator")

# How often a pending lookup re-checks the cancel event.
_CANCEL_POLL_SECONDS = 0.05


@runtime_checkable
class FiscalPeriodLookup(Protocol):
    """
    Boundary to the externally-owned fiscal period store.

    Returns the period covering ``on_date`` for the organization, or None
    when no period is configured.  A mapping with ``status`` and
    ``periodLabel``/``period_label`` is accepted in place of a
    FiscalPeriodInfo.
    """

    def get_fiscal_period(
        self, organization_id: str, on_date: date
    ) -> FiscalPeriodInfo | Mapping[str, Any] | None:
        ...


class PeriodPostingValidator:
    """
    Checks that a transaction date falls in a period open for posting.

    Contract:
        ``check_posting_allowed()`` returns a PostingDecision for data
        problems and raises a CollaboratorError subclass for lookup
        problems.  Instances hold no per-request state and are safe to
        share between threads.

    Non-goals:
        - Does NOT cache periods; every call performs one lookup.
        - Does NOT open, close or lock periods.
        - Does NOT interrupt a lookup that is already running.  A timeout or
          cancellation abandons it, but it keeps its worker thread until the
          lookup returns.  With ``max_workers`` hung lookups the pool is
          saturated and later bounded calls time out before their lookup
          starts; each such call logs ``period_lookup_pool_saturated``.
          Lookups should carry their own I/O timeout.
    """

    def __init__(
        self,
        lookup: FiscalPeriodLookup,
        *,
        allow_posting_without_period: bool = True,
        default_timeout_seconds: float | None = None,
        max_workers: int = 4,
        clock: Clock | None = None,
    ):
        self._lookup = lookup
        self._allow_without_period = allow_posting_without_period
        self._default_timeout = default_timeout_seconds
        self._max_workers = max_workers
        self._clock = clock or SystemClock()
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    def check_posting_allowed(
        self,
        organization_id: str,
        transaction_date: date,
        transaction_type: str | None = None,
        smart_code: str | None = None,
        *,
        deadline: Deadline | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PostingDecision:
        """
        Decide whether a transaction may be posted on ``transaction_date``.

        Args:
            organization_id: Tenant whose fiscal calendar applies.
            transaction_date: Effective date of the transaction.
            transaction_type: Logged for audit only.
            smart_code: Logged for audit only.
            deadline: Bound on the lookup; falls back to the validator's
                default timeout when omitted.
            cancel_event: When set by the caller, the pending lookup is
                abandoned.

        Raises:
            PeriodLookupError, PeriodLookupTimeoutError,
            PeriodLookupCancelledError.
        """
        if deadline is None and self._default_timeout is not None:
            deadline = Deadline.after(self._default_timeout, self._clock)

        period = self._resolve_period(
            organization_id, transaction_date, deadline, cancel_event
        )
        decision = decide_posting(
            period,
            transaction_date,
            allow_without_period=self._allow_without_period,
        )

        if decision.allowed:
            logger.debug(
                "period_posting_allowed",
                extra={
                    "organization_id": organization_id,
                    "transaction_date": transaction_date.isoformat(),
                    "period_label": period.period_label if period else None,
                    "period_configured": period is not None,
                },
            )
        else:
            logger.warning(
                "period_posting_blocked",
                extra={
                    "organization_id": organization_id,
                    "transaction_date": transaction_date.isoformat(),
                    "transaction_type": transaction_type,
                    "smart_code": smart_code,
                    "period_label": period.period_label if period else None,
                    "period_status": period.status.value if period else None,
                },
            )
        return decision

    def shutdown(self) -> None:
        """Release the lookup worker threads, if any were started."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None

    # -----------------------------------------------------------------
    # Lookup
    # -----------------------------------------------------------------

    def _resolve_period(
        self,
        organization_id: str,
        transaction_date: date,
        deadline: Deadline | None,
        cancel_event: threading.Event | None,
    ) -> FiscalPeriodInfo | None:
        day = transaction_date.isoformat()

        if cancel_event is not None and cancel_event.is_set():
            raise PeriodLookupCancelledError(organization_id, day)

        if deadline is None and cancel_event is None:
            raw = self._call_lookup(organization_id, transaction_date)
        else:
            raw = self._call_bounded(
                organization_id, transaction_date, deadline, cancel_event
            )
        return self._to_period(raw, organization_id, day)

    def _call_lookup(self, organization_id: str, transaction_date: date) -> Any:
        try:
            return self._lookup.get_fiscal_period(organization_id, transaction_date)
        except Exception as exc:
            logger.error(
                "period_lookup_failed",
                extra={
                    "organization_id": organization_id,
                    "transaction_date": transaction_date.isoformat(),
                },
                exc_info=True,
            )
            raise PeriodLookupError(
                organization_id, transaction_date.isoformat(), str(exc) or type(exc).__name__
            ) from exc

    def _call_bounded(
        self,
        organization_id: str,
        transaction_date: date,
        deadline: Deadline | None,
        cancel_event: threading.Event | None,
    ) -> Any:
        day = transaction_date.isoformat()
        budget = deadline.remaining(self._clock) if deadline is not None else None
        if budget is not None and budget <= 0:
            logger.warning(
                "period_lookup_timeout",
                extra={"organization_id": organization_id, "transaction_date": day},
            )
            raise PeriodLookupTimeoutError(organization_id, day, 0.0)

        future: Future = self._get_executor().submit(
            self._call_lookup, organization_id, transaction_date
        )

        waited = 0.0
        while True:
            step = _CANCEL_POLL_SECONDS if cancel_event is not None else budget
            if budget is not None:
                step = min(step, budget - waited)
            done, _ = wait([future], timeout=step)
            if done:
                return future.result()
            waited += step
            if cancel_event is not None and cancel_event.is_set():
                self._abandon(future, organization_id, day)
                logger.warning(
                    "period_lookup_cancelled",
                    extra={"organization_id": organization_id, "transaction_date": day},
                )
                raise PeriodLookupCancelledError(organization_id, day)
            if budget is not None and waited >= budget:
                self._abandon(future, organization_id, day)
                logger.warning(
                    "period_lookup_timeout",
                    extra={
                        "organization_id": organization_id,
                        "transaction_date": day,
                        "timeout_seconds": budget,
                    },
                )
                raise PeriodLookupTimeoutError(organization_id, day, budget)

    def _abandon(self, future: Future, organization_id: str, day: str) -> None:
        # cancel() only succeeds while the lookup is still queued; a running
        # lookup keeps its worker until the backing store returns
        if future.cancel():
            logger.warning(
                "period_lookup_pool_saturated",
                extra={
                    "organization_id": organization_id,
                    "transaction_date": day,
                    "max_workers": self._max_workers,
                },
            )

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="guardrail-period-lookup",
                )
            return self._executor

    @staticmethod
    def _to_period(raw: Any, organization_id: str, day: str) -> FiscalPeriodInfo | None:
        if raw is None or isinstance(raw, FiscalPeriodInfo):
            return raw
        if isinstance(raw, Mapping):
            try:
                return FiscalPeriodInfo.from_mapping(raw)
            except (KeyError, ValueError) as exc:
                raise PeriodLookupError(
                    organization_id, day, f"unreadable fiscal period {dict(raw)!r}"
                ) from exc
        raise PeriodLookupError(
            organization_id, day, f"unexpected lookup result type {type(raw).__name__}"
        )
