"""
GuardrailOrchestrator -- runs every guardrail against one proposed write.

Responsibility:
    Top-level entry point of the kernel.  Normalizes smart codes,
    canonicalizes entity types, enforces organization scoping, checks the
    fiscal period and the GL balance for transactions, then aggregates the
    outcome into a single Verdict with the corrected payload.

Architecture position:
    Kernel > Services -- imperative shell around the pure domain checks.
    The only I/O is the period lookup, delegated to PeriodPostingValidator.

Invariants enforced:
    - Every step runs on every call; structural and business-rule problems
      are collected as Violations, never raised.
    - A missing organization_id is never defaulted, not even from the
      caller's context.
    - A fix that would produce an invalid value is not applied; the field
      keeps its original value and an error Violation names it.
    - No per-organization state lives on the instance.  The organization
      binding travels in a GuardrailContext or an OrganizationScope.

Failure modes:
    - UnsupportedTableError / PayloadKindError: programming errors at the
      call site (unknown table, wrong payload kind).
    - CollaboratorError subclasses from the period lookup propagate as
      call failures so callers can tell "invalid data" from "could not
      check the data".

Audit relevance:
    ``guardrail_validation_started`` / ``guardrail_validation_completed``
    bracket each call in the structured log with the organization, actor,
    table and correlation id bound via LogContext.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from guardrail_kernel.domain import smart_code as smart_codes
from guardrail_kernel.domain.clock import Deadline
from guardrail_kernel.domain.dtos import (
    FixRecord,
    GuardrailContext,
    Severity,
    Verdict,
    Violation,
)
from guardrail_kernel.domain.entity_types import canonicalize
from guardrail_kernel.domain.gl_balance import (
    INVALID_GL_LINE,
    is_ledger_account_type,
    normalize_gl_account,
    validate_balance,
)
from guardrail_kernel.domain.payloads import (
    EntityPayload,
    Payload,
    RecordTable,
    TransactionLine,
    TransactionPayload,
    parse_payload,
)
from guardrail_kernel.domain.period_policy import parse_transaction_date
from guardrail_kernel.exceptions import CollaboratorError
from guardrail_kernel.logging_config import LogContext, get_logger
from guardrail_kernel.services.period_validator import PeriodPostingValidator

logger = get_logger("services.guardrail_orchestrator")

# Reserved tenant for platform-level system records.
PLATFORM_ORGANIZATION_ID = "00000000-0000-0000-0000-000000000000"

# Violation codes
INVALID_SMART_CODE = "INVALID_SMART_CODE"
MISSING_ORGANIZATION_ID = "MISSING_ORGANIZATION_ID"
ORGANIZATION_MISMATCH = "ORGANIZATION_MISMATCH"
CROSS_ORGANIZATION_LINE = "CROSS_ORGANIZATION_LINE"
PLATFORM_ORGANIZATION_RESERVED = "PLATFORM_ORGANIZATION_RESERVED"
INVALID_TRANSACTION_DATE = "INVALID_TRANSACTION_DATE"
PERIOD_NOT_OPEN = "PERIOD_NOT_OPEN"

# Fix rule codes
SMART_CODE_VERSION_CASE = "SMART_CODE_VERSION_CASE"
LEDGER_ACCOUNT_ALIAS = "LEDGER_ACCOUNT_ALIAS"


class GuardrailOrchestrator:
    """
    Validates and auto-fixes writes to the universal tables.

    Contract:
        ``validate(table, payload, context)`` returns a Verdict whose
        ``validation_passed`` is True exactly when no error-severity
        Violation was recorded.  Safe to call concurrently; all
        configuration is fixed at construction.

    Non-goals:
        - Does NOT persist the payload or the Verdict.
        - Does NOT check business correctness beyond structure, periods
          and balance.
    """

    def __init__(
        self,
        period_validator: PeriodPostingValidator | None = None,
        *,
        balance_tolerance: Decimal | str | int = Decimal("0"),
        default_currency: str | None = None,
        platform_organization_id: str = PLATFORM_ORGANIZATION_ID,
    ):
        self._period_validator = period_validator
        self._tolerance = Decimal(str(balance_tolerance))
        self._default_currency = default_currency
        self._platform_organization_id = str(platform_organization_id)

    def for_organization(
        self,
        organization_id: str,
        actor_id: str | None = None,
        correlation_id: str | None = None,
    ) -> OrganizationScope:
        """Bind an organization for one request without touching this instance."""
        return OrganizationScope(
            orchestrator=self,
            organization_id=str(organization_id),
            actor_id=actor_id,
            correlation_id=correlation_id,
        )

    def validate(
        self,
        table: str | RecordTable,
        payload: Mapping[str, Any] | Payload,
        context: GuardrailContext | None = None,
    ) -> Verdict:
        """
        Run every guardrail against ``payload`` bound for ``table``.

        Raises:
            UnsupportedTableError: ``table`` is not a universal table.
            PayloadKindError: ``payload`` does not fit ``table``.
            CollaboratorError: the period lookup failed, timed out or was
                cancelled.
        """
        kind = RecordTable.parse(table)
        typed = parse_payload(kind, payload)
        context = context or GuardrailContext()

        with LogContext.bind(
            correlation_id=context.correlation_id,
            organization_id=typed.organization_id or context.organization_id,
            actor_id=context.actor_id,
            table=kind.value,
        ):
            logger.info(
                "guardrail_validation_started",
                extra={"smart_code": typed.smart_code},
            )
            try:
                verdict = self._run(kind, typed, context)
            except CollaboratorError as exc:
                logger.error(
                    "guardrail_validation_aborted",
                    extra={"error_code": exc.code},
                )
                raise

            logger.info(
                "guardrail_validation_completed",
                extra={
                    "validation_passed": verdict.validation_passed,
                    "fix_count": len(verdict.fixes),
                    "error_count": len(verdict.errors),
                    "warning_count": len(verdict.warnings),
                    "confidence": verdict.confidence,
                },
            )
            return verdict

    # -----------------------------------------------------------------
    # Pipeline
    # -----------------------------------------------------------------

    def _run(
        self, kind: RecordTable, payload: Payload, context: GuardrailContext
    ) -> Verdict:
        fixes: list[FixRecord] = []
        violations: list[Violation] = []

        payload = self._normalize_smart_codes(payload, fixes, violations)

        if isinstance(payload, EntityPayload):
            payload = self._canonicalize_entity_type(kind, payload, fixes)

        self._check_organization(payload, context, violations)

        if isinstance(payload, TransactionPayload):
            self._check_period(payload, context, violations)
            self._check_balance(payload, violations)

        return Verdict.from_checks(payload, fixes, violations)

    def _normalize_smart_codes(
        self,
        payload: Payload,
        fixes: list[FixRecord],
        violations: list[Violation],
    ) -> Payload:
        if payload.smart_code is not None:
            code = self._fix_smart_code(payload.smart_code, "smart_code", fixes, violations)
            if code != payload.smart_code:
                payload = replace(payload, smart_code=code)

        if isinstance(payload, TransactionPayload) and payload.line_items:
            lines = list(payload.line_items)
            for index, line in enumerate(lines):
                if not isinstance(line, TransactionLine) or line.smart_code is None:
                    continue
                code = self._fix_smart_code(
                    line.smart_code, f"lines[{index}].smart_code", fixes, violations
                )
                if code != line.smart_code:
                    lines[index] = replace(line, smart_code=code)
            payload = replace(payload, lines=tuple(lines))

        return payload

    @staticmethod
    def _fix_smart_code(
        code: Any,
        field_name: str,
        fixes: list[FixRecord],
        violations: list[Violation],
    ) -> Any:
        normalized = smart_codes.normalize(code)
        result = smart_codes.validate(normalized)
        if not result.valid:
            violations.append(Violation(
                field=field_name,
                message=f"Invalid smart code {code!r}: {result.error}",
                code=INVALID_SMART_CODE,
                details={"rule": result.rule.value, "value": code},
            ))
            return code

        if normalized != code:
            fixes.append(FixRecord(
                field=field_name,
                old_value=code,
                new_value=normalized,
                reason="Smart code version marker must be lowercase",
                confidence=1.0,
                rule=SMART_CODE_VERSION_CASE,
            ))
            logger.debug(
                "smart_code_fixed",
                extra={"field": field_name, "old_value": code, "new_value": normalized},
            )
        return normalized

    @staticmethod
    def _canonicalize_entity_type(
        kind: RecordTable,
        payload: EntityPayload,
        fixes: list[FixRecord],
    ) -> EntityPayload:
        if payload.entity_type is None:
            return payload

        canonical = canonicalize(kind, payload.entity_type)
        entity_type = canonical.type
        if canonical.fix_applied:
            fixes.append(canonical.fix)

        if is_ledger_account_type(entity_type):
            account_type = normalize_gl_account(entity_type)
            if account_type != entity_type:
                fixes.append(FixRecord(
                    field="entity_type",
                    old_value=entity_type,
                    new_value=account_type,
                    reason=f"Legacy ledger account type '{entity_type}' replaced by '{account_type}'",
                    confidence=1.0,
                    rule=LEDGER_ACCOUNT_ALIAS,
                ))
                entity_type = account_type

        if entity_type == payload.entity_type:
            return payload
        logger.debug(
            "entity_type_canonicalized",
            extra={"old_value": payload.entity_type, "new_value": entity_type},
        )
        return replace(payload, entity_type=entity_type)

    def _check_organization(
        self,
        payload: Payload,
        context: GuardrailContext,
        violations: list[Violation],
    ) -> None:
        organization_id = payload.organization_id
        if organization_id is None or not organization_id.strip():
            violations.append(Violation(
                field="organization_id",
                message="organization_id is required for every write",
                code=MISSING_ORGANIZATION_ID,
            ))
            return

        if (
            context.organization_id is not None
            and str(context.organization_id) != organization_id
        ):
            violations.append(Violation(
                field="organization_id",
                message=(
                    f"Payload organization {organization_id} does not match the "
                    f"request organization {context.organization_id}"
                ),
                code=ORGANIZATION_MISMATCH,
                details={
                    "payload_organization_id": organization_id,
                    "context_organization_id": str(context.organization_id),
                },
            ))

        if organization_id == self._platform_organization_id and not context.system_operation:
            violations.append(Violation(
                field="organization_id",
                message="The platform organization is reserved for system operations",
                code=PLATFORM_ORGANIZATION_RESERVED,
            ))

        if isinstance(payload, TransactionPayload) and payload.line_items:
            for index, line in enumerate(payload.line_items):
                if not isinstance(line, TransactionLine) or line.organization_id is None:
                    continue
                if line.organization_id != organization_id:
                    violations.append(Violation(
                        field=f"lines[{index}].organization_id",
                        message=(
                            f"Line organization {line.organization_id} differs from "
                            f"transaction organization {organization_id}"
                        ),
                        code=CROSS_ORGANIZATION_LINE,
                    ))

    def _check_period(
        self,
        payload: TransactionPayload,
        context: GuardrailContext,
        violations: list[Violation],
    ) -> None:
        if payload.transaction_date is None:
            return

        on_date = parse_transaction_date(payload.transaction_date)
        if on_date is None:
            violations.append(Violation(
                field="transaction_date",
                message=f"transaction_date {payload.transaction_date!r} is not a valid date",
                code=INVALID_TRANSACTION_DATE,
            ))
            return

        organization_id = payload.organization_id or context.organization_id
        if self._period_validator is None or not organization_id:
            logger.debug(
                "period_check_skipped",
                extra={"has_validator": self._period_validator is not None},
            )
            return

        decision = self._period_validator.check_posting_allowed(
            str(organization_id),
            on_date,
            payload.transaction_type,
            payload.smart_code,
            deadline=context.deadline,
            cancel_event=context.cancel_event,
        )
        if not decision.allowed:
            details: dict[str, Any] = {"transaction_date": on_date.isoformat()}
            if decision.period is not None:
                details["period_label"] = decision.period.period_label
                details["period_status"] = decision.period.status.value
            violations.append(Violation(
                field="transaction_date",
                message=decision.reason or "Posting not allowed for this date",
                code=PERIOD_NOT_OPEN,
                details=details,
            ))

    def _check_balance(
        self,
        payload: TransactionPayload,
        violations: list[Violation],
    ) -> None:
        if payload.lines is None or not smart_codes.is_gl_smart_code(payload.smart_code):
            return

        result = validate_balance(
            payload.lines,
            payload.smart_code,
            tolerance=self._tolerance,
            default_currency=payload.transaction_currency_code or self._default_currency,
        )
        for error in result.errors:
            field_name = (
                f"lines[{error.line_index}]"
                if error.code == INVALID_GL_LINE and error.line_index is not None
                else "lines"
            )
            violations.append(Violation(
                field=field_name,
                message=error.message,
                code=error.code,
                details=error.to_details(),
            ))
        for warning in result.warnings:
            field_name = (
                f"lines[{warning.line_index}]" if warning.line_index is not None else "lines"
            )
            violations.append(Violation(
                field=field_name,
                message=warning.message,
                severity=Severity.WARNING,
                code=warning.code,
                details={"currency": warning.currency},
            ))


@dataclass(frozen=True)
class OrganizationScope:
    """
    An orchestrator bound to one organization for the span of a request.

    Each request builds its own scope; two scopes for different tenants
    share the orchestrator but nothing else.
    """

    orchestrator: GuardrailOrchestrator
    organization_id: str
    actor_id: str | None = None
    correlation_id: str | None = None

    def context(
        self,
        *,
        deadline: Deadline | None = None,
        cancel_event: threading.Event | None = None,
        system_operation: bool = False,
    ) -> GuardrailContext:
        return GuardrailContext(
            organization_id=self.organization_id,
            actor_id=self.actor_id,
            deadline=deadline,
            cancel_event=cancel_event,
            system_operation=system_operation,
            correlation_id=self.correlation_id,
        )

    def validate(
        self,
        table: str | RecordTable,
        payload: Mapping[str, Any] | Payload,
        *,
        deadline: Deadline | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Verdict:
        return self.orchestrator.validate(
            table,
            payload,
            self.context(deadline=deadline, cancel_event=cancel_event),
        )
