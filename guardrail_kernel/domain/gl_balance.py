"""
GLBalance -- Double-entry balance check for ledger-affecting transactions.

Responsibility:
    For transactions whose smart code carries the ``.GL.`` marker, verifies
    that debit and credit line amounts net to zero per currency and reports
    each imbalance with its exact delta and short side.  Also owns the
    ledger-account entity-type alias remap.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Called by the guardrail orchestrator for the transactions table and
    usable standalone.

Invariants enforced:
    - Decimal-only arithmetic; amounts are never compared as floats.
    - Balance is per currency: a USD debit never offsets a EUR credit.
    - A tolerance only applies to currencies with fractional minor units.
    - Sums are exact: an amount that cannot be added without rounding is an
      INVALID_GL_LINE error, never a silently rounded total.

Failure modes:
    - Never raises for malformed lines; they become INVALID_GL_LINE errors
      in the returned BalanceResult.  A ``lines`` value that is not a list
      is one INVALID_GL_LINE error with no line index.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal, Inexact, InvalidOperation, localcontext
from enum import Enum
from types import MappingProxyType
from typing import Any

from guardrail_kernel.domain.currency import DOCUMENT_CURRENCY, effective_tolerance
from guardrail_kernel.domain.dtos import BalanceTotals
from guardrail_kernel.domain.payloads import TransactionLine
from guardrail_kernel.domain.smart_code import is_gl_smart_code
from guardrail_kernel.logging_config import get_logger

logger = get_logger("domain.gl_balance")

UNBALANCED_GL_ENTRY = "UNBALANCED_GL_ENTRY"
INVALID_GL_LINE = "INVALID_GL_LINE"
GL_ZERO_AMOUNT_LINE = "GL_ZERO_AMOUNT_LINE"
GL_SINGLE_LINE = "GL_SINGLE_LINE"

# Digits kept while summing; anything needing more is rejected as inexact.
_SUM_PRECISION = 60

LEDGER_ACCOUNT_TYPE = "account"

LEDGER_ACCOUNT_ALIASES: Mapping[str, str] = MappingProxyType({
    "gl_account": LEDGER_ACCOUNT_TYPE,
    "glaccount": LEDGER_ACCOUNT_TYPE,
    "gl-account": LEDGER_ACCOUNT_TYPE,
    "ledger_account": LEDGER_ACCOUNT_TYPE,
    "coa_account": LEDGER_ACCOUNT_TYPE,
    "chart_of_account": LEDGER_ACCOUNT_TYPE,
})


class LineSide(str, Enum):
    """Which side of the entry a line is on."""

    DEBIT = "debit"
    CREDIT = "credit"


_SIDE_ALIASES: Mapping[str, LineSide] = MappingProxyType({
    "debit": LineSide.DEBIT,
    "dr": LineSide.DEBIT,
    "credit": LineSide.CREDIT,
    "cr": LineSide.CREDIT,
})


@dataclass(frozen=True)
class BalanceError:
    """
    One reason a GL entry cannot be posted.

    For UNBALANCED_GL_ENTRY the totals, absolute ``delta`` and
    ``short_side`` are populated; for INVALID_GL_LINE ``line_index`` is.
    """

    code: str
    message: str
    currency: str | None = None
    debit_total: Decimal | None = None
    credit_total: Decimal | None = None
    delta: Decimal | None = None
    short_side: LineSide | None = None
    line_index: int | None = None

    def to_details(self) -> dict[str, Any]:
        details: dict[str, Any] = {"code": self.code}
        if self.currency is not None:
            details["currency"] = self.currency
        if self.debit_total is not None:
            details["debit_total"] = str(self.debit_total)
            details["credit_total"] = str(self.credit_total)
            details["delta"] = str(self.delta)
            details["short_side"] = self.short_side.value
        if self.line_index is not None:
            details["line_index"] = self.line_index
        return details


@dataclass(frozen=True)
class BalanceWarning:
    """Advisory finding that does not block posting."""

    code: str
    message: str
    currency: str | None = None
    line_index: int | None = None


@dataclass(frozen=True)
class BalanceResult:
    """
    Outcome of a balance check.

    ``applies`` is False when the smart code is not ledger-affecting; such
    results are always balanced.
    """

    is_balanced: bool
    applies: bool = True
    errors: tuple[BalanceError, ...] = ()
    warnings: tuple[BalanceWarning, ...] = ()
    totals: tuple[BalanceTotals, ...] = ()

    @classmethod
    def not_applicable(cls) -> BalanceResult:
        return cls(is_balanced=True, applies=False)


def is_ledger_account_type(entity_type: str | None) -> bool:
    """True when the entity type denotes a ledger account (canonical or legacy)."""
    if not isinstance(entity_type, str) or not entity_type:
        return False
    key = entity_type.strip().lower()
    return key == LEDGER_ACCOUNT_TYPE or key in LEDGER_ACCOUNT_ALIASES


def normalize_gl_account(entity_type: str | None) -> str | None:
    """Rewrite a legacy ledger-account label (``gl_account``) to ``account``."""
    if not isinstance(entity_type, str) or not entity_type:
        return entity_type
    return LEDGER_ACCOUNT_ALIASES.get(entity_type.strip().lower(), entity_type)


def parse_side(value: Any) -> LineSide | None:
    """Read an explicit side indicator; None when absent or unrecognised."""
    if isinstance(value, LineSide):
        return value
    if not isinstance(value, str):
        return None
    return _SIDE_ALIASES.get(value.strip().lower())


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def validate_balance(
    lines: Iterable[TransactionLine | Mapping[str, Any] | Any] | None,
    smart_code: str | None,
    *,
    tolerance: Decimal | str | int = Decimal("0"),
    default_currency: str | None = None,
) -> BalanceResult:
    """
    Check that debits equal credits per currency for a GL transaction.

    Lines are partitioned by their explicit side, or by the sign of the
    amount when no side is given (positive = debit, negative = credit).

    Args:
        lines: Transaction lines (typed or plain mappings).
        smart_code: Header smart code; the check applies only to ``.GL.``
            codes.
        tolerance: Largest absolute delta still treated as balanced.
        default_currency: Currency for lines that do not name one; a
            non-string code (``840``) is read as its text.

    Returns:
        BalanceResult; ``is_balanced`` is False on any imbalance or
        invalid line.
    """
    if not is_gl_smart_code(smart_code):
        return BalanceResult.not_applicable()

    tolerance = Decimal(str(tolerance))
    header_currency = str(default_currency or DOCUMENT_CURRENCY).strip().upper()

    if lines is not None and (
        isinstance(lines, (str, bytes, Mapping)) or not isinstance(lines, Iterable)
    ):
        return BalanceResult(
            is_balanced=False,
            errors=(BalanceError(
                code=INVALID_GL_LINE,
                message=f"GL lines must be a list, got {type(lines).__name__}",
            ),),
        )

    errors: list[BalanceError] = []
    warnings: list[BalanceWarning] = []
    sums: dict[str, list[Decimal]] = {}
    counts: dict[str, int] = {}
    totals: list[BalanceTotals] = []

    with localcontext() as ctx:
        ctx.prec = _SUM_PRECISION
        ctx.traps[Inexact] = True

        for index, item in enumerate(lines or ()):
            if isinstance(item, Mapping):
                item = TransactionLine.from_mapping(item)
            if not isinstance(item, TransactionLine):
                errors.append(_line_error(index, "GL line must be an object"))
                continue

            amount = _to_decimal(item.amount)
            if amount is None:
                errors.append(_line_error(
                    index, f"GL line amount is missing or not a number: {item.amount!r}"
                ))
                continue

            if item.side is not None:
                side = parse_side(item.side)
                if side is None:
                    errors.append(_line_error(
                        index, f"GL line has invalid side {item.side!r}; expected debit/credit"
                    ))
                    continue
                if amount < 0:
                    errors.append(_line_error(
                        index, f"GL line amount cannot be negative with an explicit side: {amount}"
                    ))
                    continue
            else:
                side = LineSide.DEBIT if amount >= 0 else LineSide.CREDIT
                amount = amount.copy_abs()

            currency = str(item.currency).strip().upper() if item.currency else header_currency
            debit_credit = sums.setdefault(currency, [Decimal("0"), Decimal("0")])
            slot = 0 if side == LineSide.DEBIT else 1
            try:
                debit_credit[slot] += amount
            except Inexact:
                errors.append(_line_error(
                    index, f"GL line amount {amount} cannot be summed exactly in {currency}"
                ))
                continue
            counts[currency] = counts.get(currency, 0) + 1

            if amount == 0:
                warnings.append(BalanceWarning(
                    code=GL_ZERO_AMOUNT_LINE,
                    message="GL line has zero amount",
                    currency=currency,
                    line_index=index,
                ))

        for currency, (debits, credits) in sums.items():
            line_count = counts.get(currency, 0)
            if line_count == 0:
                continue
            entry = BalanceTotals(
                currency=currency,
                debit_total=debits,
                credit_total=credits,
                line_count=line_count,
            )
            totals.append(entry)

            try:
                delta = entry.delta
            except Inexact:
                errors.append(BalanceError(
                    code=INVALID_GL_LINE,
                    message=f"GL totals in {currency} cannot be compared exactly",
                    currency=currency,
                ))
                continue
            if abs(delta) > effective_tolerance(currency, tolerance):
                short_side = LineSide.CREDIT if delta > 0 else LineSide.DEBIT
                errors.append(BalanceError(
                    code=UNBALANCED_GL_ENTRY,
                    message=(
                        f"GL entry not balanced in {currency}: debits={debits}, "
                        f"credits={credits}; {short_side.value} side short by {abs(delta)}"
                    ),
                    currency=currency,
                    debit_total=debits,
                    credit_total=credits,
                    delta=abs(delta),
                    short_side=short_side,
                ))

            if entry.line_count < 2:
                warnings.append(BalanceWarning(
                    code=GL_SINGLE_LINE,
                    message=f"GL transaction for {currency} has only {entry.line_count} line",
                    currency=currency,
                ))

    if errors:
        logger.debug(
            "gl_balance_failed",
            extra={
                "smart_code": smart_code,
                "error_codes": [e.code for e in errors],
                "currencies": sorted(sums),
            },
        )

    return BalanceResult(
        is_balanced=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
        totals=tuple(totals),
    )


def _line_error(index: int, message: str) -> BalanceError:
    return BalanceError(code=INVALID_GL_LINE, message=message, line_index=index)
