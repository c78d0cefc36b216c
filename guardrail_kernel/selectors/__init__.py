"""Selectors for the guardrail kernel (read side)."""

from guardrail_kernel.selectors.fiscal_period_selector import FiscalPeriodSelector

__all__ = [
    "FiscalPeriodSelector",
]
