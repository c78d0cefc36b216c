"""ORM models for the guardrail kernel."""

from guardrail_kernel.models.fiscal_period import FiscalPeriod

__all__ = [
    "FiscalPeriod",
]
