"""Services for the guardrail kernel (validation entry points and the period lookup)."""

from guardrail_kernel.services.guardrail_orchestrator import (
    PLATFORM_ORGANIZATION_ID,
    GuardrailOrchestrator,
    OrganizationScope,
)
from guardrail_kernel.services.period_lookup import SqlFiscalPeriodLookup
from guardrail_kernel.services.period_validator import (
    FiscalPeriodLookup,
    PeriodPostingValidator,
)

__all__ = [
    "FiscalPeriodLookup",
    "GuardrailOrchestrator",
    "OrganizationScope",
    "PLATFORM_ORGANIZATION_ID",
    "PeriodPostingValidator",
    "SqlFiscalPeriodLookup",
]
