"""
Config -> Kernel Bridges.

Functions that turn a GuardrailConfig into kernel objects.  They live in
guardrail_config (the producer) because the kernel must NEVER import
guardrail_config.

Usage:
    from guardrail_config import get_active_config
    from guardrail_config.bridges import build_orchestrator

    config = get_active_config(organization_id)
    orchestrator = build_orchestrator(config, SqlFiscalPeriodLookup(factory))
"""

from __future__ import annotations

from guardrail_config.schema import GuardrailConfig
from guardrail_kernel.domain.clock import Clock
from guardrail_kernel.services.guardrail_orchestrator import GuardrailOrchestrator
from guardrail_kernel.services.period_validator import (
    FiscalPeriodLookup,
    PeriodPostingValidator,
)


def build_period_validator(
    config: GuardrailConfig,
    lookup: FiscalPeriodLookup,
    clock: Clock | None = None,
) -> PeriodPostingValidator:
    """Build a PeriodPostingValidator from the config's period policy."""
    return PeriodPostingValidator(
        lookup,
        allow_posting_without_period=config.period.allow_posting_without_period,
        default_timeout_seconds=config.period.lookup_timeout_seconds,
        max_workers=config.period.max_lookup_workers,
        clock=clock,
    )


def build_orchestrator(
    config: GuardrailConfig,
    lookup: FiscalPeriodLookup | None = None,
    clock: Clock | None = None,
) -> GuardrailOrchestrator:
    """
    Build a GuardrailOrchestrator from a config.

    Without a lookup the orchestrator runs every check except the period
    check.
    """
    period_validator = (
        build_period_validator(config, lookup, clock) if lookup is not None else None
    )
    return GuardrailOrchestrator(
        period_validator,
        balance_tolerance=config.balance.tolerance,
        default_currency=config.balance.default_currency,
        platform_organization_id=config.organization.platform_organization_id,
    )
