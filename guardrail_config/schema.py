"""
Guardrail configuration schema.

Frozen dataclasses the loader parses ``root.yaml`` into.  A
GuardrailConfig is the runtime artifact handed out by
``get_active_config()``; it is immutable and safe to share across threads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from guardrail_kernel.services.guardrail_orchestrator import PLATFORM_ORGANIZATION_ID


@dataclass(frozen=True)
class ConfigScope:
    """Which organizations a configuration set applies to (``*`` = all)."""

    organization_id: str = "*"

    def matches(self, organization_id: str) -> bool:
        return self.organization_id == "*" or self.organization_id == organization_id


@dataclass(frozen=True)
class BalancePolicy:
    """GL balance settings."""

    tolerance: Decimal = Decimal("0")
    default_currency: str = "DOC"


@dataclass(frozen=True)
class PeriodPolicy:
    """Fiscal period lookup settings."""

    allow_posting_without_period: bool = True
    lookup_timeout_seconds: float | None = 5.0
    max_lookup_workers: int = 4


@dataclass(frozen=True)
class OrganizationPolicy:
    """Tenant boundary settings."""

    platform_organization_id: str = PLATFORM_ORGANIZATION_ID


@dataclass(frozen=True)
class GuardrailConfig:
    """A parsed, validated configuration set."""

    config_id: str
    version: int
    scope: ConfigScope = field(default_factory=ConfigScope)
    balance: BalancePolicy = field(default_factory=BalancePolicy)
    period: PeriodPolicy = field(default_factory=PeriodPolicy)
    organization: OrganizationPolicy = field(default_factory=OrganizationPolicy)
    description: str = ""
    checksum: str = ""
