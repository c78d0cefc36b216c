"""
SqlFiscalPeriodLookup -- FiscalPeriodLookup backed by the fiscal_periods table.

Opens one short-lived session per lookup from the injected session factory,
so a single instance can serve concurrent validations (including calls
made from the period validator's worker threads).
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session, sessionmaker

from guardrail_kernel.domain.dtos import FiscalPeriodInfo
from guardrail_kernel.logging_config import get_logger
from guardrail_kernel.selectors.fiscal_period_selector import FiscalPeriodSelector

logger = get_logger("services.period_lookup")


class SqlFiscalPeriodLookup:
    """Resolve fiscal periods from the database."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def get_fiscal_period(
        self, organization_id: str, on_date: date
    ) -> FiscalPeriodInfo | None:
        with self._session_factory() as session:
            period = FiscalPeriodSelector(session).covering(organization_id, on_date)

        logger.debug(
            "fiscal_period_resolved",
            extra={
                "organization_id": organization_id,
                "on_date": on_date.isoformat(),
                "period_label": period.period_label if period else None,
            },
        )
        return period
