"""
FiscalPeriodSelector -- read-only queries over the fiscal_periods table.

Overlapping ranges are tolerated by the schema; when more than one period
covers a date, the most restrictive one is reported so an overlap can
never open a closed date for posting.
"""

from datetime import date

from sqlalchemy import select

from guardrail_kernel.domain.dtos import FiscalPeriodInfo, PeriodStatus
from guardrail_kernel.models.fiscal_period import FiscalPeriod
from guardrail_kernel.selectors.base import BaseSelector

# Higher ranks win when periods overlap.
_RESTRICTION_RANK = {
    PeriodStatus.OPEN: 0,
    PeriodStatus.CLOSING: 1,
    PeriodStatus.CLOSED: 2,
    PeriodStatus.LOCKED: 3,
}


class FiscalPeriodSelector(BaseSelector[FiscalPeriod]):
    """Selector for fiscal period queries."""

    def covering(self, organization_id: str, on_date: date) -> FiscalPeriodInfo | None:
        """
        Return the period of ``organization_id`` whose range contains ``on_date``.

        Returns None when no period covers the date.
        """
        stmt = (
            select(FiscalPeriod)
            .where(FiscalPeriod.organization_id == str(organization_id))
            .where(FiscalPeriod.start_date <= on_date)
            .where(FiscalPeriod.end_date >= on_date)
            .order_by(FiscalPeriod.start_date.desc(), FiscalPeriod.period_code)
        )
        periods = [row.to_info() for row in self.session.scalars(stmt)]
        if not periods:
            return None
        return max(periods, key=lambda p: _RESTRICTION_RANK[p.status])

    def for_organization(self, organization_id: str) -> list[FiscalPeriodInfo]:
        """All periods of an organization, oldest first."""
        stmt = (
            select(FiscalPeriod)
            .where(FiscalPeriod.organization_id == str(organization_id))
            .order_by(FiscalPeriod.start_date, FiscalPeriod.period_code)
        )
        return [row.to_info() for row in self.session.scalars(stmt)]
