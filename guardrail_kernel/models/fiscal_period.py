"""
Module: guardrail_kernel.models.fiscal_period
Responsibility: ORM persistence for fiscal periods -- the date ranges per
    organization that accept (or refuse) postings.
Architecture position: Kernel > Models.  Imports db/base.py and the domain
    PeriodStatus enum.

Invariants enforced:
    - period_code is unique per organization.
    - Only OPEN periods accept postings; CLOSING, CLOSED and LOCKED refuse.

Audit relevance:
    FiscalPeriod rows govern which transaction dates the guardrails accept.
    TrackedBase records who created and last changed each row.
"""

from datetime import date

from sqlalchemy import Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from guardrail_kernel.db.base import TrackedBase
from guardrail_kernel.domain.dtos import FiscalPeriodInfo, PeriodStatus


class FiscalPeriod(TrackedBase):
    """
    Fiscal period of one organization.

    Non-goals:
        - Does NOT enforce non-overlapping date ranges; when ranges overlap
          the selector reports the most restrictive covering period.
    """

    __tablename__ = "fiscal_periods"

    __table_args__ = (
        UniqueConstraint("organization_id", "period_code", name="uq_fiscal_period_org_code"),
        Index("idx_fiscal_period_org_dates", "organization_id", "start_date", "end_date"),
    )

    organization_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    # Period identifier (e.g., "2024-01", "2024-Q1", "FY2024")
    period_code: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Period boundaries (inclusive)
    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=PeriodStatus.OPEN.value,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<FiscalPeriod {self.organization_id}/{self.period_code}: {self.status}>"

    @property
    def period_status(self) -> PeriodStatus:
        return PeriodStatus(str(self.status).lower())

    @property
    def is_open(self) -> bool:
        """Check if period is open for posting."""
        return self.period_status == PeriodStatus.OPEN

    def contains_date(self, check_date: date) -> bool:
        """Check if a date falls within this period."""
        return self.start_date <= check_date <= self.end_date

    def to_info(self) -> FiscalPeriodInfo:
        return FiscalPeriodInfo(
            period_label=self.period_code,
            status=self.period_status,
            organization_id=self.organization_id,
            start_date=self.start_date,
            end_date=self.end_date,
        )
