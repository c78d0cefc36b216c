"""Pure posting decision and transaction date parsing tests."""

from datetime import date, datetime, UTC

import pytest

from guardrail_kernel.domain.dtos import FiscalPeriodInfo, PeriodStatus
from guardrail_kernel.domain.period_policy import decide_posting, parse_transaction_date

JAN_15 = date(2024, 1, 15)


def _period(status: PeriodStatus) -> FiscalPeriodInfo:
    return FiscalPeriodInfo(period_label="2024-01", status=status)


class TestDecidePosting:

    def test_open_period_allows(self):
        decision = decide_posting(_period(PeriodStatus.OPEN), JAN_15)
        assert decision.allowed
        assert decision.reason is None
        assert decision.period.period_label == "2024-01"

    @pytest.mark.parametrize(
        "status", [PeriodStatus.CLOSING, PeriodStatus.CLOSED, PeriodStatus.LOCKED]
    )
    def test_non_open_period_blocks(self, status):
        decision = decide_posting(_period(status), JAN_15)
        assert not decision.allowed
        assert not decision
        assert "2024-01" in decision.reason
        assert status.value in decision.reason
        assert "2024-01-15" in decision.reason

    def test_no_period_allows_by_default(self):
        decision = decide_posting(None, JAN_15)
        assert decision.allowed
        assert decision.period is None

    def test_no_period_blocks_when_policy_disabled(self):
        decision = decide_posting(None, JAN_15, allow_without_period=False)
        assert not decision.allowed
        assert "No fiscal period" in decision.reason


class TestFiscalPeriodInfo:

    def test_from_lookup_boundary_shape(self):
        info = FiscalPeriodInfo.from_mapping({"status": "CLOSED", "periodLabel": "FY2024-Q1"})
        assert info.status == PeriodStatus.CLOSED
        assert info.period_label == "FY2024-Q1"
        assert not info.is_open

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            FiscalPeriodInfo.from_mapping({"status": "archived", "period_label": "x"})


class TestParseTransactionDate:

    @pytest.mark.parametrize(
        "value",
        [
            "2024-01-15",
            "2024-01-15T10:30:00",
            "2024-01-15T10:30:00Z",
            "2024-01-15T10:30:00+00:00",
            date(2024, 1, 15),
            datetime(2024, 1, 15, 10, 30, tzinfo=UTC),
        ],
    )
    def test_accepted_forms(self, value):
        assert parse_transaction_date(value) == JAN_15

    @pytest.mark.parametrize("value", ["", "yesterday", "2024-13-45", 20240115, None])
    def test_unparseable(self, value):
        assert parse_transaction_date(value) is None
