"""
Pytest fixtures for the guardrail kernel test suite.

Provides:
- Structured logging setup and log capture
- In-memory fiscal period lookups (see tests/fakes.py)
- An in-memory SQLite period store for the SQLAlchemy adapter
- A deterministic clock
"""

import json
import logging
from datetime import UTC, date, datetime
from io import StringIO
from uuid import uuid4

import pytest

from guardrail_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from guardrail_kernel.domain.clock import DeterministicClock
from guardrail_kernel.domain.dtos import PeriodStatus
from guardrail_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from guardrail_kernel.models.fiscal_period import FiscalPeriod
from guardrail_kernel.services.guardrail_orchestrator import GuardrailOrchestrator
from guardrail_kernel.services.period_validator import PeriodPostingValidator
from tests.fakes import StaticPeriodLookup, make_period

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture guardrail_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.validate("entities", payload)
            logs = captured_logs()
            assert any(r["message"] == "guardrail_validation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("guardrail_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Guardrail fixtures
# =============================================================================


@pytest.fixture
def org_id() -> str:
    return str(uuid4())


@pytest.fixture
def other_org_id() -> str:
    return str(uuid4())


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def period_lookup(org_id) -> StaticPeriodLookup:
    """January 2024 open, February 2024 closed, March 2024 locked."""
    return StaticPeriodLookup({
        org_id: [
            make_period("2024-01", PeriodStatus.OPEN, date(2024, 1, 1), date(2024, 1, 31), org_id),
            make_period("2024-02", PeriodStatus.CLOSED, date(2024, 2, 1), date(2024, 2, 29), org_id),
            make_period("2024-03", PeriodStatus.LOCKED, date(2024, 3, 1), date(2024, 3, 31), org_id),
        ],
    })


@pytest.fixture
def period_validator(period_lookup):
    validator = PeriodPostingValidator(period_lookup)
    yield validator
    validator.shutdown()


@pytest.fixture
def orchestrator(period_validator) -> GuardrailOrchestrator:
    return GuardrailOrchestrator(period_validator)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session_factory():
    """In-memory SQLite period store with the schema created."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


@pytest.fixture
def add_period(session_factory):
    """Insert a FiscalPeriod row and return it."""

    def _add(
        organization_id: str,
        period_code: str,
        start: date,
        end: date,
        status: PeriodStatus = PeriodStatus.OPEN,
    ) -> FiscalPeriod:
        with session_scope() as session:
            period = FiscalPeriod(
                organization_id=organization_id,
                period_code=period_code,
                name=f"Period {period_code}",
                start_date=start,
                end_date=end,
                status=status.value,
                created_by_id=TEST_ACTOR_ID,
            )
            session.add(period)
            return period

    return _add
