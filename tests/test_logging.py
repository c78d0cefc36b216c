"""
Structured logging tests (guardrail_kernel/logging_config.py).

Verifies:
- One JSON object per line with the envelope, context and extra fields
- Guardrail exceptions expose their code and attributes as exc_* fields
- Guardrail DTOs, enums and Decimals serialize to plain JSON
- LogContext binding nests and unwinds per field
- configure_logging is idempotent and scoped to guardrail_kernel
"""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from guardrail_kernel.domain.dtos import FixRecord, PeriodStatus, Severity, Violation
from guardrail_kernel.exceptions import PeriodLookupTimeoutError, UnsupportedTableError
from guardrail_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _fresh_logging():
    """Each test configures logging itself; the suite default is restored after."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def json_stream():
    """Configure guardrail logging into a buffer and return a line reader."""
    stream = StringIO()

    def _configure(level=logging.INFO):
        handler = logging.StreamHandler(stream)
        configure_logging(handler=handler, level=level)

    def _records():
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    _records.configure = _configure
    return _records


class TestEnvelope:

    def test_envelope_and_extra(self, json_stream):
        json_stream.configure()
        get_logger("services.guardrail_orchestrator").info(
            "guardrail_validation_completed", extra={"fix_count": 2, "validation_passed": True}
        )

        (record,) = json_stream()
        assert record["level"] == "INFO"
        assert record["logger"] == "guardrail_kernel.services.guardrail_orchestrator"
        assert record["message"] == "guardrail_validation_completed"
        assert record["fix_count"] == 2
        assert record["validation_passed"] is True
        assert record["ts"].endswith("+00:00")

    def test_context_merged(self, json_stream):
        json_stream.configure()
        with LogContext.bind(organization_id="org-1", table="entities", correlation_id="req-1"):
            get_logger("test").info("inside")
        get_logger("test").info("outside")

        inside, outside = json_stream()
        assert inside["organization_id"] == "org-1"
        assert inside["table"] == "entities"
        assert inside["correlation_id"] == "req-1"
        assert "organization_id" not in outside

    def test_extra_cannot_override_context(self, json_stream):
        json_stream.configure()
        with LogContext.bind(organization_id="bound-org"):
            get_logger("test").info("clash", extra={"organization_id": "other-org"})
        assert json_stream()[0]["organization_id"] == "bound-org"

    def test_level_filtering(self, json_stream):
        json_stream.configure(level=logging.INFO)
        log = get_logger("test")
        log.debug("dropped")
        log.warning("kept")
        assert [r["message"] for r in json_stream()] == ["kept"]

    def test_level_by_name(self, json_stream):
        json_stream.configure(level="debug")
        get_logger("test").debug("named_level")
        assert json_stream()[0]["message"] == "named_level"


class TestExceptionFields:

    def test_plain_exception(self, json_stream):
        json_stream.configure()
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = json_stream()[0]
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_collaborator_error_attributes(self, json_stream):
        json_stream.configure()
        try:
            raise PeriodLookupTimeoutError("org-1", "2024-01-15", 0.25)
        except PeriodLookupTimeoutError:
            get_logger("test").error("period_lookup_timeout", exc_info=True)

        record = json_stream()[0]
        assert record["exc_code"] == "PERIOD_LOOKUP_TIMEOUT"
        assert record["exc_organization_id"] == "org-1"
        assert record["exc_transaction_date"] == "2024-01-15"
        assert record["exc_timeout_seconds"] == 0.25

    def test_tuple_attribute_serialized(self, json_stream):
        json_stream.configure()
        try:
            raise UnsupportedTableError("ledgers", ("entities", "relationships"))
        except UnsupportedTableError:
            get_logger("test").error("bad_table", exc_info=True)

        record = json_stream()[0]
        assert record["exc_table"] == "ledgers"
        assert record["exc_supported"] == ["entities", "relationships"]


class TestGuardrailValues:

    def test_dtos_and_enums(self, json_stream):
        json_stream.configure()
        violation = Violation("lines", "not balanced", code="UNBALANCED_GL_ENTRY")
        fix = FixRecord("entity_type", "client", "customer", "alias")
        get_logger("test").warning(
            "verdict_rejected",
            extra={
                "violations": (violation,),
                "fix": fix,
                "period_status": PeriodStatus.CLOSED,
                "severity": Severity.ERROR,
            },
        )

        record = json_stream()[0]
        assert record["violations"][0]["code"] == "UNBALANCED_GL_ENTRY"
        assert record["violations"][0]["severity"] == "error"
        assert record["fix"]["new_value"] == "customer"
        assert record["period_status"] == "closed"
        assert record["severity"] == "error"

    def test_uuid_decimal_date(self, json_stream):
        from datetime import date

        json_stream.configure()
        uid = uuid4()
        get_logger("test").info(
            "values", extra={"actor": uid, "delta": Decimal("10.00"), "on_date": date(2024, 2, 29)}
        )

        record = json_stream()[0]
        assert record["actor"] == str(uid)
        assert record["delta"] == "10.00"
        assert record["on_date"] == "2024-02-29"

    def test_unserializable_falls_back_to_str(self, json_stream):
        json_stream.configure()
        get_logger("test").info("odd", extra={"thing": object()})
        assert json_stream()[0]["thing"].startswith("<object object")


class TestLogContext:

    def test_set_ignores_none(self):
        LogContext.set(correlation_id="x", actor_id=None)
        assert LogContext.get_all() == {"correlation_id": "x"}

    def test_values_stringified(self):
        uid = uuid4()
        LogContext.set(organization_id=uid)
        assert LogContext.get_all()["organization_id"] == str(uid)

    def test_nested_bind_unwinds(self):
        with LogContext.bind(organization_id="outer", table="entities"):
            with LogContext.bind(organization_id="inner"):
                assert LogContext.get_all() == {"organization_id": "inner", "table": "entities"}
            assert LogContext.get_all() == {"organization_id": "outer", "table": "entities"}
        assert LogContext.get_all() == {}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(actor_id="temp"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_all_fields(self):
        LogContext.set(**{name: name.upper() for name in LogContext.FIELDS})
        assert LogContext.get_all() == {name: name.upper() for name in LogContext.FIELDS}
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(tenant="x")
        with pytest.raises(TypeError):
            LogContext.bind(tenant="x")


class TestConfigureLogging:

    def test_idempotent(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert len(logging.getLogger("guardrail_kernel").handlers) == 1

    def test_does_not_propagate_to_root(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert logging.getLogger("guardrail_kernel").propagate is False

    def test_reset_detaches_handler(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        reset_logging()
        kernel_logger = logging.getLogger("guardrail_kernel")
        assert kernel_logger.handlers == []
        assert kernel_logger.propagate is True

    def test_formatter_installed_on_handler(self):
        handler = logging.StreamHandler(StringIO())
        configure_logging(handler=handler)
        assert isinstance(handler.formatter, StructuredFormatter)
