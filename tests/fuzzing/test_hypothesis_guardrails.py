"""
Hypothesis-based fuzzing of the guardrails.

Property-based tests that generate adversarial smart codes, entity types
and GL line sets and verify the invariants hold.

Boundaries fuzzed here:
- Smart codes: normalization is idempotent, validation never raises
- GL lines: equal debit/credit multisets always balance, any extra
  amount on one side is reported as exactly that delta
- Orchestrator: re-validating a corrected payload applies no fixes

Not fuzzed here:
- Period lookups and timeouts (tests/services/test_period_validator.py)
- Concurrent use (tests/concurrency)
"""

from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from guardrail_kernel.domain import smart_code as smart_codes
from guardrail_kernel.domain.entity_types import ENTITY_TYPE_ALIASES
from guardrail_kernel.domain.gl_balance import UNBALANCED_GL_ENTRY, validate_balance
from guardrail_kernel.domain.payloads import RecordTable
from guardrail_kernel.services.guardrail_orchestrator import GuardrailOrchestrator

GL_CODE = "HERA.SALON.FIN.GL.JE.v1"

FUZZ_SETTINGS = settings(
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

_UPPER_DIGITS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


@st.composite
def valid_smart_codes(draw):
    industry = draw(st.text(alphabet=_UPPER_DIGITS, min_size=3, max_size=15))
    segments = draw(st.lists(
        st.text(alphabet=_UPPER_DIGITS + "_", min_size=2, max_size=30),
        min_size=3,
        max_size=7,
    ))
    version = draw(st.integers(min_value=1, max_value=999))
    return ".".join(["HERA", industry, *segments, f"v{version}"])


amounts = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("999999999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

entity_types = st.one_of(
    st.sampled_from(sorted(ENTITY_TYPE_ALIASES[RecordTable.ENTITIES])),
    st.sampled_from(["gl_account", "GL_Account", "ledger_account", "customer", "account"]),
    st.text(max_size=20),
)


class TestSmartCodeProperties:

    @FUZZ_SETTINGS
    @given(st.text(max_size=80))
    def test_normalize_idempotent(self, code):
        once = smart_codes.normalize(code)
        assert smart_codes.normalize(once) == once

    @FUZZ_SETTINGS
    @given(st.one_of(st.none(), st.text(max_size=120), st.integers(), st.binary(max_size=20)))
    def test_validate_never_raises(self, code):
        result = smart_codes.validate(code)
        assert result.valid == (result.rule is None)

    @FUZZ_SETTINGS
    @given(valid_smart_codes())
    def test_generated_codes_valid(self, code):
        assert smart_codes.is_valid(code)
        assert smart_codes.normalize(code) == code

    @FUZZ_SETTINGS
    @given(valid_smart_codes())
    def test_uppercase_version_repaired(self, code):
        shouted = code[: code.rindex(".v")] + ".V" + code[code.rindex(".v") + 2:]
        assert not smart_codes.is_valid(shouted)
        assert smart_codes.normalize(shouted) == code


class TestBalanceProperties:

    @FUZZ_SETTINGS
    @given(st.lists(amounts, min_size=1, max_size=25), st.randoms(use_true_random=False))
    def test_mirrored_lines_balance(self, values, rnd):
        lines = [{"amount": v, "side": "debit"} for v in values]
        lines += [{"amount": v, "side": "credit"} for v in values]
        rnd.shuffle(lines)

        result = validate_balance(lines, GL_CODE)
        assert result.is_balanced
        assert result.errors == ()

    @FUZZ_SETTINGS
    @given(st.lists(amounts, min_size=1, max_size=25), amounts)
    def test_extra_debit_reported_as_delta(self, values, extra):
        lines = [{"amount": v, "side": "debit"} for v in values]
        lines += [{"amount": v, "side": "credit"} for v in values]
        lines.append({"amount": extra, "side": "debit"})

        result = validate_balance(lines, GL_CODE)
        assert not result.is_balanced
        (error,) = result.errors
        assert error.code == UNBALANCED_GL_ENTRY
        assert error.delta == extra
        assert error.short_side.value == "credit"

    @FUZZ_SETTINGS
    @given(st.lists(amounts, min_size=1, max_size=25))
    def test_signed_amounts_without_side(self, values):
        lines = [{"amount": v} for v in values] + [{"amount": -v} for v in values]
        assert validate_balance(lines, GL_CODE).is_balanced

    @FUZZ_SETTINGS
    @given(st.lists(st.one_of(st.none(), st.text(max_size=10), st.integers()), max_size=10))
    def test_non_gl_code_never_checked(self, lines):
        result = validate_balance(lines, "HERA.SALON.SALES.POS.TXN.v1")
        assert result.is_balanced
        assert not result.applies


_orchestrator = GuardrailOrchestrator()


class TestOrchestratorProperties:

    @FUZZ_SETTINGS
    @given(valid_smart_codes(), st.booleans(), entity_types)
    def test_revalidation_applies_no_fixes(self, code, shout, entity_type):
        if shout:
            code = code[: code.rindex(".v")] + ".V" + code[code.rindex(".v") + 2:]
        payload = {
            "organization_id": "org-fuzz",
            "smart_code": code,
            "entity_type": entity_type,
        }

        first = _orchestrator.validate("entities", payload)
        second = _orchestrator.validate("entities", first.corrected_payload)

        assert second.fixes == ()
        assert second.corrected_payload == first.corrected_payload
        assert second.violations == first.violations
        assert all(f.confidence == 1.0 for f in first.fixes)

    @FUZZ_SETTINGS
    @given(st.dictionaries(
        st.sampled_from(["organization_id", "smart_code", "entity_type", "note"]),
        st.one_of(st.none(), st.text(max_size=30)),
    ))
    def test_arbitrary_entity_payload_yields_verdict(self, payload):
        verdict = _orchestrator.validate("entities", payload)
        assert verdict.validation_passed == (verdict.errors == ())
