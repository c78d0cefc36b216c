"""
Smart code normalization and validation tests.

Verifies:
- normalize() only rewrites an uppercase version marker
- validate() reports the first failing rule in order
- the 6-10 segment boundary
- build_smart_code() raises on invalid assembly
"""

import pytest

from guardrail_kernel.domain.smart_code import (
    SmartCodeRule,
    build_smart_code,
    is_gl_smart_code,
    is_valid,
    normalize,
    validate,
)
from guardrail_kernel.exceptions import InvalidSmartCodeError


class TestNormalize:
    """normalize() rewrites .V<N> to .v<N> and nothing else."""

    def test_uppercase_version_lowercased(self):
        assert normalize("HERA.SALON.GL.JE.V1") == "HERA.SALON.GL.JE.v1"

    def test_multi_digit_version(self):
        assert normalize("HERA.SALON.GL.JE.LINE.V12") == "HERA.SALON.GL.JE.LINE.v12"

    def test_canonical_code_unchanged(self):
        code = "HERA.SALON.GL.JE.LINE.v1"
        assert normalize(code) == code

    def test_other_casing_untouched(self):
        assert normalize("hera.salon.gl.je.line.V1") == "hera.salon.gl.je.line.v1"

    def test_idempotent(self):
        once = normalize("HERA.SALON.FIN.GL.JE.V3")
        assert normalize(once) == once

    def test_empty_and_none_pass_through(self):
        assert normalize("") == ""
        assert normalize(None) is None

    def test_inner_v_segment_untouched(self):
        assert normalize("HERA.SALON.V1.GL.JE.v1") == "HERA.SALON.V1.GL.JE.v1"


class TestValidate:
    """validate() never raises and reports the first failing rule."""

    def test_six_segments_accepted(self):
        result = validate("HERA.SALON.GL.JE.LINE.v1")
        assert result.valid
        assert result.error is None
        assert result.rule is None
        assert bool(result)

    def test_ten_segments_accepted(self):
        assert validate("HERA.SALON.A1.B2.C3.D4.E5.F6.G7.v1").valid

    def test_five_segments_rejected(self):
        result = validate("HERA.SALON.GL.JE.v1")
        assert not result.valid
        assert result.rule == SmartCodeRule.SEGMENT_COUNT

    def test_short_code_rejected(self):
        result = validate("HERA.SALON.v1")
        assert result.rule == SmartCodeRule.SEGMENT_COUNT

    def test_eleven_segments_rejected(self):
        result = validate("HERA.SALON.A1.B2.C3.D4.E5.F6.G7.H8.v1")
        assert result.rule == SmartCodeRule.SEGMENT_COUNT

    @pytest.mark.parametrize("code", [None, ""])
    def test_empty_rejected(self, code):
        result = validate(code)
        assert result.rule == SmartCodeRule.EMPTY

    def test_uppercase_version_rejected(self):
        result = validate("HERA.SALON.GL.JE.LINE.V1")
        assert result.rule == SmartCodeRule.UPPERCASE_VERSION
        assert "V1" in result.error

    def test_uppercase_version_fixed_by_normalize(self):
        code = "HERA.SALON.GL.JE.LINE.V1"
        assert not validate(code).valid
        assert validate(normalize(code)).valid

    def test_version_case_on_five_segments_still_fails_on_count(self):
        fixed = normalize("HERA.SALON.GL.JE.V1")
        assert fixed == "HERA.SALON.GL.JE.v1"
        assert validate(fixed).rule == SmartCodeRule.SEGMENT_COUNT

    @pytest.mark.parametrize(
        "code",
        [
            "ACME.SALON.GL.JE.LINE.v1",       # wrong prefix
            "HERA.SA.GL.JE.LINE.v1",          # industry segment too short
            "HERA.SALON.gl.JE.LINE.v1",       # lowercase business segment
            "HERA.SALON.G.JE.LINE.v1",        # one-character segment
            "HERA.SALON.GL.JE.LINE.version1",  # malformed version
            "HERA.SALON.GL-X.JE.LINE.v1",     # illegal character
        ],
    )
    def test_pattern_mismatch(self, code):
        result = validate(code)
        assert result.rule == SmartCodeRule.PATTERN_MISMATCH

    def test_non_string_rejected_without_raising(self):
        result = validate(12345)
        assert not result.valid
        assert result.rule == SmartCodeRule.PATTERN_MISMATCH

    def test_underscores_allowed_after_industry(self):
        assert is_valid("HERA.SALON.GL_POST.JE.LINE_ITEM.v2")


class TestGlMarker:

    def test_gl_code_detected(self):
        assert is_gl_smart_code("HERA.SALON.FIN.GL.JE.v1")

    def test_non_gl_code(self):
        assert not is_gl_smart_code("HERA.SALON.SALES.POS.TXN.v1")

    def test_gl_prefix_of_segment_is_not_marker(self):
        assert not is_gl_smart_code("HERA.SALON.GLOBAL.POS.TXN.v1")

    def test_none_is_not_gl(self):
        assert not is_gl_smart_code(None)


class TestBuildSmartCode:

    def test_builds_and_uppercases(self):
        assert build_smart_code("salon", "gl", "je", "line") == "HERA.SALON.GL.JE.LINE.v1"

    def test_custom_version(self):
        assert build_smart_code("SALON", "GL", "JE", "LINE", version=3).endswith(".v3")

    def test_too_few_segments_raises(self):
        with pytest.raises(InvalidSmartCodeError) as exc_info:
            build_smart_code("SALON", "GL")
        assert exc_info.value.rule == SmartCodeRule.SEGMENT_COUNT.value
        assert exc_info.value.code == "INVALID_SMART_CODE"

    def test_invalid_version_raises(self):
        with pytest.raises(InvalidSmartCodeError):
            build_smart_code("SALON", "GL", "JE", "LINE", version=0)
