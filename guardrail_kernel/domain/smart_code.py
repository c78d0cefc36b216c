"""
SmartCode -- Normalization and validation of hierarchical classification tags.

Responsibility:
    Parses, normalizes and validates the smart code attached to every record
    (``HERA.<INDUSTRY>.<MODULE>...v<N>``).  Provides a builder for codes
    assembled in code, which fails fast on an invalid result.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by gl_balance and the guardrail orchestrator.

Invariants enforced:
    - A smart code has 6 to 10 dot-separated segments.
    - Every segment before the version is uppercase alphanumeric/underscore.
    - The version segment is a lowercase ``v`` followed by digits.

Failure modes:
    - ``validate()`` never raises for malformed input; it returns a
      ``SmartCodeValidation`` naming the rule that failed.
    - ``build_smart_code()`` raises ``InvalidSmartCodeError`` -- a code built
      from constants that does not validate is a programming error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from guardrail_kernel.exceptions import InvalidSmartCodeError

SMART_CODE_PREFIX = "HERA"
GL_MARKER = ".GL."

MIN_SEGMENTS = 6
MAX_SEGMENTS = 10

SMART_CODE_PATTERN = re.compile(
    r"^HERA\.[A-Z0-9]{3,15}(?:\.[A-Z0-9_]{2,30}){3,8}\.v[0-9]+$"
)

_UPPERCASE_VERSION = re.compile(r"\.V([0-9]+)$")


class SmartCodeRule(str, Enum):
    """Which validation rule rejected a smart code."""

    EMPTY = "empty"
    SEGMENT_COUNT = "segment-count"
    UPPERCASE_VERSION = "uppercase-version"
    PATTERN_MISMATCH = "pattern-mismatch"


@dataclass(frozen=True)
class SmartCodeValidation:
    """
    Outcome of validating one smart code.

    Contract:
        ``valid`` is True exactly when ``rule`` and ``error`` are None.
    """

    valid: bool
    error: str | None = None
    rule: SmartCodeRule | None = None

    @classmethod
    def ok(cls) -> SmartCodeValidation:
        return cls(valid=True)

    @classmethod
    def failed(cls, rule: SmartCodeRule, error: str) -> SmartCodeValidation:
        return cls(valid=False, error=error, rule=rule)

    def __bool__(self) -> bool:
        return self.valid


def normalize(code: str) -> str:
    """
    Rewrite a trailing uppercase version marker to canonical lowercase.

    ``HERA.SALON.GL.JE.LINE.V1`` becomes ``HERA.SALON.GL.JE.LINE.v1``.
    All other casing is left untouched; normalizing twice is a no-op.
    """
    if not code or not isinstance(code, str):
        return code
    return _UPPERCASE_VERSION.sub(r".v\1", code)


def validate(code: str | None) -> SmartCodeValidation:
    """
    Validate a smart code.

    Rules are checked in order (empty, segment count, uppercase version,
    pattern) and the first failing rule is reported.
    """
    if code is None or code == "":
        return SmartCodeValidation.failed(
            SmartCodeRule.EMPTY, "Smart code is required"
        )
    if not isinstance(code, str):
        return SmartCodeValidation.failed(
            SmartCodeRule.PATTERN_MISMATCH,
            f"Smart code must be a string, got {type(code).__name__}",
        )

    segments = code.split(".")
    if not MIN_SEGMENTS <= len(segments) <= MAX_SEGMENTS:
        return SmartCodeValidation.failed(
            SmartCodeRule.SEGMENT_COUNT,
            f"Smart code must have {MIN_SEGMENTS}-{MAX_SEGMENTS} segments, "
            f"got {len(segments)}",
        )

    if _UPPERCASE_VERSION.search(code):
        return SmartCodeValidation.failed(
            SmartCodeRule.UPPERCASE_VERSION,
            f"Version segment must be lowercase (v{segments[-1][1:]}), "
            f"got {segments[-1]}",
        )

    if not SMART_CODE_PATTERN.match(code):
        return SmartCodeValidation.failed(
            SmartCodeRule.PATTERN_MISMATCH,
            f"Smart code {code!r} does not match "
            f"{SMART_CODE_PREFIX}.<INDUSTRY>.<SEGMENTS...>.v<N>",
        )

    return SmartCodeValidation.ok()


def is_valid(code: str | None) -> bool:
    return validate(code).valid


def is_gl_smart_code(code: str | None) -> bool:
    """True when the code classifies a ledger-affecting record."""
    return isinstance(code, str) and GL_MARKER in code


def build_smart_code(*segments: str, version: int = 1) -> str:
    """
    Assemble a smart code from its business segments.

    The ``HERA`` prefix and version suffix are added here; segments are
    uppercased.  The result is validated before it is returned.

        >>> build_smart_code("SALON", "GL", "JE", "LINE")
        'HERA.SALON.GL.JE.LINE.v1'

    Raises:
        InvalidSmartCodeError: The assembled code does not validate.
    """
    if version < 1:
        raise InvalidSmartCodeError(
            f"{'.'.join(segments)}.v{version}",
            SmartCodeRule.PATTERN_MISMATCH.value,
            "version must be >= 1",
        )
    code = ".".join(
        [SMART_CODE_PREFIX, *(s.strip().upper() for s in segments), f"v{version}"]
    )
    result = validate(code)
    if not result.valid:
        raise InvalidSmartCodeError(code, result.rule.value, result.error)
    return code
