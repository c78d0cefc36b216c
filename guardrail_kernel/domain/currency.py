"""Currency -- ISO 4217 minor units for balance tolerance decisions."""

from decimal import Decimal

# Currencies without the standard two minor units.
_ZERO_DECIMAL: frozenset[str] = frozenset({
    "BIF", "CLP", "DJF", "GNF", "ISK", "JPY", "KMF", "KRW", "PYG",
    "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
})
_THREE_DECIMAL: frozenset[str] = frozenset({
    "BHD", "IQD", "JOD", "KWD", "LYD", "OMR", "TND",
})
_FOUR_DECIMAL: frozenset[str] = frozenset({"CLF", "UYW"})

# Document-currency placeholder used when neither line nor header names one.
DOCUMENT_CURRENCY = "DOC"


def minor_units(code: str | None) -> int | None:
    """
    Number of decimal places for an ISO-style currency code.

    The ``DOC`` placeholder counts as a two-decimal currency.  Returns None
    for codes that are not three ASCII letters.
    """
    if not code:
        return None
    normalized = code.strip().upper()
    if normalized == DOCUMENT_CURRENCY:
        return 2
    if len(normalized) != 3 or not normalized.isascii() or not normalized.isalpha():
        return None
    if normalized in _ZERO_DECIMAL:
        return 0
    if normalized in _THREE_DECIMAL:
        return 3
    if normalized in _FOUR_DECIMAL:
        return 4
    return 2


def effective_tolerance(code: str | None, tolerance: Decimal) -> Decimal:
    """
    Balance tolerance allowed for ``code``.

    A configured tolerance only absorbs sub-unit rounding, so it applies
    to currencies with fractional minor units and is never larger than one
    minor unit.  Zero-decimal currencies always compare exactly.
    """
    if tolerance <= 0:
        return Decimal("0")
    places = minor_units(code)
    if places == 0:
        return Decimal("0")
    if places is None:
        return tolerance
    return min(tolerance, Decimal(1).scaleb(-places))
