"""
Typed Exception Hierarchy for the Guardrail Kernel.

===============================================================================
WHAT IS RAISED AND WHAT IS RETURNED
===============================================================================

The guardrail pipeline inspects data that is EXPECTED to be wrong some of the
time.  A malformed smart code, a missing organization_id, an unbalanced GL
entry or a posting into a closed period is not exceptional -- it is reported
as a Violation inside the Verdict and the call returns normally.

Exceptions are reserved for two situations:
  1. Programming errors -- a hardcoded smart code that does not validate,
     an unknown table name, a broken configuration file.
  2. Collaborator failures -- the fiscal period lookup raised, timed out or
     was cancelled.  Callers must be able to tell "your data is invalid"
     apart from "we could not check your data".

Example - handling a collaborator failure:
    try:
        verdict = orchestrator.validate("transactions", payload, context)
    except PeriodLookupTimeoutError as e:
        return retry_later(code=e.code, organization_id=e.organization_id)
    except CollaboratorError as e:
        return service_unavailable(code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    GuardrailError (base)
    |
    +-- SmartCodeError
    |   +-- InvalidSmartCodeError
    |
    +-- PayloadError
    |   +-- UnsupportedTableError
    |   +-- PayloadKindError
    |
    +-- CollaboratorError
    |   +-- PeriodLookupError
    |   +-- PeriodLookupTimeoutError
    |   +-- PeriodLookupCancelledError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Smart code      | INVALID_SMART_CODE          | Builder assembled an invalid code
----------------|-----------------------------|-----------------------------------------
Payload         | UNSUPPORTED_TABLE           | Table is not entities/relationships/
                |                             | transactions
                | PAYLOAD_KIND_MISMATCH       | Payload is not a mapping or is a typed
                |                             | payload of another record kind
----------------|-----------------------------|-----------------------------------------
Collaborator    | PERIOD_LOOKUP_FAILED        | Period lookup raised
                | PERIOD_LOOKUP_TIMEOUT       | Caller deadline expired during lookup
                | PERIOD_LOOKUP_CANCELLED     | Caller cancelled the lookup
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_CONFIGURATION       | Configuration set failed to parse
===============================================================================
"""


class GuardrailError(Exception):
    """
    Base exception for all guardrail kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "GUARDRAIL_ERROR"


# Smart code exceptions


class SmartCodeError(GuardrailError):
    """Base exception for smart code errors."""

    code: str = "SMART_CODE_ERROR"


class InvalidSmartCodeError(SmartCodeError):
    """
    A smart code assembled by the builder failed validation.

    Raised only for codes constructed in code (constant tables, builders).
    Codes arriving in payloads are reported as violations instead.
    """

    code: str = "INVALID_SMART_CODE"

    def __init__(self, smart_code: str, rule: str, reason: str):
        self.smart_code = smart_code
        self.rule = rule
        self.reason = reason
        super().__init__(f"Invalid smart code {smart_code!r} ({rule}): {reason}")


# Payload exceptions


class PayloadError(GuardrailError):
    """Base exception for payload shape errors."""

    code: str = "PAYLOAD_ERROR"


class UnsupportedTableError(PayloadError):
    """The table name is not one of the universal record kinds."""

    code: str = "UNSUPPORTED_TABLE"

    def __init__(self, table: str, supported: tuple[str, ...]):
        self.table = table
        self.supported = supported
        super().__init__(
            f"Unsupported table {table!r}; expected one of {', '.join(supported)}"
        )


class PayloadKindError(PayloadError):
    """The payload cannot be read as the record kind of its table."""

    code: str = "PAYLOAD_KIND_MISMATCH"

    def __init__(self, table: str, received: str):
        self.table = table
        self.received = received
        super().__init__(f"Payload for table {table!r} cannot be read from {received}")


# Collaborator exceptions


class CollaboratorError(GuardrailError):
    """
    Base exception for failures of external collaborators.

    These escape validate() instead of being embedded in the Verdict.
    """

    code: str = "COLLABORATOR_ERROR"


class PeriodLookupError(CollaboratorError):
    """The fiscal period lookup raised an error."""

    code: str = "PERIOD_LOOKUP_FAILED"

    def __init__(self, organization_id: str, transaction_date: str, reason: str):
        self.organization_id = organization_id
        self.transaction_date = transaction_date
        self.reason = reason
        super().__init__(
            f"Fiscal period lookup failed for organization {organization_id} "
            f"on {transaction_date}: {reason}"
        )


class PeriodLookupTimeoutError(CollaboratorError):
    """The caller's deadline expired before the period lookup completed."""

    code: str = "PERIOD_LOOKUP_TIMEOUT"

    def __init__(self, organization_id: str, transaction_date: str, timeout_seconds: float):
        self.organization_id = organization_id
        self.transaction_date = transaction_date
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Fiscal period lookup for organization {organization_id} on "
            f"{transaction_date} timed out after {timeout_seconds:.3f}s"
        )


class PeriodLookupCancelledError(CollaboratorError):
    """The caller cancelled the request while the period lookup was pending."""

    code: str = "PERIOD_LOOKUP_CANCELLED"

    def __init__(self, organization_id: str, transaction_date: str):
        self.organization_id = organization_id
        self.transaction_date = transaction_date
        super().__init__(
            f"Fiscal period lookup for organization {organization_id} on "
            f"{transaction_date} was cancelled"
        )


# Configuration exceptions


class ConfigurationError(GuardrailError):
    """A guardrail configuration set is malformed."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid guardrail configuration in {source}: {reason}")
