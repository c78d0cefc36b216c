"""
Payloads -- Typed views over proposed writes to the universal tables.

Responsibility:
    Reads loosely-typed write payloads (plain mappings from the API layer)
    into one of three record kinds -- entity, relationship, transaction --
    with the fields the guardrails inspect as named members.  Every other
    field travels untouched in ``extensions`` and is written back by
    ``to_dict()``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Produced by ``parse_payload()`` at the orchestrator boundary; consumed by
    the orchestrator, gl_balance and the Verdict.

Invariants enforced:
    - Parsing never validates values: a malformed amount or smart code is
      carried as-is so the guardrails can report it.
    - ``to_dict()`` preserves the wire key each field arrived under
      (``line_amount`` stays ``line_amount``).

Failure modes:
    - UnsupportedTableError for a table outside the closed set.
    - PayloadKindError when the payload is not a mapping, or is a typed
      payload of another record kind.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from guardrail_kernel.exceptions import PayloadKindError, UnsupportedTableError


class RecordTable(str, Enum):
    """The universal tables a guarded write may target."""

    ENTITIES = "entities"
    RELATIONSHIPS = "relationships"
    TRANSACTIONS = "transactions"

    @classmethod
    def parse(cls, table: str | RecordTable) -> RecordTable:
        if isinstance(table, RecordTable):
            return table
        try:
            return cls(table)
        except ValueError:
            raise UnsupportedTableError(
                str(table), tuple(t.value for t in cls)
            ) from None


# Wire aliases, in lookup order; the first key present wins.
_LINE_AMOUNT_KEYS = ("amount", "line_amount")
_LINE_CURRENCY_KEYS = ("currency", "transaction_currency_code")
_LINE_SIDE_NESTED = ("line_data", "side")


def _pick(raw: Mapping[str, Any], keys: tuple[str, ...]) -> tuple[Any, str]:
    for key in keys:
        if key in raw:
            return raw[key], key
    return None, keys[0]


def _org(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _emit(out: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        out[key] = value


@dataclass(frozen=True)
class TransactionLine:
    """
    One line of a transaction payload.

    ``amount`` is the raw wire value (Decimal, int, float or str) and is only
    interpreted by the GL balance validator.  ``side`` is ``debit``/``credit``
    (or ``DR``/``CR``) when given explicitly; otherwise the amount's sign
    decides.
    """

    amount: Any = None
    side: str | None = None
    currency: str | None = None
    smart_code: str | None = None
    account_id: str | None = None
    organization_id: str | None = None
    extensions: Mapping[str, Any] = field(default_factory=dict)
    wire_keys: Mapping[str, str] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> TransactionLine:
        amount, amount_key = _pick(raw, _LINE_AMOUNT_KEYS)
        currency, currency_key = _pick(raw, _LINE_CURRENCY_KEYS)

        side = raw.get("side")
        side_key = "side"
        nested = raw.get(_LINE_SIDE_NESTED[0])
        if side is None and isinstance(nested, Mapping) and _LINE_SIDE_NESTED[1] in nested:
            side = nested[_LINE_SIDE_NESTED[1]]
            side_key = ".".join(_LINE_SIDE_NESTED)

        consumed = {
            amount_key, currency_key, "smart_code", "account_id", "organization_id",
        }
        if side_key == "side":
            consumed.add("side")

        return cls(
            amount=amount,
            side=side,
            currency=currency,
            smart_code=raw.get("smart_code"),
            account_id=raw.get("account_id"),
            organization_id=_org(raw.get("organization_id")),
            extensions={k: v for k, v in raw.items() if k not in consumed},
            wire_keys={"amount": amount_key, "currency": currency_key, "side": side_key},
        )

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.extensions)
        _emit(out, self.wire_keys.get("amount", "amount"), self.amount)
        _emit(out, self.wire_keys.get("currency", "currency"), self.currency)
        side_key = self.wire_keys.get("side", "side")
        if "." not in side_key:
            # a nested side lives inside its untouched extension mapping
            _emit(out, side_key, self.side)
        _emit(out, "smart_code", self.smart_code)
        _emit(out, "account_id", self.account_id)
        _emit(out, "organization_id", self.organization_id)
        return out


@dataclass(frozen=True)
class EntityPayload:
    """A proposed write to the entities table."""

    table: ClassVar[RecordTable] = RecordTable.ENTITIES

    organization_id: str | None = None
    smart_code: str | None = None
    entity_type: str | None = None
    extensions: Mapping[str, Any] = field(default_factory=dict)

    _FIELDS: ClassVar[tuple[str, ...]] = ("organization_id", "smart_code", "entity_type")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> EntityPayload:
        return cls(
            organization_id=_org(raw.get("organization_id")),
            smart_code=raw.get("smart_code"),
            entity_type=raw.get("entity_type"),
            extensions={k: v for k, v in raw.items() if k not in cls._FIELDS},
        )

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.extensions)
        for name in self._FIELDS:
            _emit(out, name, getattr(self, name))
        return out


@dataclass(frozen=True)
class RelationshipPayload:
    """A proposed write to the relationships table."""

    table: ClassVar[RecordTable] = RecordTable.RELATIONSHIPS

    organization_id: str | None = None
    smart_code: str | None = None
    extensions: Mapping[str, Any] = field(default_factory=dict)

    _FIELDS: ClassVar[tuple[str, ...]] = ("organization_id", "smart_code")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RelationshipPayload:
        return cls(
            organization_id=_org(raw.get("organization_id")),
            smart_code=raw.get("smart_code"),
            extensions={k: v for k, v in raw.items() if k not in cls._FIELDS},
        )

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.extensions)
        for name in self._FIELDS:
            _emit(out, name, getattr(self, name))
        return out


@dataclass(frozen=True)
class TransactionPayload:
    """
    A proposed write to the transactions table (header plus lines).

    ``lines`` is None when the payload carries no ``lines`` key.  Items that
    are not mappings are kept verbatim so the balance validator can reject
    them.  A ``lines`` value that is not a list is kept as is (see
    ``line_items``) and written back unchanged.
    """

    table: ClassVar[RecordTable] = RecordTable.TRANSACTIONS

    organization_id: str | None = None
    smart_code: str | None = None
    transaction_type: str | None = None
    transaction_date: Any = None
    transaction_currency_code: str | None = None
    lines: tuple[TransactionLine | Any, ...] | Any = None
    extensions: Mapping[str, Any] = field(default_factory=dict)

    _FIELDS: ClassVar[tuple[str, ...]] = (
        "organization_id",
        "smart_code",
        "transaction_type",
        "transaction_date",
        "transaction_currency_code",
    )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> TransactionPayload:
        raw_lines = raw.get("lines")
        lines: tuple[TransactionLine | Any, ...] | Any
        if raw_lines is None:
            lines = None
        elif isinstance(raw_lines, (list, tuple)):
            lines = tuple(
                TransactionLine.from_mapping(item) if isinstance(item, Mapping) else item
                for item in raw_lines
            )
        else:
            lines = raw_lines

        return cls(
            organization_id=_org(raw.get("organization_id")),
            smart_code=raw.get("smart_code"),
            transaction_type=raw.get("transaction_type"),
            transaction_date=raw.get("transaction_date"),
            transaction_currency_code=raw.get("transaction_currency_code"),
            lines=lines,
            extensions={
                k: v for k, v in raw.items() if k not in cls._FIELDS and k != "lines"
            },
        )

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.extensions)
        for name in self._FIELDS:
            _emit(out, name, getattr(self, name))
        if self.line_items is not None:
            out["lines"] = [
                line.to_dict() if isinstance(line, TransactionLine) else line
                for line in self.line_items
            ]
        elif self.lines is not None:
            out["lines"] = self.lines
        return out

    @property
    def line_items(self) -> tuple[TransactionLine | Any, ...] | None:
        """The lines as a tuple, or None when absent or not a list."""
        return self.lines if isinstance(self.lines, tuple) else None


Payload = Union[EntityPayload, RelationshipPayload, TransactionPayload]

_PAYLOAD_TYPES: dict[RecordTable, type] = {
    RecordTable.ENTITIES: EntityPayload,
    RecordTable.RELATIONSHIPS: RelationshipPayload,
    RecordTable.TRANSACTIONS: TransactionPayload,
}


def parse_payload(table: str | RecordTable, raw: Mapping[str, Any] | Payload) -> Payload:
    """
    Read a payload as the record kind of ``table``.

    Typed payloads of the matching kind are returned unchanged.

    Raises:
        UnsupportedTableError: ``table`` is not a universal table.
        PayloadKindError: ``raw`` is neither a mapping nor a payload of
            the matching kind.
    """
    kind = RecordTable.parse(table)
    payload_type = _PAYLOAD_TYPES[kind]

    if isinstance(raw, payload_type):
        return raw
    if isinstance(raw, (EntityPayload, RelationshipPayload, TransactionPayload)):
        raise PayloadKindError(kind.value, type(raw).__name__)
    if not isinstance(raw, Mapping):
        raise PayloadKindError(kind.value, type(raw).__name__)
    return payload_type.from_mapping(raw)
