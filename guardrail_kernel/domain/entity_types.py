"""
EntityTypes -- Canonicalization of deprecated entity-type labels.

Responsibility:
    Maps deprecated or alias ``entity_type`` labels to their canonical form
    using a static, table-scoped alias table.  Only the entities table
    carries aliases; the same string may mean something else elsewhere.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    The ledger-account remap lives in gl_balance and is layered on top of
    this one by the orchestrator.

Invariants enforced:
    - Alias remaps are deterministic: every fix carries confidence 1.0.
    - Alias tables are read-only (MappingProxyType); safe to share across
      threads without locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from guardrail_kernel.domain.dtos import FixRecord
from guardrail_kernel.domain.payloads import RecordTable

ENTITY_TYPE_ALIASES: Mapping[RecordTable, Mapping[str, str]] = MappingProxyType({
    RecordTable.ENTITIES: MappingProxyType({
        "client": "customer",
        "clients": "customer",
        "vendor": "supplier",
        "item": "product",
        "stylist": "employee",
        "staff": "employee",
    }),
})


@dataclass(frozen=True)
class CanonicalType:
    """Result of canonicalizing one entity type."""

    type: str | None
    fix_applied: bool
    fix: FixRecord | None = None


def canonicalize(table: str | RecordTable, entity_type: str | None) -> CanonicalType:
    """
    Return the canonical label for ``entity_type`` within ``table``.

    Lookup is case-insensitive; unknown labels are returned unchanged.
    """
    if not isinstance(entity_type, str) or not entity_type:
        return CanonicalType(type=entity_type, fix_applied=False)

    aliases = ENTITY_TYPE_ALIASES.get(RecordTable.parse(table), {})
    canonical = aliases.get(entity_type.strip().lower())
    if canonical is None or canonical == entity_type:
        return CanonicalType(type=entity_type, fix_applied=False)

    return CanonicalType(
        type=canonical,
        fix_applied=True,
        fix=FixRecord(
            field="entity_type",
            old_value=entity_type,
            new_value=canonical,
            reason=f"Deprecated entity type '{entity_type}' replaced by '{canonical}'",
            confidence=1.0,
            rule="ENTITY_TYPE_ALIAS",
        ),
    )
