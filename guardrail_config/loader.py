"""
Configuration Loader (``guardrail_config.loader``).

Responsibility
--------------
Loads a configuration set's ``root.yaml`` and parses it into the frozen
dataclasses of ``guardrail_config.schema``.  The single public entry point
for runtime config is ``guardrail_config.get_active_config()``; this module
is the tooling underneath it.

Invariants enforced
-------------------
* Every parse error raises ``ConfigurationError`` naming the source file
  and the offending key; no silent defaults for malformed values.
* Missing sections fall back to the schema defaults.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  canonical JSON form of the raw document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``ConfigurationError`` wrapping ``yaml.YAMLError``.
* Out-of-range values  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from guardrail_config.schema import (
    BalancePolicy,
    ConfigScope,
    GuardrailConfig,
    OrganizationPolicy,
    PeriodPolicy,
)
from guardrail_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        ConfigurationError: if the file is not valid YAML or not a mapping.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(str(path), f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top-level document must be a mapping")
    return data


def _section(data: dict[str, Any], name: str, source: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(source, f"'{name}' must be a mapping")
    return value


def parse_scope(data: dict[str, Any], source: str) -> ConfigScope:
    """Parse a ConfigScope from a dict."""
    organization_id = data.get("organization_id", "*")
    if organization_id is None or not str(organization_id).strip():
        raise ConfigurationError(source, "scope.organization_id must not be empty")
    return ConfigScope(organization_id=str(organization_id))


def parse_balance_policy(data: dict[str, Any], source: str) -> BalancePolicy:
    """
    Parse a BalancePolicy from a dict.

    ``tolerance`` is read through ``str()`` so YAML floats keep their
    written digits.
    """
    raw_tolerance = data.get("tolerance", "0")
    try:
        tolerance = Decimal(str(raw_tolerance))
    except (InvalidOperation, ValueError) as exc:
        raise ConfigurationError(
            source, f"balance.tolerance is not a decimal: {raw_tolerance!r}"
        ) from exc
    if not tolerance.is_finite() or tolerance < 0:
        raise ConfigurationError(
            source, f"balance.tolerance must be a non-negative number, got {raw_tolerance!r}"
        )

    currency = data.get("default_currency", "DOC")
    if not isinstance(currency, str) or not currency.strip():
        raise ConfigurationError(source, "balance.default_currency must be a non-empty string")

    return BalancePolicy(tolerance=tolerance, default_currency=currency.strip().upper())


def parse_period_policy(data: dict[str, Any], source: str) -> PeriodPolicy:
    """Parse a PeriodPolicy from a dict."""
    allow = data.get("allow_posting_without_period", True)
    if not isinstance(allow, bool):
        raise ConfigurationError(
            source, f"period.allow_posting_without_period must be true/false, got {allow!r}"
        )

    timeout = data.get("lookup_timeout_seconds", 5.0)
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigurationError(
                source, f"period.lookup_timeout_seconds must be a positive number, got {timeout!r}"
            )
        timeout = float(timeout)

    workers = data.get("max_lookup_workers", 4)
    if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
        raise ConfigurationError(
            source, f"period.max_lookup_workers must be a positive integer, got {workers!r}"
        )

    return PeriodPolicy(
        allow_posting_without_period=allow,
        lookup_timeout_seconds=timeout,
        max_lookup_workers=workers,
    )


def parse_organization_policy(data: dict[str, Any], source: str) -> OrganizationPolicy:
    """Parse an OrganizationPolicy from a dict."""
    if "platform_organization_id" not in data:
        return OrganizationPolicy()
    platform = data["platform_organization_id"]
    if platform is None or not str(platform).strip():
        raise ConfigurationError(
            source, "organization.platform_organization_id must not be empty"
        )
    return OrganizationPolicy(platform_organization_id=str(platform))


def parse_config(data: dict[str, Any], source: str = "<memory>") -> GuardrailConfig:
    """
    Parse a complete configuration set from its root document.

    Raises:
        ConfigurationError: if a required key is missing or a value is
            out of range.
    """
    config_id = data.get("config_id")
    if not isinstance(config_id, str) or not config_id:
        raise ConfigurationError(source, "config_id is required")

    version = data.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise ConfigurationError(source, f"version must be a positive integer, got {version!r}")

    return GuardrailConfig(
        config_id=config_id,
        version=version,
        scope=parse_scope(_section(data, "scope", source), source),
        balance=parse_balance_policy(_section(data, "balance", source), source),
        period=parse_period_policy(_section(data, "period", source), source),
        organization=parse_organization_policy(_section(data, "organization", source), source),
        description=str(data.get("description", "")),
        checksum=compute_checksum(data),
    )


def load_config_set(set_dir: Path) -> GuardrailConfig:
    """Load and parse ``<set_dir>/root.yaml``."""
    root_file = set_dir / "root.yaml"
    return parse_config(load_yaml_file(root_file), str(root_file))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
