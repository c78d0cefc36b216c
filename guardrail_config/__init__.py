"""
guardrail_config -- single public entrypoint for guardrail configuration.

Responsibility:
    Provides the ONLY way to obtain guardrail policy at runtime through
    ``get_active_config()``.  Returns a frozen ``GuardrailConfig``.  YAML
    loading is internal tooling and not called by services directly.

Architecture position:
    Configuration -- YAML-driven policy.  This package sits above
    ``guardrail_kernel``; the kernel MUST NEVER import from
    ``guardrail_config``.  ``guardrail_config.bridges`` turns a config into
    kernel objects.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Deterministic loading: the same YAML always yields the same checksum.
    - Organization-specific sets win over the ``*`` set; among equals the
      highest version wins.

Failure modes:
    - ``ConfigurationError`` -- no configuration set matches the
      organization, the sets directory is missing, or a set fails to parse.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``GUARDRAIL_CONFIG_TRACE`` log entry with the config id, version,
    checksum and scope, tying each verdict back to the policy that governed
    it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from guardrail_config.loader import load_config_set
from guardrail_config.schema import (
    BalancePolicy,
    ConfigScope,
    GuardrailConfig,
    OrganizationPolicy,
    PeriodPolicy,
)
from guardrail_kernel.exceptions import ConfigurationError

_logger = logging.getLogger("guardrail_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    organization_id: str = "*",
    config_dir: Path | None = None,
) -> GuardrailConfig:
    """The ONLY public configuration entrypoint.

    Args:
        organization_id: Organization to select a configuration set for.
            ``*`` selects the set that applies to every organization.
        config_dir: Override path to configuration sets directory.
            Defaults to guardrail_config/sets/.

    Returns:
        GuardrailConfig for the organization.

    Raises:
        ConfigurationError: If no set matches or a set fails to parse.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    config = _find_matching_config(sets_dir, str(organization_id))

    _logger.info(
        "GUARDRAIL_CONFIG_TRACE",
        extra={
            "trace_type": "GUARDRAIL_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "scope_organization_id": config.scope.organization_id,
            "requested_organization_id": str(organization_id),
        },
    )
    return config


def _find_matching_config(sets_dir: Path, organization_id: str) -> GuardrailConfig:
    if not sets_dir.is_dir():
        raise ConfigurationError(
            str(sets_dir), "configuration sets directory not found"
        )

    candidates: list[GuardrailConfig] = []
    for subdir in sorted(sets_dir.iterdir()):
        if not subdir.is_dir() or not (subdir / "root.yaml").exists():
            continue
        config_set = load_config_set(subdir)
        if config_set.scope.matches(organization_id):
            candidates.append(config_set)

    if not candidates:
        raise ConfigurationError(
            str(sets_dir),
            f"no configuration set found for organization_id='{organization_id}'",
        )

    exact = [c for c in candidates if c.scope.organization_id == organization_id]
    return max(exact or candidates, key=lambda c: c.version)


__all__ = [
    "BalancePolicy",
    "ConfigScope",
    "GuardrailConfig",
    "OrganizationPolicy",
    "PeriodPolicy",
    "get_active_config",
]
