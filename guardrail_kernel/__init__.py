"""
Guardrail Kernel - write-path validation for the universal business schema.

Inspects proposed entity, relationship and transaction writes before they
reach storage:
- Smart code normalization and validation
- Entity-type alias canonicalization
- Fiscal period posting control
- GL balance enforcement (per currency)
- Confidence-scored auto-fix with a single aggregated verdict
"""

__version__ = "0.1.0"
