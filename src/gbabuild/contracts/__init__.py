"""Pipeline contracts - fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages.
Contracts fail immediately and loudly when pipeline stages don't produce
their promised invariants.

Key principle:
- Pydantic validates config and descriptor correctness
- Contracts validate pipeline correctness
- Error classes in gbabuild.errors report bad inputs and failing tools
"""

from gbabuild.contracts.failure import ContractViolation
from gbabuild.contracts.base import require
from gbabuild.contracts.intermediates import assert_intermediates
from gbabuild.contracts.header import assert_declarations_exported

__all__ = [
    "ContractViolation",
    "require",
    "assert_intermediates",
    "assert_declarations_exported",
]
