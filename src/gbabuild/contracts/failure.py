"""Centralized failure type for contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception type, allowing callers to handle pipeline bugs uniformly.
"""


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad user input or a failing
    external tool. It means a pipeline stage did not produce the invariants
    it promised.

    Key distinction:
    - DescriptorError: User/config error (handled by Pydantic)
    - ConversionError / ToolError: Recoverable per-group failures
    - ContractViolation: Pipeline bug (programmer error)
    """
    pass
