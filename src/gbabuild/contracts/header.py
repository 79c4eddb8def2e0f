"""Header synthesis contract.

Every data symbol the raw-bitmap compiler emits must be reachable from the
companion header: a length constant and an extern declaration.
"""

from typing import Iterable
from gbabuild.contracts.base import require


def assert_declarations_exported(header: str, declarations: Iterable) -> None:
    """Enforce header contract.

    Parameters
    ----------
    header : str
        Synthesized header text.

    declarations : iterable of Declaration
        Declarations parsed from the compiler output.

    Raises
    ------
    ContractViolation
        If a declaration lacks its length constant or extern line
    """
    for decl in declarations:
        require(
            f"#define {decl.name}Len {decl.length}\n" in header,
            f"Header contract violated: missing length constant for '{decl.name}'"
        )
        require(
            f"extern {decl.text};\n" in header,
            f"Header contract violated: missing extern declaration for '{decl.name}'"
        )
