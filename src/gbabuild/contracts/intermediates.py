"""Per-file conversion stage contract.

Enforces the guarantee that after the fan-in barrier every source file has
exactly one intermediate raster on disk, in source order. The external tool
and the animation offsets both depend on that order.
"""

from pathlib import Path
from typing import Sequence
from gbabuild.contracts.base import require


def assert_intermediates(sources: Sequence[str], intermediates: Sequence[Path],
                         expected: Sequence[Path]) -> None:
    """Enforce intermediate stage contract.

    Called immediately after the per-file stage, before the external tool.

    Parameters
    ----------
    sources : sequence of str
        The group's source files, in descriptor order.

    intermediates : sequence of Path
        Intermediate files produced by the stage.

    expected : sequence of Path
        Deterministic names derived from ``sources``.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        len(intermediates) == len(sources),
        f"Intermediate contract violated: {len(intermediates)} files for {len(sources)} sources"
    )
    for source, produced, wanted in zip(sources, intermediates, expected):
        require(
            Path(produced) == Path(wanted),
            f"Intermediate contract violated: {source} produced {produced}, expected {wanted}"
        )
        require(
            Path(produced).is_file(),
            f"Intermediate contract violated: {produced} was not written"
        )
