"""Error taxonomy for the asset build.

Every failure the build can surface derives from GbaBuildError so callers
can separate build problems from programmer errors.

Key distinction:
- DescriptorError: bad descriptor or config, raised before any conversion
- ConversionError: one source file could not be normalized (fatal to its group)
- ToolError: an external converter failed (fatal to its group)
- GroupBuildError: any of the above, tagged with the owning group
- BuildFailedError: the orchestrator's summary after all groups reported
- MakeFailedError: the downstream native build failed after assets were built
- ContractViolation (gbabuild.contracts): pipeline bug, not bad input
"""

from typing import Optional


class GbaBuildError(Exception):
    """Base class for all build failures."""


class DescriptorError(GbaBuildError, ValueError):
    """The build descriptor could not be read or validated."""


class ConversionError(GbaBuildError):
    """A source file could not be converted to an intermediate raster."""

    def __init__(self, source, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class UnsupportedSourceError(ConversionError):
    """The source file extension has no loader."""


class ExporterTimeoutError(ConversionError):
    """The vector-art exporter produced no output sheet in time."""


class ToolError(GbaBuildError):
    """An external converter could not run to completion."""

    def __init__(self, tool: str, message: str):
        super().__init__(f"{tool}: {message}")
        self.tool = tool


class ToolNotFoundError(ToolError):
    """The configured executable does not exist or is not executable."""


class ToolTimeoutError(ToolError):
    """The external converter exceeded its configured timeout."""


class ToolExecutionError(ToolError):
    """The external converter exited with a non-benign status."""

    def __init__(self, tool: str, returncode: int, stderr: str = ""):
        detail = f"exit status {returncode:#x}" if returncode > 255 else f"exit status {returncode}"
        if stderr:
            detail = f"{detail}: {stderr.strip()}"
        super().__init__(tool, detail)
        self.returncode = returncode
        self.stderr = stderr


class GroupBuildError(GbaBuildError):
    """A group's pipeline failed; ``__cause__`` holds the original error."""

    def __init__(self, group: str, cause: BaseException):
        super().__init__(f"group '{group}' failed: {cause}")
        self.group = group
        self.cause = cause


class BuildFailedError(GbaBuildError):
    """At least one stale group failed to build.

    Raised only after every dispatched group has reported. ``first`` is the
    first failure drained from the workers, ``report`` lists every outcome.
    """

    def __init__(self, first: GroupBuildError, report):
        failed = ", ".join(sorted(report.failed))
        super().__init__(f"{len(report.failed)} group(s) failed [{failed}]; first: {first}")
        self.first = first
        self.report = report


class MakeFailedError(GbaBuildError):
    """The downstream native build exited non-zero or could not start."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode
