"""External converter invocation.

The tile compiler and the raw-bitmap compiler write into a shared output
directory and are not safe to run concurrently against it, so every
invocation of either one is serialized by a single process-wide lock. Only
the subprocess itself is held under the lock; image conversion for other
groups keeps running. The vector-art exporter writes into a private
temporary directory and is not serialized.

Every invocation is bounded by the tool's ``timeout_sec``. A non-zero exit
listed in the tool's ``benign_exit_codes`` is logged as a warning and
treated as success.
"""

import logging
import subprocess
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence, TYPE_CHECKING

from gbabuild.errors import ToolExecutionError, ToolNotFoundError, ToolTimeoutError

if TYPE_CHECKING:
    from gbabuild.schemas.internal import InternalMakeConfig, InternalToolConfig

__all__ = ['ToolRunner', 'ToolResult', 'run_make']

logger = logging.getLogger(__name__)

# Shared output directory is a single serialization domain
_TOOL_LOCK = threading.Lock()


class ToolResult:
    """Outcome of one successful (or benign) tool invocation."""

    def __init__(self, name: str, returncode: int, stdout: bytes, stderr: bytes):
        self.name = name
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @property
    def benign(self) -> bool:
        return self.returncode != 0

    def __repr__(self):
        return f"ToolResult(name={self.name!r}, returncode={self.returncode})"


class ToolRunner:
    """Run external converters with timeouts and the shared output lock.

    Parameters
    ----------
    lock : threading.Lock, optional
        Serialization lock. Defaults to the module-wide lock shared by all
        runners, which is what makes invocations from different groups
        mutually exclusive.

    Example usage::

        runner = ToolRunner()
        result = runner.run("grit", config.tools.grit,
                            ["Player.png", "-gB4"], cwd=output_dir)
    """

    def __init__(self, lock: Optional[threading.Lock] = None):
        self._lock = lock or _TOOL_LOCK

    def run(self, name: str, tool: "InternalToolConfig", args: Sequence[str],
            cwd: Path | str, serialize: bool = True) -> ToolResult:
        """Invoke ``tool.command`` with ``args`` in ``cwd``.

        Parameters
        ----------
        name : str
            Tool role used in log lines and errors (``grit``, ``bmp2gba``...).
        tool : InternalToolConfig
            Command, timeout and benign exit codes.
        args : sequence of str
            Arguments passed verbatim.
        cwd : Path or str
            Working directory of the process.
        serialize : bool, default True
            Hold the shared lock for the duration of the process.

        Returns
        -------
        ToolResult
            Captured stdout/stderr and the exit status (0 or benign).

        Raises
        ------
        ToolNotFoundError
            The executable could not be started.
        ToolTimeoutError
            The process ran longer than ``tool.timeout_sec`` and was killed.
        ToolExecutionError
            The process exited with a status not in ``tool.benign_exit_codes``.
        """
        cmd = [tool.command, *args]
        logger.debug("Running %s: %s (cwd=%s)", name, " ".join(cmd), cwd)

        if serialize:
            with self._lock:
                completed = self._execute(name, cmd, cwd, tool.timeout_sec)
        else:
            completed = self._execute(name, cmd, cwd, tool.timeout_sec)

        code = completed.returncode
        if code != 0:
            # Windows reports NTSTATUS values as negative on some runtimes
            unsigned = code & 0xFFFFFFFF if code < 0 else code
            if unsigned in tool.benign_exit_codes:
                logger.warning("%s exited with benign status %#x, outputs accepted", name, unsigned)
            else:
                stderr = completed.stderr.decode(errors="replace")
                raise ToolExecutionError(name, unsigned, stderr)

        return ToolResult(name, code, completed.stdout, completed.stderr)

    @staticmethod
    def _execute(name, cmd, cwd, timeout):
        try:
            return subprocess.run(
                cmd,
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(name, f"executable not found: {cmd[0]}") from e
        except PermissionError as e:
            raise ToolNotFoundError(name, f"executable not runnable: {cmd[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise ToolTimeoutError(name, f"timed out after {timeout:g}s") from e


def run_make(make: "InternalMakeConfig", make_dir: Path | str, make_args: Sequence[str]) -> int:
    """Run the downstream native build, echoing its output.

    ``make.stdin`` is written to the process so interactive prompts are
    answered. Output is streamed line by line to stdout as it arrives.

    Returns
    -------
    int
        The process exit status.

    Raises
    ------
    ToolNotFoundError
        ``make.command`` could not be started.
    ToolTimeoutError
        The build exceeded ``make.timeout_sec``.
    """
    cmd = [make.command, *make_args]
    logger.info("Running %s in %s", " ".join(cmd), make_dir)

    try:
        proc = subprocess.Popen(
            cmd,
            cwd=str(make_dir),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except (FileNotFoundError, PermissionError) as e:
        raise ToolNotFoundError("make", f"executable not found: {make.command}") from e

    expired = threading.Event()

    def _expire():
        expired.set()
        proc.kill()

    timer = None
    if make.timeout_sec is not None:
        timer = threading.Timer(make.timeout_sec, _expire)
        timer.start()

    try:
        try:
            proc.stdin.write(make.stdin)
            proc.stdin.close()
        except BrokenPipeError:
            logger.debug("make closed stdin before reading it")

        for line in proc.stdout:
            sys.stdout.write(line)
        sys.stdout.flush()
        returncode = proc.wait()
    finally:
        if timer is not None:
            timer.cancel()

    if expired.is_set():
        raise ToolTimeoutError("make", f"timed out after {make.timeout_sec:g}s")

    logger.info("make finished with status %d", returncode)
    return returncode
