"""Decode source art into RGBA images.

Three source kinds are supported, selected by file extension:

- ``.png``: decoded directly with Pillow
- ``.psd``: the flattened composite, decoded with Pillow's PSD plugin
- ``.aseprite``: exported to a PNG sheet by the external exporter, then
  decoded

The exporter flushes its sheet asynchronously after exiting, so the output
path is polled with exponential backoff until it decodes or the configured
timeout elapses.
"""

import logging
import tempfile
import time
from pathlib import Path
from typing import Callable, Optional, TYPE_CHECKING

from PIL import Image, UnidentifiedImageError

from gbabuild.errors import ConversionError, ExporterTimeoutError, ToolError, UnsupportedSourceError
from gbabuild.tools import ToolRunner

if TYPE_CHECKING:
    from gbabuild.schemas.internal import InternalConfig

__all__ = ['ImageLoader', 'SUPPORTED_EXTENSIONS']

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".png", ".psd", ".aseprite")


class ImageLoader:
    """Load source art files as RGBA Pillow images.

    Loaders hold no per-file state, so one instance is shared by all
    conversion workers.

    Parameters
    ----------
    config : InternalConfig
        Runtime configuration; ``tools.aseprite`` and ``exporter`` are used.
    runner : ToolRunner, optional
        Runner for the exporter subprocess.
    clock : callable, optional
        Monotonic time source (for testing). Defaults to ``time.monotonic``.
    sleeper : callable, optional
        Function to sleep (for testing). Defaults to ``time.sleep``.

    Examples
    --------
    >>> loader = ImageLoader(config)
    >>> image = loader.load("assets/player/idle.png")
    >>> image.mode
    'RGBA'
    """

    def __init__(self, config: "InternalConfig", runner: Optional[ToolRunner] = None,
                 clock: Optional[Callable[[], float]] = None,
                 sleeper: Optional[Callable[[float], None]] = None):
        self.exporter_tool = config.tools.aseprite
        self.exporter = config.exporter
        self.runner = runner or ToolRunner()
        self._clock = clock or time.monotonic
        self._sleep = sleeper or time.sleep

    def load(self, filepath: Path | str) -> Image.Image:
        """Decode ``filepath`` into a fully loaded RGBA image.

        Raises
        ------
        UnsupportedSourceError
            The extension is not one of SUPPORTED_EXTENSIONS.
        ConversionError
            The file is missing or cannot be decoded, or the exporter failed.
        ExporterTimeoutError
            The exporter produced no readable sheet in time.
        """
        filepath = Path(filepath)
        ext = filepath.suffix.lower()

        if ext == ".aseprite":
            return self._load_aseprite(filepath)
        if ext in (".png", ".psd"):
            return self._decode(filepath)

        raise UnsupportedSourceError(filepath, f"unsupported source type '{filepath.suffix}'")

    def _decode(self, filepath: Path) -> Image.Image:
        try:
            with Image.open(filepath) as img:
                img.load()
                rgba = img.convert("RGBA")
        except FileNotFoundError as e:
            raise ConversionError(filepath, "source file not found") from e
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ConversionError(filepath, f"cannot decode image: {e}") from e

        logger.debug("Decoded %s (%dx%d)", filepath, rgba.width, rgba.height)
        return rgba

    def _load_aseprite(self, filepath: Path) -> Image.Image:
        if not filepath.is_file():
            raise ConversionError(filepath, "source file not found")

        with tempfile.TemporaryDirectory(prefix="gbabuild_sheet_") as tmp:
            sheet = Path(tmp) / "sheet.png"
            try:
                self.runner.run(
                    "aseprite",
                    self.exporter_tool,
                    [str(filepath.resolve()), "--batch", "--sheet", str(sheet)],
                    cwd=tmp,
                    serialize=False,
                )
            except ToolError as e:
                raise ConversionError(filepath, f"exporter failed: {e}") from e

            return self._wait_for_sheet(filepath, sheet)

    def _wait_for_sheet(self, source: Path, sheet: Path) -> Image.Image:
        """Poll until ``sheet`` decodes, doubling the delay up to the cap."""
        deadline = self._clock() + self.exporter.output_timeout_sec
        delay = self.exporter.poll_initial_delay_sec
        last_error = None

        while True:
            if sheet.is_file():
                try:
                    return self._decode(sheet)
                except ConversionError as e:
                    # Partially flushed file
                    last_error = e

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            self._sleep(min(delay, remaining))
            delay = min(delay * 2, self.exporter.poll_max_delay_sec)

        detail = f" (last error: {last_error})" if last_error else ""
        raise ExporterTimeoutError(
            source,
            f"exporter produced no output within {self.exporter.output_timeout_sec:g}s{detail}",
        )
