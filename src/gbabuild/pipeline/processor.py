"""Per-group conversion pipeline.

Runs one asset group through its stages:

1. Convert every source file in parallel: decode, quantize to GBA color and
   write an intermediate raster with a deterministic name in the output
   directory.
2. Wait for all conversions. Any failure fails the group.
3. Invoke the group's external compiler on the intermediates, in source
   order, under the shared tool lock.
4. Post-process the compiler output (raw-bitmap mode only).
5. Write the animation frame table, if the group has animations.

Intermediates are removed on every exit path.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING

from gbabuild.contracts import assert_declarations_exported, assert_intermediates
from gbabuild.errors import ConversionError
from gbabuild.gfx.color import convert_image, to_paletted
from gbabuild.gfx.headers import (
    animation_header_name,
    parse_declarations,
    synthesize_animation_header,
    synthesize_declaration_header,
)
from gbabuild.gfx.loader import ImageLoader
from gbabuild.gfx.naming import intermediate_path
from gbabuild.tools import ToolRunner
from gbabuild.schemas.descriptor import AssetGroup, GroupMode

if TYPE_CHECKING:
    from gbabuild.schemas.internal import InternalConfig

__all__ = ['GroupProcessor', 'GroupResult', 'INTERMEDIATE_EXTENSIONS']

logger = logging.getLogger(__name__)

INTERMEDIATE_EXTENSIONS = {
    GroupMode.TILE_COMPILE: ".png",
    GroupMode.RAW_BITMAP_COMPILE: ".bmp",
}


class GroupResult:
    """Files written for one successfully built group."""

    def __init__(self, name: str, mode: GroupMode, outputs: List[Path], benign_exit: bool = False):
        self.name = name
        self.mode = mode
        self.outputs = outputs
        self.benign_exit = benign_exit

    def __repr__(self):
        return f"GroupResult(name={self.name!r}, mode={self.mode.value}, outputs={len(self.outputs)})"


class GroupProcessor:
    """Converts asset groups into compiler output in the output directory.

    One processor is shared by all concurrently building groups; it keeps
    no per-group state.

    **Modes:**

    - **Tile compile** (``grit``): intermediates are RGBA PNGs. The compiler
      receives intermediates then options and writes its own ``.c``/``.h``
      (or ``.s``) files. Outputs left over from a previous run are deleted
      first, so a failed run never leaves a mismatched pair behind.

    - **Raw bitmap compile** (``bmp2gba``): intermediates are 8-bit
      palettized BMPs. The compiler receives options then intermediates and
      prints C source, which is saved as ``<group>.c`` together with a
      synthesized ``<group>.h``.

    Example usage::

        processor = GroupProcessor(config)
        result = processor.run(group)
        print(result.outputs)
    """

    def __init__(self, config: "InternalConfig", runner: Optional[ToolRunner] = None,
                 loader: Optional[ImageLoader] = None):
        self.config = config
        self.assets_dir = Path(config.paths.assets_dir)
        self.output_dir = Path(config.paths.output_dir)
        self.max_file_workers = config.concurrency.max_file_workers
        self.runner = runner or ToolRunner()
        self.loader = loader or ImageLoader(config, runner=self.runner)

    def run(self, group: AssetGroup) -> GroupResult:
        """Build one group.

        Raises
        ------
        ConversionError
            A source file could not be converted.
        ToolError
            The external compiler could not run or failed.
        ContractViolation
            A stage broke its output guarantee.
        """
        logger.info("Building group '%s' (%s, %d files)",
                    group.name, group.mode.value, len(group.source_files))
        self.output_dir.mkdir(parents=True, exist_ok=True)

        ext = INTERMEDIATE_EXTENSIONS[group.mode]
        intermediates = self._plan_intermediates(group, ext)

        try:
            produced = self._convert_all(group, intermediates)
            assert_intermediates(group.source_files, produced, intermediates)

            if group.mode is GroupMode.TILE_COMPILE:
                outputs, benign = self._compile_tiles(group, intermediates)
            else:
                outputs, benign = self._compile_raw(group, intermediates)
        finally:
            self._cleanup(intermediates)

        if group.animations:
            outputs.append(self._write_animation_header(group))

        logger.info("Built group '%s': %d output file(s)", group.name, len(outputs))
        return GroupResult(group.name, group.mode, outputs, benign)

    # ------------------------------------------------------------------
    # Stage 1: per-file conversion
    # ------------------------------------------------------------------

    def _plan_intermediates(self, group: AssetGroup, ext: str) -> List[Path]:
        planned = []
        owners = {}
        for source in group.source_files:
            path = intermediate_path(source, self.output_dir, ext)
            if path in owners:
                raise ConversionError(
                    source, f"intermediate name {path.name} collides with {owners[path]}"
                )
            owners[path] = source
            planned.append(path)
        return planned

    def _convert_all(self, group: AssetGroup, intermediates: List[Path]) -> List[Path]:
        """Convert every source concurrently; raise the first failure in source order.

        Returns the paths the conversions report having written, in source order.
        """
        with ThreadPoolExecutor(max_workers=self.max_file_workers,
                                thread_name_prefix=f"convert-{group.name}") as executor:
            futures = [
                executor.submit(self._convert_one, self.assets_dir / source, out, group.mode)
                for source, out in zip(group.source_files, intermediates)
            ]
            wait(futures)

        for future in futures:
            error = future.exception()
            if error is not None:
                raise error
        return [future.result() for future in futures]

    def _convert_one(self, source: Path, out: Path, mode: GroupMode) -> Path:
        image = self.loader.load(source)
        converted = convert_image(image)

        try:
            if mode is GroupMode.RAW_BITMAP_COMPILE:
                to_paletted(converted).save(out, format="BMP")
            else:
                converted.save(out, format="PNG")
        except OSError as e:
            raise ConversionError(source, f"cannot write intermediate {out}: {e}") from e

        logger.debug("Converted %s -> %s", source, out.name)
        return out

    def _cleanup(self, intermediates: List[Path]) -> None:
        for path in intermediates:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Cannot remove intermediate %s: %s", path, e)

    # ------------------------------------------------------------------
    # Stage 3/4: external compiler
    # ------------------------------------------------------------------

    def _tile_outputs(self, group: AssetGroup, intermediates: List[Path]) -> List[Path]:
        paths = []
        for path in intermediates:
            paths.extend(path.with_suffix(s) for s in (".h", ".s", ".c"))
        for option in group.options:
            if len(option) > 2 and option.startswith("-O"):
                base = self.output_dir / option[2:]
                paths.extend([base.with_name(base.name + s) for s in (".h", ".s", ".c")])
        return paths

    def _compile_tiles(self, group: AssetGroup, intermediates: List[Path]):
        candidates = self._tile_outputs(group, intermediates)
        for path in candidates:
            if path.exists():
                logger.debug("Removing stale output %s", path)
                path.unlink()

        result = self.runner.run(
            "grit",
            self.config.tools.grit,
            [p.name for p in intermediates] + list(group.options),
            cwd=self.output_dir,
        )
        outputs = [p for p in candidates if p.exists()]
        return outputs, result.benign

    def _compile_raw(self, group: AssetGroup, intermediates: List[Path]):
        result = self.runner.run(
            "bmp2gba",
            self.config.tools.bmp2gba,
            list(group.options) + [p.name for p in intermediates],
            cwd=self.output_dir,
        )

        c_source = result.stdout.decode(errors="replace")
        declarations = parse_declarations(c_source)
        if not declarations:
            logger.warning("bmp2gba printed no data declarations for group '%s'", group.name)

        header = synthesize_declaration_header(group.name, declarations)
        assert_declarations_exported(header, declarations)

        c_path = self.output_dir / f"{group.name}.c"
        h_path = self.output_dir / f"{group.name}.h"
        c_path.write_bytes(result.stdout)
        h_path.write_text(header, newline="\n")
        return [c_path, h_path], result.benign

    # ------------------------------------------------------------------
    # Stage 5: animation frame table
    # ------------------------------------------------------------------

    def _write_animation_header(self, group: AssetGroup) -> Path:
        path = self.output_dir / animation_header_name(group.name)
        path.write_text(synthesize_animation_header(group.name, group.animations), newline="\n")
        logger.debug("Wrote frame table %s", path.name)
        return path
