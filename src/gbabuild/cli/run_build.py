"""Core asset build execution logic.

This module contains the actual build runner, separated from argument
parsing. ``scripts/run_build.py`` and the ``gbabuild`` console script are
thin wrappers around it.

Usage::

    gbabuild [options] OUTPUT DESCRIPTOR ASSETS [MAKE_DIR [MAKE_ARGS...]]

Options must come before the positional arguments; everything after
MAKE_DIR is passed to make verbatim.
"""

import argparse
import json
import logging
import sys
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from pydantic import ValidationError

from gbabuild.errors import BuildFailedError, DescriptorError, GbaBuildError, MakeFailedError, ToolError
from gbabuild.pipeline.orchestrator import BuildOrchestrator, BuildReport
from gbabuild.pipeline.staleness import StalenessCache
from gbabuild.schemas import CLIConfig, InternalConfig, ParamConfig, load_descriptor, resolve_config
from gbabuild.schemas.resolve import deep_merge
from gbabuild.tools import run_make

__all__ = ['run_build_pipeline', 'load_param_config', 'setup_logging', 'main']

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_MAKE_FAILED = 2


def setup_logging(config: InternalConfig) -> None:
    """Configure the root logger with a console and an optional file handler."""
    log_level = getattr(logging, config.logging.level, logging.INFO)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Clear existing handlers and add new ones
    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    root.addHandler(ch)

    if config.logging.file:
        log_path = Path(config.logging.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)


def load_param_config(config_path: Optional[str]) -> ParamConfig:
    """Load expert overrides from a TOML file on top of the defaults.

    Parameters
    ----------
    config_path : str, optional
        TOML file whose tables mirror ParamConfig (``[tools.grit]``,
        ``[exporter]``, ``[cache]``...). None returns the defaults.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    DescriptorError
        If the file is not valid TOML.
    ValidationError
        If a value fails validation.
    """
    if config_path is None:
        return ParamConfig()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    try:
        with path.open("rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise DescriptorError(f"{path}: invalid TOML: {e}") from e

    # Partial tables override single fields
    return ParamConfig.model_validate(deep_merge(ParamConfig().model_dump(), raw))


def run_build_pipeline(
    output_dir: str,
    descriptor_path: str,
    assets_dir: str,
    make_dir: Optional[str] = None,
    make_args: Optional[Sequence[str]] = None,
    config_path: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    verbose: bool = False,
) -> BuildReport:
    """Execute an incremental asset build.

    Steps:
    1. Resolve configuration (Param < environment < CLI) and set up logging
    2. Load the staleness cache
    3. Load the build descriptor
    4. Build every stale group
    5. Run make in ``make_dir``, if given
    6. Snapshot the assets directory and save the cache

    Parameters
    ----------
    output_dir : str
        Directory receiving generated sources and headers.
    descriptor_path : str
        TOML build descriptor.
    assets_dir : str
        Root that descriptor source paths are relative to. The staleness
        cache is stored here.
    make_dir : str, optional
        Working directory of the downstream build. Skipped when None.
    make_args : sequence of str, optional
        Arguments passed verbatim to make.
    config_path : str, optional
        TOML file of expert overrides (see load_param_config).
    cli_args : dict, optional
        Further CLIConfig fields: ``log_level``, ``log_file``, ``jobs``.
    environ : mapping, optional
        Environment for tool location overrides. Defaults to ``os.environ``.
    verbose : bool, optional
        If True, enable DEBUG logging and print the resolved config.

    Returns
    -------
    BuildReport
        Built and skipped groups.

    Raises
    ------
    ValidationError
        If configuration validation fails.
    DescriptorError
        If the descriptor cannot be loaded.
    BuildFailedError
        If any group failed. The cache is not updated.
    MakeFailedError
        If make failed. The cache is not updated.

    Examples
    --------
    >>> report = run_build_pipeline("build/gfx", "graphics.toml", "assets",
    ...                             make_dir=".", make_args=["-j4"])
    >>> print(report.summary())
    """
    param_cfg = load_param_config(config_path)

    cli_args = dict(cli_args or {})
    if verbose and cli_args.get("log_level") is None:
        cli_args["log_level"] = "DEBUG"
    cli_args.update({
        "output_dir": output_dir,
        "descriptor_path": descriptor_path,
        "assets_dir": assets_dir,
        "make_dir": make_dir,
        "make_args": list(make_args) if make_args is not None else None,
    })
    cli_cfg = CLIConfig.model_validate({k: v for k, v in cli_args.items() if v is not None})

    config = resolve_config(param_cfg, cli_cfg, environ=environ)
    setup_logging(config)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(), indent=2))
        print('=' * 60)

    paths = config.paths
    logger.info("=" * 60)
    logger.info("gbabuild: %s -> %s", paths.descriptor_path, paths.output_dir)
    logger.info("=" * 60)

    if config.cache.enabled:
        cache = StalenessCache.load(paths.assets_dir, paths.descriptor_path, config.cache.filename)
    else:
        logger.info("Staleness cache disabled, rebuilding every group")
        cache = StalenessCache()

    descriptor = load_descriptor(paths.descriptor_path)
    logger.info("Loaded %d group(s) from %s", len(descriptor.graphics), paths.descriptor_path)

    orchestrator = BuildOrchestrator(config, cache)
    report = orchestrator.build(descriptor.graphics)

    if paths.make_dir is not None:
        try:
            returncode = run_make(config.make, paths.make_dir, paths.make_args)
        except ToolError as e:
            raise MakeFailedError(f"error running make: {e}") from e
        if returncode != 0:
            raise MakeFailedError(f"error running make: exit status {returncode}", returncode)

    if config.cache.enabled:
        snapshot = StalenessCache.snapshot(paths.assets_dir, paths.descriptor_path, config.cache.filename)
        snapshot.save(paths.assets_dir, config.cache.filename)

    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gbabuild",
        description="Incrementally convert GBA graphics assets, then run make.",
    )
    parser.add_argument("output", help="Output directory for generated sources")
    parser.add_argument("descriptor", help="Path to the TOML build descriptor")
    parser.add_argument("assets", help="Assets root directory")
    parser.add_argument("make_dir", nargs="?", default=None,
                        help="Directory to run make in (omit to skip make)")
    parser.add_argument("make_args", nargs=argparse.REMAINDER,
                        help="Arguments passed verbatim to make")
    parser.add_argument("--config", help="TOML file of expert parameter overrides")
    parser.add_argument("-j", "--jobs", type=int, help="Maximum groups built concurrently")
    parser.add_argument("--log-file", help="Also write the log to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Console entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)

    try:
        report = run_build_pipeline(
            args.output,
            args.descriptor,
            args.assets,
            make_dir=args.make_dir,
            make_args=args.make_args,
            config_path=args.config,
            cli_args={"jobs": args.jobs, "log_file": args.log_file},
            verbose=args.verbose,
        )
    except MakeFailedError as e:
        logger.error("%s", e)
        return EXIT_MAKE_FAILED
    except BuildFailedError as e:
        logger.error("Build failed: %s", e)
        return EXIT_BUILD_FAILED
    except (ValidationError, DescriptorError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_BUILD_FAILED
    except GbaBuildError as e:
        logger.error("%s", e)
        return EXIT_BUILD_FAILED

    logger.info("Done: %s", report.summary())
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
