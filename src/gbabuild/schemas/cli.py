"""CLIConfig: Command-line operational overrides.

Configuration for the values that change between every run: where the
descriptor, assets and outputs live, the downstream build directory and its
arguments, verbosity and worker count.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import Field
from gbabuild.schemas.base import GbaBuildBaseModel


class CLIConfig(GbaBuildBaseModel):
    """Command-line configuration overrides.

    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(
            output_dir="build/gfx",
            descriptor_path="graphics.toml",
            assets_dir="assets",
            make_dir=".",
            make_args=["-j4"],
        )

        internal = resolve_config(param_cfg, cli_cfg)
    """

    output_dir: Optional[str] = None
    descriptor_path: Optional[str] = None
    assets_dir: Optional[str] = None
    make_dir: Optional[str] = None
    make_args: Optional[list[str]] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None
    log_file: Optional[str] = None
    jobs: Optional[int] = Field(None, ge=1)

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        paths = {}
        if self.output_dir is not None:
            paths["output_dir"] = self.output_dir
        if self.descriptor_path is not None:
            paths["descriptor_path"] = self.descriptor_path
        if self.assets_dir is not None:
            paths["assets_dir"] = self.assets_dir
        if self.make_dir is not None:
            paths["make_dir"] = self.make_dir
        if self.make_args is not None:
            paths["make_args"] = list(self.make_args)

        if paths:
            overrides["paths"] = paths

        logging_overrides = {}
        if self.log_level is not None:
            logging_overrides["level"] = self.log_level
        if self.log_file is not None:
            logging_overrides["file"] = self.log_file

        if logging_overrides:
            overrides["logging"] = logging_overrides

        # jobs bounds the group pool; the per-file pool keeps its own setting
        if self.jobs is not None:
            overrides["concurrency"] = {"max_group_workers": self.jobs}

        return overrides
