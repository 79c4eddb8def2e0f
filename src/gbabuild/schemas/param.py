"""ParamConfig: Expert defaults for the gbabuild asset pipeline.

This module defines the complete default configuration. ALL tunable
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

import sys
from typing import Literal, Optional
from pydantic import Field
from gbabuild.schemas.base import GbaBuildBaseModel


# Windows reports STATUS_HEAP_CORRUPTION when grit exits after finishing its
# work. The outputs are complete, so the code is allowlisted for grit only.
GRIT_HEAP_CORRUPTION_EXIT = 0xC0000374


def _default_bmp2gba_command() -> str:
    return "bmp2gba.com" if sys.platform == "win32" else "bmp2gba"


# =============================================================================
# Nested Configuration Models
# =============================================================================

class ToolConfig(GbaBuildBaseModel):
    """One external converter executable."""
    command: str = Field(..., min_length=1, description="Executable name or path")
    timeout_sec: float = Field(300.0, gt=0, description="Hard limit for one invocation")
    benign_exit_codes: list[int] = Field(default_factory=list)


class ToolsConfig(GbaBuildBaseModel):
    """External converters, one per pipeline role."""
    grit: ToolConfig = Field(
        default_factory=lambda: ToolConfig(
            command="grit", benign_exit_codes=[GRIT_HEAP_CORRUPTION_EXIT]
        )
    )
    bmp2gba: ToolConfig = Field(
        default_factory=lambda: ToolConfig(command=_default_bmp2gba_command())
    )
    aseprite: ToolConfig = Field(
        default_factory=lambda: ToolConfig(command="aseprite", timeout_sec=120.0)
    )


class ExporterConfig(GbaBuildBaseModel):
    """Polling for the vector-art exporter's output sheet."""
    poll_initial_delay_sec: float = Field(0.01, gt=0)
    poll_max_delay_sec: float = Field(0.5, gt=0)
    output_timeout_sec: float = Field(5.0, gt=0)


class ConcurrencyConfig(GbaBuildBaseModel):
    """Worker pool sizes. None lets the executor pick its default."""
    max_group_workers: Optional[int] = Field(None, ge=1)
    max_file_workers: Optional[int] = Field(None, ge=1)


class CacheConfig(GbaBuildBaseModel):
    """Staleness cache persistence."""
    enabled: bool = True
    filename: str = Field("gbabuild_cache.db", min_length=1)


class MakeConfig(GbaBuildBaseModel):
    """Downstream native build step."""
    command: str = Field("make", min_length=1)
    stdin: str = "y"
    timeout_sec: Optional[float] = Field(None, gt=0)


class LoggingConfig(GbaBuildBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(GbaBuildBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    exporter: ExporterConfig = Field(default_factory=ExporterConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    make: MakeConfig = Field(default_factory=MakeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
