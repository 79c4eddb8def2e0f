"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that processing code depends on.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict
from gbabuild.schemas.base import GbaBuildBaseModel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalToolConfig(GbaBuildBaseModel):
    """Runtime external tool configuration."""
    command: str
    timeout_sec: float
    benign_exit_codes: list[int]


class InternalToolsConfig(GbaBuildBaseModel):
    """Runtime tool table."""
    grit: InternalToolConfig
    bmp2gba: InternalToolConfig
    aseprite: InternalToolConfig


class InternalExporterConfig(GbaBuildBaseModel):
    """Runtime exporter polling configuration."""
    poll_initial_delay_sec: float
    poll_max_delay_sec: float
    output_timeout_sec: float


class InternalConcurrencyConfig(GbaBuildBaseModel):
    """Runtime worker pool sizes."""
    max_group_workers: Optional[int]
    max_file_workers: Optional[int]


class InternalCacheConfig(GbaBuildBaseModel):
    """Runtime cache configuration."""
    enabled: bool
    filename: str


class InternalMakeConfig(GbaBuildBaseModel):
    """Runtime downstream build configuration."""
    command: str
    stdin: str
    timeout_sec: Optional[float]


class InternalLoggingConfig(GbaBuildBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    file: Optional[str]


class InternalPathsConfig(GbaBuildBaseModel):
    """Runtime filesystem locations.

    Note: the three build paths are required; make_dir is optional and the
    downstream build is skipped when it is absent.
    """
    output_dir: str = Field(..., min_length=1)
    descriptor_path: str = Field(..., min_length=1)
    assets_dir: str = Field(..., min_length=1)
    make_dir: Optional[str] = None
    make_args: list[str] = Field(default_factory=list)


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(GbaBuildBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that processing code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.grit = config.tools.grit            # NOT .get()
            self.output_dir = config.paths.output_dir

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO type checking
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    tools: InternalToolsConfig
    exporter: InternalExporterConfig
    concurrency: InternalConcurrencyConfig
    cache: InternalCacheConfig
    make: InternalMakeConfig
    logging: InternalLoggingConfig
    paths: InternalPathsConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
