"""Configuration resolution and merging logic.

This module provides the single entrypoint for configuration resolution:
resolve_config(). It merges ParamConfig, tool-location environment
variables and CLIConfig in the correct precedence order and returns a
validated InternalConfig.

Precedence (highest to lowest):
1. CLIConfig (command-line overrides)
2. Environment (GRIT_PATH, ASEPRITE_PATH, BMP2GBA_PATH)
3. ParamConfig (expert defaults)
"""

import os
from typing import Mapping, Optional, Union
from gbabuild.schemas.param import ParamConfig
from gbabuild.schemas.cli import CLIConfig
from gbabuild.schemas.internal import InternalConfig


# Environment variable -> tool key in ParamConfig.tools
TOOL_ENV_VARS = {
    "GRIT_PATH": "grit",
    "ASEPRITE_PATH": "aseprite",
    "BMP2GBA_PATH": "bmp2gba",
}


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Deep merge multiple dictionaries.

    Later dictionaries override earlier ones. Nested dictionaries are
    merged recursively; other values are replaced.

    Parameters
    ----------
    base : dict
        Base dictionary (lowest priority)
    *overrides : dict
        Override dictionaries (higher priority, left to right)

    Returns
    -------
    dict
        Merged dictionary

    Examples
    --------
    >>> base = {"a": 1, "b": {"c": 2, "d": 3}}
    >>> override = {"b": {"d": 4, "e": 5}, "f": 6}
    >>> deep_merge(base, override)
    {'a': 1, 'b': {'c': 2, 'd': 4, 'e': 5}, 'f': 6}
    """
    result = base.copy()

    for override in overrides:
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                # Recursive merge for nested dicts
                result[key] = deep_merge(result[key], value)
            else:
                # Replace value
                result[key] = value

    return result


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> dict:
    """Collect tool command overrides from the environment.

    Empty or unset variables are ignored so the default command name is
    resolved through the executable search path.

    Parameters
    ----------
    environ : mapping, optional
        Environment to read. Defaults to ``os.environ``.

    Returns
    -------
    dict
        Nested dictionary matching InternalConfig structure
    """
    environ = os.environ if environ is None else environ

    tools = {}
    for var, tool in TOOL_ENV_VARS.items():
        value = environ.get(var, "").strip()
        if value:
            tools[tool] = {"command": value}

    return {"tools": tools} if tools else {}


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> InternalConfig:
    """Resolve final runtime configuration from param, environment and CLI.

    This is the SINGLE ENTRYPOINT for configuration resolution. It validates
    and merges configs in the correct precedence order, then returns an
    immutable InternalConfig for runtime use.

    Parameters
    ----------
    param_cfg : dict or ParamConfig
        Expert configuration with complete defaults. Required.
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides. Must supply the build paths, which have
        no defaults.
    environ : mapping, optional
        Environment used for tool location overrides. Defaults to
        ``os.environ``.

    Returns
    -------
    InternalConfig
        Fully validated, immutable runtime configuration

    Raises
    ------
    ValidationError
        If any config fails Pydantic validation, including missing paths

    Examples
    --------
    >>> from gbabuild.schemas import resolve_config, ParamConfig, CLIConfig
    >>> cli = CLIConfig(output_dir="out", descriptor_path="gfx.toml", assets_dir="assets")
    >>> config = resolve_config(ParamConfig(), cli, environ={"GRIT_PATH": "/opt/grit"})
    >>> config.tools.grit.command
    '/opt/grit'
    """
    # Validate/convert inputs to Pydantic models
    if not isinstance(param_cfg, ParamConfig):
        param = ParamConfig.model_validate(param_cfg)
    else:
        param = param_cfg

    if cli_cfg is None or (isinstance(cli_cfg, dict) and not cli_cfg):
        cli = CLIConfig()
    elif not isinstance(cli_cfg, CLIConfig):
        cli = CLIConfig.model_validate(cli_cfg)
    else:
        cli = cli_cfg

    # Deep merge: param < environment < cli
    merged = deep_merge(
        param.model_dump(),
        env_overrides(environ),
        cli.to_internal_overrides(),
    )

    # Validate and freeze as InternalConfig
    return InternalConfig.model_validate(merged)
