"""Pydantic configuration schemas for the gbabuild asset pipeline.

This module provides strictly typed configuration models. All configuration
validation, coercion, and normalization happens at schema validation time
via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
CLIConfig : class
    Command-line operational overrides
AssetGroup, AnimationSpec, BuildDescriptor, GroupMode : classes
    Build descriptor models
load_descriptor : function
    Read and validate a TOML build descriptor
"""

from gbabuild.schemas.resolve import resolve_config
from gbabuild.schemas.internal import InternalConfig
from gbabuild.schemas.param import ParamConfig
from gbabuild.schemas.cli import CLIConfig
from gbabuild.schemas.descriptor import (
    AnimationSpec,
    AssetGroup,
    BuildDescriptor,
    GroupMode,
    load_descriptor,
)

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'CLIConfig',
    'AnimationSpec',
    'AssetGroup',
    'BuildDescriptor',
    'GroupMode',
    'load_descriptor',
]
