"""Build descriptor: the declarative list of graphics asset groups.

The descriptor is a human-edited TOML file. Keys are accepted both in the
historical capitalized spelling (``Graphics``, ``Name``, ``Files``,
``Animes``, ``For``, ``Size``, ``Frames``) and in snake_case, so existing
descriptors load unchanged::

    [[Graphics]]
    Name = "sprites"
    Mode = "grit"
    Options = ["-gB4", "-Osprites"]
    Files = ["player/idle.png", "player/walk.aseprite"]

    [[Graphics.Animes]]
    For = "sprites.h"
    Size = "32x32"
    Frames = ["idle", "walk"]

Descriptors are immutable once loaded. Any problem is a configuration error
and is raised as DescriptorError before conversion work starts.
"""

import re
import tomllib
from enum import Enum
from pathlib import Path
from pydantic import AliasChoices, Field, ValidationError, field_validator, model_validator
from gbabuild.errors import DescriptorError
from gbabuild.gfx.naming import intermediate_name
from gbabuild.schemas.base import GbaBuildBaseModel

__all__ = ['GroupMode', 'AnimationSpec', 'AssetGroup', 'BuildDescriptor', 'load_descriptor']

_FRAME_SIZE_RE = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


class GroupMode(str, Enum):
    """Conversion pipeline selected by a group's ``Mode`` value."""
    TILE_COMPILE = "grit"
    RAW_BITMAP_COMPILE = "bmp2gba"


class _FrozenModel(GbaBuildBaseModel):
    model_config = GbaBuildBaseModel.model_config.copy()
    model_config.update({"frozen": True})


class AnimationSpec(_FrozenModel):
    """Frame table for tiles generated by an earlier group.

    ``header_file`` names the generated header that declares the tile data
    (``<stem>Tiles``); ``frame_size`` is the width and height of one cell.
    """
    header_file: str = Field(..., min_length=1, validation_alias=AliasChoices("header_file", "For", "for"))
    frame_size: tuple[int, int] = Field(..., validation_alias=AliasChoices("frame_size", "Size", "size"))
    frame_names: list[str] = Field(default_factory=list, validation_alias=AliasChoices("frame_names", "Frames", "frames"))

    @field_validator("frame_size", mode="before")
    @classmethod
    def parse_frame_size(cls, v):
        """Accept ``"<int>x<int>"`` strings as well as pairs."""
        if isinstance(v, str):
            match = _FRAME_SIZE_RE.match(v)
            if not match:
                raise ValueError(f"frame size must look like '<width>x<height>', got {v!r}")
            return int(match.group(1)), int(match.group(2))
        return v

    @field_validator("frame_size")
    @classmethod
    def check_positive(cls, v):
        if v[0] <= 0 or v[1] <= 0:
            raise ValueError(f"frame size must be positive, got {v[0]}x{v[1]}")
        return v

    @property
    def header_stem(self) -> str:
        """Header file name up to the first dot (``sprites.h`` -> ``sprites``)."""
        return self.header_file.split(".")[0]

    @property
    def tiles_symbol(self) -> str:
        return f"{self.header_stem}Tiles"

    @property
    def tile_stride(self) -> int:
        """Tile-data offset between consecutive frames.

        Tile addressing steps both axes in halves, so the stride is
        ``floor(width / 2) * floor(height / 2)``.
        """
        width, height = self.frame_size
        return (width // 2) * (height // 2)


class AssetGroup(_FrozenModel):
    """One asset group: the unit of staleness and rebuild."""
    name: str = Field(..., min_length=1, validation_alias=AliasChoices("name", "Name"))
    mode: GroupMode = Field(..., validation_alias=AliasChoices("mode", "Mode"))
    options: list[str] = Field(default_factory=list, validation_alias=AliasChoices("options", "Options"))
    source_files: list[str] = Field(..., min_length=1, validation_alias=AliasChoices("source_files", "Files", "files"))
    animations: list[AnimationSpec] = Field(
        default_factory=list, validation_alias=AliasChoices("animations", "Animes", "animes")
    )

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v):
        """Normalize mode names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @field_validator("source_files")
    @classmethod
    def check_source_files(cls, v):
        for path in v:
            if not path.strip():
                raise ValueError("source file paths must not be empty")
        return v


class BuildDescriptor(_FrozenModel):
    """Ordered list of asset groups loaded from one descriptor file."""
    graphics: list[AssetGroup] = Field(
        default_factory=list, validation_alias=AliasChoices("graphics", "Graphics")
    )

    @model_validator(mode="after")
    def check_unique_names(self):
        """Group names derive output file names, so they must be unique."""
        seen = set()
        for group in self.graphics:
            if group.name in seen:
                raise ValueError(f"duplicate group name: {group.name!r}")
            seen.add(group.name)
        return self

    @model_validator(mode="after")
    def check_shared_intermediates(self):
        """Groups of one mode share the output directory's intermediate names.

        Two sources that map to the same intermediate would overwrite and
        delete each other's file while their groups build concurrently.
        """
        owners = {}
        for group in self.graphics:
            for source in group.source_files:
                key = (group.mode, intermediate_name(source, ""))
                if key in owners:
                    other_group, other_source = owners[key]
                    raise ValueError(
                        f"{source!r} in group {group.name!r} and {other_source!r} in group "
                        f"{other_group!r} map to the same intermediate {key[1]!r}"
                    )
                owners[key] = (group.name, source)
        return self


def load_descriptor(path: Path | str) -> BuildDescriptor:
    """Read and validate a TOML build descriptor.

    Parameters
    ----------
    path : Path or str
        Descriptor file.

    Returns
    -------
    BuildDescriptor
        Validated, immutable descriptor.

    Raises
    ------
    DescriptorError
        If the file cannot be read, is not valid TOML, or fails validation
        (unknown mode, empty file list, malformed frame size, ...).
    """
    path = Path(path)
    try:
        with path.open("rb") as f:
            raw = tomllib.load(f)
    except OSError as e:
        raise DescriptorError(f"{path}: cannot read descriptor: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise DescriptorError(f"{path}: invalid TOML: {e}") from e

    try:
        return BuildDescriptor.model_validate(raw)
    except ValidationError as e:
        raise DescriptorError(f"{path}: invalid descriptor\n{e}") from e
