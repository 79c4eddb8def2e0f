"""Generated C header synthesis.

Two kinds of header are produced:

- a declaration header for the raw-bitmap compiler, whose standard output
  is C source only; every data array found in it gets a ``<name>Len``
  constant and an ``extern`` declaration
- a frame-table header for groups with animations, mapping each frame name
  to a pointer into the tile data generated by an earlier group

Headers carry no build timestamp, so identical inputs give identical bytes.
"""

import re
from typing import Iterable, NamedTuple

from gbabuild.gfx.naming import to_camel, to_pascal, to_screaming_snake

__all__ = ['Declaration', 'parse_declarations', 'include_guard',
           'synthesize_declaration_header', 'animation_header_name',
           'synthesize_animation_header']

HEADER_BANNER = "// Auto generated by gbabuild. Do not edit.\n"

_DECLARATION_RE = re.compile(r"const unsigned (?:short|char) (\w+)\[(\d+)\]")


class Declaration(NamedTuple):
    """One compiled data array: ``const unsigned char fooTiles[128]``."""
    name: str
    length: int
    text: str


def parse_declarations(c_source: str) -> list[Declaration]:
    """Find every ``const unsigned {short|char} <name>[<length>]`` in source order.

    Examples
    --------
    >>> parse_declarations("const unsigned char fooTiles[128] = {0};")
    [Declaration(name='fooTiles', length=128, text='const unsigned char fooTiles[128]')]
    """
    return [
        Declaration(m.group(1), int(m.group(2)), m.group(0))
        for m in _DECLARATION_RE.finditer(c_source)
    ]


def include_guard(name: str) -> str:
    """Upper-case macro name safe for ``#ifndef`` (``my-sprites`` -> ``MY_SPRITES_H``)."""
    return re.sub(r"\W", "_", name.upper()) + "_H"


def synthesize_declaration_header(name: str, declarations: Iterable[Declaration]) -> str:
    """Build ``<name>.h`` for captured raw-bitmap compiler output."""
    guard = include_guard(name)
    lines = [HEADER_BANNER, "\n", f"#ifndef {guard}\n", f"#define {guard}\n\n"]
    for decl in declarations:
        lines.append(f"#define {decl.name}Len {decl.length}\n")
        lines.append(f"extern {decl.text};\n\n")
    lines.append(f"#endif // {guard}\n")
    return "".join(lines)


def animation_header_name(group_name: str) -> str:
    """File name of a group's frame table (``player`` -> ``PlayerFrames.h``)."""
    return to_pascal(f"{group_name} Frames") + ".h"


def synthesize_animation_header(group_name: str, animations) -> str:
    """Build the frame-table header for a group's animations.

    Every referenced tile header is included first. Each frame ``i`` of an
    animation then gets a pointer ``<stem>Tiles + stride * i`` where
    ``stride`` is the animation's tile stride.

    Parameters
    ----------
    group_name : str
        Owning group; names the include guard.
    animations : sequence of AnimationSpec
        Frame tables, in descriptor order.

    Returns
    -------
    str
        Header text.
    """
    guard = to_screaming_snake(f"{group_name} Frames") + "_H"
    lines = [HEADER_BANNER, "\n", f"#ifndef {guard}\n", f"#define {guard}\n\n"]

    for anim in animations:
        lines.append(f'#include "{anim.header_file}"\n')
    lines.append("\n")

    for anim in animations:
        base = f"ANIME_{to_camel(anim.header_stem)}"
        for i, frame in enumerate(anim.frame_names):
            symbol = to_pascal(f"{base} {frame}")
            lines.append(
                f"const unsigned char* {symbol} = {anim.tiles_symbol} + {anim.tile_stride * i};\n"
            )
        lines.append("\n")

    lines.append(f"#endif // {guard}\n")
    return "".join(lines)
