"""Identifier casing and deterministic intermediate file names.

The tile compiler names its generated symbols and files after its input
files, so intermediate names must be stable between runs and distinct for
sources in different directories. Each path segment is converted to
PascalCase and the segments are concatenated:

    player/idle_front.png  ->  PlayerIdleFront.png
    ui/HUD/heart.psd       ->  UiHudHeart.png
"""

import re
from pathlib import Path, PurePosixPath

__all__ = ['split_words', 'to_pascal', 'to_camel', 'to_screaming_snake',
           'intermediate_name', 'intermediate_path']

# Acronym runs, capitalized or lowercase words, and digit runs
_WORD_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")


def split_words(text: str) -> list[str]:
    """Split on separators and case boundaries (``fooBar-baz`` -> foo, Bar, baz)."""
    return _WORD_RE.findall(text)


def to_pascal(text: str) -> str:
    return "".join(w[:1].upper() + w[1:].lower() for w in split_words(text))


def to_camel(text: str) -> str:
    pascal = to_pascal(text)
    words = split_words(text)
    if not words:
        return ""
    return words[0].lower() + pascal[len(words[0]):]


def to_screaming_snake(text: str) -> str:
    return "_".join(w.upper() for w in split_words(text))


def intermediate_name(source: str, ext: str) -> str:
    """Derive the intermediate file name for a source path.

    Parameters
    ----------
    source : str
        Source path relative to the assets root, ``/`` or ``\\`` separated.
    ext : str
        Extension of the intermediate raster, with the leading dot.

    Returns
    -------
    str
        Bare file name, e.g. ``DirSubLeaf.png``.

    Examples
    --------
    >>> intermediate_name("dir/sub/Leaf.png", ".png")
    'DirSubLeaf.png'
    >>> intermediate_name("dir/Other.psd", ".bmp")
    'DirOther.bmp'
    """
    posix = PurePosixPath(source.replace("\\", "/"))
    stem_path = posix.with_suffix("") if posix.suffix else posix
    name = "".join(to_pascal(part) for part in stem_path.parts if part not in ("", ".", "/"))
    if not name:
        raise ValueError(f"cannot derive an intermediate name from {source!r}")
    return name + ext


def intermediate_path(source: str, output_dir: Path | str, ext: str) -> Path:
    """Full path of the intermediate for ``source`` inside ``output_dir``."""
    return Path(output_dir) / intermediate_name(source, ext)
