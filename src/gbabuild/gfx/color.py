"""GBA color quantization.

The GBA stores 15-bit color: 5 bits per channel and no alpha. Transparency is
conveyed by a reserved key color instead, so fully transparent source pixels
are replaced by that key before quantization. The key survives quantization
unchanged, which lets the tile compiler pick it out as palette entry 0.

Pixels are straight (non-premultiplied) 8-bit RGBA, which is what Pillow
produces for ``image.convert("RGBA")``.
"""

from typing import NamedTuple, Sequence

import numpy as np
from PIL import Image

__all__ = ['GbaColor', 'TRANSPARENT_KEY', 'TRANSPARENT_ALPHA', 'KEY_INDEX',
           'quantize', 'quantize_array', 'convert_image', 'to_paletted']

TRANSPARENT_KEY = (255, 0, 246)
TRANSPARENT_ALPHA = 0
KEY_INDEX = 0
MAX_PALETTE_SIZE = 256


class GbaColor(NamedTuple):
    """A quantized color with 5-bit channels (0-31)."""
    r: int
    g: int
    b: int

    def to_rgba(self) -> tuple[int, int, int, int]:
        """8-bit opaque RGBA for writing intermediate rasters."""
        return (self.r << 3, self.g << 3, self.b << 3, 255)


def quantize(pixel: Sequence[int]) -> GbaColor:
    """Quantize one RGB or RGBA pixel to GBA color depth.

    Each channel is floor-divided by 8. A pixel whose alpha equals
    TRANSPARENT_ALPHA is first replaced by TRANSPARENT_KEY.

    Parameters
    ----------
    pixel : sequence of int
        ``(r, g, b)`` or ``(r, g, b, a)`` with 8-bit channels.

    Returns
    -------
    GbaColor
        The reduced color.

    Raises
    ------
    ValueError
        If the pixel does not have 3 or 4 channels in 0-255.

    Examples
    --------
    >>> quantize((255, 255, 255, 255))
    GbaColor(r=31, g=31, b=31)
    >>> quantize((12, 200, 40, 0))
    GbaColor(r=31, g=0, b=30)
    """
    if len(pixel) not in (3, 4):
        raise ValueError(f"expected RGB or RGBA pixel, got {len(pixel)} channels")
    if any(not 0 <= int(c) <= 255 for c in pixel):
        raise ValueError(f"pixel channels must be 0-255, got {tuple(pixel)}")

    r, g, b = (int(c) for c in pixel[:3])
    alpha = int(pixel[3]) if len(pixel) == 4 else 255
    if alpha == TRANSPARENT_ALPHA:
        r, g, b = TRANSPARENT_KEY
    return GbaColor(r // 8, g // 8, b // 8)


def quantize_array(rgba: np.ndarray) -> np.ndarray:
    """Vectorized ``quantize`` over an ``(H, W, 4)`` uint8 array.

    Returns a new ``(H, W, 3)`` uint8 array of 5-bit channel values; the
    input is not modified.
    """
    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise ValueError(f"expected (H, W, 4) RGBA array, got shape {rgba.shape}")

    rgb = np.array(rgba[..., :3], dtype=np.uint8, copy=True)
    rgb[rgba[..., 3] == TRANSPARENT_ALPHA] = TRANSPARENT_KEY
    return rgb // 8


def convert_image(image: Image.Image) -> Image.Image:
    """Quantize every pixel of an image.

    Produces a new opaque RGBA image of identical size whose channels are
    the 5-bit levels scaled back to 8 bits (``level << 3``). The input image
    is left untouched and the result depends only on its pixels.
    """
    rgba = np.asarray(image.convert("RGBA"))
    levels = quantize_array(rgba)

    out = np.empty(rgba.shape, dtype=np.uint8)
    out[..., :3] = levels << 3
    out[..., 3] = 255
    return Image.fromarray(out)


def to_paletted(image: Image.Image) -> Image.Image:
    """8-bit palettized copy of a quantized image, for the raw-bitmap compiler.

    Every palette entry stays on the 5-bit grid, and the quantized
    transparency key, when present, is always entry ``KEY_INDEX``. Images
    with at most 256 distinct colors map exactly. Larger ones are reduced
    with median cut over the remaining 255 (or 256) entries and the
    resulting palette is snapped back to the grid; key pixels are never
    merged with other colors.

    Parameters
    ----------
    image : PIL.Image.Image
        Output of ``convert_image``.

    Returns
    -------
    PIL.Image.Image
        Mode ``"P"`` image of identical size with a 256-entry palette.
    """
    rgb = np.asarray(image.convert("RGB"))
    key = np.array(quantize(TRANSPARENT_KEY).to_rgba()[:3], dtype=np.uint8)
    is_key = np.all(rgb == key, axis=-1).reshape(-1)
    has_key = bool(is_key.any())

    colors, inverse = np.unique(rgb.reshape(-1, 3), axis=0, return_inverse=True)
    inverse = inverse.reshape(-1)

    if len(colors) <= MAX_PALETTE_SIZE:
        order = np.arange(len(colors))
        if has_key:
            key_pos = int(np.flatnonzero(np.all(colors == key, axis=1))[0])
            order = np.concatenate(([key_pos], np.delete(order, key_pos)))
        remap = np.empty(len(colors), dtype=np.intp)
        remap[order] = np.arange(len(colors))
        palette = colors[order]
        indices = remap[inverse]
    else:
        budget = MAX_PALETTE_SIZE - 1 if has_key else MAX_PALETTE_SIZE
        reduced = Image.fromarray(np.ascontiguousarray(rgb)).quantize(
            colors=budget, method=Image.Quantize.MEDIANCUT, dither=Image.Dither.NONE
        )
        raw = np.array(reduced.getpalette(), dtype=np.uint8).reshape(-1, 3)[:budget]
        palette = np.zeros((budget, 3), dtype=np.uint8)
        palette[:len(raw)] = (raw >> 3) << 3
        indices = np.asarray(reduced, dtype=np.intp).reshape(-1)
        if has_key:
            palette = np.vstack([key[None, :], palette])
            indices = indices + 1
            indices[is_key] = KEY_INDEX

    full = np.zeros((MAX_PALETTE_SIZE, 3), dtype=np.uint8)
    full[:len(palette)] = palette
    out = Image.frombytes("P", image.size, indices.astype(np.uint8).tobytes())
    out.putpalette(full.reshape(-1).tolist())
    return out
