"""Small synthetic source images."""

import struct
from pathlib import Path

import numpy as np
from PIL import Image


def make_rgba(width=8, height=8, color=(200, 100, 50, 255)) -> Image.Image:
    return Image.new("RGBA", (width, height), color)


def make_gradient(width=16, height=8) -> Image.Image:
    """RGBA gradient with a fully transparent left column."""
    data = np.zeros((height, width, 4), dtype=np.uint8)
    data[..., 0] = np.linspace(0, 255, width, dtype=np.uint8)[None, :]
    data[..., 1] = np.linspace(255, 0, height, dtype=np.uint8)[:, None]
    data[..., 2] = 77
    data[..., 3] = 255
    data[:, 0, 3] = 0
    return Image.fromarray(data)


def write_png(path: Path, image: Image.Image = None) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    (image or make_rgba()).save(path, format="PNG")
    return path


def write_aseprite_source(path: Path, image: Image.Image = None) -> Path:
    """Write PNG bytes under a .aseprite name for the fake exporter to copy."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    (image or make_rgba()).save(path, format="PNG")
    return path


def write_psd(path: Path, image: Image.Image = None) -> Path:
    """Write a minimal flattened RGB(A) Photoshop file with raw image data."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    image = image or make_rgba()
    channels = len(image.getbands())
    width, height = image.size

    header = struct.pack(">4sH6sHIIHH", b"8BPS", 1, b"\0" * 6, channels, height, width, 8, 3)
    sections = struct.pack(">III", 0, 0, 0)  # color mode, resources, layers
    planes = b"".join(band.tobytes() for band in image.split())
    path.write_bytes(header + sections + struct.pack(">H", 0) + planes)
    return path
