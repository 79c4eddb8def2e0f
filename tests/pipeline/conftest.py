import pytest

from gbabuild.schemas.descriptor import AssetGroup
from tests.helpers.images import make_gradient, make_rgba, write_aseprite_source, write_png, write_psd


@pytest.fixture
def assets(build_dirs):
    """Populated assets root.

    Layout::

        player/idle.png      8x8 solid
        player/walk.png      16x8 gradient with transparent column
        enemies/slime.psd    8x8 solid RGB
        enemies/bat.aseprite 8x8 solid (PNG bytes, copied by the fake exporter)
        title/screen.png     16x8 gradient
    """
    root = build_dirs["assets"]
    write_png(root / "player" / "idle.png", make_rgba(8, 8, (255, 255, 255, 255)))
    write_png(root / "player" / "walk.png", make_gradient(16, 8))
    write_psd(root / "enemies" / "slime.psd", make_rgba(8, 8, (0, 200, 0, 255)).convert("RGB"))
    write_aseprite_source(root / "enemies" / "bat.aseprite", make_rgba(8, 8, (90, 0, 90, 255)))
    write_png(root / "title" / "screen.png", make_gradient(16, 8))
    return root


@pytest.fixture
def make_group():
    """Factory for AssetGroup using the descriptor's key spelling."""
    def _make(name, mode, files, options=(), animes=()):
        return AssetGroup.model_validate({
            "Name": name,
            "Mode": mode,
            "Options": list(options),
            "Files": list(files),
            "Animes": list(animes),
        })
    return _make
