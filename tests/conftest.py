"""Root-level pytest fixtures for the gbabuild test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture. Tests build InternalConfig through resolve_config instead of
raw dicts.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from gbabuild.schemas import ParamConfig, CLIConfig, resolve_config
from gbabuild.schemas.resolve import deep_merge
from tests.helpers.fake_tools import install_fake_tools


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def build_dirs(temp_dir):
    """Standard build layout: assets, out, tools, plus a descriptor path."""
    dirs = {
        "assets": temp_dir / "assets",
        "out": temp_dir / "out",
        "tools": temp_dir / "tools",
        "descriptor": temp_dir / "graphics.toml",
    }
    for key in ("assets", "out", "tools"):
        dirs[key].mkdir(parents=True, exist_ok=True)
    dirs["descriptor"].write_text("Graphics = []\n")
    return dirs


@pytest.fixture
def fake_tools(build_dirs):
    """Executable fake converters, keyed by tool name."""
    return install_fake_tools(build_dirs["tools"])


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def make_config(build_dirs, fake_tools):
    """Factory fixture for InternalConfig pointing at the fake tools.

    Keyword arguments are nested ParamConfig overrides.

    Examples
    --------
    >>> def test_short_timeout(make_config):
    ...     config = make_config(tools={"grit": {"timeout_sec": 0.5}})
    ...     assert config.tools.grit.timeout_sec == 0.5
    """
    def _make(**param_overrides):
        base = {
            "tools": {
                "grit": {"command": str(fake_tools["grit"])},
                "bmp2gba": {"command": str(fake_tools["bmp2gba"])},
                "aseprite": {"command": str(fake_tools["aseprite"])},
            },
            "exporter": {"poll_initial_delay_sec": 0.01, "output_timeout_sec": 2.0},
            "make": {"command": str(fake_tools["make"])},
        }
        param = ParamConfig.model_validate(
            deep_merge(ParamConfig().model_dump(), base, param_overrides)
        )
        cli = CLIConfig(
            output_dir=str(build_dirs["out"]),
            descriptor_path=str(build_dirs["descriptor"]),
            assets_dir=str(build_dirs["assets"]),
        )
        return resolve_config(param, cli, environ={})

    return _make


@pytest.fixture
def internal_config(make_config):
    """Fully validated runtime configuration using the fake tools."""
    return make_config()
