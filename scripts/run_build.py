#!/usr/bin/env python3
"""``gbabuild`` asset build runner.

Usage:
    python scripts/run_build.py build/gfx scripts/graphics.toml assets
    python scripts/run_build.py build/gfx scripts/graphics.toml assets . all
    python scripts/run_build.py --config scripts/params.toml -v build/gfx scripts/graphics.toml assets

Note: expert overrides in scripts/params.toml, defaults in gbabuild.schemas.param
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from gbabuild.cli.run_build import main


if __name__ == "__main__":
    sys.exit(main())
