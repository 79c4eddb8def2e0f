"""Command-line interface modules for gbabuild.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from gbabuild.cli.run_build import run_build_pipeline, main

__all__ = ['run_build_pipeline', 'main']
