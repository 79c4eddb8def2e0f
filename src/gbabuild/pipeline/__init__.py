"""Build pipeline modules.

- staleness: SQLite staleness cache
- processor: Per-group conversion pipeline
- orchestrator: Concurrent build of stale groups
"""

from gbabuild.pipeline.staleness import StalenessCache
from gbabuild.pipeline.processor import GroupProcessor, GroupResult
from gbabuild.pipeline.orchestrator import BuildOrchestrator, BuildReport

__all__ = [
    'StalenessCache',
    'GroupProcessor',
    'GroupResult',
    'BuildOrchestrator',
    'BuildReport',
]
