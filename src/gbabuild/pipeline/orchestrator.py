"""Incremental build orchestration.

Partitions asset groups into stale and unchanged using the staleness cache,
builds every stale group concurrently on a bounded thread pool, and waits
for all of them before reporting. A failing group never cancels the others.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional, TYPE_CHECKING

from gbabuild.errors import BuildFailedError, GroupBuildError
from gbabuild.pipeline.processor import GroupProcessor, GroupResult
from gbabuild.pipeline.staleness import StalenessCache

if TYPE_CHECKING:
    from gbabuild.schemas.descriptor import AssetGroup
    from gbabuild.schemas.internal import InternalConfig

__all__ = ['BuildOrchestrator', 'BuildReport']

logger = logging.getLogger(__name__)


class BuildReport:
    """Outcome of one build.

    Attributes
    ----------
    built : dict
        Group name -> GroupResult for groups rebuilt successfully.
    skipped : list of str
        Groups whose sources were unchanged.
    failed : dict
        Group name -> GroupBuildError.
    """

    def __init__(self):
        self.built: Dict[str, GroupResult] = {}
        self.skipped: List[str] = []
        self.failed: Dict[str, GroupBuildError] = {}

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return f"{len(self.built)} built, {len(self.skipped)} skipped, {len(self.failed)} failed"

    def __repr__(self):
        return f"BuildReport({self.summary()})"


class BuildOrchestrator:
    """Rebuild the stale asset groups of a descriptor.

    The staleness cache is passed in explicitly and only read here; the
    caller snapshots and saves it after a successful build.

    Parameters
    ----------
    config : InternalConfig
        Runtime configuration; ``paths`` and ``concurrency`` are used.
    cache : StalenessCache
        Cache loaded at process start.
    processor : GroupProcessor, optional
        Pipeline executor shared by all groups.

    Example usage::

        cache = StalenessCache.load(assets_dir, descriptor_path)
        orchestrator = BuildOrchestrator(config, cache)
        report = orchestrator.build(descriptor.graphics)
        print(report.summary())
    """

    def __init__(self, config: "InternalConfig", cache: StalenessCache,
                 processor: Optional[GroupProcessor] = None):
        self.config = config
        self.cache = cache
        self.assets_dir = Path(config.paths.assets_dir)
        self.max_workers = config.concurrency.max_group_workers
        self.processor = processor or GroupProcessor(config)

    def partition(self, groups: Iterable["AssetGroup"]):
        """Split groups into ``(stale, skipped)`` lists, preserving order."""
        stale, skipped = [], []
        for group in groups:
            if self.cache.is_group_stale(group, self.assets_dir):
                stale.append(group)
            else:
                skipped.append(group)
        return stale, skipped

    def build(self, groups: Iterable["AssetGroup"]) -> BuildReport:
        """Build every stale group and wait for all of them.

        Returns
        -------
        BuildReport
            Built and skipped groups when everything succeeded.

        Raises
        ------
        BuildFailedError
            At least one group failed. Raised only after every dispatched
            group finished; ``first`` is the first failure to complete and
            ``report`` holds all outcomes.
        """
        report = BuildReport()
        stale, skipped = self.partition(groups)

        for group in skipped:
            logger.info("Skipping unchanged group '%s'", group.name)
            report.skipped.append(group.name)

        if not stale:
            logger.info("Nothing to build")
            return report

        logger.info("Building %d stale group(s)", len(stale))
        first_error = None

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="group") as executor:
            futures = {executor.submit(self.processor.run, group): group for group in stale}

            for future in as_completed(futures):
                group = futures[future]
                try:
                    report.built[group.name] = future.result()
                except Exception as e:
                    error = GroupBuildError(group.name, e)
                    error.__cause__ = e
                    logger.error("%s", error)
                    report.failed[group.name] = error
                    if first_error is None:
                        first_error = error

        logger.info("Build finished: %s", report.summary())
        if first_error is not None:
            raise BuildFailedError(first_error, report)
        return report
