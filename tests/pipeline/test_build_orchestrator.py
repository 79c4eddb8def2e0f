"""Tests for incremental, concurrent group orchestration."""

import os
import sys
import threading

import pytest

from gbabuild.errors import BuildFailedError, ConversionError, GroupBuildError
from gbabuild.pipeline.orchestrator import BuildOrchestrator
from gbabuild.pipeline.processor import GroupResult
from gbabuild.pipeline.staleness import StalenessCache
from tests.helpers.fake_tools import read_call_log

pytestmark = [
    pytest.mark.pipeline,
    pytest.mark.skipif(sys.platform == "win32", reason="fake tools rely on shebang scripts"),
]


class ScriptedProcessor:
    """Stands in for GroupProcessor; behaviour per group name."""

    def __init__(self, behaviours):
        self.behaviours = behaviours
        self.finished = []
        self._lock = threading.Lock()

    def run(self, group):
        behaviour = self.behaviours.get(group.name)
        if behaviour is not None:
            behaviour()
        with self._lock:
            self.finished.append(group.name)
        return GroupResult(group.name, group.mode, [])


def _groups(make_group):
    return [
        make_group("player", "grit", ["player/idle.png", "player/walk.png"]),
        make_group("enemies", "grit", ["enemies/slime.psd"]),
        make_group("title", "bmp2gba", ["title/screen.png"]),
    ]


class TestPartition:

    def test_empty_cache_builds_everything(self, internal_config, assets, make_group):
        orchestrator = BuildOrchestrator(internal_config, StalenessCache())
        stale, skipped = orchestrator.partition(_groups(make_group))
        assert [g.name for g in stale] == ["player", "enemies", "title"]
        assert skipped == []

    def test_only_touched_group_is_stale(self, internal_config, assets, build_dirs, make_group):
        StalenessCache.snapshot(assets, build_dirs["descriptor"]).save(assets)
        walk = assets / "player" / "walk.png"
        st = walk.stat()
        os.utime(walk, ns=(st.st_atime_ns, st.st_mtime_ns + 5_000_000_000))

        cache = StalenessCache.load(assets, build_dirs["descriptor"])
        stale, skipped = BuildOrchestrator(internal_config, cache).partition(_groups(make_group))
        assert [g.name for g in stale] == ["player"]
        assert [g.name for g in skipped] == ["enemies", "title"]


class TestBuild:

    def test_builds_all_groups(self, internal_config, assets, build_dirs, make_group):
        report = BuildOrchestrator(internal_config, StalenessCache()).build(_groups(make_group))

        assert report.ok
        assert sorted(report.built) == ["enemies", "player", "title"]
        out = build_dirs["out"]
        for name in ("PlayerIdle.c", "PlayerWalk.h", "EnemiesSlime.c", "title.c", "title.h"):
            assert (out / name).exists()

    def test_unchanged_groups_are_skipped(self, internal_config, assets, build_dirs,
                                          make_group, monkeypatch, temp_dir, caplog):
        log = temp_dir / "calls.log"
        monkeypatch.setenv("FAKE_CALL_LOG", str(log))
        StalenessCache.snapshot(assets, build_dirs["descriptor"]).save(assets)
        cache = StalenessCache.load(assets, build_dirs["descriptor"])

        with caplog.at_level("INFO"):
            report = BuildOrchestrator(internal_config, cache).build(_groups(make_group))

        assert report.built == {}
        assert report.skipped == ["player", "enemies", "title"]
        assert read_call_log(log) == []
        assert "Nothing to build" in caplog.text

    def test_failure_does_not_cancel_other_groups(self, internal_config, assets, make_group):
        started = threading.Event()

        def _fail():
            started.wait(timeout=5)
            raise ConversionError("enemies/slime.psd", "cannot decode image")

        def _slow():
            started.set()
            threading.Event().wait(0.2)

        processor = ScriptedProcessor({"enemies": _fail, "player": _slow})
        orchestrator = BuildOrchestrator(internal_config, StalenessCache(), processor=processor)

        with pytest.raises(BuildFailedError) as exc:
            orchestrator.build(_groups(make_group))

        report = exc.value.report
        assert sorted(report.built) == ["player", "title"]
        assert list(report.failed) == ["enemies"]
        assert sorted(processor.finished) == ["player", "title"]

    def test_failure_keeps_group_and_cause(self, internal_config, assets, make_group):
        def _fail():
            raise ConversionError("title/screen.png", "cannot decode image")

        processor = ScriptedProcessor({"title": _fail})
        orchestrator = BuildOrchestrator(internal_config, StalenessCache(), processor=processor)

        with pytest.raises(BuildFailedError) as exc:
            orchestrator.build(_groups(make_group))

        first = exc.value.first
        assert isinstance(first, GroupBuildError)
        assert first.group == "title"
        assert isinstance(first.__cause__, ConversionError)
        assert "1 group(s) failed [title]" in str(exc.value)

    def test_real_failure_reports_missing_source(self, internal_config, assets, make_group):
        groups = [
            make_group("ok", "grit", ["player/idle.png"]),
            make_group("broken", "grit", ["player/walk.png", "player/nope.png"]),
        ]
        with pytest.raises(BuildFailedError) as exc:
            BuildOrchestrator(internal_config, StalenessCache()).build(groups)
        assert list(exc.value.report.built) == ["ok"]
        assert "not found" in str(exc.value.report.failed["broken"])


class TestConcurrency:

    def test_concurrent_groups_never_overlap_tool_runs(self, make_config, assets, make_group,
                                                       monkeypatch, temp_dir):
        mutex = temp_dir / "mutex"
        mutex.mkdir()
        monkeypatch.setenv("FAKE_MUTEX_DIR", str(mutex))
        monkeypatch.setenv("FAKE_SLEEP", "0.05")
        config = make_config(concurrency={"max_group_workers": 4})
        screen = (assets / "title" / "screen.png").read_bytes()
        groups = []
        for i in range(4):
            (assets / f"level{i}").mkdir()
            (assets / f"level{i}" / "bg.png").write_bytes(screen)
            groups.append(make_group(f"level{i}", "bmp2gba", [f"level{i}/bg.png"]))

        report = BuildOrchestrator(config, StalenessCache()).build(groups)
        assert len(report.built) == 4

    def test_concurrent_output_matches_sequential(self, make_config, assets, build_dirs, make_group):
        groups = [
            make_group("sprites", "grit", ["player/idle.png", "player/walk.png", "enemies/bat.aseprite"]),
            make_group("title", "bmp2gba", ["title/screen.png"], ["-q"]),
            make_group("slime", "bmp2gba", ["enemies/slime.psd"]),
        ]
        out = build_dirs["out"]

        BuildOrchestrator(make_config(concurrency={"max_group_workers": 1, "max_file_workers": 1}),
                          StalenessCache()).build(groups)
        sequential = {p.name: p.read_bytes() for p in out.iterdir()}
        for p in out.iterdir():
            p.unlink()

        BuildOrchestrator(make_config(concurrency={"max_group_workers": 3, "max_file_workers": 4}),
                          StalenessCache()).build(groups)
        concurrent = {p.name: p.read_bytes() for p in out.iterdir()}

        assert concurrent == sequential
        assert "title.h" in concurrent
