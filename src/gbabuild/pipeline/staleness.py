"""SQLite-backed staleness cache.

Records the modification time of every file under the assets root, plus the
build descriptor's own modification time, at the end of each successful
build. The next run compares source files against it to decide which groups
need rebuilding.

The cache is loaded once at start, read without mutation during the build,
and replaced wholesale by a fresh snapshot at the end. A cache that cannot
be read is an empty cache; a cache that cannot be written is a warning.
"""

import logging
import os
import sqlite3
from pathlib import Path
from typing import Dict, Optional

__all__ = ['StalenessCache', 'DEFAULT_CACHE_FILENAME']

logger = logging.getLogger(__name__)

DEFAULT_CACHE_FILENAME = "gbabuild_cache.db"

# The database, its journals and the temporary file used while saving
_SIDECAR_SUFFIXES = ("", "-journal", "-wal", "-shm", ".tmp", ".tmp-journal")


def _abspath(path) -> str:
    return os.path.abspath(os.fspath(path))


def _mtime_ns(path) -> int:
    return os.stat(path).st_mtime_ns


class StalenessCache:
    """Snapshot of source modification times from the last successful build.

    **Invalidation on load:**

    - The descriptor's modification time differs from the recorded one:
      every entry is dropped, so every group rebuilds once.
    - Any recorded path no longer exists: every entry is dropped.

    **Database Schema:**

    - ``descriptor`` (single row): ``mtime_ns``
    - ``file_mod_times``: ``path`` (absolute, primary key), ``mtime_ns``

    Typical Usage::

        cache = StalenessCache.load(assets_dir, descriptor_path)
        stale = [g for g in groups if cache.is_group_stale(g, assets_dir)]
        ...
        StalenessCache.snapshot(assets_dir, descriptor_path).save(assets_dir)
    """

    def __init__(self, descriptor_mtime: Optional[int] = None,
                 file_mod_times: Optional[Dict[str, int]] = None):
        self.descriptor_mtime = descriptor_mtime
        self.file_mod_times = dict(file_mod_times or {})

    def __len__(self):
        return len(self.file_mod_times)

    def __repr__(self):
        return f"StalenessCache(descriptor_mtime={self.descriptor_mtime}, files={len(self)})"

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, assets_root: Path | str, descriptor_path: Path | str,
             filename: str = DEFAULT_CACHE_FILENAME) -> "StalenessCache":
        """Read the persisted cache and apply the invalidation rules.

        Never raises: a missing, unreadable or corrupt database yields an
        empty cache.
        """
        db_path = Path(assets_root) / filename
        cache = cls._read(db_path)

        try:
            current = _mtime_ns(descriptor_path)
        except OSError as e:
            logger.debug("Cannot stat descriptor %s: %s", descriptor_path, e)
            current = None

        if current is not None and current != cache.descriptor_mtime:
            if cache.file_mod_times:
                logger.info("Build descriptor changed, rebuilding every group")
            cache.file_mod_times.clear()

        for path in cache.file_mod_times:
            if not os.path.exists(path):
                logger.info("Cached file %s is gone, rebuilding every group", path)
                cache.file_mod_times.clear()
                break

        logger.debug("Loaded %r from %s", cache, db_path)
        return cache

    @classmethod
    def _read(cls, db_path: Path) -> "StalenessCache":
        if not db_path.is_file():
            logger.debug("No staleness cache at %s", db_path)
            return cls()

        conn = None
        try:
            conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
            row = conn.execute("SELECT mtime_ns FROM descriptor WHERE id = 1").fetchone()
            files = dict(conn.execute("SELECT path, mtime_ns FROM file_mod_times").fetchall())
        except sqlite3.Error as e:
            logger.warning("Ignoring unreadable staleness cache %s: %s", db_path, e)
            return cls()
        finally:
            if conn is not None:
                conn.close()

        return cls(row[0] if row else None, files)

    # ------------------------------------------------------------------
    # Staleness check
    # ------------------------------------------------------------------

    def is_file_stale(self, path: Path | str) -> bool:
        """True only on positive evidence that ``path`` changed.

        A file that is missing or cannot be stat'ed is not reported stale.
        """
        key = _abspath(path)
        try:
            current = _mtime_ns(key)
        except FileNotFoundError:
            logger.warning("Source file %s is missing, cannot check it", key)
            return False
        except OSError as e:
            logger.warning("Cannot stat %s, assuming unchanged: %s", key, e)
            return False

        cached = self.file_mod_times.get(key)
        return cached is None or cached != current

    def is_group_stale(self, group, assets_root: Path | str) -> bool:
        """True if any of ``group.source_files`` is new or modified."""
        for rel in group.source_files:
            if self.is_file_stale(Path(assets_root) / rel):
                logger.debug("Group '%s' is stale: %s changed", group.name, rel)
                return True
        return False

    # ------------------------------------------------------------------
    # Snapshot and persistence
    # ------------------------------------------------------------------

    @classmethod
    def snapshot(cls, assets_root: Path | str, descriptor_path: Path | str,
                 filename: str = DEFAULT_CACHE_FILENAME) -> "StalenessCache":
        """Record the modification time of every file under ``assets_root``.

        Unreferenced files are recorded too. The cache database itself is
        excluded.
        """
        root = _abspath(assets_root)
        excluded = {os.path.join(root, filename + suffix) for suffix in _SIDECAR_SUFFIXES}

        def _on_error(err):
            logger.warning("Cannot scan %s: %s", err.filename, err)

        files = {}
        for dirpath, _dirnames, filenames in os.walk(root, onerror=_on_error):
            for name in filenames:
                path = os.path.join(dirpath, name)
                if path in excluded:
                    continue
                try:
                    files[path] = _mtime_ns(path)
                except OSError as e:
                    logger.warning("Cannot stat %s during snapshot: %s", path, e)

        try:
            descriptor_mtime = _mtime_ns(descriptor_path)
        except OSError as e:
            logger.warning("Cannot stat descriptor %s: %s", descriptor_path, e)
            descriptor_mtime = None

        logger.debug("Snapshot of %s: %d files", root, len(files))
        return cls(descriptor_mtime, files)

    def save(self, assets_root: Path | str, filename: str = DEFAULT_CACHE_FILENAME) -> bool:
        """Overwrite the persisted cache with this snapshot.

        Returns
        -------
        bool
            False if the write failed. The failure is logged as a warning,
            since the next run will rebuild everything.
        """
        db_path = Path(assets_root) / filename
        tmp_path = db_path.with_name(filename + ".tmp")
        conn = None
        try:
            tmp_path.unlink(missing_ok=True)
            conn = sqlite3.connect(str(tmp_path))
            with conn:
                conn.execute("""
                    CREATE TABLE descriptor (
                        id INTEGER PRIMARY KEY CHECK (id = 1),
                        mtime_ns INTEGER
                    )
                """)
                conn.execute("""
                    CREATE TABLE file_mod_times (
                        path TEXT PRIMARY KEY,
                        mtime_ns INTEGER NOT NULL
                    )
                """)
                conn.execute("INSERT INTO descriptor (id, mtime_ns) VALUES (1, ?)",
                             (self.descriptor_mtime,))
                conn.executemany("INSERT INTO file_mod_times (path, mtime_ns) VALUES (?, ?)",
                                 sorted(self.file_mod_times.items()))
            conn.close()
            conn = None
            os.replace(tmp_path, db_path)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Failed to save staleness cache %s, next build will be full: %s",
                           db_path, e)
            return False
        finally:
            if conn is not None:
                conn.close()

        logger.info("Staleness cache saved: %s (%d files)", db_path, len(self))
        return True
