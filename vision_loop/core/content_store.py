# vision_loop/core/content_store.py

import logging
import os
import shutil
import tempfile
import threading
from dataclasses import replace
from pathlib import Path
from typing import Iterable, List, Optional

from kivy.event import EventDispatcher

from vision_loop.constants import MEDIA_FILES_DIR, REFERENCE_TABLE_FILE
from vision_loop.core.exceptions import CopyFailedError, DeleteFailedError
from vision_loop.core.orphan_collector import OrphanCollector
from vision_loop.core.reference_table import ManagedFile, ReferenceTable
from vision_loop.utils.file_utils import (
    generate_file_hash,
    get_file_extension,
    get_user_data_dir_for_app,
    is_within_directory,
    normalize_path,
)
from vision_loop.utils.formatting import format_size_mb

log = logging.getLogger(__name__)


class ContentStore(EventDispatcher):
    """
    Content-addressed storage for playlist media.

    Files are copied into a flat managed directory as `{md5}{ext}`, so two
    byte-identical picks share one copy. Each managed file carries a reference
    count; when the last playlist entry using it is removed the file is deleted.
    All read-modify-write sequences on the reference table run under `lock`.
    Hashing and copying happen outside it.
    """
    __events__ = ('on_file_added', 'on_file_released', 'on_sweep_finished')

    def __init__(self, user_data_dir=None, managed_dir=None, **kwargs):
        super().__init__(**kwargs)
        user_data_dir = Path(user_data_dir or get_user_data_dir_for_app())
        self.managed_dir = Path(normalize_path(managed_dir or user_data_dir / MEDIA_FILES_DIR))
        self.table = ReferenceTable(user_data_dir / REFERENCE_TABLE_FILE)
        self.lock = threading.RLock()
        self.orphan_collector = OrphanCollector(self)
        self._in_flight = set()
        self._initialized = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def initialize(self, sweep: bool = True, background: bool = True):
        """Creates the managed directory, loads the table and reconciles orphans."""
        with self.lock:
            if self._initialized:
                return
            self.managed_dir.mkdir(parents=True, exist_ok=True)
            self.table.load()
            self._initialized = True
        log.info(f"ContentStore initialized. Managed files at: {self.managed_dir}")

        if not sweep:
            return
        if background:
            self.orphan_collector.start_background_sweep()
        else:
            self.sweep()

    def _ensure_initialized(self):
        if not self._initialized:
            self.initialize()

    def persist(self):
        """Saves the table. A failed write is logged; memory stays authoritative until the next save."""
        try:
            self.table.save()
        except OSError as e:
            log.error(f"Failed to persist reference table to {self.table.table_path}: {e}")

    # -------------------------------------------------------------------------
    # Adding files
    # -------------------------------------------------------------------------
    def add_file(self, original_path) -> str:
        """
        Stores a copy of `original_path` and returns its managed path.

        The caller keeps ownership of the original. Raises SourceNotFoundError
        if it cannot be read and CopyFailedError if the copy fails; in both
        cases the table is left untouched.
        """
        self._ensure_initialized()
        original_path = os.fspath(original_path)
        content_hash = generate_file_hash(original_path)
        target_path = normalize_path(self.managed_dir / f"{content_hash}{get_file_extension(original_path)}")

        with self.lock:
            managed_path = self._reference_existing(content_hash, target_path)
            if managed_path:
                return managed_path
            self._in_flight.add(target_path)

        try:
            self._copy_into_store(original_path, target_path)
            with self.lock:
                # Another add of the same content may have registered first.
                managed_path = self._reference_existing(content_hash, target_path, copied=True)
        finally:
            with self.lock:
                self._in_flight.discard(target_path)
        if managed_path is None:
            raise CopyFailedError(f"Copied file vanished from managed storage: {target_path}")
        return managed_path

    def _reference_existing(self, content_hash: str, target_path: str, copied: bool = False) -> Optional[str]:
        """Takes a reference on an already-present copy. Caller holds `lock`."""
        record = self.table.get_by_hash(content_hash)
        if record is not None:
            if os.path.isfile(record.path):
                count = self.table.increment(content_hash)
                self.persist()
                log.info(f"ADDED: reused {os.path.basename(record.path)} (refs={count})")
                self.dispatch('on_file_added', record.path, count)
                return record.path
            log.warning(f"Tracked file for hash {content_hash} is missing, dropping stale record: {record.path}")
            self.table.remove(record)

        if os.path.isfile(target_path):
            self.table.insert(content_hash, target_path)
            count = self.table.increment(content_hash)
            self.persist()
            if copied:
                log.info(f"ADDED: copied new file {os.path.basename(target_path)}")
            else:
                log.info(f"ADDED: adopted untracked file {os.path.basename(target_path)}")
            self.dispatch('on_file_added', target_path, count)
            return target_path
        return None

    def _copy_into_store(self, source: str, target_path: str):
        # Copy under a temporary name and rename, so the target name only ever
        # holds complete content.
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self.managed_dir, prefix=f".{os.path.basename(target_path)}.", suffix=".part"
            )
            os.close(fd)
        except OSError as e:
            raise CopyFailedError(f"Could not create a file in {self.managed_dir}: {e}") from e

        tmp_path = normalize_path(tmp_path)
        with self.lock:
            self._in_flight.add(tmp_path)
        try:
            shutil.copyfile(source, tmp_path)
            os.replace(tmp_path, target_path)
        except OSError as e:
            Path(tmp_path).unlink(missing_ok=True)
            raise CopyFailedError(f"Failed to copy {source} into managed storage: {e}") from e
        finally:
            with self.lock:
                self._in_flight.discard(tmp_path)

    # -------------------------------------------------------------------------
    # Releasing files
    # -------------------------------------------------------------------------
    def decrement_ref_count(self, path) -> int:
        """
        Drops one reference to a managed file and deletes it when none remain.

        Releasing an untracked path or releasing past zero is not an error:
        the file, if still inside the managed directory, is simply deleted.
        Returns the remaining reference count.
        """
        self._ensure_initialized()
        path = normalize_path(path)
        with self.lock:
            if path not in self.table:
                log.debug(f"Release of untracked path, deleting directly: {path}")
                deleted = self.delete_managed_file(path)
                remaining = 0
            else:
                remaining = self.table.decrement(path)
                deleted = False
                if remaining == 0:
                    deleted = self.delete_managed_file(path)
                    log.info(f"RELEASED: {os.path.basename(path)} has no references left")
                else:
                    log.debug(f"Released one reference to {os.path.basename(path)} (refs={remaining})")
                self.persist()
        self.dispatch('on_file_released', path, deleted)
        return remaining

    def decrement_ref_counts(self, paths: Iterable) -> List[int]:
        """Releases each path independently; one failure does not stop the rest."""
        remaining = []
        for path in paths:
            try:
                remaining.append(self.decrement_ref_count(path))
            except Exception:
                log.exception(f"FAILED: could not release {path}")
                remaining.append(0)
        return remaining

    def delete_managed_file(self, path) -> bool:
        """
        Deletes a file inside the managed directory. Returns True if a file was
        removed. Paths outside the directory and in-flight copies are left alone.
        Caller holds `lock`.
        """
        path = normalize_path(path)
        if not is_within_directory(path, self.managed_dir):
            log.warning(f"Refusing to delete file outside managed storage: {path}")
            return False
        if path in self._in_flight:
            log.debug(f"Skipping delete of in-flight file: {path}")
            return False
        if not os.path.lexists(path):
            return False
        try:
            os.remove(path)
            return True
        except OSError as e:
            error = DeleteFailedError(f"Failed to delete managed file {path}: {e}")
            log.error(f"FAILED: {error}")
            return False

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------
    def sweep(self):
        """Runs the orphan collector in the calling thread and returns its report."""
        self._ensure_initialized()
        report = self.orphan_collector.sweep()
        self.dispatch('on_sweep_finished', report)
        return report

    def is_in_flight(self, path) -> bool:
        return normalize_path(path) in self._in_flight

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------
    def ref_count(self, path) -> int:
        with self.lock:
            return self.table.ref_count(path)

    def path_for_hash(self, content_hash: str) -> Optional[str]:
        with self.lock:
            record = self.table.get_by_hash(content_hash)
            return record.path if record else None

    def managed_files(self) -> List[ManagedFile]:
        with self.lock:
            return [replace(record) for record in self.table.records()]

    def is_managed_path(self, path) -> bool:
        return is_within_directory(path, self.managed_dir)

    def get_storage_stats(self) -> dict:
        """Counts files and bytes in the managed directory alongside table sizes."""
        self._ensure_initialized()
        total_files = 0
        total_size = 0
        if self.managed_dir.is_dir():
            for entry in os.scandir(self.managed_dir):
                if entry.is_file():
                    total_files += 1
                    total_size += entry.stat().st_size
        with self.lock:
            referenced = len(self.table.paths())
            mappings = len(self.table)
        return {
            'total_files': total_files,
            'total_size': total_size,
            'total_size_mb': format_size_mb(total_size),
            'referenced_files': referenced,
            'hash_mappings': mappings,
        }

    def on_file_added(self, path, ref_count):
        pass

    def on_file_released(self, path, deleted):
        pass

    def on_sweep_finished(self, report):
        log.debug(f"ContentStore: on_sweep_finished event fired: {report}")
        pass
