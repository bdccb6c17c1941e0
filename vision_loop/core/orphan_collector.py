# vision_loop/core/orphan_collector.py

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import List

from kivy.clock import Clock

from vision_loop.utils.file_utils import normalize_path

log = logging.getLogger(__name__)


@dataclass
class SweepReport:
    orphans_deleted: List[str] = field(default_factory=list)
    orphans_failed: List[str] = field(default_factory=list)
    stale_hashes: List[str] = field(default_factory=list)

    @property
    def table_changed(self) -> bool:
        return bool(self.stale_hashes)

    @property
    def changed(self) -> bool:
        return bool(self.orphans_deleted or self.stale_hashes)


class OrphanCollector:
    """
    Reconciles the managed directory with the reference table.

    Files nobody references are deleted, and records whose file has vanished
    are dropped. A file the table still references is never touched, so the
    sweep is safe to run at any time and is a no-op on a consistent store.
    """

    def __init__(self, store):
        self.store = store
        self.is_sweeping = False
        self._sweep_thread = None

    def sweep(self) -> SweepReport:
        store = self.store
        report = SweepReport()
        with store.lock:
            if not store.managed_dir.is_dir():
                log.warning(f"Managed directory does not exist, nothing to sweep: {store.managed_dir}")
                return report

            tracked = store.table.paths()
            for entry in os.scandir(store.managed_dir):
                if not entry.is_file():
                    continue
                path = normalize_path(entry.path)
                if path in tracked or store.is_in_flight(path):
                    continue
                if store.delete_managed_file(path):
                    report.orphans_deleted.append(path)
                    log.info(f"Deleted orphaned file: {entry.name}")
                else:
                    report.orphans_failed.append(path)

            for record in store.table.records():
                if not os.path.isfile(record.path):
                    store.table.remove(record)
                    report.stale_hashes.append(record.content_hash)
                    log.warning(f"Dropped stale record {record.content_hash} -> {record.path}")

            if report.table_changed:
                store.persist()

        log.info(
            f"Orphan sweep finished: {len(report.orphans_deleted)} files deleted, "
            f"{len(report.stale_hashes)} stale records dropped."
        )
        return report

    def start_background_sweep(self) -> bool:
        if self.is_sweeping:
            log.warning("Sweep already in progress. Ignoring request.")
            return False
        self.is_sweeping = True
        self._sweep_thread = threading.Thread(target=self._run_sweep, name="orphan-sweep")
        self._sweep_thread.daemon = True
        self._sweep_thread.start()
        return True

    def _run_sweep(self):
        try:
            report = self.sweep()
            Clock.schedule_once(lambda dt: self.store.dispatch('on_sweep_finished', report))
        except Exception:
            log.exception("Orphan sweep failed with an unexpected error.")
        finally:
            self.is_sweeping = False

    def join(self, timeout=None):
        """Waits for a running background sweep. Used at shutdown and in tests."""
        if self._sweep_thread is not None:
            self._sweep_thread.join(timeout)
