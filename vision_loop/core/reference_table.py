# vision_loop/core/reference_table.py

"""
Persisted bookkeeping for managed media files.

Each managed file is one `ManagedFile` record holding its content hash, its
path in the managed directory and its reference count. Records are indexed
both by hash and by path, so a hash never maps to two paths and a path never
serves two hashes. The whole table is written as a single JSON document with
an atomic replace.

The table itself is not thread-safe; `ContentStore` serialises access.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from vision_loop.constants import (
    LEGACY_KEY_HASH_TO_PATH,
    LEGACY_KEY_REF_COUNT,
    REFERENCE_TABLE_VERSION,
)
from vision_loop.utils.file_utils import normalize_path, read_json, write_json_atomic

log = logging.getLogger(__name__)


@dataclass
class ManagedFile:
    content_hash: str
    path: str
    ref_count: int = 0

    def to_dict(self) -> dict:
        return {"hash": self.content_hash, "path": self.path, "ref_count": self.ref_count}


def _decode_legacy_map(raw) -> dict:
    # The old format stored each map as JSON text inside the key-value store.
    if isinstance(raw, str):
        raw = json.loads(raw) if raw else {}
    if not isinstance(raw, dict):
        raise ValueError(f"Expected a JSON object, got {type(raw).__name__}")
    return raw


class ReferenceTable:
    def __init__(self, table_path):
        self.table_path = Path(table_path)
        self._by_hash: Dict[str, ManagedFile] = {}
        self._by_path: Dict[str, ManagedFile] = {}

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------
    def load(self):
        """
        Loads the table from disk. A missing file is an empty table; so is an
        unreadable or malformed one, which is logged and left for the next save
        to overwrite.
        """
        self.clear()
        try:
            document = read_json(self.table_path)
        except (OSError, ValueError) as e:
            log.error(f"Reference table at {self.table_path} is unreadable, starting empty: {e}")
            return

        if document is None:
            log.info(f"No reference table at {self.table_path}, starting empty.")
            return

        try:
            if isinstance(document, dict) and "files" in document:
                self._load_records(document["files"])
            elif isinstance(document, dict) and (
                LEGACY_KEY_HASH_TO_PATH in document or LEGACY_KEY_REF_COUNT in document
            ):
                self._load_legacy(document)
                log.info("Converted legacy two-map reference table to file records.")
            else:
                raise ValueError("Unrecognised reference table layout")
        except (KeyError, TypeError, ValueError) as e:
            log.error(f"Reference table at {self.table_path} is malformed, starting empty: {e}")
            self.clear()
            return

        log.info(f"Loaded {len(self)} managed file records from {self.table_path}")

    def _load_records(self, records):
        for record in records:
            ref_count = int(record["ref_count"])
            if ref_count <= 0:
                continue
            self.insert(str(record["hash"]), str(record["path"]), ref_count)

    def _load_legacy(self, document):
        hash_to_path = _decode_legacy_map(document.get(LEGACY_KEY_HASH_TO_PATH))
        path_to_count = _decode_legacy_map(document.get(LEGACY_KEY_REF_COUNT))

        path_to_hash = {normalize_path(path): content_hash for content_hash, path in hash_to_path.items()}
        for raw_path, count in path_to_count.items():
            count = int(count)
            if count <= 0:
                continue
            path = normalize_path(raw_path)
            content_hash = path_to_hash.get(path)
            if content_hash is None:
                # Managed files are named {hash}{ext}
                content_hash = os.path.splitext(os.path.basename(path))[0]
                log.warning(f"Legacy count for {path} had no hash mapping, using '{content_hash}' from its name.")
            if content_hash in self._by_hash:
                log.warning(f"Skipping legacy entry {path}: hash {content_hash} is already mapped.")
                continue
            self.insert(content_hash, path, count)

    def to_document(self) -> dict:
        return {
            "version": REFERENCE_TABLE_VERSION,
            "files": [record.to_dict() for record in self.records()],
        }

    def save(self):
        """Writes the whole table in one atomic replace."""
        write_json_atomic(self.table_path, self.to_document())
        log.debug(f"Saved reference table ({len(self)} records).")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------
    def __len__(self):
        return len(self._by_hash)

    def __contains__(self, path) -> bool:
        return normalize_path(path) in self._by_path

    def get_by_hash(self, content_hash: str) -> Optional[ManagedFile]:
        return self._by_hash.get(content_hash)

    def get_by_path(self, path) -> Optional[ManagedFile]:
        return self._by_path.get(normalize_path(path))

    def ref_count(self, path) -> int:
        record = self.get_by_path(path)
        return record.ref_count if record else 0

    def records(self) -> List[ManagedFile]:
        return list(self._by_hash.values())

    def paths(self) -> set:
        return set(self._by_path)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------
    def clear(self):
        self._by_hash = {}
        self._by_path = {}

    def insert(self, content_hash: str, path, ref_count: int = 0) -> ManagedFile:
        path = normalize_path(path)
        if content_hash in self._by_hash:
            raise ValueError(f"Hash {content_hash} is already tracked at {self._by_hash[content_hash].path}")
        existing = self._by_path.get(path)
        if existing is not None:
            raise ValueError(f"Path {path} already serves hash {existing.content_hash}")
        if ref_count < 0:
            raise ValueError("Reference count cannot be negative")

        record = ManagedFile(content_hash=content_hash, path=path, ref_count=ref_count)
        self._by_hash[content_hash] = record
        self._by_path[path] = record
        return record

    def increment(self, content_hash: str) -> int:
        record = self._by_hash[content_hash]
        record.ref_count += 1
        return record.ref_count

    def decrement(self, path) -> int:
        """
        Drops one reference. The record is removed once no references remain.
        Returns the remaining count (0 for untracked paths).
        """
        record = self.get_by_path(path)
        if record is None:
            return 0
        record.ref_count = max(0, record.ref_count - 1)
        if record.ref_count == 0:
            self.remove(record)
        return record.ref_count

    def remove(self, record: ManagedFile):
        self._by_hash.pop(record.content_hash, None)
        self._by_path.pop(record.path, None)
