"""JSON file persistence for the learning loop.

Directory structure:
    learning/
    ├── patterns/
    │   └── <store-slug>-<hash>.json  - {"store": STORE_KEY, "patterns": {original: corrected}}
    └── feedback.json                 - bounded list of LearningRecord dicts

Each store key has its own file and lock, so corrections for different
stores never contend and concurrent corrections for the same store are
serialized. Writes go to a temp file in the same directory followed by
os.replace, so readers never see a half-written file.
"""

from __future__ import annotations

import hashlib
import json
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any

from shelfscan.domain.receipt import LearningRecord
from shelfscan.runtime.logging import get_logger
from shelfscan.runtime.paths import get_paths

logger = get_logger(__name__)

FEEDBACK_FILENAME = "feedback.json"
PATTERNS_DIRNAME = "patterns"


def _store_filename(store_key: str) -> str:
    """Filesystem-safe, collision-free name for a store key."""
    slug = re.sub(r"[^a-z0-9]+", "_", store_key.lower()).strip("_")[:40] or "store"
    digest = hashlib.sha1(store_key.encode("utf-8")).hexdigest()[:8]
    return f"{slug}-{digest}.json"


def _write_json_atomic(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable learning file %s: %s", path, e)
        return default


class JsonFileLearningBackend:
    """LearningBackend storing one JSON file per store plus a feedback log."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = root if root is not None else get_paths().learning
        self._locks_guard = threading.Lock()
        self._store_locks: dict[str, threading.Lock] = {}
        self._feedback_lock = threading.Lock()

    @property
    def patterns_dir(self) -> Path:
        return self.root / PATTERNS_DIRNAME

    @property
    def feedback_path(self) -> Path:
        return self.root / FEEDBACK_FILENAME

    def _lock_for(self, store_key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._store_locks.get(store_key)
            if lock is None:
                lock = threading.Lock()
                self._store_locks[store_key] = lock
            return lock

    def _pattern_path(self, store_key: str) -> Path:
        return self.patterns_dir / _store_filename(store_key)

    def _read_patterns_file(self, path: Path) -> tuple[str | None, dict[str, str]]:
        data = _read_json(path, {})
        if not isinstance(data, dict):
            return None, {}
        patterns = data.get("patterns")
        if not isinstance(patterns, dict):
            patterns = {}
        store = data.get("store")
        return (str(store) if store is not None else None), {str(k): str(v) for k, v in patterns.items()}

    def get_patterns(self, store_key: str) -> dict[str, str]:
        with self._lock_for(store_key):
            _store, patterns = self._read_patterns_file(self._pattern_path(store_key))
            return patterns

    def all_patterns(self) -> dict[str, dict[str, str]]:
        result: dict[str, dict[str, str]] = {}
        if not self.patterns_dir.exists():
            return result
        for path in sorted(self.patterns_dir.glob("*.json")):
            store, patterns = self._read_patterns_file(path)
            if store is not None and patterns:
                result[store] = patterns
        return result

    def upsert_pattern(self, store_key: str, original_text: str, value: str) -> None:
        path = self._pattern_path(store_key)
        with self._lock_for(store_key):
            _store, patterns = self._read_patterns_file(path)
            patterns[original_text] = value
            _write_json_atomic(path, {"store": store_key, "patterns": patterns})
        logger.debug("Learned pattern for %s: %r -> %r", store_key, original_text, value)

    def _read_records(self) -> list[dict[str, Any]]:
        data = _read_json(self.feedback_path, [])
        return [entry for entry in data if isinstance(entry, dict)] if isinstance(data, list) else []

    def append_record(self, record: LearningRecord, max_records: int) -> None:
        with self._feedback_lock:
            entries = self._read_records()
            entries.append(record.to_dict())
            if len(entries) > max_records:
                entries = entries[len(entries) - max_records :]
            _write_json_atomic(self.feedback_path, entries)

    def records(self) -> list[LearningRecord]:
        with self._feedback_lock:
            entries = self._read_records()
        records: list[LearningRecord] = []
        for entry in entries:
            try:
                records.append(LearningRecord.from_dict(entry))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping malformed feedback entry: %s", e)
        return records

    def clear(self) -> None:
        with self._feedback_lock:
            self.feedback_path.unlink(missing_ok=True)
        if self.patterns_dir.exists():
            for path in self.patterns_dir.glob("*.json"):
                path.unlink(missing_ok=True)
        logger.info("Cleared learning data under %s", self.root)
