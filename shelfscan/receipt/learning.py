"""User-correction learning loop.

Corrections are kept in two places behind a `LearningBackend`:

- a pattern table, store key -> {original item text -> corrected name}, where
  the value `HIDE_SENTINEL` means "always hide this item";
- a bounded feedback log of `LearningRecord`s, oldest evicted first.

Persistence lives in the backend; this module only holds the in-memory
implementation so the pipeline can run without touching the filesystem.
"""

from __future__ import annotations

import threading
from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from shelfscan.domain.receipt import (
    ClassifiedItem,
    CorrectionType,
    LearningRecord,
    LearningStats,
    UserFeedback,
)

HIDE_SENTINEL = "__HIDDEN__"
DEFAULT_MAX_RECORDS = 500
RECENT_WINDOW = timedelta(days=7)
TOP_STORES_LIMIT = 5
MISCLASSIFIED_LIMIT = 10
LOW_CONFIDENCE_THRESHOLD = 0.7
PATTERN_SUGGESTION_MIN = 10
EXPORT_VERSION = "1.0"


def store_key(store_name: str) -> str:
    return store_name.strip().upper()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LearningBackend(Protocol):
    """Storage for the pattern table and feedback log.

    `upsert_pattern` must be atomic per store key and `append_record` must
    keep at most `max_records` entries.
    """

    def get_patterns(self, store_key: str) -> dict[str, str]: ...

    def all_patterns(self) -> dict[str, dict[str, str]]: ...

    def upsert_pattern(self, store_key: str, original_text: str, value: str) -> None: ...

    def append_record(self, record: LearningRecord, max_records: int) -> None: ...

    def records(self) -> list[LearningRecord]: ...

    def clear(self) -> None: ...


class InMemoryLearningBackend:
    """Process-local backend guarded by a single lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._patterns: dict[str, dict[str, str]] = {}
        self._records: list[LearningRecord] = []

    def get_patterns(self, store_key: str) -> dict[str, str]:
        with self._lock:
            return dict(self._patterns.get(store_key, {}))

    def all_patterns(self) -> dict[str, dict[str, str]]:
        with self._lock:
            return {key: dict(value) for key, value in self._patterns.items()}

    def upsert_pattern(self, store_key: str, original_text: str, value: str) -> None:
        with self._lock:
            self._patterns.setdefault(store_key, {})[original_text] = value

    def append_record(self, record: LearningRecord, max_records: int) -> None:
        with self._lock:
            self._records.append(record)
            if len(self._records) > max_records:
                del self._records[: len(self._records) - max_records]

    def records(self) -> list[LearningRecord]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._patterns.clear()
            self._records.clear()


@dataclass(frozen=True)
class LearningSuggestion:
    kind: str
    message: str
    items: tuple[str, ...] = ()


def apply_learned_overrides(
    items: Iterable[ClassifiedItem],
    patterns: Mapping[str, str],
) -> tuple[ClassifiedItem, ...]:
    """Apply a store's pattern table to classified items.

    Only the exact raw name is looked up. A hide sentinel forces
    `should_hide`; a text value replaces the enhanced name and keeps the item
    visible.
    """
    result: list[ClassifiedItem] = []
    for item in items:
        learned = patterns.get(item.raw_name)

        if learned is None:
            result.append(item)
        elif learned == HIDE_SENTINEL:
            result.append(item.with_override(should_hide=True, was_learned=True))
        else:
            result.append(
                item.with_override(
                    enhanced_name=learned,
                    should_hide=False,
                    was_learned=True,
                    applied_corrections=(*item.applied_corrections, f"Learned: {learned}"),
                )
            )
    return tuple(result)


class LearningStore:
    """Records user corrections and answers pattern lookups."""

    def __init__(
        self,
        backend: LearningBackend | None = None,
        max_records: int = DEFAULT_MAX_RECORDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_records < 1:
            raise ValueError("max_records must be positive")
        self.backend: LearningBackend = backend if backend is not None else InMemoryLearningBackend()
        self.max_records = max_records
        self._clock = clock

    def _record(
        self,
        original_text: str,
        store_name: str,
        correction_type: CorrectionType,
        *,
        user_feedback: UserFeedback | None = None,
        previous_name: str | None = None,
        corrected_name: str | None = None,
    ) -> LearningRecord:
        record = LearningRecord(
            original_text=original_text,
            store_name=store_name,
            correction_type=correction_type,
            timestamp=self._clock(),
            user_feedback=user_feedback,
            previous_name=previous_name,
            corrected_name=corrected_name,
        )
        self.backend.append_record(record, self.max_records)
        return record

    def save_correction(
        self,
        original_text: str,
        corrected_name: str,
        store_name: str,
        *,
        previous_name: str | None = None,
        correction_type: CorrectionType = "user_edit",
    ) -> LearningRecord:
        """Remember that original_text at store_name should read corrected_name."""
        original_text = original_text.strip()
        corrected_name = corrected_name.strip()
        if not original_text:
            raise ValueError("original_text must not be empty")
        if not corrected_name:
            raise ValueError("corrected_name must not be empty")
        if corrected_name == HIDE_SENTINEL:
            return self.hide_item(original_text, store_name, previous_name=previous_name)

        self.backend.upsert_pattern(store_key(store_name), original_text, corrected_name)
        return self._record(
            original_text,
            store_name,
            correction_type,
            previous_name=previous_name,
            corrected_name=corrected_name,
        )

    def hide_item(self, original_text: str, store_name: str, *, previous_name: str | None = None) -> LearningRecord:
        """Always hide original_text on future receipts from store_name."""
        original_text = original_text.strip()
        if not original_text:
            raise ValueError("original_text must not be empty")
        self.backend.upsert_pattern(store_key(store_name), original_text, HIDE_SENTINEL)
        return self._record(
            original_text,
            store_name,
            "item_hidden",
            previous_name=previous_name,
            corrected_name=HIDE_SENTINEL,
        )

    def record_feedback(
        self,
        original_text: str,
        store_name: str,
        feedback: UserFeedback,
        *,
        correction_type: CorrectionType = "ai_correction",
    ) -> LearningRecord:
        """Log whether an automatic decision was right; the pattern table is untouched."""
        if feedback not in ("correct", "incorrect"):
            raise ValueError(f"Unknown feedback value: {feedback!r}")
        original_text = original_text.strip()
        if not original_text:
            raise ValueError("original_text must not be empty")
        return self._record(original_text, store_name, correction_type, user_feedback=feedback)

    def lookup(self, store_name: str, original_text: str) -> str | None:
        return self.backend.get_patterns(store_key(store_name)).get(original_text.strip())

    def patterns_for(self, store_name: str) -> dict[str, str]:
        return self.backend.get_patterns(store_key(store_name))

    def apply(self, items: Iterable[ClassifiedItem], store_name: str) -> tuple[ClassifiedItem, ...]:
        return apply_learned_overrides(items, self.patterns_for(store_name))

    def stats(self) -> LearningStats:
        records = self.backend.records()
        patterns = self.backend.all_patterns()

        feedback = [record.user_feedback for record in records if record.user_feedback is not None]
        correct = sum(1 for value in feedback if value == "correct")
        cutoff = self._clock() - RECENT_WINDOW
        misclassified = Counter(record.original_text for record in records if record.user_feedback == "incorrect")

        return LearningStats(
            total_feedback=len(records),
            accuracy=correct / len(feedback) if feedback else 0.0,
            stores_learned=len(patterns),
            patterns_learned=sum(len(table) for table in patterns.values()),
            hidden_items_learned=sum(
                1 for table in patterns.values() for value in table.values() if value == HIDE_SENTINEL
            ),
            recent_corrections=sum(1 for record in records if record.timestamp > cutoff),
            top_stores=tuple(Counter(record.store_name for record in records).most_common(TOP_STORES_LIMIT)),
            corrections_by_type=dict(Counter(record.correction_type for record in records)),
            common_misclassifications=tuple(misclassified.most_common(MISCLASSIFIED_LIMIT)),
        )

    def export(self) -> dict[str, Any]:
        """JSON-ready snapshot of the log, pattern table and stats."""
        return {
            "metadata": {"exportDate": self._clock().isoformat(), "version": EXPORT_VERSION},
            "stats": stats_to_dict(self.stats()),
            "learningData": [record.to_dict() for record in self.backend.records()],
            "patterns": self.backend.all_patterns(),
        }

    def reset(self) -> None:
        self.backend.clear()

    def suggestions(self, items: Sequence[ClassifiedItem]) -> list[LearningSuggestion]:
        result: list[LearningSuggestion] = []
        low_confidence = [item for item in items if 0 < item.confidence < LOW_CONFIDENCE_THRESHOLD]
        if low_confidence:
            result.append(
                LearningSuggestion(
                    kind="review_low_confidence",
                    message=f"{len(low_confidence)} items have low confidence and might need review",
                    items=tuple(item.raw_name for item in low_confidence),
                )
            )

        pattern_count = sum(len(table) for table in self.backend.all_patterns().values())
        if pattern_count > PATTERN_SUGGESTION_MIN:
            result.append(
                LearningSuggestion(
                    kind="pattern_learning",
                    message=f"System has learned {pattern_count} correction patterns",
                )
            )
        return result


def stats_to_dict(stats: LearningStats) -> dict[str, Any]:
    return {
        "totalFeedback": stats.total_feedback,
        "accuracy": stats.accuracy,
        "storesLearned": stats.stores_learned,
        "patternsLearned": stats.patterns_learned,
        "hiddenItemsLearned": stats.hidden_items_learned,
        "recentCorrections": stats.recent_corrections,
        "topStores": [{"store": store, "corrections": count} for store, count in stats.top_stores],
        "correctionsByType": dict(stats.corrections_by_type),
        "commonMisclassifications": [{"text": text, "count": count} for text, count in stats.common_misclassifications],
    }
