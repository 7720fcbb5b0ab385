"""Learning feedback workflow: corrections, hides and accuracy ratings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from shelfscan.domain.receipt import LearningRecord, UserFeedback
from shelfscan.receipt.learning import LearningStore
from shelfscan.runtime.logging import get_logger

logger = get_logger(__name__)

FeedbackAction = Literal["correct", "hide", "rate"]
FeedbackStatus = Literal["saved", "invalid_request"]


@dataclass(frozen=True)
class LearningFeedbackRequest:
    """Inputs for recording one piece of user feedback."""

    action: FeedbackAction
    store_name: str
    original_text: str
    corrected_name: str | None = None
    previous_name: str | None = None
    feedback: UserFeedback | None = None


@dataclass(frozen=True)
class LearningFeedbackResult:
    """Outcome from the feedback workflow."""

    status: FeedbackStatus
    record: LearningRecord | None = None
    error: str | None = None


def run_learning_feedback(request: LearningFeedbackRequest, store: LearningStore) -> LearningFeedbackResult:
    """Apply one feedback action to the learning store."""
    if not request.original_text.strip():
        return LearningFeedbackResult(status="invalid_request", error="original_text is required")

    try:
        if request.action == "correct":
            if not request.corrected_name:
                return LearningFeedbackResult(status="invalid_request", error="corrected_name is required")
            record = store.save_correction(
                request.original_text,
                request.corrected_name,
                request.store_name,
                previous_name=request.previous_name,
            )
        elif request.action == "hide":
            record = store.hide_item(request.original_text, request.store_name, previous_name=request.previous_name)
        elif request.action == "rate":
            if request.feedback is None:
                return LearningFeedbackResult(status="invalid_request", error="feedback is required")
            record = store.record_feedback(request.original_text, request.store_name, request.feedback)
        else:
            return LearningFeedbackResult(status="invalid_request", error=f"Unknown action: {request.action}")
    except ValueError as exc:
        return LearningFeedbackResult(status="invalid_request", error=str(exc))

    logger.info("Recorded %s feedback for %r at %s", request.action, request.original_text, request.store_name)
    return LearningFeedbackResult(status="saved", record=record)


def build_default_learning_store() -> LearningStore:
    """Learning store backed by JSON files under the shelfscan data root."""
    from shelfscan.runtime.learning_storage import JsonFileLearningBackend
    from shelfscan.runtime.settings import PipelineSettings

    settings = PipelineSettings.from_env()
    return LearningStore(JsonFileLearningBackend(), max_records=settings.learning_max_records)
