"""Session and attempt state models."""

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from lingua_missions.errors import ErrorKind, PracticeEngineError
from lingua_missions.models.exercise import ExerciseDefinition, ExerciseKind


class SessionState(StrEnum):
    """Session controller lifecycle states."""

    IDLE = "idle"
    REQUESTING_CONTENT = "requesting_content"
    PRESENTING = "presenting"
    SUBMITTED = "submitted"
    COMPLETED = "completed"


class AttemptStatus(StrEnum):
    """Lifecycle of a single exercise instance."""

    LOADING = "loading"
    PRESENTED = "presented"
    ANSWERED = "answered"
    COMPLETED = "completed"


class Verdict(BaseModel):
    """Result of scoring one submission.

    ``xp`` is the award paid if this attempt completes the session; ``passed`` drives
    the pass/fail label of the advance action.
    """

    kind: ExerciseKind
    correct: bool | None = None  # None for kinds without right/wrong
    score: int | None = None
    max_score: int | None = None
    item_correct: list[bool] = Field(default_factory=list)
    xp: int = 0
    passed: bool = False
    detail: dict[str, Any] = Field(default_factory=dict)


class SessionError(BaseModel):
    """A caught failure the caller can render."""

    error_kind: ErrorKind
    message: str

    @classmethod
    def from_exception(cls, exc: PracticeEngineError) -> "SessionError":
        return cls(error_kind=exc.error_kind, message=str(exc))


class AttemptState(BaseModel):
    """State of one exercise instance, discarded when the next one is requested."""

    attempt_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: ExerciseKind
    status: AttemptStatus = AttemptStatus.LOADING
    exercise: ExerciseDefinition | None = None
    response: Any = None
    verdict: Verdict | None = None
    illustration: bytes | None = None
    word_index: int = 0  # vocabulary only
    listening: bool = False  # speaking only
    transcript: str | None = None
    recognition_error: str | None = None


class AttemptView(BaseModel):
    """Learner-facing copy of an attempt, with the exercise as a rendered payload."""

    attempt_id: str
    kind: ExerciseKind
    status: AttemptStatus
    exercise: dict[str, Any] | None = None
    response: Any = None
    verdict: Verdict | None = None
    word_index: int = 0
    listening: bool = False
    transcript: str | None = None
    recognition_error: str | None = None

    @classmethod
    def of(cls, attempt: AttemptState) -> "AttemptView":
        answered = attempt.status in (AttemptStatus.ANSWERED, AttemptStatus.COMPLETED)
        exercise = attempt.exercise.learner_view(answered) if attempt.exercise else None
        return cls(
            **attempt.model_dump(exclude={"exercise", "illustration"}), exercise=exercise
        )


class CompletionEvent(BaseModel):
    """Emitted once when a session reaches Completed."""

    session_id: str
    kind: ExerciseKind
    xp: int
    instances: int
    completed_at: datetime = Field(default_factory=datetime.now)


class SessionSnapshot(BaseModel):
    """Serializable view of a controller, for callers that render it."""

    session_id: str
    state: SessionState
    kind: ExerciseKind | None
    difficulty: int | None
    tense_streak: int
    instances: int
    attempt: AttemptView | None = None
    has_illustration: bool = False
    error: SessionError | None = None
    completion: CompletionEvent | None = None
