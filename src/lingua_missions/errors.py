"""Error taxonomy shared by the session engine and its adapters."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Machine-readable error categories surfaced to callers."""

    CONTENT_PROVIDER_FAILURE = "content_provider_failure"
    MALFORMED_EXERCISE = "malformed_exercise"
    ILLUSTRATION_FAILURE = "illustration_failure"
    RECOGNITION_FAILURE = "recognition_failure"
    INVALID_DIFFICULTY = "invalid_difficulty"
    INVALID_TRANSITION = "invalid_transition"
    INVALID_RESPONSE = "invalid_response"


class PracticeEngineError(Exception):
    """Base class for all engine errors."""

    error_kind: ErrorKind


class ContentProviderFailure(PracticeEngineError):
    """Network or parse failure while requesting exercise content."""

    error_kind = ErrorKind.CONTENT_PROVIDER_FAILURE


class MalformedExercise(PracticeEngineError):
    """Provider payload parsed but violates the kind's required-field contract."""

    error_kind = ErrorKind.MALFORMED_EXERCISE


class IllustrationFailure(PracticeEngineError):
    """Image generation failed. Never fatal."""

    error_kind = ErrorKind.ILLUSTRATION_FAILURE


class RecognitionFailure(PracticeEngineError):
    """Speech recognition unavailable, denied or failed."""

    error_kind = ErrorKind.RECOGNITION_FAILURE


class InvalidDifficulty(PracticeEngineError, ValueError):
    """Difficulty level outside 1-10."""

    error_kind = ErrorKind.INVALID_DIFFICULTY


class InvalidTransition(PracticeEngineError):
    """Operation not allowed in the current session state."""

    error_kind = ErrorKind.INVALID_TRANSITION


class InvalidResponse(PracticeEngineError, ValueError):
    """Learner response refers to a blank, question or option that does not exist."""

    error_kind = ErrorKind.INVALID_RESPONSE
