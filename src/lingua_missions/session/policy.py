"""Per-kind completion policy applied when the learner advances."""

from lingua_missions.assessment.scorer import TENSE_STREAK_TARGET
from lingua_missions.models.exercise import ExerciseKind
from lingua_missions.models.session import Verdict


def should_complete(kind: ExerciseKind, verdict: Verdict, tense_streak: int) -> bool:
    """Whether advancing from a scored attempt ends the session.

    Args:
        kind: Exercise kind of the session.
        verdict: Verdict of the attempt being advanced from.
        tense_streak: Consecutive correct tense answers, already updated for this attempt.
    """
    match kind:
        case ExerciseKind.TENSE_CLOZE:
            return tense_streak >= TENSE_STREAK_TARGET
        case ExerciseKind.LISTENING_COMPREHENSION:
            return bool(verdict.correct)
        case ExerciseKind.VOCABULARY:
            return verdict.passed
        case ExerciseKind.NARRATIVE_STEP:
            # Ended by the learner via finish()
            return False
        case _:
            return True
