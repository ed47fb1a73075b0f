"""Per-kind exercise evaluators.

Each evaluator is pure: (exercise definition, learner response) -> Verdict.
Completion (whether the session ends) is decided by the session policy, not here.
"""

from collections.abc import Callable, Mapping
from typing import Any

import structlog

from lingua_missions.assessment.speech_match import match
from lingua_missions.errors import InvalidResponse
from lingua_missions.models.exercise import (
    ExerciseDefinition,
    ExerciseKind,
    GrammarCheck,
    ListeningComprehension,
    MultiCloze,
    NarrativeStep,
    ReadingComprehension,
    SpeakingChallenge,
    TenseCloze,
    Vocabulary,
)
from lingua_missions.models.session import Verdict

logger = structlog.get_logger()

VOCABULARY_SET_XP = 50
GRAMMAR_SUBMISSION_XP = 10
TENSE_STREAK_XP = 30
TENSE_STREAK_TARGET = 3
CLOZE_BLANK_XP = 10
READING_QUESTION_XP = 15
LISTENING_XP = 25
SPEAKING_XP = 30
SPEAKING_PASS_THRESHOLD = 60


def score_vocabulary(exercise: Vocabulary, words_viewed: int) -> Verdict:
    """Complete once the learner has advanced past the last word."""
    total = len(exercise.words)
    finished = words_viewed >= total
    return Verdict(
        kind=exercise.kind,
        score=min(words_viewed, total),
        max_score=total,
        xp=VOCABULARY_SET_XP if finished else 0,
        passed=finished,
    )


def score_grammar_check(exercise: GrammarCheck, response: Any = None) -> Verdict:
    """Pass the provider's 1-10 score through; the award does not depend on it."""
    return Verdict(
        kind=exercise.kind,
        score=exercise.score,
        max_score=10,
        xp=GRAMMAR_SUBMISSION_XP,
        passed=True,
        detail={"corrected": exercise.corrected, "explanation": exercise.explanation},
    )


def score_narrative_step(exercise: NarrativeStep, choice: str) -> Verdict:
    if choice not in exercise.options:
        raise InvalidResponse(f"{choice!r} is not one of the story options")
    return Verdict(kind=exercise.kind, passed=True, detail={"choice": choice})


def score_tense_cloze(exercise: TenseCloze, answer: str) -> Verdict:
    correct = answer == exercise.correct_answer
    return Verdict(
        kind=exercise.kind,
        correct=correct,
        score=int(correct),
        max_score=1,
        item_correct=[correct],
        xp=TENSE_STREAK_XP if correct else 0,
        passed=correct,
        detail={"correct_answer": exercise.correct_answer, "explanation": exercise.explanation},
    )


def score_multi_cloze(exercise: MultiCloze, answers: Mapping[int, str] | None) -> Verdict:
    """Score every blank at once; unfilled blanks count as wrong."""
    answers = _int_keys(answers or {})
    unknown = set(answers) - {blank.id for blank in exercise.blanks}
    if unknown:
        raise InvalidResponse(f"unknown blank ids: {sorted(unknown)}")

    item_correct = [answers.get(blank.id) == blank.correct_word for blank in exercise.blanks]
    correct_count = sum(item_correct)
    return Verdict(
        kind=exercise.kind,
        correct=correct_count == len(item_correct),
        score=correct_count,
        max_score=len(item_correct),
        item_correct=item_correct,
        xp=CLOZE_BLANK_XP * correct_count,
        passed=True,
        detail={"full_text": exercise.full_text()},
    )


def score_reading_comprehension(
    exercise: ReadingComprehension, answers: Mapping[int, int] | None
) -> Verdict:
    """Score every question at once; unanswered questions count as wrong."""
    answers = _int_keys(answers or {})
    unknown = {i for i in answers if not 0 <= i < len(exercise.questions)}
    if unknown:
        raise InvalidResponse(f"unknown question indexes: {sorted(unknown)}")

    item_correct = [answers.get(i) == q.correct_index for i, q in enumerate(exercise.questions)]
    correct_count = sum(item_correct)
    return Verdict(
        kind=exercise.kind,
        correct=correct_count == len(item_correct),
        score=correct_count,
        max_score=len(item_correct),
        item_correct=item_correct,
        xp=READING_QUESTION_XP * correct_count,
        passed=True,
    )


def score_listening_comprehension(exercise: ListeningComprehension, selected: int) -> Verdict:
    """A correct answer reveals the script; a wrong one needs a fresh exercise."""
    correct = selected == exercise.correct_index
    detail: dict[str, Any] = {"correct_index": exercise.correct_index}
    if correct:
        detail["script"] = exercise.audio_script
    return Verdict(
        kind=exercise.kind,
        correct=correct,
        score=int(correct),
        max_score=1,
        item_correct=[correct],
        xp=LISTENING_XP if correct else 0,
        passed=correct,
        detail=detail,
    )


def score_speaking_challenge(exercise: SpeakingChallenge, transcript: str) -> Verdict:
    """Match score is informational; the award is paid whenever the learner advances."""
    score = match(exercise.phrase, exercise.keywords, transcript)
    passed = score > SPEAKING_PASS_THRESHOLD
    return Verdict(
        kind=exercise.kind,
        correct=passed,
        score=score,
        max_score=100,
        xp=SPEAKING_XP,
        passed=passed,
        detail={"transcript": transcript},
    )


SCORERS: dict[ExerciseKind, Callable[[Any, Any], Verdict]] = {
    ExerciseKind.VOCABULARY: score_vocabulary,
    ExerciseKind.GRAMMAR_CHECK: score_grammar_check,
    ExerciseKind.NARRATIVE_STEP: score_narrative_step,
    ExerciseKind.TENSE_CLOZE: score_tense_cloze,
    ExerciseKind.MULTI_CLOZE: score_multi_cloze,
    ExerciseKind.READING_COMPREHENSION: score_reading_comprehension,
    ExerciseKind.LISTENING_COMPREHENSION: score_listening_comprehension,
    ExerciseKind.SPEAKING_CHALLENGE: score_speaking_challenge,
}


def score_exercise(exercise: ExerciseDefinition, response: Any) -> Verdict:
    """Dispatch to the evaluator for the exercise's kind."""
    verdict = SCORERS[exercise.kind](exercise, response)
    logger.debug(
        "exercise_scored",
        kind=exercise.kind.value,
        correct=verdict.correct,
        score=verdict.score,
        xp=verdict.xp,
    )
    return verdict


def _int_keys(answers: Mapping[Any, Any]) -> dict[int, Any]:
    # JSON bodies deliver mapping keys as strings
    try:
        return {int(k): v for k, v in answers.items()}
    except (TypeError, ValueError) as e:
        raise InvalidResponse(f"answer keys must be integers: {list(answers)}") from e
