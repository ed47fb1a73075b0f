"""Tests for the per-kind exercise evaluators."""

import pytest

from conftest import make_exercise
from lingua_missions.assessment.scorer import (
    score_exercise,
    score_grammar_check,
    score_listening_comprehension,
    score_multi_cloze,
    score_narrative_step,
    score_reading_comprehension,
    score_speaking_challenge,
    score_tense_cloze,
    score_vocabulary,
)
from lingua_missions.errors import InvalidResponse
from lingua_missions.models.exercise import ExerciseKind


class TestVocabulary:
    def test_complete_after_last_word(self):
        verdict = score_vocabulary(make_exercise(ExerciseKind.VOCABULARY), 3)
        assert verdict.passed
        assert verdict.xp == 50

    def test_incomplete_set(self):
        verdict = score_vocabulary(make_exercise(ExerciseKind.VOCABULARY), 1)
        assert not verdict.passed
        assert verdict.xp == 0
        assert verdict.correct is None


class TestGrammarCheck:
    @pytest.mark.parametrize("provider_score", [1, 4, 10])
    def test_award_ignores_provider_score(self, provider_score):
        exercise = make_exercise(ExerciseKind.GRAMMAR_CHECK, score=provider_score)
        verdict = score_grammar_check(exercise, "She go to school yesterday.")
        assert verdict.xp == 10
        assert verdict.score == provider_score
        assert verdict.max_score == 10
        assert verdict.detail["corrected"] == "She went to school yesterday."


class TestNarrativeStep:
    def test_choice_is_recorded(self):
        verdict = score_narrative_step(make_exercise(ExerciseKind.NARRATIVE_STEP), "Open the box")
        assert verdict.correct is None
        assert verdict.xp == 0
        assert verdict.detail == {"choice": "Open the box"}

    def test_unknown_choice(self):
        with pytest.raises(InvalidResponse):
            score_narrative_step(make_exercise(ExerciseKind.NARRATIVE_STEP), "Fly to Mars")


class TestTenseCloze:
    def test_correct(self):
        verdict = score_tense_cloze(make_exercise(ExerciseKind.TENSE_CLOZE), "went")
        assert verdict.correct
        assert verdict.xp == 30

    def test_match_is_case_sensitive(self):
        verdict = score_tense_cloze(make_exercise(ExerciseKind.TENSE_CLOZE), "Went")
        assert not verdict.correct
        assert verdict.xp == 0

    def test_no_trimming(self):
        verdict = score_tense_cloze(make_exercise(ExerciseKind.TENSE_CLOZE), " went")
        assert not verdict.correct


class TestMultiCloze:
    def test_one_of_two_correct(self):
        verdict = score_multi_cloze(
            make_exercise(ExerciseKind.MULTI_CLOZE), {1: "red", 2: "dog"}
        )
        assert verdict.score == 1
        assert verdict.xp == 10
        assert verdict.item_correct == [True, False]
        assert not verdict.correct

    def test_all_correct_and_full_text(self):
        verdict = score_multi_cloze(
            make_exercise(ExerciseKind.MULTI_CLOZE), {1: "red", 2: "cat"}
        )
        assert verdict.score == 2
        assert verdict.xp == 20
        assert verdict.detail["full_text"] == "The red car is next to the cat."

    def test_string_keys_from_json(self):
        verdict = score_multi_cloze(
            make_exercise(ExerciseKind.MULTI_CLOZE), {"1": "red", "2": "cat"}
        )
        assert verdict.score == 2

    def test_unfilled_blank_is_wrong(self):
        verdict = score_multi_cloze(make_exercise(ExerciseKind.MULTI_CLOZE), {1: "red"})
        assert verdict.item_correct == [True, False]

    def test_unknown_blank(self):
        with pytest.raises(InvalidResponse):
            score_multi_cloze(make_exercise(ExerciseKind.MULTI_CLOZE), {7: "red"})

    def test_non_integer_key(self):
        with pytest.raises(InvalidResponse):
            score_multi_cloze(make_exercise(ExerciseKind.MULTI_CLOZE), {"first": "red"})


class TestReadingComprehension:
    def test_one_right_one_wrong(self):
        verdict = score_reading_comprehension(
            make_exercise(ExerciseKind.READING_COMPREHENSION), {0: 1, 1: 2}
        )
        assert verdict.score == 1
        assert verdict.xp == 15

    def test_unanswered_counts_as_wrong(self):
        verdict = score_reading_comprehension(
            make_exercise(ExerciseKind.READING_COMPREHENSION), {0: 1}
        )
        assert verdict.score == 1
        assert verdict.item_correct == [True, False]

    def test_nothing_answered(self):
        verdict = score_reading_comprehension(
            make_exercise(ExerciseKind.READING_COMPREHENSION), None
        )
        assert verdict.score == 0
        assert verdict.xp == 0

    def test_unknown_question(self):
        with pytest.raises(InvalidResponse):
            score_reading_comprehension(
                make_exercise(ExerciseKind.READING_COMPREHENSION), {5: 0}
            )


class TestListeningComprehension:
    def test_correct_reveals_script(self):
        verdict = score_listening_comprehension(
            make_exercise(ExerciseKind.LISTENING_COMPREHENSION), 1
        )
        assert verdict.correct
        assert verdict.xp == 25
        assert verdict.detail["script"] == "Tom has got a green kite and a yellow ball."

    def test_wrong_keeps_script_hidden(self):
        verdict = score_listening_comprehension(
            make_exercise(ExerciseKind.LISTENING_COMPREHENSION), 0
        )
        assert not verdict.correct
        assert verdict.xp == 0
        assert "script" not in verdict.detail


class TestSpeakingChallenge:
    def test_pass(self):
        verdict = score_speaking_challenge(
            make_exercise(ExerciseKind.SPEAKING_CHALLENGE), "I like playing football"
        )
        assert verdict.score == 100
        assert verdict.passed

    def test_threshold_is_exclusive(self):
        # 3/4 * 80 = 60, not above the threshold
        exercise = make_exercise(
            ExerciseKind.SPEAKING_CHALLENGE, keywords=["like", "playing", "football", "weekend"]
        )
        verdict = score_speaking_challenge(exercise, "I like playing football a lot")
        assert verdict.score == 60
        assert not verdict.passed
        assert verdict.xp == 30


def test_dispatch_by_kind():
    verdict = score_exercise(make_exercise(ExerciseKind.TENSE_CLOZE), "went")
    assert verdict.kind == ExerciseKind.TENSE_CLOZE
    assert verdict.correct
