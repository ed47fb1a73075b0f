"""Tests for keyword-based speech matching."""

import pytest

from lingua_missions.assessment.speech_match import match, normalize
from lingua_missions.errors import MalformedExercise

PHRASE = "I like playing football."
KEYWORDS = ["like", "playing", "football"]


def test_normalize():
    assert normalize("Hello, World!") == "hello world"
    assert normalize("Wait... what?") == "wait what?"


def test_exact_match_scores_100():
    assert match(PHRASE, KEYWORDS, "i like playing football") == 100


def test_exact_match_ignores_punctuation_and_case():
    assert match(PHRASE, KEYWORDS, "I LIKE playing, football!") == 100


def test_empty_recognition_scores_zero():
    assert match(PHRASE, KEYWORDS, "") == 0
    assert match(PHRASE, KEYWORDS, "...") == 0


def test_no_hits_gets_pity_floor():
    assert match(PHRASE, KEYWORDS, "the weather is nice") == 20


def test_partial_hits():
    # 2/3 * 80 = 53.33
    assert match(PHRASE, KEYWORDS, "I like football a lot") == 53
    # 1/3 * 80 = 26.67
    assert match(PHRASE, KEYWORDS, "football") == 27


def test_all_keywords_without_exact_match():
    assert match(PHRASE, KEYWORDS, "I really like playing football") == 80


def test_rounds_half_up():
    # 13/32 * 80 = 32.5
    keywords = [f"w{i}x" for i in range(32)]
    spoken = " ".join(keywords[:13])
    assert match("unrelated", keywords, spoken) == 33


def test_keywords_are_case_insensitive():
    assert match(PHRASE, ["Like", "FOOTBALL"], "i like football a lot") == 80


def test_monotonic_in_hits():
    keywords = ["red", "green", "blue", "yellow"]
    scores = [
        match("colours", keywords, "I see " + " ".join(keywords[:n]) + " things")
        for n in range(len(keywords) + 1)
    ]
    assert scores == sorted(scores)


def test_empty_keywords_is_malformed():
    with pytest.raises(MalformedExercise):
        match(PHRASE, [], "anything")
