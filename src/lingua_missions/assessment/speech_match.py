"""Keyword-based matching of a recognized utterance against a target phrase."""

import math
import re

from lingua_missions.errors import MalformedExercise

EXACT_MATCH_SCORE = 100
KEYWORD_SCORE_CEILING = 80
PITY_FLOOR = 20

_STRIPPED = re.compile(r"[.,!]")


def normalize(text: str) -> str:
    """Lowercase and drop ``.``, ``,`` and ``!``."""
    return _STRIPPED.sub("", text.lower())


def match(target_phrase: str, keywords: list[str], recognized_text: str) -> int:
    """Score a spoken attempt from 0 to 100.

    An exact normalized match scores 100. Otherwise each keyword found as a substring
    of the recognized text earns a share of 80, and any non-empty attempt gets at
    least 20.

    Raises:
        MalformedExercise: If ``keywords`` is empty.
    """
    if not keywords:
        raise MalformedExercise("speaking challenge has no keywords to match")

    spoken = normalize(recognized_text)
    if not spoken:
        return 0
    if spoken == normalize(target_phrase):
        return EXACT_MATCH_SCORE

    hit_count = sum(1 for keyword in keywords if keyword.lower() in spoken)
    # Round half up
    score = math.floor(hit_count / len(keywords) * KEYWORD_SCORE_CEILING + 0.5)
    return max(score, PITY_FLOOR)

