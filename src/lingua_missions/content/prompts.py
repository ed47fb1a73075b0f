"""Generation prompts, one template per exercise kind.

Every template embeds the curriculum context for the requested level and asks for a
JSON object with camelCase keys matching the exercise models.
"""

from lingua_missions.curriculum.levels import CurriculumDescriptor
from lingua_missions.models.exercise import ExerciseKind

DEFAULT_VOCABULARY_TOPIC = "Space Exploration"
STORY_OPENING = (
    "Start a sci-fi mystery story where the main character finds a strange glowing device."
)

SYSTEM_PROMPT = """\
You are the content engine of "Lingua Missions", a space-themed English practice game \
for children. Every exercise you write must stay inside the given curriculum level: \
use only its vocabulary and grammar, and pick situations from its unit themes when \
they are listed. Chinese translations go in the fields ending in "Cn".

Respond ONLY with a JSON object using exactly the keys requested.
"""

VOCABULARY_PROMPT = """\
Generate 3 vocabulary words suitable for children based on this curriculum: {level_context}
Topic context: {topic} (Adapt the topic to fit the Unit Themes listed in the curriculum).

Return {{"words": [...], "imagePrompt": "<scene for the topic>"}} where each word has:
- word (string)
- definition (string, simple definition matching the level)
- definitionCn (string, Chinese translation)
- exampleSentence (string, MUST use grammar from the level guide)
- exampleSentenceCn (string, Chinese translation)
- funFact (string, brief fun fact)
- funFactCn (string, Chinese translation)
- difficulty (number: {difficulty})
"""

GRAMMAR_CHECK_PROMPT = """\
Act as a "Code Breaker" AI teaching English.
Curriculum: {level_context}
User Sentence: "{sentence}"

1. Correct the grammar/syntax.
2. Explain the error using concepts from the specified level.
3. Provide a Chinese translation of the explanation.
4. Score the original sentence 1-10.

Return {{"corrected": str, "explanation": str, "explanationCn": str, "score": int}}.
"""

NARRATIVE_STEP_PROMPT = """\
Write a sci-fi adventure story segment for a child.
CURRICULUM CONSTRAINT: {level_context}

Previous Context: {history}
Action: "{choice}"

Write 1 paragraph (40-60 words). Use vocabulary/grammar ONLY from the curriculum level.
Provide a Chinese translation, 2 choices for the next step and an image prompt.

Return {{"text": str, "textCn": str, "options": [str], "optionsCn": [str], \
"imagePrompt": str}}.
"""

TENSE_CLOZE_PROMPT = """\
Create a Verb Tense exercise.
CURRICULUM: {level_context}

Create a sentence with a missing verb marked [BLANK]. The sentence context should fit \
the Unit Themes of the level. Provide 4 options (one of them exactly equal to \
correctAnswer), an explanation and an image prompt.

Return {{"sentence": str, "sentenceCn": str, "correctAnswer": str, "options": [str], \
"explanation": str, "explanationCn": str, "tenseType": str, "imagePrompt": str}}.
"""

MULTI_CLOZE_PROMPT = """\
Create a Fill-in-the-blanks (Cloze) text (40 words).
CURRICULUM: {level_context}

Select 3 words to blank out (vocabulary from the Unit Themes). Replace each with \
___1___, ___2___, ___3___ in the text. Every blank lists options that include its \
correctWord.

Return {{"text": str, "textCn": str, "blanks": [{{"id": int, "correctWord": str, \
"options": [str]}}], "imagePrompt": str}}.
"""

READING_COMPREHENSION_PROMPT = """\
Create a short reading passage (80 words).
CURRICULUM: {level_context}
Topic: Choose a topic from the Unit Themes of this level.
Create 2 multiple-choice questions; correctIndex is 0-based.

Return {{"title": str, "passage": str, "passageCn": str, "questions": [{{"question": str, \
"questionCn": str, "options": [str], "correctIndex": int}}], "imagePrompt": str}}.
"""

LISTENING_COMPREHENSION_PROMPT = """\
Create a Listening Comprehension script.
CURRICULUM: {level_context}

1. 'audioScript': A short description or dialogue (1-2 sentences) using Unit vocabulary.
2. 'question': A question about a detail in the script.
3. 'options': 4 choices for the answer; 'correctIndex' is 0-based.
4. 'imagePrompt': Visual context for the general theme (not the answer itself).

Return {{"audioScript": str, "question": str, "questionCn": str, "options": [str], \
"correctIndex": int, "imagePrompt": str}}.
"""

SPEAKING_CHALLENGE_PROMPT = """\
Create a Speaking Challenge phrase.
CURRICULUM: {level_context}

1. 'phrase': A key sentence using grammar/vocab from the level \
(e.g., "I like playing football" for the starter level).
2. 'context': Situation description (e.g. "Tell your friend what you like").
3. 'keywords': List of key words in the phrase to check for.

Return {{"phrase": str, "phraseCn": str, "context": str, "keywords": [str], \
"imagePrompt": str}}.
"""

PROMPTS: dict[ExerciseKind, str] = {
    ExerciseKind.VOCABULARY: VOCABULARY_PROMPT,
    ExerciseKind.GRAMMAR_CHECK: GRAMMAR_CHECK_PROMPT,
    ExerciseKind.NARRATIVE_STEP: NARRATIVE_STEP_PROMPT,
    ExerciseKind.TENSE_CLOZE: TENSE_CLOZE_PROMPT,
    ExerciseKind.MULTI_CLOZE: MULTI_CLOZE_PROMPT,
    ExerciseKind.READING_COMPREHENSION: READING_COMPREHENSION_PROMPT,
    ExerciseKind.LISTENING_COMPREHENSION: LISTENING_COMPREHENSION_PROMPT,
    ExerciseKind.SPEAKING_CHALLENGE: SPEAKING_CHALLENGE_PROMPT,
}


def build_prompt(
    kind: ExerciseKind,
    curriculum: CurriculumDescriptor,
    params: dict | None = None,
) -> str:
    """Fill the template for ``kind``.

    Args:
        kind: Exercise kind to generate.
        curriculum: Level context for the request.
        params: Kind-specific inputs. ``topic`` for vocabulary, ``sentence`` for grammar
            checks, ``history`` and ``choice`` for narrative steps.

    Returns:
        The user prompt text.
    """
    params = params or {}
    history = params.get("history") or []
    return PROMPTS[kind].format(
        level_context=curriculum.to_prompt(),
        difficulty=curriculum.level,
        topic=params.get("topic") or DEFAULT_VOCABULARY_TOPIC,
        sentence=params.get("sentence", ""),
        history=" | ".join(history) if history else "(story start)",
        choice=params.get("choice") or STORY_OPENING,
    )
