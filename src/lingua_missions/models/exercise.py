"""Exercise definitions: one frozen model per exercise kind.

Provider payloads use camelCase keys (``correctAnswer``, ``imagePrompt``); models accept
either spelling. Contract violations surface as ``MalformedExercise`` via ``parse_exercise``.
"""

import re
from enum import StrEnum
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from lingua_missions.errors import MalformedExercise

BLANK_MARKER = "[BLANK]"
CLOZE_PLACEHOLDER = re.compile(r"___(\d+)___")


class ExerciseKind(StrEnum):
    """Exercise kinds offered by the practice engine."""

    VOCABULARY = "vocabulary"
    GRAMMAR_CHECK = "grammar_check"
    NARRATIVE_STEP = "narrative_step"
    TENSE_CLOZE = "tense_cloze"
    MULTI_CLOZE = "multi_cloze"
    READING_COMPREHENSION = "reading_comprehension"
    LISTENING_COMPREHENSION = "listening_comprehension"
    SPEAKING_CHALLENGE = "speaking_challenge"


class ExerciseModel(BaseModel):
    """Base for provider-supplied, immutable exercise data."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    # Fields withheld from the learner until the attempt is answered
    answer_fields: ClassVar[dict[str, Any]] = {}

    def learner_view(self, answered: bool = False) -> dict[str, Any]:
        """Camel-cased payload for rendering, without the answer key while unanswered."""
        exclude = None if answered else self.answer_fields
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


class VocabularyWord(ExerciseModel):
    word: str
    definition: str
    definition_cn: str | None = None
    example_sentence: str
    example_sentence_cn: str | None = None
    fun_fact: str
    fun_fact_cn: str | None = None
    difficulty: int


class Vocabulary(ExerciseModel):
    """A guided-reading set of words, presented one at a time."""

    kind: Literal[ExerciseKind.VOCABULARY] = ExerciseKind.VOCABULARY
    topic: str = "Space"
    words: list[VocabularyWord] = Field(min_length=1)
    image_prompt: str | None = None


class GrammarCheck(ExerciseModel):
    """Provider-graded correction of a learner sentence."""

    kind: Literal[ExerciseKind.GRAMMAR_CHECK] = ExerciseKind.GRAMMAR_CHECK
    original: str
    corrected: str
    explanation: str
    explanation_cn: str | None = None
    score: int = Field(ge=1, le=10)
    image_prompt: str | None = None


class NarrativeStep(ExerciseModel):
    """One segment of a branching story plus the choices for the next step."""

    kind: Literal[ExerciseKind.NARRATIVE_STEP] = ExerciseKind.NARRATIVE_STEP
    text: str
    text_cn: str | None = None
    options: list[str] = Field(min_length=1, max_length=4)
    options_cn: list[str] | None = None
    image_prompt: str | None = None


class TenseCloze(ExerciseModel):
    """Single-blank verb tense exercise with a closed option set."""

    kind: Literal[ExerciseKind.TENSE_CLOZE] = ExerciseKind.TENSE_CLOZE
    sentence: str
    sentence_cn: str | None = None
    correct_answer: str
    options: list[str] = Field(min_length=2)
    explanation: str
    explanation_cn: str | None = None
    tense_type: str
    image_prompt: str | None = None

    answer_fields: ClassVar[dict[str, Any]] = {
        "correct_answer": True,
        "explanation": True,
        "explanation_cn": True,
    }

    @model_validator(mode="after")
    def _single_blank(self) -> "TenseCloze":
        blanks = self.sentence.count(BLANK_MARKER)
        if blanks != 1:
            raise ValueError(f"sentence must contain exactly one {BLANK_MARKER}, found {blanks}")
        return self

    @model_validator(mode="after")
    def _answer_is_an_option(self) -> "TenseCloze":
        if self.correct_answer not in self.options:
            raise ValueError(f"correct answer {self.correct_answer!r} is not among the options")
        return self

    def segments(self) -> list[str]:
        """Sentence text around the blank."""
        return self.sentence.split(BLANK_MARKER)


class ClozeBlank(ExerciseModel):
    id: int
    correct_word: str
    options: list[str] = Field(min_length=1)

    @model_validator(mode="after")
    def _word_is_an_option(self) -> "ClozeBlank":
        if self.correct_word not in self.options:
            raise ValueError(f"blank {self.id}: {self.correct_word!r} is not among the options")
        return self


class MultiCloze(ExerciseModel):
    """Passage with several independently scored blanks (``___N___`` placeholders)."""

    kind: Literal[ExerciseKind.MULTI_CLOZE] = ExerciseKind.MULTI_CLOZE
    text: str
    text_cn: str | None = None
    blanks: list[ClozeBlank] = Field(min_length=1)
    image_prompt: str | None = None

    answer_fields: ClassVar[dict[str, Any]] = {"blanks": {"__all__": {"correct_word"}}}

    @model_validator(mode="after")
    def _blank_ids_match_placeholders(self) -> "MultiCloze":
        ids = [blank.id for blank in self.blanks]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate blank ids: {ids}")
        referenced = {int(m) for m in CLOZE_PLACEHOLDER.findall(self.text)}
        if referenced != set(ids):
            raise ValueError(
                f"blank ids {sorted(ids)} do not match placeholders {sorted(referenced)}"
            )
        return self

    def blank(self, blank_id: int) -> ClozeBlank | None:
        return next((b for b in self.blanks if b.id == blank_id), None)

    def full_text(self) -> str:
        """Passage with every placeholder replaced by its correct word."""
        text = self.text
        for blank in self.blanks:
            text = text.replace(f"___{blank.id}___", blank.correct_word)
        return text


class ReadingQuestion(ExerciseModel):
    question: str
    question_cn: str | None = None
    options: list[str] = Field(min_length=2)
    correct_index: int

    @model_validator(mode="after")
    def _index_in_range(self) -> "ReadingQuestion":
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(f"correctIndex {self.correct_index} out of range")
        return self


class ReadingComprehension(ExerciseModel):
    kind: Literal[ExerciseKind.READING_COMPREHENSION] = ExerciseKind.READING_COMPREHENSION
    title: str
    passage: str
    passage_cn: str | None = None
    questions: list[ReadingQuestion] = Field(min_length=1)
    image_prompt: str | None = None

    answer_fields: ClassVar[dict[str, Any]] = {"questions": {"__all__": {"correct_index"}}}


class ListeningComprehension(ExerciseModel):
    """One question about a script that is played, not shown, until answered correctly."""

    kind: Literal[ExerciseKind.LISTENING_COMPREHENSION] = ExerciseKind.LISTENING_COMPREHENSION
    audio_script: str
    question: str
    question_cn: str | None = None
    options: list[str] = Field(min_length=2)
    correct_index: int
    image_prompt: str | None = None

    answer_fields: ClassVar[dict[str, Any]] = {"correct_index": True}

    @model_validator(mode="after")
    def _index_in_range(self) -> "ListeningComprehension":
        if not 0 <= self.correct_index < len(self.options):
            raise ValueError(f"correctIndex {self.correct_index} out of range")
        return self

    def learner_view(self, answered: bool = False) -> dict[str, Any]:
        # The script is only ever played; a correct verdict carries it in its detail.
        view = super().learner_view(answered)
        view.pop("audioScript", None)
        return view


class SpeakingChallenge(ExerciseModel):
    kind: Literal[ExerciseKind.SPEAKING_CHALLENGE] = ExerciseKind.SPEAKING_CHALLENGE
    phrase: str
    phrase_cn: str | None = None
    context: str
    keywords: list[str] = Field(min_length=1)
    image_prompt: str | None = None


ExerciseDefinition = Annotated[
    Vocabulary
    | GrammarCheck
    | NarrativeStep
    | TenseCloze
    | MultiCloze
    | ReadingComprehension
    | ListeningComprehension
    | SpeakingChallenge,
    Field(discriminator="kind"),
]

EXERCISE_MODELS: dict[ExerciseKind, type[ExerciseModel]] = {
    ExerciseKind.VOCABULARY: Vocabulary,
    ExerciseKind.GRAMMAR_CHECK: GrammarCheck,
    ExerciseKind.NARRATIVE_STEP: NarrativeStep,
    ExerciseKind.TENSE_CLOZE: TenseCloze,
    ExerciseKind.MULTI_CLOZE: MultiCloze,
    ExerciseKind.READING_COMPREHENSION: ReadingComprehension,
    ExerciseKind.LISTENING_COMPREHENSION: ListeningComprehension,
    ExerciseKind.SPEAKING_CHALLENGE: SpeakingChallenge,
}


def parse_exercise(kind: ExerciseKind, payload: dict[str, Any]) -> ExerciseDefinition:
    """Validate a provider payload as the given kind.

    Raises:
        MalformedExercise: When the payload violates the kind's field contract.
    """
    model = EXERCISE_MODELS[kind]
    try:
        return model.model_validate({**payload, "kind": kind})
    except ValidationError as e:
        raise MalformedExercise(
            f"{kind.value}: {e.error_count()} contract violation(s)\n{e}"
        ) from e
