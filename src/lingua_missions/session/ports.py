"""Interfaces the session controller depends on.

Concrete adapters live in ``lingua_missions.content`` and ``lingua_missions.audio``;
tests substitute in-memory fakes.
"""

from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from lingua_missions.curriculum.levels import CurriculumDescriptor
from lingua_missions.models.exercise import ExerciseDefinition, ExerciseKind


class ContentRequest(BaseModel):
    """Everything a content provider needs to generate one exercise instance."""

    model_config = ConfigDict(frozen=True)

    kind: ExerciseKind
    difficulty: int
    curriculum: CurriculumDescriptor
    params: dict[str, Any] = Field(default_factory=dict)
    language: str = "en"


class ContentProvider(Protocol):
    async def generate(self, request: ContentRequest) -> ExerciseDefinition:
        """Return a validated exercise of ``request.kind``.

        Raises:
            ContentProviderFailure: Transport or parse failure.
            MalformedExercise: Payload violates the kind's field contract.
        """
        ...


class IllustrationProvider(Protocol):
    async def request(self, prompt: str) -> bytes | None:
        """Return image bytes, or None when the provider produced no image.

        Raises:
            IllustrationFailure: Generation failed.
        """
        ...


class SpeechSynthesizer(Protocol):
    def speak(self, text: str, language_tag: str) -> None:
        """Start speaking ``text``, interrupting anything already playing."""
        ...

    def stop(self) -> None: ...


class SpeechRecognizer(Protocol):
    async def listen(self) -> str:
        """Capture one utterance and return its transcript.

        Raises:
            RecognitionFailure: Capture or recognition failed, or a capture is already
                in progress.
        """
        ...

    def stop(self) -> None: ...
