"""Shared fixtures: exercise payloads and in-memory fakes for the session ports."""

import asyncio
import copy

import pytest

from lingua_missions.models.exercise import ExerciseKind, parse_exercise
from lingua_missions.session.controller import SessionController

PAYLOADS: dict[ExerciseKind, dict] = {
    ExerciseKind.VOCABULARY: {
        "topic": "Space",
        "words": [
            {
                "word": "planet",
                "definition": "A big round object that moves around a star.",
                "definitionCn": "行星",
                "exampleSentence": "We live on the planet Earth.",
                "funFact": "Jupiter is the biggest planet.",
                "difficulty": 3,
            },
            {
                "word": "rocket",
                "definition": "A machine that flies into space.",
                "exampleSentence": "The rocket is going to the Moon.",
                "funFact": "The first rockets were made in China.",
                "difficulty": 3,
            },
            {
                "word": "astronaut",
                "definition": "A person who travels into space.",
                "exampleSentence": "The astronaut has got a white helmet.",
                "funFact": "Astronauts grow taller in space.",
                "difficulty": 3,
            },
        ],
        "imagePrompt": "a rocket flying past a ringed planet",
    },
    ExerciseKind.GRAMMAR_CHECK: {
        "original": "She go to school yesterday.",
        "corrected": "She went to school yesterday.",
        "explanation": "Use the Past Simple for finished actions.",
        "explanationCn": "已完成的动作用一般过去时。",
        "score": 4,
    },
    ExerciseKind.NARRATIVE_STEP: {
        "text": "Mia finds a glowing box in the garden. It hums softly.",
        "textCn": "米娅在花园里发现了一个发光的盒子。",
        "options": ["Open the box", "Call her brother"],
        "optionsCn": ["打开盒子", "叫她的哥哥"],
        "imagePrompt": "a glowing box in a garden at night",
    },
    ExerciseKind.TENSE_CLOZE: {
        "sentence": "Yesterday I [BLANK] to the zoo.",
        "correctAnswer": "went",
        "options": ["go", "went", "going", "goes"],
        "explanation": "Yesterday needs the Past Simple.",
        "tenseType": "Past Simple",
        "imagePrompt": "children at a zoo",
    },
    ExerciseKind.MULTI_CLOZE: {
        "text": "The ___1___ car is next to the ___2___.",
        "blanks": [
            {"id": 1, "correctWord": "red", "options": ["red", "blue"]},
            {"id": 2, "correctWord": "cat", "options": ["cat", "dog"]},
        ],
        "imagePrompt": "a red toy car and a cat",
    },
    ExerciseKind.READING_COMPREHENSION: {
        "title": "At the Market",
        "passage": "Sam goes to the market on Saturday. He buys apples and bread.",
        "questions": [
            {
                "question": "When does Sam go to the market?",
                "options": ["Monday", "Saturday", "Sunday"],
                "correctIndex": 1,
            },
            {
                "question": "What does Sam buy?",
                "options": ["Apples and bread", "Milk", "Fish"],
                "correctIndex": 0,
            },
        ],
        "imagePrompt": "a busy fruit market",
    },
    ExerciseKind.LISTENING_COMPREHENSION: {
        "audioScript": "Tom has got a green kite and a yellow ball.",
        "question": "What colour is Tom's kite?",
        "options": ["Red", "Green", "Blue", "Yellow"],
        "correctIndex": 1,
        "imagePrompt": "a kite in a windy park",
    },
    ExerciseKind.SPEAKING_CHALLENGE: {
        "phrase": "I like playing football.",
        "phraseCn": "我喜欢踢足球。",
        "context": "Tell your friend what you like.",
        "keywords": ["like", "playing", "football"],
        "imagePrompt": "kids playing football",
    },
}


def make_exercise(kind: ExerciseKind, **overrides):
    """Build a valid exercise of ``kind``, with top-level payload fields overridden."""
    return parse_exercise(kind, {**copy.deepcopy(PAYLOADS[kind]), **overrides})


class FakeContentProvider:
    """Returns queued exercises or raises queued errors, then falls back to payloads."""

    def __init__(self, *results):
        self.results = list(results)
        self.requests = []
        self.gate: asyncio.Event | None = None

    async def generate(self, request):
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return make_exercise(request.kind)


class FakeIllustrationProvider:
    def __init__(self, image: bytes | None = b"\x89PNG-fake", error: Exception | None = None):
        self.image = image
        self.error = error
        self.prompts: list[str] = []
        self.gate: asyncio.Event | None = None

    async def request(self, prompt):
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.image


class FakeSynthesizer:
    def __init__(self):
        self.spoken: list[tuple[str, str]] = []
        self.stop_count = 0

    def speak(self, text, language_tag):
        self.spoken.append((text, language_tag))

    def stop(self):
        self.stop_count += 1


class FakeRecognizer:
    def __init__(self, transcript: str = "", error: Exception | None = None):
        self.transcript = transcript
        self.error = error
        self.gate: asyncio.Event | None = None
        self.stop_count = 0

    async def listen(self):
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.transcript

    def stop(self):
        self.stop_count += 1


@pytest.fixture
def content():
    return FakeContentProvider()


@pytest.fixture
def illustrations():
    return FakeIllustrationProvider()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def recognizer():
    return FakeRecognizer()


@pytest.fixture
def controller(content, illustrations, synthesizer, recognizer):
    return SessionController(
        content,
        illustrations=illustrations,
        synthesizer=synthesizer,
        recognizer=recognizer,
    )
