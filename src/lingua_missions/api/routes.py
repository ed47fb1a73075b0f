"""REST API routes: learner profile, curriculum and practice sessions.

The router plays the caller role around the session engine. It keeps the active
controllers, and on completion awards XP through ``ProgressionTracker`` and saves the
profile.
"""

import asyncio
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, Field

from lingua_missions.curriculum.levels import (
    CurriculumDescriptor,
    describe,
    rank_description,
    rank_title,
)
from lingua_missions.errors import InvalidDifficulty, InvalidResponse, InvalidTransition
from lingua_missions.models.exercise import ExerciseKind
from lingua_missions.models.session import CompletionEvent, SessionSnapshot, SessionState
from lingua_missions.models.user_profile import UserProfile
from lingua_missions.progression.tracker import ProgressionTracker
from lingua_missions.session.controller import SessionController
from lingua_missions.storage.user_profile import load_profile, save_profile

logger = structlog.get_logger()
router = APIRouter(prefix="/api")

# session_id -> (controller, owning user_id)
_sessions: dict[str, tuple[SessionController, str]] = {}
# Awards are read-modify-write on the stored profile
_profile_lock = asyncio.Lock()


class StartSessionRequest(BaseModel):
    kind: ExerciseKind
    difficulty: int | None = None
    params: dict[str, Any] = Field(default_factory=dict)
    user_id: str = "default"


class SelectRequest(BaseModel):
    key: int
    value: Any


class SubmitRequest(BaseModel):
    response: Any = None


class DifficultyRequest(BaseModel):
    user_id: str = "default"
    difficulty: int


class ProfileView(BaseModel):
    profile: UserProfile
    rank_title: str
    rank_description: str


class CurriculumView(BaseModel):
    descriptor: CurriculumDescriptor
    prompt: str
    rank_title: str
    rank_description: str


class CompletionResponse(BaseModel):
    snapshot: SessionSnapshot
    completion: CompletionEvent | None = None
    profile: UserProfile | None = None


def validate_session_id(session_id: str) -> str:
    try:
        uuid.UUID(session_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid session ID format")
    return session_id


def _get_session(session_id: str) -> tuple[SessionController, str]:
    session_id = validate_session_id(session_id)
    if session_id not in _sessions:
        raise HTTPException(status_code=404, detail="Session not found")
    return _sessions[session_id]


@contextmanager
def _engine_errors() -> Iterator[None]:
    """Map engine errors raised by caller mistakes to HTTP status codes."""
    try:
        yield
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (InvalidResponse, InvalidDifficulty) as e:
        raise HTTPException(status_code=422, detail=str(e))


def _profile_view(profile: UserProfile, language: str) -> ProfileView:
    return ProfileView(
        profile=profile,
        rank_title=rank_title(profile.difficulty, language),
        rank_description=rank_description(profile.difficulty, language),
    )


async def _settle(
    controller: SessionController, user_id: str, completion: CompletionEvent | None
) -> CompletionResponse:
    profile = None
    if completion is not None and completion.xp > 0:
        async with _profile_lock:
            tracker = ProgressionTracker(load_profile(user_id))
            profile = tracker.award(completion.xp)
            save_profile(profile)
    if controller.state == SessionState.COMPLETED:
        _sessions.pop(controller.session_id, None)
    return CompletionResponse(
        snapshot=controller.snapshot(), completion=completion, profile=profile
    )


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "active_sessions": len(_sessions)}


@router.get("/profile")
async def get_profile(user_id: str = "default", language: str = "en") -> ProfileView:
    return _profile_view(load_profile(user_id), language)


@router.put("/profile/difficulty")
async def update_difficulty(body: DifficultyRequest, language: str = "en") -> ProfileView:
    """Change the learner's difficulty, clamped to 1-10."""
    async with _profile_lock:
        tracker = ProgressionTracker(load_profile(body.user_id))
        profile = tracker.change_difficulty(body.difficulty)
        save_profile(profile)
    return _profile_view(profile, language)


@router.get("/curriculum/{level}")
async def get_curriculum(level: int, language: str = "en") -> CurriculumView:
    with _engine_errors():
        descriptor = describe(level)
    return CurriculumView(
        descriptor=descriptor,
        prompt=descriptor.to_prompt(),
        rank_title=rank_title(level, language),
        rank_description=rank_description(level, language),
    )


@router.post("/sessions")
async def start_session(body: StartSessionRequest, request: Request) -> SessionSnapshot:
    """Start a session of one exercise kind, at the profile's difficulty by default."""
    difficulty = body.difficulty
    if difficulty is None:
        difficulty = load_profile(body.user_id).difficulty
    controller: SessionController = request.app.state.controller_factory()
    with _engine_errors():
        snapshot = await controller.start(body.kind, difficulty, **body.params)
    _sessions[controller.session_id] = (controller, body.user_id)
    logger.info(
        "session_registered",
        session_id=controller.session_id,
        user_id=body.user_id,
        kind=body.kind.value,
    )
    return snapshot


@router.get("/sessions/{session_id}")
async def get_session(session_id: str) -> SessionSnapshot:
    controller, _ = _get_session(session_id)
    return controller.snapshot()


@router.get("/sessions/{session_id}/illustration")
async def get_illustration(session_id: str) -> Response:
    controller, _ = _get_session(session_id)
    if controller.illustration is None:
        raise HTTPException(status_code=404, detail="No illustration available")
    return Response(content=controller.illustration, media_type="image/png")


@router.post("/sessions/{session_id}/select")
async def select_answer(session_id: str, body: SelectRequest) -> SessionSnapshot:
    controller, _ = _get_session(session_id)
    with _engine_errors():
        controller.select(body.key, body.value)
    return controller.snapshot()


@router.post("/sessions/{session_id}/submit")
async def submit_answer(session_id: str, body: SubmitRequest) -> SessionSnapshot:
    controller, _ = _get_session(session_id)
    with _engine_errors():
        controller.submit(body.response)
    return controller.snapshot()


@router.post("/sessions/{session_id}/next-word")
async def next_word(session_id: str) -> SessionSnapshot:
    controller, _ = _get_session(session_id)
    with _engine_errors():
        controller.next_word()
    return controller.snapshot()


@router.post("/sessions/{session_id}/visualize-word")
async def visualize_word(session_id: str) -> SessionSnapshot:
    controller, _ = _get_session(session_id)
    with _engine_errors():
        controller.visualize_word()
    return controller.snapshot()


@router.post("/sessions/{session_id}/listen")
async def listen(session_id: str) -> SessionSnapshot:
    """Record the learner on the server microphone and score the utterance."""
    controller, _ = _get_session(session_id)
    with _engine_errors():
        await controller.listen()
    return controller.snapshot()


@router.post("/sessions/{session_id}/read-aloud")
async def read_aloud(session_id: str) -> SessionSnapshot:
    controller, _ = _get_session(session_id)
    with _engine_errors():
        controller.read_aloud()
    return controller.snapshot()


@router.post("/sessions/{session_id}/play-script")
async def play_script(session_id: str) -> SessionSnapshot:
    controller, _ = _get_session(session_id)
    with _engine_errors():
        controller.play_script()
    return controller.snapshot()


@router.post("/sessions/{session_id}/advance")
async def advance(session_id: str) -> CompletionResponse:
    """Complete the session (awarding XP) or load the next exercise."""
    controller, user_id = _get_session(session_id)
    with _engine_errors():
        completion = await controller.advance()
    return await _settle(controller, user_id, completion)


@router.post("/sessions/{session_id}/finish")
async def finish(session_id: str) -> CompletionResponse:
    controller, user_id = _get_session(session_id)
    with _engine_errors():
        completion = controller.finish()
    return await _settle(controller, user_id, completion)


@router.post("/sessions/{session_id}/retry")
async def retry(session_id: str) -> SessionSnapshot:
    """Fetch a fresh exercise, e.g. after a failed content request."""
    controller, _ = _get_session(session_id)
    with _engine_errors():
        return await controller.retry()


@router.delete("/sessions/{session_id}")
async def abort_session(session_id: str) -> dict:
    controller, _ = _get_session(session_id)
    controller.abort()
    del _sessions[controller.session_id]
    return {"status": "aborted", "session_id": controller.session_id}
