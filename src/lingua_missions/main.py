"""FastAPI application entry point."""

import logging
import os
from collections.abc import Callable
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lingua_missions.api.routes import router
from lingua_missions.audio.capture import AudioCapture
from lingua_missions.audio.playback import AudioPlayback
from lingua_missions.audio.speech import OpenAISpeechRecognizer, OpenAISpeechSynthesizer
from lingua_missions.config import Settings, get_settings
from lingua_missions.content.illustration import LLMIllustrationProvider
from lingua_missions.content.provider import LLMContentProvider
from lingua_missions.session.controller import SessionController

# Configure structlog based on environment
is_production = os.getenv("ENV", "development").lower() == "production"

if is_production:
    # Production: JSON format for machine parsing
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
else:
    # Development: console format for human readability
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

logger = structlog.get_logger()

settings = get_settings()

capture = AudioCapture(
    sample_rate=settings.audio_sample_rate,
    channels=settings.audio_channels,
    chunk_size=settings.audio_chunk_size,
    device=settings.audio_input_device,
)
playback = AudioPlayback(
    sample_rate=settings.audio_sample_rate,
    channels=settings.audio_channels,
    chunk_size=settings.audio_chunk_size,
    device=settings.audio_output_device,
)


def build_controller_factory(settings: Settings) -> Callable[[], SessionController]:
    """Wire the production adapters into a per-session controller factory."""
    content = LLMContentProvider(
        api_key=settings.llm_api_key,
        model=settings.content_model,
        base_url=settings.llm_base_url,
        temperature=settings.content_temperature,
    )
    illustrations = LLMIllustrationProvider(
        api_key=settings.llm_api_key,
        model=settings.image_model,
        base_url=settings.llm_base_url,
    )
    # Shared across sessions: one utterance and one recognition at a time
    synthesizer = OpenAISpeechSynthesizer(
        playback,
        api_key=settings.effective_speech_api_key,
        model=settings.tts_model,
        voice=settings.tts_voice,
        base_url=settings.speech_base_url,
    )
    recognizer = OpenAISpeechRecognizer(
        capture,
        api_key=settings.effective_speech_api_key,
        model=settings.stt_model,
        base_url=settings.speech_base_url,
        window_seconds=settings.recognition_window_seconds,
    )

    def factory() -> SessionController:
        return SessionController(
            content,
            illustrations=illustrations,
            synthesizer=synthesizer,
            recognizer=recognizer,
            language=settings.language,
        )

    return factory


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.controller_factory = build_controller_factory(settings)
    logger.info("app_started", content_model=settings.content_model, language=settings.language)
    yield
    capture.stop()
    playback.stop()
    logger.info("app_stopped")


app = FastAPI(title="Lingua Missions", version="0.1.0", lifespan=lifespan)
_allowed_origins_env = os.getenv(
    "ALLOWED_ORIGINS", "http://localhost:8000,http://127.0.0.1:8000"
)
allowed_origins = [o.strip() for o in _allowed_origins_env.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    """Optional APP_SECRET authentication; health checks stay open."""
    if not settings.app_secret or request.url.path == "/api/health":
        return await call_next(request)
    if request.headers.get("X-App-Secret", "") != settings.app_secret:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)
    return await call_next(request)


def main() -> None:
    """Run the application."""
    uvicorn.run(
        "lingua_missions.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
