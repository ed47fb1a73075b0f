"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened = {}
        if 'server' in data:
            flattened['host'] = data['server'].get('host')
            flattened['port'] = data['server'].get('port')
        if 'content' in data:
            content = data['content']
            flattened['llm_base_url'] = content.get('base_url')
            flattened['content_model'] = content.get('model')
            flattened['image_model'] = content.get('image_model')
            flattened['content_temperature'] = content.get('temperature')
        if 'speech' in data:
            speech = data['speech']
            flattened['speech_base_url'] = speech.get('base_url')
            flattened['tts_model'] = speech.get('tts_model')
            flattened['tts_voice'] = speech.get('tts_voice')
            flattened['stt_model'] = speech.get('stt_model')
            flattened['recognition_window_seconds'] = speech.get('recognition_window_seconds')
        if 'audio' in data:
            flattened['audio_sample_rate'] = data['audio'].get('sample_rate')
            flattened['audio_channels'] = data['audio'].get('channels')
            flattened['audio_chunk_duration_ms'] = data['audio'].get('chunk_duration_ms')
        if 'learner' in data:
            flattened['language'] = data['learner'].get('language')

        # Remove None values
        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Content generation (any OpenAI-compatible endpoint; Gemini by default)
    llm_api_key: str = Field(description="API key for the content/illustration endpoint")
    llm_base_url: str | None = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/"
    )
    content_model: str = Field(default="gemini-2.5-flash")
    image_model: str = Field(default="imagen-3.0-generate-002")
    content_temperature: float = Field(default=0.7)

    # Speech (OpenAI audio endpoints; key falls back to llm_api_key)
    speech_api_key: str | None = Field(default=None)
    speech_base_url: str | None = Field(default=None)
    tts_model: str = Field(default="gpt-4o-mini-tts")
    tts_voice: str = Field(default="alloy")
    stt_model: str = Field(default="whisper-1")
    recognition_window_seconds: float = Field(default=6.0)

    # Authentication (optional: None disables auth)
    app_secret: str | None = Field(default=None)

    # Audio
    audio_sample_rate: int = Field(default=24000)
    audio_channels: int = Field(default=1)
    audio_chunk_duration_ms: int = Field(default=100)
    audio_input_device: int | None = Field(default=None)
    audio_output_device: int | None = Field(default=None)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Learner interface language ("en" or "zh")
    language: str = Field(default="en")


    @property
    def audio_chunk_size(self) -> int:
        """Number of samples per audio chunk."""
        return int(self.audio_sample_rate * self.audio_chunk_duration_ms / 1000)

    @property
    def effective_speech_api_key(self) -> str:
        return self.speech_api_key or self.llm_api_key

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()
