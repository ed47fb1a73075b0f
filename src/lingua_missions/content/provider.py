"""Exercise content generation over an OpenAI-compatible chat endpoint."""

import json
from typing import Any

import structlog
from openai import AsyncOpenAI, OpenAIError

from lingua_missions.content.prompts import SYSTEM_PROMPT, build_prompt
from lingua_missions.errors import ContentProviderFailure, MalformedExercise
from lingua_missions.models.exercise import ExerciseDefinition, ExerciseKind, parse_exercise
from lingua_missions.session.ports import ContentRequest

logger = structlog.get_logger()


class LLMContentProvider:
    """Generates exercises with a chat model in JSON mode.

    Args:
        api_key: API key for the endpoint.
        model: Chat model name.
        base_url: Endpoint base URL. Defaults to OpenAI when None.
        temperature: Sampling temperature.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str | None = None,
        temperature: float = 0.7,
    ):
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.temperature = temperature

    async def generate(self, request: ContentRequest) -> ExerciseDefinition:
        """Request, parse and validate one exercise instance.

        Raises:
            ContentProviderFailure: On transport errors, empty replies or invalid JSON.
            MalformedExercise: When the JSON does not satisfy the kind's contract.
        """
        prompt = build_prompt(request.kind, request.curriculum, request.params)
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            logger.error("content_request_failed", kind=request.kind.value, error=str(e))
            raise ContentProviderFailure(f"{request.kind.value}: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ContentProviderFailure(f"{request.kind.value}: empty response")
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error("content_parse_failed", kind=request.kind.value, error=str(e))
            raise ContentProviderFailure(f"{request.kind.value}: invalid JSON") from e

        payload = _shape_payload(request, payload)
        exercise = parse_exercise(request.kind, payload)
        logger.info(
            "content_generated",
            kind=request.kind.value,
            difficulty=request.difficulty,
            has_image_prompt=exercise.image_prompt is not None,
        )
        return exercise


def _shape_payload(request: ContentRequest, payload: Any) -> dict[str, Any]:
    """Adapt the raw reply to the exercise model's shape."""
    kind = request.kind
    if kind == ExerciseKind.VOCABULARY:
        # Models sometimes return the bare word array
        if isinstance(payload, list):
            payload = {"words": payload}
        if isinstance(payload, dict):
            payload.setdefault("topic", request.params.get("topic") or "Space")
    if not isinstance(payload, dict):
        raise MalformedExercise(f"{kind.value}: expected a JSON object")
    if kind == ExerciseKind.GRAMMAR_CHECK:
        payload["original"] = request.params.get("sentence", "")
    return payload
