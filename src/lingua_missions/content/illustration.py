"""Illustration generation for exercise image prompts."""

import base64
import binascii

import structlog
from openai import AsyncOpenAI, OpenAIError

from lingua_missions.errors import IllustrationFailure

logger = structlog.get_logger()

ART_DIRECTION = (
    'A kid-friendly, vibrant, 3D cartoon style illustration representing: "{subject}". '
    "Sci-fi, adventure or fantasy art style. No text. High quality, colorful, "
    "suitable for a game."
)


def art_directed(subject: str) -> str:
    return ART_DIRECTION.format(subject=subject)


class LLMIllustrationProvider:
    """Turns an image prompt into PNG bytes via the images endpoint.

    Args:
        api_key: API key for the endpoint.
        model: Image model name.
        base_url: Endpoint base URL. Defaults to OpenAI when None.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "imagen-3.0-generate-002",
        base_url: str | None = None,
    ):
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model

    async def request(self, prompt: str) -> bytes | None:
        try:
            response = await self.client.images.generate(
                model=self.model,
                prompt=art_directed(prompt),
                n=1,
                response_format="b64_json",
            )
        except OpenAIError as e:
            logger.warning("illustration_request_failed", error=str(e))
            raise IllustrationFailure(str(e)) from e

        if not response.data or not response.data[0].b64_json:
            return None
        try:
            return base64.b64decode(response.data[0].b64_json)
        except binascii.Error as e:
            raise IllustrationFailure("illustration payload is not valid base64") from e
