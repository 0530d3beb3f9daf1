"""
Google Gemini vision client.

Thin async wrapper around google-generativeai that sends one prompt plus one
inline image and returns the reply text. Upstream exceptions are translated
into VisionModelError subclasses so callers can tell credential, quota and
other failures apart without parsing SDK types.
"""
from typing import Optional
import logging

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from pydantic import BaseModel, ConfigDict

from plantdx.api.schemas import DecodedImage

logger = logging.getLogger(__name__)


class VisionModelError(Exception):
    """Any failure reported by the upstream vision model."""
    pass


class VisionAuthError(VisionModelError):
    """Credential missing, invalid or not permitted for the model."""
    pass


class VisionQuotaError(VisionModelError):
    """Rate limit or quota exhausted upstream."""
    pass


class GenerationSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature: float = 0.4
    top_p: float = 0.95
    top_k: int = 40
    max_output_tokens: int = 2048


def _mentions_api_key(exc: Exception) -> bool:
    return "api key" in str(exc).lower()


class GeminiVisionClient:
    """
    Vision-language model client backed by Gemini.

    Usage:
        client = GeminiVisionClient(api_key, "gemini-2.0-flash")
        text = await client.generate(prompt, image, GenerationSettings())
    """

    def __init__(self, api_key: Optional[str], model_id: str):
        self.model_id = model_id
        self._api_key = api_key or None
        if self._api_key:
            genai.configure(api_key=self._api_key)
            logger.info(f"Gemini client initialized (model={model_id})")
        else:
            logger.warning("GEMINI_API_KEY not set - diagnosis tool will not work")

    @property
    def configured(self) -> bool:
        return self._api_key is not None

    async def generate(
        self,
        prompt: str,
        image: DecodedImage,
        generation: GenerationSettings,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Send prompt + image and return the model's text.

        Raises:
            VisionAuthError, VisionQuotaError, VisionModelError
        """
        if not self.configured:
            raise VisionAuthError("Gemini API key not configured")

        model = genai.GenerativeModel(
            self.model_id,
            generation_config=genai.GenerationConfig(
                temperature=generation.temperature,
                top_p=generation.top_p,
                top_k=generation.top_k,
                max_output_tokens=generation.max_output_tokens,
            ),
        )
        request_options = {"timeout": timeout} if timeout else None

        try:
            response = await model.generate_content_async(
                [prompt, {"mime_type": image.mime_type, "data": image.data}],
                request_options=request_options,
            )
        except (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied) as e:
            raise VisionAuthError(str(e)) from e
        except (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests) as e:
            raise VisionQuotaError(str(e)) from e
        except google_exceptions.InvalidArgument as e:
            if _mentions_api_key(e):
                raise VisionAuthError(str(e)) from e
            raise VisionModelError(str(e)) from e
        except google_exceptions.GoogleAPIError as e:
            raise VisionModelError(str(e)) from e

        try:
            text = response.text
        except ValueError as e:
            # blocked prompt or no candidate parts
            raise VisionModelError(f"empty response: {e}") from e

        if not text or not text.strip():
            raise VisionModelError("empty response")
        return text
