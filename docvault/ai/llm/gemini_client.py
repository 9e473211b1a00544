"""
Google Gemini LLM Client (New SDK)

Integration with Google's Gemini API using the google-genai package.

The processing pipeline needs two things from the model:
- describe_image: what is in this picture (and any visible text)
- summarize_text: a summary of text extracted from a document

AI is optional. Without GEMINI_API_KEY, get_ai_client() returns None
and the OCR handler falls back to local OCR and placeholder text.
"""

import logging
from typing import Optional

from google import genai
from google.genai import errors, types

from docvault.core.config import settings
from docvault.ai.prompts import (
    IMAGE_DESCRIPTION_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    build_summary_prompt,
)

logger = logging.getLogger(__name__)


def is_quota_error(error: Exception) -> bool:
    """
    True for rate-limit / quota failures (HTTP 429, RESOURCE_EXHAUSTED).

    These get a dedicated placeholder so users know to try later
    rather than that their document is broken.
    """
    if isinstance(error, errors.APIError) and error.code == 429:
        return True
    message = str(error)
    return "429" in message or "quota" in message.lower() or "RESOURCE_EXHAUSTED" in message


class GeminiClient:
    """
    Thin async wrapper around genai.Client for processing jobs.

    Usage:
        client = GeminiClient(api_key="...")
        description = await client.describe_image(png_bytes, "image/png")
        summary = await client.summarize_text(long_text)
    """

    def __init__(self, api_key: str, model: Optional[str] = None):
        self.model = model or settings.GEMINI_MODEL
        self._client = genai.Client(api_key=api_key)
        logger.info(f"Gemini client initialized (model: {self.model})")

    # ============================================================
    # IMAGE DESCRIPTION
    # ============================================================

    async def describe_image(self, image_bytes: bytes, mime_type: str) -> str:
        """
        Describe an image in 2-4 sentences and transcribe visible text.

        Args:
            image_bytes: Raw image bytes
            mime_type: image/jpeg, image/png, image/gif or image/webp

        Returns:
            Description text (may be empty if the model returned nothing)
        """
        config = types.GenerateContentConfig(
            max_output_tokens=settings.LLM_MAX_TOKENS,
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=[
                    IMAGE_DESCRIPTION_PROMPT,
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                ],
                config=config,
            )
        except Exception as e:
            logger.error(f"Gemini vision error: {e}")
            raise

        text = response.text or ""
        logger.info(f"[Gemini] Generated image description: {len(text)} characters")
        return text

    # ============================================================
    # SUMMARIZATION
    # ============================================================

    async def summarize_text(self, text: str) -> str:
        """
        Summarize extracted document text.

        Returns:
            Summary text (may be empty if the model returned nothing)
        """
        config = types.GenerateContentConfig(
            max_output_tokens=settings.SUMMARY_MAX_TOKENS,
            system_instruction=SUMMARY_SYSTEM_PROMPT,
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=build_summary_prompt(text),
                config=config,
            )
        except Exception as e:
            logger.error(f"Gemini summarization error: {e}")
            raise

        summary = response.text or ""
        logger.info(f"[Gemini] Generated text summary: {len(summary)} characters")
        return summary


# ============================================================
# CLIENT INITIALIZATION
# ============================================================

_client: Optional[GeminiClient] = None


def get_ai_client() -> Optional[GeminiClient]:
    """
    Get the shared Gemini client, or None if no API key is configured.
    """
    global _client

    if not settings.GEMINI_API_KEY:
        return None

    if _client is None:
        _client = GeminiClient(api_key=settings.GEMINI_API_KEY)

    return _client
