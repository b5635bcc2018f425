# sitescout/services/llm_service.py
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from sitescout.core.config import Settings
from sitescout.core.errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

SEARCH_TOOL = types.Tool(google_search=types.GoogleSearch())


@dataclass
class ModelReply:
    """The parts of a generate_content response the rest of the app consumes."""
    text: Optional[str]
    grounding_chunks: List[Any] = field(default_factory=list)
    search_entry_point: bool = False


def to_model_reply(response: Any) -> ModelReply:
    """
    Flattens a google-genai response into a ModelReply.
    Only the first candidate carries the grounding metadata we use.
    """
    candidates = getattr(response, "candidates", None) or []
    metadata = getattr(candidates[0], "grounding_metadata", None) if candidates else None
    chunks = list(getattr(metadata, "grounding_chunks", None) or [])
    entry_point = getattr(metadata, "search_entry_point", None)
    return ModelReply(
        text=getattr(response, "text", None),
        grounding_chunks=chunks,
        search_entry_point=bool(entry_point),
    )


class GeminiClient:
    """
    One configured google-genai client, created at start-up and shared by every request.
    Both call shapes run with the Google Search grounding tool enabled.
    """

    def __init__(self, api_key: str, analysis_model: str, chat_model: str):
        self._client = genai.Client(api_key=api_key)
        self.analysis_model = analysis_model
        self.chat_model = chat_model

    async def generate_analysis(self, prompt: str, schema: types.Schema) -> ModelReply:
        """Schema-constrained call used for the main report."""
        config = types.GenerateContentConfig(
            tools=[SEARCH_TOOL],
            response_mime_type="application/json",
            response_schema=schema,
        )
        return await self._generate(self.analysis_model, prompt, config)

    async def generate_answer(self, prompt: str) -> ModelReply:
        """Free-form call used for follow-up questions."""
        config = types.GenerateContentConfig(tools=[SEARCH_TOOL])
        return await self._generate(self.chat_model, prompt, config)

    async def _generate(self, model: str, prompt: str, config: types.GenerateContentConfig) -> ModelReply:
        try:
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as e:
            logger.error("Gemini call to %s failed with %s: %s", model, e.code, e.message)
            raise TransportError(e.message or "") from e
        except httpx.HTTPError as e:
            logger.error("Network error while calling Gemini model %s: %s", model, e)
            raise TransportError(str(e)) from e
        return to_model_reply(response)


def build_client(settings: Settings) -> GeminiClient:
    """
    Builds the shared client.

    Raises:
        ConfigurationError: If no API key is configured.
    """
    if not settings.GEMINI_API_KEY:
        raise ConfigurationError()
    return GeminiClient(
        api_key=settings.GEMINI_API_KEY,
        analysis_model=settings.ANALYSIS_MODEL,
        chat_model=settings.CHAT_MODEL,
    )
