"""
Brain Dump Categorization Service

Sends one free-text submission to the configured LLM provider and turns
the reply into a list of ProcessedItem.

Providers:
- deepseek: OpenAI-compatible /chat/completions over httpx (default)
- gemini: google.genai generate_content

``categorize`` never raises. Missing credentials, transport errors,
non-2xx replies and unparseable output all produce the single fallback
note carrying the original text. There is no retry.
"""

import asyncio
import json
import logging
import os
import re
from typing import Any, List, Optional

import httpx
from google import genai
from google.genai import types
from pydantic import ValidationError as PydanticValidationError

from braindump.config.settings import Settings
from braindump.domain.categories import ProcessedItem, fallback_item
from braindump.infrastructure.exceptions import AIServiceError, ConfigurationError


logger = logging.getLogger(__name__)


SYSTEM_PROMPT_PATH = os.path.join(os.path.dirname(__file__), "SYSTEM_PROMPT.md")

_LEADING_FENCE = re.compile(r"^```(json)?\s*")
_TRAILING_FENCE = re.compile(r"\s*```$")


def load_system_prompt() -> str:
    """Load the system prompt from the markdown file."""
    with open(SYSTEM_PROMPT_PATH, "r", encoding="utf-8") as f:
        return f.read().strip()


def strip_code_fence(content: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    text = content.strip()
    text = _LEADING_FENCE.sub("", text)
    return _TRAILING_FENCE.sub("", text)


def parse_completion(content: Optional[str]) -> List[ProcessedItem]:
    """
    Parse model output into items.

    Accepts ``{"items": [...]}`` or a bare JSON array. Entries that are
    not objects or have no usable text are skipped.

    Raises:
        ValueError: If no valid item can be extracted
    """
    if not isinstance(content, str) or not content.strip():
        raise ValueError("Empty completion")

    data: Any = json.loads(strip_code_fence(content))
    if isinstance(data, dict):
        data = data.get("items")
    if not isinstance(data, list):
        raise ValueError("Completion has no items array")

    items = []
    for raw in data:
        if not isinstance(raw, dict):
            continue
        try:
            item = ProcessedItem.model_validate(raw)
        except PydanticValidationError:
            continue
        if item.refined_text.strip():
            items.append(item)

    if not items:
        raise ValueError("Completion contained no usable items")
    return items


class CategorizationService:
    """
    Categorization gateway over DeepSeek or Gemini.

    Args:
        settings: Application settings (provider, keys, model, limits)
        transport: Optional httpx transport, used by tests to stub DeepSeek
        genai_client: Optional pre-built google.genai client
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        genai_client: Optional[genai.Client] = None,
    ):
        self._settings = settings
        self._transport = transport
        self._genai_client = genai_client
        self._system_prompt = load_system_prompt()

    @property
    def provider(self) -> str:
        return self._settings.llm_provider

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.llm_api_key) or self._genai_client is not None

    async def categorize(self, text: str) -> List[ProcessedItem]:
        """
        Split and categorize one submission.

        Returns:
            At least one item for any input
        """
        try:
            content = await self._complete(text)
            items = parse_completion(content)
        except ConfigurationError as e:
            logger.warning(f"Categorization skipped, {e.message}; using fallback")
            return [fallback_item(text)]
        except AIServiceError as e:
            logger.warning(f"Categorization call failed ({e.message}); using fallback")
            return [fallback_item(text)]
        except (ValueError, TypeError, AttributeError, RecursionError) as e:
            logger.warning(f"Unparseable categorization reply ({e}); using fallback")
            return [fallback_item(text)]

        logger.info(f"Categorized submission into {len(items)} item(s) via {self.provider}")
        return items

    async def _complete(self, text: str) -> str:
        if not self.is_configured:
            key = "GOOGLE_API_KEY" if self.provider == "gemini" else "DEEPSEEK_API_KEY"
            raise ConfigurationError(f"{key} not configured", missing_keys=[key])

        if self.provider == "gemini":
            return await self._complete_gemini(text)
        return await self._complete_deepseek(text)

    # =========================================================================
    # Providers
    # =========================================================================

    async def _complete_deepseek(self, text: str) -> str:
        settings = self._settings
        try:
            async with httpx.AsyncClient(
                base_url=settings.deepseek_base_url,
                timeout=settings.ai_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    "/chat/completions",
                    headers={
                        "Authorization": f"Bearer {settings.deepseek_api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": settings.deepseek_model,
                        "messages": [
                            {"role": "system", "content": self._system_prompt},
                            {"role": "user", "content": text},
                        ],
                        "temperature": settings.ai_temperature,
                        "max_tokens": settings.ai_max_tokens,
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise AIServiceError(
                f"DeepSeek API error: {e.response.status_code}",
                model=settings.deepseek_model,
                operation="categorize",
                original_error=e,
            )
        except (httpx.HTTPError, ValueError) as e:
            raise AIServiceError(
                f"DeepSeek request failed: {e.__class__.__name__}",
                model=settings.deepseek_model,
                operation="categorize",
                original_error=e,
            )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return ""
        return content if isinstance(content, str) else ""

    def _gemini(self) -> genai.Client:
        if self._genai_client is None:
            self._genai_client = genai.Client(api_key=self._settings.google_api_key)
        return self._genai_client

    async def _complete_gemini(self, text: str) -> str:
        settings = self._settings
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    lambda: self._gemini().models.generate_content(
                        model=settings.gemini_model,
                        contents=text,
                        config=types.GenerateContentConfig(
                            system_instruction=self._system_prompt,
                            temperature=settings.ai_temperature,
                            max_output_tokens=settings.ai_max_tokens,
                            response_mime_type="application/json",
                        ),
                    )
                ),
                timeout=settings.ai_timeout_seconds,
            )
        except Exception as e:
            raise AIServiceError(
                f"Gemini request failed: {e.__class__.__name__}",
                model=settings.gemini_model,
                operation="categorize",
                original_error=e,
            )
        return response.text or ""
