"""
Generative-AI Estimate Sources - Text-completion adapters.

The AI tier asks a language model for a single number. The completion is
parsed strictly: anything but one number (including the model's own
"null") is a malformed response, and the result still goes through the
indicator's plausibility range like any market API value.

Two wire formats are covered:
- OpenAI-compatible chat completions (OpenAI, Groq, xAI)
- Anthropic messages
"""

import logging
import re
from datetime import datetime
from typing import Any, Optional

import aiohttp

from indicator_sources.base import BaseIndicatorSource
from indicator_sources.exceptions import MalformedResponseError
from indicator_sources.models import IndicatorRequest, SourceKind, SourceMetadata


logger = logging.getLogger(__name__)


SYSTEM_PROMPT = "You are a financial data expert. You answer with a single number only."

PROMPT_TEMPLATE = """Provide ONLY the current numeric value for: {indicator}.

Specific requirement: {requirement}

CRITICAL RULES:
- Return ONLY a single number, no text, no units, no explanation
- Use the most recent available data (within last 24 hours if possible)
- If data is unavailable, return "null"
- Examples: "34.5" or "150" or "0.89" or "null"

Value:"""

_NUMBER_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_NULL_ANSWERS = {"", "null", "none", "n/a", "na", "unknown"}


def build_prompt(request: IndicatorRequest) -> str:
    """Render the single-number prompt for an indicator."""
    return PROMPT_TEMPLATE.format(
        indicator=request.param("prompt", request.indicator_name),
        requirement=request.param("requirement", "Current value"),
    )


def parse_numeric_completion(text: Optional[str], source_name: Optional[str] = None) -> float:
    """
    Parse a completion that must be exactly one number.

    Surrounding quotes, whitespace, a trailing period, thousands
    separators, a leading "$" and a trailing "%" are tolerated. Anything
    else (words, several numbers, "null") raises MalformedResponseError.
    """
    if text is None:
        raise MalformedResponseError("Empty completion", source_name=source_name)

    cleaned = text.strip().strip("\"'`").strip()
    if cleaned.lower() in _NULL_ANSWERS:
        raise MalformedResponseError(
            f"Model returned no value ({text!r})",
            source_name=source_name,
            raw_data=text,
        )

    cleaned = cleaned.rstrip(".").lstrip("$").rstrip("%").replace(",", "").strip()
    if not _NUMBER_PATTERN.fullmatch(cleaned):
        raise MalformedResponseError(
            f"Completion is not a single number: {text!r}",
            source_name=source_name,
            raw_data=text,
        )
    return float(cleaned)


class OpenAICompatibleEstimateSource(BaseIndicatorSource):
    """
    Chat-completions adapter for OpenAI and API-compatible providers.

    One class serves several providers; name, endpoint, model and
    credential variable are constructor arguments.
    """

    KIND = SourceKind.GENERATIVE_AI
    DEFAULT_TIMEOUT = 25.0
    TEMPERATURE = 0.1
    MAX_TOKENS = 50

    def __init__(
        self,
        name: str,
        display_name: str,
        base_url: str,
        model: str,
        credential_env: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        self._name = name
        self._display_name = display_name
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._max_concurrency = max_concurrency
        # Instance attribute shadows the class default before the base reads it
        self.CREDENTIAL_ENV = credential_env
        super().__init__(api_key, timeout, session)

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> str:
        return self._model

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name=self._display_name,
            kind=self.KIND,
            requires_auth=True,
            credential_env=self.CREDENTIAL_ENV,
            base_url=self._base_url,
            max_concurrency=self._max_concurrency,
            tags=("ai", self._model),
        )

    async def fetch_raw(
        self,
        request: IndicatorRequest,
    ) -> tuple[float, Optional[datetime]]:
        data = await self._make_request(
            "POST",
            f"{self._base_url}/chat/completions",
            headers={"Authorization": f"Bearer {self._api_key}"},
            json_body={
                "model": self._model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(request)},
                ],
                "temperature": self.TEMPERATURE,
                "max_tokens": self.MAX_TOKENS,
            },
        )
        text = self._completion_text(data)
        logger.debug(f"[{self.name}] {request.indicator_id} completion: {text!r}")
        # AI answers carry no observation time
        return parse_numeric_completion(text, self.name), None

    def _completion_text(self, data: Any) -> Optional[str]:
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(
                "Completion payload missing choices[0].message.content",
                source_name=self.name,
                raw_data=data,
                original_error=e,
            )


class AnthropicEstimateSource(BaseIndicatorSource):
    """Anthropic messages API adapter."""

    BASE_URL = "https://api.anthropic.com/v1"
    API_VERSION = "2023-06-01"
    CREDENTIAL_ENV = "ANTHROPIC_API_KEY"
    KIND = SourceKind.GENERATIVE_AI
    DEFAULT_TIMEOUT = 25.0
    TEMPERATURE = 0.1
    MAX_TOKENS = 50

    def __init__(
        self,
        model: str = "claude-3-5-haiku-latest",
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(api_key, timeout, session)
        self._model = model

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def model(self) -> str:
        return self._model

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name="Anthropic",
            kind=self.KIND,
            requires_auth=True,
            credential_env=self.CREDENTIAL_ENV,
            base_url=self.BASE_URL,
            documentation_url="https://docs.anthropic.com/en/api/messages",
            tags=("ai", self._model),
        )

    async def fetch_raw(
        self,
        request: IndicatorRequest,
    ) -> tuple[float, Optional[datetime]]:
        data = await self._make_request(
            "POST",
            f"{self.BASE_URL}/messages",
            headers={
                "x-api-key": self._api_key,
                "anthropic-version": self.API_VERSION,
            },
            json_body={
                "model": self._model,
                "system": SYSTEM_PROMPT,
                "messages": [{"role": "user", "content": build_prompt(request)}],
                "temperature": self.TEMPERATURE,
                "max_tokens": self.MAX_TOKENS,
            },
        )
        text = self._completion_text(data)
        logger.debug(f"[{self.name}] {request.indicator_id} completion: {text!r}")
        return parse_numeric_completion(text, self.name), None

    def _completion_text(self, data: Any) -> Optional[str]:
        try:
            blocks = data["content"]
            return "".join(block.get("text", "") for block in blocks if block.get("type") == "text")
        except (KeyError, TypeError, AttributeError) as e:
            raise MalformedResponseError(
                "Messages payload missing content blocks",
                source_name=self.name,
                raw_data=data,
                original_error=e,
            )
