"""
Generation Client

Sends the analysis prompt to a hosted model through an OpenAI-compatible
chat completions API (DeepSeek by default) and turns the answer into a
schema-conformant analysis object.

Exactly one completion request is made per call; there is no retry.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx
from openai import APIError, AsyncOpenAI

from .config import TradeSettings
from .errors import GenerationSchemaError, GenerationServiceError, NoObjectGeneratedError
from .prompt import SYSTEM_PROMPT
from .schemas import parse_model_json, trade_analysis_json_schema, validate_trade_analysis

logger = logging.getLogger(__name__)


def extract_json_text(text: str) -> str:
    """Strip a markdown code fence if the model added one anyway."""
    stripped = text.strip()
    if "```json" in stripped:
        return stripped.split("```json", 1)[1].split("```", 1)[0].strip()
    if stripped.startswith("```"):
        return stripped.split("```")[1].strip()
    return stripped


class TradeAnalysisGenerator:
    """Structured trade analysis generation against a hosted model."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.deepseek.com",
        model: str = "deepseek-chat",
        max_output_tokens: int = 4000,
        temperature: float = 0.3,
        timeout: float = 120.0,
        strict: bool = False,
        default_currency: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.strict = strict
        self.default_currency = default_currency
        self._client = client

    @classmethod
    def from_settings(cls, settings: TradeSettings) -> "TradeAnalysisGenerator":
        return cls(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            max_output_tokens=settings.llm_max_output_tokens,
            temperature=settings.llm_temperature,
            timeout=settings.llm_timeout_seconds,
            strict=settings.strict_schema,
            default_currency=settings.default_currency,
        )

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise GenerationServiceError("LLM API key is not configured (set LLM_API_KEY)")
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                http_client=httpx.AsyncClient(timeout=self.timeout),
                max_retries=0,
            )
        return self._client

    def _system_message(self, system_prompt: str) -> str:
        schema = json.dumps(trade_analysis_json_schema())
        return f"{system_prompt}\n\nThe JSON object must satisfy this JSON schema:\n{schema}"

    async def generate(self, prompt: str, system_prompt: str = SYSTEM_PROMPT) -> Dict[str, Any]:
        """
        Generate one trade analysis.

        Returns
        -------
        Dict[str, Any]
            The validated analysis envelope.

        Raises
        ------
        NoObjectGeneratedError
            If the model answered but the answer is not a conformant object.
        GenerationServiceError
            If the request to the generation service fails.
        """
        logger.info(f"Requesting trade analysis from {self.model}")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self._system_message(system_prompt)},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature,
                max_tokens=self.max_output_tokens,
            )
        except APIError as e:
            raise GenerationServiceError(f"{type(e).__name__}: {e}") from e

        choice = response.choices[0] if response.choices else None
        text = choice.message.content if choice else None
        finish_reason = choice.finish_reason if choice else None
        usage = response.usage.model_dump() if response.usage else {}

        if not text or not text.strip():
            raise NoObjectGeneratedError(
                text=text,
                cause=GenerationSchemaError("Model returned no content"),
                finish_reason=finish_reason,
                usage=usage,
            )

        try:
            candidate = parse_model_json(extract_json_text(text))
        except ValueError as e:
            raise NoObjectGeneratedError(text=text, cause=e, finish_reason=finish_reason, usage=usage) from e

        try:
            analysis = validate_trade_analysis(
                candidate,
                strict=self.strict,
                default_currency=self.default_currency,
            )
        except GenerationSchemaError as e:
            raise NoObjectGeneratedError(text=text, cause=e, finish_reason=finish_reason, usage=usage) from e

        logger.info(f"Trade analysis generated (finish_reason={finish_reason}, usage={usage})")

        return analysis
