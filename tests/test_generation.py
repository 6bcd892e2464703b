"""Tests for the generation client, using a fake OpenAI-compatible client."""

import asyncio
import json

import httpx
import openai
import pytest

from conftest import FakeCompletions, fake_generator
from engine.config import TradeSettings
from engine.errors import GenerationServiceError, NoObjectGeneratedError
from engine.generation import TradeAnalysisGenerator, extract_json_text


class TestExtractJsonText:

    def test_plain(self):
        assert extract_json_text('  {"a": 1} ') == '{"a": 1}'

    def test_json_fence(self):
        assert extract_json_text('Here:\n```json\n{"a": 1}\n```\nDone') == '{"a": 1}'

    def test_bare_fence(self):
        assert extract_json_text('```\n{"a": 1}\n```') == '{"a": 1}'


class TestGenerate:

    def test_conformant_output(self, full_analysis):
        completions = FakeCompletions(content=json.dumps(full_analysis))
        result = asyncio.run(fake_generator(completions).generate("prompt"))
        assert result == full_analysis

    def test_single_call_with_json_mode(self, full_analysis):
        completions = FakeCompletions(content=json.dumps(full_analysis))
        generator = fake_generator(completions, model="deepseek-chat", max_output_tokens=1234)
        asyncio.run(generator.generate("analyze AAPL"))

        assert len(completions.calls) == 1
        call = completions.calls[0]
        assert call["model"] == "deepseek-chat"
        assert call["max_tokens"] == 1234
        assert call["response_format"] == {"type": "json_object"}
        assert call["messages"][1] == {"role": "user", "content": "analyze AAPL"}
        assert "JSON schema" in call["messages"][0]["content"]

    def test_defaults_filled(self, minimal_analysis):
        completions = FakeCompletions(content=json.dumps(minimal_analysis))
        result = asyncio.run(fake_generator(completions, default_currency="IDR").generate("p"))
        assert result["trade_analysis"]["simple_conclusion"]["currency"] == "IDR"
        assert result["trade_analysis"]["technical_indicators"]["RSI"] == 50

    def test_strict_rejects_minimal(self, minimal_analysis):
        text = json.dumps(minimal_analysis)
        completions = FakeCompletions(content=text, finish_reason="stop")
        with pytest.raises(NoObjectGeneratedError) as exc_info:
            asyncio.run(fake_generator(completions, strict=True).generate("p"))

        error = exc_info.value
        assert error.text == text
        assert error.path == "trade_analysis.market_conditions.support_levels"
        assert error.finish_reason == "stop"
        assert error.usage["total_tokens"] == 1500

    def test_schema_mismatch_keeps_raw_text(self, full_analysis):
        full_analysis["trade_analysis"]["simple_conclusion"]["decision"] = "Hold"
        text = json.dumps(full_analysis)
        completions = FakeCompletions(content=text)
        with pytest.raises(NoObjectGeneratedError) as exc_info:
            asyncio.run(fake_generator(completions).generate("p"))
        assert exc_info.value.text == text

    def test_prose_answer(self):
        completions = FakeCompletions(content="I think you should buy.", finish_reason="length")
        with pytest.raises(NoObjectGeneratedError) as exc_info:
            asyncio.run(fake_generator(completions).generate("p"))
        assert exc_info.value.text == "I think you should buy."
        assert exc_info.value.finish_reason == "length"

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity", "1e999"])
    def test_non_finite_number_rejected(self, full_analysis, literal):
        text = json.dumps(full_analysis).replace('"RSI": 52.4', f'"RSI": {literal}')
        assert literal in text
        completions = FakeCompletions(content=text)
        with pytest.raises(NoObjectGeneratedError) as exc_info:
            asyncio.run(fake_generator(completions).generate("p"))
        assert exc_info.value.text == text

    def test_empty_answer(self):
        completions = FakeCompletions(content="")
        with pytest.raises(NoObjectGeneratedError) as exc_info:
            asyncio.run(fake_generator(completions).generate("p"))
        assert not exc_info.value.text

    def test_api_error_wrapped(self):
        request = httpx.Request("POST", "https://api.deepseek.com/chat/completions")
        completions = FakeCompletions(error=openai.APIConnectionError(request=request))
        with pytest.raises(GenerationServiceError):
            asyncio.run(fake_generator(completions).generate("p"))
        assert len(completions.calls) == 1

    def test_missing_api_key(self):
        generator = TradeAnalysisGenerator(api_key=None)
        with pytest.raises(GenerationServiceError):
            asyncio.run(generator.generate("p"))


class TestFromSettings:

    def test_settings_mapped(self):
        settings = TradeSettings(
            llm_api_key="k",
            llm_model="gpt-4o",
            llm_base_url="https://api.openai.com/v1",
            llm_max_output_tokens=2000,
            strict_schema=True,
            default_currency="USD",
        )
        generator = TradeAnalysisGenerator.from_settings(settings)
        assert generator.api_key == "k"
        assert generator.model == "gpt-4o"
        assert generator.base_url == "https://api.openai.com/v1"
        assert generator.max_output_tokens == 2000
        assert generator.strict is True
        assert generator.default_currency == "USD"
