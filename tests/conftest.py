"""Shared fixtures: sample analyses and fake collaborators."""

import copy
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from engine.demo import DEMO_ANALYSIS
from engine.generation import TradeAnalysisGenerator


class StaticGenerator:
    """Returns a fixed result and records the prompts it was given."""

    def __init__(self, result):
        self.result = result
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        return copy.deepcopy(self.result)


class RaisingGenerator:
    """Raises the given exception on every call."""

    def __init__(self, error):
        self.error = error
        self.calls = 0

    async def generate(self, prompt):
        self.calls += 1
        raise self.error


class FakeUsage:

    def model_dump(self):
        return {"prompt_tokens": 900, "completion_tokens": 600, "total_tokens": 1500}


class FakeCompletions:
    """Chat completions endpoint returning canned content."""

    def __init__(self, content=None, finish_reason="stop", error=None):
        self.content = content
        self.finish_reason = finish_reason
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        choice = SimpleNamespace(message=message, finish_reason=self.finish_reason)
        return SimpleNamespace(choices=[choice], usage=FakeUsage())


def fake_generator(completions, **kwargs):
    """A real TradeAnalysisGenerator wired to a fake completions client."""
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return TradeAnalysisGenerator(api_key="test-key", client=client, **kwargs)


@pytest.fixture
def full_analysis():
    """A fully-populated, schema-conformant analysis envelope."""
    analysis = copy.deepcopy(DEMO_ANALYSIS)
    analysis["trade_analysis"]["asset"] = "AAPL"
    analysis["trade_analysis"]["simple_conclusion"]["currency"] = "USD"
    return analysis


@pytest.fixture
def minimal_analysis():
    """Only the fields that are required in every mode."""
    return {
        "trade_analysis": {
            "asset": "BBCA.JK",
            "date_time": "2025-09-22 10:00:00",
            "market_conditions": {"trend": "uptrend"},
            "technical_indicators": {
                "moving_averages": {},
                "MACD": {},
                "bollinger_bands": {},
            },
            "trade_plan": {
                "direction": "long",
                "entry_zone": {"min": 9000, "max": 9200},
                "stop_loss": 8800,
            },
            "simple_conclusion": {
                "summary": "Uptrend intact above MA50.",
                "entry": "9000-9200",
                "stop_loss": 8800,
                "decision": "Buy",
            },
        }
    }


@pytest.fixture
def make_client():
    """Build a TestClient with the generator (and optionally fetcher) replaced."""
    import main

    def _make(generator, fetcher=None):
        main.app.dependency_overrides[main.get_generator] = lambda: generator
        main.app.dependency_overrides[main.get_market_fetcher] = lambda: fetcher
        return TestClient(main.app)

    yield _make
    main.app.dependency_overrides.clear()
