"""HTTP-level tests for the FastAPI application."""

import json

import pytest

from conftest import FakeCompletions, RaisingGenerator, StaticGenerator, fake_generator
from engine.errors import GenerationSchemaError, GenerationServiceError, NoObjectGeneratedError

MISSING = {"error": "Asset and investment amount are required"}


class TestAnalyzeTradeEndpoint:

    def test_conformant_scenario(self, make_client, full_analysis):
        client = make_client(StaticGenerator(full_analysis))
        response = client.post("/api/analyze-trade", json={"asset": "AAPL", "investment": 1000000})

        assert response.status_code == 200
        assert response.json() == full_analysis

    def test_empty_body(self, make_client, full_analysis):
        client = make_client(StaticGenerator(full_analysis))
        response = client.post("/api/analyze-trade", json={})

        assert response.status_code == 400
        assert response.json() == MISSING

    @pytest.mark.parametrize("body", [
        {"asset": "AAPL"},
        {"investment": 1000},
        {"asset": "", "investment": 1000},
        {"asset": "AAPL", "investment": 0},
        {"asset": "AAPL", "investment": "lots"},
        {"asset": "AAPL", "investment": None, "extra": True},
    ])
    def test_missing_fields(self, make_client, full_analysis, body):
        generator = StaticGenerator(full_analysis)
        client = make_client(generator)
        response = client.post("/api/analyze-trade", json=body)

        assert response.status_code == 400
        assert response.json() == MISSING
        assert generator.prompts == []

    def test_invalid_json_body(self, make_client, full_analysis):
        client = make_client(StaticGenerator(full_analysis))
        response = client.post(
            "/api/analyze-trade",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == MISSING

    def test_recovered_from_raw_text(self, make_client):
        raw = {"trade_analysis": {"asset": "AAPL", "note": "partial"}}
        text = json.dumps(raw)
        error = NoObjectGeneratedError(text=text, cause=GenerationSchemaError("Field required", path="trade_analysis.date_time"))
        client = make_client(RaisingGenerator(error))

        response = client.post("/api/analyze-trade", json={"asset": "AAPL", "investment": 500})

        assert response.status_code == 200
        assert response.json() == json.loads(text)

    def test_unparseable_raw_text(self, make_client):
        text = "Here is my analysis: buy AAPL around 225."
        client = make_client(RaisingGenerator(NoObjectGeneratedError(text=text)))

        response = client.post("/api/analyze-trade", json={"asset": "AAPL", "investment": 500})

        assert response.status_code == 200
        body = response.json()
        assert body["raw_text"] == text
        assert "error" in body
        assert "suggestion" in body

    def test_raw_text_with_nan_literal(self, make_client):
        text = '{"trade_analysis": {"asset": "AAPL", "RSI": NaN}}'
        client = make_client(RaisingGenerator(NoObjectGeneratedError(text=text)))

        response = client.post("/api/analyze-trade", json={"asset": "AAPL", "investment": 500})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        body = response.json()
        assert body["raw_text"] == text
        assert "suggestion" in body

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    def test_model_answer_with_non_finite_rsi(self, make_client, full_analysis, literal):
        text = json.dumps(full_analysis).replace('"RSI": 52.4', f'"RSI": {literal}')
        completions = FakeCompletions(content=text)
        client = make_client(fake_generator(completions))

        response = client.post("/api/analyze-trade", json={"asset": "AAPL", "investment": 500})

        assert response.status_code == 200
        body = response.json()
        assert body["raw_text"] == text
        assert body["error"] == "Failed to generate structured response"
        assert len(completions.calls) == 1

    def test_no_raw_text(self, make_client):
        client = make_client(RaisingGenerator(NoObjectGeneratedError(text=None)))
        response = client.post("/api/analyze-trade", json={"asset": "AAPL", "investment": 500})

        assert response.status_code == 500
        assert "error" in response.json()

    def test_network_error(self, make_client):
        client = make_client(RaisingGenerator(GenerationServiceError("APIConnectionError: Connection error.")))
        response = client.post("/api/analyze-trade", json={"asset": "AAPL", "investment": 500})

        assert response.status_code == 500
        body = response.json()
        assert "error" in body
        assert isinstance(body["details"], str)

    def test_unexpected_error(self, make_client):
        client = make_client(RaisingGenerator(RuntimeError("boom")))
        response = client.post("/api/analyze-trade", json={"asset": "AAPL", "investment": 500})

        assert response.status_code == 500
        assert response.json()["details"] == "boom"

    def test_fetcher_used_when_enabled(self, make_client, full_analysis):
        from engine.data_fetcher import MarketSnapshot

        generator = StaticGenerator(full_analysis)
        snapshot = MarketSnapshot(symbol="BTC-USDT", last_close=61500.0, last_volume=42, candles=[])
        client = make_client(generator, fetcher=lambda asset: snapshot)

        response = client.post("/api/analyze-trade", json={"asset": "BTC/USDT", "investment": 1000000})

        assert response.status_code == 200
        assert "Current price: 61500.0" in generator.prompts[0]


class TestReportEndpoints:

    def test_report_html(self, make_client, full_analysis):
        client = make_client(StaticGenerator(full_analysis))
        response = client.post("/api/analyze-trade/report", json={"asset": "AAPL", "investment": 1000000})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "AAPL Analysis" in response.text

    def test_report_failure_status_mirrors_json_route(self, make_client):
        client = make_client(RaisingGenerator(NoObjectGeneratedError(text=None)))
        response = client.post("/api/analyze-trade/report", json={"asset": "AAPL", "investment": 1})

        assert response.status_code == 500
        assert "Analysis Failed" in response.text

    def test_index_page(self, make_client, full_analysis):
        client = make_client(StaticGenerator(full_analysis))
        response = client.get("/")

        assert response.status_code == 200
        assert 'action="/analyze"' in response.text

    def test_form_submit(self, make_client, full_analysis):
        client = make_client(StaticGenerator(full_analysis))
        response = client.post("/analyze", data={"asset": "AAPL", "investment": "1000000"})

        assert response.status_code == 200
        assert "AAPL Analysis" in response.text

    def test_form_missing_field(self, make_client, full_analysis):
        client = make_client(StaticGenerator(full_analysis))
        response = client.post("/analyze", data={"asset": "AAPL"})

        assert response.status_code == 400
        assert "Asset and investment amount are required" in response.text
        assert 'value="AAPL"' in response.text

    def test_demo_page(self, make_client, full_analysis):
        client = make_client(StaticGenerator(full_analysis))
        response = client.get("/demo")

        assert response.status_code == 200
        assert "BTC/USDT Analysis" in response.text
        assert "72%" in response.text


class TestHealth:

    def test_health(self, make_client, full_analysis):
        client = make_client(StaticGenerator(full_analysis))
        body = client.get("/health").json()

        assert body["ok"] is True
        assert "llm_configured" in body
        assert body["market_data"] in ("enabled", "disabled")
