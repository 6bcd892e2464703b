"""
Trade Analysis - Main FastAPI Application

AI trade analysis for a single asset: market data + LLM structured
output, served as JSON or as an HTML dashboard.
"""

from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache, partial
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Form, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from engine.config import TradeSettings, get_trade_settings
from engine.data_fetcher import fetch_market_snapshot
from engine.demo import DEMO_ANALYSIS
from engine.generation import TradeAnalysisGenerator
from engine.pipeline import (
    MISSING_INPUT_MESSAGE,
    AnalysisGenerator,
    Conformant,
    MarketFetcher,
    run_trade_analysis,
)
from engine.report import generate_trade_report, render_input_page
from engine.schemas import AnalyzeTradeRequest, validate_trade_analysis

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="Trade Analysis API",
    description="AI-generated technical trade analysis with structured output",
    version="1.0.0",
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_trade_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Dependencies
# =============================================================================

def get_settings() -> TradeSettings:
    return get_trade_settings()


@lru_cache()
def get_generator() -> AnalysisGenerator:
    """One generator (and HTTP connection pool) for the process."""
    return TradeAnalysisGenerator.from_settings(get_trade_settings())


def get_market_fetcher(settings: TradeSettings = Depends(get_settings)) -> Optional[MarketFetcher]:
    """Market data enrichment, or None when disabled."""
    if not settings.include_market_data:
        return None
    return partial(
        fetch_market_snapshot,
        months=settings.history_months,
        candles=settings.recent_candles,
    )


# =============================================================================
# Error Handling
# =============================================================================

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing input is a 400, never FastAPI's default 422."""
    logger.info(f"Rejected request to {request.url.path}: {exc.errors()[:1]}")
    if request.url.path == "/analyze":
        return HTMLResponse(render_input_page(error=MISSING_INPUT_MESSAGE), status_code=400)
    return JSONResponse({"error": MISSING_INPUT_MESSAGE}, status_code=400)


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health")
async def health(settings: TradeSettings = Depends(get_settings)):
    return {
        "ok": True,
        "timestamp": datetime.now().isoformat(),
        "llm_configured": settings.llm_configured,
        "llm_model": settings.llm_model,
        "market_data": "enabled" if settings.include_market_data else "disabled",
    }


# =============================================================================
# Analysis API
# =============================================================================

@app.post("/api/analyze-trade")
async def analyze_trade(
    payload: AnalyzeTradeRequest,
    settings: TradeSettings = Depends(get_settings),
    generator: AnalysisGenerator = Depends(get_generator),
    fetcher: Optional[MarketFetcher] = Depends(get_market_fetcher),
):
    """
    Analyze a trade for one asset.

    Returns the analysis envelope (200), a best-effort object recovered
    from the model's raw text (200), a diagnostic payload with the raw text
    (200), a missing-input error (400) or a failure payload (500).
    """
    outcome = await run_trade_analysis(
        payload, generator, fetcher=fetcher, currency=settings.default_currency
    )
    logger.info(f"Analysis for {payload.asset!r} finished: {outcome.trust.value} ({outcome.status_code})")
    return JSONResponse(content=outcome.payload, status_code=outcome.status_code)


@app.post("/api/analyze-trade/report", response_class=HTMLResponse)
async def analyze_trade_report(
    payload: AnalyzeTradeRequest,
    settings: TradeSettings = Depends(get_settings),
    generator: AnalysisGenerator = Depends(get_generator),
    fetcher: Optional[MarketFetcher] = Depends(get_market_fetcher),
):
    """Same as /api/analyze-trade, rendered as the HTML dashboard."""
    outcome = await run_trade_analysis(
        payload, generator, fetcher=fetcher, currency=settings.default_currency
    )
    html = generate_trade_report(outcome, locale=settings.display_locale)
    return HTMLResponse(content=html, status_code=outcome.status_code)


# =============================================================================
# Web UI
# =============================================================================

@app.get("/", response_class=HTMLResponse)
async def index():
    return HTMLResponse(render_input_page())


@app.post("/analyze", response_class=HTMLResponse)
async def analyze_form(
    asset: Optional[str] = Form(default=None),
    investment: Optional[float] = Form(default=None),
    settings: TradeSettings = Depends(get_settings),
    generator: AnalysisGenerator = Depends(get_generator),
    fetcher: Optional[MarketFetcher] = Depends(get_market_fetcher),
):
    """Form submit from the index page."""
    payload = AnalyzeTradeRequest(asset=asset, investment=investment)
    outcome = await run_trade_analysis(
        payload, generator, fetcher=fetcher, currency=settings.default_currency
    )
    if outcome.status_code == 400:
        return HTMLResponse(
            render_input_page(asset or "", investment, error=outcome.payload["error"]),
            status_code=400,
        )
    html = generate_trade_report(outcome, locale=settings.display_locale)
    return HTMLResponse(content=html, status_code=outcome.status_code)


@app.get("/demo", response_class=HTMLResponse)
async def demo(settings: TradeSettings = Depends(get_settings)):
    """Dashboard rendered from the bundled sample analysis."""
    outcome = Conformant(payload=validate_trade_analysis(DEMO_ANALYSIS))
    return HTMLResponse(generate_trade_report(outcome, locale=settings.display_locale))


# =============================================================================
# Run with uvicorn
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
