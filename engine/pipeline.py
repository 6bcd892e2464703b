"""
Trade Analysis Pipeline

Request -> optional market data -> prompt -> one generation call ->
validation / recovery -> tagged outcome.

Outcomes carry their trust level so the API and the report renderer can
branch on it:

- Conformant   the object passed schema validation
- BestEffort   the model's raw text parsed as JSON but failed the schema;
               returned as parsed, NOT re-validated
- Failure      diagnostics payload plus the HTTP status to use
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Optional, Protocol, Tuple

from fastapi.concurrency import run_in_threadpool

from .data_fetcher import MarketSnapshot
from .errors import InputValidationError, NoObjectGeneratedError
from .prompt import build_trade_prompt
from .schemas import AnalyzeTradeRequest, parse_model_json

logger = logging.getLogger(__name__)

MISSING_INPUT_MESSAGE = "Asset and investment amount are required"


# =============================================================================
# OUTCOMES
# =============================================================================

class TrustLevel(str, enum.Enum):
    CONFORMANT = "conformant"
    BEST_EFFORT = "best_effort"
    FAILURE = "failure"


@dataclass
class AnalysisOutcome:
    """Result of one analysis request."""
    payload: Any
    status_code: int = 200

    trust: ClassVar[TrustLevel]

    @property
    def ok(self) -> bool:
        return self.trust is not TrustLevel.FAILURE


@dataclass
class Conformant(AnalysisOutcome):
    trust: ClassVar[TrustLevel] = TrustLevel.CONFORMANT


@dataclass
class BestEffort(AnalysisOutcome):
    trust: ClassVar[TrustLevel] = TrustLevel.BEST_EFFORT


@dataclass
class Failure(AnalysisOutcome):
    status_code: int = 500
    trust: ClassVar[TrustLevel] = TrustLevel.FAILURE


class AnalysisGenerator(Protocol):
    async def generate(self, prompt: str) -> Dict[str, Any]:
        ...


MarketFetcher = Callable[[str], MarketSnapshot]


# =============================================================================
# INPUT CHECK
# =============================================================================

def require_inputs(request: AnalyzeTradeRequest) -> Tuple[str, float]:
    """
    Return (asset, investment) or raise InputValidationError.

    A blank asset or a zero or non-finite investment counts as missing.
    """
    asset = (request.asset or "").strip()
    investment = request.investment

    if not asset or not investment or not math.isfinite(investment):
        raise InputValidationError(MISSING_INPUT_MESSAGE)

    return asset, investment


# =============================================================================
# RECOVERY
# =============================================================================

def recover_from_generation_error(error: NoObjectGeneratedError) -> AnalysisOutcome:
    """
    Try to salvage a failed structured generation from the raw text.

    The raw text is parsed as-is; a successful parse is returned without
    schema validation.
    """
    logger.warning("No object generated")
    logger.warning(f"Cause: {error.cause}")
    logger.warning(f"Finish reason: {error.finish_reason}")
    logger.warning(f"Usage: {error.usage}")

    if error.text:
        try:
            parsed = parse_model_json(error.text)
        except ValueError as e:
            logger.warning(f"Failed to parse response as JSON: {e}")
            return Failure(
                payload={
                    "error": "Failed to generate structured response",
                    "raw_text": error.text,
                    "suggestion": "The AI provided a response but it doesn't match the expected format",
                },
                status_code=200,
            )

        logger.info("Recovered analysis from raw text (not schema validated)")
        return BestEffort(payload=parsed)

    return Failure(
        payload={
            "error": "No valid response generated",
            "details": "The AI model didn't return any usable content",
        },
        status_code=500,
    )


async def generate_with_recovery(generator: AnalysisGenerator, prompt: str) -> AnalysisOutcome:
    """Make the single generation call and classify its result."""
    try:
        analysis = await generator.generate(prompt)
    except NoObjectGeneratedError as e:
        return recover_from_generation_error(e)
    except Exception as e:
        logger.error(f"Generation failed: {type(e).__name__}: {e}")
        return Failure(
            payload={
                "error": "Failed to generate analysis",
                "details": str(e) or type(e).__name__,
            },
            status_code=500,
        )

    return Conformant(payload=analysis)


# =============================================================================
# ORCHESTRATION
# =============================================================================

async def analyze_trade(
    request: AnalyzeTradeRequest,
    generator: AnalysisGenerator,
    fetcher: Optional[MarketFetcher] = None,
    currency: str = "IDR",
) -> AnalysisOutcome:
    """
    Run one analysis: optional market fetch, prompt, one generation call.

    Market data errors propagate; generation errors become outcomes.
    """
    asset, investment = require_inputs(request)

    snapshot = None
    if fetcher is not None:
        # yfinance is blocking
        snapshot = await run_in_threadpool(fetcher, asset)

    prompt = build_trade_prompt(asset, investment, snapshot=snapshot, currency=currency)

    logger.info(f"Analyzing {asset} (investment {investment:,.2f} {currency})")

    return await generate_with_recovery(generator, prompt)


async def run_trade_analysis(
    request: AnalyzeTradeRequest,
    generator: AnalysisGenerator,
    fetcher: Optional[MarketFetcher] = None,
    currency: str = "IDR",
) -> AnalysisOutcome:
    """
    Route-boundary wrapper: never raises, always returns an outcome.
    """
    try:
        return await analyze_trade(request, generator, fetcher=fetcher, currency=currency)
    except InputValidationError as e:
        return Failure(payload={"error": str(e)}, status_code=400)
    except Exception as e:
        logger.error(f"Error analyzing trade: {type(e).__name__}: {e}")
        return Failure(
            payload={
                "error": "Failed to analyze trade",
                "details": str(e) or type(e).__name__,
            },
            status_code=500,
        )
