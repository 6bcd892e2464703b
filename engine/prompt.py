"""
Prompt Builder

Builds the instruction sent to the model for a single-asset trade analysis.
The asset and investment amount are substituted verbatim; recent market
data is embedded when available.

The model must answer with the bare JSON envelope. Any prose around it is
the main reason structured generation fails, so the JSON-only contract is
stated in both the system prompt and the user prompt.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from .data_fetcher import MarketSnapshot

logger = logging.getLogger(__name__)


# =============================================================================
# SYSTEM PROMPT
# =============================================================================

SYSTEM_PROMPT = """You are an experienced day trader and trading coach. You answer with a single valid JSON object and nothing else: no markdown fences, no commentary before or after the object."""


# =============================================================================
# EXPECTED JSON ENVELOPE (type-annotated example)
# =============================================================================

JSON_ENVELOPE_EXAMPLE = """{
  "trade_analysis": {
    "asset": "string",
    "date_time": "YYYY-MM-DD HH:MM:SS",
    "market_conditions": {
      "trend": "uptrend | downtrend | sideways",
      "support_levels": [ "float" ],
      "resistance_levels": [ "float" ],
      "breakout_points": [ "float" ],
      "breakdown_points": [ "float" ],
      "divergences": "string",
      "volume_analysis": "string"
    },
    "technical_indicators": {
      "moving_averages": {
        "MA20": "float",
        "MA50": "float",
        "MA200": "float"
      },
      "RSI": "float",
      "MACD": { "value": "float", "signal": "float" },
      "bollinger_bands": { "upper": "float", "middle": "float", "lower": "float" }
    },
    "trade_plan": {
      "direction": "long | short",
      "entry_zone": { "min": "float", "max": "float" },
      "stop_loss": "float",
      "take_profit_targets": [ "float" ],
      "position_size_lot": "int",
      "lot_size_basis": "string",
      "estimated_capital_used": "float",
      "risk_reward_ratio": "float",
      "risk_percent": "float"
    },
    "simple_conclusion": {
      "summary": "string",
      "entry": "float range",
      "stop_loss": "float",
      "take_profit": [ "float" ],
      "decision": "Buy | Sell | Wait",
      "suggested_lot": "int",
      "buy_price_per_share": "float",
      "total_buy_cost": "float",
      "sell_targets": [ "float" ],
      "currency": "string",
      "confidence": "float (0.0 - 1.0)",
      "broker_note": "string"
    }
  }
}"""


def _format_market_section(snapshot: MarketSnapshot) -> str:
    """Render the market data block embedded in the prompt."""
    return f"""
Current price: {snapshot.last_close}
Current volume: {snapshot.last_volume}
Recent OHLC (daily, oldest first): {json.dumps(snapshot.candles)}
"""


def build_trade_prompt(
    asset: str,
    investment: float,
    snapshot: Optional[MarketSnapshot] = None,
    currency: str = "IDR",
) -> str:
    """
    Build the user prompt for a trade analysis.

    Parameters
    ----------
    asset : str
        Asset as typed by the user, e.g. 'AAPL' or 'BTC/USDT'.
    investment : float
        Amount the user intends to invest.
    snapshot : MarketSnapshot, optional
        Recent price/volume data. Omitted from the prompt when None.
    currency : str
        Currency label used for the investment amount.

    Returns
    -------
    str
        The complete instruction string.
    """
    prompt = f"""
Act as an experienced day trader and trading coach. Your objective is to analyze the price and volume patterns of "{asset}" for a potential trade with an investment amount of {currency} {investment} to identify potential buying or selling opportunities.
Utilize advanced charting tools and technical indicators to scrutinize both short-term and long-term patterns, taking into account historical data and recent market movements.
Assess the correlation between price and volume to gauge the strength or weakness of a particular price trend.
Provide a comprehensive analysis report that details potential breakout or breakdown points, support and resistance levels, and any anomalies or divergences noticed.
Your analysis should be backed by logical reasoning and should include potential risk and reward scenarios. Always adhere to best practices in technical analysis and maintain the highest standards of accuracy and objectivity.
For the asset and investment amount, analyze its price and volume patterns to identify trading opportunities. Use technical indicators (MA, RSI, MACD, Bollinger Bands, Fibonacci, volume analysis, etc.) and determine the overall trend, support/resistance, breakout/breakdown points, and divergences.
"""

    if snapshot is not None:
        prompt += _format_market_section(snapshot)

    prompt += f"""
IMPORTANT: You must respond with ONLY a valid JSON object, no additional text before or after. Do not wrap it in markdown. The response must strictly follow this exact format:

{JSON_ENVELOPE_EXAMPLE}

Rules:
- "confidence" is a fraction between 0 and 1, not a percentage.
- "currency" is the currency of the prices you report (the investment is in {currency}).
- All numeric fields must be JSON numbers, not strings.
"""

    logger.debug(f"Built prompt for {asset} ({len(prompt)} chars, market data: {snapshot is not None})")

    return prompt
