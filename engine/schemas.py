"""
Trade Analysis Schemas

Pydantic models describing the structured analysis object the model must
produce, plus the API request model.

One definition serves both validation policies:
- permissive (default): optional leaves are filled from the defaults below
- strict: every field must be present in the candidate

Required in both modes: asset, date_time, trend, direction, entry_zone,
both stop_loss values, summary, entry, decision and every section object.
"""

from __future__ import annotations

import enum
import json
import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import GenerationSchemaError

DEFAULT_CURRENCY = "IDR"


# =============================================================================
# ENUMS
# =============================================================================

class Trend(str, enum.Enum):
    UPTREND = "uptrend"
    DOWNTREND = "downtrend"
    SIDEWAYS = "sideways"


class Direction(str, enum.Enum):
    LONG = "long"
    SHORT = "short"


class Decision(str, enum.Enum):
    BUY = "Buy"
    SELL = "Sell"
    WAIT = "Wait"


class _Section(BaseModel):
    """Shared config for every part of the analysis."""
    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        use_enum_values=True,
        allow_inf_nan=False,
    )


# =============================================================================
# MARKET CONDITIONS
# =============================================================================

class MarketConditions(_Section):
    trend: Trend
    support_levels: List[float] = Field(default_factory=list)
    resistance_levels: List[float] = Field(default_factory=list)
    breakout_points: List[float] = Field(default_factory=list)
    breakdown_points: List[float] = Field(default_factory=list)
    divergences: str = ""
    volume_analysis: str = ""


# =============================================================================
# TECHNICAL INDICATORS
# =============================================================================

class MovingAverages(_Section):
    ma20: float = Field(default=0, alias="MA20")
    ma50: float = Field(default=0, alias="MA50")
    ma200: float = Field(default=0, alias="MA200")


class MACD(_Section):
    value: float = 0
    signal: float = 0


class BollingerBands(_Section):
    upper: float = 0
    middle: float = 0
    lower: float = 0


class TechnicalIndicators(_Section):
    moving_averages: MovingAverages
    rsi: float = Field(default=50, alias="RSI", description="Relative strength index, 0-100")
    macd: MACD = Field(alias="MACD")
    bollinger_bands: BollingerBands


# =============================================================================
# TRADE PLAN
# =============================================================================

class EntryZone(_Section):
    """Price interval for opening the position. min <= max is not enforced."""
    min: float
    max: float


class TradePlan(_Section):
    direction: Direction
    entry_zone: EntryZone
    stop_loss: float
    take_profit_targets: List[float] = Field(default_factory=list)
    position_size_lot: float = 0
    lot_size_basis: str = ""
    estimated_capital_used: float = 0
    risk_reward_ratio: float = 0
    risk_percent: float = 0


# =============================================================================
# SIMPLE CONCLUSION
# =============================================================================

class SimpleConclusion(_Section):
    """
    Human-facing restatement of the trade plan.

    Produced independently of TradePlan by the model; the two are never
    cross-checked.
    """
    summary: str
    entry: str
    stop_loss: float
    take_profit: List[float] = Field(default_factory=list)
    decision: Decision
    suggested_lot: float = 0
    buy_price_per_share: float = 0
    total_buy_cost: float = 0
    sell_targets: List[float] = Field(default_factory=list)
    currency: str = DEFAULT_CURRENCY
    confidence: float = Field(default=0, ge=0, le=1)
    broker_note: str = ""


# =============================================================================
# ENVELOPE
# =============================================================================

class TradeAnalysis(_Section):
    asset: str
    date_time: str = Field(..., description="YYYY-MM-DD HH:MM:SS")
    market_conditions: MarketConditions
    technical_indicators: TechnicalIndicators
    trade_plan: TradePlan
    simple_conclusion: SimpleConclusion


class TradeAnalysisEnvelope(_Section):
    """Top-level object returned by the model: {"trade_analysis": {...}}."""
    trade_analysis: TradeAnalysis


# =============================================================================
# API REQUEST
# =============================================================================

class AnalyzeTradeRequest(BaseModel):
    """Request body for /api/analyze-trade. Presence is checked by the route."""
    asset: Optional[str] = Field(default=None, description="Free-text symbol, e.g. 'AAPL' or 'BTC/USDT'")
    investment: Optional[float] = Field(default=None, description="Investment amount (currency-unlabeled)")


# =============================================================================
# VALIDATION
# =============================================================================

def _format_loc(loc: tuple) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def _find_missing(model: BaseModel, path: str) -> Optional[str]:
    """Return the dotted path of the first field the candidate left out."""
    for name, info in type(model).model_fields.items():
        key = info.alias or name
        child_path = f"{path}.{key}" if path else key
        if name not in model.model_fields_set:
            return child_path
        value = getattr(model, name)
        if isinstance(value, BaseModel):
            missing = _find_missing(value, child_path)
            if missing:
                return missing
    return None


def validate_trade_analysis(
    candidate: Any,
    strict: bool = False,
    default_currency: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Validate a candidate analysis and return it as a plain dict.

    Parameters
    ----------
    candidate : Any
        Usually the parsed JSON produced by the model.
    strict : bool
        If True, every field must be present; no defaults are filled.
    default_currency : str, optional
        Currency to use when the candidate omits one (permissive mode).

    Returns
    -------
    Dict[str, Any]
        The envelope with defaults filled. A candidate that already
        conforms is returned unchanged.

    Raises
    ------
    GenerationSchemaError
        Naming the first non-conforming path.
    """
    if not isinstance(candidate, dict):
        raise GenerationSchemaError(
            f"Expected a JSON object, got {type(candidate).__name__}", path=""
        )

    try:
        envelope = TradeAnalysisEnvelope.model_validate(candidate)
    except ValidationError as e:
        first = e.errors()[0]
        raise GenerationSchemaError(first["msg"], path=_format_loc(first["loc"])) from e

    if strict:
        missing = _find_missing(envelope, "")
        if missing:
            raise GenerationSchemaError("Field required", path=missing)

    conclusion = envelope.trade_analysis.simple_conclusion
    if default_currency and "currency" not in conclusion.model_fields_set:
        conclusion.currency = default_currency

    return envelope.model_dump(by_alias=True)


def _reject_constant(name: str) -> float:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _finite_float(literal: str) -> float:
    value = float(literal)
    if not math.isfinite(value):
        raise ValueError(f"Number out of range: {literal}")
    return value


def parse_model_json(text: str) -> Any:
    """
    Parse model output as standard JSON.

    NaN, Infinity and overflowing numbers are rejected with ValueError
    (json.JSONDecodeError is a subclass), so every parsed value can be
    sent back as a JSON response.
    """
    return json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)


def is_conformant(candidate: Any, strict: bool = False) -> bool:
    """True if the candidate passes validation under the given policy."""
    try:
        validate_trade_analysis(candidate, strict=strict)
    except GenerationSchemaError:
        return False
    return True


def trade_analysis_json_schema() -> Dict[str, Any]:
    """JSON schema of the envelope, as handed to the generation service."""
    return TradeAnalysisEnvelope.model_json_schema(by_alias=True)
