"""
Trade Analysis Engine

This package provides single-asset AI trade analysis including:
- Market snapshot retrieval from Yahoo Finance
- Prompt construction for structured LLM output
- Schema validation of the generated analysis
- Recovery of malformed model output
- HTML dashboard rendering
"""

from .config import (
    TradeSettings,
    get_trade_settings,
)

from .errors import (
    TradeAnalysisError,
    InputValidationError,
    GenerationSchemaError,
    NoObjectGeneratedError,
    UpstreamFetchError,
    DataFetchError,
    GenerationServiceError,
)

from .schemas import (
    Trend,
    Direction,
    Decision,
    TradeAnalysis,
    TradeAnalysisEnvelope,
    AnalyzeTradeRequest,
    validate_trade_analysis,
    is_conformant,
    parse_model_json,
    trade_analysis_json_schema,
)

from .data_fetcher import (
    MarketSnapshot,
    fetch_market_snapshot,
    to_provider_symbol,
)

from .prompt import (
    SYSTEM_PROMPT,
    build_trade_prompt,
)

from .generation import TradeAnalysisGenerator

from .pipeline import (
    TrustLevel,
    AnalysisOutcome,
    Conformant,
    BestEffort,
    Failure,
    analyze_trade,
    run_trade_analysis,
    recover_from_generation_error,
)

from .report import (
    generate_trade_report,
    render_input_page,
    format_currency,
    format_number,
    rsi_label,
    decision_style,
)

__all__ = [
    # Config
    "TradeSettings",
    "get_trade_settings",
    # Errors
    "TradeAnalysisError",
    "InputValidationError",
    "GenerationSchemaError",
    "NoObjectGeneratedError",
    "UpstreamFetchError",
    "DataFetchError",
    "GenerationServiceError",
    # Schemas
    "Trend",
    "Direction",
    "Decision",
    "TradeAnalysis",
    "TradeAnalysisEnvelope",
    "AnalyzeTradeRequest",
    "validate_trade_analysis",
    "is_conformant",
    "parse_model_json",
    "trade_analysis_json_schema",
    # Market data
    "MarketSnapshot",
    "fetch_market_snapshot",
    "to_provider_symbol",
    # Prompt
    "SYSTEM_PROMPT",
    "build_trade_prompt",
    # Generation
    "TradeAnalysisGenerator",
    # Pipeline
    "TrustLevel",
    "AnalysisOutcome",
    "Conformant",
    "BestEffort",
    "Failure",
    "analyze_trade",
    "run_trade_analysis",
    "recover_from_generation_error",
    # Report
    "generate_trade_report",
    "render_input_page",
    "format_currency",
    "format_number",
    "rsi_label",
    "decision_style",
]
