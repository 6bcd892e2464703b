"""
Report Module - HTML Trade Analysis Dashboard

Renders an analysis outcome as a scorecard-style dashboard:
- Decision badge and confidence bar at the top
- Market conditions and technical indicator tables
- Trade plan and risk management
- Trust-level banner for best-effort results, error panel for failures

All functions here are pure: the analysis values are formatted for
display, never modified.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from html import escape
from typing import Any, Dict, Iterable, NamedTuple, Optional

from .pipeline import AnalysisOutcome, TrustLevel
from .schemas import is_conformant, validate_trade_analysis

logger = logging.getLogger(__name__)

# (thousands separator, decimal separator)
LOCALE_SEPARATORS = {
    "id-ID": (".", ","),
    "de-DE": (".", ","),
    "en-US": (",", "."),
    "en-GB": (",", "."),
    "fr-FR": (" ", ","),
}

CURRENCY_SYMBOLS = {
    "IDR": "Rp",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "USDT": "USDT",
}


# =============================================================================
# FORMATTING
# =============================================================================

def format_number(value: Any, decimals: int = 2, locale: str = "id-ID") -> str:
    """
    Format a number with grouping for the given locale.

    format_number(1234567.891, 2, "id-ID") -> '1.234.567,89'
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "N/A"

    thousands, decimal = LOCALE_SEPARATORS.get(locale, LOCALE_SEPARATORS["en-US"])
    text = f"{number:,.{decimals}f}"
    return text.replace(",", "\0").replace(".", decimal).replace("\0", thousands)


def format_currency(amount: Any, currency: str = "IDR", locale: str = "id-ID", decimals: int = 0) -> str:
    """format_currency(1000000, "IDR") -> 'Rp 1.000.000'"""
    number = format_number(amount, decimals, locale)
    if number == "N/A":
        return number

    code = (currency or "").upper()
    symbol = CURRENCY_SYMBOLS.get(code, code)
    if number.startswith("-"):
        return f"-{symbol} {number[1:]}"
    return f"{symbol} {number}"


def rsi_label(rsi: float) -> str:
    if rsi > 70:
        return "Overbought"
    if rsi < 30:
        return "Oversold"
    return "Neutral"


class DisplayStyle(NamedTuple):
    icon: str
    badge_class: str
    tone: str


def decision_style(decision: str) -> DisplayStyle:
    """Buy -> success, Sell -> destructive, anything else -> neutral."""
    if decision == "Buy":
        return DisplayStyle("▲", "signal-buy", "success")
    if decision == "Sell":
        return DisplayStyle("▼", "signal-sell", "destructive")
    return DisplayStyle("—", "signal-hold", "neutral")


def trend_style(trend: str) -> DisplayStyle:
    if trend == "uptrend":
        return DisplayStyle("▲", "value-positive", "success")
    if trend == "downtrend":
        return DisplayStyle("▼", "value-negative", "destructive")
    return DisplayStyle("—", "value-neutral", "neutral")


def _rsi_class(rsi: float) -> str:
    if rsi > 70:
        return "value-negative"
    if rsi < 30:
        return "value-positive"
    return ""


def _confidence_pct(confidence: Any) -> int:
    try:
        value = float(confidence)
    except (TypeError, ValueError):
        return 0
    return int(round(max(0.0, min(1.0, value)) * 100))


def _level_badges(levels: Iterable[float], css_class: str, locale: str) -> str:
    badges = "".join(
        f'<span class="level-badge {css_class}">{format_number(level, 0, locale)}</span>'
        for level in levels
    )
    return badges or '<span class="muted">None identified</span>'


# =============================================================================
# PAGE SHELL
# =============================================================================

CSS = """
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background: linear-gradient(135deg, #1a1a2e 0%, #16213e 100%); color: #e0e0e0; line-height: 1.6; min-height: 100vh; }
    .container { max-width: 1200px; margin: 0 auto; padding: 20px; }
    .header { background: linear-gradient(135deg, #0f3460 0%, #1a1a2e 100%); border-radius: 15px; padding: 30px; margin-bottom: 25px; border: 1px solid #3a3a5a; box-shadow: 0 10px 30px rgba(0,0,0,0.3); }
    .header-top { display: flex; justify-content: space-between; align-items: center; gap: 20px; flex-wrap: wrap; }
    .logo { font-size: 14px; color: #888; text-transform: uppercase; letter-spacing: 2px; }
    .report-date { color: #888; font-size: 14px; }
    .header h1 { font-size: 28px; color: #fff; font-weight: 600; }
    .signal-badge { padding: 12px 36px; border-radius: 50px; font-size: 20px; font-weight: 700; letter-spacing: 2px; text-transform: uppercase; }
    .signal-buy { background: linear-gradient(135deg, #00b894 0%, #00cec9 100%); color: #fff; box-shadow: 0 5px 20px rgba(0, 184, 148, 0.4); }
    .signal-sell { background: linear-gradient(135deg, #e74c3c 0%, #c0392b 100%); color: #fff; box-shadow: 0 5px 20px rgba(231, 76, 60, 0.4); }
    .signal-hold { background: linear-gradient(135deg, #7f8c8d 0%, #636e72 100%); color: #fff; }
    .icon-success { color: #00b894; }
    .icon-destructive { color: #e74c3c; }
    .icon-neutral { color: #888; }
    .metrics-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 15px; margin-top: 20px; }
    .metric-card { background: linear-gradient(135deg, #1e3a5f 0%, #1a1a2e 100%); border-radius: 12px; padding: 20px; text-align: center; border: 1px solid #3a3a5a; }
    .metric-value { font-size: 26px; font-weight: 700; color: #4fc3f7; margin-bottom: 5px; }
    .metric-value.positive { color: #00b894; }
    .metric-value.negative { color: #e74c3c; }
    .metric-label { font-size: 12px; color: #888; text-transform: uppercase; letter-spacing: 1px; }
    .section { background: linear-gradient(135deg, #1e2a3a 0%, #1a1a2e 100%); border-radius: 15px; padding: 25px; margin-bottom: 25px; border: 1px solid #3a3a5a; }
    .section-title { font-size: 18px; color: #4fc3f7; margin-bottom: 20px; padding-bottom: 10px; border-bottom: 2px solid #3a3a5a; text-transform: uppercase; letter-spacing: 1px; }
    .data-table { width: 100%; border-collapse: collapse; }
    .data-table td { padding: 10px 12px; border-bottom: 1px solid #3a3a5a; font-size: 14px; }
    .data-table td:last-child { text-align: right; }
    .value-positive { color: #00b894; font-weight: 600; }
    .value-negative { color: #e74c3c; font-weight: 600; }
    .value-neutral { color: #aaa; font-weight: 600; }
    .muted { color: #888; font-size: 13px; }
    .two-column { display: grid; grid-template-columns: 1fr 1fr; gap: 25px; }
    @media (max-width: 900px) { .two-column { grid-template-columns: 1fr; } }
    .confidence-row { display: flex; justify-content: space-between; margin-top: 20px; font-weight: 600; }
    .confidence-bar { height: 10px; background: #3a3a5a; border-radius: 5px; overflow: hidden; margin-top: 6px; }
    .confidence-fill { height: 100%; border-radius: 5px; background: linear-gradient(90deg, #4fc3f7, #00b894); }
    .summary { color: #aaa; margin-top: 15px; }
    .level-badge { display: inline-block; padding: 3px 10px; margin: 4px 6px 0 0; border-radius: 6px; font-size: 13px; border: 1px solid; }
    .level-support { color: #00b894; border-color: rgba(0, 184, 148, 0.5); }
    .level-resistance { color: #e74c3c; border-color: rgba(231, 76, 60, 0.5); }
    .level-neutral { color: #f39c12; border-color: rgba(243, 156, 18, 0.5); }
    .note { background: #1a1a2e; border-radius: 10px; padding: 15px 20px; border-left: 4px solid #f39c12; font-size: 14px; }
    .trust-warning { background: rgba(243, 156, 18, 0.1); border: 1px solid rgba(243, 156, 18, 0.3); border-radius: 8px; padding: 12px 16px; margin-bottom: 20px; color: #f39c12; font-size: 13px; }
    .error-panel { background: rgba(231, 76, 60, 0.1); border: 1px solid rgba(231, 76, 60, 0.3); border-radius: 12px; padding: 20px; color: #e74c3c; }
    pre.raw { background: #0f0f1a; border-radius: 8px; padding: 15px; margin-top: 15px; color: #ccc; font-size: 12px; white-space: pre-wrap; word-break: break-word; }
    form.input-form { display: grid; gap: 15px; max-width: 480px; }
    form.input-form label { font-size: 13px; color: #888; text-transform: uppercase; letter-spacing: 1px; }
    form.input-form input { width: 100%; padding: 12px; border-radius: 8px; border: 1px solid #3a3a5a; background: #1a1a2e; color: #fff; font-size: 16px; }
    form.input-form button { padding: 14px; border: none; border-radius: 8px; background: linear-gradient(135deg, #0f3460 0%, #4fc3f7 100%); color: #fff; font-size: 16px; font-weight: 600; cursor: pointer; }
    a { color: #4fc3f7; }
    .footer { text-align: center; padding: 30px; color: #666; font-size: 12px; }
"""

DISCLAIMER = (
    "This analysis is generated by a language model from public market data. "
    "It is informational only and is not investment advice. Levels, indicators and "
    "position sizes may be inaccurate; verify them before trading."
)


def _page(title: str, body: str) -> str:
    html = '<!DOCTYPE html><html lang="en"><head><meta charset="UTF-8"><meta name="viewport" content="width=device-width, initial-scale=1.0">'
    html += f'<title>{escape(title)}</title>'
    html += f'<style>{CSS}</style></head><body><div class="container">'
    html += body
    html += f'<div class="footer"><p>{escape(DISCLAIMER)}</p></div>'
    html += '</div></body></html>'
    return html


# =============================================================================
# DASHBOARD SECTIONS
# =============================================================================

def _decision_card(analysis: Dict[str, Any], locale: str) -> str:
    conclusion = analysis["simple_conclusion"]
    style = decision_style(conclusion["decision"])
    confidence_pct = _confidence_pct(conclusion.get("confidence", 0))
    take_profit = conclusion.get("take_profit") or []
    report_date = analysis.get("date_time") or datetime.now().strftime("%Y-%m-%d %H:%M")

    html = '<div class="header"><div class="header-top">'
    html += f'<h1><span class="icon-{style.tone}">{style.icon}</span> {escape(str(analysis["asset"]))} Analysis</h1>'
    html += f'<span class="signal-badge {style.badge_class}">{escape(conclusion["decision"])}</span></div>'
    html += f'<div class="report-date">{escape(str(report_date))}</div>'

    html += f'<div class="confidence-row"><span>Confidence Level</span><span>{confidence_pct}%</span></div>'
    html += f'<div class="confidence-bar"><div class="confidence-fill" style="width: {confidence_pct}%;"></div></div>'
    html += f'<p class="summary">{escape(conclusion.get("summary", ""))}</p>'

    html += '<div class="metrics-grid">'
    html += f'<div class="metric-card"><div class="metric-value">{format_number(conclusion.get("buy_price_per_share", 0), 0, locale)}</div><div class="metric-label">Entry Price (Per Share)</div></div>'
    html += f'<div class="metric-card"><div class="metric-value negative">{format_number(conclusion["stop_loss"], 0, locale)}</div><div class="metric-label">Stop Loss</div></div>'
    primary_target = format_number(take_profit[0], 0, locale) if take_profit else "N/A"
    html += f'<div class="metric-card"><div class="metric-value positive">{primary_target}</div><div class="metric-label">Take Profit (Primary)</div></div>'
    html += '</div></div>'
    return html


def _market_conditions_section(conditions: Dict[str, Any], locale: str) -> str:
    style = trend_style(conditions["trend"])

    html = '<div class="section"><div class="section-title">Market Conditions</div><table class="data-table">'
    html += f'<tr><td>Trend</td><td class="{style.badge_class}">{style.icon} {escape(conditions["trend"].capitalize())}</td></tr>'
    html += '</table>'
    html += '<div style="margin-top: 15px;"><div class="metric-label">Support Levels</div>'
    html += _level_badges(conditions.get("support_levels", []), "level-support", locale) + '</div>'
    html += '<div style="margin-top: 15px;"><div class="metric-label">Resistance Levels</div>'
    html += _level_badges(conditions.get("resistance_levels", []), "level-resistance", locale) + '</div>'
    html += '<div style="margin-top: 15px;"><div class="metric-label">Breakout / Breakdown</div>'
    html += _level_badges(conditions.get("breakout_points", []), "level-support", locale)
    html += _level_badges(conditions.get("breakdown_points", []), "level-resistance", locale) + '</div>'
    if conditions.get("divergences"):
        html += f'<div style="margin-top: 15px;"><div class="metric-label">Divergences</div><p>{escape(conditions["divergences"])}</p></div>'
    html += f'<div style="margin-top: 15px;"><div class="metric-label">Volume Analysis</div><p>{escape(conditions.get("volume_analysis", ""))}</p></div>'
    html += '</div>'
    return html


def _indicators_section(indicators: Dict[str, Any], locale: str) -> str:
    ma = indicators["moving_averages"]
    macd = indicators["MACD"]
    bands = indicators["bollinger_bands"]
    rsi = indicators.get("RSI", 50)

    html = '<div class="section"><div class="section-title">Technical Indicators</div><table class="data-table">'
    for period in ("MA20", "MA50", "MA200"):
        html += f'<tr><td>{period}</td><td>{format_number(ma.get(period, 0), 0, locale)}</td></tr>'
    html += f'<tr><td>RSI</td><td class="{_rsi_class(rsi)}">{format_number(rsi, 1, locale)} ({rsi_label(rsi)})</td></tr>'
    html += f'<tr><td>MACD Value</td><td>{format_number(macd.get("value", 0), 3, locale)}</td></tr>'
    html += f'<tr><td>MACD Signal</td><td>{format_number(macd.get("signal", 0), 3, locale)}</td></tr>'
    html += f'<tr><td>Bollinger Upper</td><td>{format_number(bands.get("upper", 0), 3, locale)}</td></tr>'
    html += f'<tr><td>Bollinger Middle</td><td>{format_number(bands.get("middle", 0), 3, locale)}</td></tr>'
    html += f'<tr><td>Bollinger Lower</td><td>{format_number(bands.get("lower", 0), 3, locale)}</td></tr>'
    html += '</table></div>'
    return html


def _trade_plan_section(plan: Dict[str, Any], conclusion: Dict[str, Any], locale: str) -> str:
    currency = conclusion.get("currency", "IDR")
    zone = plan["entry_zone"]
    targets = ", ".join(format_number(t, 0, locale) for t in plan.get("take_profit_targets", [])) or "N/A"
    direction_class = "value-positive" if plan["direction"] == "long" else "value-negative"

    html = '<div class="section"><div class="section-title">Trade Plan & Risk Management</div>'
    html += '<div class="metrics-grid">'
    html += f'<div class="metric-card"><div class="metric-value">{format_number(plan.get("position_size_lot", 0), 0, locale)} lots</div><div class="metric-label">Position Size</div><div class="muted">{escape(plan.get("lot_size_basis", ""))}</div></div>'
    html += f'<div class="metric-card"><div class="metric-value">{format_currency(plan.get("estimated_capital_used", 0), currency, locale)}</div><div class="metric-label">Capital Used (Estimated)</div></div>'
    html += f'<div class="metric-card"><div class="metric-value">1:{format_number(plan.get("risk_reward_ratio", 0), 1, locale)}</div><div class="metric-label">Risk/Reward</div></div>'
    html += f'<div class="metric-card"><div class="metric-value">{format_number(plan.get("risk_percent", 0), 1, locale)}%</div><div class="metric-label">Risk (Of Capital)</div></div>'
    html += '</div>'

    html += '<table class="data-table" style="margin-top: 20px;">'
    html += f'<tr><td>Direction</td><td class="{direction_class}">{escape(plan["direction"].upper())}</td></tr>'
    html += f'<tr><td>Entry Zone</td><td>{format_number(zone["min"], 0, locale)} – {format_number(zone["max"], 0, locale)}</td></tr>'
    html += f'<tr><td>Stop Loss (Plan)</td><td class="value-negative">{format_number(plan["stop_loss"], 0, locale)}</td></tr>'
    html += f'<tr><td>Take Profit Targets</td><td class="value-positive">{targets}</td></tr>'
    html += f'<tr><td>Suggested Entry</td><td>{escape(conclusion.get("entry", ""))}</td></tr>'
    html += f'<tr><td>Total Buy Cost</td><td>{format_currency(conclusion.get("total_buy_cost", 0), currency, locale)}</td></tr>'
    html += '</table>'

    if conclusion.get("broker_note"):
        html += '<div style="margin-top: 20px;"><div class="metric-label" style="margin-bottom: 8px;">⚠️ Broker Note</div>'
        html += f'<div class="note">{escape(conclusion["broker_note"])}</div></div>'

    html += '</div>'
    return html


def render_dashboard(envelope: Dict[str, Any], locale: str = "id-ID") -> str:
    """Render the body of the dashboard for a validated analysis envelope."""
    analysis = envelope["trade_analysis"]

    html = _decision_card(analysis, locale)
    html += '<div class="two-column">'
    html += _market_conditions_section(analysis["market_conditions"], locale)
    html += _indicators_section(analysis["technical_indicators"], locale)
    html += '</div>'
    html += _trade_plan_section(analysis["trade_plan"], analysis["simple_conclusion"], locale)
    return html


def _failure_panel(payload: Dict[str, Any]) -> str:
    html = '<div class="section"><div class="section-title">Analysis Failed</div><div class="error-panel">'
    html += f'<strong>{escape(str(payload.get("error", "Unknown error")))}</strong>'
    for key in ("details", "suggestion"):
        if payload.get(key):
            html += f'<p style="margin-top: 10px; color: #e0e0e0;">{escape(str(payload[key]))}</p>'
    html += '</div>'
    if payload.get("raw_text"):
        html += f'<pre class="raw">{escape(payload["raw_text"])}</pre>'
    html += '</div>'
    return html


# =============================================================================
# PUBLIC
# =============================================================================

def generate_trade_report(outcome: AnalysisOutcome, locale: str = "id-ID") -> str:
    """
    Render an analysis outcome as a complete HTML document.

    Parameters
    ----------
    outcome : AnalysisOutcome
        Conformant, BestEffort or Failure result of the pipeline.
    locale : str
        Display locale for number grouping.

    Returns
    -------
    str
        Complete HTML document.
    """
    if outcome.trust is TrustLevel.FAILURE:
        logger.info("Rendering failure report")
        return _page("Trade Analysis - Failed", _failure_panel(outcome.payload))

    if outcome.trust is TrustLevel.CONFORMANT:
        asset = outcome.payload["trade_analysis"]["asset"]
        return _page(f"Trade Analysis - {asset}", render_dashboard(outcome.payload, locale))

    # Best effort: parsed from raw text, never validated
    body = '<div class="trust-warning">⚠️ <strong>Unverified result:</strong> The AI response did not match the expected format and was recovered from raw text. Values may be missing or inconsistent.</div>'
    if is_conformant(outcome.payload):
        # Defaults are filled on a copy for display only
        body += render_dashboard(validate_trade_analysis(outcome.payload), locale)
    else:
        body += '<div class="section"><div class="section-title">Raw AI Response</div>'
        body += f'<pre class="raw">{escape(json.dumps(outcome.payload, indent=2, ensure_ascii=False))}</pre></div>'
    return _page("Trade Analysis - Unverified", body)


def render_input_page(asset: str = "", investment: Optional[float] = None, error: Optional[str] = None) -> str:
    """The asset / investment form posting to /analyze."""
    body = '<div class="header"><div class="logo">AI Trading Analysis & Coach</div>'
    body += '<h1 style="margin-top: 10px;">Analyze a Trade</h1>'
    body += '<p class="summary">Input your asset and investment amount to receive a technical analysis with clear buy/sell signals.</p>'
    body += '<p style="margin-top: 10px;"><a href="/demo">View Demo Analysis →</a></p></div>'

    body += '<div class="section"><div class="section-title">Trade Parameters</div>'
    if error:
        body += f'<div class="error-panel" style="margin-bottom: 20px;">{escape(error)}</div>'
    body += '<form class="input-form" method="post" action="/analyze">'
    body += '<label for="asset">Asset Symbol</label>'
    body += f'<input id="asset" name="asset" placeholder="e.g. BBCA.JK, AAPL, BTC/USDT" value="{escape(asset)}" required>'
    body += '<label for="investment">Investment Amount</label>'
    investment_value = "" if investment is None else f"{investment:.15g}"
    body += f'<input id="investment" name="investment" type="number" min="0" step="any" placeholder="e.g. 1000000" value="{investment_value}" required>'
    body += '<button type="submit">Analyze Trade</button>'
    body += '</form></div>'

    return _page("AI Trading Analysis", body)
