"""
Bundled sample analysis rendered at /demo.
"""

DEMO_ANALYSIS = {
    "trade_analysis": {
        "asset": "BTC/USDT",
        "date_time": "2025-09-22 21:30:00",
        "market_conditions": {
            "trend": "sideways",
            "support_levels": [60800, 58500],
            "resistance_levels": [63500, 65200],
            "breakout_points": [63600],
            "breakdown_points": [60500],
            "divergences": "RSI shows mild bearish divergence while MACD histogram is flattening, indicating loss of momentum.",
            "volume_analysis": "Volume decreasing during recent upward moves, showing weak buying pressure; sideways accumulation likely before next trend.",
        },
        "technical_indicators": {
            "moving_averages": {"MA20": 62100, "MA50": 61550, "MA200": 59000},
            "RSI": 52.4,
            "MACD": {"value": 48, "signal": 50},
            "bollinger_bands": {"upper": 63550, "middle": 62100, "lower": 60650},
        },
        "trade_plan": {
            "direction": "long",
            "entry_zone": {"min": 61000, "max": 61800},
            "stop_loss": 60200,
            "take_profit_targets": [63200, 64800],
            "position_size_lot": 0,
            "lot_size_basis": "fractional BTC (satoshi) purchase",
            "estimated_capital_used": 1000000,
            "risk_reward_ratio": 1.8,
            "risk_percent": 2.0,
        },
        "simple_conclusion": {
            "summary": "BTC is consolidating sideways near 62K with narrowing Bollinger Bands. Best strategy is buy on weakness around 61K–61.8K with tight stop loss below 60.2K.",
            "entry": "61000–61800",
            "stop_loss": 60200,
            "take_profit": [63200, 64800],
            "decision": "Buy",
            "suggested_lot": 1,
            "buy_price_per_share": 61500,
            "total_buy_cost": 1000000,
            "sell_targets": [63200, 64800],
            "currency": "IDR",
            "confidence": 0.72,
            "broker_note": "Use fractional BTC purchase since capital is small; prioritize tight stop-loss management.",
        },
    }
}
