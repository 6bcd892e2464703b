"""
Data Fetcher Module - Yahoo Finance Market Snapshot
Supplies last price, volume and recent daily candles used to enrich the
analysis prompt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd
import yfinance as yf

from .errors import DataFetchError

logger = logging.getLogger(__name__)

OHLC_COLUMNS = ["Open", "High", "Low", "Close"]


@dataclass
class MarketSnapshot:
    """Latest quote plus a slice of recent OHLCV candles."""
    symbol: str
    last_close: float
    last_volume: float
    candles: List[Dict[str, Any]] = field(default_factory=list)


def to_provider_symbol(asset: str) -> str:
    """
    Convert a free-text asset into a Yahoo Finance symbol.

    'btc/usdt' -> 'BTC-USDT', ' bbca.jk ' -> 'BBCA.JK'
    """
    symbol = "".join((asset or "").split()).upper()
    return symbol.replace("/", "-")


def _months_ago(end_dt: datetime, months: int) -> datetime:
    return (pd.Timestamp(end_dt) - pd.DateOffset(months=months)).to_pydatetime()


def candles_from_history(df: pd.DataFrame, limit: int = 30) -> List[Dict[str, Any]]:
    """
    Convert a yfinance history frame into JSON-ready candle dicts.

    Rows missing any OHLC value are dropped; the most recent ``limit`` rows
    are kept in chronological order.
    """
    if df is None or df.empty:
        return []

    df = df.dropna(subset=OHLC_COLUMNS).sort_index()
    if limit > 0:
        df = df.tail(limit)

    candles = []
    for ts, row in df.iterrows():
        volume = row.get("Volume", 0)
        candles.append({
            "date": pd.Timestamp(ts).strftime("%Y-%m-%d"),
            "open": round(float(row["Open"]), 6),
            "high": round(float(row["High"]), 6),
            "low": round(float(row["Low"]), 6),
            "close": round(float(row["Close"]), 6),
            "volume": 0 if pd.isna(volume) else int(volume),
        })
    return candles


def fetch_market_snapshot(
    asset: str,
    months: int = 3,
    candles: int = 30,
    interval: str = "1d",
    end_date: Optional[str] = None,
) -> MarketSnapshot:
    """
    Fetch the latest price, volume and recent candles for an asset.

    Parameters
    ----------
    asset : str
        Free-text asset, e.g. 'AAPL', 'BBCA.JK' or 'BTC/USDT'.
    months : int
        How many months of history to request.
    candles : int
        Number of most recent candles to keep for the prompt.
    interval : str
        Candle interval understood by yfinance.
    end_date : str, optional
        End date in 'YYYY-MM-DD' format. If None, uses today.

    Returns
    -------
    MarketSnapshot

    Raises
    ------
    DataFetchError
        If the symbol cannot be fetched or returns no data.
    """
    symbol = to_provider_symbol(asset)
    if not symbol:
        raise DataFetchError("Empty asset symbol")

    end_dt = datetime.now() if end_date is None else datetime.strptime(end_date, "%Y-%m-%d")
    start_dt = _months_ago(end_dt, months)

    start_str = start_dt.strftime("%Y-%m-%d")
    # yfinance treats end as exclusive
    end_str = (end_dt + timedelta(days=1)).strftime("%Y-%m-%d")

    logger.info(f"Fetching {symbol} ({interval}) from {start_str} to {end_str}")

    try:
        ticker = yf.Ticker(symbol)
        df = ticker.history(start=start_str, end=end_str, interval=interval, prepost=False)
    except Exception as e:
        raise DataFetchError(f"Failed to fetch {symbol}: {type(e).__name__}: {e}") from e

    if df is None or df.empty:
        raise DataFetchError(f"No data returned for '{symbol}'. Check if the symbol is valid.")

    recent = candles_from_history(df, limit=candles)
    if not recent:
        raise DataFetchError(f"No usable candles for '{symbol}'")

    snapshot = MarketSnapshot(
        symbol=symbol,
        last_close=recent[-1]["close"],
        last_volume=recent[-1]["volume"],
        candles=recent,
    )

    logger.info(f"Fetched {len(df)} candles for {symbol}, last close {snapshot.last_close}")

    return snapshot
