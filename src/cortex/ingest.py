"""Candle loading and stub generation."""
from pathlib import Path
from typing import List, Union

import numpy as np
import pandas as pd

from .candles import Candle

REQUIRED_COLUMNS = ("open", "high", "low", "close")


def candles_from_frame(df: pd.DataFrame) -> List[Candle]:
    """Convert an OHLCV frame into candles.

    Expects columns open, high, low, close; volume and timestamp are
    optional. Timestamps become epoch milliseconds.
    """
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Candle frame missing columns: {missing}")

    if "timestamp" in df.columns:
        raw = df["timestamp"]
        # Numeric timestamps are epoch milliseconds
        if pd.api.types.is_numeric_dtype(raw):
            ts = pd.to_datetime(raw, unit="ms", utc=True)
        else:
            ts = pd.to_datetime(raw, utc=True)
        times = ((ts - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(milliseconds=1)).to_numpy()
    else:
        times = np.arange(len(df))

    volume = df["volume"] if "volume" in df.columns else pd.Series(0.0, index=df.index)

    return [
        Candle(
            time=float(t),
            open=float(o),
            high=float(h),
            low=float(l_),
            close=float(c),
            volume=float(v),
        )
        for t, o, h, l_, c, v in zip(
            times, df["open"], df["high"], df["low"], df["close"], volume
        )
    ]


def load_candles(path: Union[str, Path]) -> pd.DataFrame:
    """Read an OHLCV frame from CSV or parquet, sorted by time."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Candle file not found: {path}")

    if path.suffix == ".parquet":
        df = pd.read_parquet(path)
    else:
        df = pd.read_csv(path)

    df.columns = [str(c).lower() for c in df.columns]
    if "timestamp" in df.columns:
        df = df.sort_values("timestamp").reset_index(drop=True)
    return df


def generate_stub_candles(
    n_candles: int = 500,
    base_price: float = 100.0,
    volatility: float = 0.01,
    start_date: str = "2023-01-01",
    freq: str = "1h",
    seed: int = 1337,
) -> pd.DataFrame:
    """Generate a random-walk OHLCV frame for testing."""
    rng = np.random.default_rng(seed)

    returns = rng.normal(0, volatility, n_candles)
    closes = base_price * np.exp(np.cumsum(returns))
    opens = np.concatenate([[base_price], closes[:-1]])

    # Wicks extend past the body by a fraction of the move size
    wick = np.abs(rng.normal(0, volatility / 2, n_candles))
    highs = np.maximum(opens, closes) * (1 + wick)
    lows = np.minimum(opens, closes) * (1 - wick)

    return pd.DataFrame({
        "timestamp": pd.date_range(start_date, periods=n_candles, freq=freq, tz="UTC"),
        "open": np.round(opens, 4),
        "high": np.round(highs, 4),
        "low": np.round(lows, 4),
        "close": np.round(closes, 4),
        "volume": np.round(rng.exponential(10.0, n_candles), 4),
    })
