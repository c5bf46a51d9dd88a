#!/usr/bin/env python3
"""Train or run the forecasting pipeline on candle files."""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cortex import ForecastPipeline, PipelineConfig, describe_distribution
from cortex.ingest import candles_from_frame, generate_stub_candles, load_candles

logger = logging.getLogger("cortex.run")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )


def load_streams(
    data: Optional[List[str]],
    stub: bool,
    n_streams: int = 1,
    n_candles: int = 500,
    seed: int = 1337,
) -> List[pd.DataFrame]:
    """One OHLCV frame per stream, the first one is the primary stream."""
    if stub:
        return [
            generate_stub_candles(n_candles, base_price=100.0 * (i + 1), seed=seed + i)
            for i in range(n_streams)
        ]
    if not data:
        raise SystemExit("Provide --data files or --stub")
    return [load_candles(path) for path in data]


def iter_steps(frames: List[pd.DataFrame]):
    """Yield one list of candles per time step across all streams."""
    streams = [candles_from_frame(df) for df in frames]
    length = min(len(s) for s in streams)
    if len({len(s) for s in streams}) > 1:
        logger.warning("Streams differ in length, using first %d candles", length)
    for i in range(length):
        yield [stream[i] for stream in streams]


def run_training(config: PipelineConfig, frames: List[pd.DataFrame]) -> Optional[dict]:
    pipeline = ForecastPipeline(config, logger=logger)
    pipeline.prepare_training_phase()
    for candles in iter_steps(frames):
        pipeline.add_training_data(candles)

    metrics = pipeline.finalize_training_phase()
    for idx, segments in enumerate(pipeline.distributions):
        logger.info("Distribution of stream %d:\n%s", idx, describe_distribution(segments).to_string(index=False))
    pipeline.teardown()
    return metrics


def run_prediction(config: PipelineConfig, frames: List[pd.DataFrame]) -> Optional[list]:
    pipeline = ForecastPipeline(config, logger=logger)
    pipeline.restore()

    forecasts = None
    for candles in iter_steps(frames):
        forecasts = pipeline.next_value(candles)
    pipeline.teardown()
    return forecasts


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Ratio-quantized candle forecasting")
    parser.add_argument("command", choices=["train", "predict"])
    parser.add_argument(
        "--config",
        type=str,
        default="configs/pipeline.yaml",
        help="Path to pipeline configuration YAML",
    )
    parser.add_argument(
        "--data",
        nargs="+",
        default=None,
        help="Candle files (CSV or parquet), one per stream, primary first",
    )
    parser.add_argument("--stub", action="store_true", help="Use generated random-walk candles")
    parser.add_argument("--streams", type=int, default=1, help="Number of stub streams")
    parser.add_argument("--n-candles", type=int, default=500, help="Candles per stub stream")
    parser.add_argument("--working-dir", type=str, default=None, help="Override artifact directory")
    parser.add_argument("--resume", action="store_true", help="Continue training a saved model")
    parser.add_argument("--log-level", type=str, default="INFO")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    config_path = Path(args.config)
    if config_path.exists():
        config = PipelineConfig.from_yaml(str(config_path))
    else:
        logger.info("Config not found at %s, using defaults", config_path)
        config = PipelineConfig()

    if args.working_dir:
        config.working_dir = args.working_dir
    if args.resume:
        config.predictor.resume = True

    frames = load_streams(args.data, args.stub, args.streams, args.n_candles, seed=config.seed)

    if args.command == "train":
        metrics = run_training(config, frames)
        if metrics is None:
            logger.error("Training skipped: not enough candles")
            return 1
        return 0

    forecasts = run_prediction(config, frames)
    if forecasts is None:
        logger.error("Not enough candles for a forecast window")
        return 1
    for step, forecast in enumerate(forecasts, start=1):
        if forecast is None:
            print(f"t+{step}: no forecast")
        else:
            print(f"t+{step}: low={forecast.low:.4f} high={forecast.high:.4f} avg={forecast.avg:.4f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
