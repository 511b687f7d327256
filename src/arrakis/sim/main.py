# src/arrakis/sim/main

import argparse
import logging
import sys
import time

from pathlib import Path
from typing import List, Optional

import pandas as pd

from pydantic import ValidationError

from arrakis.core.circular_trace import CircularPollTrace
from arrakis.core.config import PollingConfig, load_polling_config
from arrakis.core.log_config import configure_logging
from arrakis.core.rolling_trace import RollingPollTrace
from arrakis.sim.profiles import PROFILES
from arrakis.sim.simulation import SimulationResult, simulate_traffic

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Simulate adaptive SQS polling against synthetic traffic profiles."
    )
    parser.add_argument(
        "--profile", type=str, default="all",
        choices=sorted(PROFILES) + ["all"],
        help="Arrival profile to replay (default: all)"
    )
    parser.add_argument(
        "--duration", type=float, default=600.0,
        help="Simulated seconds per run (default: 600)"
    )
    parser.add_argument(
        "--seed", type=int, default=42,
        help="Seed for the arrival stream"
    )
    parser.add_argument(
        "--fixedWait", type=int, default=1,
        help="Wait time of the fixed-interval baseline (default: 1)"
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="TOML file with an [adaptive_polling] table"
    )
    parser.add_argument(
        "--trace", type=Path, default=None,
        help="Write a per-poll trace of the adaptive runs to this .csv.gz file"
    )
    parser.add_argument(
        "--useCircularTrace", action="store_true",
        help="Keep the trace in memory and print its tail instead of writing a file"
    )
    parser.add_argument(
        "--maxRows", type=int, default=10000,
        help="Rows retained by the trace"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log2File", action="store_true",
        help="Also write log output to logging/simulation.log"
    )
    return parser.parse_args(argv)


def _load_config(path: Optional[Path]) -> PollingConfig:
    if path is None:
        return PollingConfig()
    return load_polling_config(path)


def run_simulations(args: argparse.Namespace) -> pd.DataFrame:
    """
    Run the adaptive and fixed-wait simulations selected by `args`.

    Returns:
        pd.DataFrame: One row per (profile, mode).
    """
    config = _load_config(args.config)
    fixed_config = config.model_copy(update={"disabled_wait_seconds": args.fixedWait})
    names = sorted(PROFILES) if args.profile == "all" else [args.profile]

    if args.useCircularTrace:
        trace = CircularPollTrace(max_rows=args.maxRows)
    elif args.trace is not None:
        trace = RollingPollTrace(str(args.trace), max_rows=args.maxRows)
    else:
        trace = None

    results: List[SimulationResult] = []
    try:
        for name in names:
            profile = PROFILES[name]
            logger.info("Simulating profile '%s' (%s)", name, profile.description)
            results.append(simulate_traffic(profile, args.duration, config, seed=args.seed, trace=trace))
            results.append(simulate_traffic(profile, args.duration, fixed_config, seed=args.seed, adaptive=False))
    finally:
        if trace is not None:
            trace.close()

    if isinstance(trace, CircularPollTrace):
        print(trace.to_dataframe().tail(20).to_string(index=False))

    return pd.DataFrame([result.as_row() for result in results])


def main(argv: Optional[List[str]] = None) -> None:
    start_time = time.time()
    args = _parse_args(argv)
    configure_logging(args.debug, args.log2File, "simulation.log")

    try:
        table = run_simulations(args)
    except (FileNotFoundError, ValidationError) as e:
        print(f"Error: invalid polling configuration: {e}", file=sys.stderr)
        sys.exit(1)

    print("\n=== Simulation Summary ===")
    print(table.to_string(index=False))

    elapsed = time.time() - start_time
    print(f"\nTotal elapsed time: {elapsed:.2f}s")


if __name__ == '__main__':
    main()
