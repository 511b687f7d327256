# src/arrakis/sqs/main

import argparse
import json
import logging
import sys
import threading

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from arrakis.core.circular_trace import CircularPollTrace
from arrakis.core.config import PollingConfig, load_polling_config
from arrakis.core.listener import run_server
from arrakis.core.rolling_trace import RollingPollTrace
from arrakis.core.log_config import configure_logging
from arrakis.sqs.client import AdaptiveSQSClient
from arrakis.sqs.poller import QueuePoller

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Consume an SQS queue with adaptive long polling and print each message."
    )
    parser.add_argument("queue_url", type=str, help="URL of the queue to consume")
    parser.add_argument(
        "--endpoint", type=str, default=None,
        help="Custom endpoint URL (e.g. http://localhost:4566 for LocalStack)"
    )
    parser.add_argument("--region", type=str, default="us-east-1", help="AWS region")
    parser.add_argument("--workers", type=int, default=1, help="Polling threads sharing one controller")
    parser.add_argument("--maxPolls", type=int, default=None, help="Stop after this many receive calls")
    parser.add_argument("--config", type=Path, default=None, help="TOML file with an [adaptive_polling] table")
    parser.add_argument("--noDelete", action="store_true", help="Leave messages on the queue after printing")
    parser.add_argument(
        "--disableAdaptive", action="store_true",
        help="Start with adaptive polling disabled"
    )
    parser.add_argument(
        "--controlPort", type=int, default=None,
        help="Serve the status/enable/disable endpoints on this port"
    )
    parser.add_argument("--trace", type=Path, default=None, help="Write a per-poll trace to this .csv.gz file")
    parser.add_argument(
        "--useCircularTrace", action="store_true",
        help="Keep the trace in memory and print its tail on exit"
    )
    parser.add_argument(
        "--traceTail", type=int, default=20,
        help="Rows of the in-memory trace printed on exit (default: 20)"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log2File", action="store_true", help="Also write log output to logging/")
    return parser.parse_args(argv)


def _print_message(message: Dict[str, Any]) -> None:
    print(json.dumps({"MessageId": message.get("MessageId"), "Body": message.get("Body")}))


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    configure_logging(args.debug, args.log2File, "poller.log")

    try:
        config = load_polling_config(args.config) if args.config else PollingConfig()
    except (FileNotFoundError, ValidationError) as e:
        print(f"Error: invalid polling configuration: {e}", file=sys.stderr)
        sys.exit(1)

    if args.endpoint:
        client = AdaptiveSQSClient.from_endpoint(args.endpoint, region_name=args.region, config=config)
    else:
        client = AdaptiveSQSClient(config=config, region_name=args.region)
    if args.disableAdaptive:
        client.disable_adaptive_polling()

    if args.controlPort is not None:
        threading.Thread(
            target=run_server, args=(client.controller,), kwargs={"port": args.controlPort}, daemon=True
        ).start()
        logger.info("Control listener on port %d", args.controlPort)

    if args.useCircularTrace:
        trace = CircularPollTrace()
    elif args.trace is not None:
        trace = RollingPollTrace(str(args.trace))
    else:
        trace = None

    poller = QueuePoller(
        client, args.queue_url, _print_message,
        workers=args.workers, delete_on_success=not args.noDelete, trace=trace,
    )
    try:
        stats = poller.run(max_polls=args.maxPolls)
    finally:
        if trace is not None:
            trace.close()

    if isinstance(trace, CircularPollTrace):
        print(trace.to_dataframe().tail(args.traceTail).to_string(index=False))
    stats.summarize()


if __name__ == '__main__':
    main()
