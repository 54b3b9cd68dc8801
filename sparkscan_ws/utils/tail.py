# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""
Command line tool that prints SparkScan real-time messages as JSON lines.

Usage:
    sparkscan-ws-tail balances /transaction/network/REGTEST
    sparkscan-ws-tail --url wss://updates.sparkscan.io/ --raw tokens
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import msgspec
from loguru import logger

from sparkscan_ws.client import SparkScanWsClient
from sparkscan_ws.config import SparkScanWsConfig
from sparkscan_ws.errors import SparkScanWsError, UnrecognizedTopicError
from sparkscan_ws.topic import Topic, parse_topic
from sparkscan_ws.types.message import SparkScanMessage


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Print SparkScan real-time messages as JSON lines")
    parser.add_argument("topics", nargs="+", help="Topics to subscribe to, e.g. balances or /balance/address/<addr>")
    parser.add_argument("--url", help="WebSocket URL (default: SPARKSCAN_WS_URL or mainnet)")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--raw", action="store_true", help="Print raw publications instead of decoded messages")
    return parser


def parse_topics(values: List[str]) -> List[Topic]:
    """Parses topic arguments, raising UnrecognizedTopicError on the first invalid one."""
    return [parse_topic(value) for value in values]


def format_message(message: SparkScanMessage) -> str:
    return msgspec.json.encode(message).decode()


async def tail(config: SparkScanWsConfig, topics: List[Topic], raw: bool = False) -> None:
    client = SparkScanWsClient.with_config(config)
    for topic in topics:
        subscription = await client.subscribe(topic)
        if raw:
            subscription.on_raw_publication(lambda data: print(data.decode(errors="replace"), flush=True))
        else:
            subscription.on_message(lambda message: print(format_message(message), flush=True))
        await subscription.subscribe()

    async with client:
        # Runs until cancelled
        await asyncio.Event().wait()


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_file:
        logger.add(args.log_file, rotation="10 MB")

    try:
        topics = parse_topics(args.topics)
    except UnrecognizedTopicError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        config = SparkScanWsConfig.from_env(url=args.url)
    except SparkScanWsError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        asyncio.run(tail(config, topics, raw=args.raw))
    except KeyboardInterrupt:
        pass
    except SparkScanWsError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
