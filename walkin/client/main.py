"""walkin-watch: follow the live queue from a terminal."""

import argparse
import asyncio
import contextlib
import logging

from walkin.api.core.logging import setup_logging
from walkin.shared.protocol import AiChatMessage

from .sync_agent import RECONNECT_DELAY, PULL_INTERVAL, LocalSnapshot, QueueSyncAgent

logger = logging.getLogger("walkin.watch")


def _print_snapshot(local: LocalSnapshot) -> None:
    snap = local.snapshot
    status = snap.business_status.message if snap.business_status else "unknown"
    logger.info(f"[{local.source}] {snap.count} waiting | {snap.estimated_wait} | {status}")


def _print_chat(message: AiChatMessage) -> None:
    who = "you" if message.is_from_user else "assistant"
    logger.info(f"[chat:{who}] {message.message}")


async def _watch(args: argparse.Namespace) -> None:
    agent = QueueSyncAgent(
        args.url,
        user_id=args.user_id,
        reconnect_delay=args.reconnect_delay,
        pull_interval=args.pull_interval,
        on_snapshot=_print_snapshot,
        on_chat=_print_chat,
    )
    async with agent:
        await asyncio.Event().wait()


def main() -> None:
    parser = argparse.ArgumentParser(description="Follow the walk-in queue in real time")
    parser.add_argument("--url", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--user-id", default=None, help="user id to receive chat replies for")
    parser.add_argument("--reconnect-delay", type=float, default=RECONNECT_DELAY)
    parser.add_argument("--pull-interval", type=float, default=PULL_INTERVAL)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_watch(args))


if __name__ == "__main__":
    main()
