# run_tracker.py
"""Process entrypoint: logging, config check, Discord client, tracker service."""

from __future__ import annotations

import asyncio
import logging
import sys

import discord

from bot_config import DISCORD_BOT_TOKEN, NOTICE_CHANNEL_ID, TRACKING_CHANNEL_ID, _fail_if_required
from logging_setup import configure_logging, handle_uncaught_exception, shutdown_logging
from tracker.dal.tracker_dal import SqlPersistence
from tracker.hiscores_client import HiscoresClient
from tracker.notifier import ChannelNotifier
from tracker.service import TrackerService

logger = logging.getLogger(__name__)


class TrackerClient(discord.Client):
    def __init__(self) -> None:
        super().__init__(intents=discord.Intents.default())
        self.hiscores = HiscoresClient()
        self.notifier = ChannelNotifier(self, TRACKING_CHANNEL_ID, NOTICE_CHANNEL_ID)
        self.service = TrackerService(
            fetcher=self.hiscores,
            storage=SqlPersistence(),
            notifier=self.notifier,
            notice=self.notifier.notice,
        )
        self._started = False

    async def on_ready(self) -> None:
        logger.info("[STARTUP] Logged in as %s", self.user)
        # on_ready fires again after every reconnect
        if self._started:
            return
        self._started = True
        try:
            await self.service.hydrate()
        except Exception:
            logger.exception("[STARTUP] Failed to hydrate tracker state; refresh loop not started")
            return
        self.service.start()

    async def close(self) -> None:
        try:
            await self.service.stop()
            await self.hiscores.close()
        finally:
            await super().close()


def main() -> int:
    configure_logging()
    sys.excepthook = handle_uncaught_exception
    try:
        _fail_if_required()
    except RuntimeError as e:
        logger.critical("%s", e)
        return 1

    client = TrackerClient()
    try:
        client.run(DISCORD_BOT_TOKEN, log_handler=None)
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("[SHUTDOWN] Interrupted")
    finally:
        shutdown_logging()
    return 0


if __name__ == "__main__":
    sys.exit(main())
