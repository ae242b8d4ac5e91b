# tracker/notifier.py
from __future__ import annotations

from collections.abc import Mapping
import logging

import discord

from tracker.categories import Category, CategoryGroup

logger = logging.getLogger(__name__)

_GROUP_TITLES = {
    CategoryGroup.SKILLS: "leveled up",
    CategoryGroup.BOSSES: "got new boss kills",
    CategoryGroup.CLUES: "completed clue scrolls",
    CategoryGroup.ACTIVITIES: "gained activity score",
}
_GROUP_COLOURS = {
    CategoryGroup.SKILLS: 0x2ECC71,
    CategoryGroup.BOSSES: 0xE74C3C,
    CategoryGroup.CLUES: 0xF1C40F,
    CategoryGroup.ACTIVITIES: 0x3498DB,
}


def get_channel_safe(client, channel_id: int | None):
    if not channel_id:
        return None
    try:
        channel = client.get_channel(channel_id)
    except Exception:
        logger.exception("[NOTIFY] Error resolving channel id=%s", channel_id)
        return None
    if channel is None:
        logger.warning("[NOTIFY] Channel id=%s not found in client cache", channel_id)
    return channel


def summarize_delta(
    entity_id: str,
    group: CategoryGroup,
    delta: Mapping[Category, int],
    current: Mapping[Category, int] | None = None,
) -> str:
    """One line per category, e.g. 'Fishing +2 (12)'."""
    current = current or {}
    parts = []
    for category in sorted(delta, key=lambda c: c.label):
        line = f"{category.label} +{delta[category]}"
        if category in current:
            line += f" ({current[category]})"
        parts.append(line)
    return "\n".join(parts)


def build_update_embed(
    entity_id: str,
    group: CategoryGroup,
    delta: Mapping[Category, int],
    current: Mapping[Category, int] | None = None,
) -> discord.Embed:
    embed = discord.Embed(
        title=f"{entity_id} {_GROUP_TITLES[group]}",
        description=summarize_delta(entity_id, group, delta, current),
        colour=_GROUP_COLOURS[group],
    )
    return embed


class ChannelNotifier:
    """Sends update embeds and plain notices to configured Discord channels."""

    def __init__(self, client, channel_id: int | None, notice_channel_id: int | None = None):
        self._client = client
        self.channel_id = channel_id
        self.notice_channel_id = notice_channel_id or channel_id

    async def notify(
        self,
        entity_id: str,
        group: CategoryGroup,
        delta: Mapping[Category, int],
        *,
        current: Mapping[Category, int] | None = None,
    ) -> None:
        channel = get_channel_safe(self._client, self.channel_id)
        if channel is None:
            logger.warning("[NOTIFY] No tracking channel; dropped update for %s", entity_id)
            return
        await channel.send(embed=build_update_embed(entity_id, group, delta, current))

    async def notice(self, text: str) -> None:
        channel = get_channel_safe(self._client, self.notice_channel_id)
        if channel is None:
            logger.warning("[NOTIFY] No notice channel; dropped notice: %s", text)
            return
        try:
            await channel.send(text)
        except discord.HTTPException:
            logger.exception("[NOTIFY] Failed to send notice")
