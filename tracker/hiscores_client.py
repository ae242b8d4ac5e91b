# tracker/hiscores_client.py
"""
aiohttp client for the JSON hiscores endpoint.

Payload contract (only what is needed to build a Snapshot):
    {"name": str,
     "skills": [{"name": "Overall", "rank": int, "level": int, "xp": int}, ...],
     "activities": [{"name": "Zulrah", "rank": int, "score": int}, ...]}
A rank or value of -1 means the upstream withheld the entry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from constants import HISCORES_TIMEOUT_SECONDS, HISCORES_URL_TEMPLATE, HISCORES_USER_AGENT
from tracker.categories import Category, CategoryGroup
from tracker.errors import FormatChangedError, NotFoundError, TransientFetchError
from tracker.snapshot import Snapshot

logger = logging.getLogger(__name__)

OVERALL_LABEL = "overall"


def _entry_value(entry: dict[str, Any], field: str) -> int | None:
    rank = entry.get("rank")
    value = entry.get(field)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{entry.get('name')!r} has non-integer {field} {value!r}")
    if rank == -1 or value == -1:
        return None
    if value < 0:
        raise ValueError(f"{entry.get('name')!r} has negative {field} {value!r}")
    return value


def parse_hiscores_payload(entity_id: str, payload: Any) -> Snapshot:
    """
    Build a Snapshot from a decoded hiscores payload.

    Every known category must be listed, withheld or not. Unknown labels are
    ignored. Raises FormatChangedError when the payload no longer has the
    expected shape or a known category has disappeared.
    """
    try:
        skills = payload["skills"]
        activities = payload.get("activities", [])
        if not isinstance(skills, list) or not isinstance(activities, list):
            raise TypeError("skills/activities must be lists")

        values: dict[Category, int | None] = {}
        on_hiscores = True
        for entry in skills:
            label = str(entry.get("name", "")).strip()
            if label.lower() == OVERALL_LABEL:
                on_hiscores = entry.get("rank", -1) != -1
                continue
            category = Category.from_label(label)
            if category is None or category.group is not CategoryGroup.SKILLS:
                continue
            level = _entry_value(entry, "level")
            if level is not None and level < 1:
                raise ValueError(f"Invalid {category} level {level!r}")
            values[category] = level

        absent = set(CategoryGroup.SKILLS.categories) - set(values)
        if absent:
            names = ", ".join(sorted(str(c) for c in absent))
            raise KeyError(f"missing skill(s): {names}")

        for entry in activities:
            category = Category.from_label(str(entry.get("name", "")))
            if category is None or category.group is CategoryGroup.SKILLS:
                continue
            values[category] = _entry_value(entry, "score")

        absent = set(Category) - set(values)
        if absent:
            names = ", ".join(sorted(str(c) for c in absent))
            raise KeyError(f"missing categories: {names}")
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise FormatChangedError(entity_id, f"Unexpected hiscores payload for {entity_id!r}: {e}") from e

    return Snapshot(
        entity_id=entity_id,
        values=values,
        on_hiscores=on_hiscores,
        display_name=payload.get("name") or None,
    )


class HiscoresClient:
    def __init__(
        self,
        *,
        url_template: str = HISCORES_URL_TEMPLATE,
        timeout: float = HISCORES_TIMEOUT_SECONDS,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.url_template = url_template
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout, headers={"User-Agent": HISCORES_USER_AGENT}
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    def url_for(self, entity_id: str) -> str:
        return self.url_template.format(player=quote(entity_id))

    async def fetch_snapshot(self, entity_id: str) -> Snapshot:
        session = await self._get_session()
        url = self.url_for(entity_id)
        try:
            async with session.get(url) as resp:
                if resp.status == 404:
                    raise NotFoundError(entity_id)
                if resp.status != 200:
                    raise TransientFetchError(
                        entity_id, f"Hiscores returned HTTP {resp.status} for {entity_id!r}"
                    )
                try:
                    payload = await resp.json(content_type=None)
                except ValueError as e:
                    raise FormatChangedError(
                        entity_id, f"Hiscores returned non-JSON body for {entity_id!r}"
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientFetchError(entity_id, f"Hiscores request failed: {e!r}") from e

        logger.debug("[HISCORES] Fetched %s", entity_id)
        return parse_hiscores_payload(entity_id, payload)
