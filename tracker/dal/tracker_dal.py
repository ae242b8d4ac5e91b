from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
import logging
from typing import Any

from tracker.categories import Category, CategoryGroup
from tracker.db import execute_async, execute_many_async, run_one_async, run_query_async
from utils import ensure_aware_utc

logger = logging.getLogger(__name__)

_GROUP_TABLES: dict[CategoryGroup, str] = {
    CategoryGroup.SKILLS: "dbo.TrackerSkills",
    CategoryGroup.BOSSES: "dbo.TrackerBosses",
    CategoryGroup.CLUES: "dbo.TrackerClues",
    CategoryGroup.ACTIVITIES: "dbo.TrackerActivities",
}

MISC_DISABLED = "disabled"


def group_table(group: CategoryGroup) -> str:
    return _GROUP_TABLES[group]


def _naive_utc(ts: datetime) -> datetime:
    # DATETIME2 columns are stored as naive UTC
    return ensure_aware_utc(ts).replace(tzinfo=None)


# ---- tracked entities ----
async def list_tracked_entities() -> list[str]:
    sql = "SELECT EntityId FROM dbo.TrackerEntities ORDER BY EntityId ASC;"
    rows = await run_query_async(sql)
    return [r["EntityId"] for r in rows]


async def insert_tracked_entity(entity_id: str) -> None:
    sql = """
        MERGE dbo.TrackerEntities AS t
        USING (SELECT ? AS EntityId) AS s
        ON t.EntityId = s.EntityId
        WHEN NOT MATCHED THEN
            INSERT (EntityId, AddedAtUtc) VALUES (s.EntityId, SYSUTCDATETIME());
    """
    await execute_async(sql, (entity_id,))


async def purge_entity(entity_id: str) -> None:
    """Delete every row owned by an entity that is no longer tracked."""
    tables = [
        *_GROUP_TABLES.values(),
        "dbo.TrackerActivity",
        "dbo.TrackerHiscoreStatus",
        "dbo.TrackerEntities",
    ]
    for table in tables:
        await execute_async(f"DELETE FROM {table} WHERE EntityId = ?;", (entity_id,))
    logger.info("[TRACKER_DAL] Purged persisted rows for %s", entity_id)


# ---- category values ----
async def upsert_category_values(
    entity_id: str, group: CategoryGroup, values: Mapping[Category, int]
) -> int:
    if not values:
        return 0
    sql = f"""
        MERGE {group_table(group)} AS t
        USING (SELECT ? AS EntityId, ? AS Category, ? AS Value) AS s
        ON t.EntityId = s.EntityId AND t.Category = s.Category
        WHEN MATCHED THEN
            UPDATE SET Value = s.Value, UpdatedAtUtc = SYSUTCDATETIME()
        WHEN NOT MATCHED THEN
            INSERT (EntityId, Category, Value, UpdatedAtUtc)
            VALUES (s.EntityId, s.Category, s.Value, SYSUTCDATETIME());
    """
    rows = [(entity_id, category.key, int(value)) for category, value in values.items()]
    return await execute_many_async(sql, rows)


async def fetch_all_category_values(group: CategoryGroup) -> dict[str, dict[Category, int]]:
    sql = f"SELECT EntityId, Category, Value FROM {group_table(group)};"
    out: dict[str, dict[Category, int]] = {}
    for row in await run_query_async(sql):
        try:
            category = Category.from_key(row["Category"])
        except ValueError:
            logger.warning(
                "[TRACKER_DAL] Ignoring unknown %s category %r for %s",
                group.value,
                row["Category"],
                row["EntityId"],
            )
            continue
        out.setdefault(row["EntityId"], {})[category] = int(row["Value"])
    return out


# ---- activity ----
async def upsert_activity_timestamp(entity_id: str, timestamp: datetime) -> None:
    sql = """
        MERGE dbo.TrackerActivity AS t
        USING (SELECT ? AS EntityId, ? AS LastActiveUtc) AS s
        ON t.EntityId = s.EntityId
        WHEN MATCHED THEN
            UPDATE SET LastActiveUtc = s.LastActiveUtc
        WHEN NOT MATCHED THEN
            INSERT (EntityId, LastActiveUtc) VALUES (s.EntityId, s.LastActiveUtc);
    """
    await execute_async(sql, (entity_id, _naive_utc(timestamp)))


async def fetch_all_activity_timestamps() -> dict[str, datetime]:
    sql = "SELECT EntityId, LastActiveUtc FROM dbo.TrackerActivity;"
    rows = await run_query_async(sql)
    return {
        r["EntityId"]: ensure_aware_utc(r["LastActiveUtc"])
        for r in rows
        if r.get("LastActiveUtc") is not None
    }


# ---- hiscores presence ----
async def upsert_hiscores_status(entity_id: str, on_hiscores: bool) -> None:
    sql = """
        MERGE dbo.TrackerHiscoreStatus AS t
        USING (SELECT ? AS EntityId, ? AS OnHiscores) AS s
        ON t.EntityId = s.EntityId
        WHEN MATCHED THEN
            UPDATE SET OnHiscores = s.OnHiscores, UpdatedAtUtc = SYSUTCDATETIME()
        WHEN NOT MATCHED THEN
            INSERT (EntityId, OnHiscores, UpdatedAtUtc)
            VALUES (s.EntityId, s.OnHiscores, SYSUTCDATETIME());
    """
    await execute_async(sql, (entity_id, 1 if on_hiscores else 0))


async def fetch_off_hiscores() -> set[str]:
    sql = "SELECT EntityId FROM dbo.TrackerHiscoreStatus WHERE OnHiscores = 0;"
    return {r["EntityId"] for r in await run_query_async(sql)}


# ---- misc properties ----
async def get_misc_property(name: str) -> str | None:
    sql = "SELECT Value FROM dbo.TrackerMiscProperties WHERE Name = ?;"
    row = await run_one_async(sql, (name,))
    return None if row is None else row.get("Value")


async def set_misc_property(name: str, value: str) -> None:
    sql = """
        MERGE dbo.TrackerMiscProperties AS t
        USING (SELECT ? AS Name, ? AS Value) AS s
        ON t.Name = s.Name
        WHEN MATCHED THEN
            UPDATE SET Value = s.Value
        WHEN NOT MATCHED THEN
            INSERT (Name, Value) VALUES (s.Name, s.Value);
    """
    await execute_async(sql, (name, value))


async def get_disabled_flag() -> bool:
    return (await get_misc_property(MISC_DISABLED) or "").lower() == "true"


async def set_disabled_flag(disabled: bool) -> None:
    await set_misc_property(MISC_DISABLED, "true" if disabled else "false")


class SqlPersistence:
    """Persistence collaborator backed by the SQL Server tables above."""

    async def persist_category_values(
        self, entity_id: str, group: CategoryGroup, values: Mapping[Category, int]
    ) -> None:
        await upsert_category_values(entity_id, group, values)

    async def persist_entity_activity_timestamp(self, entity_id: str, timestamp: datetime) -> None:
        await upsert_activity_timestamp(entity_id, timestamp)

    async def persist_hiscores_status(self, entity_id: str, on_hiscores: bool) -> None:
        await upsert_hiscores_status(entity_id, on_hiscores)

    async def load_all(self) -> dict[str, Any]:
        """Everything needed to rebuild in-memory state at startup."""
        return {
            "tracked": await list_tracked_entities(),
            "values": {g: await fetch_all_category_values(g) for g in CategoryGroup},
            "activity": await fetch_all_activity_timestamps(),
            "off_hiscores": await fetch_off_hiscores(),
            "disabled": await get_disabled_flag(),
        }

    async def add_tracked(self, entity_id: str) -> None:
        await insert_tracked_entity(entity_id)

    async def remove_tracked(self, entity_id: str) -> None:
        await purge_entity(entity_id)

    async def set_disabled(self, disabled: bool) -> None:
        await set_disabled_flag(disabled)
