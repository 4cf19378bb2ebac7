"""
Repository for the ``rules`` table.

This is the rule store boundary used by the trigger cache and the
administration service. Every database failure is re-raised as
:class:`StoreError` so callers never need to know about aiosqlite.
"""

from __future__ import annotations

import json
from typing import Any, List

import aiosqlite

from nekovilo.database.db_connection import ConnectionManager, db_connection
from nekovilo.datatypes.discord_datatypes import ChannelID, GuildID
from nekovilo.datatypes.errors import StoreError
from nekovilo.datatypes.trigger_datatypes import NewTriggerRule, TriggerRule
from nekovilo.util.logger import get_logger

logger = get_logger("rules_repo")

# aiosqlite raises ValueError once its connection thread has stopped
_DB_ERRORS = (aiosqlite.Error, RuntimeError, ValueError)

_RULE_COLUMNS = "id, guild_id, channel_ids, keywords, response, exceptions, enabled"


def _encode_list(values: List[Any]) -> str:
    return json.dumps([str(value) for value in values], ensure_ascii=False)


def _decode_list(raw: str | None) -> List[str]:
    if not raw:
        return []
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, got {type(data).__name__}")
    return [str(item) for item in data]


def _row_to_rule(row: aiosqlite.Row) -> TriggerRule:
    return TriggerRule(
        id=int(row["id"]),
        guild_id=GuildID(row["guild_id"]),
        channel_ids=[ChannelID(value) for value in _decode_list(row["channel_ids"])],
        keywords=_decode_list(row["keywords"]),
        response=row["response"],
        exceptions=_decode_list(row["exceptions"]),
        enabled=bool(row["enabled"]),
    )


def _rows_to_rules(rows: List[aiosqlite.Row]) -> List[TriggerRule]:
    rules: List[TriggerRule] = []
    for row in rows:
        try:
            rules.append(_row_to_rule(row))
        except (ValueError, TypeError) as exc:
            logger.warning("[RULES REPO] Skipping malformed rule row id=%s: %s", row["id"], exc)
    return rules


class RuleRepository:
    """CRUD for trigger rules on top of a shared :class:`ConnectionManager`."""

    def __init__(self, connection_manager: ConnectionManager = db_connection) -> None:
        self._db = connection_manager

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_enabled_rules(self) -> List[TriggerRule]:
        """Return every enabled rule across all guilds, ordered by id."""
        try:
            async with self._db.read() as conn:
                async with conn.execute(
                    f"SELECT {_RULE_COLUMNS} FROM rules WHERE enabled = 1 ORDER BY id ASC"
                ) as cursor:
                    rows = await cursor.fetchall()
        except _DB_ERRORS as exc:
            raise StoreError(f"Failed to load enabled rules: {exc}") from exc
        return _rows_to_rules(list(rows))

    async def list_guild_rules(self, guild_id: GuildID) -> List[TriggerRule]:
        """Return all rules (enabled or not) for one guild, newest first."""
        try:
            async with self._db.read() as conn:
                async with conn.execute(
                    f"SELECT {_RULE_COLUMNS} FROM rules WHERE guild_id = ? ORDER BY id DESC",
                    (guild_id.to_int(),),
                ) as cursor:
                    rows = await cursor.fetchall()
        except _DB_ERRORS as exc:
            raise StoreError(f"Failed to list rules for guild {guild_id}: {exc}") from exc
        return _rows_to_rules(list(rows))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_rule(self, rule: NewTriggerRule) -> int:
        """Insert an enabled rule and return its new id."""
        try:
            async with self._db.transaction() as conn:
                cursor = await conn.execute(
                    """
                    INSERT INTO rules (guild_id, channel_ids, keywords, response, exceptions, enabled)
                    VALUES (?, ?, ?, ?, ?, 1)
                    """,
                    (
                        rule.guild_id.to_int(),
                        _encode_list(rule.channel_ids),
                        _encode_list(rule.keywords),
                        rule.response,
                        _encode_list(rule.exceptions),
                    ),
                )
                rule_id = cursor.lastrowid
        except _DB_ERRORS as exc:
            raise StoreError(f"Failed to insert rule for guild {rule.guild_id}: {exc}") from exc

        if rule_id is None:
            raise StoreError("Insert did not return a rule id")
        logger.debug("[RULES REPO] Inserted rule %s for guild %s", rule_id, rule.guild_id)
        return int(rule_id)

    async def delete_rule(self, rule_id: int, guild_id: GuildID) -> int:
        """Delete one rule if it belongs to the guild; return rows affected."""
        try:
            async with self._db.transaction() as conn:
                cursor = await conn.execute(
                    "DELETE FROM rules WHERE id = ? AND guild_id = ?",
                    (int(rule_id), guild_id.to_int()),
                )
                affected = cursor.rowcount
        except _DB_ERRORS as exc:
            raise StoreError(f"Failed to delete rule {rule_id}: {exc}") from exc
        return max(affected, 0)

    async def delete_all_rules(self, guild_id: GuildID) -> int:
        """Delete every rule of a guild; return rows affected."""
        try:
            async with self._db.transaction() as conn:
                cursor = await conn.execute(
                    "DELETE FROM rules WHERE guild_id = ?",
                    (guild_id.to_int(),),
                )
                affected = cursor.rowcount
        except _DB_ERRORS as exc:
            raise StoreError(f"Failed to delete rules for guild {guild_id}: {exc}") from exc
        return max(affected, 0)


# Module-level singleton
rules_repo = RuleRepository()
