"""Tests for RuleRepository against a real SQLite database."""

import asyncio

import aiosqlite
import pytest

from nekovilo.database.db_connection import ConnectionManager
from nekovilo.database.db_schema import SchemaManager
from nekovilo.datatypes.discord_datatypes import ChannelID, GuildID
from nekovilo.datatypes.errors import StoreError
from nekovilo.datatypes.trigger_datatypes import NewTriggerRule
from nekovilo.repositories.rules_repo import RuleRepository

GUILD_A = GuildID(900000000000000001)
GUILD_B = GuildID(900000000000000002)
BIG_CHANNEL = ChannelID(1234567890123456789)


def new_rule(guild_id=GUILD_A, keywords=("ping",), response="pong", channels=(BIG_CHANNEL,), exceptions=()):
    return NewTriggerRule(
        guild_id=guild_id,
        channel_ids=list(channels),
        keywords=list(keywords),
        response=response,
        exceptions=list(exceptions),
    )


@pytest.mark.asyncio
async def test_insert_and_list_enabled_rules_round_trip_fields(connection_manager):
    repo = RuleRepository(connection_manager)

    rule_id = await repo.insert_rule(new_rule(keywords=["Hello", "héllo"], exceptions=["no"]))

    (rule,) = await repo.list_enabled_rules()
    assert rule.id == rule_id
    assert rule.guild_id == GUILD_A
    assert rule.channel_ids == [BIG_CHANNEL]
    assert rule.channel_ids[0].to_int() == 1234567890123456789
    assert rule.keywords == ["Hello", "héllo"]
    assert rule.exceptions == ["no"]
    assert rule.response == "pong"
    assert rule.enabled is True


@pytest.mark.asyncio
async def test_enabled_rules_are_ordered_by_id_across_guilds(connection_manager):
    repo = RuleRepository(connection_manager)
    first = await repo.insert_rule(new_rule(guild_id=GUILD_B))
    second = await repo.insert_rule(new_rule(guild_id=GUILD_A))
    third = await repo.insert_rule(new_rule(guild_id=GUILD_B))

    rules = await repo.list_enabled_rules()

    assert [r.id for r in rules] == [first, second, third]


@pytest.mark.asyncio
async def test_disabled_rules_are_not_loaded(connection_manager):
    repo = RuleRepository(connection_manager)
    kept = await repo.insert_rule(new_rule())
    disabled = await repo.insert_rule(new_rule())

    async with connection_manager.transaction() as conn:
        await conn.execute("UPDATE rules SET enabled = 0 WHERE id = ?", (disabled,))

    assert [r.id for r in await repo.list_enabled_rules()] == [kept]
    assert {r.id for r in await repo.list_guild_rules(GUILD_A)} == {kept, disabled}


@pytest.mark.asyncio
async def test_guild_rules_are_scoped_and_newest_first(connection_manager):
    repo = RuleRepository(connection_manager)
    a1 = await repo.insert_rule(new_rule(guild_id=GUILD_A))
    await repo.insert_rule(new_rule(guild_id=GUILD_B))
    a2 = await repo.insert_rule(new_rule(guild_id=GUILD_A))

    rules = await repo.list_guild_rules(GUILD_A)

    assert [r.id for r in rules] == [a2, a1]


@pytest.mark.asyncio
async def test_delete_rule_is_scoped_to_guild(connection_manager):
    repo = RuleRepository(connection_manager)
    rule_id = await repo.insert_rule(new_rule(guild_id=GUILD_A))

    assert await repo.delete_rule(rule_id, GUILD_B) == 0
    assert len(await repo.list_enabled_rules()) == 1

    assert await repo.delete_rule(rule_id, GUILD_A) == 1
    assert await repo.list_enabled_rules() == []


@pytest.mark.asyncio
async def test_delete_missing_rule_affects_nothing(connection_manager):
    repo = RuleRepository(connection_manager)

    assert await repo.delete_rule(4242, GUILD_A) == 0


@pytest.mark.asyncio
async def test_delete_all_rules_only_touches_one_guild(connection_manager):
    repo = RuleRepository(connection_manager)
    await repo.insert_rule(new_rule(guild_id=GUILD_A))
    await repo.insert_rule(new_rule(guild_id=GUILD_A))
    other = await repo.insert_rule(new_rule(guild_id=GUILD_B))

    assert await repo.delete_all_rules(GUILD_A) == 2

    assert [r.id for r in await repo.list_enabled_rules()] == [other]


@pytest.mark.asyncio
async def test_malformed_rows_are_skipped(connection_manager):
    repo = RuleRepository(connection_manager)
    good = await repo.insert_rule(new_rule())
    async with connection_manager.transaction() as conn:
        await conn.execute(
            "INSERT INTO rules (guild_id, channel_ids, keywords, response) VALUES (?, ?, ?, ?)",
            (GUILD_A.to_int(), '["1"]', "not json", "broken"),
        )

    assert [r.id for r in await repo.list_enabled_rules()] == [good]


@pytest.mark.asyncio
async def test_read_waits_for_open_transaction_to_commit(connection_manager):
    repo = RuleRepository(connection_manager)

    async with connection_manager.transaction() as conn:
        await conn.execute(
            "INSERT INTO rules (guild_id, channel_ids, keywords, response) VALUES (?, ?, ?, ?)",
            (GUILD_A.to_int(), '["1"]', '["ping"]', "pong"),
        )
        pending = asyncio.create_task(repo.list_enabled_rules())
        await asyncio.sleep(0.05)
        assert not pending.done()

    (rule,) = await pending
    assert rule.response == "pong"


@pytest.mark.asyncio
async def test_read_never_sees_rows_of_rolled_back_transaction(connection_manager):
    repo = RuleRepository(connection_manager)
    pending = None

    with pytest.raises(RuntimeError):
        async with connection_manager.transaction() as conn:
            await conn.execute(
                "INSERT INTO rules (guild_id, channel_ids, keywords, response) VALUES (?, ?, ?, ?)",
                (GUILD_A.to_int(), '["1"]', '["ping"]', "pong"),
            )
            pending = asyncio.create_task(repo.list_enabled_rules())
            await asyncio.sleep(0.05)
            raise RuntimeError("abort")

    assert await pending == []


@pytest.mark.asyncio
async def test_errors_surface_as_store_error_when_closed(tmp_path):
    manager = ConnectionManager()
    repo = RuleRepository(manager)

    with pytest.raises(StoreError):
        await repo.list_enabled_rules()
    with pytest.raises(StoreError):
        await repo.insert_rule(new_rule())
    with pytest.raises(StoreError):
        await repo.delete_all_rules(GUILD_A)


@pytest.mark.asyncio
async def test_missing_table_surfaces_as_store_error(tmp_path):
    manager = ConnectionManager()
    await manager.open(tmp_path / "empty.db")
    try:
        with pytest.raises(StoreError) as exc_info:
            await RuleRepository(manager).list_enabled_rules()
        assert isinstance(exc_info.value.__cause__, aiosqlite.Error)
    finally:
        await manager.close()


@pytest.mark.asyncio
async def test_schema_initialization_is_idempotent(connection_manager):
    repo = RuleRepository(connection_manager)
    await repo.insert_rule(new_rule())

    await SchemaManager.initialize_schema(connection_manager.connection)

    assert len(await repo.list_enabled_rules()) == 1


@pytest.mark.asyncio
async def test_legacy_single_channel_column_is_migrated(tmp_path):
    manager = ConnectionManager()
    await manager.open(tmp_path / "legacy.db")
    try:
        conn = manager.connection
        await conn.execute("""
            CREATE TABLE rules (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                channel_id INTEGER,
                keywords TEXT NOT NULL,
                response TEXT NOT NULL,
                exceptions TEXT NOT NULL DEFAULT '[]',
                enabled INTEGER NOT NULL DEFAULT 1
            )
        """)
        await conn.execute(
            "INSERT INTO rules (guild_id, channel_id, keywords, response) VALUES (?, ?, ?, ?)",
            (GUILD_A.to_int(), 555, '["legacy"]', "old reply"),
        )
        await conn.commit()

        await SchemaManager.initialize_schema(conn)

        (rule,) = await RuleRepository(manager).list_enabled_rules()
        assert rule.channel_ids == [ChannelID(555)]
        assert rule.keywords == ["legacy"]
        async with conn.execute("PRAGMA table_info(rules)") as cursor:
            columns = {row[1] for row in await cursor.fetchall()}
        assert "channel_id" not in columns
    finally:
        await manager.close()
