from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from nekovilo.cog.commands import trigger_cmds
from nekovilo.datatypes.discord_datatypes import ChannelID, GuildID
from nekovilo.datatypes.errors import StoreError, ValidationError
from nekovilo.datatypes.trigger_datatypes import TriggerRule


class Ctx:
    def __init__(self, *, guild_id=10, channel_id=20, manage_messages=True, manage_guild=False):
        self.guild_id = guild_id
        self.channel_id = channel_id
        self.user = SimpleNamespace(
            guild_permissions=SimpleNamespace(manage_messages=manage_messages, manage_guild=manage_guild)
        )
        self.respond = AsyncMock()
        self.defer = AsyncMock()
        self.send_followup = AsyncMock()

    @property
    def followup_text(self):
        return self.send_followup.await_args.args[0]


def make_rule(rule_id, enabled=True, exceptions=()):
    return TriggerRule(
        id=rule_id,
        guild_id=GuildID(10),
        channel_ids=[ChannelID(20)],
        keywords=["ping", "pong"],
        response="hello",
        exceptions=list(exceptions),
        enabled=enabled,
    )


@pytest.fixture
def admin():
    fake = AsyncMock()
    fake.add_rule.return_value = 12
    fake.remove_rule.return_value = 1
    fake.remove_all_rules.return_value = 3
    fake.list_rules.return_value = []
    return fake


@pytest.fixture
def cache():
    fake = MagicMock()
    fake.reload = AsyncMock(return_value=True)
    fake.trigger_count = 5
    return fake


@pytest.fixture
def cog(admin, cache):
    return trigger_cmds.TriggerCommandsCog(SimpleNamespace(), admin, cache)


def test_setup_adds_cog(admin, cache):
    captured = {}

    def fake_add_cog(cog):
        captured["cog"] = cog

    trigger_cmds.setup(SimpleNamespace(add_cog=fake_add_cog), admin, cache)
    assert isinstance(captured["cog"], trigger_cmds.TriggerCommandsCog)


@pytest.mark.asyncio
async def test_add_trigger_defaults_to_current_channel(cog, admin):
    ctx = Ctx(channel_id=20)

    await trigger_cmds.TriggerCommandsCog.add_trigger.callback(cog, ctx, "ping, pong", "hello", "no ping", None)

    admin.add_rule.assert_awaited_once_with(GuildID(10), [ChannelID(20)], ["ping", "pong"], "hello", ["no ping"])
    assert ctx.followup_text.startswith("✅ Added trigger #12")
    assert "<#20>" in ctx.followup_text


@pytest.mark.asyncio
async def test_add_trigger_uses_selected_channel(cog, admin):
    ctx = Ctx(channel_id=20)

    await trigger_cmds.TriggerCommandsCog.add_trigger.callback(cog, ctx, "ping", "pong", "", SimpleNamespace(id=30))

    assert admin.add_rule.await_args.args[1] == [ChannelID(30)]


@pytest.mark.asyncio
async def test_add_trigger_reports_validation_error(cog, admin):
    admin.add_rule.side_effect = ValidationError("At least one keyword is required.")
    ctx = Ctx()

    await trigger_cmds.TriggerCommandsCog.add_trigger.callback(cog, ctx, " , ", "pong", "", None)

    ctx.send_followup.assert_awaited_once_with("❌ At least one keyword is required.", ephemeral=True)


@pytest.mark.asyncio
async def test_add_trigger_reports_store_error_differently(cog, admin):
    admin.add_rule.side_effect = StoreError("database is locked")
    ctx = Ctx()

    await trigger_cmds.TriggerCommandsCog.add_trigger.callback(cog, ctx, "ping", "pong", "", None)

    ctx.send_followup.assert_awaited_once_with(trigger_cmds.STORE_FAILURE_MESSAGE, ephemeral=True)


@pytest.mark.asyncio
async def test_add_trigger_requires_guild(cog, admin):
    ctx = Ctx(guild_id=None)

    await trigger_cmds.TriggerCommandsCog.add_trigger.callback(cog, ctx, "ping", "pong", "", None)

    ctx.respond.assert_awaited_once_with("This command can only be used in a server.", ephemeral=True)
    admin.add_rule.assert_not_awaited()


@pytest.mark.asyncio
async def test_add_trigger_requires_manage_messages(cog, admin):
    ctx = Ctx(manage_messages=False)

    await trigger_cmds.TriggerCommandsCog.add_trigger.callback(cog, ctx, "ping", "pong", "", None)

    ctx.respond.assert_awaited_once_with("You need the Manage Messages permission.", ephemeral=True)
    admin.add_rule.assert_not_awaited()


@pytest.mark.asyncio
async def test_user_without_guild_permissions_is_rejected(cog, admin):
    ctx = Ctx()
    ctx.user = SimpleNamespace()

    await trigger_cmds.TriggerCommandsCog.remove_trigger.callback(cog, ctx, 1)

    admin.remove_rule.assert_not_awaited()


@pytest.mark.asyncio
async def test_remove_trigger_reports_result(cog, admin):
    ctx = Ctx()

    await trigger_cmds.TriggerCommandsCog.remove_trigger.callback(cog, ctx, 4)

    admin.remove_rule.assert_awaited_once_with(4, GuildID(10))
    assert ctx.followup_text == "🗑️ Removed trigger #4."


@pytest.mark.asyncio
async def test_remove_trigger_missing_rule(cog, admin):
    admin.remove_rule.return_value = 0
    ctx = Ctx()

    await trigger_cmds.TriggerCommandsCog.remove_trigger.callback(cog, ctx, 4)

    assert ctx.followup_text == "No trigger #4 exists in this server."


@pytest.mark.asyncio
async def test_clear_triggers_requires_manage_guild(cog, admin):
    ctx = Ctx(manage_guild=False)

    await trigger_cmds.TriggerCommandsCog.clear_triggers.callback(cog, ctx, True)

    ctx.respond.assert_awaited_once_with("You need the Manage Guild permission.", ephemeral=True)
    admin.remove_all_rules.assert_not_awaited()


@pytest.mark.asyncio
async def test_clear_triggers_requires_confirmation(cog, admin):
    ctx = Ctx(manage_guild=True)

    await trigger_cmds.TriggerCommandsCog.clear_triggers.callback(cog, ctx, False)

    admin.remove_all_rules.assert_not_awaited()
    assert "confirm:True" in ctx.respond.await_args.args[0]


@pytest.mark.asyncio
async def test_clear_triggers_with_confirmation(cog, admin):
    ctx = Ctx(manage_guild=True)

    await trigger_cmds.TriggerCommandsCog.clear_triggers.callback(cog, ctx, True)

    admin.remove_all_rules.assert_awaited_once_with(GuildID(10))
    assert ctx.followup_text == "🗑️ Removed 3 triggers."


@pytest.mark.asyncio
async def test_list_triggers_empty(cog):
    ctx = Ctx()

    await trigger_cmds.TriggerCommandsCog.list_triggers.callback(cog, ctx)

    assert "No triggers configured" in ctx.followup_text


@pytest.mark.asyncio
async def test_list_triggers_builds_embed(cog, admin):
    admin.list_rules.return_value = [make_rule(i) for i in range(25, 0, -1)]
    ctx = Ctx()

    await trigger_cmds.TriggerCommandsCog.list_triggers.callback(cog, ctx)

    embed = ctx.send_followup.await_args.kwargs["embed"]
    assert embed.title == "Triggers (25)"
    assert len(embed.fields) == trigger_cmds.MAX_LISTED_TRIGGERS
    assert embed.fields[0].name == "#25"
    assert "20 newest of 25" in embed.footer.text


def test_format_rule_field_includes_details():
    name, value = trigger_cmds.format_rule_field(make_rule(3, enabled=False, exceptions=["nope"]))

    assert name == "#3 (disabled)"
    assert "ping, pong" in value
    assert "<#20>" in value
    assert "**Exceptions:** nope" in value


@pytest.mark.asyncio
async def test_reload_triggers_success(cog, cache):
    ctx = Ctx()

    await trigger_cmds.TriggerCommandsCog.reload_triggers.callback(cog, ctx)

    cache.reload.assert_awaited_once()
    assert ctx.followup_text == "🔄 5 triggers loaded."


@pytest.mark.asyncio
async def test_reload_triggers_failure(cog, cache):
    cache.reload.return_value = False
    ctx = Ctx()

    await trigger_cmds.TriggerCommandsCog.reload_triggers.callback(cog, ctx)

    assert ctx.followup_text.startswith("❌ Reload failed")
