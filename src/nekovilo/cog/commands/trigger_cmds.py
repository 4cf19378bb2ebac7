"""
Trigger administration cog.

Slash commands:
- /addtrigger: Add a keyword trigger for a channel (defaults to the current one)
- /removetrigger: Delete a trigger of this server by id
- /triggers: List this server's triggers
- /cleartriggers: Delete every trigger of this server
- /reloadtriggers: Rebuild the trigger cache from the database

All commands require Manage Messages (Manage Server for /cleartriggers).
Results are ephemeral. Validation problems and storage failures produce
different messages so operators can tell bad input from a broken database.
"""

import discord
from discord import Option
from discord.ext import commands

from nekovilo.datatypes.discord_datatypes import ChannelID, GuildID
from nekovilo.datatypes.errors import StoreError, ValidationError
from nekovilo.datatypes.trigger_datatypes import TriggerRule
from nekovilo.rules_cache.trigger_cache import TriggerCache
from nekovilo.services.rule_admin_service import RuleAdministrationService, parse_phrase_list
from nekovilo.util.logger import get_logger

logger = get_logger("trigger_commands")

STORE_FAILURE_MESSAGE = "❌ Could not save the trigger. Please try again later."
MAX_LISTED_TRIGGERS = 20
EMBED_FIELD_LIMIT = 1024


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def format_rule_field(rule: TriggerRule) -> tuple[str, str]:
    """Return the (name, value) pair describing one rule in the /triggers embed."""
    status = "" if rule.enabled else " (disabled)"
    name = f"#{rule.id}{status}"
    channels = ", ".join(f"<#{channel}>" for channel in rule.channel_ids) or "none"
    lines = [
        f"**Keywords:** {', '.join(rule.keywords)}",
        f"**Response:** {rule.response}",
        f"**Channels:** {channels}",
    ]
    if rule.exceptions:
        lines.append(f"**Exceptions:** {', '.join(rule.exceptions)}")
    return name, _truncate("\n".join(lines), EMBED_FIELD_LIMIT)


class TriggerCommandsCog(commands.Cog):
    """Slash commands for managing keyword triggers."""

    def __init__(self, bot: discord.Bot, admin: RuleAdministrationService, cache: TriggerCache) -> None:
        self.bot = bot
        self._admin = admin
        self._cache = cache
        logger.info("[TRIGGER CMDS] Trigger commands cog loaded")

    async def _check_permissions(self, ctx: discord.ApplicationContext, permission: str = "manage_messages") -> bool:
        if not ctx.guild_id:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False
        # Only guild members carry guild_permissions
        permissions = getattr(ctx.user, "guild_permissions", None)
        if permissions is None or not getattr(permissions, permission, False):
            readable = permission.replace("_", " ").title()
            await ctx.respond(f"You need the {readable} permission.", ephemeral=True)
            return False
        return True

    @commands.slash_command(name="addtrigger", description="Add a keyword trigger (current channel by default).")
    async def add_trigger(
        self,
        ctx: discord.ApplicationContext,
        keyword: Option(str, "Keyword, or several separated by commas.", required=True),  # type: ignore
        response: Option(str, "Reply sent when the keyword appears.", required=True),  # type: ignore
        exceptions: Option(str, "Comma-separated phrases that suppress the reply.", default=""),  # type: ignore
        channel: Option(discord.TextChannel, "Channel for the trigger (defaults to this one).", default=None),  # type: ignore
    ) -> None:
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)

        target_channel_id = channel.id if channel is not None else ctx.channel_id
        keywords = parse_phrase_list(keyword)

        try:
            rule_id = await self._admin.add_rule(
                GuildID(ctx.guild_id),
                [ChannelID(target_channel_id)],
                keywords,
                response,
                parse_phrase_list(exceptions),
            )
        except ValidationError as exc:
            await ctx.send_followup(f"❌ {exc}", ephemeral=True)
            return
        except StoreError as exc:
            logger.error("[TRIGGER CMDS] Failed to add trigger in guild %s: %s", ctx.guild_id, exc)
            await ctx.send_followup(STORE_FAILURE_MESSAGE, ephemeral=True)
            return

        await ctx.send_followup(
            f"✅ Added trigger #{rule_id} `{', '.join(keywords)}` -> `{_truncate(response, 200)}` in <#{target_channel_id}>",
            ephemeral=True,
        )

    @commands.slash_command(name="removetrigger", description="Remove a trigger from this server by id.")
    async def remove_trigger(
        self,
        ctx: discord.ApplicationContext,
        trigger_id: Option(int, "Id shown by /triggers.", required=True),  # type: ignore
    ) -> None:
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)
        try:
            removed = await self._admin.remove_rule(trigger_id, GuildID(ctx.guild_id))
        except StoreError as exc:
            logger.error("[TRIGGER CMDS] Failed to remove trigger %s in guild %s: %s", trigger_id, ctx.guild_id, exc)
            await ctx.send_followup("❌ Could not remove the trigger. Please try again later.", ephemeral=True)
            return

        if removed:
            await ctx.send_followup(f"🗑️ Removed trigger #{trigger_id}.", ephemeral=True)
        else:
            await ctx.send_followup(f"No trigger #{trigger_id} exists in this server.", ephemeral=True)

    @commands.slash_command(name="cleartriggers", description="Remove every trigger in this server.")
    async def clear_triggers(
        self,
        ctx: discord.ApplicationContext,
        confirm: Option(bool, "Set to True to confirm.", default=False),  # type: ignore
    ) -> None:
        if not await self._check_permissions(ctx, "manage_guild"):
            return

        if not confirm:
            await ctx.respond("Run `/cleartriggers confirm:True` to delete every trigger in this server.", ephemeral=True)
            return

        await ctx.defer(ephemeral=True)
        try:
            removed = await self._admin.remove_all_rules(GuildID(ctx.guild_id))
        except StoreError as exc:
            logger.error("[TRIGGER CMDS] Failed to clear triggers in guild %s: %s", ctx.guild_id, exc)
            await ctx.send_followup("❌ Could not clear triggers. Please try again later.", ephemeral=True)
            return

        await ctx.send_followup(f"🗑️ Removed {removed} triggers.", ephemeral=True)

    @commands.slash_command(name="triggers", description="List the triggers configured in this server.")
    async def list_triggers(self, ctx: discord.ApplicationContext) -> None:
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)
        try:
            rules = await self._admin.list_rules(GuildID(ctx.guild_id))
        except StoreError as exc:
            logger.error("[TRIGGER CMDS] Failed to list triggers in guild %s: %s", ctx.guild_id, exc)
            await ctx.send_followup("❌ Could not load triggers. Please try again later.", ephemeral=True)
            return

        if not rules:
            await ctx.send_followup("No triggers configured. Add one with /addtrigger.", ephemeral=True)
            return

        embed = discord.Embed(title=f"Triggers ({len(rules)})", color=discord.Color.purple())
        for rule in rules[:MAX_LISTED_TRIGGERS]:
            name, value = format_rule_field(rule)
            embed.add_field(name=name, value=value, inline=False)
        if len(rules) > MAX_LISTED_TRIGGERS:
            embed.set_footer(text=f"Showing the {MAX_LISTED_TRIGGERS} newest of {len(rules)} triggers.")

        await ctx.send_followup(embed=embed, ephemeral=True)

    @commands.slash_command(name="reloadtriggers", description="Reload all triggers from the database.")
    async def reload_triggers(self, ctx: discord.ApplicationContext) -> None:
        if not await self._check_permissions(ctx):
            return

        await ctx.defer(ephemeral=True)
        if await self._cache.reload():
            await ctx.send_followup(f"🔄 {self._cache.trigger_count} triggers loaded.", ephemeral=True)
        else:
            await ctx.send_followup(
                f"❌ Reload failed; still using the previous {self._cache.trigger_count} triggers.",
                ephemeral=True,
            )


def setup(bot: discord.Bot, admin: RuleAdministrationService, cache: TriggerCache) -> None:
    """Register the TriggerCommandsCog with the bot."""
    bot.add_cog(TriggerCommandsCog(bot, admin, cache))
