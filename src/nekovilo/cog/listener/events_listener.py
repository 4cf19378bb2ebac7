"""Event listener Cog for Nekovilo.

Handles bot lifecycle events: presence on ready, and removal of a guild's
trigger rules once the bot is no longer in that guild.
"""

import discord
from discord.ext import commands

from nekovilo.configuration.app_configuration import app_config
from nekovilo.datatypes.discord_datatypes import GuildID
from nekovilo.datatypes.errors import StoreError
from nekovilo.services.rule_admin_service import RuleAdministrationService
from nekovilo.util.logger import get_logger

logger = get_logger("events_listener")


class EventsListenerCog(commands.Cog):
    """Handles Discord bot lifecycle events."""

    def __init__(self, bot: discord.Bot, admin: RuleAdministrationService) -> None:
        self.bot = bot
        self._admin = admin
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self) -> None:
        """Set bot presence once connected."""
        if not self.bot.user:
            logger.warning("[EVENTS LISTENER] Bot partially connected, user info not yet available.")
            return

        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name=app_config.presence_activity,
            ),
        )
        logger.info("Bot connected as %s (ID: %s)", self.bot.user, self.bot.user.id)

    @commands.Cog.listener(name="on_guild_remove")
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        """Delete all trigger rules of a guild the bot was removed from."""
        try:
            removed = await self._admin.remove_all_rules(GuildID(guild.id))
        except StoreError as exc:
            logger.error(
                "[EVENTS LISTENER] Failed to clean up rules for guild '%s' (ID: %s): %s",
                guild.name,
                guild.id,
                exc,
            )
            return

        logger.info(
            "[EVENTS LISTENER] Removed from guild '%s' (ID: %s), deleted %d rules",
            guild.name,
            guild.id,
            removed,
        )


def setup(bot: discord.Bot, admin: RuleAdministrationService) -> None:
    """Register the EventsListenerCog with the bot."""
    bot.add_cog(EventsListenerCog(bot, admin))
