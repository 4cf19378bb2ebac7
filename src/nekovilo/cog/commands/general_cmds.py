"""
General commands cog: /ping, /status and /help.
"""

import discord
from discord.ext import commands

from nekovilo.configuration.app_configuration import app_config
from nekovilo.matching.trigger_matcher import TriggerMatcher
from nekovilo.rules_cache.trigger_cache import TriggerCache
from nekovilo.util.logger import get_logger

logger = get_logger("general_commands")

HELP_COMMANDS = (
    ("/addtrigger", "Reply automatically when a keyword is said in a channel."),
    ("/triggers", "List this server's triggers with their ids."),
    ("/removetrigger", "Remove one trigger by id."),
    ("/cleartriggers", "Remove every trigger in this server."),
    ("/reloadtriggers", "Reload triggers from the database."),
    ("/status", "Show bot statistics."),
)


def build_status_embed(bot: discord.Bot, cache: TriggerCache, matcher: TriggerMatcher) -> discord.Embed:
    """Build the /status embed from live bot and trigger statistics."""
    embed = discord.Embed(title="Bot Status", color=discord.Color.green())
    embed.add_field(name="Guilds", value=str(len(bot.guilds)), inline=True)
    embed.add_field(name="Triggers", value=str(cache.trigger_count), inline=True)
    embed.add_field(name="Responses Sent", value=str(matcher.responses_sent), inline=True)

    loaded_at = cache.snapshot().loaded_at
    if cache.last_reload_error is not None:
        embed.add_field(name="Last Reload", value="⚠️ failed, serving cached triggers", inline=False)
    elif loaded_at is not None:
        embed.add_field(name="Last Reload", value=discord.utils.format_dt(loaded_at, "R"), inline=False)
    return embed


def build_help_embed() -> discord.Embed:
    embed = discord.Embed(
        title="Nekovilo Help",
        color=discord.Color.purple(),
        description="I reply automatically to keywords! Add triggers with the commands below.",
    )
    for name, description in HELP_COMMANDS:
        embed.add_field(name=name, value=description, inline=False)
    if app_config.dashboard_url:
        embed.add_field(name="Web", value=app_config.dashboard_url, inline=False)
    return embed


class GeneralCommandsCog(commands.Cog):
    """Latency, status and help commands."""

    def __init__(self, bot: discord.Bot, cache: TriggerCache, matcher: TriggerMatcher) -> None:
        self.bot = bot
        self._cache = cache
        self._matcher = matcher

    @commands.slash_command(name="ping", description="Check the bot latency.")
    async def ping(self, ctx: discord.ApplicationContext) -> None:
        await ctx.respond(f"Pong! 🏓 {round(self.bot.latency * 1000)}ms")

    @commands.slash_command(name="status", description="Show bot statistics.")
    async def status(self, ctx: discord.ApplicationContext) -> None:
        await ctx.respond(embed=build_status_embed(self.bot, self._cache, self._matcher))

    @commands.slash_command(name="help", description="How to use the bot.")
    async def help(self, ctx: discord.ApplicationContext) -> None:
        await ctx.respond(embed=build_help_embed())


def setup(bot: discord.Bot, cache: TriggerCache, matcher: TriggerMatcher) -> None:
    """Register the GeneralCommandsCog with the bot."""
    bot.add_cog(GeneralCommandsCog(bot, cache, matcher))
