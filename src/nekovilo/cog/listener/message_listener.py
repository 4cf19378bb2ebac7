"""Message listener Cog for Nekovilo.

This cog has exactly ONE responsibility: run every guild message through the
trigger matcher and send the reply to the same channel. Delivery failures are
logged and otherwise ignored; users only ever notice a missing reply.
"""

import discord
from discord.ext import commands

from nekovilo.datatypes.discord_datatypes import ChannelID
from nekovilo.matching.trigger_matcher import TriggerMatcher
from nekovilo.util.logger import get_logger

logger = get_logger("message_listener_cog")


def should_process_message(message: discord.Message) -> bool:
    """Skip messages from bots (including ourselves), DMs, and empty content."""
    if message.author.bot:
        return False
    if message.guild is None:
        return False
    return bool(message.content)


class MessageListenerCog(commands.Cog):
    """Thin listener that forwards messages to the matcher."""

    def __init__(self, bot: discord.Bot, matcher: TriggerMatcher) -> None:
        self.bot = bot
        self._matcher = matcher
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message) -> None:
        if not should_process_message(message):
            return

        response = self._matcher.match(message.content, ChannelID(message.channel.id))
        if response is None:
            return

        try:
            await message.channel.send(response)
        except Exception as exc:
            logger.warning(
                "[MESSAGE LISTENER] Failed to send trigger response in channel %s: %s",
                message.channel.id,
                exc,
            )
            return

        logger.debug("[MESSAGE LISTENER] Responded in channel %s", message.channel.id)


def setup(bot: discord.Bot, matcher: TriggerMatcher) -> None:
    """Register the MessageListenerCog with the bot."""
    bot.add_cog(MessageListenerCog(bot, matcher))
