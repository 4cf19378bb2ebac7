"""
Operator console for a running Nekovilo bot.

The console runs next to the Discord client on the same event loop. Commands
are registered with :func:`console_command` and looked up by name or alias;
``status`` and ``reload`` work on the injected :class:`TriggerRuntime`.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import discord
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import PromptSession

from nekovilo.services.trigger_runtime import TriggerRuntime
from nekovilo.util.logger import get_logger

logger = get_logger("console")

BANNER_WIDTH = 45

Handler = Callable[["ConsoleControl", list[str]], Awaitable[None]]


@dataclass
class ConsoleCommand:
    name: str
    handler: Handler
    description: str
    aliases: tuple[str, ...] = field(default_factory=tuple)

    def names(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


COMMANDS: list[ConsoleCommand] = []


def console_command(name: str, *aliases: str, description: str) -> Callable[[Handler], Handler]:
    """Register the decorated coroutine as a console command."""

    def register(handler: Handler) -> Handler:
        COMMANDS.append(ConsoleCommand(name, handler, description, aliases))
        return handler

    return register


def find_command(name: str) -> ConsoleCommand | None:
    for command in COMMANDS:
        if name in command.names():
            return command
    return None


def console_print(message: str, style: str = "") -> None:
    """Print above the active prompt, optionally with a prompt_toolkit style."""
    print_formatted_text(FormattedText([(style, message)]) if style else message)


def banner(title: str, style: str) -> None:
    inner = BANNER_WIDTH - 2
    console_print(f"╔{'═' * inner}╗", style)
    console_print(f"║{title.center(inner)}║", style)
    console_print(f"╚{'═' * inner}╝", style)


class ConsoleControl:
    """Shared state between the console, the bot session and ``main``."""

    def __init__(self, runtime: TriggerRuntime | None = None) -> None:
        self.runtime = runtime
        self.shutdown_event = asyncio.Event()
        self.restart_event = asyncio.Event()
        self._bot: discord.Bot | None = None

    @property
    def bot(self) -> discord.Bot | None:
        return self._bot

    def set_bot(self, bot: discord.Bot | None) -> None:
        self._bot = bot

    def request_shutdown(self, *, restart: bool = False) -> None:
        if restart:
            self.restart_event.set()
        self.shutdown_event.set()

    def stop(self) -> None:
        self.shutdown_event.set()

    def is_shutdown_requested(self) -> bool:
        return self.shutdown_event.is_set()

    def is_restart_requested(self) -> bool:
        return self.restart_event.is_set()


async def close_bot_instance(bot: discord.Bot | None, *, log_close: bool = False) -> None:
    """Close ``bot`` unless it is missing or already closed. Errors are logged."""
    if bot is None or bot.is_closed():
        return
    try:
        await bot.close()
    except Exception as exc:
        logger.exception("[CONSOLE] Error while closing Discord bot: %s", exc)
        return
    if log_close:
        logger.info("[CONSOLE] Discord bot connection closed.")


def status_lines(control: ConsoleControl) -> list[str]:
    """Plain-text lines shown by the ``status`` command."""
    lines: list[str] = []
    runtime = control.runtime
    if runtime is not None:
        cache = runtime.cache
        cache_state = "🔴 last reload failed" if cache.last_reload_error else "🟢 ok"
        reloader = "🟢 running" if runtime.scheduler.is_running else "🔴 stopped"
        lines += [
            f"  Triggers:   {cache.trigger_count} ({cache_state})",
            f"  Responses:  {runtime.matcher.responses_sent}",
            f"  Reloader:   {reloader}",
        ]

    bot = control.bot
    if bot is None:
        lines.append("  Bot:        🔴 Not initialized")
        return lines

    lines += [
        f"  Bot:        {'🔴 Disconnected' if bot.is_closed() else '🟢 Connected'}",
        f"  Guilds:     {len(bot.guilds)}",
        f"  Latency:    {bot.latency * 1000:.0f}ms",
    ]
    return lines


@console_command("help", "h", "?", description="List console commands")
async def cmd_help(control: ConsoleControl, args: list[str]) -> None:
    banner("Console Commands", "ansigreen")
    for command in COMMANDS:
        aliases = f" ({', '.join(command.aliases)})" if command.aliases else ""
        console_print(f"  {command.name}{aliases}", "ansicyan")
        console_print(f"      {command.description}")
    console_print("")


@console_command("status", "stat", "info", description="Show trigger statistics and connection state")
async def cmd_status(control: ConsoleControl, args: list[str]) -> None:
    banner("Bot Status", "ansiblue")
    for line in status_lines(control):
        console_print(line)
    console_print("")


@console_command("guilds", "servers", "g", description="List the guilds the bot is in")
async def cmd_guilds(control: ConsoleControl, args: list[str]) -> None:
    bot = control.bot
    if bot is None or not bot.guilds:
        console_print("No guilds found or bot not connected.", "ansiyellow")
        return

    banner(f"Connected Guilds ({len(bot.guilds)})", "ansiblue")
    for guild in bot.guilds:
        console_print(f"  • {guild.name} (ID: {guild.id}, Members: {guild.member_count})")
    console_print("")


@console_command("reload", "r", description="Rebuild the trigger cache from the database")
async def cmd_reload(control: ConsoleControl, args: list[str]) -> None:
    if control.runtime is None:
        console_print("Trigger runtime is not initialized.", "ansiyellow")
        return

    cache = control.runtime.cache
    if await cache.reload():
        console_print(f"Reloaded {cache.trigger_count} triggers.", "ansigreen")
    else:
        console_print(f"Reload failed; still serving {cache.trigger_count} cached triggers.", "ansired")


@console_command("clear", "cls", description="Clear the screen")
async def cmd_clear(control: ConsoleControl, args: list[str]) -> None:
    os.system("cls" if os.name == "nt" else "clear")


@console_command("restart", "reboot", description="Shut down and start a fresh process")
async def cmd_restart(control: ConsoleControl, args: list[str]) -> None:
    console_print("Restarting...", "ansiyellow")
    control.request_shutdown(restart=True)
    await close_bot_instance(control.bot)


@console_command("shutdown", "stop", "quit", "exit", description="Shut the bot down")
async def cmd_shutdown(control: ConsoleControl, args: list[str]) -> None:
    console_print("Shutting down...", "ansiyellow")
    control.request_shutdown()
    await close_bot_instance(control.bot)


async def handle_console_command(line: str, control: ConsoleControl) -> None:
    """Run one console input line. Handler errors are reported, not raised."""
    parts = line.split()
    if not parts:
        return

    name, args = parts[0].lower(), parts[1:]
    command = find_command(name)
    if command is None:
        console_print(f"Unknown command '{name}'. Type 'help' for available commands.", "ansired")
        return

    try:
        await command.handler(control, args)
    except Exception as exc:
        logger.exception("[CONSOLE] Command '%s' failed: %s", name, exc)
        console_print(f"Error executing command: {exc}", "ansired")


async def run_console(control: ConsoleControl) -> None:
    """Read and dispatch commands until shutdown is requested."""
    session: PromptSession[str] = PromptSession("> ")
    banner("Nekovilo Console", "ansigreen")
    console_print("Type 'help' for commands.\n", "ansibrightblack")

    with patch_stdout():
        while not control.is_shutdown_requested():
            try:
                line = await session.prompt_async()
            except (EOFError, KeyboardInterrupt):
                console_print("Shutdown requested by user.", "ansiyellow")
                control.request_shutdown()
                await close_bot_instance(control.bot)
                break
            await handle_console_command(line, control)


@asynccontextmanager
async def console_session(control: ConsoleControl) -> AsyncIterator[ConsoleControl]:
    """Keep the console task alive for the duration of the ``async with`` block."""
    task = asyncio.create_task(run_console(control))
    try:
        yield control
    finally:
        control.stop()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
