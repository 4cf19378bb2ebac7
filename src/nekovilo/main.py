"""
Nekovilo entrypoint.

Startup order: resolve the working directory, read the bot token, open the
rule database, load every enabled trigger, register the cogs, then run the
Discord client next to the operator console until one of them stops.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Directory holding ``config/``, ``data/``, ``logs/`` and ``.env``.

    ``NEKOVILO_HOME`` wins; a frozen build uses the executable's folder; a
    source checkout uses the repository root (two levels above ``src/nekovilo``).
    """
    if home := os.getenv("NEKOVILO_HOME"):
        return Path(home).resolve()
    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent
    return Path(__file__).resolve().parents[2]


# Relative paths in the config (and the config path itself) resolve from here
BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio

import discord
from dotenv import load_dotenv

from nekovilo.configuration.app_configuration import app_config
from nekovilo.database.db_connection import db_connection
from nekovilo.database.db_schema import SchemaManager
from nekovilo.repositories.rules_repo import rules_repo
from nekovilo.services.trigger_runtime import TriggerRuntime, build_trigger_runtime
from nekovilo.ui.console import ConsoleControl, close_bot_instance, console_session
from nekovilo.util.logger import get_logger, handle_exception

logger = get_logger("main")

RESTART_EXIT_CODE = 42
TOKEN_ENV = "DISCORD_BOT_TOKEN"


def load_environment() -> str:
    """Read ``.env`` and return the bot token, exiting with status 1 if it is missing."""
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv(TOKEN_ENV)
    if not token:
        logger.critical("[MAIN] %s is not set; add it to %s or the environment.", TOKEN_ENV, BASE_DIR / ".env")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Guild message events with content; nothing member- or presence-related."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.messages = True
    intents.message_content = True
    return intents


def load_cogs(bot: discord.Bot, runtime: TriggerRuntime) -> None:
    from nekovilo.cog.commands import general_cmds, trigger_cmds
    from nekovilo.cog.listener import events_listener, message_listener

    message_listener.setup(bot, runtime.matcher)
    events_listener.setup(bot, runtime.admin)
    trigger_cmds.setup(bot, runtime.admin, runtime.cache)
    general_cmds.setup(bot, runtime.cache, runtime.matcher)
    logger.info("[MAIN] Cogs registered")


def create_bot(runtime: TriggerRuntime) -> discord.Bot:
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot, runtime)
    return bot


async def initialize_storage() -> TriggerRuntime:
    """Open the database, apply the schema, and load triggers into memory.

    The first reload completes before the bot connects, so no message is
    evaluated against an empty cache unless the store really is empty.
    """
    await db_connection.open(app_config.database_path)
    await SchemaManager.initialize_schema(db_connection.connection)

    runtime = build_trigger_runtime(rules_repo)
    if not await runtime.cache.reload():
        logger.warning("[MAIN] Initial trigger load failed; no triggers until the next successful reload.")
    return runtime


async def shutdown_runtime(bot: discord.Bot | None, runtime: TriggerRuntime | None) -> None:
    """Tear down in reverse start order: client, reload scheduler, database."""
    await close_bot_instance(bot, log_close=True)

    if runtime is not None:
        try:
            await runtime.scheduler.shutdown()
        except Exception as exc:
            logger.exception("[MAIN] Reload scheduler did not stop cleanly: %s", exc)

    try:
        await db_connection.close()
    except Exception as exc:
        logger.exception("[MAIN] Database did not close cleanly: %s", exc)

    logger.info("[MAIN] Shutdown complete.")


async def run_bot_session(bot: discord.Bot, token: str, control: ConsoleControl) -> int:
    """Run the client with the console attached; always tears the runtime down."""
    control.set_bot(bot)
    exit_code = 0
    try:
        async with console_session(control):
            logger.info("[MAIN] Connecting to Discord…")
            await bot.start(token)
    except asyncio.CancelledError:
        logger.info("[MAIN] Bot session cancelled")
    except discord.LoginFailure as exc:
        logger.critical("[MAIN] Discord rejected the token: %s", exc)
        exit_code = 1
    except Exception as exc:
        logger.critical("[MAIN] Discord client stopped with an error: %s", exc)
        exit_code = 1
    finally:
        control.set_bot(None)
        await shutdown_runtime(bot, control.runtime)
    return exit_code


async def async_main() -> int:
    token = load_environment()

    try:
        runtime = await initialize_storage()
    except Exception as exc:
        logger.critical("[MAIN] Could not open the rule database: %s", exc)
        await shutdown_runtime(None, None)
        return 1

    try:
        bot = create_bot(runtime)
    except Exception as exc:
        logger.critical("[MAIN] Could not create the Discord client: %s", exc)
        await shutdown_runtime(None, runtime)
        return 1

    runtime.scheduler.start()
    control = ConsoleControl(runtime)
    exit_code = await run_bot_session(bot, token, control)
    return RESTART_EXIT_CODE if control.is_restart_requested() else exit_code


def main() -> int:
    """Process entrypoint; re-execs itself when the console asked for a restart."""
    logger.info("[MAIN] Starting Nekovilo from %s", BASE_DIR)
    try:
        exit_code = asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("[MAIN] Interrupted.")
        return 0
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1

    if exit_code == RESTART_EXIT_CODE:
        logger.info("[MAIN] Restarting.")
        os.execv(sys.executable, [sys.executable, *sys.argv])
    return exit_code


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
