"""
Modledger
=========

A Discord bot that keeps a numbered moderation case log per server: cases are
posted to a mod-log channel, deleting one renumbers the rest and takes back
the role it applied, and /history summarises a member's record.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. MODLEDGER_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("MODLEDGER_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio

import discord
from dotenv import load_dotenv

from modledger.bot.ledger import Ledger, build_ledger
from modledger.configuration.app_configuration import app_config
from modledger.configuration.guild_settings import guild_settings_manager
from modledger.database.database import database
from modledger.util.logger import get_logger, handle_exception

logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for guild, member and role events. Message content is not needed."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, ledger: Ledger) -> None:
    """Register all operational cogs with the provided Discord bot instance."""
    from modledger.bot.cogs import case_cmds, events_listener, guild_settings_cmds, role_listener

    events_listener.setup(discord_bot_instance, ledger)
    role_listener.setup(discord_bot_instance, ledger)
    guild_settings_cmds.setup(discord_bot_instance, ledger.settings)
    case_cmds.setup(discord_bot_instance, ledger)

    logger.info("All cogs loaded successfully.")


def create_bot() -> tuple[discord.Bot, Ledger]:
    """Instantiate the Discord bot, wire the ledger services and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    ledger = build_ledger(bot)
    load_cogs(bot, ledger)
    return bot, ledger


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None = None, ledger: Ledger | None = None) -> None:
    """Gracefully stop the mute scheduler, the Discord bot and the database."""
    if ledger is not None and ledger.mute_scheduler is not None:
        try:
            await ledger.mute_scheduler.shutdown()
        except Exception as exc:
            logger.exception("Error during mute scheduler shutdown: %s", exc)

    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    try:
        await database.shutdown()
    except Exception as exc:
        logger.exception("Error during database shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the database and the bot, returning an exit code."""
    token = load_environment()

    logger.info("Initializing database and loading guild settings...")
    database.db_path = app_config.database_path
    if not await database.initialize():
        logger.critical("Failed to initialize database at %s", database.db_path)
        return 1

    try:
        await guild_settings_manager.load()
    except Exception as exc:
        logger.critical("Failed to load guild settings: %s", exc)
        await database.shutdown()
        return 1

    try:
        bot, ledger = create_bot()
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await database.shutdown()
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, ledger)

    return exit_code


def main() -> int:
    """Entrypoint that orchestrates the async runtime and returns the process code."""
    sys.excepthook = handle_exception
    logger.info("Starting Modledger…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    print(f"Exited with code: {main()}")
