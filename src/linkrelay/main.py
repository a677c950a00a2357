"""
Link Relay Discord Bot
======================

Relays messages that carry links from the input channels of one server to
the output channels of every other server registered for the same category,
tagging each copy with the destination server's role and its origin.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. LINKRELAY_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("LINKRELAY_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from linkrelay.bot.runtime import RelayRuntime
from linkrelay.configuration.app_configuration import app_config
from linkrelay.database.store import BindingStore
from linkrelay.relay.errors import FatalStartupError
from linkrelay.ui.console import ConsoleControl, close_bot_instance, console_session
from linkrelay.util.logger import get_logger, handle_exception


logger = get_logger("main")

RESTART_EXIT_CODE = 42


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
    """Intents for guild metadata and message content."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, runtime: RelayRuntime) -> None:
    """Register all operational cogs with the provided Discord bot instance."""
    from linkrelay.bot.cogs import events_listener, message_listener, relay_cmds

    events_listener.setup(discord_bot_instance, runtime)
    message_listener.setup(discord_bot_instance, runtime)
    relay_cmds.setup(discord_bot_instance, runtime)

    logger.info("All cogs loaded successfully.")


def create_bot(store: BindingStore) -> tuple[discord.Bot, RelayRuntime]:
    """Instantiate the Discord bot, its relay runtime and all cogs."""
    bot = discord.Bot(intents=build_intents())
    runtime = RelayRuntime.build(bot, app_config.relay_settings, store)
    load_cogs(bot, runtime)
    return bot, runtime


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, store: BindingStore) -> None:
    """Stop the Discord bot and close the binding store."""
    await close_bot_instance(bot, log_close=True)

    try:
        await store.shutdown()
    except Exception as exc:
        logger.exception("Error during database shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def run_bot_session(bot: discord.Bot, runtime: RelayRuntime, token: str, control: ConsoleControl) -> int:
    """Run the bot alongside the console, returning an exit code."""
    control.bot = bot
    control.runtime = runtime
    exit_code = 0

    try:
        async with console_session(control):
            try:
                await start_bot(bot, token)
            except asyncio.CancelledError:
                logger.info("Bot start cancelled; proceeding to shutdown")
            except Exception as exc:
                logger.critical("Discord bot runtime error: %s", exc)
                exit_code = 1
    finally:
        control.bot = None
        control.runtime = None
        await shutdown_runtime(bot, runtime.store)

    return exit_code


async def async_main() -> int:
    """Bootstrap the store, routing table, bot and console, returning an exit code."""
    token = load_environment()

    store = BindingStore()
    try:
        logger.info("Initializing database at %s...", app_config.database_path)
        await store.initialize(app_config.database_path)
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        await store.shutdown()
        return 1

    try:
        bot, runtime = create_bot(store)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await store.shutdown()
        return 1

    try:
        channels, roles = await runtime.reload()
    except FatalStartupError as exc:
        logger.critical("Refusing to start without relay bindings: %s", exc)
        await shutdown_runtime(bot, store)
        return 1
    logger.info("Loaded %d channel bindings and %d role bindings", channels, roles)

    control = ConsoleControl()
    exit_code = await run_bot_session(bot, runtime, token, control)

    if control.is_restart_requested():
        logger.info("Restart requested, returning exit code %d to trigger restart", RESTART_EXIT_CODE)
        return RESTART_EXIT_CODE

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code.

    Returns 42 internally to trigger a restart, which re-executes the process.
    """
    logger.info("Starting Link Relay bot…")
    try:
        exit_code = asyncio.run(async_main())

        if exit_code == RESTART_EXIT_CODE:
            logger.info("Restart requested; replacing current process with new instance.")
            # execv keeps stdin/stdout/stderr so the console keeps working
            os.execv(sys.executable, [sys.executable] + sys.argv)
            return 0  # pragma: no cover

        return exit_code
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        if code is None:
            return 1
        try:
            return int(code)
        except (ValueError, TypeError):
            logger.warning("SystemExit.code is not an int (%r); defaulting to 1", code)
            return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
