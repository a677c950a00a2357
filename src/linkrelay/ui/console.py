"""Operator console running beside the relay bot.

Commands are registered with :func:`console_command` and dispatched by
:func:`handle_console_command`. The console shares a :class:`ConsoleControl`
with ``main`` so ``restart`` and ``shutdown`` can end the bot session.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import discord
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import PromptSession, clear

from linkrelay.relay.errors import FatalStartupError
from linkrelay.util.logger import get_logger

if TYPE_CHECKING:
    from linkrelay.bot.runtime import RelayRuntime

logger = get_logger("console")

HEADING_WIDTH = 45
PROMPT = "relay> "


@dataclass
class ConsoleControl:
    """Lifecycle flags plus the bot and runtime of the current session."""

    bot: Optional[discord.Bot] = None
    runtime: Optional[RelayRuntime] = None
    shutdown_event: asyncio.Event = field(default_factory=asyncio.Event)
    restart_event: asyncio.Event = field(default_factory=asyncio.Event)

    def request_shutdown(self) -> None:
        self.shutdown_event.set()

    def request_restart(self) -> None:
        self.restart_event.set()

    def is_shutdown_requested(self) -> bool:
        return self.shutdown_event.is_set()

    def is_restart_requested(self) -> bool:
        return self.restart_event.is_set()


CommandHandler = Callable[[ConsoleControl], Awaitable[None]]


@dataclass(frozen=True)
class ConsoleCommand:
    name: str
    aliases: tuple[str, ...]
    summary: str
    handler: CommandHandler


COMMANDS: dict[str, ConsoleCommand] = {}
_LOOKUP: dict[str, ConsoleCommand] = {}


def console_command(name: str, *aliases: str, summary: str) -> Callable[[CommandHandler], CommandHandler]:
    """Register the decorated coroutine under ``name`` and its aliases."""

    def register(handler: CommandHandler) -> CommandHandler:
        command = ConsoleCommand(name, aliases, summary, handler)
        COMMANDS[name] = command
        for key in (name, *aliases):
            _LOOKUP[key] = command
        return handler

    return register


def find_command(word: str) -> Optional[ConsoleCommand]:
    return _LOOKUP.get(word.lower())


def console_print(message: str, style: str = "") -> None:
    """Print through prompt_toolkit so the active prompt is redrawn below the text."""
    print_formatted_text(FormattedText([(style, message)]) if style else message)


def heading(title: str) -> str:
    return f"── {title} ".ljust(HEADING_WIDTH, "─")


async def close_bot_instance(bot: Optional[discord.Bot], *, log_close: bool = False) -> None:
    """Close ``bot`` if it is still connected; errors are logged, not raised."""
    if bot is None or bot.is_closed():
        return

    try:
        await bot.close()
    except Exception as exc:
        logger.exception("Error while closing Discord bot: %s", exc)
        return
    if log_close:
        logger.info("Discord bot connection closed.")


async def end_session(control: ConsoleControl, *, restart: bool) -> None:
    if restart:
        control.request_restart()
    control.request_shutdown()
    await close_bot_instance(control.bot)


# ==================== Commands ====================

@console_command("help", "h", "?", summary="List console commands")
async def cmd_help(control: ConsoleControl) -> None:
    console_print(heading("Console commands"), "ansigreen")
    for command in COMMANDS.values():
        names = ", ".join((command.name, *command.aliases))
        console_print(f"  {names:<24} {command.summary}")


@console_command("status", "stat", "info", summary="Connection, binding counts and delivery strategy")
async def cmd_status(control: ConsoleControl) -> None:
    console_print(heading("Relay status"), "ansiblue")

    bot = control.bot
    if bot is None:
        console_print("  Bot:        🔴 Not initialized")
    else:
        state = "🔴 Disconnected" if bot.is_closed() else "🟢 Connected"
        console_print(f"  Bot:        {state}, {len(bot.guilds)} guilds, {bot.latency * 1000:.0f}ms")

    runtime = control.runtime
    if runtime is None:
        console_print("  Relay:      🔴 Not initialized")
        return
    channels, roles = runtime.routing_table.counts()
    console_print(f"  Bindings:   {channels} channels, {roles} roles")
    console_print(f"  Delivery:   {runtime.delivery_strategy}")


@console_command("reload", "r", summary="Reload channel and role bindings from the database")
async def cmd_reload(control: ConsoleControl) -> None:
    if control.runtime is None:
        console_print("Relay runtime is not initialized.", "ansiyellow")
        return

    try:
        channels, roles = await control.runtime.reload()
    except FatalStartupError as exc:
        console_print(f"Reload failed, keeping the previous routing table: {exc}", "ansired")
        return
    console_print(f"Routing table reloaded: {channels} channel bindings, {roles} role bindings.", "ansigreen")


@console_command("clear", "cls", summary="Clear the screen")
async def cmd_clear(control: ConsoleControl) -> None:
    clear()


@console_command("restart", "reboot", summary="Restart the bot process")
async def cmd_restart(control: ConsoleControl) -> None:
    console_print("Restart requested. Bot will shut down and restart...", "ansiyellow")
    await end_session(control, restart=True)


@console_command("shutdown", "stop", "quit", "exit", summary="Shut the bot down")
async def cmd_shutdown(control: ConsoleControl) -> None:
    console_print("Shutdown requested.", "ansiyellow")
    await end_session(control, restart=False)


# ==================== Dispatch ====================

async def handle_console_command(line: str, control: ConsoleControl) -> None:
    """Run the command named by the first word of ``line``. Extra words are ignored."""
    words = line.split()
    if not words:
        return

    command = find_command(words[0])
    if command is None:
        console_print(f"Unknown command '{words[0].lower()}'. Type 'help' for available commands.", "ansired")
        return

    try:
        await command.handler(control)
    except Exception as exc:
        logger.exception("Error executing command '%s': %s", command.name, exc)
        console_print(f"Error executing command: {exc}", "ansired")


async def run_console(control: ConsoleControl) -> None:
    session: PromptSession[str] = PromptSession(PROMPT)
    console_print(heading("Link Relay console"), "ansigreen")
    console_print("Type 'help' for commands or 'exit' to quit.", "ansibrightblack")

    with patch_stdout():
        while not control.is_shutdown_requested():
            try:
                line = await session.prompt_async()
            except (EOFError, KeyboardInterrupt):
                console_print("Shutdown requested by user.", "ansiyellow")
                await end_session(control, restart=False)
                return
            await handle_console_command(line, control)


@asynccontextmanager
async def console_session(control: ConsoleControl) -> AsyncIterator[ConsoleControl]:
    """Run the console as a background task for the duration of the block."""
    task = asyncio.create_task(run_console(control))
    try:
        yield control
    finally:
        control.request_shutdown()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
