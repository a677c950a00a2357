"""Event listener Cog for Link Relay.

This cog handles bot lifecycle events (on_ready) and command error handling.
Message-related events are handled by the MessageListenerCog.
"""

import discord
from discord.ext import commands

from linkrelay.bot.runtime import RelayRuntime
from linkrelay.util.logger import get_logger

logger = get_logger("events_listener")

GENERIC_ERROR_REPLY = "❌ A :bug: showed up while running this command."


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle and command error handlers."""

    def __init__(self, discord_bot_instance, runtime: RelayRuntime):
        self.bot = discord_bot_instance
        self.runtime = runtime
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        """Set presence and log identity plus routing table counts."""
        if self.bot.user is None:
            logger.warning("[EVENTS LISTENER] Bot partially connected, but user information not yet available.")
            return

        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(type=discord.ActivityType.watching, name="for links to relay"),
        )

        channels, roles = self.runtime.routing_table.counts()
        logger.info("[EVENTS LISTENER] Bot connected as %s (ID: %s)", self.bot.user, self.bot.user.id)
        logger.info(
            "[EVENTS LISTENER] Serving %d guilds with %d channel bindings and %d role bindings (%s delivery)",
            len(self.bot.guilds),
            channels,
            roles,
            self.runtime.delivery_strategy,
        )

    @commands.Cog.listener(name="on_application_command_error")
    async def on_application_command_error(self, ctx: discord.ApplicationContext, error: discord.DiscordException):
        """
        Global error handler for all application commands.
        Logs the error and sends a generic error message to the user.
        """
        if isinstance(error, commands.CommandNotFound):
            return

        logger.error(
            "[EVENTS LISTENER] Error in command '%s': %s",
            getattr(ctx.command, "name", "<unknown>"),
            error,
            exc_info=error,
        )

        try:
            await ctx.respond(GENERIC_ERROR_REPLY, ephemeral=True)
        except discord.InteractionResponded:
            await ctx.followup.send(GENERIC_ERROR_REPLY, ephemeral=True)


def setup(discord_bot_instance, runtime: RelayRuntime):
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, runtime))
