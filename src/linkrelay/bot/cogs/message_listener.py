"""Message listener Cog for Link Relay.

Watches the configured input channels and relays every message that carries
a link to the other servers of the channel's category.
"""

import discord
from discord.ext import commands

from linkrelay.bot.runtime import RelayRuntime
from linkrelay.datatypes.discord_datatypes import ChannelID
from linkrelay.relay.link_detection import contains_link
from linkrelay.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog responsible for relaying new messages from input channels."""

    def __init__(self, discord_bot_instance, runtime: RelayRuntime):
        """
        Initialize the message listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        runtime:
            Shared relay components.
        """
        self.bot = discord_bot_instance
        self.runtime = runtime
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    def should_relay(self, message: discord.Message) -> bool:
        """Cheap filters applied before a message is snapshotted."""
        if message.guild is None:
            return False
        if self.bot.user is not None and message.author.id == self.bot.user.id:
            return False
        return ChannelID(message.channel.id) in self.runtime.routing_table.all_input_channel_ids()

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        """
        Handle new messages.

        This handler:
        1. Ignores DMs, the bot's own messages and channels that are not inputs
        2. Gates on link detection
        3. Runs the relay and logs the summary
        """
        if not self.should_relay(message):
            return

        inbound = self.runtime.gateway.to_inbound_message(message)
        if not contains_link(inbound):
            logger.debug("[MESSAGE LISTENER] Message %s has no link; not relaying", message.id)
            return

        logger.info(
            "[MESSAGE LISTENER] Link message %s in #%s (%s); relaying",
            message.id,
            inbound.channel_name,
            inbound.origin_server.name,
        )
        try:
            await self.runtime.orchestrator.relay(inbound, ChannelID.from_channel(message.channel))
        except Exception:
            logger.exception("[MESSAGE LISTENER] Relay of message %s failed", message.id)


def setup(discord_bot_instance, runtime: RelayRuntime):
    """Register the MessageListenerCog with the bot."""
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, runtime))
