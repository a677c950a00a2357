"""
py-cord adapter for the relay core.

Turns channel and guild ids into live handles, fetches historical messages
for the retry command, and snapshots ``discord.Message`` objects into
:class:`InboundMessage` so the core never sees a gateway object.
"""

from __future__ import annotations

from typing import Optional

import discord

from linkrelay.configuration.relay_settings import DEFAULT_AVATAR_URL
from linkrelay.datatypes.discord_datatypes import ChannelID, GuildID, MessageID
from linkrelay.datatypes.message_datatypes import (
    Attachment,
    Embed,
    InboundMessage,
    MessageAuthor,
    OriginServer,
)
from linkrelay.util.logger import get_logger

logger = get_logger("gateway")

UNKNOWN_CHANNEL_NAME = "unknown"


def origin_from_guild(guild: discord.Guild) -> OriginServer:
    return OriginServer(
        id=GuildID.from_guild(guild),
        name=guild.name,
        icon_url=str(guild.icon.url) if guild.icon else None,
    )


class DiscordGateway:
    """Channel, guild and message resolution on top of a py-cord bot.

    Lookups hit the bot's cache first and fall back to a REST fetch. Anything
    the bot cannot see (unknown id, missing access) resolves to ``None``.
    """

    def __init__(self, bot: discord.Bot, *, default_avatar_url: str = DEFAULT_AVATAR_URL) -> None:
        self.bot = bot
        self.default_avatar_url = default_avatar_url

    async def resolve_channel(self, channel_id: ChannelID) -> Optional[discord.abc.Messageable]:
        """Return a channel that messages can be sent to, or ``None``."""
        cid = ChannelID(channel_id).to_int()
        channel = self.bot.get_channel(cid)
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(cid)
            except (discord.NotFound, discord.Forbidden, discord.InvalidData) as exc:
                logger.warning("[GATEWAY] Channel %s unavailable: %s", cid, exc)
                return None
            except discord.HTTPException as exc:
                logger.error("[GATEWAY] Failed to fetch channel %s: %s", cid, exc)
                return None

        if not isinstance(channel, discord.abc.Messageable):
            logger.warning("[GATEWAY] Channel %s is not a text channel", cid)
            return None
        return channel

    async def resolve_server(self, server_id: GuildID) -> Optional[OriginServer]:
        """Return the name and icon of a guild, or ``None`` if the bot is not in it."""
        gid = GuildID(server_id).to_int()
        guild = self.bot.get_guild(gid)
        if guild is None:
            try:
                guild = await self.bot.fetch_guild(gid)
            except (discord.NotFound, discord.Forbidden) as exc:
                logger.warning("[GATEWAY] Server %s unavailable: %s", gid, exc)
                return None
            except discord.HTTPException as exc:
                logger.error("[GATEWAY] Failed to fetch server %s: %s", gid, exc)
                return None
        return origin_from_guild(guild)

    def server_name(self, server_id: GuildID) -> Optional[str]:
        """Cached guild name for report formatting; never hits the network."""
        guild = self.bot.get_guild(GuildID(server_id).to_int())
        return guild.name if guild else None

    async def fetch_message(self, channel_id: ChannelID, message_id: MessageID) -> Optional[discord.Message]:
        channel = await self.resolve_channel(channel_id)
        if channel is None:
            return None
        try:
            return await channel.fetch_message(MessageID(message_id).to_int())
        except (discord.NotFound, discord.Forbidden):
            return None
        except discord.HTTPException as exc:
            logger.warning("[GATEWAY] Failed to fetch message %s in channel %s: %s", message_id, channel_id, exc)
            return None

    def to_inbound_message(self, message: discord.Message) -> InboundMessage:
        """Snapshot a live guild message into an :class:`InboundMessage`.

        Raises:
            ValueError: If the message was not posted in a guild.
        """
        if message.guild is None:
            raise ValueError(f"Message {message.id} was not posted in a server")

        author = message.author
        avatar = getattr(author, "display_avatar", None)
        return InboundMessage(
            id=str(message.id),
            content=message.content or "",
            embeds=tuple(Embed.from_dict(embed.to_dict()) for embed in message.embeds),
            attachments=tuple(
                Attachment(url=attachment.url, filename=attachment.filename)
                for attachment in message.attachments
            ),
            author=MessageAuthor(
                display_name=getattr(author, "display_name", None) or author.name,
                avatar_url=str(avatar.url) if avatar else self.default_avatar_url,
            ),
            origin_server=origin_from_guild(message.guild),
            channel_name=getattr(message.channel, "name", None) or UNKNOWN_CHANNEL_NAME,
            created_at=message.created_at,
        )
