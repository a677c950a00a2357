"""Tests for the py-cord gateway adapter and synthetic test messages."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from linkrelay.bot.gateway import DiscordGateway, origin_from_guild
from linkrelay.bot.sample_messages import (
    DEFAULT_TEST_CONTENT,
    TEST_AUTHOR_NAME,
    build_test_message,
)
from linkrelay.datatypes.discord_datatypes import ChannelID, GuildID, MessageID
from linkrelay.relay.link_detection import contains_link
from relay_factories import OUTPUT_2, SERVER_1, http_error, make_origin


def text_channel(channel_id=OUTPUT_2):
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = channel_id
    channel.fetch_message = AsyncMock()
    return channel


def make_guild(guild_id=SERVER_1, name="Server One", icon_url="https://cdn.example/icon.png"):
    return SimpleNamespace(
        id=guild_id,
        name=name,
        icon=SimpleNamespace(url=icon_url) if icon_url else None,
    )


def make_bot(channel=None, guild=None):
    return SimpleNamespace(
        get_channel=MagicMock(return_value=channel),
        fetch_channel=AsyncMock(return_value=channel),
        get_guild=MagicMock(return_value=guild),
        fetch_guild=AsyncMock(return_value=guild),
    )


@pytest.mark.asyncio
async def test_resolve_channel_prefers_cache():
    channel = text_channel()
    bot = make_bot(channel=channel)

    assert await DiscordGateway(bot).resolve_channel(ChannelID(OUTPUT_2)) is channel

    bot.get_channel.assert_called_once_with(OUTPUT_2)
    bot.fetch_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolve_channel_falls_back_to_fetch():
    channel = text_channel()
    bot = make_bot(channel=channel)
    bot.get_channel.return_value = None

    assert await DiscordGateway(bot).resolve_channel(OUTPUT_2) is channel
    bot.fetch_channel.assert_awaited_once_with(OUTPUT_2)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        http_error(discord.NotFound, 404, "Unknown Channel"),
        http_error(discord.Forbidden, 403, "Missing Access"),
        http_error(discord.HTTPException, 500, "oops"),
    ],
)
async def test_unreachable_channel_resolves_to_none(error):
    bot = make_bot()
    bot.fetch_channel.side_effect = error

    assert await DiscordGateway(bot).resolve_channel(OUTPUT_2) is None


@pytest.mark.asyncio
async def test_non_text_channel_resolves_to_none():
    bot = make_bot(channel=MagicMock(spec=discord.CategoryChannel))

    assert await DiscordGateway(bot).resolve_channel(OUTPUT_2) is None


@pytest.mark.asyncio
async def test_resolve_server_and_name():
    guild = make_guild()
    gateway = DiscordGateway(make_bot(guild=guild))

    origin = await gateway.resolve_server(GuildID(SERVER_1))

    assert origin == make_origin()
    assert gateway.server_name(SERVER_1) == "Server One"


@pytest.mark.asyncio
async def test_resolve_unknown_server():
    bot = make_bot()
    bot.fetch_guild.side_effect = http_error(discord.Forbidden, 403)
    gateway = DiscordGateway(bot)

    assert await gateway.resolve_server(SERVER_1) is None
    assert gateway.server_name(SERVER_1) is None


@pytest.mark.asyncio
async def test_fetch_message_handles_missing_message():
    channel = text_channel()
    channel.fetch_message.side_effect = http_error(discord.NotFound, 404, "Unknown Message")
    gateway = DiscordGateway(make_bot(channel=channel))

    assert await gateway.fetch_message(ChannelID(OUTPUT_2), MessageID(500000000000000001)) is None
    channel.fetch_message.assert_awaited_once_with(500000000000000001)


def test_origin_without_icon():
    origin = origin_from_guild(make_guild(icon_url=None))
    assert origin.icon_url is None
    assert origin.id == GuildID(SERVER_1)


def test_to_inbound_message_snapshots_fields():
    created = datetime(2024, 5, 1, tzinfo=timezone.utc)
    source_embed = discord.Embed(title="T", url="https://example.com")
    message = SimpleNamespace(
        id=500000000000000001,
        guild=make_guild(),
        content="see https://x.com",
        embeds=[source_embed],
        attachments=[SimpleNamespace(url="https://cdn.example/a.png", filename="a.png")],
        author=SimpleNamespace(name="alice", display_name="Alice", display_avatar=None),
        channel=SimpleNamespace(name="links"),
        created_at=created,
    )
    gateway = DiscordGateway(make_bot(), default_avatar_url="https://cdn.example/default.png")

    inbound = gateway.to_inbound_message(message)

    assert inbound.id == "500000000000000001"
    assert inbound.embeds[0].url == "https://example.com"
    assert inbound.attachments[0].filename == "a.png"
    assert inbound.author.display_name == "Alice"
    assert inbound.author.avatar_url == "https://cdn.example/default.png"
    assert inbound.origin_server.name == "Server One"
    assert inbound.channel_name == "links"
    assert inbound.created_at == created


def test_to_inbound_message_requires_guild():
    message = SimpleNamespace(id=1, guild=None)

    with pytest.raises(ValueError):
        DiscordGateway(make_bot()).to_inbound_message(message)


def test_build_test_message_defaults():
    message = build_test_message(make_origin())

    assert message.content == DEFAULT_TEST_CONTENT
    assert message.embeds == ()
    assert message.author.display_name == TEST_AUTHOR_NAME
    assert message.id.startswith("test-message-")
    assert contains_link(message)


def test_build_test_message_with_embed_replaces_content():
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)

    message = build_test_message(make_origin(), "custom https://x.com", with_embed=True, now=now)

    assert message.content == "Test message with embed"
    assert message.embeds[0].url == "https://example.com"
    assert message.created_at == now
    assert contains_link(message)
