"""Synthetic messages used by the /test and /target-test commands."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional

from linkrelay.configuration.relay_settings import DEFAULT_AVATAR_URL
from linkrelay.datatypes.message_datatypes import (
    Embed,
    EmbedAuthor,
    EmbedFooter,
    InboundMessage,
    MessageAuthor,
    OriginServer,
)
from linkrelay.relay.embed_transform import DEFAULT_EMBED_COLOR

DEFAULT_TEST_CONTENT = "Test message with link: https://example.com"
DEFAULT_TARGET_TEST_CONTENT = "Target test message with link: https://example.com"
TEST_AUTHOR_NAME = "TestUser"
TEST_CHANNEL_NAME = "test-channel"


def sample_embed(now: datetime) -> Embed:
    return Embed(
        title="Test Embed",
        description="This embed contains a link: https://example.com",
        url="https://example.com",
        color=DEFAULT_EMBED_COLOR,
        timestamp=now.isoformat(),
        author=EmbedAuthor(name="Test Author", url="https://example.com/author"),
        footer=EmbedFooter(text="Test Footer"),
    )


def build_test_message(
    origin: OriginServer,
    content: Optional[str] = None,
    *,
    with_embed: bool = False,
    default_content: str = DEFAULT_TEST_CONTENT,
    avatar_url: str = DEFAULT_AVATAR_URL,
    now: Optional[datetime] = None,
) -> InboundMessage:
    """Build a synthetic message as if it had been posted in ``origin``.

    With ``with_embed`` the content is replaced by a fixed text and the link
    travels inside a sample embed instead.
    """
    now = now or datetime.now(timezone.utc)
    if with_embed:
        text = "Test message with embed"
        embeds: tuple[Embed, ...] = (sample_embed(now),)
    else:
        text = content or default_content
        embeds = ()

    return InboundMessage(
        id=f"test-message-{int(time.time() * 1000)}",
        content=text,
        embeds=embeds,
        attachments=(),
        author=MessageAuthor(display_name=TEST_AUTHOR_NAME, avatar_url=avatar_url),
        origin_server=origin,
        channel_name=TEST_CHANNEL_NAME,
        created_at=now,
    )
