"""Debug breakdown of an inbound message, used for simulated test messages."""

from __future__ import annotations

from typing import List

from linkrelay.datatypes.message_datatypes import InboundMessage
from linkrelay.relay.link_detection import contains_link, embed_contains_link
from linkrelay.util.logger import get_logger

logger = get_logger("message_debug")

PREVIEW_LENGTH = 100


def _preview(text: str | None) -> str:
    if not text:
        return "(empty)"
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


def describe_message(message: InboundMessage, label: str = "MESSAGE") -> List[str]:
    """Log a structured breakdown of ``message`` at DEBUG and return its lines."""
    lines = [
        f"=== {label} DEBUG ===",
        f"ID: {message.id}",
        f"Server: {message.origin_server.name} ({message.origin_server.id})",
        f"Channel: #{message.channel_name}",
        f"Author: {message.author.display_name}",
        f"Content: {_preview(message.content)}",
        f"Embeds: {len(message.embeds)}",
    ]

    for index, embed in enumerate(message.embeds, start=1):
        lines.append(
            f"  Embed {index}: title={_preview(embed.title)} "
            f"url={embed.url or '(none)'} fields={len(embed.fields)} "
            f"has_link={embed_contains_link(embed)}"
        )

    lines.append(f"Attachments: {len(message.attachments)}")
    lines.extend(f"  Attachment: {attachment.filename} {attachment.url}" for attachment in message.attachments)
    lines.append(f"Contains link: {contains_link(message)}")
    lines.append("=" * (len(label) + 14))

    for line in lines:
        logger.debug("[MESSAGE DEBUG] %s", line)
    return lines
