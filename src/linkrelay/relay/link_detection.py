"""
Link detection for relay eligibility.

A message is relayed only if some part of it carries a URL. The pattern is
deliberately permissive: besides ``scheme://`` and ``www.`` forms it accepts
bare ``label.tld`` text anywhere, even inside a longer word (``foo.bar``
in ``xfoo.bar`` matches). Recall matters more than precision here, so that
over-match is kept on purpose.
"""

from __future__ import annotations

import re
from typing import List, Optional, Union

from linkrelay.datatypes.message_datatypes import Embed, InboundMessage
from linkrelay.util.logger import get_logger

logger = get_logger("link_detection")

URL_PATTERN = re.compile(
    r"("
    r"[a-z][a-z0-9+.\-]*://[^\s<>]+"
    r"|www\.[^\s<>]+"
    r"|[a-z0-9][a-z0-9-]*[a-z0-9]*\.[a-z]{2,}(?:/[^\s<>]*)?"
    r")",
    re.IGNORECASE,
)


def text_contains_link(text: Optional[str]) -> bool:
    return bool(text) and URL_PATTERN.search(text) is not None


def embed_contains_link(embed: Embed) -> bool:
    """Check url, title, description, fields, footer text and author of one embed."""
    candidates: List[Optional[str]] = [embed.url, embed.title, embed.description]
    for embed_field in embed.fields:
        candidates.extend((embed_field.name, embed_field.value))
    if embed.footer is not None:
        candidates.append(embed.footer.text)
    if embed.author is not None:
        candidates.extend((embed.author.name, embed.author.url))
    return any(text_contains_link(candidate) for candidate in candidates)


def find_link_sources(message: InboundMessage) -> List[str]:
    """Return a label for every part of ``message`` that contains a link.

    All parts are examined, so the result lists every matching source rather
    than stopping at the first one.
    """
    sources: List[str] = []

    if text_contains_link(message.content):
        sources.append("message content")

    for index, embed in enumerate(message.embeds, start=1):
        if embed_contains_link(embed):
            sources.append(f"embed {index}")

    for attachment in message.attachments:
        if text_contains_link(attachment.url):
            sources.append("attachment URL")

    return sources


def contains_link(message: Union[str, InboundMessage]) -> bool:
    """Return True if the string or message carries at least one URL.

    Parameters
    ----------
    message:
        Plain text, or an :class:`InboundMessage` whose content, embeds and
        attachment URLs are all examined.
    """
    if isinstance(message, str):
        return text_contains_link(message)

    sources = find_link_sources(message)
    found = bool(sources)
    logger.debug(
        "[LINK DETECTION] Result for message %s: %s (sources=%s)",
        message.id or "unknown",
        found,
        sources,
    )
    return found
