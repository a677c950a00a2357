"""
Embed copying and provenance annotation.

Relayed embeds are rebuilt from scratch rather than forwarded as-is so the
destination copy owns its nested structures and carries no empty
placeholders Discord would reject.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from linkrelay.datatypes.message_datatypes import (
    Embed,
    EmbedAuthor,
    EmbedField,
    EmbedFooter,
    EmbedMedia,
    MessageAuthor,
)

PROVENANCE_SEPARATOR = " • "
DEFAULT_EMBED_COLOR = 0x5865F2  # Discord blurple


def _text(value: Optional[str]) -> Optional[str]:
    return value if value else None


def _copy_author(author: Optional[EmbedAuthor]) -> Optional[EmbedAuthor]:
    if author is None or author.is_empty():
        return None
    return EmbedAuthor(name=_text(author.name), url=_text(author.url), icon_url=_text(author.icon_url))


def _copy_footer(footer: Optional[EmbedFooter]) -> Optional[EmbedFooter]:
    if footer is None or footer.is_empty():
        return None
    return EmbedFooter(text=_text(footer.text), icon_url=_text(footer.icon_url))


def _copy_media(media: Optional[EmbedMedia]) -> Optional[EmbedMedia]:
    if media is None or media.is_empty():
        return None
    return EmbedMedia(url=media.url)


def copy_embed(source: Embed) -> Embed:
    """Return a deep, independent copy of ``source``.

    Only attributes present on the source are carried over. Blank strings,
    empty nested blocks and fields with neither name nor value are dropped.
    Nothing in the result aliases the source's fields, author, footer or
    media objects.
    """
    return Embed(
        title=_text(source.title),
        description=_text(source.description),
        url=_text(source.url),
        color=source.color,
        timestamp=_text(source.timestamp),
        fields=[
            EmbedField(name=f.name, value=f.value, inline=f.inline)
            for f in source.fields
            if f.name or f.value
        ],
        author=_copy_author(source.author),
        thumbnail=_copy_media(source.thumbnail),
        image=_copy_media(source.image),
        footer=_copy_footer(source.footer),
    )


def annotate_provenance(embeds: Sequence[Embed], source_label: str) -> List[Embed]:
    """Return a new list whose first embed's footer names ``source_label``.

    An existing footer text becomes ``"<source_label> • <text>"``; a missing
    footer becomes ``source_label`` alone. The footer icon is preserved. The
    first embed is a fresh copy; every other embed is passed through untouched.
    """
    if not embeds:
        return []

    first, *rest = embeds
    footer = first.footer
    if footer is not None and footer.text:
        annotated_footer = EmbedFooter(
            text=f"{source_label}{PROVENANCE_SEPARATOR}{footer.text}",
            icon_url=footer.icon_url,
        )
    else:
        annotated_footer = EmbedFooter(
            text=source_label,
            icon_url=footer.icon_url if footer is not None else None,
        )

    return [replace(copy_embed(first), footer=annotated_footer), *rest]


def build_provenance_embed(
    author: MessageAuthor,
    origin_server_name: str,
    origin_channel_name: str,
    created_at: datetime,
    *,
    color: int = DEFAULT_EMBED_COLOR,
) -> Embed:
    """Build the stand-in embed used when the source message has no embeds."""
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    return Embed(
        color=color,
        timestamp=created_at.isoformat(),
        author=EmbedAuthor(
            name=f"{author.display_name} in {origin_server_name}",
            icon_url=author.avatar_url or None,
        ),
        footer=EmbedFooter(text=f"Forwarded from #{origin_channel_name}"),
    )
