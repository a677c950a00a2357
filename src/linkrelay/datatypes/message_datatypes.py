"""
Message snapshot types consumed by the relay core.

Live gateway messages and the synthetic messages built by the /test and
/target-test commands are both converted into :class:`InboundMessage` before
anything else looks at them, so link detection and the orchestrator never
depend on a py-cord ``discord.Message``.

:class:`Embed` mirrors Discord's embed JSON. Every attribute is optional and
:meth:`Embed.to_dict` omits absent ones instead of emitting ``null`` or empty
placeholders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import discord

from linkrelay.datatypes.discord_datatypes import GuildID


def _present(value: Any) -> bool:
    """True when an embed value carries information (not None, not blank)."""
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    return True


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if _present(value)}


@dataclass(slots=True)
class EmbedField:
    name: str
    value: str
    inline: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value, "inline": self.inline}


@dataclass(slots=True)
class EmbedAuthor:
    name: Optional[str] = None
    url: Optional[str] = None
    icon_url: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(_present(v) for v in (self.name, self.url, self.icon_url))

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"name": self.name, "url": self.url, "icon_url": self.icon_url})


@dataclass(slots=True)
class EmbedFooter:
    text: Optional[str] = None
    icon_url: Optional[str] = None

    def is_empty(self) -> bool:
        return not _present(self.text) and not _present(self.icon_url)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"text": self.text, "icon_url": self.icon_url})


@dataclass(slots=True)
class EmbedMedia:
    """Thumbnail or image reference."""

    url: Optional[str] = None

    def is_empty(self) -> bool:
        return not _present(self.url)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"url": self.url})


@dataclass(slots=True)
class Embed:
    """Discord embed with every attribute optional.

    Attributes:
        title: Embed title text.
        description: Body text.
        url: Link attached to the title.
        color: RGB integer colour.
        timestamp: ISO-8601 timestamp string.
        fields: Ordered name/value fields.
        author: Author block.
        thumbnail: Thumbnail reference.
        image: Image reference.
        footer: Footer block.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    color: Optional[int] = None
    timestamp: Optional[str] = None
    fields: List[EmbedField] = field(default_factory=list)
    author: Optional[EmbedAuthor] = None
    thumbnail: Optional[EmbedMedia] = None
    image: Optional[EmbedMedia] = None
    footer: Optional[EmbedFooter] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Embed":
        """Build an embed from Discord's embed JSON (extra keys are ignored)."""
        author = data.get("author")
        footer = data.get("footer")
        thumbnail = data.get("thumbnail")
        image = data.get("image")
        return cls(
            title=data.get("title"),
            description=data.get("description"),
            url=data.get("url"),
            color=data.get("color"),
            timestamp=data.get("timestamp"),
            fields=[
                EmbedField(
                    name=str(item.get("name", "")),
                    value=str(item.get("value", "")),
                    inline=bool(item.get("inline", False)),
                )
                for item in data.get("fields") or []
            ],
            author=EmbedAuthor(
                name=author.get("name"),
                url=author.get("url"),
                icon_url=author.get("icon_url"),
            ) if author else None,
            thumbnail=EmbedMedia(url=thumbnail.get("url")) if thumbnail else None,
            image=EmbedMedia(url=image.get("url")) if image else None,
            footer=EmbedFooter(
                text=footer.get("text"),
                icon_url=footer.get("icon_url"),
            ) if footer else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to Discord's embed JSON, omitting absent attributes."""
        data: Dict[str, Any] = _compact({
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "color": self.color,
            "timestamp": self.timestamp,
        })
        if self.fields:
            data["fields"] = [f.to_dict() for f in self.fields]
        for key in ("author", "thumbnail", "image", "footer"):
            part = getattr(self, key)
            if part is not None and not part.is_empty():
                data[key] = part.to_dict()
        return data

    def to_discord(self) -> discord.Embed:
        return discord.Embed.from_dict(self.to_dict())


@dataclass(frozen=True, slots=True)
class Attachment:
    url: str
    filename: str


@dataclass(frozen=True, slots=True)
class MessageAuthor:
    display_name: str
    avatar_url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class OriginServer:
    """Descriptor of the guild a message was posted in."""

    id: GuildID
    name: str
    icon_url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class InboundMessage:
    """Immutable snapshot of a message about to be relayed.

    Attributes:
        id: Message id as a string (synthetic test messages use non-numeric ids).
        content: Raw text content.
        embeds: Ordered embeds of the source message.
        attachments: Ordered attachments of the source message.
        author: Display name and avatar of the poster.
        origin_server: Guild the message was posted in.
        channel_name: Name of the channel the message was posted in.
        created_at: Creation timestamp.
    """

    id: str
    content: str
    embeds: tuple[Embed, ...]
    attachments: tuple[Attachment, ...]
    author: MessageAuthor
    origin_server: OriginServer
    channel_name: str
    created_at: datetime
