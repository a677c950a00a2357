"""
Type-safe wrappers for Discord snowflake identifiers.

Bindings loaded from SQLite, ids typed into slash commands and ids read off
live gateway objects all end up compared against each other. Wrapping them
keeps that comparison consistent regardless of whether a value arrived as an
``int`` or a ``str``.
"""

from __future__ import annotations

import re
from typing import Union

import discord

SNOWFLAKE_PATTERN = re.compile(r"^\d{17,19}$")


def is_snowflake(value: str | None) -> bool:
    """Return True if ``value`` looks like a Discord snowflake (17-19 digits)."""
    return bool(value) and bool(SNOWFLAKE_PATTERN.match(value.strip()))


class Snowflake:
    """
    Base class for snowflake id wrappers.

    The id is stored as a canonical decimal string for JSON parity. Instances
    compare equal to other instances of the same class and to the raw ``int``
    or ``str`` form of the same id.

    Example:
        >>> gid = GuildID(123456789012345678)
        >>> gid.to_int()
        123456789012345678
        >>> gid == "123456789012345678"
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        if isinstance(value, Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            # Validate that it's a valid integer string
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls."""
        return int(self._value)

    def __int__(self) -> int:
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class GuildID(Snowflake):
    """Snowflake id of a Discord guild (a "server" in relay terms)."""

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        return cls(guild.id)


class ChannelID(Snowflake):
    """Snowflake id of a Discord text channel."""

    __slots__ = ()

    @classmethod
    def from_channel(cls, channel: discord.abc.Snowflake) -> "ChannelID":
        return cls(channel.id)


class RoleID(Snowflake):
    """Snowflake id of a Discord role."""

    __slots__ = ()

    @property
    def mention(self) -> str:
        """Role mention markup, e.g. ``<@&123>``."""
        return f"<@&{self._value}>"


class MessageID(Snowflake):
    """Snowflake id of a Discord message."""

    __slots__ = ()

    @classmethod
    def from_message(cls, message: discord.Message) -> "MessageID":
        return cls(message.id)
