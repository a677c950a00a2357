"""
Repository for the relay_channels table.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from linkrelay.datatypes.discord_datatypes import ChannelID, GuildID
from linkrelay.datatypes.relay_datatypes import ChannelBinding
from linkrelay.util.logger import get_logger

logger = get_logger("relay_channels_repo")


class RelayChannelsRepository:
    """CRUD for the relay_channels table."""

    async def list_all(self, conn: aiosqlite.Connection) -> List[ChannelBinding]:
        """Return every channel binding in insertion (rowid) order."""
        async with conn.execute(
            "SELECT server_id, input_channel_id, output_channel_id, category "
            "FROM relay_channels ORDER BY rowid"
        ) as cursor:
            rows = await cursor.fetchall()

        bindings: List[ChannelBinding] = []
        for server_id, input_channel_id, output_channel_id, category in rows:
            try:
                bindings.append(
                    ChannelBinding(
                        server_id=GuildID.from_int(server_id),
                        input_channel_id=ChannelID.from_int(input_channel_id),
                        output_channel_id=ChannelID.from_int(output_channel_id),
                        category=category,
                    )
                )
            except ValueError as exc:
                logger.warning("[RELAY CHANNELS] Skipping invalid row for input channel %s: %s", input_channel_id, exc)
        return bindings

    async def upsert(self, conn: aiosqlite.Connection, binding: ChannelBinding) -> None:
        """Insert or update the binding of ``binding.input_channel_id``.

        A server takes part in a category through one input channel only, so
        an existing row for the same (server, category) on another input
        channel is replaced.
        """
        await conn.execute(
            "DELETE FROM relay_channels WHERE server_id = ? AND category = ? AND input_channel_id <> ?",
            (int(binding.server_id), binding.category, int(binding.input_channel_id)),
        )
        await conn.execute(
            """
            INSERT INTO relay_channels (input_channel_id, server_id, output_channel_id, category)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(input_channel_id) DO UPDATE SET
                server_id         = excluded.server_id,
                output_channel_id = excluded.output_channel_id,
                category          = excluded.category
            """,
            (
                int(binding.input_channel_id),
                int(binding.server_id),
                int(binding.output_channel_id),
                binding.category,
            ),
        )

    async def delete(self, conn: aiosqlite.Connection, input_channel_id: ChannelID) -> bool:
        """Delete the binding of one input channel; return True if a row was removed."""
        cursor = await conn.execute(
            "DELETE FROM relay_channels WHERE input_channel_id = ?",
            (int(input_channel_id),),
        )
        return cursor.rowcount > 0
