"""
Repository for the relay_roles table.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from linkrelay.datatypes.discord_datatypes import GuildID, RoleID
from linkrelay.datatypes.relay_datatypes import RoleBinding


class RelayRolesRepository:
    """CRUD for the relay_roles table (primary key = server_id + category)."""

    async def list_all(self, conn: aiosqlite.Connection) -> List[RoleBinding]:
        async with conn.execute(
            "SELECT server_id, category, role_id FROM relay_roles ORDER BY rowid"
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            RoleBinding(
                server_id=GuildID.from_int(server_id),
                category=category,
                role_id=RoleID.from_int(role_id),
            )
            for server_id, category, role_id in rows
        ]

    async def upsert(self, conn: aiosqlite.Connection, role: RoleBinding) -> None:
        await conn.execute(
            """
            INSERT INTO relay_roles (server_id, category, role_id)
            VALUES (?, ?, ?)
            ON CONFLICT(server_id, category) DO UPDATE SET
                role_id = excluded.role_id
            """,
            (int(role.server_id), role.category, int(role.role_id)),
        )

    async def delete(self, conn: aiosqlite.Connection, server_id: GuildID, category: str) -> bool:
        cursor = await conn.execute(
            "DELETE FROM relay_roles WHERE server_id = ? AND category = ?",
            (int(server_id), category),
        )
        return cursor.rowcount > 0
