"""
Binding store: the persistent source of channel and role bindings.

The routing table is filled from here at startup and on reload. Loading is
all-or-nothing: both lists are fetched first, and only then is the table
swapped, so a failed fetch leaves the previous snapshot in place.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from linkrelay.database.db_connection import ConnectionManager, db_connection
from linkrelay.database.db_schema import SchemaManager
from linkrelay.datatypes.discord_datatypes import ChannelID, GuildID
from linkrelay.datatypes.relay_datatypes import ChannelBinding, RoleBinding
from linkrelay.relay.errors import FatalStartupError
from linkrelay.relay.retry import DEFAULT_RETRY_POLICY, RetryPolicy, retry_with_backoff
from linkrelay.relay.routing_table import RoutingTable
from linkrelay.repositories.relay_channels_repo import RelayChannelsRepository
from linkrelay.repositories.relay_roles_repo import RelayRolesRepository
from linkrelay.util.logger import get_logger

logger = get_logger("binding_store")


class BindingStore:
    """
    Reads and writes relay bindings through one :class:`ConnectionManager`.

    Lifecycle:
        1. ``await store.initialize(path)`` at startup (opens and migrates).
        2. ``list_channel_bindings`` / ``list_role_bindings`` to feed the
           routing table.
        3. ``await store.shutdown()`` on exit.
    """

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self.connection = connection
        self.channels = RelayChannelsRepository()
        self.roles = RelayRolesRepository()

    async def initialize(self, path: Path) -> None:
        await self.connection.open(path)
        async with self.connection.transaction() as conn:
            await SchemaManager.initialize_schema(conn)
        logger.info("[DATABASE] Binding store ready at %s", path)

    async def shutdown(self) -> None:
        await self.connection.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_channel_bindings(self) -> List[ChannelBinding]:
        async with self.connection.read() as conn:
            return await self.channels.list_all(conn)

    async def list_role_bindings(self) -> List[RoleBinding]:
        async with self.connection.read() as conn:
            return await self.roles.list_all(conn)

    async def fetch_all(self) -> Tuple[List[ChannelBinding], List[RoleBinding]]:
        """Fetch both lists; raises if either fetch fails."""
        bindings = await self.list_channel_bindings()
        roles = await self.list_role_bindings()
        return bindings, roles

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    # Provisioning only. The relay never writes bindings while running; these
    # seed the database for operators and tests, and take effect on reload.

    async def save_channel_binding(self, binding: ChannelBinding) -> None:
        async with self.connection.transaction() as conn:
            await self.channels.upsert(conn, binding)
        logger.info(
            "[DATABASE] Saved channel binding: server %s, category '%s', %s -> %s",
            binding.server_id,
            binding.category,
            binding.input_channel_id,
            binding.output_channel_id,
        )

    async def save_role_binding(self, role: RoleBinding) -> None:
        async with self.connection.transaction() as conn:
            await self.roles.upsert(conn, role)
        logger.info("[DATABASE] Saved role binding: server %s, category '%s', role %s", role.server_id, role.category, role.role_id)

    async def delete_channel_binding(self, input_channel_id: ChannelID) -> bool:
        async with self.connection.transaction() as conn:
            return await self.channels.delete(conn, input_channel_id)

    async def delete_role_binding(self, server_id: GuildID, category: str) -> bool:
        async with self.connection.transaction() as conn:
            return await self.roles.delete(conn, server_id, category)


async def load_routing_table(
    store: BindingStore,
    table: RoutingTable,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> Tuple[int, int]:
    """Fill ``table`` from ``store`` and return ``(channel bindings, role bindings)``.

    Raises:
        FatalStartupError: If the bindings cannot be fetched within the retry
            policy. ``table`` is left untouched in that case.
    """
    try:
        bindings, roles = await retry_with_backoff(
            store.fetch_all,
            "Loading relay bindings",
            policy,
        )
    except Exception as exc:
        raise FatalStartupError(f"Could not load relay bindings: {exc}") from exc

    table.load(bindings, roles)
    return len(bindings), len(roles)
