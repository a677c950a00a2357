"""Wiring of the relay components shared by the cogs and the console."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import discord

from linkrelay.bot.gateway import DiscordGateway
from linkrelay.configuration.relay_settings import RelaySettings
from linkrelay.database.store import BindingStore, load_routing_table
from linkrelay.relay.delivery import build_delivery_client
from linkrelay.relay.orchestrator import RelayOrchestrator
from linkrelay.relay.routing_table import RoutingTable
from linkrelay.util.logger import get_logger

logger = get_logger("relay_runtime")


@dataclass(slots=True)
class RelayRuntime:
    """Everything a relay needs, built once per bot session.

    Attributes:
        settings: The ``relay`` configuration section.
        store: Persistent source of bindings.
        routing_table: Current routing snapshot owner.
        gateway: py-cord adapter.
        orchestrator: Fan-out engine.
    """

    settings: RelaySettings
    store: BindingStore
    routing_table: RoutingTable
    gateway: DiscordGateway
    orchestrator: RelayOrchestrator

    @classmethod
    def build(cls, bot: discord.Bot, settings: RelaySettings, store: BindingStore) -> "RelayRuntime":
        routing_table = RoutingTable()
        gateway = DiscordGateway(bot, default_avatar_url=settings.default_avatar_url)
        delivery_client = build_delivery_client(
            settings.delivery_strategy,
            settings.retry_policy,
            webhook_name=settings.webhook_name,
        )
        orchestrator = RelayOrchestrator(
            routing_table,
            delivery_client,
            gateway,
            embed_color=settings.embed_color,
        )
        logger.info("[RUNTIME] Relay runtime built (delivery strategy: %s)", delivery_client.strategy)
        return cls(
            settings=settings,
            store=store,
            routing_table=routing_table,
            gateway=gateway,
            orchestrator=orchestrator,
        )

    @property
    def delivery_strategy(self) -> str:
        return self.orchestrator.delivery_client.strategy

    async def reload(self) -> Tuple[int, int]:
        """Refresh the routing table from the store.

        Raises:
            FatalStartupError: If the store cannot be read; the previous
                snapshot stays in place.
        """
        return await load_routing_table(self.store, self.routing_table, self.settings.retry_policy)
