"""
Relay orchestrator: fan a single inbound message out to every destination.

For one message and the id of the channel it was read from, the orchestrator:

1. Looks up the input channel's binding (no binding -> ``NOT_CONFIGURED``).
2. Collects the bindings of the same category on every other server
   (none -> ``NO_TARGETS``).
3. For each destination, concurrently: resolves the role to mention, resolves
   the live output channel, renders the payload and hands it to the delivery
   client. A failure at any step is recorded for that destination only.
4. Waits for every destination to settle and folds the results into a
   :class:`RelayReport`.

The orchestrator keeps no state between invocations. It reads the routing
table once per relay (one snapshot), and the only shared mutable state it
touches is the delivery client's webhook cache.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

import discord

from linkrelay.datatypes.discord_datatypes import ChannelID, GuildID
from linkrelay.datatypes.message_datatypes import InboundMessage
from linkrelay.datatypes.relay_datatypes import (
    ChannelBinding,
    DeliveryResult,
    DeliveryTarget,
    RelayOutcome,
    RelayReport,
    RoleBinding,
)
from linkrelay.relay.delivery import DeliveryClient, DeliveryPayload
from linkrelay.relay.embed_transform import (
    DEFAULT_EMBED_COLOR,
    annotate_provenance,
    build_provenance_embed,
    copy_embed,
)
from linkrelay.relay.errors import ConfigurationError, DeliveryError, ResourceUnavailableError
from linkrelay.relay.routing_table import RoutingTable
from linkrelay.util.logger import get_logger

logger = get_logger("relay_orchestrator")

NO_ROLE_ERROR = "no role configured"
CHANNEL_UNAVAILABLE_ERROR = "channel unavailable"


class ChannelResolver(Protocol):
    """The part of the gateway the orchestrator needs."""

    async def resolve_channel(self, channel_id: ChannelID) -> Optional[discord.abc.Messageable]:
        ...


@dataclass(frozen=True, slots=True)
class PlannedTarget:
    """One destination as it would be relayed to, without sending anything."""

    binding: ChannelBinding
    role: Optional[RoleBinding]
    payload: Optional[DeliveryPayload]

    @property
    def target(self) -> DeliveryTarget:
        return DeliveryTarget.from_bindings(self.binding, self.role)


@dataclass(frozen=True, slots=True)
class RelayPlan:
    """Dry-run view of a relay: routing resolution plus rendered payloads."""

    outcome: RelayOutcome
    source_binding: Optional[ChannelBinding] = None
    targets: tuple[PlannedTarget, ...] = field(default_factory=tuple)

    @property
    def category(self) -> Optional[str]:
        return self.source_binding.category if self.source_binding else None


def provenance_header(origin_server_name: str) -> str:
    return f"**From {origin_server_name}:**"


class RelayOrchestrator:
    """Resolve destinations, render per-destination copies and deliver them concurrently.

    Parameters
    ----------
    routing_table:
        Table of channel and role bindings.
    delivery_client:
        Strategy used to send each rendered payload.
    gateway:
        Resolver turning output channel ids into live channel handles.
    embed_color:
        Colour of the provenance embed added to embed-less messages.
    """

    def __init__(
        self,
        routing_table: RoutingTable,
        delivery_client: DeliveryClient,
        gateway: ChannelResolver,
        *,
        embed_color: int = DEFAULT_EMBED_COLOR,
    ) -> None:
        self.routing_table = routing_table
        self.delivery_client = delivery_client
        self.gateway = gateway
        self.embed_color = embed_color

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_for_target(self, message: InboundMessage, target: DeliveryTarget) -> DeliveryPayload:
        """Build the payload ``target`` should receive for ``message``.

        Pure: touches neither the network nor the routing table, so the
        dry-run and target-test commands can call it directly.
        """
        origin = message.origin_server
        header = provenance_header(origin.name)
        base_content = f"{target.role_id.mention} {header}" if target.role_id else header

        content = base_content
        if message.content and message.content.strip():
            content = f"{content}\n{message.content}"

        if message.embeds:
            embeds = annotate_provenance([copy_embed(embed) for embed in message.embeds], origin.name)
        else:
            embeds = [
                build_provenance_embed(
                    message.author,
                    origin.name,
                    message.channel_name,
                    message.created_at,
                    color=self.embed_color,
                )
            ]

        return DeliveryPayload(
            content=content,
            embeds=tuple(embeds),
            attachments=message.attachments,
            username=origin.name,
            avatar_url=origin.icon_url,
        )

    # ------------------------------------------------------------------
    # Per-target steps
    # ------------------------------------------------------------------

    def resolve_target(self, binding: ChannelBinding, category: str) -> DeliveryTarget:
        """Pair a destination binding with its role, raising if none is configured."""
        role = self.routing_table.role_for(binding.server_id, category)
        if role is None:
            raise ConfigurationError(
                f"{NO_ROLE_ERROR} for server {binding.server_id} and category '{category}'"
            )
        return DeliveryTarget.from_bindings(binding, role)

    async def resolve_channel(self, target: DeliveryTarget) -> discord.abc.Messageable:
        channel = await self.gateway.resolve_channel(target.channel_id)
        if channel is None:
            raise ResourceUnavailableError(f"{CHANNEL_UNAVAILABLE_ERROR}: {target.channel_id}")
        return channel

    async def deliver_to_target(self, message: InboundMessage, target: DeliveryTarget) -> DeliveryResult:
        """Resolve the channel, render and deliver ``message`` to one explicit target.

        Never raises for expected failures: an unavailable channel or an
        exhausted delivery becomes a failed :class:`DeliveryResult`.
        """
        try:
            channel = await self.resolve_channel(target)
            payload = self.render_for_target(message, target)
            message_id = await self.delivery_client.deliver(channel, payload)
        except (ResourceUnavailableError, DeliveryError) as exc:
            logger.error("[RELAY] Failed to relay message %s to server %s: %s", message.id, target.server_id, exc)
            return DeliveryResult.failure(target.server_id, str(exc), target.channel_id)

        logger.info(
            "[RELAY] Message %s relayed to server %s channel %s (ID: %s)",
            message.id,
            target.server_id,
            target.channel_id,
            message_id,
        )
        return DeliveryResult.ok(target, message_id)

    async def relay_to_binding(self, message: InboundMessage, binding: ChannelBinding, category: str) -> DeliveryResult:
        try:
            target = self.resolve_target(binding, category)
        except ConfigurationError as exc:
            logger.warning("[RELAY] Skipping server %s: %s", binding.server_id, exc)
            return DeliveryResult.failure(binding.server_id, str(exc), binding.output_channel_id)
        return await self.deliver_to_target(message, target)

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def fan_out(
        self,
        message: InboundMessage,
        category: str,
        bindings: Sequence[ChannelBinding],
    ) -> List[DeliveryResult]:
        """Relay to every binding concurrently and wait for all of them to settle."""
        outcomes = await asyncio.gather(
            *(self.relay_to_binding(message, binding, category) for binding in bindings),
            return_exceptions=True,
        )

        results: List[DeliveryResult] = []
        for binding, outcome in zip(bindings, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.exception(
                    "[RELAY] Unexpected error relaying to server %s",
                    binding.server_id,
                    exc_info=outcome,
                )
                results.append(DeliveryResult.failure(binding.server_id, str(outcome) or type(outcome).__name__))
            else:
                results.append(outcome)
        return results

    async def relay(self, message: InboundMessage, channel_id: ChannelID) -> RelayReport:
        """Relay ``message``, read from ``channel_id``, to every destination of its category."""
        binding = self.routing_table.binding_for_input_channel(channel_id)
        if binding is None:
            logger.warning("[RELAY] Channel %s is not configured as an input channel", channel_id)
            return RelayReport.empty(RelayOutcome.NOT_CONFIGURED)

        category = binding.category
        destinations = self.routing_table.destinations_for(message.origin_server.id, category)
        if not destinations:
            logger.info("[RELAY] No target servers found for category '%s'", category)
            return RelayReport.empty(RelayOutcome.NO_TARGETS, category=category)

        logger.info("[RELAY] Forwarding message %s to %d servers...", message.id, len(destinations))
        results = await self.fan_out(message, category, destinations)
        report = RelayReport.from_results(results, category=category)
        log_report(report, label="Relay")
        return report

    # ------------------------------------------------------------------
    # Dry run
    # ------------------------------------------------------------------

    def plan(self, message: InboundMessage, channel_id: ChannelID) -> RelayPlan:
        """Resolve routing for ``message`` and render payloads without delivering."""
        binding = self.routing_table.binding_for_input_channel(channel_id)
        if binding is None:
            return RelayPlan(outcome=RelayOutcome.NOT_CONFIGURED)

        destinations = self.routing_table.destinations_for(message.origin_server.id, binding.category)
        if not destinations:
            return RelayPlan(outcome=RelayOutcome.NO_TARGETS, source_binding=binding)

        planned: List[PlannedTarget] = []
        for destination in destinations:
            role = self.routing_table.role_for(destination.server_id, binding.category)
            payload = (
                self.render_for_target(message, DeliveryTarget.from_bindings(destination, role))
                if role is not None
                else None
            )
            planned.append(PlannedTarget(binding=destination, role=role, payload=payload))

        return RelayPlan(outcome=RelayOutcome.RELAYED, source_binding=binding, targets=tuple(planned))


def log_report(report: RelayReport, *, label: str) -> None:
    logger.info("[RELAY] %s summary: %d/%d successful", label, report.successful, report.total)
    if report.failed:
        logger.info(
            "[RELAY]    Failed servers: %s",
            ", ".join(str(failure.server_id) for failure in report.failures),
        )


def target_for_channel(server_id: GuildID, channel_id: ChannelID, role: Optional[RoleBinding]) -> DeliveryTarget:
    """Build an explicit target outside the routing table (used by /target-test)."""
    return DeliveryTarget(
        server_id=GuildID(server_id),
        channel_id=ChannelID(channel_id),
        role_id=role.role_id if role else None,
    )
