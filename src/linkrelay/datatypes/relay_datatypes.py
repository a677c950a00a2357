"""
Routing and result records for the relay pipeline.

Bindings are loaded from the store and never mutated at runtime. Delivery
results and reports are produced once per relay and handed back to the
caller (the message listener or a slash command).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from linkrelay.datatypes.discord_datatypes import ChannelID, GuildID, RoleID


@dataclass(frozen=True, slots=True)
class ChannelBinding:
    """One server's participation in one relay category.

    Attributes:
        server_id: Guild owning both channels.
        input_channel_id: Channel watched for links.
        output_channel_id: Channel that receives relayed copies.
        category: Relay category (e.g. ``"alerts"``), never empty.
    """

    server_id: GuildID
    input_channel_id: ChannelID
    output_channel_id: ChannelID
    category: str

    def __post_init__(self) -> None:
        if not self.category or not self.category.strip():
            raise ValueError(f"ChannelBinding for server {self.server_id} has an empty category")


@dataclass(frozen=True, slots=True)
class RoleBinding:
    """Role mentioned in ``server_id`` when relaying ``category`` messages."""

    server_id: GuildID
    category: str
    role_id: RoleID


@dataclass(frozen=True, slots=True)
class DeliveryTarget:
    """A resolved destination for one relay call. Never persisted."""

    server_id: GuildID
    channel_id: ChannelID
    role_id: Optional[RoleID] = None

    @classmethod
    def from_bindings(cls, binding: ChannelBinding, role: Optional[RoleBinding]) -> "DeliveryTarget":
        return cls(
            server_id=binding.server_id,
            channel_id=binding.output_channel_id,
            role_id=role.role_id if role else None,
        )


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Outcome of delivering to a single destination server."""

    target_server_id: GuildID
    success: bool
    delivered_message_id: Optional[str] = None
    error_message: Optional[str] = None
    channel_id: Optional[ChannelID] = None

    @classmethod
    def ok(cls, target: DeliveryTarget, message_id: str) -> "DeliveryResult":
        return cls(
            target_server_id=target.server_id,
            success=True,
            delivered_message_id=message_id,
            channel_id=target.channel_id,
        )

    @classmethod
    def failure(
        cls,
        server_id: GuildID,
        error: str,
        channel_id: Optional[ChannelID] = None,
    ) -> "DeliveryResult":
        return cls(
            target_server_id=server_id,
            success=False,
            error_message=error,
            channel_id=channel_id,
        )


class RelayOutcome(Enum):
    """How a relay invocation ended before or after fan-out."""

    RELAYED = "relayed"
    NOT_CONFIGURED = "not_configured"
    NO_TARGETS = "no_targets"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class FailedDelivery:
    server_id: GuildID
    error: str


@dataclass(frozen=True, slots=True)
class RelayReport:
    """Aggregated result of one relay invocation.

    Counts are derived from ``results`` so ``total == successful + failed``
    holds for every report, including empty ones.
    """

    outcome: RelayOutcome
    results: tuple[DeliveryResult, ...] = field(default_factory=tuple)
    category: Optional[str] = None

    @classmethod
    def from_results(
        cls,
        results: Iterable[DeliveryResult],
        *,
        category: Optional[str] = None,
    ) -> "RelayReport":
        return cls(outcome=RelayOutcome.RELAYED, results=tuple(results), category=category)

    @classmethod
    def empty(cls, outcome: RelayOutcome, *, category: Optional[str] = None) -> "RelayReport":
        return cls(outcome=outcome, results=(), category=category)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return self.total - self.successful

    @property
    def failures(self) -> tuple[FailedDelivery, ...]:
        return tuple(
            FailedDelivery(server_id=result.target_server_id, error=result.error_message or "unknown error")
            for result in self.results
            if not result.success
        )
