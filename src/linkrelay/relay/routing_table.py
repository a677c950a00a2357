"""
In-memory routing table for relay categories.

The table holds an immutable :class:`RoutingSnapshot`. ``load`` builds a new
snapshot and swaps the reference in one assignment, so a relay running
concurrently with a reload sees either the old table or the new one, never a
mix of both. Lookups on an empty table return empty results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from linkrelay.datatypes.discord_datatypes import ChannelID, GuildID
from linkrelay.datatypes.relay_datatypes import ChannelBinding, RoleBinding
from linkrelay.util.logger import get_logger

logger = get_logger("routing_table")


@dataclass(frozen=True, slots=True)
class RoutingSnapshot:
    """Indexed, read-only view over one load of bindings and roles."""

    bindings: Tuple[ChannelBinding, ...] = ()
    roles: Tuple[RoleBinding, ...] = ()
    by_input_channel: Dict[ChannelID, ChannelBinding] = field(default_factory=dict)
    by_category: Dict[str, Tuple[ChannelBinding, ...]] = field(default_factory=dict)
    role_index: Dict[Tuple[GuildID, str], RoleBinding] = field(default_factory=dict)
    input_channel_ids: FrozenSet[ChannelID] = frozenset()

    @classmethod
    def build(cls, bindings: Iterable[ChannelBinding], roles: Iterable[RoleBinding]) -> "RoutingSnapshot":
        binding_list = tuple(bindings)
        role_list = tuple(roles)

        by_input_channel: Dict[ChannelID, ChannelBinding] = {}
        by_category: Dict[str, List[ChannelBinding]] = {}
        for binding in binding_list:
            if binding.input_channel_id in by_input_channel:
                logger.warning(
                    "[ROUTING] Input channel %s is bound more than once; keeping the first binding",
                    binding.input_channel_id,
                )
            else:
                by_input_channel[binding.input_channel_id] = binding
            by_category.setdefault(binding.category, []).append(binding)

        role_index: Dict[Tuple[GuildID, str], RoleBinding] = {}
        for role in role_list:
            role_index.setdefault((role.server_id, role.category), role)

        return cls(
            bindings=binding_list,
            roles=role_list,
            by_input_channel=by_input_channel,
            by_category={category: tuple(items) for category, items in by_category.items()},
            role_index=role_index,
            input_channel_ids=frozenset(by_input_channel),
        )


class RoutingTable:
    """Owner of the current routing snapshot.

    Readers call the lookup methods (or grab :attr:`snapshot` once for a
    consistent multi-step read); the startup sequence and the reload command
    call :meth:`load`.
    """

    def __init__(self) -> None:
        self._snapshot = RoutingSnapshot()
        self._loaded = False

    @property
    def snapshot(self) -> RoutingSnapshot:
        return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self, bindings: Iterable[ChannelBinding], roles: Iterable[RoleBinding]) -> None:
        """Replace the whole table. No merge with the previous contents."""
        snapshot = RoutingSnapshot.build(bindings, roles)
        self._snapshot = snapshot
        self._loaded = True
        logger.info(
            "[ROUTING] Loaded %d channel bindings and %d role bindings across %d categories",
            len(snapshot.bindings),
            len(snapshot.roles),
            len(snapshot.by_category),
        )

    def destinations_for(self, source_server_id: GuildID, category: str) -> List[ChannelBinding]:
        """Bindings of ``category`` belonging to any server other than the source, in load order."""
        candidates = self._snapshot.by_category.get(category, ())
        return [binding for binding in candidates if binding.server_id != source_server_id]

    def binding_for_input_channel(self, channel_id: ChannelID) -> Optional[ChannelBinding]:
        return self._snapshot.by_input_channel.get(ChannelID(channel_id))

    def role_for(self, server_id: GuildID, category: str) -> Optional[RoleBinding]:
        return self._snapshot.role_index.get((GuildID(server_id), category))

    def all_input_channel_ids(self) -> FrozenSet[ChannelID]:
        return self._snapshot.input_channel_ids

    def counts(self) -> Tuple[int, int]:
        """Return ``(channel bindings, role bindings)`` of the current snapshot."""
        return len(self._snapshot.bindings), len(self._snapshot.roles)
