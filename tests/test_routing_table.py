from linkrelay.datatypes.discord_datatypes import ChannelID, GuildID
from linkrelay.relay.routing_table import RoutingTable
from relay_factories import (
    CATEGORY,
    INPUT_1,
    INPUT_2,
    INPUT_3,
    OUTPUT_2,
    OUTPUT_3,
    ROLE_2,
    SERVER_1,
    SERVER_2,
    SERVER_3,
    make_binding,
    make_role,
)


def test_empty_table_returns_empty_results():
    table = RoutingTable()

    assert table.is_loaded is False
    assert table.destinations_for(GuildID(SERVER_1), CATEGORY) == []
    assert table.binding_for_input_channel(ChannelID(INPUT_1)) is None
    assert table.role_for(GuildID(SERVER_2), CATEGORY) is None
    assert table.all_input_channel_ids() == frozenset()
    assert table.counts() == (0, 0)


def test_destinations_exclude_source_server(routing_table):
    destinations = routing_table.destinations_for(GuildID(SERVER_1), CATEGORY)

    assert [d.server_id for d in destinations] == [GuildID(SERVER_2)]
    assert all(d.server_id != SERVER_1 for d in destinations)


def test_destinations_keep_load_order_and_filter_category():
    table = RoutingTable()
    table.load(
        [
            make_binding(SERVER_3, INPUT_3, OUTPUT_3, CATEGORY),
            make_binding(SERVER_1, INPUT_1, 300000000000000001, CATEGORY),
            make_binding(SERVER_2, INPUT_2, OUTPUT_2, CATEGORY),
            make_binding(SERVER_2, 200000000000000009, 300000000000000009, "news"),
        ],
        [],
    )

    destinations = table.destinations_for(GuildID(SERVER_1), CATEGORY)
    assert [d.server_id for d in destinations] == [GuildID(SERVER_3), GuildID(SERVER_2)]
    assert table.destinations_for(GuildID(SERVER_1), "unknown") == []


def test_lookups_accept_raw_ids(routing_table):
    binding = routing_table.binding_for_input_channel(INPUT_2)
    assert binding is not None
    assert binding.output_channel_id == OUTPUT_2

    role = routing_table.role_for(SERVER_2, CATEGORY)
    assert role is not None
    assert role.role_id == ROLE_2

    assert routing_table.role_for(SERVER_1, CATEGORY) is None
    assert routing_table.all_input_channel_ids() == frozenset({ChannelID(INPUT_1), ChannelID(INPUT_2)})


def test_load_replaces_instead_of_merging(routing_table):
    old_snapshot = routing_table.snapshot
    routing_table.load([make_binding(SERVER_3, INPUT_3, OUTPUT_3, CATEGORY)], [])

    assert routing_table.binding_for_input_channel(INPUT_1) is None
    assert routing_table.role_for(SERVER_2, CATEGORY) is None
    assert routing_table.counts() == (1, 0)
    # The previous snapshot is untouched for readers still holding it
    assert ChannelID(INPUT_1) in old_snapshot.input_channel_ids
    assert routing_table.snapshot is not old_snapshot


def test_duplicate_input_channel_keeps_first_binding():
    table = RoutingTable()
    table.load(
        [
            make_binding(SERVER_1, INPUT_1, 300000000000000001, CATEGORY),
            make_binding(SERVER_2, INPUT_1, OUTPUT_2, "news"),
        ],
        [make_role(SERVER_2, "news", ROLE_2)],
    )

    assert table.binding_for_input_channel(INPUT_1).server_id == SERVER_1
    assert table.counts() == (2, 1)
