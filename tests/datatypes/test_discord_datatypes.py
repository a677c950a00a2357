import pytest

from linkrelay.datatypes.discord_datatypes import (
    ChannelID,
    GuildID,
    MessageID,
    RoleID,
    is_snowflake,
)
from linkrelay.datatypes.relay_datatypes import (
    ChannelBinding,
    DeliveryResult,
    DeliveryTarget,
    RelayOutcome,
    RelayReport,
)


class DummyObj:
    def __init__(self, id_val=None):
        self.id = id_val


def test_guildid_from_int_and_str_and_equality_and_hash():
    g1 = GuildID(123456789012345678)
    assert int(g1) == 123456789012345678
    assert str(g1) == "123456789012345678"

    g2 = GuildID(" 123456789012345678 ")
    assert g1 == g2
    assert g1 == 123456789012345678
    assert g1 == "123456789012345678"
    assert hash(g1) == hash(g2)
    assert {g1: "x"}[g2] == "x"


def test_ids_of_different_kinds_are_not_equal():
    assert GuildID(1) != ChannelID(1)
    assert ChannelID(1) != RoleID(1)


def test_invalid_values_raise():
    with pytest.raises(ValueError):
        ChannelID("not-a-number")
    with pytest.raises(ValueError):
        GuildID(True)
    with pytest.raises(ValueError):
        GuildID(1.5)


def test_from_objects():
    assert GuildID.from_guild(DummyObj(10)) == 10
    assert ChannelID.from_channel(DummyObj(20)) == 20
    assert MessageID.from_message(DummyObj(30)) == 30
    assert isinstance(MessageID.from_int(40), MessageID)


def test_role_mention():
    assert RoleID(400000000000000002).mention == "<@&400000000000000002>"


def test_repr_names_the_type():
    assert repr(ChannelID(5)) == "ChannelID('5')"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("123456789012345678", True),
        ("12345678901234567", True),
        (" 1234567890123456789 ", True),
        ("1234", False),
        ("12345678901234567890", False),
        ("abc", False),
        ("", False),
        (None, False),
    ],
)
def test_is_snowflake(value, expected):
    assert is_snowflake(value) is expected


def test_channel_binding_rejects_empty_category():
    with pytest.raises(ValueError):
        ChannelBinding(GuildID(1), ChannelID(2), ChannelID(3), "  ")


def test_report_counts_stay_consistent():
    target = DeliveryTarget(server_id=GuildID(1), channel_id=ChannelID(2))
    report = RelayReport.from_results(
        [
            DeliveryResult.ok(target, "10"),
            DeliveryResult.failure(GuildID(3), "channel unavailable"),
            DeliveryResult.failure(GuildID(4), ""),
        ]
    )

    assert report.outcome is RelayOutcome.RELAYED
    assert (report.total, report.successful, report.failed) == (3, 1, 2)
    assert [f.server_id for f in report.failures] == [GuildID(3), GuildID(4)]
    assert report.failures[1].error == "unknown error"

    empty = RelayReport.empty(RelayOutcome.NO_TARGETS, category="alerts")
    assert (empty.total, empty.successful, empty.failed) == (0, 0, 0)
    assert str(empty.outcome) == "no_targets"
