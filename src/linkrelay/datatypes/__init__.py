"""
Data types shared across Link Relay.

- **discord_datatypes.py**: Snowflake wrappers (GuildID, ChannelID, RoleID, MessageID).
- **message_datatypes.py**: InboundMessage snapshot and the Embed model.
- **relay_datatypes.py**: Channel/role bindings, delivery results and relay reports.
"""
