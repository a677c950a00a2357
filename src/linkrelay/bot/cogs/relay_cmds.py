"""
Relay commands cog: /retry, /test, /target-test and /relay-reload.

Each slash command defers an ephemeral reply and delegates to a ``run_*``
method that returns the reply text, so the command logic can be exercised
without an interaction.
"""

from __future__ import annotations

from typing import Optional

import discord
from discord import Option
from discord.ext import commands

from linkrelay.bot.runtime import RelayRuntime
from linkrelay.bot.sample_messages import DEFAULT_TARGET_TEST_CONTENT, DEFAULT_TEST_CONTENT, build_test_message
from linkrelay.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, is_snowflake
from linkrelay.relay.errors import FatalStartupError
from linkrelay.relay.link_detection import contains_link
from linkrelay.relay.message_debug import describe_message
from linkrelay.relay.orchestrator import target_for_channel
from linkrelay.relay.report_formatting import clip_reply, format_plan, format_report, format_single_result
from linkrelay.util.logger import get_logger

logger = get_logger("relay_cmds")

INVALID_ID_REPLY = "❌ Invalid server or channel ID format. Please provide valid Discord IDs."


def _test_kind(test_embed: bool) -> str:
    return "(Embed Test)" if test_embed else "(Message Test)"


class RelayCommandsCog(commands.Cog):
    """Slash commands for retrying, simulating and reloading relays."""

    def __init__(self, discord_bot_instance, runtime: RelayRuntime):
        self.bot = discord_bot_instance
        self.runtime = runtime
        logger.info("[RELAY COMMANDS] Relay commands cog loaded")

    # ------------------------------------------------------------------
    # Command logic
    # ------------------------------------------------------------------

    async def find_message(
        self,
        message_id: MessageID,
        current_channel: Optional[discord.abc.Messageable],
    ) -> tuple[Optional[discord.Message], Optional[ChannelID]]:
        """Look in the invoking channel first, then in every input channel."""
        if current_channel is not None:
            try:
                message = await current_channel.fetch_message(message_id.to_int())
                return message, ChannelID(message.channel.id)
            except (discord.NotFound, discord.Forbidden, discord.HTTPException):
                pass

        gateway = self.runtime.gateway
        for channel_id in sorted(self.runtime.routing_table.all_input_channel_ids(), key=int):
            message = await gateway.fetch_message(channel_id, message_id)
            if message is not None:
                return message, channel_id
        return None, None

    async def run_retry(self, message_id: str, current_channel: Optional[discord.abc.Messageable]) -> str:
        if not is_snowflake(message_id):
            return "❌ Invalid message ID format. Please provide a valid Discord message ID."

        message, channel_id = await self.find_message(MessageID(message_id), current_channel)
        if message is None or channel_id is None:
            return "❌ Message not found. Make sure the message ID is correct."

        if channel_id not in self.runtime.routing_table.all_input_channel_ids():
            return "❌ This message is not from a configured input channel."

        inbound = self.runtime.gateway.to_inbound_message(message)
        if not contains_link(inbound):
            return "❌ This message does not contain any links."

        report = await self.runtime.orchestrator.relay(inbound, channel_id)
        return format_report(report, "Retry complete", self.runtime.gateway.server_name)

    async def run_test(
        self,
        server_id: str,
        channel_id: str,
        message_content: Optional[str] = None,
        dry_run: bool = True,
        test_embed: bool = False,
    ) -> str:
        if not is_snowflake(server_id) or not is_snowflake(channel_id):
            return INVALID_ID_REPLY

        input_channel = ChannelID(channel_id)
        binding = self.runtime.routing_table.binding_for_input_channel(input_channel)
        if binding is None:
            return f"❌ Channel {channel_id} is not configured as an input channel."

        origin = await self.runtime.gateway.resolve_server(GuildID(server_id))
        if origin is None:
            return f"❌ Could not fetch source server {server_id}."

        message = build_test_message(
            origin,
            message_content,
            with_embed=test_embed,
            default_content=DEFAULT_TEST_CONTENT,
            avatar_url=self.runtime.settings.default_avatar_url,
        )
        describe_message(message, "MOCK TEST MESSAGE")
        if not contains_link(message):
            return "❌ Test message does not contain any links."

        header = (
            f"🧪 **Test Results** {_test_kind(test_embed)}\n"
            f"📤 **Source:** {origin.name} ({origin.id})\n"
            f"📝 **Channel:** <#{input_channel}> ({binding.category})\n"
            f"🔗 **Link Detection:** ✅ Passed\n\n"
        )

        server_namer = self.runtime.gateway.server_name
        if dry_run:
            plan = self.runtime.orchestrator.plan(message, input_channel)
            return clip_reply(
                header
                + format_plan(plan, server_namer)
                + "\n\n💡 Use `dry_run: False` to actually send test messages."
            )

        report = await self.runtime.orchestrator.relay(message, input_channel)
        return clip_reply(header + format_report(report, "Live test complete", server_namer))

    async def run_target_test(
        self,
        from_server_id: str,
        from_channel_id: str,
        target_channel_id: str,
        message_content: Optional[str] = None,
        test_embed: bool = False,
    ) -> str:
        if not all(is_snowflake(value) for value in (from_server_id, from_channel_id, target_channel_id)):
            return INVALID_ID_REPLY

        gateway = self.runtime.gateway
        origin = await gateway.resolve_server(GuildID(from_server_id))
        if origin is None:
            return f"❌ Could not fetch source server {from_server_id}. Bot may not be in that server."

        target_channel = await gateway.resolve_channel(ChannelID(target_channel_id))
        target_guild = getattr(target_channel, "guild", None)
        if target_channel is None or target_guild is None:
            return f"❌ Could not access target channel {target_channel_id}. Bot may not have access."

        notes = []
        binding = self.runtime.routing_table.binding_for_input_channel(ChannelID(from_channel_id))
        if binding is None:
            notes.append(
                f"⚠️ Channel {from_channel_id} is not configured as an input channel; sending without a role mention."
            )

        message = build_test_message(
            origin,
            message_content,
            with_embed=test_embed,
            default_content=DEFAULT_TARGET_TEST_CONTENT,
            avatar_url=self.runtime.settings.default_avatar_url,
        )
        describe_message(message, "TARGET TEST MESSAGE")
        if not contains_link(message):
            return "❌ Test message does not contain any links. Link detection failed."

        target_server_id = GuildID(target_guild.id)
        role = None
        if binding is not None:
            role = self.runtime.routing_table.role_for(target_server_id, binding.category)
            if role is None:
                notes.append(f"⚠️ No role configured in the target server for category `{binding.category}`.")

        target = target_for_channel(target_server_id, ChannelID(target_channel_id), role)
        result = await self.runtime.orchestrator.deliver_to_target(message, target)

        lines = [format_single_result(result, f"Target Test {_test_kind(test_embed)}")]
        lines.append(f"📤 **From:** {origin.name} ({origin.id})")
        lines.append(f"🎯 **Target:** <#{target_channel_id}> in {target_guild.name}")
        lines.extend(notes)
        return clip_reply("\n".join(lines))

    async def run_reload(self) -> str:
        try:
            channels, roles = await self.runtime.reload()
        except FatalStartupError as exc:
            logger.error("[RELAY COMMANDS] Reload failed: %s", exc)
            return f"❌ Reload failed, keeping the previous routing table: {exc}"
        return f"✅ Routing table reloaded: {channels} channel bindings, {roles} role bindings."

    # ------------------------------------------------------------------
    # Slash commands
    # ------------------------------------------------------------------

    async def _reply(self, ctx: discord.ApplicationContext, name: str, run, *args) -> None:
        await ctx.defer(ephemeral=True)
        try:
            reply = await run(*args)
        except Exception as exc:
            logger.exception("[RELAY COMMANDS] /%s failed: %s", name, exc)
            reply = f"❌ /{name} failed. Check the bot logs for details."
        await ctx.respond(reply, ephemeral=True)

    @commands.slash_command(name="retry", description="Retry relaying a message by its ID.")
    async def retry(
        self,
        ctx: discord.ApplicationContext,
        message_id: Option(str, "The ID of the message to relay again.", required=True),  # type: ignore
    ):
        await self._reply(ctx, "retry", self.run_retry, message_id, ctx.channel)

    @commands.slash_command(name="test", description="Simulate a relay from an input channel.")
    async def test(
        self,
        ctx: discord.ApplicationContext,
        server_id: Option(str, "Source server ID.", required=True),  # type: ignore
        channel_id: Option(str, "Input channel ID.", required=True),  # type: ignore
        message_content: Option(str, "Message text (must contain a link).", required=False, default=None),  # type: ignore
        dry_run: Option(bool, "Only show where the message would go.", required=False, default=True),  # type: ignore
        test_embed: Option(bool, "Send a sample embed instead of text.", required=False, default=False),  # type: ignore
    ):
        await self._reply(
            ctx,
            "test",
            self.run_test,
            server_id,
            channel_id,
            message_content,
            dry_run,
            test_embed,
        )

    @commands.slash_command(name="target-test", description="Send a test relay to one specific channel.")
    async def target_test(
        self,
        ctx: discord.ApplicationContext,
        from_server_id: Option(str, "Server the message should appear to come from.", required=True),  # type: ignore
        from_channel_id: Option(str, "Input channel the message should appear to come from.", required=True),  # type: ignore
        target_channel_id: Option(str, "Channel that receives the test message.", required=True),  # type: ignore
        message_content: Option(str, "Message text (must contain a link).", required=False, default=None),  # type: ignore
        test_embed: Option(bool, "Send a sample embed instead of text.", required=False, default=False),  # type: ignore
    ):
        await self._reply(
            ctx,
            "target-test",
            self.run_target_test,
            from_server_id,
            from_channel_id,
            target_channel_id,
            message_content,
            test_embed,
        )

    @commands.slash_command(name="relay-reload", description="Reload relay bindings from the database.")
    @discord.default_permissions(manage_guild=True)
    async def relay_reload(self, ctx: discord.ApplicationContext):
        await self._reply(ctx, "relay-reload", self.run_reload)


def setup(discord_bot_instance, runtime: RelayRuntime):
    """Register the RelayCommandsCog with the bot."""
    discord_bot_instance.add_cog(RelayCommandsCog(discord_bot_instance, runtime))
