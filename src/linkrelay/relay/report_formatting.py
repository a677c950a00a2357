"""
Text rendering of relay reports and dry-run plans for command replies.

Every reply that follows a relay lists the counts and each failing server
with its error, so partial failures are never hidden from the operator.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from linkrelay.datatypes.discord_datatypes import GuildID
from linkrelay.datatypes.relay_datatypes import DeliveryResult, RelayOutcome, RelayReport
from linkrelay.relay.orchestrator import RelayPlan

# Discord rejects interaction responses over 2000 characters
MAX_REPLY_LENGTH = 2000

ServerNamer = Callable[[GuildID], Optional[str]]


def _server_label(server_id: GuildID, server_namer: Optional[ServerNamer]) -> str:
    name = server_namer(server_id) if server_namer else None
    return f"{name} ({server_id})" if name else str(server_id)


def clip_reply(text: str) -> str:
    if len(text) <= MAX_REPLY_LENGTH:
        return text
    return text[: MAX_REPLY_LENGTH - 1] + "…"


def format_counts(report: RelayReport) -> str:
    return (
        f"**Total:** {report.total} | **Successful:** {report.successful} | "
        f"**Failed:** {report.failed}"
    )


def format_report(
    report: RelayReport,
    title: str,
    server_namer: Optional[ServerNamer] = None,
) -> str:
    """Render ``report`` as a Discord markdown reply.

    Args:
        report: Report returned by the orchestrator.
        title: First line of the reply (e.g. ``"Retry complete"``).
        server_namer: Optional lookup turning a server id into its name.

    Returns:
        The reply text, clipped to Discord's message limit.
    """
    if report.outcome is RelayOutcome.NOT_CONFIGURED:
        return f"❌ {title}: this channel is not configured as an input channel."

    if report.outcome is RelayOutcome.NO_TARGETS:
        return (
            f"⚠️ {title}: no target servers are configured for category "
            f"`{report.category}`.\n{format_counts(report)}"
        )

    icon = "✅" if report.failed == 0 else "⚠️"
    lines = [f"{icon} **{title}**"]
    if report.category:
        lines.append(f"**Category:** `{report.category}`")
    lines.append(format_counts(report))

    if report.failures:
        lines.append("")
        lines.append("**Failed servers:**")
        lines.extend(
            f"• {_server_label(failure.server_id, server_namer)}: {failure.error}"
            for failure in report.failures
        )

    return clip_reply("\n".join(lines))


def format_single_result(result: DeliveryResult, title: str) -> str:
    """Render the result of a one-off delivery (the target-test command)."""
    report = RelayReport.from_results([result])
    if result.success:
        return clip_reply(
            f"✅ **{title}**\nDelivered to <#{result.channel_id}> "
            f"(message ID: {result.delivered_message_id})\n{format_counts(report)}"
        )
    return clip_reply(
        f"❌ **{title}**\n{format_counts(report)}\n\n**Failed servers:**\n"
        f"• {result.target_server_id}: {result.error_message}"
    )


def format_plan(plan: RelayPlan, server_namer: Optional[ServerNamer] = None) -> str:
    """Render a dry-run plan: one line per destination with its channel and role."""
    if plan.outcome is RelayOutcome.NOT_CONFIGURED:
        return "❌ **Dry run**: this channel is not configured as an input channel."

    if plan.outcome is RelayOutcome.NO_TARGETS:
        return f"⚠️ **Dry run**: no target servers found for category `{plan.category}`."

    lines: List[str] = [
        f"🔍 **Dry run**: would relay to {len(plan.targets)} server(s) "
        f"for category `{plan.category}`",
        "",
    ]
    for planned in plan.targets:
        binding = planned.binding
        role = planned.role.role_id.mention if planned.role else "No role found"
        lines.append(
            f"• **{_server_label(binding.server_id, server_namer)}** → "
            f"<#{binding.output_channel_id}> (role: {role})"
        )

    missing_roles = sum(1 for planned in plan.targets if planned.role is None)
    if missing_roles:
        lines.append("")
        lines.append(f"⚠️ {missing_roles} target(s) would fail: no role configured")

    return clip_reply("\n".join(lines))
