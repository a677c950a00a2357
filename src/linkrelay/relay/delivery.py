"""
Delivery of rendered relay payloads to one destination channel.

Two strategies share the :class:`DeliveryClient` contract:

- :class:`DirectDeliveryClient` posts as the bot itself.
- :class:`WebhookDeliveryClient` posts through a per-channel webhook that
  impersonates the origin server (name and icon). If the webhook cannot be
  obtained it falls back to direct send.

Every outbound call (send, webhook lookup, webhook creation, webhook
revalidation) goes through :func:`retry_with_backoff`. Sends are not
idempotent: when Discord accepts a message but the acknowledgement is lost,
the retry posts it a second time. There are no dedup tokens to prevent that.

The webhook cache is shared by concurrent relays without a lock. Two relays
hitting a channel for the first time at the same moment can both create a
webhook; later lookups find one of them by name and the cache converges, so
the race only costs an extra webhook in that channel.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import discord

from linkrelay.datatypes.discord_datatypes import ChannelID
from linkrelay.datatypes.message_datatypes import Attachment, Embed
from linkrelay.relay.errors import DeliveryError, TransientDeliveryError
from linkrelay.relay.retry import DEFAULT_RETRY_POLICY, RetryPolicy, retry_with_backoff
from linkrelay.util.logger import get_logger

logger = get_logger("delivery")

MAX_CONTENT_LENGTH = 2000
MAX_EMBEDS_PER_MESSAGE = 10
MAX_WEBHOOK_USERNAME_LENGTH = 80
DEFAULT_WEBHOOK_NAME = "Link Relay"

STRATEGY_DIRECT = "direct"
STRATEGY_WEBHOOK = "webhook"

RELAY_ALLOWED_MENTIONS = discord.AllowedMentions(everyone=False, users=False, roles=True)


def clip_text(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


@dataclass(frozen=True, slots=True)
class DeliveryPayload:
    """A fully rendered message for one destination.

    Attributes:
        content: Text content, already carrying the role mention and header.
        embeds: Embeds to attach, in order.
        attachments: Source attachments, relayed by URL.
        username: Display name used by webhook delivery.
        avatar_url: Avatar used by webhook delivery.
    """

    content: str
    embeds: tuple[Embed, ...] = ()
    attachments: tuple[Attachment, ...] = ()
    username: Optional[str] = None
    avatar_url: Optional[str] = None

    def render_content(self) -> str:
        """Content with attachment URLs appended, clipped to Discord's limit.

        Only the text is shortened; attachment URL lines keep their room.
        """
        urls = "\n".join(attachment.url for attachment in self.attachments)
        if not urls:
            return clip_text(self.content, MAX_CONTENT_LENGTH)
        if not self.content:
            return clip_text(urls, MAX_CONTENT_LENGTH)

        budget = MAX_CONTENT_LENGTH - len(urls) - 1
        if budget <= 0:
            return clip_text(urls, MAX_CONTENT_LENGTH)
        return f"{clip_text(self.content, budget)}\n{urls}"

    def render_embeds(self) -> list[discord.Embed]:
        return [embed.to_discord() for embed in self.embeds[:MAX_EMBEDS_PER_MESSAGE]]


def is_transient(exc: BaseException) -> bool:
    """Whether a failed Discord call is worth retrying."""
    if isinstance(exc, (discord.Forbidden, discord.NotFound)):
        return False
    if isinstance(exc, discord.HTTPException):
        return exc.status == 429 or exc.status >= 500
    return isinstance(exc, OSError)


def delivery_error(exc: Exception, operation: str) -> DeliveryError:
    """Wrap a failed send; transient failures become :class:`TransientDeliveryError`."""
    if is_transient(exc):
        return TransientDeliveryError(str(exc), operation=operation)
    return DeliveryError(str(exc), retriable=False, operation=operation)


def channel_label(channel: discord.abc.Messageable) -> str:
    name = getattr(channel, "name", None)
    channel_id = getattr(channel, "id", "?")
    return f"#{name} ({channel_id})" if name else str(channel_id)


class DeliveryClient(Protocol):
    """Sends one payload to one channel and returns the delivered message id."""

    strategy: str

    async def deliver(self, channel: discord.abc.Messageable, payload: DeliveryPayload) -> str:
        ...


class DirectDeliveryClient:
    """Send the payload to the channel as the bot's own identity."""

    strategy = STRATEGY_DIRECT

    def __init__(self, policy: RetryPolicy = DEFAULT_RETRY_POLICY) -> None:
        self.policy = policy

    async def deliver(self, channel: discord.abc.Messageable, payload: DeliveryPayload) -> str:
        operation = f"Sending message to {channel_label(channel)}"
        content = payload.render_content()
        embeds = payload.render_embeds()

        try:
            sent = await retry_with_backoff(
                lambda: channel.send(
                    content=content or None,
                    embeds=embeds,
                    allowed_mentions=RELAY_ALLOWED_MENTIONS,
                ),
                operation,
                self.policy,
                should_retry=is_transient,
            )
        except Exception as exc:
            raise delivery_error(exc, operation) from exc

        return str(sent.id)


@dataclass
class WebhookCache:
    """Webhooks keyed by destination channel id."""

    entries: Dict[ChannelID, discord.Webhook] = field(default_factory=dict)

    def get(self, channel_id: ChannelID) -> Optional[discord.Webhook]:
        return self.entries.get(ChannelID(channel_id))

    def put(self, channel_id: ChannelID, webhook: discord.Webhook) -> None:
        self.entries[ChannelID(channel_id)] = webhook

    def evict(self, channel_id: ChannelID) -> Optional[discord.Webhook]:
        return self.entries.pop(ChannelID(channel_id), None)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, channel_id: object) -> bool:
        try:
            return ChannelID(channel_id) in self.entries  # type: ignore[arg-type]
        except ValueError:
            return False


class WebhookDeliveryClient:
    """Send through a per-channel webhook impersonating the origin server."""

    strategy = STRATEGY_WEBHOOK

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        *,
        webhook_name: str = DEFAULT_WEBHOOK_NAME,
        cache: Optional[WebhookCache] = None,
        fallback: Optional[DirectDeliveryClient] = None,
    ) -> None:
        self.policy = policy
        self.webhook_name = webhook_name
        self.cache = cache if cache is not None else WebhookCache()
        self.fallback = fallback if fallback is not None else DirectDeliveryClient(policy)

    async def validate_or_evict(self, channel_id: ChannelID) -> Optional[discord.Webhook]:
        """Return the cached webhook if it still exists remotely, evicting it otherwise."""
        webhook = self.cache.get(channel_id)
        if webhook is None:
            return None

        try:
            await retry_with_backoff(
                lambda: webhook.fetch(),
                f"Revalidating webhook {webhook.id} for channel {channel_id}",
                self.policy,
                should_retry=is_transient,
            )
        except discord.NotFound:
            logger.info("[DELIVERY] Cached webhook for channel %s no longer exists; evicting", channel_id)
            self.cache.evict(channel_id)
            return None
        return webhook

    async def _find_or_create(self, channel: discord.TextChannel) -> discord.Webhook:
        label = channel_label(channel)
        existing = await retry_with_backoff(
            lambda: channel.webhooks(),
            f"Fetching webhooks of {label}",
            self.policy,
            should_retry=is_transient,
        )
        for webhook in existing:
            if webhook.name == self.webhook_name and webhook.token:
                return webhook

        logger.info("[DELIVERY] Creating relay webhook in %s", label)
        return await retry_with_backoff(
            lambda: channel.create_webhook(name=self.webhook_name, reason="Link relay delivery"),
            f"Creating webhook in {label}",
            self.policy,
            should_retry=is_transient,
        )

    async def acquire_webhook(self, channel: discord.TextChannel) -> discord.Webhook:
        """Return a live webhook for ``channel``, from cache or freshly found/created."""
        channel_id = ChannelID(channel.id)
        webhook = await self.validate_or_evict(channel_id)
        if webhook is not None:
            return webhook

        webhook = await self._find_or_create(channel)
        self.cache.put(channel_id, webhook)
        return webhook

    async def deliver(self, channel: discord.abc.Messageable, payload: DeliveryPayload) -> str:
        try:
            webhook = await self.acquire_webhook(channel)  # type: ignore[arg-type]
        except Exception as exc:
            logger.warning(
                "[DELIVERY] Webhook unavailable for %s (%s); falling back to direct send",
                channel_label(channel),
                exc,
            )
            return await self.fallback.deliver(channel, payload)

        operation = f"Sending webhook message to {channel_label(channel)}"
        content = payload.render_content()
        embeds = payload.render_embeds()
        username = (payload.username or self.webhook_name)[:MAX_WEBHOOK_USERNAME_LENGTH]

        try:
            sent = await retry_with_backoff(
                lambda: webhook.send(
                    content=content or None,
                    embeds=embeds,
                    username=username,
                    avatar_url=payload.avatar_url,
                    allowed_mentions=RELAY_ALLOWED_MENTIONS,
                    wait=True,
                ),
                operation,
                self.policy,
                should_retry=is_transient,
            )
        except Exception as exc:
            if isinstance(exc, discord.NotFound):
                self.cache.evict(ChannelID(channel.id))  # type: ignore[attr-defined]
            raise delivery_error(exc, operation) from exc

        return str(sent.id)


def build_delivery_client(
    strategy: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    *,
    webhook_name: str = DEFAULT_WEBHOOK_NAME,
) -> DeliveryClient:
    """Instantiate the delivery client for a configured strategy name."""
    if strategy == STRATEGY_WEBHOOK:
        return WebhookDeliveryClient(policy, webhook_name=webhook_name)
    if strategy != STRATEGY_DIRECT:
        logger.warning("[DELIVERY] Unknown delivery strategy %r; using direct send", strategy)
    return DirectDeliveryClient(policy)
