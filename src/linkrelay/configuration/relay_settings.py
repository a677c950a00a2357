"""Typed accessors over the ``relay`` section of the app config."""

from typing import Any, Dict

from linkrelay.relay.delivery import DEFAULT_WEBHOOK_NAME, STRATEGY_DIRECT, STRATEGY_WEBHOOK
from linkrelay.relay.embed_transform import DEFAULT_EMBED_COLOR
from linkrelay.relay.retry import RetryPolicy
from linkrelay.util.logger import get_logger

logger = get_logger("relay_settings")

DEFAULT_AVATAR_URL = "https://cdn.discordapp.com/embed/avatars/0.png"
KNOWN_STRATEGIES = (STRATEGY_DIRECT, STRATEGY_WEBHOOK)


class RelaySettings:
    """Helper exposing typed accessors for the ``relay`` configuration section.

    Missing or malformed values fall back to defaults so the bot can still
    start with an empty configuration file.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return self.data

    @property
    def delivery_strategy(self) -> str:
        value = str(self.data.get("delivery_strategy") or STRATEGY_DIRECT).strip().lower()
        if value not in KNOWN_STRATEGIES:
            logger.warning("[APP CONFIGURATION] Unknown delivery_strategy %r; using %s", value, STRATEGY_DIRECT)
            return STRATEGY_DIRECT
        return value

    @property
    def webhook_name(self) -> str:
        return str(self.data.get("webhook_name") or DEFAULT_WEBHOOK_NAME)

    @property
    def embed_color(self) -> int:
        value = self.data.get("embed_color", DEFAULT_EMBED_COLOR)
        try:
            return int(value, 0) if isinstance(value, str) else int(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid embed_color %r; using default", value)
            return DEFAULT_EMBED_COLOR

    @property
    def default_avatar_url(self) -> str:
        return str(self.data.get("default_avatar_url") or DEFAULT_AVATAR_URL)

    @property
    def retry_policy(self) -> RetryPolicy:
        retry = self.data.get("retry", {})
        if not isinstance(retry, dict):
            retry = {}
        try:
            return RetryPolicy.from_milliseconds(
                max_attempts=int(retry.get("max_attempts", 3)),
                base_delay_ms=float(retry.get("base_delay_ms", 1000)),
                max_delay_ms=float(retry.get("max_delay_ms", 10000)),
                jitter_ms=float(retry.get("jitter_ms", 1000)),
            )
        except (TypeError, ValueError) as exc:
            logger.warning("[APP CONFIGURATION] Invalid retry settings (%s); using defaults", exc)
            return RetryPolicy()
