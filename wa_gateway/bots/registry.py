"""Bot interface and the key -> bot lookup table."""

from typing import Dict

from wa_gateway.logging_config import get_logger

logger = get_logger(__name__)


class Bot:
    """A conversation handler. Subclasses set ``key`` and implement handle()."""

    key: str = ""

    def handle(self, ctx) -> None:
        """Process one inbound message using only the context's state and send helpers."""
        raise NotImplementedError


class BotRegistry:
    """Maps bot keys to handlers. Unknown keys resolve to the default bot."""

    def __init__(self, default_key: str):
        self.default_key = default_key
        self._bots: Dict[str, Bot] = {}

    def register(self, bot: Bot) -> Bot:
        if not bot.key:
            raise ValueError(f"{type(bot).__name__} has no key")
        self._bots[bot.key] = bot
        return bot

    def keys(self) -> list[str]:
        return list(self._bots)

    def __contains__(self, key: str) -> bool:
        return key in self._bots

    def get(self, key: str) -> Bot:
        bot = self._bots.get(key)
        if bot is None:
            if key:
                logger.warning("unknown_bot_key", bot_key=key, fallback=self.default_key)
            bot = self._bots[self.default_key]
        return bot
