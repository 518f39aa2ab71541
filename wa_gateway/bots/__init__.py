"""Conversation bots and the runtime that dispatches to them.

- runtime.py: BotContext / BotRuntime (state threading, MENÚ reset)
- registry.py: Bot interface and key lookup
- menu.py, reservations.py, simple_ai.py: the bots
"""

from .registry import Bot, BotRegistry
from .runtime import BotContext, BotRuntime, is_reset_command
from .menu import MenuBot
from .reservations import ReservationsBot
from .simple_ai import SimpleAIBot


def build_registry(bookings, completion, **reservation_options) -> BotRegistry:
    """Registry with the menu, reservation and AI bots. Unknown keys resolve to the menu."""
    registry = BotRegistry(default_key=MenuBot.key)
    registry.register(MenuBot(registry))
    registry.register(ReservationsBot(bookings, **reservation_options))
    registry.register(SimpleAIBot(completion))
    return registry


__all__ = [
    'Bot', 'BotRegistry', 'BotContext', 'BotRuntime', 'is_reset_command',
    'MenuBot', 'ReservationsBot', 'SimpleAIBot', 'build_registry',
]
