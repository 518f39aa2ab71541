"""
Bot runtime: turns an inbound message into a BotContext and hands it to the
active bot.

Flow per message:
1. The global "MENÚ" command resets the conversation to the menu bot.
2. The persisted state picks the active bot (default bot when there is none).
3. The bot runs with a context exposing state, set_state, clear_state and
   send_text. Bots never touch the state store directly.

Messages for the same tenant:user key are processed one at a time within a
process. Two workers in different processes can still interleave on the same
key; the state store is last-write-wins in that case.
"""

from __future__ import annotations

import threading
import unicodedata
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from wa_gateway import metrics
from wa_gateway.bots.menu import MenuBot
from wa_gateway.bots.registry import BotRegistry
from wa_gateway.logging_config import conversation_context, get_logger
from wa_gateway.models import ConversationState, InboundMessage, SendMessageResult
from wa_gateway.state_store import StateStore, build_state_key

logger = get_logger(__name__)

RESET_COMMANDS = {"menú", "menu"}

_UNSET: Any = object()


def is_reset_command(text: Optional[str]) -> bool:
    normalized = unicodedata.normalize("NFC", (text or "").strip()).casefold()
    return normalized in RESET_COMMANDS


class KeyedLocks:
    """One lock per key, dropped once nobody is waiting on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, list] = {}  # key -> [lock, refcount]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)


class BotContext:
    """Everything a bot may use while handling one message."""

    def __init__(
        self,
        tenant_id: str,
        instance_name: str,
        sender: str,
        text: str,
        state_key: str,
        state: Optional[ConversationState],
        store: StateStore,
        send: Callable[[str, str], SendMessageResult],
        default_bot_key: str,
    ):
        self.tenant_id = tenant_id
        self.instance_name = instance_name
        self.sender = sender
        self.text = text
        self.state_key = state_key
        self.state = state
        self._store = store
        self._send = send
        self._default_bot_key = default_bot_key

    @property
    def fsm(self) -> Optional[str]:
        return self.state.fsm if self.state else None

    @property
    def data(self) -> dict:
        return self.state.data if self.state else {}

    def set_state(self, bot_key: str = _UNSET, fsm: Optional[str] = _UNSET,
                  data: Optional[dict] = _UNSET) -> ConversationState:
        """
        Merge the given fields onto the current state and persist it.

        Fields left out keep their current value; the active bot only changes
        when bot_key is passed. ctx.state reflects the saved state afterwards.
        """
        base = self.state or ConversationState(bot_key=self._default_bot_key)
        changes = {}
        if bot_key is not _UNSET:
            changes["bot_key"] = bot_key
        if fsm is not _UNSET:
            changes["fsm"] = fsm
        if data is not _UNSET:
            changes["data"] = dict(data or {})

        self.state = self._store.set(self.state_key, base.model_copy(update=changes, deep=True))
        return self.state

    def clear_state(self) -> None:
        self._store.clear(self.state_key)
        self.state = None

    def send_text(self, to: str, body: str) -> SendMessageResult:
        return self._send(to, body)

    def reply(self, body: str) -> SendMessageResult:
        """Send ``body`` back to whoever wrote this message."""
        return self._send(self.sender, body)


class BotRuntime:
    """Stateless message pipeline; all conversation state lives in the store."""

    def __init__(self, store: StateStore, registry: BotRegistry, messenger, default_bot_key: str,
                 menu_bot_key: str = MenuBot.key):
        self.store = store
        self.registry = registry
        self.messenger = messenger
        self.default_bot_key = default_bot_key
        # MENÚ always lands here, whatever the default bot for new conversations is.
        self.menu_bot_key = menu_bot_key
        self._locks = KeyedLocks()

    def _sender_for(self, instance_name: str) -> Callable[[str, str], SendMessageResult]:
        def send(to: str, body: str) -> SendMessageResult:
            result = self.messenger.send_text(instance_name, to, body)
            metrics.outbound_messages_total.labels(status="sent" if result.success else "failed").inc()
            if not result.success:
                logger.warning("reply_not_delivered", instance=instance_name, to=to, error=result.error)
            return result
        return send

    def handle_inbound(self, message: InboundMessage) -> ConversationState:
        """Run one inbound message through the active bot. Returns the resulting state."""
        state_key = build_state_key(message.tenant_id, message.sender)

        log_context = conversation_context(message.tenant_id, message.sender, message.instance_name)
        with self._locks.hold(state_key), log_context:
            if is_reset_command(message.text):
                self.store.set(state_key, ConversationState(bot_key=self.menu_bot_key, fsm=None, data={}))
                logger.info("conversation_reset", state_key=state_key)

            state = self.store.get(state_key)
            bot_key = state.bot_key if state else self.default_bot_key
            bot = self.registry.get(bot_key)

            ctx = BotContext(
                tenant_id=message.tenant_id,
                instance_name=message.instance_name,
                sender=message.sender,
                text=message.text or "",
                state_key=state_key,
                state=state,
                store=self.store,
                send=self._sender_for(message.instance_name),
                default_bot_key=self.default_bot_key,
            )

            logger.info(
                "bot_dispatch",
                bot=bot.key,
                state_key=state_key,
                fsm=ctx.fsm,
                instance=message.instance_name,
            )
            metrics.inbound_messages_total.labels(bot=bot.key).inc()
            bot.handle(ctx)
            return ctx.state
