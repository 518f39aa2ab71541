#!/usr/bin/env python3
"""Interactive local chat with the bots, no WhatsApp bridge needed.

Messages go straight through the bot runtime; replies are printed instead of sent.
"""

from __future__ import annotations

import argparse
import sys
import time
import uuid

from wa_gateway.models import InboundMessage, SendMessageResult
from wa_gateway.wiring import build_services


class ConsoleMessenger:
    """Prints outbound messages instead of delivering them."""

    provider_name = "console"

    def send_text(self, instance_name: str, to: str, body: str) -> SendMessageResult:
        print(f"bot> {body}")
        return SendMessageResult(message_id=f"console_{uuid.uuid4().hex[:8]}", success=True, timestamp=time.time())


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Interactive text-only chat with the WhatsApp bots")
    parser.add_argument("--database-url", default="sqlite:///./text_chat.db", help="Slot/booking database (default: sqlite:///./text_chat.db)")
    parser.add_argument("--tenant", default="local", help="Tenant id (default: local)")
    parser.add_argument("--sender", default="5215500000000", help="Sender phone number (default: 5215500000000)")
    args = parser.parse_args(argv)

    services = build_services(database_url=args.database_url, state_backend="memory", messenger=ConsoleMessenger())

    print("Text chat started. Type /exit to quit, MENÚ to go back to the menu.")

    while True:
        try:
            user_text = input("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if user_text.lower() in {"/exit", "/quit", "exit", "quit"}:
            break

        message = InboundMessage(
            tenant_id=args.tenant,
            instance_name="console",
            sender=args.sender,
            text=user_text,
        )
        try:
            state = services.runtime.handle_inbound(message)
        except Exception as e:
            print(f"error> {e}")
            continue

        if state is not None:
            print(f"(bot: {state.bot_key} fsm: {state.fsm})")

    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
