"""
Reservation bot.

States:
    WELCOME   -> hold the two quick options and offer them      -> SLOT_HELD
    SLOT_HELD -> user picks A/B; re-hold if needed, then confirm -> CONFIRMED
                 (hold lost at any step: "expired" reply         -> WELCOME)
    CONFIRMED -> repeat the confirmation until the user sends MENÚ

All slot writes go through the booking repository's atomic hold/confirm/release;
the live record is only read to decide whether a fresh hold is needed.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from wa_gateway.booking_repo import BookingRepository
from wa_gateway.bots.registry import Bot
from wa_gateway.logging_config import get_logger

logger = get_logger(__name__)

SLOT_DURATION = timedelta(minutes=60)

EXPIRED_TEXT = "⏳ Expiró el hold, intenta otra vez."
INTERNAL_ERROR_TEXT = "❌ Error interno. Responde *MENÚ* para volver al inicio."


@dataclass(frozen=True)
class QuickOption:
    letter: str
    display: str
    day_offset: int
    hour: int


QUICK_OPTIONS = (
    QuickOption("A", "Hoy 16:00", 0, 16),
    QuickOption("B", "Mañana 10:00", 1, 10),
)


def to_iso(dt: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a Z suffix, e.g. 2025-01-01T16:00:00.000Z."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ReservationsBot(Bot):
    key = "reservas-basic"

    WELCOME = "WELCOME"
    SLOT_HELD = "SLOT_HELD"
    CONFIRMED = "CONFIRMED"

    def __init__(
        self,
        bookings: BookingRepository,
        resource_id: str = "default",
        hold_ms: int = 180000,
        tz: str = "UTC",
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.bookings = bookings
        self.resource_id = resource_id
        self.hold_ms = hold_ms
        self.tz = timezone.utc if tz.upper() == "UTC" else ZoneInfo(tz)
        self._now = now or (lambda: datetime.now(self.tz))

    def handle(self, ctx) -> None:
        fsm = ctx.fsm or self.WELCOME

        if fsm == self.SLOT_HELD:
            self._handle_choice(ctx)
        elif fsm == self.CONFIRMED:
            self._handle_confirmed(ctx)
        else:
            self._handle_welcome(ctx)

    def quick_slots(self) -> list[dict]:
        """The two canonical options (today 16:00, tomorrow 10:00) in the business timezone."""
        today = self._now().astimezone(self.tz).date()
        slots = []
        for option in QUICK_OPTIONS:
            start = datetime.combine(today + timedelta(days=option.day_offset), time(option.hour), tzinfo=self.tz)
            slots.append({
                "letter": option.letter,
                "display": option.display,
                "start_iso": to_iso(start),
                "end_iso": to_iso(start + SLOT_DURATION),
            })
        return slots

    def _hold(self, ctx, start_iso: str, end_iso: str):
        return self.bookings.hold(
            ctx.tenant_id, self.resource_id, start_iso, end_iso, self.hold_ms, holder=ctx.sender
        )

    def _handle_welcome(self, ctx) -> None:
        slots = self.quick_slots()

        # Independent holds; issue them together.
        with ThreadPoolExecutor(max_workers=len(slots)) as pool:
            futures = [pool.submit(self._hold, ctx, s["start_iso"], s["end_iso"]) for s in slots]
            results = [f.result() for f in futures]

        offered = {}
        lines = ["🗓️ *Reservas*", "Opciones rápidas:"]
        for slot, result in zip(slots, results):
            suffix = "" if result.granted else " (no disponible)"
            lines.append(f"{slot['letter']}) {slot['display']}{suffix}")
            offered[slot["letter"]] = {
                "available": result.granted,
                "slot_key": result.slot_key,
                "start_iso": slot["start_iso"],
                "end_iso": slot["end_iso"],
                "display": slot["display"],
            }
        letters = " o ".join(f"*{letter}*" for letter in offered)
        lines.append(f"Responde {letters} para tomar el horario.")

        ctx.reply("\n".join(lines))
        ctx.set_state(fsm=self.SLOT_HELD, data={"slots": offered})
        logger.info(
            "slots_offered",
            state_key=ctx.state_key,
            available={letter: opt["available"] for letter, opt in offered.items()},
        )

    def _handle_choice(self, ctx) -> None:
        offered = ctx.data.get("slots") or {}
        choice = (ctx.text or "").strip().upper()

        if choice not in offered:
            options = " o ".join(f"*{letter}* ({opt['display']})" for letter, opt in offered.items())
            ctx.reply(f"❓ Opción inválida. Responde {options}." if options else INTERNAL_ERROR_TEXT)
            return

        selected = offered[choice]
        if not selected.get("available"):
            ctx.reply(f"❌ {selected['display']} no está disponible. Elige otra opción.")
            return

        live = self.bookings.get_slot(selected["slot_key"])
        still_ours = (
            live is not None
            and live.is_held_at(self.bookings.now_ms())
            and live.held_by in (None, ctx.sender)
        )
        if not still_ours:
            rehold = self._hold(ctx, selected["start_iso"], selected["end_iso"])
            if not rehold.granted:
                logger.info("rehold_failed", state_key=ctx.state_key, slot_key=selected["slot_key"],
                            reason=rehold.reason)
                self._restart(ctx)
                return

        confirm = self.bookings.confirm(ctx.tenant_id, self.resource_id, selected["start_iso"], ctx.sender)
        if not confirm.granted:
            logger.info("confirm_lost", state_key=ctx.state_key, slot_key=selected["slot_key"],
                        reason=confirm.reason)
            self._restart(ctx)
            return

        # Give back the options the user did not take.
        for letter, opt in offered.items():
            if letter != choice and opt.get("available"):
                self.bookings.release(opt["slot_key"], holder=ctx.sender)

        ctx.set_state(fsm=self.CONFIRMED, data={
            **ctx.data,
            "booking_id": confirm.booking_id,
            "confirmed_slot": selected["display"],
        })
        ctx.reply(
            f"✅ *Reserva confirmada* para {selected['display']}. "
            f"Te enviaremos un recordatorio.\n\n"
            f"ID: {confirm.booking_id}"
        )

    def _handle_confirmed(self, ctx) -> None:
        confirmed_slot = ctx.data.get("confirmed_slot") or "tu horario"
        ctx.reply(
            f"✅ Tu reserva para {confirmed_slot} ya está confirmada. "
            f"Responde *MENÚ* para volver al inicio."
        )

    def _restart(self, ctx) -> None:
        ctx.reply(EXPIRED_TEXT)
        ctx.set_state(fsm=self.WELCOME, data={})
