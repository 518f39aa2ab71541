"""
Booking repository used by the conversation handlers.

Each call delegates exactly once to the slot ledger. Storage faults are
logged and turned into a not-granted result with reason "database_error",
so a broken database degrades a conversation instead of crashing it.
"""

from typing import Optional

from wa_gateway import metrics
from wa_gateway.errors import StorageError
from wa_gateway.logging_config import get_logger
from wa_gateway.models import Booking, ConfirmResult, FailureReason, HoldResult, Slot
from wa_gateway.slot_ledger import SlotLedger, build_slot_key

logger = get_logger(__name__)


class BookingRepository:
    """Domain-level hold / confirm / release."""

    def __init__(self, ledger: SlotLedger):
        self.ledger = ledger

    @staticmethod
    def slot_key(tenant_id: str, resource_id: str, start_iso: str) -> str:
        return build_slot_key(tenant_id, resource_id, start_iso)

    def now_ms(self) -> int:
        return self.ledger.now_ms()

    def hold(
        self,
        tenant_id: str,
        resource_id: str,
        start_iso: str,
        end_iso: str,
        hold_ms: int,
        holder: Optional[str] = None,
    ) -> HoldResult:
        try:
            result = self.ledger.acquire_or_refresh_hold(
                tenant_id, resource_id, start_iso, end_iso, hold_ms, holder=holder
            )
        except StorageError as e:
            logger.error("hold_failed", tenant_id=tenant_id, start_iso=start_iso, error=str(e))
            metrics.slot_holds_total.labels(outcome="error").inc()
            return HoldResult(
                granted=False,
                slot_key=self.slot_key(tenant_id, resource_id, start_iso),
                reason=FailureReason.DATABASE_ERROR,
            )

        metrics.slot_holds_total.labels(outcome="granted" if result.granted else "contended").inc()
        return result

    def confirm(self, tenant_id: str, resource_id: str, start_iso: str, wa_number: str) -> ConfirmResult:
        try:
            result = self.ledger.finalize_booking(tenant_id, resource_id, start_iso, wa_number)
        except StorageError as e:
            logger.error("confirm_failed", tenant_id=tenant_id, start_iso=start_iso, error=str(e))
            result = ConfirmResult(
                granted=False,
                slot_key=self.slot_key(tenant_id, resource_id, start_iso),
                reason=FailureReason.DATABASE_ERROR,
            )

        if result.granted:
            metrics.bookings_confirmed_total.inc()
        else:
            metrics.booking_confirm_failures_total.labels(reason=result.reason.value).inc()
        return result

    def release(self, slot_key: str, holder: Optional[str] = None) -> bool:
        try:
            return self.ledger.release(slot_key, holder=holder)
        except StorageError as e:
            logger.error("release_failed", slot_key=slot_key, error=str(e))
            return False

    def get_slot(self, slot_key: str) -> Optional[Slot]:
        """Live slot record, or None if missing or unreadable."""
        try:
            return self.ledger.get(slot_key)
        except StorageError as e:
            logger.error("get_slot_failed", slot_key=slot_key, error=str(e))
            return None

    def list_bookings(self, tenant_id: str, wa_number: Optional[str] = None) -> list[Booking]:
        return self.ledger.list_bookings(tenant_id, wa_number=wa_number)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self.ledger.get_booking(booking_id)
