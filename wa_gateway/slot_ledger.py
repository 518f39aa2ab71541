"""
Slot ledger: the authoritative status of every schedulable slot.

Mutual exclusion comes entirely from the database. Each operation is a
single conditional UPDATE (plus a primary-key INSERT when the slot has never
been seen) inside one transaction, so two workers racing for the same slot
can never both win. No application-level locks are involved.

A held slot whose hold_until_ms is in the past counts as free: expiry is a
timestamp comparison inside the acquire predicate, not a state transition
somebody has to run.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from wa_gateway.db_models import DBBooking, DBSlot, BookingStatus, SlotStatus
from wa_gateway.errors import StorageError
from wa_gateway.logging_config import get_logger
from wa_gateway.models import Booking, ConfirmResult, FailureReason, HoldResult, Slot

logger = get_logger(__name__)

# Abandoned holds become purgeable this long after they expire.
GC_BUFFER_SECONDS = 60


def build_slot_key(tenant_id: str, resource_id: str, start_iso: str) -> str:
    """Deterministic slot identity: tenant#resource#startISO."""
    return f"{tenant_id}#{resource_id}#{start_iso}"


def new_booking_id() -> str:
    return f"bk_{uuid.uuid4().hex}"


_CLEARED_HOLD = {
    DBSlot.hold_until_ms: None,
    DBSlot.expires_at: None,
    DBSlot.held_by: None,
}


class SlotLedger:
    """Conditional-write access to the slots and bookings tables."""

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], float] = time.time):
        self._session_factory = session_factory
        self._clock = clock

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def acquire_or_refresh_hold(
        self,
        tenant_id: str,
        resource_id: str,
        start_iso: str,
        end_iso: str,
        hold_ms: int,
        holder: Optional[str] = None,
    ) -> HoldResult:
        """
        Put a hold on a slot if nobody else actively holds it.

        Granted when the slot has no record yet, is free, or is held with an
        expired hold. When ``holder`` is given, a hold already owned by that
        holder is refreshed as well. Booked slots are never acquirable.

        Returns granted=False on contention. Raises StorageError on database faults.
        """
        slot_key = build_slot_key(tenant_id, resource_id, start_iso)
        now_ms = self.now_ms()
        hold_until_ms = now_ms + hold_ms
        expires_at = hold_until_ms // 1000 + GC_BUFFER_SECONDS

        acquirable = [
            DBSlot.status == SlotStatus.FREE,
            and_(DBSlot.status == SlotStatus.HELD, DBSlot.hold_until_ms < now_ms),
        ]
        if holder:
            acquirable.append(and_(DBSlot.status == SlotStatus.HELD, DBSlot.held_by == holder))

        db = self._session_factory()
        try:
            updated = (
                db.query(DBSlot)
                .filter(DBSlot.slot_key == slot_key, or_(*acquirable))
                .update(
                    {
                        DBSlot.status: SlotStatus.HELD,
                        DBSlot.end_iso: end_iso,
                        DBSlot.hold_until_ms: hold_until_ms,
                        DBSlot.expires_at: expires_at,
                        DBSlot.held_by: holder,
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                # No row yet, or someone is holding it; the primary key decides.
                db.add(DBSlot(
                    slot_key=slot_key,
                    tenant_id=tenant_id,
                    resource_id=resource_id,
                    start_iso=start_iso,
                    end_iso=end_iso,
                    status=SlotStatus.HELD,
                    hold_until_ms=hold_until_ms,
                    expires_at=expires_at,
                    held_by=holder,
                ))
                db.flush()
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("slot_hold_contended", slot_key=slot_key, holder=holder)
            return HoldResult(granted=False, slot_key=slot_key, reason=FailureReason.SLOT_NOT_AVAILABLE)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("slot_hold_storage_error", slot_key=slot_key, error=str(e))
            raise StorageError(f"Failed to hold slot {slot_key}") from e
        finally:
            db.close()

        logger.info("slot_held", slot_key=slot_key, holder=holder, hold_until_ms=hold_until_ms)
        return HoldResult(granted=True, slot_key=slot_key)

    def finalize_booking(
        self,
        tenant_id: str,
        resource_id: str,
        start_iso: str,
        wa_number: str,
    ) -> ConfirmResult:
        """
        Turn an active hold into a booking.

        The slot moves held -> booked only if its hold is still running and
        belongs to ``wa_number`` (or to nobody). The booking row is written in
        the same transaction, so there is never a booking without a booked slot.
        Not retried here: a failed condition is reported and the caller decides.
        """
        slot_key = build_slot_key(tenant_id, resource_id, start_iso)
        now_ms = self.now_ms()
        booking_id = new_booking_id()

        db = self._session_factory()
        try:
            updated = (
                db.query(DBSlot)
                .filter(
                    DBSlot.slot_key == slot_key,
                    DBSlot.status == SlotStatus.HELD,
                    DBSlot.hold_until_ms >= now_ms,
                    or_(DBSlot.held_by.is_(None), DBSlot.held_by == wa_number),
                )
                .update({DBSlot.status: SlotStatus.BOOKED, **_CLEARED_HOLD}, synchronize_session=False)
            )
            if updated != 1:
                db.rollback()
                logger.info("slot_confirm_rejected", slot_key=slot_key, wa_number=wa_number)
                return ConfirmResult(granted=False, slot_key=slot_key, reason=FailureReason.HOLD_EXPIRED)

            slot = db.get(DBSlot, slot_key)
            created_at = datetime.fromtimestamp(now_ms / 1000, timezone.utc)
            db.add(DBBooking(
                booking_id=booking_id,
                tenant_id=tenant_id,
                wa_number=wa_number,
                resource_id=resource_id,
                slot_key=slot_key,
                start_iso=start_iso,
                end_iso=slot.end_iso,
                status=BookingStatus.CONFIRMED,
                created_at=created_at,
                audit=[{"action": "created", "timestamp": created_at.isoformat(), "by": wa_number}],
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("slot_confirm_storage_error", slot_key=slot_key, error=str(e))
            raise StorageError(f"Failed to confirm slot {slot_key}") from e
        finally:
            db.close()

        logger.info("slot_confirmed", slot_key=slot_key, booking_id=booking_id)
        return ConfirmResult(granted=True, slot_key=slot_key, booking_id=booking_id)

    def release(self, slot_key: str, holder: Optional[str] = None) -> bool:
        """
        Reset a slot to free and clear its hold fields.

        Booked slots are left alone. With ``holder`` only that holder's hold is
        released. Returns True if a row was reset.
        """
        filters = [DBSlot.slot_key == slot_key, DBSlot.status != SlotStatus.BOOKED]
        if holder:
            filters.append(DBSlot.held_by == holder)

        db = self._session_factory()
        try:
            updated = (
                db.query(DBSlot)
                .filter(*filters)
                .update({DBSlot.status: SlotStatus.FREE, **_CLEARED_HOLD}, synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("slot_release_storage_error", slot_key=slot_key, error=str(e))
            raise StorageError(f"Failed to release slot {slot_key}") from e
        finally:
            db.close()

        logger.info("slot_released", slot_key=slot_key, released=bool(updated))
        return updated == 1

    def get(self, slot_key: str) -> Optional[Slot]:
        db = self._session_factory()
        try:
            row = db.get(DBSlot, slot_key)
            return Slot.model_validate(row, from_attributes=True) if row else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read slot {slot_key}") from e
        finally:
            db.close()

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        db = self._session_factory()
        try:
            row = db.get(DBBooking, booking_id)
            return Booking.model_validate(row, from_attributes=True) if row else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read booking {booking_id}") from e
        finally:
            db.close()

    def list_bookings(self, tenant_id: str, wa_number: Optional[str] = None) -> list[Booking]:
        db = self._session_factory()
        try:
            query = db.query(DBBooking).filter(DBBooking.tenant_id == tenant_id)
            if wa_number:
                query = query.filter(DBBooking.wa_number == wa_number)
            rows = query.order_by(DBBooking.start_iso).all()
            return [Booking.model_validate(row, from_attributes=True) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list bookings for {tenant_id}") from e
        finally:
            db.close()

    def purge_expired(self) -> int:
        """
        Delete held rows whose GC marker has passed.

        Storage hygiene only; acquisition never depends on it. A concurrent
        re-hold rewrites expires_at, so the delete cannot remove a live hold.
        """
        now_s = int(self._clock())
        db = self._session_factory()
        try:
            deleted = (
                db.query(DBSlot)
                .filter(DBSlot.status == SlotStatus.HELD, DBSlot.expires_at < now_s)
                .delete(synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError("Failed to purge expired holds") from e
        finally:
            db.close()

        if deleted:
            logger.info("expired_holds_purged", count=deleted)
        return deleted
