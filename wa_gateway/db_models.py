"""
SQLAlchemy database models.

- slots: one row per schedulable slot, keyed by tenant#resource#startISO
- bookings: one row per confirmed reservation
- conversation_states: one row per tenant:user conversation
"""

from sqlalchemy import Column, BigInteger, String, DateTime, JSON, Float, Enum as SQLEnum
from datetime import datetime, timezone
import enum

from wa_gateway.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SlotStatus(str, enum.Enum):
    """Slot status enum."""
    FREE = "free"
    HELD = "held"
    BOOKED = "booked"


class BookingStatus(str, enum.Enum):
    """Booking status enum."""
    CONFIRMED = "confirmed"
    CANCELED = "canceled"


class DBSlot(Base):
    """Slot ledger row.

    hold_until_ms and expires_at are only set while the slot is held.
    expires_at (epoch seconds) marks the row for hygiene purging once an
    abandoned hold has been stale for a while.
    """
    __tablename__ = "slots"

    slot_key = Column(String(255), primary_key=True)
    tenant_id = Column(String(100), nullable=False, index=True)
    resource_id = Column(String(100), nullable=False)
    start_iso = Column(String(40), nullable=False)
    end_iso = Column(String(40), nullable=False)
    status = Column(SQLEnum(SlotStatus), nullable=False, default=SlotStatus.FREE)

    hold_until_ms = Column(BigInteger, nullable=True)
    held_by = Column(String(100), nullable=True)
    expires_at = Column(BigInteger, nullable=True, index=True)

    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class DBBooking(Base):
    """Confirmed booking, created together with the slot's transition to booked."""
    __tablename__ = "bookings"

    booking_id = Column(String(64), primary_key=True)
    tenant_id = Column(String(100), nullable=False, index=True)
    wa_number = Column(String(50), nullable=False, index=True)
    resource_id = Column(String(100), nullable=False)
    slot_key = Column(String(255), nullable=False, index=True)
    start_iso = Column(String(40), nullable=False)
    end_iso = Column(String(40), nullable=False)
    status = Column(SQLEnum(BookingStatus), nullable=False, default=BookingStatus.CONFIRMED)

    # Append-only list of {"action", "timestamp", "by"}
    audit = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=_utcnow)


class DBConversationState(Base):
    """Persisted FSM state for one tenant:user pair."""
    __tablename__ = "conversation_states"

    state_key = Column(String(255), primary_key=True)
    bot_key = Column(String(64), nullable=False)
    fsm = Column(String(64), nullable=True)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(Float, nullable=False)
