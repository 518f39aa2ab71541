"""Data models for the WhatsApp gateway."""

import enum
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from wa_gateway.db_models import SlotStatus, BookingStatus


class FailureReason(str, enum.Enum):
    """Why a hold or confirm was not granted."""
    SLOT_NOT_AVAILABLE = "slot_not_available"
    HOLD_EXPIRED = "hold_expired_or_not_held"
    DATABASE_ERROR = "database_error"


class Slot(BaseModel):
    """A schedulable time interval as stored in the ledger."""
    slot_key: str
    tenant_id: str
    resource_id: str
    start_iso: str
    end_iso: str
    status: SlotStatus
    hold_until_ms: Optional[int] = None
    held_by: Optional[str] = None
    expires_at: Optional[int] = None

    def is_held_at(self, now_ms: int) -> bool:
        """True while an unexpired hold is on the slot."""
        return (
            self.status == SlotStatus.HELD
            and self.hold_until_ms is not None
            and self.hold_until_ms >= now_ms
        )


class AuditEntry(BaseModel):
    action: str
    timestamp: str
    by: str


class Booking(BaseModel):
    """A confirmed reservation."""
    booking_id: str
    tenant_id: str
    wa_number: str
    resource_id: str
    slot_key: str
    start_iso: str
    end_iso: str
    status: BookingStatus
    created_at: Optional[datetime] = None
    audit: list[AuditEntry] = Field(default_factory=list)


class HoldResult(BaseModel):
    """Outcome of a hold attempt. Contention is granted=False, never an exception."""
    granted: bool
    slot_key: str
    reason: Optional[FailureReason] = None


class ConfirmResult(BaseModel):
    """Outcome of finalizing a held slot into a booking."""
    granted: bool
    slot_key: str
    booking_id: Optional[str] = None
    reason: Optional[FailureReason] = None


class ConversationState(BaseModel):
    """FSM state of one tenant:user conversation."""
    bot_key: str
    fsm: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
    updated_at: Optional[float] = None  # epoch seconds, stamped by the store


class InboundMessage(BaseModel):
    """A text message received from an end user, normalized from the bridge payload."""
    tenant_id: str
    instance_name: str
    sender: str
    text: str = ""
    message_id: Optional[str] = None
    push_name: Optional[str] = None


class SendMessageResult(BaseModel):
    """Delivery result reported by the messaging bridge."""
    message_id: str
    success: bool
    timestamp: float
    error: Optional[str] = None


class ConnectionStatus(BaseModel):
    status: str  # "connected" | "disconnected" | "connecting" | "error"
    details: Optional[str] = None
    last_seen: Optional[float] = None


class CreateInstanceResult(BaseModel):
    instance_id: str
    status: str  # "creating" | "waiting_qr" | "connected" | "disconnected" | "error"
    qr_code: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class CreateInstanceRequest(BaseModel):
    """Request model for POST /instances."""
    tenant_id: str
    name: str
    webhook_url: Optional[str] = None


class SendTextRequest(BaseModel):
    """Request model for POST /messages/send."""
    instance_name: Optional[str] = None
    to: str
    body: str
