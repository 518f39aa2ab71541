"""Tests for the booking repository used by the bots."""

from unittest.mock import MagicMock

from wa_gateway.booking_repo import BookingRepository
from wa_gateway.db_models import SlotStatus
from wa_gateway.errors import StorageError
from wa_gateway.models import FailureReason

START = "2025-01-01T16:00:00.000Z"
END = "2025-01-01T17:00:00.000Z"


def test_hold_confirm_release_roundtrip(bookings):
    held = bookings.hold("mvp", "default", START, END, 180000, holder="521111")
    assert held.granted is True
    assert held.slot_key == BookingRepository.slot_key("mvp", "default", START)

    slot = bookings.get_slot(held.slot_key)
    assert slot.is_held_at(bookings.now_ms())

    confirmed = bookings.confirm("mvp", "default", START, "521111")
    assert confirmed.granted is True
    assert bookings.get_booking(confirmed.booking_id).slot_key == held.slot_key
    assert [b.booking_id for b in bookings.list_bookings("mvp")] == [confirmed.booking_id]

    # Booked slots are never released.
    assert bookings.release(held.slot_key) is False
    assert bookings.get_slot(held.slot_key).status == SlotStatus.BOOKED


def test_storage_errors_become_database_error_results():
    ledger = MagicMock()
    ledger.acquire_or_refresh_hold.side_effect = StorageError("disk I/O error")
    ledger.finalize_booking.side_effect = StorageError("disk I/O error")
    ledger.release.side_effect = StorageError("disk I/O error")
    ledger.get.side_effect = StorageError("disk I/O error")
    repo = BookingRepository(ledger)

    held = repo.hold("mvp", "default", START, END, 180000, holder="521111")
    assert held.granted is False
    assert held.reason == FailureReason.DATABASE_ERROR
    assert held.slot_key == "mvp#default#2025-01-01T16:00:00.000Z"

    confirmed = repo.confirm("mvp", "default", START, "521111")
    assert confirmed.granted is False
    assert confirmed.reason == FailureReason.DATABASE_ERROR
    assert confirmed.booking_id is None

    assert repo.release(held.slot_key) is False
    assert repo.get_slot(held.slot_key) is None


def test_each_call_delegates_once():
    ledger = MagicMock()
    repo = BookingRepository(ledger)

    repo.hold("mvp", "default", START, END, 1000, holder="521111")
    repo.release("mvp#default#" + START, holder="521111")

    ledger.acquire_or_refresh_hold.assert_called_once_with("mvp", "default", START, END, 1000, holder="521111")
    ledger.release.assert_called_once_with("mvp#default#" + START, holder="521111")
