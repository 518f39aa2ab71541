"""Tests for the Celery tasks (run eagerly, no broker)."""

from unittest.mock import MagicMock

from wa_gateway import wiring
from wa_gateway.bots.menu import MENU_TEXT
from wa_gateway.celery_tasks import process_inbound_message_task, purge_expired_holds_task


def test_process_inbound_message(services, messenger, monkeypatch):
    monkeypatch.setattr(wiring, "get_services", lambda: services)

    result = process_inbound_message_task.delay({
        "tenant_id": "mvp", "instance_name": "wa-mvp", "sender": "5215511111111", "text": "1",
    }).get()

    assert result == {"status": "success", "bot": "reservas-basic", "fsm": "SLOT_HELD"}
    assert messenger.last().startswith("🗓️ *Reservas*")


def test_process_inbound_message_without_state(services, messenger, monkeypatch):
    monkeypatch.setattr(wiring, "get_services", lambda: services)

    result = process_inbound_message_task({"tenant_id": "mvp", "instance_name": "wa-mvp",
                                           "sender": "5215511111111", "text": "hola"})

    assert result == {"status": "success", "bot": None, "fsm": None}
    assert messenger.last() == MENU_TEXT


def test_process_inbound_message_reports_failures(monkeypatch):
    broken = MagicMock()
    broken.runtime.handle_inbound.side_effect = RuntimeError("state store down")
    monkeypatch.setattr(wiring, "get_services", lambda: broken)

    result = process_inbound_message_task({"tenant_id": "mvp", "instance_name": "wa-mvp",
                                           "sender": "5215511111111", "text": "hola"})

    assert result["status"] == "error"
    assert "state store down" in result["message"]


def test_invalid_message_payload_is_reported(monkeypatch, services):
    monkeypatch.setattr(wiring, "get_services", lambda: services)

    result = process_inbound_message_task({"text": "hola"})

    assert result["status"] == "error"


def test_purge_expired_holds(services, clock, monkeypatch):
    monkeypatch.setattr(wiring, "get_services", lambda: services)
    services.ledger.acquire_or_refresh_hold("mvp", "default", "2025-01-01T16:00:00.000Z",
                                            "2025-01-01T17:00:00.000Z", 1000)
    clock.advance(120)

    assert purge_expired_holds_task() == {"status": "success", "purged": 1}
    assert purge_expired_holds_task() == {"status": "success", "purged": 0}
