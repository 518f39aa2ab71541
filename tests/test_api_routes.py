"""Tests for API routes."""

from unittest.mock import Mock

import httpx

from wa_gateway.bots.menu import MENU_TEXT
from wa_gateway.messaging import EvolutionClient

ANA = "5215511111111"


def evolution_message(text, sender=ANA, from_me=False, instance="wa-mvp"):
    return {
        "event": "messages.upsert",
        "instance": instance,
        "data": {
            "key": {"remoteJid": f"{sender}@s.whatsapp.net", "fromMe": from_me, "id": "3EB0C0FFEE"},
            "pushName": "Ana",
            "message": {"conversation": text},
        },
    }


def test_root_endpoint(client):
    """Test root endpoint returns API info."""
    response = client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert "message" in data
    assert data["endpoints"]["webhook"] == "/webhooks/wa"


def test_webhook_runs_message_through_bot(client, messenger):
    response = client.post("/webhooks/wa", json=evolution_message("hola"))

    assert response.status_code == 200
    assert response.json()["status"] == "queued"
    assert messenger.sent == [{"instance": "wa-mvp", "to": ANA, "body": MENU_TEXT}]


def test_webhook_full_booking_flow(client, messenger, services):
    client.post("/webhooks/wa", json=evolution_message("1"))
    client.post("/webhooks/wa", json=evolution_message("A"))

    assert messenger.last(ANA).startswith("✅ *Reserva confirmada* para Hoy 16:00.")

    bookings = client.get("/bookings", params={"tenant_id": "mvp"}).json()
    assert len(bookings) == 1
    assert bookings[0]["wa_number"] == ANA
    assert bookings[0]["status"] == "confirmed"

    single = client.get(f"/bookings/{bookings[0]['booking_id']}")
    assert single.status_code == 200
    assert single.json()["slot_key"] == "mvp#default#2025-01-01T16:00:00.000Z"


def test_webhook_simplified_payload_and_tenant_header(client, messenger, services):
    payload = {"from": "+5215533333333", "message": {"text": {"body": "4"}}}

    response = client.post("/webhooks/wa", json=payload, headers={"X-Tenant-Id": "clinica"})

    assert response.json()["status"] == "queued"
    assert services.state_store.get("clinica:+5215533333333").bot_key == "simple-ai"


def test_webhook_ignores_own_messages_and_other_events(client, messenger):
    assert client.post("/webhooks/wa", json=evolution_message("hola", from_me=True)).json()["status"] == "ignored"
    assert client.post("/webhooks/wa", json={"event": "messages.update", "data": {}}).json()["status"] == "ignored"
    assert client.post("/webhooks/wa", content=b"not json",
                       headers={"Content-Type": "application/json"}).json()["status"] == "ignored"
    assert messenger.sent == []


def test_ignored_webhook_logs_its_event_name(client, monkeypatch):
    from wa_gateway.routers import webhooks

    fake_logger = Mock()
    monkeypatch.setattr(webhooks, "logger", fake_logger)

    response = client.post("/webhooks/wa", json={"event": "send.message", "data": {}})

    assert response.json()["status"] == "ignored"
    fake_logger.debug.assert_called_once_with("webhook_ignored", tenant_id="mvp", event_name="send.message")


def test_webhook_get_check(client):
    assert client.get("/webhooks/wa").json() == {"status": "ok"}


def test_bookings_unknown_id_returns_404(client):
    assert client.get("/bookings/bk_missing").status_code == 404


def test_operator_routes_require_api_key_when_configured(client, monkeypatch):
    from wa_gateway.config import config, Config

    monkeypatch.setattr(Config, "API_KEY", "s3cret", raising=False)
    monkeypatch.setattr(config, "API_KEY", "s3cret", raising=False)

    assert client.get("/bookings", params={"tenant_id": "mvp"}).status_code == 403
    assert client.get("/bookings", params={"tenant_id": "mvp"},
                      headers={"X-API-Key": "wrong"}).status_code == 403
    assert client.get("/bookings", params={"tenant_id": "mvp"},
                      headers={"X-API-Key": "s3cret"}).status_code == 200
    assert client.post("/messages/send", json={"to": ANA, "body": "hola"}).status_code == 403
    # The bridge webhook stays open.
    assert client.post("/webhooks/wa", json=evolution_message("hola")).status_code == 200


def test_send_message(client, messenger):
    response = client.post("/messages/send", json={"to": ANA, "body": "Recordatorio: mañana 10:00"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert messenger.sent[-1] == {"instance": "wa-mvp", "to": ANA, "body": "Recordatorio: mañana 10:00"}


def test_send_message_failure_returns_502(client, messenger):
    messenger.fail = True

    response = client.post("/messages/send", json={"to": ANA, "body": "hola", "instance_name": "other"})

    assert response.status_code == 502
    assert messenger.sent[-1]["instance"] == "other"


def test_instance_routes_proxy_the_bridge(client, services):
    def handler(request):
        path = request.url.path
        if path == "/instance/create":
            return httpx.Response(201, json={"qrcode": {"base64": "QR1"}})
        if path.startswith("/webhook/set/"):
            return httpx.Response(201, json={})
        if path == "/instance/connectionState/mvp_abc":
            return httpx.Response(200, json={"instance": {"state": "open"}})
        if path == "/instance/connect/mvp_abc":
            return httpx.Response(200, json={"base64": "QR2"})
        if path == "/instance/logout/mvp_abc":
            return httpx.Response(200, json={})
        return httpx.Response(404, json={})

    services.messenger = EvolutionClient("http://evolution.test", transport=httpx.MockTransport(handler))

    created = client.post("/instances", json={"tenant_id": "mvp", "name": "Front desk"})
    assert created.status_code == 200
    assert created.json()["instance_id"].startswith("mvp_")
    assert created.json()["qr_code"] == "QR1"

    assert client.get("/instances/mvp_abc/status").json()["status"] == "connected"
    assert client.get("/instances/mvp_abc/qr").json() == {"instance": "mvp_abc", "qr_code": "QR2"}
    assert client.get("/instances/ghost/qr").status_code == 404
    assert client.delete("/instances/mvp_abc").json() == {"instance": "mvp_abc", "deleted": True}
    assert client.delete("/instances/ghost").status_code == 502


def test_instance_create_bridge_error_maps_to_502(client, services):
    services.messenger = EvolutionClient(
        "http://evolution.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"error": "bad token"})),
    )

    response = client.post("/instances", json={"tenant_id": "mvp", "name": "Front desk"})

    assert response.status_code == 502


def test_connection_update_is_pushed_to_tenant_websocket(client):
    with client.websocket_connect("/ws/mvp") as ws:
        response = client.post(
            "/webhooks/wa",
            json={"event": "connection.update", "instance": "wa-mvp", "data": {"state": "open"}},
            headers={"X-Tenant-Id": "mvp"},
        )
        assert response.json() == {"status": "published", "type": "connection_update", "delivered": 1}

        event = ws.receive_json()
        assert event == {"type": "connection_update", "instance": "wa-mvp", "state": "open"}


def test_qrcode_event_without_subscribers(client):
    response = client.post(
        "/webhooks/wa",
        json={"event": "qrcode.updated", "instance": "wa-mvp", "data": {"qrcode": {"base64": "QR"}}},
        headers={"X-Tenant-Id": "nobody"},
    )

    assert response.json()["delivered"] == 0
