"""
Bridge webhook payload parsing.

Evolution API posts events shaped like:

    {"event": "messages.upsert", "instance": "wa-mvp",
     "data": {"key": {"remoteJid": "5215555555555@s.whatsapp.net", "fromMe": false, "id": "ABC"},
              "pushName": "Ana",
              "message": {"conversation": "hola"}}}

A simplified shape used by local tools and tests is accepted too:

    {"from": "+5215555555555", "message": {"text": {"body": "hola"}}}
"""

from typing import Any, Optional

from wa_gateway.models import InboundMessage

JID_SUFFIXES = ("@s.whatsapp.net", "@c.us")

MESSAGE_EVENTS = {"messages.upsert", "MESSAGES_UPSERT"}
CONNECTION_EVENTS = {"connection.update", "CONNECTION_UPDATE"}
QRCODE_EVENTS = {"qrcode.updated", "QRCODE_UPDATED"}


def _strip_jid(jid: str) -> str:
    for suffix in JID_SUFFIXES:
        if jid.endswith(suffix):
            return jid[: -len(suffix)]
    return jid


def _message_text(message: Any) -> str:
    if not isinstance(message, dict):
        return ""
    if isinstance(message.get("conversation"), str):
        return message["conversation"]
    extended = message.get("extendedTextMessage")
    if isinstance(extended, dict) and isinstance(extended.get("text"), str):
        return extended["text"]
    text = message.get("text")
    if isinstance(text, dict) and isinstance(text.get("body"), str):
        return text["body"]
    if isinstance(text, str):
        return text
    return ""


def event_type(payload: dict) -> str:
    return str(payload.get("event") or "")


def parse_inbound_message(payload: dict, tenant_id: str, default_instance: str) -> Optional[InboundMessage]:
    """
    Turn a webhook payload into an InboundMessage.

    Returns None for payloads that carry no user text to handle: other event
    types, messages sent by the instance itself (fromMe), and missing senders.
    """
    if not isinstance(payload, dict):
        return None

    event = event_type(payload)
    if event and event not in MESSAGE_EVENTS:
        return None

    instance_name = payload.get("instance") or default_instance
    data = payload.get("data")

    if isinstance(data, dict) and isinstance(data.get("key"), dict):
        key = data["key"]
        if key.get("fromMe"):
            return None
        sender = _strip_jid(str(key.get("remoteJid") or ""))
        text = _message_text(data.get("message"))
        message_id = key.get("id")
        push_name = data.get("pushName")
    else:
        sender = str(payload.get("from") or "")
        text = _message_text(payload.get("message"))
        message_id = payload.get("id")
        push_name = None

    if not sender:
        return None

    return InboundMessage(
        tenant_id=tenant_id,
        instance_name=instance_name,
        sender=sender,
        text=text.strip(),
        message_id=message_id,
        push_name=push_name,
    )


def parse_instance_event(payload: dict) -> Optional[dict]:
    """Dashboard event for connection/QR updates, or None for anything else."""
    event = event_type(payload)
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    instance_name = payload.get("instance")

    if event in CONNECTION_EVENTS:
        return {"type": "connection_update", "instance": instance_name, "state": data.get("state")}
    if event in QRCODE_EVENTS:
        qrcode = data.get("qrcode") if isinstance(data.get("qrcode"), dict) else {}
        return {"type": "qrcode_updated", "instance": instance_name, "qr_code": qrcode.get("base64")}
    return None
