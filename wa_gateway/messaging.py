"""WhatsApp bridge client (Evolution API).

Evolution API is a self-hosted bridge that speaks the WhatsApp Web protocol.
Only send_text is used by the conversation pipeline; the instance lifecycle
calls serve the operator endpoints in routers/instances.py.

Sending never raises: failures come back as SendMessageResult(success=False)
so a bot can keep going when the bridge is down.
"""

from __future__ import annotations

import time
import uuid
from typing import Any, Optional

import httpx

from wa_gateway.errors import MessagingError
from wa_gateway.logging_config import get_logger
from wa_gateway.models import ConnectionStatus, CreateInstanceResult, SendMessageResult

logger = get_logger(__name__)

WEBHOOK_EVENTS = [
    "QRCODE_UPDATED",
    "CONNECTION_UPDATE",
    "MESSAGES_UPSERT",
    "MESSAGES_UPDATE",
    "SEND_MESSAGE",
]


def _message_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def _response_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class EvolutionClient:
    """Thin HTTP client over the Evolution API."""

    provider_name = "evolution"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        dry_run: bool = False,
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
        self.dry_run = dry_run
        self._client = httpx.Client(
            base_url=base_url or "http://localhost:8080",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise MessagingError(f"Evolution API unreachable: {e}") from e

        if resp.status_code >= 400:
            raise MessagingError(
                f"Evolution API Error ({resp.status_code})",
                status_code=resp.status_code,
                details=_response_body(resp),
            )
        data = _response_body(resp) if resp.content else {}
        return data if isinstance(data, dict) else {}

    def send_text(self, instance_name: str, to: str, body: str) -> SendMessageResult:
        """Send a text message. Never raises; check result.success."""
        if self.dry_run:
            logger.info("dry_run_send", instance=instance_name, to=to, body=body)
            return SendMessageResult(message_id=_message_id("dry_run"), success=True, timestamp=time.time())

        try:
            data = self._request(
                "POST",
                f"/message/sendText/{instance_name}",
                json={"number": to.lstrip("+"), "textMessage": {"text": body}},
            )
        except MessagingError as e:
            logger.error(
                "send_failed",
                instance=instance_name,
                to=to,
                status_code=e.status_code,
                details=e.details,
                error=str(e),
            )
            return SendMessageResult(
                message_id=_message_id("failed"),
                success=False,
                timestamp=time.time(),
                error=str(e),
            )

        message_id = (data.get("key") or {}).get("id") or _message_id("msg")
        logger.info("message_sent", instance=instance_name, to=to, message_id=message_id)
        return SendMessageResult(message_id=message_id, success=True, timestamp=time.time())

    def create_instance(self, tenant_id: str, name: str, webhook_url: Optional[str] = None) -> CreateInstanceResult:
        """Create a bridge instance named <tenant>_<random> and point its webhook at us."""
        instance_name = f"{tenant_id}_{uuid.uuid4().hex[:8]}"
        data = self._request(
            "POST",
            "/instance/create",
            json={"instanceName": instance_name, "qrcode": True, "integration": "WHATSAPP-BAILEYS"},
        )

        if webhook_url:
            try:
                self._request(
                    "POST",
                    f"/webhook/set/{instance_name}",
                    json={
                        "enabled": True,
                        "url": webhook_url,
                        "webhook_by_events": False,
                        "webhook_base64": False,
                        "headers": {"X-Tenant-Id": tenant_id},
                        "events": WEBHOOK_EVENTS,
                    },
                )
            except MessagingError as e:
                logger.warning("webhook_configure_failed", instance=instance_name, error=str(e))

        logger.info("instance_created", tenant_id=tenant_id, instance=instance_name, name=name)
        return CreateInstanceResult(
            instance_id=instance_name,
            status="waiting_qr",
            qr_code=(data.get("qrcode") or {}).get("base64"),
            metadata={"name": name, "evolution": data},
        )

    def get_connection_status(self, instance_name: str) -> ConnectionStatus:
        try:
            data = self._request("GET", f"/instance/connectionState/{instance_name}")
        except MessagingError as e:
            return ConnectionStatus(status="error", details=str(e))

        state = (data.get("instance") or {}).get("state") or data.get("state")
        if state == "open":
            status = "connected"
        elif state in ("connecting", "close"):
            status = "connecting"
        else:
            status = "disconnected"
        return ConnectionStatus(status=status, details=str(data), last_seen=time.time())

    def get_qr_code(self, instance_name: str) -> Optional[str]:
        try:
            data = self._request("GET", f"/instance/connect/{instance_name}")
        except MessagingError as e:
            logger.warning("qr_code_unavailable", instance=instance_name, error=str(e))
            return None
        return (data.get("qrcode") or {}).get("base64") or data.get("base64")

    def delete_instance(self, instance_name: str) -> bool:
        try:
            self._request("DELETE", f"/instance/logout/{instance_name}")
        except MessagingError as e:
            logger.warning("instance_delete_failed", instance=instance_name, error=str(e))
            return False
        return True
