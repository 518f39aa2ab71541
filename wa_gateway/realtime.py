"""
Realtime push to dashboard clients.

Clients open a WebSocket per tenant (see main.py) and receive instance events
(connection updates, QR codes) published by the webhook receiver. Delivery is
best-effort: a socket that fails to receive is dropped.
"""

from __future__ import annotations

from typing import Any, Dict, Set

from fastapi import WebSocket

from wa_gateway.logging_config import get_logger

logger = get_logger(__name__)


class RealtimeHub:
    """Tenant-keyed registry of connected WebSockets."""

    def __init__(self):
        self._subscribers: Dict[str, Set[WebSocket]] = {}

    async def subscribe(self, tenant_id: str, websocket: WebSocket) -> None:
        self._subscribers.setdefault(tenant_id, set()).add(websocket)
        logger.info("realtime_subscribed", tenant_id=tenant_id)

    async def unsubscribe(self, tenant_id: str, websocket: WebSocket) -> None:
        sockets = self._subscribers.get(tenant_id)
        if sockets is not None:
            sockets.discard(websocket)
            if not sockets:
                self._subscribers.pop(tenant_id, None)
        logger.info("realtime_unsubscribed", tenant_id=tenant_id)

    def subscriber_count(self, tenant_id: str) -> int:
        return len(self._subscribers.get(tenant_id, ()))

    async def publish(self, tenant_id: str, event: Dict[str, Any]) -> int:
        """Send ``event`` to every subscriber of ``tenant_id``. Returns the number delivered."""
        sockets = list(self._subscribers.get(tenant_id, ()))

        delivered = 0
        for ws in sockets:
            try:
                await ws.send_json(event)
                delivered += 1
            except Exception as e:
                logger.warning("realtime_send_failed", tenant_id=tenant_id, error=str(e))
                await self.unsubscribe(tenant_id, ws)

        logger.debug("realtime_published", tenant_id=tenant_id, type=event.get("type"), delivered=delivered)
        return delivered
