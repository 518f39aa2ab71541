from fastapi import APIRouter, Depends, Request

from wa_gateway.celery_tasks import process_inbound_message_task
from wa_gateway.config import config
from wa_gateway.inbound import event_type, parse_inbound_message, parse_instance_event
from wa_gateway.logging_config import logger
from wa_gateway.wiring import Services, get_services

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def resolve_tenant(request: Request) -> str:
    """Tenant from the X-Tenant-Id (or X-Tenant) header, else the configured default."""
    return (
        request.headers.get("X-Tenant-Id")
        or request.headers.get("X-Tenant")
        or config.DEFAULT_TENANT_ID
    )


# POST /webhooks/wa
# Gets: Evolution API event JSON (messages.upsert, connection.update, qrcode.updated)
#       and optional X-Tenant-Id header
# Returns: {"status": "queued", "task_id": ...} for user messages,
#          {"status": "published", ...} for instance events, {"status": "ignored"} otherwise
# Example:
#   curl -X POST http://localhost:8000/webhooks/wa -H 'Content-Type: application/json' \
#     -d '{"from": "5215512345678", "message": {"text": {"body": "hola"}}}'
@router.post("/wa")
async def whatsapp_webhook(request: Request, services: Services = Depends(get_services)):
    """Receive bridge events. Messages are handed to the task queue; the bridge gets a fast 200."""
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("webhook_invalid_json")
        return {"status": "ignored", "reason": "invalid_json"}

    if not isinstance(payload, dict):
        return {"status": "ignored", "reason": "invalid_payload"}

    tenant_id = resolve_tenant(request)

    instance_event = parse_instance_event(payload)
    if instance_event is not None:
        delivered = await services.realtime.publish(tenant_id, instance_event)
        logger.info("instance_event", tenant_id=tenant_id, type=instance_event["type"], delivered=delivered)
        return {"status": "published", "type": instance_event["type"], "delivered": delivered}

    message = parse_inbound_message(payload, tenant_id, config.INSTANCE_NAME)
    if message is None:
        logger.debug("webhook_ignored", tenant_id=tenant_id, event_name=event_type(payload))
        return {"status": "ignored"}

    logger.info(
        "inbound_message",
        tenant_id=tenant_id,
        instance=message.instance_name,
        sender=message.sender,
        message_id=message.message_id,
    )
    task = process_inbound_message_task.delay(message.model_dump())
    return {"status": "queued", "task_id": task.id}


# GET /webhooks/wa
# Gets: nothing
# Returns: {"status": "ok"} (reachability check used when registering the webhook)
# Example:
#   curl http://localhost:8000/webhooks/wa
@router.get("/wa")
async def whatsapp_webhook_check():
    return {"status": "ok"}
