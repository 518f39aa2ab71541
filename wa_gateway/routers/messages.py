from fastapi import APIRouter, Depends, HTTPException

from wa_gateway import metrics
from wa_gateway.config import config
from wa_gateway.models import SendMessageResult, SendTextRequest
from wa_gateway.security import verify_api_key
from wa_gateway.wiring import Services, get_services

router = APIRouter(prefix="/messages", tags=["Messages"])


# POST /messages/send
# Gets: JSON body {instance_name?, to, body} and X-API-Key header
# Returns: SendMessageResult; 502 when the bridge did not accept the message
# Example:
#   curl -X POST http://localhost:8000/messages/send -H 'X-API-Key: <key>' \
#     -H 'Content-Type: application/json' -d '{"to": "5215512345678", "body": "Hola"}'
@router.post("/send", response_model=SendMessageResult)
def send_message(
    request: SendTextRequest,
    services: Services = Depends(get_services),
    api_key: str = Depends(verify_api_key),
):
    """Send an operator message outside of any bot conversation."""
    instance_name = request.instance_name or config.INSTANCE_NAME
    result = services.messenger.send_text(instance_name, request.to, request.body)
    metrics.outbound_messages_total.labels(status="sent" if result.success else "failed").inc()
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error or "Message not delivered")
    return result
