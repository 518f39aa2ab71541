from fastapi import APIRouter, Depends, HTTPException

from wa_gateway.config import config
from wa_gateway.errors import MessagingError
from wa_gateway.logging_config import logger
from wa_gateway.models import ConnectionStatus, CreateInstanceRequest, CreateInstanceResult
from wa_gateway.security import verify_api_key
from wa_gateway.wiring import Services, get_services

router = APIRouter(prefix="/instances", tags=["Instances"], dependencies=[Depends(verify_api_key)])


# POST /instances
# Gets: JSON body {tenant_id, name, webhook_url?} and X-API-Key header
# Returns: CreateInstanceResult (instance_id, status, qr_code)
# Example:
#   curl -X POST http://localhost:8000/instances -H 'X-API-Key: <key>' \
#     -H 'Content-Type: application/json' -d '{"tenant_id": "mvp", "name": "Front desk"}'
@router.post("", response_model=CreateInstanceResult)
def create_instance(request: CreateInstanceRequest, services: Services = Depends(get_services)):
    """Create a bridge instance; its webhook points at this gateway unless overridden."""
    webhook_url = request.webhook_url or f"{config.PUBLIC_WEBHOOK_URL.rstrip('/')}/webhooks/wa"
    try:
        return services.messenger.create_instance(request.tenant_id, request.name, webhook_url=webhook_url)
    except MessagingError as e:
        logger.error("instance_create_failed", tenant_id=request.tenant_id, error=str(e), details=e.details)
        raise HTTPException(status_code=502, detail=str(e))


# GET /instances/{instance_name}/status
# Gets: path param instance_name (str) and X-API-Key header
# Returns: ConnectionStatus (connected | connecting | disconnected | error)
# Example:
#   curl -H 'X-API-Key: <key>' http://localhost:8000/instances/mvp_1a2b3c4d/status
@router.get("/{instance_name}/status", response_model=ConnectionStatus)
def instance_status(instance_name: str, services: Services = Depends(get_services)):
    return services.messenger.get_connection_status(instance_name)


# GET /instances/{instance_name}/qr
# Gets: path param instance_name (str) and X-API-Key header
# Returns: {"instance": ..., "qr_code": <base64 png>} or 404 when no QR is available
# Example:
#   curl -H 'X-API-Key: <key>' http://localhost:8000/instances/mvp_1a2b3c4d/qr
@router.get("/{instance_name}/qr")
def instance_qr(instance_name: str, services: Services = Depends(get_services)):
    qr_code = services.messenger.get_qr_code(instance_name)
    if not qr_code:
        raise HTTPException(status_code=404, detail="QR code not available")
    return {"instance": instance_name, "qr_code": qr_code}


# DELETE /instances/{instance_name}
# Gets: path param instance_name (str) and X-API-Key header
# Returns: {"instance": ..., "deleted": true} or 502 when the bridge refuses
# Example:
#   curl -X DELETE -H 'X-API-Key: <key>' http://localhost:8000/instances/mvp_1a2b3c4d
@router.delete("/{instance_name}")
def delete_instance(instance_name: str, services: Services = Depends(get_services)):
    if not services.messenger.delete_instance(instance_name):
        raise HTTPException(status_code=502, detail=f"Failed to delete instance {instance_name}")
    return {"instance": instance_name, "deleted": True}
