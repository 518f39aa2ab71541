from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from wa_gateway.models import Booking
from wa_gateway.security import verify_api_key
from wa_gateway.wiring import Services, get_services

router = APIRouter(tags=["Core"])


# GET /
# Gets: nothing
# Returns: basic API metadata and a map of key endpoints
# Example:
#   curl http://localhost:8000/
@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "WhatsApp Gateway API",
        "version": "1.0.0",
        "description": "Multi-tenant WhatsApp gateway with conversation bots and slot booking",
        "endpoints": {
            "webhook": "/webhooks/wa",
            "bookings": "/bookings",
            "instances": "/instances",
            "send_message": "/messages/send",
            "realtime": "/ws/{tenant_id}",
            "metrics": "/metrics",
            "health": "/health",
        },
        "features": [
            "Menu, reservations and AI assistant bots",
            "Slot holds with expiry and atomic confirmation",
            "Evolution API bridge",
        ],
    }


# GET /bookings?tenant_id=mvp&wa_number=5215512345678
# Gets: query params tenant_id (str) and optional wa_number (str), X-API-Key header
# Returns: JSON array of Booking objects ordered by start time
# Example:
#   curl -H 'X-API-Key: <key>' 'http://localhost:8000/bookings?tenant_id=mvp'
@router.get("/bookings", response_model=list[Booking])
def list_bookings(
    tenant_id: str,
    wa_number: Optional[str] = None,
    services: Services = Depends(get_services),
    api_key: str = Depends(verify_api_key),
):
    """List confirmed bookings for a tenant."""
    return services.bookings.list_bookings(tenant_id, wa_number=wa_number)


# GET /bookings/{booking_id}
# Gets: path param booking_id (str), X-API-Key header
# Returns: Booking object or 404
# Example:
#   curl -H 'X-API-Key: <key>' http://localhost:8000/bookings/bk_1234
@router.get("/bookings/{booking_id}", response_model=Booking)
def get_booking(
    booking_id: str,
    services: Services = Depends(get_services),
    api_key: str = Depends(verify_api_key),
):
    """Fetch a single booking."""
    booking = services.bookings.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail=f"Booking {booking_id} not found")
    return booking
