"""Main FastAPI application."""

import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from wa_gateway import metrics
from wa_gateway.config import config
from wa_gateway.health import router as health_router
from wa_gateway.logging_config import logger
from wa_gateway.routers import core, instances, messages, webhooks
from wa_gateway.wiring import Services, get_services


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Startup
    logger.info("application_starting", version="1.0.0")
    services = app.dependency_overrides.get(get_services, get_services)()
    logger.info("database_initialized", url=str(services.engine.url))
    logger.info("openai_configured", configured=config.has_openai_key())
    logger.info("evolution_configured", configured=config.has_evolution_config(), dry_run=config.EVOLUTION_DRY_RUN)
    logger.info("default_bot", bot=config.DEFAULT_BOT, tenant_id=config.DEFAULT_TENANT_ID)

    yield

    # Shutdown
    logger.info("application_shutting_down")


app = FastAPI(
    title="WhatsApp Gateway API",
    description="Multi-tenant WhatsApp gateway with conversation bots and slot booking",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", request.url.path)
    metrics.api_requests_total.labels(
        method=request.method, endpoint=endpoint, status=response.status_code
    ).inc()
    metrics.api_request_duration.observe(time.perf_counter() - start)
    return response


app.include_router(health_router)
app.include_router(core.router)
app.include_router(webhooks.router)
app.include_router(instances.router)
app.include_router(messages.router)


# GET /metrics
# Gets: nothing
# Returns: Prometheus text exposition
# Example:
#   curl http://localhost:8000/metrics
@app.get("/metrics")
async def prometheus_metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


# WS /ws/{tenant_id}
# Gets: path param tenant_id (str)
# Returns: a stream of JSON instance events (connection_update, qrcode_updated)
# Example:
#   websocat ws://localhost:8000/ws/mvp
@app.websocket("/ws/{tenant_id}")
async def tenant_events(websocket: WebSocket, tenant_id: str, services: Services = Depends(get_services)):
    """Dashboard subscription: pushes this tenant's instance events as they arrive."""
    await websocket.accept()
    await services.realtime.subscribe(tenant_id, websocket)
    try:
        while True:
            # Clients only listen; reading keeps the socket open and notices disconnects.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await services.realtime.unsubscribe(tenant_id, websocket)
