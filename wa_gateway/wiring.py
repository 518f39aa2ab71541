"""
Service wiring.

Everything the API process and the Celery workers need is built once per
process by build_services() and handed out through get_services(). Tests build
their own Services with a temporary database and fake clients.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from wa_gateway.booking_repo import BookingRepository
from wa_gateway.bots import BotRuntime, build_registry
from wa_gateway.completion import CompletionService
from wa_gateway.config import config
from wa_gateway.database import build_engine, build_session_factory, init_db
from wa_gateway.logging_config import get_logger
from wa_gateway.messaging import EvolutionClient
from wa_gateway.realtime import RealtimeHub
from wa_gateway.slot_ledger import SlotLedger
from wa_gateway.state_store import InMemoryStateStore, SqlStateStore, StateStore

logger = get_logger(__name__)


@dataclass
class Services:
    engine: Engine
    session_factory: sessionmaker
    ledger: SlotLedger
    bookings: BookingRepository
    state_store: StateStore
    messenger: EvolutionClient
    completion: CompletionService
    runtime: BotRuntime
    realtime: RealtimeHub


def build_services(
    database_url: Optional[str] = None,
    state_backend: Optional[str] = None,
    messenger=None,
    completion=None,
    clock: Optional[Callable[[], float]] = None,
    now=None,
) -> Services:
    """
    Build the full service graph.

    Args:
        database_url: overrides config.DATABASE_URL
        state_backend: "database" or "memory"; overrides config.STATE_BACKEND
        messenger: messaging client (defaults to an EvolutionClient from config)
        completion: completion service (defaults to OpenAI from config)
        clock: epoch-seconds clock shared by the ledger and the state store
        now: datetime clock used by the reservation bot to pick the quick slots
    """
    engine = build_engine(database_url)
    init_db(engine)
    session_factory = build_session_factory(engine)

    clock_kwargs = {"clock": clock} if clock else {}
    ledger = SlotLedger(session_factory, **clock_kwargs)
    bookings = BookingRepository(ledger)

    backend = (state_backend or config.STATE_BACKEND).lower()
    if backend == "memory":
        state_store = InMemoryStateStore(**clock_kwargs)
    else:
        state_store = SqlStateStore(session_factory, **clock_kwargs)

    if messenger is None:
        messenger = EvolutionClient(
            config.EVOLUTION_API_BASE_URL,
            api_key=config.EVOLUTION_API_TOKEN,
            dry_run=config.EVOLUTION_DRY_RUN or not config.has_evolution_config(),
            timeout=config.EVOLUTION_TIMEOUT_SECONDS,
        )
    if completion is None:
        completion = CompletionService(config.OPENAI_API_KEY, config.OPENAI_MODEL)

    registry = build_registry(
        bookings,
        completion,
        resource_id=config.RESOURCE_ID,
        hold_ms=config.SLOT_HOLD_MS,
        tz=config.BUSINESS_TIMEZONE,
        now=now,
    )
    runtime = BotRuntime(state_store, registry, messenger, default_bot_key=config.DEFAULT_BOT)

    logger.info(
        "services_built",
        state_backend=backend,
        bots=registry.keys(),
        evolution_configured=config.has_evolution_config(),
        openai_configured=config.has_openai_key(),
    )
    return Services(
        engine=engine,
        session_factory=session_factory,
        ledger=ledger,
        bookings=bookings,
        state_store=state_store,
        messenger=messenger,
        completion=completion,
        runtime=runtime,
        realtime=RealtimeHub(),
    )


@lru_cache()
def get_services() -> Services:
    """Process-wide services (FastAPI dependency and Celery task entry point)."""
    return build_services()
