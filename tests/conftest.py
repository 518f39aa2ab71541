import time
import uuid
from datetime import datetime, timezone

import pytest

# 2025-01-01 09:00:00 UTC: "today 16:00" is still in the future.
START_TS = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc).timestamp()


class FakeClock:
    """Settable epoch-seconds clock shared by the ledger, state store and bots."""

    def __init__(self, now: float = START_TS):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def as_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.now, timezone.utc)


class FakeMessenger:
    """Records outbound messages instead of calling the bridge."""

    provider_name = "fake"

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def send_text(self, instance_name: str, to: str, body: str):
        from wa_gateway.models import SendMessageResult

        self.sent.append({"instance": instance_name, "to": to, "body": body})
        if self.fail:
            return SendMessageResult(message_id="failed_1", success=False, timestamp=time.time(), error="bridge down")
        return SendMessageResult(message_id=f"msg_{uuid.uuid4().hex[:8]}", success=True, timestamp=time.time())

    def bodies(self, to: str = None) -> list[str]:
        return [m["body"] for m in self.sent if to is None or m["to"] == to]

    def last(self, to: str = None) -> str:
        bodies = self.bodies(to)
        return bodies[-1] if bodies else ""


class FakeCompletion:
    """Canned completion service; set ``error`` to make generate() raise it."""

    def __init__(self, reply: str = "Claro, te ayudo con eso."):
        self.reply = reply
        self.error = None
        self.calls = []

    def generate(self, user_text, system_prompt=None, history=None):
        self.calls.append({"user_text": user_text, "system_prompt": system_prompt})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def _safe_test_config(monkeypatch):
    """Force deterministic, offline-safe config for tests.

    The package loads .env on import; these overrides prevent real network calls
    (Evolution API / OpenAI / Redis) and keep operator routes open.
    """
    from wa_gateway.config import config, Config
    from wa_gateway.celery_tasks import celery_app

    overrides = {
        "API_KEY": "",
        "OPENAI_API_KEY": "",
        "EVOLUTION_API_BASE_URL": "",
        "EVOLUTION_API_TOKEN": "",
        "EVOLUTION_DRY_RUN": True,
        "DEFAULT_TENANT_ID": "mvp",
        "DEFAULT_BOT": "menu-basic",
        "INSTANCE_NAME": "wa-mvp",
        "STATE_BACKEND": "memory",
        "SLOT_HOLD_MS": 180000,
        "RESOURCE_ID": "default",
        "BUSINESS_TIMEZONE": "UTC",
        "PUBLIC_WEBHOOK_URL": "http://gateway.test",
    }
    for name, value in overrides.items():
        monkeypatch.setattr(Config, name, value, raising=False)
        # Keep the instance in sync for code that reads instance attributes directly.
        monkeypatch.setattr(config, name, value, raising=False)

    # Run webhook-queued tasks inline.
    monkeypatch.setattr(celery_app.conf, "task_always_eager", True)

    return config


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'gateway.db'}"


@pytest.fixture
def session_factory(database_url):
    from wa_gateway.database import build_engine, build_session_factory, init_db

    engine = build_engine(database_url)
    init_db(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def ledger(session_factory, clock):
    from wa_gateway.slot_ledger import SlotLedger

    return SlotLedger(session_factory, clock=clock)


@pytest.fixture
def bookings(ledger):
    from wa_gateway.booking_repo import BookingRepository

    return BookingRepository(ledger)


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def services(database_url, clock, messenger, completion):
    from wa_gateway.wiring import build_services

    services = build_services(
        database_url=database_url,
        state_backend="memory",
        messenger=messenger,
        completion=completion,
        clock=clock,
        now=clock.as_datetime,
    )
    yield services
    services.engine.dispose()


@pytest.fixture
def client(services, monkeypatch):
    """TestClient whose routes and Celery tasks use the test services."""
    from fastapi.testclient import TestClient

    from wa_gateway import wiring
    from wa_gateway.main import app
    from wa_gateway.wiring import get_services

    app.dependency_overrides[get_services] = lambda: services
    monkeypatch.setattr(wiring, "get_services", lambda: services)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
