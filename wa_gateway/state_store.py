"""Conversation state storage.

One ConversationState per tenant:user key. Two backends share the same
get/set/clear interface:

- InMemoryStateStore: a process-local dict. State does not survive restarts,
  which is fine for local development (`uvicorn --reload`) and tests.
- SqlStateStore: the conversation_states table, shared by the API process
  and the Celery workers.

Each call touches a single key; set() always stamps updated_at.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from wa_gateway.db_models import DBConversationState
from wa_gateway.errors import StorageError
from wa_gateway.models import ConversationState


def build_state_key(tenant_id: str, user_id: str) -> str:
    return f"{tenant_id}:{user_id}"


class StateStore:
    """Interface implemented by the state backends."""

    def get(self, key: str) -> Optional[ConversationState]:
        raise NotImplementedError

    def set(self, key: str, state: ConversationState) -> ConversationState:
        raise NotImplementedError

    def clear(self, key: str) -> None:
        raise NotImplementedError


class InMemoryStateStore(StateStore):
    """Thread-safe in-process store. Returned states are copies."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._states: Dict[str, ConversationState] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[ConversationState]:
        if not key:
            return None
        with self._lock:
            state = self._states.get(key)
        return state.model_copy(deep=True) if state else None

    def set(self, key: str, state: ConversationState) -> ConversationState:
        stamped = state.model_copy(update={"updated_at": self._clock()}, deep=True)
        with self._lock:
            self._states[key] = stamped
        return stamped.model_copy(deep=True)

    def clear(self, key: str) -> None:
        with self._lock:
            self._states.pop(key, None)


class SqlStateStore(StateStore):
    """State persisted in the conversation_states table."""

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], float] = time.time):
        self._session_factory = session_factory
        self._clock = clock

    def get(self, key: str) -> Optional[ConversationState]:
        if not key:
            return None
        db = self._session_factory()
        try:
            row = db.get(DBConversationState, key)
            if row is None:
                return None
            return ConversationState(
                bot_key=row.bot_key,
                fsm=row.fsm,
                data=dict(row.data or {}),
                updated_at=row.updated_at,
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read conversation state {key}") from e
        finally:
            db.close()

    def set(self, key: str, state: ConversationState) -> ConversationState:
        stamped = state.model_copy(update={"updated_at": self._clock()}, deep=True)
        db = self._session_factory()
        try:
            db.merge(DBConversationState(
                state_key=key,
                bot_key=stamped.bot_key,
                fsm=stamped.fsm,
                data=stamped.data,
                updated_at=stamped.updated_at,
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to save conversation state {key}") from e
        finally:
            db.close()
        return stamped

    def clear(self, key: str) -> None:
        db = self._session_factory()
        try:
            db.query(DBConversationState).filter(DBConversationState.state_key == key).delete(
                synchronize_session=False
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to clear conversation state {key}") from e
        finally:
            db.close()
