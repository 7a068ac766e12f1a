"""Per-sender conversation state with idle expiry.

Sessions expire lazily: a session idle for longer than the TTL is removed
the next time it is read, never by a background sweep.
"""

import json
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, ContextManager, Iterator, Optional

import redis

from sabores_bot.config import Settings
from sabores_bot.logging_config import get_logger
from sabores_bot.services.state_machine import ConversationState, parse_state

logger = get_logger("session_store")

DEFAULT_SESSION_TTL_SECONDS = 30 * 60
KEY_TTL_GRACE_SECONDS = 60


@dataclass
class Session:
    state: ConversationState
    last_activity_at: float


class SessionStore(ABC):
    """Abstract per-sender state store."""

    def __init__(self, ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def is_expired(self, session: Session) -> bool:
        return self.clock() - session.last_activity_at > self.ttl_seconds

    @abstractmethod
    def get_state(self, sender: str) -> Optional[ConversationState]:
        """Current state, or None when there is no (live) session."""
        pass

    @abstractmethod
    def set_state(self, sender: str, state: ConversationState) -> None:
        """Overwrite the state and stamp the current time."""
        pass

    @abstractmethod
    def evict(self, sender: str) -> None:
        pass

    @abstractmethod
    def lock_for(self, sender: str) -> ContextManager[None]:
        """Exclusive access to one sender's session for a read-decide-write sequence."""
        pass


class InMemorySessionStore(SessionStore):
    """Process-local store. All sessions are lost on restart."""

    def __init__(self, ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS, clock: Callable[[], float] = time.time):
        super().__init__(ttl_seconds=ttl_seconds, clock=clock)
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()
        self._sender_locks: dict[str, threading.Lock] = {}

    def get_state(self, sender: str) -> Optional[ConversationState]:
        with self._lock:
            session = self._sessions.get(sender)
            if session is None:
                return None
            if self.is_expired(session):
                del self._sessions[sender]
                logger.info("Session expired", extra={"context": {"sender": sender}})
                return None
            return session.state

    def set_state(self, sender: str, state: ConversationState) -> None:
        with self._lock:
            self._sessions[sender] = Session(state=state, last_activity_at=self.clock())

    def evict(self, sender: str) -> None:
        with self._lock:
            self._sessions.pop(sender, None)

    @contextmanager
    def lock_for(self, sender: str) -> Iterator[None]:
        with self._lock:
            sender_lock = self._sender_locks.setdefault(sender, threading.Lock())
        with sender_lock:
            yield

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class RedisSessionStore(SessionStore):
    """Redis-backed store. Sessions survive restarts until the key TTL runs out."""

    KEY_PREFIX = "sabores:session"
    LOCK_PREFIX = "sabores:session-lock"
    LOCK_TIMEOUT_SECONDS = 10
    LOCK_BLOCKING_TIMEOUT_SECONDS = 5

    def __init__(
        self,
        client: redis.Redis,
        ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(ttl_seconds=ttl_seconds, clock=clock)
        self.client = client

    def lock_for(self, sender: str) -> ContextManager[None]:
        # Shared across workers; raises redis.exceptions.LockError if not acquired in time.
        return self.client.lock(
            f"{self.LOCK_PREFIX}:{sender}",
            timeout=self.LOCK_TIMEOUT_SECONDS,
            blocking_timeout=self.LOCK_BLOCKING_TIMEOUT_SECONDS,
        )

    def _key(self, sender: str) -> str:
        return f"{self.KEY_PREFIX}:{sender}"

    def get_state(self, sender: str) -> Optional[ConversationState]:
        raw = self.client.get(self._key(sender))
        if not raw:
            return None
        try:
            data = json.loads(raw)
            state = parse_state(data.get("state"))
            last_activity_at = float(data["last_activity_at"])
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding unreadable session for {sender}: {e}")
            self.evict(sender)
            return None
        if state is None:
            self.evict(sender)
            return None
        session = Session(state=state, last_activity_at=last_activity_at)
        if self.is_expired(session):
            self.evict(sender)
            logger.info("Session expired", extra={"context": {"sender": sender}})
            return None
        return session.state

    def set_state(self, sender: str, state: ConversationState) -> None:
        payload = json.dumps({"state": state.value, "last_activity_at": self.clock()})
        # Key TTL keeps abandoned sessions from piling up in Redis. The extra
        # minute leaves expiry decisions to the age check in get_state.
        self.client.set(self._key(sender), payload, ex=max(int(self.ttl_seconds), 1) + KEY_TTL_GRACE_SECONDS)

    def evict(self, sender: str) -> None:
        self.client.delete(self._key(sender))


def build_session_store(settings: Settings) -> SessionStore:
    ttl_seconds = settings.SESSION_TTL_MINUTES * 60
    if settings.SESSION_BACKEND == "redis":
        client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
        logger.info("Using Redis session store", extra={"context": {"ttl_seconds": ttl_seconds}})
        return RedisSessionStore(client, ttl_seconds=ttl_seconds)
    return InMemorySessionStore(ttl_seconds=ttl_seconds)
