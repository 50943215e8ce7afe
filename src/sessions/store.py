"""Time-bounded session store.

Sessions are write-once: ``create`` stores the (truncated) document text
under a fresh random identifier, ``get`` reads it back until the expiry
passes. There is no update or delete; sessions disappear by expiry alone.
An expired session is indistinguishable from one that never existed.
"""

import time
import uuid
from collections.abc import Callable

from src.logging.audit import get_audit_logger
from src.sessions.models import Session
from src.store.base import CounterStore

SESSION_KEY_PREFIX = "session"
DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_MAX_CHARS = 30_000


def generate_session_id() -> str:
    return uuid.uuid4().hex


class SessionStore:
    """Persists extracted document text in the shared counter store."""

    def __init__(
        self,
        store: CounterStore,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_chars: int = DEFAULT_MAX_CHARS,
        id_factory: Callable[[], str] = generate_session_id,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._max_chars = max_chars
        self._id_factory = id_factory
        self._clock = clock

    @staticmethod
    def _key(session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}:{session_id}"

    async def create_session(self, text: str) -> Session:
        """Store ``text`` (clipped to ``max_chars``) and return the new session."""
        now = self._clock()
        session = Session(
            id=self._id_factory(),
            text=text[: self._max_chars],
            created_at=now,
            expires_at=now + self._ttl_seconds,
        )
        await self._store.put(self._key(session.id), session.to_json(), self._ttl_seconds)
        return session

    async def create(self, text: str) -> str:
        session = await self.create_session(text)
        return session.id

    async def get_session(self, session_id: str) -> Session | None:
        """Return the live session, or None if it expired or never existed."""
        if not session_id:
            return None

        raw = await self._store.get(self._key(session_id))
        if raw is None:
            return None

        try:
            session = Session.from_json(session_id, raw)
        except (ValueError, KeyError, TypeError) as e:
            get_audit_logger().error(
                "Unreadable session record",
                extra={"audit_data": {"session_id": session_id, "reason": str(e)}},
            )
            return None

        # Backends may expire lazily
        if not session.is_live(self._clock()):
            return None
        return session

    async def get(self, session_id: str) -> str | None:
        session = await self.get_session(session_id)
        return session.text if session is not None else None
