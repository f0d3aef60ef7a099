"""Form session manager: in-memory registry of mounted forms.

A form session is one FormStore bound to one form definition. Sessions live in
process memory only: they are discarded on delete, on expiry, or with the
process, and are never persisted.
"""

import time
import uuid
from typing import Callable, Optional

import structlog

from healthmate.forms import FormDefinition, FormStore

logger = structlog.get_logger()


class SessionLimitError(RuntimeError):
    """Raised when the session registry is full."""


class FormSession:
    """A mounted form: its definition and its state store."""

    def __init__(self, session_id: str, definition: FormDefinition, created_at: float):
        self.session_id = session_id
        self.definition = definition
        self.store = FormStore(definition.validation, definition.initial_values)
        self.created_at = created_at
        self.last_access = created_at

    @property
    def form_id(self) -> str:
        return self.definition.form_id


class FormSessionManager:
    """Creates, looks up and expires form sessions.

    on_open(session_id) runs when a session is created; on_close(session_id,
    form_id, reason) runs when it is deleted or expires.
    """

    def __init__(
        self,
        ttl_seconds: int = 1800,
        max_sessions: int = 1000,
        on_open: Optional[Callable[[str], None]] = None,
        on_close: Optional[Callable[[str, str, str], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._on_open = on_open
        self._on_close = on_close
        self._clock = clock
        self._sessions: dict[str, FormSession] = {}

    def _generate_session_id(self) -> str:
        return f"form_{uuid.uuid4().hex[:12]}"

    def create(self, definition: FormDefinition) -> FormSession:
        """Mount a new form session with the definition's initial values."""
        self.purge_expired()
        if len(self._sessions) >= self.max_sessions:
            logger.warning("form_session_limit_reached", max_sessions=self.max_sessions)
            raise SessionLimitError(f"Maximum of {self.max_sessions} active form sessions reached")

        session = FormSession(self._generate_session_id(), definition, self._clock())
        self._sessions[session.session_id] = session
        if self._on_open is not None:
            self._on_open(session.session_id)
        logger.info("form_session_created", session_id=session.session_id, form_id=definition.form_id)
        return session

    def get(self, session_id: str) -> Optional[FormSession]:
        """Look up a live session and refresh its expiry."""
        session = self._sessions.get(session_id)
        if session is None:
            return None

        now = self._clock()
        if now - session.last_access > self.ttl_seconds:
            self._close(session_id, reason="expired")
            return None

        session.last_access = now
        return session

    def delete(self, session_id: str) -> bool:
        """Discard a session. Returns False if it did not exist."""
        if session_id not in self._sessions:
            return False
        self._close(session_id, reason="deleted")
        return True

    def purge_expired(self) -> list[str]:
        """Drop every session idle for longer than the TTL."""
        now = self._clock()
        expired = [
            sid for sid, s in self._sessions.items()
            if now - s.last_access > self.ttl_seconds
        ]
        for sid in expired:
            self._close(sid, reason="expired")
        return expired

    def count(self) -> int:
        return len(self._sessions)

    def _close(self, session_id: str, reason: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        if self._on_close is not None:
            self._on_close(session_id, session.form_id, reason)
        logger.info("form_session_closed", session_id=session_id, form_id=session.form_id, reason=reason)
