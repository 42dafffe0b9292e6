"""Fire-and-forget exchange of identity tokens for sessions."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Set

from identity.providers import CredentialExchangeError, IdentityProvider
from identity.session import SessionStore
from models.records import Session

logger = logging.getLogger(__name__)

# Refresh this long before the provider-issued token expires.
REFRESH_MARGIN_SECONDS = 300.0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialService:
    """Dispatches credential exchanges without reporting their outcome to callers.

    Sessions carrying a refresh token are kept current in the background so
    the active session's id token stays valid for database writes.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        sessions: SessionStore,
        refresh_margin: float = REFRESH_MARGIN_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.provider = provider
        self.sessions = sessions
        self.refresh_margin = refresh_margin
        self._clock = clock
        self._pending: Set[asyncio.Task[None]] = set()
        self._refresh_task: Optional[asyncio.Task[None]] = None

    def submit(self, token: str) -> None:
        """Start exchanging ``token`` on the running loop and return immediately."""
        task = asyncio.get_running_loop().create_task(self._exchange(token))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def shutdown(self) -> None:
        self._cancel_refresh()
        for task in list(self._pending):
            task.cancel()
        await self.drain()

    async def _exchange(self, token: str) -> None:
        try:
            session = await self.provider.exchange_credential(token)
        except CredentialExchangeError as exc:
            logger.error(
                "Error signing in with user %s: %s (%s)",
                exc.email,
                exc.message,
                exc.code,
                extra={"error_code": exc.code, "email": exc.email},
            )
            return
        self._activate(session)

    def _activate(self, session: Session) -> None:
        self.sessions.set(session)
        self._cancel_refresh()
        if not session.refreshable:
            return
        assert session.expires_at is not None
        delay = (session.expires_at - self._clock()).total_seconds() - self.refresh_margin
        self._refresh_task = asyncio.get_running_loop().create_task(
            self._refresh_later(session, max(delay, 0.0))
        )

    async def _refresh_later(self, session: Session, delay: float) -> None:
        await asyncio.sleep(delay)
        self._refresh_task = None
        if self.sessions.get() is not session:
            return
        try:
            refreshed = await self.provider.refresh_session(session)
        except CredentialExchangeError as exc:
            logger.error(
                "Error refreshing session for user %s: %s (%s)",
                session.email,
                exc.message,
                exc.code,
                extra={"uid": session.uid, "error_code": exc.code},
            )
            return
        if self.sessions.get() is not session:
            return
        logger.debug("Refreshed session token", extra={"uid": session.uid})
        self._activate(refreshed)

    def _cancel_refresh(self) -> None:
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            self._refresh_task = None


def log_session_change(session: Optional[Session]) -> None:
    if session is not None:
        logger.info("Signed in to identity provider", extra={"uid": session.uid})
    else:
        logger.info("No user signed in")
