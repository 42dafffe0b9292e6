from __future__ import annotations

from typing import Callable, List, Optional

from models.records import Session

SessionListener = Callable[[Optional[Session]], None]


class SessionStore:
    """Holds the single process-wide session and notifies listeners on change."""

    def __init__(self, session: Optional[Session] = None) -> None:
        self._current = session
        self._listeners: List[SessionListener] = []

    def get(self) -> Optional[Session]:
        return self._current

    def set(self, session: Optional[Session]) -> None:
        """Replace the session; listeners only hear about a different user."""
        changed = session != self._current
        self._current = session
        if not changed:
            return
        for listener in list(self._listeners):
            listener(session)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener`` and call it right away with the current session."""

        self._listeners.append(listener)
        listener(self._current)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
