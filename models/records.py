"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True, slots=True)
class Session:
    """An authenticated user session issued by the identity provider.

    Two sessions compare equal when they belong to the same user; refreshing
    the token material does not make a session "change".
    """

    uid: str
    email: Optional[str] = None
    id_token: Optional[str] = field(default=None, compare=False)
    refresh_token: Optional[str] = field(default=None, compare=False, repr=False)
    expires_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def events_path(self) -> str:
        return f"sensorevents/{self.uid}"

    @property
    def refreshable(self) -> bool:
        return self.refresh_token is not None and self.expires_at is not None
