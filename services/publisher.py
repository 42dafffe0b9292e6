"""Periodic publishing of simulated sensor events."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from app.schemas import SensorEventRecord
from datastore.base import RealtimeDatabase
from identity.session import SessionStore
from settings import PUBLISH_INTERVAL_SECONDS, SENSOR_VALUE

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SensorEventPublisher:
    """Appends one sensor event per tick for whichever user is signed in."""

    def __init__(
        self,
        sessions: SessionStore,
        database: RealtimeDatabase,
        interval: float = PUBLISH_INTERVAL_SECONDS,
        sensor_value: str = SENSOR_VALUE,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.sessions = sessions
        self.database = database
        self.interval = interval
        self.sensor_value = sensor_value
        self._clock = clock

    def tick(self) -> Optional[str]:
        """Publish a single event; returns the new key, or ``None`` when signed out."""
        logger.info("Sensor event")

        session = self.sessions.get()
        if session is None:
            return None

        record = SensorEventRecord(value=self.sensor_value, time=self._clock().isoformat())
        path = session.events_path
        key = self.database.push(path, record, auth_token=session.id_token)
        logger.info(
            "Added new item to database",
            extra={"uid": session.uid, "path": path, "event_key": key},
        )
        return key

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.tick()
            except Exception:
                logger.exception("Sensor event was not published")
