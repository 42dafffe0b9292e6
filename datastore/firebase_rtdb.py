"""Realtime database client speaking the Firebase REST protocol."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Set

import httpx

from app.schemas import SensorEventRecord
from datastore.base import RealtimeDatabase, normalize_path
from datastore.push_ids import PushIdGenerator

logger = logging.getLogger(__name__)


class FirebaseRealtimeDatabase(RealtimeDatabase):
    """Append records with a locally generated key and a background ``PUT``.

    The write is dispatched without awaiting its outcome; failures are only
    traced at debug level.
    """

    def __init__(
        self,
        database_url: str,
        client: Optional[httpx.AsyncClient] = None,
        key_generator: Optional[Callable[[], str]] = None,
    ) -> None:
        self.database_url = database_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=30.0)
        self._next_key = key_generator or PushIdGenerator()
        self._pending: Set[asyncio.Task[None]] = set()

    def push(
        self,
        path: str,
        record: SensorEventRecord,
        auth_token: Optional[str] = None,
    ) -> str:
        node_path = normalize_path(path)
        key = self._next_key()
        url = f"{self.database_url}/{node_path}/{key}.json"
        task = asyncio.get_running_loop().create_task(
            self._write(url, record.model_dump(mode="json"), auth_token)
        )
        self._pending.add(task)
        task.add_done_callback(self._forget)
        return key

    async def drain(self) -> None:
        """Wait for every dispatched write to settle."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._pending):
            task.cancel()
        await self.drain()
        await self._client.aclose()

    async def _write(self, url: str, payload: dict, auth_token: Optional[str]) -> None:
        params = {"auth": auth_token} if auth_token else None
        response = await self._client.put(url, params=params, json=payload)
        response.raise_for_status()

    def _forget(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Database write did not complete: %s", exc)
