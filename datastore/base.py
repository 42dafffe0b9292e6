from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from app.schemas import SensorEventRecord


class RealtimeDatabase(ABC):
    """Append-only view of a hierarchical realtime database."""

    @abstractmethod
    def push(
        self,
        path: str,
        record: SensorEventRecord,
        auth_token: Optional[str] = None,
    ) -> str:
        """Append ``record`` under ``path`` and return its freshly generated key.

        The key is available immediately; whether the write eventually lands
        is not reported back to the caller.
        """

    async def aclose(self) -> None:
        return None


def normalize_path(path: str) -> str:
    normalized = "/".join(part for part in path.split("/") if part)
    if not normalized:
        raise ValueError("Database path must not be empty.")
    return normalized
