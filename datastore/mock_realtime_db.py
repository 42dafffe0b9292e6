from __future__ import annotations
import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional

from pydantic import ValidationError

from app.schemas import SensorEventRecord
from datastore.base import RealtimeDatabase, normalize_path
from datastore.push_ids import PushIdGenerator
from settings import get_settings

logger = logging.getLogger(__name__)


class MockRealtimeDatabase(RealtimeDatabase):

    def __init__(
        self,
        name: str,
        persistence_path: Optional[Path] = None,
        key_generator: Optional[Callable[[], str]] = None,
    ) -> None:
        self.name = name
        self._nodes: Dict[str, Dict[str, SensorEventRecord]] = {}
        self.persistence_path = persistence_path
        self._next_key = key_generator or PushIdGenerator()
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def push(
        self,
        path: str,
        record: SensorEventRecord,
        auth_token: Optional[str] = None,
    ) -> str:
        node_path = normalize_path(path)
        with self._lock:
            key = self._next_key()
            node = self._nodes.setdefault(node_path, {})
            if key in node:
                raise KeyError(f"Key {key!r} already exists under {node_path!r}.")
            node[key] = record.model_copy(deep=True)
            self._persist(node_path, key, node[key])
        logger.debug("Stored record", extra={"path": node_path, "event_key": key})
        return key

    def get(self, path: str) -> Dict[str, SensorEventRecord]:
        """Return deep copies of the records stored under ``path``, ordered by key."""

        node_path = normalize_path(path)
        with self._lock:
            node = self._nodes.get(node_path, {})
            return {key: node[key].model_copy(deep=True) for key in sorted(node)}

    def paths(self) -> list[str]:
        with self._lock:
            return sorted(path for path, node in self._nodes.items() if node)

    def _persist(self, path: str, key: str, record: SensorEventRecord) -> None:
        if not self.persistence_path:
            return
        line = json.dumps(
            {"path": path, "key": key, "record": record.model_dump(mode="json")},
            sort_keys=True,
        )
        with self.persistence_path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            lines = self.persistence_path.read_text(encoding="utf-8").splitlines()
        except OSError:
            lines = []

        for line in lines:
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
                record = SensorEventRecord.model_validate(entry["record"])
                path, key = str(entry["path"]), str(entry["key"])
            except (json.JSONDecodeError, KeyError, TypeError, ValidationError):
                logger.warning("Skipping unreadable line in %s", self.persistence_path)
                continue
            self._nodes.setdefault(path, {})[key] = record
