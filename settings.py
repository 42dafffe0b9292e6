from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


PUBLISH_INTERVAL_SECONDS = 15.0
SENSOR_VALUE = "foo-sensor-value"

BACKEND_MOCK = "mock"
BACKEND_FIREBASE = "firebase"
_BACKENDS = (BACKEND_MOCK, BACKEND_FIREBASE)

_HOST_ENV = "GATEWAY_HOST"
_PORT_ENV = "GATEWAY_PORT"
_BACKEND_ENV = "GATEWAY_BACKEND"
_API_KEY_ENV = "FIREBASE_API_KEY"
_AUTH_DOMAIN_ENV = "FIREBASE_AUTH_DOMAIN"
_DATABASE_URL_ENV = "FIREBASE_DATABASE_URL"
_DATABASE_NAME_ENV = "MOCK_DATABASE_NAME"
_DATABASE_PATH_ENV = "MOCK_DATABASE_PERSISTENCE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    listen_host: str
    listen_port: int
    backend: str
    api_key: str
    auth_domain: str
    database_url: str
    database_name: str
    database_persistence_path: Optional[str]
    log_level: str
    publish_interval: float = PUBLISH_INTERVAL_SECONDS
    sensor_value: str = SENSOR_VALUE


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_port(default: int) -> int:
    value = os.getenv(_PORT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 < parsed < 65536 else default


def _read_backend(default: str) -> str:
    candidate = _read_str_env(_BACKEND_ENV, default).lower()
    return candidate if candidate in _BACKENDS else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        listen_host=_read_str_env(_HOST_ENV, "localhost"),
        listen_port=_read_port(8080),
        backend=_read_backend(BACKEND_MOCK),
        api_key=_read_str_env(_API_KEY_ENV, "abcdefghijklmnopqrstuvwxyz1234567890"),
        auth_domain=_read_str_env(_AUTH_DOMAIN_ENV, "fieryiot-12345.firebaseapp.com"),
        database_url=_read_str_env(
            _DATABASE_URL_ENV, "https://fieryiot-12345.firebaseio.com"
        ).rstrip("/"),
        database_name=_read_str_env(_DATABASE_NAME_ENV, "sensorevents"),
        database_persistence_path=_read_optional_env(
            _DATABASE_PATH_ENV, "./tmp/mock_rtdb.jsonl"
        ),
        log_level=_read_log_level("INFO"),
    )
