"""Wiring of the gateway's collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from datastore.base import RealtimeDatabase
from datastore.firebase_rtdb import FirebaseRealtimeDatabase
from datastore.mock_realtime_db import build_default_mock_database
from identity.providers import FirebaseIdentityProvider, IdentityProvider, MockIdentityProvider
from identity.session import SessionStore
from services.credentials import CredentialService
from services.publisher import SensorEventPublisher
from settings import BACKEND_FIREBASE, get_settings


@dataclass
class Gateway:
    sessions: SessionStore
    identity: IdentityProvider
    database: RealtimeDatabase
    credentials: CredentialService
    publisher: SensorEventPublisher

    async def aclose(self) -> None:
        await self.credentials.shutdown()
        await self.identity.aclose()
        await self.database.aclose()


def build_gateway(
    identity: IdentityProvider,
    database: RealtimeDatabase,
    interval: float | None = None,
) -> Gateway:
    settings = get_settings()
    sessions = SessionStore()
    return Gateway(
        sessions=sessions,
        identity=identity,
        database=database,
        credentials=CredentialService(provider=identity, sessions=sessions),
        publisher=SensorEventPublisher(
            sessions=sessions,
            database=database,
            interval=settings.publish_interval if interval is None else interval,
            sensor_value=settings.sensor_value,
        ),
    )


@lru_cache
def build_default_gateway() -> Gateway:
    """Factory that wires the gateway with the configured backend."""
    settings = get_settings()
    identity: IdentityProvider
    database: RealtimeDatabase
    if settings.backend == BACKEND_FIREBASE:
        identity = FirebaseIdentityProvider(
            api_key=settings.api_key, auth_domain=settings.auth_domain
        )
        database = FirebaseRealtimeDatabase(database_url=settings.database_url)
    else:
        identity = MockIdentityProvider()
        database = build_default_mock_database()
    return build_gateway(identity=identity, database=database)
