from __future__ import annotations

import asyncio
import json
from typing import List

import httpx

from app.schemas import SensorEventRecord
from datastore.firebase_rtdb import FirebaseRealtimeDatabase


def _database(handler, requests: List[httpx.Request]) -> FirebaseRealtimeDatabase:
    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
    return FirebaseRealtimeDatabase(
        database_url="https://example.firebaseio.com/", client=client
    )


def _push_and_drain(database: FirebaseRealtimeDatabase, auth_token=None) -> str:
    async def scenario() -> str:
        key = database.push(
            "sensorevents/u1",
            SensorEventRecord(value="foo-sensor-value", time="2024-01-01T00:00:00+00:00"),
            auth_token=auth_token,
        )
        await database.drain()
        await database.aclose()
        return key

    return asyncio.run(scenario())


def test_push_puts_record_under_generated_key() -> None:
    requests: List[httpx.Request] = []
    database = _database(lambda request: httpx.Response(200, json={}), requests)

    key = _push_and_drain(database, auth_token="id-token")

    assert len(key) == 20
    assert len(requests) == 1
    request = requests[0]
    assert request.method == "PUT"
    assert request.url.host == "example.firebaseio.com"
    assert request.url.path == f"/sensorevents/u1/{key}.json"
    assert request.url.params["auth"] == "id-token"
    assert json.loads(request.content) == {
        "value": "foo-sensor-value",
        "time": "2024-01-01T00:00:00+00:00",
    }


def test_push_without_token_sends_no_auth_param() -> None:
    requests: List[httpx.Request] = []
    database = _database(lambda request: httpx.Response(200, json={}), requests)

    _push_and_drain(database)

    assert "auth" not in requests[0].url.params


def test_failed_write_is_not_reported_to_caller() -> None:
    requests: List[httpx.Request] = []
    database = _database(
        lambda request: httpx.Response(401, json={"error": "Permission denied"}), requests
    )

    key = _push_and_drain(database, auth_token="id-token")

    assert key
    assert len(requests) == 1
