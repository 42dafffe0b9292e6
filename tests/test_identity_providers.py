"""Tests for the identity provider collaborators."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import List
from urllib.parse import parse_qs

import httpx
import pytest

from identity.providers import (
    CredentialExchangeError,
    FirebaseIdentityProvider,
    MockIdentityProvider,
)
from models.records import Session


FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _firebase_provider(handler, requests: List[httpx.Request]) -> FirebaseIdentityProvider:
    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
    return FirebaseIdentityProvider(
        api_key="test-key",
        auth_domain="example.firebaseapp.com",
        client=client,
        clock=lambda: FIXED_NOW,
    )


def _exchange(provider, token: str) -> Session:
    async def scenario() -> Session:
        try:
            return await provider.exchange_credential(token)
        finally:
            await provider.aclose()

    return asyncio.run(scenario())


def test_mock_provider_with_accounts_accepts_only_known_tokens() -> None:
    provider = MockIdentityProvider(accounts={"tok123": Session(uid="u1")})

    assert _exchange(provider, "tok123") == Session(uid="u1")
    with pytest.raises(CredentialExchangeError) as excinfo:
        _exchange(provider, "other")
    assert excinfo.value.code == "auth/invalid-credential"


def test_mock_provider_derives_stable_uid() -> None:
    provider = MockIdentityProvider()

    first = _exchange(provider, "some-token")
    second = _exchange(provider, "some-token")
    other = _exchange(provider, "another-token")

    assert first == second
    assert len(first.uid) == 28
    assert other.uid != first.uid


def test_mock_provider_rejects_empty_token() -> None:
    with pytest.raises(CredentialExchangeError):
        _exchange(MockIdentityProvider(), "   ")


def test_firebase_provider_signs_in_with_google_credential() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "localId": "u1",
                "email": "user@example.com",
                "idToken": "firebase-id-token",
                "refreshToken": "firebase-refresh-token",
                "expiresIn": "3600",
            },
        )

    session = _exchange(_firebase_provider(handler, requests), "google-token")

    assert session == Session(uid="u1", email="user@example.com", id_token="firebase-id-token")
    assert session.id_token == "firebase-id-token"
    assert session.refresh_token == "firebase-refresh-token"
    assert session.expires_at == FIXED_NOW + timedelta(hours=1)
    assert session.refreshable
    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/accounts:signInWithIdp"
    assert request.url.params["key"] == "test-key"
    body = json.loads(request.content)
    assert parse_qs(body["postBody"]) == {
        "id_token": ["google-token"],
        "providerId": ["google.com"],
    }
    assert body["requestUri"] == "https://example.firebaseapp.com"
    assert body["returnSecureToken"] is True


def test_firebase_provider_maps_error_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"error": {"code": 400, "message": "INVALID_IDP_RESPONSE : Invalid Idp Response"}},
        )

    with pytest.raises(CredentialExchangeError) as excinfo:
        _exchange(_firebase_provider(handler, []), "expired")

    assert excinfo.value.code == "INVALID_IDP_RESPONSE"
    assert excinfo.value.message == "INVALID_IDP_RESPONSE : Invalid Idp Response"
    assert excinfo.value.email is None


def test_firebase_provider_reports_conflicting_account_email() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"needConfirmation": True, "email": "dup@example.com"})

    with pytest.raises(CredentialExchangeError) as excinfo:
        _exchange(_firebase_provider(handler, []), "google-token")

    assert excinfo.value.code == "auth/account-exists-with-different-credential"
    assert excinfo.value.email == "dup@example.com"


def test_firebase_provider_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(CredentialExchangeError) as excinfo:
        _exchange(_firebase_provider(handler, []), "google-token")

    assert excinfo.value.code == "auth/network-request-failed"


def test_firebase_provider_requires_user_id() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"email": "user@example.com"})

    with pytest.raises(CredentialExchangeError) as excinfo:
        _exchange(_firebase_provider(handler, []), "google-token")

    assert excinfo.value.code == "auth/internal-error"


def _refresh(provider, session: Session) -> Session:
    async def scenario() -> Session:
        try:
            return await provider.refresh_session(session)
        finally:
            await provider.aclose()

    return asyncio.run(scenario())


def test_firebase_provider_refreshes_id_token() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "id_token": "fresh-id-token",
                "refresh_token": "next-refresh-token",
                "expires_in": "3600",
                "user_id": "u1",
            },
        )

    stale = Session(
        uid="u1",
        email="user@example.com",
        id_token="stale-id-token",
        refresh_token="firebase-refresh-token",
        expires_at=FIXED_NOW - timedelta(minutes=1),
    )
    refreshed = _refresh(_firebase_provider(handler, requests), stale)

    assert refreshed == stale
    assert refreshed.id_token == "fresh-id-token"
    assert refreshed.refresh_token == "next-refresh-token"
    assert refreshed.expires_at == FIXED_NOW + timedelta(hours=1)
    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert request.url.host == "securetoken.googleapis.com"
    assert request.url.path == "/v1/token"
    assert request.url.params["key"] == "test-key"
    assert parse_qs(request.content.decode()) == {
        "grant_type": ["refresh_token"],
        "refresh_token": ["firebase-refresh-token"],
    }


def test_firebase_provider_maps_refresh_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"code": 400, "message": "TOKEN_EXPIRED"}})

    session = Session(uid="u1", refresh_token="revoked", expires_at=FIXED_NOW)

    with pytest.raises(CredentialExchangeError) as excinfo:
        _refresh(_firebase_provider(handler, []), session)

    assert excinfo.value.code == "TOKEN_EXPIRED"


def test_firebase_provider_skips_refresh_without_refresh_token() -> None:
    requests: List[httpx.Request] = []
    session = Session(uid="u1", id_token="only-token")

    provider = _firebase_provider(lambda request: httpx.Response(500), requests)

    assert _refresh(provider, session) is session
    assert requests == []
