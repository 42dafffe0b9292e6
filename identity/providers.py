"""Identity providers that exchange an identity token for a session."""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlencode

import httpx

from models.records import Session

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1"
GOOGLE_PROVIDER_ID = "google.com"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialExchangeError(Exception):
    """Raised when the provider refuses or cannot process a credential."""

    def __init__(self, code: str, message: str, email: Optional[str] = None) -> None:
        super().__init__(f"{message} ({code})")
        self.code = code
        self.message = message
        self.email = email


class IdentityProvider(ABC):
    @abstractmethod
    async def exchange_credential(self, token: str) -> Session:
        """Exchange a Google identity token for a session."""
        ...

    async def refresh_session(self, session: Session) -> Session:
        """Return ``session`` with fresh token material; sessions without any stay as is."""
        return session

    async def aclose(self) -> None:
        return None


class MockIdentityProvider(IdentityProvider):
    """Offline provider.

    With ``accounts`` only the listed tokens are accepted; without it any
    non-empty token signs in as a user whose uid is derived from the token.
    """

    def __init__(self, accounts: Optional[Mapping[str, Session]] = None) -> None:
        self._accounts = dict(accounts) if accounts is not None else None

    async def exchange_credential(self, token: str) -> Session:
        if self._accounts is not None:
            session = self._accounts.get(token)
            if session is None:
                raise CredentialExchangeError(
                    "auth/invalid-credential", "Unknown identity token."
                )
            return session

        if not token.strip():
            raise CredentialExchangeError(
                "auth/invalid-credential", "Identity token is empty."
            )
        digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
        return Session(uid=digest[:28])


class FirebaseIdentityProvider(IdentityProvider):
    """Sign in with a Google credential through the Identity Toolkit REST API."""

    def __init__(
        self,
        api_key: str,
        auth_domain: str,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = IDENTITY_TOOLKIT_URL,
        token_url: str = SECURE_TOKEN_URL,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.api_key = api_key
        self.auth_domain = auth_domain
        self.base_url = base_url.rstrip("/")
        self.token_url = token_url.rstrip("/")
        self._clock = clock
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def exchange_credential(self, token: str) -> Session:
        payload = {
            "postBody": urlencode({"id_token": token, "providerId": GOOGLE_PROVIDER_ID}),
            "requestUri": f"https://{self.auth_domain}",
            "returnSecureToken": True,
            "returnIdpCredential": True,
        }
        try:
            response = await self._client.post(
                f"{self.base_url}/accounts:signInWithIdp",
                params={"key": self.api_key},
                json=payload,
            )
        except httpx.HTTPError as exc:
            raise CredentialExchangeError("auth/network-request-failed", str(exc)) from exc

        data = self._json_body(response)
        if response.is_error:
            raise self._error_from_payload(response.status_code, data)

        if data.get("needConfirmation"):
            raise CredentialExchangeError(
                "auth/account-exists-with-different-credential",
                "An account already exists with the same email address "
                "but different sign-in credentials.",
                email=data.get("email"),
            )

        uid = data.get("localId")
        if not isinstance(uid, str) or not uid:
            raise CredentialExchangeError(
                "auth/internal-error", "Sign-in response did not include a user id."
            )
        return Session(
            uid=uid,
            email=data.get("email"),
            id_token=data.get("idToken"),
            refresh_token=data.get("refreshToken"),
            expires_at=self._expiry(data.get("expiresIn")),
        )

    async def refresh_session(self, session: Session) -> Session:
        if session.refresh_token is None:
            return session
        try:
            response = await self._client.post(
                f"{self.token_url}/token",
                params={"key": self.api_key},
                data={"grant_type": "refresh_token", "refresh_token": session.refresh_token},
            )
        except httpx.HTTPError as exc:
            raise CredentialExchangeError("auth/network-request-failed", str(exc)) from exc

        data = self._json_body(response)
        if response.is_error:
            raise self._error_from_payload(response.status_code, data)

        id_token = data.get("id_token")
        if not isinstance(id_token, str) or not id_token:
            raise CredentialExchangeError(
                "auth/internal-error", "Token refresh response did not include an id token."
            )
        return replace(
            session,
            id_token=id_token,
            refresh_token=data.get("refresh_token") or session.refresh_token,
            expires_at=self._expiry(data.get("expires_in")),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _expiry(self, expires_in: Any) -> Optional[datetime]:
        try:
            seconds = int(expires_in)
        except (TypeError, ValueError):
            return None
        return self._clock() + timedelta(seconds=seconds)

    @staticmethod
    def _json_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _error_from_payload(status_code: int, data: Dict[str, Any]) -> CredentialExchangeError:
        error = data.get("error")
        if not isinstance(error, dict):
            error = {}
        message = str(error.get("message") or f"HTTP {status_code}")
        code = message.split(" : ", 1)[0].strip() or "auth/internal-error"
        return CredentialExchangeError(code, message, email=data.get("email"))
