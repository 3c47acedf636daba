"""
Google OAuth helpers.

Turns a resolved credential into bearer tokens for the Drive API:
- service_account: RS256-signed JWT bearer grant, cached until near expiry
- oauth_token: saved token file, refreshed when expired if it carries refresh material
- access_token: static bearer token
"""

import asyncio
import base64
import json
import time
from typing import Any, Callable, Dict, Optional

import httpx
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from storage_mcp.auth import Credential
from storage_mcp.mcp_types import BackendError

DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"

# Refresh this many seconds before the token actually expires
EXPIRY_MARGIN = 60


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def sign_jwt(claims: Dict[str, Any], private_key_pem: str, key_id: Optional[str] = None) -> str:
    """Build a compact RS256 JWT."""
    header = {"alg": "RS256", "typ": "JWT"}
    if key_id:
        header["kid"] = key_id

    signing_input = ".".join([
        _b64url(json.dumps(header, separators=(",", ":")).encode("utf-8")),
        _b64url(json.dumps(claims, separators=(",", ":")).encode("utf-8")),
    ])

    key = serialization.load_pem_private_key(private_key_pem.encode("utf-8"), password=None)
    signature = key.sign(signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256())
    return f"{signing_input}.{_b64url(signature)}"


class Authorizer:
    """Supplies the Authorization header for Drive requests."""

    async def authorization(self, http: httpx.AsyncClient) -> str:
        raise NotImplementedError


class StaticTokenAuthorizer(Authorizer):

    def __init__(self, token: str):
        self._token = token

    async def authorization(self, http: httpx.AsyncClient) -> str:
        return f"Bearer {self._token}"


class _RefreshingAuthorizer(Authorizer):
    """Caches an access token and fetches a new one when it expires."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = asyncio.Lock()
        self._token: Optional[str] = None
        self._expires_at = 0.0

    async def authorization(self, http: httpx.AsyncClient) -> str:
        async with self._lock:
            if self._token is None or self._clock() >= self._expires_at - EXPIRY_MARGIN:
                await self._refresh(http)
        return f"Bearer {self._token}"

    async def _refresh(self, http: httpx.AsyncClient) -> None:
        raise NotImplementedError

    async def _exchange(self, http: httpx.AsyncClient, token_uri: str, data: Dict[str, str]) -> None:
        try:
            response = await http.post(token_uri, data=data)
        except httpx.RequestError as e:
            raise BackendError(f"Failed to reach Google token endpoint: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        if response.status_code >= 400 or "access_token" not in body:
            reason = body.get("error_description") or body.get("error") or f"HTTP {response.status_code}"
            raise BackendError(f"Google token request failed: {reason}", status=response.status_code)

        self._token = body["access_token"]
        self._expires_at = self._clock() + float(body.get("expires_in", 3600))


class ServiceAccountAuthorizer(_RefreshingAuthorizer):

    def __init__(self, info: Dict[str, Any], scope: str = DRIVE_SCOPE, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._info = info
        self._scope = scope

    async def _refresh(self, http: httpx.AsyncClient) -> None:
        token_uri = self._info.get("token_uri") or DEFAULT_TOKEN_URI
        issued_at = int(self._clock())
        assertion = sign_jwt(
            {
                "iss": self._info["client_email"],
                "scope": self._scope,
                "aud": token_uri,
                "iat": issued_at,
                "exp": issued_at + 3600,
            },
            self._info["private_key"],
            self._info.get("private_key_id"),
        )
        await self._exchange(http, token_uri, {"grant_type": JWT_BEARER_GRANT, "assertion": assertion})


class OAuthTokenAuthorizer(_RefreshingAuthorizer):

    def __init__(self, token: Dict[str, Any], clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._saved = token
        self._token = token.get("access_token")
        # Saved token files store expiry_date in epoch milliseconds
        expiry_ms = token.get("expiry_date")
        self._expires_at = float(expiry_ms) / 1000 if expiry_ms else float("inf")

    @property
    def can_refresh(self) -> bool:
        return all(self._saved.get(key) for key in ("refresh_token", "client_id", "client_secret"))

    async def _refresh(self, http: httpx.AsyncClient) -> None:
        if not self.can_refresh:
            if self._token is None:
                raise BackendError("OAuth token file has no access_token and cannot be refreshed")
            # Expired and not refreshable; let the API report it.
            return
        await self._exchange(http, self._saved.get("token_uri") or DEFAULT_TOKEN_URI, {
            "grant_type": "refresh_token",
            "refresh_token": self._saved["refresh_token"],
            "client_id": self._saved["client_id"],
            "client_secret": self._saved["client_secret"],
        })


def authorizer_for(credential: Credential) -> Authorizer:
    """Pick the authorizer matching a resolved credential."""
    if credential.kind == "service_account":
        return ServiceAccountAuthorizer(credential.secret)
    if credential.kind == "oauth_token":
        return OAuthTokenAuthorizer(credential.secret)
    if credential.kind == "access_token":
        return StaticTokenAuthorizer(credential.secret)
    raise ValueError(f"Unsupported Google credential kind: {credential.kind}")
