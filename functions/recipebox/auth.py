"""
Identity resolution for ``/api/auth/me`` and ``/api/verify-google``.

A request may carry one of three credentials, tried in this order:

1. ``Authorization: Bearer <google id token>``
2. a Cloudflare Access JWT in the ``CF_Authorization`` cookie
3. a Google id token in the ``google_token`` or ``authToken`` cookie

Google tokens are checked against the tokeninfo endpoint. The Access JWT is
only base64-decoded: the edge in front of the app is trusted to have
validated it. Set ``require_verified_access_jwt`` to check its signature
against the team's JWKS instead.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

import jwt
import requests
from jwt.utils import base64url_decode

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds

BEARER_PREFIX = "Bearer "
ACCESS_JWT_COOKIE = "CF_Authorization"
TOKEN_COOKIES = ("google_token", "authToken")

SOURCE_BEARER = "bearer"
SOURCE_ACCESS_JWT = "access_jwt"
SOURCE_COOKIE_TOKEN = "cookie_token"


class TokenVerificationError(Exception):
    """The identity provider rejected the token."""


@dataclass
class Identity:
    email: str
    name: str
    picture: Optional[str] = None
    email_verified: bool = False
    source: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "email": self.email,
            "name": self.name,
            "picture": self.picture,
            "email_verified": self.email_verified,
        }


def _as_bool(value: Any) -> bool:
    # tokeninfo reports booleans as the strings "true"/"false".
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def identity_from_claims(
    claims: dict, *, source: str, force_verified: bool = False
) -> Identity:
    email = claims.get("email") or claims.get("sub") or "unknown@user"
    name = (
        claims.get("name")
        or claims.get("given_name")
        or claims.get("family_name")
        or claims.get("email")
        or "User"
    )
    picture = claims.get("picture")
    # Claims are echoed back as strings whatever JSON type they arrived as.
    return Identity(
        email=str(email),
        name=str(name),
        picture=str(picture) if picture else None,
        email_verified=True if force_verified else _as_bool(claims.get("email_verified")),
        source=source,
    )


def extract_cookie(cookie_header: Optional[str], name: str) -> Optional[str]:
    """Return the raw value of cookie ``name``, or None."""
    if not cookie_header:
        return None
    match = re.search(
        rf"(^|;)\s*{re.escape(name)}\s*=\s*([^;]+)", cookie_header
    )
    return match.group(2) if match else None


class GoogleTokenVerifier:
    """Verifies Google id tokens with the tokeninfo endpoint."""

    def __init__(
        self,
        client_id: Optional[str],
        tokeninfo_url: str = "https://oauth2.googleapis.com/tokeninfo",
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.client_id = client_id
        self.tokeninfo_url = tokeninfo_url
        self.timeout = timeout

    def verify(self, token: str, *, source: str = SOURCE_BEARER) -> Identity:
        """
        Returns the identity for a valid token.

        Raises:
            TokenVerificationError: if Google rejects the token or it was
                issued for another client.
            requests.RequestException, ValueError: if tokeninfo cannot be
                reached or does not answer with JSON.
        """
        response = requests.get(
            self.tokeninfo_url,
            params={"id_token": token},
            timeout=self.timeout,
        )
        data = response.json()
        if not isinstance(data, dict):
            raise TokenVerificationError("unexpected tokeninfo response")
        if data.get("error"):
            raise TokenVerificationError(str(data["error"]))
        if not response.ok:
            raise TokenVerificationError(f"tokeninfo returned {response.status_code}")
        if not self.client_id or data.get("aud") != self.client_id:
            raise TokenVerificationError("client ID mismatch")
        return identity_from_claims(data, source=source)


class AccessTokenDecoder:
    """Reads identity claims from a Cloudflare Access JWT."""

    def __init__(
        self,
        *,
        require_signature: bool = False,
        team_domain: Optional[str] = None,
        audience: Optional[str] = None,
    ):
        self.require_signature = require_signature
        self.audience = audience
        self._jwks_client = None
        if require_signature:
            if not team_domain or not audience:
                raise ValueError(
                    "ACCESS_TEAM_DOMAIN and ACCESS_AUDIENCE are required "
                    "when REQUIRE_VERIFIED_ACCESS_JWT is set"
                )
            self._jwks_client = jwt.PyJWKClient(
                f"https://{team_domain}/cdn-cgi/access/certs"
            )

    def decode(self, token: str) -> Optional[Identity]:
        claims = (
            self._verified_claims(token)
            if self.require_signature
            else self._unverified_claims(token)
        )
        if claims is None:
            return None
        return identity_from_claims(
            claims, source=SOURCE_ACCESS_JWT, force_verified=True
        )

    def _unverified_claims(self, token: str) -> Optional[dict]:
        parts = token.split(".")
        if len(parts) != 3:
            logger.debug("Access JWT has %d segments, expected 3", len(parts))
            return None
        try:
            claims = json.loads(base64url_decode(parts[1]))
        except (ValueError, TypeError) as exc:
            logger.warning("Could not decode Access JWT payload: %s", exc)
            return None
        return claims if isinstance(claims, dict) else None

    def _verified_claims(self, token: str) -> Optional[dict]:
        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
            return jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.audience,
            )
        except jwt.PyJWTError as exc:
            logger.warning("Access JWT failed verification: %s", exc)
            return None


class IdentityResolver:
    """Tries each credential in order and returns the first identity found."""

    def __init__(self, verifier: GoogleTokenVerifier, access_decoder: AccessTokenDecoder):
        self.verifier = verifier
        self.access_decoder = access_decoder

    def _try_google(self, token: str, source: str) -> Optional[Identity]:
        try:
            return self.verifier.verify(token, source=source)
        except TokenVerificationError as exc:
            logger.info("Google token from %s rejected: %s", source, exc)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Google token from %s could not be verified: %s", source, exc)
        return None

    def resolve(
        self, authorization: Optional[str], cookie_header: Optional[str]
    ) -> Optional[Identity]:
        if authorization and authorization.startswith(BEARER_PREFIX):
            identity = self._try_google(
                authorization[len(BEARER_PREFIX):], SOURCE_BEARER
            )
            if identity:
                return identity

        if not cookie_header:
            return None

        access_jwt = extract_cookie(cookie_header, ACCESS_JWT_COOKIE)
        if access_jwt:
            identity = self.access_decoder.decode(access_jwt)
            if identity:
                return identity

        token = None
        for name in TOKEN_COOKIES:
            token = extract_cookie(cookie_header, name)
            if token:
                break
        if token:
            return self._try_google(token, SOURCE_COOKIE_TOKEN)
        return None
