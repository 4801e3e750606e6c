"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends

from recipebox.auth import AccessTokenDecoder, GoogleTokenVerifier, IdentityResolver
from recipebox.config import Settings, get_settings
from recipebox.db import InMemoryDbClient, PostgresDbClient, RecipeDbClient

logger = logging.getLogger(__name__)

_db_client: RecipeDbClient | None = None


def get_db_client() -> RecipeDbClient:
    """
    Return a singleton DB client so in-memory recipes persist across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        logger.info("Using in-memory recipe store")
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_token_verifier(
    settings: Settings = Depends(get_settings),
) -> GoogleTokenVerifier:
    return GoogleTokenVerifier(
        client_id=settings.google_client_id,
        tokeninfo_url=settings.google_tokeninfo_url,
        timeout=settings.google_request_timeout,
    )


@lru_cache(maxsize=4)
def _access_decoder(
    require_signature: bool, team_domain: str | None, audience: str | None
) -> AccessTokenDecoder:
    # Cached so the JWKS client keeps its fetched keys between requests.
    return AccessTokenDecoder(
        require_signature=require_signature,
        team_domain=team_domain,
        audience=audience,
    )


def get_access_decoder(
    settings: Settings = Depends(get_settings),
) -> AccessTokenDecoder:
    return _access_decoder(
        settings.require_verified_access_jwt,
        settings.access_team_domain,
        settings.access_audience,
    )


def get_identity_resolver(
    verifier: GoogleTokenVerifier = Depends(get_token_verifier),
    access_decoder: AccessTokenDecoder = Depends(get_access_decoder),
) -> IdentityResolver:
    return IdentityResolver(verifier, access_decoder)
