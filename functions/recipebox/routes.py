"""
HTTP routes for the recipe API.
"""

from __future__ import annotations

import logging
import re

import requests
from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from recipebox.auth import (
    GoogleTokenVerifier,
    IdentityResolver,
    TokenVerificationError,
)
from recipebox.db import RecipeDbClient
from recipebox.dependencies import (
    get_db_client,
    get_identity_resolver,
    get_token_verifier,
)
from recipebox.errors import (
    ClientError,
    NotFoundError,
    UnauthorizedError,
    UpstreamFailure,
)
from recipebox.recipes import has_title, resolve_title, to_detail, to_summary
from recipebox.schemas import (
    RecipeCreatedResponse,
    RecipeListResponse,
    UserInfo,
    VerifyGoogleResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Malformed details JSON surfaces as ValueError when a row is read back.
STORAGE_ERRORS = (SQLAlchemyError, ValueError)

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}
PREFLIGHT_HEADERS = {
    **CORS_HEADERS,
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
NO_STORE_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate, private"}

# Ids are positive and must fit the 32-bit integer primary key.
RECIPE_ID_PATTERN = re.compile(r"\+?[0-9]+")
MAX_RECIPE_ID = 2**31 - 1


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("CF-Connecting-IP") or request.headers.get(
        "X-Forwarded-For"
    )
    if forwarded:
        return forwarded
    return request.client.host if request.client else "unknown"


async def _read_recipe_payload(request: Request) -> dict:
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            payload = await request.json()
        except ValueError as exc:
            raise ClientError("Invalid JSON body") from exc
        if not isinstance(payload, dict):
            raise ClientError("Recipe payload must be a JSON object")
        return payload
    if "application/x-www-form-urlencoded" in content_type:
        form = await request.form()
        return dict(form.items())
    raise ClientError("Unsupported content type")


def _parse_recipe_id(raw_id: str) -> int | None:
    if not RECIPE_ID_PATTERN.fullmatch(raw_id):
        return None
    recipe_id = int(raw_id)
    if not 0 < recipe_id <= MAX_RECIPE_ID:
        return None
    return recipe_id


def _fetch_recipe(db: RecipeDbClient, raw_id: str) -> dict:
    recipe_id = _parse_recipe_id(raw_id)
    if recipe_id is None:
        raise NotFoundError("Recipe not found")

    try:
        record = db.get_recipe(recipe_id)
    except STORAGE_ERRORS as exc:
        logger.exception("Failed to fetch recipe %s", recipe_id)
        raise UpstreamFailure("Failed to fetch recipe", details=str(exc)) from exc
    if record is None:
        raise NotFoundError("Recipe not found")
    return to_detail(record)


@router.post("/recipes", response_model=RecipeCreatedResponse, status_code=201)
async def submit_recipe(
    request: Request,
    response: Response,
    db: RecipeDbClient = Depends(get_db_client),
):
    """
    Store a recipe sent as JSON or as a url-encoded form.
    """
    payload = await _read_recipe_payload(request)
    if not has_title(payload):
        raise ClientError("Recipe name, title, or recipeName is required")

    title = resolve_title(payload)
    try:
        record = db.create_recipe(title, payload)
    except SQLAlchemyError as exc:
        logger.exception("Failed to save recipe %r", title)
        raise UpstreamFailure("Failed to save recipe", details=str(exc)) from exc

    logger.info("Saved recipe %d (%s)", record.id, title)
    response.headers.update(CORS_HEADERS)
    return RecipeCreatedResponse(id=record.id)


@router.get("/recipes", response_model=None)
def list_recipes(
    response: Response,
    recipe_id: str | None = Query(None, alias="id"),
    db: RecipeDbClient = Depends(get_db_client),
):
    """
    List recipe summaries, newest first. With ``id``, return that recipe.
    """
    response.headers.update(CORS_HEADERS)
    if recipe_id:
        return _fetch_recipe(db, recipe_id)

    try:
        records = db.list_recipes()
    except STORAGE_ERRORS as exc:
        logger.exception("Failed to fetch recipes")
        raise UpstreamFailure("Failed to fetch recipes", details=str(exc)) from exc

    recipes = [to_summary(record) for record in records]
    return RecipeListResponse(count=len(recipes), recipes=recipes)


@router.options("/recipes")
def recipes_preflight():
    return Response(status_code=204, headers=PREFLIGHT_HEADERS)


@router.get("/recipe", response_model=None)
def get_recipe(
    response: Response,
    recipe_id: str | None = Query(None, alias="id"),
    db: RecipeDbClient = Depends(get_db_client),
):
    if not recipe_id:
        raise ClientError("Recipe ID is required")
    response.headers.update(CORS_HEADERS)
    return _fetch_recipe(db, recipe_id)


@router.get("/auth/me", response_model=UserInfo)
def auth_me(
    request: Request,
    response: Response,
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    """
    Return the signed-in user from a bearer token or session cookies.
    """
    logger.info("GET /auth/me from %s", _client_ip(request))
    identity = resolver.resolve(
        request.headers.get("authorization"), request.headers.get("cookie")
    )
    if identity is None:
        logger.info("No valid authentication found")
        raise UnauthorizedError(
            "Unauthenticated",
            extra={"message": "No valid authentication credentials found"},
            headers=NO_STORE_HEADERS,
        )

    logger.info("Resolved %s via %s", identity.email, identity.source)
    response.headers.update(NO_STORE_HEADERS)
    return UserInfo(**identity.as_dict())


async def _read_token(request: Request) -> str:
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    token = payload.get("token") if isinstance(payload, dict) else None
    if not token or not isinstance(token, str):
        raise ClientError("No token provided", extra={"success": False})
    return token


@router.post("/verify-google", response_model=VerifyGoogleResponse)
async def verify_google(
    request: Request,
    verifier: GoogleTokenVerifier = Depends(get_token_verifier),
):
    logger.info("POST /verify-google from %s", _client_ip(request))
    token = await _read_token(request)

    try:
        identity = await run_in_threadpool(verifier.verify, token)
    except TokenVerificationError as exc:
        logger.info("Google token rejected: %s", exc)
        raise UnauthorizedError(
            f"Invalid token: {exc}", extra={"success": False}
        ) from exc
    except (requests.RequestException, ValueError) as exc:
        logger.exception("Google token verification failed")
        raise UpstreamFailure(
            f"Server error during verification: {exc}", extra={"success": False}
        ) from exc

    logger.info("Verified Google token for %s", identity.email)
    return VerifyGoogleResponse(user=UserInfo(**identity.as_dict()))
