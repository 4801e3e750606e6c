"""
Re-shaping of recipe payloads between the front end and the store.

The front end has used three names for a recipe's title over time
(``recipeName``, ``name`` and ``title``), so every read exposes all three.
"""

from __future__ import annotations

from typing import Any, Optional

from recipebox.db import RecipeDbClient, RecipeRecord

DEFAULT_TITLE = "Untitled Recipe"
DEFAULT_AUTHOR = "Anonymous"
DESCRIPTION_PREVIEW_LENGTH = 100

# Precedence order for the stored title.
TITLE_FIELDS = ("recipeName", "name", "title")


def has_title(payload: dict) -> bool:
    return any(payload.get(key) for key in TITLE_FIELDS)


def resolve_title(payload: dict) -> str:
    for key in TITLE_FIELDS:
        value = payload.get(key)
        if value:
            return str(value)
    return DEFAULT_TITLE


def _first_present(details: dict, *keys: str) -> Optional[Any]:
    for key in keys:
        value = details.get(key)
        if value:
            return value
    return None


def _preview(description: Any) -> Optional[str]:
    if not description:
        return None
    return str(description)[:DESCRIPTION_PREVIEW_LENGTH]


def to_summary(record: RecipeRecord) -> dict:
    """Listing view of a stored recipe. Missing optional fields become None."""
    details = record.details or {}
    title = record.title or DEFAULT_TITLE
    return {
        "id": record.id,
        "name": title,
        "title": title,
        "recipeName": title,
        "author": details.get("author") or DEFAULT_AUTHOR,
        "created_at": record.created_at,
        "summary": {
            "cuisine": _first_present(details, "cuisine"),
            "difficulty": _first_present(details, "difficulty"),
            "prepTime": _first_present(details, "prepTime", "prep_time"),
            "cookTime": _first_present(details, "cookTime", "cook_time"),
            "servings": _first_present(details, "servings"),
            "description": _preview(details.get("description")),
        },
    }


def to_detail(record: RecipeRecord) -> dict:
    """
    Full view of a stored recipe.

    The title synonyms are set first and the stored details are spread over
    them, so a submitted ``title`` (or ``name``) wins over the column value.
    """
    recipe = {
        "id": record.id,
        "name": record.title,
        "title": record.title,
        "recipeName": record.title,
        "created_at": record.created_at,
    }
    recipe.update(record.details or {})
    return recipe


def import_recipes(db: RecipeDbClient, payloads: list) -> tuple[list[int], int]:
    """
    Store each payload the way ``POST /api/recipes`` would.

    Returns the new ids and the number of entries skipped because they were
    not objects or had no title.
    """
    created: list[int] = []
    skipped = 0
    for payload in payloads:
        if not isinstance(payload, dict) or not has_title(payload):
            skipped += 1
            continue
        record = db.create_recipe(resolve_title(payload), payload)
        created.append(record.id)
    return created, skipped
