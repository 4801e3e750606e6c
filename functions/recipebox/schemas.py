"""
Pydantic schemas for the recipe API.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class RecipeCreatedResponse(BaseModel):
    success: bool = True
    id: int
    message: str = "Recipe saved successfully"


class RecipeSummaryFields(BaseModel):
    cuisine: Any = None
    difficulty: Any = None
    prepTime: Any = None
    cookTime: Any = None
    servings: Any = None
    description: Optional[str] = None


class RecipeSummary(BaseModel):
    id: int
    name: str
    title: str
    recipeName: str
    author: Any
    created_at: str
    summary: RecipeSummaryFields


class RecipeListResponse(BaseModel):
    success: bool = True
    count: int
    recipes: list[RecipeSummary]


class UserInfo(BaseModel):
    email: str
    name: str
    picture: Optional[str] = None
    email_verified: bool


class VerifyGoogleResponse(BaseModel):
    success: bool = True
    user: UserInfo
