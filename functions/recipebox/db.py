"""
Database abstraction for the recipe store: a SQLAlchemy implementation and an
in-memory one for development and tests.

Recipes are stored as a title column plus a ``details`` column holding the
submitted payload as JSON text.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import Column, Integer, String, Text, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_timestamp() -> str:
    """Current UTC time as ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


class RecipeDbClient(Protocol):
    """Interface for recipe storage."""

    def create_recipe(self, title: str, details: dict) -> "RecipeRecord":
        ...

    def get_recipe(self, recipe_id: int) -> Optional["RecipeRecord"]:
        ...

    def list_recipes(self) -> list["RecipeRecord"]:
        ...


@dataclass
class RecipeRecord:
    id: int
    title: str
    details: dict = field(default_factory=dict)
    created_at: str = field(default_factory=utc_timestamp)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "details": self.details,
            "created_at": self.created_at,
        }


def _sort_key(record: RecipeRecord) -> tuple[str, int]:
    return record.created_at, record.id


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.recipes: dict[int, RecipeRecord] = {}
        self._next_id = 1

    def create_recipe(self, title: str, details: dict) -> RecipeRecord:
        # Round-trip through JSON so callers get the same detached copy a
        # real database would hand back.
        record = RecipeRecord(
            id=self._next_id,
            title=title,
            details=json.loads(json.dumps(details)),
        )
        self.recipes[record.id] = record
        self._next_id += 1
        return record

    def get_recipe(self, recipe_id: int) -> Optional[RecipeRecord]:
        return self.recipes.get(recipe_id)

    def list_recipes(self) -> list[RecipeRecord]:
        return sorted(self.recipes.values(), key=_sort_key, reverse=True)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.recipes.clear()
        self._next_id = 1


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_record(self, row: "RecipeRow") -> RecipeRecord:
        return RecipeRecord(
            id=row.id,
            title=row.title,
            details=json.loads(row.details) if row.details else {},
            created_at=row.created_at,
        )

    def create_recipe(self, title: str, details: dict) -> RecipeRecord:
        with self.Session() as session:
            row = RecipeRow(
                title=title,
                details=json.dumps(details),
                created_at=utc_timestamp(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_record(row)

    def get_recipe(self, recipe_id: int) -> Optional[RecipeRecord]:
        with self.Session() as session:
            row = session.get(RecipeRow, recipe_id)
            if not row:
                return None
            return self._to_record(row)

    def list_recipes(self) -> list[RecipeRecord]:
        with self.Session() as session:
            stmt = select(RecipeRow).order_by(
                RecipeRow.created_at.desc(), RecipeRow.id.desc()
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_record(row) for row in rows]


Base = declarative_base()


class RecipeRow(Base):
    __tablename__ = "recipes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    details = Column(Text, nullable=False)  # JSON-encoded payload
    created_at = Column(String, nullable=False, index=True)
