from __future__ import annotations

from datetime import datetime, timezone


def _format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


class Book:
    """Represents a single book record in the directory."""

    def __init__(self, title: str, author: str, category: str, published_year: int,
                 id: str | None = None, created_at: datetime | None = None,
                 updated_at: datetime | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.category = category.strip()
        self.published_year = published_year
        self.created_at = created_at
        self.updated_at = updated_at

    def __str__(self) -> str:
        return f"{self.title} by {self.author} ({self.category}, {self.published_year})"

    def to_dict(self) -> dict:
        return {
            "_id": self.id,
            "title": self.title,
            "author": self.author,
            "category": self.category,
            "publishedYear": self.published_year,
            "createdAt": _format_timestamp(self.created_at),
            "updatedAt": _format_timestamp(self.updated_at),
        }

    def to_document(self) -> dict:
        """Fields as stored in the books collection (identifier excluded)."""
        return {
            "title": self.title,
            "author": self.author,
            "category": self.category,
            "publishedYear": self.published_year,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @staticmethod
    def from_document(doc: dict) -> "Book":
        return Book(
            id=str(doc["_id"]) if doc.get("_id") is not None else None,
            title=doc["title"],
            author=doc["author"],
            category=doc["category"],
            published_year=doc["publishedYear"],
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
        )
