import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from book import Book
from database import BookStore, StoreUnavailableError

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("title", "author", "category")
REQUIRED_FIELDS = TEXT_FIELDS + ("publishedYear",)
FIELD_LABELS = {
    "title": "Title",
    "author": "Author",
    "category": "Category",
    "publishedYear": "Published Year",
}
MIN_PUBLISHED_YEAR = 1000

_STORE_ERRORS = (PyMongoError, StoreUnavailableError)
_LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")


class Library:
    """Validates book input and maps it onto the document store."""

    def __init__(self, store: BookStore) -> None:
        self.store = store

    # ------------------------- Core operations ------------------------- #
    def list_books(self) -> List[Book]:
        """All books, most recently created first."""
        try:
            documents = self.store.find_all()
        except _STORE_ERRORS as e:
            logger.error("Error fetching books: %s", e)
            raise StorageError("Failed to fetch books", str(e)) from e
        return [Book.from_document(doc) for doc in documents]

    def add_book(self, payload: Dict[str, Any]) -> Book:
        missing = [field for field in REQUIRED_FIELDS if _is_missing(payload.get(field))]
        if missing:
            raise ValidationError(
                "Missing required fields",
                details={
                    field: f"{FIELD_LABELS[field]} is required" if field in missing else None
                    for field in REQUIRED_FIELDS
                },
            )

        year = validate_published_year(payload["publishedYear"])
        text = {field: _require_text(field, payload[field]) for field in TEXT_FIELDS}
        now = _utcnow()
        book = Book(
            title=text["title"],
            author=text["author"],
            category=text["category"],
            published_year=year,
            created_at=now,
            updated_at=now,
        )

        logger.info("Creating new book: %s", book)
        try:
            book.id = self.store.insert(book.to_document())
        except _STORE_ERRORS as e:
            logger.error("Error creating book: %s", e)
            raise StorageError("Failed to create book", str(e)) from e
        logger.info("Book created successfully: %s", book.id)
        return book

    def find_book(self, book_id: str) -> Book:
        try:
            doc = self.store.find_by_id(book_id)
        except _STORE_ERRORS as e:
            logger.error("Error fetching book %s: %s", book_id, e)
            raise StorageError("Failed to fetch book", str(e)) from e
        if doc is None:
            raise NotFoundError()
        return Book.from_document(doc)

    def update_book(self, book_id: str, payload: Dict[str, Any]) -> Book:
        """Apply the supplied fields to a book. Fields left out are kept; a
        supplied field must be valid, so null cannot clear a required value."""
        changes: Dict[str, Any] = {}
        if "publishedYear" in payload:
            changes["publishedYear"] = validate_published_year(payload["publishedYear"])
        for field in TEXT_FIELDS:
            if field in payload:
                changes[field] = _require_text(field, payload[field])

        if not changes:
            return self.find_book(book_id)

        changes["updatedAt"] = _utcnow()
        try:
            doc = self.store.update_by_id(book_id, changes)
        except _STORE_ERRORS as e:
            logger.error("Error updating book %s: %s", book_id, e)
            raise StorageError("Failed to update book", str(e)) from e
        if doc is None:
            raise NotFoundError()
        logger.info("Book updated: %s", book_id)
        return Book.from_document(doc)

    def remove_book(self, book_id: str) -> Book:
        try:
            doc = self.store.delete_by_id(book_id)
        except _STORE_ERRORS as e:
            logger.error("Error deleting book %s: %s", book_id, e)
            raise StorageError("Failed to delete book", str(e)) from e
        if doc is None:
            raise NotFoundError()
        logger.info("Book deleted: %s", book_id)
        return Book.from_document(doc)


# ------------------------- Validation helpers ------------------------- #
def current_year() -> int:
    return datetime.now().year


def parse_year(value: Any) -> Optional[int]:
    """Read an integer year the lenient way: leading digits of a string,
    integral part of a number. Returns None when nothing can be read."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_INTEGER.match(value)
        return int(match.group(1)) if match else None
    return None


def validate_published_year(value: Any) -> int:
    year = parse_year(value)
    if year is None or year < MIN_PUBLISHED_YEAR or year > current_year():
        raise ValidationError("Invalid published year", error="Published year must be a valid year")
    return year


def _is_missing(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (int, float)):
        return value == 0
    return False


def _require_text(field: str, value: Any) -> str:
    label = FIELD_LABELS[field]
    if value is None:
        raise ValidationError(f"Invalid {label.lower()}", error=f"{label} is required")
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {label.lower()}", error=f"{label} must be a string")
    if not value.strip():
        raise ValidationError(f"Invalid {label.lower()}", error=f"{label} cannot be empty")
    return value.strip()


def _utcnow() -> datetime:
    # BSON dates keep millisecond precision
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


# ------------------------- Errors ------------------------- #
class LibraryError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


class ValidationError(LibraryError):
    """Missing or invalid book input."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, error: Optional[str] = None) -> None:
        super().__init__(message)
        self.details = details
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.details is not None:
            body["details"] = self.details
        if self.error is not None:
            body["error"] = self.error
        return body


class NotFoundError(LibraryError):
    status_code = 404

    def __init__(self, message: str = "Book not found") -> None:
        super().__init__(message)


class StorageError(LibraryError):
    """The store could not be reached or rejected the operation."""

    status_code = 500

    def __init__(self, message: str, error: Optional[str] = None) -> None:
        super().__init__(message)
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.error is not None:
            body["error"] = self.error
        return body
