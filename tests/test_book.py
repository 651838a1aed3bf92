from datetime import datetime, timezone, timedelta

from bson import ObjectId

from book import Book


def test_to_dict_uses_wire_names():
    created = datetime(2024, 3, 1, 12, 30, 15, 123000)
    book = Book("Dune", "Herbert", "SciFi", 1965, id="65e1c0ffee0000000000abcd", created_at=created)

    assert book.to_dict() == {
        "_id": "65e1c0ffee0000000000abcd",
        "title": "Dune",
        "author": "Herbert",
        "category": "SciFi",
        "publishedYear": 1965,
        "createdAt": "2024-03-01T12:30:15.123Z",
        "updatedAt": None,
    }


def test_aware_timestamps_are_rendered_in_utc():
    created = datetime(2024, 3, 1, 14, 30, tzinfo=timezone(timedelta(hours=2)))
    book = Book("Dune", "Herbert", "SciFi", 1965, created_at=created)
    assert book.to_dict()["createdAt"] == "2024-03-01T12:30:00.000Z"


def test_from_document_stringifies_object_id():
    oid = ObjectId()
    book = Book.from_document({
        "_id": oid,
        "title": " Dune ",
        "author": "Herbert",
        "category": "SciFi",
        "publishedYear": 1965,
    })
    assert book.id == str(oid)
    assert book.title == "Dune"
    assert book.created_at is None
    assert "_id" not in book.to_document()


def test_str_describes_book():
    book = Book("  Dune ", "Herbert", "SciFi", 1965)
    assert str(book) == "Dune by Herbert (SciFi, 1965)"
    assert "%s" % book == "Dune by Herbert (SciFi, 1965)"
