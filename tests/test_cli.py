import json
from unittest.mock import patch, MagicMock

import pytest
from typer.testing import CliRunner

import main
from main import app
from utils.api_client import ApiError, BookApiClient
from utils.ui_helpers import OUTPUT_MODE_ENV

runner = CliRunner()


@pytest.fixture
def api(client, monkeypatch):
    """Route CLI calls through the in-process API."""
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")
    monkeypatch.setattr(main, "get_client", lambda: BookApiClient(http_client=client))
    return BookApiClient(http_client=client)


def _add(api, title="Dune", year=1965):
    return api.create_book({"title": title, "author": "Herbert", "category": "SciFi", "publishedYear": year})


def test_list_no_books(api):
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "No books found. Add some books to get started!" in result.stdout


def test_list_books_plain(api):
    book = _add(api)
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert f"{book['_id']} - Dune by Herbert (SciFi, 1965)" in result.stdout


def test_list_books_json(api):
    _add(api)
    result = runner.invoke(app, ["--output", "json", "list"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload[0]["title"] == "Dune"


def test_add_book_success(api):
    result = runner.invoke(app, ["add", "--title", "Dune", "--author", "Herbert",
                                 "--category", "SciFi", "--year", "1965"])
    assert result.exit_code == 0
    assert "Successfully added: Dune by Herbert" in result.stdout
    assert len(api.list_books()) == 1


def test_add_book_prompts_for_fields(api):
    result = runner.invoke(app, ["add"], input="Dune\nHerbert\nSciFi\n1965\n")
    assert result.exit_code == 0
    assert "Successfully added: Dune by Herbert" in result.stdout


def test_add_book_invalid_year(api):
    result = runner.invoke(app, ["add", "-t", "Dune", "-a", "Herbert", "-c", "SciFi", "-y", "999"])
    assert result.exit_code == 1
    assert "Error: Invalid published year" in result.stdout
    assert api.list_books() == []


def test_show_book(api):
    book = _add(api)
    result = runner.invoke(app, ["show", book["_id"]])
    assert result.exit_code == 0
    assert "Title: Dune" in result.stdout
    assert "Published Year: 1965" in result.stdout


def test_show_book_not_found(api):
    result = runner.invoke(app, ["show", "507f1f77bcf86cd799439011"])
    assert result.exit_code == 1
    assert "Error: Book not found" in result.stdout


def test_edit_book_with_options(api):
    book = _add(api)
    result = runner.invoke(app, ["edit", book["_id"], "--category", "Classic"])
    assert result.exit_code == 0
    assert "Updated: Dune by Herbert (Classic, 1965)" in result.stdout


def test_edit_book_interactive_keeps_defaults(api):
    book = _add(api)
    # accept defaults for everything except the year
    result = runner.invoke(app, ["edit", book["_id"]], input="\n\n\n1966\n")
    assert result.exit_code == 0
    assert api.get_book(book["_id"])["publishedYear"] == 1966
    assert api.get_book(book["_id"])["title"] == "Dune"


def test_remove_book_success(api):
    book = _add(api)
    result = runner.invoke(app, ["remove", book["_id"], "--yes"])
    assert result.exit_code == 0
    assert "Book deleted successfully" in result.stdout
    assert api.list_books() == []


def test_remove_book_cancelled(api):
    book = _add(api)
    result = runner.invoke(app, ["remove", book["_id"]], input="n\n")
    assert result.exit_code == 0
    assert "Cancelled." in result.stdout
    assert len(api.list_books()) == 1


def test_remove_book_not_found(api):
    result = runner.invoke(app, ["remove", "507f1f77bcf86cd799439011", "--yes"])
    assert result.exit_code == 1
    assert "Error: Book not found" in result.stdout


def test_health(api):
    result = runner.invoke(app, ["health"])
    assert result.exit_code == 0
    assert "API: ok" in result.stdout
    assert "Database: connected" in result.stdout


def test_server_unreachable(monkeypatch):
    failing = MagicMock()
    failing.__enter__.return_value.list_books.side_effect = ApiError(
        "Unable to connect to the server. Please check your connection and try again."
    )
    monkeypatch.setattr(main, "get_client", lambda: failing)

    result = runner.invoke(app, ["list"])
    assert result.exit_code == 1
    assert "Unable to connect to the server" in result.stdout


@patch("subprocess.run")
def test_serve_command(mock_subprocess_run):
    result = runner.invoke(app, ["serve", "--port", "5050"])
    assert result.exit_code == 0
    assert "Starting API on http://" in result.stdout
    mock_subprocess_run.assert_called_once()
    args = mock_subprocess_run.call_args[0][0]
    assert "uvicorn" in args
    assert "api:app" in args
    assert "--host" in args
    assert "5050" in args
