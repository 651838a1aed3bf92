import subprocess
import sys
from typing import Optional, Dict, Any, NoReturn

import typer
from rich.console import Console
from rich.prompt import Confirm, Prompt

from config import settings
from utils.api_client import ApiError, BookApiClient
from utils.ui_helpers import set_output_mode, print_list_result, print_book_detail, print_api_error

APP_NAME = "Book Directory CLI"

console = Console()

app = typer.Typer(help=APP_NAME)


def get_client() -> BookApiClient:
    """Client for the configured API (BOOK_API_URL)."""
    return BookApiClient(settings.api_url, settings.api_timeout)


def _fail(e: ApiError) -> NoReturn:
    print_api_error(e.message, e.details, e.error)
    raise typer.Exit(code=1)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global CLI options (e.g. output mode)."""
    if output:
        set_output_mode(output)


@app.command("list")
def cli_list():
    """List all books, newest first."""
    try:
        with get_client() as api:
            books = api.list_books()
    except ApiError as e:
        _fail(e)
    print_list_result(books)


@app.command("show")
def cli_show(book_id: str):
    """Show the details of a single book."""
    try:
        with get_client() as api:
            book = api.get_book(book_id)
    except ApiError as e:
        _fail(e)
    print_book_detail(book)


@app.command("add")
def cli_add(
    title: str = typer.Option(..., "--title", "-t", prompt="Title"),
    author: str = typer.Option(..., "--author", "-a", prompt="Author"),
    category: str = typer.Option(..., "--category", "-c", prompt="Category"),
    year: str = typer.Option(..., "--year", "-y", prompt="Published year"),
):
    """Add a new book."""
    payload = {"title": title, "author": author, "category": category, "publishedYear": year}
    try:
        with get_client() as api:
            book = api.create_book(payload)
    except ApiError as e:
        _fail(e)
    print(f"Successfully added: {book['title']} by {book['author']} (ID: {book['_id']})")


@app.command("edit")
def cli_edit(
    book_id: str,
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    author: Optional[str] = typer.Option(None, "--author", "-a"),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    year: Optional[str] = typer.Option(None, "--year", "-y"),
):
    """Edit a book. Without options, prompts for each field using the current values."""
    changes: Dict[str, Any] = {
        key: value
        for key, value in (("title", title), ("author", author), ("category", category), ("publishedYear", year))
        if value is not None
    }
    try:
        with get_client() as api:
            if not changes:
                current = api.get_book(book_id)
                changes = {
                    "title": Prompt.ask("Title", default=current["title"]),
                    "author": Prompt.ask("Author", default=current["author"]),
                    "category": Prompt.ask("Category", default=current["category"]),
                    "publishedYear": Prompt.ask("Published year", default=str(current["publishedYear"])),
                }
            book = api.update_book(book_id, changes)
    except ApiError as e:
        _fail(e)
    print(f"Updated: {book['title']} by {book['author']} ({book['category']}, {book['publishedYear']})")


@app.command("remove")
def cli_remove(book_id: str, yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation")):
    """Delete a book by ID."""
    if not yes and not Confirm.ask("Are you sure you want to delete this book?", default=False):
        print("Cancelled.")
        return
    try:
        with get_client() as api:
            result = api.delete_book(book_id)
    except ApiError as e:
        _fail(e)
    print(result.get("message", "Book deleted successfully"))


@app.command("health")
def cli_health():
    """Show API and database status."""
    try:
        with get_client() as api:
            status = api.health()
    except ApiError as e:
        _fail(e)
    print(f"API: {status.get('status')}")
    print(f"Database: {status.get('dbStatus')}")


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Listen port"),
):
    """Start the API server with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
    ]
    try:
        subprocess.run(args, check=False)
    except KeyboardInterrupt:
        console.print("[yellow]Server stopped.[/]")


if __name__ == "__main__":
    app()
