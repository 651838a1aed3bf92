import os
import json
from typing import List, Any, Dict
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Environment variable to control CLI output mode
# İzin verilen değerler: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "BOOK_CLI_OUTPUT"

_console = Console()

_COLUMNS = (
    ("ID", "_id"),
    ("Title", "title"),
    ("Author", "author"),
    ("Category", "category"),
    ("Published Year", "publishedYear"),
)


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_list_result(books: List[Dict[str, Any]]) -> None:
    """Print the book list in the current output mode.
    - plain: 'ID - Title by Author (Category, Year)' lines
    - json: JSON array of the records
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print("No books found. Add some books to get started!")
        return

    if mode == "json":
        print(json.dumps(books, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books List", show_lines=True, header_style="bold cyan")
        for header, _ in _COLUMNS:
            table.add_column(header, style="magenta" if header == "ID" else "white", no_wrap=header == "ID")
        for b in books:
            table.add_row(*(str(b.get(key, "")) for _, key in _COLUMNS))
        _console.print(table)
    else:
        for b in books:
            print(f"{b.get('_id', '')} - {b.get('title', '')} by {b.get('author', '')} "
                  f"({b.get('category', '')}, {b.get('publishedYear', '')})")


def print_book_detail(book: Dict[str, Any]) -> None:
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(book, ensure_ascii=False))
        return

    lines = [f"{header}: {book.get(key, '')}" for header, key in _COLUMNS]
    if book.get("createdAt"):
        lines.append(f"Created: {book['createdAt']}")
    if mode == "rich":
        _console.print(Panel.fit("\n".join(lines), title="📖 Book", border_style="blue"))
    else:
        for line in lines:
            print(line)


def print_api_error(message: str, details: Dict[str, Any] | None = None, error: str | None = None) -> None:
    print(f"Error: {message}")
    if details and isinstance(details, dict):
        for value in details.values():
            if value:
                print(f"  - {value}")
    elif error:
        print(f"  {error}")
