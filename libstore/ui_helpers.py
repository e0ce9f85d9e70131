import os
import json
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from libstore.records import Account, Book

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_books(books: List[Book], borrower: Optional[str] = None) -> None:
    """Print books according to the current output mode.
    - plain: 'ID - Title by Author (stock N)' lines, or 'No books found.'
    - json: JSON array of id, title, author, stock
    - rich: Rich table
    When ``borrower`` is given, the borrow timestamp for that user is included.
    """
    mode = get_output_mode()

    if not books:
        print("No books found.")
        return

    def borrowed(b: Book) -> str:
        return b.borrowed_at_by_user.get(borrower.lower(), "") if borrower else ""

    if mode == "json":
        payload = []
        for b in books:
            row = {"id": b.id, "title": b.title, "author": b.author, "stock": b.stock}
            if borrower:
                row["borrowed_at"] = borrowed(b)
            payload.append(row)
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Stock", justify="right")
        if borrower:
            table.add_column("Borrowed At")
        for b in books:
            cells = [str(b.id), b.title, b.author, str(b.stock)]
            if borrower:
                cells.append(borrowed(b))
            table.add_row(*cells)
        _console.print(table)
    else:
        for b in books:
            line = f"{b.id} - {b.title} by {b.author} (stock {b.stock})"
            if borrower and borrowed(b):
                line += f" borrowed {borrowed(b)}"
            print(line)


def print_accounts(accounts: List[Account]) -> None:
    mode = get_output_mode()

    if not accounts:
        print("No accounts found.")
        return

    if mode == "json":
        payload = [
            {
                "username": a.username,
                "first_name": a.first_name,
                "last_name": a.last_name,
                "type": a.type,
                "created_at": a.created_at,
                "last_login_at": a.last_login_at,
            }
            for a in accounts
        ]
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Accounts", show_lines=True, header_style="bold cyan")
        for column in ("Username", "First", "Last", "Type", "Created", "Last Login"):
            table.add_column(column)
        for a in accounts:
            table.add_row(a.username, a.first_name, a.last_name, a.type, a.created_at, a.last_login_at or "")
        _console.print(table)
    else:
        for a in accounts:
            print(f"{a.username} ({a.type}) - {a.first_name} {a.last_name}")
