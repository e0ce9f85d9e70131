import logging
from typing import Optional

import typer
from rich.console import Console

from libstore.accounts import AccountStore
from libstore.books import BookStore, BorrowResult
from libstore.config import settings
from libstore.storage import StoreError
from libstore.ui_helpers import set_output_mode, print_accounts, print_books
from libstore.validators import RegistrationValidator

APP_NAME = "Library CLI"

console = Console()

BORROW_MESSAGES = {
    BorrowResult.OK: "Borrowed successfully.",
    BorrowResult.LIMIT_REACHED: f"Limit reached: you can borrow up to {settings.borrow_limit} books.",
    BorrowResult.ALREADY_BORROWED: "You already borrowed this book.",
    BorrowResult.NOT_AVAILABLE: "Book is not available.",
}


# Lazily opened store singletons shared by all commands
class StoreManager:
    _accounts: Optional[AccountStore] = None
    _books: Optional[BookStore] = None

    @classmethod
    def accounts(cls) -> AccountStore:
        if cls._accounts is None:
            cls._accounts = AccountStore()
        return cls._accounts

    @classmethod
    def books(cls) -> BookStore:
        if cls._books is None:
            cls._books = BookStore()
        return cls._books

    @classmethod
    def reset(cls) -> None:
        """Close any open stores so the next command reopens them from disk."""
        for store in (cls._accounts, cls._books):
            if store is not None:
                store.close()
        cls._accounts = None
        cls._books = None


def _fail(message: str) -> None:
    console.print(f"[bold red]{message}[/]")
    raise typer.Exit(code=1)


def _accounts() -> AccountStore:
    try:
        return StoreManager.accounts()
    except StoreError as e:
        _fail(f"Account store unavailable: {e}")


def _books() -> BookStore:
    try:
        return StoreManager.books()
    except StoreError as e:
        _fail(f"Book store unavailable: {e}")


def _log_level() -> int:
    level = getattr(logging, settings.log_level.upper(), None)
    return level if isinstance(level, int) else logging.INFO


# --- Typer CLI Application ---
app = typer.Typer(help=APP_NAME)


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
    logging.basicConfig(level=_log_level(), format="%(levelname)s: %(message)s")
    if output:
        set_output_mode(output)


# ------------------------- Accounts ------------------------- #
@app.command("login")
def cli_login(
    username: str,
    password: str = typer.Option(..., prompt=True, hide_input=True),
):
    """Sign in and show the account's borrowed books."""
    account = _accounts().authenticate(username, password)
    if not account:
        print("Invalid username or password.")
        raise typer.Exit(code=1)
    print(f"Welcome, {account.first_name} {account.last_name} ({account.type}).")
    print(f"Last login: {account.last_login_at}")
    print_books(_books().list_borrowed_by(account.username), borrower=account.username)


@app.command("register")
def cli_register(
    username: str,
    first: str = typer.Option(..., "--first", help="First name"),
    last: str = typer.Option(..., "--last", help="Last name"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=False),
    confirm: str = typer.Option(..., prompt="Confirm password", hide_input=True),
    account_type: str = typer.Option("user", "--type", help="user | admin"),
    admin_code: Optional[str] = typer.Option(None, "--admin-code", help="Invite code required for admin accounts"),
):
    """Create a new account."""
    error = RegistrationValidator.validate_registration(
        first, last, username, password, confirm, account_type, admin_code
    )
    if error:
        print(error)
        raise typer.Exit(code=1)
    store = _accounts()
    if store.exists(username):
        print("That username is already taken.")
        raise typer.Exit(code=1)
    if store.create(username.strip(), password, first.strip(), last.strip(), account_type):
        print("Account created! You can sign in now.")
    else:
        print("Could not create account (disk write failed?).")
        raise typer.Exit(code=1)


@app.command("passwd")
def cli_passwd(
    username: str,
    current: str = typer.Option(..., prompt="Current password", hide_input=True),
    new: str = typer.Option(..., prompt="New password", hide_input=True),
    confirm: str = typer.Option(..., prompt="Confirm new password", hide_input=True),
):
    """Change an account's password."""
    error = RegistrationValidator.validate_new_password(new, confirm)
    if error:
        print(error)
        raise typer.Exit(code=1)
    if _accounts().change_password(username, current, new):
        print("Password updated.")
    else:
        print("Current password is incorrect.")
        raise typer.Exit(code=1)


@app.command("users")
def cli_users(search: str = typer.Option("", "--search", "-s", help="Filter by text")):
    """List accounts."""
    print_accounts(_accounts().search(search))


@app.command("user-update")
def cli_user_update(
    username: str,
    new_username: Optional[str] = typer.Option(None, "--rename", help="New username"),
    password: Optional[str] = typer.Option(None, "--password"),
    first: Optional[str] = typer.Option(None, "--first"),
    last: Optional[str] = typer.Option(None, "--last"),
    account_type: Optional[str] = typer.Option(None, "--type"),
):
    """Edit an account; unspecified fields keep their current value."""
    store = _accounts()
    current = store.find_by_username(username)
    if not current:
        print(f"Account {username} not found.")
        raise typer.Exit(code=1)
    ok = store.update(
        current.username,
        new_username or current.username,
        password if password is not None else current.password,
        first if first is not None else current.first_name,
        last if last is not None else current.last_name,
        account_type or current.type,
    )
    if ok:
        print(f"Account {new_username or current.username} updated.")
    else:
        print("Update failed (username taken or disk error).")
        raise typer.Exit(code=1)


@app.command("user-delete")
def cli_user_delete(username: str):
    """Delete an account."""
    if _accounts().delete(username):
        print(f"Account {username} has been deleted.")
    else:
        print(f"Account {username} not found.")


# ------------------------- Books ------------------------- #
@app.command("books")
def cli_books(
    search: str = typer.Option("", "--search", "-s", help="Filter by text"),
    available: bool = typer.Option(False, "--available", help="Only books with stock left"),
):
    """List books."""
    print_books(_books().search(search, available_only=available))


@app.command("book-add")
def cli_book_add(title: str, author: str, stock: int = typer.Option(1, "--stock")):
    """Add a book to the catalog."""
    if not title.strip() or not author.strip():
        print("Enter title and author.")
        raise typer.Exit(code=1)
    book = _books().add(title.strip(), author.strip(), stock)
    if book:
        print(f"Successfully added: {book.title} by {book.author} (ID: {book.id})")
    else:
        print("Could not save book.")
        raise typer.Exit(code=1)


@app.command("book-remove")
def cli_book_remove(book_id: int):
    """Remove a book by id."""
    if _books().remove(book_id):
        print(f"Book with ID {book_id} has been removed.")
    else:
        print(f"Book with ID {book_id} not found.")


@app.command("book-stock")
def cli_book_stock(book_id: int, stock: int):
    """Set the number of copies available."""
    if _books().set_stock(book_id, stock):
        print(f"Stock of book {book_id} set to {max(0, stock)}.")
    else:
        print(f"Could not update book {book_id}.")
        raise typer.Exit(code=1)


@app.command("borrow")
def cli_borrow(book_id: int, username: str):
    """Borrow a book for a user."""
    if not _accounts().exists(username):
        print(f"Account {username} not found.")
        raise typer.Exit(code=1)
    result = _books().borrow(book_id, username)
    print(BORROW_MESSAGES[result])
    if result is not BorrowResult.OK:
        raise typer.Exit(code=1)


@app.command("return")
def cli_return(book_id: int, username: str):
    """Return a borrowed book."""
    if _books().return_book(book_id, username):
        print("Book returned.")
    else:
        print(f"{username} has not borrowed book {book_id}.")
        raise typer.Exit(code=1)


@app.command("borrowed")
def cli_borrowed(username: str):
    """Show the books a user currently holds."""
    print_books(_books().list_borrowed_by(username), borrower=username)


if __name__ == "__main__":
    app()
