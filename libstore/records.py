from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Set

from libstore.codec import parse_bool, parse_int_safe

ACCOUNT_TYPES = ("admin", "user")


def now_iso() -> str:
    """Current local time formatted like 2025-08-29T10:45:00."""
    return datetime.now().isoformat(timespec="seconds")


def canonical(username: Optional[str]) -> str:
    """Lowercase lookup key for a username; ``None`` maps to an empty string."""
    return username.lower() if username else ""


@dataclass
class Account:
    """A library account.

    ``username`` keeps the casing it was registered with; lookups and file
    names use ``canonical(username)``.  Passwords are kept as plain text.
    """

    username: str
    password: str
    first_name: str = ""
    last_name: str = ""
    type: str = "user"
    created_at: str = ""
    last_login_at: Optional[str] = None

    def __post_init__(self) -> None:
        self.type = self.type.lower() if self.type else "user"
        if not self.created_at:
            self.created_at = now_iso()
        if not self.last_login_at:
            self.last_login_at = None

    @property
    def key(self) -> str:
        return canonical(self.username)

    @property
    def is_admin(self) -> bool:
        return self.type == "admin"

    def copy(self) -> "Account":
        return Account(
            username=self.username,
            password=self.password,
            first_name=self.first_name,
            last_name=self.last_name,
            type=self.type,
            created_at=self.created_at,
            last_login_at=self.last_login_at,
        )

    def to_properties(self) -> Dict[str, str]:
        props = {
            "username": self.username,
            "password": self.password,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "type": self.type,
            "createdAt": self.created_at,
        }
        if self.last_login_at:
            props["lastLoginAt"] = self.last_login_at
        return props

    @staticmethod
    def from_properties(props: Dict[str, str]) -> "Account":
        return Account(
            username=props.get("username", "").strip(),
            password=props.get("password", ""),
            first_name=props.get("firstName", ""),
            last_name=props.get("lastName", ""),
            type=props.get("type", "user"),
            created_at=props.get("createdAt", ""),
            last_login_at=props.get("lastLoginAt") or None,
        )


@dataclass
class Book:
    """A catalog entry together with its current borrowing state."""

    id: int
    title: str
    author: str
    stock: int = 1
    borrowers: Set[str] = field(default_factory=set)
    # canonical username -> ISO timestamp of the borrow
    borrowed_at_by_user: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.stock = max(0, self.stock)

    @property
    def is_available(self) -> bool:
        return self.stock > 0

    def copy(self) -> "Book":
        return Book(
            id=self.id,
            title=self.title,
            author=self.author,
            stock=self.stock,
            borrowers=set(self.borrowers),
            borrowed_at_by_user=dict(self.borrowed_at_by_user),
        )

    def to_properties(self) -> Dict[str, str]:
        props = {
            "id": str(self.id),
            "title": self.title,
            "author": self.author,
            "stock": str(self.stock),
            # Legacy flag, still written so older readers keep working
            "available": "true" if self.is_available else "false",
        }
        if self.borrowers:
            ordered = sorted(self.borrowers)
            props["borrowers"] = ",".join(ordered)
            for user in ordered:
                stamp = self.borrowed_at_by_user.get(user)
                if stamp:
                    props[f"borrowedAt.{user}"] = stamp
        return props

    @staticmethod
    def from_properties(props: Dict[str, str]) -> "Book":
        stock_text = props.get("stock")
        if stock_text is not None:
            stock = parse_int_safe(stock_text, 1)
        else:
            stock = 1 if parse_bool(props.get("available", "true")) else 0

        book = Book(
            id=parse_int_safe(props.get("id", "0"), 0),
            title=props.get("title", ""),
            author=props.get("author", ""),
            stock=stock,
        )
        for raw in props.get("borrowers", "").split(","):
            user = canonical(raw.strip())
            if not user:
                continue
            book.borrowers.add(user)
            stamp = props.get(f"borrowedAt.{user}", "")
            if stamp:
                book.borrowed_at_by_user[user] = stamp
        return book

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ID: {self.id})"
