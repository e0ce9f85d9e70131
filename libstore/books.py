from __future__ import annotations

import enum
import logging
import os
from typing import Dict, List, Optional

from libstore.config import settings
from libstore.records import Book, canonical, now_iso
from libstore.storage import RecordDirectory

logger = logging.getLogger(__name__)


class BorrowResult(enum.Enum):
    """Outcome of ``BookStore.borrow``, checked in declaration order."""

    OK = "ok"
    NOT_AVAILABLE = "not_available"
    ALREADY_BORROWED = "already_borrowed"
    LIMIT_REACHED = "limit_reached"


class BookStore:
    """Manages the book catalog and who is currently holding which copy."""

    def __init__(self, directory: Optional[str | os.PathLike] = None, ext: Optional[str] = None,
                 borrow_limit: Optional[int] = None) -> None:
        self.records = RecordDirectory(directory or settings.books_dir, ext or settings.record_ext, header="Book")
        self.borrow_limit = settings.borrow_limit if borrow_limit is None else borrow_limit
        self._by_id: Dict[int, Book] = {}
        self.open()

    # ------------------------- Lifecycle ------------------------- #
    def open(self) -> None:
        self.records.ensure()
        self._load_all()

    def reload(self) -> None:
        self._load_all()

    def close(self) -> None:
        self._by_id.clear()

    def __enter__(self) -> "BookStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _load_all(self) -> None:
        self._by_id.clear()
        for _, props in self.records.read_all():
            book = Book.from_properties(props)
            self._by_id[book.id] = book
        logger.info(f"Loaded {len(self._by_id)} books from {self.records.path}")

    # ------------------------- Queries ------------------------- #
    def list_all(self) -> List[Book]:
        return [self._by_id[i].copy() for i in sorted(self._by_id)]

    def list_available(self) -> List[Book]:
        return [b for b in self.list_all() if b.is_available]

    def list_borrowed_by(self, username: str) -> List[Book]:
        user = canonical(username)
        return [b for b in self.list_all() if user in b.borrowers]

    def count_borrowed_by(self, username: str) -> int:
        user = canonical(username)
        return sum(1 for b in self._by_id.values() if user in b.borrowers)

    def find(self, book_id: int) -> Optional[Book]:
        book = self._by_id.get(book_id)
        return book.copy() if book else None

    def borrowed_at(self, book_id: int, username: str) -> Optional[str]:
        book = self._by_id.get(book_id)
        if book is None:
            return None
        return book.borrowed_at_by_user.get(canonical(username))

    def search(self, term: str, available_only: bool = False) -> List[Book]:
        """Case-insensitive substring match over id, title and author."""
        books = self.list_available() if available_only else self.list_all()
        needle = (term or "").strip().lower()
        if not needle:
            return books
        return [b for b in books if any(needle in f.lower() for f in (str(b.id), b.title, b.author))]

    # ------------------------- Mutations ------------------------- #
    def add(self, title: str, author: str, stock: int = 1) -> Optional[Book]:
        """Create a book with id = current max id + 1; ``None`` if it cannot be saved."""
        book = Book(self._next_id(), title, author, max(0, stock))
        if not self._save(book):
            return None
        self._by_id[book.id] = book
        logger.info(f"Added book {book.id}: {book.title}")
        return book.copy()

    def remove(self, book_id: int) -> bool:
        if book_id not in self._by_id:
            logger.warning(f"Cannot remove unknown book {book_id}")
            return False
        if not self.records.delete(str(book_id)):
            return False
        del self._by_id[book_id]
        logger.info(f"Removed book {book_id}")
        return True

    def set_stock(self, book_id: int, new_stock: int) -> bool:
        book = self._by_id.get(book_id)
        if book is None:
            logger.warning(f"Cannot set stock of unknown book {book_id}")
            return False
        updated = book.copy()
        updated.stock = max(0, new_stock)
        return self._commit(updated)

    def borrow(self, book_id: int, username: str) -> BorrowResult:
        """Lend one copy of a book to a user.

        Checks run in a fixed order: availability, then whether the user
        already holds a copy, then the per-user borrow limit.  The book is
        saved before the cache changes; a failed save reports
        ``NOT_AVAILABLE`` and leaves the store untouched.
        """
        user = canonical(username)
        book = self._by_id.get(book_id)
        if book is None or not book.is_available:
            return BorrowResult.NOT_AVAILABLE
        if user in book.borrowers:
            return BorrowResult.ALREADY_BORROWED
        if self.count_borrowed_by(user) >= self.borrow_limit:
            return BorrowResult.LIMIT_REACHED

        updated = book.copy()
        updated.stock = max(0, updated.stock - 1)
        updated.borrowers.add(user)
        updated.borrowed_at_by_user[user] = now_iso()
        if not self._commit(updated):
            return BorrowResult.NOT_AVAILABLE
        return BorrowResult.OK

    def return_book(self, book_id: int, username: str) -> bool:
        user = canonical(username)
        book = self._by_id.get(book_id)
        if book is None or user not in book.borrowers:
            return False
        updated = book.copy()
        updated.borrowers.discard(user)
        updated.borrowed_at_by_user.pop(user, None)
        # No upper bound: only current availability is tracked
        updated.stock += 1
        return self._commit(updated)

    def _next_id(self) -> int:
        return max(self._by_id, default=0) + 1

    def _commit(self, book: Book) -> bool:
        if not self._save(book):
            return False
        self._by_id[book.id] = book
        return True

    def _save(self, book: Book) -> bool:
        return self.records.write(str(book.id), book.to_properties())
