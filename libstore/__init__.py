"""Library Store - Core Package

This package contains the record stores behind the library simulation:
- Record types and the key=value codec (records.py, codec.py)
- One-file-per-record persistence (storage.py)
- Account store (accounts.py)
- Book store with borrow/return rules (books.py)
- CLI interface (main.py)
"""

from libstore.accounts import AccountStore
from libstore.books import BookStore, BorrowResult
from libstore.records import Account, Book
from libstore.storage import StoreError

__all__ = ["Account", "AccountStore", "Book", "BookStore", "BorrowResult", "StoreError"]
