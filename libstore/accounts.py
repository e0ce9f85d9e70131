from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional

from libstore.config import settings
from libstore.records import Account, canonical, now_iso
from libstore.storage import RecordDirectory

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS = (
    ("admin", "admin123", "Default", "Admin", "admin"),
    ("user", "user123", "Regular", "User", "user"),
)


class AccountStore:
    """Keeps every account in memory, mirrored one file per account on disk."""

    def __init__(self, directory: Optional[str | os.PathLike] = None, ext: Optional[str] = None) -> None:
        self.records = RecordDirectory(
            directory or settings.accounts_dir,
            ext or settings.record_ext,
            header="Library Account",
        )
        self._by_username: Dict[str, Account] = {}
        self.open()

    # ------------------------- Lifecycle ------------------------- #
    def open(self) -> None:
        """Create the directory if needed, load all accounts and seed defaults."""
        self.records.ensure()
        self._load_all()
        self._seed_if_empty()

    def reload(self) -> None:
        self._load_all()

    def close(self) -> None:
        self._by_username.clear()

    def __enter__(self) -> "AccountStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _load_all(self) -> None:
        self._by_username.clear()
        for path, props in self.records.read_all():
            account = Account.from_properties(props)
            if not account.username:
                logger.warning(f"Skipping account file without username: {path}")
                continue
            self._by_username[account.key] = account
        logger.info(f"Loaded {len(self._by_username)} accounts from {self.records.path}")

    def _seed_if_empty(self) -> None:
        if self._by_username:
            return
        for username, password, first, last, kind in DEFAULT_ACCOUNTS:
            if self.create(username, password, first, last, kind):
                logger.info(f"Seeded default {kind} account '{username}'")

    # ------------------------- Queries ------------------------- #
    def list_all(self) -> List[Account]:
        return [self._by_username[k].copy() for k in sorted(self._by_username)]

    def find_by_username(self, username: Optional[str]) -> Optional[Account]:
        account = self._by_username.get(canonical(username))
        return account.copy() if account else None

    def exists(self, username: Optional[str]) -> bool:
        return canonical(username) in self._by_username

    def search(self, term: str) -> List[Account]:
        """Case-insensitive substring match over username, names and type."""
        needle = (term or "").strip().lower()
        if not needle:
            return self.list_all()
        return [
            a for a in self.list_all()
            if any(needle in field.lower() for field in (a.username, a.first_name, a.last_name, a.type))
        ]

    # ------------------------- Mutations ------------------------- #
    def authenticate(self, username: str, password: str) -> Optional[Account]:
        """Return the account on an exact password match and stamp its last login."""
        account = self._by_username.get(canonical(username))
        if account is None or account.password != password:
            return None
        stamped = account.copy()
        stamped.last_login_at = now_iso()
        if self._save(stamped):
            self._by_username[stamped.key] = stamped
            return stamped.copy()
        # Credentials were valid; only the login stamp could not be kept
        return account.copy()

    def create(self, username: str, password: str, first: str, last: str, type: str = "user") -> bool:
        key = canonical(username)
        if not key or key in self._by_username:
            return False
        account = Account(username, password, first, last, type, now_iso(), None)
        if not self._save(account):
            return False
        self._by_username[key] = account
        logger.info(f"Created account '{username}' ({account.type})")
        return True

    def update(self, old_username: str, new_username: str, password: str,
               first: str, last: str, type: str = "user") -> bool:
        """Replace an account, optionally under a new username.

        ``created_at`` and ``last_login_at`` carry over from the old record.
        When renamed, the old file is removed after the new one is written.
        """
        old_key = canonical(old_username)
        old = self._by_username.get(old_key)
        if old is None:
            return False

        new_key = canonical(new_username)
        if not new_key:
            return False
        if new_key != old_key and new_key in self._by_username:
            return False

        updated = Account(new_username, password, first, last, type, old.created_at, old.last_login_at)
        if not self._save(updated):
            return False

        if new_key != old_key:
            if not self.records.delete(old_key):
                logger.warning(f"Could not remove old account file for '{old.username}'; rename aborted")
                self.records.delete(new_key)
                return False
            del self._by_username[old_key]
            logger.info(f"Renamed account '{old.username}' to '{new_username}'")
        self._by_username[new_key] = updated
        return True

    def change_password(self, username: str, current: str, new: str) -> bool:
        account = self._by_username.get(canonical(username))
        if account is None or account.password != current:
            return False
        return self.update(account.username, account.username, new,
                           account.first_name, account.last_name, account.type)

    def delete(self, username: str) -> bool:
        key = canonical(username)
        if key not in self._by_username:
            return False
        if not self.records.delete(key):
            return False
        del self._by_username[key]
        logger.info(f"Deleted account '{username}'")
        return True

    def _save(self, account: Account) -> bool:
        return self.records.write(account.key, account.to_properties())
