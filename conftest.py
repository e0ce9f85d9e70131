import pytest

from libstore.accounts import AccountStore
from libstore.books import BookStore
from libstore.config import settings
from libstore.main import StoreManager


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    # Each test gets its own data root so stores never share files
    root = tmp_path / "data"
    monkeypatch.setattr(settings, "data_dir", str(root))
    StoreManager.reset()
    yield root
    StoreManager.reset()


@pytest.fixture
def accounts(data_dir):
    store = AccountStore(data_dir / "accounts")
    yield store
    store.close()


@pytest.fixture
def books(data_dir):
    store = BookStore(data_dir / "books")
    yield store
    store.close()
