import pytest

from libstore.books import BookStore, BorrowResult
from libstore.records import now_iso
from libstore.storage import RecordDirectory, StoreError


@pytest.fixture
def stocked(books):
    """Six single-copy books with ids 1..6."""
    for n in range(1, 7):
        books.add(f"Title {n}", f"Author {n}", 1)
    return books


def test_add_assigns_sequential_ids(books, data_dir):
    first = books.add("Dune", "Frank Herbert", 3)
    second = books.add("Emma", "Jane Austen", -2)
    assert (first.id, second.id) == (1, 2)
    assert second.stock == 0
    assert (data_dir / "books" / "1.properties").exists()


def test_removing_highest_id_frees_it_for_reuse(books):
    books.add("A", "a", 1)
    books.add("B", "b", 1)
    assert books.remove(2)
    assert books.add("C", "c", 1).id == 2


def test_add_write_failure_returns_none(books, monkeypatch):
    monkeypatch.setattr(RecordDirectory, "write", lambda self, name, props: False)
    assert books.add("Lost", "Nobody", 1) is None
    assert books.list_all() == []


def test_remove_is_idempotent(books, data_dir):
    book = books.add("Dune", "Frank Herbert", 1)
    assert books.remove(book.id)
    assert not (data_dir / "books" / f"{book.id}.properties").exists()
    assert not books.remove(book.id)
    assert books.find(book.id) is None


def test_set_stock_floors_at_zero(books):
    book = books.add("Dune", "Frank Herbert", 1)
    assert books.set_stock(book.id, 7)
    assert books.find(book.id).stock == 7
    assert books.set_stock(book.id, -3)
    assert books.find(book.id).stock == 0
    assert not books.set_stock(99, 1)


def test_list_available_and_persistence(books, data_dir):
    books.add("In", "x", 2)
    books.add("Out", "y", 0)
    assert [b.title for b in books.list_available()] == ["In"]
    reopened = BookStore(data_dir / "books")
    assert [(b.id, b.title, b.stock) for b in reopened.list_all()] == [(1, "In", 2), (2, "Out", 0)]


def test_borrow_then_borrow_again(books):
    book = books.add("Dune", "Frank Herbert", 1)
    before = now_iso()
    assert books.borrow(book.id, "Alice") is BorrowResult.OK

    after = books.find(book.id)
    assert after.stock == 0
    assert after.borrowers == {"alice"}
    assert books.borrowed_at(book.id, "ALICE") >= before

    assert books.set_stock(book.id, 1)
    assert books.borrow(book.id, "alice") is BorrowResult.ALREADY_BORROWED
    assert books.find(book.id).stock == 1


def test_borrow_unknown_or_empty_book_is_not_available(books):
    empty = books.add("Gone", "x", 0)
    assert books.borrow(empty.id, "alice") is BorrowResult.NOT_AVAILABLE
    assert books.borrow(42, "alice") is BorrowResult.NOT_AVAILABLE


def test_borrow_limit(stocked):
    for book_id in range(1, 6):
        assert stocked.borrow(book_id, "bob") is BorrowResult.OK
    assert stocked.count_borrowed_by("BOB") == 5

    assert stocked.borrow(6, "bob") is BorrowResult.LIMIT_REACHED
    assert stocked.find(6).stock == 1
    assert "bob" not in stocked.find(6).borrowers


def test_availability_checked_before_limit(stocked):
    for book_id in range(1, 6):
        stocked.borrow(book_id, "bob")
    stocked.set_stock(6, 0)
    assert stocked.borrow(6, "bob") is BorrowResult.NOT_AVAILABLE


def test_already_borrowed_checked_before_limit(stocked):
    for book_id in range(1, 6):
        stocked.borrow(book_id, "bob")
    stocked.set_stock(1, 3)
    assert stocked.borrow(1, "bob") is BorrowResult.ALREADY_BORROWED


def test_custom_borrow_limit(data_dir):
    store = BookStore(data_dir / "books", borrow_limit=1)
    store.add("A", "a", 1)
    store.add("B", "b", 1)
    assert store.borrow(1, "cy") is BorrowResult.OK
    assert store.borrow(2, "cy") is BorrowResult.LIMIT_REACHED


def test_failed_borrow_write_leaves_book_unchanged(books, monkeypatch):
    book = books.add("Dune", "Frank Herbert", 1)
    monkeypatch.setattr(RecordDirectory, "write", lambda self, name, props: False)
    assert books.borrow(book.id, "alice") is BorrowResult.NOT_AVAILABLE
    unchanged = books.find(book.id)
    assert unchanged.stock == 1
    assert unchanged.borrowers == set()


def test_return_restores_stock(books, data_dir):
    book = books.add("Dune", "Frank Herbert", 1)
    books.borrow(book.id, "alice")
    assert books.return_book(book.id, "Alice")

    returned = books.find(book.id)
    assert returned.stock == 1
    assert returned.borrowers == set()
    assert returned.borrowed_at_by_user == {}
    assert "borrowers" not in (data_dir / "books" / "1.properties").read_text()


def test_return_requires_membership(books):
    book = books.add("Dune", "Frank Herbert", 1)
    assert not books.return_book(book.id, "alice")
    assert not books.return_book(99, "alice")
    assert books.find(book.id).stock == 1


def test_return_does_not_cap_stock(books):
    book = books.add("Dune", "Frank Herbert", 1)
    books.borrow(book.id, "alice")
    books.set_stock(book.id, 4)
    assert books.return_book(book.id, "alice")
    assert books.find(book.id).stock == 5


def test_borrowed_by_lists_only_that_user(stocked):
    stocked.borrow(2, "alice")
    stocked.borrow(4, "alice")
    stocked.borrow(3, "bob")
    assert [b.id for b in stocked.list_borrowed_by("ALICE")] == [2, 4]
    assert stocked.count_borrowed_by("nobody") == 0


def test_borrow_state_survives_reload(books, data_dir):
    book = books.add("Dune", "Frank Herbert", 2)
    books.borrow(book.id, "alice")
    stamp = books.borrowed_at(book.id, "alice")

    reopened = BookStore(data_dir / "books")
    assert reopened.find(book.id).borrowers == {"alice"}
    assert reopened.borrowed_at(book.id, "alice") == stamp
    assert reopened.find(book.id).stock == 1


def test_search(books):
    books.add("Dune", "Frank Herbert", 1)
    books.add("Emma", "Jane Austen", 0)
    assert [b.title for b in books.search("austen")] == ["Emma"]
    assert books.search("austen", available_only=True) == []
    assert len(books.search("")) == 2


def test_snapshots_do_not_leak_into_store(books):
    book = books.add("Dune", "Frank Herbert", 1)
    snapshot = books.find(book.id)
    snapshot.stock = 0
    snapshot.borrowers.add("mallory")
    assert books.find(book.id).stock == 1
    assert books.count_borrowed_by("mallory") == 0


def test_malformed_file_does_not_block_load(data_dir):
    directory = data_dir / "books"
    directory.mkdir(parents=True)
    (directory / "1.properties").write_text("id=1\ntitle=Good\nauthor=A\nstock=2\n", encoding="utf-8")
    (directory / "2.properties").write_bytes(b"\xff\xfe\xfa")
    (directory / "3.properties").write_text("id=3\ntitle=Legacy\nauthor=B\navailable=false\n", encoding="utf-8")

    store = BookStore(directory)
    assert [(b.id, b.stock) for b in store.list_all()] == [(1, 2), (3, 0)]


def test_title_with_unicode_line_break_survives_reload(books, data_dir):
    book = books.add("Vol\x851", "x\x85borrowers=alice", 1)
    reopened = BookStore(data_dir / "books")
    stored = reopened.find(book.id)
    assert stored.title == "Vol\x851"
    assert stored.author == "x\x85borrowers=alice"
    assert stored.borrowers == set()


def test_reload_picks_up_disk_changes(books, data_dir):
    book = books.add("Dune", "Frank Herbert", 1)
    (data_dir / "books" / "7.properties").write_text("id=7\ntitle=Emma\nauthor=Jane Austen\nstock=3\n", encoding="utf-8")
    (data_dir / "books" / f"{book.id}.properties").unlink()

    books.reload()
    assert [(b.id, b.title, b.stock) for b in books.list_all()] == [(7, "Emma", 3)]


def test_context_manager_closes_store(data_dir):
    with BookStore(data_dir / "books") as store:
        store.add("Dune", "Frank Herbert", 1)
        assert len(store.list_all()) == 1
    assert store.list_all() == []


def test_failed_delete_keeps_book(books, monkeypatch):
    book = books.add("Dune", "Frank Herbert", 1)
    monkeypatch.setattr(RecordDirectory, "delete", lambda self, name: False)
    assert not books.remove(book.id)
    assert books.find(book.id) is not None


def test_failed_return_write_leaves_book_unchanged(books, monkeypatch):
    book = books.add("Dune", "Frank Herbert", 1)
    books.borrow(book.id, "alice")
    monkeypatch.setattr(RecordDirectory, "write", lambda self, name, props: False)
    assert not books.return_book(book.id, "alice")
    unchanged = books.find(book.id)
    assert unchanged.stock == 0
    assert unchanged.borrowers == {"alice"}
    assert books.borrowed_at(book.id, "alice") is not None


def test_failed_stock_write_leaves_stock_unchanged(books, monkeypatch):
    book = books.add("Dune", "Frank Herbert", 2)
    monkeypatch.setattr(RecordDirectory, "write", lambda self, name, props: False)
    assert not books.set_stock(book.id, 9)
    assert books.find(book.id).stock == 2


def test_book_directory_creation_failure_is_fatal(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    with pytest.raises(StoreError):
        BookStore(blocker / "books")
