import threading
from datetime import date, timedelta

import pytest

from lending_library.exceptions import (
    BookNotBorrowedError,
    BookNotFoundError,
    BookUnavailableError,
    MemberNotFoundError,
)
from lending_library.lending import NotificationKind


@pytest.fixture
def lib(catalog):
    catalog.add_book("B1", "A1", "111")
    catalog.add_book("B2", "A2", "222")
    catalog.add_member("M", "m@x.com", "1")
    catalog.add_member("N", "n@x.com", "2")
    return catalog


def _assert_invariants(catalog):
    holders = {}
    for member in catalog.members:
        for book in member.borrowed_books:
            assert book.isbn not in holders
            holders[book.isbn] = member.id
    for book in catalog.books:
        assert (book.due_date is None) == book.available
        assert (book.isbn in holders) == (not book.available)


def test_checkout_sets_due_date_and_borrowed_set(lib, engine, clock):
    book = engine.checkout_by_identity("m@x.com", "111")
    member = lib.find_member_by_email("m@x.com")

    assert book.available is False
    assert book.due_date == clock.today + timedelta(days=14)
    assert member.borrowed_books == [book]
    _assert_invariants(lib)


def test_checkout_email_lookup_is_case_insensitive(lib, engine):
    engine.checkout_by_identity("M@X.COM", "111")
    assert lib.find_book_by_isbn("111").available is False


def test_second_checkout_fails_and_keeps_state(lib, engine, clock):
    engine.checkout_by_identity("m@x.com", "111")
    due = lib.find_book_by_isbn("111").due_date

    clock.advance(3)
    with pytest.raises(BookUnavailableError):
        engine.checkout_by_identity("n@x.com", "111")
    with pytest.raises(BookUnavailableError):
        engine.checkout_by_identity("m@x.com", "111")

    book = lib.find_book_by_isbn("111")
    assert book.available is False
    assert book.due_date == due
    assert lib.find_member_by_email("n@x.com").borrowed_books == []
    assert len(lib.find_member_by_email("m@x.com").borrowed_books) == 1
    _assert_invariants(lib)


def test_checkout_unknown_member_fails_before_mutation(lib, engine):
    with pytest.raises(MemberNotFoundError, match="nobody@x.com"):
        engine.checkout_by_identity("nobody@x.com", "111")
    assert lib.find_book_by_isbn("111").available is True
    _assert_invariants(lib)


def test_checkout_unknown_book_fails_before_mutation(lib, engine):
    with pytest.raises(BookNotFoundError, match="999"):
        engine.checkout_by_identity("m@x.com", "999")
    assert lib.find_member_by_email("m@x.com").borrowed_books == []
    _assert_invariants(lib)


def test_return_clears_due_date_and_borrowed_set(lib, engine):
    engine.checkout_by_identity("m@x.com", "111")
    book = engine.return_by_identity("m@x.com", "111")

    assert book.available is True
    assert book.due_date is None
    assert lib.find_member_by_email("m@x.com").borrowed_books == []
    _assert_invariants(lib)


def test_return_by_other_member_fails_without_mutation(lib, engine):
    engine.checkout_by_identity("m@x.com", "111")
    with pytest.raises(BookNotBorrowedError):
        engine.return_by_identity("n@x.com", "111")

    book = lib.find_book_by_isbn("111")
    assert book.available is False
    assert lib.find_member_by_email("m@x.com").borrowed_books == [book]
    _assert_invariants(lib)


def test_return_of_available_book_is_rejected(lib, engine):
    member = lib.find_member_by_email("m@x.com")
    book = lib.find_book_by_isbn("222")
    with pytest.raises(BookNotBorrowedError):
        engine.return_book(member, book)
    assert book.available is True and book.due_date is None


def test_return_unknown_member(lib, engine):
    with pytest.raises(MemberNotFoundError):
        engine.return_by_identity("ghost@x.com", "111")


def test_borrowed_books_keep_checkout_order(lib, engine):
    engine.checkout_by_identity("m@x.com", "222")
    engine.checkout_by_identity("m@x.com", "111")
    member = lib.find_member_by_email("m@x.com")
    assert [b.isbn for b in member.borrowed_books] == ["222", "111"]


@pytest.mark.parametrize("days_late", [1, 2, 7, 30])
def test_fine_is_one_unit_per_overdue_day(lib, engine, clock, days_late):
    engine.checkout_by_identity("m@x.com", "111")
    clock.advance(14 + days_late)

    fines = engine.compute_fines()
    assert len(fines) == 1
    assert fines[0].overdue_days == days_late
    assert fines[0].amount == pytest.approx(days_late * 1.0)
    assert fines[0].member_name == "M"


@pytest.mark.parametrize("days_after_checkout", [0, 13, 14])
def test_no_fine_until_past_due(lib, engine, clock, days_after_checkout):
    engine.checkout_by_identity("m@x.com", "111")
    clock.advance(days_after_checkout)
    assert engine.compute_fines() == []


def test_compute_fines_is_idempotent_and_read_only(lib, engine, clock):
    engine.checkout_by_identity("m@x.com", "111")
    engine.checkout_by_identity("n@x.com", "222")
    clock.advance(20)
    book = lib.find_book_by_isbn("111")
    due = book.due_date

    first = engine.compute_fines()
    second = engine.compute_fines()
    assert first == second
    assert len(first) == 2
    assert book.due_date == due and book.available is False


def test_compute_fines_with_explicit_date(lib, engine, clock):
    engine.checkout_by_identity("m@x.com", "111")
    later = clock.today + timedelta(days=17)
    assert engine.compute_fines(later)[0].amount == pytest.approx(3.0)
    assert engine.compute_fines() == []


def test_custom_fine_rate(catalog, clock):
    from lending_library.lending import LendingEngine

    catalog.add_book("B1", "A1", "111")
    catalog.add_member("M", "m@x.com", "1")
    engine = LendingEngine(catalog, clock=clock, loan_days=7, fine_per_day=0.5)
    engine.checkout_by_identity("m@x.com", "111")
    clock.advance(10)
    assert engine.compute_fines()[0].amount == pytest.approx(1.5)


def test_due_tomorrow_notification(lib, engine, clock):
    engine.checkout_by_identity("m@x.com", "111")
    clock.advance(13)

    notes = engine.compute_notifications()
    assert [n.kind for n in notes] == [NotificationKind.DUE_TOMORROW]
    assert notes[0].email == "m@x.com"
    assert notes[0].title == "B1"


def test_no_notification_on_due_date(lib, engine, clock):
    engine.checkout_by_identity("m@x.com", "111")
    clock.advance(14)
    assert engine.compute_notifications() == []


def test_overdue_notification(lib, engine, clock):
    engine.checkout_by_identity("m@x.com", "111")
    clock.advance(15)
    notes = engine.compute_notifications()
    assert [n.kind for n in notes] == [NotificationKind.OVERDUE]


def test_no_notification_far_from_due_date(lib, engine, clock):
    engine.checkout_by_identity("m@x.com", "111")
    clock.advance(5)
    assert engine.compute_notifications() == []


def test_daily_pass_combines_fines_and_notifications(lib, engine, clock):
    engine.checkout_by_identity("m@x.com", "111")
    clock.advance(2)
    engine.checkout_by_identity("n@x.com", "222")
    clock.advance(13)

    report = engine.run_daily_pass()
    assert report.run_date == clock.today
    assert [f.isbn for f in report.fines] == ["111"]
    assert {(n.isbn, n.kind) for n in report.notifications} == {
        ("111", NotificationKind.OVERDUE),
        ("222", NotificationKind.DUE_TOMORROW),
    }
    assert report.total_fines == pytest.approx(1.0)
    assert report.to_dict()["fines"][0]["amount"] == 1.0


def test_daily_pass_holds_catalog_lock_against_returns(lib, engine, clock, monkeypatch):
    engine.checkout_by_identity("m@x.com", "111")
    clock.advance(16)
    compute_fines = engine.compute_fines
    returner = threading.Thread(target=engine.return_by_identity, args=("m@x.com", "111"))

    def fines_then_race(today=None):
        fines = compute_fines(today)
        returner.start()
        returner.join(timeout=0.2)
        assert returner.is_alive()
        return fines

    monkeypatch.setattr(engine, "compute_fines", fines_then_race)
    report = engine.run_daily_pass()
    returner.join(timeout=5)

    assert [f.isbn for f in report.fines] == ["111"]
    assert [(n.kind, n.isbn) for n in report.notifications] == [(NotificationKind.OVERDUE, "111")]
    assert not returner.is_alive()
    assert lib.find_book_by_isbn("111").available
    _assert_invariants(lib)


def test_padded_isbn_resolves_for_checkout_and_return(catalog, engine):
    catalog.add_book("B1", "A1", " 111 ")
    catalog.add_member("M", "m@x.com", "1")

    book = engine.checkout_by_identity("m@x.com", " 111 ")
    assert book.isbn == "111"
    assert engine.return_by_identity("m@x.com", "111 ") is book
    assert book.available
    _assert_invariants(catalog)


def test_loan_statuses(lib, engine, clock):
    engine.checkout_by_identity("m@x.com", "111")
    engine.checkout_by_identity("n@x.com", "222")
    clock.advance(16)
    engine.return_by_identity("n@x.com", "222")

    statuses = engine.loan_statuses()
    assert len(statuses) == 1
    assert statuses[0].member_name == "M"
    assert statuses[0].due_date == date(2025, 1, 15)
    assert statuses[0].overdue_days == 2
    assert statuses[0].is_overdue
    assert statuses[0].fine == pytest.approx(2.0)


def test_lending_scenario(catalog, engine, clock):
    catalog.add_book("B1", "A1", "111")
    catalog.add_member("M", "m@x.com", "1")

    engine.checkout_by_identity("m@x.com", "111")
    book = catalog.find_book_by_isbn("111")
    assert book.available is False
    assert book.due_date == clock.today + timedelta(days=14)

    clock.advance(15)
    fines = engine.compute_fines()
    assert [(f.member_name, f.amount) for f in fines] == [("M", 1.0)]

    engine.return_by_identity("m@x.com", "111")
    assert book.available is True
    assert book.due_date is None
    assert engine.compute_fines() == []


def test_loan_statuses_skips_book_without_due_date(lib, engine):
    engine.checkout_by_identity("m@x.com", "111")
    member = lib.find_member_by_email("m@x.com")
    book = lib.find_book_by_isbn("111")
    # Bypass the engine to leave a borrowed book with no due date
    book.due_date = None

    assert engine.loan_statuses() == []
    assert member.borrowed_books == [book]
