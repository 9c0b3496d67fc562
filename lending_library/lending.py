import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from lending_library.book import Book
from lending_library.catalog import Catalog
from lending_library.config import settings
from lending_library.exceptions import (
    BookNotBorrowedError,
    BookNotFoundError,
    BookUnavailableError,
    MemberNotFoundError,
)
from lending_library.member import Member

logger = logging.getLogger(__name__)


class NotificationKind(Enum):
    """Due-date notification types"""
    DUE_TOMORROW = "due_tomorrow"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class FineReport:
    """Fine accrued on one overdue book"""
    member_id: str
    member_name: str
    isbn: str
    title: str
    due_date: date
    overdue_days: int
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "member_id": self.member_id,
            "member_name": self.member_name,
            "isbn": self.isbn,
            "title": self.title,
            "due_date": self.due_date.isoformat(),
            "overdue_days": self.overdue_days,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class Notification:
    """Reminder addressed to the member holding a book"""
    kind: NotificationKind
    member_id: str
    member_name: str
    email: str
    isbn: str
    title: str
    due_date: date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "member_id": self.member_id,
            "member_name": self.member_name,
            "email": self.email,
            "isbn": self.isbn,
            "title": self.title,
            "due_date": self.due_date.isoformat(),
        }


@dataclass(frozen=True)
class LoanStatus:
    """One borrowed book with its holder, due date and current fine"""
    member_id: str
    member_name: str
    isbn: str
    title: str
    due_date: date
    overdue_days: int
    fine: float

    @property
    def is_overdue(self) -> bool:
        return self.overdue_days > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "member_id": self.member_id,
            "member_name": self.member_name,
            "isbn": self.isbn,
            "title": self.title,
            "due_date": self.due_date.isoformat(),
            "overdue_days": self.overdue_days,
            "fine": self.fine,
        }


@dataclass(frozen=True)
class DailyReport:
    """Output of one fine and notification pass"""
    run_date: date
    fines: List[FineReport] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)

    @property
    def total_fines(self) -> float:
        return sum(f.amount for f in self.fines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_date": self.run_date.isoformat(),
            "fines": [f.to_dict() for f in self.fines],
            "notifications": [n.to_dict() for n in self.notifications],
            "total_fines": self.total_fines,
        }


class LendingEngine:
    """Checkout/return transitions and the fine and notification rules.

    Every transition runs under ``catalog.lock`` and validates before it
    mutates, so a rejected call leaves books and members untouched. The fine
    and notification passes are pure reads of the catalog for a given date.
    """

    def __init__(self, catalog: Catalog, clock: Callable[[], date] = date.today,
                 loan_days: Optional[int] = None, fine_per_day: Optional[float] = None) -> None:
        self.catalog = catalog
        self.clock = clock
        self.loan_days = settings.loan_days if loan_days is None else loan_days
        self.fine_per_day = settings.fine_per_day if fine_per_day is None else fine_per_day

    def _today(self, today: Optional[date]) -> date:
        return today if today is not None else self.clock()

    # ------------------------- Transitions ------------------------- #
    def checkout(self, member: Member, book: Book, today: Optional[date] = None) -> Book:
        """Available -> CheckedOut. Due date is today plus the loan period."""
        today = self._today(today)
        with self.catalog.lock:
            if not book.available:
                raise BookUnavailableError(f"Book {book.isbn} is not available for checkout.")
            book.check_out(today + timedelta(days=self.loan_days))
            member.borrowed_books.append(book)
        logger.info(f"Checkout: member={member.id} isbn={book.isbn} due={book.due_date}")
        return book

    def checkout_by_identity(self, email: str, isbn: str, today: Optional[date] = None) -> Book:
        """Resolve member by email and book by ISBN, then check out."""
        with self.catalog.lock:
            member = self.catalog.find_member_by_email(email)
            if member is None:
                raise MemberNotFoundError(f"Member not found with email: {email}")
            book = self.catalog.find_book_by_isbn(isbn)
            if book is None:
                raise BookNotFoundError(f"Book not found with ISBN: {isbn}")
            return self.checkout(member, book, today=today)

    def return_book(self, member: Member, book: Book) -> Book:
        """CheckedOut -> Available, only for the member holding the book."""
        with self.catalog.lock:
            if not member.has_borrowed(book):
                raise BookNotBorrowedError(
                    f"Book {book.isbn} not found in {member.name}'s borrowed set."
                )
            member.borrowed_books.remove(book)
            book.check_in()
        logger.info(f"Return: member={member.id} isbn={book.isbn}")
        return book

    def return_by_identity(self, email: str, isbn: str) -> Book:
        with self.catalog.lock:
            member = self.catalog.find_member_by_email(email)
            if member is None:
                raise MemberNotFoundError(f"Member not found with email: {email}")
            book = member.borrowed_book(isbn)
            if book is None:
                raise BookNotBorrowedError(
                    f"Book with ISBN {isbn} not found in {member.name}'s borrowed set."
                )
            return self.return_book(member, book)

    # ------------------------- Fines & notifications ------------------------- #
    def compute_fines(self, today: Optional[date] = None) -> List[FineReport]:
        """Fine per overdue book: whole days past due times the daily rate."""
        today = self._today(today)
        fines: List[FineReport] = []
        with self.catalog.lock:
            for member in self.catalog.members:
                for book in member.borrowed_books:
                    if book.due_date is None or not today > book.due_date:
                        continue
                    overdue_days = (today - book.due_date).days
                    fines.append(FineReport(
                        member_id=member.id,
                        member_name=member.name,
                        isbn=book.isbn,
                        title=book.title,
                        due_date=book.due_date,
                        overdue_days=overdue_days,
                        amount=overdue_days * self.fine_per_day,
                    ))
        return fines

    def compute_notifications(self, today: Optional[date] = None) -> List[Notification]:
        """'Due tomorrow' when due is today + 1, 'overdue' when today is past due."""
        today = self._today(today)
        tomorrow = today + timedelta(days=1)
        notifications: List[Notification] = []
        with self.catalog.lock:
            for member in self.catalog.members:
                for book in member.borrowed_books:
                    if book.due_date is None:
                        continue
                    if book.due_date == tomorrow:
                        kind = NotificationKind.DUE_TOMORROW
                    elif today > book.due_date:
                        kind = NotificationKind.OVERDUE
                    else:
                        continue
                    notifications.append(Notification(
                        kind=kind,
                        member_id=member.id,
                        member_name=member.name,
                        email=member.email,
                        isbn=book.isbn,
                        title=book.title,
                        due_date=book.due_date,
                    ))
        return notifications

    def run_daily_pass(self, today: Optional[date] = None) -> DailyReport:
        """Fines then notifications for one date; shared by the scheduler and the CLI."""
        today = self._today(today)
        with self.catalog.lock:
            report = DailyReport(
                run_date=today,
                fines=self.compute_fines(today),
                notifications=self.compute_notifications(today),
            )
        logger.debug(
            f"Daily pass {today}: {len(report.fines)} fines, "
            f"{len(report.notifications)} notifications"
        )
        return report

    def loan_statuses(self, today: Optional[date] = None) -> List[LoanStatus]:
        """Every borrowed book with its holder, due date, overdue days and fine."""
        today = self._today(today)
        statuses: List[LoanStatus] = []
        with self.catalog.lock:
            for member in self.catalog.members:
                for book in member.borrowed_books:
                    if book.due_date is None:
                        continue
                    overdue_days = max((today - book.due_date).days, 0)
                    statuses.append(LoanStatus(
                        member_id=member.id,
                        member_name=member.name,
                        isbn=book.isbn,
                        title=book.title,
                        due_date=book.due_date,
                        overdue_days=overdue_days,
                        fine=overdue_days * self.fine_per_day,
                    ))
        return statuses
