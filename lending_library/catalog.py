import logging
import threading
from typing import Any, Dict, List, Optional

from lending_library.book import Book
from lending_library.exceptions import DuplicateBookError, DuplicateMemberError
from lending_library.member import Member

logger = logging.getLogger(__name__)

DEMO_BOOKS = [
    ("Book of Lies", "Maake Katlego", "sbn1"),
    ("JavaScript", "Sello Sbu", "sbn2"),
]


class Catalog:
    """Owns every Book and Member and guards them with one lock.

    The lock is re-entrant and shared with the lending engine and the
    scheduler, so a checkout, a return and a fine pass never interleave.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.books: List[Book] = []
        self.members: List[Member] = []

    # ------------------------- Core operations ------------------------- #
    def add_book(self, title: str, author: str, isbn: str) -> Book:
        """Append a new available book. Reject duplicates by ISBN."""
        book = Book(title=title, author=author, isbn=isbn)
        with self.lock:
            if self.find_book_by_isbn(book.isbn):
                raise DuplicateBookError(f"Book with ISBN {book.isbn} already exists.")
            self.books.append(book)
        logger.info(f"Book added: isbn={book.isbn} title={book.title!r}")
        return book

    def add_member(self, name: str, email: str, id: str) -> Member:
        """Register a member. Raises InvalidEmailError before touching the catalog."""
        member = Member(name=name, email=email, id=id)
        with self.lock:
            if self.find_member_by_id(member.id):
                raise DuplicateMemberError(f"Member with ID {member.id} already exists.")
            if self.find_member_by_email(member.email):
                raise DuplicateMemberError(f"Member with email {member.email} already exists.")
            self.members.append(member)
        logger.info(f"Member added: id={member.id} email={member.email}")
        return member

    def seed_demo_books(self) -> int:
        """Add the starter titles, only into an empty catalog."""
        with self.lock:
            if self.books:
                return 0
            for title, author, isbn in DEMO_BOOKS:
                self.add_book(title, author, isbn)
            return len(DEMO_BOOKS)

    # ------------------------- Lookups ------------------------- #
    def search_by_title(self, text: str) -> List[Book]:
        needle = text.lower()
        with self.lock:
            return [b for b in self.books if needle in b.title.lower()]

    def search_by_author(self, text: str) -> List[Book]:
        needle = text.lower()
        with self.lock:
            return [b for b in self.books if needle in b.author.lower()]

    def search(self, text: str, by: str = "title") -> List[Book]:
        if by == "title":
            return self.search_by_title(text)
        if by == "author":
            return self.search_by_author(text)
        raise ValueError(f"Unknown search mode: {by!r}. Use 'title' or 'author'.")

    def find_member_by_email(self, email: str) -> Optional[Member]:
        needle = email.strip().lower()
        with self.lock:
            for member in self.members:
                if member.email.lower() == needle:
                    return member
        return None

    def find_member_by_id(self, member_id: str) -> Optional[Member]:
        with self.lock:
            for member in self.members:
                if member.id == member_id:
                    return member
        return None

    def find_book_by_isbn(self, isbn: str) -> Optional[Book]:
        isbn = isbn.strip()
        with self.lock:
            for book in self.books:
                if book.isbn == isbn:
                    return book
        return None

    def holder_of(self, book: Book) -> Optional[Member]:
        with self.lock:
            for member in self.members:
                if member.has_borrowed(book):
                    return member
        return None

    # ------------------------- Listings ------------------------- #
    def list_books(self) -> List[Book]:
        with self.lock:
            return list(self.books)

    def list_members(self) -> List[Member]:
        with self.lock:
            return list(self.members)

    def available_books(self) -> List[Book]:
        with self.lock:
            return [b for b in self.books if b.available]

    def borrowed_books(self) -> List[Book]:
        with self.lock:
            return [b for b in self.books if not b.available]

    def get_statistics(self) -> Dict[str, Any]:
        with self.lock:
            checked_out = sum(1 for b in self.books if not b.available)
            return {
                "total_books": len(self.books),
                "available_books": len(self.books) - checked_out,
                "checked_out_books": checked_out,
                "total_members": len(self.members),
            }

    def is_empty(self) -> bool:
        with self.lock:
            return not self.books and not self.members
