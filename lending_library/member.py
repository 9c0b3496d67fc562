from __future__ import annotations

from typing import List

from lending_library.book import Book
from lending_library.exceptions import InvalidEmailError
from lending_library.validators import EmailValidator


class Member:
    """A library member and the books they currently hold.

    Borrowed books are references to catalog-owned ``Book`` objects, kept in
    borrow order for display.
    """

    def __init__(self, name: str, email: str, id: str) -> None:
        email = EmailValidator.normalize_email(email)
        if not EmailValidator.is_valid_email(email):
            raise InvalidEmailError(f"Invalid email format: {email!r}")
        self.name = name.strip()
        self.email = email
        self.id = id.strip()
        self.borrowed_books: List[Book] = []

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.name} <{self.email}> (ID: {self.id})"

    def __repr__(self) -> str:
        return f"Member(id={self.id!r}, email={self.email!r}, borrowed={len(self.borrowed_books)})"

    def borrowed_book(self, isbn: str) -> Book | None:
        isbn = isbn.strip()
        for book in self.borrowed_books:
            if book.isbn == isbn:
                return book
        return None

    def has_borrowed(self, book: Book) -> bool:
        return any(b is book for b in self.borrowed_books)

    def to_dict(self) -> dict:
        # Borrowed books are stored by ISBN so each book keeps a single owner on reload.
        return {
            "name": self.name,
            "email": self.email,
            "id": self.id,
            "borrowed": [book.isbn for book in self.borrowed_books],
        }
