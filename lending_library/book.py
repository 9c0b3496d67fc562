from __future__ import annotations

from datetime import date


class Book:
    """A single catalog entry and its lending state.

    A book is either available with no due date, or checked out with one.
    """

    def __init__(self, title: str, author: str, isbn: str, available: bool = True,
                 due_date: date | None = None) -> None:
        if available == (due_date is not None):
            raise ValueError("A book has a due date if and only if it is checked out.")
        self.title = title.strip()
        self.author = author.strip()
        self.isbn = isbn.strip()
        self.available = available
        self.due_date = due_date

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ISBN: {self.isbn})"

    def __repr__(self) -> str:
        return f"Book(isbn={self.isbn!r}, title={self.title!r}, available={self.available})"

    @property
    def is_checked_out(self) -> bool:
        return not self.available

    def check_out(self, due_date: date) -> None:
        if not self.available:
            raise ValueError(f"Book {self.isbn} is already checked out.")
        self.available = False
        self.due_date = due_date

    def check_in(self) -> None:
        if self.available:
            raise ValueError(f"Book {self.isbn} is not checked out.")
        self.available = True
        self.due_date = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "available": self.available,
            "due_date": self.due_date.isoformat() if self.due_date else None,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        due = data.get("due_date")
        if isinstance(due, str):
            due = date.fromisoformat(due)
        return Book(
            title=data["title"],
            author=data["author"],
            isbn=data["isbn"],
            available=data.get("available", True),
            due_date=due,
        )
