from __future__ import annotations

from datetime import date, datetime
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

SNAPSHOT_VERSION = 1


class BookRecord(BaseModel):
    title: str
    author: str
    isbn: str
    available: bool = True
    due_date: date | None = None

    @field_validator("title", "author", "isbn")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @model_validator(mode="after")
    def _due_date_matches_availability(self) -> "BookRecord":
        if self.available == (self.due_date is not None):
            raise ValueError(f"book {self.isbn}: due date must be set iff checked out")
        return self


class MemberRecord(BaseModel):
    name: str
    email: str
    id: str
    borrowed: List[str] = Field(default_factory=list, description="ISBNs of currently borrowed books")

    @field_validator("borrowed")
    @classmethod
    def _strip_isbns(cls, value: List[str]) -> List[str]:
        return [isbn.strip() for isbn in value]


class CatalogSnapshot(BaseModel):
    """Persisted form of a whole catalog; members reference books by ISBN."""
    version: int = SNAPSHOT_VERSION
    saved_at: datetime | None = None
    books: List[BookRecord] = Field(default_factory=list)
    members: List[MemberRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_holder_per_checked_out_book(self) -> "CatalogSnapshot":
        if self.version != SNAPSHOT_VERSION:
            raise ValueError(f"unsupported snapshot version {self.version}")
        checked_out = {b.isbn for b in self.books if not b.available}
        known = {b.isbn for b in self.books}
        if len(known) != len(self.books):
            raise ValueError("duplicate ISBN in snapshot")
        held: set[str] = set()
        for member in self.members:
            for isbn in member.borrowed:
                if isbn not in known:
                    raise ValueError(f"member {member.id} borrows unknown book {isbn}")
                if isbn not in checked_out:
                    raise ValueError(f"member {member.id} borrows available book {isbn}")
                if isbn in held:
                    raise ValueError(f"book {isbn} is held by more than one member")
                held.add(isbn)
        if held != checked_out:
            missing = ", ".join(sorted(checked_out - held))
            raise ValueError(f"checked-out books without a holder: {missing}")
        return self
