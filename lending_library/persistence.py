"""Durable storage for the catalog.

The whole catalog is stored as a single JSON blob in a SQLite key-value
table. Members reference their borrowed books by ISBN, so every book has
exactly one owner (the catalog) after a reload.
"""

import json
import logging
import os
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from lending_library.book import Book
from lending_library.catalog import Catalog
from lending_library.config import settings
from lending_library.database import create_tables, read_snapshot, write_snapshot
from lending_library.exceptions import InvalidEmailError, PersistenceError
from lending_library.member import Member
from lending_library.schemas import BookRecord, CatalogSnapshot, MemberRecord

logger = logging.getLogger(__name__)


def build_snapshot(catalog: Catalog) -> CatalogSnapshot:
    with catalog.lock:
        return CatalogSnapshot(
            saved_at=datetime.now(),
            books=[BookRecord(**book.to_dict()) for book in catalog.books],
            members=[MemberRecord(**member.to_dict()) for member in catalog.members],
        )


def restore_catalog(snapshot: CatalogSnapshot) -> Catalog:
    catalog = Catalog()
    by_isbn = {}
    for record in snapshot.books:
        book = Book.from_dict(record.model_dump())
        catalog.books.append(book)
        by_isbn[book.isbn] = book
    for record in snapshot.members:
        member = Member(name=record.name, email=record.email, id=record.id)
        member.borrowed_books.extend(by_isbn[isbn] for isbn in record.borrowed)
        catalog.members.append(member)
    return catalog


class PersistenceStore:
    """Saves and loads catalog snapshots.

    Neither operation raises: a failed save is logged and reported as
    ``False``; a missing or unreadable snapshot loads as an empty catalog.
    """

    def __init__(self, db_file: Optional[str] = None, key: Optional[str] = None) -> None:
        self.db_file = db_file or settings.database_file
        self.key = key or settings.snapshot_key

    def save(self, catalog: Catalog) -> bool:
        try:
            self._write_snapshot(catalog)
        except PersistenceError as e:
            logger.error(f"Library data not saved: {e}")
            return False
        logger.info(
            f"Library data saved to {self.db_file} "
            f"({len(catalog.books)} books, {len(catalog.members)} members)"
        )
        return True

    def load(self) -> Catalog:
        if not os.path.exists(self.db_file):
            logger.info(f"No previous library data found at {self.db_file}. Starting fresh.")
            return Catalog()
        try:
            catalog = self._load_snapshot()
        except PersistenceError as e:
            logger.warning(f"{e}. Starting fresh.")
            return Catalog()
        if catalog is None:
            logger.info("No previous library data found. Starting fresh.")
            return Catalog()
        logger.info(
            f"Library data loaded from {self.db_file} "
            f"({len(catalog.books)} books, {len(catalog.members)} members)"
        )
        return catalog

    def exists(self) -> bool:
        if not os.path.exists(self.db_file):
            return False
        try:
            create_tables(self.db_file)
            return read_snapshot(self.db_file, self.key) is not None
        except sqlite3.Error as e:
            logger.warning(f"Could not inspect {self.db_file}: {e}")
            return False

    def export_json(self, catalog: Catalog, path: str) -> bool:
        """Write the snapshot to a JSON file, replacing it atomically."""
        target = Path(path)
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        data = json.loads(build_snapshot(catalog).model_dump_json())
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, target)
        except OSError as e:
            logger.error(f"Export to {target} failed: {e}")
            return False
        return True

    def _write_snapshot(self, catalog: Catalog) -> None:
        try:
            payload = build_snapshot(catalog).model_dump_json()
        except ValidationError as e:
            raise PersistenceError(f"Catalog state cannot be serialized: {e}") from e
        try:
            create_tables(self.db_file)
            write_snapshot(self.db_file, self.key, payload)
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(f"Could not write snapshot to {self.db_file}: {e}") from e

    def _load_snapshot(self) -> Optional[Catalog]:
        try:
            create_tables(self.db_file)
            payload = read_snapshot(self.db_file, self.key)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not read {self.db_file}: {e}") from e
        if payload is None:
            return None
        try:
            snapshot = CatalogSnapshot.model_validate_json(payload)
            return restore_catalog(snapshot)
        except (ValidationError, InvalidEmailError, ValueError, KeyError) as e:
            raise PersistenceError(f"Snapshot in {self.db_file} is unreadable: {e}") from e
