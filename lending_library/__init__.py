"""Lending Library - core package

This package contains:
- Data models (book.py, member.py)
- Catalog of books and members (catalog.py)
- Checkout/return rules, fines and notifications (lending.py)
- Background fine/notification pass (scheduler.py)
- Snapshot persistence (database.py, schemas.py, persistence.py)
- Output channel and CLI (reporting.py, main.py)
"""

from lending_library.book import Book
from lending_library.catalog import Catalog
from lending_library.lending import LendingEngine
from lending_library.member import Member
from lending_library.persistence import PersistenceStore
from lending_library.scheduler import Scheduler

__all__ = ["Book", "Catalog", "LendingEngine", "Member", "PersistenceStore", "Scheduler"]
