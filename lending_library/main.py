import logging
import sys
from datetime import date, datetime
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from lending_library.catalog import Catalog
from lending_library.config import settings
from lending_library.exceptions import LibraryError
from lending_library.lending import LendingEngine
from lending_library.persistence import PersistenceStore
from lending_library.reporting import Reporter, set_output_mode
from lending_library.scheduler import Scheduler

console = Console()
reporter = Reporter(console=console)
logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


class LibraryManager:
    """Store, catalog and lending engine shared by the commands of one process."""
    _db_file: Optional[str] = None
    _store: Optional[PersistenceStore] = None
    _catalog: Optional[Catalog] = None
    _engine: Optional[LendingEngine] = None

    @classmethod
    def configure(cls, db_file: Optional[str] = None) -> None:
        cls._db_file = db_file
        cls.reset()

    @classmethod
    def reset(cls) -> None:
        cls._store = None
        cls._catalog = None
        cls._engine = None

    @classmethod
    def get_store(cls) -> PersistenceStore:
        if cls._store is None:
            cls._store = PersistenceStore(db_file=cls._db_file)
        return cls._store

    @classmethod
    def get_catalog(cls) -> Catalog:
        if cls._catalog is None:
            catalog = cls.get_store().load()
            if settings.seed_demo_books and catalog.seed_demo_books():
                logger.info("Seeded demo books into an empty catalog")
            cls._catalog = catalog
        return cls._catalog

    @classmethod
    def get_engine(cls) -> LendingEngine:
        if cls._engine is None:
            cls._engine = LendingEngine(cls.get_catalog())
        return cls._engine

    @classmethod
    def save(cls) -> bool:
        return cls.get_store().save(cls.get_catalog())


def _save_or_warn() -> None:
    if not LibraryManager.save():
        reporter.error("Library data could not be saved. See the log for details.")


# --- Typer CLI Application ---
app = typer.Typer(help="Lending library CLI")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    db: Optional[str] = typer.Option(
        None,
        "--db",
        help="SQLite file holding the catalog snapshot (default: LIBRARY_DB_FILE)",
    ),
):
    """Global options for the CLI (output mode, database file)."""
    configure_logging()
    if output:
        set_output_mode(output)
    LibraryManager.configure(db_file=db)


@app.command("add-book")
def cli_add_book(title: str, author: str, isbn: str):
    """Add a new book to the catalog."""
    try:
        book = LibraryManager.get_catalog().add_book(title, author, isbn)
    except LibraryError as e:
        reporter.error(str(e))
        return
    _save_or_warn()
    reporter.message(f"Book '{book.title}' added successfully.")


@app.command("add-member")
def cli_add_member(name: str, email: str, member_id: str = typer.Argument(..., metavar="ID")):
    """Register a new member."""
    try:
        member = LibraryManager.get_catalog().add_member(name, email, member_id)
    except LibraryError as e:
        reporter.error(str(e))
        return
    _save_or_warn()
    reporter.message(f"Member '{member.name}' added successfully.")


@app.command("search")
def cli_search(
    text: str = typer.Argument(..., help="Text to look for"),
    by: str = typer.Option("title", "--by", "-b", help="Search field: title | author"),
):
    """Case-insensitive search by title or author."""
    try:
        books = LibraryManager.get_catalog().search(text, by=by)
    except ValueError as e:
        reporter.error(str(e))
        return
    reporter.print_books(books)


@app.command("checkout")
def cli_checkout(email: str, isbn: str):
    """Lend a book to the member with the given email."""
    try:
        book = LibraryManager.get_engine().checkout_by_identity(email, isbn)
    except LibraryError as e:
        reporter.error(str(e))
        return
    _save_or_warn()
    reporter.message(f"Book successfully borrowed. '{book.title}' is due on {book.due_date.isoformat()}.")


@app.command("return")
def cli_return(email: str, isbn: str):
    """Take a book back from the member with the given email."""
    try:
        book = LibraryManager.get_engine().return_by_identity(email, isbn)
    except LibraryError as e:
        reporter.error(str(e))
        return
    _save_or_warn()
    reporter.message(f"Book '{book.title}' returned successfully.")


@app.command("fines")
def cli_fines(
    as_of: Optional[datetime] = typer.Option(
        None, "--date", formats=["%Y-%m-%d"], help="Evaluate as of this date (default: today)"
    ),
):
    """View due dates, fines and notifications."""
    today = as_of.date() if as_of else date.today()
    engine = LibraryManager.get_engine()
    reporter.print_loans(engine.loan_statuses(today))
    reporter.print_daily_report(engine.run_daily_pass(today))


@app.command("books")
def cli_books():
    """List every book in catalog order."""
    reporter.print_books(LibraryManager.get_catalog().list_books(), empty_message="No books in library.")


@app.command("members")
def cli_members():
    """List every member and what they have borrowed."""
    reporter.print_members(LibraryManager.get_catalog().list_members())


@app.command("stats")
def cli_stats():
    """Show catalog statistics."""
    reporter.print_stats(LibraryManager.get_catalog().get_statistics())


@app.command("export")
def cli_export(path: str = typer.Argument("library_export.json", help="Target JSON file")):
    """Export the catalog snapshot to a JSON file."""
    if LibraryManager.get_store().export_json(LibraryManager.get_catalog(), path):
        reporter.message(f"Catalog exported to {path}")
    else:
        reporter.error(f"Could not export catalog to {path}")


@app.command("menu")
def cli_menu():
    """Interactive menu with the background fine/notification scheduler."""
    interactive_menu()


# --- Interactive menu ---
MENU_ITEMS = [
    ("1", "Add New Book", "➕"),
    ("2", "Add New Member", "👤"),
    ("3", "Search Books", "🔎"),
    ("4", "Borrow Book", "📖"),
    ("5", "Return Book", "↩️"),
    ("6", "View Due Dates And Fines", "⏰"),
    ("7", "Exit", "🚪"),
]


def render_menu() -> None:
    table = Table.grid(padding=(0, 2))
    table.add_column(justify="right", style="bold cyan", width=4)
    table.add_column(justify="left", style="white")
    for key, label, icon in MENU_ITEMS:
        table.add_row(f"[reverse]{key}[/]", f"{icon} {label}")
    console.print(Panel(table, title=settings.app_name, border_style="cyan", box=box.HEAVY, padding=(1, 2)))


def _menu_add_book() -> None:
    title = Prompt.ask("Enter the title of the book")
    author = Prompt.ask("Enter the author of the book")
    isbn = Prompt.ask("Enter the ISBN of the book")
    book = LibraryManager.get_catalog().add_book(title, author, isbn)
    reporter.message(f"Book '{book.title}' added successfully.")


def _menu_add_member() -> None:
    name = Prompt.ask("Enter the full name of the member")
    email = Prompt.ask("Enter the email of the member")
    member_id = Prompt.ask("Enter the ID of the member")
    member = LibraryManager.get_catalog().add_member(name, email, member_id)
    reporter.message(f"Member '{member.name}' added successfully.")


def _menu_search() -> None:
    by = Prompt.ask("Search books by", choices=["title", "author"], default="title")
    text = Prompt.ask(f"Enter the {by}")
    reporter.print_books(LibraryManager.get_catalog().search(text, by=by))


def _menu_borrow() -> None:
    reporter.print_books(LibraryManager.get_catalog().available_books(), empty_message="No available books.")
    email = Prompt.ask("Enter your email")
    isbn = Prompt.ask("Enter the ISBN of the book")
    book = LibraryManager.get_engine().checkout_by_identity(email, isbn)
    reporter.message(f"Book successfully borrowed. '{book.title}' is due on {book.due_date.isoformat()}.")


def _menu_return() -> None:
    email = Prompt.ask("Enter your email")
    isbn = Prompt.ask("Enter the ISBN of the book to return")
    book = LibraryManager.get_engine().return_by_identity(email, isbn)
    reporter.message(f"Book '{book.title}' returned successfully.")


def _menu_fines() -> None:
    engine = LibraryManager.get_engine()
    today = engine.clock()
    reporter.print_loans(engine.loan_statuses(today))
    reporter.print_daily_report(engine.run_daily_pass(today))


MENU_ACTIONS = {
    "1": _menu_add_book,
    "2": _menu_add_member,
    "3": _menu_search,
    "4": _menu_borrow,
    "5": _menu_return,
    "6": _menu_fines,
}


def interactive_menu() -> None:
    """Menu loop. Exit saves the catalog, then stops the scheduler."""
    scheduler = Scheduler(LibraryManager.get_engine(), reporter.print_daily_report)
    scheduler.start()
    try:
        while True:
            render_menu()
            try:
                choice = Prompt.ask("Enter your choice", choices=[k for k, _, _ in MENU_ITEMS], default="6")
            except (EOFError, KeyboardInterrupt):
                choice = "7"
            if choice == "7":
                reporter.message("Saving library data...")
                if LibraryManager.save():
                    reporter.message("Library data saved successfully.")
                else:
                    reporter.error("Library data could not be saved. See the log for details.")
                reporter.message("Exiting program...")
                break
            try:
                MENU_ACTIONS[choice]()
            except (LibraryError, ValueError) as e:
                reporter.error(str(e))
            except EOFError:
                reporter.error("Input ended before the action was complete.")
            print()  # blank line between actions
    finally:
        scheduler.stop()


def run() -> None:
    if len(sys.argv) > 1:
        app()
    else:
        configure_logging()
        interactive_menu()


if __name__ == "__main__":
    run()
