import json
import os
import threading
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from lending_library.book import Book
from lending_library.config import settings
from lending_library.lending import DailyReport, FineReport, LoanStatus, Notification, NotificationKind
from lending_library.member import Member

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"
OUTPUT_MODES = {"plain", "json", "rich"}


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in OUTPUT_MODES:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    mode = os.environ.get(OUTPUT_MODE_ENV, "plain").lower()
    return mode if mode in OUTPUT_MODES else "plain"


def _money(amount: float) -> str:
    return f"{settings.currency}{amount:.2f}"


class Reporter:
    """Single output channel for interactive commands and scheduled passes.

    Writes are serialized so a background report never interleaves with a
    foreground one.
    """

    def __init__(self, mode: Optional[str] = None, console: Optional[Console] = None) -> None:
        self._mode = mode
        self.console = console or Console()
        self._lock = threading.Lock()

    @property
    def mode(self) -> str:
        return self._mode or get_output_mode()

    def _emit_json(self, payload: Any) -> None:
        print(json.dumps(payload, ensure_ascii=False))

    def message(self, text: str) -> None:
        with self._lock:
            if self.mode == "rich":
                self.console.print(text, markup=False)
            else:
                print(text)

    def error(self, text: str) -> None:
        with self._lock:
            if self.mode == "json":
                self._emit_json({"error": text})
            elif self.mode == "rich":
                self.console.print(f"[bold red]Error:[/] {escape(text)}")
            else:
                print(f"Error: {text}")

    # ------------------------- Books & members ------------------------- #
    def print_books(self, books: List[Book], empty_message: str = "No books found.") -> None:
        """Print books in the current mode.
        - plain: 'N. Title by Author (ISBN: ...) [status]' lines
        - json: array of book dicts
        - rich: table
        """
        with self._lock:
            mode = self.mode
            if mode == "json":
                self._emit_json([b.to_dict() for b in books])
                return
            if not books:
                print(empty_message)
                return
            if mode == "rich":
                table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
                table.add_column("ISBN", style="magenta", no_wrap=True)
                table.add_column("Title", style="white")
                table.add_column("Author", style="white")
                table.add_column("Status", style="white")
                for b in books:
                    table.add_row(b.isbn, b.title, b.author, _book_status(b))
                self.console.print(table)
            else:
                print("Found books:")
                for i, b in enumerate(books, 1):
                    print(f"{i}. {b} [{_book_status(b)}]")

    def print_members(self, members: List[Member]) -> None:
        with self._lock:
            mode = self.mode
            if mode == "json":
                self._emit_json([m.to_dict() for m in members])
                return
            if not members:
                print("No members registered.")
                return
            if mode == "rich":
                table = Table(title="👥 Members", header_style="bold cyan")
                table.add_column("ID", style="magenta", no_wrap=True)
                table.add_column("Name")
                table.add_column("Email")
                table.add_column("Borrowed")
                for m in members:
                    table.add_row(m.id, m.name, m.email, ", ".join(b.isbn for b in m.borrowed_books) or "-")
                self.console.print(table)
            else:
                for m in members:
                    borrowed = ", ".join(b.isbn for b in m.borrowed_books) or "none"
                    print(f"{m.id} - {m.name} <{m.email}> borrowed: {borrowed}")

    def print_stats(self, stats: Dict[str, Any]) -> None:
        with self._lock:
            mode = self.mode
            if mode == "json":
                self._emit_json(stats)
            elif mode == "rich":
                content = "\n".join(f"[bold]{k.replace('_', ' ').title()}:[/] {v}" for k, v in stats.items())
                self.console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
            else:
                for k, v in stats.items():
                    print(f"{k.replace('_', ' ').title()}: {v}")

    # ------------------------- Fines & notifications ------------------------- #
    def print_daily_report(self, report: DailyReport) -> None:
        with self._lock:
            mode = self.mode
            if mode == "json":
                self._emit_json(report.to_dict())
                return
            if mode == "rich":
                self._rich_daily_report(report)
                return
            if not report.fines and not report.notifications:
                print(f"[{report.run_date}] No overdue fines or due-date notifications.")
                return
            for fine in report.fines:
                print(_fine_line(fine))
            for notification in report.notifications:
                print(_notification_line(notification))

    def print_loans(self, loans: List[LoanStatus]) -> None:
        with self._lock:
            mode = self.mode
            if mode == "json":
                self._emit_json([loan.to_dict() for loan in loans])
                return
            if not loans:
                print("No borrowed books.")
                return
            if mode == "rich":
                table = Table(title="📅 Due Dates", header_style="bold cyan")
                table.add_column("Member")
                table.add_column("Book")
                table.add_column("Due", no_wrap=True)
                table.add_column("Overdue Days", justify="right")
                table.add_column("Fine", justify="right")
                for loan in loans:
                    table.add_row(loan.member_name, loan.title, loan.due_date.isoformat(),
                                  str(loan.overdue_days), _money(loan.fine))
                self.console.print(table)
                return
            for loan in loans:
                print(f"Member: {loan.member_name}")
                print(f"Borrowed Book: {loan.title} (ISBN: {loan.isbn})")
                print(f"Due Date: {loan.due_date.isoformat()}")
                if loan.is_overdue:
                    print(f"Overdue Days: {loan.overdue_days}")
                    print(f"Fine Amount: {_money(loan.fine)}")
                else:
                    print("Status: Not Overdue")

    def _rich_daily_report(self, report: DailyReport) -> None:
        lines = [f"[red]{escape(_fine_line(f))}[/]" for f in report.fines]
        lines += [f"[yellow]{escape(_notification_line(n))}[/]" for n in report.notifications]
        if not lines:
            lines = ["[green]No overdue fines or due-date notifications.[/]"]
        self.console.print(Panel.fit("\n".join(lines), title=f"⏰ {report.run_date}", border_style="cyan"))


def _book_status(book: Book) -> str:
    return "available" if book.available else f"due {book.due_date.isoformat()}"


def _fine_line(fine: FineReport) -> str:
    return (f"Fine for {fine.member_name}: {_money(fine.amount)} "
            f"('{fine.title}', {fine.overdue_days} days overdue)")


def _notification_line(notification: Notification) -> str:
    if notification.kind is NotificationKind.DUE_TOMORROW:
        return f"Notification: Your book '{notification.title}' is due tomorrow."
    return f"Notification: Your book '{notification.title}' is overdue."
