#!/usr/bin/env python3
"""
Hostel Management console

Usage:
    hostel-console                      # Talk to the API at HOSTEL_API_URL
    hostel-console --backend memory     # Offline demo with seeded data
    hostel-console --api-url URL        # Point at another server

Screens:
    Landing -> choose Student or Admin login -> role dashboard.
    Demo accounts for the memory backend:
        admin@hostel.com / admin123
        john@hostel.com  / user123
"""
import argparse
import logging
import sys
from datetime import date
from typing import List, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, FloatPrompt, Prompt
from rich.table import Table

import dashboard
import settings
from backends import make_backend
from logging_config import setup_logging
from session_storage import SessionStorage
from store import HostelStore

logger = logging.getLogger(__name__)

FEATURES = [
    ("Complaints", "Report issues with your room or facilities and track them to resolution."),
    ("Service Requests", "Book cleaning, repairs and other services."),
    ("Leave Requests", "Apply for leave and follow the approval."),
    ("Payments", "See your dues and pay hostel fees."),
    ("Announcements", "Stay up to date with notices from the hostel office."),
]

STUDENT_TABS = ["Overview", "Complaints", "Service Requests", "Leave Requests", "Payments", "Announcements"]
ADMIN_TABS = ["Overview", "Users", "Complaints", "Service Requests", "Leave Requests", "Payments", "Announcements"]
SEARCHABLE_TABS = ("Users", "Complaints", "Service Requests")

STATUS_STYLES = {
    "Pending": "yellow",
    "In-progress": "blue",
    "Approved": "green",
    "Resolved": "green",
    "Completed": "green",
    "Paid": "green",
    "Rejected": "red",
    "Overdue": "red",
}

SERVICE_TYPES = ["Room Cleaning", "Plumbing", "Electrical", "Laundry", "Other"]

COMPLAINT_STATUSES = ["Pending", "In-progress", "Resolved"]
SERVICE_STATUSES = ["Pending", "Approved", "In-progress", "Completed", "Rejected"]
LEAVE_STATUSES = ["Pending", "Approved", "Rejected"]
PAYMENT_STATUSES = ["Pending", "Paid", "Overdue"]


def styled_status(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def fmt_date(value) -> str:
    return value.strftime("%d %b %Y") if value else "-"


def fmt_money(amount: float) -> str:
    return f"₹{amount:,.0f}"


# ---------------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------------
def complaints_table(complaints: Sequence, admin: bool = False) -> Table:
    table = Table(title="Complaints", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim")
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Priority")
    if admin:
        table.add_column("Student")
        table.add_column("Room")
    table.add_column("Date")
    table.add_column("Status")
    for i, c in enumerate(complaints, 1):
        row = [str(i), c.title, c.category, c.priority]
        if admin:
            row += [c.student_name, c.room]
        row += [fmt_date(c.date), styled_status(c.status)]
        table.add_row(*row)
    return table


def service_requests_table(requests: Sequence, admin: bool = False) -> Table:
    table = Table(title="Service Requests", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim")
    table.add_column("Service")
    table.add_column("Description")
    if admin:
        table.add_column("Student")
        table.add_column("Room")
    table.add_column("Requested")
    table.add_column("Scheduled")
    table.add_column("Status")
    for i, r in enumerate(requests, 1):
        row = [str(i), r.service_type, r.description]
        if admin:
            row += [r.student_name, r.room]
        row += [fmt_date(r.requested_date), fmt_date(r.scheduled_date), styled_status(r.status)]
        table.add_row(*row)
    return table


def leave_requests_table(requests: Sequence, admin: bool = False) -> Table:
    table = Table(title="Leave Requests", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim")
    if admin:
        table.add_column("Student")
        table.add_column("Room")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Days", justify="right")
    table.add_column("Reason")
    table.add_column("Status")
    for i, r in enumerate(requests, 1):
        row = [str(i)]
        if admin:
            row += [r.student_name, r.room]
        row += [fmt_date(r.start_date), fmt_date(r.end_date), str(r.days), r.reason, styled_status(r.status)]
        table.add_row(*row)
    return table


def payments_table(payments: Sequence, admin: bool = False) -> Table:
    table = Table(title="Payments", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim")
    table.add_column("Title")
    if admin:
        table.add_column("Student")
        table.add_column("Room")
    table.add_column("Amount", justify="right")
    table.add_column("Due")
    table.add_column("Paid on")
    table.add_column("Transaction")
    table.add_column("Status")
    for i, p in enumerate(payments, 1):
        row = [str(i), p.title]
        if admin:
            row += [p.student_name, p.room]
        row += [fmt_money(p.amount), fmt_date(p.due_date), fmt_date(p.paid_on),
                p.transaction_id or "-", styled_status(p.status)]
        table.add_row(*row)
    return table


def announcements_table(announcements: Sequence) -> Table:
    table = Table(title="Announcements", show_header=True, header_style="bold cyan")
    table.add_column("", width=2)
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Posted")
    table.add_column("Content")
    for a in announcements:
        table.add_row("📌" if a.is_pinned else "", a.title, a.type, dashboard.time_ago(a.date), a.content)
    return table


def users_table(users: Sequence) -> Table:
    table = Table(title="Users", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Role")
    table.add_column("Room")
    table.add_column("Contact")
    table.add_column("Joined")
    table.add_column("Status")
    for i, u in enumerate(users, 1):
        table.add_row(str(i), u.name, u.email, u.role, u.room or "-", u.contact or "-",
                      fmt_date(u.join_date), u.status)
    return table


# ---------------------------------------------------------------------------------
# Overviews
# ---------------------------------------------------------------------------------
def render_landing(console: Console) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Feature", style="bold green")
    table.add_column("Description")
    for name, description in FEATURES:
        table.add_row(name, description)
    console.print(Panel(table, title="Hostel Management", subtitle="Your home away from home",
                        border_style="cyan"))


def render_student_overview(console: Console, overview: dashboard.StudentOverview) -> None:
    stats = Table(title="Overview", show_header=False)
    stats.add_column("Metric", style="dim")
    stats.add_column("Value", justify="right")
    stats.add_row("My room", overview.room or "-")
    stats.add_row("Total due", fmt_money(overview.total_due))
    stats.add_row("Active complaints", str(overview.active_complaints))
    stats.add_row("Pending leaves", str(overview.pending_leaves))
    console.print(stats)

    for a in overview.pinned_announcements:
        console.print(Panel(a.content, title=f"📌 {a.title}", border_style="red" if a.type == "urgent" else "cyan"))

    activity = Table(title="Recent Activity", show_header=True, header_style="bold cyan")
    activity.add_column("Type")
    activity.add_column("Title")
    activity.add_column("Date")
    activity.add_column("Status")
    for item in overview.recent_activity:
        activity.add_row(item.type, item.title, fmt_date(item.date), styled_status(item.status))
    console.print(activity)


def render_admin_overview(console: Console, overview: dashboard.AdminOverview, recent: Sequence = ()) -> None:
    stats = Table(title="Dashboard Overview", show_header=False)
    stats.add_column("Metric", style="dim")
    stats.add_column("Value", justify="right")
    stats.add_row("Total users", str(overview.total_users))
    stats.add_row("Active complaints", str(overview.active_complaints))
    stats.add_row("Pending service requests", str(overview.pending_service_requests))
    stats.add_row("Pending leave requests", str(overview.pending_leave_requests))
    stats.add_row("Pending revenue", fmt_money(overview.pending_revenue))
    stats.add_row("Occupancy rate", f"{overview.occupancy_rate}%")
    console.print(stats)

    if overview.urgent_issues:
        console.print(complaints_table(overview.urgent_issues, admin=True))

    if recent:
        for activity in recent:
            console.print(f"[bold]{activity.user}[/bold] {activity.action} "
                          f"[dim]{dashboard.time_ago(activity.time)}[/dim]")
    else:
        console.print("[dim]No recent activity.[/dim]")


# ---------------------------------------------------------------------------------
# Interactive app
# ---------------------------------------------------------------------------------
class ConsoleApp:
    def __init__(self, store: HostelStore, console: Console = None):
        self.store = store
        self.console = console or Console()
        self.login_role = "User"

    @property
    def state(self):
        return self.store.state

    def run(self) -> None:
        if self.store.restore_session():
            self.console.print(f"Welcome back, [bold]{self.state.current_user.name}[/bold]!")
        while True:
            self.show_notices()
            if self.state.screen == "dashboard" and self.state.is_authenticated:
                self.dashboard()
            elif self.state.screen == "login":
                self.login_screen()
            else:
                if not self.landing():
                    return

    def show_notices(self) -> None:
        for notice in self.state.notices:
            self.console.print(f"[yellow]! {notice}[/yellow]")
        if self.state.notices:
            self.store.clear_notices()

    def landing(self) -> bool:
        render_landing(self.console)
        choice = Prompt.ask("Continue as", choices=["student", "admin", "quit"], default="student",
                            console=self.console)
        if choice == "quit":
            return False
        self.login_role = "Admin" if choice == "admin" else "User"
        self.store.navigate("login")
        return True

    def login_screen(self) -> None:
        role = self.login_role
        storage = self.store.storage
        label = "Admin" if role == "Admin" else "Student"
        self.console.print(Panel(f"{label} login", border_style="cyan"))
        remembered = storage.remembered_email() if storage else None
        if remembered:
            email = Prompt.ask("Email", default=remembered, console=self.console)
        else:
            email = Prompt.ask("Email", console=self.console)
        password = Prompt.ask("Password", password=True, console=self.console)
        remember = Confirm.ask("Remember my email", default=False, console=self.console)

        if self.store.login(email, password, role):
            if storage:
                storage.remember_email(email if remember else None)
            self.console.print(f"[green]✓ Welcome, {self.state.current_user.name}![/green]")
        else:
            self.console.print(f"[red]✗ Invalid credentials or not a {label.lower()} account[/red]")
            if not Confirm.ask("Try again", default=True, console=self.console):
                self.store.navigate("landing")

    def tabs(self) -> List[str]:
        return ADMIN_TABS if self.state.current_user.is_admin else STUDENT_TABS

    def dashboard(self) -> None:
        tabs = self.tabs()
        tab = self.state.tab if self.state.tab in tabs else "Overview"
        self.show_tab(tab)
        commands = ["act", "search", "refresh", "logout"] if tab in SEARCHABLE_TABS else ["act", "refresh", "logout"]
        choice = Prompt.ask("Go to", choices=tabs + commands, default="act", console=self.console)
        if choice == "logout":
            self.store.logout()
        elif choice == "refresh":
            self.store.refresh()
        elif choice == "act":
            self.act(tab)
        elif choice == "search":
            self.search(tab)
        else:
            self.store.select_tab(choice)

    def show_tab(self, tab: str) -> None:
        state = self.state
        user = state.current_user
        admin = user.is_admin
        if tab == "Overview":
            if admin:
                render_admin_overview(self.console, dashboard.admin_overview(state), state.recent_activity)
            else:
                render_student_overview(self.console, dashboard.student_overview(state, user))
        elif tab == "Users":
            self.console.print(users_table(state.users))
        elif tab == "Complaints":
            self.console.print(complaints_table(self._visible(state.complaints), admin))
            counts = dashboard.complaint_status_counts(self._visible(state.complaints))
            self.console.print("  ".join(f"{k}: {v}" for k, v in counts.items()))
        elif tab == "Service Requests":
            self.console.print(service_requests_table(self._visible(state.service_requests), admin))
        elif tab == "Leave Requests":
            mine = self._visible(state.leave_requests)
            self.console.print(leave_requests_table(mine, admin))
            stats = dashboard.leave_stats(mine)
            self.console.print(f"Total: {stats['total']}  Approved: {stats['approved']}  Pending: {stats['pending']}")
        elif tab == "Payments":
            mine = self._visible(state.payments)
            self.console.print(payments_table(mine, admin))
            summary = dashboard.payment_summary(mine)
            self.console.print(f"Total due: {fmt_money(summary['total_due'])}  "
                               f"Paid: {fmt_money(summary['total_paid'])}")
        elif tab == "Announcements":
            self.console.print(announcements_table(state.announcements))

    def search(self, tab: str) -> None:
        state = self.state
        admin = state.current_user.is_admin
        if tab == "Users":
            term = Prompt.ask("Name or room", default="", console=self.console)
            matches = dashboard.search_users(state.users, term)
            table = users_table(matches)
        elif tab == "Complaints":
            term = Prompt.ask("Search complaints", default="", console=self.console)
            matches = dashboard.filter_complaints(self._visible(state.complaints), term)
            table = complaints_table(matches, admin)
        elif tab == "Service Requests":
            category = Prompt.ask("Category", choices=SERVICE_TYPES + ["all"], default="all", console=self.console)
            term = Prompt.ask("Search service requests", default="", console=self.console)
            matches = dashboard.filter_service_requests(
                self._visible(state.service_requests), None if category == "all" else category, term)
            table = service_requests_table(matches, admin)
        else:
            return
        if matches:
            self.console.print(table)
        else:
            self.console.print(f"[dim]No {tab.lower()} found matching \"{term}\"[/dim]")

    def _visible(self, records: Sequence) -> list:
        user = self.state.current_user
        return list(records) if user.is_admin else dashboard.owned_by(records, user.id)

    def _pick(self, records: Sequence, what: str):
        if not records:
            self.console.print(f"[dim]No {what} to choose from.[/dim]")
            return None
        index = Prompt.ask(f"Which {what} (#)", choices=[str(i) for i in range(1, len(records) + 1)],
                           console=self.console)
        return records[int(index) - 1]

    def _ask_date(self, label: str) -> Optional[date]:
        while True:
            raw = Prompt.ask(f"{label} (YYYY-MM-DD)", console=self.console)
            try:
                return date.fromisoformat(raw)
            except ValueError:
                self.console.print("[red]Please enter a date like 2025-12-24[/red]")

    def act(self, tab: str) -> None:
        admin = self.state.current_user.is_admin
        handler = getattr(self, f"act_{tab.lower().replace(' ', '_')}_{'admin' if admin else 'student'}", None)
        if handler is None:
            self.console.print("[dim]Nothing to do here.[/dim]")
            return
        handler()

    # Student actions
    def act_complaints_student(self) -> None:
        title = Prompt.ask("Title", console=self.console)
        category = Prompt.ask("Category", choices=["Plumbing", "Electrical", "Furniture", "Cleaning", "Other"],
                              default="Other", console=self.console)
        priority = Prompt.ask("Priority", choices=["High", "Medium", "Low"], default="Medium", console=self.console)
        description = Prompt.ask("Description", console=self.console)
        if self.store.add_complaint(title, description, category, priority):
            self.console.print("[green]✓ Complaint submitted[/green]")

    def act_service_requests_student(self) -> None:
        service_type = Prompt.ask("Service", choices=SERVICE_TYPES,
                                  default="Room Cleaning", console=self.console)
        description = Prompt.ask("Description", console=self.console)
        if self.store.add_service_request(service_type, description):
            self.console.print("[green]✓ Service requested[/green]")

    def act_leave_requests_student(self) -> None:
        start = self._ask_date("From")
        end = self._ask_date("To")
        reason = Prompt.ask("Reason", console=self.console)
        record = self.store.add_leave_request(start, end, reason)
        if record:
            self.console.print(f"[green]✓ Leave requested for {record.days} day(s)[/green]")

    def act_payments_student(self) -> None:
        due = [p for p in self._visible(self.state.payments) if p.status != "Paid"]
        payment = self._pick(due, "bill")
        if payment and Confirm.ask(f"Pay {fmt_money(payment.amount)} for {payment.title}", console=self.console):
            record = self.store.pay_bill(payment.id)
            if record:
                self.console.print(f"[green]✓ Paid. Transaction {record.transaction_id}[/green]")

    # Admin actions
    def _change_status(self, records: Sequence, what: str, statuses: List[str], update) -> None:
        record = self._pick(list(records), what)
        if record is None:
            return
        status = Prompt.ask("New status", choices=statuses, default=record.status, console=self.console)
        if update(record.id, status):
            self.console.print(f"[green]✓ {what.capitalize()} set to {status}[/green]")

    def act_complaints_admin(self) -> None:
        self._change_status(self.state.complaints, "complaint", COMPLAINT_STATUSES,
                            self.store.update_complaint_status)

    def act_service_requests_admin(self) -> None:
        self._change_status(self.state.service_requests, "request", SERVICE_STATUSES,
                            self.store.update_service_request_status)

    def act_leave_requests_admin(self) -> None:
        self._change_status(self.state.leave_requests, "leave request", LEAVE_STATUSES,
                            self.store.update_leave_request_status)

    def act_payments_admin(self) -> None:
        choice = Prompt.ask("Action", choices=["schedule", "status"], default="schedule", console=self.console)
        if choice == "status":
            self._change_status(self.state.payments, "payment", PAYMENT_STATUSES, self.store.update_payment_status)
            return
        students = [u for u in self.state.users if u.role == "User"]
        student = self._pick(students, "student")
        if student is None:
            return
        title = Prompt.ask("Title", default=f"Hostel Fee - {date.today():%b %Y}", console=self.console)
        amount = FloatPrompt.ask("Amount", console=self.console)
        due_date = self._ask_date("Due date")
        if self.store.add_payment(title, amount, due_date, student.id):
            self.console.print("[green]✓ Fee scheduled[/green]")

    def act_announcements_admin(self) -> None:
        title = Prompt.ask("Title", console=self.console)
        content = Prompt.ask("Content", console=self.console)
        kind = Prompt.ask("Type", choices=["general", "urgent", "event"], default="general", console=self.console)
        is_pinned = Confirm.ask("Pin it", default=False, console=self.console)
        if self.store.add_announcement(title, content, kind, is_pinned):
            self.console.print("[green]✓ Announcement posted[/green]")

    def act_users_admin(self) -> None:
        choice = Prompt.ask("Action", choices=["add", "delete"], default="add", console=self.console)
        if choice == "delete":
            user = self._pick([u for u in self.state.users if u.id != self.state.current_user.id], "user")
            if user and Confirm.ask(f"Delete {user.name} and all their records", default=False,
                                    console=self.console):
                if self.store.delete_user(user.id):
                    self.console.print("[green]✓ User deleted[/green]")
            return
        name = Prompt.ask("Name", console=self.console)
        email = Prompt.ask("Email", console=self.console)
        password = Prompt.ask("Password", password=True, console=self.console)
        room = Prompt.ask("Room", console=self.console)
        contact = Prompt.ask("Contact", default="", console=self.console) or None
        if self.store.add_user(name, email, password, room, contact):
            self.console.print("[green]✓ User created[/green]")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostel-console",
        description="Hostel Management console client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--backend", choices=["api", "memory"], default=settings.BACKEND,
                        help="Where the data lives (default: %(default)s)")
    parser.add_argument("--api-url", default=settings.API_URL,
                        help="Base URL of the REST API (default: %(default)s)")
    parser.add_argument("--session-file", default=settings.SESSION_FILE,
                        help="Where the session is kept between runs")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: %(default)s)")
    return parser


def main(argv: Sequence[str] = None) -> int:
    args = create_parser().parse_args(argv)
    setup_logging(args.log_level)
    console = Console()

    backend = make_backend(args.backend, args.api_url)
    # a saved token means nothing to a fresh in-memory database
    storage = SessionStorage(args.session_file) if args.backend == "api" else None
    app = ConsoleApp(HostelStore(backend, storage), console)
    try:
        app.run()
    except (KeyboardInterrupt, EOFError):
        console.print("\nBye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
