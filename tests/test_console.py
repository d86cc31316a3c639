from io import StringIO

import pytest
from rich.console import Console

import console as console_module
from backends import DEMO_ADMIN, DEMO_STUDENT, InMemoryBackend
from console import ConsoleApp, create_parser
from store import HostelStore


@pytest.fixture
def out():
    return Console(file=StringIO(), width=200, color_system=None)


def text(console):
    return console.file.getvalue()


def login(role):
    store = HostelStore(InMemoryBackend())
    account = DEMO_ADMIN if role == "Admin" else DEMO_STUDENT
    assert store.login(account["email"], account["password"], role)
    return store


def test_parser_defaults():
    args = create_parser().parse_args(["--backend", "memory"])

    assert args.backend == "memory"
    assert args.log_level == "WARNING"


def test_landing_lists_features(out):
    app = ConsoleApp(HostelStore(InMemoryBackend(seed=False)), out)
    console_module.render_landing(out)

    assert "Complaints" in text(out)
    assert app.state.screen == "landing"


@pytest.mark.parametrize("tab", console_module.STUDENT_TABS)
def test_student_tabs_render(out, tab):
    app = ConsoleApp(login("User"), out)

    app.show_tab(tab)

    assert text(out)


def test_student_overview_shows_dues(out):
    app = ConsoleApp(login("User"), out)

    app.show_tab("Overview")

    assert "₹19,500" in text(out)
    assert "Water supply maintenance" in text(out)


@pytest.mark.parametrize("tab", console_module.ADMIN_TABS)
def test_admin_tabs_render(out, tab):
    app = ConsoleApp(login("Admin"), out)

    app.show_tab(tab)

    assert text(out)


def test_student_complaint_action(out, monkeypatch):
    store = login("User")
    app = ConsoleApp(store, out)
    answers = iter(["Broken window", "Other", "High", "Glass cracked"])
    monkeypatch.setattr(console_module.Prompt, "ask", lambda *a, **k: next(answers))

    app.act("Complaints")

    assert store.state.complaints[0].title == "Broken window"
    assert "Complaint submitted" in text(out)


def test_unknown_action(out):
    app = ConsoleApp(login("User"), out)

    app.act("Overview")

    assert "Nothing to do here" in text(out)


def test_admin_searches_users(out, monkeypatch):
    app = ConsoleApp(login("Admin"), out)
    monkeypatch.setattr(console_module.Prompt, "ask", lambda *a, **k: "101")

    app.search("Users")

    assert "John Doe" in text(out)
    assert "Admin User" not in text(out)


def test_complaint_search_without_matches(out, monkeypatch):
    app = ConsoleApp(login("User"), out)
    monkeypatch.setattr(console_module.Prompt, "ask", lambda *a, **k: "window")

    app.search("Complaints")

    assert 'No complaints found matching "window"' in text(out)


def test_service_request_filter(out, monkeypatch):
    app = ConsoleApp(login("User"), out)
    answers = iter(["Room Cleaning", "deep"])
    monkeypatch.setattr(console_module.Prompt, "ask", lambda *a, **k: next(answers))

    app.search("Service Requests")

    assert "Deep clean before inspection" in text(out)
