import asyncio
from types import SimpleNamespace

import psycopg2

import main
from repositories.document_repo import user_namespace
from security.auth import is_allowed


class FakeListener:
    def __init__(self, changes=None, error=None):
        self.changes = changes or set()
        self.error = error
        self.started = 0
        self.closed = False

    def start(self):
        self.started += 1

    def poll_changes(self, timeout=0.0):
        if self.error:
            raise self.error
        return self.changes

    def close(self):
        self.closed = True


class FakeBot:
    def __init__(self):
        self.sent = []

    async def send_message(self, chat_id, text):
        self.sent.append((chat_id, text))


def _context(listener):
    return SimpleNamespace(application=SimpleNamespace(bot_data={main.LISTENER_KEY: listener}), bot=FakeBot())


def test_changes_trigger_checks_for_watched_collections(monkeypatch):
    checked = []

    async def fake_check(context, user_id):
        checked.append(user_id)

    monkeypatch.setattr(main, "run_recurring_check", fake_check)
    monkeypatch.setattr(main, "is_allowed", lambda user_id: user_id != 666)
    listener = FakeListener({
        (user_namespace(2), "cashflowRecords"),
        (user_namespace(1), "settings"),
        (user_namespace(1), "cashflowRecords"),
        (user_namespace(3), "goals"),
        (user_namespace(666), "settings"),
        ("artifacts/another-app/users/4", "settings"),
    })

    asyncio.run(main.realtime_changes_job(_context(listener)))

    assert checked == [1, 2]


def test_broken_listener_is_closed_for_reconnect(monkeypatch):
    async def fake_check(context, user_id):
        raise AssertionError("no check expected")

    monkeypatch.setattr(main, "run_recurring_check", fake_check)
    listener = FakeListener(error=psycopg2.OperationalError("server closed the connection"))

    asyncio.run(main.realtime_changes_job(_context(listener)))

    assert listener.closed


def test_recurring_check_outcomes_are_messaged(monkeypatch):
    outcomes = iter([True, False, RuntimeError("boom")])

    class FakeService:
        def check_and_create(self, user_id):
            outcome = next(outcomes)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

    monkeypatch.setattr(main, "RecurringService", FakeService)
    context = _context(None)

    for _ in range(3):
        asyncio.run(main.run_recurring_check(context, 5))

    assert context.bot.sent == [(5, f"🔁 {main.CREATED_MESSAGE}"), (5, f"❌ {main.FAILED_MESSAGE}")]


def test_daily_job_checks_every_stored_user_when_whitelist_is_empty(monkeypatch, documents):
    checked = []

    async def fake_check(context, user_id):
        checked.append(user_id)

    documents.add(user_namespace(20), "cashflowRecords", {"amount": 1})
    documents.add(user_namespace(10), "settings", {"manualRate": None})
    documents.add("artifacts/another-app/users/30", "settings", {})
    monkeypatch.setattr(main, "ALLOWED_USER_IDS", [])
    monkeypatch.setattr(main, "is_allowed", lambda user_id: is_allowed(user_id, allowed=[]))
    monkeypatch.setattr(main, "DocumentRepository", lambda: documents)
    monkeypatch.setattr(main, "run_recurring_check", fake_check)

    asyncio.run(main.daily_recurring_job(_context(None)))

    assert checked == [10, 20]


def test_stored_users_are_filtered_by_whitelist(monkeypatch, documents):
    documents.add(user_namespace(20), "cashflowRecords", {"amount": 1})
    documents.add(user_namespace(99), "cashflowRecords", {"amount": 1})
    monkeypatch.setattr(main, "ALLOWED_USER_IDS", [5, 20])
    monkeypatch.setattr(main, "is_allowed", lambda user_id: is_allowed(user_id, allowed=[5, 20]))

    assert main.recurring_user_ids(documents) == [5, 20]


def test_whitelist_is_used_when_store_listing_fails(monkeypatch):
    class BrokenDocuments:
        def list_namespaces(self, prefix):
            raise psycopg2.OperationalError("no connection")

    monkeypatch.setattr(main, "ALLOWED_USER_IDS", [7])
    monkeypatch.setattr(main, "is_allowed", lambda user_id: True)

    assert main.recurring_user_ids(BrokenDocuments()) == [7]
