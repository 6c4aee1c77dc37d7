from __future__ import annotations

import copy
from datetime import datetime, timedelta
from types import SimpleNamespace

from postgrest.exceptions import APIError


START = 1_700_000_000.0
USER_ID = "user-1"


def auth_error():
    return APIError({"message": "JWT expired", "code": "PGRST301", "hint": None, "details": None})


def server_error():
    return APIError({"message": "duplicate key value violates unique constraint", "code": "23505",
                     "hint": None, "details": None})


class FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_session(user_id, expires_at, n=0):
    return SimpleNamespace(
        user=SimpleNamespace(id=user_id),
        expires_at=int(expires_at),
        expires_in=3600,
        access_token=f"access-{n}",
        refresh_token=f"refresh-{n}",
    )


class FakeAuth:
    def __init__(self, clock):
        self.clock = clock
        self.session = None
        self.users = {}
        self.get_session_calls = 0
        self.refresh_calls = 0
        self.sign_out_calls = 0
        self.refresh_error = None
        self.get_session_error = None
        self.sign_out_error = None
        self.listeners = []

    def sign_in_as(self, user_id=USER_ID, expires_in=3600):
        self.session = make_session(user_id, self.clock() + expires_in)
        return self.session

    def get_session(self):
        self.get_session_calls += 1
        if self.get_session_error is not None:
            raise self.get_session_error
        return self.session

    def refresh_session(self, refresh_token=None):
        self.refresh_calls += 1
        if self.refresh_error is not None:
            raise self.refresh_error
        if self.session is None and refresh_token is None:
            raise Exception("Auth session missing!")
        user_id = self.session.user.id if self.session else USER_ID
        self.session = make_session(user_id, self.clock() + 3600, self.refresh_calls)
        return SimpleNamespace(session=self.session, user=self.session.user)

    def sign_in_with_password(self, credentials):
        email = credentials["email"]
        if self.users.get(email, (None,))[0] != credentials["password"]:
            raise Exception("Invalid login credentials")
        self.session = make_session(self.users[email][1], self.clock() + 3600)
        return SimpleNamespace(session=self.session, user=self.session.user)

    def sign_up(self, credentials):
        user_id = f"user-{len(self.users) + 100}"
        self.users[credentials["email"]] = (credentials["password"], user_id)
        return SimpleNamespace(user=SimpleNamespace(id=user_id), session=None)

    def sign_out(self):
        self.sign_out_calls += 1
        if self.sign_out_error is not None:
            raise self.sign_out_error
        self.session = None

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)
        return SimpleNamespace(unsubscribe=lambda: self.listeners.remove(callback))

    def emit(self, event, session):
        for callback in list(self.listeners):
            callback(event, session)


class FakeQuery:
    def __init__(self, backend, table):
        self.backend = backend
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload = None
        self.filters = []
        self._order = None
        self._limit = None

    def select(self, columns="*"):
        self.op = "select"
        self.columns = columns
        return self

    def insert(self, row):
        self.op, self.payload = "insert", row
        return self

    def upsert(self, row, **kwargs):
        self.op, self.payload = "upsert", row
        return self

    def update(self, changes):
        self.op, self.payload = "update", changes
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def _matches(self, row):
        return all(row.get(c) == v for c, v in self.filters)

    def execute(self):
        self.backend.calls.append((self.table, self.op))
        self.backend.raise_if_failing(self.table, self.op)
        rows = self.backend.tables.setdefault(self.table, [])

        if self.op == "select":
            result = [r for r in rows if self._matches(r)]
            if self._order:
                column, desc = self._order
                result.sort(key=lambda r: str(r.get(column) or ""), reverse=desc)
            if self._limit is not None:
                result = result[:self._limit]
            if self.columns != "*":
                wanted = [c.strip() for c in self.columns.split(",")]
                result = [{c: r.get(c) for c in wanted} for r in result]
            return SimpleNamespace(data=copy.deepcopy(result))

        if self.op in ("insert", "upsert"):
            row = dict(self.payload)
            existing = next((r for r in rows if r.get("id") == row.get("id")), None)
            if existing is not None and self.op == "upsert":
                existing.update(row)
                return SimpleNamespace(data=[copy.deepcopy(existing)])
            row.setdefault("id", f"{self.table}-{len(rows) + 1}")
            row.setdefault("created_at", self.backend.next_timestamp())
            rows.append(row)
            return SimpleNamespace(data=[copy.deepcopy(row)])

        if self.op == "update":
            touched = [r for r in rows if self._matches(r)]
            for r in touched:
                r.update(self.payload)
            return SimpleNamespace(data=copy.deepcopy(touched))

        if self.op == "delete":
            removed = [r for r in rows if self._matches(r)]
            self.backend.tables[self.table] = [r for r in rows if not self._matches(r)]
            return SimpleNamespace(data=copy.deepcopy(removed))
        raise AssertionError(f"unsupported op {self.op}")


class FakeSupabase:
    """In-memory stand-in for the parts of the Supabase client medcrm uses."""

    def __init__(self, clock):
        self.auth = FakeAuth(clock)
        self.tables = {}
        self.calls = []
        self._failures = []
        self._tick = 0

    def table(self, name):
        return FakeQuery(self, name)

    def next_timestamp(self):
        self._tick += 1
        return (datetime(2024, 1, 1) + timedelta(seconds=self._tick)).isoformat()

    def fail(self, table, op, error, times=1):
        """Makes the next ``times`` matching calls raise ``error`` (None = forever)."""
        self._failures.append([table, op, error, times])

    def raise_if_failing(self, table, op):
        for failure in self._failures:
            if failure[0] == table and failure[1] == op:
                if failure[3] is not None:
                    failure[3] -= 1
                    if failure[3] <= 0:
                        self._failures.remove(failure)
                raise failure[2]

    def count(self, table, op):
        return sum(1 for call in self.calls if call == (table, op))

    def rows(self, table):
        return self.tables.get(table, [])


