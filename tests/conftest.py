"""Pytest fixtures and in-memory fakes of the Supabase client."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Optional
from uuid import uuid4

import pytest

from app.config.permissions_config import CAPABILITY_COLUMNS, RESOURCE_KINDS
from app.core.rate_limiter import RateLimiter
from app.modules.permissions.service import PermissionEvaluator, PermissionMutator
from app.modules.profiles.schemas import Subject

_BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

UNIQUE_KEYS = {
    "vault_groups": ("name",),
    "user_profiles": ("user_id",),
    **{cfg["table"]: ("user_id", cfg["key_column"]) for cfg in RESOURCE_KINDS.values()},
}


# --- Fake Supabase query builder ---


class FakeResult:
    def __init__(self, data: list) -> None:
        self.data = data


class FakeQuery:
    """Chainable query mimicking the postgrest builder used by the services."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._action = "select"
        self._payload: Any = None
        self._on_conflict = ""
        self._filters: list[Callable[[dict], bool]] = []
        self._order: Optional[tuple[str, bool]] = None
        self._limit: Optional[int] = None
        self._offset = 0

    def select(self, *columns, **kwargs) -> "FakeQuery":
        return self

    def insert(self, payload) -> "FakeQuery":
        self._action, self._payload = "insert", payload
        return self

    def update(self, payload) -> "FakeQuery":
        self._action, self._payload = "update", payload
        return self

    def upsert(self, payload, on_conflict: str = "", **kwargs) -> "FakeQuery":
        self._action, self._payload, self._on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self) -> "FakeQuery":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values) -> "FakeQuery":
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def offset(self, count: int) -> "FakeQuery":
        self._offset = count
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self._offset, self._limit = start, end - start + 1
        return self

    def _matches(self, row: dict) -> bool:
        return all(test(row) for test in self._filters)

    def execute(self) -> FakeResult:
        self._db.calls.append((self._table, self._action))
        self._db.raise_if_failing(self._table, self._action, self._payload)
        rows = self._db.tables.setdefault(self._table, [])

        if self._action == "select":
            found = [dict(r) for r in rows if self._matches(r)]
            if self._order:
                column, desc = self._order
                found.sort(key=lambda r: (r.get(column) is None, r.get(column) or ""), reverse=desc)
            found = found[self._offset:]
            if self._limit is not None:
                found = found[: self._limit]
            return FakeResult(found)

        if self._action == "insert":
            payloads = self._payload if isinstance(self._payload, list) else [self._payload]
            return FakeResult([self._db.insert_row(self._table, p) for p in payloads])

        if self._action == "update":
            changed = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    changed.append(dict(row))
            return FakeResult(changed)

        if self._action == "upsert":
            keys = [k.strip() for k in self._on_conflict.split(",") if k.strip()]
            for row in rows:
                if keys and all(row.get(k) == self._payload.get(k) for k in keys):
                    row.update(self._payload)
                    return FakeResult([dict(row)])
            return FakeResult([self._db.insert_row(self._table, self._payload)])

        if self._action == "delete":
            removed = [r for r in rows if self._matches(r)]
            self._db.tables[self._table] = [r for r in rows if not self._matches(r)]
            return FakeResult([dict(r) for r in removed])

        raise AssertionError(f"Unsupported action {self._action}")


class FakeSupabase:
    """In-memory stand-in for supabase.Client (tables only, plus an optional auth fake)."""

    def __init__(self, auth: Any = None) -> None:
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self.auth = auth
        self._failures: list[tuple[str, str, Callable[[Any], bool], str]] = []
        self._seq = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail(self, table: str, action: str, when: Callable[[Any], bool] = lambda payload: True,
             message: str = "connection refused") -> None:
        self._failures.append((table, action, when, message))

    def raise_if_failing(self, table: str, action: str, payload: Any) -> None:
        for f_table, f_action, when, message in self._failures:
            if f_table == table and f_action == action and when(payload):
                raise RuntimeError(message)

    def insert_row(self, table: str, payload: dict) -> dict:
        rows = self.tables.setdefault(table, [])
        key = UNIQUE_KEYS.get(table)
        if key and any(all(r.get(k) == payload.get(k) for k in key) for r in rows):
            raise RuntimeError(f'duplicate key value violates unique constraint "{table}_key"')
        self._seq += 1
        stamp = (_BASE_TIME + timedelta(seconds=self._seq)).isoformat()
        row = {"id": str(uuid4()), "created_at": stamp, "updated_at": stamp, **payload}
        rows.append(row)
        return dict(row)

    def rows(self, table: str, **filters) -> list[dict]:
        return [
            dict(r) for r in self.tables.get(table, [])
            if all(r.get(k) == v for k, v in filters.items())
        ]

    def count_calls(self, table: str, action: str) -> int:
        return sum(1 for call in self.calls if call == (table, action))


class FakeAuthAdmin:
    """supabase.auth.admin stand-in (service-role calls)."""

    def __init__(self, auth: "FakeAuth") -> None:
        self._auth = auth
        self.revoked: list[str] = []

    def _find(self, uid: str) -> SimpleNamespace:
        for user in self._auth.users.values():
            if user.id == uid:
                return user
        raise RuntimeError("User not found")

    def get_user_by_id(self, uid: str):
        return SimpleNamespace(user=self._find(uid))

    def list_users(self, page=None, per_page=None) -> list:
        return list(self._auth.users.values())

    def update_user_by_id(self, uid: str, attributes: dict):
        user = self._find(uid)
        email = attributes.get("email")
        if email and email != user.email:
            if email in self._auth.users:
                raise RuntimeError("A user with this email address has already been registered")
            del self._auth.users[user.email]
            user.email = email
            self._auth.users[email] = user
        return SimpleNamespace(user=user)

    def sign_out(self, jwt: str, scope: str = "global") -> None:
        self.revoked.append(jwt)
        self._auth.tokens.pop(jwt, None)


class FakeAuth:
    """Minimal supabase.auth stand-in."""

    def __init__(self) -> None:
        self.users: dict[str, SimpleNamespace] = {}
        self.tokens: dict[str, str] = {}
        self.get_user_calls = 0
        self.admin = FakeAuthAdmin(self)

    def add_user(self, user_id: str, email: str, password: str, token: str) -> None:
        self.users[email] = SimpleNamespace(id=user_id, email=email, password=password, user_metadata={})
        self.tokens[token] = email

    def sign_up(self, credentials: dict):
        if credentials["email"] in self.users:
            raise RuntimeError("User already registered")
        user = SimpleNamespace(id=str(uuid4()), email=credentials["email"],
                               password=credentials["password"], user_metadata={})
        self.users[user.email] = user
        return SimpleNamespace(user=user, session=None)

    def sign_in_with_password(self, credentials: dict):
        user = self.users.get(credentials["email"])
        if not user or user.password != credentials["password"]:
            raise RuntimeError("Invalid login credentials")
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token=f"token-{user.id}"))

    def get_user(self, jwt: str):
        self.get_user_calls += 1
        email = self.tokens.get(jwt)
        if email is None:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=self.users[email])

    def sign_out(self) -> None:
        return None


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


# --- Helpers ---


def add_grant(db: FakeSupabase, kind: str, user_id: str, resource_id: str, **capabilities: bool) -> dict:
    """Store a grant row directly, e.g. add_grant(db, "client", "alice", "C1", view=True)."""
    config = RESOURCE_KINDS[kind]
    row = {"user_id": user_id, config["key_column"]: resource_id}
    for capability in config["capabilities"]:
        row[CAPABILITY_COLUMNS[capability]] = capabilities.get(capability, False)
    return db.insert_row(config["table"], row)


def add_profile(db: FakeSupabase, user_id: str, is_admin: bool = False, display_name: str = "") -> dict:
    return db.insert_row("user_profiles", {
        "user_id": user_id,
        "display_name": display_name or user_id,
        "email": f"{user_id}@example.com",
        "is_admin": is_admin,
    })


# --- Fixtures ---


@pytest.fixture
def db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def evaluator(db) -> PermissionEvaluator:
    return PermissionEvaluator(db)


@pytest.fixture
def mutator(db) -> PermissionMutator:
    return PermissionMutator(db)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock) -> RateLimiter:
    return RateLimiter(clock=clock)


@pytest.fixture
def admin() -> Subject:
    return Subject(id="bob", display_name="Bob", email="bob@example.com", is_admin=True)


@pytest.fixture
def alice() -> Subject:
    return Subject(id="alice", display_name="Alice", email="alice@example.com", is_admin=False)


@pytest.fixture
def carol() -> Subject:
    return Subject(id="carol", display_name="Carol", email="carol@example.com", is_admin=False)
