from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient
from psycopg import errors as pg_errors

from context import AppContext, wire
from main import create_app
from models import EventRecord, QueryPlan, UserRecord
from settings import Settings

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
SECRET = "test-secret-0123456789abcdef0123456789"


class FrozenClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class MemoryUserRepo:
    """In-memory stand-in for `UserRepo` with the same UNIQUE behaviour."""

    def __init__(self):
        self.rows: Dict[str, UserRecord] = {}

    def get_by_id(self, user_id: str) -> UserRecord | None:
        return self.rows.get(user_id)

    def get_by_username(self, username: str) -> UserRecord | None:
        for user in self.rows.values():
            if user.username == username:
                return user
        return None

    def insert(self, user: UserRecord) -> None:
        if any(u.username == user.username for u in self.rows.values()):
            raise pg_errors.UniqueViolation("duplicate key value violates unique constraint")
        self.rows[user.id] = user

    def set_password(self, user_id: str, password_hash: str) -> bool:
        if user_id not in self.rows:
            return False
        self.rows[user_id] = self.rows[user_id].model_copy(update={"password_hash": password_hash})
        return True

    def update_profile(self, user_id: str, changes: Dict[str, Any]) -> UserRecord | None:
        if user_id not in self.rows:
            return None
        self.rows[user_id] = self.rows[user_id].model_copy(update=changes)
        return self.rows[user_id]


class MemoryEventRepo:
    """In-memory stand-in for `EventRepo` mirroring its SQL semantics."""

    def __init__(self):
        self.rows: Dict[str, EventRecord] = {}

    def insert(self, event: EventRecord) -> None:
        self.rows[event.id] = event

    def get(self, event_id: str) -> EventRecord | None:
        return self.rows.get(event_id)

    def update(self, event_id: str, changes: Dict[str, Any]) -> EventRecord | None:
        if event_id not in self.rows:
            return None
        self.rows[event_id] = self.rows[event_id].model_copy(update=changes)
        return self.rows[event_id]

    def delete(self, event_id: str) -> bool:
        return self.rows.pop(event_id, None) is not None

    def find_by_owner(self, owner_id: str) -> List[EventRecord]:
        return self._by_date([e for e in self.rows.values() if e.owner_id == owner_id])

    def find_all(self) -> List[EventRecord]:
        return self._by_date(list(self.rows.values()))

    def count(self, plan: QueryPlan) -> int:
        return len(self._match(plan))

    def find(self, plan: QueryPlan) -> List[EventRecord]:
        rows = sorted(self._match(plan), key=lambda e: e.id)
        rows.sort(key=lambda e: getattr(e, plan.sort), reverse=plan.descending)
        return rows[plan.skip:plan.skip + plan.limit]

    def count_by_status(self):
        counts = Counter(e.status for e in self.rows.values())
        return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))

    def next_from(self, now: datetime) -> EventRecord | None:
        upcoming = self._by_date([e for e in self.rows.values() if e.date >= now])
        return upcoming[0] if upcoming else None

    def ping(self) -> None:
        pass

    def _match(self, plan: QueryPlan) -> List[EventRecord]:
        out = []
        for e in self.rows.values():
            if plan.search:
                term = plan.search.lower()
                if term not in e.name.lower() and term not in e.location.lower():
                    continue
            if plan.status and e.status != plan.status:
                continue
            out.append(e)
        return out

    @staticmethod
    def _by_date(rows: List[EventRecord]) -> List[EventRecord]:
        return sorted(rows, key=lambda e: (e.date, e.id))


def make_event(n: int, **overrides) -> EventRecord:
    """Event number `n`: id and date both increase with `n`."""

    fields = dict(
        id=f"{n:024x}",
        name=f"Event {n}",
        date=NOW + timedelta(days=n),
        location="Hall A",
        description=f"Description {n}",
        status="Upcoming",
        owner_id="a" * 24,
    )
    fields.update(overrides)
    return EventRecord(**fields)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        jwt_secret=SECRET,
        bcrypt_rounds=4,
        upload_dir=str(tmp_path / "uploads"),
        register_token_ttl_seconds=3600,
        login_token_ttl_seconds=7200,
    )


@pytest.fixture
def user_repo() -> MemoryUserRepo:
    return MemoryUserRepo()


@pytest.fixture
def event_repo() -> MemoryEventRepo:
    return MemoryEventRepo()


@pytest.fixture
def ctx(settings, user_repo, event_repo, clock) -> AppContext:
    return wire(settings, user_repo, event_repo, clock)


@pytest.fixture
def client(ctx) -> TestClient:
    return TestClient(create_app(ctx))


@pytest.fixture
def auth_headers(client):
    """Register a user and return (headers, user_id) for it."""

    def _make(username: str = "alice", password: str = "pw1", display_name: str = "Alice"):
        resp = client.post(
            "/api/register",
            json={"username": username, "password": password, "displayName": display_name},
        )
        assert resp.status_code == 201
        headers = {"Authorization": f"Bearer {resp.json()['token']}"}
        me = client.get("/api/me", headers=headers).json()
        return headers, me["id"]

    return _make
