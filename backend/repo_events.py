"""
Repository: SQL operations for `events`.

This file contains only DB interaction code. It maps Pydantic models
to SQL parameters and converts DB rows to `EventRecord`. Keep business
rules out of this module.

Important notes:
- SQL strings are simple and use positional parameters for psycopg.
- Column names interpolated into SQL come only from the closed mappings
  below (`SORT_COLUMNS`, `PATCH_COLUMNS`), never from caller input.
- Each write is a single statement and commits before returning, so
  callers can treat it as durable.
"""

from datetime import datetime
from typing import Any, Dict, List

from db import Database, build_assignments
from models import EventRecord, QueryPlan


EVENT_COLUMNS = "id, name, date, location, description, status, owner_id, image"

SORT_COLUMNS = {
    "name": "name",
    "date": "date",
    "location": "location",
    "status": "status",
}

PATCH_COLUMNS = {
    "name": "name",
    "date": "date",
    "location": "location",
    "description": "description",
    "status": "status",
    "image": "image",
}


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so `term` matches literally."""

    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_where(plan: QueryPlan) -> tuple[str, list]:
    """Return the WHERE clause (possibly empty) and its parameters."""

    clauses = []
    params: list = []
    if plan.search:
        pattern = f"%{escape_like(plan.search)}%"
        clauses.append("(name ILIKE %s OR location ILIKE %s)")
        params.extend([pattern, pattern])
    if plan.status:
        clauses.append("status = %s")
        params.append(plan.status)
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


def build_order(plan: QueryPlan) -> str:
    direction = "DESC" if plan.descending else "ASC"
    # id breaks ties so pages never overlap
    return f" ORDER BY {SORT_COLUMNS[plan.sort]} {direction}, id ASC"


class EventRepo:
    """DB access only. No business logic here.

    Responsibilities:
    - Map `EventRecord` / patches -> SQL parameters
    - Translate a `QueryPlan` into WHERE / ORDER BY / OFFSET / LIMIT
    - Keep transaction/commit boundaries local and explicit
    """

    def __init__(self, db: Database):
        self.db = db

    def insert(self, event: EventRecord) -> None:
        with self.db.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"INSERT INTO events ({EVENT_COLUMNS}) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)",
                    (
                        event.id,
                        event.name,
                        event.date,
                        event.location,
                        event.description,
                        event.status,
                        event.owner_id,
                        event.image,
                    ),
                )
            conn.commit()

    def get(self, event_id: str) -> EventRecord | None:
        rows = self._fetch(f"SELECT {EVENT_COLUMNS} FROM events WHERE id=%s", [event_id])
        return rows[0] if rows else None

    def update(self, event_id: str, changes: Dict[str, Any]) -> EventRecord | None:
        """Apply `changes` in one UPDATE; returns None if the id is unknown."""

        if not changes:
            return self.get(event_id)

        assignments, params = build_assignments(changes, PATCH_COLUMNS)
        params.append(event_id)
        with self.db.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"UPDATE events SET {assignments} WHERE id=%s RETURNING {EVENT_COLUMNS}",
                    params,
                )
                row = cur.fetchone()
            conn.commit()
        return EventRecord(**row) if row else None

    def delete(self, event_id: str) -> bool:
        with self.db.connect() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM events WHERE id=%s", (event_id,))
                deleted = cur.rowcount
            conn.commit()
        return deleted == 1

    def find_by_owner(self, owner_id: str) -> List[EventRecord]:
        return self._fetch(
            f"SELECT {EVENT_COLUMNS} FROM events WHERE owner_id=%s ORDER BY date ASC, id ASC",
            [owner_id],
        )

    def find_all(self) -> List[EventRecord]:
        return self._fetch(f"SELECT {EVENT_COLUMNS} FROM events ORDER BY date ASC, id ASC", [])

    def count(self, plan: QueryPlan) -> int:
        where, params = build_where(plan)
        with self.db.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT COUNT(*) AS n FROM events{where}", params)
                return cur.fetchone()["n"]

    def find(self, plan: QueryPlan) -> List[EventRecord]:
        where, params = build_where(plan)
        return self._fetch(
            f"SELECT {EVENT_COLUMNS} FROM events{where}{build_order(plan)} OFFSET %s LIMIT %s",
            params + [plan.skip, plan.limit],
        )

    def count_by_status(self) -> List[tuple[str, int]]:
        """Grouped counts, largest group first. Empty statuses do not appear."""

        with self.db.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT status, COUNT(*) AS n FROM events "
                    "GROUP BY status ORDER BY n DESC, status ASC"
                )
                return [(r["status"], r["n"]) for r in cur.fetchall()]

    def next_from(self, now: datetime) -> EventRecord | None:
        rows = self._fetch(
            f"SELECT {EVENT_COLUMNS} FROM events WHERE date >= %s ORDER BY date ASC, id ASC LIMIT 1",
            [now],
        )
        return rows[0] if rows else None

    def ping(self) -> None:
        """Lightweight DB health check. Raises on error."""

        with self.db.connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")

    def _fetch(self, query: str, params: list) -> List[EventRecord]:
        with self.db.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return [EventRecord(**r) for r in cur.fetchall()]
