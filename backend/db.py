"""
Database connection helper.

`Database` centralizes how connections are created. Right now it calls
`psycopg.connect(url)` which opens a new connection per call; rows come
back as dicts so repositories can feed them straight into Pydantic models.

One `Database` is built at startup (see `context.build_context`) and
passed to each repository. There is no module-level connection.

Usage:
    db = Database(settings.db_url)
    with db.connect() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")

Note: switching to a connection pool or async driver only changes
`Database.connect()`; repository code should remain unchanged.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator

import psycopg
from psycopg.rows import dict_row

from errors import ServerError


class Database:
    """Store handle shared by the repositories."""

    def __init__(self, url: str, connect_timeout: int = 5):
        self.url = url
        self.connect_timeout = connect_timeout

    @contextmanager
    def connect(self) -> Iterator[psycopg.Connection]:
        """Open a psycopg connection for the duration of the block.

        A short `connect_timeout` keeps HTTP requests from hanging
        indefinitely if the database is unreachable. Integrity errors
        (e.g. UNIQUE violations) pass through for the services to
        interpret; any other driver error becomes `ServerError`.
        """

        try:
            with psycopg.connect(
                self.url, connect_timeout=self.connect_timeout, row_factory=dict_row
            ) as conn:
                yield conn
        except psycopg.IntegrityError:
            raise
        except psycopg.Error as e:
            raise ServerError() from e


def build_assignments(changes: Dict[str, Any], columns: Dict[str, str]) -> tuple[str, list]:
    """Turn a patch into `col=%s, col=%s` plus its parameter list.

    Column names only ever come from `columns`; unknown keys raise KeyError.
    """

    parts = []
    params = []
    for field, value in changes.items():
        parts.append(f"{columns[field]}=%s")
        params.append(value)
    return ", ".join(parts), params
