"""Create the `users` and `events` tables. Safe to run repeatedly.

Usage (from backend/):
    python -m scripts.create_tables
"""

from settings import settings
import psycopg

DDL = '''
CREATE TABLE IF NOT EXISTS users (
    id CHAR(24) PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    display_name TEXT NOT NULL,
    subtitle TEXT,
    description TEXT,
    profile_image TEXT
);

CREATE TABLE IF NOT EXISTS events (
    id CHAR(24) PRIMARY KEY,
    name TEXT NOT NULL,
    date TIMESTAMP WITH TIME ZONE NOT NULL,
    location TEXT NOT NULL,
    description TEXT NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('Upcoming', 'Ongoing', 'Completed')),
    owner_id CHAR(24) NOT NULL,
    image TEXT
);

CREATE INDEX IF NOT EXISTS idx_events_owner ON events (owner_id);
CREATE INDEX IF NOT EXISTS idx_events_date ON events (date);
'''

print('Connecting to', settings.db_url.rsplit('@', 1)[-1])
with psycopg.connect(settings.db_url, connect_timeout=5) as conn:
    with conn.cursor() as cur:
        cur.execute(DDL)
    conn.commit()
print('DDL applied')
