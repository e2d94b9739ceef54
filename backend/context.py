"""
Application context: every long-lived object the routes need, built once.

`build_context()` wires the real PostgreSQL-backed repositories. Tests
construct `AppContext` directly with in-memory repositories instead.
"""

from dataclasses import dataclass
from datetime import timedelta

from analytics import AnalyticsAggregator
from db import Database
from query import QueryEngine
from repo_events import EventRepo
from repo_users import UserRepo
from service_events import EventService
from service_users import CredentialStore
from settings import Settings
from tokens import Clock, TokenService, utcnow
from uploads import ImageStore


@dataclass
class AppContext:
    settings: Settings
    users: UserRepo
    events: EventRepo
    credentials: CredentialStore
    tokens: TokenService
    event_service: EventService
    query: QueryEngine
    analytics: AnalyticsAggregator
    images: ImageStore

    @property
    def register_ttl(self) -> timedelta:
        return timedelta(seconds=self.settings.register_token_ttl_seconds)

    @property
    def login_ttl(self) -> timedelta:
        return timedelta(seconds=self.settings.login_token_ttl_seconds)


def wire(settings: Settings, users: UserRepo, events: EventRepo, clock: Clock = utcnow) -> AppContext:
    """Build the services on top of the given repositories."""

    tokens = TokenService(settings.jwt_secret, settings.jwt_algorithm, clock)
    analytics = AnalyticsAggregator(events, clock)
    return AppContext(
        settings=settings,
        users=users,
        events=events,
        credentials=CredentialStore(users, rounds=settings.bcrypt_rounds),
        tokens=tokens,
        event_service=EventService(events, enforce_ownership=settings.enforce_event_ownership),
        query=QueryEngine(events, settings.default_page_limit),
        analytics=analytics,
        images=ImageStore(settings.upload_dir),
    )


def build_context(settings: Settings) -> AppContext:
    db = Database(settings.db_url)
    return wire(settings, UserRepo(db), EventRepo(db))
