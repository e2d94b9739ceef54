"""
Service / facade layer for event records.

This module implements business rules before any DB interaction. It is
free of SQL; it calls `EventRepo` for database operations. All write
paths go through this service so there is a single chokepoint.

Key responsibilities:
- validate ids (24 hex chars) before touching the store
- stamp new events with a fresh id and the caller as owner
- apply partial updates (only fields present in an `EventPatch`)
- optionally enforce that only the owner may update/delete
  (`enforce_ownership`, off by default)

Paged, filtered listing lives in `query.QueryEngine`; the two simple
listings here have no paging contract.
"""

import logging
from typing import List

from errors import Forbidden, InvalidQuery, NotFound
from models import ID_PATTERN, EventDraft, EventPatch, EventRecord, new_id
from repo_events import EventRepo

logger = logging.getLogger(__name__)


def check_event_id(event_id: str) -> str:
    if not ID_PATTERN.match(event_id):
        raise InvalidQuery("Invalid event ID format")
    return event_id.lower()


class EventService:
    """Business rules for event records.

    Example usage:
        svc = EventService(EventRepo(db))
        svc.create(owner_id, draft)
    """

    def __init__(self, repo: EventRepo, enforce_ownership: bool = False):
        self.repo = repo
        self.enforce_ownership = enforce_ownership

    def create(self, owner_id: str, draft: EventDraft, image: str | None = None) -> EventRecord:
        event = EventRecord(
            id=new_id(),
            owner_id=owner_id,
            image=image,
            **draft.model_dump(),
        )
        self.repo.insert(event)
        logger.info("event %s created by %s", event.id, owner_id)
        return event

    def get(self, event_id: str) -> EventRecord:
        event = self.repo.get(check_event_id(event_id))
        if event is None:
            raise NotFound("Event not found")
        return event

    def update(self, event_id: str, patch: EventPatch, caller_id: str) -> EventRecord:
        event_id = check_event_id(event_id)
        if self.enforce_ownership:
            self._check_owner(event_id, caller_id)
        event = self.repo.update(event_id, patch.changes())
        if event is None:
            raise NotFound("Event not found")
        return event

    def delete(self, event_id: str, caller_id: str) -> None:
        event_id = check_event_id(event_id)
        if self.enforce_ownership:
            self._check_owner(event_id, caller_id)
        if not self.repo.delete(event_id):
            raise NotFound("Event not found")
        logger.info("event %s deleted by %s", event_id, caller_id)

    def list_owned(self, owner_id: str) -> List[EventRecord]:
        return self.repo.find_by_owner(owner_id)

    def list_all(self) -> List[EventRecord]:
        return self.repo.find_all()

    def _check_owner(self, event_id: str, caller_id: str) -> None:
        event = self.repo.get(event_id)
        if event is None:
            raise NotFound("Event not found")
        if event.owner_id != caller_id:
            raise Forbidden("Not the owner of this event")
