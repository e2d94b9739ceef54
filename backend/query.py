"""
Catalog listing: query parameters -> `QueryPlan` -> one page of events.

`plan()` does all normalization and validation; the repository only ever
sees a `QueryPlan` whose sort key is known to be in `SORT_COLUMNS`.
"""

from errors import InvalidQuery
from models import EventPage, EventStatus, QueryPlan
from repo_events import SORT_COLUMNS, EventRepo


STATUS_VALUES = {s.value for s in EventStatus}

# OFFSET and LIMIT are bigint in PostgreSQL
BIGINT_MAX = 2**63 - 1


class QueryEngine:
    def __init__(self, repo: EventRepo, default_limit: int = 10):
        self.repo = repo
        self.default_limit = default_limit

    def plan(
        self,
        page: int | None = None,
        limit: int | None = None,
        sort: str | None = None,
        order: str | None = None,
        search: str | None = None,
        status: str | None = None,
    ) -> QueryPlan:
        """Normalize raw listing parameters.

        - page defaults to 1, anything <= 0 becomes 1
        - limit defaults to `default_limit`, <= 0 falls back to it
        - a page whose offset would not fit a bigint is `InvalidQuery`
        - sort must be a key of `SORT_COLUMNS`, order `asc` or `desc`,
          status an `EventStatus` value; otherwise `InvalidQuery`
        """

        page = page if page is not None and page > 0 else 1
        if limit is None or limit <= 0:
            limit = self.default_limit
        if limit > BIGINT_MAX or (page - 1) * limit > BIGINT_MAX:
            raise InvalidQuery("Page out of range")

        sort = sort or "date"
        if sort not in SORT_COLUMNS:
            raise InvalidQuery(f"Unsupported sort field: {sort}")

        order = (order or "asc").lower()
        if order not in ("asc", "desc"):
            raise InvalidQuery(f"Unsupported sort order: {order}")

        if status == "":
            status = None
        if status is not None and status not in STATUS_VALUES:
            raise InvalidQuery(f"Unsupported status: {status}")

        search = (search or "").strip() or None

        return QueryPlan(
            search=search,
            status=status,
            sort=sort,
            descending=order == "desc",
            page=page,
            limit=limit,
        )

    def search(self, **params) -> EventPage:
        plan = self.plan(**params)
        total = self.repo.count(plan)
        items = self.repo.find(plan)
        return EventPage(total=total, page=plan.page, limit=plan.limit, items=items)
