"""Summary statistics over the event catalog."""

from models import Analytics, StatusCount
from repo_events import EventRepo
from tokens import Clock, utcnow


class AnalyticsAggregator:
    def __init__(self, repo: EventRepo, clock: Clock = utcnow):
        self.repo = repo
        self.clock = clock

    def summarize(self) -> Analytics:
        """Counts per status, their total, and the next event from now on.

        The total is the sum of the grouped counts, taken from the same
        query, so the two always agree.
        """

        groups = [StatusCount(status=s, count=n) for s, n in self.repo.count_by_status()]
        return Analytics(
            total_events=sum(g.count for g in groups),
            events_by_status=groups,
            next_event=self.repo.next_from(self.clock()),
        )
