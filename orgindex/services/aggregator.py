import logging
from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from datetime import UTC
from datetime import datetime
from typing import Any

from orgindex.core.errors import PartialRecordError


logger = logging.getLogger(__name__)


@dataclass
class Contributor:
    login: str
    avatar_url: str | None = None
    total_contributions: int = 0
    daily_activity: dict[str, int] = field(default_factory=dict)


@dataclass
class AggregationContext:
    """Per-session aggregation state shared by the activity pipeline.

    `global_activity[date]` always equals the sum of every contributor's
    `daily_activity[date]`; both are updated in the same step.
    """

    contributors: dict[str, Contributor] = field(default_factory=dict)
    global_activity: dict[str, int] = field(default_factory=dict)
    total_commits: int = 0
    processed_repositories: set[str] = field(default_factory=set)

    def contributor(self, login: str, avatar_url: str | None) -> Contributor:
        existing = self.contributors.get(login)
        if existing is None:
            existing = Contributor(login=login, avatar_url=avatar_url)
            self.contributors[login] = existing
        return existing

    def add(self, contributor: Contributor, day: str, count: int) -> None:
        contributor.daily_activity[day] = contributor.daily_activity.get(day, 0) + count
        self.global_activity[day] = self.global_activity.get(day, 0) + count
        contributor.total_contributions += count
        self.total_commits += count


def week_start_date(epoch_seconds: int | float) -> str:
    """Return the UTC calendar date of a stats week start as ISO text."""

    return datetime.fromtimestamp(epoch_seconds, tz=UTC).date().isoformat()


def _parse_author(record: Any) -> tuple[str, str | None]:
    if not isinstance(record, Mapping):
        raise PartialRecordError("stats record is not an object")
    author = record.get("author")
    if not isinstance(author, Mapping):
        raise PartialRecordError("stats record has no author")
    login = author.get("login")
    if not isinstance(login, str) or not login:
        raise PartialRecordError("stats author has no login")
    avatar_url = author.get("avatar_url")
    return login, avatar_url if isinstance(avatar_url, str) else None


def _parse_week(week: Any) -> tuple[str, int]:
    if not isinstance(week, Mapping):
        raise PartialRecordError("week entry is not an object")
    raw_start = week.get("w")
    raw_count = week.get("c")
    if isinstance(raw_start, bool) or not isinstance(raw_start, (int, float)) or not raw_start:
        raise PartialRecordError("week entry has no start")
    if isinstance(raw_count, bool) or not isinstance(raw_count, int) or raw_count <= 0:
        raise PartialRecordError("week entry has no commits")
    return week_start_date(raw_start), raw_count


class ActivityAggregator:
    """Fold per-repository weekly contributor stats into an AggregationContext.

    Every update is pointwise addition, so folding repositories in any order
    yields the same maps. Each week's commits land on the week's start date.
    """

    def __init__(self, context: AggregationContext | None = None) -> None:
        self.context = context or AggregationContext()

    def fold(self, records: Any) -> int:
        """Fold one repository's stats payload; return the commits added."""

        if not isinstance(records, list):
            return 0

        added = 0
        for record in records:
            try:
                login, avatar_url = _parse_author(record)
            except PartialRecordError as exc:
                logger.debug("Skipping stats record: %s", exc)
                continue

            contributor = self.context.contributor(login, avatar_url)
            weeks = record.get("weeks")
            if not isinstance(weeks, list):
                continue

            for week in weeks:
                try:
                    day, count = _parse_week(week)
                except PartialRecordError:
                    continue
                self.context.add(contributor, day, count)
                added += count

        return added

    def fold_repository(self, name: str, records: Any) -> bool:
        """Fold a named repository once; repeated names are ignored."""

        if name in self.context.processed_repositories:
            logger.debug("Repository %s already aggregated", name)
            return False
        self.context.processed_repositories.add(name)
        self.fold(records)
        return True

    def fold_all(self, batches: Iterable[tuple[str, Any]]) -> AggregationContext:
        for name, records in batches:
            self.fold_repository(name, records)
        return self.context


def expand_commit_activity(weeks: Any) -> dict[str, int]:
    """Expand a commit-activity payload into a per-day commit map.

    Each `{week, days}` entry covers seven days starting at `week`; only days
    with commits are kept.
    """

    daily: dict[str, int] = {}
    if not isinstance(weeks, list):
        return daily

    for entry in weeks:
        if not isinstance(entry, Mapping):
            continue
        raw_week = entry.get("week")
        days = entry.get("days")
        if not isinstance(raw_week, (int, float)) or not isinstance(days, list):
            continue
        for offset, raw_count in enumerate(days[:7]):
            if not isinstance(raw_count, int) or raw_count <= 0:
                continue
            day = week_start_date(raw_week + offset * 86400)
            daily[day] = daily.get(day, 0) + raw_count

    return daily
