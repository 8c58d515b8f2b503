import logging
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from datetime import date
from enum import Enum
from typing import Any

from orgindex.core.fetcher import ResilientFetcher
from orgindex.services.aggregator import ActivityAggregator
from orgindex.services.aggregator import AggregationContext
from orgindex.services.aggregator import expand_commit_activity
from orgindex.services.calendar import CalendarGrid
from orgindex.services.calendar import CalendarGridBuilder
from orgindex.services.ranking import ContributorRanking
from orgindex.services.ranking import ContributorSelector


logger = logging.getLogger(__name__)

REPOS_ENDPOINT = "/orgs/{org}/repos?per_page=100&sort=updated"
CONTRIBUTOR_STATS_ENDPOINT = "/repos/{org}/{repo}/stats/contributors"
COMMIT_ACTIVITY_ENDPOINT = "/repos/{org}/{repo}/stats/commit-activity"
PAGES_URL_TEMPLATE = "https://{org}.github.io/{repo}"
RECENT_REPOS_LIMIT = 6
FALLBACK_LANGUAGE = "Various"


def _count(raw_value: Any) -> int:
    if isinstance(raw_value, bool) or not isinstance(raw_value, int):
        return 0
    return max(0, raw_value)


class RepoFilter(str, Enum):
    ALL = "all"
    FEATURED = "featured"
    RECENT = "recent"


class EmptyState(str, Enum):
    NONE = "none"
    RATE_LIMITED = "rate_limited"
    NO_ACTIVITY = "no_activity"


@dataclass(frozen=True)
class Repository:
    name: str
    html_url: str | None = None
    description: str | None = None
    language: str | None = None
    homepage: str | None = None
    has_pages: bool = False
    stargazers_count: int = 0
    forks_count: int = 0
    pushed_at: str | None = None
    live_url: str | None = None

    @property
    def display_language(self) -> str:
        return self.language or FALLBACK_LANGUAGE

    @classmethod
    def from_payload(cls, org: str, payload: Mapping[str, Any]) -> "Repository":
        name = str(payload["name"])
        homepage = payload.get("homepage") or None
        has_pages = bool(payload.get("has_pages"))
        live_url = homepage or (
            PAGES_URL_TEMPLATE.format(org=org, repo=name) if has_pages else None
        )
        return cls(
            name=name,
            html_url=payload.get("html_url"),
            description=payload.get("description"),
            language=payload.get("language"),
            homepage=homepage,
            has_pages=has_pages,
            stargazers_count=_count(payload.get("stargazers_count")),
            forks_count=_count(payload.get("forks_count")),
            pushed_at=payload.get("pushed_at"),
            live_url=live_url,
        )


@dataclass
class ActivitySnapshot:
    """Everything the presentation layer needs for one page load."""

    repositories: list[Repository]
    context: AggregationContext
    ranking: ContributorRanking
    empty_state: EmptyState = EmptyState.NONE
    summary: dict[str, int] = field(default_factory=dict)


def filter_repositories(repos: list[Repository], repo_filter: RepoFilter) -> list[Repository]:
    if repo_filter == RepoFilter.FEATURED:
        return [repo for repo in repos if repo.stargazers_count > 0 or repo.forks_count > 0]
    if repo_filter == RepoFilter.RECENT:
        return repos[:RECENT_REPOS_LIMIT]
    return list(repos)


class OrgActivityService:
    """Builds organization activity from the GitHub stats endpoints.

    Repositories are fetched one at a time so a page load never bursts past
    the upstream quota.
    """

    def __init__(self, fetcher: ResilientFetcher, org: str) -> None:
        self.fetcher = fetcher
        self.org = org

    async def load_repositories(self, force_refresh: bool = False) -> list[Repository]:
        payload = await self.fetcher.fetch(
            REPOS_ENDPOINT.format(org=self.org), force_refresh=force_refresh
        )
        if not isinstance(payload, list):
            return []

        repos: list[Repository] = []
        for item in payload:
            if not isinstance(item, Mapping) or not item.get("name"):
                continue
            if item.get("archived") or item.get("private"):
                continue
            repos.append(Repository.from_payload(self.org, item))
        return repos

    async def load_activity(
        self,
        repos: list[Repository],
        context: AggregationContext | None = None,
        force_refresh: bool = False,
    ) -> AggregationContext:
        aggregator = ActivityAggregator(context)
        for repo in repos:
            if repo.name in aggregator.context.processed_repositories:
                continue
            stats = await self.fetcher.fetch(
                CONTRIBUTOR_STATS_ENDPOINT.format(org=self.org, repo=repo.name),
                force_refresh=force_refresh,
            )
            aggregator.fold_repository(repo.name, stats)
        return aggregator.context

    async def load_commit_activity(self, repo_name: str) -> dict[str, int]:
        payload = await self.fetcher.fetch(
            COMMIT_ACTIVITY_ENDPOINT.format(org=self.org, repo=repo_name)
        )
        return expand_commit_activity(payload)

    async def build_snapshot(self, force_refresh: bool = False) -> ActivitySnapshot:
        repos = await self.load_repositories(force_refresh=force_refresh)
        context = await self.load_activity(repos, force_refresh=force_refresh)
        ranking = ContributorRanking(context)

        empty_state = EmptyState.NONE
        if not context.contributors:
            empty_state = (
                EmptyState.RATE_LIMITED if self.fetcher.rate_limited else EmptyState.NO_ACTIVITY
            )
            logger.info("No contributor activity for %s (%s)", self.org, empty_state.value)

        return ActivitySnapshot(
            repositories=repos,
            context=context,
            ranking=ranking,
            empty_state=empty_state,
            summary={
                "repos": len(repos),
                "contributors": len(ranking.ranked),
                "commits": context.total_commits,
            },
        )

    def calendar_for(
        self,
        snapshot: ActivitySnapshot,
        selector: ContributorSelector,
        today: date | None = None,
    ) -> CalendarGrid:
        activity = snapshot.ranking.resolve(selector)
        return CalendarGridBuilder(today).build(activity)
