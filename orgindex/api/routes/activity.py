from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import Request

from orgindex.api.schemas.activity import CacheMaintenanceResponse
from orgindex.api.schemas.activity import CalendarDay
from orgindex.api.schemas.activity import CalendarResponse
from orgindex.api.schemas.activity import ContributorItem
from orgindex.api.schemas.activity import ContributorsResponse
from orgindex.api.schemas.activity import MonthLabelItem
from orgindex.api.schemas.activity import RepositoryItem
from orgindex.api.schemas.activity import StatsResponse
from orgindex.core.cache import PersistentCache
from orgindex.services.activity_service import OrgActivityService
from orgindex.services.activity_service import RepoFilter
from orgindex.services.activity_service import filter_repositories
from orgindex.services.ranking import ALL_CONTRIBUTORS
from orgindex.services.ranking import DEFAULT_TOP_CONTRIBUTORS
from orgindex.services.ranking import ContributorSelector


router = APIRouter()


def get_activity_service(request: Request) -> OrgActivityService:
    return request.app.state.activity_service


def get_cache(request: Request) -> PersistentCache:
    return request.app.state.cache


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Return liveness probe response for health checks."""

    return {"status": "ok"}


@router.get("/repos")
async def list_repositories(
    repo_filter: RepoFilter = Query(default=RepoFilter.ALL, alias="filter"),
    refresh: bool = False,
    service: OrgActivityService = Depends(get_activity_service),
) -> list[RepositoryItem]:
    """Return public, non-archived organization repositories."""

    repos = await service.load_repositories(force_refresh=refresh)
    return [
        RepositoryItem(
            name=repo.name,
            description=repo.description,
            language=repo.display_language,
            stargazers_count=repo.stargazers_count,
            forks_count=repo.forks_count,
            pushed_at=repo.pushed_at,
            html_url=repo.html_url,
            live_url=repo.live_url,
        )
        for repo in filter_repositories(repos, repo_filter)
    ]


@router.get("/contributors")
async def list_contributors(
    limit: int = Query(default=DEFAULT_TOP_CONTRIBUTORS, ge=0, le=100),
    service: OrgActivityService = Depends(get_activity_service),
) -> ContributorsResponse:
    """Return contributors ranked by total contributions."""

    snapshot = await service.build_snapshot()
    return ContributorsResponse(
        contributors=[
            ContributorItem(
                login=contributor.login,
                avatar_url=contributor.avatar_url,
                contributions=contributor.total_contributions,
                profile_url=f"https://github.com/{contributor.login}",
            )
            for contributor in snapshot.ranking.top(limit)
        ],
        options=snapshot.ranking.selector_options(),
        empty_state=snapshot.empty_state.value,
    )


@router.get("/activity/calendar")
async def get_activity_calendar(
    contributor: str = Query(default=ALL_CONTRIBUTORS, min_length=1, max_length=100),
    service: OrgActivityService = Depends(get_activity_service),
) -> CalendarResponse:
    """Return the trailing 52-week calendar for all or one contributor."""

    selector = ContributorSelector.parse(contributor)
    snapshot = await service.build_snapshot()
    grid = service.calendar_for(snapshot, selector)

    return CalendarResponse(
        contributor=selector.login or ALL_CONTRIBUTORS,
        total_contributions=grid.total_contributions,
        active_days=grid.active_days,
        empty_state=snapshot.empty_state.value,
        month_header=grid.month_header(),
        month_labels=[
            MonthLabelItem(week_index=label.week_index, name=label.name)
            for label in grid.month_labels
        ],
        weeks=[
            [
                CalendarDay(
                    date=cell.date,
                    count=cell.count,
                    level=cell.level,
                    is_today=cell.is_today,
                )
                for cell in week
            ]
            for week in grid.weeks
        ],
    )


@router.get("/stats")
async def get_stats(
    service: OrgActivityService = Depends(get_activity_service),
) -> StatsResponse:
    snapshot = await service.build_snapshot()
    return StatsResponse(
        repos=snapshot.summary["repos"],
        contributors=snapshot.summary["contributors"],
        commits=snapshot.summary["commits"],
        rate_limited=service.fetcher.rate_limited,
        empty_state=snapshot.empty_state.value,
    )


@router.post("/cache/prune")
def prune_cache(cache: PersistentCache = Depends(get_cache)) -> CacheMaintenanceResponse:
    """Drop cache entries older than six TTL periods."""

    return CacheMaintenanceResponse(removed=cache.prune())


@router.delete("/cache")
def clear_cache(cache: PersistentCache = Depends(get_cache)) -> CacheMaintenanceResponse:
    return CacheMaintenanceResponse(removed=cache.clear())
