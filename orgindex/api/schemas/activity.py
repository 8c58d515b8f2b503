from datetime import date

from pydantic import BaseModel


class CalendarDay(BaseModel):
    """Single day cell used in the calendar response."""

    date: date
    count: int
    level: int
    is_today: bool


class MonthLabelItem(BaseModel):
    week_index: int
    name: str


class CalendarResponse(BaseModel):
    """Trailing 52-week calendar for the selected contributor."""

    contributor: str
    total_contributions: int
    active_days: int
    empty_state: str
    month_header: list[str]
    month_labels: list[MonthLabelItem]
    weeks: list[list[CalendarDay]]


class ContributorItem(BaseModel):
    login: str
    avatar_url: str | None
    contributions: int
    profile_url: str


class ContributorsResponse(BaseModel):
    contributors: list[ContributorItem]
    options: list[tuple[str, str]]
    empty_state: str


class RepositoryItem(BaseModel):
    name: str
    description: str | None
    language: str
    stargazers_count: int
    forks_count: int
    pushed_at: str | None
    html_url: str | None
    live_url: str | None


class StatsResponse(BaseModel):
    """Summary totals shown in the page header."""

    repos: int
    contributors: int
    commits: int
    rate_limited: bool
    empty_state: str


class CacheMaintenanceResponse(BaseModel):
    removed: int
