import pytest
from fastapi.testclient import TestClient

from orgindex.api.routes.activity import get_activity_service
from orgindex.api.routes.activity import get_cache
from orgindex.core.fetcher import ResilientFetcher
from orgindex.main import create_app
from orgindex.services.activity_service import OrgActivityService
from orgindex.settings import Settings


DAY0 = 1_704_067_200
REPOS = "/orgs/acme/repos?per_page=100&sort=updated"


@pytest.fixture
def api_client(transport, cache, clock) -> TestClient:
    app = create_app(Settings(database_url="sqlite+pysqlite:///:memory:", github_org="acme"))
    service = OrgActivityService(ResilientFetcher(transport, cache, clock=clock), "acme")
    app.dependency_overrides[get_activity_service] = lambda: service
    app.dependency_overrides[get_cache] = lambda: cache

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def seeded_transport(transport, make_record):
    transport.ok(
        REPOS,
        [
            {"name": "site", "archived": False, "private": False, "stargazers_count": 3,
             "forks_count": 0, "homepage": "", "has_pages": True, "language": None,
             "html_url": "https://github.com/acme/site", "pushed_at": None, "description": None},
            {"name": "tool", "archived": False, "private": False, "stargazers_count": 0,
             "forks_count": 0, "homepage": None, "has_pages": False, "language": "Go",
             "html_url": "https://github.com/acme/tool", "pushed_at": None, "description": "CLI"},
        ],
    )
    transport.ok("/repos/acme/site/stats/contributors", [make_record("alice", [(DAY0, 3)])])
    transport.ok(
        "/repos/acme/tool/stats/contributors",
        [make_record("alice", [(DAY0, 2)]), make_record("bob", [(DAY0, 1)])],
    )
    return transport


def test_health_live_returns_ok(api_client: TestClient) -> None:
    response = api_client.get("/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_settings_reads_org_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_ORG", "octo-org")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "60")

    settings = Settings()

    assert settings.github_org == "octo-org"
    assert settings.cache_ttl_seconds == 60


def test_list_repositories_with_filter(api_client: TestClient, seeded_transport) -> None:
    all_response = api_client.get("/repos")
    featured_response = api_client.get("/repos", params={"filter": "featured"})

    assert all_response.status_code == 200
    site, tool = all_response.json()
    assert site["live_url"] == "https://acme.github.io/site"
    assert site["language"] == "Various"
    assert tool["live_url"] is None
    assert [repo["name"] for repo in featured_response.json()] == ["site"]


def test_list_repositories_rejects_unknown_filter(api_client: TestClient) -> None:
    response = api_client.get("/repos", params={"filter": "popular"})

    assert response.status_code == 422


def test_stats_summarize_activity(api_client: TestClient, seeded_transport) -> None:
    response = api_client.get("/stats")

    assert response.status_code == 200
    assert response.json() == {
        "repos": 2,
        "contributors": 2,
        "commits": 6,
        "rate_limited": False,
        "empty_state": "none",
    }


def test_contributors_are_ranked(api_client: TestClient, seeded_transport) -> None:
    response = api_client.get("/contributors", params={"limit": 1})

    body = response.json()
    assert response.status_code == 200
    assert body["contributors"] == [
        {
            "login": "alice",
            "avatar_url": "https://avatars/x",
            "contributions": 5,
            "profile_url": "https://github.com/alice",
        }
    ]
    assert body["options"][0] == ["all", "All Contributors"]
    assert body["options"][1] == ["alice", "alice (5)"]


def test_calendar_returns_full_grid(api_client: TestClient, seeded_transport) -> None:
    response = api_client.get("/activity/calendar", params={"contributor": "bob"})

    body = response.json()
    assert response.status_code == 200
    assert body["contributor"] == "bob"
    assert len(body["weeks"]) == 52
    assert all(len(week) == 7 for week in body["weeks"])
    assert body["weeks"][-1][-1]["is_today"] is True
    assert body["empty_state"] == "none"


def test_calendar_without_activity_reports_empty_state(
    api_client: TestClient, transport
) -> None:
    transport.ok(REPOS, [])

    response = api_client.get("/activity/calendar")

    body = response.json()
    assert body["contributor"] == "all"
    assert body["total_contributions"] == 0
    assert body["active_days"] == 0
    assert body["empty_state"] == "no_activity"


def test_cache_maintenance_routes(api_client: TestClient, cache, clock) -> None:
    cache.set("/old", 1)
    clock.advance(6 * 300 + 1)
    cache.set("/new", 2)

    prune_response = api_client.post("/cache/prune")
    clear_response = api_client.delete("/cache")

    assert prune_response.json() == {"removed": 1}
    assert clear_response.json() == {"removed": 1}
