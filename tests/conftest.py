"""
Shared fixtures: a fake clock for cache expiry and a fake MoCo API served
through httpx.MockTransport.
"""

import httpx
import pytest

from core.cache import Cache
from core.config import MocoConfig
from core.moco_api import MocoApiService

API_PREFIX = "/api/v1"


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMocoApi:
    """Routes requests by API path and records every request it receives."""

    def __init__(self):
        self.routes = {}
        self.requests: list[httpx.Request] = []

    def route(self, path: str, handler) -> None:
        self.routes[path] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len(API_PREFIX):] if request.url.path.startswith(API_PREFIX) else request.url.path
        route = self.routes.get(path)
        if route is None:
            return httpx.Response(404, json={"message": "Not found"})
        return route(request)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == f"{API_PREFIX}{path}"]


def json_route(data, status: int = 200, headers=None):
    """Handler returning the same JSON payload for every request."""
    def handle(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=data, headers=headers)
    return handle


def paginated_route(pages: list[list], per_page: int):
    """Handler serving `pages` with X-Page / X-Total / X-Per-Page headers."""
    total = sum(len(page) for page in pages)

    def handle(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params.get("page", "1"))
        return httpx.Response(
            200,
            json=pages[page - 1],
            headers={"X-Page": str(page), "X-Total": str(total), "X-Per-Page": str(per_page)},
        )
    return handle


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return Cache(clock=clock)


@pytest.fixture
def config():
    return MocoConfig(
        api_key="test-api-key-123456",
        subdomain="test-company",
        base_url="https://test-company.mocoapp.com/api/v1",
        cache_ttl_seconds=60,
    )


@pytest.fixture
def fake_api():
    return FakeMocoApi()


@pytest.fixture
def make_service(config, cache, fake_api):
    """Build a MocoApiService talking to `fake_api`."""
    def _make(**overrides) -> MocoApiService:
        client = httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler))
        return MocoApiService(
            overrides.get("config", config),
            cache=overrides.get("cache", cache),
            client=client,
        )
    return _make


# -----------------------------------------------------------------------------
# Sample API payloads
# -----------------------------------------------------------------------------
@pytest.fixture
def project_payloads():
    return [
        {
            "id": 101,
            "identifier": "P-101",
            "name": "Website Relaunch",
            "description": "New corporate website",
            "active": True,
            "billable": True,
            "customer": {"id": 9, "name": "Acme"},
            "tasks": [
                {"id": 1, "name": "Design", "active": True, "billable": True},
                {"id": 2, "name": "Development", "active": True, "billable": True},
            ],
            "created_at": "2024-01-01T10:00:00Z",
            "updated_at": "2024-02-01T10:00:00Z",
        },
        {
            "id": 202,
            "identifier": "P-202",
            "name": "Internal Tools",
            "description": "Time tracking automation",
            "active": True,
            "billable": False,
            "customer": {"id": 1, "name": "Ourselves"},
            "tasks": [],
            "created_at": "2024-03-01T10:00:00Z",
            "updated_at": "2024-03-02T10:00:00Z",
        },
    ]


@pytest.fixture
def user_payloads():
    return [
        {
            "id": 1,
            "firstname": "Anna",
            "lastname": "Schmidt",
            "active": True,
            "email": "anna@example.com",
            "info": "Frontend lead",
            "tags": ["frontend", "berlin"],
            "unit": {"id": 10, "name": "Engineering"},
            "role": {"id": 3, "name": "Developer"},
            "mobile_phone": "+49 170 1234567",
        },
        {
            "id": 2,
            "firstname": "Ben",
            "lastname": "Keller",
            "active": True,
            "email": "ben@example.com",
            "tags": ["sales"],
            "unit": {"id": 11, "name": "Sales"},
            "work_phone": "+49 30 998877",
        },
    ]


def schedule(id_, date, code, name, type_="Absence", am=True, pm=True, comment=None):
    return {
        "id": id_,
        "date": date,
        "comment": comment,
        "am": am,
        "pm": pm,
        "assignment": {"id": 500 + id_, "name": name, "type": type_, "code": code},
        "user": {"id": 1, "firstname": "Anna", "lastname": "Schmidt"},
    }


@pytest.fixture
def schedule_payloads():
    return [
        schedule(1, "2024-07-01", "4", "Urlaub"),
        schedule(2, "2024-07-02", "4", "Urlaub", pm=False),
        schedule(3, "2024-03-11", "3", "Krankheit"),
        schedule(4, "2024-12-25", "2", "Feiertag", comment="Christmas Day"),
        schedule(5, "2024-05-06", "5", "Weiterbildung"),
        schedule(6, "2024-05-07", None, "Website Relaunch", type_="Project"),
    ]
