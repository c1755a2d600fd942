# =============================================================================
# core/moco_api.py  —  MoCo API Client (auth, pagination, caching)
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Every byte exchanged with MoCo goes through MocoApiService.  It:
#     1. Adds the  Authorization: Token token=<key>  header to each request
#     2. Follows MoCo's header-based pagination until the last page
#     3. Routes the two "directory" queries (assigned projects, users)
#        through the shared Cache so repeated searches stay local
#     4. Translates every failure into a MocoApiError with a readable message
#
# HOW MOCO PAGINATES:
#   List endpoints return a bare JSON array plus three headers:
#     X-Page      the page that was returned
#     X-Total     total number of items across all pages
#     X-Per-Page  page size
#   We request page=1, 2, ... until  page >= ceil(X-Total / X-Per-Page).
#   A response without all three headers is treated as the only page.
#
# WHAT IS CACHED AND WHAT ISN'T:
#   Cached (full unfiltered set, filtered in memory per call):
#     - /projects/assigned   key "projects:assigned"
#     - /users               key "users:<archived 0|1>:<sorted tags or ->"
#   Not cached: activities, presences, holidays, schedules.  Those are
#   date-scoped and users expect to see entries they booked a second ago.
#
# RESPONSE SHAPE:
#   List endpoints must answer with a JSON array.  An object (e.g. an error
#   envelope served with a 200) is a MocoApiError, never a crash in from_api.
#
# FAILURE POLICY:
#   Errors propagate, with two exceptions on the read-only yearly views:
#     - get_user_holidays():  404 means "no entitlement for that year yet" → []
#     - schedule-derived views (taken holidays, sick days, public holidays):
#       any MocoApiError is logged and degrades to []
# =============================================================================

import json
import logging
import math
from typing import Any, Iterable, Optional

import httpx

from core.cache import Cache, cache as shared_cache
from core.config import MocoConfig, get_moco_config
from core.dates import year_bounds
from core.errors import MocoApiError, ProjectNotAssignedError, handle_moco_api_error
from core.logger import get_logger
from core.models import (
    Activity,
    Project,
    Schedule,
    Task,
    User,
    UserHoliday,
    UserPresence,
)

PROJECTS_CACHE_KEY = "projects:assigned"

# Absence codes as configured in MoCo's schedule assignments.
ABSENCE_TYPE = "Absence"
PUBLIC_HOLIDAY_CODE = "2"
SICK_DAY_CODE = "3"
SICK_DAY_NAME = "Krankheit"
VACATION_CODE = "4"
VACATION_NAME = "Urlaub"

DEFAULT_TIMEOUT_SECONDS = 30.0

_TOKEN_MARKER = "token="


# -----------------------------------------------------------------------------
# Shared HTTP client
# -----------------------------------------------------------------------------
# One client per process, like the cache.  A cached fetch is shared by every
# concurrent caller, so it must not run on a client that one of those
# callers could close on its way out.
# -----------------------------------------------------------------------------
_http_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    """Return the process-wide client, creating it on first use."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS)
    return _http_client


# -----------------------------------------------------------------------------
# Secret redaction (for debug logs)
# -----------------------------------------------------------------------------
def redact_secret(secret: str) -> str:
    """Mask a secret, keeping the first and last 4 characters of long values."""
    if len(secret) <= 8:
        return "*" * max(len(secret), 4)
    return f"{secret[:4]}...{secret[-4:]}"


def sanitize_request_headers(headers: dict[str, str]) -> dict[str, str]:
    """Return a copy of `headers` that is safe to log."""
    sanitized = dict(headers)
    auth_value = sanitized.get("Authorization")
    if not auth_value:
        return sanitized

    token_index = auth_value.lower().find(_TOKEN_MARKER)
    if token_index == -1:
        sanitized["Authorization"] = "[REDACTED]"
        return sanitized

    split_at = token_index + len(_TOKEN_MARKER)
    sanitized["Authorization"] = auth_value[:split_at] + redact_secret(auth_value[split_at:])
    return sanitized


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """Trim, drop blanks, de-duplicate and sort a tag filter."""
    if not tags:
        return []
    return sorted({tag.strip() for tag in tags if tag and tag.strip()})


def users_cache_key(include_archived: bool, tags: list[str]) -> str:
    return ":".join([
        "users",
        "1" if include_archived else "0",
        "|".join(tags) if tags else "-",
    ])


def _matches(query: str, targets: Iterable[Optional[str]]) -> bool:
    return any(target and query in target.lower() for target in targets)


def _expect_list(data: Any, endpoint: str) -> list:
    """Return a list body as-is; an empty body counts as an empty list."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise MocoApiError(
            f"Unexpected response shape from {endpoint}: expected a list, got {type(data).__name__}"
        )
    return data


def _parse_int_header(headers: httpx.Headers, name: str) -> Optional[int]:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


class MocoApiService:
    """Async client for the MoCo REST API.

    Args:
        config: Resolved connection settings.  Read from the environment
            when omitted.
        cache: Cache used for directory queries.  Defaults to the
            process-wide cache in core.cache.
        client: An httpx.AsyncClient to send requests with.  Defaults to the
            process-wide client from get_http_client().  The service never
            closes its client.
        logger: Logger for request/response diagnostics.
    """

    def __init__(
        self,
        config: Optional[MocoConfig] = None,
        *,
        cache: Optional[Cache] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or get_moco_config()
        self._cache = cache if cache is not None else shared_cache
        self._client = client or get_http_client()
        self._logger = logger or get_logger("moco.api")

    @property
    def default_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Token token={self.config.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    # =========================================================================
    # Debug logging
    # =========================================================================
    def _log_http_request(self, url: str, headers: dict[str, str], params: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(logging.DEBUG):
            return
        self._logger.debug("MoCo API request", extra={"context": {
            "method": "GET",
            "url": url,
            "headers": sanitize_request_headers(headers),
            "query": params or None,
        }})

    def _log_http_response(self, response: httpx.Response, body: Any) -> None:
        if not self._logger.isEnabledFor(logging.DEBUG):
            return
        self._logger.debug("MoCo API response", extra={"context": {
            "method": "GET",
            "url": str(response.request.url),
            "status": response.status_code,
            "statusText": response.reason_phrase,
            "headers": dict(response.headers),
            "body": body,
        }})

    # =========================================================================
    # Request primitive
    # =========================================================================
    @staticmethod
    def _parse_json(body_text: str) -> Any:
        if not body_text or not body_text.strip():
            return None
        try:
            return json.loads(body_text)
        except json.JSONDecodeError as exc:
            raise MocoApiError(f"Failed to parse JSON response: {exc}") from exc

    async def _request(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> tuple[Any, httpx.Headers]:
        """GET `endpoint` and return (parsed body, response headers).

        Raises:
            MocoApiError: On non-2xx status, network failure or malformed JSON.
        """
        params = dict(params or {})
        url = f"{self.config.base_url}{endpoint}"
        headers = self.default_headers
        self._log_http_request(url, headers, params)

        try:
            response = await self._client.get(url, params=params, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._log_http_response(exc.response, exc.response.text or None)
            raise MocoApiError(
                handle_moco_api_error(exc), status_code=exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            raise MocoApiError(handle_moco_api_error(exc)) from exc

        data = self._parse_json(response.text)
        self._log_http_response(response, data)
        return data, response.headers

    async def _fetch_all_pages(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> list[dict]:
        """Collect every item of a paginated endpoint, in server order."""
        items: list[dict] = []
        current_page = 1

        while True:
            data, headers = await self._request(endpoint, {**(params or {}), "page": current_page})
            # MoCo returns bare arrays, not {"data": [...]} envelopes.
            items.extend(_expect_list(data, endpoint))

            page = _parse_int_header(headers, "X-Page")
            total = _parse_int_header(headers, "X-Total")
            per_page = _parse_int_header(headers, "X-Per-Page")
            if page is None or total is None or not per_page:
                break

            total_pages = math.ceil(total / per_page)
            if current_page >= total_pages:
                break
            current_page += 1

        return items

    # =========================================================================
    # Cached directory queries
    # =========================================================================
    async def _get_cached_projects(self) -> list[Project]:
        async def fetch() -> list[Project]:
            raw = await self._fetch_all_pages("/projects/assigned")
            return [Project.from_api(item) for item in raw]

        return await self._cache.get_or_set(PROJECTS_CACHE_KEY, self.config.cache_ttl_seconds, fetch)

    async def _get_cached_users(self, include_archived: bool, tags: Optional[Iterable[str]]) -> list[User]:
        normalized = normalize_tags(tags)
        params: dict[str, str] = {}
        if include_archived:
            params["include_archived"] = "true"
        if normalized:
            params["tags"] = ",".join(normalized)

        async def fetch() -> list[User]:
            raw = await self._fetch_all_pages("/users", params)
            return [User.from_api(item) for item in raw]

        return await self._cache.get_or_set(
            users_cache_key(include_archived, normalized),
            self.config.cache_ttl_seconds,
            fetch,
        )

    # =========================================================================
    # Public operations
    # =========================================================================
    async def get_activities(
        self, start_date: str, end_date: str, project_id: Optional[int] = None
    ) -> list[Activity]:
        """Activities of the current user between two dates (inclusive)."""
        params: dict[str, Any] = {"from": start_date, "to": end_date}
        if project_id:
            params["project_id"] = project_id
        raw = await self._fetch_all_pages("/activities", params)
        return [Activity.from_api(item) for item in raw]

    async def get_projects(self) -> list[Project]:
        """All projects assigned to the current user, always fetched fresh."""
        raw = await self._fetch_all_pages("/projects/assigned")
        return [Project.from_api(item) for item in raw]

    async def search_projects(self, query: str) -> list[Project]:
        """Assigned projects whose name or description contains `query`.

        MoCo has no text search for projects, so the cached assigned set is
        filtered locally.  A blank query returns every assigned project.
        """
        projects = await self._get_cached_projects()
        needle = (query or "").strip().lower()
        if not needle:
            return list(projects)
        return [p for p in projects if _matches(needle, (p.name, p.description))]

    async def search_users(
        self,
        query: str,
        include_archived: bool = False,
        tags: Optional[Iterable[str]] = None,
    ) -> list[User]:
        """Search the staff directory.

        Matches case-insensitively against names, email, info, tags, unit,
        role and phone numbers.  A blank query returns every user of the
        (tag-filtered) directory.
        """
        users = await self._get_cached_users(include_archived, tags)
        needle = (query or "").strip().lower()
        if not needle:
            return list(users)

        def targets(user: User) -> list[Optional[str]]:
            return [
                user.firstname,
                user.lastname,
                user.full_name,
                user.email,
                user.info,
                " ".join(user.tags),
                user.unit.name if user.unit else None,
                user.role.name if user.role else None,
                user.mobile_phone,
                user.work_phone,
            ]

        return [user for user in users if _matches(needle, targets(user))]

    async def get_project_tasks(self, project_id: int) -> list[Task]:
        """Tasks of one assigned project.

        Raises:
            ProjectNotAssignedError: If the project is not among the user's
                assigned projects.  Unassigned tasks are deliberately invisible.
        """
        projects = await self._get_cached_projects()
        project = next((p for p in projects if p.id == project_id), None)
        if project is None:
            raise ProjectNotAssignedError(project_id)
        return [Task.from_project(task, project) for task in project.tasks]

    async def get_user_holidays(self, year: int) -> list[UserHoliday]:
        """Holiday entitlements for `year`; [] when MoCo has none yet (404)."""
        try:
            data, _ = await self._request("/users/holidays", {"year": year})
        except MocoApiError as exc:
            if exc.is_not_found:
                return []
            raise
        return [UserHoliday.from_api(item) for item in _expect_list(data, "/users/holidays")]

    async def _get_year_schedules(self, year: int) -> list[Schedule]:
        start_date, end_date = year_bounds(year)
        data, _ = await self._request("/schedules", {"from": start_date, "to": end_date})
        schedules = [Schedule.from_api(item) for item in _expect_list(data, "/schedules")]
        self._logger.debug("Fetched schedules", extra={"context": {"year": year, "count": len(schedules)}})
        return schedules

    async def _filter_year_absences(self, year: int, label: str, predicate) -> list[Schedule]:
        try:
            schedules = await self._get_year_schedules(year)
        except MocoApiError as exc:
            self._logger.warning(
                f"Could not fetch {label}; returning an empty result",
                extra={"context": {"year": year, "error": str(exc), "status": exc.status_code}},
            )
            return []
        return [
            s for s in schedules
            if s.assignment is not None and s.assignment.type == ABSENCE_TYPE and predicate(s.assignment)
        ]

    async def get_taken_holidays(self, year: int) -> list[Schedule]:
        """Vacation days booked in `year`."""
        return await self._filter_year_absences(
            year, "taken holidays",
            lambda a: a.code == VACATION_CODE and a.name == VACATION_NAME,
        )

    async def get_taken_sick_days(self, year: int) -> list[Schedule]:
        """Sick days booked in `year`."""
        return await self._filter_year_absences(
            year, "sick days",
            lambda a: a.code == SICK_DAY_CODE and a.name == SICK_DAY_NAME,
        )

    async def get_public_holidays(self, year: int) -> list[Schedule]:
        """Public holidays in `year`."""
        return await self._filter_year_absences(
            year, "public holidays",
            lambda a: a.code == PUBLIC_HOLIDAY_CODE,
        )

    async def get_user_presences(self, start_date: str, end_date: str) -> list[UserPresence]:
        """Clock-in/clock-out intervals between two dates."""
        raw = await self._fetch_all_pages("/users/presences", {"from": start_date, "to": end_date})
        return [UserPresence.from_api(item) for item in raw]
