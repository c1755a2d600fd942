# =============================================================================
# tools/mcp_server.py  —  FastMCP Tool Server (ALL MoCo tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Creates the FastMCP server and defines every MCP tool on it.  Each tool
#   is a thin wrapper:
#     1. Validate arguments (dates, years, non-empty queries)
#     2. Call MocoApiService (core/moco_api.py)
#     3. Summarize with core/reports.py where a summary exists
#     4. Return a plain dict (dataclasses → asdict)
#
# HOW IT WORKS (the flow):
#   1. An MCP client (Claude Desktop, an agent, ...) lists the tools
#   2. It calls one by name, e.g. "get_activities"
#   3. FastMCP validates the arguments against the function signature
#      and awaits the decorated function below
#   4. The function talks to MoCo through core/ and returns a dict
#
# TOOL NAMING CONVENTIONS:
#   - get_*    → Read-only retrieval (idempotent, safe to retry)
#   - search_* → Query with filters (idempotent, safe to retry)
#   Every MoCo tool is read-only; the API key is never used to write.
#
# ERROR CONTRACT:
#   Tools never raise.  Validation problems and MoCo failures come back as
#     {"error": "<human readable message>"}
#   so the agent can read the problem and decide what to do next.
#
# RUNNING THIS SERVER:
#   a) python main.py                      (stdio, for local MCP clients)
#   b) python main.py --transport http     (streamable HTTP)
#   c) python -m tools.mcp_server          (stdio, no .env loading)
# =============================================================================

from dataclasses import asdict
from typing import Optional

from fastmcp import FastMCP
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

# --- Import core logic ---
# The tools layer depends on core/ and nothing else.
from core.config import HttpServerConfig
from core.dates import validate_date_range, validate_year
from core.errors import (
    MocoError,
    create_empty_result_message,
    create_validation_error_message,
)
from core.logger import configure_logging, get_logger
from core.moco_api import MocoApiService
from core.reports import (
    summarize_activities,
    summarize_holidays,
    summarize_presences,
    summarize_public_holidays,
    summarize_sick_days,
)

# =============================================================================
# Logging
# =============================================================================
# Every call logs its parameters and its response at INFO on the
# "moco.tools" logger.  Output goes to STDERR (see core/logger.py) because
# STDOUT is the MCP transport in stdio mode.
# =============================================================================
logger = get_logger("moco.tools")


def _log_request(tool_name: str, **params) -> None:
    logger.info(f"{tool_name} called", extra={"context": params})


def _log_response(tool_name: str, result: dict) -> dict:
    if "error" in result:
        logger.warning(f"{tool_name} failed", extra={"context": {"error": result["error"]}})
    else:
        logger.info(f"{tool_name} succeeded", extra={"context": {"keys": sorted(result)}})
    return result


def _error(tool_name: str, message: str) -> dict:
    return _log_response(tool_name, {"error": message})


def _api_service() -> MocoApiService:
    """Create the API client used by a single tool call."""
    return MocoApiService()


# =============================================================================
# Create the FastMCP server instance
# =============================================================================
# The name "moco-mcp" becomes the server identity in MCP.
# =============================================================================
SERVER_NAME = "moco-mcp"

SERVER_INSTRUCTIONS = (
    "Read-only access to the MoCo time tracking account of the current user: "
    "booked activities, assigned projects and their tasks, presences, "
    "vacation, sick days, public holidays and the staff directory. "
    "Dates are YYYY-MM-DD."
)

mcp = FastMCP(SERVER_NAME, instructions=SERVER_INSTRUCTIONS)


# =============================================================================
# TOOL 1: get_activities
# =============================================================================
# Returns a per-day / per-project summary rather than the raw activity list;
# a month of bookings is easily a few hundred records.
# =============================================================================
@mcp.tool()
async def get_activities(start_date: str, end_date: str, project_id: Optional[int] = None) -> dict:
    """Summarize the current user's booked hours between two dates.

    Args:
        start_date: First day, YYYY-MM-DD.
        end_date: Last day (inclusive), YYYY-MM-DD.
        project_id: Only include activities booked on this project.

    Returns:
        period, total_hours, activity_count, days (hours per project and
        task for each day) and project_totals.
    """
    _log_request("get_activities", start_date=start_date, end_date=end_date, project_id=project_id)
    try:
        validate_date_range(start_date, end_date)
    except ValueError as exc:
        return _error("get_activities", create_validation_error_message("date range", f"{start_date}..{end_date}", str(exc)))

    try:
        activities = await _api_service().get_activities(start_date, end_date, project_id)
    except MocoError as exc:
        return _error("get_activities", f"Error fetching activities: {exc}")

    result = asdict(summarize_activities(activities, start_date, end_date))
    if not activities:
        result["message"] = create_empty_result_message(
            "activities", period=f"{start_date} to {end_date}", project_id=project_id
        )
    return _log_response("get_activities", result)


# =============================================================================
# TOOL 2: get_user_projects
# =============================================================================
@mcp.tool()
async def get_user_projects(query: Optional[str] = None) -> dict:
    """List the projects assigned to the current user.

    Args:
        query: Optional text to search for in project names and
            descriptions.  Without it, every assigned project is listed.

    Returns:
        count and projects (id, name, identifier, customer, active,
        billable, tasks).
    """
    _log_request("get_user_projects", query=query)
    try:
        api = _api_service()
        if query and query.strip():
            projects = await api.search_projects(query.strip())
        else:
            projects = await api.get_projects()
    except MocoError as exc:
        return _error("get_user_projects", f"Error fetching projects: {exc}")

    result: dict = {"count": len(projects), "projects": [asdict(p) for p in projects]}
    if not projects:
        result["message"] = create_empty_result_message("projects", query=query)
    return _log_response("get_user_projects", result)


# =============================================================================
# TOOL 3: get_user_project_tasks
# =============================================================================
@mcp.tool()
async def get_user_project_tasks(project_id: int) -> dict:
    """List the tasks of one of the current user's assigned projects.

    Args:
        project_id: ID of an assigned project (see get_user_projects).

    Returns:
        project_id, count and tasks.  Projects that are not assigned to the
        user produce an error.
    """
    _log_request("get_user_project_tasks", project_id=project_id)
    try:
        tasks = await _api_service().get_project_tasks(project_id)
    except MocoError as exc:
        return _error("get_user_project_tasks", f"Error fetching tasks: {exc}")

    return _log_response("get_user_project_tasks", {
        "project_id": project_id,
        "count": len(tasks),
        "tasks": [asdict(t) for t in tasks],
    })


# =============================================================================
# TOOLS 4-6: holidays, sick days, public holidays
# =============================================================================
# All three read the same yearly /schedules listing.  A failing schedule
# request degrades to an empty list inside MocoApiService, so these tools
# only report errors for bad arguments, configuration and entitlements.
# =============================================================================
@mcp.tool()
async def get_user_holidays(year: int) -> dict:
    """Vacation overview for one year: entitlement, taken and remaining days.

    Args:
        year: Calendar year, e.g. 2025.
    """
    _log_request("get_user_holidays", year=year)
    try:
        validate_year(year)
    except ValueError as exc:
        return _error("get_user_holidays", create_validation_error_message("year", year, str(exc)))

    try:
        api = _api_service()
        entitlements = await api.get_user_holidays(year)
        taken = await api.get_taken_holidays(year)
    except MocoError as exc:
        return _error("get_user_holidays", f"Error fetching holidays: {exc}")

    return _log_response("get_user_holidays", asdict(summarize_holidays(year, entitlements, taken)))


@mcp.tool()
async def get_user_sick_days(year: int) -> dict:
    """Sick days booked in one year (half days count as 0.5)."""
    _log_request("get_user_sick_days", year=year)
    try:
        validate_year(year)
    except ValueError as exc:
        return _error("get_user_sick_days", create_validation_error_message("year", year, str(exc)))

    try:
        sick_days = await _api_service().get_taken_sick_days(year)
    except MocoError as exc:
        return _error("get_user_sick_days", f"Error fetching sick days: {exc}")

    return _log_response("get_user_sick_days", asdict(summarize_sick_days(year, sick_days)))


@mcp.tool()
async def get_public_holidays(year: int) -> dict:
    """Public holidays of one year as configured in MoCo."""
    _log_request("get_public_holidays", year=year)
    try:
        validate_year(year)
    except ValueError as exc:
        return _error("get_public_holidays", create_validation_error_message("year", year, str(exc)))

    try:
        holidays = await _api_service().get_public_holidays(year)
    except MocoError as exc:
        return _error("get_public_holidays", f"Error fetching public holidays: {exc}")

    return _log_response("get_public_holidays", asdict(summarize_public_holidays(year, holidays)))


# =============================================================================
# TOOL 7: get_user_presences
# =============================================================================
@mcp.tool()
async def get_user_presences(start_date: str, end_date: str) -> dict:
    """Summarize clock-in/clock-out times between two dates.

    Returns:
        period, total_hours, days_present, home_office_days and a per-day
        breakdown with the individual intervals.
    """
    _log_request("get_user_presences", start_date=start_date, end_date=end_date)
    try:
        validate_date_range(start_date, end_date)
    except ValueError as exc:
        return _error("get_user_presences", create_validation_error_message("date range", f"{start_date}..{end_date}", str(exc)))

    try:
        presences = await _api_service().get_user_presences(start_date, end_date)
    except MocoError as exc:
        return _error("get_user_presences", f"Error fetching presences: {exc}")

    try:
        summary = summarize_presences(presences, start_date, end_date)
    except ValueError as exc:
        # Malformed HH:MM values from the API.
        return _error("get_user_presences", f"Error reading presences: {exc}")
    return _log_response("get_user_presences", asdict(summary))


# =============================================================================
# TOOL 8: search_users
# =============================================================================
# The staff directory is cached per (include_archived, tags) combination,
# so repeated searches with different queries stay local.
# =============================================================================
@mcp.tool()
async def search_users(query: str, include_archived: bool = False, tags: Optional[list[str]] = None) -> dict:
    """Search the staff directory by name, email, unit, role, tags or phone.

    Args:
        query: Text to look for (case-insensitive).
        include_archived: Also search deactivated users.
        tags: Only consider users carrying any of these tags.

    Returns:
        query, count and users (id, name, email, role, unit, tags, phones).
    """
    _log_request("search_users", query=query, include_archived=include_archived, tags=tags)
    if not query or not query.strip():
        return _error("search_users", create_validation_error_message("query", query, "empty search query"))
    if tags is not None and not any(tag.strip() for tag in tags):
        return _error("search_users", create_validation_error_message("tags", tags, "at least one tag is required when filtering by tags"))

    try:
        users = await _api_service().search_users(query.strip(), include_archived=include_archived, tags=tags)
    except MocoError as exc:
        return _error("search_users", f"Error searching users: {exc}")

    result: dict = {
        "query": query.strip(),
        "include_archived": include_archived,
        "tags": tags,
        "count": len(users),
        "users": [dict(asdict(u), full_name=u.full_name) for u in users],
    }
    if not users:
        result["message"] = create_empty_result_message("users", query=query.strip())
    return _log_response("search_users", result)


ALL_TOOLS = [
    get_activities,
    get_user_projects,
    get_user_project_tasks,
    get_user_holidays,
    get_user_sick_days,
    get_public_holidays,
    get_user_presences,
    search_users,
]


def tool_names() -> list[str]:
    return [tool.name for tool in ALL_TOOLS]


# =============================================================================
# HTTP allow-lists
# =============================================================================
# With MCP_HTTP_ALLOWED_HOSTS set, requests whose Host header is not listed
# are rejected (DNS-rebinding protection).  MCP_HTTP_ALLOWED_ORIGINS limits
# which browser origins may call the endpoint.
# =============================================================================
def http_middleware(config: HttpServerConfig) -> list[Middleware]:
    """Starlette middleware for the streamable HTTP transport."""
    middleware = []
    if config.allowed_hosts:
        middleware.append(Middleware(TrustedHostMiddleware, allowed_hosts=list(config.allowed_hosts)))
    if config.allowed_origins:
        middleware.append(Middleware(
            CORSMiddleware,
            allow_origins=list(config.allowed_origins),
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=["mcp-session-id"],
        ))
    return middleware


# =============================================================================
# Server entry point
# =============================================================================
if __name__ == "__main__":
    configure_logging()
    logger.info("Starting MoCo MCP server", extra={"context": {"transport": "stdio", "tools": tool_names()}})
    mcp.run()
