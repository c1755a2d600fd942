"""
Tests for the small support modules: logging, error messages, date
validation and server wiring.
"""

import json
import logging
import sys

import httpx
import pytest
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from core.config import HttpServerConfig
from core.dates import parse_iso_date, validate_date_range, validate_year, year_bounds
from core.errors import (
    MocoApiError,
    create_empty_result_message,
    create_validation_error_message,
    handle_moco_api_error,
)
from core.logger import JsonFormatter, configure_logging, get_logger


def make_record(msg="hello", level=logging.INFO, context=None, exc_info=None):
    record = logging.LogRecord("moco.test", level, __file__, 1, msg, None, exc_info)
    if context is not None:
        record.context = context
    return record


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
class TestJsonFormatter:

    def test_basic_entry(self):
        entry = json.loads(JsonFormatter().format(make_record()))

        assert entry["severity"] == "INFO"
        assert entry["message"] == "hello"
        assert entry["time"].endswith("Z")
        assert "context" not in entry

    def test_dict_context(self):
        entry = json.loads(JsonFormatter().format(make_record(context={"year": 2024})))
        assert entry["context"] == {"year": 2024}

    def test_exception_context(self):
        entry = json.loads(JsonFormatter().format(make_record(context=ValueError("bad"))))
        assert entry["context"] == {"name": "ValueError", "message": "bad"}

    def test_scalar_context(self):
        entry = json.loads(JsonFormatter().format(make_record(context=42)))
        assert entry["context"] == {"value": 42}

    def test_exc_info(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record(level=logging.ERROR, exc_info=sys.exc_info())

        entry = json.loads(JsonFormatter().format(record))
        assert entry["error"] == {"name": "RuntimeError", "message": "boom"}

    def test_unserializable_context_falls_back(self):
        circular: dict = {}
        circular["self"] = circular

        entry = json.loads(JsonFormatter().format(make_record(context=circular)))

        assert entry["message"] == "hello"
        assert "serializationError" in entry
        assert "context" not in entry


def test_configure_logging_attaches_one_handler():
    root = configure_logging("debug")
    configure_logging("warn")
    handlers = [h for h in root.handlers if getattr(h, "_moco_handler", False)]
    try:
        assert len(handlers) == 1
        assert root.level == logging.WARNING
        assert root.propagate is False
    finally:
        for handler in handlers:
            root.removeHandler(handler)
        root.propagate = True
        root.setLevel(logging.NOTSET)


@pytest.mark.parametrize("name, expected", [
    ("moco", "moco"),
    ("moco.api", "moco.api"),
    ("tools", "moco.tools"),
])
def test_get_logger_names(name, expected):
    assert get_logger(name).name == expected


# -----------------------------------------------------------------------------
# Error messages
# -----------------------------------------------------------------------------
def status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://acme.mocoapp.com/api/v1/projects")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class TestHandleMocoApiError:

    @pytest.mark.parametrize("status, message", [
        (401, "Authentication failed - check MOCO_API_KEY (HTTP 401)"),
        (404, "Resource not found (HTTP 404)"),
        (422, "Invalid request parameters (HTTP 422)"),
        (503, "MoCo API server error (HTTP 503: Service Unavailable)"),
        (409, "HTTP 409: Conflict"),
    ])
    def test_status_errors(self, status, message):
        assert handle_moco_api_error(status_error(status)) == message

    def test_timeout(self):
        error = httpx.ReadTimeout("slow", request=httpx.Request("GET", "https://x"))
        assert handle_moco_api_error(error) == "Request to MoCo API timed out"

    def test_network_error(self):
        error = httpx.ConnectError("refused", request=httpx.Request("GET", "https://x"))
        assert handle_moco_api_error(error) == "Network error while contacting MoCo API: refused"

    def test_unexpected(self):
        assert handle_moco_api_error(KeyError("x")) == "Unexpected error: 'x'"


def test_api_error_status():
    assert MocoApiError("gone", status_code=404).is_not_found
    assert not MocoApiError("offline").is_not_found


def test_message_helpers():
    assert create_validation_error_message("year", 1999, "too early") == (
        "Validation error for 'year' (value: 1999): too early"
    )
    assert create_empty_result_message("users") == "No users found."
    assert create_empty_result_message("projects", query=None) == "No projects found."
    assert create_empty_result_message("users", query="x", tags="a") == "No users found for query=x, tags=a."


# -----------------------------------------------------------------------------
# Dates
# -----------------------------------------------------------------------------
class TestDates:

    def test_parse_iso_date(self):
        assert parse_iso_date("2024-02-29").day == 29

    @pytest.mark.parametrize("value", ["2023-02-29", "24-01-01", "2024-1-1", "", None, 20240101])
    def test_parse_iso_date_rejects(self, value):
        with pytest.raises(ValueError):
            parse_iso_date(value)

    def test_range_allows_single_day(self):
        start, end = validate_date_range("2024-05-01", "2024-05-01")
        assert start == end

    def test_range_rejects_reversed(self):
        with pytest.raises(ValueError, match="must not be after"):
            validate_date_range("2024-05-02", "2024-05-01")

    @pytest.mark.parametrize("year", [2000, 2024, 2100])
    def test_valid_years(self, year):
        assert validate_year(year) == year

    @pytest.mark.parametrize("year", [1999, 2101, False, 2024.0, "2024"])
    def test_invalid_years(self, year):
        with pytest.raises(ValueError):
            validate_year(year)

    def test_year_bounds(self):
        assert year_bounds(2025) == ("2025-01-01", "2025-12-31")


# -----------------------------------------------------------------------------
# Server wiring
# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_server_registers_every_tool():
    from tools.mcp_server import SERVER_NAME, mcp, tool_names

    registered = await mcp.get_tools()

    assert mcp.name == SERVER_NAME
    assert sorted(registered) == sorted(tool_names())
    assert len(registered) == 8
    assert "search_users" in registered


class TestHttpMiddleware:

    def test_no_allow_lists_means_no_middleware(self):
        from tools.mcp_server import http_middleware

        assert http_middleware(HttpServerConfig()) == []

    def test_allowed_hosts_add_trusted_host_middleware(self):
        from tools.mcp_server import http_middleware

        middleware = http_middleware(HttpServerConfig(allowed_hosts=("localhost", "mcp.example.com")))

        assert len(middleware) == 1
        assert middleware[0].cls is TrustedHostMiddleware
        assert middleware[0].kwargs["allowed_hosts"] == ["localhost", "mcp.example.com"]

    def test_allowed_origins_add_cors_middleware(self):
        from tools.mcp_server import http_middleware

        middleware = http_middleware(HttpServerConfig(
            allowed_hosts=("localhost",),
            allowed_origins=("https://claude.ai",),
        ))

        assert [m.cls for m in middleware] == [TrustedHostMiddleware, CORSMiddleware]
        assert middleware[1].kwargs["allow_origins"] == ["https://claude.ai"]

    def test_unlisted_host_is_rejected(self):
        from starlette.applications import Starlette
        from starlette.responses import PlainTextResponse
        from starlette.routing import Route
        from starlette.testclient import TestClient

        from tools.mcp_server import http_middleware

        app = Starlette(
            routes=[Route("/sse", lambda request: PlainTextResponse("ok"))],
            middleware=http_middleware(HttpServerConfig(allowed_hosts=("localhost",))),
        )
        assert TestClient(app, base_url="http://localhost").get("/sse").status_code == 200
        assert TestClient(app, base_url="http://attacker.example").get("/sse").status_code == 400
