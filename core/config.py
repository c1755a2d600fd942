# =============================================================================
# core/config.py  —  Environment Configuration
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Reads and validates every environment variable the server needs:
#     MOCO_API_KEY          (required) personal API token
#     MOCO_SUBDOMAIN        (required) "yourcompany" for yourcompany.mocoapp.com
#     MOCO_API_CACHE_TIME   (optional) cache TTL in seconds, default 300, 0 disables
#     LOG_LEVEL             (optional) debug | info | warn | error
#     MCP_HTTP_PORT / PORT, MCP_HTTP_HOST, MCP_HTTP_PATH,
#     MCP_HTTP_SESSION_STATEFUL,
#     MCP_HTTP_ALLOWED_HOSTS, MCP_HTTP_ALLOWED_ORIGINS
#                           (optional) streamable HTTP transport
#
# WHERE DOES .env COME IN?
#   main.py calls load_dotenv() before anything reads the environment, so
#   values from a local .env file show up in os.environ like any other
#   variable.  This module never touches the file itself.
#
# IMMUTABILITY:
#   Every config object here is a frozen dataclass.  A MocoApiService
#   resolves its MocoConfig once and shares it across all of its requests.
# =============================================================================

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from core.errors import ConfigError

DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_HTTP_PORT = 8080
DEFAULT_HTTP_HOST = "0.0.0.0"
DEFAULT_HTTP_BASE_PATH = "/sse"
DEFAULT_LOG_LEVEL = "info"

LOG_LEVELS = ("debug", "info", "warn", "error")


@dataclass(frozen=True)
class MocoConfig:
    """Resolved connection settings for the MoCo API."""

    api_key: str = field(repr=False)   # never shows up in logs or tracebacks
    subdomain: str
    base_url: str
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS


@dataclass(frozen=True)
class HttpServerConfig:
    """Settings for the streamable HTTP transport."""

    port: int = DEFAULT_HTTP_PORT
    host: str = DEFAULT_HTTP_HOST
    path: str = DEFAULT_HTTP_BASE_PATH
    stateless: bool = True
    allowed_hosts: Optional[tuple[str, ...]] = None     # Host header allow-list
    allowed_origins: Optional[tuple[str, ...]] = None   # Origin allow-list


def _env(environ: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def get_moco_config(environ: Optional[Mapping[str, str]] = None) -> MocoConfig:
    """Build a validated MocoConfig from the environment.

    Args:
        environ: Mapping to read from.  Defaults to os.environ.

    Raises:
        ConfigError: When a required variable is missing or a value is malformed.
    """
    env = _env(environ)
    api_key = env.get("MOCO_API_KEY")
    subdomain = env.get("MOCO_SUBDOMAIN")
    cache_ttl_raw = env.get("MOCO_API_CACHE_TIME")

    if not api_key:
        raise ConfigError("MOCO_API_KEY environment variable is required")

    if not subdomain:
        raise ConfigError("MOCO_SUBDOMAIN environment variable is required")

    # Only the bare subdomain is accepted, never a host name or URL.
    if "." in subdomain or "http" in subdomain:
        raise ConfigError(
            'MOCO_SUBDOMAIN should only contain the subdomain name '
            '(e.g., "yourcompany", not "yourcompany.mocoapp.com")'
        )

    cache_ttl_seconds = DEFAULT_CACHE_TTL_SECONDS
    if cache_ttl_raw is not None:
        try:
            cache_ttl_seconds = int(cache_ttl_raw.strip())
        except ValueError:
            cache_ttl_seconds = -1
        if cache_ttl_seconds < 0:
            raise ConfigError(
                "MOCO_API_CACHE_TIME must be a non-negative integer representing seconds."
            )

    return MocoConfig(
        api_key=api_key,
        subdomain=subdomain,
        base_url=f"https://{subdomain}.mocoapp.com/api/v1",
        cache_ttl_seconds=cache_ttl_seconds,
    )


def normalize_http_base_path(path: Optional[str]) -> str:
    """Normalize a base path: leading slash, no trailing slash, "/sse" when blank."""
    if not path or not path.strip():
        return DEFAULT_HTTP_BASE_PATH
    trimmed = path.strip()
    with_leading_slash = trimmed if trimmed.startswith("/") else f"/{trimmed}"
    if with_leading_slash == "/":
        return "/"
    return with_leading_slash.rstrip("/") or "/"


def _parse_port(raw: Optional[str]) -> int:
    if not raw:
        return DEFAULT_HTTP_PORT
    try:
        port = int(raw)
    except ValueError:
        return DEFAULT_HTTP_PORT
    return port if port > 0 else DEFAULT_HTTP_PORT


def _parse_csv(raw: Optional[str]) -> Optional[tuple[str, ...]]:
    """Split a comma-separated list; None when nothing usable is left."""
    if not raw:
        return None
    entries = tuple(entry.strip() for entry in raw.split(",") if entry.strip())
    return entries or None


def get_http_server_config(environ: Optional[Mapping[str, str]] = None) -> HttpServerConfig:
    """Build the HTTP transport settings.  Invalid values fall back to defaults."""
    env = _env(environ)
    stateful_raw = env.get("MCP_HTTP_SESSION_STATEFUL")
    stateful = stateful_raw.lower() != "false" if stateful_raw else False

    return HttpServerConfig(
        port=_parse_port(env.get("MCP_HTTP_PORT") or env.get("PORT")),
        host=(env.get("MCP_HTTP_HOST") or "").strip() or DEFAULT_HTTP_HOST,
        path=normalize_http_base_path(env.get("MCP_HTTP_PATH")),
        stateless=not stateful,
        allowed_hosts=_parse_csv(env.get("MCP_HTTP_ALLOWED_HOSTS")),
        allowed_origins=_parse_csv(env.get("MCP_HTTP_ALLOWED_ORIGINS")),
    )


def get_log_level(environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the configured log level name, falling back to "info"."""
    level = (_env(environ).get("LOG_LEVEL") or "").strip().lower()
    return level if level in LOG_LEVELS else DEFAULT_LOG_LEVEL
