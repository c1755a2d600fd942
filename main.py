# =============================================================================
# main.py  —  Entry Point for the MoCo MCP Server
# =============================================================================
#
# HOW TO RUN:
#   uv run python main.py                     # stdio (Claude Desktop & co.)
#   uv run python main.py --transport http    # streamable HTTP on :8080/sse
#
# WHAT HAPPENS:
#   1. Loads .env (MOCO_API_KEY, MOCO_SUBDOMAIN, ...) into the environment
#   2. Configures JSON logging on STDERR at LOG_LEVEL
#   3. Validates the MoCo configuration, so a missing key fails at startup
#      instead of on the first tool call
#   4. Starts the FastMCP server on the chosen transport
#
# TRANSPORT SELECTION:
#   --transport wins; otherwise MCP_TRANSPORT; otherwise "stdio".
#   HTTP settings come from MCP_HTTP_PORT / PORT, MCP_HTTP_HOST,
#   MCP_HTTP_PATH, MCP_HTTP_SESSION_STATEFUL and the MCP_HTTP_ALLOWED_HOSTS /
#   MCP_HTTP_ALLOWED_ORIGINS allow-lists (see core/config.py).
# =============================================================================

import argparse
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env BEFORE anything reads os.environ.
load_dotenv()

from core.config import get_http_server_config, get_moco_config
from core.errors import ConfigError
from core.logger import configure_logging, get_logger
from tools.mcp_server import http_middleware, mcp, tool_names

TRANSPORTS = ("stdio", "http")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="MoCo MCP server")
    parser.add_argument(
        "--transport",
        choices=TRANSPORTS,
        default=os.environ.get("MCP_TRANSPORT", "stdio").lower(),
        help="MCP transport to serve (default: $MCP_TRANSPORT or stdio)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()
    logger = get_logger("moco.main")

    try:
        config = get_moco_config()
    except ConfigError as exc:
        logger.error("Invalid configuration", extra={"context": exc})
        return 1

    logger.info("MoCo MCP server starting", extra={"context": {
        "transport": args.transport,
        "subdomain": config.subdomain,
        "cacheTtlSeconds": config.cache_ttl_seconds,
        "tools": tool_names(),
    }})

    if args.transport == "http":
        http_config = get_http_server_config()
        logger.info(
            f"Listening on http://{http_config.host}:{http_config.port}{http_config.path}",
            extra={"context": {
                "stateless": http_config.stateless,
                "allowedHosts": http_config.allowed_hosts,
                "allowedOrigins": http_config.allowed_origins,
            }},
        )
        mcp.run(
            transport="http",
            host=http_config.host,
            port=http_config.port,
            path=http_config.path,
            stateless_http=http_config.stateless,
            middleware=http_middleware(http_config),
        )
    else:
        mcp.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
