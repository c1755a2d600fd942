# =============================================================================
# core/__init__.py
# =============================================================================
# This package contains ALL business logic of the MoCo MCP server: config,
# the TTL cache, the MoCo API client, domain records and report summaries.
#
# ARCHITECTURAL RULE:
#   Nothing in this package imports FastMCP.  The only network dependency is
#   httpx, and every test can drive it with httpx.MockTransport, with no
#   MoCo account and no MCP client involved.
# =============================================================================
