# =============================================================================
# tools/__init__.py
# =============================================================================
# This package contains the FastMCP tool layer for the MoCo server.
#
# ARCHITECTURAL ROLE:
#   tools/ is the "translation layer" between MCP clients and core/.
#     - mcp_server.py  the FastMCP instance and one @mcp.tool() function
#                      per tool: validate, call core/, summarize, return
#                      a dict
#
# WHAT TOOLS DO NOT DO:
#   - They do NOT talk HTTP themselves (that's core/moco_api.py)
#   - They do NOT cache anything (that's core/cache.py)
#   - They do NOT raise: failures come back as {"error": "..."}
# =============================================================================
