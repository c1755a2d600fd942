# =============================================================================
# core/errors.py  —  Error Types & Error Classification
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Defines the exceptions raised by core/ and turns raw transport failures
#   (httpx exceptions, HTTP status codes) into human-readable messages.
#
# THE TAXONOMY:
#   MocoError                   base class, tools catch this one
#     ├── ConfigError           missing / malformed environment variables
#     ├── MocoApiError          HTTP status, network or JSON parse failure
#     └── ProjectNotAssignedError   task lookup outside the assigned set
#
# WHY CLASSIFY HERE?
#   The MCP client should never see an httpx traceback.  Every failure the
#   API layer propagates has already been translated by
#   handle_moco_api_error(), so the tools/ layer only has to forward
#   str(error) to the agent.
# =============================================================================

import httpx


class MocoError(Exception):
    """Base class for every error raised by the MoCo core."""


class ConfigError(MocoError):
    """Raised when the environment does not describe a usable configuration."""


class MocoApiError(MocoError):
    """A failed request against the MoCo API.

    Attributes:
        status_code: The HTTP status of the failed response, or None for
            network and parse failures.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ProjectNotAssignedError(MocoError):
    """Raised when tasks are requested for a project outside the user's assignments."""

    def __init__(self, project_id: int):
        super().__init__(
            f"Project {project_id} is not assigned to the current user or does not exist."
        )
        self.project_id = project_id


# -----------------------------------------------------------------------------
# Status code → message table
# -----------------------------------------------------------------------------
_STATUS_MESSAGES: dict[int, str] = {
    400: "Bad request - the MoCo API rejected the request",
    401: "Authentication failed - check MOCO_API_KEY",
    403: "Access denied - the API key lacks permission for this resource",
    404: "Resource not found",
    422: "Invalid request parameters",
    429: "Rate limit exceeded - too many requests to the MoCo API",
}


def handle_moco_api_error(error: BaseException) -> str:
    """Translate a raw failure into a message suitable for the end user.

    Args:
        error: Usually an httpx.HTTPStatusError or httpx.RequestError.

    Returns:
        A single-line description that always names the HTTP status when
        one is known.
    """
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        reason = error.response.reason_phrase
        if status in _STATUS_MESSAGES:
            return f"{_STATUS_MESSAGES[status]} (HTTP {status})"
        if status >= 500:
            return f"MoCo API server error (HTTP {status}: {reason})"
        return f"HTTP {status}: {reason}"

    if isinstance(error, httpx.TimeoutException):
        return "Request to MoCo API timed out"

    if isinstance(error, httpx.RequestError):
        return f"Network error while contacting MoCo API: {error}"

    return f"Unexpected error: {error}"


def create_validation_error_message(field: str, value: object, reason: str) -> str:
    """Message returned by a tool when one of its arguments is unusable."""
    return f"Validation error for '{field}' (value: {value!r}): {reason}"


def create_empty_result_message(kind: str, **details: object) -> str:
    """Message returned by a tool when a query matched nothing."""
    described = ", ".join(f"{key}={value}" for key, value in details.items() if value is not None)
    if not described:
        return f"No {kind} found."
    return f"No {kind} found for {described}."
