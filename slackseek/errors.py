"""Error taxonomy and the single place raw Slack/transport errors are classified.

Everything that talks to Slack funnels caught exceptions through
:func:`classify`, which returns one of a closed set of :class:`SlackSeekError`
subclasses.  Callers dispatch on the class (``except RateLimitError``) and
never poke at ``SlackApiError.response`` themselves.
"""

import asyncio
from collections.abc import Mapping

import aiohttp
from slack_sdk.errors import SlackApiError

RATE_LIMIT_CODES = {"ratelimited", "rate_limited"}
AUTH_CODES = {
    "invalid_auth",
    "invalid_token",
    "not_authed",
    "account_inactive",
    "token_revoked",
    "token_expired",
}
INVALID_CHANNEL_CODES = {"channel_not_found", "invalid_channel"}
CHANNEL_ACCESS_CODES = INVALID_CHANNEL_CODES | {"not_in_channel"}

_CONNECTIVITY_MARKERS = ("timeout", "timed out", "ECONNREFUSED", "ECONNRESET", "ETIMEDOUT", "ENOTFOUND")


class SlackSeekError(Exception):
    """Base class for every failure surfaced by the resolution layer."""

    retryable = False


class ValidationError(SlackSeekError):
    """Client-side problem: empty query/ids or a malformed upstream envelope."""


class AuthenticationError(SlackSeekError):
    """The token is invalid, expired or revoked.  Never retried."""


class RateLimitError(SlackSeekError):
    retryable = True

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ConnectivityError(SlackSeekError):
    retryable = True


class UpstreamError(SlackSeekError):
    """Slack answered with a business error such as ``channel_not_found``."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class ConfigError(ValueError):
    """Missing or malformed environment configuration."""

    def __init__(self, message: str, missing_vars: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing_vars = missing_vars or []


def _error_code(exc: SlackApiError) -> str | None:
    response = exc.response
    data = response if isinstance(response, dict) else getattr(response, "data", None)
    if isinstance(data, dict):
        code = data.get("error")
        if isinstance(code, str):
            return code
    return None


def _retry_after(exc: SlackApiError) -> float | None:
    """Seconds from the Retry-After header, or None when absent/malformed."""
    headers = getattr(exc.response, "headers", None)
    if not isinstance(headers, Mapping):
        return None
    raw = headers.get("Retry-After")
    if raw is None:
        # plain dicts are case-sensitive
        raw = headers.get("retry-after")
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if value >= 0 else None


def _is_connectivity(exc: BaseException) -> bool:
    if isinstance(exc, (aiohttp.ClientConnectionError, asyncio.TimeoutError, OSError)):
        return True
    text = str(exc)
    return any(marker in text for marker in _CONNECTIVITY_MARKERS)


def classify(exc: BaseException) -> SlackSeekError:
    """Map any exception raised by an upstream call onto the error taxonomy.

    Checked in priority order: rate limit, authentication, connectivity,
    then everything else as an upstream business error.  Already-classified
    errors pass through unchanged.
    """
    if isinstance(exc, SlackSeekError):
        return exc

    if isinstance(exc, SlackApiError):
        code = _error_code(exc)
        status = getattr(exc.response, "status_code", None)
        if code in RATE_LIMIT_CODES or status == 429:
            return RateLimitError(
                f"Slack API rate limit hit ({code or 'HTTP 429'}).",
                retry_after=_retry_after(exc),
            )
        if code in AUTH_CODES:
            return AuthenticationError(
                "Slack API authentication failed. Check that the token is valid "
                f"and has the required scopes. Details: {code}"
            )
        return UpstreamError(f"Slack API call failed: {code or exc}", code=code)

    if _is_connectivity(exc):
        return ConnectivityError(
            f"Could not reach the Slack API. Check the network connection. Details: {exc}"
        )

    return UpstreamError(f"Slack API call failed: {exc}")
