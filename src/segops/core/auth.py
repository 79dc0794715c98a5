"""Authentication and transport setup for the Segment Public API.

This module centralizes creation of the authenticated ``requests`` session
and the SegmentAdapter on top of it. Configuration comes from explicit
arguments first, then from environment variables:

- SEGMENT_API_TOKEN: bearer token (required)
- SEGMENT_API_URL: API base URL
- SEGOPS_PAGE_SIZE: upstream page size
- SEGOPS_HTTP_TIMEOUT: per-request timeout in seconds
- SEGOPS_HTTP_RETRIES: transport-level retries for idempotent requests
"""

from __future__ import annotations

import os

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from segops.core.adapters.segment import (
    BASE_URL,
    DEFAULT_PAGE_SIZE,
    DEFAULT_TIMEOUT_SECONDS,
    SegmentAdapter,
)
from segops.core.errors import SegmentError

TOKEN_ENV = "SEGMENT_API_TOKEN"
BASE_URL_ENV = "SEGMENT_API_URL"
PAGE_SIZE_ENV = "SEGOPS_PAGE_SIZE"
TIMEOUT_ENV = "SEGOPS_HTTP_TIMEOUT"
RETRIES_ENV = "SEGOPS_HTTP_RETRIES"
DEFAULT_RETRIES = 3


class AuthError(SegmentError):
    """Raised when no usable Segment credentials are configured."""


def _sanitize_base_url(url: str | None) -> str:
    """
    Normalize an API base URL.

    - Removes query strings
    - Collapses trailing slashes to exactly one

    Path segments are appended to the result, so it must end with a slash.
    """
    if not url:
        return BASE_URL
    url = url.split("?", 1)[0]
    return url.rstrip("/") + "/"


def _env_int(name: str, default: int, *, minimum: int) -> int:
    """Return an integer env override, falling back on junk values."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(int(raw), minimum)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def build_session(token: str, *, retries: int = DEFAULT_RETRIES) -> requests.Session:
    """Return a session carrying the bearer token and the retry policy."""
    session = requests.Session()
    session.headers.update(
        {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "Content-Type": "application/vnd.segment.v1+json",
        }
    )
    if retries > 0:
        retry = Retry(
            total=retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
    return session


def get_adapter(
    token: str | None = None,
    base_url: str | None = None,
) -> SegmentAdapter:
    """
    Create and return a configured SegmentAdapter.

    Explicit arguments win over environment variables. A missing token is
    reported as AuthError before any request is made.
    """
    token = (token or os.getenv(TOKEN_ENV) or "").strip()
    if not token:
        raise AuthError(
            f"No Segment API token configured. Set {TOKEN_ENV} or pass --token."
        )
    session = build_session(
        token, retries=_env_int(RETRIES_ENV, DEFAULT_RETRIES, minimum=0)
    )
    return SegmentAdapter(
        session,
        base_url=_sanitize_base_url(base_url or os.getenv(BASE_URL_ENV)),
        page_size=_env_int(PAGE_SIZE_ENV, DEFAULT_PAGE_SIZE, minimum=1),
        timeout=_env_float(TIMEOUT_ENV, DEFAULT_TIMEOUT_SECONDS),
    )
