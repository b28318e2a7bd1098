"""API URL helpers."""

import re
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

API_ROOT = "https://api.github.com/"

_LINK_RE = re.compile(r'<([^>]+)>\s*;\s*rel="([^"]+)"')


def join_path(route: str | Sequence[Any]) -> str:
    """
    Join a route given as a string or a sequence of segments.

    Segments are percent-encoded whole, so '/', '?' and '#' inside one stay
    in the path. A string route keeps its '/' separators.
    """
    if isinstance(route, str):
        return quote(route.lstrip("/"), safe="/")
    return "/".join(quote(str(segment), safe="") for segment in route).lstrip("/")


def format_query_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        value = ",".join(str(v) for v in value)
    elif isinstance(value, bool):
        value = "true" if value else "false"
    return quote(str(value), safe=",")


def build_query(query_args: Mapping[str, Any] | None, access_token: str) -> str:
    """
    Serialize query args as key=value pairs joined by '&'.

    The access token is a default: a caller-supplied access_token wins.
    None values are dropped.
    """
    query: dict[str, Any] = {"access_token": access_token}
    query.update(query_args or {})
    return "&".join(
        f"{key}={format_query_value(value)}"
        for key, value in query.items()
        if value is not None
    )


def build_api_url(
    route: str | Sequence[Any],
    query_args: Mapping[str, Any] | None,
    access_token: str,
    base_url: str = API_ROOT,
) -> str:
    """Build a fully qualified API URL, e.g. https://api.github.com/user/repos?access_token=t"""
    root = base_url if base_url.endswith("/") else base_url + "/"
    return f"{root}{join_path(route)}?{build_query(query_args, access_token)}"


def parse_link_header(header: str | None) -> dict[str, str]:
    """Parse a Link header into {rel: url}."""
    if not header:
        return {}
    return {rel: url for url, rel in _LINK_RE.findall(header)}


def redact_token(url: str) -> str:
    """Hide the access_token value in a URL (for logging)."""
    return re.sub(r"(access_token=)[^&]*", r"\1***", url)
