from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, quote, urlencode

from dicebot.errors import EncodingError, MalformedRoute, MissingToken

CALLBACK_DATA_KEY = "callbackDataKey"
# Telegram rejects callback_data longer than 64 bytes.
MAX_CALLBACK_DATA_BYTES = 64


@dataclass(frozen=True)
class Route:
    action: str
    query: Optional[str]


def parse_route(data: str) -> Route:
    action, sep, query = (data or "").partition("?")
    action = action.strip()
    if not action:
        raise MalformedRoute(f"route {data!r} has no action")
    if not sep:
        return Route(action, None)
    return Route(action, query)


def extract_token(route: Route, *, required: bool = True) -> Optional[str]:
    """Return the callback token, or None when the action takes no token."""
    if route.query is None:
        if required:
            raise MalformedRoute(f"action {route.action!r} expects a query string")
        return None
    values = parse_qs(route.query, keep_blank_values=False).get(CALLBACK_DATA_KEY)
    token = values[0].strip() if values else ""
    if not token:
        if required:
            raise MissingToken(f"action {route.action!r} has no {CALLBACK_DATA_KEY}")
        return None
    return token


def build_route(action: str, token: Optional[str] = None) -> str:
    route = quote(action, safe="_")
    if token is not None:
        route = f"{route}?{urlencode({CALLBACK_DATA_KEY: token})}"
    if len(route.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
        raise EncodingError(f"route {route!r} exceeds {MAX_CALLBACK_DATA_BYTES} bytes")
    return route
