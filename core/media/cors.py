from __future__ import annotations

from collections.abc import Iterable, Mapping

ALLOWED_METHODS = "GET, HEAD, OPTIONS, POST, PUT"
PREFLIGHT_MAX_AGE = "86400"


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def match_cors_origin(allowed_origins: Iterable[str], origin: str | None) -> str:
    if not origin:
        return ""
    allowed = list(allowed_origins)
    if "*" in allowed:
        return "*"
    if origin in allowed:
        return origin
    return ""


def cors_handler(
    method: str,
    request_headers: Mapping[str, str],
    allowed_origins: Iterable[str],
    serve: bool,
) -> tuple[dict[str, str], int]:
    """Shared CORS helper for media handlers.

    Returns the CORS headers for the response and a status. A non-zero status
    means the response is complete (an answered preflight).
    """
    headers: dict[str, str] = {}
    if not serve:
        if method.upper() == "OPTIONS":
            return headers, 204
        return headers, 0

    origin = match_cors_origin(allowed_origins, get_header(request_headers, "Origin"))
    if origin:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Vary"] = "Origin"

    if method.upper() != "OPTIONS":
        return headers, 0

    headers["Vary"] = "Origin, Access-Control-Request-Method"
    headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
    headers["Access-Control-Allow-Headers"] = "*"
    headers["Access-Control-Max-Age"] = PREFLIGHT_MAX_AGE
    return headers, 204
