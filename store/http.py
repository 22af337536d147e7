"""Request/response plumbing shared by the serverless handlers in ``api/``.

Handlers receive a Vercel/Lambda-style event and return a
``{"statusCode", "headers", "body"}`` mapping.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from store.auth import bearer_token, verify_token
from store.config import Settings
from store.errors import AuthError, StoreError, ValidationError

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


@dataclass
class Request:
    method: str
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    raw_body: Any = None

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> Request:
        method = (event.get("method") or event.get("httpMethod") or "GET").upper()
        headers = {str(k).lower(): str(v) for k, v in (event.get("headers") or {}).items()}
        query = event.get("query") or event.get("queryStringParameters") or {}
        return cls(
            method=method,
            headers=headers,
            query={str(k): str(v) for k, v in query.items()},
            raw_body=event.get("body"),
        )

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def json(self) -> Any:
        """Body as parsed JSON; dict bodies (already parsed upstream) pass through."""
        body = self.raw_body
        if body is None or body == "":
            return {}
        if isinstance(body, (bytes, bytearray)):
            body = body.decode("utf-8")
        if isinstance(body, str):
            try:
                return json.loads(body)
            except ValueError as e:
                raise ValidationError("Invalid JSON body") from e
        return body


def cors_headers(methods: str, origin: str = "*", credentials: bool = False) -> dict[str, str]:
    headers = {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": methods,
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }
    if credentials:
        headers["Access-Control-Allow-Credentials"] = "true"
    return headers


def restricted_origin(request: Request, settings: Settings) -> str:
    """Echo the caller's origin only if it is the configured site or localhost."""
    origin = request.header("origin")
    if origin and (origin == settings.allowed_origin or "localhost" in origin):
        return origin
    return settings.allowed_origin


def json_response(status: int, body: Any = None, headers: Mapping[str, str] | None = None) -> dict[str, Any]:
    out = {"content-type": "application/json"}
    out.update(headers or {})
    return {
        "statusCode": status,
        "headers": out,
        "body": "" if body is None else json.dumps(body),
    }


def error_response(exc: StoreError, headers: Mapping[str, str] | None = None) -> dict[str, Any]:
    return json_response(exc.status_code, {"error": exc.message}, headers)


def require_admin(request: Request, settings: Settings) -> None:
    token = bearer_token(request.header("authorization"))
    if not token:
        raise AuthError("Unauthorized")
    try:
        verify_token(token, ttl_seconds=settings.token_ttl_seconds)
    except AuthError as e:
        raise AuthError("Unauthorized. Please login.") from e


Route = Callable[[Request, Settings], tuple[int, Any]]
HeaderFactory = Callable[[Request, "Settings | None"], Mapping[str, str]]


def serve(
    event: Mapping[str, Any],
    routes: Mapping[str, Route],
    headers: Mapping[str, str] | HeaderFactory,
    load_settings: Callable[[], Settings] = Settings.from_env,
) -> dict[str, Any]:
    """Dispatch ``event`` to the route for its method and render the outcome.

    Settings are loaded per request, so a bad configuration is reported as a
    JSON error like any other ``StoreError``. Routes receive the request and
    the settings and return ``(status, body)``. Anything that is not a
    ``StoreError`` is logged and reported as a 500.

    ``headers`` is either a fixed mapping or a callable building them from the
    request and the settings (``None`` when the settings failed to load).
    """
    request = Request.from_event(event)
    try:
        settings = load_settings()
    except StoreError as e:
        logger.error("Configuration error: %s", e.message)
        return error_response(e, headers(request, None) if callable(headers) else headers)
    if callable(headers):
        headers = headers(request, settings)

    if request.method == "OPTIONS":
        return json_response(200, None, headers)
    route = routes.get(request.method)
    if route is None:
        return json_response(405, {"error": "Method not allowed"}, headers)
    try:
        status, body = route(request, settings)
    except StoreError as e:
        logger.warning("%s failed with %d: %s", request.method, e.status_code, e.message)
        return error_response(e, headers)
    except Exception as e:
        logger.exception("API Error")
        return json_response(500, {"error": str(e)}, headers)
    return json_response(status, body, headers)
