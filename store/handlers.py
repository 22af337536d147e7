"""Route implementations behind the thin modules in ``api/``."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

import httpx

from messages.templates import UPLOAD_SUCCESS

from store.auth import bearer_token, check_password, issue_token, verify_token
from store.batch import process_batch
from store.config import DEFAULT_ALLOWED_ORIGIN, Settings
from store.crud import DataStore
from store.errors import AuthError, ValidationError
from store.github import GitHubClient
from store.http import (
    SECURITY_HEADERS,
    Request,
    cors_headers,
    require_admin,
    restricted_origin,
    serve,
)
from store.models import Resource
from store.uploads import ImageUploader

logger = logging.getLogger(__name__)


def http_client(settings: Settings) -> httpx.Client:
    return httpx.Client(base_url=settings.api_url, timeout=settings.timeout)


@contextmanager
def open_store(settings: Settings) -> Iterator[DataStore]:
    """A ``DataStore`` whose GitHub connection is closed when the block exits."""
    settings.require_github_token()
    with GitHubClient.from_settings(settings, http=http_client(settings)) as client:
        yield DataStore(client, branch=settings.branch)


def resource_handler(resource: Resource, event: Mapping[str, Any]) -> dict[str, Any]:
    """GET is public (the storefront reads through it); writes need an admin token."""

    def list_(request: Request, settings: Settings) -> tuple[int, Any]:
        with open_store(settings) as store:
            return 200, store.list_records(resource)

    def create(request: Request, settings: Settings) -> tuple[int, Any]:
        require_admin(request, settings)
        body = request.json()
        with open_store(settings) as store:
            return 201, store.create_record(resource, body)

    def update(request: Request, settings: Settings) -> tuple[int, Any]:
        require_admin(request, settings)
        body = request.json()
        with open_store(settings) as store:
            return 200, store.update_record(resource, request.query.get("id"), body)

    def delete(request: Request, settings: Settings) -> tuple[int, Any]:
        require_admin(request, settings)
        with open_store(settings) as store:
            store.delete_record(resource, request.query.get("id"))
        return 200, {"success": True}

    routes = {"GET": list_, "POST": create, "PUT": update, "DELETE": delete}
    return serve(event, routes, cors_headers("GET, POST, PUT, DELETE, OPTIONS"))


def content_handler(event: Mapping[str, Any]) -> dict[str, Any]:
    def get(request: Request, settings: Settings) -> tuple[int, Any]:
        with open_store(settings) as store:
            return 200, store.get_content()

    def put(request: Request, settings: Settings) -> tuple[int, Any]:
        require_admin(request, settings)
        body = request.json()
        with open_store(settings) as store:
            return 200, store.update_content(body)

    return serve(event, {"GET": get, "PUT": put}, cors_headers("GET, PUT, OPTIONS"))


def batch_handler(event: Mapping[str, Any]) -> dict[str, Any]:
    def post(request: Request, settings: Settings) -> tuple[int, Any]:
        require_admin(request, settings)
        body = request.json()
        with open_store(settings) as store:
            store.client.check_repository()
            return 200, process_batch(store, body).to_dict()

    return serve(event, {"POST": post}, cors_headers("POST, OPTIONS"))


def upload_handler(event: Mapping[str, Any]) -> dict[str, Any]:
    def post(request: Request, settings: Settings) -> tuple[int, Any]:
        require_admin(request, settings)
        body = request.json()
        with open_store(settings) as store:
            files = ImageUploader(store, settings).upload(body)
        return 200, {
            "success": True,
            "files": [f.to_dict() for f in files],
            "message": UPLOAD_SUCCESS.substitute(count=len(files)),
        }

    return serve(event, {"POST": post}, cors_headers("POST, OPTIONS"))


def _auth_headers(request: Request, settings: Settings | None) -> dict[str, str]:
    origin = restricted_origin(request, settings) if settings else DEFAULT_ALLOWED_ORIGIN
    return {**SECURITY_HEADERS, **cors_headers("POST, OPTIONS", origin=origin, credentials=True)}


def login_handler(event: Mapping[str, Any]) -> dict[str, Any]:
    def post(request: Request, settings: Settings) -> tuple[int, Any]:
        body = request.json()
        expected = settings.require_admin_password()
        password = body.get("password") if isinstance(body, dict) else None
        if not password or not isinstance(password, str):
            raise ValidationError("Password required")
        if not check_password(password, expected):
            # Same message whether or not anything matched.
            raise AuthError("Invalid credentials")
        token = issue_token()
        logger.info("Issued admin token")
        return 200, {"success": True, "token": token.encode(), "expiresIn": settings.token_ttl_seconds}

    return serve(event, {"POST": post}, _auth_headers)


def verify_handler(event: Mapping[str, Any]) -> dict[str, Any]:
    def post(request: Request, settings: Settings) -> tuple[int, Any]:
        token = bearer_token(request.header("authorization"))
        if not token:
            body = request.json()
            token = body.get("token") if isinstance(body, dict) else None
        if not isinstance(token, str):
            token = None
        verify_token(token, ttl_seconds=settings.token_ttl_seconds)
        return 200, {"success": True, "valid": True}

    return serve(event, {"POST": post}, _auth_headers)
