"""HTTP client the admin panel uses to talk to the ``/api`` routes."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from store.errors import AuthError, MalformedResponse, RemoteUnavailable
from store.models import Resource

logger = logging.getLogger(__name__)


class AdminAPIClient:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 60.0,
        http: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._http = http or httpx.Client(base_url=self.base_url, timeout=timeout)

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def close(self) -> None:
        self._http.close()

    def _call(self, method: str, endpoint: str, data: Any = None, auth: bool = True, **kwargs) -> Any:
        headers = {"Content-Type": "application/json"}
        if auth:
            if not self.token:
                raise AuthError("Not authenticated")
            headers["Authorization"] = f"Bearer {self.token}"

        logger.debug("API call: %s %s has_token=%s has_data=%s", method, endpoint, bool(self.token), data is not None)
        try:
            response = self._http.request(method, endpoint, headers=headers, json=data, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteUnavailable(f"Request to {endpoint} failed: {e}") from e

        if response.status_code == 401 and auth:
            self.token = None
            raise AuthError("Session expired. Please login again.")

        if "application/json" not in response.headers.get("content-type", ""):
            raise RemoteUnavailable(
                f"Server error: {response.status_code} {response.reason_phrase}. "
                f"Response: {response.text[:100]}",
                response.status_code,
            )
        try:
            result = response.json() if response.text.strip() else None
        except ValueError as e:
            raise MalformedResponse(f"Invalid JSON response from server: {e}") from e
        if result is None:
            raise MalformedResponse("Empty response from server")

        if not response.is_success:
            message = result.get("error") if isinstance(result, dict) else None
            message = message or f"API request failed: {response.status_code}"
            if response.status_code == 401:
                raise AuthError(message)
            raise RemoteUnavailable(message, response.status_code)
        return result

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def login(self, password: str) -> str:
        result = self._call("POST", "/auth/login", {"password": password}, auth=False)
        self.token = result["token"]
        return self.token

    def verify(self) -> bool:
        if not self.token:
            return False
        try:
            self._call("POST", "/auth/verify")
        except AuthError:
            return False
        return True

    def logout(self) -> None:
        self.token = None

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def list_records(self, resource: Resource) -> list[dict[str, Any]]:
        return self._call("GET", f"/{resource.value}", auth=False)

    def get_content(self) -> dict[str, Any]:
        return self._call("GET", f"/{Resource.CONTENT.value}", auth=False)

    def save_batch(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._call("POST", "/batch", payload)

    def upload(self, images: list[Any], folder: str = "images") -> list[dict[str, Any]]:
        return self._call("POST", "/upload", {"images": images, "folder": folder})["files"]

    def create_collection(self, data: dict[str, Any]) -> dict[str, Any]:
        return self._call("POST", "/collections", data)

    def update_collection(self, collection_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return self._call("PUT", "/collections", data, params={"id": collection_id})

    def delete_collection(self, collection_id: str) -> None:
        self._call("DELETE", "/collections", params={"id": collection_id})
