"""Error taxonomy shared by the commit builder, the CRUD layer and the API handlers."""

from __future__ import annotations


class StoreError(Exception):
    """Base error. Carries the HTTP status the serverless handlers respond with."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthError(StoreError):
    """Missing, expired or rejected credential (admin token or GitHub token)."""

    status_code = 401


class ValidationError(StoreError):
    status_code = 400


class NotFound(StoreError):
    status_code = 404


class ConfigurationError(StoreError):
    status_code = 500


class RefNotFound(StoreError):
    """The target branch does not exist on the remote."""

    status_code = 500


class RemoteUnavailable(StoreError):
    """Transport failure or an unexpected HTTP status from GitHub.

    The remote status is forwarded when there is one; transport errors map to 502.
    """

    status_code = 502


class MalformedResponse(StoreError):
    status_code = 500


class InvalidTree(MalformedResponse):
    """The base tree listing came back without a usable ``tree`` array."""


class RefUpdateConflict(StoreError):
    """GitHub refused to move the branch because it is no longer at the expected parent."""

    status_code = 409
