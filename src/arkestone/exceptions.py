"""Custom exception hierarchy for arkestone."""

from __future__ import annotations

from typing import Any


class ArkestoneError(Exception):
    """Base exception for all arkestone errors."""


class ArkestoneConfigError(ArkestoneError):
    """Invalid or missing configuration (programmer error)."""


class StoreNotConfiguredError(ArkestoneConfigError):
    """A service store was accessed but no store configuration was supplied."""


class MissingIdentifierError(ArkestoneConfigError, ValueError):
    """A resource id is required for this operation but was not provided."""


class ArkestoneTransportError(ArkestoneError):
    """HTTP-level failure (network, non-2xx reply).

    ``payload`` carries the decoded server body when the server replied,
    so the request layer can still read ``message``/``errors`` from it.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
        payload: Any = None,
    ) -> None:
        self.status_code = status_code
        self.url = url
        self.payload = payload
        super().__init__(message)


class ArkestoneRequestError(ArkestoneError):
    """Normalized request failure raised to callers.

    Transport, logical (envelope ``status`` other than ``"success"``) and
    validation failures all surface as this exception.

    Parameters
    ----------
    message : str
        Human readable message, already resolved by precedence.
    errors : Any
        Raw ``errors`` value from the server, unprocessed.
    status : int or None
        HTTP status code when the server replied with one.
    label : str or None
        Envelope ``status`` label for logical failures (e.g. ``"error"``).
    """

    def __init__(
        self,
        message: str,
        *,
        errors: Any = None,
        status: int | None = None,
        label: str | None = None,
    ) -> None:
        self.message = message
        self.errors = errors
        self.status = status
        self.label = label
        super().__init__(message)

    def as_dict(self) -> dict[str, Any]:
        """Return the ``{message, errors, status}`` shape."""
        return {"message": self.message, "errors": self.errors, "status": self.status}


class AccessDeniedError(ArkestoneError):
    """Raised by :meth:`arkestone.acl.Access.must` when access is not granted."""
