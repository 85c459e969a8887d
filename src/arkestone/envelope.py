"""Response envelope parsing.

Every endpoint answers with ``{status, message?, errors?, data?}``. The
body is parsed exactly once, at the transport boundary, into either a
:class:`Success` or a :class:`Failure`; nothing downstream reads the raw
dictionary again.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from arkestone.exceptions import ArkestoneTransportError

SUCCESS_STATUS = "success"
DEFAULT_ERROR_MESSAGE = "Request failed"


class Success(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: Any = None
    message: str | None = None


class Failure(BaseModel):
    """A transport or logical failure.

    ``label`` is the envelope ``status`` for logical failures, ``status``
    the HTTP status code when the server replied.
    """

    model_config = ConfigDict(frozen=True)

    message: str | None = None
    errors: Any = None
    status: int | None = None
    label: str | None = None
    fallback_message: str | None = None


Result = Success | Failure


def _message_or_none(value: Any) -> str | None:
    if not value:
        return None
    return str(value)


def parse_envelope(body: Any) -> Result:
    """Parse a 2xx response body.

    A truthy ``status`` other than ``"success"`` is a logical failure. A
    missing or falsy ``status`` (legacy endpoints) counts as success.
    Non-mapping bodies carry no envelope and yield ``Success(data=None)``.
    """
    if not isinstance(body, Mapping):
        return Success()

    status = body.get("status")
    message = _message_or_none(body.get("message"))
    if status and status != SUCCESS_STATUS:
        return Failure(message=message, errors=body.get("errors"), label=str(status))
    return Success(data=body.get("data"), message=message)


def failure_from_transport(exc: ArkestoneTransportError) -> Failure:
    """Build a :class:`Failure` from a transport error and its server payload, if any."""
    payload = exc.payload if isinstance(exc.payload, Mapping) else {}
    label = payload.get("status")
    return Failure(
        message=_message_or_none(payload.get("message")),
        errors=payload.get("errors"),
        status=exc.status_code,
        label=str(label) if label else None,
        fallback_message=str(exc) or None,
    )


def _count_suffix(other_count: int) -> str:
    if other_count <= 0:
        return ""
    plural = "s" if other_count > 1 else ""
    return f" (and {other_count} other error{plural})"


def display_error_message(message: str | None, errors: Any, fallback: str | None = None) -> str:
    """Resolve the single human readable message for a failure.

    Precedence: server ``message``; first entry of a list of errors plus a
    count of the rest; first message of the first field of a field map plus
    a count of the other fields; ``str(errors)``; *fallback*;
    ``"Request failed"``.

    >>> display_error_message(None, ["a", "b"])
    'a (and 1 other error)'
    """
    if message:
        return message

    if isinstance(errors, list | tuple) and errors:
        return f"{errors[0]}{_count_suffix(len(errors) - 1)}"

    if isinstance(errors, Mapping) and errors:
        first_value = next(iter(errors.values()))
        if isinstance(first_value, list | tuple) and first_value:
            first = str(first_value[0])
        else:
            first = str(first_value)
        return f"{first}{_count_suffix(len(errors) - 1)}"

    if errors:
        return str(errors)

    return fallback or DEFAULT_ERROR_MESSAGE
