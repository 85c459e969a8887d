"""Remote request layer.

One call performs one HTTP request, unwraps the ``{status, message,
errors, data}`` envelope, emits the default notifications and normalizes
every failure into :class:`~arkestone.exceptions.ArkestoneRequestError`.

Usage::

    products = await api.get("/products", params={"page": 2})
    await api.post("/products", data=payload, display_success=True)
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any, TypedDict, Unpack

from arkestone.config import get_api_settings
from arkestone.envelope import Failure, Result, display_error_message, failure_from_transport, parse_envelope
from arkestone.exceptions import ArkestoneRequestError, ArkestoneTransportError
from arkestone.notify import Notifier, get_notifier
from arkestone.transport import HttpRequest, HttpTransport, Transport

_logger = logging.getLogger(__name__)

Callback = Callable[[Any], Any]


class RequestOptions(TypedDict, total=False):
    """Keyword options accepted by :func:`request` and the verb helpers."""

    data: Any
    params: Mapping[str, Any]
    headers: Mapping[str, str]
    display_error: bool
    display_success: bool
    is_multipart: bool
    with_credentials: bool | None
    on_success: Callback | None
    on_error: Callback | None
    transport: Transport | None
    notifier: Notifier | None


_default_transport: Transport = HttpTransport()


def get_transport() -> Transport:
    return _default_transport


def set_transport(transport: Transport | None) -> None:
    """Install the process-wide transport; ``None`` restores :class:`HttpTransport`."""
    global _default_transport
    _default_transport = transport if transport is not None else HttpTransport()


async def _invoke(callback: Callback | None, value: Any) -> None:
    if callback is None:
        return
    result = callback(value)
    if inspect.isawaitable(result):
        await result


async def request(
    method: str,
    url: str,
    *,
    data: Any = None,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
    display_error: bool = True,
    display_success: bool = False,
    is_multipart: bool = False,
    with_credentials: bool | None = None,
    on_success: Callback | None = None,
    on_error: Callback | None = None,
    transport: Transport | None = None,
    notifier: Notifier | None = None,
) -> Any:
    """Send one request and return the envelope ``data`` (or ``None``).

    Raises
    ------
    ArkestoneRequestError
        On transport failures, non-2xx replies and envelopes whose
        ``status`` is set to anything other than ``"success"``.
    """
    method = method.lower()
    settings = get_api_settings()
    transport = transport if transport is not None else _default_transport
    notifier = notifier if notifier is not None else get_notifier()

    query: dict[str, Any] = dict(params or {})
    body = data if data is not None else {}
    if method == "get":
        if isinstance(body, Mapping):
            query.update(body)
        body = None

    http_request = HttpRequest(
        method=method,
        url=url,
        base_url=settings.url,
        params=query,
        data=body,
        headers=dict(headers or {}),
        is_same_origin=settings.is_same_origin,
        with_credentials=settings.with_credentials if with_credentials is None else with_credentials,
        is_multipart=is_multipart,
    )

    result: Result
    try:
        response = await transport.send(http_request)
    except ArkestoneTransportError as exc:
        _logger.debug("%s %s failed at transport level: %s", method.upper(), url, exc)
        result = failure_from_transport(exc)
    else:
        result = parse_envelope(response.body)

    if isinstance(result, Failure):
        message = display_error_message(result.message, result.errors, result.fallback_message)
        _logger.debug("%s %s failed: %s", method.upper(), url, message)
        if display_error:
            notifier.error(message)
        await _invoke(on_error, result.errors)
        raise ArkestoneRequestError(message, errors=result.errors, status=result.status, label=result.label)

    if display_success and result.message:
        notifier.success(result.message)
    await _invoke(on_success, result.data)
    return result.data


async def get(url: str, **options: Unpack[RequestOptions]) -> Any:
    return await request("get", url, **options)


async def post(url: str, **options: Unpack[RequestOptions]) -> Any:
    return await request("post", url, **options)


async def put(url: str, **options: Unpack[RequestOptions]) -> Any:
    return await request("put", url, **options)


async def delete(url: str, **options: Unpack[RequestOptions]) -> Any:
    return await request("delete", url, **options)
