"""HTTP transport for the request layer."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urlsplit

import aiohttp

from arkestone.exceptions import ArkestoneConfigError, ArkestoneTransportError

_logger = logging.getLogger(__name__)

DEFAULT_HEADERS: dict[str, str] = {
    "X-Requested-With": "XMLHttpRequest",
    "Accept": "application/json",
    "Content-Type": "application/json",
}

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
}


@dataclass(frozen=True, slots=True)
class HttpRequest:
    """A fully resolved request handed to a :class:`Transport`.

    ``params`` already holds the merged query for reads; ``data`` is the
    body for writes and is ``None`` for reads.
    """

    method: str
    url: str
    base_url: str | None = None
    params: Mapping[str, Any] = field(default_factory=dict)
    data: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    is_same_origin: bool = False
    with_credentials: bool = False
    is_multipart: bool = False


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status: int
    body: Any = None


class Transport(Protocol):
    """Structural transport interface used by the request layer.

    Implementations return the decoded body of 2xx replies and raise
    :class:`ArkestoneTransportError` for anything else, attaching the
    decoded server body as ``payload`` when there is one.
    """

    async def send(self, request: HttpRequest) -> HttpResponse:
        ...


def join_url(base_url: str | None, url: str) -> str:
    """Join *url* onto *base_url* unless *url* is already absolute."""
    if not base_url or urlsplit(url).scheme:
        return url
    if not url:
        return base_url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def build_headers(request: HttpRequest) -> dict[str, str]:
    headers = dict(DEFAULT_HEADERS)
    if not request.is_same_origin:
        headers.update(CORS_HEADERS)
    headers.update(request.headers)
    if request.is_multipart:
        # aiohttp sets multipart/form-data with the boundary itself.
        headers.pop("Content-Type", None)
    return headers


def _query_items(params: Mapping[str, Any]) -> list[tuple[str, str]]:
    items: list[tuple[str, str]] = []
    for key, value in params.items():
        values = value if isinstance(value, list | tuple) else [value]
        for item in values:
            if item is None:
                continue
            if isinstance(item, bool):
                items.append((key, "true" if item else "false"))
            else:
                items.append((key, str(item)))
    return items


def _form_data(data: Any) -> aiohttp.FormData:
    form = aiohttp.FormData()
    if isinstance(data, Mapping):
        for key, value in data.items():
            if isinstance(value, str | bytes | bytearray | io.IOBase):
                form.add_field(key, value)
            else:
                form.add_field(key, json.dumps(value))
    return form


def _decode_body(raw: bytes) -> Any:
    text = raw.decode("utf-8", errors="replace").strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


class HttpTransport:
    """aiohttp-backed transport.

    Without an injected session a fresh ``ClientSession`` is opened for
    every request, configured from that request's settings (a dummy cookie
    jar when credentials are disabled). An injected session is reused as-is
    and owned by the caller.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        timeout: aiohttp.ClientTimeout | None = None,
    ) -> None:
        self._session = session
        self._timeout = timeout

    async def send(self, request: HttpRequest) -> HttpResponse:
        url = join_url(request.base_url, request.url)
        if not urlsplit(url).scheme:
            raise ArkestoneConfigError(f"Cannot send request to relative URL {url!r}; configure an absolute api url")

        kwargs: dict[str, Any] = {
            "params": _query_items(request.params),
            "headers": build_headers(request),
        }
        if request.data is not None and request.method.upper() != "GET":
            if request.is_multipart:
                kwargs["data"] = _form_data(request.data)
            else:
                kwargs["json"] = request.data

        if self._session is not None:
            return await self._send(self._session, request.method, url, kwargs)

        session_kwargs: dict[str, Any] = {}
        if not request.with_credentials:
            session_kwargs["cookie_jar"] = aiohttp.DummyCookieJar()
        if self._timeout is not None:
            session_kwargs["timeout"] = self._timeout
        async with aiohttp.ClientSession(**session_kwargs) as session:
            return await self._send(session, request.method, url, kwargs)

    async def _send(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        kwargs: dict[str, Any],
    ) -> HttpResponse:
        _logger.debug("%s %s", method.upper(), url)
        try:
            async with session.request(method.upper(), url, **kwargs) as resp:
                status = resp.status
                raw = await resp.read()
        except aiohttp.ClientError as exc:
            raise ArkestoneTransportError(f"Request to {url} failed: {exc}", url=url) from exc
        except TimeoutError as exc:
            raise ArkestoneTransportError(f"Request to {url} timed out", url=url) from exc

        body = _decode_body(raw)
        if not 200 <= status < 300:
            raise ArkestoneTransportError(
                f"Request failed with status code {status}",
                status_code=status,
                url=url,
                payload=body,
            )
        return HttpResponse(status=status, body=body)
