from __future__ import annotations

import io
from typing import Any

import pytest
from aiohttp import test_utils, web

from arkestone import api
from arkestone.config import get_config_store
from arkestone.exceptions import ArkestoneConfigError, ArkestoneRequestError, ArkestoneTransportError
from arkestone.transport import HttpRequest, HttpTransport, join_url


def _app(seen: dict[str, Any]) -> web.Application:
    async def create_product(request: web.Request) -> web.Response:
        seen["query"] = dict(request.query)
        seen["headers"] = request.headers.copy()
        seen["body"] = await request.json()
        return web.json_response({"status": "success", "message": "Created", "data": {"id": 1}})

    async def list_products(request: web.Request) -> web.Response:
        seen["query"] = dict(request.query)
        seen["headers"] = request.headers.copy()
        return web.json_response({"status": "success", "data": [{"id": 1}, {"id": 2}]})

    async def broken(_request: web.Request) -> web.Response:
        return web.json_response({"status": "error", "message": "Nope"}, status=500)

    async def plain(_request: web.Request) -> web.Response:
        return web.Response(text="not json", status=404)

    async def upload(request: web.Request) -> web.Response:
        form = await request.post()
        seen["file"] = form["file"].file.read()
        seen["caption"] = form["caption"]
        seen["tags"] = form["tags"]
        return web.json_response({"status": "success", "data": {"id": 3}})

    app = web.Application()
    app.router.add_post("/api/v1/products", create_product)
    app.router.add_get("/api/v1/products", list_products)
    app.router.add_get("/api/v1/broken", broken)
    app.router.add_get("/api/v1/plain", plain)
    app.router.add_post("/api/v1/media", upload)
    return app


def test_join_url() -> None:
    assert join_url("https://api.example.com/v1/", "/products") == "https://api.example.com/v1/products"
    assert join_url("https://api.example.com/v1", "products") == "https://api.example.com/v1/products"
    assert join_url("https://api.example.com/v1", "https://other.example.com/x") == "https://other.example.com/x"
    assert join_url(None, "/products") == "/products"


@pytest.mark.asyncio
async def test_http_transport_sends_json_body_and_headers() -> None:
    seen: dict[str, Any] = {}
    async with test_utils.TestServer(_app(seen)) as server:
        response = await HttpTransport().send(
            HttpRequest(
                method="post",
                url="/products",
                base_url=str(server.make_url("/api/v1")),
                params={"draft": True, "skip": None},
                data={"name": "Mug"},
                headers={"Authorization": "Bearer t"},
            )
        )

    assert response.status == 200
    assert response.body == {"status": "success", "message": "Created", "data": {"id": 1}}
    assert seen["query"] == {"draft": "true"}
    assert seen["body"] == {"name": "Mug"}
    assert seen["headers"]["X-Requested-With"] == "XMLHttpRequest"
    assert seen["headers"]["Authorization"] == "Bearer t"
    assert seen["headers"]["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
async def test_http_transport_raises_with_server_payload() -> None:
    async with test_utils.TestServer(_app({})) as server:
        transport = HttpTransport()
        base_url = str(server.make_url("/api/v1"))
        with pytest.raises(ArkestoneTransportError) as broken:
            await transport.send(HttpRequest(method="get", url="/broken", base_url=base_url))
        with pytest.raises(ArkestoneTransportError) as plain:
            await transport.send(HttpRequest(method="get", url="/plain", base_url=base_url))

    assert broken.value.status_code == 500
    assert broken.value.payload == {"status": "error", "message": "Nope"}
    assert str(broken.value) == "Request failed with status code 500"
    assert plain.value.status_code == 404
    assert plain.value.payload == "not json"


@pytest.mark.asyncio
async def test_http_transport_rejects_relative_urls() -> None:
    with pytest.raises(ArkestoneConfigError):
        await HttpTransport().send(HttpRequest(method="get", url="/products", base_url="/api/v1"))


@pytest.mark.asyncio
async def test_request_layer_over_http() -> None:
    seen: dict[str, Any] = {}
    async with test_utils.TestServer(_app(seen)) as server:
        get_config_store().set_api({"url": str(server.make_url("/api/v1")), "is_same_origin": True})

        products = await api.get("/products", params={"page": 1}, data={"search": "mug"})
        with pytest.raises(ArkestoneRequestError) as exc_info:
            await api.get("/broken", display_error=False)

    assert products == [{"id": 1}, {"id": 2}]
    assert seen["query"] == {"page": "1", "search": "mug"}
    assert "Access-Control-Allow-Origin" not in seen["headers"]
    assert exc_info.value.message == "Nope"
    assert exc_info.value.status == 500


@pytest.mark.asyncio
async def test_http_transport_uploads_file_objects_as_multipart() -> None:
    seen: dict[str, Any] = {}
    async with test_utils.TestServer(_app(seen)) as server:
        response = await HttpTransport().send(
            HttpRequest(
                method="post",
                url="/media",
                base_url=str(server.make_url("/api/v1")),
                data={"file": io.BytesIO(b"\x89PNG-bytes"), "caption": "Mug", "tags": ["red", "tall"]},
                is_multipart=True,
            )
        )

    assert response.body == {"status": "success", "data": {"id": 3}}
    assert seen["file"] == b"\x89PNG-bytes"
    assert seen["caption"] == "Mug"
    assert seen["tags"] == '["red", "tall"]'
