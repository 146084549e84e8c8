"""Tests for the HTTP transport against a local aiohttp server."""

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from exchange import HttpTokenClient, NetworkError


async def start_server(handler) -> test_utils.TestServer:
    app = web.Application()
    app.router.add_get("/api", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    return server


@pytest.mark.asyncio
async def test_fetch_sends_token_query_parameter():
    seen = {}

    async def handler(request):
        seen["token"] = request.query.get("token")
        seen["method"] = request.method
        return web.Response(text=" OK\n")

    server = await start_server(handler)
    client = HttpTokenClient(timeout=5)
    try:
        text = await client.fetch(str(server.make_url("/api")), "aGVhZGVy.cGF5bG9hZA.c2ln-_")
    finally:
        await client.close()
        await server.close()

    assert text == " OK\n"
    assert seen == {"token": "aGVhZGVy.cGF5bG9hZA.c2ln-_", "method": "GET"}


@pytest.mark.asyncio
async def test_fetch_returns_body_of_error_status():
    async def handler(request):
        return web.Response(status=500, text="ERR")

    server = await start_server(handler)
    client = HttpTokenClient(timeout=5)
    try:
        text = await client.fetch(str(server.make_url("/api")), "a.b.c")
    finally:
        await client.close()
        await server.close()

    assert text == "ERR"


@pytest.mark.asyncio
async def test_fetch_times_out():
    async def handler(request):
        await asyncio.sleep(1)
        return web.Response(text="OK")

    server = await start_server(handler)
    client = HttpTokenClient(timeout=0.2)
    try:
        with pytest.raises(NetworkError) as excinfo:
            await client.fetch(str(server.make_url("/api")), "a.b.c")
    finally:
        await client.close()
        await server.close()

    assert "timed out" in str(excinfo.value)


@pytest.mark.asyncio
async def test_unreachable_host_is_a_network_error():
    client = HttpTokenClient(timeout=5)
    try:
        with pytest.raises(NetworkError) as excinfo:
            await client.fetch("http://127.0.0.1:1/api", "a.b.c")
    finally:
        await client.close()

    assert excinfo.value.cause is not None
    assert str(excinfo.value)
