"""Tests for the aiohttp client wrapper against a local test server."""

import pytest
from aiohttp import web
from aiohttp import test_utils

from funding_radar.errors import ParseError, TransportError
from funding_radar.infra.http import HttpClient


@pytest.fixture
async def server():
    hits = {"flaky": 0}

    async def ok(request):
        return web.Response(text="<h1>Fellowships</h1>")

    async def flaky(request):
        hits["flaky"] += 1
        if hits["flaky"] == 1:
            return web.Response(status=503, headers={"Retry-After": "0"})
        return web.json_response({"ok": True})

    async def missing(request):
        return web.Response(status=404)

    async def garbage(request):
        return web.Response(text="{not json", content_type="application/json")

    async def echo(request):
        return web.json_response({"ua": request.headers.get("User-Agent"), "body": await request.json()})

    app = web.Application()
    app.router.add_get("/ok", ok)
    app.router.add_get("/flaky", flaky)
    app.router.add_get("/missing", missing)
    app.router.add_get("/garbage", garbage)
    app.router.add_post("/echo", echo)

    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    test_server.hits = hits
    yield test_server
    await test_server.close()


class TestHttpClient:
    async def test_get_text(self, server) -> None:
        async with HttpClient() as http:
            assert await http.get_text(str(server.make_url("/ok"))) == "<h1>Fellowships</h1>"

    async def test_retries_on_503(self, server) -> None:
        async with HttpClient(max_retries=2, base_delay=0) as http:
            assert await http.get_json(str(server.make_url("/flaky"))) == {"ok": True}
        assert server.hits["flaky"] == 2

    async def test_single_attempt_by_default(self, server) -> None:
        async with HttpClient() as http:
            with pytest.raises(TransportError, match="HTTP 503"):
                await http.get_json(str(server.make_url("/flaky")))
        assert server.hits["flaky"] == 1

    async def test_client_error_status_not_retried(self, server) -> None:
        async with HttpClient(max_retries=3, base_delay=0) as http:
            with pytest.raises(TransportError, match="HTTP 404"):
                await http.get_text(str(server.make_url("/missing")))

    async def test_malformed_json(self, server) -> None:
        async with HttpClient() as http:
            with pytest.raises(ParseError):
                await http.get_json(str(server.make_url("/garbage")))

    async def test_post_json_with_default_headers(self, server) -> None:
        async with HttpClient(default_headers={"User-Agent": "FundingRadar/1.0"}) as http:
            payload = await http.post_json(str(server.make_url("/echo")), {"rows": 20})
        assert payload == {"ua": "FundingRadar/1.0", "body": {"rows": 20}}

    async def test_connection_refused_is_transport_error(self) -> None:
        async with HttpClient(timeout=2) as http:
            with pytest.raises(TransportError):
                await http.get_text("http://127.0.0.1:9/unreachable")

    def test_retry_after_parsing(self) -> None:
        assert HttpClient._parse_retry_after("7") == 7.0
        assert HttpClient._parse_retry_after(None) is None
        assert HttpClient._parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0
