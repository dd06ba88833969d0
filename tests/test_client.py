"""Tests for arcturus_casino/sync/client.py against a local aiohttp server."""

from __future__ import annotations

import asyncio

import pytest
from aiohttp import test_utils, web

from arcturus_casino.sync.client import AiohttpBalanceEndpoint, BalanceTransportError
from arcturus_casino.sync.protocol import CHIPS_UPDATE_PATH, ChipUpdateRequest

REQUEST = ChipUpdateRequest(previous_balance=1000, delta=50, game_type='blackjack', outcome='win')


def post_with(handler) -> object:
    """Serve ``handler`` on the chip update path and POST REQUEST to it."""

    async def scenario():
        app = web.Application()
        app.router.add_post(CHIPS_UPDATE_PATH, handler)
        async with test_utils.TestServer(app) as server:
            endpoint = AiohttpBalanceEndpoint(str(server.make_url('/')))
            return await endpoint.update_chips(REQUEST)

    return asyncio.run(scenario())


class TestAiohttpBalanceEndpoint:
    def test_posts_camel_case_payload(self):
        received = []

        async def handler(request):
            received.append(await request.json())
            return web.json_response({'success': True, 'balance': 1050})

        reply = post_with(handler)

        assert received == [REQUEST.to_payload()]
        assert reply.status == 200
        assert reply.body == {'success': True, 'balance': 1050}
        assert reply.retry_after is None

    def test_error_reply_keeps_retry_after(self):
        async def handler(request):
            return web.json_response(
                {'success': False, 'error': 'RATE_LIMITED'},
                status=429,
                headers={'Retry-After': '3'},
            )

        reply = post_with(handler)
        assert reply.status == 429
        assert reply.retry_after == '3'
        assert reply.parse().error == 'RATE_LIMITED'

    def test_non_json_body(self):
        async def handler(request):
            return web.Response(text='<html>Bad gateway</html>', status=502)

        with pytest.raises(BalanceTransportError, match='non-JSON'):
            post_with(handler)

    def test_non_object_body(self):
        async def handler(request):
            return web.json_response([1, 2, 3])

        with pytest.raises(BalanceTransportError):
            post_with(handler)

    def test_connection_refused(self):
        endpoint = AiohttpBalanceEndpoint('http://127.0.0.1:1', timeout=2)
        with pytest.raises(BalanceTransportError):
            asyncio.run(endpoint.update_chips(REQUEST))

    def test_base_url_trailing_slash(self):
        endpoint = AiohttpBalanceEndpoint('https://casino.example/')
        assert endpoint.url == 'https://casino.example/api/chips/update'
