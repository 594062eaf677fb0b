import json
import os
import sys
import unittest

import httpx


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from app.portal_client import PortalClient, PortalTransportError
from command_encoder import GridResource, RequestContext, encode_command, encode_query
from portal_transport import TransportError
from portalgrid.query_state import QueryState


RESOURCE = GridResource(service="category")
CONTEXT = RequestContext(csrf_token="tok", host_id="h1")


def _client(handler) -> PortalClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://portal.test")
    return PortalClient(client=http)


class TestPortalClient(unittest.IsolatedAsyncioTestCase):
    async def test_query_is_sent_as_get_with_cmd(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["cmd"] = json.loads(request.url.params["cmd"])
            seen["csrf"] = request.headers.get("X-CSRF-TOKEN")
            return httpx.Response(200, json={"categories": [], "total": 0})

        async with _client(handler) as client:
            response = await client.send(encode_query(RESOURCE, "getCategory", QueryState(), CONTEXT))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.body, {"categories": [], "total": 0})
        self.assertEqual(seen["method"], "GET")
        self.assertEqual(seen["path"], "/portal/query")
        self.assertEqual(seen["cmd"]["action"], "getCategory")
        self.assertEqual(seen["csrf"], "tok")

    async def test_command_body_is_the_envelope(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["type"] = request.headers.get("content-type")
            return httpx.Response(200, json={"data": {}})

        async with _client(handler) as client:
            await client.send(encode_command(RESOURCE, "deleteCategory", {"categoryId": "c1"}, CONTEXT))
        self.assertEqual(seen["body"]["data"], {"categoryId": "c1", "hostId": "h1"})
        self.assertEqual(seen["type"], "application/json")

    async def test_error_status_is_returned_not_raised(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"error": {"code": "ERR_STALE_VERSION"}})

        async with _client(handler) as client:
            response = await client.send(encode_command(RESOURCE, "deleteCategory", {}, CONTEXT))
        self.assertFalse(response.ok)
        self.assertEqual(response.body["error"]["code"], "ERR_STALE_VERSION")

    async def test_non_json_error_body_is_wrapped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        async with _client(handler) as client:
            response = await client.send(encode_query(RESOURCE, "getCategory", QueryState(), CONTEXT))
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.body, {"description": "Bad Gateway"})

    async def test_empty_body(self) -> None:
        async with _client(lambda request: httpx.Response(204)) as client:
            response = await client.send(encode_command(RESOURCE, "deleteCategory", {}, CONTEXT))
        self.assertIsNone(response.body)

    async def test_invalid_json_on_success_raises(self) -> None:
        async with _client(lambda request: httpx.Response(200, text="<html>")) as client:
            with self.assertRaises(PortalTransportError):
                await client.send(encode_query(RESOURCE, "getCategory", QueryState(), CONTEXT))

    async def test_network_error_becomes_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with self.assertRaises(TransportError):
                await client.send(encode_query(RESOURCE, "getCategory", QueryState(), CONTEXT))

    async def test_borrowed_client_is_not_closed(self) -> None:
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(204)))
        await PortalClient(client=http).aclose()
        self.assertFalse(http.is_closed)
        await http.aclose()


if __name__ == "__main__":
    unittest.main()
