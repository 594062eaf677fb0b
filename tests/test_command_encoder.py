import json
import os
import sys
import unittest
from urllib.parse import parse_qs, urlsplit


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from command_encoder import (
    EncodingError,
    GridResource,
    RequestContext,
    encode_command,
    encode_fresh,
    encode_query,
)
from portalgrid.query_state import QueryState


def _cmd(request) -> dict:
    parts = urlsplit(request.url)
    return json.loads(parse_qs(parts.query)["cmd"][0])


class TestEncodeQuery(unittest.TestCase):
    def setUp(self) -> None:
        self.resource = GridResource(service="category")
        self.context = RequestContext(csrf_token="tok", host_id="h1")

    def test_read_is_get_with_single_cmd_parameter(self) -> None:
        request = encode_query(self.resource, "getCategory", QueryState(), self.context)
        self.assertEqual(request.method, "GET")
        self.assertIsNone(request.body)
        parts = urlsplit(request.url)
        self.assertEqual(parts.path, "/portal/query")
        self.assertEqual(list(parse_qs(parts.query).keys()), ["cmd"])

    def test_envelope_shape(self) -> None:
        state = QueryState.create(offset=20, limit=10, global_filter="net")
        envelope = _cmd(encode_query(self.resource, "getCategory", state, self.context))
        self.assertEqual(envelope["host"], "lightapi.net")
        self.assertEqual(envelope["service"], "category")
        self.assertEqual(envelope["action"], "getCategory")
        self.assertEqual(envelope["version"], "0.1.0")
        data = envelope["data"]
        self.assertEqual(data["hostId"], "h1")
        self.assertEqual(data["offset"], 20)
        self.assertEqual(data["limit"], 10)
        self.assertEqual(data["globalFilter"], "net")

    def test_empty_sorting_and_filters_are_explicit(self) -> None:
        data = _cmd(encode_query(self.resource, "getCategory", QueryState(), self.context))["data"]
        self.assertEqual(data["sorting"], "[]")
        self.assertEqual(data["filters"], "[]")
        self.assertEqual(data["globalFilter"], "")

    def test_sorting_and_filters_are_json_strings(self) -> None:
        state = QueryState.create(sorting=[("name", "desc"), ("id", "asc")], column_filters=[("active", "true"), ("name", "ab")])
        data = _cmd(encode_query(self.resource, "getClient", state, self.context, boolean_fields=("active",)))["data"]
        self.assertEqual(json.loads(data["sorting"]), [{"id": "name", "desc": True}, {"id": "id", "desc": False}])
        self.assertEqual(json.loads(data["filters"]), [{"id": "active", "value": True}, {"id": "name", "value": "ab"}])

    def test_extra_domain_filters_are_kept(self) -> None:
        data = _cmd(encode_query(self.resource, "getCategory", QueryState(), self.context, extra={"entityType": "schema"}))["data"]
        self.assertEqual(data["entityType"], "schema")

    def test_encoding_is_idempotent(self) -> None:
        state = QueryState.create(sorting=[("name", "asc")], column_filters={"active": True}, global_filter="x")
        first = encode_query(self.resource, "getCategory", state, self.context)
        second = encode_query(self.resource, "getCategory", QueryState.create(sorting=[("name", "asc")], column_filters={"active": True}, global_filter="x"), self.context)
        self.assertEqual(first, second)

    def test_csrf_header_attached(self) -> None:
        request = encode_query(self.resource, "getCategory", QueryState(), self.context)
        self.assertEqual(request.header_dict()["X-CSRF-TOKEN"], "tok")
        anonymous = encode_query(self.resource, "getCategory", QueryState(), RequestContext(host_id="h1"))
        self.assertNotIn("X-CSRF-TOKEN", anonymous.header_dict())

    def test_missing_action_raises(self) -> None:
        with self.assertRaises(EncodingError):
            encode_query(self.resource, "", QueryState(), self.context)


class TestEncodeCommand(unittest.TestCase):
    def setUp(self) -> None:
        self.resource = GridResource(service="category")
        self.context = RequestContext(csrf_token="tok", host_id="h1")

    def test_write_is_post_with_envelope_body(self) -> None:
        payload = {"categoryId": "c1", "aggregateVersion": 3}
        request = encode_command(self.resource, "deleteCategory", payload, self.context)
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.url, "/portal/command")
        self.assertEqual(request.header_dict()["Content-Type"], "application/json")
        body = json.loads(request.body)
        self.assertEqual(body["action"], "deleteCategory")
        self.assertEqual(body["data"], {"categoryId": "c1", "aggregateVersion": 3, "hostId": "h1"})

    def test_row_host_is_not_overwritten(self) -> None:
        payload = {"categoryId": "c1", "hostId": None, "aggregateVersion": 1}
        body = json.loads(encode_command(self.resource, "deleteCategory", payload, self.context).body)
        self.assertIsNone(body["data"]["hostId"])

    def test_unserializable_payload_raises(self) -> None:
        with self.assertRaises(EncodingError):
            encode_command(self.resource, "deleteCategory", {"bad": object()}, self.context)

    def test_fresh_read_carries_row(self) -> None:
        row = {"schemaId": "s1", "aggregateVersion": 2}
        request = encode_fresh(GridResource(service="schema"), "getFreshSchema", row, self.context)
        self.assertEqual(request.method, "GET")
        envelope = _cmd(request)
        self.assertEqual(envelope["action"], "getFreshSchema")
        self.assertEqual(envelope["data"], {"schemaId": "s1", "aggregateVersion": 2, "hostId": "h1"})


if __name__ == "__main__":
    unittest.main()
