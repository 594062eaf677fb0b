import logging
import os
import sys
import unittest
from unittest import mock


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from app import settings
from app.grid_factory import configured_page
from app.session import csrf_from_cookies, host_from_user, request_context
from page_registry import default_registry


class TestSession(unittest.TestCase):
    def test_context_from_cookie_and_user(self) -> None:
        ctx = request_context({"csrf": "tok"}, {"host": "h1", "email": "a@b"})
        self.assertEqual(ctx.csrf_token, "tok")
        self.assertEqual(ctx.host_id, "h1")
        self.assertTrue(ctx.ready)

    def test_missing_values(self) -> None:
        self.assertIsNone(csrf_from_cookies(None))
        self.assertIsNone(csrf_from_cookies({"csrf": ""}))
        self.assertIsNone(host_from_user(None))
        self.assertIsNone(host_from_user({"host": ""}))
        self.assertEqual(host_from_user({"hostId": "h2"}), "h2")
        self.assertFalse(request_context({}, {}).ready)


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(settings.portal_base_url(), "http://localhost:8080")
            self.assertEqual(settings.query_path(), "/portal/query")
            self.assertEqual(settings.command_path(), "/portal/command")
            self.assertEqual(settings.api_host(), "lightapi.net")
            self.assertEqual(settings.request_timeout(), 30.0)
            self.assertIsNone(settings.page_size())
            self.assertEqual(settings.filter_debounce_seconds(), 1.0)
            self.assertIsNone(settings.dev_portal_csrf_token())
            self.assertEqual(settings.log_level(), logging.INFO)

    def test_overrides(self) -> None:
        env = {
            "PORTAL_BASE_URL": "https://portal.example.com/",
            "PORTAL_TIMEOUT_SECONDS": "",
            "PORTALGRID_PAGE_SIZE": "50",
            "PORTALGRID_FILTER_DEBOUNCE_MS": "250",
            "PORTALGRID_LOG_LEVEL": "debug",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertEqual(settings.portal_base_url(), "https://portal.example.com")
            self.assertIsNone(settings.request_timeout())
            self.assertEqual(settings.page_size(), 50)
            self.assertEqual(settings.filter_debounce_seconds(), 0.25)
            self.assertEqual(settings.log_level(), logging.DEBUG)

    def test_bad_values_fall_back(self) -> None:
        env = {"PORTAL_TIMEOUT_SECONDS": "soon", "PORTALGRID_PAGE_SIZE": "-3", "PORTALGRID_LOG_LEVEL": "chatty"}
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertEqual(settings.request_timeout(), 30.0)
            self.assertIsNone(settings.page_size())
            self.assertEqual(settings.log_level(), logging.INFO)

    def test_configured_page_applies_endpoint_overrides(self) -> None:
        env = {"PORTAL_API_HOST": "example.net", "PORTAL_API_VERSION": "1.2.0", "PORTAL_QUERY_PATH": "/api/query"}
        with mock.patch.dict(os.environ, env, clear=True):
            page = configured_page(default_registry().get("category"))
        self.assertEqual(page.api_host, "example.net")
        self.assertEqual(page.resource.version, "1.2.0")
        self.assertEqual(page.resource.query_path, "/api/query")
        self.assertEqual(page.resource.command_path, "/portal/command")


if __name__ == "__main__":
    unittest.main()
