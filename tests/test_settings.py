import os
import unittest
from unittest.mock import patch

from pydantic import ValidationError

from stockdash.config.settings import DEFAULT_WS_URL, Settings


class TestSettings(unittest.TestCase):
    def test_defaults_without_env(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_env()

        self.assertEqual(settings.STOCK_WS_URL, DEFAULT_WS_URL)
        self.assertEqual(settings.STOCK_WS_SYMBOLS, [])
        self.assertTrue(settings.STOCK_WS_ENABLED)
        self.assertEqual(settings.STOCK_WS_MAX_RECONNECT_ATTEMPTS, 5)
        self.assertIsNone(settings.POLYGON_API_KEY)
        self.assertEqual(settings.MARKET_HTTP_TIMEOUT_SEC, 5.0)
        self.assertEqual(settings.CATEGORY_CACHE_TTL_MINUTES, 15)

    def test_ws_symbols_parses_comma_separated_values(self):
        env = {"STOCK_WS_SYMBOLS": " aapl, MSFT ,, goog "}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()

        self.assertEqual(settings.STOCK_WS_SYMBOLS, ["AAPL", "MSFT", "GOOG"])

    def test_values_loaded_from_env(self):
        env = {
            "STOCK_WS_URL": "wss://feed.example/ws",
            "STOCK_WS_ENABLED": "false",
            "STOCK_WS_MAX_RECONNECT_ATTEMPTS": "3",
            "POLYGON_API_KEY": "pk-test",
            "MARKET_HTTP_TIMEOUT_SEC": "2.5",
            "CACHE_DIR": "/tmp/stockdash",
            "CATEGORY_CACHE_TTL_MINUTES": "30",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()

        self.assertEqual(settings.STOCK_WS_URL, "wss://feed.example/ws")
        self.assertFalse(settings.STOCK_WS_ENABLED)
        self.assertEqual(settings.STOCK_WS_MAX_RECONNECT_ATTEMPTS, 3)
        self.assertEqual(settings.POLYGON_API_KEY, "pk-test")
        self.assertEqual(settings.MARKET_HTTP_TIMEOUT_SEC, 2.5)
        self.assertEqual(settings.CACHE_DIR, "/tmp/stockdash")
        self.assertEqual(settings.CATEGORY_CACHE_TTL_MINUTES, 30)

    def test_invalid_values_fail_validation(self):
        for env in (
            {"STOCK_WS_URL": "   "},
            {"STOCK_WS_MAX_RECONNECT_ATTEMPTS": "many"},
            {"STOCK_WS_MAX_RECONNECT_ATTEMPTS": "-1"},
        ):
            with self.subTest(env=env):
                with patch.dict(os.environ, env, clear=True):
                    with self.assertRaises(ValidationError):
                        Settings.from_env()


if __name__ == "__main__":
    unittest.main()
