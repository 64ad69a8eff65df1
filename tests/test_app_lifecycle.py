import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from stockdash.config.settings import Settings
from stockdash.main import app
from stockdash.schemas.stream import ConnectionState


class AppLifecycleTest(unittest.TestCase):
    def test_configured_symbols_subscribed_on_startup_and_disconnected_on_shutdown(self):
        original_settings = app.state.get_settings
        original_client = app.state.quote_client

        quote_client = MagicMock()
        app.state.quote_client = quote_client
        app.state.get_settings = lambda: Settings(STOCK_WS_SYMBOLS=["AAPL", "MSFT"])

        try:
            with TestClient(app):
                quote_client.subscribe.assert_called_once_with(["AAPL", "MSFT"])
                quote_client.disconnect.assert_not_called()

            quote_client.disconnect.assert_called_once_with()
        finally:
            app.state.get_settings = original_settings
            app.state.quote_client = original_client

    def test_no_symbols_configured_leaves_client_idle(self):
        original_settings = app.state.get_settings
        app.state.get_settings = lambda: Settings()

        try:
            with TestClient(app):
                self.assertEqual(app.state.quote_client.state, ConnectionState.DISCONNECTED)
                self.assertEqual(app.state.quote_client.symbols, [])
        finally:
            app.state.get_settings = original_settings


if __name__ == "__main__":
    unittest.main()
