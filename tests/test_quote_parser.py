import unittest
from datetime import datetime, timezone
from decimal import Decimal

from stockdash.schemas.quote import Quote, parse_quote


class TestQuoteParser(unittest.TestCase):
    def test_parse_camel_case_wire_fields(self):
        quote = parse_quote(
            '{"symbol": "aapl", "price": 182.5, "change": 1.25, "changePercent": 0.0069,'
            ' "volume": 5123400, "marketCap": 2850000000000, "timestamp": "2026-01-05T15:30:00Z"}'
        )

        self.assertEqual(quote.symbol, "AAPL")
        self.assertEqual(quote.price, Decimal("182.5"))
        self.assertEqual(quote.change, Decimal("1.25"))
        self.assertAlmostEqual(float(quote.change_percent), 0.0069)
        self.assertEqual(quote.volume, 5123400)
        self.assertEqual(quote.market_cap, Decimal("2850000000000"))
        self.assertEqual(quote.timestamp, datetime(2026, 1, 5, 15, 30, tzinfo=timezone.utc))

    def test_parse_accepts_bytes_and_python_field_names(self):
        quote = parse_quote(
            b'{"symbol": "MSFT", "price": "410.20", "change": "-2.1",'
            b' "change_percent": "-0.0051", "market_cap": null, "timestamp": 1767627000}'
        )

        self.assertEqual(quote.symbol, "MSFT")
        self.assertEqual(quote.price, Decimal("410.20"))
        self.assertEqual(quote.change_percent, Decimal("-0.0051"))
        self.assertEqual(quote.timestamp, datetime.fromtimestamp(1767627000, tz=timezone.utc))

    def test_naive_timestamp_is_treated_as_utc(self):
        quote = parse_quote(
            {"symbol": "IBM", "price": 1, "change": 0, "changePercent": 0, "timestamp": "2026-01-05T10:00:00"}
        )
        self.assertEqual(quote.timestamp.tzinfo, timezone.utc)

    def test_missing_optional_field_differs_from_explicit_null(self):
        quote = parse_quote(
            {
                "symbol": "AAPL",
                "price": 1,
                "change": 0,
                "changePercent": 0,
                "high": None,
                "timestamp": "2026-01-05T15:30:00Z",
            }
        )

        self.assertIsNone(quote.high)
        self.assertIsNone(quote.low)
        self.assertTrue(quote.provided("high"))
        self.assertFalse(quote.provided("low"))

        wire = quote.to_wire()
        self.assertIn("high", wire)
        self.assertNotIn("low", wire)
        self.assertIn("changePercent", wire)

    def test_invalid_payloads_raise_value_error(self):
        bad_payloads = [
            "not-json",
            "[]",
            42,
            {"symbol": "AAPL"},
            {"symbol": "", "price": 1, "change": 0, "changePercent": 0, "timestamp": "2026-01-05T15:30:00Z"},
            {"symbol": "AAPL", "price": "abc", "change": 0, "changePercent": 0, "timestamp": "2026-01-05T15:30:00Z"},
        ]
        for payload in bad_payloads:
            with self.subTest(payload=payload):
                with self.assertRaises(ValueError):
                    parse_quote(payload)

    def test_non_string_symbol_is_rejected(self):
        for symbol in [123, 12.5, {"A": 1}, ["AAPL"], True]:
            with self.subTest(symbol=symbol):
                with self.assertRaises(ValueError):
                    parse_quote(
                        {"symbol": symbol, "price": 1, "change": 0, "changePercent": 0, "timestamp": "2026-01-05T15:30:00Z"}
                    )

    def test_deeply_nested_payload_raises_value_error(self):
        with self.assertRaises(ValueError):
            parse_quote("[" * 100_000 + "]" * 100_000)

    def test_quote_is_immutable(self):
        quote = Quote(symbol="AAPL", price=1, change=0, changePercent=0, timestamp=0)
        with self.assertRaises(ValueError):
            quote.price = Decimal("2")


if __name__ == "__main__":
    unittest.main()
