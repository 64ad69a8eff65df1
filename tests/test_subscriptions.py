import unittest

from stockdash.services.subscriptions import SubscriptionSet


class TestSubscriptionSet(unittest.TestCase):
    def test_add_returns_only_symbols_new_to_the_set(self):
        subs = SubscriptionSet()

        self.assertEqual(subs.add(["aapl", "MSFT", "AAPL"]), ["AAPL", "MSFT"])
        self.assertEqual(subs.add(["MSFT", "GOOG"]), ["GOOG"])
        self.assertEqual(subs.symbols(), ["AAPL", "GOOG", "MSFT"])
        self.assertEqual(subs.refcount("msft"), 2)
        # duplicates inside one call count once
        self.assertEqual(subs.refcount("AAPL"), 1)

    def test_remove_releases_reference_and_reports_departures(self):
        subs = SubscriptionSet()
        subs.add(["AAPL"])
        subs.add(["AAPL", "MSFT"])

        self.assertEqual(subs.remove(["AAPL"]), [])
        self.assertIn("AAPL", subs)
        self.assertEqual(subs.remove(["AAPL", "MSFT"]), ["AAPL", "MSFT"])
        self.assertEqual(len(subs), 0)

    def test_remove_unknown_and_blank_symbols_is_noop(self):
        subs = SubscriptionSet()
        subs.add(["AAPL", "  ", ""])

        self.assertEqual(subs.remove(["TSLA", ""]), [])
        self.assertEqual(subs.symbols(), ["AAPL"])
        self.assertNotIn(42, subs)

    def test_non_string_symbols_are_skipped(self):
        subs = SubscriptionSet()

        self.assertEqual(subs.add([42, {"A": 1}, None, "aapl"]), ["AAPL"])
        self.assertEqual(subs.remove([42]), [])
        self.assertEqual(subs.refcount(42), 0)
        self.assertEqual(subs.symbols(), ["AAPL"])

    def test_clear(self):
        subs = SubscriptionSet()
        subs.add(["AAPL"])
        subs.clear()
        self.assertEqual(subs.symbols(), [])


if __name__ == "__main__":
    unittest.main()
