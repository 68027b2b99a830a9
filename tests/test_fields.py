"""
QDX Field Tests
===============

Test Coverage:
- BCD timestamp decoding (year offset quirk, two-digit components)
- Fallback to wall-clock time on invalid digits, with warning
- Lazy caching and invalidation on clear()/populate()
"""

import unittest
from datetime import datetime

from qdx_reader.fields import BcdDateTime
from tests.builders import pack_bcd


class TestBcdDateTime(unittest.TestCase):
    """Test BCD timestamp decoding."""

    def test_valid_timestamp(self):
        """Digits 99 12 31 23 59 58 decode to 1999-12-31 23:59:58."""
        bcd = BcdDateTime(pack_bcd(99, 12, 31, 23, 59, 58))
        self.assertEqual(bcd.time, datetime(1999, 12, 31, 23, 59, 58))

    def test_year_formula(self):
        """Year is tens*10 + 1900 + ones."""
        bcd = BcdDateTime(bytes([0x24, 0x01, 0x15, 0x08, 0x30, 0x00]))
        self.assertEqual(bcd.digits[:2], (2, 4))
        self.assertEqual(bcd.components(), (1924, 1, 15, 8, 30, 0))
        self.assertEqual(bcd.time.year, 1924)

    def test_components_round_trip(self):
        """Decoded components re-encode to the same digits."""
        samples = [
            (0, 1, 1, 0, 0, 0),
            (87, 2, 28, 13, 5, 9),
            (96, 2, 29, 12, 0, 0),
            (99, 12, 31, 23, 59, 59),
        ]
        for values in samples:
            with self.subTest(values=values):
                decoded = BcdDateTime(pack_bcd(*values)).time
                again = pack_bcd(decoded.year - 1900, decoded.month, decoded.day,
                                 decoded.hour, decoded.minute, decoded.second)
                self.assertEqual(again, pack_bcd(*values))

    def test_invalid_month_falls_back_to_now(self):
        """Month 13 yields current time and logs a warning."""
        bcd = BcdDateTime(pack_bcd(99, 13, 1, 0, 0, 0))
        before = datetime.now()
        with self.assertLogs('qdx_reader.fields', level='WARNING') as logs:
            value = bcd.time
        after = datetime.now()

        self.assertTrue(before <= value <= after)
        self.assertIn('Bad BcdDateTime', logs.output[0])

    def test_invalid_day_hour_and_zero_month(self):
        """Feb 30, hour 25 and month 00 do not raise."""
        for raw in (pack_bcd(99, 2, 30, 0, 0, 0), pack_bcd(99, 1, 1, 25, 0, 0),
                    pack_bcd(99, 0, 1, 0, 0, 0)):
            with self.subTest(raw=raw.hex()):
                with self.assertLogs('qdx_reader.fields', level='WARNING'):
                    self.assertIsInstance(BcdDateTime(raw).time, datetime)

    def test_time_is_cached(self):
        """Repeated reads return the same object without recomputing."""
        bcd = BcdDateTime(pack_bcd(99, 13, 1, 0, 0, 0))
        self.assertFalse(bcd.is_cached)
        with self.assertLogs('qdx_reader.fields', level='WARNING') as logs:
            first = bcd.time
            second = bcd.time
        self.assertIs(first, second)
        self.assertEqual(len(logs.output), 1)
        self.assertTrue(bcd.is_cached)

    def test_populate_invalidates_cache(self):
        """Re-populating the bytes drops the cached value."""
        bcd = BcdDateTime(pack_bcd(99, 12, 31, 23, 59, 58))
        self.assertEqual(bcd.time.year, 1999)

        bcd.populate(pack_bcd(50, 6, 1, 12, 0, 0))
        self.assertFalse(bcd.is_cached)
        self.assertEqual(bcd.time, datetime(1950, 6, 1, 12, 0, 0))

    def test_clear_resets_digits(self):
        """clear() zeroes the digits and drops the cache."""
        bcd = BcdDateTime(pack_bcd(99, 12, 31, 23, 59, 58))
        _ = bcd.time
        bcd.clear()
        self.assertFalse(bcd.is_cached)
        self.assertEqual(bcd.raw, b'\x00' * 6)

    def test_short_input_rejected(self):
        with self.assertRaises(ValueError):
            BcdDateTime(b'\x99\x12')


if __name__ == '__main__':
    unittest.main(verbosity=2)
