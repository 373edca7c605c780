"""
Conversion of prices to and from processor minor units.
"""
import unittest
from decimal import Decimal

from ppvgate.utils.currency import from_minor_units, to_minor_units


class TestToMinorUnits(unittest.TestCase):
    def test_usd_cents(self):
        self.assertEqual(to_minor_units(Decimal("19.99"), "usd"), 1999)
        self.assertEqual(to_minor_units(Decimal("10"), "USD"), 1000)

    def test_half_rounds_up(self):
        self.assertEqual(to_minor_units(Decimal("10.005"), "usd"), 1001)

    def test_float_input_is_not_binary_rounded(self):
        self.assertEqual(to_minor_units(0.29, "usd"), 29)

    def test_zero_decimal_currency(self):
        self.assertEqual(to_minor_units(Decimal("1500"), "jpy"), 1500)


class TestFromMinorUnits(unittest.TestCase):
    def test_usd(self):
        self.assertEqual(from_minor_units(1999, "usd"), Decimal("19.99"))
        self.assertEqual(str(from_minor_units(1000, "usd")), "10.00")

    def test_zero_decimal(self):
        self.assertEqual(from_minor_units(1500, "jpy"), Decimal("1500"))
