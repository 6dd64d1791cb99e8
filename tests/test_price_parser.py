# tests/test_price_parser.py

"""Tests for numeric price parsing."""

import unittest

from src.parsing.price_parser import (
    normalize_number,
    parse_price,
    scan_candidates,
)


class TestNormalizeNumber(unittest.TestCase):
    """Separator handling across locales."""

    def test_comma_thousands_dot_decimal(self) -> None:
        """US/UK grouping."""
        self.assertEqual(normalize_number("1,299.50"), 1299.5)

    def test_dot_thousands_comma_decimal(self) -> None:
        """Continental European grouping."""
        self.assertEqual(normalize_number("1.299,50"), 1299.5)

    def test_indian_lakh_grouping(self) -> None:
        """Two-digit groups before the final three digits."""
        self.assertEqual(normalize_number("1,00,000"), 100000.0)

    def test_single_decimal_comma(self) -> None:
        """A lone trailing two-digit comma group is a decimal."""
        self.assertEqual(normalize_number("12,99"), 12.99)

    def test_single_dot_thousands(self) -> None:
        """A lone dot before three digits is grouping, like a comma."""
        self.assertEqual(normalize_number("1.299"), 1299.0)
        self.assertEqual(normalize_number("1,299"), 1299.0)

    def test_single_dot_decimal(self) -> None:
        """A lone dot before one or two digits stays a decimal point."""
        self.assertEqual(normalize_number("9.99"), 9.99)
        self.assertEqual(normalize_number("12.5"), 12.5)

    def test_multiple_dots_are_grouping(self) -> None:
        """Several dots can only be thousands separators."""
        self.assertEqual(normalize_number("1.299.000"), 1299000.0)

    def test_trailing_punctuation_stripped(self) -> None:
        """Sentence punctuation around a number is ignored."""
        self.assertEqual(normalize_number("1,299."), 1299.0)

    def test_empty_returns_none(self) -> None:
        """Separators alone are not a number."""
        self.assertIsNone(normalize_number(",."))


class TestCurrencyAnchored(unittest.TestCase):
    """The currency-anchored pass wins when a currency cue exists."""

    def test_rupee_symbol(self) -> None:
        """Separators are removed from a ₹ amount."""
        self.assertEqual(parse_price("₹1,299"), 1299.0)

    def test_rs_prefix_with_decimals(self) -> None:
        """``Rs.`` prefix with paise."""
        self.assertEqual(parse_price("Rs. 45,000.00"), 45000.0)

    def test_inr_lakh(self) -> None:
        """INR code with Indian grouping."""
        self.assertEqual(parse_price("INR 1,00,000"), 100000.0)

    def test_dollar_amount(self) -> None:
        """Dollar sign with cents."""
        self.assertEqual(parse_price("Now only $1,299.99!"), 1299.99)

    def test_euro_suffix(self) -> None:
        """Trailing euro sign with European separators."""
        self.assertEqual(parse_price("Preis: 1.299,00 €"), 1299.0)

    def test_euro_dot_grouping_suffix(self) -> None:
        """``1.299 €`` is twelve hundred, not one euro."""
        self.assertEqual(parse_price("1.299 €"), 1299.0)

    def test_euro_dot_grouping_prefix(self) -> None:
        """Prefix euro sign with a dot thousands separator."""
        self.assertEqual(parse_price("€1.299"), 1299.0)

    def test_eur_code_dot_grouping(self) -> None:
        """Trailing currency code with a dot thousands separator."""
        self.assertEqual(parse_price("Preis: 1.299 EUR"), 1299.0)

    def test_anchored_preferred_over_larger_number(self) -> None:
        """An explicit price beats a larger unanchored MRP figure."""
        self.assertEqual(parse_price("₹499 (MRP 1,299)"), 499.0)

    def test_leftmost_anchored_amount_wins(self) -> None:
        """The first currency amount in reading order is used."""
        self.assertEqual(
            parse_price("49,99 € incl. VAT, plus $5 shipping"), 49.99
        )

    def test_anchored_small_price_is_trusted(self) -> None:
        """Anchored amounts skip the plausibility band."""
        self.assertEqual(parse_price("$9.99"), 9.99)

    def test_currency_letters_inside_words_ignored(self) -> None:
        """``rs`` in ``Offers`` is not a rupee marker."""
        self.assertEqual(parse_price("Offers 20 items and 150"), 150.0)


class TestGenericScan(unittest.TestCase):
    """Fallback scan over every numeric substring."""

    def test_largest_plausible_number_wins(self) -> None:
        """Ratings and smaller numbers lose to the largest candidate."""
        text = "4.5 out of 5 stars 1,299 2,499"
        self.assertEqual(parse_price(text), 2499.0)

    def test_small_quantities_discarded(self) -> None:
        """Numbers below the band never qualify."""
        self.assertIsNone(parse_price("Qty 1, pack of 2"))

    def test_huge_numbers_discarded(self) -> None:
        """Numbers above the band never qualify."""
        self.assertIsNone(parse_price("Order 123456789012"))

    def test_band_edges_inclusive(self) -> None:
        """Both 10 and 100,000,000 are plausible."""
        self.assertEqual(scan_candidates("10 and 100000000"), [10.0, 1e8])

    def test_candidates_in_order(self) -> None:
        """scan_candidates keeps reading order."""
        self.assertEqual(
            scan_candidates("was 1,499 now 999"), [1499.0, 999.0]
        )

    def test_zero_anchored_falls_through(self) -> None:
        """A zero currency amount does not short-circuit the scan."""
        self.assertIsNone(parse_price("₹0"))


class TestMalformedInput(unittest.TestCase):
    """Parsing never raises."""

    def test_none(self) -> None:
        """None resolves to no price."""
        self.assertIsNone(parse_price(None))

    def test_blank(self) -> None:
        """Whitespace resolves to no price."""
        self.assertIsNone(parse_price("   "))

    def test_prose_only(self) -> None:
        """Text without digits resolves to no price."""
        self.assertIsNone(parse_price("Currently unavailable"))

    def test_separator_soup(self) -> None:
        """Garbage separators do not raise."""
        self.assertIsNone(parse_price(".,.,., ,,, ..."))


if __name__ == "__main__":
    unittest.main()
