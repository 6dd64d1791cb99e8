# src/parsing/price_parser.py

"""Recover a single numeric price from noisy, locale-specific text.

Parsing runs in two passes:

1. A currency-anchored match (``₹1,299``, ``Rs. 45,000.00``,
   ``1.299,00 €``).  Text that carries an explicit currency cue is
   trusted, so the first positive anchored amount wins immediately.
2. A generic scan over every numeric substring.  Candidates outside the
   plausible price band are discarded and the largest survivor is kept,
   since discounts, ratings and quantities tend to be the smaller
   numbers in a price-labelled fragment.

Malformed input never raises; it resolves to ``None``.
"""

import logging
import re

from src.config.settings import Settings

logger = logging.getLogger("price_watch.parser")

_CURRENCY_PREFIX = (
    r"(?:₹|Rs\.?|INR|US\$|\$|USD|€|EUR|£|GBP|¥|JPY|AED|CHF)"
)
_CURRENCY_SUFFIX = r"(?:€|EUR|₹|INR|kr|zł|CHF)"

# Digits with optional comma/dot grouping and an optional decimal part
_NUMBER = r"\d+(?:[.,]\d{2,3})*(?:[.,]\d{1,2})?"

_ANCHORED_PREFIX_RE = re.compile(
    rf"(?<![A-Za-z]){_CURRENCY_PREFIX}\s*({_NUMBER})", re.IGNORECASE
)
_ANCHORED_SUFFIX_RE = re.compile(
    rf"({_NUMBER})\s*{_CURRENCY_SUFFIX}(?![A-Za-z])", re.IGNORECASE
)

_NON_NUMERIC_RE = re.compile(r"[^\d.,]")
_CANDIDATE_RE = re.compile(r"\d[\d.,]*")


def normalize_number(raw: str) -> float | None:
    """Turn a grouped numeric string into a float.

    Separator handling:

    - both ``,`` and ``.`` present: the right-most one is the decimal
      mark (``1,299.50`` and ``1.299,50`` both give ``1299.5``);
    - one kind repeated: grouping (``1,00,000``, ``1.299.000``);
    - one separator: grouping when exactly three digits follow it
      (``1,299`` and ``1.299`` both give ``1299``), otherwise a
      decimal mark (``12,99``, ``9.99``).
    """
    text = raw.strip(".,")
    if not text:
        return None

    has_comma = "," in text
    has_dot = "." in text

    if has_comma and has_dot:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif has_comma or has_dot:
        sep = "," if has_comma else "."
        head, _, tail = text.rpartition(sep)
        if text.count(sep) > 1 or len(tail) == 3:
            text = text.replace(sep, "")
        else:
            text = f"{head}.{tail}"

    try:
        return float(text)
    except ValueError:
        return None


def _in_band(value: float) -> bool:
    return Settings.MIN_PRICE <= value <= Settings.MAX_PRICE


def _anchored_price(text: str) -> float | None:
    """Return the left-most positive currency-anchored amount."""
    matches = [
        m
        for pattern in (_ANCHORED_PREFIX_RE, _ANCHORED_SUFFIX_RE)
        for m in pattern.finditer(text)
    ]
    for match in sorted(matches, key=lambda m: m.start(1)):
        value = normalize_number(match.group(1))
        if value is not None and value > 0:
            return value
    return None


def scan_candidates(text: str) -> list[float]:
    """Return every in-band numeric value found in *text*, in order."""
    cleaned = _NON_NUMERIC_RE.sub(" ", text)
    candidates: list[float] = []
    for token in _CANDIDATE_RE.findall(cleaned):
        value = normalize_number(token)
        if value is not None and _in_band(value):
            candidates.append(value)
    return candidates


def parse_price(text: str | None) -> float | None:
    """Extract the most plausible positive price from *text*.

    Returns ``None`` when no candidate qualifies.
    """
    if not text or not text.strip():
        return None

    anchored = _anchored_price(text)
    if anchored is not None:
        logger.debug(
            "Parsed currency-anchored price %.2f from %r",
            anchored,
            text[:80],
        )
        return anchored

    candidates = scan_candidates(text)
    if not candidates:
        logger.debug("No price candidate in %r", text[:80])
        return None

    best = max(candidates)
    logger.debug(
        "Picked %.2f among %d candidates from %r",
        best,
        len(candidates),
        text[:80],
    )
    return best
