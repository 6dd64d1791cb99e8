# src/extraction/price_extractor.py

"""Selector cascade that locates a price inside a fetched product page."""

import json
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from bs4 import BeautifulSoup, Comment, Tag

from src.models.tracked_item import TrackedItem
from src.parsing.price_parser import parse_price

logger = logging.getLogger("price_watch.extractor")

# Attributes that carry a machine-readable price, checked before text
_PRICE_ATTRIBUTES: tuple[str, ...] = ("content", "data-price")

# Structured and marketplace-specific selectors come first so ratings
# or review counts inside generic "price" containers are never matched
# ahead of the real price.
GENERIC_SELECTORS: tuple[str, ...] = (
    # Structured markup
    "[itemprop=price]",
    "[data-price]",
    "[data-asin-price]",
    # Amazon
    "#priceblock_dealprice",
    "#priceblock_ourprice",
    "#priceblock_saleprice",
    "#corePrice_feature_div .a-offscreen",
    ".a-price .a-offscreen",
    ".a-price-whole",
    # Flipkart
    "div._30jeq3",
    "._30jeq3",
    "._16Jk6d",
    ".dyC4hf",
    "[class*='_30jeq3']",
    # Generic price-labelled elements
    "[data-testid*='price']",
    "[data-testid*='Price']",
    ".price-current",
    ".price-now",
    ".final-price",
    ".current-price",
    ".product-price",
    "#price",
    ".price",
    "span.price",
    "div.price",
    "p.price",
    "[class*='selling-price']",
    "[class*='offer-price']",
    "span[class*='Price']",
    "[class*='price']",
    "[id*='price']",
    "[id*='Price']",
)

META_SELECTORS: tuple[str, ...] = (
    "meta[property='product:price:amount']",
    "meta[property='og:price:amount']",
    "meta[itemprop=price]",
)

_INVISIBLE_TAGS: frozenset[str] = frozenset(
    {"script", "style", "noscript", "template", "head"}
)


def _attr(element: Tag, name: str) -> str:
    """Return a single-valued attribute as a stripped string."""
    value = element.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


@dataclass(frozen=True)
class SelectorStrategy:
    """One cascade entry: a CSS selector plus how to read its match."""

    selector: str
    prefer_attributes: bool = True

    def texts(self, document: BeautifulSoup) -> list[str]:
        """Return candidate price strings for the first match, best first."""
        element = document.select_one(self.selector)
        if element is None:
            return []
        texts: list[str] = []
        if self.prefer_attributes:
            texts.extend(_attr(element, a) for a in _PRICE_ATTRIBUTES)
        texts.append(element.get_text(" ", strip=True))
        if not self.prefer_attributes:
            texts.append(_attr(element, "content"))
        return [t for t in texts if t]


def _iter_json_ld_prices(node: Any) -> Iterator[str]:
    """Walk a JSON-LD tree yielding ``offers.price``-style values."""
    if isinstance(node, list):
        for child in node:
            yield from _iter_json_ld_prices(child)
    elif isinstance(node, dict):
        for key in ("price", "lowPrice"):
            if key in node and not isinstance(node[key], (dict, list)):
                yield str(node[key])
        for key in ("offers", "@graph"):
            if key in node:
                yield from _iter_json_ld_prices(node[key])


def meta_price_texts(document: BeautifulSoup) -> list[str]:
    """Price values from metadata tags and JSON-LD product blocks."""
    texts: list[str] = []
    for selector in META_SELECTORS:
        tag = document.select_one(selector)
        if tag is not None and _attr(tag, "content"):
            texts.append(_attr(tag, "content"))

    for script in document.find_all(
        "script", attrs={"type": "application/ld+json"}
    ):
        try:
            data = json.loads(script.string or "")
        except (json.JSONDecodeError, TypeError):
            continue
        texts.extend(_iter_json_ld_prices(data))
    return texts


def visible_text(document: BeautifulSoup) -> str:
    """Concatenate the document's visible text nodes."""
    root = document.body or document
    parts: list[str] = []
    for node in root.find_all(string=True):
        if isinstance(node, Comment):
            continue
        if node.parent is not None and node.parent.name in _INVISIBLE_TAGS:
            continue
        chunk = node.strip()
        if chunk:
            parts.append(chunk)
    return " ".join(parts)


class PriceExtractor:
    """Runs the cascade: custom selector, generic list, metadata, full text.

    Each stage is fault-isolated: a selector that raises (bad syntax,
    unexpected markup) is logged and the cascade moves on.
    """

    def __init__(
        self,
        selectors: tuple[str, ...] = GENERIC_SELECTORS,
        parser: Callable[[str | None], float | None] = parse_price,
    ) -> None:
        self.strategies: list[SelectorStrategy] = [
            SelectorStrategy(s) for s in selectors
        ]
        self._parse = parser

    def _first_price(self, texts: list[str]) -> float | None:
        for text in texts:
            price = self._parse(text)
            if price is not None and price > 0:
                return price
        return None

    def _run_custom(
        self, document: BeautifulSoup, selector: str,
    ) -> float | None:
        strategy = SelectorStrategy(selector, prefer_attributes=False)
        try:
            price = self._first_price(strategy.texts(document))
        except Exception as exc:
            logger.warning(
                "Custom selector %r failed: %s", selector, exc,
            )
            return None
        if price is not None:
            logger.info(
                "Extracted %.2f using custom selector %r",
                price,
                selector,
            )
        return price

    def _run_cascade(self, document: BeautifulSoup) -> float | None:
        for strategy in self.strategies:
            try:
                price = self._first_price(strategy.texts(document))
            except Exception as exc:
                logger.debug(
                    "Selector %r raised, skipping: %s",
                    strategy.selector,
                    exc,
                )
                continue
            if price is not None:
                logger.info(
                    "Extracted %.2f using selector %r",
                    price,
                    strategy.selector,
                )
                return price
        return None

    def _run_metadata(self, document: BeautifulSoup) -> float | None:
        try:
            price = self._first_price(meta_price_texts(document))
        except Exception as exc:
            logger.debug("Metadata lookup failed: %s", exc)
            return None
        if price is not None:
            logger.info("Extracted %.2f from page metadata", price)
        return price

    def _run_full_text(self, document: BeautifulSoup) -> float | None:
        try:
            text = visible_text(document)
        except Exception as exc:
            logger.debug("Full-text fallback failed: %s", exc)
            return None
        price = self._parse(text)
        if price is not None and price > 0:
            logger.info("Extracted %.2f using full-text fallback", price)
            return price
        logger.warning(
            "Could not extract a price; document preview: %r",
            text[:200],
        )
        return None

    def extract(
        self, document: BeautifulSoup, item: TrackedItem,
    ) -> float | None:
        """Return the first plausible positive price, or ``None``."""
        if item.selector.strip():
            price = self._run_custom(document, item.selector.strip())
            if price is not None:
                return price

        return (
            self._run_cascade(document)
            or self._run_metadata(document)
            or self._run_full_text(document)
        )
