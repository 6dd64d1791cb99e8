# src/fetching/page_fetcher.py

"""HTTP transport for product pages with retries and a fallback client."""

import logging
import threading
import time
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests

from src.config.settings import Settings

logger = logging.getLogger("price_watch.fetcher")


class PageFetcher:
    """Fetch a URL and return its parsed HTML, or ``None`` on failure.

    The primary client is a ``curl_cffi`` session impersonating a real
    browser (TLS fingerprint plus headers).  When it is exhausted the
    request is retried once through ``cloudscraper``, which can solve
    simple JavaScript challenges.  Redirects are always followed.

    Each thread gets its own session and every fetch starts its own
    backoff, so overlapping checks never share request state.
    """

    # Anti-bot interstitial markers (checked before keyword scan)
    _CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def __init__(self, timeout: int | None = None) -> None:
        self.settings = Settings()
        self._timeout: int = timeout or self.settings.REQUEST_TIMEOUT
        # Scheduler sweeps and on-demand checks fetch from separate threads
        self._thread_local = threading.local()

    @property
    def session(self) -> curl_requests.Session:
        """The calling thread's impersonating session, created on demand."""
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = curl_requests.Session(
                impersonate=self.settings.IMPERSONATE_BROWSER
            )
            self._thread_local.session = session
        return session

    def _looks_blocked(self, text: str) -> bool:
        """Detect challenge pages and CAPTCHA walls."""
        lower = text.lower()
        for marker in self._CHALLENGE_MARKERS:
            if marker in lower:
                logger.warning(
                    "Challenge page detected (marker: '%s')", marker,
                )
                return True

        # Real product pages routinely mention "captcha" in scripts
        has_body_content = "<body" in lower and len(text) > 5000
        if not has_body_content:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    logger.warning(
                        "CAPTCHA keyword '%s' detected", keyword,
                    )
                    return True
        return False

    def _escalate_delay(self, delay: float) -> float:
        """Double *delay* up to the configured max."""
        max_delay = (
            self.settings.RETRY_DELAY
            * self.settings.MAX_DELAY_MULTIPLIER
        )
        escalated = min(delay * 2, max_delay)
        logger.warning("Rate-limited, delay escalated to %.1fs", escalated)
        return escalated

    def _fetch_primary(self, url: str, timeout: int) -> str | None:
        """GET with retries and a backoff delay owned by this call."""
        delay = self.settings.RETRY_DELAY
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                resp = self.session.get(
                    url,
                    headers=self.settings.DEFAULT_HEADERS,
                    timeout=timeout,
                    allow_redirects=True,
                )
                if resp.status_code == 200:
                    if self._looks_blocked(resp.text):
                        delay = self._escalate_delay(delay)
                        time.sleep(delay)
                        continue
                    return str(resp.text)
                logger.warning(
                    "HTTP %d for %s on attempt %d",
                    resp.status_code,
                    url,
                    attempt + 1,
                )
                if resp.status_code in (429, 403):
                    delay = self._escalate_delay(delay)
                    time.sleep(delay)
            except Exception as exc:
                logger.warning(
                    "Request error for %s on attempt %d: %s",
                    url,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                time.sleep(delay * (attempt + 1))
        return None

    def _fetch_fallback(self, url: str, timeout: int) -> str | None:
        """Single attempt through cloudscraper."""
        logger.info("curl_cffi exhausted for %s, trying cloudscraper", url)
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url,
                headers=self.settings.DEFAULT_HEADERS,
                timeout=timeout,
                allow_redirects=True,
            )
            if resp.status_code == 200 and not self._looks_blocked(
                str(resp.text)
            ):
                return str(resp.text)
            logger.warning(
                "cloudscraper got HTTP %d for %s", resp.status_code, url,
            )
        except Exception as exc:
            logger.error(
                "cloudscraper fallback failed for %s: %s",
                url,
                exc,
                exc_info=True,
            )
        return None

    def fetch(
        self, url: str, timeout: int | None = None,
    ) -> BeautifulSoup | None:
        """Return the parsed document at *url*, or ``None`` on failure."""
        effective_timeout = timeout or self._timeout
        html = self._fetch_primary(url, effective_timeout)
        if html is None:
            html = self._fetch_fallback(url, effective_timeout)
        if html is None:
            logger.error("Giving up on %s", url)
            return None
        logger.debug("Fetched %s (%d bytes)", url, len(html))
        return BeautifulSoup(html, "lxml")
