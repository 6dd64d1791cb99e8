# src/config/settings.py

"""Central configuration for the price_watch tracker."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Central configuration for the price_watch tracker."""

    # --- Polling ---
    POLL_INTERVAL: float = float(
        os.getenv("POLL_INTERVAL", "3600")
    )                                   # Seconds between sweeps
    ITEM_DELAY: float = float(
        os.getenv("ITEM_DELAY", "2.0")
    )                                   # Politeness delay between items

    # --- Fetching ---
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Retry count on transient failures
    RETRY_DELAY: float = 1.0            # Base backoff between retries
    MAX_DELAY_MULTIPLIER: int = 8       # Cap for adaptive backoff
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Price parsing ---
    MIN_PRICE: float = 10.0             # Plausible price band (inclusive)
    MAX_PRICE: float = 100_000_000.0
    CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "₹")

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Notifications ---
    CONSOLE_ALERTS: bool = _env_bool("CONSOLE_ALERTS", True)
    EMAIL_ENABLED: bool = _env_bool("EMAIL_ENABLED", False)
    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_USE_SSL: bool = _env_bool("SMTP_USE_SSL", False)
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "")
    EMAIL_SUBJECT_PREFIX: str = os.getenv(
        "EMAIL_SUBJECT_PREFIX", "[price_watch]"
    )

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    PRICE_DB_PATH: Path = DATA_DIR / "price_watch.db"
    EXPORTS_DIR: Path = BASE_DIR / "exports"
    LOGS_DIR: Path = BASE_DIR / "logs"
