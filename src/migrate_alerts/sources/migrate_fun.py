# SPDX-License-Identifier: MIT
# src/migrate_alerts/sources/migrate_fun.py
"""
Headless-browser scraper for the migrate.fun projects page.

The page is rendered client-side, so we load it with Playwright (headless
Chromium), let the JS settle, then pull candidate elements out of the rendered
HTML with BeautifulSoup. Extraction is heuristic: the markup is not ours and
changes without notice.
"""
from __future__ import annotations
import logging
import re
from datetime import datetime
from typing import List, Optional

from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PwTimeout
from playwright.sync_api import sync_playwright

from migrate_alerts.alerts.models import MAX_PLACEHOLDER_TEXT, MAX_RAW_TEXT, RawObservation
from migrate_alerts.utils.time_utils import utc_now
from . import FetchError

logger = logging.getLogger(__name__)

MIGRATE_FUN_URL = "https://migrate.fun/projects"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
]

CARD_SELECTOR = '[class*="project"], [class*="card"], [class*="migration"], [class*="token"]'
COUNTDOWN_SELECTOR = '[class*="countdown"], [class*="timer"], [class*="time"]'

NAME_RX = re.compile(r"([A-Z]{2,10})")
TIME_RX = re.compile(r"(\d+[hms]|\d+:\d+|\d+ (hour|minute|second|day)s?)", re.IGNORECASE)
ADDRESS_RX = re.compile(r"[1-9A-HJ-NP-Za-km-z]{32,44}")  # base58 Solana address
DIGIT_RX = re.compile(r"\d")
MIN_CARD_TEXT = 10


def _element_text(el) -> str:
    return el.get_text("\n", strip=True)


def _class_name(el) -> str:
    classes = el.get("class") or []
    return " ".join(classes) if isinstance(classes, list) else str(classes)


def extract_observations(html: str, observed_at: Optional[datetime] = None) -> List[RawObservation]:
    """
    Extract migration candidates from rendered page HTML.

    - project/card/migration/token elements with some text become observations
    - countdown/timer elements not already covered become their own observations
    - if nothing matched, a single placeholder carries the page text for debugging
    """
    observed_at = observed_at or utc_now()
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    results: List[RawObservation] = []

    for index, el in enumerate(soup.select(CARD_SELECTOR)):
        text = _element_text(el)
        if len(text) <= MIN_CARD_TEXT:
            continue

        name_match = NAME_RX.search(text)
        time_match = TIME_RX.search(text)
        address_match = ADDRESS_RX.search(text)
        address = address_match.group(0) if address_match else None

        results.append(RawObservation(
            identifier=address or f"unknown-{index}",
            display_name=name_match.group(1) if name_match else f"Token {index + 1}",
            raw_text=text[:MAX_RAW_TEXT],
            address=address,
            time_text=time_match.group(0) if time_match else None,
            source_element=_class_name(el),
            observed_at=observed_at,
        ))

    for index, el in enumerate(soup.select(COUNTDOWN_SELECTOR)):
        text = _element_text(el)
        if not DIGIT_RX.search(text):
            continue
        if any(text in r.raw_text for r in results):
            continue
        results.append(RawObservation(
            identifier=f"countdown-{index}",
            display_name=f"Countdown {index + 1}",
            raw_text=text[:MAX_RAW_TEXT],
            time_text=text,
            source_element=_class_name(el),
            observed_at=observed_at,
        ))

    if not results:
        body = soup.body or soup
        results.append(RawObservation(
            identifier="page-content",
            display_name="Page Content",
            raw_text=_element_text(body)[:MAX_PLACEHOLDER_TEXT],
            is_placeholder=True,
            observed_at=observed_at,
        ))

    return results


class MigrateFunFetcher:
    """
    Loads the projects page and returns the raw observations found on it.

    fetch() raises FetchError on any navigation failure or timeout; callers
    must treat that as "unknown state", never as "no migrations".
    """

    def __init__(
        self,
        url: str = MIGRATE_FUN_URL,
        timeout_ms: int = 60000,
        selector_timeout_ms: int = 30000,
        settle_ms: int = 5000,
        executable_path: Optional[str] = None,
        headless: bool = True,
    ):
        self.url = url
        self.timeout_ms = timeout_ms
        self.selector_timeout_ms = selector_timeout_ms
        self.settle_ms = settle_ms
        self.executable_path = executable_path
        self.headless = headless

    def fetch_html(self) -> str:
        logger.info(f"Loading {self.url}")
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(
                    headless=self.headless,
                    args=LAUNCH_ARGS,
                    executable_path=self.executable_path or None,
                )
                try:
                    page = browser.new_page(
                        user_agent=USER_AGENT,
                        viewport={"width": 1920, "height": 1080},
                    )
                    page.goto(self.url, wait_until="networkidle", timeout=self.timeout_ms)
                    page.wait_for_selector("body", timeout=self.selector_timeout_ms)
                    # Give client-side rendering time to fill in the countdowns
                    page.wait_for_timeout(self.settle_ms)
                    return page.content()
                finally:
                    browser.close()
        except PwTimeout as e:
            raise FetchError(f"Timed out loading {self.url}: {e}") from e
        except PlaywrightError as e:
            raise FetchError(f"Browser error loading {self.url}: {e}") from e

    def fetch(self) -> List[RawObservation]:
        html = self.fetch_html()
        observations = extract_observations(html, observed_at=utc_now())
        logger.info(f"Found {len(observations)} items on {self.url}")
        return observations
