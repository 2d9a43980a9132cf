import random
import re
import time
from datetime import datetime, timezone
from typing import List, Optional

import requests
from bs4 import BeautifulSoup, Tag
from loguru import logger

from giftradar.config import get_settings
from giftradar.errors import SourceUnavailableError

USER_AGENTS = [
    (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Safari/605.1.15"
    ),
]

# "Valid until June 30, 2025" / "Valid until Jun 30 2025"
VALID_UNTIL_PATTERN = re.compile(
    r"Valid until\s+([A-Za-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})",
    re.IGNORECASE,
)


def get_random_headers() -> dict:
    return {
        "User-Agent": random.choice(USER_AGENTS),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


def random_delay():
    settings = get_settings()
    delay = random.uniform(settings.crawler_delay_min, settings.crawler_delay_max)
    time.sleep(delay)


def fetch_page(url: str, retries: Optional[int] = None) -> BeautifulSoup:
    """Download ``url`` and parse it, retrying with exponential back-off.

    Raises:
        SourceUnavailableError: every attempt failed.
    """
    if retries is None:
        retries = get_settings().crawler_max_retries

    last_error = "no attempts made"
    for attempt in range(retries):
        try:
            random_delay()
            response = requests.get(url, headers=get_random_headers(), timeout=30)
            response.raise_for_status()
            return BeautifulSoup(response.text, "lxml")
        except requests.RequestException as e:
            last_error = str(e)
            logger.warning(f"Attempt {attempt + 1}/{retries} failed for {url}: {e}")
            if attempt < retries - 1:
                time.sleep(2 ** attempt)

    logger.error(f"Failed to fetch {url} after {retries} attempts")
    raise SourceUnavailableError(url, last_error)


def clean_text(text: str) -> str:
    """Collapse whitespace left behind by stripped markup."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def table_rows(table: Tag, skip_header: bool = True) -> List[List[str]]:
    """Return the text of every ``<td>`` cell, row by row.

    The first row is the header on every source page and is skipped.
    """
    rows = table.find_all("tr")
    if skip_header:
        rows = rows[1:]
    return [
        [clean_text(cell.get_text(" ")) for cell in row.find_all("td")]
        for row in rows
    ]


def parse_valid_until(text: str) -> Optional[datetime]:
    """Extract a "Valid until <Month> <day>, <year>" date as midnight UTC."""
    if not text:
        return None

    match = VALID_UNTIL_PATTERN.search(text)
    if not match:
        return None

    month, day, year = match.groups()
    for fmt in ("%B %d %Y", "%b %d %Y"):
        try:
            parsed = datetime.strptime(f"{month} {day} {year}", fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=timezone.utc)

    logger.debug(f"Unrecognised validity date: {match.group(0)}")
    return None
