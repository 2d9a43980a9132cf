from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional

from bs4 import BeautifulSoup
from loguru import logger

from giftradar.models.base import Clock, utc_now
from giftradar.models.promo_code import CandidateCode
from giftradar.sources.utils import fetch_page

DEFAULT_VALIDITY_DAYS = 30


class BaseSource(ABC):
    """A third-party page listing gift codes.

    Subclasses only parse markup; ``fetch`` owns retrieval and guarantees that
    no failure escapes, so one broken site never blocks the others.
    """

    name: str
    url: str

    def __init__(self, clock: Clock = utc_now, validity_days: int = DEFAULT_VALIDITY_DAYS):
        self.clock = clock
        self.validity_days = validity_days

    def default_valid_until(self) -> datetime:
        return self.clock() + timedelta(days=self.validity_days)

    def fetch_document(self) -> BeautifulSoup:
        return fetch_page(self.url)

    @abstractmethod
    def parse(self, soup: BeautifulSoup) -> List[CandidateCode]:
        """Parse the page into candidate codes."""
        ...

    def fetch(self) -> List[CandidateCode]:
        logger.info(f"Fetching promotional codes from {self.name}...")
        try:
            soup = self.fetch_document()
            codes = self.parse(soup)
        except Exception as e:
            logger.error(f"Error fetching codes from {self.name}: {e}")
            return []

        logger.info(f"Found {len(codes)} promotional codes from {self.name}")
        return codes

    def _candidate(
        self,
        code: str,
        rewards: str,
        valid_until: Optional[datetime] = None,
    ) -> CandidateCode:
        return CandidateCode(
            id=code,
            description=f"Promotional code from {self.name}",
            rewards=rewards,
            valid_until=valid_until or self.default_valid_until(),
        )
