from typing import List

from bs4 import BeautifulSoup
from loguru import logger

from giftradar.models.promo_code import CandidateCode
from giftradar.sources.base import BaseSource
from giftradar.sources.utils import table_rows


class BoostbotSource(BaseSource):
    name = "boostbot.org"
    url = "https://boostbot.org/blog/kingshot-gift-codes/"

    def parse(self, soup: BeautifulSoup) -> List[CandidateCode]:
        table = soup.find("table")
        if table is None:
            logger.warning(f"No code table found on {self.name}")
            return []

        return [
            self._candidate(cells[0], cells[1])
            for cells in table_rows(table)
            if len(cells) >= 2 and cells[0]
        ]
