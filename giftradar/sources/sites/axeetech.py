from typing import List

from bs4 import BeautifulSoup
from loguru import logger

from giftradar.models.promo_code import CandidateCode
from giftradar.sources.base import BaseSource
from giftradar.sources.utils import parse_valid_until, table_rows

DATED_REWARDS = "Reward for promotional code"


class AxeetechSource(BaseSource):
    name = "axeetech.com"
    url = "https://axeetech.com/kingshot-gift-codes/"

    def parse(self, soup: BeautifulSoup) -> List[CandidateCode]:
        # Codes live in the first WordPress table block
        table = soup.select_one("figure.wp-block-table table")
        if table is None:
            logger.warning(f"No code table found on {self.name}")
            return []

        codes = []
        for cells in table_rows(table):
            if len(cells) < 2 or not cells[0]:
                continue

            code, reward_info = cells[0], cells[1]
            valid_until = parse_valid_until(reward_info)
            if valid_until is not None:
                # The reward column holds the date instead of the rewards
                rewards = DATED_REWARDS
            else:
                rewards = reward_info

            codes.append(self._candidate(code, rewards, valid_until))
        return codes
