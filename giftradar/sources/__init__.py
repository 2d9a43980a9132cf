from typing import List

from giftradar.config import get_settings
from giftradar.models.base import Clock, utc_now
from giftradar.sources.base import BaseSource
from giftradar.sources.sites import AxeetechSource, BoostbotSource


def default_sources(clock: Clock = utc_now) -> List[BaseSource]:
    """Sources in priority order; earlier sources win on duplicate codes."""
    validity_days = get_settings().scraped_code_validity_days
    return [
        AxeetechSource(clock=clock, validity_days=validity_days),
        BoostbotSource(clock=clock, validity_days=validity_days),
    ]


__all__ = ["BaseSource", "default_sources"]
