from giftradar.sources.sites.axeetech import AxeetechSource
from giftradar.sources.sites.boostbot import BoostbotSource

__all__ = [
    "AxeetechSource",
    "BoostbotSource",
]
