"""Public interface for the wiki source adapter."""

from __future__ import annotations

from .schema import WikiRelatedSeries, WikiSeries, WikiVolume
from .translator import WikiSeriesInput, parse_wiki_series

__all__ = [
    "WikiRelatedSeries",
    "WikiSeries",
    "WikiSeriesInput",
    "WikiVolume",
    "parse_wiki_series",
]
