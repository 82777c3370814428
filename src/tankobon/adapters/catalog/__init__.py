"""Public interface for the library catalog adapter."""

from __future__ import annotations

from .schema import (
    CatalogEdition,
    CatalogHolding,
    CatalogLibrary,
    CatalogSeries,
    CatalogVolume,
    VolumeAvailabilityPayload,
)
from .translator import (
    CatalogSeriesRecord,
    catalog_url,
    copy_totals,
    edition_data,
    parse_catalog_series,
)

__all__ = [
    "CatalogEdition",
    "CatalogHolding",
    "CatalogLibrary",
    "CatalogSeries",
    "CatalogSeriesRecord",
    "CatalogVolume",
    "VolumeAvailabilityPayload",
    "catalog_url",
    "copy_totals",
    "edition_data",
    "parse_catalog_series",
]
