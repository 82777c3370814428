"""Availability status engine.

Pure functions that reduce per-copy library statuses and edition metadata to one
display status. Nothing here performs I/O or looks at entity ids.

Evaluation order for a volume (first match wins):

1. edition status ``japan_only`` / ``upcoming`` / ``digital_only``
2. no copy totals at all -> ``not_in_catalog``
3. zero copies but a catalog URL -> ``library_digital_only``
4. zero copies and no URL -> ``not_in_catalog``
5. the stack-ranked copy status
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Final, Protocol

from tankobon.domain.model import EditionFormat, EditionLanguage

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

log = logging.getLogger(__name__)


class CopyStatusCategory(StrEnum):
    AVAILABLE = "available"
    CHECKED_OUT = "checked_out"
    IN_TRANSIT = "in_transit"
    ON_HOLD = "on_hold"
    ON_ORDER = "on_order"
    UNAVAILABLE = "unavailable"


# highest priority first
STACK_RANK: Final[tuple[CopyStatusCategory, ...]] = (
    CopyStatusCategory.AVAILABLE,
    CopyStatusCategory.CHECKED_OUT,
    CopyStatusCategory.IN_TRANSIT,
    CopyStatusCategory.ON_HOLD,
    CopyStatusCategory.ON_ORDER,
    CopyStatusCategory.UNAVAILABLE,
)


class EditionStatus(StrEnum):
    JAPAN_ONLY = "japan_only"
    UPCOMING = "upcoming"
    DIGITAL_ONLY = "digital_only"
    RELEASED = "released"


class VolumeDisplayStatus(StrEnum):
    # edition based
    JAPAN_ONLY = "japan_only"
    UPCOMING = "upcoming"
    EDITION_DIGITAL_ONLY = "edition_digital_only"
    # catalog presence
    NOT_IN_CATALOG = "not_in_catalog"
    LIBRARY_DIGITAL_ONLY = "library_digital_only"
    # library availability
    AVAILABLE = "available"
    CHECKED_OUT = "checked_out"
    IN_TRANSIT = "in_transit"
    ON_HOLD = "on_hold"
    ON_ORDER = "on_order"
    UNAVAILABLE = "unavailable"


class CopyWithStatus(Protocol):
    @property
    def status_category(self) -> CopyStatusCategory: ...


class EditionInfo(Protocol):
    """The edition facts the engine needs; stored ``Edition`` records qualify."""

    @property
    def format(self) -> EditionFormat: ...

    @property
    def language(self) -> str: ...

    @property
    def release_date(self) -> str | None: ...


@dataclass(frozen=True, slots=True)
class CopyTotals:
    available: int = 0
    checked_out: int = 0
    in_transit: int = 0
    on_hold: int = 0
    on_order: int = 0
    unavailable: int = 0
    total: int = 0

    def __add__(self, other: CopyTotals) -> CopyTotals:
        return CopyTotals(
            available=self.available + other.available,
            checked_out=self.checked_out + other.checked_out,
            in_transit=self.in_transit + other.in_transit,
            on_hold=self.on_hold + other.on_hold,
            on_order=self.on_order + other.on_order,
            unavailable=self.unavailable + other.unavailable,
            total=self.total + other.total,
        )

    def count(self, category: CopyStatusCategory) -> int:
        return getattr(self, category.value)


@dataclass(frozen=True, slots=True)
class VolumeDisplayInfo:
    status: VolumeDisplayStatus
    icon: str
    label: str
    sublabel: str | None = None


# Copy totals -----------------------------------------------------------------


def categorize_copy_status(raw_status: str) -> CopyStatusCategory:
    """Map a raw catalog status string ("Checked out", "On holds shelf", ...)."""

    lower = raw_status.lower().strip()
    if lower in {"available", "reshelving"}:
        return CopyStatusCategory.AVAILABLE
    if "checked out" in lower or lower == "overdue":
        return CopyStatusCategory.CHECKED_OUT
    if "transit" in lower or lower == "in process":
        return CopyStatusCategory.IN_TRANSIT
    if "order" in lower or lower in {"cataloging", "acquisitions"}:
        return CopyStatusCategory.ON_ORDER
    if "hold" in lower:
        return CopyStatusCategory.ON_HOLD
    # lost, missing, repair, withdrawn, discard, ...
    return CopyStatusCategory.UNAVAILABLE


def compute_copy_totals(
    copies: Iterable[CopyStatusCategory | CopyWithStatus],
) -> CopyTotals:
    counts = dict.fromkeys(CopyStatusCategory, 0)
    total = 0
    for copy in copies:
        category = copy if isinstance(copy, CopyStatusCategory) else copy.status_category
        counts[category] += 1
        total += 1
    return CopyTotals(**{category.value: n for category, n in counts.items()}, total=total)


def merge_copy_totals(totals: Iterable[CopyTotals]) -> CopyTotals:
    """Sum per-library totals; ``CopyTotals()`` is the identity."""

    merged = CopyTotals()
    for item in totals:
        merged += item
    return merged


def get_stack_ranked_status(totals: CopyTotals) -> CopyStatusCategory | None:
    """The highest-priority category with copies, or ``None`` when there are none."""

    if totals.total == 0:
        return None
    for category in STACK_RANK:
        if totals.count(category) > 0:
            return category
    return CopyStatusCategory.UNAVAILABLE


def format_copy_totals_display(totals: CopyTotals) -> str:
    parts = [
        f"{totals.count(category)} {category.value.replace('_', ' ')}"
        for category in STACK_RANK
        if totals.count(category) > 0
    ]
    return ", ".join(parts) if parts else "No copies"


# Edition status --------------------------------------------------------------

_FREE_TEXT_DATE_FORMATS: Final[tuple[str, ...]] = (
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %Y",
    "%Y-%m",
    "%Y",
)
_FOOTNOTE = re.compile(r"\[[^\]]*\]")


def parse_release_date(value: str) -> datetime | None:
    """Parse an ISO date/datetime or a common free-text date into an aware UTC datetime.

    Date-only values are taken as midnight UTC. Unparseable text yields ``None``.
    """

    text = _FOOTNOTE.sub("", value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = None
        for fmt in _FREE_TEXT_DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)  # noqa: DTZ007
                break
            except ValueError:
                continue
    if parsed is None:
        log.debug("Unparseable release date %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _is_english(edition: EditionInfo) -> bool:
    return edition.language.strip().lower() == EditionLanguage.ENGLISH


def derive_edition_status(
    editions: Sequence[EditionInfo],
    *,
    now: datetime | None = None,
) -> EditionStatus:
    """Classify the English editions of a volume.

    The first physical English edition decides between ``upcoming`` (release date
    strictly in the future) and ``released`` (past, present, missing or unparseable
    date). Only digital English editions means ``digital_only``.
    """

    english = [edition for edition in editions if _is_english(edition)]
    if not english:
        return EditionStatus.JAPAN_ONLY

    physical = next((e for e in english if e.format == EditionFormat.PHYSICAL), None)
    if physical is not None:
        if physical.release_date is not None:
            release = parse_release_date(physical.release_date)
            current = now or datetime.now(UTC)
            if release is not None and release > current:
                return EditionStatus.UPCOMING
        return EditionStatus.RELEASED

    if any(e.format == EditionFormat.DIGITAL for e in english):
        return EditionStatus.DIGITAL_ONLY
    return EditionStatus.JAPAN_ONLY


def get_english_release_date(editions: Sequence[EditionInfo]) -> str | None:
    physical = next(
        (e for e in editions if _is_english(e) and e.format == EditionFormat.PHYSICAL),
        None,
    )
    return physical.release_date if physical is not None else None


def format_release_date(value: str) -> str:
    """``"2024-03-05"`` -> ``"Mar 5, 2024"``; unparseable text is returned as is."""

    parsed = parse_release_date(value)
    if parsed is None:
        return value
    day: date = parsed.date()
    return f"{day:%b} {day.day}, {day.year}"


# Volume display status ---------------------------------------------------------

_EDITION_SHORT_CIRCUIT: Final[dict[EditionStatus, VolumeDisplayStatus]] = {
    EditionStatus.JAPAN_ONLY: VolumeDisplayStatus.JAPAN_ONLY,
    EditionStatus.UPCOMING: VolumeDisplayStatus.UPCOMING,
    EditionStatus.DIGITAL_ONLY: VolumeDisplayStatus.EDITION_DIGITAL_ONLY,
}

_JAPAN_FLAG: Final[str] = (
    "\N{REGIONAL INDICATOR SYMBOL LETTER J}\N{REGIONAL INDICATOR SYMBOL LETTER P}"
)


def get_volume_display_status(
    editions: Sequence[EditionInfo],
    copy_totals: CopyTotals | None,
    catalog_url: str | None,
    *,
    now: datetime | None = None,
) -> VolumeDisplayStatus:
    edition_status = derive_edition_status(editions, now=now)
    short_circuit = _EDITION_SHORT_CIRCUIT.get(edition_status)
    if short_circuit is not None:
        return short_circuit

    if copy_totals is None:
        return VolumeDisplayStatus.NOT_IN_CATALOG
    if copy_totals.total == 0:
        if catalog_url:
            return VolumeDisplayStatus.LIBRARY_DIGITAL_ONLY
        return VolumeDisplayStatus.NOT_IN_CATALOG

    ranked = get_stack_ranked_status(copy_totals)
    if ranked is None:  # pragma: no cover - total > 0
        return VolumeDisplayStatus.NOT_IN_CATALOG
    return VolumeDisplayStatus(ranked.value)


def get_volume_display_info(
    status: VolumeDisplayStatus,
    copy_totals: CopyTotals | None = None,
) -> VolumeDisplayInfo:
    match status:
        case VolumeDisplayStatus.JAPAN_ONLY:
            return VolumeDisplayInfo(status, _JAPAN_FLAG, "Japan only")
        case VolumeDisplayStatus.UPCOMING:
            return VolumeDisplayInfo(status, "\N{HOURGLASS WITH FLOWING SAND}", "Coming soon")
        case VolumeDisplayStatus.EDITION_DIGITAL_ONLY | VolumeDisplayStatus.LIBRARY_DIGITAL_ONLY:
            return VolumeDisplayInfo(status, "\N{MOBILE PHONE}", "Digital only")
        case VolumeDisplayStatus.NOT_IN_CATALOG:
            return VolumeDisplayInfo(status, "\N{MEDIUM WHITE CIRCLE}", "Not in library")
        case VolumeDisplayStatus.AVAILABLE:
            label = f"{copy_totals.available} available" if copy_totals else "Available"
            return VolumeDisplayInfo(status, "\N{WHITE HEAVY CHECK MARK}", label)
        case VolumeDisplayStatus.CHECKED_OUT:
            sublabel = f"{copy_totals.checked_out} copies" if copy_totals else None
            return VolumeDisplayInfo(
                status, "\N{LARGE YELLOW CIRCLE}", "Checked out", sublabel=sublabel
            )
        case VolumeDisplayStatus.IN_TRANSIT:
            return VolumeDisplayInfo(status, "\N{DELIVERY TRUCK}", "In transit")
        case VolumeDisplayStatus.ON_HOLD:
            return VolumeDisplayInfo(status, "\N{CLIPBOARD}", "On hold")
        case VolumeDisplayStatus.ON_ORDER:
            return VolumeDisplayInfo(status, "\N{PACKAGE}", "On order")
        case VolumeDisplayStatus.UNAVAILABLE:
            return VolumeDisplayInfo(status, "\N{CROSS MARK}", "Unavailable")


def get_full_volume_display_info(
    editions: Sequence[EditionInfo],
    copy_totals: CopyTotals | None,
    catalog_url: str | None,
    *,
    now: datetime | None = None,
) -> VolumeDisplayInfo:
    """Display status plus label; upcoming volumes carry their release date."""

    status = get_volume_display_status(editions, copy_totals, catalog_url, now=now)
    if status is VolumeDisplayStatus.UPCOMING:
        release_date = get_english_release_date(editions)
        if release_date is not None:
            return VolumeDisplayInfo(
                status,
                "\N{HOURGLASS WITH FLOWING SAND}",
                f"Releases {format_release_date(release_date)}",
            )
    return get_volume_display_info(status, copy_totals)
