from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from pydantic import ValidationError

from tankobon.app import (
    ingest_catalog_file,
    ingest_wiki_file,
    lookup_entity,
    store_stats,
    volume_status,
)
from tankobon.config import ConfigurationError, configure_logging
from tankobon.domain.availability import format_copy_totals_display
from tankobon.domain.errors import AmbiguousEditionError, CatalogError
from tankobon.domain.model import Series

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from tankobon.app import EntityView
    from tankobon.domain.integration import IngestResult
    from tankobon.domain.model import Edition

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage the tankobon catalog")
    subparsers = parser.add_subparsers(dest="command", required=True)

    wiki = subparsers.add_parser("ingest-wiki", help="Ingest wiki series payload(s) from JSON")
    wiki.add_argument("file", type=Path, help="JSON file with one series object or a list")

    catalog = subparsers.add_parser(
        "ingest-catalog",
        help="Ingest library catalog series payload(s) from JSON",
    )
    catalog.add_argument("file", type=Path, help="JSON file with one series object or a list")

    show = subparsers.add_parser("show", help="Show a series or volume")
    show.add_argument("id_or_title", help="Series id, volume id, ISBN or series title")

    subparsers.add_parser("stats", help="Print entity and index counts")

    status = subparsers.add_parser(
        "status",
        help="Compute the display status for a volume availability payload",
    )
    status.add_argument("file", type=Path, help="JSON file with editions and library holdings")

    return parser.parse_args(list(argv))


def _require_file(path: Path) -> Path:
    if not path.is_file():
        raise ValueError(f"No such file: {path}")
    return path


def _print(line: str = "") -> None:
    sys.stdout.write(f"{line}\n")


def _print_ingest(results: list[IngestResult]) -> None:
    for result in results:
        _print(
            f"{result.series.id}  {result.series.title}  "
            f"({len(result.volumes)} volumes, {len(result.related_series)} related)"
        )
        for related in result.related_series:
            _print(f"  - {related.id}  {related.title}  [{related.relationship}]")


def _format_editions(editions: list[Edition]) -> str:
    if not editions:
        return "no editions"
    return ", ".join(
        f"{edition.isbn} ({edition.language}/{edition.format})" for edition in editions
    )


def _print_entity(view: EntityView) -> None:
    entity = view.entity
    if isinstance(entity, Series):
        _print(f"{entity.id}  {entity.title}")
        _print(f"  media type: {entity.media_type}  status: {entity.status}")
        if entity.author:
            _print(f"  author: {entity.author}")
        for namespace, value in sorted(entity.external_ids.items()):
            _print(f"  {namespace}: {value}")
        if entity.parent_series_id:
            _print(f"  {entity.relationship} of {entity.parent_series_id}")
        for related_id in entity.related_series_ids:
            _print(f"  related: {related_id}")
        for volume in view.volumes:
            title = f" {volume.title}" if volume.title else ""
            _print(
                f"  Vol. {volume.volume_number}{title}  [{volume.id}]  "
                f"{_format_editions(view.editions.get(volume.id, []))}"
            )
        return
    title = f" {entity.title}" if entity.title else ""
    _print(f"{entity.id}  Vol. {entity.volume_number}{title}  (series {entity.series_id})")
    _print(f"  {_format_editions(view.editions.get(entity.id, []))}")


def _run(args: argparse.Namespace) -> int:
    match args.command:
        case "ingest-wiki":
            _print_ingest(asyncio.run(ingest_wiki_file(args.file)))
        case "ingest-catalog":
            _print_ingest(asyncio.run(ingest_catalog_file(args.file)))
        case "show":
            try:
                view = asyncio.run(lookup_entity(args.id_or_title))
            except AmbiguousEditionError as exc:
                log.warning("%s", exc)
                _print(f"ISBN {exc.isbn} is an omnibus edition; candidate volumes:")
                for volume_id in exc.volume_ids:
                    _print(f"  {volume_id}")
                return 1
            if view is None:
                log.warning("Nothing found for %r", args.id_or_title)
                return 1
            _print_entity(view)
        case "stats":
            stats = asyncio.run(store_stats())
            _print(f"series:   {stats.series_count}")
            _print(f"volumes:  {stats.volume_count}")
            _print(f"editions: {stats.edition_count}")
            _print(
                f"indices:  title={stats.title_index_count} "
                f"external={stats.external_index_count} isbn={stats.isbn_index_count}"
            )
        case "status":
            report = volume_status(args.file)
            line = f"{report.info.icon} {report.info.label}"
            if report.info.sublabel:
                line += f" ({report.info.sublabel})"
            _print(line)
            _print(f"  status: {report.info.status}")
            if report.copy_totals is not None:
                _print(f"  copies: {format_copy_totals_display(report.copy_totals)}")
            if report.catalog_url:
                _print(f"  catalog: {report.catalog_url}")
        case _:
            raise ValueError(f"Unsupported command: {args.command}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        configure_logging()
        parsed_args = _parse_args(args_list)
        if getattr(parsed_args, "file", None) is not None:
            _require_file(parsed_args.file)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        exit_code = _run(parsed_args)
    except ValidationError:
        log.exception("Invalid payload")
        sys.exit(2)
    except ConfigurationError:
        log.exception("Invalid configuration")
        sys.exit(2)
    except CatalogError as exc:
        log.error("%s failed: %s", parsed_args.command, exc)  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error running %s", parsed_args.command)
        sys.exit(1)
    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
