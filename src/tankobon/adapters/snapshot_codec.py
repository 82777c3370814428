"""Pydantic codecs between store snapshots and their serialized forms."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from tankobon.domain.model import Edition, Series, Volume
from tankobon.domain.ports.persistence import (
    SNAPSHOT_VERSION,
    SnapshotFormatError,
    StoreSnapshot,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

snapshot_adapter: TypeAdapter[StoreSnapshot] = TypeAdapter(StoreSnapshot)
series_adapter: TypeAdapter[Series] = TypeAdapter(Series)
volume_adapter: TypeAdapter[Volume] = TypeAdapter(Volume)
edition_adapter: TypeAdapter[Edition] = TypeAdapter(Edition)


def encode_snapshot(snapshot: StoreSnapshot) -> bytes:
    return snapshot_adapter.dump_json(snapshot, indent=2)


def decode_snapshot(data: bytes | str, *, source: str = "snapshot") -> StoreSnapshot:
    try:
        snapshot = snapshot_adapter.validate_json(data)
    except ValidationError as exc:
        raise SnapshotFormatError(f"Invalid entity snapshot in {source}: {exc}") from exc
    check_version(snapshot.version, source=source)
    return snapshot


def check_version(version: int, *, source: str) -> None:
    if version > SNAPSHOT_VERSION:
        raise SnapshotFormatError(
            f"{source} was written by a newer version (format {version}, "
            f"supported up to {SNAPSHOT_VERSION})"
        )
    if version < SNAPSHOT_VERSION:
        log.info("Upgrading %s from snapshot format %s", source, version)


def dump_record(adapter: TypeAdapter[Any], record: object) -> dict[str, Any]:
    return adapter.dump_python(record, mode="json")


def load_record(adapter: TypeAdapter[T], payload: object, *, source: str) -> T:
    try:
        return adapter.validate_python(payload)
    except ValidationError as exc:
        raise SnapshotFormatError(f"Invalid record in {source}: {exc}") from exc
