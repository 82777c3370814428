"""JSON file snapshot backend."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from tankobon.adapters.snapshot_codec import decode_snapshot, encode_snapshot
from tankobon.domain.ports.persistence import StoreSnapshot

log = logging.getLogger(__name__)


class JsonSnapshotBackend:
    """Keeps the whole store in one JSON document.

    Writes go to a temporary file in the same directory which then replaces the
    target, so a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def read(self) -> StoreSnapshot | None:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            return None
        log.debug("Read %s bytes from %s", len(data), self.path)
        return decode_snapshot(data, source=str(self.path))

    def write(self, snapshot: StoreSnapshot) -> None:
        payload = encode_snapshot(snapshot)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            tmp_path.replace(self.path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        log.debug("Wrote snapshot (%s bytes) to %s", len(payload), self.path)
