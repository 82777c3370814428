"""
Base building blocks:
generated identity and mutation timestamps.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import ClassVar, Self

from tankobon.domain.model.enums import EntityKind  # noqa: TC001


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(kw_only=True, slots=True)
class Entity:
    """A stored record: created once, afterwards only extended."""

    id: str
    created_at: datetime
    updated_at: datetime

    # class-level discriminator; subclasses must override
    KIND: ClassVar[EntityKind]

    @property
    def kind(self) -> EntityKind:
        return self.KIND

    def touch(self, now: datetime | None = None) -> None:
        """Refresh ``updated_at``; never moves it backwards."""
        stamp = now or utcnow()
        if stamp > self.updated_at:
            self.updated_at = stamp

    def clone(self) -> Self:
        return copy.deepcopy(self)
