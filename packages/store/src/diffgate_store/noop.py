"""No-op store — used when logging is disabled (``write_logs: false`` or ``--no-log``)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from diffgate_store.base import BaseStore

if TYPE_CHECKING:
    from diffgate_store.models import ReviewLogRecord


class NoOpStore(BaseStore):
    """Silently discards all records."""

    def save(self, record: ReviewLogRecord) -> str | None:
        return None
