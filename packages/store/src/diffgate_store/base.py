"""Abstract store interface.

The CLI depends on BaseStore, not on a concrete backend, so where review
logs end up can change without touching CLI code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from diffgate_store.models import ReviewLogRecord


class BaseStore(ABC):
    """Append-only persistence for review logs.

    Records are written once per invocation and never read back by the
    review pipeline.
    """

    @abstractmethod
    def save(self, record: ReviewLogRecord) -> str | None:
        """Persist a record and return where it went, if anywhere."""

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
