from __future__ import annotations

from typing import Optional, Protocol

from .model import MonthlyStatistics


class StatisticsRepository(Protocol):
    def get(self, user_id: int, year: int, month: int) -> Optional[MonthlyStatistics]:
        raise NotImplementedError

    def replace(self, stats: MonthlyStatistics) -> None:
        """Store ``stats``, overwriting any previous row for the same month."""

        raise NotImplementedError
