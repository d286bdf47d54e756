from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import OnlineStatusRecord


class OnlineStatusRepository(Protocol):
    def get_by_id(self, record_id: int) -> Optional[OnlineStatusRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, check_in_date: date) -> Optional[OnlineStatusRecord]:
        raise NotImplementedError

    def create(self, record: OnlineStatusRecord) -> int:
        raise NotImplementedError

    def update(self, record: OnlineStatusRecord) -> bool:
        raise NotImplementedError

    def delete_by_id(self, record_id: int) -> bool:
        raise NotImplementedError

    def list_for_user(self, user_id: int, *, since: date, limit: Optional[int] = None) -> Sequence[OnlineStatusRecord]:
        """Records since `since`, newest first."""
        raise NotImplementedError

    def list_for_organization(
        self,
        organization_id: int,
        *,
        since: date,
        until: Optional[date] = None,
        user_id: Optional[int] = None,
    ) -> Sequence[OnlineStatusRecord]:
        """Records newest first (date, then time)."""
        raise NotImplementedError
