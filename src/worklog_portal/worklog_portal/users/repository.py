from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): services depend on this interface, not on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_reset_token(self, token: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_invitation_token(self, token: str) -> Optional[User]:
        raise NotImplementedError

    def get_active_developer_by_account(self, account_id: str) -> Optional[User]:
        raise NotImplementedError

    def create(self, user: User) -> int:
        raise NotImplementedError

    def update(self, user: User) -> bool:
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError

    def list_by_organization(self, organization_id: int, *, role: Optional[Role] = None) -> Sequence[User]:
        raise NotImplementedError

    def search(self, organization_id: int, query: str, *, limit: int = 20) -> Sequence[User]:
        raise NotImplementedError

    def list_all(self, *, role: Optional[Role] = None) -> Sequence[User]:
        raise NotImplementedError

    def count(
        self,
        *,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
        is_email_verified: Optional[bool] = None,
        created_since: Optional[datetime] = None,
    ) -> int:
        raise NotImplementedError
