from __future__ import annotations

from typing import Optional, Protocol


class SettingsRepository(Protocol):
    def get_all(self) -> dict[str, dict]:
        """Stored overrides keyed by section name."""
        raise NotImplementedError

    def upsert(self, section: str, settings: dict, *, updated_by: Optional[int]) -> None:
        raise NotImplementedError
