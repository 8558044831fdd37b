"""Paginated, read-only views over the token store."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from rodt.core.contracts.token_store import TokenStore
from rodt.core.rodt_exceptions import InvalidArgumentError


class EnumerationService:
    """Supply and listing queries. Pages are ordered by token id.

    An explicit ``limit`` is always honoured; ``default_limit`` only applies
    when the caller passes none.
    """

    def __init__(
        self,
        tokens: TokenStore,
        render: Callable[[str], Optional[Dict]],
        default_limit: int = 50,
    ) -> None:
        self.tokens = tokens
        self.render = render
        self.default_limit = default_limit

    def _page_bounds(self, from_index: Optional[int], limit: Optional[int]) -> tuple[int, int]:
        start = 0 if from_index is None else from_index
        count = self.default_limit if limit is None else limit
        if start < 0:
            raise InvalidArgumentError(f"RODT: from_index must not be negative, got {start}")
        if count < 0:
            raise InvalidArgumentError(f"RODT: limit must not be negative, got {count}")
        return start, count

    def total_supply(self) -> int:
        return self.tokens.total_count()

    def tokens_page(self, from_index: Optional[int] = None, limit: Optional[int] = None) -> List[Dict]:
        start, count = self._page_bounds(from_index, limit)
        return [self.render(token_id) for token_id in self.tokens.all_tokens(start, count)]

    def tokens_for_owner(
        self, account_id: str, from_index: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Dict]:
        start, count = self._page_bounds(from_index, limit)
        return [
            self.render(token_id)
            for token_id in self.tokens.tokens_for_owner(account_id, start, count)
        ]

    def supply_for_owner(self, account_id: str) -> int:
        return self.tokens.owner_count(account_id)
