"""
Token store for the RODT ledger.

Keeps three indices on top of a KeyValueStore:
- tokens_by_id: token id -> token record (owner, approvals, royalty)
- token_metadata_by_id: token id -> provisioning metadata
- tokens_per_owner: owner -> sorted list of token ids

An ownership change touches the token record and two owner sets. Those
writes always go to the store in a single batch so the forward and reverse
indices cannot disagree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import islice
from typing import Any, Dict, List, Optional

from rodt.core.contracts.metadata import TokenMetadata
from rodt.core.rodt_exceptions import TokenAlreadyExistsError, TokenNotFoundError
from rodt.core.storage import DELETE, KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "tokens_by_id:"
METADATA_PREFIX = "token_metadata_by_id:"
OWNER_PREFIX = "tokens_per_owner:"
SUPPLY_KEY = "total_supply"


@dataclass
class Token:
    """Ownership record of a single RODT."""

    token_id: str
    owner_id: str
    approved_account_ids: Dict[str, int] = field(default_factory=dict)
    next_approval_id: int = 0
    royalty: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_id": self.token_id,
            "owner_id": self.owner_id,
            "approved_account_ids": dict(self.approved_account_ids),
            "next_approval_id": self.next_approval_id,
            "royalty": dict(self.royalty),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Token":
        return cls(
            token_id=data["token_id"],
            owner_id=data["owner_id"],
            approved_account_ids={
                k: int(v) for k, v in data.get("approved_account_ids", {}).items()
            },
            next_approval_id=int(data.get("next_approval_id", 0)),
            royalty={k: int(v) for k, v in data.get("royalty", {}).items()},
        )


class TokenStore:
    """Forward and reverse token indices plus the total-supply counter."""

    def __init__(self, store: KeyValueStore | None = None) -> None:
        self.store = store if store is not None else MemoryStore()

    # ==================== Reads ====================

    def get(self, token_id: str) -> Optional[Token]:
        data = self.store.get(TOKEN_PREFIX + token_id)
        if data is None:
            return None
        return Token.from_dict(data)

    def require(self, token_id: str) -> Token:
        """
        Get a token or fail.

        Raises:
            TokenNotFoundError: If the token id is unknown
        """
        token = self.get(token_id)
        if token is None:
            raise TokenNotFoundError(token_id)
        return token

    def exists(self, token_id: str) -> bool:
        return self.store.get(TOKEN_PREFIX + token_id) is not None

    def get_metadata(self, token_id: str) -> Optional[TokenMetadata]:
        data = self.store.get(METADATA_PREFIX + token_id)
        if data is None:
            return None
        return TokenMetadata.model_validate(data)

    def _owner_set(self, owner_id: str) -> List[str]:
        return list(self.store.get(OWNER_PREFIX + owner_id, []))

    def tokens_for_owner(self, owner_id: str, cursor: int = 0, limit: int | None = None) -> List[str]:
        """Token ids held by ``owner_id``, ordered by id, starting at ``cursor``."""
        token_ids = self._owner_set(owner_id)
        end = None if limit is None else cursor + limit
        return token_ids[cursor:end]

    def all_tokens(self, cursor: int = 0, limit: int | None = None) -> List[str]:
        """Every minted token id, ordered by id, starting at ``cursor``."""
        end = None if limit is None else cursor + limit
        keys = (key for key, _ in self.store.iter_prefix(TOKEN_PREFIX))
        return [key[len(TOKEN_PREFIX):] for key in islice(keys, cursor, end)]

    def total_count(self) -> int:
        return int(self.store.get(SUPPLY_KEY, 0))

    def owner_count(self, owner_id: str) -> int:
        return len(self._owner_set(owner_id))

    # ==================== Writes ====================

    def _with_token(self, owner_id: str, token_id: str) -> List[str]:
        token_ids = self._owner_set(owner_id)
        if token_id not in token_ids:
            token_ids.append(token_id)
            token_ids.sort()
        return token_ids

    def _without_token(self, owner_id: str, token_id: str) -> List[str]:
        return [t for t in self._owner_set(owner_id) if t != token_id]

    def _owner_write(self, token_ids: List[str]) -> Any:
        return token_ids if token_ids else DELETE

    def put(self, token: Token) -> None:
        """Persist a token record whose owner is unchanged."""
        self.store.set(TOKEN_PREFIX + token.token_id, token.to_dict())

    def add_to_owner_index(self, owner_id: str, token_id: str) -> None:
        """Add ``token_id`` to ``owner_id``'s set. Adding twice is a no-op."""
        token_ids = self._with_token(owner_id, token_id)
        self.store.write_batch({OWNER_PREFIX + owner_id: self._owner_write(token_ids)})

    def remove_from_owner_index(self, owner_id: str, token_id: str) -> None:
        """Drop ``token_id`` from ``owner_id``'s set; an emptied set is deleted."""
        token_ids = self._without_token(owner_id, token_id)
        self.store.write_batch({OWNER_PREFIX + owner_id: self._owner_write(token_ids)})

    def insert(self, token: Token, metadata: TokenMetadata) -> None:
        """
        Store a freshly minted token.

        Writes the token record, its metadata, the owner's set and the
        supply counter together.

        Raises:
            TokenAlreadyExistsError: If the token id is taken
        """
        if self.exists(token.token_id):
            raise TokenAlreadyExistsError(token.token_id)
        self.store.write_batch(
            {
                TOKEN_PREFIX + token.token_id: token.to_dict(),
                METADATA_PREFIX + token.token_id: metadata.model_dump(),
                OWNER_PREFIX + token.owner_id: self._with_token(token.owner_id, token.token_id),
                SUPPLY_KEY: self.total_count() + 1,
            }
        )

    def commit_owner_change(self, token: Token, previous_owner_id: str) -> None:
        """
        Persist ``token`` whose owner moved away from ``previous_owner_id``.

        The token record and both owner sets are written in one batch.
        """
        if previous_owner_id == token.owner_id:
            self.put(token)
            return
        remaining = self._without_token(previous_owner_id, token.token_id)
        self.store.write_batch(
            {
                TOKEN_PREFIX + token.token_id: token.to_dict(),
                OWNER_PREFIX + previous_owner_id: self._owner_write(remaining),
                OWNER_PREFIX + token.owner_id: self._with_token(token.owner_id, token.token_id),
            }
        )
        logger.debug(
            "Owner index updated",
            extra={
                "event": "rodt.store.owner_change",
                "token_id": token.token_id,
                "from": previous_owner_id,
                "to": token.owner_id,
            },
        )
