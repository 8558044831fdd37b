"""
Royalty payouts for RODT tokens.

Each token carries a perpetual royalty map (payee -> basis points). A payout
splits a balance across those payees with integer floor division; the owner
receives the share nobody else claims. Rounding can leave a remainder that
is assigned to no one and stays with whoever initiated the payout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from rodt.core.config import ROYALTY_BASIS_POINTS
from rodt.core.contracts.token_store import Token, TokenStore
from rodt.core.contracts.transfer import TransferEngine, TransferOutcome, TransferStatus
from rodt.core.rodt_exceptions import InvalidArgumentError, TooManyPayeesError

logger = logging.getLogger(__name__)


def royalty_to_payout(share_basis_points: int, balance: int) -> int:
    """Amount owed for ``share_basis_points`` of ``balance``, rounded down."""
    return share_basis_points * balance // ROYALTY_BASIS_POINTS


@dataclass
class PayoutTransfer:
    """Payout computed for a transfer together with the transfer result."""

    payout: Dict[str, int]
    outcome: TransferOutcome

    def to_dict(self) -> Dict[str, Any]:
        return {"payout": dict(self.payout), "outcome": self.outcome.to_dict()}


class RoyaltyCalculator:
    """Computes payouts and couples them with direct transfers."""

    def __init__(self, tokens: TokenStore, engine: TransferEngine) -> None:
        self.tokens = tokens
        self.engine = engine

    def compute(self, token: Token, balance: int, max_len_payout: int) -> Dict[str, int]:
        """
        Split ``balance`` according to ``token``'s royalty map.

        Raises:
            InvalidArgumentError: If balance or max_len_payout is negative
            TooManyPayeesError: If the royalty map is larger than max_len_payout
        """
        if balance < 0:
            raise InvalidArgumentError(f"RODT: balance must not be negative, got {balance}")
        if max_len_payout < 0:
            raise InvalidArgumentError(
                f"RODT: max_len_payout must not be negative, got {max_len_payout}"
            )
        if len(token.royalty) > max_len_payout:
            raise TooManyPayeesError(len(token.royalty), max_len_payout)

        owner_id = token.owner_id
        payout: Dict[str, int] = {}
        total_perpetual = 0
        for account_id, share in token.royalty.items():
            if account_id == owner_id:
                continue
            payout[account_id] = royalty_to_payout(share, balance)
            total_perpetual += share

        payout[owner_id] = royalty_to_payout(ROYALTY_BASIS_POINTS - total_perpetual, balance)
        return payout

    def payout(self, token_id: str, balance: int, max_len_payout: int) -> Dict[str, int]:
        """
        Payout for ``token_id`` at ``balance`` without moving the token.

        Raises:
            TokenNotFoundError: If the token doesn't exist
            TooManyPayeesError: If the royalty map is larger than max_len_payout
        """
        return self.compute(self.tokens.require(token_id), balance, max_len_payout)

    def transfer_payout(
        self,
        caller: str,
        receiver_id: str,
        token_id: str,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
        balance: int = 0,
        max_len_payout: int = 0,
    ) -> PayoutTransfer:
        """
        Transfer ``token_id`` and return the payout owed for it.

        The payout is computed from the pre-transfer owner. Every check,
        including the payee limit, runs before the transfer is applied, so a
        rejection leaves the token untouched.
        """
        token = self.engine.validate(caller, receiver_id, token_id, approval_id)
        payout = self.compute(token, balance, max_len_payout)
        transition = self.engine.apply(token, caller, receiver_id, memo)

        logger.info(
            "RODT transfer payout",
            extra={
                "event": "rodt.transfer_payout",
                "token_id": token_id,
                "balance": balance,
                "payees": len(payout),
                "unassigned": balance - sum(payout.values()),
            },
        )
        return PayoutTransfer(
            payout=payout,
            outcome=TransferOutcome(
                token_id=token_id,
                previous_owner_id=transition.previous_owner_id,
                receiver_id=receiver_id,
                status=TransferStatus.COMPLETED,
            ),
        )
