"""
Approval management for RODT tokens.

Owners delegate transfer rights per token. Each grant gets an approval id
from the token's own counter; the counter only ever moves forward, so an id
is never handed out twice for the same token, not even after revoke_all.
"""

from __future__ import annotations

import logging
from typing import Optional

from rodt.core.contracts.continuations import ApprovalNotificationJob, ContinuationQueue
from rodt.core.contracts.token_store import Token, TokenStore
from rodt.core.rodt_exceptions import NotOwnerError

logger = logging.getLogger(__name__)


class ApprovalManager:
    """Grants, checks and revokes delegated spenders."""

    def __init__(self, tokens: TokenStore, continuations: ContinuationQueue) -> None:
        self.tokens = tokens
        self.continuations = continuations

    def _require_owner(self, caller: str, token: Token) -> None:
        if caller != token.owner_id:
            raise NotOwnerError(
                f"RODT: {caller} is not the owner of token {token.token_id}",
                details={"token_id": token.token_id, "caller": caller},
            )

    def approve(
        self, caller: str, token_id: str, account_id: str, msg: Optional[str] = None
    ) -> int:
        """
        Approve ``account_id`` to transfer ``token_id`` on the owner's behalf.

        Re-approving an account that already holds an approval keeps its id.

        Args:
            caller: Message sender (must be the owner)
            token_id: Token ID
            account_id: Spender to approve
            msg: Optional message; when set, ``nft_on_approve`` is scheduled
                on the spender

        Returns:
            The spender's approval id

        Raises:
            TokenNotFoundError: If the token doesn't exist
            NotOwnerError: If caller is not the owner
        """
        token = self.tokens.require(token_id)
        self._require_owner(caller, token)

        approval_id = token.approved_account_ids.get(account_id)
        if approval_id is None:
            approval_id = token.next_approval_id
            token.approved_account_ids[account_id] = approval_id
            token.next_approval_id += 1
            self.tokens.put(token)
            logger.info(
                "RODT approval granted",
                extra={
                    "event": "rodt.approve",
                    "token_id": token_id,
                    "account_id": account_id,
                    "approval_id": approval_id,
                },
            )

        if msg is not None:
            self.continuations.schedule(
                ApprovalNotificationJob(
                    token_id=token_id,
                    owner_id=token.owner_id,
                    account_id=account_id,
                    approval_id=approval_id,
                    msg=msg,
                )
            )
        return approval_id

    def is_approved(
        self, token_id: str, approved_account_id: str, approval_id: Optional[int] = None
    ) -> bool:
        """
        Check whether ``approved_account_id`` may transfer ``token_id``.

        When ``approval_id`` is given it must equal the id on record.

        Raises:
            TokenNotFoundError: If the token doesn't exist
        """
        token = self.tokens.require(token_id)
        actual = token.approved_account_ids.get(approved_account_id)
        if actual is None:
            return False
        if approval_id is None:
            return True
        return approval_id == actual

    def revoke(self, caller: str, token_id: str, account_id: str) -> None:
        """Remove one spender. Unknown spenders are ignored."""
        token = self.tokens.require(token_id)
        self._require_owner(caller, token)
        if token.approved_account_ids.pop(account_id, None) is None:
            return
        self.tokens.put(token)
        logger.info(
            "RODT approval revoked",
            extra={"event": "rodt.revoke", "token_id": token_id, "account_id": account_id},
        )

    def revoke_all(self, caller: str, token_id: str) -> None:
        """Remove every spender. The approval id counter is left as is."""
        token = self.tokens.require(token_id)
        self._require_owner(caller, token)
        if not token.approved_account_ids:
            return
        revoked = len(token.approved_account_ids)
        token.approved_account_ids = {}
        self.tokens.put(token)
        logger.info(
            "RODT approvals revoked",
            extra={"event": "rodt.revoke_all", "token_id": token_id, "revoked": revoked},
        )
