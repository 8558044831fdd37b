"""
Transfer engine for RODT tokens.

Every transfer runs through three phases:

1. Validate: the token exists, the caller is the owner or an approved
   spender (with a matching approval id when one is supplied), and the
   receiver is not the current owner. Nothing is written before this passes.
2. Apply: snapshot the previous owner and approvals into an
   OwnershipTransition, move the token to the receiver and clear approvals.
3. Confirm (cross-party transfers only): the receiver's ``nft_on_transfer``
   hook runs later from the continuation queue, and ``resolve_transfer``
   either keeps the new owner or moves the token back.

A rollback only happens while the receiver still owns the token. If the
token moved on in the meantime, resolution does nothing. Approvals cleared
by Apply are never restored.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from rodt.core.contracts.continuations import HOOK_FAILED, ContinuationQueue
from rodt.core.contracts.events import EventLog
from rodt.core.contracts.token_store import Token, TokenStore
from rodt.core.rodt_exceptions import (
    ApprovalIdMismatchError,
    InvalidReceiverError,
    NotOwnerOrApprovedError,
)

logger = logging.getLogger(__name__)


class TransferStatus(str, Enum):
    COMPLETED = "completed"  # direct transfer, final on apply
    PENDING = "pending"  # cross-party transfer waiting for the receiver
    CONFIRMED = "confirmed"  # receiver kept the token
    NOT_CONFIRMED = "not_confirmed"  # receiver refused, token moved back
    SUPERSEDED = "superseded"  # token changed hands before resolution


@dataclass(frozen=True)
class OwnershipTransition:
    """Pre-transfer state needed to move a token back to its previous owner."""

    token_id: str
    previous_owner_id: str
    previous_approved_account_ids: Dict[str, int]
    receiver_id: str
    authorized_id: Optional[str] = None
    memo: Optional[str] = None


@dataclass
class TransferOutcome:
    """Result of a transfer as seen by the caller."""

    token_id: str
    previous_owner_id: str
    receiver_id: str
    status: TransferStatus
    refund: Any = None

    @property
    def transferred(self) -> bool:
        """Whether the receiver ended up (or is expected to end up) with the token."""
        return self.status != TransferStatus.NOT_CONFIRMED

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "token_id": self.token_id,
            "previous_owner_id": self.previous_owner_id,
            "receiver_id": self.receiver_id,
            "status": self.status.value,
            "transferred": self.transferred,
        }
        if self.refund is not None:
            data["refund"] = self.refund
        return data


@dataclass
class ResolveTransferJob:
    """Scheduled confirmation of a cross-party transfer."""

    sender_id: str
    transition: OwnershipTransition
    msg: str
    outcome: TransferOutcome
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    resolved: bool = False

    @property
    def token_id(self) -> str:
        return self.transition.token_id


def interpret_receiver_response(response: Any) -> Tuple[bool, Any]:
    """
    Decide whether a receiver kept the token.

    ``nft_on_transfer`` answers "should the token be returned?". Accepted
    answers are ``False``, the JSON text ``"false"``, or a mapping with
    ``return_token: False`` (optionally carrying a ``refund`` entry). Anything
    else, including a failed call, counts as not accepted.

    Returns:
        Tuple of (accepted, refund)
    """
    if response is HOOK_FAILED or response is None:
        return False, None
    if isinstance(response, (str, bytes)):
        try:
            response = json.loads(response)
        except ValueError:
            return False, None
    if isinstance(response, bool):
        return (not response), None
    if isinstance(response, Mapping):
        return_token = response.get("return_token")
        if isinstance(return_token, bool):
            refund = response.get("refund") if not return_token else None
            return (not return_token), refund
    return False, None


class TransferEngine:
    """Validates and applies ownership changes."""

    def __init__(
        self, tokens: TokenStore, events: EventLog, continuations: ContinuationQueue
    ) -> None:
        self.tokens = tokens
        self.events = events
        self.continuations = continuations

    # ==================== Phases ====================

    def validate(
        self, caller: str, receiver_id: str, token_id: str, approval_id: Optional[int] = None
    ) -> Token:
        """
        Check that ``caller`` may move ``token_id`` to ``receiver_id``.

        An approval id is only checked for delegated spenders; the owner
        holds no approval id.

        Returns:
            The current token record

        Raises:
            TokenNotFoundError: If the token doesn't exist
            NotOwnerOrApprovedError: If caller is neither owner nor approved
            ApprovalIdMismatchError: If the supplied approval id is stale
            InvalidReceiverError: If receiver is already the owner
        """
        token = self.tokens.require(token_id)

        if caller != token.owner_id:
            actual = token.approved_account_ids.get(caller)
            if actual is None:
                raise NotOwnerOrApprovedError(
                    f"RODT: {caller} is not owner nor approved for token {token_id}",
                    details={"token_id": token_id, "caller": caller},
                )
            if approval_id is not None and approval_id != actual:
                raise ApprovalIdMismatchError(token_id, expected=actual, given=approval_id)

        if receiver_id == token.owner_id:
            raise InvalidReceiverError(
                "RODT: the token owner and the receiver should be different",
                details={"token_id": token_id, "receiver_id": receiver_id},
            )
        return token

    def apply(
        self, token: Token, caller: str, receiver_id: str, memo: Optional[str] = None
    ) -> OwnershipTransition:
        """Move a validated token to ``receiver_id`` and clear its approvals."""
        transition = OwnershipTransition(
            token_id=token.token_id,
            previous_owner_id=token.owner_id,
            previous_approved_account_ids=dict(token.approved_account_ids),
            receiver_id=receiver_id,
            authorized_id=caller if caller != token.owner_id else None,
            memo=memo,
        )
        token.owner_id = receiver_id
        token.approved_account_ids = {}
        self.tokens.commit_owner_change(token, transition.previous_owner_id)

        self.events.transfer(
            transition.previous_owner_id,
            receiver_id,
            [token.token_id],
            authorized_id=transition.authorized_id,
            memo=memo,
        )
        logger.info(
            "RODT transfer",
            extra={
                "event": "rodt.transfer",
                "token_id": token.token_id,
                "from": transition.previous_owner_id,
                "to": receiver_id,
                "authorized_id": transition.authorized_id,
            },
        )
        return transition

    # ==================== Operations ====================

    def transfer(
        self,
        caller: str,
        receiver_id: str,
        token_id: str,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
    ) -> TransferOutcome:
        """Direct transfer; final once applied."""
        token = self.validate(caller, receiver_id, token_id, approval_id)
        transition = self.apply(token, caller, receiver_id, memo)
        return TransferOutcome(
            token_id=token_id,
            previous_owner_id=transition.previous_owner_id,
            receiver_id=receiver_id,
            status=TransferStatus.COMPLETED,
        )

    def transfer_and_call(
        self,
        caller: str,
        receiver_id: str,
        token_id: str,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
        msg: str = "",
    ) -> TransferOutcome:
        """
        Cross-party transfer.

        Applies the transfer immediately and schedules the receiver's
        acceptance hook. The returned outcome stays ``PENDING`` until the
        continuation is resolved, after which it carries the final status.
        """
        token = self.validate(caller, receiver_id, token_id, approval_id)
        transition = self.apply(token, caller, receiver_id, memo)
        outcome = TransferOutcome(
            token_id=token_id,
            previous_owner_id=transition.previous_owner_id,
            receiver_id=receiver_id,
            status=TransferStatus.PENDING,
        )
        self.continuations.schedule(
            ResolveTransferJob(sender_id=caller, transition=transition, msg=msg, outcome=outcome)
        )
        return outcome

    def resolve_transfer(self, job: ResolveTransferJob, response: Any) -> bool:
        """
        Reconcile a cross-party transfer with the receiver's answer.

        Returns:
            True if the receiver keeps the token (or it already moved on),
            False if the token went back to its previous owner
        """
        outcome = job.outcome
        if job.resolved:
            logger.info(
                "RODT transfer already resolved",
                extra={"event": "rodt.resolve.duplicate", "token_id": job.token_id, "job_id": job.job_id},
            )
            return outcome.transferred
        job.resolved = True

        transition = job.transition
        accepted, refund = interpret_receiver_response(response)
        if accepted:
            outcome.status = TransferStatus.CONFIRMED
            outcome.refund = refund
            logger.info(
                "RODT transfer confirmed",
                extra={"event": "rodt.resolve.confirmed", "token_id": transition.token_id},
            )
            return True

        token = self.tokens.get(transition.token_id)
        if token is None or token.owner_id != transition.receiver_id:
            outcome.status = TransferStatus.SUPERSEDED
            logger.warning(
                "RODT rollback skipped, token no longer held by receiver",
                extra={
                    "event": "rodt.resolve.superseded",
                    "token_id": transition.token_id,
                    "receiver_id": transition.receiver_id,
                    "current_owner": token.owner_id if token else None,
                },
            )
            return True

        token.owner_id = transition.previous_owner_id
        # Delegations do not come back, including any the receiver granted meanwhile
        token.approved_account_ids = {}
        self.tokens.commit_owner_change(token, transition.receiver_id)
        self.events.transfer(
            transition.receiver_id,
            transition.previous_owner_id,
            [transition.token_id],
            memo=transition.memo,
        )
        outcome.status = TransferStatus.NOT_CONFIRMED
        logger.info(
            "RODT transfer not confirmed, token returned",
            extra={
                "event": "rodt.resolve.rolled_back",
                "token_id": transition.token_id,
                "owner_id": transition.previous_owner_id,
            },
        )
        return False
