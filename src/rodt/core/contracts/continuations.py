"""
Deferred calls to other accounts.

Cross-party transfers and approval notifications call hooks on receiving
accounts. Those calls never run inside the operation that requested them:
the operation schedules a job here and returns, and the host drains the
queue later (``RodtContract.process_continuations``). Between the two, other
operations see the committed state.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

# Stand-in for a hook call that raised or had nobody to call
HOOK_FAILED = object()


@runtime_checkable
class TokenReceiver(Protocol):
    """Account able to accept tokens sent with ``transfer_and_call``.

    Returns ``False`` to keep the token, ``True`` to hand it back.
    """

    def nft_on_transfer(
        self, sender_id: str, previous_owner_id: str, token_id: str, msg: str
    ) -> Any: ...


@runtime_checkable
class ApprovalReceiver(Protocol):
    """Account that wants to hear about approvals granted to it."""

    def nft_on_approve(
        self, token_id: str, owner_id: str, approval_id: int, msg: str
    ) -> Any: ...


class ReceiverRegistry:
    """Maps account ids to the objects that implement their hooks."""

    def __init__(self) -> None:
        self._receivers: Dict[str, Any] = {}

    def register(self, account_id: str, receiver: Any) -> None:
        self._receivers[account_id] = receiver

    def unregister(self, account_id: str) -> None:
        self._receivers.pop(account_id, None)

    def get(self, account_id: str) -> Optional[Any]:
        return self._receivers.get(account_id)

    def call_transfer_hook(
        self, receiver_id: str, sender_id: str, previous_owner_id: str, token_id: str, msg: str
    ) -> Any:
        """Invoke ``nft_on_transfer`` on ``receiver_id``; ``HOOK_FAILED`` if it cannot be done."""
        receiver = self.get(receiver_id)
        if not isinstance(receiver, TokenReceiver):
            logger.warning(
                "No transfer hook for receiver",
                extra={"event": "rodt.hook.missing", "receiver_id": receiver_id, "token_id": token_id},
            )
            return HOOK_FAILED
        try:
            return receiver.nft_on_transfer(sender_id, previous_owner_id, token_id, msg)
        except Exception as exc:
            logger.warning(
                "Transfer hook raised",
                extra={
                    "event": "rodt.hook.failed",
                    "receiver_id": receiver_id,
                    "token_id": token_id,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            return HOOK_FAILED

    def call_approve_hook(
        self, account_id: str, token_id: str, owner_id: str, approval_id: int, msg: str
    ) -> bool:
        receiver = self.get(account_id)
        if not isinstance(receiver, ApprovalReceiver):
            logger.info(
                "No approval hook for account",
                extra={"event": "rodt.hook.missing", "account_id": account_id, "token_id": token_id},
            )
            return False
        try:
            receiver.nft_on_approve(token_id, owner_id, approval_id, msg)
        except Exception as exc:
            logger.warning(
                "Approval hook raised",
                extra={
                    "event": "rodt.hook.failed",
                    "account_id": account_id,
                    "token_id": token_id,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            return False
        return True


@dataclass
class ApprovalNotificationJob:
    """One-way ``nft_on_approve`` call. Its result never touches approvals."""

    token_id: str
    owner_id: str
    account_id: str
    approval_id: int
    msg: str
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    delivered: Optional[bool] = None


class ContinuationQueue:
    """FIFO of scheduled jobs, each carrying the token id it concerns."""

    def __init__(self) -> None:
        self._jobs: Deque[Any] = deque()

    def schedule(self, job: Any) -> Any:
        self._jobs.append(job)
        logger.debug(
            "Continuation scheduled",
            extra={"event": "rodt.continuation.scheduled", "job": type(job).__name__, "token_id": job.token_id},
        )
        return job

    def pop_next(self) -> Optional[Any]:
        if not self._jobs:
            return None
        return self._jobs.popleft()

    def pending(self, token_id: Optional[str] = None) -> List[Any]:
        if token_id is None:
            return list(self._jobs)
        return [job for job in self._jobs if job.token_id == token_id]

    def __len__(self) -> int:
        return len(self._jobs)
