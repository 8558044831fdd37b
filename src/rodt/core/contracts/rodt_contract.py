"""
RODT contract.

Single entry point for every ledger operation:
- Mint (with optional ULID token ids)
- Token views and enumeration
- Direct and cross-party transfers
- Approval management
- Royalty payouts

Callers are identified by the ``caller`` argument, which the host fills in
with the authenticated account. Account ids are compared as opaque strings.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from rodt.core.config import Config
from rodt.core.contracts.approval import ApprovalManager
from rodt.core.contracts.continuations import (
    ApprovalNotificationJob,
    ContinuationQueue,
    ReceiverRegistry,
)
from rodt.core.contracts.enumeration import EnumerationService
from rodt.core.contracts.events import EventLog, RodtEvent
from rodt.core.contracts.metadata import ContractMetadata, RoyaltyMap, TokenMetadata
from rodt.core.contracts.royalty import PayoutTransfer, RoyaltyCalculator
from rodt.core.contracts.token_store import Token, TokenStore
from rodt.core.contracts.transfer import ResolveTransferJob, TransferEngine, TransferOutcome
from rodt.core.contracts.ulid import ULIDGenerator
from rodt.core.rodt_exceptions import InvalidArgumentError, NotOwnerError
from rodt.core.storage import KeyValueStore, MemoryStore, SQLiteStore

logger = logging.getLogger(__name__)


class RodtContract:
    """
    RODT ledger contract.

    Wires the token store, approval manager, transfer engine, royalty
    calculator and enumeration service over one key-value store.
    """

    def __init__(
        self,
        owner_id: str,
        metadata: ContractMetadata | None = None,
        store: KeyValueStore | None = None,
        config: Config | None = None,
        id_generator: ULIDGenerator | None = None,
    ) -> None:
        self.owner_id = owner_id
        self.config = config or Config()
        self.contract_metadata = metadata or ContractMetadata()
        self.id_generator = id_generator or ULIDGenerator()

        self.token_store = TokenStore(store if store is not None else MemoryStore())
        self.event_log = EventLog()
        self.continuations = ContinuationQueue()
        self.receivers = ReceiverRegistry()

        self.approvals = ApprovalManager(self.token_store, self.continuations)
        self.transfers = TransferEngine(self.token_store, self.event_log, self.continuations)
        self.royalties = RoyaltyCalculator(self.token_store, self.transfers)
        self.enumeration = EnumerationService(
            self.token_store,
            self.token,
            default_limit=self.config.default_page_limit,
        )

    @classmethod
    def from_config(cls, config: Config) -> "RodtContract":
        """Build a contract whose store and owner come from ``config``."""
        store: KeyValueStore = SQLiteStore(config.db_path) if config.db_path else MemoryStore()
        return cls(owner_id=config.contract_owner, store=store, config=config)

    @property
    def events(self) -> List[RodtEvent]:
        return self.event_log.events

    # ==================== Mint ====================

    def generate_token_id(self) -> str:
        """New time-sortable token id, unique within this contract instance."""
        return self.id_generator.generate()

    def mint(
        self,
        caller: str,
        owner_id: str,
        metadata: TokenMetadata | Mapping[str, Any] | None = None,
        token_id: Optional[str] = None,
        royalty: Optional[Mapping[str, int]] = None,
    ) -> str:
        """
        Mint a new RODT.

        Args:
            caller: Account requesting the mint
            owner_id: Account receiving the token
            metadata: Provisioning fields (TokenMetadata or a mapping of them)
            token_id: Optional token id; a ULID is generated when omitted
            royalty: Optional payee -> basis points map

        Returns:
            The minted token id

        Raises:
            NotOwnerError: If minting is restricted and caller is not the contract owner
            InvalidArgumentError: If metadata or royalty fail validation
            TokenAlreadyExistsError: If the token id is taken
        """
        if self.config.restrict_mint_to_owner and caller != self.owner_id:
            raise NotOwnerError(f"RODT: {caller} may not mint on this contract")
        if not owner_id:
            raise InvalidArgumentError("RODT: owner_id must not be empty")

        try:
            if not isinstance(metadata, TokenMetadata):
                metadata = TokenMetadata.model_validate(dict(metadata or {}))
            royalty_map = RoyaltyMap(shares=dict(royalty or {}))
        except PydanticValidationError as exc:
            raise InvalidArgumentError(
                "RODT: invalid mint payload",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc

        if token_id is None:
            token_id = self.generate_token_id()
        elif not token_id:
            raise InvalidArgumentError("RODT: token_id must not be empty")

        token = Token(token_id=token_id, owner_id=owner_id, royalty=royalty_map.as_dict())
        self.token_store.insert(token, metadata)
        self.event_log.mint(owner_id, [token_id])

        logger.info(
            "RODT mint",
            extra={"event": "rodt.mint", "token_id": token_id, "owner_id": owner_id},
        )
        return token_id

    # ==================== Views ====================

    def token(self, token_id: str) -> Optional[Dict[str, Any]]:
        """Token record joined with its metadata, or None if unknown."""
        token = self.token_store.get(token_id)
        if token is None:
            return None
        metadata = self.token_store.get_metadata(token_id)
        return {
            "token_id": token.token_id,
            "owner_id": token.owner_id,
            "metadata": metadata.model_dump() if metadata else None,
            "approved_account_ids": dict(token.approved_account_ids),
            "royalty": dict(token.royalty),
        }

    def metadata(self) -> Dict[str, Any]:
        return self.contract_metadata.model_dump()

    # ==================== Transfers ====================

    def transfer(
        self,
        caller: str,
        receiver_id: str,
        token_id: str,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
    ) -> TransferOutcome:
        return self.transfers.transfer(caller, receiver_id, token_id, approval_id, memo)

    def transfer_and_call(
        self,
        caller: str,
        receiver_id: str,
        token_id: str,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None,
        msg: str = "",
    ) -> TransferOutcome:
        return self.transfers.transfer_and_call(
            caller, receiver_id, token_id, approval_id, memo, msg
        )

    transfer_and_confirm = transfer_and_call

    def resolve_transfer(self, job: ResolveTransferJob, response: Any) -> bool:
        return self.transfers.resolve_transfer(job, response)

    def pending_transfers(self, token_id: Optional[str] = None) -> List[ResolveTransferJob]:
        return [
            job
            for job in self.continuations.pending(token_id)
            if isinstance(job, ResolveTransferJob)
        ]

    def register_receiver(self, account_id: str, receiver: Any) -> None:
        """Attach hook implementations (``nft_on_transfer`` / ``nft_on_approve``) to an account."""
        self.receivers.register(account_id, receiver)

    def process_continuations(self) -> List[Any]:
        """
        Run every scheduled hook call in order.

        Jobs scheduled while draining (for example by a receiver hook that
        approves or transfers) are run in the same pass.

        Returns:
            The processed jobs
        """
        processed = []
        while True:
            job = self.continuations.pop_next()
            if job is None:
                break
            if isinstance(job, ResolveTransferJob):
                if not job.resolved:
                    transition = job.transition
                    response = self.receivers.call_transfer_hook(
                        transition.receiver_id,
                        job.sender_id,
                        transition.previous_owner_id,
                        transition.token_id,
                        job.msg,
                    )
                    self.resolve_transfer(job, response)
            elif isinstance(job, ApprovalNotificationJob):
                job.delivered = self.receivers.call_approve_hook(
                    job.account_id, job.token_id, job.owner_id, job.approval_id, job.msg
                )
            processed.append(job)
        return processed

    # ==================== Approvals ====================

    def approve(
        self, caller: str, token_id: str, account_id: str, msg: Optional[str] = None
    ) -> int:
        return self.approvals.approve(caller, token_id, account_id, msg)

    def is_approved(
        self, token_id: str, approved_account_id: str, approval_id: Optional[int] = None
    ) -> bool:
        return self.approvals.is_approved(token_id, approved_account_id, approval_id)

    def revoke(self, caller: str, token_id: str, account_id: str) -> None:
        self.approvals.revoke(caller, token_id, account_id)

    def revoke_all(self, caller: str, token_id: str) -> None:
        self.approvals.revoke_all(caller, token_id)

    # ==================== Royalty ====================

    def payout(self, token_id: str, balance: int, max_len_payout: int) -> Dict[str, int]:
        return self.royalties.payout(token_id, balance, max_len_payout)

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
        return self.royalties.transfer_payout(
            caller, receiver_id, token_id, approval_id, memo, balance, max_len_payout
        )

    # ==================== Enumeration ====================

    def total_supply(self) -> int:
        return self.enumeration.total_supply()

    def tokens(
        self, from_index: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        return self.enumeration.tokens_page(from_index, limit)

    def tokens_for_owner(
        self, account_id: str, from_index: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        return self.enumeration.tokens_for_owner(account_id, from_index, limit)

    def supply_for_owner(self, account_id: str) -> int:
        return self.enumeration.supply_for_owner(account_id)

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Summary of contract state."""
        return {
            "owner_id": self.owner_id,
            "metadata": self.metadata(),
            "total_supply": self.total_supply(),
            "pending_continuations": len(self.continuations),
            "events": [event.to_dict() for event in self.events],
        }
