"""
RODT contract components.

- TokenStore: forward/reverse token indices over a key-value store
- ApprovalManager: per-token delegated spenders
- TransferEngine: direct and cross-party transfers with rollback
- RoyaltyCalculator: payout splits
- EnumerationService: paginated supply and listing queries
- RodtContract: the facade wiring them together
"""

from .approval import ApprovalManager
from .continuations import (
    ApprovalNotificationJob,
    ApprovalReceiver,
    ContinuationQueue,
    ReceiverRegistry,
    TokenReceiver,
)
from .enumeration import EnumerationService
from .events import EventLog, RodtEvent
from .metadata import ContractMetadata, RoyaltyMap, TokenMetadata
from .rodt_contract import RodtContract
from .royalty import PayoutTransfer, RoyaltyCalculator
from .token_store import Token, TokenStore
from .transfer import (
    OwnershipTransition,
    ResolveTransferJob,
    TransferEngine,
    TransferOutcome,
    TransferStatus,
    interpret_receiver_response,
)
from .ulid import ULIDGenerator

__all__ = [
    # Contract
    "RodtContract",
    # Components
    "TokenStore",
    "ApprovalManager",
    "TransferEngine",
    "RoyaltyCalculator",
    "EnumerationService",
    # Records
    "Token",
    "TokenMetadata",
    "ContractMetadata",
    "RoyaltyMap",
    "OwnershipTransition",
    "TransferOutcome",
    "TransferStatus",
    "PayoutTransfer",
    "RodtEvent",
    "EventLog",
    # Continuations
    "ContinuationQueue",
    "ReceiverRegistry",
    "ResolveTransferJob",
    "ApprovalNotificationJob",
    "TokenReceiver",
    "ApprovalReceiver",
    "interpret_receiver_response",
    # Ids
    "ULIDGenerator",
]
