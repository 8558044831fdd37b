"""
RODT ledger exception hierarchy.

Every rejection raised by the contract leaves state untouched, so callers
may retry after fixing the request. The reconciled rollback of a cross-party
transfer is not an exception; it is reported through the transfer outcome.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RodtError(Exception):
    """Base exception for all RODT ledger errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried as-is
    """

    code = "rodt_error"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


# ==================== Lookup Errors ====================


class TokenNotFoundError(RodtError):
    """Raised when a token id is not present in the token store."""

    code = "token_not_found"

    def __init__(self, token_id: str, **kwargs: Any) -> None:
        super().__init__(f"RODT: token {token_id} does not exist", **kwargs)
        self.token_id = token_id


class TokenAlreadyExistsError(RodtError):
    """Raised when minting a token id that is already taken."""

    code = "token_already_exists"

    def __init__(self, token_id: str, **kwargs: Any) -> None:
        super().__init__(f"RODT: token {token_id} already exists", **kwargs)
        self.token_id = token_id


# ==================== Authorization Errors ====================


class AuthorizationError(RodtError):
    """Raised when the caller may not perform an operation."""

    code = "unauthorized"


class NotOwnerError(AuthorizationError):
    """Raised when an owner-only operation is called by someone else."""

    code = "not_owner"


class NotOwnerOrApprovedError(AuthorizationError):
    """Raised when a transfer caller is neither owner nor approved spender."""

    code = "not_owner_or_approved"


class ApprovalIdMismatchError(AuthorizationError):
    """Raised when a supplied approval id differs from the one on record."""

    code = "approval_id_mismatch"

    def __init__(
        self,
        token_id: str,
        expected: int,
        given: int,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"RODT: approval id {given} for token {token_id} does not match "
            f"the current approval id {expected}",
            **kwargs,
        )
        self.token_id = token_id
        self.expected = expected
        self.given = given


# ==================== Argument Errors ====================


class InvalidArgumentError(RodtError):
    """Raised when an argument is outside its accepted range."""

    code = "invalid_argument"


class InvalidReceiverError(InvalidArgumentError):
    """Raised when a transfer receiver equals the current owner."""

    code = "invalid_receiver"


class TooManyPayeesError(InvalidArgumentError):
    """Raised when a royalty map has more payees than the caller accepts."""

    code = "too_many_payees"

    def __init__(self, payees: int, max_len_payout: int, **kwargs: Any) -> None:
        super().__init__(
            f"RODT: cannot payout to {payees} receivers (max {max_len_payout})",
            **kwargs,
        )
        self.payees = payees
        self.max_len_payout = max_len_payout


# ==================== Storage Errors ====================


class StorageError(RodtError):
    """Raised when the key-value store fails."""

    code = "storage_error"
