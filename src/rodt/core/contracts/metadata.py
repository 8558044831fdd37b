"""
Metadata records for RODT tokens and the contract itself.

TokenMetadata carries the network provisioning fields of a RODT (X.509 style
issuer and validity window, WireGuard style network parameters and the
service provider linkage). It is fixed once the token is minted.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rodt.core.config import (
    DEFAULT_BASE_URI,
    DEFAULT_CONTRACT_NAME,
    DEFAULT_CONTRACT_SYMBOL,
    NFT_METADATA_SPEC,
    ROYALTY_BASIS_POINTS,
)


class TokenMetadata(BaseModel):
    """Provisioning payload stored alongside each token."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # X.509 issuer name chosen by the minting service
    issuer_name: Optional[str] = None
    description_rodt: Optional[str] = None
    # Validity window; "0" means "any" as in X.509
    not_after: Optional[str] = None
    not_before: Optional[str] = None
    # First IPv4 address of the assigned range
    cidr_block: Optional[str] = None
    listen_port: Optional[str] = None
    dns_server: Optional[str] = None
    allowed_ips: Optional[str] = None
    subjectuniqueidentifier_url: Optional[str] = None
    # Server token id for clients; the server's own serial for servers
    serviceprovider_id: Optional[str] = None
    serviceprovider_signature: Optional[str] = None
    # None for servers, a rate limit for clients
    kb_persecond: Optional[str] = None


class ContractMetadata(BaseModel):
    """Contract-level metadata returned by ``metadata()``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    spec: str = NFT_METADATA_SPEC
    name: str = DEFAULT_CONTRACT_NAME
    symbol: str = DEFAULT_CONTRACT_SYMBOL
    icon: Optional[str] = None
    base_uri: Optional[str] = DEFAULT_BASE_URI
    reference: Optional[str] = None
    reference_hash: Optional[str] = None


class RoyaltyMap(BaseModel):
    """Perpetual royalty shares in basis points, keyed by payee account."""

    model_config = ConfigDict(frozen=True)

    shares: Dict[str, int] = Field(default_factory=dict)

    @field_validator("shares")
    @classmethod
    def _check_shares(cls, shares: Dict[str, int]) -> Dict[str, int]:
        for account, share in shares.items():
            if not account:
                raise ValueError("royalty payee account must not be empty")
            if share < 0 or share > ROYALTY_BASIS_POINTS:
                raise ValueError(
                    f"royalty share for {account} must be between 0 and {ROYALTY_BASIS_POINTS}"
                )
        total = sum(shares.values())
        if total > ROYALTY_BASIS_POINTS:
            raise ValueError(
                f"royalty shares sum to {total}, above {ROYALTY_BASIS_POINTS} basis points"
            )
        return shares

    def as_dict(self) -> Dict[str, int]:
        return dict(self.shares)
