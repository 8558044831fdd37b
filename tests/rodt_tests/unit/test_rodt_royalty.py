"""
Unit tests for royalty payouts.
"""

import pytest

from rodt.core.contracts import TransferStatus
from rodt.core.contracts.royalty import royalty_to_payout
from rodt.core.rodt_exceptions import (
    InvalidArgumentError,
    NotOwnerOrApprovedError,
    TokenNotFoundError,
    TooManyPayeesError,
)


@pytest.fixture
def royalty_token(contract):
    contract.mint("forge", "alice", token_id="t1", royalty={"bob": 1000})
    return contract


def test_royalty_to_payout_rounds_down():
    assert royalty_to_payout(1000, 1000) == 100
    assert royalty_to_payout(3333, 10) == 3
    assert royalty_to_payout(0, 999) == 0


def test_owner_gets_remainder_share(royalty_token):
    assert royalty_token.payout("t1", 1000, 10) == {"bob": 100, "alice": 900}


def test_no_royalty_pays_owner_everything(minted):
    assert minted.payout("t1", 777, 10) == {"alice": 777}


def test_owner_listed_as_payee_is_not_double_counted(contract):
    contract.mint("forge", "alice", token_id="t1", royalty={"alice": 500, "bob": 500})
    assert contract.payout("t1", 1000, 10) == {"bob": 50, "alice": 950}


def test_rounding_never_overpays(contract):
    contract.mint(
        "forge", "alice", token_id="t1", royalty={"bob": 3333, "carol": 3333, "dave": 3333}
    )
    payout = contract.payout("t1", 10, 10)
    assert payout == {"bob": 3, "carol": 3, "dave": 3, "alice": 0}
    assert sum(payout.values()) <= 10


def test_too_many_payees(contract):
    contract.mint("forge", "alice", token_id="t1", royalty={"bob": 100, "carol": 100})
    with pytest.raises(TooManyPayeesError):
        contract.payout("t1", 1000, 1)


def test_negative_balance_rejected(royalty_token):
    with pytest.raises(InvalidArgumentError):
        royalty_token.payout("t1", -1, 10)


def test_payout_unknown_token(contract):
    with pytest.raises(TokenNotFoundError):
        contract.payout("missing", 10, 10)


def test_transfer_payout_moves_token_and_pays_previous_owner(royalty_token):
    result = royalty_token.transfer_payout("alice", "carol", "t1", balance=1000, max_len_payout=10)

    assert result.payout == {"bob": 100, "alice": 900}
    assert result.outcome.status == TransferStatus.COMPLETED
    assert royalty_token.token("t1")["owner_id"] == "carol"
    # Royalty stays with the token
    assert royalty_token.payout("t1", 1000, 10) == {"bob": 100, "carol": 900}
    assert result.to_dict()["outcome"]["receiver_id"] == "carol"


def test_transfer_payout_too_many_payees_leaves_token(contract):
    contract.mint("forge", "alice", token_id="t1", royalty={"bob": 100, "carol": 100})
    with pytest.raises(TooManyPayeesError):
        contract.transfer_payout("alice", "dave", "t1", balance=100, max_len_payout=1)
    assert contract.token("t1")["owner_id"] == "alice"
    assert contract.event_log.by_type("nft_transfer") == []


def test_transfer_payout_requires_authorization(royalty_token):
    with pytest.raises(NotOwnerOrApprovedError):
        royalty_token.transfer_payout("dave", "carol", "t1", balance=10, max_len_payout=10)
    assert royalty_token.token("t1")["owner_id"] == "alice"
