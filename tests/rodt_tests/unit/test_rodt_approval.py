"""
Unit tests for approval management.
"""

import pytest

from rodt.core.contracts import ApprovalNotificationJob
from rodt.core.rodt_exceptions import NotOwnerError, TokenNotFoundError


def test_approval_ids_come_from_per_token_counter(minted):
    assert minted.approve("alice", "t1", "bob") == 0
    assert minted.approve("alice", "t1", "carol") == 1
    assert minted.token("t1")["approved_account_ids"] == {"bob": 0, "carol": 1}


def test_reapproving_keeps_existing_id(minted):
    assert minted.approve("alice", "t1", "bob") == 0
    assert minted.approve("alice", "t1", "bob") == 0
    assert minted.approve("alice", "t1", "carol") == 1


def test_only_owner_may_approve(minted):
    with pytest.raises(NotOwnerError):
        minted.approve("bob", "t1", "bob")
    assert minted.token("t1")["approved_account_ids"] == {}


def test_approve_unknown_token(contract):
    with pytest.raises(TokenNotFoundError):
        contract.approve("alice", "missing", "bob")


def test_is_approved_with_and_without_id(minted):
    minted.approve("alice", "t1", "bob")
    assert minted.is_approved("t1", "bob") is True
    assert minted.is_approved("t1", "bob", 0) is True
    assert minted.is_approved("t1", "bob", 5) is False
    assert minted.is_approved("t1", "carol") is False


def test_is_approved_unknown_token(contract):
    with pytest.raises(TokenNotFoundError):
        contract.is_approved("missing", "bob")


def test_revoke_removes_only_that_spender(minted):
    minted.approve("alice", "t1", "bob")
    minted.approve("alice", "t1", "carol")
    minted.revoke("alice", "t1", "bob")
    assert minted.token("t1")["approved_account_ids"] == {"carol": 1}
    # Revoking an absent spender is a no-op
    minted.revoke("alice", "t1", "bob")


def test_revoke_requires_owner(minted):
    minted.approve("alice", "t1", "bob")
    with pytest.raises(NotOwnerError):
        minted.revoke("bob", "t1", "bob")
    with pytest.raises(NotOwnerError):
        minted.revoke_all("bob", "t1")
    assert minted.is_approved("t1", "bob")


def test_ids_never_reused_after_revoke_all(minted):
    minted.approve("alice", "t1", "bob")
    minted.approve("alice", "t1", "carol")
    minted.revoke_all("alice", "t1")
    assert minted.token("t1")["approved_account_ids"] == {}
    assert minted.approve("alice", "t1", "bob") == 2


def test_approve_with_msg_notifies_spender_later(minted, receiver_factory):
    spender = receiver_factory()
    minted.register_receiver("market", spender)

    minted.approve("alice", "t1", "market", msg="list for 10")
    assert spender.approve_calls == []

    [job] = minted.process_continuations()
    assert isinstance(job, ApprovalNotificationJob)
    assert job.delivered is True
    assert spender.approve_calls == [("t1", "alice", 0, "list for 10")]


def test_failed_approval_notification_keeps_approval(minted):
    minted.approve("alice", "t1", "nobody", msg="hello")
    [job] = minted.process_continuations()
    assert job.delivered is False
    assert minted.is_approved("t1", "nobody", 0)
