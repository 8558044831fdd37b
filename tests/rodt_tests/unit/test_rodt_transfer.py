"""
Unit tests for direct and cross-party transfers.
"""

import pytest

from rodt.core.contracts import TransferStatus, interpret_receiver_response
from rodt.core.contracts.continuations import HOOK_FAILED
from rodt.core.rodt_exceptions import (
    ApprovalIdMismatchError,
    InvalidReceiverError,
    NotOwnerOrApprovedError,
    TokenNotFoundError,
)


def _owner_sets(contract):
    return {
        account: contract.token_store.tokens_for_owner(account)
        for account in ("alice", "bob", "carol", "dave")
    }


class TestDirectTransfer:
    def test_owner_transfer_moves_token_and_clears_approvals(self, minted):
        minted.approve("alice", "t1", "carol")
        outcome = minted.transfer("alice", "bob", "t1", memo="gift")

        assert outcome.status == TransferStatus.COMPLETED
        assert outcome.transferred
        token = minted.token("t1")
        assert token["owner_id"] == "bob"
        assert token["approved_account_ids"] == {}
        assert minted.tokens_for_owner("alice") == []
        assert [t["token_id"] for t in minted.tokens_for_owner("bob")] == ["t1"]
        assert minted.total_supply() == 1

    def test_transfer_event_payload(self, minted):
        minted.transfer("alice", "bob", "t1", memo="gift")
        [event] = minted.event_log.by_type("nft_transfer")
        assert event.data == [
            {"old_owner_id": "alice", "new_owner_id": "bob", "token_ids": ["t1"], "memo": "gift"}
        ]

    def test_approved_spender_transfer_records_authorized_id(self, minted):
        minted.approve("alice", "t1", "carol")
        minted.transfer("carol", "bob", "t1", approval_id=0)

        assert minted.token("t1")["owner_id"] == "bob"
        [event] = minted.event_log.by_type("nft_transfer")
        assert event.data[0]["authorized_id"] == "carol"

    def test_spender_with_stale_approval_id_rejected(self, minted):
        minted.approve("alice", "t1", "carol")
        with pytest.raises(ApprovalIdMismatchError) as exc:
            minted.transfer("carol", "bob", "t1", approval_id=3)
        assert exc.value.expected == 0
        assert minted.token("t1")["owner_id"] == "alice"
        assert minted.is_approved("t1", "carol")

    def test_stranger_rejected(self, minted):
        before = _owner_sets(minted)
        with pytest.raises(NotOwnerOrApprovedError):
            minted.transfer("dave", "bob", "t1")
        assert _owner_sets(minted) == before
        assert minted.event_log.by_type("nft_transfer") == []

    def test_transfer_to_self_rejected(self, minted):
        with pytest.raises(InvalidReceiverError):
            minted.transfer("alice", "alice", "t1")

    def test_spender_cannot_send_back_to_owner(self, minted):
        minted.approve("alice", "t1", "carol")
        with pytest.raises(InvalidReceiverError):
            minted.transfer("carol", "alice", "t1")

    def test_unknown_token(self, contract):
        with pytest.raises(TokenNotFoundError):
            contract.transfer("alice", "bob", "missing")

    def test_approval_does_not_survive_transfer(self, minted):
        minted.approve("alice", "t1", "carol")
        minted.transfer("alice", "bob", "t1")
        with pytest.raises(NotOwnerOrApprovedError):
            minted.transfer("carol", "dave", "t1")


class TestCrossPartyTransfer:
    def test_receiver_accepts(self, minted, receiver_factory):
        receiver = receiver_factory(answer=False)
        minted.register_receiver("bob", receiver)

        outcome = minted.transfer_and_call("alice", "bob", "t1", msg="hi")
        assert outcome.status == TransferStatus.PENDING
        # Applied immediately, hook not yet called
        assert minted.token("t1")["owner_id"] == "bob"
        assert receiver.transfer_calls == []
        assert len(minted.pending_transfers("t1")) == 1

        minted.process_continuations()
        assert receiver.transfer_calls == [("alice", "alice", "t1", "hi")]
        assert outcome.status == TransferStatus.CONFIRMED
        assert minted.token("t1")["owner_id"] == "bob"
        assert minted.pending_transfers() == []

    def test_receiver_refuses_token_goes_back_without_approvals(self, minted, receiver_factory):
        minted.approve("alice", "t1", "carol")
        minted.register_receiver("bob", receiver_factory(answer=True))

        outcome = minted.transfer_and_call("alice", "bob", "t1")
        minted.process_continuations()

        assert outcome.status == TransferStatus.NOT_CONFIRMED
        assert not outcome.transferred
        token = minted.token("t1")
        assert token["owner_id"] == "alice"
        assert token["approved_account_ids"] == {}
        assert minted.supply_for_owner("bob") == 0
        assert minted.supply_for_owner("alice") == 1

        transfers = minted.event_log.by_type("nft_transfer")
        assert [(e.data[0]["old_owner_id"], e.data[0]["new_owner_id"]) for e in transfers] == [
            ("alice", "bob"),
            ("bob", "alice"),
        ]

    def test_missing_receiver_rolls_back(self, minted):
        outcome = minted.transfer_and_call("alice", "bob", "t1")
        minted.process_continuations()
        assert outcome.status == TransferStatus.NOT_CONFIRMED
        assert minted.token("t1")["owner_id"] == "alice"

    def test_raising_receiver_rolls_back(self, minted, receiver_factory):
        minted.register_receiver("bob", receiver_factory(answer=RuntimeError("boom")))
        outcome = minted.transfer_and_call("alice", "bob", "t1")
        minted.process_continuations()
        assert outcome.status == TransferStatus.NOT_CONFIRMED
        assert minted.token("t1")["owner_id"] == "alice"

    def test_token_moved_before_resolution_is_not_rolled_back(self, minted, receiver_factory):
        minted.register_receiver("bob", receiver_factory(answer=True))
        outcome = minted.transfer_and_call("alice", "bob", "t1")

        # Receiver passes the token on before the hook result is reconciled
        minted.transfer("bob", "carol", "t1")
        minted.process_continuations()

        assert outcome.status == TransferStatus.SUPERSEDED
        assert minted.token("t1")["owner_id"] == "carol"
        assert minted.supply_for_owner("alice") == 0

    def test_hook_that_moves_token_is_not_rolled_back(self, minted, receiver_factory):
        receiver = receiver_factory(
            answer=True, on_transfer=lambda: minted.transfer("bob", "dave", "t1")
        )
        minted.register_receiver("bob", receiver)
        outcome = minted.transfer_and_call("alice", "bob", "t1")
        minted.process_continuations()

        assert outcome.status == TransferStatus.SUPERSEDED
        assert minted.token("t1")["owner_id"] == "dave"

    def test_resolving_twice_changes_nothing(self, minted):
        minted.transfer_and_call("alice", "bob", "t1")
        [job] = minted.pending_transfers("t1")

        assert minted.resolve_transfer(job, True) is False
        assert minted.token("t1")["owner_id"] == "alice"
        events_before = len(minted.events)

        assert minted.resolve_transfer(job, False) is False
        assert minted.token("t1")["owner_id"] == "alice"
        assert len(minted.events) == events_before

    def test_processing_skips_already_resolved_job(self, minted, receiver_factory):
        receiver = receiver_factory(answer=True)
        minted.register_receiver("bob", receiver)
        minted.transfer_and_call("alice", "bob", "t1")
        [job] = minted.pending_transfers("t1")
        minted.resolve_transfer(job, False)

        minted.process_continuations()
        assert receiver.transfer_calls == []
        assert minted.token("t1")["owner_id"] == "bob"

    def test_refund_instruction_is_surfaced(self, minted, receiver_factory):
        minted.register_receiver(
            "bob", receiver_factory(answer={"return_token": False, "refund": {"alice": 5}})
        )
        outcome = minted.transfer_and_call("alice", "bob", "t1")
        minted.process_continuations()
        assert outcome.status == TransferStatus.CONFIRMED
        assert outcome.refund == {"alice": 5}
        assert outcome.to_dict()["refund"] == {"alice": 5}

    def test_validation_failure_schedules_nothing(self, minted):
        with pytest.raises(NotOwnerOrApprovedError):
            minted.transfer_and_call("dave", "bob", "t1")
        assert len(minted.continuations) == 0

    def test_transfer_and_confirm_alias(self, minted):
        outcome = minted.transfer_and_confirm("alice", "bob", "t1")
        assert outcome.status == TransferStatus.PENDING


@pytest.mark.parametrize(
    "response, accepted",
    [
        (False, True),
        (True, False),
        ("false", True),
        ("true", False),
        (b"false", True),
        ("not json", False),
        ({"return_token": False}, True),
        ({"return_token": "no"}, False),
        (None, False),
        (HOOK_FAILED, False),
        (0, False),
    ],
)
def test_interpret_receiver_response(response, accepted):
    assert interpret_receiver_response(response)[0] is accepted
