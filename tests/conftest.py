"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add src to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(src_path))

import pytest

from rodt.core.config import Config
from rodt.core.contracts import RodtContract


@pytest.fixture
def config():
    """Config with a small page size so paging is easy to exercise."""
    return Config(default_page_limit=50, max_page_limit=100, max_len_payout=10)


@pytest.fixture
def contract(config):
    """In-memory contract owned by ``forge``."""
    return RodtContract(owner_id="forge", config=config)


@pytest.fixture
def minted(contract):
    """Contract holding token ``t1`` owned by alice."""
    contract.mint("forge", "alice", {"issuer_name": "cableguard"}, token_id="t1")
    return contract


class Receiver:
    """Scripted ``nft_on_transfer`` / ``nft_on_approve`` implementation."""

    def __init__(self, answer=False, on_transfer=None):
        self.answer = answer
        self.on_transfer = on_transfer
        self.transfer_calls = []
        self.approve_calls = []

    def nft_on_transfer(self, sender_id, previous_owner_id, token_id, msg):
        self.transfer_calls.append((sender_id, previous_owner_id, token_id, msg))
        if self.on_transfer is not None:
            self.on_transfer()
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer

    def nft_on_approve(self, token_id, owner_id, approval_id, msg):
        self.approve_calls.append((token_id, owner_id, approval_id, msg))


@pytest.fixture
def receiver_factory():
    return Receiver
