from datetime import datetime, timezone

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from assembler import MintTransactionAssembler
from errors import CheckpointUnavailable
from policy_store import parse_policies

TEST_BLOCKHASH = Hash(bytes([7] * 32))
PAY_TO = "E8aGNJNdoexXAfKTLyvt4HSfpZ1YgeGAgpnQhcXPSGpD"


class FakeCheckpointSource:
    def __init__(self, blockhash: Hash = TEST_BLOCKHASH, fail: bool = False):
        self.blockhash = blockhash
        self.fail = fail
        self.calls = 0

    async def latest_blockhash(self) -> Hash:
        self.calls += 1
        if self.fail:
            raise CheckpointUnavailable("rpc down")
        return self.blockhash


@pytest.fixture
def authority():
    return Keypair.from_seed(bytes([1] * 32))


@pytest.fixture
def requester():
    return Keypair.from_seed(bytes([2] * 32)).pubkey()


@pytest.fixture
def now():
    return datetime(2023, 5, 20, 20, 0, tzinfo=timezone.utc)


@pytest.fixture
def checkpoints():
    return FakeCheckpointSource()


@pytest.fixture
def assembler(authority, checkpoints):
    return MintTransactionAssembler(authority, checkpoints)


@pytest.fixture
def store():
    return parse_policies(
        {
            "plain": {"name": "Plain", "uri": "https://example.com/a.json"},
            "paid": {"name": "Paid", "uri": "https://example.com/a.json", "price": 1, "payTo": PAY_TO},
            "sponsored": {"name": "Sponsored", "uri": "https://example.com/a.json", "coverFees": True},
            "closed": {"name": "Closed", "uri": "https://example.com/a.json", "disabled": True},
        }
    )


@pytest.fixture
def pay_to():
    return Pubkey.from_string(PAY_TO)
