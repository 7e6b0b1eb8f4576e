import base64

import pytest
from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from errors import InvalidInput
from pda import (
    BUBBLEGUM_PROGRAM_ID,
    SPL_ACCOUNT_COMPRESSION_PROGRAM_ID,
    SPL_NOOP_PROGRAM_ID,
    SYS_PROGRAM_ID,
    TOKEN_METADATA_PROGRAM_ID,
    derive_mint_accounts,
)
from policy_store import MintPolicy
from pricing import DEFAULT_COLLECTION, DEFAULT_TREE
from tx_builder import (
    DEFAULT_SYMBOL,
    build_mint_instruction,
    build_system_transfer_ix,
    decode_transaction,
    encode_transaction,
    parse_requester,
    sighash,
)

MINT_TO_COLLECTION_V1 = bytes([153, 18, 178, 47, 197, 158, 86, 15])


def borsh_string(value: str) -> bytes:
    raw = value.encode()
    return len(raw).to_bytes(4, "little") + raw


@pytest.fixture
def mint_ix(requester, authority):
    p = MintPolicy(name="Meetup", uri="https://example.com/a.json")
    return build_mint_instruction(
        DEFAULT_TREE, DEFAULT_COLLECTION, requester, authority.pubkey(), p, "https://example.com/a_late.json"
    )


class TestMintInstruction:
    def test_discriminator(self):
        assert sighash("mint_to_collection_v1") == MINT_TO_COLLECTION_V1

    def test_program_and_account_order(self, mint_ix, requester, authority):
        derived = derive_mint_accounts(DEFAULT_TREE, DEFAULT_COLLECTION)
        assert mint_ix.program_id == BUBBLEGUM_PROGRAM_ID
        assert [meta.pubkey for meta in mint_ix.accounts] == [
            derived.tree_authority,
            requester,
            requester,
            DEFAULT_TREE,
            requester,
            authority.pubkey(),
            authority.pubkey(),
            BUBBLEGUM_PROGRAM_ID,
            DEFAULT_COLLECTION,
            derived.collection_metadata,
            derived.collection_edition,
            derived.bubblegum_signer,
            SPL_NOOP_PROGRAM_ID,
            SPL_ACCOUNT_COMPRESSION_PROGRAM_ID,
            TOKEN_METADATA_PROGRAM_ID,
            SYS_PROGRAM_ID,
        ]

    def test_signers_and_writables(self, mint_ix):
        signers = [idx for idx, meta in enumerate(mint_ix.accounts) if meta.is_signer]
        writables = [idx for idx, meta in enumerate(mint_ix.accounts) if meta.is_writable]
        assert signers == [4, 5, 6]
        assert writables == [0, 3, 4, 9]

    def test_metadata_args_layout(self, mint_ix):
        expected = (
            MINT_TO_COLLECTION_V1
            + borsh_string("Meetup")
            + borsh_string(DEFAULT_SYMBOL)
            + borsh_string("https://example.com/a_late.json")
            + (0).to_bytes(2, "little")  # seller fee basis points
            + b"\x01"  # primary sale happened
            + b"\x01"  # is mutable
            + b"\x00"  # edition nonce: None
            + b"\x01\x00"  # token standard: Some(NonFungible)
            + b"\x01\x00" + bytes(DEFAULT_COLLECTION)  # collection: Some(unverified)
            + b"\x00"  # uses: None
            + b"\x00"  # token program version: Original
            + (0).to_bytes(4, "little")  # creators: []
        )
        assert bytes(mint_ix.data) == expected

    def test_policy_symbol_is_used(self, requester, authority):
        p = MintPolicy(name="Meetup", symbol="RBT", uri="u.json")
        ix = build_mint_instruction(DEFAULT_TREE, DEFAULT_COLLECTION, requester, authority.pubkey(), p, "u.json")
        assert borsh_string("RBT") in bytes(ix.data)


class TestTransfer:
    def test_system_transfer(self, requester, pay_to):
        ix = build_system_transfer_ix(requester, pay_to, 1_500_000_000)
        assert ix.program_id == SYS_PROGRAM_ID
        assert bytes(ix.data) == (2).to_bytes(4, "little") + (1_500_000_000).to_bytes(8, "little")
        assert ix.accounts[0].pubkey == requester and ix.accounts[0].is_signer
        assert ix.accounts[1].pubkey == pay_to and ix.accounts[1].is_writable


class TestEncoding:
    def test_round_trip_is_byte_identical(self, mint_ix, requester, authority):
        blockhash = Hash(bytes([9] * 32))
        tx = Transaction.new_unsigned(Message.new_with_blockhash([mint_ix], requester, blockhash))
        tx.partial_sign([authority], blockhash)
        encoded = encode_transaction(tx)
        decoded = decode_transaction(encoded)
        assert decoded == tx
        assert bytes(decoded) == base64.b64decode(encoded)
        assert encode_transaction(decoded) == encoded

    def test_decode_rejects_garbage(self):
        with pytest.raises(InvalidInput):
            decode_transaction("not base64!!")


class TestParseRequester:
    def test_valid(self, requester):
        assert parse_requester(str(requester)) == requester

    @pytest.mark.parametrize("value", [None, "", "0OIl", "abc"])
    def test_invalid(self, value):
        with pytest.raises(InvalidInput):
            parse_requester(value)

    def test_returns_pubkey(self, requester):
        assert isinstance(parse_requester(str(requester)), Pubkey)
