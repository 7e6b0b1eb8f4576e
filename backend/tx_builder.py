import base64
import hashlib
from typing import List, Optional

from borsh_construct import Bool, CStruct, Enum, Option, String, U16, U64, U8, Vec
from solders.instruction import AccountMeta, Instruction
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

DEFAULT_SYMBOL = "CAS"

TokenStandardLayout = Enum(
    "NonFungible" / CStruct(),
    "FungibleAsset" / CStruct(),
    "Fungible" / CStruct(),
    "NonFungibleEdition" / CStruct(),
    enum_name="TokenStandard",
)
TokenProgramVersionLayout = Enum(
    "Original" / CStruct(),
    "Token2022" / CStruct(),
    enum_name="TokenProgramVersion",
)
UseMethodLayout = Enum(
    "Burn" / CStruct(),
    "Multiple" / CStruct(),
    "Single" / CStruct(),
    enum_name="UseMethod",
)
CollectionLayout = CStruct("verified" / Bool, "key" / U8[32])
UsesLayout = CStruct("use_method" / UseMethodLayout, "remaining" / U64, "total" / U64)
CreatorLayout = CStruct("address" / U8[32], "verified" / Bool, "share" / U8)
MetadataArgsLayout = CStruct(
    "name" / String,
    "symbol" / String,
    "uri" / String,
    "seller_fee_basis_points" / U16,
    "primary_sale_happened" / Bool,
    "is_mutable" / Bool,
    "edition_nonce" / Option(U8),
    "token_standard" / Option(TokenStandardLayout),
    "collection" / Option(CollectionLayout),
    "uses" / Option(UsesLayout),
    "token_program_version" / TokenProgramVersionLayout,
    "creators" / Vec(CreatorLayout),
)


def sighash(name: str) -> bytes:
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]


def parse_requester(value: Optional[str]) -> Pubkey:
    if not value:
        raise InvalidInput("missing account")
    try:
        return Pubkey.from_string(value)
    except Exception as exc:  # noqa: BLE001
        raise InvalidInput("account is not a valid public key") from exc


def encode_mint_to_collection_v1(name: str, symbol: str, uri: str, collection: Pubkey) -> bytes:
    data = MetadataArgsLayout.build(
        {
            "name": name,
            "symbol": symbol,
            "uri": uri,
            "seller_fee_basis_points": 0,
            "primary_sale_happened": True,
            "is_mutable": True,
            "edition_nonce": None,
            "token_standard": TokenStandardLayout.enum.NonFungible(),
            # Bubblegum verifies the collection itself during the CPI.
            "collection": {"verified": False, "key": list(bytes(collection))},
            "uses": None,
            "token_program_version": TokenProgramVersionLayout.enum.Original(),
            "creators": [],
        }
    )
    return sighash("mint_to_collection_v1") + data


def build_mint_instruction(
    tree: Pubkey,
    collection: Pubkey,
    requester: Pubkey,
    authority: Pubkey,
    policy: MintPolicy,
    effective_uri: str,
) -> Instruction:
    derived = derive_mint_accounts(tree, collection)
    # Positional order of Bubblegum's MintToCollectionV1 accounts struct.
    accounts: List[AccountMeta] = [
        AccountMeta(pubkey=derived.tree_authority, is_signer=False, is_writable=True),
        AccountMeta(pubkey=requester, is_signer=False, is_writable=False),  # leaf owner
        AccountMeta(pubkey=requester, is_signer=False, is_writable=False),  # leaf delegate
        AccountMeta(pubkey=tree, is_signer=False, is_writable=True),
        AccountMeta(pubkey=requester, is_signer=True, is_writable=True),  # payer
        AccountMeta(pubkey=authority, is_signer=True, is_writable=False),  # tree delegate
        AccountMeta(pubkey=authority, is_signer=True, is_writable=False),  # collection authority
        # No delegate record: Bubblegum takes its own program id as "none".
        AccountMeta(pubkey=BUBBLEGUM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=collection, is_signer=False, is_writable=False),
        AccountMeta(pubkey=derived.collection_metadata, is_signer=False, is_writable=True),
        AccountMeta(pubkey=derived.collection_edition, is_signer=False, is_writable=False),
        AccountMeta(pubkey=derived.bubblegum_signer, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SPL_NOOP_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SPL_ACCOUNT_COMPRESSION_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=TOKEN_METADATA_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYS_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    data = encode_mint_to_collection_v1(policy.name, policy.symbol or DEFAULT_SYMBOL, effective_uri, collection)
    return Instruction(program_id=BUBBLEGUM_PROGRAM_ID, data=data, accounts=accounts)


def build_system_transfer_ix(sender: Pubkey, recipient: Pubkey, lamports: int) -> Instruction:
    # SystemProgram transfer: instruction = 2 (u32 LE) + lamports (u64 LE)
    data = (2).to_bytes(4, "little") + lamports.to_bytes(8, "little")
    accounts = [
        AccountMeta(pubkey=sender, is_signer=True, is_writable=True),
        AccountMeta(pubkey=recipient, is_signer=False, is_writable=True),
    ]
    return Instruction(program_id=SYS_PROGRAM_ID, data=data, accounts=accounts)


def encode_transaction(tx: Transaction) -> str:
    """Wire bytes as base64. Unsigned slots stay as zeroed signatures for the wallet to fill."""
    return base64.b64encode(bytes(tx)).decode()


def decode_transaction(tx_b64: str) -> Transaction:
    try:
        return Transaction.from_bytes(base64.b64decode(tx_b64, validate=True))
    except Exception as exc:  # noqa: BLE001
        raise InvalidInput("transaction is not valid base64 wire format") from exc
