from dataclasses import dataclass
from typing import Sequence, Tuple

from solders.pubkey import Pubkey

from errors import DerivationExhausted, InvalidInput

SYS_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
BUBBLEGUM_PROGRAM_ID = Pubkey.from_string("BGUMAp9Gq7iTEuizy4pqaxsTyUCBK68MDfK752saRPUY")
TOKEN_METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")
SPL_NOOP_PROGRAM_ID = Pubkey.from_string("noopb9bkMVfRPU8AsbpTUg8AQkHtKwMYZiFUjNRtMmV")
SPL_ACCOUNT_COMPRESSION_PROGRAM_ID = Pubkey.from_string("cmtDvXumGCrqC1Age74AVPhSRVXJMd8PJS91L8KbNCK")

MAX_SEEDS = 16
MAX_SEED_LEN = 32
METADATA_SEED = b"metadata"
EDITION_SEED = b"edition"
COLLECTION_CPI_SEED = b"collection_cpi"


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
    return Pubkey.create_program_address(list(seeds), program_id)


def derive(program_id: Pubkey, seeds: Sequence[bytes]) -> Tuple[Pubkey, int]:
    """Find the program-derived address for ``seeds`` under ``program_id``.

    Tries bump seeds from 255 down to 1 and returns the first one for which
    ``create_program_address`` yields an off-curve address, together with the
    bump. Same result as ``Pubkey.find_program_address``.
    """
    if len(seeds) > MAX_SEEDS - 1:
        # One slot is reserved for the bump.
        raise InvalidInput(f"Too many seeds: {len(seeds)}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise InvalidInput(f"Seed longer than {MAX_SEED_LEN} bytes")
    base = [bytes(seed) for seed in seeds]
    for bump in range(255, 0, -1):
        try:
            return create_program_address(base + [bytes([bump])], program_id), bump
        except Exception:  # noqa: BLE001
            # Address landed on the curve; try the next bump.
            continue
    raise DerivationExhausted(f"No viable bump seed for program {program_id}")


def tree_authority_pda(tree: Pubkey) -> Pubkey:
    return derive(BUBBLEGUM_PROGRAM_ID, [bytes(tree)])[0]


def collection_metadata_pda(collection_mint: Pubkey) -> Pubkey:
    return derive(
        TOKEN_METADATA_PROGRAM_ID,
        [METADATA_SEED, bytes(TOKEN_METADATA_PROGRAM_ID), bytes(collection_mint)],
    )[0]


def collection_edition_pda(collection_mint: Pubkey) -> Pubkey:
    return derive(
        TOKEN_METADATA_PROGRAM_ID,
        [METADATA_SEED, bytes(TOKEN_METADATA_PROGRAM_ID), bytes(collection_mint), EDITION_SEED],
    )[0]


def bubblegum_signer_pda() -> Pubkey:
    return derive(BUBBLEGUM_PROGRAM_ID, [COLLECTION_CPI_SEED])[0]


@dataclass(frozen=True)
class MintAccounts:
    tree_authority: Pubkey
    collection_metadata: Pubkey
    collection_edition: Pubkey
    bubblegum_signer: Pubkey


def derive_mint_accounts(tree: Pubkey, collection_mint: Pubkey) -> MintAccounts:
    return MintAccounts(
        tree_authority=tree_authority_pda(tree),
        collection_metadata=collection_metadata_pda(collection_mint),
        collection_edition=collection_edition_pda(collection_mint),
        bubblegum_signer=bubblegum_signer_pda(),
    )
