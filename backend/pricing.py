import logging
import posixpath
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from solders.pubkey import Pubkey

from errors import MintUnavailable
from policy_store import LAMPORTS_PER_SOL, MintPolicy, sol_to_lamports  # noqa: F401

logger = logging.getLogger("cnft_mint")

DEFAULT_COLLECTION = Pubkey.from_string("3XfkDtSZZ586DztsjeVpTV3TLMYHRci2tkwTBoGzFvfz")
DEFAULT_COLLECTION_PRICE = 0  # SOL
DEFAULT_TREE = Pubkey.from_string("ERkzt2Zyau5nnSf877FCQNzQRRxW5xaMJEt4DQhYX97T")
DEFAULT_PAY_TO = Pubkey.from_string("E8aGNJNdoexXAfKTLyvt4HSfpZ1YgeGAgpnQhcXPSGpD")

EARLY_URI_SUFFIX = "_legendary"
LATE_URI_SUFFIX = "_late"
METADATA_EXT = ".json"


@dataclass(frozen=True)
class EffectiveMintParameters:
    uri: str
    message_suffix: str
    window: Optional[str]  # "early", "late" or None
    tree: Pubkey
    collection: Pubkey
    price: float  # SOL
    price_lamports: int
    pay_to: Pubkey
    fee_payer: Pubkey


def insert_uri_suffix(uri: str, suffix: str) -> str:
    if not suffix:
        return uri
    if METADATA_EXT in uri:
        return uri.replace(METADATA_EXT, suffix + METADATA_EXT, 1)
    head, sep, tail = uri.rpartition("/")
    stem, ext = posixpath.splitext(tail)
    return f"{head}{sep}{stem}{suffix}{ext}"


def resolve_window(policy: MintPolicy, now: datetime) -> Tuple[str, str, Optional[str]]:
    """Return (uri_suffix, message_suffix, window) for ``now``.

    Early is checked first and late second, so a policy whose thresholds are
    both met ends up late.
    """
    now = as_utc(now)
    uri_suffix, message_suffix, window = "", "", None
    if policy.early_before is not None and now < policy.early_before:
        uri_suffix, message_suffix, window = EARLY_URI_SUFFIX, " early", "early"
    if policy.late_after is not None and now > policy.late_after:
        uri_suffix, message_suffix, window = LATE_URI_SUFFIX, " late", "late"
    return uri_suffix, message_suffix, window


def default_price_for_collection(collection: Pubkey) -> float:
    if collection == DEFAULT_COLLECTION:
        return DEFAULT_COLLECTION_PRICE
    return 0


def as_utc(now: datetime) -> datetime:
    # Naive clocks are read as UTC, like bare dates in the policy table.
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def check_available(policy: MintPolicy, now: datetime) -> None:
    now = as_utc(now)
    if policy.disabled:
        raise MintUnavailable("Mint is disabled")
    if policy.release_date is not None and now < policy.release_date:
        raise MintUnavailable("Mint has not been released yet")


def evaluate(
    policy: MintPolicy,
    now: datetime,
    requester: Pubkey,
    authority: Pubkey,
    tag: Optional[str] = None,
) -> EffectiveMintParameters:
    uri_suffix, message_suffix, window = resolve_window(policy, now)
    if window:
        logger.info("mint_window tag=%s window=%s", tag, window)
    collection = Pubkey.from_string(policy.collection) if policy.collection else DEFAULT_COLLECTION
    price = policy.price if policy.price is not None else default_price_for_collection(collection)
    return EffectiveMintParameters(
        uri=insert_uri_suffix(policy.uri, uri_suffix),
        message_suffix=message_suffix,
        window=window,
        tree=Pubkey.from_string(policy.tree) if policy.tree else DEFAULT_TREE,
        collection=collection,
        price=price,
        price_lamports=sol_to_lamports(price),
        pay_to=Pubkey.from_string(policy.pay_to) if policy.pay_to else DEFAULT_PAY_TO,
        fee_payer=authority if policy.cover_fees else requester,
    )
