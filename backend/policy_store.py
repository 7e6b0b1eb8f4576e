import json
import math
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from solders.pubkey import Pubkey

from errors import ConfigurationError, NotFound

LAMPORTS_PER_SOL = 1_000_000_000
MAX_LAMPORTS = 2**64 - 1  # transfer amounts are u64


def sol_to_lamports(sol) -> int:
    # str() first so 0.01 scales to exactly 10_000_000
    return int((Decimal(str(sol)) * LAMPORTS_PER_SOL).to_integral_value())


class MintPolicy(BaseModel):
    """One entry of the mint table, keyed by tag. JSON keys follow the camelCase file format."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    uri: str
    symbol: Optional[str] = None
    collection: Optional[str] = None
    cover_fees: bool = Field(default=False, alias="coverFees")
    price: Optional[float] = None  # SOL
    pay_to: Optional[str] = Field(default=None, alias="payTo")
    tree: Optional[str] = None
    release_date: Optional[datetime] = Field(default=None, alias="releaseDate")
    disabled: bool = False
    early_before: Optional[datetime] = Field(default=None, alias="earlyBefore")
    late_after: Optional[datetime] = Field(default=None, alias="lateAfter")
    image: Optional[str] = None
    current: bool = False

    @field_validator("collection", "pay_to", "tree")
    @classmethod
    def _check_pubkey(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            Pubkey.from_string(value)
        except Exception as exc:  # noqa: BLE001
            raise ValueError(f"not a valid pubkey: {value}") from exc
        return value

    @field_validator("release_date", "early_before", "late_after")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Bare dates in the table are UTC.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("price")
    @classmethod
    def _check_price(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return value
        if not math.isfinite(value) or value < 0:
            raise ValueError("price must be a finite, non-negative SOL amount")
        if sol_to_lamports(value) > MAX_LAMPORTS:
            raise ValueError("price does not fit in a u64 lamport amount")
        return value


class PolicyStore(Mapping):
    """Read-only tag -> MintPolicy table, loaded once per process."""

    def __init__(self, policies: Mapping[str, MintPolicy]):
        self._policies = MappingProxyType(dict(policies))

    def __getitem__(self, tag: str) -> MintPolicy:
        return self._policies[tag]

    def __iter__(self) -> Iterator[str]:
        return iter(self._policies)

    def __len__(self) -> int:
        return len(self._policies)

    def resolve(self, tag: str) -> MintPolicy:
        policy = self._policies.get(tag)
        if policy is None:
            raise NotFound(f"Unknown mint tag: {tag}")
        return policy

    def current_policy(self) -> Optional[MintPolicy]:
        """Return the first policy flagged ``current``.

        The table does not enforce a single current entry; when several are
        flagged, which one is returned is not part of the contract.
        """
        for policy in self._policies.values():
            if policy.current:
                return policy
        return None


def parse_policies(raw: Dict[str, dict]) -> PolicyStore:
    if not isinstance(raw, dict):
        raise ConfigurationError("Policy table must be a JSON object keyed by tag")
    policies: Dict[str, MintPolicy] = {}
    for tag, entry in raw.items():
        try:
            policies[tag] = MintPolicy.model_validate(entry)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid policy for tag {tag}: {exc}") from exc
    return PolicyStore(policies)


def load_policy_store(path: Union[str, Path]) -> PolicyStore:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Failed to read policy file {path}: {exc}") from exc
    return parse_policies(raw)
