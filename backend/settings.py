import json
from typing import Optional

from pydantic_settings import BaseSettings
from solders.keypair import Keypair

from errors import ConfigurationError

DEFAULT_MINT_ICON = "https://shdw-drive.genesysgo.net/BBayKe9v2acgiM6LpEio9dA1nxHHg2S6UsYrZuTVxZZL/POA_rb_test.png"


class Settings(BaseSettings):
    solana_rpc: str = "https://api.devnet.solana.com"
    checkpoint_timeout_seconds: float = 10.0
    authority_key: Optional[str] = None  # JSON byte array, same format as a solana-keygen file
    policy_file: str = "data/cnfts.json"
    mint_label: str = "RB Minter"
    mint_icon: str = DEFAULT_MINT_ICON
    get_as_post: bool = False  # debug: GET /mint/{tag}?account=... builds a transaction

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


def load_authority_keypair(raw: Optional[str]) -> Keypair:
    """Parse the authority secret key from its JSON form.

    Accepts a bare 64-byte array or an object with a ``secretKey`` array.
    Error messages never echo the key material.
    """
    if not raw:
        raise ConfigurationError("AUTHORITY_KEY not configured")
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise ConfigurationError("AUTHORITY_KEY is not valid JSON") from exc
    if isinstance(data, list):
        secret_bytes = data
    elif isinstance(data, dict) and "secretKey" in data:
        secret_bytes = data["secretKey"]
    else:
        raise ConfigurationError("Unsupported AUTHORITY_KEY format")
    try:
        return Keypair.from_bytes(bytes(secret_bytes))
    except Exception as exc:  # noqa: BLE001
        raise ConfigurationError("AUTHORITY_KEY is not a valid keypair") from exc
