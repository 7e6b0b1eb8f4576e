import asyncio
import logging

from solana.rpc.async_api import AsyncClient
from solders.hash import Hash

from errors import CheckpointUnavailable

logger = logging.getLogger("cnft_mint")


class RpcCheckpointSource:
    """Latest-blockhash lookup against a Solana RPC node, bounded by ``timeout`` seconds."""

    def __init__(self, endpoint: str, timeout: float = 10.0):
        self.endpoint = endpoint
        self.timeout = timeout

    async def latest_blockhash(self) -> Hash:
        try:
            return await asyncio.wait_for(self._fetch(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("blockhash_fetch_timeout rpc=%s timeout=%s", self.endpoint, self.timeout)
            raise CheckpointUnavailable("Timed out fetching blockhash") from exc
        except CheckpointUnavailable:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("blockhash_fetch_failed rpc=%s error=%s", self.endpoint, exc, exc_info=True)
            raise CheckpointUnavailable("Failed to fetch blockhash") from exc

    async def _fetch(self) -> Hash:
        async with AsyncClient(self.endpoint, timeout=self.timeout) as client:
            resp = await client.get_latest_blockhash()
        if resp.value is None:
            raise CheckpointUnavailable("RPC returned no blockhash")
        return resp.value.blockhash
