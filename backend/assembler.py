import logging
from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from policy_store import MintPolicy
from pricing import evaluate
from tx_builder import build_mint_instruction, build_system_transfer_ix

logger = logging.getLogger("cnft_mint")


class CheckpointSource(Protocol):
    async def latest_blockhash(self) -> Hash:
        ...


class MintTransactionAssembler:
    """Builds the partially signed mint transaction for one request.

    The authority keypair (tree delegate and collection authority) is handed in
    at construction; the blockhash fetch is the only I/O.
    """

    def __init__(self, authority: Keypair, checkpoints: CheckpointSource):
        self.authority = authority
        self.checkpoints = checkpoints

    async def assemble(
        self,
        requester: Pubkey,
        policy: MintPolicy,
        now: datetime,
        tag: Optional[str] = None,
    ) -> Tuple[Transaction, str]:
        authority_pub = self.authority.pubkey()
        params = evaluate(policy, now, requester, authority_pub, tag=tag)

        instructions: List[Instruction] = [
            build_mint_instruction(params.tree, params.collection, requester, authority_pub, policy, params.uri)
        ]
        if params.price_lamports > 0:
            instructions.append(build_system_transfer_ix(requester, params.pay_to, params.price_lamports))

        blockhash = await self.checkpoints.latest_blockhash()
        draft = Transaction.new_unsigned(Message.new_with_blockhash(instructions, params.fee_payer, blockhash))
        # Round-trip through the wire format so the signature covers exactly the
        # account ordering the wallet will see.
        tx = Transaction.from_bytes(bytes(draft))
        tx.partial_sign([self.authority], blockhash)

        logger.info(
            "mint_built tag=%s instructions=%s fee_payer=%s lamports=%s",
            tag,
            len(instructions),
            params.fee_payer,
            params.price_lamports,
        )
        return tx, f"minting {policy.name}{params.message_suffix}"
