from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3
from web3.contract.async_contract import AsyncContractFunction
from web3.exceptions import TimeExhausted

from core.domain.enums.deployment_enums import GasStrategy
from core.services.utils import to_json_safe

logger = logging.getLogger(__name__)

# used when the node refuses to estimate (e.g. a revert it cannot explain)
FALLBACK_GAS_LIMIT = 500_000


class AsyncTxService:
    """
    Transaction sender for the agent account on one network.

    Responsibilities:
    - Build and sign contract calls.
    - Apply the gas padding strategy.
    - Fill legacy gasPrice when no EIP-1559 fields were given.
    - Broadcast and (separately) wait for the receipt.
    """

    def __init__(self, w3: AsyncWeb3, private_key: str):
        if not private_key:
            raise RuntimeError("AsyncTxService: AGENT_PRIVATE_KEY not configured")
        self.w3 = w3
        self.account: LocalAccount = Account.from_key(private_key)

    def sender_address(self) -> str:
        return self.account.address

    # ---------- internal helpers ----------

    async def _next_nonce(self) -> int:
        return await self.w3.eth.get_transaction_count(self.account.address, "pending")

    async def _estimate_with_strategy(self, tx: dict, strategy: GasStrategy) -> int:
        """
        Calls estimateGas(tx) and applies a safety buffer depending on strategy.
        Falls back to a static limit if node estimation fails.
        """
        try:
            base_estimate = int(await self.w3.eth.estimate_gas(tx))
        except Exception as exc:
            logger.warning("estimate_gas failed, using %d: %s", FALLBACK_GAS_LIMIT, exc)
            base_estimate = FALLBACK_GAS_LIMIT

        if strategy == GasStrategy.BUFFERED:
            return int(base_estimate * 1.25) + 10_000
        if strategy == GasStrategy.AGGRESSIVE:
            return int(base_estimate * 1.5) + 25_000
        return base_estimate

    async def _finalize_fee_fields(self, tx: dict) -> dict:
        if "maxFeePerGas" in tx or "maxPriorityFeePerGas" in tx:
            return tx
        if "gasPrice" not in tx:
            tx["gasPrice"] = await self.w3.eth.gas_price
        return tx

    async def _sign_and_send(self, tx: dict) -> str:
        signed = self.account.sign_transaction(tx)
        txh = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(txh)

    # ---------- public API ----------

    async def send(
        self,
        fn: AsyncContractFunction,
        *,
        value: int = 0,
        gas_limit: Optional[int] = None,
        gas_strategy: GasStrategy = GasStrategy.BUFFERED,
    ) -> str:
        """
        Broadcasts a state-changing call and returns its tx hash without
        waiting for it to be mined.
        """
        tx = await fn.build_transaction(
            {
                "from": self.account.address,
                "nonce": await self._next_nonce(),
                "value": int(value or 0),
            }
        )

        if gas_limit is not None:
            tx["gas"] = int(gas_limit)
        else:
            tx["gas"] = await self._estimate_with_strategy(tx, GasStrategy(gas_strategy))

        tx = await self._finalize_fee_fields(tx)
        tx_hash = await self._sign_and_send(tx)
        logger.info("tx broadcast from %s gas=%s hash=%s", self.account.address, tx["gas"], tx_hash)
        return tx_hash

    async def wait_receipt(self, tx_hash: str, timeout: float) -> Optional[Dict[str, Any]]:
        """
        Receipt as a JSON-safe dict, or None when it did not arrive in time.
        """
        try:
            rcpt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted:
            return None
        return to_json_safe(dict(rcpt))
