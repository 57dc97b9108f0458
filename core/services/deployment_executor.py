from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Dict, Optional, TypeVar

from core.domain.entities.network_entity import NetworkConfig
from core.domain.entities.vault_entity import NetworkDeploymentRecord, VaultCreationParameters
from core.domain.enums.deployment_enums import DeploymentStatus
from core.domain.repositories.chain_client_interface import ChainClient, ChainClientFactory
from core.services.exceptions import (
    ChainRpcError,
    ConfirmationFailedError,
    ConfirmationTimeoutError,
    InsufficientFundsError,
    SubmissionError,
    VaultServiceError,
    VerificationFailedError,
)
from core.services.network_registry import NetworkRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

# extra time granted on top of the client-side receipt timeout before the
# attempt is abandoned
_RECEIPT_GRACE_SEC = 10.0


class NetworkDeploymentExecutor:
    """
    Runs one vault deployment attempt against one network.

    Steps (each may fail with a typed error carrying the network key):

    1) resolve the network
    2) predict the CREATE2 address
    3) short-circuit if code already exists there (idempotent re-runs)
    4) optionally require a non-zero deployer balance
    5) submit the proxy creation tx
    6) wait for one confirmation
    7) re-check that code now exists at the predicted address

    Nothing is persisted and nothing is retried here.
    """

    def __init__(
        self,
        *,
        registry: NetworkRegistry,
        client_factory: ChainClientFactory,
        confirmation_timeout_sec: float = 180.0,
        require_funding: bool = True,
    ) -> None:
        self.registry = registry
        self.client_factory = client_factory
        self.confirmation_timeout_sec = float(confirmation_timeout_sec)
        self.require_funding = bool(require_funding)

    async def execute(self, network_key: str, params: VaultCreationParameters) -> NetworkDeploymentRecord:
        network = self.registry.resolve(network_key)
        key = network.key
        client = self.client_factory(network)
        logger.info("Deploying vault on %s (%s)", network.name, key)

        address = await self._read(key, "predict address", client.predict_address(params))
        logger.info("Predicted vault address on %s: %s", key, address)

        if await self._read(key, "read code", client.code_exists_at(address)):
            logger.info("Vault already exists at %s on %s", address, key)
            return NetworkDeploymentRecord(
                network_key=key,
                chain_id=network.chain_id,
                address=address,
                deployment_status=DeploymentStatus.DEPLOYED,
                explorer_url=network.explorer_address_url(address),
                is_existing=True,
            )

        if self.require_funding:
            await self._check_funding(client, network)

        try:
            tx_hash = await client.submit_creation(params)
        except VaultServiceError:
            raise
        except Exception as exc:
            raise SubmissionError(key, f"Failed to submit creation tx on {key}: {exc}") from exc
        logger.info("Creation tx sent on %s: %s", key, tx_hash)

        receipt = await self._await_receipt(client, key, tx_hash)
        if int(receipt.get("status", 0) or 0) != 1:
            raise ConfirmationFailedError(key, tx_hash=tx_hash, receipt=receipt)
        logger.info("Creation tx confirmed on %s in block %s", key, receipt.get("blockNumber"))

        if not await self._read(key, "read code", client.code_exists_at(address)):
            raise VerificationFailedError(key, address=address, tx_hash=tx_hash)

        return NetworkDeploymentRecord(
            network_key=key,
            chain_id=network.chain_id,
            address=address,
            deployment_status=DeploymentStatus.DEPLOYED,
            tx_hash=tx_hash,
            block_number=_opt_int(receipt.get("blockNumber")),
            gas_used=_opt_int(receipt.get("gasUsed")),
            gas_price=_opt_int(receipt.get("effectiveGasPrice")),
            explorer_url=network.explorer_address_url(address),
            is_existing=False,
        )

    async def _check_funding(self, client: ChainClient, network: NetworkConfig) -> None:
        account = client.deployer_address
        balance = await self._read(network.key, "read balance", client.get_native_balance(account))
        logger.info(
            "Deployer balance on %s: %s wei %s",
            network.key,
            balance,
            network.currency.symbol,
        )
        if int(balance) <= 0:
            raise InsufficientFundsError(network.key, account=account, symbol=network.currency.symbol)

    async def _read(self, network_key: str, what: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except VaultServiceError:
            raise
        except Exception as exc:
            raise ChainRpcError(network_key, f"Failed to {what} on {network_key}: {exc}") from exc

    async def _await_receipt(self, client: ChainClient, network_key: str, tx_hash: str) -> Dict[str, Any]:
        timeout = self.confirmation_timeout_sec
        try:
            receipt: Optional[Dict[str, Any]] = await asyncio.wait_for(
                client.wait_for_receipt(tx_hash, timeout),
                timeout=timeout + _RECEIPT_GRACE_SEC,
            )
        except TimeoutError as exc:
            raise ConfirmationTimeoutError(network_key, tx_hash=tx_hash, timeout_sec=timeout) from exc

        if receipt is None:
            raise ConfirmationTimeoutError(network_key, tx_hash=tx_hash, timeout_sec=timeout)
        return receipt


def _opt_int(v: Any) -> Optional[int]:
    if v is None or v == "":
        return None
    if isinstance(v, str) and v.startswith("0x"):
        return int(v, 16)
    return int(v)
