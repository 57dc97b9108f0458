# adapters/chain/safe_chain_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from web3 import AsyncWeb3, Web3

from adapters.chain.safe_proxy_factory import (
    SafeProxyFactoryAdapter,
    SafeSingletonAdapter,
    predict_safe_address,
)
from config import get_settings
from core.domain.entities.network_entity import NetworkConfig
from core.domain.entities.vault_entity import VaultCreationParameters
from core.domain.enums.deployment_enums import GasStrategy
from core.services.tx_service import AsyncTxService
from core.services.web3_cache import get_async_web3

logger = logging.getLogger(__name__)

_CLIENTS: Dict[Tuple[str, str], "Web3SafeChainClient"] = {}


class Web3SafeChainClient:
    """
    ChainClient backed by web3.py for one network.

    Address prediction is computed locally from the factory's proxy
    creation code, so it matches what createProxyWithNonce would deploy
    without sending anything.
    """

    def __init__(
        self,
        *,
        network: NetworkConfig,
        w3: AsyncWeb3,
        private_key: str,
        singleton_address: str,
        proxy_factory_address: str,
        fallback_handler_address: str,
        gas_strategy: GasStrategy = GasStrategy.BUFFERED,
    ):
        self.network = network
        self.w3 = w3
        self.singleton = SafeSingletonAdapter(w3, singleton_address, fallback_handler_address)
        self.factory = SafeProxyFactoryAdapter(w3, proxy_factory_address)
        self.tx = AsyncTxService(w3, private_key)
        self.gas_strategy = GasStrategy(gas_strategy)

    @classmethod
    def from_settings(cls, network: NetworkConfig) -> "Web3SafeChainClient":
        s = get_settings()
        return cls(
            network=network,
            w3=get_async_web3(network.rpc),
            private_key=s.AGENT_PRIVATE_KEY,
            singleton_address=s.SAFE_SINGLETON_ADDRESS,
            proxy_factory_address=s.SAFE_PROXY_FACTORY_ADDRESS,
            fallback_handler_address=s.SAFE_FALLBACK_HANDLER_ADDRESS,
            gas_strategy=GasStrategy(s.GAS_STRATEGY),
        )

    @property
    def deployer_address(self) -> str:
        return self.tx.sender_address()

    def _initializer(self, params: VaultCreationParameters) -> bytes:
        return self.singleton.encode_setup(params.owners, params.threshold)

    async def predict_address(self, params: VaultCreationParameters) -> str:
        return predict_safe_address(
            proxy_factory=self.factory.address,
            singleton=self.singleton.address,
            proxy_creation_code=await self.factory.proxy_creation_code(),
            initializer=self._initializer(params),
            salt_nonce=params.salt_nonce_int,
        )

    async def code_exists_at(self, address: str) -> bool:
        code = await self.w3.eth.get_code(Web3.to_checksum_address(address))
        return len(bytes(code)) > 0

    async def get_native_balance(self, account: str) -> int:
        return int(await self.w3.eth.get_balance(Web3.to_checksum_address(account)))

    async def submit_creation(self, params: VaultCreationParameters) -> str:
        fn = self.factory.fn_create_proxy_with_nonce(
            self.singleton.address,
            self._initializer(params),
            params.salt_nonce_int,
        )
        logger.info(
            "Submitting createProxyWithNonce on %s (owners=%d threshold=%d)",
            self.network.key,
            len(params.owners),
            params.threshold,
        )
        return await self.tx.send(fn, gas_strategy=self.gas_strategy)

    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> Optional[Dict[str, Any]]:
        return await self.tx.wait_receipt(tx_hash, timeout)


def get_chain_client(network: NetworkConfig) -> Web3SafeChainClient:
    """
    One client per (network, rpc) for the life of the process, so the
    factory's proxy creation code is read once per network.
    """
    key = (network.key, network.rpc)
    client = _CLIENTS.get(key)
    if client is None:
        client = Web3SafeChainClient.from_settings(network)
        _CLIENTS[key] = client
        logger.info("Chain client ready for %s", network.key)
    return client
