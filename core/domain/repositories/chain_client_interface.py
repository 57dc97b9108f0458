from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Protocol

from core.domain.entities.network_entity import NetworkConfig
from core.domain.entities.vault_entity import VaultCreationParameters


class ChainClient(Protocol):
    """
    Network-scoped access to the Safe contract-creation primitive.

    Implementations live in the adapters layer (web3.py); the executor only
    relies on this surface.
    """

    @property
    def deployer_address(self) -> str:
        ...

    async def predict_address(self, params: VaultCreationParameters) -> str:
        ...

    async def code_exists_at(self, address: str) -> bool:
        ...

    async def get_native_balance(self, account: str) -> int:
        ...

    async def submit_creation(self, params: VaultCreationParameters) -> str:
        """
        Sign and broadcast the creation tx; returns the tx hash.
        """
        ...

    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> Optional[Dict[str, Any]]:
        """
        Receipt as a plain dict, or None when none arrived within `timeout`.
        """
        ...


ChainClientFactory = Callable[[NetworkConfig], ChainClient]
