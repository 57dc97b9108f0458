# adapters/chain/safe_proxy_factory.py
from __future__ import annotations

from typing import Optional, Sequence

from web3 import AsyncWeb3, Web3
from web3.contract import AsyncContract
from web3.contract.async_contract import AsyncContractFunction

from core.services.normalize import ZERO_ADDRESS


ABI_SAFE_SINGLETON = [
    {
        "name": "setup",
        "inputs": [
            {"internalType": "address[]", "name": "_owners", "type": "address[]"},
            {"internalType": "uint256", "name": "_threshold", "type": "uint256"},
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "bytes", "name": "data", "type": "bytes"},
            {"internalType": "address", "name": "fallbackHandler", "type": "address"},
            {"internalType": "address", "name": "paymentToken", "type": "address"},
            {"internalType": "uint256", "name": "payment", "type": "uint256"},
            {"internalType": "address payable", "name": "paymentReceiver", "type": "address"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


ABI_SAFE_PROXY_FACTORY = [
    {
        "name": "createProxyWithNonce",
        "inputs": [
            {"internalType": "address", "name": "_singleton", "type": "address"},
            {"internalType": "bytes", "name": "initializer", "type": "bytes"},
            {"internalType": "uint256", "name": "saltNonce", "type": "uint256"},
        ],
        "outputs": [{"internalType": "contract SafeProxy", "name": "proxy", "type": "address"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "name": "proxyCreationCode",
        "inputs": [],
        "outputs": [{"internalType": "bytes", "name": "", "type": "bytes"}],
        "stateMutability": "pure",
        "type": "function",
    },
]


# ---------------------------------------------------------------------------
# CREATE2 address math (pure, no RPC)
# ---------------------------------------------------------------------------


def _uint256(value: int) -> bytes:
    return int(value).to_bytes(32, "big")


def _address_bytes(address: str) -> bytes:
    return bytes.fromhex(Web3.to_checksum_address(address)[2:])


def compute_safe_proxy_salt(initializer: bytes, salt_nonce: int) -> bytes:
    """
    Salt used by SafeProxyFactory.createProxyWithNonce:
    keccak256(keccak256(initializer) ++ uint256(saltNonce)).
    """
    return bytes(Web3.keccak(bytes(Web3.keccak(initializer)) + _uint256(salt_nonce)))


def compute_create2_address(deployer: str, salt: bytes, init_code: bytes) -> str:
    if len(salt) != 32:
        raise ValueError("CREATE2 salt must be 32 bytes")
    digest = Web3.keccak(b"\xff" + _address_bytes(deployer) + salt + bytes(Web3.keccak(init_code)))
    return Web3.to_checksum_address(bytes(digest)[12:])


def predict_safe_address(
    *,
    proxy_factory: str,
    singleton: str,
    proxy_creation_code: bytes,
    initializer: bytes,
    salt_nonce: int,
) -> str:
    salt = compute_safe_proxy_salt(initializer, salt_nonce)
    deployment_data = bytes(proxy_creation_code) + _uint256(int(Web3.to_checksum_address(singleton), 16))
    return compute_create2_address(proxy_factory, salt, deployment_data)


# ---------------------------------------------------------------------------
# Contract wrappers
# ---------------------------------------------------------------------------


class SafeSingletonAdapter:
    """
    Encodes the Safe `setup` initializer. No state is read from the
    singleton itself.
    """

    def __init__(self, w3: AsyncWeb3, address: str, fallback_handler: str):
        if not address:
            raise RuntimeError("SafeSingletonAdapter: address not configured")
        self.address = Web3.to_checksum_address(address)
        self.fallback_handler = Web3.to_checksum_address(fallback_handler) if fallback_handler else ZERO_ADDRESS
        self.contract: AsyncContract = w3.eth.contract(address=self.address, abi=ABI_SAFE_SINGLETON)

    def encode_setup(self, owners: Sequence[str], threshold: int) -> bytes:
        data = self.contract.encode_abi(
            "setup",
            args=[
                [Web3.to_checksum_address(o) for o in owners],
                int(threshold),
                ZERO_ADDRESS,
                b"",
                self.fallback_handler,
                ZERO_ADDRESS,
                0,
                ZERO_ADDRESS,
            ],
        )
        return bytes(Web3.to_bytes(hexstr=data))


class SafeProxyFactoryAdapter:
    """
    Thin wrapper for the on-chain SafeProxyFactory.

    The proxy creation code never changes for a deployed factory, so it is
    fetched once per adapter.
    """

    def __init__(self, w3: AsyncWeb3, address: str):
        if not address:
            raise RuntimeError("SafeProxyFactoryAdapter: address not configured")
        self.address = Web3.to_checksum_address(address)
        self.contract: AsyncContract = w3.eth.contract(address=self.address, abi=ABI_SAFE_PROXY_FACTORY)
        self._creation_code: Optional[bytes] = None

    async def proxy_creation_code(self) -> bytes:
        if self._creation_code is None:
            self._creation_code = bytes(await self.contract.functions.proxyCreationCode().call())
        return self._creation_code

    # ---------------- fn builders (for AsyncTxService.send) ----------------

    def fn_create_proxy_with_nonce(self, singleton: str, initializer: bytes, salt_nonce: int) -> AsyncContractFunction:
        return self.contract.functions.createProxyWithNonce(
            Web3.to_checksum_address(singleton),
            initializer,
            int(salt_nonce),
        )

