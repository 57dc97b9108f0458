from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest
from web3 import Web3

from core.domain.entities.network_entity import NetworkConfig
from core.domain.entities.vault_entity import UserInfo, VaultCreationParameters, VaultRecord
from core.domain.repositories.vault_record_repository_interface import VaultRecordRepositoryInterface
from core.domain.schemas.deployment_types import VaultQuery
from core.services.attempt_guard import DeploymentAttemptGuard
from core.services.deployment_executor import NetworkDeploymentExecutor
from core.services.network_registry import NetworkRegistry
from core.use_cases.vault_deployment_usecase import VaultDeploymentUseCase

USER_WALLET = "0x1111111111111111111111111111111111111111"
AGENT_ADDRESS = "0x2222222222222222222222222222222222222222"
OTHER_ADDRESS = "0x3333333333333333333333333333333333333333"


def predicted_address(params: VaultCreationParameters) -> str:
    seed = f"{','.join(params.owners)}|{params.threshold}|{params.salt_nonce}"
    return Web3.to_checksum_address(bytes(Web3.keccak(text=seed))[12:])


class FakeChainClient:
    """
    In-memory stand-in for one network.

    `fail_on` injects a failure at one step: "predict", "balance",
    "submit", "timeout", "revert" or "verify". When `gate` is set,
    submission blocks until the event fires.
    """

    def __init__(self, network: NetworkConfig) -> None:
        self.network = network
        self.deployer_address = AGENT_ADDRESS
        self.balance = 10**18
        self.code: set = set()
        self.submissions = 0
        self.fail_on: Optional[str] = None
        self.address_override: Optional[str] = None
        self.gate: Optional[asyncio.Event] = None

    async def predict_address(self, params: VaultCreationParameters) -> str:
        if self.fail_on == "predict":
            raise ConnectionError("rpc unreachable")
        return self.address_override or predicted_address(params)

    async def code_exists_at(self, address: str) -> bool:
        return address.lower() in self.code

    async def get_native_balance(self, account: str) -> int:
        if self.fail_on == "balance":
            raise ConnectionError("rpc unreachable")
        return self.balance

    async def submit_creation(self, params: VaultCreationParameters) -> str:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_on == "submit":
            raise ConnectionError("nonce too low")
        self.submissions += 1
        if self.fail_on not in ("revert", "verify"):
            address = self.address_override or predicted_address(params)
            self.code.add(address.lower())
        return "0x" + f"{self.submissions:064x}"

    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> Optional[Dict[str, Any]]:
        if self.fail_on == "timeout":
            return None
        return {
            "status": 0 if self.fail_on == "revert" else 1,
            "blockNumber": 123,
            "gasUsed": 250_000,
            "effectiveGasPrice": "0x3b9aca00",
        }


class FakeClientFactory:
    """
    ChainClientFactory that keeps one FakeChainClient per network so
    on-chain state survives across executor calls.
    """

    def __init__(self, registry: NetworkRegistry) -> None:
        self.registry = registry
        self.clients: Dict[str, FakeChainClient] = {}

    def __call__(self, network: NetworkConfig) -> FakeChainClient:
        return self.client(network.key)

    def client(self, network_key: str) -> FakeChainClient:
        if network_key not in self.clients:
            self.clients[network_key] = FakeChainClient(self.registry.resolve(network_key))
        return self.clients[network_key]

    def total_submissions(self) -> int:
        return sum(c.submissions for c in self.clients.values())


class InMemoryVaultRepository(VaultRecordRepositoryInterface):
    """
    Dict-backed store; documents go through to_mongo/from_mongo so tests see
    the same serialization as the MongoDB repository.
    """

    def __init__(self) -> None:
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.replace_calls = 0

    def ensure_indexes(self) -> None:
        return None

    def _load(self, doc: Optional[Dict[str, Any]]) -> Optional[VaultRecord]:
        return VaultRecord.from_mongo(dict(doc)) if doc else None

    def get(self, vault_id: str) -> Optional[VaultRecord]:
        return self._load(self.docs.get(vault_id))

    def create(self, record: VaultRecord) -> VaultRecord:
        record = record.touch_for_insert()
        if record.vault_id in self.docs:
            raise ValueError(f"duplicate vault_id {record.vault_id}")
        self.docs[record.vault_id] = {"_id": f"oid-{len(self.docs) + 1}", **record.to_mongo()}
        record.id = self.docs[record.vault_id]["_id"]
        return record

    def replace(self, record: VaultRecord) -> VaultRecord:
        record = record.touch_for_update()
        _id = self.docs[record.vault_id]["_id"]
        self.docs[record.vault_id] = {"_id": _id, **record.to_mongo()}
        self.replace_calls += 1
        return record

    @staticmethod
    def _addresses(r: VaultRecord) -> List[str]:
        return [r.user_info.wallet_address.lower()] + [
            d.address.lower() for d in r.deployments.values() if d.address
        ]

    def _matches(self, r: VaultRecord, flt: VaultQuery) -> bool:
        if flt.user_id and r.user_info.user_id != flt.user_id:
            return False
        if flt.status and r.status != flt.status:
            return False
        if flt.networks and not set(flt.networks) & set(r.metadata.active_networks):
            return False
        if flt.tags and not set(flt.tags) & set(r.metadata.tags):
            return False
        if flt.description and flt.description.lower() not in r.metadata.description.lower():
            return False
        if flt.address and flt.address.lower() not in self._addresses(r):
            return False
        return True

    def _all(self) -> List[VaultRecord]:
        return [r for r in (self._load(d) for d in self.docs.values()) if r is not None]

    def query(self, flt: VaultQuery) -> List[VaultRecord]:
        rows = [r for r in self._all() if self._matches(r, flt)]
        rows.sort(key=lambda r: r.created_at or 0, reverse=flt.sort_order != "asc")
        rows = rows[flt.offset:]
        return rows[: flt.limit] if flt.limit else rows

    def count(self, flt: VaultQuery) -> int:
        return len([r for r in self._all() if self._matches(r, flt)])

    def find_by_address(self, address: str) -> Optional[VaultRecord]:
        for r in self._all():
            if address.lower() in self._addresses(r):
                return r
        return None

    def aggregate_counts(self) -> Dict[str, Any]:
        rows = self._all()
        per_network: Dict[str, int] = {}
        for r in rows:
            for n in r.metadata.active_networks:
                per_network[n] = per_network.get(n, 0) + 1
        return {
            "total_vaults": len(rows),
            "total_deployments": sum(per_network.values()),
            "active_users": len({r.user_info.user_id for r in rows}),
            "deployments_per_network": per_network,
        }


@pytest.fixture()
def registry() -> NetworkRegistry:
    return NetworkRegistry()


@pytest.fixture()
def chain(registry: NetworkRegistry) -> FakeClientFactory:
    return FakeClientFactory(registry)


@pytest.fixture()
def repo() -> InMemoryVaultRepository:
    return InMemoryVaultRepository()


@pytest.fixture()
def guard() -> DeploymentAttemptGuard:
    return DeploymentAttemptGuard()


@pytest.fixture()
def executor(registry: NetworkRegistry, chain: FakeClientFactory) -> NetworkDeploymentExecutor:
    return NetworkDeploymentExecutor(registry=registry, client_factory=chain, confirmation_timeout_sec=1.0)


@pytest.fixture()
def use_case(
    repo: InMemoryVaultRepository,
    registry: NetworkRegistry,
    executor: NetworkDeploymentExecutor,
    guard: DeploymentAttemptGuard,
) -> VaultDeploymentUseCase:
    return VaultDeploymentUseCase(
        repo=repo,
        registry=registry,
        executor=executor,
        guard=guard,
        agent_address=AGENT_ADDRESS,
        default_networks=["sepolia", "arbitrum_sepolia", "base_sepolia"],
    )


@pytest.fixture()
def user() -> UserInfo:
    return UserInfo(user_id="user-1", wallet_address=USER_WALLET, email="user@example.com")


@pytest.fixture()
def params() -> VaultCreationParameters:
    return VaultCreationParameters(
        owners=[USER_WALLET, AGENT_ADDRESS],
        threshold=1,
        salt_nonce="0x" + "ab" * 32,
    )
