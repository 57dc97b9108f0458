from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from eth_account import Account

from adapters.chain.safe_chain_client import get_chain_client
from adapters.external.database.vault_record_repository_mongodb import VaultRecordRepositoryMongoDB
from config import get_settings
from core.domain.entities.vault_entity import (
    NetworkDeploymentRecord,
    UserInfo,
    VaultCreationParameters,
    VaultMetadata,
    VaultRecord,
)
from core.domain.enums.deployment_enums import VaultStatus
from core.domain.repositories.vault_record_repository_interface import VaultRecordRepositoryInterface
from core.domain.schemas.deployment_types import AggregateDeploymentResult, DeploymentOptions
from core.services.attempt_guard import DeploymentAttemptGuard
from core.services.deployment_executor import NetworkDeploymentExecutor
from core.services.determinism_checker import AddressDeterminismChecker
from core.services.exceptions import (
    AllDeploymentsFailedError,
    DeploymentInProgressError,
    NoNetworksToExpandError,
    VaultNotFoundError,
    VaultServiceError,
)
from core.services.network_registry import NetworkRegistry
from core.services.utils import generate_salt_nonce

logger = logging.getLogger(__name__)


@dataclass
class VaultDeploymentUseCase:
    """
    Multi-network deployment orchestrator.

    Fans one executor call per network out concurrently, records every
    outcome (successes and failures) on the vault record and owns the
    initializing -> active transition.
    """

    repo: VaultRecordRepositoryInterface
    registry: NetworkRegistry
    executor: NetworkDeploymentExecutor
    guard: DeploymentAttemptGuard
    agent_address: str
    default_networks: List[str] = field(default_factory=list)
    max_concurrent: int = 0
    checker: AddressDeterminismChecker = field(default_factory=AddressDeterminismChecker)

    @classmethod
    def from_settings(cls, guard: Optional[DeploymentAttemptGuard] = None) -> "VaultDeploymentUseCase":
        s = get_settings()
        if not s.AGENT_PRIVATE_KEY:
            raise RuntimeError("AGENT_PRIVATE_KEY is not configured")

        registry = NetworkRegistry.from_settings()
        executor = NetworkDeploymentExecutor(
            registry=registry,
            client_factory=get_chain_client,
            confirmation_timeout_sec=s.CONFIRMATION_TIMEOUT_SEC,
            require_funding=s.REQUIRE_DEPLOYER_FUNDING,
        )
        return cls(
            repo=VaultRecordRepositoryMongoDB(),
            registry=registry,
            executor=executor,
            guard=guard or DeploymentAttemptGuard(),
            agent_address=Account.from_key(s.AGENT_PRIVATE_KEY).address,
            default_networks=list(s.DEFAULT_NETWORKS),
            max_concurrent=int(s.MAX_CONCURRENT_DEPLOYMENTS),
        )

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def create_vault(
        self,
        user: UserInfo,
        networks: Optional[Sequence[str]] = None,
        options: Optional[DeploymentOptions] = None,
    ) -> AggregateDeploymentResult:
        options = options or DeploymentOptions()
        keys = self.registry.validate_keys(networks or self.default_networks)
        if not keys:
            raise ValueError("At least one network is required")

        params = VaultCreationParameters(
            owners=[user.wallet_address, self.agent_address],
            threshold=options.threshold,
            salt_nonce=generate_salt_nonce(user.user_id),
        )

        user = user.model_copy(deep=True)
        user.preferences.auto_expand = options.auto_expand

        record = VaultRecord(
            vault_id=str(uuid.uuid4()),
            user_info=user,
            config=params,
            metadata=VaultMetadata(description=options.description, tags=list(options.tags)),
        )
        self.repo.create(record)
        logger.info(
            "Creating vault %s for user %s on %s (threshold %d/%d)",
            record.vault_id,
            user.user_id,
            ", ".join(keys),
            params.threshold,
            len(params.owners),
        )

        results = await self._fan_out(record.vault_id, keys, params)
        merged = self._merge(record.vault_id, results)
        report = self.checker.check(results.values())

        if not any(r.is_deployed for r in results.values()):
            logger.error("All deployments failed for vault %s", record.vault_id)
            raise AllDeploymentsFailedError(
                record.vault_id,
                {k: r.model_dump(mode="json") for k, r in results.items()},
            )

        return AggregateDeploymentResult(
            vault_id=merged.vault_id,
            creation_parameters=params,
            per_network=results,
            common_address=report.common_address,
            determinism_violation=report.determinism_violation,
            distinct_addresses=report.distinct_addresses,
            status=merged.status,
            metadata=merged.metadata,
        )

    async def expand_vault(self, vault_id: str, networks: Sequence[str]) -> AggregateDeploymentResult:
        record = self.repo.get(vault_id)
        if record is None:
            raise VaultNotFoundError(vault_id)

        keys = self.registry.validate_keys(networks)
        if not keys:
            raise NoNetworksToExpandError(vault_id, [])

        pending = [k for k in keys if not record.is_deployed_on_network(k)]
        if not pending:
            raise NoNetworksToExpandError(vault_id, keys)

        skipped = [k for k in keys if k not in pending]
        if skipped:
            logger.info("Vault %s already deployed on %s, skipping", vault_id, ", ".join(skipped))
        logger.info("Expanding vault %s to %s", vault_id, ", ".join(pending))

        known = record.deployed_addresses()
        results = await self._fan_out(vault_id, pending, record.config)
        merged = self._merge(vault_id, results)
        report = self.checker.check(results.values(), known_addresses=known)

        if not any(r.is_deployed for r in results.values()):
            logger.warning("Expansion of vault %s produced no new deployment", vault_id)

        return AggregateDeploymentResult(
            vault_id=vault_id,
            creation_parameters=record.config,
            per_network=results,
            common_address=report.common_address,
            determinism_violation=report.determinism_violation,
            distinct_addresses=report.distinct_addresses,
            status=merged.status,
            metadata=merged.metadata,
        )

    def set_status(self, vault_id: str, new_status: VaultStatus | str) -> VaultRecord:
        record = self.repo.get(vault_id)
        if record is None:
            raise VaultNotFoundError(vault_id)

        status = VaultStatus(new_status)
        old = record.status
        record.status = status
        record = self.repo.replace(record)
        logger.info("Vault %s status manually changed: %s -> %s", vault_id, old, status)
        return record

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    async def _fan_out(
        self,
        vault_id: str,
        keys: List[str],
        params: VaultCreationParameters,
    ) -> Dict[str, NetworkDeploymentRecord]:
        semaphore = asyncio.Semaphore(self.max_concurrent) if self.max_concurrent > 0 else None

        async def attempt(key: str) -> NetworkDeploymentRecord:
            if semaphore is None:
                return await self.executor.execute(key, params)
            async with semaphore:
                return await self.executor.execute(key, params)

        settled: Dict[str, NetworkDeploymentRecord] = {}
        with ExitStack() as held:
            admitted: List[str] = []
            for key in keys:
                try:
                    held.enter_context(self.guard.hold(vault_id, key))
                except DeploymentInProgressError as exc:
                    settled[key] = self._failure_record(vault_id, key, exc)
                    continue
                admitted.append(key)

            if admitted:
                self._mark_pending(vault_id, admitted)
                outcomes = await asyncio.gather(*(attempt(k) for k in admitted), return_exceptions=True)
                for key, outcome in zip(admitted, outcomes):
                    if isinstance(outcome, NetworkDeploymentRecord):
                        logger.info("Vault %s deployed on %s at %s", vault_id, key, outcome.address)
                        settled[key] = outcome
                    elif isinstance(outcome, Exception):
                        settled[key] = self._failure_record(vault_id, key, outcome)
                    else:
                        raise outcome

        return {key: settled[key] for key in keys}

    def _mark_pending(self, vault_id: str, keys: List[str]) -> None:
        record = self.repo.get(vault_id)
        if record is None:
            raise VaultNotFoundError(vault_id)

        for key in keys:
            started = NetworkDeploymentRecord.pending(
                network_key=key,
                chain_id=self.registry.resolve(key).chain_id,
            )
            record.put_deployment(started)
        self.repo.replace(record)

    def _failure_record(self, vault_id: str, key: str, exc: Exception) -> NetworkDeploymentRecord:
        code = exc.code if isinstance(exc, VaultServiceError) else "unexpected_error"
        if isinstance(exc, VaultServiceError):
            logger.error("Deployment of vault %s failed on %s [%s]: %s", vault_id, key, code, exc)
        else:
            logger.error("Unexpected error deploying vault %s on %s", vault_id, key, exc_info=exc)
        return NetworkDeploymentRecord.failed(
            network_key=key,
            chain_id=self.registry.resolve(key).chain_id,
            error=str(exc),
            error_code=code,
        )

    def _merge(self, vault_id: str, results: Dict[str, NetworkDeploymentRecord]) -> VaultRecord:
        # re-read so a concurrent orchestration on the same vault loses as
        # little as possible (whole-document replace, last writer wins)
        record = self.repo.get(vault_id)
        if record is None:
            raise VaultNotFoundError(vault_id)

        for key, result in results.items():
            # a rejected duplicate attempt says nothing about the network
            if result.error_code == DeploymentInProgressError.code:
                continue
            if not record.put_deployment(result):
                logger.warning("Kept existing deployment of vault %s on %s over failed retry", vault_id, key)

        record.refresh_derived_metadata()

        if any(r.is_deployed for r in results.values()) and record.status == VaultStatus.INITIALIZING:
            record.status = VaultStatus.ACTIVE
            logger.info("Vault %s is now active", vault_id)

        return self.repo.replace(record)
