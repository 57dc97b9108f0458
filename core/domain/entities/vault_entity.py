from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.domain.entities.base_entity import MongoEntity, now_iso, now_ms
from core.domain.enums.deployment_enums import DeploymentStatus, VaultStatus
from core.services.normalize import _norm_lower, is_address_like, require_address


class VaultCreationParameters(BaseModel):
    """
    The (owners, threshold, salt) tuple that fixes a vault's CREATE2 address.

    Frozen: once persisted for a vault it is reused verbatim by every
    expansion, otherwise the address would differ between networks.
    """

    owners: List[str]
    threshold: int
    salt_nonce: str
    safe_version: str = "1.4.1"

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("owners")
    @classmethod
    def _check_owners(cls, v: List[str]) -> List[str]:
        if len(v) < 2:
            raise ValueError("A vault needs at least two owners (user + agent)")
        owners = [require_address("owner", o) for o in v]
        if len({o.lower() for o in owners}) != len(owners):
            raise ValueError("Vault owners must be unique")
        return owners

    @field_validator("salt_nonce")
    @classmethod
    def _check_salt(cls, v: str) -> str:
        s = (v or "").strip()
        if not s.startswith("0x") or len(s) < 3:
            raise ValueError("salt_nonce must be a 0x-prefixed hex string")
        int(s, 16)
        return s

    @model_validator(mode="after")
    def _check_threshold(self) -> "VaultCreationParameters":
        if self.threshold < 1:
            raise ValueError("Threshold must be at least 1")
        if self.threshold > len(self.owners):
            raise ValueError("Threshold cannot exceed number of owners")
        return self

    @property
    def salt_nonce_int(self) -> int:
        return int(self.salt_nonce, 16)


class NetworkDeploymentRecord(BaseModel):
    """
    Outcome of the latest deployment attempt of one vault on one network.
    """

    network_key: str
    chain_id: int
    address: str = ""
    deployment_status: DeploymentStatus = DeploymentStatus.PENDING

    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    gas_price: Optional[int] = None
    explorer_url: Optional[str] = None

    is_active: bool = True
    is_existing: bool = False

    error: Optional[str] = None
    error_code: Optional[str] = None

    deployed_at: int = Field(default_factory=now_ms)
    deployed_at_iso: str = Field(default_factory=now_iso)

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    @property
    def is_deployed(self) -> bool:
        return self.deployment_status == DeploymentStatus.DEPLOYED

    @classmethod
    def pending(cls, *, network_key: str, chain_id: int) -> "NetworkDeploymentRecord":
        return cls(
            network_key=network_key,
            chain_id=chain_id,
            deployment_status=DeploymentStatus.PENDING,
            is_active=False,
        )

    @classmethod
    def failed(cls, *, network_key: str, chain_id: int, error: str, error_code: str) -> "NetworkDeploymentRecord":
        return cls(
            network_key=network_key,
            chain_id=chain_id,
            deployment_status=DeploymentStatus.FAILED,
            is_active=False,
            error=error,
            error_code=error_code,
        )


class NotificationPreferences(BaseModel):
    email: bool = True
    webhook: bool = False


class UserPreferences(BaseModel):
    default_networks: List[str] = Field(default_factory=list)
    auto_expand: bool = False
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)


class UserInfo(BaseModel):
    user_id: str
    wallet_address: str
    email: Optional[str] = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)

    model_config = ConfigDict(extra="allow")

    @field_validator("user_id")
    @classmethod
    def _check_user_id(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("UserId is required")
        return v

    @field_validator("wallet_address")
    @classmethod
    def _check_wallet(cls, v: str) -> str:
        return require_address("wallet", v)


class VaultMetadata(BaseModel):
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    total_deployments: int = 0
    active_networks: List[str] = Field(default_factory=list)
    last_activity_at: int = Field(default_factory=now_ms)

    model_config = ConfigDict(extra="allow")


class VaultAnalytics(BaseModel):
    """
    Usage counters maintained outside the deployment flow; carried through
    untouched by the orchestrator.
    """

    total_transactions: int = 0
    total_value_transferred: str = "0"
    most_used_network: Optional[str] = None
    last_transaction_at: Optional[int] = None
    average_gas_used: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class VaultRecord(MongoEntity):
    """
    Canonical representation of documents in `vaults`.

    {
      vault_id, user_info: {...}, config: {owners, threshold, salt_nonce},
      deployments: {network_key: {...}}, status, metadata: {...},
      analytics: {...}, created_at, updated_at, ...
    }
    """

    vault_id: str
    user_info: UserInfo
    config: VaultCreationParameters
    deployments: Dict[str, NetworkDeploymentRecord] = Field(default_factory=dict)
    status: VaultStatus = VaultStatus.INITIALIZING
    metadata: VaultMetadata = Field(default_factory=VaultMetadata)
    analytics: VaultAnalytics = Field(default_factory=VaultAnalytics)

    def get_deployment(self, network_key: str) -> Optional[NetworkDeploymentRecord]:
        return self.deployments.get(_norm_lower(network_key))

    def is_deployed_on_network(self, network_key: str) -> bool:
        dep = self.get_deployment(network_key)
        return bool(dep and dep.is_deployed and dep.is_active)

    def active_deployments(self) -> List[NetworkDeploymentRecord]:
        return [d for d in self.deployments.values() if d.is_active and d.is_deployed]

    def deployed_addresses(self) -> List[str]:
        return [d.address for d in self.active_deployments() if is_address_like(d.address)]

    def put_deployment(self, record: NetworkDeploymentRecord) -> bool:
        """
        Store the outcome of an attempt. A `deployed` entry is never
        downgraded by a later failure; returns False when the record was
        kept for that reason.
        """
        key = _norm_lower(record.network_key)
        current = self.deployments.get(key)
        if current is not None and current.is_deployed and not record.is_deployed:
            return False
        self.deployments[key] = record
        return True

    def refresh_derived_metadata(self) -> None:
        active = self.active_deployments()
        self.metadata.total_deployments = len(active)
        self.metadata.active_networks = sorted(d.network_key for d in active)
        self.metadata.last_activity_at = now_ms()
