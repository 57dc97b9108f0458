from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.domain.entities.vault_entity import (
    NetworkDeploymentRecord,
    VaultCreationParameters,
    VaultMetadata,
)
from core.domain.enums.deployment_enums import VaultStatus


class DeploymentOptions(BaseModel):
    """
    Caller options for create_vault (networks are passed separately).
    """

    threshold: int = Field(default=1, ge=1)
    auto_expand: bool = False
    description: str = ""
    tags: List[str] = Field(default_factory=list)


@dataclass
class DeterminismReport:
    common_address: Optional[str]
    determinism_violation: bool
    distinct_addresses: List[str] = field(default_factory=list)


class AggregateDeploymentResult(BaseModel):
    vault_id: str
    creation_parameters: VaultCreationParameters
    per_network: Dict[str, NetworkDeploymentRecord]
    common_address: Optional[str] = None
    determinism_violation: bool = False
    distinct_addresses: List[str] = Field(default_factory=list)
    status: VaultStatus
    metadata: Optional[VaultMetadata] = None

    model_config = ConfigDict(use_enum_values=True)

    @property
    def successful_networks(self) -> List[str]:
        return [k for k, r in self.per_network.items() if r.is_deployed]

    @property
    def failed_networks(self) -> List[str]:
        return [k for k, r in self.per_network.items() if not r.is_deployed]


@dataclass
class VaultQuery:
    """
    Filter accepted by the record store `query`.
    """

    user_id: Optional[str] = None
    status: Optional[str] = None
    networks: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    description: Optional[str] = None
    address: Optional[str] = None
    limit: int = 50
    offset: int = 0
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


@dataclass
class UserStats:
    total_vaults: int
    active_deployments: int
    total_transactions: int
    total_value_transferred: str
    most_used_network: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_vaults": self.total_vaults,
            "active_deployments": self.active_deployments,
            "total_transactions": self.total_transactions,
            "total_value_transferred": self.total_value_transferred,
            "most_used_network": self.most_used_network,
        }


@dataclass
class NetworkStats:
    total_vaults: int
    deployments: Dict[str, int]
    most_popular_network: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_vaults": self.total_vaults,
            "deployments": dict(self.deployments),
            "most_popular_network": self.most_popular_network,
        }
