from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from web3 import Web3

from core.domain.entities.vault_entity import NotificationPreferences, UserInfo, UserPreferences
from core.domain.enums.deployment_enums import VaultStatus
from core.domain.schemas.deployment_types import DeploymentOptions
from core.services.normalize import ZERO_ADDRESS


def _validate_addr(v: str) -> str:
    v = (v or "").strip()
    if not Web3.is_address(v):
        raise ValueError("Invalid address (expected 0x...).")
    v = Web3.to_checksum_address(v)
    if v.lower() == ZERO_ADDRESS:
        raise ValueError("Address cannot be zero.")
    return v


def _norm_networks(v: Optional[List[str]]) -> List[str]:
    return [n.strip().lower() for n in (v or []) if n and n.strip()]


class UserInfoRequest(BaseModel):
    user_id: str = Field(..., description="External user identifier")
    wallet_address: str = Field(..., description="End-user wallet; first vault owner")
    email: Optional[str] = None
    default_networks: List[str] = Field(default_factory=list)
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)

    @field_validator("user_id")
    @classmethod
    def _user_id(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("User ID is required.")
        return v

    @field_validator("wallet_address")
    @classmethod
    def _wallet(cls, v: str) -> str:
        return _validate_addr(v)

    @field_validator("default_networks")
    @classmethod
    def _networks(cls, v: List[str]) -> List[str]:
        return _norm_networks(v)

    def to_user_info(self) -> UserInfo:
        return UserInfo(
            user_id=self.user_id,
            wallet_address=self.wallet_address,
            email=self.email,
            preferences=UserPreferences(
                default_networks=self.default_networks,
                notifications=self.notifications,
            ),
        )


class DeployVaultRequest(BaseModel):
    user_info: UserInfoRequest
    networks: List[str] = Field(
        default_factory=list,
        description="Network keys; empty uses DEFAULT_NETWORKS",
    )
    threshold: int = Field(default=1, ge=1)
    auto_expand: bool = False
    description: str = Field(default="", max_length=500)
    tags: List[str] = Field(default_factory=list)

    @field_validator("networks")
    @classmethod
    def _networks(cls, v: List[str]) -> List[str]:
        return _norm_networks(v)

    def to_options(self) -> DeploymentOptions:
        return DeploymentOptions(
            threshold=self.threshold,
            auto_expand=self.auto_expand,
            description=self.description,
            tags=self.tags,
        )


class ExpandVaultRequest(BaseModel):
    networks: List[str] = Field(..., min_length=1)

    @field_validator("networks")
    @classmethod
    def _networks(cls, v: List[str]) -> List[str]:
        v = _norm_networks(v)
        if not v:
            raise ValueError("At least one network is required.")
        return v


class UpdateVaultStatusRequest(BaseModel):
    status: VaultStatus


class UpdateVaultMetadataRequest(BaseModel):
    description: Optional[str] = Field(default=None, max_length=500)
    tags: Optional[List[str]] = None
