from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class NetworkCurrency(BaseModel):
    name: str
    symbol: str
    decimals: int = 18

    model_config = ConfigDict(frozen=True)


class GasPriceBand(BaseModel):
    min: float
    max: float
    unit: Literal["gwei", "wei"] = "gwei"

    model_config = ConfigDict(frozen=True)


class NetworkConfig(BaseModel):
    """
    Static description of one supported chain.

    `rpc` is the only field that configuration may override per environment;
    everything else is catalogue data.
    """

    key: str
    name: str
    rpc: str
    chain_id: int
    explorer: str
    currency: NetworkCurrency
    is_testnet: bool = False
    safe_version: str = "1.4.1"
    features: List[str] = Field(default_factory=list)
    faucets: List[str] = Field(default_factory=list)
    gas_price: GasPriceBand

    model_config = ConfigDict(frozen=True)

    def explorer_address_url(self, address: str) -> str:
        return f"{self.explorer.rstrip('/')}/address/{address}"

    def explorer_tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer.rstrip('/')}/tx/{tx_hash}"


class FeatureInfo(BaseModel):
    name: str
    description: str

    model_config = ConfigDict(frozen=True)
