# core/services/network_registry.py

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional

from config import get_settings
from core.domain.entities.network_entity import FeatureInfo, GasPriceBand, NetworkConfig, NetworkCurrency
from core.domain.enums.deployment_enums import NetworkKind
from core.services.exceptions import UnknownNetworkError
from core.services.normalize import norm_network_key

_ETH = NetworkCurrency(name="Ether", symbol="ETH", decimals=18)
_SEP = NetworkCurrency(name="Sepolia Ether", symbol="SEP", decimals=18)


DEFAULT_NETWORKS: Dict[str, NetworkConfig] = {
    n.key: n
    for n in (
        NetworkConfig(
            key="ethereum",
            name="Ethereum Mainnet",
            rpc="https://ethereum-rpc.publicnode.com",
            chain_id=1,
            explorer="https://etherscan.io",
            currency=_ETH,
            features=["defi_hub", "highest_liquidity", "most_dapps"],
            gas_price=GasPriceBand(min=20, max=200),
        ),
        NetworkConfig(
            key="sepolia",
            name="Ethereum Sepolia",
            rpc="https://ethereum-sepolia-rpc.publicnode.com",
            chain_id=11155111,
            explorer="https://sepolia.etherscan.io",
            currency=_SEP,
            is_testnet=True,
            features=["testing", "development"],
            faucets=[
                "https://www.alchemy.com/faucets/ethereum-sepolia",
                "https://faucet.quicknode.com/ethereum/sepolia",
                "https://sepoliafaucet.com/",
            ],
            gas_price=GasPriceBand(min=1, max=20),
        ),
        NetworkConfig(
            key="arbitrum",
            name="Arbitrum One",
            rpc="https://arb1.arbitrum.io/rpc",
            chain_id=42161,
            explorer="https://arbiscan.io",
            currency=_ETH,
            features=["low_fees", "fast_execution", "derivatives", "gaming"],
            gas_price=GasPriceBand(min=0.1, max=2),
        ),
        NetworkConfig(
            key="arbitrum_sepolia",
            name="Arbitrum Sepolia",
            rpc="https://sepolia-rollup.arbitrum.io/rpc",
            chain_id=421614,
            explorer="https://sepolia.arbiscan.io",
            currency=_SEP,
            is_testnet=True,
            features=["testing", "low_fees", "fast_execution"],
            faucets=["https://www.alchemy.com/faucets/arbitrum-sepolia"],
            gas_price=GasPriceBand(min=0.01, max=0.5),
        ),
        NetworkConfig(
            key="polygon",
            name="Polygon Mainnet",
            rpc="https://polygon.llamarpc.com",
            chain_id=137,
            explorer="https://polygonscan.com",
            currency=NetworkCurrency(name="Polygon", symbol="MATIC", decimals=18),
            features=["ultra_low_fees", "gaming_tokens", "stable_pairs", "pos_consensus"],
            gas_price=GasPriceBand(min=30, max=300),
        ),
        NetworkConfig(
            key="base",
            name="Base Mainnet",
            rpc="https://mainnet.base.org",
            chain_id=8453,
            explorer="https://basescan.org",
            currency=_ETH,
            features=["coinbase_integration", "social_tokens", "emerging_market", "low_fees"],
            gas_price=GasPriceBand(min=0.1, max=2),
        ),
        NetworkConfig(
            key="base_sepolia",
            name="Base Sepolia",
            rpc="https://sepolia.base.org",
            chain_id=84532,
            explorer="https://sepolia.basescan.org",
            currency=_SEP,
            is_testnet=True,
            features=["testing", "low_fees", "coinbase_integration"],
            faucets=[
                "https://www.alchemy.com/faucets/base-sepolia",
                "https://faucet.quicknode.com/base/sepolia",
            ],
            gas_price=GasPriceBand(min=0.01, max=0.5),
        ),
        NetworkConfig(
            key="optimism",
            name="Optimism Mainnet",
            rpc="https://mainnet.optimism.io",
            chain_id=10,
            explorer="https://optimistic.etherscan.io",
            currency=_ETH,
            features=["low_fees", "fast_execution", "defi_focus", "retroactive_funding"],
            gas_price=GasPriceBand(min=0.001, max=0.1),
        ),
    )
}

NETWORK_GROUPS: Dict[str, List[str]] = {
    "mainnet": ["ethereum", "arbitrum", "polygon", "base", "optimism"],
    "testnet": ["sepolia", "arbitrum_sepolia", "base_sepolia"],
    "lowFee": ["arbitrum", "polygon", "base", "optimism"],
    "highLiquidity": ["ethereum", "arbitrum", "polygon"],
    "emerging": ["base"],
    "layer2": ["arbitrum", "polygon", "base", "optimism"],
}

FEATURES: Dict[str, FeatureInfo] = {
    "defi_hub": FeatureInfo(name="DeFi Hub", description="Primary hub for decentralized finance protocols"),
    "highest_liquidity": FeatureInfo(name="Highest Liquidity", description="Maximum liquidity for token trading"),
    "most_dapps": FeatureInfo(name="Most DApps", description="Largest ecosystem of decentralized applications"),
    "low_fees": FeatureInfo(name="Low Fees", description="Reduced transaction costs"),
    "ultra_low_fees": FeatureInfo(name="Ultra Low Fees", description="Extremely low transaction costs"),
    "fast_execution": FeatureInfo(name="Fast Execution", description="Quick transaction confirmation"),
    "derivatives": FeatureInfo(name="Derivatives", description="Advanced trading instruments and derivatives"),
    "gaming": FeatureInfo(name="Gaming", description="Gaming and NFT focused ecosystem"),
    "gaming_tokens": FeatureInfo(name="Gaming Tokens", description="Specialized gaming token ecosystem"),
    "stable_pairs": FeatureInfo(name="Stable Pairs", description="Strong stablecoin trading pairs"),
    "coinbase_integration": FeatureInfo(name="Coinbase Integration", description="Native Coinbase exchange integration"),
    "social_tokens": FeatureInfo(name="Social Tokens", description="Social and creator token ecosystem"),
    "emerging_market": FeatureInfo(name="Emerging Market", description="New and growing ecosystem"),
    "pos_consensus": FeatureInfo(name="PoS Consensus", description="Proof of Stake consensus mechanism"),
    "defi_focus": FeatureInfo(name="DeFi Focus", description="Focused on decentralized finance"),
    "retroactive_funding": FeatureInfo(name="Retroactive Funding", description="Retroactive public goods funding"),
    "testing": FeatureInfo(name="Testing", description="For development and testing purposes"),
    "development": FeatureInfo(name="Development", description="Development environment"),
}

RECOMMENDATIONS: Dict[str, List[str]] = {
    "trading": ["arbitrum", "polygon", "base"],
    "gaming": ["polygon", "arbitrum"],
    "defi": ["ethereum", "arbitrum", "optimism"],
    "development": ["sepolia", "arbitrum_sepolia", "base_sepolia"],
    "low_cost": ["polygon", "arbitrum", "base"],
    "emerging": ["base"],
}


class NetworkRegistry:
    """
    Read-only catalogue of supported networks.

    Built once from the static catalogue; configuration may only override
    RPC endpoints (see `RPC_URLS` in settings).
    """

    def __init__(
        self,
        networks: Optional[Mapping[str, NetworkConfig]] = None,
        *,
        rpc_overrides: Optional[Mapping[str, str]] = None,
    ) -> None:
        base = dict(networks if networks is not None else DEFAULT_NETWORKS)
        for key, url in (rpc_overrides or {}).items():
            key = norm_network_key(key)
            if key in base and url:
                base[key] = base[key].model_copy(update={"rpc": url})
        self._networks: Dict[str, NetworkConfig] = base

    @classmethod
    def from_settings(cls) -> "NetworkRegistry":
        return cls(rpc_overrides=get_settings().RPC_URLS)

    # ---------------- lookups ----------------

    def resolve(self, network_key: str) -> NetworkConfig:
        net = self._networks.get(norm_network_key(network_key))
        if net is None:
            raise UnknownNetworkError(network_key)
        return net

    def is_supported(self, network_key: str) -> bool:
        return norm_network_key(network_key) in self._networks

    def validate_keys(self, network_keys: Iterable[str]) -> List[str]:
        """
        Normalize, de-duplicate (keeping order) and validate every key.
        Raises on the first unknown key before anything is returned.
        """
        out: List[str] = []
        for raw in network_keys:
            key = norm_network_key(raw)
            if key not in self._networks:
                raise UnknownNetworkError(raw)
            if key not in out:
                out.append(key)
        return out

    def keys(self) -> List[str]:
        return list(self._networks)

    def list(self, kind: NetworkKind = NetworkKind.ALL) -> List[NetworkConfig]:
        nets = list(self._networks.values())
        if kind == NetworkKind.MAINNET:
            return [n for n in nets if not n.is_testnet]
        if kind == NetworkKind.TESTNET:
            return [n for n in nets if n.is_testnet]
        return nets

    # ---------------- catalogue views ----------------

    def by_group(self, group_name: str) -> List[NetworkConfig]:
        keys = NETWORK_GROUPS.get(group_name)
        if keys is None:
            raise KeyError(f"Unknown network group: {group_name}")
        return [self._networks[k] for k in keys if k in self._networks]

    def by_feature(self, feature_name: str) -> List[NetworkConfig]:
        if feature_name not in FEATURES:
            raise KeyError(f"Unknown feature: {feature_name}")
        return [n for n in self._networks.values() if feature_name in n.features]

    def recommended(self, use_case: str) -> List[NetworkConfig]:
        keys = RECOMMENDATIONS.get(use_case) or ["ethereum"]
        return [self._networks[k] for k in keys if k in self._networks]

    @staticmethod
    def groups() -> Dict[str, List[str]]:
        return {k: list(v) for k, v in NETWORK_GROUPS.items()}

    @staticmethod
    def features() -> Dict[str, FeatureInfo]:
        return dict(FEATURES)
