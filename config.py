import os
from dotenv import load_dotenv
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List

load_dotenv()


def _parse_csv(value: str, *, lower: bool = False) -> List[str]:
    if not value:
        return []
    items = [x.strip() for x in value.split(",")]
    items = [x for x in items if x]
    if lower:
        items = [x.lower() for x in items]
    return items


def _parse_bool(value: str, default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# env var name -> network key
RPC_ENV_VARS: Dict[str, str] = {
    "ETHEREUM_RPC": "ethereum",
    "ETHEREUM_SEPOLIA_RPC": "sepolia",
    "ARBITRUM_RPC": "arbitrum",
    "ARBITRUM_SEPOLIA_RPC": "arbitrum_sepolia",
    "POLYGON_RPC": "polygon",
    "BASE_RPC": "base",
    "BASE_SEPOLIA_RPC": "base_sepolia",
    "OPTIMISM_RPC": "optimism",
}


@dataclass
class Settings:
    # MongoDB
    MONGO_URI: str
    MONGO_DB: str

    # signing: the agent key pays for deployments and co-owns every vault
    AGENT_PRIVATE_KEY: str

    # Safe v1.4.1 canonical deployment (identical on every supported chain)
    SAFE_SINGLETON_ADDRESS: str
    SAFE_PROXY_FACTORY_ADDRESS: str
    SAFE_FALLBACK_HANDLER_ADDRESS: str

    # deployment behaviour
    CONFIRMATION_TIMEOUT_SEC: float = 180.0
    MAX_CONCURRENT_DEPLOYMENTS: int = 0  # 0 = unbounded
    REQUIRE_DEPLOYER_FUNDING: bool = True
    GAS_STRATEGY: str = "buffered"

    DEFAULT_NETWORKS: List[str] = field(default_factory=list)

    # network key -> rpc url (only the overridden ones)
    RPC_URLS: Dict[str, str] = field(default_factory=dict)

    CORS_ORIGINS: List[str] = field(default_factory=list)

    # generic
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    default_networks = _parse_csv(os.getenv("DEFAULT_NETWORKS", ""), lower=True) or [
        "sepolia",
        "arbitrum_sepolia",
        "base_sepolia",
    ]

    rpc_urls = {
        network_key: os.environ[env_name].strip()
        for env_name, network_key in RPC_ENV_VARS.items()
        if os.getenv(env_name, "").strip()
    }

    return Settings(
        # Mongo
        MONGO_URI=os.getenv("MONGO_URI", "mongodb://localhost:27017/vault_deployments"),
        MONGO_DB=os.getenv("MONGO_DB", "vault_deployments"),

        # Signing
        AGENT_PRIVATE_KEY=os.getenv("AGENT_PRIVATE_KEY", ""),

        # Safe contracts
        SAFE_SINGLETON_ADDRESS=os.getenv(
            "SAFE_SINGLETON_ADDRESS", "0x29fcB43b46531BcA003ddC8FCB67FFE91900C762"
        ),
        SAFE_PROXY_FACTORY_ADDRESS=os.getenv(
            "SAFE_PROXY_FACTORY_ADDRESS", "0x4e1DCf7AD4e460CfD30791CCC4F9c8a4f820ec67"
        ),
        SAFE_FALLBACK_HANDLER_ADDRESS=os.getenv(
            "SAFE_FALLBACK_HANDLER_ADDRESS", "0xfd0732Dc9E303f09fCEf3a7388Ad10A83459Ec99"
        ),

        # Deployment behaviour
        CONFIRMATION_TIMEOUT_SEC=float(os.getenv("CONFIRMATION_TIMEOUT_SEC", "180")),
        MAX_CONCURRENT_DEPLOYMENTS=int(os.getenv("MAX_CONCURRENT_DEPLOYMENTS", "0")),
        REQUIRE_DEPLOYER_FUNDING=_parse_bool(os.getenv("REQUIRE_DEPLOYER_FUNDING"), True),
        GAS_STRATEGY=os.getenv("GAS_STRATEGY", "buffered"),
        DEFAULT_NETWORKS=default_networks,
        RPC_URLS=rpc_urls,

        CORS_ORIGINS=_parse_csv(os.getenv("CORS_ORIGINS", "")) or ["*"],

        ENV=os.getenv("ENV", "dev"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )
