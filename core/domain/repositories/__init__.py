from .chain_client_interface import ChainClient, ChainClientFactory
from .vault_record_repository_interface import VaultRecordRepositoryInterface

__all__ = [
    "ChainClient",
    "ChainClientFactory",
    "VaultRecordRepositoryInterface",
]
