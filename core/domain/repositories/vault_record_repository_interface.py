from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from core.domain.entities.vault_entity import VaultRecord
from core.domain.schemas.deployment_types import VaultQuery


class VaultRecordRepositoryInterface(ABC):
    """
    Persistence for vault records.

    Only single-document atomicity is assumed; `replace` overwrites the
    whole document (last writer wins).
    """

    @abstractmethod
    def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def get(self, vault_id: str) -> Optional[VaultRecord]:
        raise NotImplementedError

    @abstractmethod
    def create(self, record: VaultRecord) -> VaultRecord:
        raise NotImplementedError

    @abstractmethod
    def replace(self, record: VaultRecord) -> VaultRecord:
        """
        Overwrite the stored document for `record.vault_id`.
        """
        raise NotImplementedError

    @abstractmethod
    def query(self, flt: VaultQuery) -> List[VaultRecord]:
        raise NotImplementedError

    @abstractmethod
    def count(self, flt: VaultQuery) -> int:
        """
        Number of records matching `flt`, ignoring limit/offset.
        """
        raise NotImplementedError

    @abstractmethod
    def find_by_address(self, address: str) -> Optional[VaultRecord]:
        """
        Match either the owning user's wallet or any deployment address.
        """
        raise NotImplementedError

    @abstractmethod
    def aggregate_counts(self) -> Dict[str, Any]:
        """
        {
          "total_vaults": int,
          "total_deployments": int,
          "active_users": int,
          "deployments_per_network": {network_key: int},
        }
        """
        raise NotImplementedError
