from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from adapters.external.database.vault_record_repository_mongodb import VaultRecordRepositoryMongoDB
from core.domain.entities.base_entity import now_ms
from core.domain.entities.vault_entity import VaultRecord
from core.domain.repositories.vault_record_repository_interface import VaultRecordRepositoryInterface
from core.domain.schemas.deployment_types import NetworkStats, UserStats, VaultQuery
from core.services.exceptions import VaultNotFoundError
from core.services.normalize import _norm, is_address_like


def vault_to_dict(record: VaultRecord) -> Dict[str, Any]:
    return record.model_dump(mode="json", exclude_none=True)


def _to_decimal(v: Optional[str]) -> Decimal:
    try:
        return Decimal(str(v or "0"))
    except InvalidOperation:
        return Decimal(0)


@dataclass
class VaultQueryUseCase:
    repo: VaultRecordRepositoryInterface

    @classmethod
    def from_settings(cls) -> "VaultQueryUseCase":
        return cls(repo=VaultRecordRepositoryMongoDB())

    def _require(self, vault_id: str) -> VaultRecord:
        record = self.repo.get(_norm(vault_id))
        if record is None:
            raise VaultNotFoundError(vault_id)
        return record

    def get_vault(self, *, vault_id: str) -> dict:
        record = self._require(vault_id)
        return {"ok": True, "message": "OK", "data": vault_to_dict(record)}

    def get_vault_by_address(self, *, address: str) -> dict:
        if not is_address_like(address):
            raise ValueError(f"Invalid address format: {address!r}")
        record = self.repo.find_by_address(address)
        if record is None:
            raise VaultNotFoundError(address)
        return {"ok": True, "message": "OK", "data": vault_to_dict(record)}

    def list_by_user(
        self,
        *,
        user_id: str,
        status: Optional[str] = None,
        networks: Optional[List[str]] = None,
        limit: int = 50,
        offset: int = 0,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> dict:
        user_id = _norm(user_id)
        if not user_id:
            raise ValueError("user_id is required")
        return self.search(
            VaultQuery(
                user_id=user_id,
                status=status,
                networks=networks,
                limit=limit,
                offset=offset,
                sort_by=sort_by,
                sort_order="asc" if sort_order == "asc" else "desc",
            )
        )

    def search(self, flt: VaultQuery) -> dict:
        if flt.limit < 1 or flt.limit > 500:
            raise ValueError("limit must be between 1 and 500")
        if flt.offset < 0:
            raise ValueError("offset must be >= 0")

        rows = self.repo.query(flt)
        total = self.repo.count(flt)
        return {
            "ok": True,
            "message": "OK",
            "data": {
                "vaults": [vault_to_dict(r) for r in rows],
                "pagination": {
                    "total": total,
                    "limit": flt.limit,
                    "offset": flt.offset,
                    "has_more": flt.offset + len(rows) < total,
                },
            },
        }

    def update_metadata(
        self,
        *,
        vault_id: str,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> dict:
        record = self._require(vault_id)

        if description is not None:
            record.metadata.description = description
        if tags is not None:
            record.metadata.tags = [t.strip() for t in tags if t and t.strip()]
        record.metadata.last_activity_at = now_ms()

        record = self.repo.replace(record)
        return {"ok": True, "message": "Vault metadata updated.", "data": vault_to_dict(record)}

    def user_stats(self, *, user_id: str) -> dict:
        user_id = _norm(user_id)
        if not user_id:
            raise ValueError("user_id is required")

        flt = VaultQuery(user_id=user_id, limit=0)
        vaults = self.repo.query(flt)

        used = [v.analytics.most_used_network for v in vaults if v.analytics.most_used_network]
        stats = UserStats(
            total_vaults=len(vaults),
            active_deployments=sum(len(v.active_deployments()) for v in vaults),
            total_transactions=sum(int(v.analytics.total_transactions) for v in vaults),
            total_value_transferred=str(sum((_to_decimal(v.analytics.total_value_transferred) for v in vaults), Decimal(0))),
            most_used_network=Counter(used).most_common(1)[0][0] if used else None,
        )
        return {"ok": True, "message": "OK", "data": stats.as_dict()}

    def network_stats(self) -> dict:
        counts = self.repo.aggregate_counts()
        per_network: Dict[str, int] = dict(counts.get("deployments_per_network") or {})
        most_popular = max(per_network.items(), key=lambda kv: (kv[1], kv[0]))[0] if per_network else ""

        stats = NetworkStats(
            total_vaults=int(counts.get("total_vaults") or 0),
            deployments=per_network,
            most_popular_network=most_popular,
        )
        data = stats.as_dict()
        data["total_deployments"] = int(counts.get("total_deployments") or 0)
        data["active_users"] = int(counts.get("active_users") or 0)
        return {"ok": True, "message": "OK", "data": data}
