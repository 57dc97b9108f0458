from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database

from adapters.external.database.helper_repo import sanitize_for_mongo
from adapters.external.database.mongo_client import get_mongo_db
from core.domain.entities.vault_entity import VaultRecord
from core.domain.repositories.vault_record_repository_interface import VaultRecordRepositoryInterface
from core.domain.schemas.deployment_types import VaultQuery
from core.services.normalize import _norm_lower

# denormalized lowercase list of the wallet and every deployment address;
# lets an address lookup hit one index instead of scanning the deployments map
_ADDRESSES_FIELD = "search_addresses"

_SORTABLE = {
    "created_at": "created_at",
    "updated_at": "updated_at",
    "last_activity_at": "metadata.last_activity_at",
    "total_deployments": "metadata.total_deployments",
}


class VaultRecordRepositoryMongoDB(VaultRecordRepositoryInterface):
    COLLECTION_NAME = "vaults"

    def __init__(self, db: Optional[Database] = None) -> None:
        self._db: Database = db if db is not None else get_mongo_db()
        self._collection: Collection = self._db[self.COLLECTION_NAME]

    @property
    def collection(self) -> Collection:
        return self._collection

    def ensure_indexes(self) -> None:
        self._collection.create_index([("vault_id", 1)], unique=True, name="ux_vaults_vault_id")
        self._collection.create_index([("user_info.user_id", 1)], name="ix_vaults_user_id")
        self._collection.create_index([("user_info.wallet_address", 1)], name="ix_vaults_wallet")
        self._collection.create_index([(_ADDRESSES_FIELD, 1)], name="ix_vaults_search_addresses")
        self._collection.create_index([("metadata.active_networks", 1)], name="ix_vaults_active_networks")
        self._collection.create_index([("status", 1)], name="ix_vaults_status")
        self._collection.create_index([("created_at", -1)], name="ix_vaults_created_at_desc")

    # ---------------- mapping ----------------

    def _to_doc(self, record: VaultRecord) -> Dict[str, Any]:
        doc = sanitize_for_mongo(record.to_mongo())
        addresses = {_norm_lower(d.address) for d in record.deployments.values() if d.address}
        addresses.add(_norm_lower(record.user_info.wallet_address))
        doc[_ADDRESSES_FIELD] = sorted(addresses)
        return doc

    @staticmethod
    def _to_entity(doc: Optional[Dict[str, Any]]) -> Optional[VaultRecord]:
        if not doc:
            return None
        data = dict(doc)
        data.pop(_ADDRESSES_FIELD, None)
        return VaultRecord.from_mongo(data)

    def _build_filter(self, flt: VaultQuery) -> Dict[str, Any]:
        q: Dict[str, Any] = {}
        if flt.user_id:
            q["user_info.user_id"] = flt.user_id
        if flt.status:
            q["status"] = _norm_lower(flt.status)
        if flt.networks:
            q["metadata.active_networks"] = {"$in": [_norm_lower(n) for n in flt.networks]}
        if flt.tags:
            q["metadata.tags"] = {"$in": list(flt.tags)}
        if flt.description:
            q["metadata.description"] = {"$regex": re.escape(flt.description), "$options": "i"}
        if flt.address:
            q[_ADDRESSES_FIELD] = _norm_lower(flt.address)
        return q

    # ---------------- reads ----------------

    def get(self, vault_id: str) -> Optional[VaultRecord]:
        return self._to_entity(self._collection.find_one({"vault_id": vault_id}))

    def query(self, flt: VaultQuery) -> List[VaultRecord]:
        sort_field = _SORTABLE.get(flt.sort_by, "created_at")
        direction = ASCENDING if flt.sort_order == "asc" else DESCENDING
        cursor = (
            self._collection.find(self._build_filter(flt))
            .sort([(sort_field, direction)])
            .skip(max(int(flt.offset), 0))
            .limit(max(int(flt.limit), 0))
        )
        return [r for r in (self._to_entity(d) for d in cursor) if r is not None]

    def count(self, flt: VaultQuery) -> int:
        return int(self._collection.count_documents(self._build_filter(flt)))

    def find_by_address(self, address: str) -> Optional[VaultRecord]:
        doc = self._collection.find_one(
            {_ADDRESSES_FIELD: _norm_lower(address)},
            sort=[("created_at", -1)],
        )
        return self._to_entity(doc)

    def aggregate_counts(self) -> Dict[str, Any]:
        per_network: Dict[str, int] = {}
        pipeline = [
            {"$unwind": "$metadata.active_networks"},
            {"$group": {"_id": "$metadata.active_networks", "count": {"$sum": 1}}},
        ]
        for row in self._collection.aggregate(pipeline):
            per_network[str(row["_id"])] = int(row["count"])

        return {
            "total_vaults": int(self._collection.count_documents({})),
            "total_deployments": sum(per_network.values()),
            "active_users": len(self._collection.distinct("user_info.user_id")),
            "deployments_per_network": per_network,
        }

    # ---------------- writes ----------------

    def create(self, record: VaultRecord) -> VaultRecord:
        record = record.touch_for_insert()
        res = self._collection.insert_one(self._to_doc(record))
        record.id = str(res.inserted_id)
        return record

    def replace(self, record: VaultRecord) -> VaultRecord:
        record = record.touch_for_update()
        self._collection.replace_one({"vault_id": record.vault_id}, self._to_doc(record), upsert=False)
        return record
