from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from adapters.entry.http.dtos.network_dtos import network_to_dict, networks_to_list
from core.domain.enums.deployment_enums import NetworkKind
from core.services.network_registry import NetworkRegistry


router = APIRouter(prefix="/networks", tags=["networks"])


def get_registry() -> NetworkRegistry:
    return NetworkRegistry.from_settings()


@router.get("/supported")
async def supported_networks(
    type: NetworkKind = Query(NetworkKind.ALL, description="mainnet | testnet | all"),
    registry: NetworkRegistry = Depends(get_registry),
):
    rows = registry.list(type)
    return {
        "ok": True,
        "message": "OK",
        "data": {
            "networks": {n.key: network_to_dict(n) for n in rows},
            "count": len(rows),
            "type": str(type),
        },
    }


@router.get("/groups/{group_name}")
async def networks_by_group(
    group_name: str,
    registry: NetworkRegistry = Depends(get_registry),
):
    try:
        rows = registry.by_group(group_name)
    except KeyError as exc:
        raise HTTPException(
            status_code=404,
            detail={
                "error": f"Unknown network group: {group_name}",
                "available_groups": sorted(NetworkRegistry.groups()),
            },
        ) from exc
    return {"ok": True, "message": "OK", "data": {"group": group_name, "networks": networks_to_list(rows)}}


@router.get("/features/{feature_name}")
async def networks_by_feature(
    feature_name: str,
    registry: NetworkRegistry = Depends(get_registry),
):
    try:
        rows = registry.by_feature(feature_name)
    except KeyError as exc:
        raise HTTPException(
            status_code=404,
            detail={
                "error": f"Unknown feature: {feature_name}",
                "available_features": sorted(NetworkRegistry.features()),
            },
        ) from exc
    feature = NetworkRegistry.features()[feature_name]
    return {
        "ok": True,
        "message": "OK",
        "data": {
            "feature": feature.model_dump(),
            "networks": networks_to_list(rows),
        },
    }


@router.get("/recommendations/{use_case}")
async def recommended_networks(
    use_case: str,
    registry: NetworkRegistry = Depends(get_registry),
):
    rows = registry.recommended(use_case)
    return {
        "ok": True,
        "message": "OK",
        "data": {"use_case": use_case, "networks": networks_to_list(rows)},
    }
