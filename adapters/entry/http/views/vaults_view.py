from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from adapters.entry.http.dtos.vault_dtos import (
    DeployVaultRequest,
    ExpandVaultRequest,
    UpdateVaultMetadataRequest,
    UpdateVaultStatusRequest,
)
from core.domain.schemas.deployment_types import AggregateDeploymentResult, VaultQuery
from core.services.exceptions import (
    AllDeploymentsFailedError,
    NoNetworksToExpandError,
    UnknownNetworkError,
    VaultNotFoundError,
)
from core.use_cases.vault_deployment_usecase import VaultDeploymentUseCase
from core.use_cases.vault_query_usecase import VaultQueryUseCase, vault_to_dict


router = APIRouter(prefix="/vaults", tags=["vaults"])


@lru_cache(maxsize=1)
def get_deployment_use_case() -> VaultDeploymentUseCase:
    # one instance per process so every request shares the attempt guard
    return VaultDeploymentUseCase.from_settings()


def get_query_use_case() -> VaultQueryUseCase:
    return VaultQueryUseCase.from_settings()


def _http_error(exc: Exception, what: str) -> HTTPException:
    if isinstance(exc, VaultNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (UnknownNetworkError, NoNetworksToExpandError)):
        return HTTPException(status_code=400, detail=exc.as_dict())
    if isinstance(exc, AllDeploymentsFailedError):
        detail = exc.as_dict()
        detail["vault_id"] = exc.vault_id
        detail["per_network"] = exc.per_network
        return HTTPException(status_code=500, detail=detail)
    if isinstance(exc, ValueError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=f"{what}: {exc}")


def _csv(v: Optional[str]) -> Optional[List[str]]:
    if not v:
        return None
    items = [x.strip() for x in v.split(",") if x.strip()]
    return items or None


def _result_to_dict(result: AggregateDeploymentResult) -> dict:
    data = result.model_dump(mode="json")
    data["successful_networks"] = result.successful_networks
    data["failed_networks"] = result.failed_networks
    return data


# ---------------------------------------------------------------------------
# Deployment
# ---------------------------------------------------------------------------


@router.post("/deploy", status_code=201)
async def deploy_vault(
    body: DeployVaultRequest,
    use_case: VaultDeploymentUseCase = Depends(get_deployment_use_case),
):
    try:
        result = await use_case.create_vault(body.user_info.to_user_info(), body.networks, body.to_options())
    except HTTPException:
        raise
    except Exception as exc:
        raise _http_error(exc, "Failed to deploy vault") from exc

    ok = len(result.successful_networks)
    return {
        "ok": True,
        "message": f"Vault deployed on {ok} of {len(result.per_network)} networks.",
        "data": _result_to_dict(result),
    }


@router.post("/{vault_id}/expand")
async def expand_vault(
    vault_id: str,
    body: ExpandVaultRequest,
    use_case: VaultDeploymentUseCase = Depends(get_deployment_use_case),
):
    try:
        result = await use_case.expand_vault(vault_id, body.networks)
    except HTTPException:
        raise
    except Exception as exc:
        raise _http_error(exc, "Failed to expand vault") from exc

    ok = len(result.successful_networks)
    return {
        "ok": ok > 0,
        "message": f"Vault expanded to {ok} of {len(result.per_network)} networks.",
        "data": _result_to_dict(result),
    }


@router.put("/{vault_id}/status")
async def update_vault_status(
    vault_id: str,
    body: UpdateVaultStatusRequest,
    use_case: VaultDeploymentUseCase = Depends(get_deployment_use_case),
):
    try:
        record = use_case.set_status(vault_id, body.status)
        return {"ok": True, "message": "Vault status updated.", "data": vault_to_dict(record)}
    except HTTPException:
        raise
    except Exception as exc:
        raise _http_error(exc, "Failed to update vault status") from exc


@router.put("/{vault_id}/metadata")
async def update_vault_metadata(
    vault_id: str,
    body: UpdateVaultMetadataRequest,
    use_case: VaultQueryUseCase = Depends(get_query_use_case),
):
    try:
        return use_case.update_metadata(vault_id=vault_id, description=body.description, tags=body.tags)
    except HTTPException:
        raise
    except Exception as exc:
        raise _http_error(exc, "Failed to update vault metadata") from exc


# ---------------------------------------------------------------------------
# Reads (static paths first so they are not taken as a vault id)
# ---------------------------------------------------------------------------


@router.get("/search")
async def search_vaults(
    user_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    networks: Optional[str] = Query(None, description="Comma-separated network keys"),
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    description: Optional[str] = Query(None),
    address: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    use_case: VaultQueryUseCase = Depends(get_query_use_case),
):
    try:
        return use_case.search(
            VaultQuery(
                user_id=user_id,
                status=status,
                networks=_csv(networks),
                tags=_csv(tags),
                description=description,
                address=address,
                limit=limit,
                offset=offset,
            )
        )
    except HTTPException:
        raise
    except Exception as exc:
        raise _http_error(exc, "Failed to search vaults") from exc


@router.get("/network/stats")
async def network_stats(use_case: VaultQueryUseCase = Depends(get_query_use_case)):
    try:
        return use_case.network_stats()
    except HTTPException:
        raise
    except Exception as exc:
        raise _http_error(exc, "Failed to get network stats") from exc


@router.get("/address/{address}")
async def get_vault_by_address(
    address: str,
    use_case: VaultQueryUseCase = Depends(get_query_use_case),
):
    try:
        return use_case.get_vault_by_address(address=address)
    except HTTPException:
        raise
    except Exception as exc:
        raise _http_error(exc, "Failed to get vault by address") from exc


@router.get("/user/{user_id}")
async def list_user_vaults(
    user_id: str,
    status: Optional[str] = Query(None),
    networks: Optional[str] = Query(None, description="Comma-separated network keys"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    sort_by: str = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    use_case: VaultQueryUseCase = Depends(get_query_use_case),
):
    try:
        return use_case.list_by_user(
            user_id=user_id,
            status=status,
            networks=_csv(networks),
            limit=limit,
            offset=offset,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except HTTPException:
        raise
    except Exception as exc:
        raise _http_error(exc, "Failed to list user vaults") from exc


@router.get("/user/{user_id}/stats")
async def user_stats(
    user_id: str,
    use_case: VaultQueryUseCase = Depends(get_query_use_case),
):
    try:
        return use_case.user_stats(user_id=user_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise _http_error(exc, "Failed to get user stats") from exc


@router.get("/{vault_id}")
async def get_vault(
    vault_id: str,
    use_case: VaultQueryUseCase = Depends(get_query_use_case),
):
    try:
        return use_case.get_vault(vault_id=vault_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise _http_error(exc, "Failed to get vault") from exc
