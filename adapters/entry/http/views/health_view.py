from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from adapters.external.database.mongo_client import ping_mongo
from config import get_settings
from core.domain.entities.base_entity import now_iso
from core.services.network_registry import NetworkRegistry
from core.services.web3_cache import get_async_web3

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

RPC_PROBE_TIMEOUT_SEC = 5.0


def get_registry() -> NetworkRegistry:
    return NetworkRegistry.from_settings()


async def _probe_rpc(rpc_url: str) -> Dict[str, Any]:
    try:
        block = await asyncio.wait_for(get_async_web3(rpc_url).eth.block_number, RPC_PROBE_TIMEOUT_SEC)
        return {"healthy": True, "block_number": int(block)}
    except Exception as exc:
        logger.warning("RPC probe failed for %s: %s", rpc_url, exc)
        return {"healthy": False, "error": str(exc) or type(exc).__name__}


@router.get("")
async def health():
    s = get_settings()
    return {
        "ok": True,
        "message": "OK",
        "data": {"status": "healthy", "env": s.ENV, "timestamp": now_iso()},
    }


@router.get("/detailed")
async def health_detailed(registry: NetworkRegistry = Depends(get_registry)):
    s = get_settings()

    try:
        ping_mongo()
        database: Dict[str, Any] = {"healthy": True}
    except Exception as exc:
        logger.error("MongoDB ping failed: %s", exc)
        database = {"healthy": False, "error": str(exc)}

    keys = [k for k in s.DEFAULT_NETWORKS if registry.is_supported(k)]
    probes = await asyncio.gather(*(_probe_rpc(registry.resolve(k).rpc) for k in keys))
    networks = dict(zip(keys, probes))

    healthy = database["healthy"] and all(p["healthy"] for p in probes)
    body = {
        "ok": healthy,
        "message": "OK" if healthy else "Degraded",
        "data": {
            "status": "healthy" if healthy else "unhealthy",
            "env": s.ENV,
            "timestamp": now_iso(),
            "database": database,
            "networks": networks,
        },
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)
