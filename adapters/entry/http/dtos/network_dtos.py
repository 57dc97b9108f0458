from __future__ import annotations

from typing import Any, Dict, List

from core.domain.entities.network_entity import NetworkConfig


def network_to_dict(n: NetworkConfig) -> Dict[str, Any]:
    """
    Public view of a network; the RPC URL is left out since it may carry
    a provider API key.
    """
    data = n.model_dump(mode="json")
    data.pop("rpc", None)
    return data


def networks_to_list(rows: List[NetworkConfig]) -> List[Dict[str, Any]]:
    return [network_to_dict(n) for n in rows]
