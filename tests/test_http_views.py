import pytest
from fastapi.testclient import TestClient

from adapters.entry.http.views.networks_view import get_registry
from adapters.entry.http.views.vaults_view import get_deployment_use_case, get_query_use_case
from core.use_cases.vault_query_usecase import VaultQueryUseCase
from main import create_app
from tests.conftest import USER_WALLET


@pytest.fixture()
def client(use_case, repo, registry):
    app = create_app()
    app.dependency_overrides[get_deployment_use_case] = lambda: use_case
    app.dependency_overrides[get_query_use_case] = lambda: VaultQueryUseCase(repo=repo)
    app.dependency_overrides[get_registry] = lambda: registry
    # no context manager: the lifespan (Mongo indexes) is not run
    return TestClient(app)


def _deploy(client, networks, **extra):
    body = {"user_info": {"user_id": "user-1", "wallet_address": USER_WALLET}, "networks": networks, **extra}
    return client.post("/api/vaults/deploy", json=body)


def test_deploy_returns_201_envelope(client):
    resp = _deploy(client, ["sepolia", "base_sepolia"], description="hello")

    assert resp.status_code == 201
    body = resp.json()
    assert body["ok"] is True
    data = body["data"]
    assert data["status"] == "active"
    assert data["determinism_violation"] is False
    assert sorted(data["successful_networks"]) == ["base_sepolia", "sepolia"]
    assert data["per_network"]["sepolia"]["address"] == data["common_address"]


def test_deploy_partial_failure_still_201(client, chain):
    chain.client("sepolia").fail_on = "submit"

    resp = _deploy(client, ["sepolia", "base_sepolia"])

    assert resp.status_code == 201
    assert resp.json()["data"]["failed_networks"] == ["sepolia"]


def test_deploy_unknown_network_is_400(client):
    resp = _deploy(client, ["sepolia", "solana"])
    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "unknown_network"


def test_deploy_bad_wallet_is_400(client):
    resp = client.post(
        "/api/vaults/deploy",
        json={"user_info": {"user_id": "user-1", "wallet_address": "0x12"}, "networks": ["sepolia"]},
    )
    assert resp.status_code == 400


def test_deploy_zero_wallet_is_400(client):
    resp = client.post(
        "/api/vaults/deploy",
        json={"user_info": {"user_id": "user-1", "wallet_address": "0x" + "0" * 40}, "networks": ["sepolia"]},
    )
    assert resp.status_code == 400


def test_deploy_all_failed_is_500_with_detail(client, chain):
    chain.client("sepolia").fail_on = "revert"

    resp = _deploy(client, ["sepolia"])

    assert resp.status_code == 500
    detail = resp.json()["detail"]
    assert detail["error"] == "all_deployments_failed"
    assert detail["per_network"]["sepolia"]["error_code"] == "confirmation_failed"


def test_expand_flow(client):
    created = _deploy(client, ["sepolia"]).json()["data"]
    vault_id = created["vault_id"]

    resp = client.post(f"/api/vaults/{vault_id}/expand", json={"networks": ["sepolia", "base_sepolia"]})
    assert resp.status_code == 200
    assert list(resp.json()["data"]["per_network"]) == ["base_sepolia"]

    again = client.post(f"/api/vaults/{vault_id}/expand", json={"networks": ["base_sepolia"]})
    assert again.status_code == 400
    assert again.json()["detail"]["error"] == "no_networks_to_expand"

    missing = client.post("/api/vaults/nope/expand", json={"networks": ["base_sepolia"]})
    assert missing.status_code == 404

    empty = client.post(f"/api/vaults/{vault_id}/expand", json={"networks": []})
    assert empty.status_code == 400


def test_status_and_metadata_updates(client):
    vault_id = _deploy(client, ["sepolia"]).json()["data"]["vault_id"]

    resp = client.put(f"/api/vaults/{vault_id}/status", json={"status": "suspended"})
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "suspended"

    bad = client.put(f"/api/vaults/{vault_id}/status", json={"status": "deleted"})
    assert bad.status_code == 400

    meta = client.put(f"/api/vaults/{vault_id}/metadata", json={"tags": ["ops"]})
    assert meta.status_code == 200
    assert meta.json()["data"]["metadata"]["tags"] == ["ops"]


def test_reads(client):
    created = _deploy(client, ["sepolia"], tags=["team"]).json()["data"]
    vault_id = created["vault_id"]

    assert client.get(f"/api/vaults/{vault_id}").json()["data"]["vault_id"] == vault_id
    assert client.get("/api/vaults/nope").status_code == 404
    assert client.get(f"/api/vaults/address/{created['common_address']}").json()["data"]["vault_id"] == vault_id
    assert client.get("/api/vaults/address/0x12").status_code == 400

    listed = client.get("/api/vaults/user/user-1", params={"networks": "sepolia"}).json()["data"]
    assert listed["pagination"]["total"] == 1

    found = client.get("/api/vaults/search", params={"tags": "team,other"}).json()["data"]
    assert [v["vault_id"] for v in found["vaults"]] == [vault_id]

    stats = client.get("/api/vaults/user/user-1/stats").json()["data"]
    assert stats["total_vaults"] == 1

    net = client.get("/api/vaults/network/stats").json()["data"]
    assert net["deployments"] == {"sepolia": 1}


def test_network_catalogue(client):
    supported = client.get("/api/networks/supported", params={"type": "testnet"}).json()["data"]
    assert supported["count"] == 3
    assert "rpc" not in supported["networks"]["sepolia"]

    assert client.get("/api/networks/groups/layer2").status_code == 200
    assert client.get("/api/networks/groups/sidechains").status_code == 404
    assert client.get("/api/networks/features/low_fees").status_code == 200
    assert client.get("/api/networks/features/teleportation").status_code == 404

    recs = client.get("/api/networks/recommendations/whatever").json()["data"]
    assert [n["key"] for n in recs["networks"]] == ["ethereum"]


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "healthy"
