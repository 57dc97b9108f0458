import pytest

from core.domain.enums.deployment_enums import DeploymentStatus
from core.services.deployment_executor import NetworkDeploymentExecutor
from core.services.exceptions import (
    ChainRpcError,
    ConfirmationFailedError,
    ConfirmationTimeoutError,
    InsufficientFundsError,
    SubmissionError,
    UnknownNetworkError,
    VerificationFailedError,
)
from tests.conftest import predicted_address


@pytest.mark.asyncio
async def test_fresh_deployment_returns_confirmed_record(executor, chain, params):
    record = await executor.execute("sepolia", params)

    assert record.deployment_status == DeploymentStatus.DEPLOYED
    assert record.network_key == "sepolia"
    assert record.chain_id == 11155111
    assert record.address == predicted_address(params)
    assert record.is_existing is False
    assert record.tx_hash
    assert record.block_number == 123
    assert record.gas_used == 250_000
    assert record.gas_price == 10**9
    assert record.explorer_url.endswith(f"/address/{record.address}")
    assert chain.client("sepolia").submissions == 1


@pytest.mark.asyncio
async def test_redeploy_is_idempotent(executor, chain, params):
    first = await executor.execute("sepolia", params)
    second = await executor.execute("sepolia", params)

    assert second.address == first.address
    assert second.is_existing is True
    assert second.tx_hash is None
    assert chain.client("sepolia").submissions == 1


@pytest.mark.asyncio
async def test_network_key_is_normalized(executor, params):
    record = await executor.execute("  Sepolia ", params)
    assert record.network_key == "sepolia"


@pytest.mark.asyncio
async def test_unknown_network(executor, params):
    with pytest.raises(UnknownNetworkError) as exc:
        await executor.execute("solana", params)
    assert exc.value.network_key == "solana"
    assert exc.value.code == "unknown_network"


@pytest.mark.asyncio
async def test_zero_balance_is_rejected_before_submission(executor, chain, params):
    chain.client("sepolia").balance = 0

    with pytest.raises(InsufficientFundsError) as exc:
        await executor.execute("sepolia", params)

    assert exc.value.network_key == "sepolia"
    assert chain.client("sepolia").submissions == 0


@pytest.mark.asyncio
async def test_zero_balance_allowed_when_funding_not_required(registry, chain, params):
    executor = NetworkDeploymentExecutor(registry=registry, client_factory=chain, require_funding=False)
    chain.client("sepolia").balance = 0

    record = await executor.execute("sepolia", params)
    assert record.deployment_status == DeploymentStatus.DEPLOYED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "fail_on, error_type",
    [
        ("predict", ChainRpcError),
        ("balance", ChainRpcError),
        ("submit", SubmissionError),
        ("timeout", ConfirmationTimeoutError),
        ("revert", ConfirmationFailedError),
        ("verify", VerificationFailedError),
    ],
)
async def test_each_step_failure_is_typed_and_tagged(executor, chain, params, fail_on, error_type):
    chain.client("base_sepolia").fail_on = fail_on

    with pytest.raises(error_type) as exc:
        await executor.execute("base_sepolia", params)

    assert exc.value.network_key == "base_sepolia"


@pytest.mark.asyncio
async def test_submission_error_keeps_cause(executor, chain, params):
    chain.client("sepolia").fail_on = "submit"

    with pytest.raises(SubmissionError) as exc:
        await executor.execute("sepolia", params)

    assert isinstance(exc.value.__cause__, ConnectionError)
    assert "nonce too low" in str(exc.value)
