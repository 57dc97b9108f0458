from __future__ import annotations

from typing import Any, Dict, List, Optional


class VaultServiceError(Exception):
    """
    Base class for every error raised by the deployment service.

    `code` is a stable identifier that is persisted on failed deployment
    records and returned by the HTTP layer.
    """

    code = "vault_service_error"

    def __init__(self, msg: str, *, network_key: Optional[str] = None) -> None:
        super().__init__(msg)
        self.msg = msg
        self.network_key = network_key

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"error": self.code, "message": self.msg}
        if self.network_key:
            out["network_key"] = self.network_key
        return out


# ---------------------------------------------------------------------------
# Per-network failures (captured into the aggregate result)
# ---------------------------------------------------------------------------


class NetworkDeploymentError(VaultServiceError):
    """
    Failure of one deployment attempt on one network.
    """

    code = "network_deployment_error"

    def __init__(self, network_key: str, msg: str) -> None:
        super().__init__(msg, network_key=network_key)


class UnknownNetworkError(NetworkDeploymentError):
    code = "unknown_network"

    def __init__(self, network_key: str) -> None:
        super().__init__(network_key, f"Unsupported network: {network_key}")


class InsufficientFundsError(NetworkDeploymentError):
    code = "insufficient_funds"

    def __init__(self, network_key: str, *, account: str, symbol: str) -> None:
        super().__init__(network_key, f"No {symbol} balance on {network_key} for deployer {account}")
        self.account = account
        self.symbol = symbol


class ChainRpcError(NetworkDeploymentError):
    """
    A read call (address prediction, code or balance lookup) failed.
    """

    code = "rpc_error"


class SubmissionError(NetworkDeploymentError):
    code = "submission_error"


class ConfirmationTimeoutError(NetworkDeploymentError):
    code = "confirmation_timeout"

    def __init__(self, network_key: str, *, tx_hash: str, timeout_sec: float) -> None:
        super().__init__(network_key, f"No receipt for {tx_hash} after {timeout_sec:.0f}s")
        self.tx_hash = tx_hash
        self.timeout_sec = timeout_sec


class ConfirmationFailedError(NetworkDeploymentError):
    code = "confirmation_failed"

    def __init__(self, network_key: str, *, tx_hash: str, receipt: Optional[dict] = None) -> None:
        super().__init__(network_key, f"Creation transaction {tx_hash} failed (status=0)")
        self.tx_hash = tx_hash
        self.receipt = receipt


class VerificationFailedError(NetworkDeploymentError):
    code = "verification_failed"

    def __init__(self, network_key: str, *, address: str, tx_hash: str) -> None:
        super().__init__(
            network_key,
            f"Transaction {tx_hash} confirmed but no contract code found at {address}",
        )
        self.address = address
        self.tx_hash = tx_hash


class DeploymentInProgressError(NetworkDeploymentError):
    code = "deployment_in_progress"

    def __init__(self, network_key: str, *, vault_id: str) -> None:
        super().__init__(network_key, f"Deployment already in progress for {vault_id} on {network_key}")
        self.vault_id = vault_id


# ---------------------------------------------------------------------------
# Vault-level failures
# ---------------------------------------------------------------------------


class VaultNotFoundError(VaultServiceError):
    code = "vault_not_found"

    def __init__(self, ref: str) -> None:
        super().__init__(f"Vault not found: {ref}")
        self.ref = ref


class NoNetworksToExpandError(VaultServiceError):
    code = "no_networks_to_expand"

    def __init__(self, vault_id: str, requested: List[str]) -> None:
        if requested:
            msg = f"Vault {vault_id} is already deployed on all of: {', '.join(requested)}"
        else:
            msg = f"No networks requested to expand vault {vault_id}"
        super().__init__(msg)
        self.vault_id = vault_id
        self.requested = requested


class AllDeploymentsFailedError(VaultServiceError):
    """
    Raised by create_vault when not a single network succeeded.

    The vault record is kept in `initializing` so it can be retried through
    expansion; `per_network` carries every failed record.
    """

    code = "all_deployments_failed"

    def __init__(self, vault_id: str, per_network: Dict[str, Any]) -> None:
        super().__init__(f"All vault deployments failed for {vault_id}")
        self.vault_id = vault_id
        self.per_network = per_network


class DeterminismViolation(VaultServiceError):
    """
    Successful deployments landed at different addresses.

    Warning-class: attached to determinism reports, never raised by the
    orchestrator.
    """

    code = "determinism_violation"

    def __init__(self, addresses: List[str]) -> None:
        super().__init__(f"Vault deployed at {len(addresses)} different addresses: {', '.join(addresses)}")
        self.addresses = addresses
