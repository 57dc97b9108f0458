import pytest

from core.services.attempt_guard import DeploymentAttemptGuard
from core.services.exceptions import DeploymentInProgressError


def test_second_acquire_is_rejected_until_release():
    guard = DeploymentAttemptGuard()

    assert guard.try_acquire("v1", "sepolia") is True
    assert guard.try_acquire("v1", "sepolia") is False
    assert guard.is_in_flight("v1", "sepolia")

    guard.release("v1", "sepolia")
    assert guard.try_acquire("v1", "sepolia") is True


def test_pairs_are_independent():
    guard = DeploymentAttemptGuard()

    assert guard.try_acquire("v1", "sepolia")
    assert guard.try_acquire("v1", "base_sepolia")
    assert guard.try_acquire("v2", "sepolia")
    assert guard.in_flight() == {("v1", "sepolia"), ("v1", "base_sepolia"), ("v2", "sepolia")}


def test_network_key_case_is_ignored():
    guard = DeploymentAttemptGuard()

    assert guard.try_acquire("v1", "Sepolia")
    assert guard.try_acquire("v1", "sepolia") is False


def test_release_of_unknown_pair_is_noop():
    guard = DeploymentAttemptGuard()
    guard.release("v1", "sepolia")
    assert guard.in_flight() == set()


def test_hold_releases_on_error():
    guard = DeploymentAttemptGuard()

    with pytest.raises(RuntimeError):
        with guard.hold("v1", "sepolia"):
            raise RuntimeError("boom")

    assert not guard.is_in_flight("v1", "sepolia")


def test_hold_rejects_overlap():
    guard = DeploymentAttemptGuard()

    with guard.hold("v1", "sepolia"):
        with pytest.raises(DeploymentInProgressError) as exc:
            with guard.hold("v1", "sepolia"):
                pass
        assert exc.value.vault_id == "v1"
        assert exc.value.network_key == "sepolia"
        assert guard.is_in_flight("v1", "sepolia")

    assert not guard.is_in_flight("v1", "sepolia")
