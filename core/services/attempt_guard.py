from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Set, Tuple

from core.services.exceptions import DeploymentInProgressError
from core.services.normalize import norm_network_key

logger = logging.getLogger(__name__)

AttemptKey = Tuple[str, str]


class DeploymentAttemptGuard:
    """
    In-process gate that stops two overlapping attempts on the same
    (vault_id, network_key) pair.

    The event loop is single-threaded, so check-and-mark in `try_acquire`
    is atomic as long as nothing awaits between the two. This gives no
    cross-process guarantee; idempotency on-chain is handled by the
    executor's pre-existing-contract check.
    """

    def __init__(self) -> None:
        self._in_flight: Set[AttemptKey] = set()

    @staticmethod
    def _key(vault_id: str, network_key: str) -> AttemptKey:
        return (vault_id, norm_network_key(network_key))

    def try_acquire(self, vault_id: str, network_key: str) -> bool:
        key = self._key(vault_id, network_key)
        if key in self._in_flight:
            return False
        self._in_flight.add(key)
        return True

    def release(self, vault_id: str, network_key: str) -> None:
        self._in_flight.discard(self._key(vault_id, network_key))

    def is_in_flight(self, vault_id: str, network_key: str) -> bool:
        return self._key(vault_id, network_key) in self._in_flight

    def in_flight(self) -> Set[AttemptKey]:
        return set(self._in_flight)

    @contextmanager
    def hold(self, vault_id: str, network_key: str) -> Iterator[None]:
        """
        Scoped acquisition: raises DeploymentInProgressError when the pair
        is taken, always releases on exit.
        """
        if not self.try_acquire(vault_id, network_key):
            logger.warning("Deployment already in progress vault=%s network=%s", vault_id, network_key)
            raise DeploymentInProgressError(norm_network_key(network_key), vault_id=vault_id)
        try:
            yield
        finally:
            self.release(vault_id, network_key)
