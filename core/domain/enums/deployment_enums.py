from __future__ import annotations

from enum import StrEnum


class VaultStatus(StrEnum):
    """
    Lifecycle status of a vault record stored in Mongo.

    Rules:
    - INITIALIZING: record created, no network has a successful deployment yet.
    - ACTIVE: set automatically on the first successful deployment.
    - SUSPENDED / ARCHIVED: only reachable through the admin status override.
    """

    INITIALIZING = "initializing"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


class DeploymentStatus(StrEnum):
    PENDING = "pending"
    DEPLOYED = "deployed"
    FAILED = "failed"


class NetworkKind(StrEnum):
    """
    Filter used by the network catalogue endpoints.
    """

    MAINNET = "mainnet"
    TESTNET = "testnet"
    ALL = "all"


class GasStrategy(StrEnum):
    """
    Padding applied on top of the node gas estimate for the creation tx.
    """

    DEFAULT = "default"
    BUFFERED = "buffered"
    AGGRESSIVE = "aggressive"
