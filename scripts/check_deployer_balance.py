# scripts/check_deployer_balance.py

"""
Print the agent deployer address and its native balance on every supported
network (or a selected subset), flagging networks where the balance is zero
and vault deployments would be rejected.

Usage (from project root):

    python -m scripts.check_deployer_balance
    python -m scripts.check_deployer_balance --network arbitrum --network base
    python -m scripts.check_deployer_balance --testnets

The private key is read from AGENT_PRIVATE_KEY via `get_settings()`; RPC
endpoints honour the same per-network overrides as the service.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from decimal import Decimal
from typing import List, Optional

from eth_account import Account
from web3 import Web3

from config import get_settings
from core.domain.entities.network_entity import NetworkConfig
from core.domain.enums.deployment_enums import NetworkKind
from core.services.network_registry import NetworkRegistry
from core.services.web3_cache import get_async_web3

logger = logging.getLogger(__name__)


async def check_network(network: NetworkConfig, address: str) -> Optional[int]:
    w3 = get_async_web3(network.rpc)
    try:
        balance = int(await w3.eth.get_balance(Web3.to_checksum_address(address)))
        chain_id = int(await w3.eth.chain_id)
    except Exception as exc:
        logger.error("%-18s RPC error: %s", network.key, exc)
        return None

    amount = Decimal(balance) / Decimal(10**network.currency.decimals)
    logger.info(
        "%-18s chain_id=%-9d balance=%s %s (%d wei)",
        network.key,
        chain_id,
        amount.normalize(),
        network.currency.symbol,
        balance,
    )
    if chain_id != network.chain_id:
        logger.warning("%-18s RPC reports chain id %d, expected %d", network.key, chain_id, network.chain_id)
    if balance == 0:
        logger.warning("%-18s no %s balance: deployments will fail", network.key, network.currency.symbol)
    return balance


async def run(networks: List[NetworkConfig], address: str) -> int:
    results = await asyncio.gather(*(check_network(n, address) for n in networks))
    unfunded = [n.key for n, bal in zip(networks, results) if not bal]
    if unfunded:
        logger.warning("Unfunded or unreachable: %s", ", ".join(unfunded))
        return 1
    logger.info("Deployer funded on all %d networks.", len(networks))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Check the vault deployer balance on each network.")
    parser.add_argument(
        "--network",
        dest="networks",
        action="append",
        help="Network key to check; repeatable. Defaults to every supported network.",
    )
    kind = parser.add_mutually_exclusive_group()
    kind.add_argument("--mainnets", action="store_true", help="Only mainnets")
    kind.add_argument("--testnets", action="store_true", help="Only testnets")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    settings = get_settings()
    if not settings.AGENT_PRIVATE_KEY:
        raise RuntimeError("AGENT_PRIVATE_KEY is not configured. Set it before running this script.")
    address = Account.from_key(settings.AGENT_PRIVATE_KEY).address

    registry = NetworkRegistry.from_settings()
    if args.networks:
        networks = [registry.resolve(k) for k in registry.validate_keys(args.networks)]
    elif args.mainnets:
        networks = registry.list(NetworkKind.MAINNET)
    elif args.testnets:
        networks = registry.list(NetworkKind.TESTNET)
    else:
        networks = registry.list()

    logger.info("Deployer address: %s", address)
    raise SystemExit(asyncio.run(run(networks, address)))


if __name__ == "__main__":
    main()
