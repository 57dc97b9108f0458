# core/services/utils.py
import secrets
import time
from typing import Any
from collections.abc import Mapping
from hexbytes import HexBytes
from web3 import Web3


def to_json_safe(obj: Any) -> Any:
    """
    Recursively convert web3 / HexBytes-heavy structures (receipts, tx dicts)
    into plain JSON-serializable primitives.

    - HexBytes / bytes -> "0x..." str
    - Mapping          -> {k: to_json_safe(v)}   (covers AttributeDict)
    - list/tuple/set   -> [to_json_safe(v), ...]
    - everything else  -> unchanged if primitive, else str(obj)
    """
    if isinstance(obj, HexBytes):
        return Web3.to_hex(obj)

    if isinstance(obj, (bytes, bytearray)):
        return "0x" + obj.hex()

    if isinstance(obj, (str, int, float, bool)) or obj is None:
        return obj

    # IMPORTANT: covers web3.datastructures.AttributeDict
    if isinstance(obj, Mapping):
        return {str(k): to_json_safe(v) for (k, v) in obj.items()}

    if isinstance(obj, (list, tuple, set)):
        return [to_json_safe(v) for v in obj]

    return str(obj)


def generate_salt_nonce(user_id: str) -> str:
    """
    Fresh CREATE2 salt nonce for a new vault: keccak256 of the user id, a
    nanosecond timestamp and 128 random bits, as a 0x-prefixed hex string.

    Collisions between vaults are not checked.
    """
    seed = f"{user_id}-{time.time_ns()}-{secrets.token_hex(16)}"
    return Web3.to_hex(Web3.keccak(text=seed))
