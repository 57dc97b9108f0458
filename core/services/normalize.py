from __future__ import annotations

import re

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def _norm(a: str | None) -> str:
    return (a or "").strip()


def _norm_lower(a: str | None) -> str:
    return _norm(a).lower()


def is_address_like(s: str | None) -> bool:
    return isinstance(s, str) and bool(_ADDRESS_RE.match(s.strip()))


def require_address(name: str, addr: str | None) -> str:
    addr = _norm(addr)
    if not is_address_like(addr):
        raise ValueError(f"Invalid {name} address format: {addr!r}")
    if _norm_lower(addr) == ZERO_ADDRESS:
        raise ValueError(f"{name} must not be zero address.")
    return addr


def norm_network_key(key: str | None) -> str:
    return _norm_lower(key)
