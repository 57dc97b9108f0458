import pytest
from web3 import AsyncWeb3, Web3
from web3.providers.rpc import AsyncHTTPProvider

from adapters.chain import safe_chain_client
from adapters.chain.safe_chain_client import Web3SafeChainClient, get_chain_client
from adapters.chain.safe_proxy_factory import (
    SafeSingletonAdapter,
    compute_create2_address,
    compute_safe_proxy_salt,
    predict_safe_address,
)
from tests.conftest import AGENT_ADDRESS, USER_WALLET

SINGLETON = "0x29fcB43b46531BcA003ddC8FCB67FFE91900C762"
PROXY_FACTORY = "0x4e1DCf7AD4e460CfD30791CCC4F9c8a4f820ec67"
FALLBACK_HANDLER = "0xfd0732Dc9E303f09fCEf3a7388Ad10A83459Ec99"
TEST_KEY = "0x" + "11" * 32

# creation code stub; the real one is read from the factory
CREATION_CODE = bytes.fromhex("608060405234801561001057600080fd5b50")


def _w3() -> AsyncWeb3:
    return AsyncWeb3(AsyncHTTPProvider("http://127.0.0.1:8545"))


def _salt(hexstr: str) -> bytes:
    return bytes.fromhex(hexstr[2:].rjust(64, "0"))


@pytest.mark.parametrize(
    "deployer, salt, init_code, expected",
    [
        # EIP-1014 reference vectors
        ("0x0000000000000000000000000000000000000000", "0x00", "00", "0x4D1A2e2bB4F88F0250f26Ffff098B0b30B26BF38"),
        ("0xdeadbeef00000000000000000000000000000000", "0x00", "00", "0xB928f69Bb1D91Cd65274e3c79d8986362984fDA3"),
        (
            "0xdeadbeef00000000000000000000000000000000",
            "0x000000000000000000000000feed000000000000000000000000000000000000",
            "00",
            "0xD04116cDd17beBE565EB2422F2497E06cC1C9833",
        ),
        ("0x0000000000000000000000000000000000000000", "0x00", "deadbeef", "0x70f2b2914A2a4b783FaEFb75f459A580616Fcb5e"),
        (
            "0x00000000000000000000000000000000deadbeef",
            "0xcafebabe",
            "deadbeef",
            "0x60f3f640a8508fC6a86d45DF051962668E1e8AC7",
        ),
    ],
)
def test_create2_reference_vectors(deployer, salt, init_code, expected):
    assert compute_create2_address(deployer, _salt(salt), bytes.fromhex(init_code)) == expected


def test_create2_rejects_short_salt():
    with pytest.raises(ValueError):
        compute_create2_address(PROXY_FACTORY, b"\x01", b"\x00")


def test_safe_salt_layout():
    initializer = b"\x12\x34"
    expected = Web3.keccak(bytes(Web3.keccak(initializer)) + (7).to_bytes(32, "big"))
    assert compute_safe_proxy_salt(initializer, 7) == bytes(expected)


def test_setup_initializer_encoding():
    singleton = SafeSingletonAdapter(_w3(), SINGLETON, FALLBACK_HANDLER)
    data = singleton.encode_setup([USER_WALLET, AGENT_ADDRESS], 1)

    # setup(address[],uint256,address,bytes,address,address,uint256,address)
    assert data[:4] == bytes.fromhex("b63e800d")
    assert FALLBACK_HANDLER[2:].lower() in data.hex()
    assert USER_WALLET[2:].lower() in data.hex()


def test_prediction_depends_on_every_parameter():
    init_a = b"\x01"
    base = predict_safe_address(
        proxy_factory=PROXY_FACTORY,
        singleton=SINGLETON,
        proxy_creation_code=CREATION_CODE,
        initializer=init_a,
        salt_nonce=1,
    )
    again = predict_safe_address(
        proxy_factory=PROXY_FACTORY,
        singleton=SINGLETON,
        proxy_creation_code=CREATION_CODE,
        initializer=init_a,
        salt_nonce=1,
    )
    other_salt = predict_safe_address(
        proxy_factory=PROXY_FACTORY,
        singleton=SINGLETON,
        proxy_creation_code=CREATION_CODE,
        initializer=init_a,
        salt_nonce=2,
    )
    other_init = predict_safe_address(
        proxy_factory=PROXY_FACTORY,
        singleton=SINGLETON,
        proxy_creation_code=CREATION_CODE,
        initializer=b"\x02",
        salt_nonce=1,
    )

    assert base == again
    assert Web3.is_checksum_address(base)
    assert len({base, other_salt, other_init}) == 3


def _client(network) -> Web3SafeChainClient:
    client = Web3SafeChainClient(
        network=network,
        w3=_w3(),
        private_key=TEST_KEY,
        singleton_address=SINGLETON,
        proxy_factory_address=PROXY_FACTORY,
        fallback_handler_address=FALLBACK_HANDLER,
    )
    client.factory._creation_code = CREATION_CODE
    return client


@pytest.mark.asyncio
async def test_client_prediction_is_chain_independent(registry, params):
    on_base = await _client(registry.resolve("base")).predict_address(params)
    on_arbitrum = await _client(registry.resolve("arbitrum")).predict_address(params)

    assert on_base == on_arbitrum


@pytest.mark.asyncio
async def test_client_prediction_matches_factory_math(registry, params):
    client = _client(registry.resolve("sepolia"))

    expected = predict_safe_address(
        proxy_factory=PROXY_FACTORY,
        singleton=SINGLETON,
        proxy_creation_code=CREATION_CODE,
        initializer=client.singleton.encode_setup(params.owners, params.threshold),
        salt_nonce=params.salt_nonce_int,
    )
    assert await client.predict_address(params) == expected
    assert client.deployer_address == Web3.to_checksum_address(client.tx.account.address)


def test_chain_client_is_reused_per_network(monkeypatch, registry):
    built = []

    def build(network):
        built.append(network.key)
        return _client(network)

    monkeypatch.setattr(safe_chain_client, "_CLIENTS", {})
    monkeypatch.setattr(Web3SafeChainClient, "from_settings", staticmethod(build))

    first = get_chain_client(registry.resolve("sepolia"))
    again = get_chain_client(registry.resolve("sepolia"))
    other = get_chain_client(registry.resolve("base"))

    assert first is again
    assert first is not other
    assert built == ["sepolia", "base"]
