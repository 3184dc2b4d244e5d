# tests/test_oracle.py
from __future__ import annotations

import pytest

from sss_control.client import Stablecoin
from sss_control.codec import U64_MAX
from sss_control.errors import PreconditionFailed, ProgramError, ProgramErrorKind, ValidationError
from sss_control.execution import AccountInfo
from sss_control.oracle import (
    PYTH_V2_DEVNET,
    PYTH_V2_MAINNET,
    OraclePrice,
    effective_supply_cap,
    encode_pyth_price,
    fetch_price,
    parse_pyth_price,
    usd_to_token_amount,
)
from sss_control.pda import TOKEN_2022_PROGRAM_ID
from sss_control.presets import can_mint
from sss_control.testing.keys import deterministic_keypair, deterministic_keypairs
from sss_control.testing.ledger import InMemoryLedger

ONE_USD = OraclePrice(price=100_000_000, exponent=-8)
TWO_USD = OraclePrice(price=200_000_000, exponent=-8)


def _feed(ledger: InMemoryLedger, label: str, price: int, *, owner=PYTH_V2_DEVNET, exponent: int = -8, size: int = 224):
    addr = deterministic_keypair(label).pubkey
    ledger.put_account(addr, AccountInfo(owner=owner, lamports=1, data=encode_pyth_price(price, exponent, size)))
    return addr


def test_parse_pyth_price() -> None:
    p = parse_pyth_price(encode_pyth_price(100_000_000, -8))
    assert p == ONE_USD
    assert parse_pyth_price(encode_pyth_price(1_500_000, -6)).exponent == -6


@pytest.mark.parametrize(
    "data, code",
    [
        (bytes(100), "invalid_oracle_data"),
        (encode_pyth_price(0, -8), "invalid_oracle_price"),
        (encode_pyth_price(-100, -8), "invalid_oracle_price"),
    ],
)
def test_parse_pyth_price_rejects(data: bytes, code: str) -> None:
    with pytest.raises(ValidationError) as ei:
        parse_pyth_price(data)
    assert ei.value.code == code


def test_usd_to_token_amount() -> None:
    assert usd_to_token_amount(100, ONE_USD, 6) == 100_000_000
    assert usd_to_token_amount(1, TWO_USD, 6) == 500_000
    assert usd_to_token_amount(100, OraclePrice(price=1, exponent=2), 6) == 1_000_000
    # floors
    assert usd_to_token_amount(1, OraclePrice(price=300_000_000, exponent=-8), 6) == 333_333
    # saturates instead of overflowing u64
    assert usd_to_token_amount(U64_MAX, OraclePrice(price=1, exponent=-8), 6) == U64_MAX


def test_effective_supply_cap() -> None:
    assert effective_supply_cap(None, TWO_USD, 6) is None
    assert effective_supply_cap(100, None, 6) == 100
    assert effective_supply_cap(100, TWO_USD, 6) == 50_000_000


def test_can_mint_previews_the_adjusted_cap() -> None:
    assert not can_mint(0, 0, 100, 1_000)
    assert can_mint(0, 0, 100, 50_000_000, price=TWO_USD, decimals=6)
    assert not can_mint(0, 0, 100, 50_000_001, price=TWO_USD, decimals=6)
    assert can_mint(10, 5, None, 1, price=TWO_USD)


def test_fetch_price_checks_the_owner() -> None:
    ledger = InMemoryLedger()
    good = _feed(ledger, "feed-main", 100_000_000, owner=PYTH_V2_MAINNET)
    forged = _feed(ledger, "feed-forged", 100_000_000, owner=TOKEN_2022_PROGRAM_ID)

    assert fetch_price(ledger, good) == ONE_USD
    with pytest.raises(ValidationError) as ei:
        fetch_price(ledger, forged)
    assert ei.value.code == "invalid_oracle_data"
    with pytest.raises(PreconditionFailed) as ei2:
        fetch_price(ledger, deterministic_keypair("feed-missing").pubkey)
    assert ei2.value.code == "price_feed_not_found"


def _capped_coin(supply_cap: int = 100):
    keys = deterministic_keypairs("authority", "mint", "alice")
    ledger = InMemoryLedger()
    coin = Stablecoin.create(
        ledger,
        ledger,
        keys["authority"],
        {"preset": "sss-1", "name": "Oracle USD", "symbol": "OUSD", "supply_cap": supply_cap},
        mint_keypair=keys["mint"],
    )
    coin.grant_role(keys["authority"].pubkey, "minter")
    return ledger, coin, keys["alice"].pubkey


def test_mint_with_price_feed_uses_the_usd_cap() -> None:
    ledger, coin, alice = _capped_coin(100)
    feed = _feed(ledger, "feed-2usd", 200_000_000)

    with pytest.raises(ProgramError) as ei:
        coin.mint_to(alice, 1_000)
    assert ei.value.kind is ProgramErrorKind.SUPPLY_CAP_EXCEEDED

    assert coin.preview_mint(50_000_000, price_feed=feed)
    coin.mint_to(alice, 50_000_000, price_feed=feed)
    assert coin.get_total_supply() == 50_000_000
    assert coin.info().supply_cap == 100

    assert not coin.preview_mint(1, price_feed=feed)
    with pytest.raises(ProgramError) as ei:
        coin.mint_tokens(coin.token_account(alice), 1, price_feed=str(feed))
    assert ei.value.kind is ProgramErrorKind.SUPPLY_CAP_EXCEEDED
    assert coin.get_total_supply() == 50_000_000


@pytest.mark.parametrize(
    "owner, price, size, code, name",
    [
        (TOKEN_2022_PROGRAM_ID, 100_000_000, 224, 6011, "InvalidOracleData"),
        (PYTH_V2_DEVNET, 100_000_000, 216, None, None),
        (PYTH_V2_DEVNET, 0, 224, 6012, "InvalidOraclePrice"),
        (PYTH_V2_MAINNET, -1, 224, 6012, "InvalidOraclePrice"),
    ],
)
def test_price_feed_checks_in_the_program(owner, price, size, code, name) -> None:
    ledger, coin, alice = _capped_coin(100)
    feed = _feed(ledger, "feed-under-test", price, owner=owner, size=size)
    if code is None:
        coin.mint_to(alice, 1_000, price_feed=feed)
        assert coin.get_total_supply() == 1_000
        return
    with pytest.raises(ProgramError) as ei:
        coin.mint_to(alice, 1_000, price_feed=feed)
    assert ei.value.program_code == code
    assert ei.value.name == name
    assert ei.value.instruction_index == 1
    assert coin.get_total_supply() == 0


def test_price_feed_is_ignored_without_a_cap() -> None:
    keys = deterministic_keypairs("authority", "mint", "alice")
    ledger = InMemoryLedger()
    coin = Stablecoin.create(
        ledger,
        ledger,
        keys["authority"],
        {"preset": "sss-1", "name": "Open USD", "symbol": "XUSD"},
        mint_keypair=keys["mint"],
    )
    coin.grant_role(keys["authority"].pubkey, "minter")
    # An address with no account behind it; never read because there is no cap.
    missing = deterministic_keypair("feed-nowhere").pubkey
    coin.mint_to(keys["alice"].pubkey, 7, price_feed=missing)
    assert coin.get_total_supply() == 7
    assert coin.preview_mint(1, price_feed=missing)
