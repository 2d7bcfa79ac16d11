import hashlib
import itertools

import pytest

from souq.core import config
from souq.core.exceptions import VoucherCodecError, VoucherGenerationError
from souq.services.voucher_services.codec import (
    CODE_CHARS,
    generate_code,
    normalize_code,
    hash_code,
    last_four,
    generate_unique_codes,
)


def test_generated_codes_use_unambiguous_alphabet():
    code = generate_code()
    assert len(code) == 16
    assert set(code) <= set(CODE_CHARS)
    for ambiguous in "0O1IL":
        assert ambiguous not in CODE_CHARS


def test_normalize_trims_and_uppercases():
    assert normalize_code("  abcd-efgh \n") == "ABCD-EFGH"


def test_hash_is_peppered_sha256_of_normalized_code():
    expected = hashlib.sha256(("ABCDEF12" + "test-pepper").encode()).hexdigest()
    assert hash_code(" abcdef12 ") == expected
    assert hash_code("ABCDEF12") == expected


def test_hash_without_pepper_fails(monkeypatch):
    monkeypatch.setattr(config, "VOUCHER_CODE_PEPPER", None)
    with pytest.raises(VoucherCodecError):
        hash_code("ABCDEF12")


def test_last_four():
    assert last_four("abcd2345wxyz") == "WXYZ"


async def test_unique_codes_are_distinct():
    async def never_exists(_):
        return False

    pairs = await generate_unique_codes(50, never_exists)
    codes = [c for c, _ in pairs]
    hashes = [h for _, h in pairs]
    assert len(set(codes)) == 50
    assert len(set(hashes)) == 50
    assert all(hash_code(c) == h for c, h in pairs)


async def test_in_batch_collisions_exhaust_local_retries():
    async def never_exists(_):
        return False

    with pytest.raises(VoucherGenerationError):
        await generate_unique_codes(2, never_exists, generator=lambda: "SAMECODE23456789")


async def test_store_collisions_are_skipped():
    taken = {hash_code("TAKENCODE2345678")}
    codes = itertools.cycle(["TAKENCODE2345678", "FRESHCODE2345678"])

    async def exists(code_hash):
        return code_hash in taken

    pairs = await generate_unique_codes(1, exists, generator=lambda: next(codes))
    assert [c for c, _ in pairs] == ["FRESHCODE2345678"]


async def test_store_collision_cap_fails_loudly():
    calls = 0

    async def always_exists(_):
        nonlocal calls
        calls += 1
        return True

    with pytest.raises(VoucherGenerationError):
        await generate_unique_codes(2, always_exists)
    assert calls == 2 * 3 + 1
