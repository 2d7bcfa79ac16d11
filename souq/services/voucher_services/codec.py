# souq/services/voucher_services/codec.py
import hashlib
import secrets
from typing import Awaitable, Callable

from souq.core import config
from souq.core.exceptions import VoucherCodecError, VoucherGenerationError

# Ambiguous characters (0, O, I, L, 1) are excluded
CODE_CHARS = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"

MAX_LOCAL_RETRIES = 10


def normalize_code(code: str) -> str:
    return code.strip().upper()


def generate_code(length: int = config.VOUCHER_CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_CHARS) for _ in range(length))


def hash_code(code: str) -> str:
    """SHA-256 of the normalized code plus the server-side pepper."""
    pepper = config.VOUCHER_CODE_PEPPER
    if not pepper:
        raise VoucherCodecError("VOUCHER_CODE_PEPPER environment variable is not set")
    return hashlib.sha256((normalize_code(code) + pepper).encode("utf-8")).hexdigest()


def last_four(code: str) -> str:
    return normalize_code(code)[-4:]


async def generate_unique_codes(
    count: int,
    hash_exists: Callable[[str], Awaitable[bool]],
    generator: Callable[[], str] = generate_code,
) -> list[tuple[str, str]]:
    """
    Produce `count` (code, hash) pairs that collide neither with each other
    nor with hashes already in the store. Raises VoucherGenerationError
    instead of returning fewer codes than requested.
    """
    pairs: list[tuple[str, str]] = []
    seen: set[str] = set()
    store_collisions = 0
    max_store_collisions = count * 3

    while len(pairs) < count:
        attempts = 0
        while True:
            code = generator()
            code_hash = hash_code(code)
            attempts += 1
            if code_hash not in seen:
                break
            if attempts >= MAX_LOCAL_RETRIES:
                raise VoucherGenerationError("Failed to generate unique voucher code after max retries")

        if await hash_exists(code_hash):
            store_collisions += 1
            if store_collisions > max_store_collisions:
                raise VoucherGenerationError("Too many collisions with existing vouchers during generation")
            continue

        seen.add(code_hash)
        pairs.append((code, code_hash))

    return pairs
