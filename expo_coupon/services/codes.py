# expo_coupon/services/codes.py
import re
import secrets
import time

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
SUFFIX_LENGTH = 4

CODE_PATTERN = re.compile(r"^[A-Z0-9]+-[0-9A-Z]+-[0-9A-Z]{%d}$" % SUFFIX_LENGTH)


def to_base36(n: int) -> str:
    if n < 0:
        raise ValueError("base36 encoding needs a non-negative integer")
    if n == 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def generate_code(prefix: str = "EXPO") -> str:
    """
    PREFIX-<ms timestamp in base36>-<random base36 suffix>, e.g. EXPO-MGW3K2ZT-7QXA.

    Uniqueness is enforced by the coupons.coupon_code constraint; callers retry
    on a collision.
    """
    stamp = to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(SUFFIX_LENGTH))
    return f"{prefix.upper()}-{stamp}-{suffix}"
