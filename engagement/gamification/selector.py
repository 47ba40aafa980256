"""
Deterministic weekly selection

Users must see the same weekly picks for the whole week, across restarts and
across clients. The PRNG below is therefore pinned: Mulberry32, version 1,
bit-for-bit compatible with the common JavaScript implementation
(``t = a += 0x6D2B79F5; t = imul(t ^ t >>> 15, t | 1); ...``). Any change to
the seed hash or to this generator reshuffles every user's challenges.
"""

from typing import Callable, Sequence, TypeVar

T = TypeVar("T")

PRNG_VERSION = 1
_MASK32 = 0xFFFFFFFF


def derive_seed(user_id: str, week_id: str) -> int:
    """
    32-bit seed from user id + week id

    Order-sensitive polynomial hash (h = h * 31 + unit) over the UTF-16 code
    units of "<user_id>-<week_id>", matching JavaScript's charCodeAt, so
    characters outside the BMP contribute both surrogates. Not cryptographic.
    A zero hash maps to 1.
    """
    data = f"{user_id}-{week_id}".encode("utf-16-le", "surrogatepass")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & _MASK32
    return h or 1


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiply (Math.imul), result as unsigned"""
    return (a * b) & _MASK32


class Mulberry32:
    """Mulberry32 PRNG producing floats in [0, 1)"""

    def __init__(self, seed: int):
        self.state = seed & _MASK32

    def next_uint32(self) -> int:
        self.state = (self.state + 0x6D2B79F5) & _MASK32
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return (t ^ (t >> 14)) & _MASK32

    def __call__(self) -> float:
        return self.next_uint32() / 4294967296


def rng_for(user_id: str, week_id: str) -> Mulberry32:
    return Mulberry32(derive_seed(user_id, week_id))


def pick_without_replacement(pool: Sequence[T], n: int, rng: Callable[[], float]) -> list[T]:
    """
    Draw up to n items from pool, in draw order

    Each draw takes a uniform index into what is left of the pool and removes
    that element. Stops at n or when the pool runs out.
    """
    if n <= 0:
        return []
    remaining = list(pool)
    picked: list[T] = []
    while remaining and len(picked) < n:
        index = int(rng() * len(remaining))
        picked.append(remaining.pop(index))
    return picked
