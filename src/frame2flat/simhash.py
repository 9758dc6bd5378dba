"""64-bit SimHash fingerprints and set similarity."""

from __future__ import annotations

from typing import AbstractSet, Iterable, List

FINGERPRINT_BITS = 64
FNV64_OFFSET = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3
_MASK64 = (1 << 64) - 1


def fnv1a_64(token: str) -> int:
    value = FNV64_OFFSET
    for byte in token.encode("utf-8"):
        value ^= byte
        value = (value * FNV64_PRIME) & _MASK64
    return value


def simhash64(tokens: Iterable[str]) -> int:
    """Frequency-weighted SimHash of a token sequence.

    Each token votes +1/-1 per bit of its FNV-1a hash; a bit is set only when
    its accumulator ends strictly positive, so an exact tie yields 0.
    """
    acc: List[int] = [0] * FINGERPRINT_BITS
    for token in tokens:
        h = fnv1a_64(token)
        for i in range(FINGERPRINT_BITS):
            if (h >> i) & 1:
                acc[i] += 1
            else:
                acc[i] -= 1
    fingerprint = 0
    for i, value in enumerate(acc):
        if value > 0:
            fingerprint |= 1 << i
    return fingerprint


def hamming_distance(a: int, b: int) -> int:
    return bin((a ^ b) & _MASK64).count("1")


def jaccard_similarity(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    if not a and not b:
        return 1.0
    union = len(a | b)
    return len(a & b) / union


def format_fingerprint(value: int) -> str:
    return f"{value:016x}"
