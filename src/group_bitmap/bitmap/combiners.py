"""Combining functions that fold a group of uint32 values into one key."""

from enum import Enum
from typing import Callable, Dict, Sequence, Union

from loguru import logger

from group_bitmap.bitmap.bits import UINT32_MASK
from group_bitmap.bitmap.errors import ConfigurationError

Combiner = Callable[[Sequence[int]], int]


class HashFunction(str, Enum):
    """Names of the supported combining functions."""

    OR_HASH = "OrHash"
    M_HASH = "MHash"
    PHI_HASH = "PhiHash"


def or_hash(group: Sequence[int]) -> int:
    """Bitwise OR of every element. Order-insensitive and monotonic."""

    result = 0
    for value in group:
        result |= value & UINT32_MASK
    return result


def m_hash(group: Sequence[int]) -> int:
    """XOR of the group with odd positions complemented first.

    Complementing commutes with XOR, so the key equals the plain XOR of the
    members, inverted when the group has an odd number of odd positions.
    Reordering a group therefore never changes its key; only its members and
    its length do.
    """

    result = 0
    for position, value in enumerate(group):
        value &= UINT32_MASK
        if position % 2 == 1:
            value = ~value & UINT32_MASK
        result ^= value
    return result


def phi_hash(group: Sequence[int]) -> int:
    """Placeholder for golden-ratio hashing; every group maps to key 0."""

    return 0


_COMBINER_MAP: Dict[HashFunction, Combiner] = {
    HashFunction.OR_HASH: or_hash,
    HashFunction.M_HASH: m_hash,
    HashFunction.PHI_HASH: phi_hash,
}


def parse_hash_function(name: Union[str, HashFunction]) -> HashFunction:
    try:
        return HashFunction(name)
    except ValueError as exc:
        logger.error("Unsupported hashing function requested: {!r}", name)
        raise ConfigurationError(f"The hashing function {name} is not supported.") from exc


def resolve_hash_function(name: Union[str, HashFunction]) -> Combiner:
    """Return the combining function registered under ``name``."""

    return _COMBINER_MAP[parse_hash_function(name)]
