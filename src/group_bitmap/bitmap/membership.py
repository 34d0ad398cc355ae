"""Fixed-size membership bitmap keyed by a group combining function.

A bitmap is seeded from per-bucket observation counts (see
:func:`bucket_counts`) and then queried with whole groups: the group is folded
into a single key by the configured combining function, reduced modulo the
bucket count, and the matching bit is read back. Collisions make false
positives possible; since seeding and querying share the same reduction, a
group counted at or above the support threshold is never reported absent.
"""

from typing import Iterable, List, Optional, Sequence, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from group_bitmap.bitmap.bits import WORD_BITS, bit_count_for, word_count_for
from group_bitmap.bitmap.combiners import (
    Combiner,
    HashFunction,
    parse_hash_function,
    resolve_hash_function,
)
from group_bitmap.bitmap.errors import ConfigurationError, IndexOutOfRange

# log2 of anything at or above 2**31 is 32, which pow2 cannot represent.
MAX_CAPACITY = (1 << 31) - 1


class BitmapConfig(BaseModel):
    """Validated construction parameters for :class:`Bitmap`."""

    model_config = ConfigDict(validate_assignment=True)

    capacity: int = Field(gt=0, le=MAX_CAPACITY)
    hash_function: HashFunction = Field(default=HashFunction.OR_HASH)


def _build_config(capacity: int, hash_function: Union[str, HashFunction]) -> BitmapConfig:
    parsed = parse_hash_function(hash_function)
    try:
        return BitmapConfig(capacity=capacity, hash_function=parsed)
    except ValidationError as exc:
        logger.error("Rejected bitmap capacity {!r}", capacity)
        raise ConfigurationError(f"Invalid bitmap capacity {capacity!r}: {exc}") from exc


class Bitmap:
    """Packed array of 32-bit words addressed by combined group keys."""

    def __init__(self, capacity: int, hash_function: Union[str, HashFunction]) -> None:
        config = _build_config(capacity, hash_function)
        self.bucket_count = config.capacity
        self.bit_count = bit_count_for(config.capacity)
        self.bits: List[int] = [0] * word_count_for(self.bit_count)
        self._hash_function = config.hash_function
        self._combine = resolve_hash_function(config.hash_function)
        logger.debug(
            "Created bitmap: buckets={}, bits={}, words={}, hash={}",
            self.bucket_count,
            self.bit_count,
            len(self.bits),
            self._hash_function.value,
        )

    @classmethod
    def from_config(cls, config: BitmapConfig) -> "Bitmap":
        return cls(config.capacity, config.hash_function)

    @classmethod
    def from_counts(
        cls,
        counts: Sequence[int],
        support: int,
        hash_function: Union[str, HashFunction],
        capacity: Optional[int] = None,
    ) -> "Bitmap":
        """Build a bitmap sized for ``counts`` and populate it in one step."""

        counts = list(counts)
        bitmap = cls(len(counts) if capacity is None else capacity, hash_function)
        bitmap.populate(counts, support)
        return bitmap

    @property
    def hash_function(self) -> HashFunction:
        return self._hash_function

    @property
    def combine(self) -> Combiner:
        return self._combine

    def _locate(self, index: int) -> tuple[int, int]:
        if not 0 <= index < self.bit_count:
            raise IndexOutOfRange(index, self.bit_count)
        return divmod(index, WORD_BITS)

    def set(self, index: int) -> None:
        """Set bit ``index`` to 1. Setting an already-set bit is a no-op."""

        word, offset = self._locate(index)
        self.bits[word] |= 1 << offset

    def get_unhashed(self, index: int) -> int:
        """Return the raw bit (0 or 1) stored at ``index``."""

        word, offset = self._locate(index)
        return (self.bits[word] >> offset) & 1

    def bucket_of(self, group: Sequence[int]) -> int:
        return self._combine(group) % self.bucket_count

    def get(self, group: Sequence[int]) -> int:
        """Return 1 if the bucket for ``group`` has been set, else 0."""

        return self.get_unhashed(self.bucket_of(group))

    def populate(self, counts: Iterable[int], support: int) -> None:
        """Set bit ``i`` for every position whose count reaches ``support``.

        Positions index the bit array directly; the combining function is not
        involved.
        """

        marked = 0
        for index, count in enumerate(counts):
            if count >= support:
                self.set(index)
                marked += 1
        logger.debug("Populated bitmap: {} buckets at support >= {}", marked, support)

    def count_set(self) -> int:
        return sum(word.bit_count() for word in self.bits)

    def __contains__(self, group: Sequence[int]) -> bool:
        return bool(self.get(group))

    def __len__(self) -> int:
        return self.bit_count

    def __repr__(self) -> str:
        return (
            f"Bitmap(buckets={self.bucket_count}, bits={self.bit_count}, "
            f"hash_function={self._hash_function.value!r}, set={self.count_set()})"
        )


def new_bitmap(capacity: int, hash_function: Union[str, HashFunction]) -> Bitmap:
    """Create an all-zero bitmap; unknown function names raise ConfigurationError."""

    return Bitmap(capacity, hash_function)


def bucket_counts(
    groups: Iterable[Sequence[int]],
    capacity: int,
    hash_function: Union[str, HashFunction],
) -> List[int]:
    """Count observed groups per bucket, ready to be passed to ``populate``."""

    config = _build_config(capacity, hash_function)
    combine = resolve_hash_function(config.hash_function)
    counts = [0] * config.capacity
    for group in groups:
        counts[combine(group) % config.capacity] += 1
    return counts
