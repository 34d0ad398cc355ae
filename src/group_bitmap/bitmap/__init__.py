"""Membership bitmap and the group combining functions it is keyed by."""

from group_bitmap.bitmap.bits import log2, pow2
from group_bitmap.bitmap.combiners import (
    HashFunction,
    m_hash,
    or_hash,
    phi_hash,
    resolve_hash_function,
)
from group_bitmap.bitmap.errors import BitmapError, ConfigurationError, IndexOutOfRange
from group_bitmap.bitmap.membership import (
    Bitmap,
    BitmapConfig,
    bucket_counts,
    new_bitmap,
)

__all__ = [
    "Bitmap",
    "BitmapConfig",
    "BitmapError",
    "ConfigurationError",
    "HashFunction",
    "IndexOutOfRange",
    "bucket_counts",
    "log2",
    "m_hash",
    "new_bitmap",
    "or_hash",
    "phi_hash",
    "pow2",
    "resolve_hash_function",
]
