"""Power-of-two helpers used to size the packed bit array."""

WORD_BITS = 32
UINT32_MASK = 0xFFFFFFFF


def pow2(n: int) -> int:
    """Return ``2 ** n`` computed as a shift, for ``n`` in ``[0, 31]``."""

    if not 0 <= n < WORD_BITS:
        raise ValueError(f"pow2 is only defined for exponents in [0, {WORD_BITS - 1}], got {n}")
    return 1 << n


def log2(n: int) -> int:
    """Return the 1-indexed position of the highest set bit of ``n``.

    Positions 31 down to 1 are scanned; bit 0 is never tested, so both ``0``
    and ``1`` map to ``0``. For ``n >= 2`` the result is one past the index of
    the top bit, which makes ``pow2(log2(n))`` the smallest power of two
    strictly greater than ``n``.
    """

    n &= UINT32_MASK
    for i in range(WORD_BITS - 1, 0, -1):
        if (n >> i) & 1:
            return i + 1
    return 0


def bit_count_for(capacity: int) -> int:
    return pow2(log2(capacity))


def word_count_for(bit_count: int) -> int:
    # Sub-word bitmaps still need one backing word.
    return (bit_count + WORD_BITS - 1) // WORD_BITS
