import pytest
from pydantic import ValidationError

from group_bitmap.bitmap import (
    Bitmap,
    BitmapConfig,
    ConfigurationError,
    HashFunction,
    IndexOutOfRange,
    bucket_counts,
    log2,
    m_hash,
    new_bitmap,
    or_hash,
    pow2,
)


@pytest.mark.parametrize("capacity", [2, 16, 32, 100, 1000, 4096])
def test_new_bitmap_is_sized_and_zeroed(capacity: int):
    bitmap = new_bitmap(capacity, "OrHash")

    assert bitmap.bit_count == pow2(log2(capacity))
    assert len(bitmap.bits) == max(1, bitmap.bit_count // 32)
    assert all(word == 0 for word in bitmap.bits)
    assert bitmap.bucket_count == capacity
    assert bitmap.hash_function is HashFunction.OR_HASH
    assert bitmap.combine is or_hash
    assert bitmap.count_set() == 0


def test_word_count_matches_bit_count_from_one_word_up():
    for capacity in (16, 100, 1024):
        bitmap = new_bitmap(capacity, "MHash")
        assert len(bitmap.bits) * 32 == bitmap.bit_count


def test_unknown_hash_function_aborts_construction():
    with pytest.raises(ConfigurationError):
        new_bitmap(16, "unknown")


@pytest.mark.parametrize("capacity", [0, -4, 1 << 31])
def test_invalid_capacity_aborts_construction(capacity: int):
    with pytest.raises(ConfigurationError):
        Bitmap(capacity, "OrHash")


def test_set_marks_a_single_bit():
    bitmap = new_bitmap(16, "OrHash")
    bitmap.set(5)

    assert bitmap.get_unhashed(5) == 1
    assert [i for i in range(bitmap.bit_count) if bitmap.get_unhashed(i)] == [5]
    assert bitmap.bits == [1 << 5]


def test_set_is_idempotent():
    bitmap = new_bitmap(16, "OrHash")
    bitmap.set(9)
    bitmap.set(9)

    assert bitmap.count_set() == 1


def test_set_addresses_later_words():
    bitmap = new_bitmap(100, "OrHash")
    bitmap.set(40)
    bitmap.set(127)

    assert bitmap.bits == [0, 1 << 8, 0, 1 << 31]
    assert bitmap.get_unhashed(40) == 1
    assert bitmap.get_unhashed(127) == 1


@pytest.mark.parametrize("index", [-1, 32, 33, 1 << 20])
def test_direct_access_is_bounds_checked(index: int):
    bitmap = new_bitmap(16, "OrHash")

    with pytest.raises(IndexOutOfRange):
        bitmap.set(index)
    with pytest.raises(IndexError):
        bitmap.get_unhashed(index)
    assert bitmap.count_set() == 0


def test_small_bitmap_bounds_follow_bit_count():
    bitmap = new_bitmap(4, "OrHash")
    assert bitmap.bit_count == 8

    bitmap.set(7)
    with pytest.raises(IndexOutOfRange) as excinfo:
        bitmap.set(8)
    assert excinfo.value.bit_count == 8


def test_populate_uses_support_threshold():
    bitmap = new_bitmap(4, "OrHash")
    bitmap.populate([0, 5, 10, 2], support=5)

    assert [bitmap.get_unhashed(i) for i in range(4)] == [0, 1, 1, 0]
    assert bitmap.count_set() == 2


def test_populate_indexes_by_position_not_by_combiner():
    bitmap = new_bitmap(4, "MHash")
    bitmap.populate([0, 5, 10, 2], support=5)

    assert m_hash([1]) % 4 == 1
    assert bitmap.get([1]) == 1
    assert bitmap.get([3]) == 0


def test_populate_past_bit_count_raises():
    bitmap = new_bitmap(4, "OrHash")

    with pytest.raises(IndexOutOfRange):
        bitmap.populate([1] * 9, support=1)


def test_get_reduces_combined_key_modulo_buckets():
    bitmap = new_bitmap(16, "OrHash")
    bitmap.set(or_hash([1, 2]) % 16)

    assert bitmap.get([1, 2]) == 1
    assert bitmap.get([2, 1]) == 1
    assert bitmap.get([3]) == 1  # collides with [1, 2]
    assert bitmap.get([4]) == 0
    assert bitmap.get([1 << 4 | 3]) == 1  # 19 % 16


def test_get_is_idempotent():
    bitmap = new_bitmap(64, "MHash")
    bitmap.populate([3] * 64, support=4)
    bitmap.set(bitmap.bucket_of([10, 20, 30]))

    first = bitmap.get([10, 20, 30])
    assert bitmap.get([10, 20, 30]) == first == 1
    assert bitmap.get([11]) == bitmap.get([11])


def test_phi_hash_collapses_everything_onto_bit_zero():
    bitmap = new_bitmap(128, "PhiHash")
    assert bitmap.get([42, 7]) == 0

    bitmap.set(0)
    for group in ([], [1], [42, 7], [9, 9, 9]):
        assert bitmap.get(group) == 1


def test_membership_protocols():
    bitmap = new_bitmap(32, HashFunction.OR_HASH)
    bitmap.set(6)

    assert [2, 4] in bitmap
    assert [1] not in bitmap
    assert len(bitmap) == 64
    assert "OrHash" in repr(bitmap)


def test_bucket_counts_reduce_groups():
    counts = bucket_counts([(1, 2), (1, 2), (3,), (16,)], 16, "OrHash")

    assert len(counts) == 16
    assert counts[3] == 3
    assert counts[0] == 1
    assert sum(counts) == 4


def test_bucket_counts_rejects_unknown_function():
    with pytest.raises(ConfigurationError):
        bucket_counts([(1,)], 16, "nope")


def test_from_counts_round_trip_has_no_false_negatives():
    observed = [(5, 9)] * 3 + [(100, 3)] * 4 + [(8, 8)]
    counts = bucket_counts(observed, 256, "MHash")
    bitmap = Bitmap.from_counts(counts, support=3, hash_function="MHash")

    assert bitmap.bucket_count == 256
    assert bitmap.get((5, 9)) == 1
    assert bitmap.get((100, 3)) == 1
    assert bitmap.get((8, 8)) == 0


def test_from_counts_accepts_explicit_capacity():
    bitmap = Bitmap.from_counts([0, 7], support=1, hash_function="OrHash", capacity=64)

    assert bitmap.bucket_count == 64
    assert bitmap.get_unhashed(1) == 1


def test_from_config():
    config = BitmapConfig(capacity=64, hash_function="PhiHash")
    bitmap = Bitmap.from_config(config)

    assert bitmap.hash_function is HashFunction.PHI_HASH
    assert bitmap.bit_count == 128


def test_bitmap_config_validates_fields():
    with pytest.raises(ValidationError):
        BitmapConfig(capacity=0)
    with pytest.raises(ValidationError):
        BitmapConfig(capacity=8, hash_function="unknown")

    config = BitmapConfig(capacity=8)
    with pytest.raises(ValidationError):
        config.capacity = -1
