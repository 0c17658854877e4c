import numpy as np
import pytest
from numba import njit

from qaoacut import from_bits, int_to_bitstring, to_bits
from qaoacut.qaoa_util import convert_to_binary, convert_to_decimal, split_indices


@njit
def _round_trip_failures(width):
    z = np.empty(width, dtype=np.int64)
    failures = 0
    for k in range(1 << width):
        convert_to_binary(k, z)
        if convert_to_decimal(z) != k:
            failures += 1
    return failures


def test_round_trip_all_widths():
    for width in range(1, 21):
        assert _round_trip_failures(width) == 0


def test_round_trip_python_api():
    for width in (1, 3, 8):
        for k in range(1 << width):
            assert from_bits(to_bits(k, width)) == k


def test_lsb_first():
    # 6 = 0b110 -> bit 0 is 0
    assert list(to_bits(6, 4)) == [0, 1, 1, 0]
    assert from_bits([1, 0, 0]) == 1
    assert from_bits([0, 0, 1]) == 4
    assert int_to_bitstring(6, 4) == "0110"


def test_wide_values():
    k = (1 << 61) + 12345
    assert from_bits(to_bits(k, 62)) == k


def test_too_large_raises():
    with pytest.raises(ValueError):
        to_bits(8, 3)
    with pytest.raises(ValueError):
        to_bits(-1, 3)
    with pytest.raises(ValueError):
        to_bits(0, 0)
    with pytest.raises(ValueError):
        convert_to_binary(16, np.empty(4, dtype=np.int64))


def test_non_integral_decimal_raises():
    with pytest.raises(ValueError):
        to_bits(2.5, 3)
    with pytest.raises(ValueError):
        to_bits("5", 3)
    assert list(to_bits(np.int32(5), 3)) == [1, 0, 1]
    assert list(to_bits(6.0, 3)) == [0, 1, 1]


def test_from_bits_rejects_non_binary():
    with pytest.raises(ValueError):
        from_bits([0, 2, 1])
    with pytest.raises(ValueError):
        from_bits([])


def test_split_indices():
    assert split_indices(10, 3) == [(0, 4), (4, 7), (7, 10)]
    assert split_indices(6, 4) == [(0, 2), (2, 4), (4, 5), (5, 6)]
    assert split_indices(2, 4) == [(0, 1), (1, 2), (2, 2), (2, 2)]
