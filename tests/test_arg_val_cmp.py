import pytest

from rtosc.arg_val import ArgVal, ArgValError, make_array, make_range
from rtosc.arg_val_cmp import (
    CmpOptions,
    arg_vals_cmp,
    arg_vals_eq,
    cmp_single,
    eq_single,
)

EQUAL = (0, True)
GREATER = (1, False)
LESS = (-1, False)
GT_PATTERN = [GREATER, LESS, EQUAL, EQUAL]


def i(value):
    return ArgVal("i", value)


def sign(x):
    return (x > 0) - (x < 0)


def outcome(lhs, rhs, lsize=None, rsize=None, opt=None):
    """Return the sign of the three-way compare and the equality result."""
    return (
        sign(arg_vals_cmp(lhs, rhs, lsize, rsize, opt)),
        bool(arg_vals_eq(lhs, rhs, lsize, rsize, opt)),
    )


def gt_outcomes(lhs, rhs, lsize=None, rsize=None, opt=None):
    """Compare lhs with rhs both ways and each with itself."""
    lsize = len(lhs) if lsize is None else lsize
    rsize = len(rhs) if rsize is None else rsize
    return [
        outcome(lhs, rhs, lsize, rsize, opt),
        outcome(rhs, lhs, rsize, lsize, opt),
        outcome(lhs, lhs, lsize, lsize, opt),
        outcome(rhs, rhs, rsize, rsize, opt),
    ]


def test_ints():
    assert gt_outcomes([i(12345)], [i(42)]) == GT_PATTERN


@pytest.mark.parametrize("tag,value", [("N", None), ("F", False), ("T", True), ("I", None)])
def test_special(tag, value):
    assert outcome([ArgVal(tag, value)], [ArgVal(tag, value)]) == EQUAL


def test_floats():
    left, right = [ArgVal("f", 1.0)], [ArgVal("f", -1.0)]
    assert gt_outcomes(left, right) == GT_PATTERN
    tolerant = CmpOptions(2.0)
    assert outcome(left, right, opt=tolerant) == EQUAL
    assert outcome(right, left, opt=tolerant) == EQUAL


def test_doubles():
    assert gt_outcomes([ArgVal("d", 123456790.123456789)],
                       [ArgVal("d", 123456789.0)]) == GT_PATTERN
    left, right = [ArgVal("d", 1.0)], [ArgVal("d", -1.0)]
    assert gt_outcomes(left, right) == GT_PATTERN
    tolerant = CmpOptions(2.0)
    assert outcome(left, right, opt=tolerant) == EQUAL
    assert outcome(right, left, opt=tolerant) == EQUAL


def test_huge_ints():
    assert gt_outcomes([ArgVal("h", 5000000000)],
                       [ArgVal("h", -5000000000)]) == GT_PATTERN


def test_timestamps():
    assert gt_outcomes([ArgVal("t", 0xFFFF0000)],
                       [ArgVal("t", 0x00000002)]) == GT_PATTERN
    assert gt_outcomes([ArgVal("t", 0)], [ArgVal("t", 1)]) == GT_PATTERN
    assert gt_outcomes([ArgVal("t", 0xFFFFFFFF)], [ArgVal("t", 1)]) == GT_PATTERN


def test_midi():
    assert gt_outcomes([ArgVal("m", bytes([0, 0, 0, 1]))],
                       [ArgVal("m", bytes([0, 0, 0, 0]))]) == GT_PATTERN


def test_strings():
    left = [ArgVal("s", "rtosc rtosc rtosc"), ArgVal("s", "rtosc")]
    right = [ArgVal("s", "rt0sc"), ArgVal("s", "")]
    assert gt_outcomes(left[:1], right[:1]) == GT_PATTERN
    assert gt_outcomes(left[:1], left[1:]) == GT_PATTERN
    assert gt_outcomes(right[:1], right[1:]) == GT_PATTERN


def test_blobs():
    l0 = [ArgVal("b", b"rtosc_is_awful")]
    l1 = [ArgVal("b", b"")]
    r0 = [ArgVal("b", b"rtosc_is_awesome")]
    r1 = [ArgVal("b", b"rtosc_is_aw")]
    assert gt_outcomes(l0, r0) == GT_PATTERN
    assert gt_outcomes(r0, r1) == GT_PATTERN
    assert gt_outcomes(l0, l1) == GT_PATTERN


def test_arrays_same_size():
    la = [make_array("i", 3), i(1), i(2), i(3)]
    ra = [make_array("i", 3), i(1), i(2), i(2)]
    assert gt_outcomes(la, ra, 4, 4) == GT_PATTERN


def test_arrays_different_size():
    la = [make_array("i", 3), i(1), i(2), i(3)]
    ra = [make_array("i", 2), i(1), i(2), i(3)]
    assert gt_outcomes(la, ra, 4, 4) == GT_PATTERN


def test_range_against_integers():
    left = [make_range(5, True), i(1), i(1)]
    right = [i(1), i(2), i(3), i(4), i(5)]
    assert outcome(left, right, 3, 5) == EQUAL


def test_range_inside_array():
    left = [make_array("i", 3), make_range(5, True), i(1), i(1)]
    right = [make_array("i", 5), i(1), i(2), i(3), i(4), i(5)]
    assert outcome(left, right, 4, 6) == EQUAL


def test_range_against_later_range():
    left = [make_range(5, True), i(1), i(1), i(6), i(7)]
    right = [i(1), i(2), i(3), make_range(4, True), i(1), i(4)]
    assert outcome(left, right, 5, 6) == EQUAL


def test_finite_against_infinite_range():
    left = [make_range(5, True), i(1), i(1), i(6), i(7)]
    right = [i(1), i(2), i(3), make_range(0, True), i(1), i(4)]
    assert outcome(left, right, 5, 6) == EQUAL


def test_infinite_range_greater_than_integers():
    left = [make_range(5, True), i(1), i(1), i(6), i(6)]
    right = [i(1), i(2), i(3), make_range(0, True), i(1), i(4)]
    assert gt_outcomes(right, left, 6, 5) == GT_PATTERN


def test_longer_finite_range_against_infinite():
    left = [make_range(7, True), i(1), i(1), i(6), i(6)]
    right = [i(1), i(2), i(3), make_range(0, True), i(1), i(4)]
    assert outcome(left, right, 3, 7) == EQUAL


def test_two_infinite_ranges():
    left = [i(1), i(2), make_range(0, True), i(3), i(1)]
    right = [i(1), make_range(0, True), i(1), i(2)]
    assert outcome(left, right, 5, 4) == EQUAL


def test_numbers_against_infinite_range_without_delta():
    left = [i(1), i(1), i(1)]
    right = [i(1), make_range(0, False), i(1), i(2)]
    assert outcome(left, right, 3, 3) == EQUAL
    assert outcome(left, right, 1, 3) == EQUAL


def test_infinite_ranges_without_delta():
    left = [make_range(0, False), i(1)]
    right = [i(1), make_range(0, False), i(1)]
    assert outcome(left, right, 2, 3) == EQUAL
    assert outcome(left, [make_range(0, False), i(1)], 2, 2) == EQUAL


def test_different_types():
    assert gt_outcomes([i(0)], [ArgVal("h", 1)]) == GT_PATTERN


def test_multiple_args():
    left = [i(42), ArgVal("T", True), ArgVal("s", "1")]
    right = [i(42), ArgVal("T", True), ArgVal("s", "0")]
    assert gt_outcomes(left, right, 3, 3) == GT_PATTERN

    left = [ArgVal("t", 1), ArgVal("f", 1.0)]
    right = [ArgVal("t", 1), ArgVal("d", 1.0)]
    assert gt_outcomes(left, right, 2, 2) == GT_PATTERN


def test_different_sizes():
    values = [i(42), i(42)]
    assert gt_outcomes(values, values, 2, 1) == GT_PATTERN


def test_single_comparisons_accept_plain_values():
    assert eq_single(i(3), i(3)) is True
    assert cmp_single(i(3), i(4)) < 0
    assert cmp_single(ArgVal("s", None), ArgVal("s", None)) == 0
    assert eq_single(ArgVal("s", None), ArgVal("s", "x")) is False


def test_ranges_cannot_be_compared_singly():
    with pytest.raises(ArgValError):
        eq_single(make_range(0, False), make_range(0, False))
    with pytest.raises(ArgValError):
        cmp_single(make_range(0, False), make_range(0, False))