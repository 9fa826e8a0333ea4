import pytest

from lc3vm.lc3 import FL_NEG, FL_POS, FL_ZRO, field, lc_hex, lc_int, plus, sext


def test_sext_positive_field_is_zero_extended():
    assert sext(0b01111, 5) == 0x000F


def test_sext_negative_field_fills_with_ones():
    assert sext(0b10001, 5) == 0xFFF1


@pytest.mark.parametrize("value,bits", [
    (0b10001, 5), (0b01111, 5), (0x1FF, 9), (0x100, 9), (0x20, 6), (0x7FF, 11),
])
def test_sext_keeps_the_field_bits(value, bits):
    assert sext(value, bits) & ((1 << bits) - 1) == value


def test_sext_ignores_bits_above_the_field():
    # the opcode and register fields must not leak into the offset
    assert sext(0x123D, 5) == sext(0b11101, 5) == 0xFFFD


def test_sext_stays_within_16_bits():
    assert sext(0x1FF, 9) == 0xFFFF
    assert sext(0x400, 11) == 0xFC00


def test_lc_int():
    assert lc_int(0xFFFD) == -3
    assert lc_int(0x8000) == -32768
    assert lc_int(0x7FFF) == 32767


def test_plus_wraps_around():
    assert plus(0xFFFF, 1) == 0
    assert plus(0x3000, sext(0x1FF, 9)) == 0x2FFF


def test_field():
    assert field(0x123D, 15, 12) == 0b0001
    assert field(0x123D, 11, 9) == 1
    assert field(0x123D, 5, 5) == 1


def test_lc_hex():
    assert lc_hex(0x3000) == "x3000"
    assert lc_hex(-1) == "xFFFF"


@pytest.mark.parametrize("value,flag", [
    (0, FL_ZRO), (0x8000, FL_NEG), (0x0001, FL_POS), (0xFFFF, FL_NEG), (0x7FFF, FL_POS),
])
def test_set_nzp(lc3, value, flag):
    lc3.set_nzp(value)
    assert lc3.cond == flag
    assert sum(lc3.get_nzp()) == 1


def test_machine_starts_zero(lc3):
    assert lc3.cond == FL_ZRO
    assert lc3.get_pc() == 0x3000
    assert all(lc3.get_register(r) == 0 for r in range(8))
