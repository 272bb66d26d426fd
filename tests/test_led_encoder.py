from itertools import islice

import pytest

from ledmqtt.led_encoder import DATA_STAGE, RESET_STAGE, LedStripEncoder, Symbol

RESOLUTION = 10_000_000


@pytest.fixture
def encoder():
    return LedStripEncoder(RESOLUTION)


def test_ws2812_timings_at_10mhz(encoder):
    assert encoder.bit0 == Symbol(1, 3, 0, 9)
    assert encoder.bit1 == Symbol(1, encoder.bit0.duration1, 0, encoder.bit0.duration0)
    assert encoder.reset_code.duration0 == 250
    assert encoder.reset_code.level0 == encoder.reset_code.level1 == 0


def test_bit_periods_are_equal(encoder):
    assert (
        encoder.bit0.duration0 + encoder.bit0.duration1
        == encoder.bit1.duration0 + encoder.bit1.duration1
    )


def test_encode_zero_byte(encoder):
    symbols = list(encoder.encode(b"\x00"))
    assert symbols == [encoder.bit0] * 8 + [encoder.reset_code]


def test_encode_msb_first(encoder):
    one, zero = encoder.bit1, encoder.bit0
    symbols = list(encoder.encode(b"\xa5"))
    assert symbols[:8] == [one, zero, one, zero, zero, one, zero, one]
    assert symbols[8] == encoder.reset_code


def test_encode_length_scales_with_data(encoder):
    pixels = bytes(range(9))
    symbols = list(encoder.encode(pixels))
    assert len(symbols) == len(pixels) * 8 + 1
    assert encoder.stage == DATA_STAGE


def test_encode_empty_emits_reset_only(encoder):
    assert list(encoder.encode(b"")) == [encoder.reset_code]


def test_reset_discards_unfinished_session(encoder):
    list(islice(encoder.encode(b"\xff"), 8))
    encoder.reset()
    assert encoder.stage == DATA_STAGE
    assert list(encoder.encode(b"\x00")) == [encoder.bit0] * 8 + [encoder.reset_code]


@pytest.mark.parametrize("resolution", [0, -1])
def test_invalid_resolution(resolution):
    with pytest.raises(ValueError):
        LedStripEncoder(resolution)


def test_resolution_too_high_for_symbol():
    with pytest.raises(ValueError):
        LedStripEncoder(100_000_000_000)


def test_invalid_byte_value(encoder):
    with pytest.raises(ValueError):
        encoder.encode([256])