import pytest

from ledmqtt.color import LED_COUNT, build_frame, hsv_to_rgb


def test_worked_example():
    assert hsv_to_rgb(100, 50, 100) == (170, 255, 127)


def test_full_value_reaches_byte_maximum():
    assert max(hsv_to_rgb(0, 100, 100)) == 255


@pytest.mark.parametrize("v", [0, 20, 55, 100])
def test_zero_saturation_is_grey(v):
    r, g, b = hsv_to_rgb(200, 0, v)
    assert r == g == b


def test_zero_value_is_black():
    assert hsv_to_rgb(123, 80, 0) == (0, 0, 0)


@pytest.mark.parametrize("h", [0, 45, 100, 190, 250, 310, 359])
def test_hue_wraps_every_360_degrees(h):
    assert hsv_to_rgb(h, 60, 90) == hsv_to_rgb(h + 360, 60, 90)


@pytest.mark.parametrize("h", range(0, 360, 15))
def test_channels_stay_between_min_and_max(h):
    r, g, b = hsv_to_rgb(h, 100, 100)
    assert max(r, g, b) == hsv_to_rgb(0, 0, 100)[0]
    assert min(r, g, b) == hsv_to_rgb(0, 100, 0)[0]


def test_frame_on_is_blue_only():
    blue = hsv_to_rgb(100, 50, 100)[2]
    assert build_frame(True, 4) == bytes([0, 0, blue] * 4)


def test_frame_off_is_dark():
    frame = build_frame(False, 10)
    assert len(frame) == 30
    assert not any(frame)


def test_default_frame_covers_whole_strip():
    assert len(build_frame(True)) == LED_COUNT * 3


def test_negative_count_rejected():
    with pytest.raises(ValueError):
        build_frame(True, -1)