"""Colour conversion and LED strip frame building."""

from __future__ import annotations

import struct

LED_COUNT = 300

# The colour the strip shows while it is on.
ON_HUE = 100
ON_SATURATION = 50
ON_VALUE = 100

_U32 = 0xFFFFFFFF


def _f32(value: float) -> float:
    """Round a float to single precision."""
    return struct.unpack("f", struct.pack("f", value))[0]


def hsv_to_rgb(h: int, s: int, v: int) -> tuple[int, int, int]:
    """Convert hue (degrees), saturation and value (percent) to an RGB triple.

    Arithmetic follows unsigned 32-bit integers and single-precision floats.
    """
    h = (h & _U32) % 360
    s &= _U32
    v &= _U32
    rgb_max = int(_f32(_f32(v) * _f32(2.55))) & _U32
    scaled = (rgb_max * ((100 - s) & _U32)) & _U32
    rgb_min = int(_f32(_f32(scaled) / _f32(100.0))) & _U32

    sector, diff = divmod(h, 60)
    rgb_adj = ((((rgb_max - rgb_min) & _U32) * diff) & _U32) // 60
    up = (rgb_min + rgb_adj) & _U32
    down = (rgb_max - rgb_adj) & _U32

    return {
        0: (rgb_max, up, rgb_min),
        1: (down, rgb_max, rgb_min),
        2: (rgb_min, rgb_max, up),
        3: (rgb_min, down, rgb_max),
        4: (up, rgb_min, rgb_max),
    }.get(sector, (rgb_max, rgb_min, down))


def build_frame(on: bool, led_count: int = LED_COUNT) -> bytes:
    """Build the GRB pixel bytes for the whole strip, lit or dark."""
    if led_count < 0:
        raise ValueError("led_count cannot be negative")
    if not on:
        return bytes(led_count * 3)
    _, _, blue = hsv_to_rgb(ON_HUE, ON_SATURATION, ON_VALUE)
    return bytes((0, 0, blue & 0xFF)) * led_count