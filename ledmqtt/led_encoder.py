"""Encoding of WS2812 LED strip pixel data into pulse symbols."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

DATA_STAGE = 0
RESET_STAGE = 1

_MAX_DURATION = 0x7FFF  # symbol durations are 15-bit tick counts
_RESET_CODE_US = 50


@dataclass(frozen=True)
class Symbol:
    """One pulse: a level held for a duration, then a second level and duration."""

    level0: int
    duration0: int
    level1: int
    duration1: int


def _ticks(microseconds: float, resolution: int) -> int:
    ticks = int(microseconds * resolution / 1_000_000)
    if ticks > _MAX_DURATION:
        raise ValueError(f"{microseconds}us at {resolution} Hz does not fit in a symbol")
    return ticks


class LedStripEncoder:
    """Turns GRB bytes into WS2812 bit symbols followed by a reset code.

    Each byte is sent most significant bit first. An encoding session first
    emits the data symbols and then the reset code; a session left unfinished
    resumes from its current stage on the next call unless ``reset`` is used.
    """

    def __init__(self, resolution: int) -> None:
        if resolution <= 0:
            raise ValueError("resolution must be a positive frequency in Hz")
        self.resolution = resolution
        self.bit0 = Symbol(1, _ticks(0.3, resolution), 0, _ticks(0.9, resolution))
        self.bit1 = Symbol(1, _ticks(0.9, resolution), 0, _ticks(0.3, resolution))
        reset_ticks = resolution // 1_000_000 * _RESET_CODE_US // 2
        if reset_ticks > _MAX_DURATION:
            raise ValueError(f"reset code at {resolution} Hz does not fit in a symbol")
        self.reset_code = Symbol(0, reset_ticks, 0, reset_ticks)
        self._stage = DATA_STAGE

    @property
    def stage(self) -> int:
        """DATA_STAGE while pixel data is pending, RESET_STAGE before the reset code."""
        return self._stage

    def encode(self, data: Iterable[int]) -> Iterator[Symbol]:
        """Return the symbols for ``data`` and the trailing reset code, lazily."""
        return self._session(bytes(data))

    def _session(self, payload: bytes) -> Iterator[Symbol]:
        if self._stage == DATA_STAGE:
            for byte in payload:
                for shift in range(7, -1, -1):
                    yield self.bit1 if (byte >> shift) & 1 else self.bit0
            self._stage = RESET_STAGE
        yield self.reset_code
        self._stage = DATA_STAGE

    def reset(self) -> None:
        """Abandon any unfinished session and start over with pixel data."""
        self._stage = DATA_STAGE