"""VERA PCM audio FIFO and sample playback."""

from __future__ import annotations

from collections import deque

# The hardware FIFO is 4 kB, but only 4095 bytes can be used.
FIFO_SIZE = 4096 - 1
_VOLUME_LUT = (0, 1, 2, 3, 4, 5, 6, 8, 11, 14, 18, 23, 30, 38, 49, 64)


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


class Pcm:
    """PCM channel: a byte FIFO drained at a programmable rate."""

    def __init__(self) -> None:
        self._fifo: deque[int] = deque()
        self.reset()

    def reset(self) -> None:
        self._fifo.clear()
        self._ctrl = 0
        self._rate = 0
        self._cur_l = 0
        self._cur_r = 0
        self._phase = 0

    def write_ctrl(self, value: int) -> None:
        if value & 0x80:
            self._fifo.clear()
        self._ctrl = value & 0x3F

    def read_ctrl(self) -> int:
        result = self._ctrl
        if len(self._fifo) == FIFO_SIZE:
            result |= 0x80
        return result

    def write_rate(self, value: int) -> None:
        self._rate = value & 0xFF

    def read_rate(self) -> int:
        return self._rate

    def write_fifo(self, value: int) -> None:
        if len(self._fifo) < FIFO_SIZE:
            self._fifo.append(value & 0xFF)

    def _read_fifo(self) -> int:
        return self._fifo.popleft() if self._fifo else 0

    def is_fifo_almost_empty(self) -> bool:
        return len(self._fifo) < 1024

    def _fetch(self) -> None:
        mode = (self._ctrl >> 4) & 3
        if mode == 0:  # mono 8-bit
            self._cur_l = _int16(self._read_fifo() << 8)
            self._cur_r = self._cur_l
        elif mode == 1:  # stereo 8-bit
            self._cur_l = _int16(self._read_fifo() << 8)
            self._cur_r = _int16(self._read_fifo() << 8)
        elif mode == 2:  # mono 16-bit
            lo = self._read_fifo()
            self._cur_l = _int16(lo | self._read_fifo() << 8)
            self._cur_r = self._cur_l
        else:  # stereo 16-bit
            lo = self._read_fifo()
            self._cur_l = _int16(lo | self._read_fifo() << 8)
            lo = self._read_fifo()
            self._cur_r = _int16(lo | self._read_fifo() << 8)

    def render(self, num_samples: int) -> list[int]:
        """Return interleaved left/right signed 16-bit samples."""
        out: list[int] = []
        for _ in range(num_samples):
            old_phase = self._phase
            self._phase = (self._phase + self._rate) & 0xFF
            if (old_phase ^ self._phase) & 0x80:
                self._fetch()
            volume = _VOLUME_LUT[self._ctrl & 0xF]
            out.append(_int16((self._cur_l * volume) >> 6))
            out.append(_int16((self._cur_r * volume) >> 6))
        return out