"""PS/2 ports (keyboard and mouse) as driven through the VIA."""

from __future__ import annotations

from collections import deque
from enum import Enum

PS2_DATA_MASK = 0x01
PS2_CLK_MASK = 0x02
PS2_VIA_MASK = 0x03

# 25 x ~3 cycles at 8 MHz = 75 microseconds
HOLD = 25 * 8
BUFFER_SIZE = 32


class _State(Enum):
    READY = 0
    SEND_LO = 1
    SEND_HI = 2


def _parity_bit(byte: int) -> int:
    """Return the bit that makes the count of set bits odd."""
    return 1 - (bin(byte & 0xFF).count("1") & 1)


class Ps2Port:
    """One PS/2 device that serialises queued bytes onto the clock/data lines."""

    def __init__(self) -> None:
        self.out = 0
        self.in_ = 0
        self._state = _State.READY
        self._current_byte = 0
        self._data_bits = 0
        self._send_time = 0
        self._buffer: deque[int] = deque()
        self._last_clockticks = 0

    @property
    def pending(self) -> int:
        """Number of bytes waiting to be sent."""
        return len(self._buffer)

    @property
    def free(self) -> int:
        """Number of bytes the buffer can still take."""
        return BUFFER_SIZE - len(self._buffer)

    def add_byte(self, byte: int) -> None:
        """Queue a byte; it is dropped when the buffer is full."""
        if len(self._buffer) >= BUFFER_SIZE:
            return
        self._buffer.append(byte & 0xFF)

    def step(self, clocks: int) -> None:
        """Advance the port by a number of CPU clocks."""
        if self.in_ == PS2_DATA_MASK:
            # communication inhibited
            self.out = 0
            self._state = _State.READY
            return
        if self.in_ != PS2_VIA_MASK:
            self.out = 0
            return

        while True:
            if self._state is _State.READY:
                if self._data_bits <= 0:
                    if not self._buffer:
                        self.out = PS2_CLK_MASK
                        return
                    self._current_byte = self._buffer.popleft()
                byte = self._current_byte
                self._data_bits = byte << 1 | _parity_bit(byte) << 9 | 1 << 10
                self._send_time = 0
                self._state = _State.SEND_LO

            if self._state is _State.SEND_LO:
                self.out = self._data_bits & 1
                self._send_time += clocks
                if self._send_time < HOLD:
                    return
                self._data_bits >>= 1
                self._state = _State.SEND_HI
                self._send_time = 0
                clocks -= HOLD
                continue

            # SEND_HI
            self.out = PS2_CLK_MASK
            self._send_time += clocks
            if self._send_time < HOLD:
                return
            clocks -= HOLD
            if self._data_bits > 0:
                self._send_time = 0
                self._state = _State.SEND_LO
            else:
                self._state = _State.READY

    def autostep(self, clockticks: int) -> None:
        """Step by the clocks elapsed since the previous autostep."""
        clocks = (clockticks - self._last_clockticks) & 0xFFFFFFFF
        if clocks >= 1 << 31:
            clocks -= 1 << 32
        self._last_clockticks = clockticks & 0xFFFFFFFF
        self.step(clocks)


class Ps2Mouse:
    """Host mouse state turned into PS/2 movement packets."""

    def __init__(self, port: Ps2Port) -> None:
        self.port = port
        self.buttons = 0
        self.diff_x = 0
        self.diff_y = 0

    def _send(self, x: int, y: int, buttons: int) -> bool:
        if self.port.free < 3:
            return False
        byte0 = (((y >> 9) & 1) << 5 | ((x >> 9) & 1) << 4 | 1 << 3 | buttons) & 0xFF
        self.port.add_byte(byte0)
        self.port.add_byte(x)
        self.port.add_byte(y)
        return True

    def send_state(self) -> None:
        """Queue packets for the accumulated movement and button state."""
        while True:
            dx = max(-256, min(255, self.diff_x))
            dy = max(-256, min(255, self.diff_y))
            self._send(dx, dy, self.buttons)
            self.diff_x -= dx
            self.diff_y -= dy
            if not (self.diff_x != 0 and self.diff_y != 0):
                break

    def button_down(self, num: int) -> None:
        self.buttons = (self.buttons | 1 << num) & 0xFF

    def button_up(self, num: int) -> None:
        self.buttons &= (1 << num) ^ 0xFF

    def move(self, x: int, y: int) -> None:
        self.diff_x += x
        self.diff_y += y

    def read(self, reg: int) -> int:
        return 0xFF