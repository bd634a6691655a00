"""MCP7940N real-time clock with battery-backed NVRAM."""

from __future__ import annotations

from datetime import datetime

NVRAM_SIZE = 0x40
_DAYS_PER_MONTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def _bcd(value: int) -> int:
    return ((value // 10) << 4 | (value % 10)) & 0xFF


def _unbcd(value: int) -> int:
    return ((value >> 4) * 10 + (value & 0xF)) & 0xFF


class Rtc:
    """Clock registers at 0x00-0x06 and NVRAM at 0x20-0x5F.

    Supports 24h and AM/PM modes and stopping the oscillator; alarms are not
    emulated.
    """

    def __init__(self, set_system_time: bool = False, now: datetime | None = None, mhz: int = 8) -> None:
        self.mhz = mhz
        self.nvram = bytearray(NVRAM_SIZE)
        self.nvram_dirty = False
        self.vbaten = True
        self.h24 = True
        self._clocks = 0
        self.day_of_week = 1
        if set_system_time:
            now = now or datetime.now()
            self.running = True
            self.seconds = now.second
            self.minutes = now.minute
            self.hours = now.hour
            self.day = now.day
            self.month = now.month
            self.year = now.year - 2000
        else:
            # the chip starts with the oscillator stopped
            self.running = False
            self.seconds = 0
            self.minutes = 0
            self.hours = 0
            self.day = 1
            self.month = 1
            self.year = 0

    def is_leap_year(self) -> bool:
        # the clock covers 2000-2099, where every fourth year is a leap year
        return not (self.year & 3)

    def step(self, clocks: int) -> None:
        """Advance the clock by CPU clocks."""
        if not self.running:
            return
        self._clocks += clocks
        per_second = self.mhz * 1_000_000
        if self._clocks < per_second:
            return
        self._clocks -= per_second

        self.seconds += 1
        if self.seconds < 60:
            return
        self.seconds = 0
        self.minutes += 1
        if self.minutes < 60:
            return
        self.minutes = 0
        self.hours += 1
        if self.hours < 24:
            return
        self.hours = 0
        self.day_of_week += 1
        if self.day_of_week > 7:
            self.day_of_week = 1
        self.day += 1
        dpm = _DAYS_PER_MONTH[self.month - 1]
        if self.month == 2 and self.is_leap_year():
            dpm += 1
        if self.day <= dpm:
            return
        self.day = 1
        self.month += 1
        if self.month <= 12:
            return
        self.month = 1
        self.year += 1
        if self.year == 100:
            self.year = 0

    def read(self, address: int) -> int:
        if address == 0:
            return _bcd(self.seconds) | int(self.running) << 7
        if address == 1:
            return _bcd(self.minutes)
        if address == 2:
            h = self.hours
            pm = False
            if not self.h24:
                if h >= 12:
                    pm = True
                    h -= 12
                if h == 0:
                    h = 12
            h |= int(pm) << 5
            h |= int(not self.h24) << 6
            return _bcd(h)
        if address == 3:
            return (self.day_of_week | int(self.vbaten) << 3 | int(self.running) << 5) & 0xFF
        if address == 4:
            return _bcd(self.day)
        if address == 5:
            return _bcd(self.month) | int(self.is_leap_year()) << 5
        if address == 6:
            return _bcd(self.year)
        if 0x20 <= address < 0x60:
            return self.nvram[address - 0x20]
        if address >= 0x60:
            return 0xFF
        return 0

    def write(self, address: int, value: int) -> None:
        value &= 0xFF
        if address == 0:
            self.running = bool(value & 0x80)
            self.seconds = _unbcd(value & 0x7F)
        elif address == 1:
            self.minutes = _unbcd(value)
        elif address == 2:
            self.h24 = not value & 0x40
            h = value & 0x3F
            pm = False
            if not self.h24:
                pm = bool(value & 0x20)
                h &= 0x1F
            h = _unbcd(h)
            if not self.h24 and h == 12:
                h = 0
            if pm:
                h += 12
            self.hours = h & 0xFF
        elif address == 3:
            self.day_of_week = value & 7
            self.vbaten = bool(value & 0x20)
        elif address == 4:
            self.day = _unbcd(value)
        elif address == 5:
            self.month = _unbcd(value)
        elif address == 6:
            self.year = _unbcd(value)
        elif 0x20 <= address < 0x60:
            self.nvram[address - 0x20] = value
            self.nvram_dirty = True