"""VERA SPI controller connected to the SD card."""

from __future__ import annotations

from typing import Protocol


class SpiDevice(Protocol):
    attached: bool

    def select(self, selected: bool) -> None: ...

    def handle(self, inbyte: int) -> int: ...


class VeraSpi:
    """SPI data (register 0) and control (register 1) registers."""

    def __init__(self, sdcard: SpiDevice | None = None) -> None:
        self.sdcard = sdcard
        self.sending_byte = 0
        self.outcounter = 0
        self.reset()

    def reset(self) -> None:
        self.ss = False
        self.busy = False
        self.autotx = False
        self.received_byte = 0xFF

    def _start(self, byte: int) -> None:
        self.sending_byte = byte & 0xFF
        self.busy = True
        self.outcounter = 0

    def step(self, clocks: int) -> None:
        if not self.busy:
            return
        self.outcounter += clocks
        if self.outcounter >= 8:
            self.busy = False
            if self.sdcard is not None and self.sdcard.attached:
                self.received_byte = self.sdcard.handle(self.sending_byte) & 0xFF
            else:
                self.received_byte = 0xFF

    def read(self, reg: int) -> int:
        if reg == 0:
            if self.autotx and self.ss and not self.busy:
                # auto-transmit sends $FF after each read
                self._start(0xFF)
            return self.received_byte
        if reg == 1:
            return int(self.busy) << 7 | int(self.autotx) << 3 | int(self.ss)
        return 0

    def write(self, reg: int, value: int) -> None:
        if reg == 0:
            if self.ss and not self.busy:
                self._start(value)
        elif reg == 1:
            select = bool(value & 1)
            if self.ss != select:
                self.ss = select
                if select and self.sdcard is not None:
                    self.sdcard.select(True)
            self.autotx = bool(value & 8)