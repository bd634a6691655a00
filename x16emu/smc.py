"""System Management Controller on the I2C bus."""

from __future__ import annotations

from typing import Callable


class PowerOff(SystemExit):
    """The machine was switched off through the SMC."""

    def __init__(self) -> None:
        super().__init__(0)


class Smc:
    """Power, reset and LED control.

    Register 1: 0 powers off, 1 reboots. Register 2: 0 presses reset.
    Register 3: NMI button. Register 4: power LED. Register 5: activity LED.
    """

    def __init__(self, reset: Callable[[], None] | None = None) -> None:
        self.reset = reset
        self.activity_led = 0

    def read(self, address: int) -> int:
        return 0xFF

    def _reset(self) -> None:
        if self.reset is not None:
            self.reset()

    def write(self, address: int, value: int) -> None:
        value &= 0xFF
        if address == 1:
            if value == 0:
                print("SMC Power Off.")
                raise PowerOff()
            if value == 1:
                self._reset()
        elif address == 2:
            if value == 0:
                self._reset()
        elif address == 5:
            self.activity_led = value