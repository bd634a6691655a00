"""VERA programmable sound generator: 16 channels, 4 waveforms."""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import IntEnum

NUM_CHANNELS = 16
_INV_FREQ_NUMERATOR = 0x7FFFFFFF

_VOLUME_LUT = (
    0, 1, 1, 1, 2, 2, 2, 2, 2, 2, 2, 3, 3, 3, 3, 3,
    4, 4, 4, 4, 5, 5, 5, 6, 6, 7, 7, 7, 8, 8, 9, 9,
    10, 11, 11, 12, 13, 14, 14, 15, 16, 17, 18, 19, 21, 22, 23, 25,
    26, 28, 29, 31, 33, 35, 37, 39, 42, 44, 47, 50, 52, 56, 59, 63,
)


class Waveform(IntEnum):
    PULSE = 0
    SAWTOOTH = 1
    TRIANGLE = 2
    NOISE = 3


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


@dataclass
class Channel:
    freq: int = 0
    volume: int = 0
    left: bool = False
    right: bool = False
    pulse_width: int = 0
    waveform: Waveform = Waveform.PULSE
    noise: int = 0
    phase: int = 0
    inv_freq: int = 0

    def set_freq(self, freq: int) -> None:
        self.freq = freq & 0xFFFF
        self.inv_freq = _INV_FREQ_NUMERATOR // self.freq if self.freq else _INV_FREQ_NUMERATOR


def _poly_x(phase: int, inv_freq: int) -> int:
    return ~(((phase * inv_freq) & 0xFFFFFFFF) >> 16) & 0x7FFF


def _poly_blep(phase: int, inv_freq: int, freq: int) -> int:
    rising = phase >= freq
    if rising:
        phase ^= 0x1FFFF
        if phase >= freq:
            return 0
    x = _poly_x(phase, inv_freq)
    y = (x * x) >> 25
    return y if rising else -y


def _pulse_blep(phase: int, inv_freq: int, freq: int, pw: int) -> int:
    y = _poly_blep(phase, inv_freq, freq)
    phase = (phase + 0x20000 - ((pw + 1) << 10)) & 0x1FFFF
    return y - _poly_blep(phase, inv_freq, freq)


class Psg:
    """Sixteen band-limited oscillators mixed to stereo."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self.channels: list[Channel] = []
        self.reset()

    def reset(self) -> None:
        self.channels = [Channel() for _ in range(NUM_CHANNELS)]

    def write_register(self, reg: int, value: int) -> None:
        reg &= 0x3F
        value &= 0xFF
        ch = self.channels[reg // 4]
        idx = reg & 3
        if idx == 0:
            ch.set_freq((ch.freq & 0xFF00) | value)
        elif idx == 1:
            ch.set_freq((ch.freq & 0x00FF) | value << 8)
        elif idx == 2:
            ch.right = bool(value & 0x80)
            ch.left = bool(value & 0x40)
            ch.volume = _VOLUME_LUT[value & 0x3F]
        else:
            ch.pulse_width = value & 0x3F
            ch.waveform = Waveform(value >> 6)

    def _sample(self, ch: Channel) -> int:
        new_phase = (ch.phase + ch.freq) & 0x1FFFF
        if (ch.phase ^ new_phase) & 0x10000:
            ch.noise = self._rng.randrange(64)
        ch.phase = new_phase

        if ch.waveform is Waveform.PULSE:
            v = 0 if (ch.phase >> 10) > ch.pulse_width else 63
            v += _pulse_blep(ch.phase, ch.inv_freq, ch.freq, ch.pulse_width)
        elif ch.waveform is Waveform.SAWTOOTH:
            v = ch.phase >> 11
            v -= _poly_blep(ch.phase, ch.inv_freq, ch.freq)
        elif ch.waveform is Waveform.TRIANGLE:
            if ch.phase & 0x10000:
                v = ~(ch.phase >> 10) & 0x3F
            else:
                v = (ch.phase >> 10) & 0x3F
        else:
            v = ch.noise
        return (v - 32) * ch.volume

    def render(self, num_samples: int) -> list[int]:
        """Return interleaved left/right signed 16-bit samples."""
        out: list[int] = []
        for _ in range(num_samples):
            left = right = 0
            for ch in self.channels:
                val = self._sample(ch)
                if ch.left:
                    left += val
                if ch.right:
                    right += val
            out.append(_int16(left))
            out.append(_int16(right))
        return out