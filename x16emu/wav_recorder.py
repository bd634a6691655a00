"""Recording of the audio output to a 16-bit stereo PCM WAV file."""

from __future__ import annotations

import os
import struct
from enum import IntEnum
from typing import BinaryIO, Sequence

_CHANNELS = 2
_SAMPLE_BYTES = 2
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_FMT_CHUNK_SIZE = 24
_DATA_CHUNK_SIZE = 8


class WavState(IntEnum):
    DISABLED = 0
    PAUSED = 1
    AUTOSTARTING = 2
    RECORDING = 3


class WavCommand(IntEnum):
    PAUSE = 0
    RECORD = 1
    AUTOSTART = 2


class WavRecorder:
    """Writes interleaved stereo samples to a WAV file, under emulator control."""

    def __init__(self, sample_rate: int) -> None:
        self.sample_rate = sample_rate
        self.state = WavState.DISABLED
        self.path: str | None = None
        self._file: BinaryIO | None = None
        self._frames_written = 0

    def _header(self) -> bytes:
        data_size = (_SAMPLE_BYTES * _CHANNELS * self._frames_written) & 0xFFFFFFFF
        riff_size = (4 + _FMT_CHUNK_SIZE + _DATA_CHUNK_SIZE + data_size) & 0xFFFFFFFF
        block_align = _SAMPLE_BYTES * _CHANNELS
        return _HEADER.pack(
            b"RIFF", riff_size, b"WAVE",
            b"fmt ", 16, 0x0001, _CHANNELS,
            self.sample_rate, self.sample_rate * block_align,
            block_align, _SAMPLE_BYTES * 8,
            b"data", data_size,
        )

    def _begin(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        if self.path is None:
            return
        try:
            self._file = open(self.path, "wb")
        except OSError:
            return
        try:
            self._file.write(self._header())
        except OSError:
            self._file.close()
            self._file = None

    def _end(self) -> None:
        if self._file is None:
            return
        try:
            self._file.seek(0)
            self._file.write(self._header())
        finally:
            self._file.close()
            self._file = None

    def _add(self, samples: Sequence[int], frames: int) -> None:
        if self._file is None:
            return
        data = struct.pack(f"<{frames * _CHANNELS}h", *samples[:frames * _CHANNELS])
        try:
            self._file.write(data)
        except OSError:
            self._file.close()
            self._file = None
        else:
            self._frames_written += frames

    def set_path(self, path: str | os.PathLike[str] | None) -> None:
        """Set the output file; ",wait" starts paused, ",auto" starts on first sound."""
        if self.state is WavState.RECORDING:
            self._end()
        self.path = None
        if path is None:
            self.state = WavState.DISABLED
            return
        text = os.fspath(path)
        if text.endswith(",wait"):
            self.path = text[:-5]
            self.state = WavState.PAUSED
        elif text.endswith(",auto"):
            self.path = text[:-5]
            self.state = WavState.AUTOSTARTING
        else:
            self.path = text
            self.state = WavState.RECORDING
            self._begin()

    def command(self, command: int) -> None:
        """Apply a pause/record/autostart command; ignored while disabled."""
        if self.state is WavState.DISABLED:
            return
        try:
            cmd = WavCommand(command)
        except ValueError:
            print(f"Unknown command {int(command)} passed to wav_recorder_set.")
            return
        if cmd is WavCommand.PAUSE:
            self.state = WavState.PAUSED
        elif cmd is WavCommand.RECORD:
            self.state = WavState.RECORDING
            self._begin()
        else:
            self.state = WavState.AUTOSTARTING

    def process(self, samples: Sequence[int]) -> None:
        """Feed interleaved left/right samples."""
        frames = len(samples) // _CHANNELS
        if self.state is WavState.AUTOSTARTING and any(samples[:frames]):
            self.state = WavState.RECORDING
            self._begin()
        if self.state is WavState.RECORDING:
            self._add(samples, frames)

    def shutdown(self) -> None:
        if self.state is WavState.RECORDING:
            self._end()