"""SD card in SPI mode, backed by a seekable binary image."""

from __future__ import annotations

from enum import IntEnum
from typing import BinaryIO

BLOCK_SIZE = 512
_DATA_PACKET_SIZE = 3 + BLOCK_SIZE  # start token, data, CRC
_START_BLOCK_TOKEN = 0xFE


class Command(IntEnum):
    """MMC/SD commands in SPI mode; application commands carry bit 7."""

    GO_IDLE_STATE = 0
    SEND_OP_COND = 1
    SEND_IF_COND = 8
    SEND_CSD = 9
    SEND_CID = 10
    STOP_TRANSMISSION = 12
    SEND_STATUS = 13
    SET_BLOCKLEN = 16
    READ_SINGLE_BLOCK = 17
    READ_MULTIPLE_BLOCK = 18
    SET_BLOCK_COUNT = 23
    WRITE_BLOCK = 24
    WRITE_MULTIPLE_BLOCK = 25
    ERASE_WR_BLK_START = 32
    ERASE_WR_BLK_END = 33
    ERASE = 38
    APP_CMD = 55
    READ_OCR = 58
    SD_STATUS = 0x80 | 13
    SET_WR_BLK_ERASE_COUNT = 0x80 | 23
    SD_SEND_OP_COND = 0x80 | 41


_R3 = bytes((0xC0, 0xFF, 0x80, 0x00))
_R7 = bytes((1, 0x00, 0x00, 0x01, 0xAA))
_R2_READY = bytes((0x00, 0x00))
_R2_UNINITIALIZED = bytes((0x1F, 0xFF))


class SdCard:
    """Byte-level SPI protocol of an SDHC card over a disk image."""

    def __init__(self, image: BinaryIO | None = None) -> None:
        self.image = image
        self.attached = False
        self._selected = False
        self._rx = bytearray()
        self._lba = 0
        self._last_cmd = 0
        self._is_acmd = False
        self._is_idle = True
        self._is_initialized = False
        self._response: bytes | None = None
        self._response_pos = 0
        self._read_block = bytearray(2 + BLOCK_SIZE + 2)

    def attach(self) -> None:
        if not self.attached and self.image is not None:
            print("SD card attached.")
            self.attached = True
            self._is_initialized = False

    def detach(self) -> None:
        if self.attached:
            print("SD card detached.")
            self.attached = False

    def select(self, selected: bool) -> None:
        self._selected = bool(selected)
        self._rx.clear()

    def _set_response(self, data: bytes) -> None:
        self._response = bytes(data)

    def _set_r1(self) -> None:
        self._set_response(bytes((1 if self._is_idle else 0,)))

    def _next_response_byte(self) -> int:
        if self._response is None:
            return 0xFF
        byte = self._response[self._response_pos]
        self._response_pos += 1
        if self._response_pos == len(self._response):
            self._response = None
        return byte

    @staticmethod
    def _offset(lba: int) -> int:
        return (lba * BLOCK_SIZE) & 0xFFFFFFFF

    def _command(self, packet: bytes) -> None:
        cmd = packet[0] & 0x3F
        if self._is_acmd:
            cmd |= 0x80
            self._is_acmd = False
        self._last_cmd = cmd
        argument = int.from_bytes(packet[1:5], "big")

        if cmd == Command.GO_IDLE_STATE:
            self._is_idle = True
            self._set_r1()
        elif cmd == Command.SEND_IF_COND:
            self._set_response(_R7)
        elif cmd == Command.SD_SEND_OP_COND:
            self._is_idle = False
            self._is_initialized = True
            self._set_r1()
        elif cmd == Command.SEND_STATUS:
            self._set_response(_R2_READY if self._is_initialized else _R2_UNINITIALIZED)
        elif cmd == Command.READ_SINGLE_BLOCK:
            buf = self._read_block
            buf[0] = 0
            buf[1] = _START_BLOCK_TOKEN
            assert self.image is not None
            self.image.seek(self._offset(argument))
            data = self.image.read(BLOCK_SIZE) or b""
            buf[2:2 + len(data)] = data
            if len(data) != BLOCK_SIZE:
                print("Warning: short read!")
            self._set_response(buf)
        elif cmd == Command.WRITE_BLOCK:
            self._lba = argument
            self._set_r1()
        elif cmd == Command.APP_CMD:
            self._is_acmd = True
            self._set_r1()
        elif cmd == Command.READ_OCR:
            self._set_response(_R3)
        else:
            self._set_r1()
        self._response_pos = 0

    def _data_packet(self, packet: bytes) -> None:
        if self._last_cmd != Command.WRITE_BLOCK or packet[0] != _START_BLOCK_TOKEN:
            return
        assert self.image is not None
        self.image.seek(self._offset(self._lba))
        written = self.image.write(packet[1:1 + BLOCK_SIZE])
        if written != BLOCK_SIZE:
            print("Warning: short write!")

    def handle(self, inbyte: int) -> int:
        """Exchange one byte over SPI and return the card's output byte."""
        if not self._selected or self.image is None:
            return 0xFF
        inbyte &= 0xFF

        if not self._rx and inbyte == 0xFF:
            return self._next_response_byte()

        self._rx.append(inbyte)
        if (self._rx[0] & 0xC0) == 0x40 and len(self._rx) == 6:
            packet = bytes(self._rx)
            self._rx.clear()
            self._command(packet)
        elif len(self._rx) == _DATA_PACKET_SIZE:
            packet = bytes(self._rx)
            self._rx.clear()
            self._data_packet(packet)
        return 0xFF