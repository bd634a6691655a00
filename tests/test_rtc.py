from datetime import datetime

import pytest

from x16emu.rtc import Rtc

SECOND = 8_000_000


def test_starts_stopped():
    rtc = Rtc()
    rtc.step(SECOND * 5)
    assert rtc.read(0) & 0x80 == 0
    assert rtc.seconds == 0


def test_second_tick():
    rtc = Rtc()
    rtc.write(0, 0x80 | 0x58)
    rtc.step(SECOND - 1)
    assert rtc.read(0) == 0x80 | 0x58
    rtc.step(1)
    assert rtc.read(0) == 0x80 | 0x59


def test_minute_rollover():
    rtc = Rtc()
    rtc.write(1, 0x07)
    rtc.write(0, 0x80 | 0x59)
    rtc.step(SECOND)
    assert rtc.read(0) & 0x7F == 0
    assert rtc.read(1) == 0x08


@pytest.mark.parametrize("value", [0x00, 0x09, 0x10, 0x42, 0x59])
def test_minutes_bcd_round_trip(value):
    rtc = Rtc()
    rtc.write(1, value)
    assert rtc.read(1) == value


@pytest.mark.parametrize("value", [0x00, 0x09, 0x13, 0x23])
def test_hours_24h_round_trip(value):
    rtc = Rtc()
    rtc.write(2, value)
    assert rtc.h24
    assert rtc.read(2) == value


@pytest.mark.parametrize("bcd12, bcd24", [(0x01, 0x13), (0x11, 0x23)])
def test_pm_hours_match_24h(bcd12, bcd24):
    twelve = Rtc()
    twelve.write(2, 0x40 | 0x20 | bcd12)
    full = Rtc()
    full.write(2, bcd24)
    assert not twelve.h24
    assert twelve.hours == full.hours


def test_twelve_am_is_midnight():
    twelve = Rtc()
    twelve.write(2, 0x40 | 0x12)
    full = Rtc()
    full.write(2, 0x00)
    assert twelve.hours == full.hours


def test_month_rollover():
    rtc = Rtc()
    rtc.write(4, 0x31)
    rtc.write(5, 0x01)
    rtc.write(2, 0x23)
    rtc.write(1, 0x59)
    rtc.write(0, 0x80 | 0x59)
    rtc.step(SECOND)
    assert rtc.day == 1
    assert rtc.month == 2


def _advance_one_day(rtc):
    rtc.write(2, 0x23)
    rtc.write(1, 0x59)
    rtc.write(0, 0x80 | 0x59)
    rtc.step(SECOND)


def test_leap_year_february():
    rtc = Rtc()
    rtc.write(6, 0x24)
    rtc.write(5, 0x02)
    rtc.write(4, 0x28)
    assert rtc.is_leap_year()
    assert rtc.read(5) & 0x20
    _advance_one_day(rtc)
    assert rtc.read(4) == 0x29
    assert rtc.read(5) & 0x1F == 0x02


def test_common_year_february():
    rtc = Rtc()
    rtc.write(6, 0x23)
    rtc.write(5, 0x02)
    rtc.write(4, 0x28)
    assert not rtc.is_leap_year()
    _advance_one_day(rtc)
    assert rtc.read(5) & 0x1F == 0x03


def test_year_wraps():
    rtc = Rtc()
    rtc.write(6, 0x99)
    rtc.write(5, 0x12)
    rtc.write(4, 0x31)
    _advance_one_day(rtc)
    assert rtc.year == 0


def test_day_of_week_wraps():
    rtc = Rtc()
    rtc.write(3, 7)
    _advance_one_day(rtc)
    assert rtc.day_of_week == 1


def test_nvram():
    rtc = Rtc()
    assert not rtc.nvram_dirty
    rtc.write(0x20, 0xAB)
    rtc.write(0x5F, 0xCD)
    assert rtc.read(0x20) == 0xAB
    assert rtc.read(0x5F) == 0xCD
    assert rtc.nvram_dirty
    assert rtc.read(0x60) == 0xFF
    assert rtc.read(0x10) == 0


def test_system_time():
    rtc = Rtc(set_system_time=True, now=datetime(2024, 3, 5, 14, 30, 15))
    assert rtc.running
    assert rtc.read(0) == 0x80 | 0x15
    assert rtc.read(1) == 0x30
    assert rtc.read(2) == 0x14
    assert rtc.read(4) == 0x05
    assert rtc.read(6) == 0x24