import pytest

from x16emu.smc import PowerOff, Smc


def test_read_is_ff():
    assert Smc().read(1) == 0xFF


def test_power_off_exits_cleanly():
    with pytest.raises(PowerOff) as exc:
        Smc().write(1, 0)
    assert exc.value.code == 0


def test_hard_reboot_and_reset_button():
    calls = []
    smc = Smc(reset=lambda: calls.append(True))
    smc.write(1, 1)
    smc.write(2, 0)
    smc.write(2, 1)
    assert len(calls) == 2


def test_activity_led():
    smc = Smc()
    smc.write(5, 0x80)
    assert smc.activity_led == 0x80


def test_other_registers_do_nothing():
    calls = []
    smc = Smc(reset=lambda: calls.append(True))
    smc.write(3, 0)
    smc.write(4, 0x40)
    assert calls == [] and smc.activity_led == 0