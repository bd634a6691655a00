import pytest

from x16emu.ps2 import (
    BUFFER_SIZE,
    HOLD,
    PS2_CLK_MASK,
    PS2_DATA_MASK,
    PS2_VIA_MASK,
    Ps2Mouse,
    Ps2Port,
)


def _decode(port, count):
    samples = []
    for _ in range(count * 11 * 4 * HOLD + 100):
        port.step(1)
        samples.append(port.out)
    compressed = [v for i, v in enumerate(samples) if i == 0 or v != samples[i - 1]]
    bits = [v for v in compressed if v != PS2_CLK_MASK]
    return [bits[i:i + 11] for i in range(0, len(bits), 11)]


def _frame_byte(frame):
    return sum(bit << i for i, bit in enumerate(frame[1:9]))


def _ready_port():
    port = Ps2Port()
    port.in_ = PS2_VIA_MASK
    return port


def test_idle_port_drives_clock_high():
    port = _ready_port()
    port.step(1)
    assert port.out == PS2_CLK_MASK


def test_inhibited_port_drives_nothing():
    port = _ready_port()
    port.add_byte(0x55)
    port.in_ = PS2_DATA_MASK
    port.step(10)
    assert port.out == 0
    assert port.pending == 1


def test_other_input_drives_nothing():
    port = Ps2Port()
    port.in_ = PS2_CLK_MASK
    port.step(10)
    assert port.out == 0


@pytest.mark.parametrize("byte", [0x00, 0xAA, 0x1C, 0xFF])
def test_frame_layout(byte):
    port = _ready_port()
    port.add_byte(byte)
    frames = _decode(port, 1)
    assert len(frames) == 1
    frame = frames[0]
    assert len(frame) == 11
    assert frame[0] == 0
    assert _frame_byte(frame) == byte
    assert sum(frame[1:10]) % 2 == 1
    assert frame[10] == 1
    assert port.pending == 0


def test_bytes_sent_in_order():
    port = _ready_port()
    data = [0x12, 0x34, 0xF0]
    for b in data:
        port.add_byte(b)
    frames = _decode(port, len(data))
    assert [_frame_byte(f) for f in frames] == data


def test_buffer_is_bounded():
    port = Ps2Port()
    for i in range(BUFFER_SIZE + 8):
        port.add_byte(i)
    assert port.pending == BUFFER_SIZE
    assert port.free == 0


def test_autostep_matches_step():
    a = _ready_port()
    b = _ready_port()
    a.add_byte(0x5A)
    b.add_byte(0x5A)
    ticks = 0
    outs_a, outs_b = [], []
    for delta in [3, 7, 150, 60, 1, 400, 33] * 20:
        ticks += delta
        a.autostep(ticks)
        b.step(delta)
        outs_a.append(a.out)
        outs_b.append(b.out)
    assert outs_a == outs_b


def test_mouse_packet():
    port = _ready_port()
    mouse = Ps2Mouse(port)
    mouse.move(10, -5)
    mouse.button_down(0)
    mouse.send_state()
    assert port.pending == 3
    byte0, bx, by = (_frame_byte(f) for f in _decode(port, 3))
    assert byte0 & 0x08
    assert byte0 & 0x01
    assert not byte0 & 0x10
    assert byte0 & 0x20
    assert bx == 10
    assert by == (-5) & 0xFF
    assert mouse.diff_x == 0 and mouse.diff_y == 0


def test_mouse_large_move_is_split():
    port = Ps2Port()
    mouse = Ps2Mouse(port)
    mouse.move(600, 600)
    mouse.send_state()
    assert port.pending == 9
    assert mouse.diff_x == 0 and mouse.diff_y == 0


def test_mouse_skips_when_buffer_full():
    port = Ps2Port()
    for _ in range(BUFFER_SIZE - 2):
        port.add_byte(0)
    mouse = Ps2Mouse(port)
    mouse.move(1, 1)
    mouse.send_state()
    assert port.pending == BUFFER_SIZE - 2


def test_mouse_buttons():
    mouse = Ps2Mouse(Ps2Port())
    mouse.button_down(0)
    mouse.button_down(1)
    mouse.button_up(0)
    assert mouse.buttons == 1 << 1


def test_mouse_read():
    assert Ps2Mouse(Ps2Port()).read(0) == 0xFF