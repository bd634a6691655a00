import io
import random

import pytest

from x16emu.vera_layers import render_text_line, sprite_properties
from x16emu.video import DEFAULT_PALETTE, SCAN_HEIGHT, Vera


@pytest.fixture
def vera():
    return Vera(rng=random.Random(1))


def _set_address(vera, address, inc_index):
    vera.write(0x00, address & 0xFF)
    vera.write(0x01, (address >> 8) & 0xFF)
    vera.write(0x02, ((address >> 16) & 1) | inc_index << 3)


def test_reset_composer_defaults(vera):
    assert vera.read(0x0A) == 128
    assert vera.read(0x0B) == 128
    vera.write(0x05, 0x02)  # DCSEL = 1
    assert vera.read(0x0A) == 640 >> 2
    assert vera.read(0x0C) == 480 >> 1


def test_reset_palette_matches_default(vera):
    for i, entry in enumerate(DEFAULT_PALETTE):
        assert vera.palette[i * 2] | vera.palette[i * 2 + 1] << 8 == entry


def test_same_seed_gives_same_vram():
    a = Vera(rng=random.Random(7))
    b = Vera(rng=random.Random(7))
    assert a.video_ram == b.video_ram


def test_address_registers_round_trip(vera):
    _set_address(vera, 0x11234, 2)
    assert vera.read(0x00) == 0x34
    assert vera.read(0x01) == 0x12
    assert vera.read(0x02) == 0x01 | 2 << 3


def test_data_port_writes_with_increment(vera):
    _set_address(vera, 0x1000, 2)  # increment +1
    for value in (0xAA, 0xBB, 0xCC):
        vera.write(0x03, value)
    assert [vera.space_read(0x1000 + i) for i in range(3)] == [0xAA, 0xBB, 0xCC]
    assert vera.read(0x00) == 0x03


def test_data_port_reads_prefetched_values(vera):
    vera.space_write(0x2000, 0xAB)
    vera.space_write(0x2001, 0xCD)
    _set_address(vera, 0x2000, 2)
    assert vera.read(0x03, debug=True) == 0xAB
    assert vera.read(0x00) == 0x00
    assert vera.read(0x03) == 0xAB
    assert vera.read(0x03) == 0xCD
    assert vera.read(0x00) == 0x02


def test_second_data_port_uses_second_address(vera):
    vera.write(0x05, 0x01)  # ADDRSEL = 1
    _set_address(vera, 0x3000, 2)
    vera.write(0x04, 0x5A)
    assert vera.space_read(0x3000) == 0x5A
    vera.write(0x05, 0x00)
    assert vera.read(0x05) == 0


def test_output_off_shows_blue(vera):
    vera.write(0x09, 0x00)
    vera.render_line(3)
    assert set(vera.framebuffer[3 * 640:4 * 640]) == {0x0000FF}


def test_sprite_attribute_write_refreshes_properties(vera):
    data = [0x10, 0x81, 0x20, 0x00, 0x30, 0x00, 0x0C, 0x53]
    for i, value in enumerate(data):
        vera.space_write(0x1FC08 + i, value)
    assert list(vera.sprite_data[1]) == data
    assert vera.sprites[1] == sprite_properties(data)


def test_psg_register_write_forwarded(vera):
    vera.space_write(0x1F9C0, 0x34)
    vera.space_write(0x1F9C1, 0x12)
    assert vera.psg.channels[0].freq == 0x1234


def test_pcm_and_spi_registers(vera):
    vera.write(0x1C, 0x40)
    assert vera.read(0x1C) == 0x40
    vera.write(0x1F, 0x01)
    assert vera.read(0x1F) & 1 == 1


def test_vsync_irq_after_frame(vera):
    vera.write(0x06, 0x01)
    assert not vera.irq_out()
    results = [vera.step(8, 260) for _ in range(SCAN_HEIGHT)]
    assert results[-1] is True
    assert not any(results[:-1])
    assert vera.frame_count == 1
    assert vera.read(0x07) & 1
    assert vera.irq_out()
    vera.write(0x07, 0x01)
    assert not vera.irq_out()


def test_line_irq(vera):
    vera.write(0x06, 0x02)
    vera.write(0x08, 3)
    vera.step(8, 260)
    vera.step(8, 260)
    assert vera.read(0x07) & 2 == 0
    vera.step(8, 260)
    assert vera.read(0x07) & 2


def test_reset_bit_restores_registers(vera):
    vera.write(0x0A, 0x40)
    assert vera.read(0x0A) == 0x40
    vera.write(0x05, 0x80)
    assert vera.read(0x0A) == 128


def test_save_layout(vera):
    stream = io.BytesIO()
    vera.save(stream)
    data = stream.getvalue()
    assert len(data) == 0x20000 + 8 + 512 + 14 + 128 * 8
    assert data[:0x20000] == bytes(vera.video_ram)


def test_special_address(vera):
    assert vera.is_special_address(0x1F9C0)
    assert not vera.is_special_address(0x1F9BF)


def test_tilemap_address(vera):
    vera.write(0x0D, 0x00)
    vera.write(0x0E, 0x01)  # map base 0x200, 32x32 map
    assert vera.is_tilemap_address(0x200)
    assert not vera.is_tilemap_address(0x200 + (2 << 10))


def test_tiledata_address(vera):
    vera.write(0x0F, 0x04)  # tile base 0x800, 8x8 1bpp
    assert vera.is_tiledata_address(0x800)
    assert not vera.is_tiledata_address(0x7FF)
    assert not vera.is_tiledata_address(0x800 + 8 * 256)


def test_text_layer_line_reaches_framebuffer(vera):
    vera.write(0x0D, 0x00)
    vera.write(0x0E, 0x00)
    vera.write(0x0F, 0x04)
    vera.write(0x09, 0x11)  # VGA output, layer 0 enabled
    vera.render_line(5)
    expected = [vera.palette_rgb[c] for c in render_text_line(vera.video_ram, vera.layers[0], 5)]
    assert vera.framebuffer[5 * 640:6 * 640] == expected


def test_lines_beyond_screen_are_ignored(vera):
    vera.write(0x09, 0x01)
    before = list(vera.framebuffer)
    vera.render_line(480)
    assert vera.framebuffer == before