"""VERA video chip: register interface, video address space and scan-out."""

from __future__ import annotations

import random
from typing import BinaryIO

from .vera_layers import (
    SCREEN_HEIGHT,
    SCREEN_WIDTH,
    NUM_SPRITES,
    LayerProperties,
    SpriteLine,
    SpriteProperties,
    compose_pixel,
    palette_entries,
    render_bitmap_line,
    render_sprite_line,
    render_text_line,
    render_tile_line,
    sprite_properties,
)
from .vera_pcm import Pcm
from .vera_psg import Psg
from .vera_spi import VeraSpi

VRAM_SIZE = 0x20000
ADDR_PSG_START = 0x1F9C0
ADDR_PSG_END = 0x1FA00
ADDR_PALETTE_START = 0x1FA00
ADDR_PALETTE_END = 0x1FC00
ADDR_SPRDATA_START = 0x1FC00
ADDR_SPRDATA_END = 0x20000

# both VGA and NTSC
SCAN_HEIGHT = 525
PIXEL_FREQ = 25.0

VGA_SCAN_WIDTH = 800
VGA_Y_OFFSET = 0

# NTSC: 262.5 lines per frame, lower field first
NTSC_HALF_SCAN_WIDTH = 794
NTSC_Y_OFFSET_LOW = 42
NTSC_Y_OFFSET_HIGH = 568
TITLE_SAFE_X = 0.067
TITLE_SAFE_Y = 0.05

DEFAULT_PALETTE = (
    0x000, 0xfff, 0x800, 0xafe, 0xc4c, 0x0c5, 0x00a, 0xee7, 0xd85, 0x640, 0xf77, 0x333, 0x777, 0xaf6, 0x08f, 0xbbb,
    0x000, 0x111, 0x222, 0x333, 0x444, 0x555, 0x666, 0x777, 0x888, 0x999, 0xaaa, 0xbbb, 0xccc, 0xddd, 0xeee, 0xfff,
    0x211, 0x433, 0x644, 0x866, 0xa88, 0xc99, 0xfbb, 0x211, 0x422, 0x633, 0x844, 0xa55, 0xc66, 0xf77, 0x200, 0x411,
    0x611, 0x822, 0xa22, 0xc33, 0xf33, 0x200, 0x400, 0x600, 0x800, 0xa00, 0xc00, 0xf00, 0x221, 0x443, 0x664, 0x886,
    0xaa8, 0xcc9, 0xfeb, 0x211, 0x432, 0x653, 0x874, 0xa95, 0xcb6, 0xfd7, 0x210, 0x431, 0x651, 0x862, 0xa82, 0xca3,
    0xfc3, 0x210, 0x430, 0x640, 0x860, 0xa80, 0xc90, 0xfb0, 0x121, 0x343, 0x564, 0x786, 0x9a8, 0xbc9, 0xdfb, 0x121,
    0x342, 0x463, 0x684, 0x8a5, 0x9c6, 0xbf7, 0x120, 0x241, 0x461, 0x582, 0x6a2, 0x8c3, 0x9f3, 0x120, 0x240, 0x360,
    0x480, 0x5a0, 0x6c0, 0x7f0, 0x121, 0x343, 0x465, 0x686, 0x8a8, 0x9ca, 0xbfc, 0x121, 0x242, 0x364, 0x485, 0x5a6,
    0x6c8, 0x7f9, 0x020, 0x141, 0x162, 0x283, 0x2a4, 0x3c5, 0x3f6, 0x020, 0x041, 0x061, 0x082, 0x0a2, 0x0c3, 0x0f3,
    0x122, 0x344, 0x466, 0x688, 0x8aa, 0x9cc, 0xbff, 0x122, 0x244, 0x366, 0x488, 0x5aa, 0x6cc, 0x7ff, 0x022, 0x144,
    0x166, 0x288, 0x2aa, 0x3cc, 0x3ff, 0x022, 0x044, 0x066, 0x088, 0x0aa, 0x0cc, 0x0ff, 0x112, 0x334, 0x456, 0x668,
    0x88a, 0x9ac, 0xbcf, 0x112, 0x224, 0x346, 0x458, 0x56a, 0x68c, 0x79f, 0x002, 0x114, 0x126, 0x238, 0x24a, 0x35c,
    0x36f, 0x002, 0x014, 0x016, 0x028, 0x02a, 0x03c, 0x03f, 0x112, 0x334, 0x546, 0x768, 0x98a, 0xb9c, 0xdbf, 0x112,
    0x324, 0x436, 0x648, 0x85a, 0x96c, 0xb7f, 0x102, 0x214, 0x416, 0x528, 0x62a, 0x83c, 0x93f, 0x102, 0x204, 0x306,
    0x408, 0x50a, 0x60c, 0x70f, 0x212, 0x434, 0x646, 0x868, 0xa8a, 0xc9c, 0xfbe, 0x211, 0x423, 0x635, 0x847, 0xa59,
    0xc6b, 0xf7d, 0x201, 0x413, 0x615, 0x826, 0xa28, 0xc3a, 0xf3c, 0x201, 0x403, 0x604, 0x806, 0xa08, 0xc09, 0xf0b,
)

_INCREMENTS = (
    0, 0, 1, -1, 2, -2, 4, -4, 8, -8, 16, -16, 32, -32, 64, -64,
    128, -128, 256, -256, 512, -512, 40, -40, 80, -80, 160, -160, 320, -320, 640, -640,
)


class Vera:
    """The VERA chip as seen by the CPU through registers $9F20-$9F3F."""

    def __init__(
        self,
        psg: Psg | None = None,
        pcm: Pcm | None = None,
        spi: VeraSpi | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self.psg = psg if psg is not None else Psg()
        self.pcm = pcm if pcm is not None else Pcm()
        self.spi = spi if spi is not None else VeraSpi()
        self.warp_mode = False
        self.log_video = False

        self.video_ram = bytearray(VRAM_SIZE)
        self.palette = bytearray(256 * 2)
        self.sprite_data = [bytearray(8) for _ in range(NUM_SPRITES)]
        self.reg_layer = [bytearray(7), bytearray(7)]
        self.reg_composer = bytearray(8)
        self.layers = [LayerProperties(), LayerProperties()]
        self.sprites = [SpriteProperties() for _ in range(NUM_SPRITES)]
        self.palette_rgb = [0] * 256
        self.palette_dirty = False

        self.layer_line = [[0] * SCREEN_WIDTH, [0] * SCREEN_WIDTH]
        self._old_layer_enable = [False, False]
        self.sprite_line = SpriteLine()
        self.sprite_line_collisions = 0
        self.framebuffer = [0] * (SCREEN_WIDTH * SCREEN_HEIGHT)
        self.frame_count = 0
        self.reset()

    def reset(self) -> None:
        """Reset registers, restore the default palette and fill VRAM with noise."""
        self.io_addr = [0, 0]
        self.io_inc = [0, 0]
        self.io_rddata = [0, 0]
        self.io_addrsel = 0
        self.io_dcsel = 0
        self.ien = 0
        self.isr = 0
        self.irq_line = 0

        self.reg_layer = [bytearray(7), bytearray(7)]
        self.reg_composer = bytearray(8)
        self.reg_composer[1] = 128  # hscale = 1.0
        self.reg_composer[2] = 128  # vscale = 1.0
        self.reg_composer[5] = 640 >> 2
        self.reg_composer[7] = 480 >> 1

        self.sprite_data = [bytearray(8) for _ in range(NUM_SPRITES)]

        for i, entry in enumerate(DEFAULT_PALETTE):
            self.palette[i * 2] = entry & 0xFF
            self.palette[i * 2 + 1] = entry >> 8
        self._refresh_palette()

        self.video_ram[:] = self._rng.randbytes(VRAM_SIZE)
        self.sprite_line_collisions = 0

        self.vga_scan_pos_x = 0.0
        self.vga_scan_pos_y = 0
        self.ntsc_half_cnt = 0.0
        self.ntsc_scan_pos_y = 0

        self.psg.reset()
        self.pcm.reset()

    def _refresh_palette(self) -> None:
        self.palette_rgb = palette_entries(self.palette, self.reg_composer[0])
        self.palette_dirty = False

    # video address space

    def space_read(self, address: int) -> int:
        return self.video_ram[address & 0x1FFFF]

    def space_write(self, address: int, value: int) -> None:
        value &= 0xFF
        self.video_ram[address & 0x1FFFF] = value
        if ADDR_PSG_START <= address < ADDR_PSG_END:
            self.psg.write_register(address & 0x3F, value)
        elif ADDR_PALETTE_START <= address < ADDR_PALETTE_END:
            self.palette[address & 0x1FF] = value
            self.palette_dirty = True
        elif ADDR_SPRDATA_START <= address < ADDR_SPRDATA_END:
            index = (address >> 3) & 0x7F
            self.sprite_data[index][address & 0x7] = value
            self.sprites[index] = sprite_properties(self.sprite_data[index])

    def _get_and_inc_address(self, sel: int) -> int:
        address = self.io_addr[sel]
        self.io_addr[sel] = (address + _INCREMENTS[self.io_inc[sel]]) & 0xFFFFFFFF
        return address

    # CPU register interface

    def read(self, reg: int, debug: bool = False) -> int:
        """Read a register; with debug set, nothing changes."""
        reg &= 0x1F
        sel = self.io_addrsel
        if reg == 0x00:
            return self.io_addr[sel] & 0xFF
        if reg == 0x01:
            return (self.io_addr[sel] >> 8) & 0xFF
        if reg == 0x02:
            return ((self.io_addr[sel] >> 16) | self.io_inc[sel] << 3) & 0xFF
        if reg in (0x03, 0x04):
            port = reg - 3
            if debug:
                return self.io_rddata[port]
            address = self._get_and_inc_address(port)
            value = self.io_rddata[port]
            self.io_rddata[port] = self.space_read(self.io_addr[port])
            if self.log_video:
                print(f"READ  video_space[${address:X}] = ${value:02X}")
            return value
        if reg == 0x05:
            return self.io_dcsel << 1 | self.io_addrsel
        if reg == 0x06:
            return ((self.irq_line & 0x100) >> 1) | (self.ien & 0xF)
        if reg == 0x07:
            return self.isr | (8 if self.pcm.is_fifo_almost_empty() else 0)
        if reg == 0x08:
            return self.irq_line & 0xFF
        if 0x09 <= reg <= 0x0C:
            return self.reg_composer[reg - 0x09 + (4 if self.io_dcsel else 0)]
        if 0x0D <= reg <= 0x13:
            return self.reg_layer[0][reg - 0x0D]
        if 0x14 <= reg <= 0x1A:
            return self.reg_layer[1][reg - 0x14]
        if reg == 0x1B:
            return self.pcm.read_ctrl()
        if reg == 0x1C:
            return self.pcm.read_rate()
        if reg == 0x1D:
            return 0
        return self.spi.read(reg & 1)

    def write(self, reg: int, value: int) -> None:
        reg &= 0x1F
        value &= 0xFF
        sel = self.io_addrsel
        if reg == 0x00:
            self.io_addr[sel] = (self.io_addr[sel] & 0x1FF00) | value
            self.io_rddata[sel] = self.space_read(self.io_addr[sel])
        elif reg == 0x01:
            self.io_addr[sel] = (self.io_addr[sel] & 0x100FF) | value << 8
            self.io_rddata[sel] = self.space_read(self.io_addr[sel])
        elif reg == 0x02:
            self.io_addr[sel] = (self.io_addr[sel] & 0x0FFFF) | (value & 0x1) << 16
            self.io_inc[sel] = value >> 3
            self.io_rddata[sel] = self.space_read(self.io_addr[sel])
        elif reg in (0x03, 0x04):
            port = reg - 3
            address = self._get_and_inc_address(port)
            if self.log_video:
                print(f"WRITE video_space[${address:X}] = ${value:02X}")
            self.space_write(address, value)
            self.io_rddata[port] = self.space_read(self.io_addr[port])
        elif reg == 0x05:
            if value & 0x80:
                self.reset()
            self.io_dcsel = (value >> 1) & 1
            self.io_addrsel = value & 1
        elif reg == 0x06:
            self.irq_line = (self.irq_line & 0xFF) | (value >> 7) << 8
            self.ien = value & 0xF
        elif reg == 0x07:
            self.isr &= value ^ 0xFF
        elif reg == 0x08:
            self.irq_line = (self.irq_line & 0x100) | value
        elif 0x09 <= reg <= 0x0C:
            i = reg - 0x09 + (4 if self.io_dcsel else 0)
            if i == 0:
                # the interlace field bit is read-only
                self.reg_composer[0] = (self.reg_composer[0] & 0x80) | (value & 0x7F)
                self.palette_dirty = True
            else:
                self.reg_composer[i] = value
        elif 0x0D <= reg <= 0x13:
            self.reg_layer[0][reg - 0x0D] = value
            self.layers[0].refresh(self.reg_layer[0])
        elif 0x14 <= reg <= 0x1A:
            self.reg_layer[1][reg - 0x14] = value
            self.layers[1].refresh(self.reg_layer[1])
        elif reg == 0x1B:
            self.pcm.write_ctrl(value)
        elif reg == 0x1C:
            self.pcm.write_rate(value)
        elif reg == 0x1D:
            self.pcm.write_fifo(value)
        else:
            self.spi.write(reg & 1, value)

    # rendering

    def _render_layer(self, layer: int, y: int) -> list[int]:
        props = self.layers[layer]
        if props.text_mode:
            return render_text_line(self.video_ram, props, y)
        if props.bitmap_mode:
            return render_bitmap_line(self.video_ram, props, self.reg_layer[layer], y)
        return render_tile_line(self.video_ram, props, y)

    def _compose_at(self, x: int) -> int:
        if x >= SCREEN_WIDTH:
            return 0
        sl = self.sprite_line
        return compose_pixel(sl.z[x], sl.col[x], self.layer_line[0][x], self.layer_line[1][x])

    def render_line(self, y: int) -> None:
        """Render one visible line into the framebuffer."""
        y &= 0xFFFF
        if y >= SCREEN_HEIGHT:
            return
        comp = self.reg_composer
        out_mode = comp[0] & 3
        border = comp[3]
        hstart = comp[4] << 2
        hstop = comp[5] << 2
        vstart = comp[6] << 1
        vstop = comp[7] << 1
        eff_y = (comp[2] * (y - vstart)) >> 7

        enable = (bool(comp[0] & 0x10), bool(comp[0] & 0x20))
        for layer in (0, 1):
            # clear the layer line once when the layer gets disabled
            if not enable[layer] and self._old_layer_enable[layer]:
                self.layer_line[layer] = [0] * SCREEN_WIDTH
            self._old_layer_enable[layer] = enable[layer]

        if comp[0] & 0x40:
            self.sprite_line = render_sprite_line(self.video_ram, self.sprites, eff_y)
            self.sprite_line_collisions |= self.sprite_line.collisions

        if self.warp_mode and self.frame_count & 63:
            # sprites were needed for the collision IRQ; skip the rest
            return

        for layer in (0, 1):
            if enable[layer]:
                self.layer_line[layer] = self._render_layer(layer, eff_y)

        if self.palette_dirty:
            self._refresh_palette()

        col_line = [0] * SCREEN_WIDTH
        if out_mode != 0:
            col_line = [border] * SCREEN_WIDTH
            if vstart <= y <= vstop:
                hstart = min(hstart, SCREEN_WIDTH)
                hstop = min(hstop, SCREEN_WIDTH)
                scale = comp[1]
                scaled_x = 0
                for x in range(hstart, hstop):
                    col_line[x] = self._compose_at((scaled_x >> 7) & 0xFFFF)
                    scaled_x += scale

        rgb = self.palette_rgb
        row = [rgb[c] for c in col_line]

        if out_mode == 2:
            # NTSC overscan: darken outside the title-safe area
            y_outside = y < SCREEN_HEIGHT * TITLE_SAFE_Y or y > SCREEN_HEIGHT * (1 - TITLE_SAFE_Y)
            for x in range(SCREEN_WIDTH):
                if (
                    y_outside
                    or x < SCREEN_WIDTH * TITLE_SAFE_X
                    or x > SCREEN_WIDTH * (1 - TITLE_SAFE_X)
                ):
                    row[x] = (row[x] & 0x00FCFCFC) >> 2

        start = y * SCREEN_WIDTH
        self.framebuffer[start:start + SCREEN_WIDTH] = row

    def _update_isr_and_coll(self, y: int, compare: int) -> None:
        y &= 0xFFFF
        if y == SCREEN_HEIGHT:
            if self.ien & 4:
                if self.sprite_line_collisions != 0:
                    self.isr |= 4
                self.isr = (self.isr & 0xF) | self.sprite_line_collisions
            self.sprite_line_collisions = 0
            if self.ien & 1:  # VSYNC IRQ
                self.isr |= 1
        if self.ien & 2 and y < SCREEN_HEIGHT and y == compare:  # LINE IRQ
            self.isr |= 2

    def step(self, mhz: float, steps: float) -> bool:
        """Advance the beam by CPU clocks; True when a frame has completed."""
        ntsc_mode = bool(self.reg_composer[0] & 2)
        new_frame = False
        advance = PIXEL_FREQ * steps / mhz

        self.vga_scan_pos_x += advance
        if self.vga_scan_pos_x > VGA_SCAN_WIDTH:
            self.vga_scan_pos_x -= VGA_SCAN_WIDTH
            if not ntsc_mode:
                self.render_line(self.vga_scan_pos_y - VGA_Y_OFFSET)
            self.vga_scan_pos_y += 1
            if self.vga_scan_pos_y == SCAN_HEIGHT:
                self.vga_scan_pos_y = 0
                if not ntsc_mode:
                    new_frame = True
                    self.frame_count += 1
            if not ntsc_mode:
                self._update_isr_and_coll(self.vga_scan_pos_y - VGA_Y_OFFSET, self.irq_line)

        self.ntsc_half_cnt += advance
        if self.ntsc_half_cnt > NTSC_HALF_SCAN_WIDTH:
            self.ntsc_half_cnt -= NTSC_HALF_SCAN_WIDTH
            if ntsc_mode:
                if self.ntsc_scan_pos_y < SCAN_HEIGHT:
                    y = (self.ntsc_scan_pos_y - NTSC_Y_OFFSET_LOW) & 0xFFFF
                    if y & 1 == 0:
                        self.render_line(y)
                else:
                    y = (self.ntsc_scan_pos_y - NTSC_Y_OFFSET_HIGH) & 0xFFFF
                    if y & 1 == 0:
                        self.render_line(y | 1)
            self.ntsc_scan_pos_y += 1
            if self.ntsc_scan_pos_y == SCAN_HEIGHT:
                self.reg_composer[0] |= 0x80
                if ntsc_mode:
                    new_frame = True
                    self.frame_count += 1
            if self.ntsc_scan_pos_y == SCAN_HEIGHT * 2:
                self.reg_composer[0] &= 0x7F
                self.ntsc_scan_pos_y = 0
                if ntsc_mode:
                    new_frame = True
                    self.frame_count += 1
            if ntsc_mode:
                compare = self.irq_line & ~1
                if self.ntsc_scan_pos_y < SCAN_HEIGHT:
                    self._update_isr_and_coll(self.ntsc_scan_pos_y - NTSC_Y_OFFSET_LOW, compare)
                else:
                    self._update_isr_and_coll(self.ntsc_scan_pos_y - NTSC_Y_OFFSET_HIGH, compare)

        return new_frame

    def irq_out(self) -> bool:
        isr = self.isr | (8 if self.pcm.is_fifo_almost_empty() else 0)
        return (isr & self.ien) != 0

    def save(self, stream: BinaryIO) -> None:
        """Write VRAM, composer, palette, layer and sprite registers."""
        stream.write(bytes(self.video_ram))
        stream.write(bytes(self.reg_composer))
        stream.write(bytes(self.palette))
        stream.write(bytes(self.reg_layer[0]) + bytes(self.reg_layer[1]))
        stream.write(b"".join(bytes(s) for s in self.sprite_data))

    # debugger helpers

    def is_tilemap_address(self, addr: int) -> bool:
        for props in self.layers:
            if addr < props.map_base:
                continue
            if addr >= props.map_base + (2 << (props.mapw_log2 + props.maph_log2)):
                continue
            return True
        return False

    def is_tiledata_address(self, addr: int) -> bool:
        for props in self.layers:
            if addr < props.tile_base:
                continue
            tile_size = props.tilew * props.tileh * props.bits_per_pixel // 8
            count = 256 if props.bits_per_pixel == 1 else 1024
            if addr >= props.tile_base + tile_size * count:
                continue
            return True
        return False

    def is_special_address(self, addr: int) -> bool:
        return addr >= ADDR_PSG_START