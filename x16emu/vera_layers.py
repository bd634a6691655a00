"""VERA line rendering: tile/text/bitmap layers, sprites and the composer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

SCREEN_WIDTH = 640
SCREEN_HEIGHT = 480
NUM_SPRITES = 128
VRAM_MASK = 0x1FFFF

# every sprite lookup, 32-bit fetch and rendered pixel costs one clock
_SPRITE_BUDGET = 800 + 1


def _vread(vram: Sequence[int], address: int) -> int:
    return vram[address & VRAM_MASK]


@dataclass
class LayerProperties:
    """Decoded state of one layer's seven configuration registers."""

    color_depth: int = 0
    map_base: int = 0
    tile_base: int = 0
    text_mode: bool = False
    text_mode_256c: bool = False
    tile_mode: bool = False
    bitmap_mode: bool = False
    hscroll: int = 0
    vscroll: int = 0
    mapw_log2: int = 0
    maph_log2: int = 0
    tilew: int = 0
    tileh: int = 0
    tilew_log2: int = 0
    tileh_log2: int = 0
    mapw_max: int = 0
    maph_max: int = 0
    tilew_max: int = 0
    tileh_max: int = 0
    layerw_max: int = 0
    layerh_max: int = 0
    tile_size_log2: int = 0
    min_eff_x: int = 0
    max_eff_x: int = 0
    bits_per_pixel: int = 0
    first_color_pos: int = 0
    color_mask: int = 0
    color_fields_max: int = 0

    def eff_x(self, x: int) -> int:
        return (x + self.hscroll) & self.layerw_max

    def eff_y(self, y: int) -> int:
        return (y + self.vscroll) & self.layerh_max

    def map_address(self, eff_x: int, eff_y: int) -> int:
        offset = ((eff_y >> self.tileh_log2) << self.mapw_log2) + (eff_x >> self.tilew_log2)
        return (self.map_base + (offset << 1)) & 0xFFFFFFFF

    def refresh(self, regs: Sequence[int]) -> None:
        """Recompute all derived values from the layer's registers."""
        r0, r1, r2, r3, r4, r5, r6 = (v & 0xFF for v in regs[:7])
        prev_layerw_max = self.layerw_max
        prev_hscroll = self.hscroll

        self.color_depth = r0 & 0x3
        self.map_base = r1 << 9
        self.tile_base = (r2 & 0xFC) << 9
        self.bitmap_mode = bool(r0 & 0x4)
        self.text_mode = self.color_depth == 0 and not self.bitmap_mode
        self.text_mode_256c = bool(r0 & 0x8)
        self.tile_mode = not self.bitmap_mode and not self.text_mode

        if not self.bitmap_mode:
            self.hscroll = r3 | (r4 & 0xF) << 8
            self.vscroll = r5 | (r6 & 0xF) << 8
        else:
            self.hscroll = 0
            self.vscroll = 0

        mapw = maph = 0
        self.tilew = 0
        self.tileh = 0
        if self.tile_mode or self.text_mode:
            self.mapw_log2 = 5 + ((r0 >> 4) & 3)
            self.maph_log2 = 5 + ((r0 >> 6) & 3)
            mapw = 1 << self.mapw_log2
            maph = 1 << self.maph_log2
            self.tilew_log2 = 3 + (r2 & 1)
            self.tileh_log2 = 3 + ((r2 >> 1) & 1)
            self.tilew = 1 << self.tilew_log2
            self.tileh = 1 << self.tileh_log2
        else:
            # a bitmap is a tiled layer with a single huge tile
            self.tilew = 640 if r2 & 1 else 320
            self.tileh = SCREEN_HEIGHT

        self.mapw_max = (mapw - 1) & 0xFFFF
        self.maph_max = (maph - 1) & 0xFFFF
        self.tilew_max = (self.tilew - 1) & 0xFFFF
        self.tileh_max = (self.tileh - 1) & 0xFFFF
        self.layerw_max = (mapw * self.tilew - 1) & 0xFFFF
        self.layerh_max = (maph * self.tileh - 1) & 0xFFFF

        if prev_layerw_max != self.layerw_max or prev_hscroll != self.hscroll:
            xs = [self.eff_x(x) for x in range(SCREEN_WIDTH)]
            self.min_eff_x = min(xs)
            self.max_eff_x = max(xs)

        self.bits_per_pixel = 1 << self.color_depth
        self.tile_size_log2 = (self.tilew_log2 + self.tileh_log2 + self.color_depth - 3) & 0xFF
        self.first_color_pos = 8 - self.bits_per_pixel
        self.color_mask = ((1 << self.bits_per_pixel) - 1) & 0xFF
        self.color_fields_max = (8 >> self.color_depth) - 1


@dataclass
class SpriteProperties:
    """Decoded attributes of one sprite."""

    zdepth: int = 0
    collision_mask: int = 0
    x: int = 0
    y: int = 0
    width_log2: int = 3
    height_log2: int = 3
    width: int = 8
    height: int = 8
    hflip: bool = False
    vflip: bool = False
    color_mode: int = 0
    address: int = 0
    palette_offset: int = 0


def sprite_properties(data: Sequence[int]) -> SpriteProperties:
    """Decode the eight attribute bytes of a sprite."""
    d = [v & 0xFF for v in data[:8]]
    width_log2 = ((d[7] >> 4) & 3) + 3
    height_log2 = (d[7] >> 6) + 3
    width = 1 << width_log2
    height = 1 << height_log2
    x = d[2] | (d[3] & 3) << 8
    y = d[4] | (d[5] & 3) << 8
    # coordinates near the top of the range are negative
    if x >= 0x400 - width:
        x -= 0x400
    if y >= 0x400 - height:
        y -= 0x400
    return SpriteProperties(
        zdepth=(d[6] >> 2) & 3,
        collision_mask=d[6] & 0xF0,
        x=x,
        y=y,
        width_log2=width_log2,
        height_log2=height_log2,
        width=width,
        height=height,
        hflip=bool(d[6] & 1),
        vflip=bool((d[6] >> 1) & 1),
        color_mode=(d[1] >> 7) & 1,
        address=d[0] << 5 | (d[1] & 0xF) << 13,
        palette_offset=(d[7] & 0x0F) << 4,
    )


def palette_entries(palette: Sequence[int], composer0: int) -> list[int]:
    """Convert the 12-bit palette to 0xRRGGBB entries for the output mode."""
    out_mode = composer0 & 3
    chroma_disable = bool((composer0 >> 2) & 1)
    entries: list[int] = []
    for i in range(256):
        if out_mode == 0:
            # video generation off: blue screen
            r, g, b = 0, 0, 255
        else:
            entry = palette[i * 2] | palette[i * 2 + 1] << 8
            r = ((entry >> 8) & 0xF) * 0x11
            g = ((entry >> 4) & 0xF) * 0x11
            b = (entry & 0xF) * 0x11
            if chroma_disable:
                r = g = b = (r + g + b) // 3
        entries.append(r << 16 | g << 8 | b)
    return entries


@dataclass
class SpriteLine:
    """Sprite colours, depths and collision masks for one scan line."""

    col: list[int] = field(default_factory=lambda: [0] * SCREEN_WIDTH)
    z: list[int] = field(default_factory=lambda: [0] * SCREEN_WIDTH)
    mask: list[int] = field(default_factory=lambda: [0] * SCREEN_WIDTH)
    collisions: int = 0


def _sprite_pixels(vram: Sequence[int], props: SpriteProperties, row: int) -> list[int]:
    start = props.address + (row << (props.width_log2 - (1 - props.color_mode)))
    if props.color_mode:
        return [_vread(vram, start + i) for i in range(props.width)]
    pixels: list[int] = []
    for i in range(props.width // 2):
        byte = _vread(vram, start + i)
        pixels.append(byte >> 4)
        pixels.append(byte & 0xF)
    return pixels


def render_sprite_line(
    vram: Sequence[int], sprites: Sequence[SpriteProperties], y: int
) -> SpriteLine:
    """Render all sprites that touch line y, within the per-line clock budget."""
    y &= 0xFFFF
    line = SpriteLine()
    budget = _SPRITE_BUDGET
    for props in sprites[:NUM_SPRITES]:
        budget = (budget - 1) & 0xFFFF
        if budget == 0:
            break
        if props.zdepth == 0:
            continue
        if y < props.y or y >= props.y + props.height:
            continue

        row = y - props.y
        if props.vflip:
            row = props.height - 1 - row
        row &= 0xFFFF
        pixels = _sprite_pixels(vram, props, row)
        eff_sx = props.width - 1 if props.hflip else 0
        incr = -1 if props.hflip else 1

        for sx in range(props.width):
            line_x = (props.x + sx) & 0xFFFF
            if line_x >= SCREEN_WIDTH:
                eff_sx += incr
                continue
            if not sx & 3:
                budget = (budget - 1) & 0xFFFF
                if budget == 0:
                    break
            budget = (budget - 1) & 0xFFFF
            if budget == 0:
                break

            col_index = pixels[eff_sx]
            eff_sx += incr
            if col_index > 0:
                line.collisions |= line.mask[line_x] & props.collision_mask
                line.mask[line_x] |= props.collision_mask
                if props.zdepth > line.z[line_x]:
                    line.col[line_x] = (col_index + props.palette_offset) & 0xFF
                    line.z[line_x] = props.zdepth
    return line


def _map_entry(vram: Sequence[int], props: LayerProperties, eff_x: int, eff_y: int) -> tuple[int, int]:
    addr = props.map_address(eff_x, eff_y)
    return _vread(vram, addr), _vread(vram, addr + 1)


def render_text_line(vram: Sequence[int], props: LayerProperties, y: int) -> list[int]:
    """Render one line of a 1bpp text layer."""
    y &= 0xFFFF
    max_pixels_per_byte = (8 >> props.color_depth) - 1
    eff_y = props.eff_y(y)
    yy = eff_y & props.tileh_max
    y_add = (yy << props.tilew_log2) >> 3

    def tile_info(eff_x: int) -> tuple[int, int, int]:
        index, attr = _map_entry(vram, props, eff_x, eff_y)
        if props.text_mode_256c:
            fg, bg = attr, 0
        else:
            fg, bg = attr & 15, attr >> 4
        return fg, bg, index << props.tile_size_log2

    eff_x = props.eff_x(0)
    xx = eff_x & props.tilew_max
    fg, bg, tile_start = tile_info(eff_x)
    s = _vread(vram, props.tile_base + tile_start + y_add + (xx >> 3))
    shift = (max_pixels_per_byte - xx) & 0xFF

    line = [0] * SCREEN_WIDTH
    for x in range(SCREEN_WIDTH):
        eff_x = props.eff_x(x)
        xx = eff_x & props.tilew_max
        if eff_x & 0x7 == 0:
            if eff_x & props.tilew_max == 0:
                fg, bg, tile_start = tile_info(eff_x)
            s = _vread(vram, props.tile_base + tile_start + y_add + (xx >> 3))
            shift = max_pixels_per_byte
        line[x] = fg if (s >> shift) & 1 else bg
        shift = (shift - 1) & 0xFF
    return line


def render_tile_line(vram: Sequence[int], props: LayerProperties, y: int) -> list[int]:
    """Render one line of a 2/4/8bpp tile layer with flipping and palette offsets."""
    y &= 0xFFFF
    max_pixels_per_byte = (8 >> props.color_depth) - 1
    eff_y = props.eff_y(y)
    yy = (eff_y & props.tileh_max) & 0xFF
    yy_flip = (yy ^ props.tileh_max) & 0xFF
    row_shift = props.tilew_log2 + props.color_depth - 3
    y_add = yy << row_shift
    y_add_flip = yy_flip << row_shift

    vflip = hflip = False
    palette_offset = tile_start = shift_incr = 0

    def load_tile(eff_x: int) -> None:
        nonlocal vflip, hflip, palette_offset, tile_start, shift_incr
        byte0, byte1 = _map_entry(vram, props, eff_x, eff_y)
        vflip = bool((byte1 >> 3) & 1)
        hflip = bool((byte1 >> 2) & 1)
        palette_offset = byte1 & 0xF0
        tile_start = (byte0 | (byte1 & 3) << 8) << props.tile_size_log2
        shift_incr = props.bits_per_pixel if hflip else -props.bits_per_pixel

    def fetch(eff_x: int) -> tuple[int, int]:
        xx = eff_x & props.tilew_max
        if hflip:
            xx ^= props.tilew_max
            shift = 0
        else:
            shift = props.first_color_pos
        x_add = ((xx << props.color_depth) >> 3) & 0xFFFF
        offset = tile_start + (y_add_flip if vflip else y_add) + x_add
        return _vread(vram, props.tile_base + offset), shift

    eff_x = props.eff_x(0)
    load_tile(eff_x)
    s, shift = fetch(eff_x)

    line = [0] * SCREEN_WIDTH
    for x in range(SCREEN_WIDTH):
        eff_x = props.eff_x(x)
        if eff_x & max_pixels_per_byte == 0:
            if eff_x & props.tilew_max == 0:
                load_tile(eff_x)
            s, shift = fetch(eff_x)
        col_index = (s >> shift) & props.color_mask
        shift = (shift + shift_incr) & 0xFF
        if palette_offset and 0 < col_index < 16:
            col_index += palette_offset
        line[x] = col_index
    return line


def render_bitmap_line(
    vram: Sequence[int], props: LayerProperties, regs: Sequence[int], y: int
) -> list[int]:
    """Render one line of a bitmap layer."""
    y &= 0xFFFF
    yy = y % props.tileh
    y_add = (yy * props.tilew * props.bits_per_pixel) >> 3
    palette_offset = regs[4] & 0xF

    line = [0] * SCREEN_WIDTH
    for x in range(SCREEN_WIDTH):
        xx = x % props.tilew
        x_add = ((xx * props.bits_per_pixel) >> 3) & 0xFFFF
        s = _vread(vram, props.tile_base + y_add + x_add)
        shift = props.first_color_pos - ((xx & props.color_fields_max) << props.color_depth)
        col_index = (s >> shift) & props.color_mask
        if palette_offset and 0 < col_index < 16:
            col_index += palette_offset << 4
        line[x] = col_index
    return line


def compose_pixel(spr_z: int, spr_col: int, l1: int, l2: int) -> int:
    """Pick the visible colour index from sprite depth and the two layers."""
    if spr_z == 3:
        return spr_col or l2 or l1
    if spr_z == 2:
        return l2 or spr_col or l1
    if spr_z == 1:
        return l2 or l1 or spr_col
    if spr_z == 0:
        return l2 or l1
    return 0