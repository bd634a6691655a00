# x16emu

Pure-Python models of several chips inside the Commander X16 retro computer.
Each device is an ordinary object holding its registers and timing state, so
it can be driven on its own from tests or scripts, or wired to the others.

The package uses only the standard library.

## What is in the package

| Module | Contents |
| --- | --- |
| `x16emu.video` | `Vera`: the video chip's 32 CPU registers, its 128 KB video address space, the auto-incrementing data ports, VGA/NTSC scanline timing, line and VSYNC interrupts and sprite collisions, and a framebuffer of `0xRRGGBB` values |
| `x16emu.vera_layers` | `LayerProperties`, `SpriteProperties`, `sprite_properties`, `palette_entries`, `SpriteLine` and the line renderers `render_text_line`, `render_tile_line`, `render_bitmap_line`, `render_sprite_line` and `compose_pixel` used by `Vera` |
| `x16emu.vera_pcm` | `Pcm`: the PCM audio FIFO (4095 usable bytes), 8/16-bit mono/stereo playback at a programmable rate, with volume |
| `x16emu.vera_psg` | `Psg`: the 16-voice sound generator with pulse, sawtooth, triangle and noise waveforms |
| `x16emu.vera_spi` | `VeraSpi`: the SPI data and control registers, handing bytes to an SD card |
| `x16emu.sdcard` | `SdCard`: an SD card in SPI mode over a seekable binary image (idle, interface condition, OCR, status, single-block read and write) |
| `x16emu.ps2` | `Ps2Port` (serialises queued bytes onto clock/data lines) and `Ps2Mouse` (turns movement and buttons into 3-byte packets) |
| `x16emu.rtc` | `Rtc`: the MCP7940N clock registers in BCD, 24h and AM/PM modes, and 64 bytes of NVRAM |
| `x16emu.smc` | `Smc`: power off, reset and the activity LED; `PowerOff` is raised on power off |
| `x16emu.wav_recorder` | `WavRecorder`, `WavState`, `WavCommand`: writes interleaved stereo 16-bit samples to a WAV file, with pause and start-on-first-sound |
| `x16emu.timing` | `FrameTimer`: sleeps so frames come at 60 per second and reports the speed as a window title string |

Registers are plain integers in the range of the hardware (8-bit registers
hold 0 to 255). Audio `render` methods return lists of interleaved
left/right signed 16-bit samples.

## Examples

Writing video memory through data port 0 with an increment of 1:

```python
import random
from x16emu.video import Vera

vera = Vera(rng=random.Random(0))
vera.write(0x00, 0x00)      # address low
vera.write(0x01, 0x00)      # address middle
vera.write(0x02, 0x10)      # address high, increment step 1
vera.write(0x03, 0x42)      # DATA0
assert vera.space_read(0) == 0x42
assert vera.read(0x00) == 0x01   # the address moved on
```

Feeding the PCM FIFO:

```python
from x16emu.vera_pcm import Pcm

pcm = Pcm()
pcm.write_ctrl(0x0F)        # mono 8-bit, full volume
pcm.write_rate(128)
pcm.write_fifo(0x40)
assert pcm.is_fifo_almost_empty()
samples = pcm.render(16)    # 32 values, left and right
```

Talking to an SD card image:

```python
import io
from x16emu.sdcard import SdCard

card = SdCard(io.BytesIO(bytes(512 * 4)))
card.select(True)
for byte in (0x40, 0, 0, 0, 0, 0x95):   # GO_IDLE_STATE
    card.handle(byte)
assert card.handle(0xFF) == 1            # R1: idle
```

Setting and reading the real-time clock:

```python
from x16emu.rtc import Rtc

rtc = Rtc()
rtc.write(2, 0x23)          # 23 hours, 24h mode
assert rtc.read(2) == 0x23
rtc.write(0x20, 0x55)       # first NVRAM byte
assert rtc.nvram_dirty
```

Recording audio until shutdown:

```python
from x16emu.wav_recorder import WavRecorder

recorder = WavRecorder(sample_rate=48000)
recorder.set_path("out.wav")   # ",wait" or ",auto" suffixes start paused
recorder.process([0, 0, 100, -100])
recorder.shutdown()            # rewrites the header with the final sizes
```

Power control through the SMC:

```python
from x16emu.smc import Smc, PowerOff

resets = []
smc = Smc(reset=lambda: resets.append(True))
smc.write(2, 0)             # reset button
try:
    smc.write(1, 0)         # power off
except PowerOff:
    pass
```

## What the package does not do

It is a set of device models, not a runnable computer. There is no 65C02
processor, no 6502 address map with banked RAM and ROM, no VIA timers, no
KERNAL hooks and no command-line program. Nothing opens a window, plays
sound or reads a keyboard or gamepad: `Vera` fills a framebuffer list,
`Pcm` and `Psg` return sample lists, and `FrameTimer` hands its title text
to a callback you supply.