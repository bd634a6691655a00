"""Commander X16 device models: VERA video and audio, SPI SD card, PS/2, RTC, SMC, WAV recording and frame pacing."""

__version__ = "0.1.0"