[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "x16emu"
version = "0.1.0"
description = "Device models of the Commander X16: VERA video, PCM and PSG audio, SD card over SPI, PS/2, RTC, SMC, WAV recording and frame pacing"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "commander-x16",
    "emulator",
    "vera",
    "ps2",
    "sdcard",
    "retro",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["x16emu"]

[tool.pytest.ini_options]
addopts = "-ra"
