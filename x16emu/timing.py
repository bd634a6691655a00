"""Frame pacing to 60 frames per second and speed reporting."""

from __future__ import annotations

import time
from typing import Callable

TITLE = "Commander X16"


def _ticks_ms() -> int:
    return int(time.monotonic() * 1000)


class FrameTimer:
    """Sleeps so that frames come at 60 Hz, and reports the speed in the title."""

    def __init__(
        self,
        clock: Callable[[], int] = _ticks_ms,
        sleep: Callable[[float], None] = time.sleep,
        set_title: Callable[[str], None] | None = None,
        warp_mode: bool = False,
        log_speed: bool = False,
    ) -> None:
        self.clock = clock
        self.sleep = sleep
        self.set_title = set_title
        self.warp_mode = warp_mode
        self.log_speed = log_speed
        self.reset()

    def reset(self) -> None:
        self.frames = 0
        self.ticks_base = self.clock()
        self.last_perf_update = 0
        self.perf_frame_count = 0

    def update(self) -> None:
        """Account for one finished frame."""
        self.frames += 1
        ticks = self.clock() - self.ticks_base
        diff_time = 1000 * self.frames // 60 - ticks
        if not self.warp_mode and diff_time > 0:
            self.sleep(diff_time / 1000)

        if ticks - self.last_perf_update > 5000:
            perf = (self.frames - self.perf_frame_count) // 3
            if perf < 100 or self.warp_mode:
                title = f"{TITLE} ({perf}%)"
            else:
                title = TITLE
            if self.set_title is not None:
                self.set_title(title)
            self.perf_frame_count = self.frames
            self.last_perf_update = ticks

        if self.log_speed:
            frames_behind = -(diff_time / 16.666666)
            load = int((1 + frames_behind) * 100)
            print(f"Load: {min(load, 100)}%")
            if int(frames_behind) > 0:
                print(f"Rendering is behind {-int(frames_behind)} frames.")