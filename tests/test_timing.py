from x16emu.timing import TITLE, FrameTimer


class FakeClock:
    def __init__(self):
        self.now = 0

    def __call__(self):
        return self.now


def make(**kwargs):
    clock = FakeClock()
    sleeps = []
    titles = []
    timer = FrameTimer(clock=clock, sleep=sleeps.append, set_title=titles.append, **kwargs)
    return timer, clock, sleeps, titles


def test_sleeps_when_ahead():
    timer, clock, sleeps, _ = make()
    timer.update()
    assert len(sleeps) == 1
    assert 0 < sleeps[0] < 1 / 30


def test_no_sleep_when_behind():
    timer, clock, sleeps, _ = make()
    clock.now = 1000
    timer.update()
    assert sleeps == []


def test_no_sleep_in_warp_mode():
    timer, clock, sleeps, _ = make(warp_mode=True)
    timer.update()
    assert sleeps == []


def test_reset_restarts_counting():
    timer, clock, _, _ = make()
    timer.update()
    clock.now = 300
    timer.reset()
    assert timer.frames == 0 and timer.ticks_base == 300


def test_no_title_before_five_seconds():
    timer, clock, _, titles = make()
    clock.now = 5000
    timer.update()
    assert titles == []


def test_slow_title_shows_percentage():
    timer, clock, _, titles = make()
    clock.now = 6000
    timer.update()
    assert titles == [f"{TITLE} (0%)"]


def test_full_speed_title_is_plain():
    timer, clock, _, titles = make()
    for _ in range(400):
        timer.update()
    clock.now = 5001
    timer.update()
    assert titles == [TITLE]


def test_warp_title_always_shows_percentage():
    timer, clock, _, titles = make(warp_mode=True)
    for _ in range(400):
        timer.update()
    clock.now = 5001
    timer.update()
    assert len(titles) == 1
    assert titles[0].startswith(f"{TITLE} (") and titles[0].endswith("%)")


def test_log_speed_prints_load(capsys):
    timer, clock, _, _ = make(log_speed=True)
    timer.update()
    out = capsys.readouterr().out
    assert out.startswith("Load: ")
    assert "Rendering is behind" not in out


def test_log_speed_reports_lag(capsys):
    timer, clock, _, _ = make(log_speed=True)
    clock.now = 1000
    timer.update()
    out = capsys.readouterr().out
    assert "Load: 100%" in out
    assert "Rendering is behind" in out