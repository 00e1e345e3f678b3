import asyncio

import pytest

from performative.runtime.loop import FrameLoop, VideoFrame
from performative.runtime.scheduler import AsyncioScheduler
from performative.vision.overlay import Clear, Label, OverlaySurface, Rect

pytestmark = pytest.mark.anyio

CUP = {"class": "cup", "score": 0.5, "bbox": [10, 10, 50, 50]}
BOOK = {"class": "book", "score": 0.6, "bbox": [0, 0, 20, 20]}


def _source():
    return VideoFrame(image=object(), width=640, height=480)


def _loop(detector, settings_manager, scheduler, source=_source, **kw):
    loop = FrameLoop(detector, source, settings_manager, scheduler, **kw)
    events = []
    loop.machine.subscribe(events.append)
    return loop, events


async def test_enter_transition_after_four_frames(detector, settings_manager, scheduler):
    loop, events = _loop(detector, settings_manager, scheduler)
    detector.default = [CUP]
    loop.start()
    assert events == [False]
    events.clear()

    await scheduler.run(3)
    assert events == []
    assert loop.machine.state.match_streak == 3
    await scheduler.run_next()
    assert events == [True]
    assert loop.status()["is_performative"] is True
    assert len(scheduler.pending) == 1


async def test_exit_interrupted_by_match(detector, settings_manager, scheduler):
    settings_manager.set_frames_enter(1)
    loop, events = _loop(detector, settings_manager, scheduler)
    detector.push([CUP], *([[]] * 5), [BOOK], *([[]] * 6))
    loop.start()
    events.clear()

    await scheduler.run(1)
    assert events == [True]
    await scheduler.run(6)
    assert loop.machine.state.non_match_streak == 0
    await scheduler.run(5)
    assert events == [True]
    await scheduler.run_next()
    assert events == [True, False]


async def test_detector_error_holds_streaks(detector, settings_manager, scheduler):
    loop, _ = _loop(detector, settings_manager, scheduler, show_boxes=True)
    detector.push([CUP], [CUP], RuntimeError("model gone"), [CUP])
    loop.start()

    await scheduler.run(2)
    assert loop.machine.state.match_streak == 2
    await scheduler.run_next()
    assert loop.machine.state.match_streak == 2
    assert loop.machine.state.non_match_streak == 0
    assert loop.detector_errors == 1
    size = loop.surface.size
    assert loop.last_ops == [Clear(size.width, size.height)]
    assert len(scheduler.pending) == 1
    await scheduler.run_next()
    assert loop.machine.state.match_streak == 3


async def test_stop_discards_in_flight_result(settings_manager, scheduler):
    gate = asyncio.Event()

    class SlowDetector:
        async def detect(self, image):
            await gate.wait()
            return [CUP]

    settings_manager.set_frames_enter(1)
    loop, events = _loop(SlowDetector(), settings_manager, scheduler)
    loop.start()
    task = asyncio.ensure_future(scheduler.pop()())
    await asyncio.sleep(0)
    loop.stop()
    gate.set()
    await task

    assert loop.machine.state.match_streak == 0
    assert loop.frames_processed == 0
    assert scheduler.pending == {}
    assert True not in events


async def test_restart_waits_for_in_flight_detector(settings_manager, scheduler):
    gate = asyncio.Event()
    active = {"now": 0, "max": 0}

    class SlowDetector:
        async def detect(self, image):
            active["now"] += 1
            active["max"] = max(active["max"], active["now"])
            try:
                await gate.wait()
            finally:
                active["now"] -= 1
            return [CUP]

    loop, _ = _loop(SlowDetector(), settings_manager, scheduler)
    loop.start()
    first = asyncio.ensure_future(scheduler.pop()())
    await asyncio.sleep(0)
    loop.stop()
    loop.start()
    assert scheduler.pending == {}

    gate.set()
    await first
    assert loop.frames_processed == 0
    assert len(scheduler.pending) == 1

    await scheduler.run_next()
    assert active["max"] == 1
    assert loop.frames_processed == 1
    assert loop.machine.state.match_streak == 1


async def test_overlay_failure_does_not_block_state(detector, settings_manager, scheduler):
    class BrokenSurface(OverlaySurface):
        def apply(self, ops):
            raise RuntimeError("draw failed")

    settings_manager.set_frames_enter(2)
    loop, events = _loop(
        detector, settings_manager, scheduler, surface=BrokenSurface(), show_boxes=True
    )
    detector.default = [CUP]
    loop.start()
    await scheduler.run(2)
    assert events[-1] is True
    assert loop.frames_processed == 2
    assert len(scheduler.pending) == 1


async def test_infinite_score_is_not_a_match(detector, settings_manager, scheduler):
    loop, _ = _loop(detector, settings_manager, scheduler, show_boxes=True)
    detector.push([{"class": "cup", "score": float("inf"), "bbox": [1, 1, 5, 5]}])
    loop.start()
    await scheduler.run_next()
    assert loop.last_pass_set == []
    assert loop.machine.state.non_match_streak == 1
    assert loop.frames_processed == 1


async def test_hidden_pauses_without_reset(detector, settings_manager, scheduler):
    loop, _ = _loop(detector, settings_manager, scheduler)
    detector.default = [CUP]
    loop.start()
    await scheduler.run(2)

    loop.set_visible(False)
    assert scheduler.pending == {}
    assert loop.machine.state.match_streak == 2

    loop.set_visible(True)
    assert len(scheduler.pending) == 1
    await scheduler.run_next()
    assert loop.machine.state.match_streak == 3


async def test_hidden_during_tick_does_not_reschedule(settings_manager, scheduler):
    gate = asyncio.Event()

    class SlowDetector:
        async def detect(self, image):
            await gate.wait()
            return []

    loop, _ = _loop(SlowDetector(), settings_manager, scheduler)
    loop.start()
    task = asyncio.ensure_future(scheduler.pop()())
    await asyncio.sleep(0)
    loop.set_visible(False)
    gate.set()
    await task
    assert scheduler.pending == {}
    assert loop.machine.state.non_match_streak == 1
    loop.set_visible(True)
    assert len(scheduler.pending) == 1


async def test_frame_not_ready_skips_work(detector, settings_manager, scheduler):
    loop, _ = _loop(detector, settings_manager, scheduler, source=lambda: None)
    loop.start()
    await scheduler.run(3)
    assert detector.calls == 0
    assert loop.frames_processed == 0
    assert len(scheduler.pending) == 1


async def test_overlay_follows_show_boxes(detector, settings_manager, scheduler):
    loop, _ = _loop(detector, settings_manager, scheduler)
    loop.surface.resize(320, 240, 2.0)
    detector.default = [CUP, {"class": "cup", "score": 0.9, "bbox": [float("nan"), 0, 1, 1]}]
    loop.start()

    await scheduler.run_next()
    assert len(loop.last_pass_set) == 2
    assert all(isinstance(op, Clear) for op in loop.last_ops)

    loop.set_show_boxes(True)
    await scheduler.run_next()
    kinds = [type(op) for op in loop.last_ops]
    assert kinds == [Clear, Rect, Label]
    assert loop.machine.state.match_streak == 2


async def test_settings_change_resets_streak(detector, settings_manager, scheduler):
    loop, events = _loop(detector, settings_manager, scheduler)
    detector.default = [CUP]
    loop.start()
    events.clear()
    await scheduler.run(3)

    settings_manager.set_frames_enter(2)
    assert loop.machine.state.match_streak == 0
    await scheduler.run_next()
    assert events == []
    await scheduler.run_next()
    assert events == [True]


async def test_ignores_non_mapping_predictions(detector, settings_manager, scheduler):
    loop, _ = _loop(detector, settings_manager, scheduler)
    detector.default = ["cup", None, 3, CUP]
    loop.start()
    await scheduler.run_next()
    assert [p.label for p in loop.last_pass_set] == ["cup"]


async def test_restart_resets_state(detector, settings_manager, scheduler):
    loop, events = _loop(detector, settings_manager, scheduler)
    detector.default = [CUP]
    loop.start()
    await scheduler.run(2)
    loop.stop()
    assert scheduler.pending == {}
    assert not loop.running
    loop.start()
    assert loop.machine.state.match_streak == 0
    assert events == [False, False, False]


async def test_asyncio_scheduler_runs_and_cancels():
    sched = AsyncioScheduler(fps=1000)
    fired = asyncio.Event()

    async def tick():
        fired.set()

    sched.schedule_next(tick)
    await asyncio.wait_for(fired.wait(), timeout=1.0)

    fired.clear()
    handle = sched.schedule_next(tick)
    sched.cancel(handle)
    await asyncio.sleep(0.02)
    assert not fired.is_set()
