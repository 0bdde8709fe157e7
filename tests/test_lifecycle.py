import asyncio

from order_watch.engine import LifecycleController, LifecycleEventSource, LifecycleState
from order_watch.schemas import AppStateEnum


class Recorder:
    """Cycle function that can be held open to simulate a slow fetch."""

    def __init__(self):
        self.calls = 0
        self.applied = 0
        self.gate: asyncio.Event = asyncio.Event()
        self.gate.set()
        self.heartbeats = 0

    async def cycle(self, is_current):
        self.calls += 1
        await self.gate.wait()
        if is_current():
            self.applied += 1
            return "applied"
        return None

    async def heartbeat(self):
        self.heartbeats += 1
        return True


async def spin(times: int = 10) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


async def test_start_runs_a_cycle_and_is_idempotent():
    recorder = Recorder()
    controller = LifecycleController(recorder.cycle)

    controller.start()
    controller.start()
    await spin()

    assert controller.state is LifecycleState.RUNNING
    assert recorder.calls == 1
    controller.stop()


async def test_no_timer_without_poll_interval():
    controller = LifecycleController(Recorder().cycle, poll_interval=None)
    controller.start()
    assert not controller.has_timer
    controller.stop()


async def test_poll_timer_triggers_cycles():
    recorder = Recorder()
    controller = LifecycleController(recorder.cycle, poll_interval=0.01)

    controller.start()
    await asyncio.sleep(0.08)
    controller.stop()
    await controller.wait_idle()

    assert recorder.calls >= 3
    assert not controller.has_timer


async def test_overlapping_cycles_are_skipped():
    recorder = Recorder()
    recorder.gate.clear()
    controller = LifecycleController(recorder.cycle)
    controller.start()
    await spin()
    assert controller.in_flight

    assert await controller.run_once() is None
    assert recorder.calls == 1

    recorder.gate.set()
    await controller.wait_idle()
    assert await controller.run_once() == "applied"
    controller.stop()


async def test_result_after_stop_is_discarded():
    recorder = Recorder()
    recorder.gate.clear()
    controller = LifecycleController(recorder.cycle)
    controller.start()
    await spin()

    controller.stop()
    recorder.gate.set()
    await controller.wait_idle()

    assert recorder.calls == 1
    assert recorder.applied == 0
    assert await controller.run_once() is None


async def test_suspend_discards_in_flight_and_resume_restarts():
    recorder = Recorder()
    recorder.gate.clear()
    controller = LifecycleController(
        recorder.cycle,
        poll_interval=60,
        heartbeat=recorder.heartbeat,
        heartbeat_interval=60,
    )
    controller.start()
    await spin()
    assert recorder.heartbeats == 1

    controller.suspend()
    assert controller.state is LifecycleState.SUSPENDED
    assert not controller.has_timer
    recorder.gate.set()
    await controller.wait_idle()
    assert recorder.applied == 0

    controller.resume()
    await spin()
    await controller.wait_idle()

    assert controller.state is LifecycleState.RUNNING
    assert controller.has_timer
    assert recorder.heartbeats == 2
    assert recorder.applied == 1
    controller.stop()


async def test_resume_only_from_suspended():
    recorder = Recorder()
    controller = LifecycleController(recorder.cycle)
    controller.resume()
    assert controller.state is LifecycleState.STOPPED

    controller.start()
    controller.stop()
    controller.suspend()
    assert controller.state is LifecycleState.STOPPED
    await spin()


async def test_failing_heartbeat_does_not_break_controller():
    async def heartbeat():
        raise RuntimeError("backend down")

    recorder = Recorder()
    controller = LifecycleController(recorder.cycle, heartbeat=heartbeat, heartbeat_interval=60)
    controller.start()
    await spin()

    assert controller.state is LifecycleState.RUNNING
    assert recorder.applied == 1
    controller.stop()


async def test_app_state_events_drive_transitions():
    recorder = Recorder()
    events = LifecycleEventSource()
    controller = LifecycleController(recorder.cycle, poll_interval=60)
    controller.bind(events)
    controller.start()
    await spin()

    events.emit(AppStateEnum.BACKGROUND)
    await spin()
    assert controller.state is LifecycleState.SUSPENDED

    events.emit(AppStateEnum.INACTIVE)
    await spin()
    assert controller.state is LifecycleState.SUSPENDED

    events.emit(AppStateEnum.ACTIVE)
    await spin()
    assert controller.state is LifecycleState.RUNNING
    assert recorder.calls == 2

    events.close()
    controller.unbind()
    controller.stop()


async def test_drain_returns_once_events_are_handled():
    recorder = Recorder()
    events = LifecycleEventSource()
    controller = LifecycleController(recorder.cycle, poll_interval=60)
    controller.bind(events)
    controller.start()

    events.emit(AppStateEnum.BACKGROUND)
    await events.drain()

    assert controller.state is LifecycleState.SUSPENDED
    controller.unbind()
    controller.stop()
