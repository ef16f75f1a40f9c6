"""Tests for FlowController: pause, resume, abort, snapshots and signals."""

import asyncio
import logging

import pytest

from flowcraft import (
    FlowAbortedError,
    FlowOptions,
    FlowStatus,
    LogLevel,
    SignalType,
)

QUIET = FlowOptions(log_level=LogLevel.NONE)


def noop(ctx, api):
    return None


@pytest.mark.asyncio
async def test_signal_pause_then_resume_continues_with_next_task(
    registry, make_recorder, wait_until
):
    calls = []

    def review(ctx, api):
        calls.append("review")
        api.signal(SignalType.PAUSE, {"x": 1})
        return "reviewed"

    registry.define("signal", [make_recorder("a"), review, make_recorder("c")], QUIET)
    controller = registry.run("signal")
    await wait_until(lambda: controller.status is FlowStatus.PAUSED)

    state = controller.get_state()
    assert state.status == "paused"
    assert state.current_task_index == 1
    assert state.signal_data == {"x": 1}
    assert state.context == {"order": ["a"]}

    controller.resume({"y": 2})
    result = await controller.result

    assert result == {"order": ["a", "c"], "y": 2}
    assert calls == ["review"]
    state = controller.get_state()
    assert state.signal_data is None
    assert state.current_task_index == 3


@pytest.mark.asyncio
async def test_pause_sentinel_return_is_same_as_signal(registry, wait_until):
    calls = []

    def gate(ctx, api):
        calls.append(api.task_info.id)
        return SignalType.PAUSE

    registry.define("sentinel", [gate, noop], QUIET)
    controller = registry.run("sentinel")
    await wait_until(lambda: controller.status is FlowStatus.PAUSED)

    state = controller.get_state()
    assert state.current_task_index == 0
    assert state.signal_data is None

    controller.resume()
    assert await controller.result == {}
    assert calls == ["task_0"]


@pytest.mark.asyncio
async def test_only_last_signal_counts(registry):
    def changes_mind(ctx, api):
        api.signal(SignalType.PAUSE, "first")
        api.signal("CUSTOM", "second")

    registry.define("lastsignal", [changes_mind, noop], QUIET)
    controller = registry.run("lastsignal")
    assert await controller.result == {}
    assert controller.status is FlowStatus.COMPLETED


@pytest.mark.asyncio
async def test_last_signal_pause_wins(registry, wait_until):
    def changes_mind(ctx, api):
        api.signal("CUSTOM", "first")
        api.signal(SignalType.PAUSE, "second")

    registry.define("lastpause", [changes_mind, noop], QUIET)
    controller = registry.run("lastpause")
    await wait_until(lambda: controller.status is FlowStatus.PAUSED)
    assert controller.get_state().signal_data == "second"
    controller.abort("done")
    with pytest.raises(FlowAbortedError):
        await controller.result


@pytest.mark.asyncio
async def test_signal_after_task_returned_is_ignored(registry, wait_until):
    handles = []

    def keep_handle(ctx, api):
        handles.append(api)

    registry.define("late", [keep_handle, noop], QUIET)
    controller = registry.run("late")
    await controller.result

    handles[0].signal(SignalType.PAUSE, "too late")
    assert handles[0].last_signal is None
    assert controller.status is FlowStatus.COMPLETED


@pytest.mark.asyncio
async def test_pause_on_last_task_completes_on_resume(registry, wait_until):
    registry.define("lastpause", [noop, lambda ctx, api: SignalType.PAUSE], QUIET)
    controller = registry.run("lastpause")
    await wait_until(lambda: controller.status is FlowStatus.PAUSED)
    assert controller.get_state().current_task_index == 1

    controller.resume({"done": True})
    assert await controller.result == {"done": True}
    assert controller.get_state().current_task_index == 2


@pytest.mark.asyncio
async def test_external_pause_waits_for_in_flight_task(registry, wait_until):
    started = asyncio.Event()
    release = asyncio.Event()
    calls = []

    async def slow(ctx, api):
        calls.append("slow")
        started.set()
        await release.wait()
        ctx["slow"] = True

    def after(ctx, api):
        calls.append("after")

    registry.define("extpause", [slow, after], QUIET)
    controller = registry.run("extpause")
    await started.wait()

    controller.pause()
    await asyncio.sleep(0)
    assert controller.status is FlowStatus.RUNNING

    release.set()
    await wait_until(lambda: controller.status is FlowStatus.PAUSED)
    state = controller.get_state()
    assert state.current_task_index == 0
    assert state.context == {"slow": True}
    assert calls == ["slow"]

    controller.resume()
    assert await controller.result == {"slow": True}
    assert calls == ["slow", "after"]


@pytest.mark.asyncio
async def test_abort_running_flow(registry):
    started = asyncio.Event()
    release = asyncio.Event()
    calls = []

    async def slow(ctx, api):
        started.set()
        await release.wait()
        ctx["side_effect"] = True

    registry.define("abort", [slow, lambda ctx, api: calls.append("next")], QUIET)
    controller = registry.run("abort")
    await started.wait()

    controller.abort("x")
    with pytest.raises(FlowAbortedError, match="x") as exc_info:
        await controller.result
    assert exc_info.value.reason == "x"
    assert controller.get_state().status == "aborted"

    first_error = controller.get_state().last_error
    controller.abort("again")
    assert controller.get_state().status == "aborted"
    assert controller.get_state().last_error is first_error

    # The in-flight task still finishes; its result is discarded
    release.set()
    for _ in range(5):
        await asyncio.sleep(0)
    state = controller.get_state()
    assert state.context == {"side_effect": True}
    assert state.status is FlowStatus.ABORTED
    assert calls == []


@pytest.mark.asyncio
async def test_abort_paused_flow(registry, wait_until):
    registry.define("abortpaused", [lambda ctx, api: SignalType.PAUSE, noop], QUIET)
    controller = registry.run("abortpaused")
    await wait_until(lambda: controller.status is FlowStatus.PAUSED)

    controller.abort()
    with pytest.raises(FlowAbortedError, match="Manual abort"):
        await controller.result

    controller.resume({"ignored": True})
    state = controller.get_state()
    assert state.status is FlowStatus.ABORTED
    assert "ignored" not in state.context


@pytest.mark.asyncio
async def test_abort_completed_flow_is_noop(registry, caplog):
    registry.define("done", [noop])
    controller = registry.run("done")
    await controller.result

    with caplog.at_level(logging.WARNING, logger="flowcraft.flow"):
        controller.abort("late")
    assert controller.status is FlowStatus.COMPLETED
    assert "Cannot abort flow 'done'" in caplog.text
    assert controller.result.exception() is None


@pytest.mark.asyncio
async def test_pause_and_resume_in_wrong_state_are_noops(registry, caplog, wait_until):
    registry.define("wrongstate", [lambda ctx, api: SignalType.PAUSE, noop])
    controller = registry.run("wrongstate")

    with caplog.at_level(logging.WARNING, logger="flowcraft.flow"):
        controller.resume({"early": True})
        await wait_until(lambda: controller.status is FlowStatus.PAUSED)
        controller.pause()

    assert "Cannot resume flow 'wrongstate': not paused" in caplog.text
    assert "Cannot pause flow 'wrongstate': not running" in caplog.text
    assert "early" not in controller.get_state().context

    controller.resume()
    controller.resume()
    await controller.result


@pytest.mark.asyncio
async def test_resume_ignores_non_mapping_data(registry, wait_until):
    registry.define("badresume", [lambda ctx, api: SignalType.PAUSE], QUIET)
    controller = registry.run("badresume", {"keep": 1})
    await wait_until(lambda: controller.status is FlowStatus.PAUSED)

    controller.resume(["not", "a", "mapping"])
    assert await controller.result == {"keep": 1}


@pytest.mark.asyncio
async def test_resume_overwrites_existing_keys(registry, wait_until):
    registry.define("overwrite", [lambda ctx, api: SignalType.PAUSE], QUIET)
    controller = registry.run("overwrite", {"mode": "draft", "other": 1})
    await wait_until(lambda: controller.status is FlowStatus.PAUSED)

    controller.resume({"mode": "final"})
    assert await controller.result == {"mode": "final", "other": 1}


@pytest.mark.asyncio
async def test_snapshot_is_detached_from_live_state(registry, wait_until):
    registry.define("snapshot", [lambda ctx, api: SignalType.PAUSE], QUIET)
    controller = registry.run("snapshot", {"a": 1})
    await wait_until(lambda: controller.status is FlowStatus.PAUSED)

    state = controller.get_state()
    with pytest.raises(TypeError):
        state.context["a"] = 2
    wire = state.as_dict()
    wire["context"]["a"] = 3

    assert controller.get_state().context == {"a": 1}
    assert wire["flowName"] == "snapshot"
    assert wire["status"] == "paused"
    assert wire["currentTaskIndex"] == 0

    controller.resume()
    await controller.result


@pytest.mark.asyncio
async def test_result_can_be_awaited_after_settlement(registry):
    registry.define("twice", [lambda ctx, api: ctx.update(v=1)], QUIET)
    controller = registry.run("twice")

    first = await controller.result
    second = await controller.result
    third = await controller
    assert first is second is third

    seen = []
    controller.result.add_done_callback(lambda fut: seen.append(fut.result()))
    await asyncio.sleep(0)
    assert seen == [{"v": 1}]


@pytest.mark.asyncio
async def test_registry_tracks_active_runs(registry, wait_until):
    registry.define("tracked", [lambda ctx, api: SignalType.PAUSE], QUIET)
    first = registry.run("tracked")
    second = registry.run("tracked")
    await wait_until(lambda: first.status is FlowStatus.PAUSED)
    await wait_until(lambda: second.status is FlowStatus.PAUSED)

    assert set(registry.active_runs()) == {first.execution_id, second.execution_id}

    first.resume()
    await first.result
    assert set(registry.active_runs()) == {second.execution_id}

    assert registry.abort_all("shutdown") == 1
    with pytest.raises(FlowAbortedError, match="shutdown"):
        await second.result
    assert registry.active_runs() == {}


@pytest.mark.asyncio
async def test_diagnostics_follow_log_level(registry, recording_logger):
    def fail(ctx, api):
        raise ValueError("boom")

    registry.define(
        "levels", [fail], FlowOptions(logger=recording_logger, log_level=LogLevel.ERROR)
    )
    controller = registry.run("levels")
    with pytest.raises(ValueError):
        await controller.result

    assert recording_logger.levels() == {"error"}
    assert all(msg.startswith("[levels] ") for _, msg in recording_logger.calls)


@pytest.mark.asyncio
async def test_debug_level_reports_everything(registry, recording_logger):
    registry.define(
        "verbose",
        [lambda ctx, api: SignalType.PAUSE],
        FlowOptions(logger=recording_logger, log_level=LogLevel.DEBUG, yield_before_task=True),
    )
    controller = registry.run("verbose")
    controller.pause()
    while controller.status is not FlowStatus.PAUSED:
        await asyncio.sleep(0)
    controller.pause()
    controller.resume()
    await controller.result

    assert {"info", "debug", "warning"} <= recording_logger.levels()


@pytest.mark.asyncio
async def test_none_level_is_silent(registry, recording_logger):
    registry.define(
        "silent", [noop], FlowOptions(logger=recording_logger, log_level=LogLevel.NONE)
    )
    controller = registry.run("silent")
    await controller.result
    controller.pause()
    assert recording_logger.calls == []
