from __future__ import annotations

import io
import threading

import pytest
from loguru import logger
from PySide6.QtCore import QCoreApplication

from conftest import RecordingSink, ScriptedSource, kinds_and_ids, producer
from snitch_core.event_sinks import FeedSink, LogSink
from snitch_core.poll_loop import PollLoop
from snitch_core.snapshot_source import FetchError


@pytest.fixture
def make_loop(clock):
    loops = []

    def _make(source, sinks, **kwargs):
        loop = PollLoop(source, sinks, clock=clock, **kwargs)
        loops.append(loop)
        return loop

    yield _make
    for loop in loops:
        loop.stop()


def test_silent_start_seeds_the_active_set(make_loop):
    sink = RecordingSink()
    loop = make_loop(ScriptedSource([producer(1, "a"), producer(2, "b", active=False)]), [sink])

    handle = loop.start()

    assert handle.active
    assert loop.is_running
    assert loop.active_ids == frozenset({1})
    assert sink.batches == []
    assert [record.id for record in sink.baselines[0]] == [1]
    assert sink.active_sets == [frozenset({1})]


def test_start_can_report_initial_state_as_events(make_loop):
    sink = RecordingSink()
    loop = make_loop(
        ScriptedSource([producer(1, "a"), producer(2, "b")]),
        [sink],
        emit_initial_state_as_events=True,
    )

    loop.start()

    assert kinds_and_ids(sink.events) == [("START", 1), ("START", 2)]
    assert sink.baselines == []


def test_start_twice_is_a_no_op(make_loop):
    source = ScriptedSource([producer(1, "a")])
    loop = make_loop(source, [RecordingSink()])

    loop.start()
    loop.start()

    assert source.calls == 1


def test_ticks_dispatch_starts_before_stops(make_loop):
    sink = RecordingSink()
    source = ScriptedSource(
        [producer(1, "a"), producer(2, "b")],
        [producer(3, "c"), producer(2, "b")],
    )
    loop = make_loop(source, [sink])
    loop.start()

    transitions = loop.tick()

    assert kinds_and_ids(transitions) == [("START", 3), ("STOP", 1)]
    assert sink.batches == [transitions]
    assert loop.active_ids == frozenset({2, 3})


def test_identical_snapshots_produce_nothing_on_the_second_tick(make_loop):
    sink = RecordingSink()
    snapshot = [producer(1, "a")]
    loop = make_loop(ScriptedSource([], snapshot, snapshot), [sink])
    loop.start()

    assert kinds_and_ids(loop.tick()) == [("START", 1)]
    assert loop.tick() == []
    assert len(sink.batches) == 1


def test_flapping_producer_over_three_ticks(make_loop):
    sink = RecordingSink()
    present = [producer(5, "mpv")]
    loop = make_loop(ScriptedSource([], present, [], present), [sink])
    loop.start()

    loop.tick()
    loop.tick()
    loop.tick()

    assert kinds_and_ids(sink.events) == [("START", 5), ("STOP", 5), ("START", 5)]


def test_fetch_failure_leaves_state_untouched(make_loop):
    feed = FeedSink()
    recorder = RecordingSink()
    source = ScriptedSource(
        [producer(1, "a"), producer(2, "b")],
        FetchError("pactl exited with code 1"),
        [producer(1, "a"), producer(2, "b")],
    )
    loop = make_loop(source, [feed, recorder], emit_initial_state_as_events=True)
    failures = []
    loop.fetchFailed.connect(failures.append)
    loop.start()
    events_before = feed.events

    assert loop.tick() == []

    assert loop.active_ids == frozenset({1, 2})
    assert feed.events == events_before
    assert failures == ["pactl exited with code 1"]
    assert recorder.errors == ["Snapshot fetch failed: pactl exited with code 1"]

    assert loop.tick() == []
    assert feed.events == events_before


def test_fetch_failure_is_written_to_the_log_stream(make_loop):
    stream = io.StringIO()
    loop = make_loop(ScriptedSource([], FetchError("boom")), [LogSink(stream)])
    loop.start()

    loop.tick()

    assert stream.getvalue().rstrip().endswith("ERROR: Snapshot fetch failed: boom")


def test_failed_initial_fetch_still_starts_and_seeds_later(make_loop):
    sink = RecordingSink()
    source = ScriptedSource(FetchError("not yet"), [producer(1, "a")], [producer(1, "a"), producer(2, "b")])
    loop = make_loop(source, [sink])

    loop.start()
    assert loop.is_running
    assert loop.active_ids == frozenset()

    assert loop.tick() == []
    assert [record.id for record in sink.baselines[0]] == [1]

    assert kinds_and_ids(loop.tick()) == [("START", 2)]


def test_failing_sink_does_not_stop_the_loop(make_loop):
    class BrokenSink(RecordingSink):
        def consume(self, transitions):
            super().consume(transitions)
            raise OSError("stream closed")

    broken = BrokenSink()
    healthy = RecordingSink()
    source = ScriptedSource([], [producer(1, "a")], [])
    loop = make_loop(source, [broken, healthy])
    loop.start()

    loop.tick()
    loop.tick()

    assert kinds_and_ids(healthy.events) == [("START", 1), ("STOP", 1)]
    assert len(broken.batches) == 2
    assert loop.active_ids == frozenset()


def test_failing_sink_is_reported_once_per_failure_streak(make_loop):
    class BrokenSink(RecordingSink):
        def consume(self, transitions):
            super().consume(transitions)
            raise OSError("stream closed")

    reports = []
    handler_id = logger.add(
        lambda message: reports.append(message),
        level="ERROR",
        filter=lambda record: "failed during consume" in record["message"],
    )
    broken = BrokenSink()
    loop = make_loop(ScriptedSource([], [producer(1, "a")], [], [producer(1, "a")]), [broken])
    try:
        loop.start()
        loop.tick()
        loop.tick()
        loop.tick()
    finally:
        logger.remove(handler_id)

    assert len(broken.batches) == 3
    assert len(reports) == 1


def test_stop_preserves_state_and_restart_reports_changes_once(make_loop):
    sink = RecordingSink()
    source = ScriptedSource(
        [producer(1, "a"), producer(2, "b")],
        [producer(2, "b"), producer(3, "c")],
    )
    loop = make_loop(source, [sink])
    running = []
    loop.runningChanged.connect(running.append)

    handle = loop.start()
    handle.cancel()

    assert not loop.is_running
    assert not handle.active
    assert loop.active_ids == frozenset({1, 2})

    loop.start()

    assert kinds_and_ids(sink.events) == [("START", 3), ("STOP", 1)]
    assert running == [True, False, True]


def test_timer_callback_after_stop_does_nothing(make_loop):
    source = ScriptedSource([], [producer(1, "a")])
    loop = make_loop(source, [RecordingSink()])
    loop.start()
    loop.stop()

    loop._on_timeout()

    assert source.calls == 1
    assert loop.active_ids == frozenset()


def test_active_changed_signal_reports_the_new_size(make_loop):
    sizes = []
    loop = make_loop(ScriptedSource([], [producer(1, "a"), producer(2, "b")], [producer(2, "b")]), [])
    loop.activeChanged.connect(sizes.append)
    loop.start()

    loop.tick()
    loop.tick()
    loop.tick()

    assert sizes == [2, 1]


def test_stop_from_another_thread_waits_for_the_running_tick(make_loop):
    entered = threading.Event()
    release = threading.Event()

    class SlowSource(ScriptedSource):
        def fetch(self):
            if self.calls >= 1:
                entered.set()
                release.wait(5)
            return super().fetch()

    sink = RecordingSink()
    loop = make_loop(SlowSource([], [producer(1, "a")]), [sink])
    loop.start()

    ticker = threading.Thread(target=loop.tick)
    ticker.start()
    assert entered.wait(5)

    stopper = threading.Thread(target=loop.stop)
    stopper.start()
    stopper.join(0.1)
    assert stopper.is_alive()

    release.set()
    ticker.join(5)
    stopper.join(5)
    QCoreApplication.processEvents()

    assert not loop.is_running
    assert kinds_and_ids(sink.events) == [("START", 1)]
