import io
import threading
from unittest.mock import MagicMock

from shared.models import UploadJob
from r2_uploader.progress import ChunkReader, ProgressObserver, ProgressTracker


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class Recorder(ProgressObserver):
    def __init__(self):
        self.events = []
        self.completed = []

    def on_progress(self, job_id, percent, bytes_read, total_bytes):
        self.events.append(percent)

    def on_complete(self, job_id):
        self.completed.append(job_id)


def _job(size):
    return UploadJob(source_path="/tmp/f", destination_key="f", size=size, bucket="b")


def test_emits_once_per_percent_step():
    recorder = Recorder()
    clock = FakeClock()
    tracker = ProgressTracker(_job(1000), recorder, interval=3.0, clock=clock)

    for _ in range(100):
        tracker.add(1)  # 0.1% each

    # first byte reports 0%, then one event per whole percent
    assert recorder.events == list(range(0, 11))


def test_emits_after_interval_without_percent_change():
    recorder = Recorder()
    clock = FakeClock()
    tracker = ProgressTracker(_job(10_000), recorder, interval=3.0, clock=clock)

    tracker.add(1)
    assert recorder.events == [0]
    tracker.add(1)
    assert recorder.events == [0]

    clock.now += 3.0
    tracker.add(1)
    assert recorder.events == [0, 0]


def test_percent_is_non_decreasing_and_capped():
    recorder = Recorder()
    clock = FakeClock()
    tracker = ProgressTracker(_job(300), recorder, clock=clock)

    for step in (7, 50, 1, 100, 142):
        clock.now += 5
        tracker.add(step)
    tracker.finish()

    assert recorder.events == [2, 19, 19, 52, 100]
    assert recorder.completed == ["f"]

    # bytes past the declared size never push the percentage over 100
    clock.now += 5
    tracker.add(500)
    assert max(recorder.events) == 100
    assert tracker.state.bytes_read == 300


def test_finish_emits_hundred_for_empty_file():
    recorder = Recorder()
    tracker = ProgressTracker(_job(0), recorder, clock=FakeClock())

    tracker.finish()

    assert recorder.events == [100]


def test_observer_failure_does_not_reach_caller():
    observer = MagicMock()
    observer.on_progress.side_effect = RuntimeError("terminal gone")
    tracker = ProgressTracker(_job(100), observer, clock=FakeClock())

    tracker.add(50)
    tracker.finish()

    assert tracker.percent == 100
    assert observer.on_progress.called
    observer.on_complete.assert_called_once_with("f")


def test_chunk_reader_serves_concurrent_positional_reads():
    data = bytes(range(256)) * 400
    reader = ChunkReader(io.BytesIO(data))
    chunk = 1000
    results = {}

    def worker(offset):
        results[offset] = reader.read_at(offset, chunk)

    threads = [threading.Thread(target=worker, args=(off,)) for off in range(0, len(data), chunk)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert b"".join(results[k] for k in sorted(results)) == data
    assert reader.read_all() == data


def test_slow_observer_does_not_block_other_workers():
    entered = threading.Event()
    release = threading.Event()

    class SlowObserver(ProgressObserver):
        def __init__(self):
            self.events = []

        def on_progress(self, job_id, percent, bytes_read, total_bytes):
            self.events.append(percent)
            entered.set()
            release.wait(5)

    observer = SlowObserver()
    clock = FakeClock()
    tracker = ProgressTracker(_job(100), observer, clock=clock)

    first = threading.Thread(target=tracker.add, args=(10,))
    first.start()
    assert entered.wait(5)

    # The first worker is stuck inside the observer; this one must still return
    second = threading.Thread(target=tracker.add, args=(20,))
    second.start()
    second.join(2)
    blocked = second.is_alive()

    release.set()
    first.join(5)
    second.join(5)

    assert not blocked
    assert tracker.state.bytes_read == 30
    tracker.finish()
    assert observer.events == [10, 100]
