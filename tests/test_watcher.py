import os
import queue
import threading
import time

import pytest

from ragcode.errors import AppError, ErrorType
from ragcode.watcher import FileEvent, Watcher


def noop(path, event):
    return None


def run_in_thread(watcher, stop_event):
    thread = threading.Thread(target=watcher.start, args=(stop_event,), daemon=True)
    thread.start()
    return thread


def test_nil_handler_raises_validation_error():
    with pytest.raises(AppError) as info:
        Watcher(None, 0)
    assert info.value.error_type == ErrorType.VALIDATION


def test_non_positive_debounce_uses_default():
    with Watcher(noop, 0) as watcher:
        assert watcher.debounce == 0.5
    with Watcher(noop, 0.05) as watcher:
        assert watcher.debounce == 0.05


def test_add_path_records_root_and_skips_noise(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / ".hidden").mkdir()
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "vendor").mkdir()
    with Watcher(noop, 0) as watcher:
        watcher.add_path(str(tmp_path))
        assert watcher.paths == [os.path.abspath(tmp_path)]
        assert set(watcher.watched_dirs) == {str(tmp_path), str(tmp_path / "sub")}


def test_add_empty_path_raises():
    with Watcher(noop, 0) as watcher:
        with pytest.raises(AppError) as info:
            watcher.add_path("")
        assert info.value.error_type == ErrorType.VALIDATION
        assert watcher.paths == []


def test_start_returns_when_stop_event_is_set():
    watcher = Watcher(noop, 0)
    stop_event = threading.Event()
    thread = run_in_thread(watcher, stop_event)
    stop_event.set()
    thread.join(2)
    assert not thread.is_alive()


def test_stop_ends_running_watcher():
    watcher = Watcher(noop, 0)
    thread = run_in_thread(watcher, threading.Event())
    time.sleep(0.1)
    watcher.stop()
    thread.join(2)
    assert not thread.is_alive()


def test_created_file_reaches_handler(tmp_path):
    received = queue.Queue()
    watcher = Watcher(lambda path, event: received.put((path, event)), 0.05)
    watcher.add_path(str(tmp_path))
    stop_event = threading.Event()
    thread = run_in_thread(watcher, stop_event)
    try:
        time.sleep(0.2)
        test_file = tmp_path / "test.txt"
        test_file.write_text("test")
        path, event = received.get(timeout=5)
        assert os.path.realpath(path) == os.path.realpath(test_file)
        assert event in (FileEvent.CREATE, FileEvent.MODIFY)
    finally:
        stop_event.set()
        thread.join(2)
        watcher.stop()


def test_rapid_events_are_collapsed(tmp_path):
    calls = []
    watcher = Watcher(lambda path, event: calls.append((path, event)), 0.3)
    watcher.add_path(str(tmp_path))
    stop_event = threading.Event()
    thread = run_in_thread(watcher, stop_event)
    try:
        time.sleep(0.2)
        test_file = tmp_path / "burst.txt"
        for n in range(5):
            test_file.write_text(f"content {n}")
        time.sleep(1.5)
        paths = [p for p, _ in calls if os.path.realpath(p) == os.path.realpath(test_file)]
        assert len(paths) == 1
    finally:
        stop_event.set()
        thread.join(2)
        watcher.stop()


def test_deleted_file_reports_delete(tmp_path):
    test_file = tmp_path / "gone.txt"
    test_file.write_text("bye")
    received = queue.Queue()
    watcher = Watcher(lambda path, event: received.put((path, event)), 0.2)
    watcher.add_path(str(tmp_path))
    stop_event = threading.Event()
    thread = run_in_thread(watcher, stop_event)
    try:
        time.sleep(0.2)
        test_file.unlink()
        path, event = received.get(timeout=5)
        assert os.path.realpath(path) == os.path.realpath(test_file)
        assert event == FileEvent.DELETE
    finally:
        stop_event.set()
        thread.join(2)
        watcher.stop()


def test_stop_cancels_pending_calls(tmp_path):
    calls = []
    watcher = Watcher(lambda path, event: calls.append(path), 1.0)
    watcher.add_path(str(tmp_path))
    thread = run_in_thread(watcher, threading.Event())
    time.sleep(0.2)
    (tmp_path / "pending.txt").write_text("data")
    time.sleep(0.3)
    watcher.stop()
    thread.join(2)
    time.sleep(1.2)
    assert calls == []
    assert not thread.is_alive()