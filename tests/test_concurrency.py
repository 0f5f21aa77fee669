"""
Concurrency tests for NoteStore.

Threads share one NoteStore, the way a long-running host such as the MCP
server does: concurrent writers must not lose updates and readers must never
see a half-written collection.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

from notecli.note_store import _ReadWriteLock


class TestReadWriteLock:

    def test_readers_share(self):
        lock = _ReadWriteLock()
        both_inside = threading.Barrier(2, timeout=5)

        def reader():
            with lock.read():
                both_inside.wait()

        with ThreadPoolExecutor(max_workers=2) as ex:
            list(ex.map(lambda _: reader(), range(2)))

    def test_writers_exclusive(self):
        lock = _ReadWriteLock()
        state = {"readers": 0, "writers": 0, "violations": 0}
        guard = threading.Lock()

        def write():
            with lock.write():
                with guard:
                    state["writers"] += 1
                    if state["writers"] > 1 or state["readers"]:
                        state["violations"] += 1
                time.sleep(0.005)
                with guard:
                    state["writers"] -= 1

        def read():
            with lock.read():
                with guard:
                    state["readers"] += 1
                    if state["writers"]:
                        state["violations"] += 1
                time.sleep(0.005)
                with guard:
                    state["readers"] -= 1

        with ThreadPoolExecutor(max_workers=8) as ex:
            list(ex.map(lambda i: write() if i % 2 else read(), range(24)))

        assert state["violations"] == 0

    def test_writer_excludes_readers(self):
        lock = _ReadWriteLock()
        events = []

        def writer():
            with lock.write():
                events.append("w-start")
                time.sleep(0.05)
                events.append("w-end")

        def reader():
            with lock.read():
                events.append("r")

        t1 = threading.Thread(target=writer)
        t1.start()
        time.sleep(0.01)
        t2 = threading.Thread(target=reader)
        t2.start()
        t1.join(timeout=5)
        t2.join(timeout=5)

        assert events == ["w-start", "w-end", "r"]


class TestConcurrentStore:

    def test_concurrent_adds_all_persist(self, store):
        errors = []

        def writer(worker):
            for i in range(5):
                try:
                    store.add(f"w{worker}-{i}", f"note {i} from worker {worker}")
                except Exception as e:
                    errors.append(e)

        threads = [threading.Thread(target=writer, args=(w,)) for w in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert not errors, f"Concurrent writes caused errors: {errors}"
        notes = store.load()
        assert len(notes) == 30
        assert len({n.id for n in notes}) == 30
        assert len(store.list_backups()) == 29

    def test_same_title_race_has_one_winner(self, store):
        results = []
        lock = threading.Lock()

        def writer(i):
            try:
                store.add("Shared", f"version {i}")
                outcome = "ok"
            except ValueError:
                outcome = "dup"
            with lock:
                results.append(outcome)

        with ThreadPoolExecutor(max_workers=4) as ex:
            list(ex.map(writer, range(4)))

        assert results.count("ok") == 1
        assert results.count("dup") == 3
        assert len(store.load()) == 1

    def test_readers_see_complete_collections(self, store):
        store.add("seed", "first note")
        stop = threading.Event()
        errors = []
        sizes = []

        def reader():
            while not stop.is_set():
                try:
                    sizes.append(len(store.load()))
                except Exception as e:
                    errors.append(e)

        readers = [threading.Thread(target=reader) for _ in range(3)]
        for t in readers:
            t.start()
        for i in range(10):
            store.add(f"n{i}", f"body {i}")
        stop.set()
        for t in readers:
            t.join(timeout=10)

        assert not errors
        assert sizes
        assert all(1 <= s <= 11 for s in sizes)
