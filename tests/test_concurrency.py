import threading
import time
import unittest
from concurrent.futures import ThreadPoolExecutor

import pytest

from scopebind import ContainerBuilder, ScopeDisposedError


class Slow:
    created = 0
    _lock = threading.Lock()

    def __init__(self):
        time.sleep(0.01)
        with Slow._lock:
            Slow.created += 1


class TestConcurrentResolution(unittest.TestCase):
    def setUp(self):
        Slow.created = 0

    def _resolve_concurrently(self, resolve, workers=8):
        barrier = threading.Barrier(workers)

        def task():
            barrier.wait()
            return resolve()

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(task) for _ in range(workers)]
            return [f.result() for f in futures]

    def test_single_instance_constructed_once(self):
        builder = ContainerBuilder()
        builder.register_type(Slow).as_self().single_instance()
        c = builder.build()

        results = self._resolve_concurrently(lambda: c.begin_lifetime_scope().resolve(Slow))

        assert Slow.created == 1
        assert all(r is results[0] for r in results)

    def test_instance_per_lifetime_scope_constructed_once_per_scope(self):
        builder = ContainerBuilder()
        builder.register_type(Slow).as_self().instance_per_lifetime_scope()
        scope = builder.build().begin_lifetime_scope()

        results = self._resolve_concurrently(lambda: scope.resolve(Slow))

        assert Slow.created == 1
        assert all(r is results[0] for r in results)

    def test_dispose_waits_for_in_flight_construction(self):
        started = threading.Event()

        class Gate:
            def __init__(self):
                started.set()
                time.sleep(0.05)
                self.closed = False

            def close(self):
                self.closed = True

        builder = ContainerBuilder()
        builder.register_type(Gate).as_self().instance_per_lifetime_scope()
        scope = builder.build().begin_lifetime_scope()

        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(scope.resolve, Gate)
            started.wait()
            scope.dispose()
            gate = future.result()

        # the resolution completed before teardown, so teardown saw it
        assert gate.closed
        with pytest.raises(ScopeDisposedError):
            scope.resolve(Gate)

    def test_child_waits_for_parent_construction_in_progress(self):
        started = threading.Event()

        class Gate:
            created = 0

            def __init__(self):
                started.set()
                time.sleep(0.05)
                Gate.created += 1

        builder = ContainerBuilder()
        builder.register_type(Gate).as_self().instance_per_lifetime_scope()
        parent = builder.build().begin_lifetime_scope()
        child = parent.begin_lifetime_scope()

        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(parent.resolve, Gate)
            started.wait()
            from_child = child.resolve(Gate)
            from_parent = future.result()

        assert Gate.created == 1
        assert from_child is from_parent
        assert child.resolve(Gate) is from_parent
