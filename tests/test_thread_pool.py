import itertools
import threading

import pytest

from p4fusion.thread_pool import ThreadPool


def test_jobs_all_run():
    results = []
    lock = threading.Lock()

    def make(n):
        def job(_ctx):
            with lock:
                results.append(n)

        return job

    with ThreadPool() as pool:
        pool.initialize(4)
        assert pool.thread_count() == 4
        for n in range(50):
            pool.add_job(make(n))
        pool.wait()
        assert sorted(results) == list(range(50))
        assert pool.thread_count() == 4


def test_thread_count_and_shutdown():
    pool = ThreadPool()
    pool.initialize(3)
    assert pool.thread_count() == 3
    pool.shut_down()
    assert pool.thread_count() == 0
    pool.shut_down()
    assert pool.thread_count() == 0


def test_resize_changes_thread_count():
    pool = ThreadPool()
    pool.initialize(2)
    pool.resize(5)
    try:
        assert pool.thread_count() == 5
    finally:
        pool.shut_down()


def test_each_worker_gets_its_own_context():
    counter = itertools.count()
    seen = set()
    lock = threading.Lock()
    barrier = threading.Barrier(3)

    def job(ctx):
        with lock:
            seen.add(ctx)
        barrier.wait(timeout=5)

    with ThreadPool(context_factory=lambda: next(counter)) as pool:
        pool.initialize(3)
        assert pool.thread_count() == 3
        for _ in range(3):
            pool.add_job(job)
        pool.wait()
    assert seen == {0, 1, 2}
    assert pool.thread_count() == 0


def test_context_is_none_without_factory():
    seen = []
    with ThreadPool() as pool:
        pool.initialize(1)
        pool.add_job(seen.append)
        pool.wait()
    assert seen == [None]


def test_job_exception_is_reraised():
    def bad(_ctx):
        raise ValueError("broken job")

    with ThreadPool() as pool:
        pool.initialize(2)
        pool.add_job(bad)
        pool.wait()
        with pytest.raises(ValueError, match="broken job"):
            pool.raise_caught_exceptions()


def test_no_exception_means_raise_is_quiet_and_jobs_ran():
    ran = []
    with ThreadPool() as pool:
        pool.initialize(1)
        pool.add_job(lambda _ctx: ran.append(True))
        pool.wait()
        pool.raise_caught_exceptions()
    assert ran == [True]


def test_pool_keeps_working_after_failed_job():
    ran = []

    def bad(_ctx):
        raise RuntimeError("x")

    with ThreadPool() as pool:
        pool.initialize(1)
        pool.add_job(bad)
        pool.add_job(lambda _ctx: ran.append(1))
        pool.wait()
    assert ran == [1]