"""
Stress tests for motoalert.runtime.trigger_worker.

Many invocations for different users/motorcycles are pushed through the
worker pool concurrently against the real pipeline and in-memory fakes.
"""

from __future__ import annotations

import threading
import time
from typing import List

from motoalert.notification.dispatcher import PushDispatcher
from motoalert.notification.persister import NotificationPersister
from motoalert.runtime.alert_pipeline import AlertPipeline, TriggerInvocation
from motoalert.runtime.trigger_worker import TriggerWorkerConfig, TriggerWorkerPool


def _after(i: int) -> dict:
    return {"dtcs": [{"code": f"P{i:04d}", "severity": "critical", "description": "x", "timestamp": i}]}


def test_concurrent_invocations_each_produce_one_notification(db, transport) -> None:
    users = [f"u{i}" for i in range(20)]
    for u in users:
        db.tokens[u] = {f"{u}-t1": True}

    pipeline = AlertPipeline(
        persister=NotificationPersister(db),
        dispatcher=PushDispatcher(preferences=db, tokens=db, profiles=db, transport=transport),
    )
    pool = TriggerWorkerPool(pipeline, TriggerWorkerConfig(workers=8, max_queue=1000, poll_timeout_s=0.05))
    pool.start()

    def produce(u: str) -> None:
        for m in range(5):
            assert pool.submit(TriggerInvocation(u, f"m{m}", before=None, after=_after(m)))

    producers: List[threading.Thread] = [threading.Thread(target=produce, args=(u,)) for u in users]
    for t in producers:
        t.start()
    for t in producers:
        t.join()

    pool.join_pending()
    pool.stop()

    assert sum(len(v) for v in db.notifications.values()) == 100
    assert all(len(db.notifications[u]) == 5 for u in users)
    assert len(transport.calls) == 100


def test_crashing_pipeline_does_not_kill_workers() -> None:
    handled: List[str] = []
    lock = threading.Lock()

    class FlakyPipeline:
        def handle(self, inv: TriggerInvocation) -> None:
            if inv.user_id == "bad":
                raise RuntimeError("boom")
            with lock:
                handled.append(inv.user_id)

    pool = TriggerWorkerPool(FlakyPipeline(), TriggerWorkerConfig(workers=2, poll_timeout_s=0.05))  # type: ignore[arg-type]
    pool.start()
    for u in ["bad", "ok1", "bad", "ok2"]:
        pool.submit(TriggerInvocation(u, "m1"))
    pool.join_pending()
    pool.stop()

    assert sorted(handled) == ["ok1", "ok2"]


def test_full_queue_rejects_submission() -> None:
    class Noop:
        def handle(self, inv: TriggerInvocation) -> None:
            pass

    pool = TriggerWorkerPool(Noop(), TriggerWorkerConfig(workers=1, max_queue=1))  # type: ignore[arg-type]

    # Not started: nothing drains the queue.
    assert pool.submit(TriggerInvocation("u1", "m1")) is True
    assert pool.submit(TriggerInvocation("u1", "m2")) is False


def test_stop_drains_every_accepted_invocation() -> None:
    handled: List[str] = []

    class SlowPipeline:
        def handle(self, inv: TriggerInvocation) -> None:
            time.sleep(0.05)
            handled.append(inv.motorcycle_id)

    pool = TriggerWorkerPool(SlowPipeline(), TriggerWorkerConfig(workers=1, poll_timeout_s=0.05))  # type: ignore[arg-type]
    pool.start()
    accepted = [pool.submit(TriggerInvocation("u1", f"m{i}")) for i in range(5)]

    pool.stop(timeout=5.0)

    assert all(accepted)
    assert handled == ["m0", "m1", "m2", "m3", "m4"]


def test_submit_after_stop_is_rejected() -> None:
    class Noop:
        def handle(self, inv: TriggerInvocation) -> None:
            pass

    pool = TriggerWorkerPool(Noop(), TriggerWorkerConfig(workers=1, poll_timeout_s=0.05))  # type: ignore[arg-type]
    pool.start()
    pool.stop()

    assert pool.submit(TriggerInvocation("u1", "m1")) is False
