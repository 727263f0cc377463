from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import List, Optional

from motoalert.runtime.alert_pipeline import AlertPipeline, TriggerInvocation


@dataclass(frozen=True)
class TriggerWorkerConfig:
    workers: int = 4
    max_queue: int = 2000
    poll_timeout_s: float = 0.5


class TriggerWorkerPool:
    """
    Worker threads running queued trigger invocations through the pipeline.

    Each invocation is handled start to finish by one worker; invocations for
    different users/motorcycles run concurrently. Nothing is retried: a
    failure is logged and the worker moves on.
    """

    def __init__(self, pipeline: AlertPipeline, cfg: Optional[TriggerWorkerConfig] = None):
        self._pipeline = pipeline
        self._cfg = cfg or TriggerWorkerConfig()
        self._q: "queue.Queue[Optional[TriggerInvocation]]" = queue.Queue(maxsize=self._cfg.max_queue)
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = [
            threading.Thread(target=self._run, name=f"trigger-worker-{i}", daemon=True)
            for i in range(max(1, self._cfg.workers))
        ]
        self._log = logging.getLogger("motoalert.trigger")

    def start(self) -> None:
        for t in self._threads:
            if not t.is_alive():
                t.start()

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop accepting invocations and drain the queue.

        Every invocation accepted before the call is still handled: one
        sentinel per live worker is queued behind them and a worker only
        exits when it takes a sentinel.
        """
        self._stop.set()
        alive = [t for t in self._threads if t.is_alive()]
        for _ in alive:
            self._q.put(None)
        for t in alive:
            t.join(timeout=timeout)

    def submit(self, invocation: TriggerInvocation) -> bool:
        """
        Queue an invocation.

        Returns
        -------
        bool
            False when the queue is full or the pool is stopping; the
            invocation was not accepted.
        """
        if self._stop.is_set():
            self._log.warning(
                "trigger pool stopping, rejecting user=%s motorcycle=%s",
                invocation.user_id,
                invocation.motorcycle_id,
            )
            return False
        try:
            self._q.put_nowait(invocation)
            return True
        except queue.Full:
            self._log.warning(
                "trigger queue full, rejecting user=%s motorcycle=%s",
                invocation.user_id,
                invocation.motorcycle_id,
            )
            return False

    def join_pending(self) -> None:
        """Block until every queued invocation has been handled."""
        self._q.join()

    def _run(self) -> None:
        while True:
            try:
                inv = self._q.get(timeout=self._cfg.poll_timeout_s)
            except queue.Empty:
                continue

            try:
                if inv is None:
                    break
                self._pipeline.handle(inv)
            except Exception:
                self._log.exception(
                    "pipeline crashed for user=%s motorcycle=%s", inv.user_id, inv.motorcycle_id
                )
            finally:
                self._q.task_done()
