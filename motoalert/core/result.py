"""
Per-step outcome type.

Each fallible sub-operation of the alert pipeline (store reads, push send,
token deletion, notification write) is run through `run_step`, which turns
an exception into a failed `StepResult` and logs it once with its context.
Callers then branch on ``ok`` instead of nesting try/except blocks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """
    Outcome of one sub-operation.

    Parameters
    ----------
    step
        Operation name used in logs (e.g., "list_tokens").
    value
        Returned value when ``ok``.
    error
        The caught exception when not ``ok``.
    """

    step: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_step(
    step: str,
    fn: Callable[[], T],
    log: logging.Logger,
    context: str,
    level: int = logging.ERROR,
) -> StepResult[T]:
    """
    Run ``fn`` and capture its outcome.

    Parameters
    ----------
    step
        Operation name.
    fn
        Zero-argument callable doing the work.
    log
        Logger used to report a failure.
    context
        Identifying context appended to the log line (user, motorcycle, token).
    level
        Log level for failures; degraded-but-harmless steps use WARNING.
    """
    try:
        return StepResult(step=step, value=fn())
    except Exception as e:
        log.log(level, "%s failed (%s): %r", step, context, e, exc_info=level >= logging.ERROR)
        return StepResult(step=step, error=e)
