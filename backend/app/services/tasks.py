# app/services/tasks.py
"""
Fire-and-forget secondary writes.

Request handlers ``enqueue`` work that must not hold up (or fail) the
primary write: weight preference saves, default-weight reconciliation,
progression. The router hands ``queue.run_pending`` to FastAPI's
``BackgroundTasks`` so it runs after the response is sent. Every attempt gets
its own DB session, tasks are retried up to ``BACKGROUND_MAX_ATTEMPTS`` and
whatever still fails is logged and returned as ``TaskFailure``.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.orm import Session

from app import db as app_db
from app.settings import get_settings

log = logging.getLogger(__name__)

TaskFn = Callable[..., Any]


@dataclass(slots=True)
class PendingTask:
    name: str
    fn: TaskFn
    kwargs: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class TaskFailure:
    name: str
    attempts: int
    error: str
    context: dict[str, Any]


class TaskQueue:
    def __init__(self, session_factory: Callable[[], Session] | None = None,
                 *, max_attempts: int | None = None, retry_delay: float | None = None):
        s = get_settings()
        self._session_factory = session_factory
        self.max_attempts = max_attempts or s.BACKGROUND_MAX_ATTEMPTS
        self.retry_delay = s.BACKGROUND_RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        self.pending: list[PendingTask] = []

    def enqueue(self, name: str, fn: TaskFn, **kwargs) -> None:
        """``fn`` is called as ``fn(db, **kwargs)`` with a fresh session."""
        self.pending.append(PendingTask(name, fn, kwargs))

    def __len__(self) -> int:
        return len(self.pending)

    def _new_session(self) -> Session:
        # resolved at call time so tests can swap SessionLocal
        factory = self._session_factory or app_db.SessionLocal
        return factory()

    def _run_one(self, task: PendingTask) -> TaskFailure | None:
        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            db = self._new_session()
            try:
                task.fn(db, **task.kwargs)
                db.commit()
                return None
            except Exception as e:  # secondary writes never propagate
                db.rollback()
                last_error = e
                log.warning("task=%s attempt=%d/%d failed: %s",
                            task.name, attempt, self.max_attempts, e)
            finally:
                db.close()
            if attempt < self.max_attempts and self.retry_delay:
                time.sleep(self.retry_delay)

        ctx = {k: str(v) for k, v in task.kwargs.items()}
        log.error("task=%s gave up after %d attempts error=%r context=%s",
                  task.name, self.max_attempts, last_error, ctx)
        return TaskFailure(task.name, self.max_attempts, repr(last_error), ctx)

    def run_pending(self) -> list[TaskFailure]:
        failures: list[TaskFailure] = []
        while self.pending:
            task = self.pending.pop(0)
            failure = self._run_one(task)
            if failure:
                failures.append(failure)
        return failures


def get_task_queue() -> TaskQueue:
    """FastAPI dependency: one queue per request."""
    return TaskQueue()
