# app/services/optimistic.py
from __future__ import annotations

import copy
import logging
from typing import Callable, TypeVar

S = TypeVar("S")
R = TypeVar("R")

log = logging.getLogger(__name__)


def optimistic_apply(
    state: S,
    apply: Callable[[S], None],
    write: Callable[[S], R],
    *,
    snapshot: Callable[[S], object] | None = None,
    restore: Callable[[S, object], None] | None = None,
) -> R:
    """Apply ``apply`` to ``state`` up front, then run ``write``.

    If ``write`` raises, ``state`` is put back from the snapshot taken before
    ``apply`` ran and the error propagates. By default the snapshot is a deep
    copy of ``state.__dict__``; pass ``snapshot``/``restore`` for state that
    is not a plain object (ORM rows, for example).
    """
    if snapshot is None:
        snapshot = lambda s: copy.deepcopy(vars(s))  # noqa: E731
    if restore is None:
        def restore(s, snap):
            vars(s).clear()
            vars(s).update(snap)

    snap = snapshot(state)
    apply(state)
    try:
        return write(state)
    except Exception:
        log.warning("optimistic write failed, restoring previous state")
        restore(state, snap)
        raise
