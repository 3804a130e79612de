"""
app_log.py
Global app log. Every message goes to the ``Stalker2ModManager`` logger and,
when a view has registered one, to its log panel.

A front end calls set_app_log(log_fn, after_fn) once its log widget exists.
Nexus/Utils code calls app_log(msg) without knowing who is listening.

Thread safety: when app_log is called from a background thread (remote
installs run on a worker), messages for the view are put on a queue and
drained on the main thread via a periodic after() callback. When called from
the main thread, the message is forwarded immediately.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable

logger = logging.getLogger("Stalker2ModManager")

_log_fn: Callable[[str], None] | None = None
_after_fn: Callable | None = None
_main_thread_id: int | None = None
_log_queue: queue.Queue[str] = queue.Queue()


def _drain_log_queue() -> None:
    """Run on main thread: drain queued messages and log them. Reschedule to run again."""
    if _log_fn is None:
        return
    try:
        while True:
            msg = _log_queue.get_nowait()
            try:
                _log_fn(msg)
            except Exception:
                logger.exception("Log sink failed")
    except queue.Empty:
        pass
    if _after_fn is not None:
        _after_fn(50, _drain_log_queue)


def set_app_log(log_fn: Callable[[str], None], after_fn: Callable) -> None:
    """Register the view's log function and a main-thread runner (e.g. widget.after)."""
    global _log_fn, _after_fn, _main_thread_id
    _log_fn = log_fn
    _after_fn = after_fn
    _main_thread_id = threading.current_thread().ident
    after_fn(0, _drain_log_queue)


def clear_app_log() -> None:
    """Detach the view sink; messages keep flowing to the logger."""
    global _log_fn, _after_fn, _main_thread_id
    _log_fn = None
    _after_fn = None
    _main_thread_id = None


def app_log(message: str, level: int = logging.INFO) -> None:
    """Write a message to the logger and the registered view sink (thread-safe)."""
    logger.log(level, message)
    if _log_fn is None:
        return
    if threading.current_thread().ident == _main_thread_id:
        try:
            _log_fn(message)
        except Exception:
            logger.exception("Log sink failed")
    else:
        _log_queue.put_nowait(message)
