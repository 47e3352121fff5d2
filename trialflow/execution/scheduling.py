"""
Schedulers for engine advance steps.

After a trial completes, the engine does not compute the next trial inside
the runner's call stack directly; it asks a scheduler to run the advance
step. This keeps the stack flat when runners complete synchronously, and
lets the engine live inside a pyglet event loop.
"""

from collections import deque
from typing import Callable, Deque
import logging

logger = logging.getLogger(__name__)


class ImmediateScheduler:
    """
    Runs callbacks in the calling thread, trampolined.

    A callback scheduled while another one is running is queued and run
    after it returns, instead of recursing.
    """

    def __init__(self):
        self._queue: Deque[Callable[[], None]] = deque()
        self._running = False

    def call_soon(self, callback: Callable[[], None]):
        """Run callback now, or after the running callback returns."""
        self._queue.append(callback)
        if self._running:
            return

        self._running = True
        try:
            while self._queue:
                self._queue.popleft()()
        except BaseException:
            self._queue.clear()
            raise
        finally:
            self._running = False

    @property
    def pending(self) -> int:
        return len(self._queue)


class PygletScheduler:
    """
    Defers callbacks to the next tick of a pyglet clock.

    Use when the trial runner draws with pyglet and pyglet.app.run() owns the
    main loop.
    """

    def __init__(self, clock=None):
        """
        Args:
            clock: pyglet Clock (or module) providing schedule_once;
                defaults to pyglet.clock
        """
        if clock is None:
            import pyglet
            clock = pyglet.clock
        self.clock = clock

    def call_soon(self, callback: Callable[[], None]):
        self.clock.schedule_once(lambda dt: callback(), 0.0)


SCHEDULERS = {
    'immediate': ImmediateScheduler,
    'pyglet': PygletScheduler,
}


def create_scheduler(name: str):
    """
    Build a scheduler by name ('immediate' or 'pyglet').

    Raises:
        ValueError: On an unknown name
    """
    try:
        scheduler_class = SCHEDULERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown scheduler '{name}' (expected one of {', '.join(SCHEDULERS)})"
        ) from None
    logger.debug(f"Using {scheduler_class.__name__}")
    return scheduler_class()
