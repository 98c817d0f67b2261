"""Completion channel: lets the interpreter wait for animated motions."""
from __future__ import annotations

from concurrent.futures import Future, TimeoutError as FutureTimeoutError
import logging
import threading
import time
from typing import Callable, Optional

from turtle_mechanics.motion import MotionSink, MovementResult, TurtleControl

logger = logging.getLogger(__name__)

Pump = Callable[[], object]


class CompletionChannel:
    """Turns completion notifications into one future per issued motion.

    With a `pump`, waiting repeatedly calls it (one host event-loop
    iteration, or one simulated time step) until the future resolves.
    Without one, waiting blocks on the future and the host is expected to
    advance the turtle from another thread.
    """

    def __init__(self, sink: MotionSink, *, pump: Optional[Pump] = None, timeout: Optional[float] = None) -> None:
        self.sink = sink
        self.pump = pump
        self.timeout = timeout
        self.last_result: Optional[MovementResult] = None
        self._pending: Optional[Future] = None
        self._lock = threading.Lock()
        sink.add_completion_listener(self._on_completed)

    @classmethod
    def fixed_step(cls, turtle: TurtleControl, step_ms: float = 16.0, **kwargs) -> "CompletionChannel":
        """Channel that plays motions back in simulated time, `step_ms` per pump."""
        return cls(turtle, pump=lambda: turtle.advance(step_ms), **kwargs)

    def close(self) -> None:
        self.sink.remove_completion_listener(self._on_completed)
        self.release()

    def arm(self) -> Future:
        future: Future = Future()
        with self._lock:
            self._pending = future
        return future

    def release(self, result: MovementResult = MovementResult.SUCCESS) -> None:
        """Resolve whatever the interpreter is waiting on."""
        with self._lock:
            future, self._pending = self._pending, None
        if future is not None and not future.done():
            future.set_result(result)

    def _on_completed(self, result: MovementResult) -> None:
        self.last_result = result
        if result is MovementResult.PAUSED:
            logger.debug("Motion paused; still waiting")
            return
        self.release(result)

    def _discard(self, future: Future) -> None:
        with self._lock:
            if self._pending is future:
                self._pending = None

    def wait(self, future: Future) -> Optional[MovementResult]:
        """Suspend until `future` holds a terminal result (None on timeout)."""
        if self.pump is None:
            try:
                return future.result(timeout=self.timeout)
            except FutureTimeoutError:
                self._discard(future)
                logger.warning("Timed out after %.1fs waiting for motion to finish", self.timeout)
                return None
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        while not future.done():
            if not self.sink.is_moving():
                # Nothing in flight can resolve the future any more.
                self._discard(future)
                return None
            if deadline is not None and time.monotonic() > deadline:
                self._discard(future)
                logger.warning("Timed out after %.1fs waiting for motion to finish", self.timeout)
                return None
            self.pump()
        return future.result()

    def run(self, issue: Callable[[], object]) -> Optional[MovementResult]:
        """Issue a motion and wait for its terminal result."""
        future = self.arm()
        issue()
        return self.wait(future)

    def drain(self) -> Optional[MovementResult]:
        """Wait for a motion already in flight, if any."""
        future = self.arm()
        if not self.sink.is_moving():
            self._discard(future)
            return None
        return self.wait(future)


__all__ = ["CompletionChannel"]
