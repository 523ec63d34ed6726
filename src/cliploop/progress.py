"""Progress events emitted during assembly and loop runs.

Sinks are plain callables taking a ProgressEvent. ``ProgressChannel`` is
a bounded sink for consumers that read events from another thread; a full
channel blocks the producer until the consumer catches up.
"""

import queue
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator


class Step(str, Enum):
    STARTING = "starting"
    PLAYLIST = "playlist"
    VIDEO = "video"
    LOOP_PROCESSING = "loop-processing"
    AUDIO = "audio"
    MERGING = "merging"
    CLEANUP = "cleanup"
    DONE = "done"


@dataclass(frozen=True)
class ProgressEvent:
    message: str
    step: Step
    percent: float | None = None

    def __post_init__(self):
        if self.percent is not None and not 0 <= self.percent <= 100:
            raise ValueError(f"percent must be within 0..100, got {self.percent!r}")


ProgressSink = Callable[[ProgressEvent], None]


def emit(
    sink: ProgressSink | None,
    step: Step,
    message: str,
    percent: float | None = None,
) -> None:
    """Send one event to ``sink`` if there is one."""
    if sink is not None:
        sink(ProgressEvent(message=message, step=step, percent=percent))


def format_event(event: ProgressEvent) -> str:
    """Render an event as a single console line."""
    if event.percent is None:
        return f"[    ] {event.message}"
    return f"[{round(event.percent):3d}%] {event.message}"


class ProgressChannel:
    """Bounded FIFO of progress events.

    Call the channel as a sink from the producing side; iterate it from the
    consuming side. Iteration ends after the ``done`` event or after
    ``close()``.
    """

    _CLOSED = object()

    def __init__(self, maxsize: int = 64):
        self._queue = queue.Queue(maxsize=maxsize)

    def __call__(self, event: ProgressEvent) -> None:
        self._queue.put(event)

    def close(self) -> None:
        self._queue.put(self._CLOSED)

    def __iter__(self) -> Iterator[ProgressEvent]:
        while True:
            item = self._queue.get()
            if item is self._CLOSED:
                return
            yield item
            if item.step is Step.DONE:
                return

    def drain(self) -> list[ProgressEvent]:
        """Return every event queued so far without blocking."""
        events = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return events
            if item is not self._CLOSED:
                events.append(item)
