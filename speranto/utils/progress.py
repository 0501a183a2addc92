"""
Console progress reporting for task trees.

The reporter subscribes to task events and prints one line per finished
task through the unified logger. When a total is known it also drives a
tqdm bar over the leaf tasks.
"""

from typing import Optional

from tqdm.auto import tqdm

from speranto.core.tasks import Event, EventBus, EventType
from speranto.utils.unified_logger import LogType, UnifiedLogger


class ProgressReporter:
    """Renders task transitions: "skipped", "failed" and "done" lines."""

    def __init__(self, logger: UnifiedLogger, show_bar: bool = False):
        self.logger = logger
        self.show_bar = show_bar
        self._bar: Optional[tqdm] = None
        self.counts = {'done': 0, 'skipped': 0, 'failed': 0}

    def attach(self, event_bus: EventBus) -> 'ProgressReporter':
        event_bus.subscribe(EventType.TASK_COMPLETED, self._on_event)
        event_bus.subscribe(EventType.TASK_SKIPPED, self._on_event)
        event_bus.subscribe(EventType.TASK_FAILED, self._on_event)
        return self

    def start_bar(self, total: int, desc: str) -> None:
        if not self.show_bar or total <= 0:
            return
        self._bar = tqdm(total=total, desc=desc, unit="task")
        self.logger.writer = tqdm.write

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
            self.logger.writer = None

    def _on_event(self, event: Event) -> None:
        state = event.data.get('state')
        if state in self.counts and event.data.get('leaf'):
            self.counts[state] += 1
            if self._bar is not None:
                self._bar.update(1)

        label = ' › '.join(event.data.get('path') or [event.data.get('label', '')])
        self.logger.info(label, LogType.TASK_STATE, {
            'label': label,
            'state': state,
            'detail': event.data.get('detail'),
        })
