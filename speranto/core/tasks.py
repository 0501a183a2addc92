"""
Task tree and scheduler.

A run is modelled as a tree of tasks: languages, files (or tables) and the
work inside them. A task may do some work, spawn child tasks at runtime or
skip itself. The TaskRunner executes the tree with a "continue on error"
policy: a failing task marks its ancestors failed but never cancels its
siblings. State transitions are published on an EventBus so that rendering
(see speranto.utils.progress) stays outside the pipeline.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from speranto.core.exceptions import TranslationError
from speranto.utils.unified_logger import warning


class TaskState(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SKIPPED = "skipped"
    FAILED = "failed"
    DONE = "done"


class EventType(Enum):
    """Task lifecycle event types."""
    TASK_STARTED = "task_started"
    TASK_SKIPPED = "task_skipped"
    TASK_FAILED = "task_failed"
    TASK_COMPLETED = "task_completed"


_STATE_EVENTS = {
    TaskState.RUNNING: EventType.TASK_STARTED,
    TaskState.SKIPPED: EventType.TASK_SKIPPED,
    TaskState.FAILED: EventType.TASK_FAILED,
    TaskState.DONE: EventType.TASK_COMPLETED,
}


@dataclass
class Event:
    """Task state event.

    Attributes:
        type: Event type
        data: Event-specific data (label, path, state, detail, leaf)
        timestamp: Unix timestamp when event occurred
        source: Source identifier
    """
    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    source: str = "task_runner"


class EventBus:
    """Central event bus for task state transitions."""

    def __init__(self):
        self._listeners: Dict[EventType, List[Callable]] = {}
        self._history: List[Event] = []
        self._record_history = False

    def subscribe(self, event_type: EventType, callback: Callable[[Event], None]) -> None:
        """Subscribe to an event type.

        Args:
            event_type: Type of event to listen for
            callback: Function to call when event occurs (receives Event object)
        """
        self._listeners.setdefault(event_type, []).append(callback)

    def subscribe_all(self, callback: Callable[[Event], None]) -> None:
        for event_type in EventType:
            self.subscribe(event_type, callback)

    def unsubscribe(self, event_type: EventType, callback: Callable) -> None:
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)

    def publish(self, event: Event) -> None:
        """Publish an event to all subscribers."""
        if self._record_history:
            self._history.append(event)

        for listener in self._listeners.get(event.type, []):
            try:
                listener(event)
            except Exception as e:
                # a broken renderer must not stop the run
                warning(f"Event listener failed: {e}")

    def enable_history(self) -> None:
        self._record_history = True

    def get_history(self) -> List[Event]:
        return self._history.copy()

    def get_events_by_type(self, event_type: EventType) -> List[Event]:
        return [e for e in self._history if e.type == event_type]


TaskFn = Callable[['Task'], Union[None, Sequence['Task'], Awaitable[Optional[Sequence['Task']]]]]


class Task:
    """
    A node of the task tree.

    Args:
        label: Display label
        run: Optional callable receiving the task; may be async, may return
            child tasks to run after it, may call ``task.skip(reason)``
        children: Static child tasks
        concurrent: Run children concurrently
        concurrency: Limit for concurrent children (None = unbounded)
    """

    def __init__(self, label: str, run: Optional[TaskFn] = None,
                 children: Optional[Sequence['Task']] = None,
                 concurrent: bool = False, concurrency: Optional[int] = None):
        self.label = label
        self.title = label
        self.run = run
        self.children: List[Task] = list(children or [])
        self.concurrent = concurrent
        self.concurrency = concurrency
        self.state = TaskState.PENDING
        self.error: Optional[BaseException] = None
        self.skip_reason: Optional[str] = None
        self.parent: Optional[Task] = None

    def skip(self, reason: str = "") -> None:
        self.skip_reason = reason

    def add(self, *tasks: 'Task') -> None:
        self.children.extend(tasks)

    @property
    def path(self) -> List[str]:
        labels = [self.title]
        node: Optional[Task] = self.parent
        while node is not None:
            labels.append(node.label)
            node = node.parent
        return list(reversed(labels))

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()

    def failures(self) -> List['Task']:
        """Leaf-most failed tasks, with their errors."""
        failed = []
        for task in self.walk():
            if task.state == TaskState.FAILED and not any(
                c.state == TaskState.FAILED for c in task.children
            ):
                failed.append(task)
        return failed

    def __repr__(self) -> str:
        return f"Task({self.title!r}, state={self.state.value}, children={len(self.children)})"


class SubtaskError(TranslationError):
    """A task failed because at least one of its children failed."""
    pass


class TaskRunner:
    """
    Executes a task tree.

    Args:
        event_bus: Receives a state event for every transition
        sequential: Force every task to run its children one at a time
    """

    def __init__(self, event_bus: Optional[EventBus] = None, sequential: bool = False):
        self.event_bus = event_bus or EventBus()
        self.sequential = sequential

    async def run(self, task: Task) -> Task:
        await self._run_task(task)
        return task

    def _transition(self, task: Task, state: TaskState, detail: Optional[str] = None) -> None:
        task.state = state
        self.event_bus.publish(Event(
            type=_STATE_EVENTS[state],
            data={
                'label': task.title,
                'path': task.path,
                'state': state.value,
                'detail': detail,
                'leaf': not task.children,
            },
        ))

    async def _run_task(self, task: Task) -> None:
        self._transition(task, TaskState.RUNNING)

        try:
            if task.run is not None:
                spawned = task.run(task)
                if inspect.isawaitable(spawned):
                    spawned = await spawned
                if spawned:
                    task.children.extend(spawned)
        except Exception as e:
            task.error = e
            self._transition(task, TaskState.FAILED, str(e))
            return

        if task.skip_reason is not None:
            self._transition(task, TaskState.SKIPPED, task.skip_reason)
            return

        for child in task.children:
            child.parent = task

        if task.children:
            await self._run_children(task)
            failed = [c for c in task.children if c.state == TaskState.FAILED]
            if failed:
                task.error = SubtaskError(
                    f"{len(failed)} of {len(task.children)} subtasks failed",
                    context={'task': task.title},
                )
                self._transition(task, TaskState.FAILED, task.error.message)
                return

        self._transition(task, TaskState.DONE)

    async def _run_children(self, task: Task) -> None:
        if self.sequential or not task.concurrent:
            for child in task.children:
                await self._run_task(child)
            return

        limit = task.concurrency or len(task.children)
        semaphore = asyncio.Semaphore(max(1, limit))

        async def guarded(child: Task) -> None:
            async with semaphore:
                await self._run_task(child)

        await asyncio.gather(*(guarded(child) for child in task.children))
