"""Unit tests for the task tree, runner and event bus."""

import asyncio

import pytest

from speranto.core.tasks import (
    Event,
    EventBus,
    EventType,
    SubtaskError,
    Task,
    TaskRunner,
    TaskState,
)


class TestEventBus:
    """Test EventBus functionality."""

    def test_subscribe_and_publish(self):
        """Subscribe to event and receive it when published."""
        bus = EventBus()
        received = []
        bus.subscribe(EventType.TASK_COMPLETED, received.append)

        bus.publish(Event(type=EventType.TASK_COMPLETED, data={"label": "x"}))
        bus.publish(Event(type=EventType.TASK_FAILED))

        assert len(received) == 1
        assert received[0].data["label"] == "x"

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventType.TASK_STARTED, received.append)
        bus.unsubscribe(EventType.TASK_STARTED, received.append)
        bus.publish(Event(type=EventType.TASK_STARTED))
        assert received == []

    def test_broken_listener_does_not_stop_others(self):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(EventType.TASK_STARTED, broken)
        bus.subscribe(EventType.TASK_STARTED, received.append)
        bus.publish(Event(type=EventType.TASK_STARTED))
        assert len(received) == 1

    def test_history(self):
        bus = EventBus()
        bus.publish(Event(type=EventType.TASK_STARTED))
        assert bus.get_history() == []

        bus.enable_history()
        bus.publish(Event(type=EventType.TASK_STARTED))
        bus.publish(Event(type=EventType.TASK_COMPLETED))
        assert len(bus.get_history()) == 2
        assert len(bus.get_events_by_type(EventType.TASK_COMPLETED)) == 1


class TestTaskRunner:
    """Test TaskRunner scheduling and failure policy."""

    @pytest.mark.asyncio
    async def test_runs_sync_and_async_tasks(self):
        ran = []

        async def async_work(task):
            ran.append(task.label)

        root = Task("root", children=[
            Task("a", run=lambda task: ran.append(task.label)),
            Task("b", run=async_work),
        ])
        await TaskRunner().run(root)

        assert ran == ["a", "b"]
        assert root.state == TaskState.DONE
        assert all(child.state == TaskState.DONE for child in root.children)

    @pytest.mark.asyncio
    async def test_spawned_children_run_after_parent(self):
        ran = []

        def spawn(task):
            ran.append("parent")
            return [Task(f"child {n}", run=lambda t: ran.append(t.label)) for n in range(2)]

        root = Task("root", run=spawn)
        await TaskRunner().run(root)

        assert ran == ["parent", "child 0", "child 1"]
        assert [c.parent for c in root.children] == [root, root]

    @pytest.mark.asyncio
    async def test_skip(self):
        child = Task("never")
        root = Task("root", run=lambda task: task.skip("up to date"), children=[child])
        bus = EventBus()
        bus.enable_history()
        await TaskRunner(bus).run(root)

        assert root.state == TaskState.SKIPPED
        assert child.state == TaskState.PENDING
        skipped = bus.get_events_by_type(EventType.TASK_SKIPPED)
        assert skipped[0].data["detail"] == "up to date"

    @pytest.mark.asyncio
    async def test_failure_does_not_cancel_siblings(self):
        def fail(task):
            raise ValueError("broken")

        siblings = [Task("bad", run=fail), Task("good", run=lambda task: None)]
        middle = Task("lang", children=siblings, concurrent=True)
        root = Task("root", children=[middle, Task("other", run=lambda task: None)])
        await TaskRunner().run(root)

        assert siblings[0].state == TaskState.FAILED
        assert siblings[1].state == TaskState.DONE
        assert middle.state == TaskState.FAILED
        assert isinstance(middle.error, SubtaskError)
        assert root.state == TaskState.FAILED
        assert root.children[1].state == TaskState.DONE
        assert root.failures() == [siblings[0]]
        assert isinstance(root.failures()[0].error, ValueError)

    @pytest.mark.asyncio
    async def test_concurrency_limit(self):
        active = [0, 0]  # current, peak

        async def work(task):
            active[0] += 1
            active[1] = max(active[1], active[0])
            await asyncio.sleep(0.01)
            active[0] -= 1

        root = Task("root", children=[Task(str(n), run=work) for n in range(6)],
                    concurrent=True, concurrency=2)
        await TaskRunner().run(root)
        assert active[1] == 2

    @pytest.mark.asyncio
    async def test_sequential_overrides_concurrent(self):
        active = [0, 0]

        async def work(task):
            active[0] += 1
            active[1] = max(active[1], active[0])
            await asyncio.sleep(0.01)
            active[0] -= 1

        root = Task("root", children=[Task(str(n), run=work) for n in range(3)], concurrent=True)
        await TaskRunner(sequential=True).run(root)
        assert active[1] == 1

    @pytest.mark.asyncio
    async def test_events_carry_path(self):
        bus = EventBus()
        bus.enable_history()
        root = Task("Translate files", children=[Task("es", children=[Task("intro.md", run=lambda t: None)])])
        await TaskRunner(bus).run(root)

        completed = bus.get_events_by_type(EventType.TASK_COMPLETED)
        assert completed[0].data["path"] == ["Translate files", "es", "intro.md"]
        assert completed[0].data["leaf"] is True
        assert [e.data["label"] for e in completed] == ["intro.md", "es", "Translate files"]

    def test_title_is_shown_in_path(self):
        parent = Task("es")
        child = Task("intro.md")
        child.parent = parent
        child.title = "intro.md (3 translated)"
        assert child.path == ["es", "intro.md (3 translated)"]
