"""pytest fixtures for framework canvas tests."""

import pytest
import tempfile
from pathlib import Path

from framework_canvas.core.models import FrameworkNode, NodeType


@pytest.fixture
def temp_dir():
    """temporary directory that cleans up after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_tree():
    """Root -> My Node -> subnode, plus Other (link) and Ideas (empty folder)."""
    return FrameworkNode.create("Root", NodeType.FOLDER, children=[
        FrameworkNode.create("My Node", NodeType.TOPIC, description="main topic", children=[
            FrameworkNode.create("subnode", NodeType.NOTE, description="a note"),
        ]),
        FrameworkNode.create("Other", NodeType.LINK, url="https://example.com"),
        FrameworkNode.create("Ideas", NodeType.FOLDER),
    ])


@pytest.fixture
def flat_tree():
    """Root with two leaves A and B."""
    return FrameworkNode(name="Root", children=[
        FrameworkNode(name="A"),
        FrameworkNode(name="B"),
    ])


class FakeTimer:
    def __init__(self, clock, delay, callback):
        self.clock = clock
        self.due = clock.now + delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """manual stand-in for loop.call_later."""

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def call_later(self, delay, callback):
        timer = FakeTimer(self, delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds):
        self.now += seconds
        for timer in list(self.timers):
            if not timer.cancelled and timer.due <= self.now:
                self.timers.remove(timer)
                timer.callback()


@pytest.fixture
def clock():
    return FakeClock()
