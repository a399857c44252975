from __future__ import annotations

from typing import Any, Callable

import pytest

from textlife import FRAME_SCOPE_VISIBLE, Region, region_from_lines


class FakeViewport:
    """In-memory viewport. ``fail_on_read`` makes the n-th read raise."""

    def __init__(self, lines=(), height: int | None = None, dedicated: bool = False,
                 fail_on_read: int | None = None) -> None:
        self.region: Region = region_from_lines(lines)
        self.height = len(self.region) if height is None else height
        self.dedicated = dedicated
        self.fail_on_read = fail_on_read
        self.reads = 0
        self.writes = 0

    def is_dedicated(self) -> bool:
        return self.dedicated

    def visible_height(self) -> int:
        return self.height

    def read_region(self) -> Region:
        self.reads += 1
        if self.fail_on_read is not None and self.reads >= self.fail_on_read:
            raise RuntimeError("viewport was deleted")
        return self.region[: self.height]

    def write_region(self, region: Region) -> None:
        self.writes += 1
        self.region = region


class FakeHost:
    """In-memory host.

    ``input_after`` is the number of input polls answered "no" before
    input shows up (None: never). Idle timers pile up in ``timers`` until
    cancelled, so double-arming is visible.
    """

    def __init__(self, viewports=(), input_after: int | None = None,
                 fail_restore: bool = False) -> None:
        self.viewports: list[FakeViewport] = list(viewports)
        self.selected: FakeViewport | None = self.viewports[0] if self.viewports else None
        self.input_after = input_after
        self.fail_restore = fail_restore
        self.polls = 0
        self.sleeps: list[float] = []
        self.restores = 0
        self.scopes: list[str] = []
        self.on_sleep: Callable[[], Any] | None = None
        self.sleep_result = True
        self.timers: list[tuple[float, Callable[[], Any]]] = []
        self.arm_calls = 0
        self.cancel_calls = 0

    def enumerate_viewports(self, frame_scope: str = FRAME_SCOPE_VISIBLE) -> list[FakeViewport]:
        self.scopes.append(frame_scope)
        return list(self.viewports)

    def selected_viewport(self) -> FakeViewport | None:
        return self.selected

    def select_viewport(self, viewport: FakeViewport | None) -> None:
        self.selected = viewport

    def capture_layout(self):
        return (self.selected, tuple((v, v.region) for v in self.viewports))

    def restore_layout(self, snapshot) -> None:
        self.restores += 1
        if self.fail_restore:
            self.selected = None
            raise RuntimeError("frame was deleted")
        self.selected, entries = snapshot
        for viewport, region in entries:
            viewport.region = region

    def input_pending(self) -> bool:
        self.polls += 1
        return self.input_after is not None and self.polls > self.input_after

    def sleep(self, duration: float) -> bool:
        self.sleeps.append(duration)
        if self.on_sleep is not None:
            self.on_sleep()
        return self.sleep_result

    def arm_idle_timer(self, threshold: float, callback: Callable[[], Any]) -> None:
        self.arm_calls += 1
        self.timers.append((threshold, callback))

    def cancel_idle_timer(self) -> None:
        self.cancel_calls += 1
        self.timers.clear()

    def fire_idle(self):
        _, callback = self.timers[-1]
        return callback()


@pytest.fixture
def make_host():
    return FakeHost


@pytest.fixture
def make_viewport():
    return FakeViewport
