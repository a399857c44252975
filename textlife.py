#!/usr/bin/env python3
"""
  ∞  T E X T   L I F E  ∞
  Conway's Game of Life, seeded from whatever text is on screen.

  Every visible non-blank character is a live cell. Each tick the text in
  every open viewport is advanced one generation and written back in
  place: survivors keep their exact glyph, newborns borrow a glyph from a
  neighbour. Rows are ragged and sparse. Nothing is stored past the last
  character of a line, and a region may grow by one row at the bottom.

  This module knows nothing about terminals. A host (textlife_curses.py
  for the interactive one, textlife_bench.py for the headless one) hands
  in viewports, a layout snapshot, input polling, pacing and an idle timer.

  Session telemetry is written to CSV by SessionLogger.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Callable, ClassVar, Iterable, Iterator, Protocol, Sequence

# ── Types ───────────────────────────────────────────────────────────────
# A slot is None (blank) or an opaque glyph token. A row carries a blank
# sentinel at index 0 for column -1, so column c lives at index c + 1.
Row = list[Any]
Region = list[Row]

# ── Tunables ────────────────────────────────────────────────────────────
DEFAULT_INTERVAL: float = 0.1                # seconds between ticks
DEFAULT_IDLE_SECONDS: float = 120.0          # idle time before the screensaver
DEFAULT_SCREENSAVER_GENERATIONS: int = 400   # ticks per screensaver session
DEFAULT_TAB_WIDTH: int = 8
HOLD_POLL: float = 0.25                      # input poll while holding the last frame

FRAME_SCOPE_VISIBLE: str = "visible"

# Characters that scan as blank slots (tabs are expanded separately)
BLANK_CHARS: str = " \n\r\f\v"

# Birth donor priority: the first live neighbour in this order lends its glyph
BIRTH_PRIORITY: tuple[str, ...] = (
    "upper-left", "upper", "upper-right",
    "left", "right",
    "lower-left", "lower", "lower-right",
)

# Stop reasons
STOP_INPUT: str = "input"
STOP_LIMIT: str = "limit"

# Screensaver states
STATE_IDLE: str = "idle"
STATE_RUNNING: str = "running"

LOG_PATH = Path(__file__).resolve().parent / "textlife_stats.csv"


class TextLifeError(Exception):
    """Base class for textlife errors."""


class SessionError(TextLifeError):
    """An animation session could not be started."""


@dataclass(frozen=True)
class Glyph:
    """One displayed character plus its display attributes (opaque to the core)."""
    char: str
    attr: int = 0


@dataclass
class LifeConfig:
    """Everything a front end needs to drive sessions and the screensaver."""

    interval: float = DEFAULT_INTERVAL
    idle_seconds: float = DEFAULT_IDLE_SECONDS
    generations: int = DEFAULT_SCREENSAVER_GENERATIONS
    tab_width: int = DEFAULT_TAB_WIDTH
    screensaver: bool = True
    log_path: Path | None = LOG_PATH

    def validate(self) -> None:
        if self.interval < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval}")
        if self.idle_seconds <= 0:
            raise ValueError(f"idle_seconds must be > 0, got {self.idle_seconds}")
        if self.generations < 0:
            raise ValueError(f"generations must be >= 0, got {self.generations}")
        if self.tab_width < 1:
            raise ValueError(f"tab_width must be >= 1, got {self.tab_width}")


# ═══════════════════════════════════════════════════════════════════════
#  Host interface
# ═══════════════════════════════════════════════════════════════════════

class Viewport(Protocol):
    """One window onto some text, owned by the host."""

    def is_dedicated(self) -> bool: ...

    def visible_height(self) -> int: ...

    def read_region(self) -> Region:
        """Scan exactly the currently visible rows."""
        ...

    def write_region(self, region: Region) -> None:
        """Replace the displayed content and scroll back to its top."""
        ...


class Host(Protocol):
    """Everything the animation needs from its surroundings."""

    def enumerate_viewports(self, frame_scope: str = FRAME_SCOPE_VISIBLE) -> Sequence[Viewport]: ...

    def selected_viewport(self) -> Viewport | None: ...

    def select_viewport(self, viewport: Viewport | None) -> None: ...

    def capture_layout(self) -> Any: ...

    def restore_layout(self, snapshot: Any) -> None: ...

    def input_pending(self) -> bool: ...

    def sleep(self, duration: float) -> bool:
        """Pause for up to ``duration`` seconds.

        Returns False if it came back early because input arrived.
        """
        ...

    def arm_idle_timer(self, threshold: float, callback: Callable[[], Any]) -> None: ...

    def cancel_idle_timer(self) -> None: ...


# ═══════════════════════════════════════════════════════════════════════
#  Scanning and trimming
# ═══════════════════════════════════════════════════════════════════════

def scan_row(
    cells: Iterable[tuple[str, Any]],
    start_col: int = 0,
    tab_width: int = DEFAULT_TAB_WIDTH,
) -> Row:
    """Turn one line of ``(char, glyph)`` pairs into a row of slots.

    Blanks become ``None``; tabs expand to blanks up to the next tab stop;
    anything else keeps its glyph. ``start_col`` is the display column of
    the first cell and only affects where tab stops fall. Trailing blanks
    are dropped, so a whitespace-only line scans to the bare sentinel.
    """
    if tab_width < 1:
        raise ValueError(f"tab_width must be >= 1, got {tab_width}")

    row: Row = [None]  # column -1
    col = start_col
    for char, glyph in cells:
        if char == "\t":
            pad = tab_width - col % tab_width
            row.extend([None] * pad)
            col += pad
            continue
        row.append(None if char in BLANK_CHARS else glyph)
        col += 1

    while len(row) > 1 and row[-1] is None:
        row.pop()
    return row


def trim_row(row: Sequence[Any]) -> Row:
    """Copy of ``row`` without trailing blanks (never shorter than the sentinel)."""
    end = len(row)
    while end > 1 and row[end - 1] is None:
        end -= 1
    trimmed = list(row[:end])
    return trimmed if trimmed else [None]


def is_blank_row(row: Sequence[Any]) -> bool:
    return all(slot is None for slot in row)


def trim_region(region: Sequence[Sequence[Any]]) -> Region:
    """Drop trailing blank rows, then trailing blank slots of each kept row."""
    end = len(region)
    while end > 0 and is_blank_row(region[end - 1]):
        end -= 1
    return [trim_row(row) for row in region[:end]]


def region_from_lines(
    lines: Iterable[str],
    tab_width: int = DEFAULT_TAB_WIDTH,
    attr: int = 0,
) -> Region:
    """Scan plain strings, giving every character its own Glyph."""
    return [
        scan_row(((ch, Glyph(ch, attr)) for ch in line), tab_width=tab_width)
        for line in lines
    ]


def glyph_char(slot: Any) -> str:
    if slot is None:
        return " "
    if isinstance(slot, Glyph):
        return slot.char
    return str(slot)


def region_to_lines(region: Iterable[Sequence[Any]]) -> list[str]:
    """Render a region back to strings, blanks as spaces (sentinel omitted)."""
    return ["".join(glyph_char(slot) for slot in row[1:]) for row in region]


def count_live(region: Iterable[Sequence[Any]]) -> int:
    return sum(1 for row in region for slot in row if slot is not None)


# ═══════════════════════════════════════════════════════════════════════
#  Stepping
# ═══════════════════════════════════════════════════════════════════════

class _RowCursor:
    """Forward-only walk along one row.

    At column ``c`` the cursor exposes ``left`` / ``here`` / ``right`` for
    columns ``c-1`` / ``c`` / ``c+1``. Reads past the end of the row are
    blank. The cursor is exhausted once ``left`` has run off the end,
    i.e. nothing in this row can influence column ``c`` or anything
    after it.
    """

    __slots__ = ("_slots", "_remaining", "left", "here", "right")

    def __init__(self, row: Sequence[Any]) -> None:
        self._slots: Iterator[Any] = iter(row)
        self._remaining: int = len(row)
        self.left: Any = next(self._slots, None)  # the column -1 sentinel
        self.here: Any = next(self._slots, None)
        self.right: Any = next(self._slots, None)

    @property
    def exhausted(self) -> bool:
        return self._remaining <= 0

    def advance(self) -> None:
        self.left = self.here
        self.here = self.right
        self.right = next(self._slots, None)
        self._remaining -= 1


def _next_slot(up: _RowCursor, mid: _RowCursor, down: _RowCursor) -> Any:
    """Apply B3/S23 to the cell under ``mid``."""
    # Same order as BIRTH_PRIORITY
    neighbours = (
        up.left, up.here, up.right,
        mid.left, mid.right,
        down.left, down.here, down.right,
    )
    n = 0
    donor = None
    for slot in neighbours:
        if slot is not None:
            n += 1
            if donor is None:
                donor = slot

    if mid.here is not None:
        return mid.here if n == 2 or n == 3 else None
    return donor if n == 3 else None


def step_row(prev: Sequence[Any], curr: Sequence[Any], next_: Sequence[Any]) -> Row:
    """Next generation of ``curr``, given the rows above and below it.

    Boundary rows may be empty (``[None]`` or ``[]``). The walk runs until
    all three cursors are exhausted, which covers births one column past
    the longest row. Births left of column 0 are dropped.
    """
    up, mid, down = _RowCursor(prev), _RowCursor(curr), _RowCursor(next_)
    out: Row = [None]
    while not (up.exhausted and mid.exhausted and down.exhausted):
        out.append(_next_slot(up, mid, down))
        up.advance()
        mid.advance()
        down.advance()

    while len(out) > 1 and out[-1] is None:
        out.pop()
    return out


_EMPTY_ROW: tuple[Any, ...] = (None,)


def step_region(region: Sequence[Sequence[Any]]) -> Region:
    """Advance a whole region by one generation.

    One synthetic blank row is stepped below the last input row so that
    births there are kept. Trailing blank rows are trimmed from the
    result, so a dead region steps to ``[]`` and a live one comes back
    with between ``len(region)`` and ``len(region) + 1`` rows at most.
    Nothing is born above row 0.
    """
    k = len(region)
    out: Region = []
    for i in range(k + 1):
        prev = region[i - 1] if i > 0 else _EMPTY_ROW
        curr = region[i] if i < k else _EMPTY_ROW
        nxt = region[i + 1] if i + 1 < k else _EMPTY_ROW
        out.append(step_row(prev, curr, nxt))
    return trim_region(out)


def cycle_viewport(viewport: Viewport) -> Region | None:
    """Advance one viewport a generation in place.

    Returns the region written, or None if the viewport is dedicated and
    was left alone. A zero-height viewport reads as ``[]`` and writes
    ``[]`` back.
    """
    if viewport.is_dedicated():
        return None
    region = viewport.read_region() if viewport.visible_height() > 0 else []
    nxt = step_region(region)
    viewport.write_region(nxt)
    return nxt


# ═══════════════════════════════════════════════════════════════════════
#  Session telemetry
# ═══════════════════════════════════════════════════════════════════════

class SessionLogger:
    """Writes session telemetry to CSV. Never raises on I/O trouble."""

    HEADER: ClassVar[str] = "gen,time_s,viewports,live_cells,event\n"

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError:
            self._fh = None

    def log(self, gen: int, viewports: int, live: int, event: str = "") -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        try:
            self._fh.write(f"{gen},{t:.1f},{viewports},{live},{event}\n")
            # Flush on events or periodically
            if event or gen % 50 == 0:
                self._fh.flush()
        except OSError:
            pass

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Animation session
# ═══════════════════════════════════════════════════════════════════════

@contextmanager
def hold_layout(host: Host) -> Iterator[Any]:
    """Own the host's layout for the duration of the block.

    The layout captured on entry is restored on every exit path. If the
    restore itself fails, the viewport that was selected on entry is
    reselected before the failure propagates.
    """
    snapshot = host.capture_layout()
    focus = host.selected_viewport()
    try:
        yield snapshot
    finally:
        try:
            host.restore_layout(snapshot)
        except Exception:
            host.select_viewport(focus)
            raise


class AnimationSession:
    """Steps every open, non-dedicated viewport once per tick until stopped.

    ``run`` returns STOP_INPUT when pending input ends the loop, or
    STOP_LIMIT once ``generation_limit`` ticks are done; in the latter
    case the last generation stays on screen until input arrives. Host
    failures propagate. The layout is restored either way.
    """

    def __init__(
        self,
        host: Host,
        interval: float = DEFAULT_INTERVAL,
        logger: SessionLogger | None = None,
        frame_scope: str = FRAME_SCOPE_VISIBLE,
    ) -> None:
        if interval < 0:
            raise ValueError(f"interval must be >= 0, got {interval}")
        self.host = host
        self.interval = interval
        self.logger = logger
        self.frame_scope = frame_scope

        self.generation: int = 0
        self.live_cells: int = 0
        self.viewports_stepped: int = 0
        self.running: bool = False
        self.last_stop: str = ""

    def note(self, event: str) -> None:
        """Log an event row against the current generation."""
        if self.logger is not None:
            self.logger.log(
                gen=self.generation,
                viewports=self.viewports_stepped,
                live=self.live_cells,
                event=event,
            )

    def tick(self) -> int:
        """Advance every viewport once. Returns how many were stepped."""
        # Snapshot the enumeration so each viewport is visited once
        viewports = tuple(self.host.enumerate_viewports(self.frame_scope))
        stepped = 0
        live = 0
        for viewport in viewports:
            region = cycle_viewport(viewport)
            if region is None:
                continue
            stepped += 1
            live += count_live(region)

        self.generation += 1
        self.viewports_stepped = stepped
        self.live_cells = live
        if self.generation % 10 == 0:
            self.note("")
        return stepped

    def run(self, generation_limit: int | None = None) -> str:
        if generation_limit is not None and generation_limit < 0:
            raise ValueError(f"generation_limit must be >= 0, got {generation_limit}")
        if self.running:
            raise SessionError("an animation session is already running")

        self.running = True
        self.generation = 0
        self.live_cells = 0
        self.viewports_stepped = 0
        self.note("start")
        try:
            with hold_layout(self.host):
                reason = self._loop(generation_limit)
                if reason == STOP_LIMIT:
                    self._hold()
        except Exception as exc:
            self.note(f"error:{type(exc).__name__}")
            raise
        finally:
            self.running = False

        self.last_stop = reason
        self.note(f"stop:{reason}")
        return reason

    def _loop(self, generation_limit: int | None) -> str:
        while generation_limit is None or self.generation < generation_limit:
            self.tick()
            # The pacing pause is the only place input can end the session
            if not self.host.sleep(self.interval) or self.host.input_pending():
                return STOP_INPUT
        return STOP_LIMIT

    def _hold(self) -> None:
        """Keep the final generation on screen until the user does something."""
        while not self.host.input_pending():
            if not self.host.sleep(max(self.interval, HOLD_POLL)):
                return


# ═══════════════════════════════════════════════════════════════════════
#  Screensaver
# ═══════════════════════════════════════════════════════════════════════

class ScreensaverController:
    """Runs a bounded animation session whenever the host has been idle.

    Idle --(idle timer fires)--> Running --(session ends)--> Idle

    Only one idle timer is ever armed. Enabling again re-arms it from
    scratch. Disabling cancels the timer but lets a running session
    finish on its own terms; no timer is re-armed afterwards.

    When ``session`` is given it is used as is, and ``interval`` and
    ``logger`` are ignored; they only configure a session built here.
    """

    def __init__(
        self,
        host: Host,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        generations: int = DEFAULT_SCREENSAVER_GENERATIONS,
        interval: float = DEFAULT_INTERVAL,
        logger: SessionLogger | None = None,
        session: AnimationSession | None = None,
    ) -> None:
        _check_idle_seconds(idle_seconds)
        _check_generations(generations)
        self.host = host
        self.idle_seconds = idle_seconds
        self.generations = generations
        if session is None:
            session = AnimationSession(host, interval=interval, logger=logger)
        self.session = session

        self.runs: int = 0
        self._enabled: bool = False
        self._timer_armed: bool = False
        self._state: str = STATE_IDLE

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def state(self) -> str:
        return self._state

    @property
    def timer_armed(self) -> bool:
        return self._timer_armed

    def enable(self, idle_seconds: float | None = None, generations: int | None = None) -> None:
        if idle_seconds is not None:
            _check_idle_seconds(idle_seconds)
            self.idle_seconds = idle_seconds
        if generations is not None:
            _check_generations(generations)
            self.generations = generations
        self._enabled = True
        self._arm_timer()

    def disable(self) -> None:
        self._enabled = False
        self._cancel_timer()

    def toggle(self) -> bool:
        if self._enabled:
            self.disable()
        else:
            self.enable()
        return self._enabled

    def _arm_timer(self) -> None:
        self._cancel_timer()
        self.host.arm_idle_timer(self.idle_seconds, self._on_idle)
        self._timer_armed = True
        self.session.note("screensaver:arm")

    def _cancel_timer(self) -> None:
        if self._timer_armed:
            self.host.cancel_idle_timer()
            self._timer_armed = False

    def _on_idle(self) -> str | None:
        """Idle-timer callback. Returns the session's stop reason, or None if ignored."""
        if not self._enabled or self._state == STATE_RUNNING or self.session.running:
            return None

        self._cancel_timer()
        self._state = STATE_RUNNING
        self.runs += 1
        self.session.note("screensaver:run")
        try:
            return self.session.run(self.generations)
        finally:
            self._state = STATE_IDLE
            if self._enabled:
                self._arm_timer()


def _check_idle_seconds(idle_seconds: float) -> None:
    if idle_seconds <= 0:
        raise ValueError(f"idle_seconds must be > 0, got {idle_seconds}")


def _check_generations(generations: int) -> None:
    if generations < 0:
        raise ValueError(f"generations must be >= 0, got {generations}")
