#!/usr/bin/env python3
"""
Terminal front end for textlife.

Splits the terminal into panes, each showing a text file, and lets the
text come alive: press l to start, any key to stop. Left alone long
enough, the screensaver does it for you.

  Controls:
    q         quit               l         animate until a key is pressed
    g         animate a bounded number of generations
    s         toggle the idle screensaver
    TAB       next pane          arrows/j/k/PgUp/PgDn  scroll the selected pane

Usage:
  python3 textlife_curses.py                     # animate this file
  python3 textlife_curses.py a.txt b.py --panes 3
  python3 textlife_curses.py notes.md --idle 30 --generations 200
"""

from __future__ import annotations

import argparse
import curses
import time
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Sequence

from textlife import (
    DEFAULT_TAB_WIDTH,
    FRAME_SCOPE_VISIBLE,
    LOG_PATH,
    AnimationSession,
    Glyph,
    LifeConfig,
    Region,
    ScreensaverController,
    SessionLogger,
    scan_row,
)

# ── Palette ─────────────────────────────────────────────────────────────
# 256-colour foregrounds per character class, 8-colour fallbacks after
CLASS_COLORS: dict[str, tuple[int, int]] = {
    "alpha": (111, curses.COLOR_CYAN),
    "digit": (214, curses.COLOR_YELLOW),
    "punct": (165, curses.COLOR_MAGENTA),
    "other": (220, curses.COLOR_GREEN),
}

POLL_SLICE: float = 0.02     # seconds between input polls while sleeping
DEFAULT_PANES: int = 2
BLANK_GLYPH = Glyph(" ")


def char_class(ch: str) -> str:
    if ch.isalpha():
        return "alpha"
    if ch.isdigit():
        return "digit"
    if ch.isascii() and ch.isprintable():
        return "punct"
    return "other"


def is_wide(ch: str) -> bool:
    return unicodedata.east_asian_width(ch) in ("W", "F")


# ═══════════════════════════════════════════════════════════════════════
#  Color management
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class ColorMap:
    """Manages curses color pairs, one per character class."""

    _class_pairs: dict[str, int] = field(default_factory=dict)

    def setup(self) -> None:
        if not curses.has_colors():
            return
        curses.start_color()
        try:
            curses.use_default_colors()
            background = -1
        except curses.error:
            background = curses.COLOR_BLACK

        rich = curses.COLORS >= 256
        for pair_id, (name, (fg256, fg8)) in enumerate(CLASS_COLORS.items(), start=1):
            if pair_id > curses.COLOR_PAIRS - 1:
                break
            curses.init_pair(pair_id, fg256 if rich else fg8, background)
            self._class_pairs[name] = pair_id

    def attr_for(self, ch: str) -> int:
        pair_id = self._class_pairs.get(char_class(ch), 0)
        return curses.color_pair(pair_id) if pair_id else curses.A_NORMAL


# ═══════════════════════════════════════════════════════════════════════
#  Buffers and panes
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class TextBuffer:
    """A named list of lines, each a list of glyphs (tabs kept as tab glyphs)."""

    name: str
    lines: list[list[Glyph]] = field(default_factory=list)

    @classmethod
    def from_text(cls, name: str, text: str, cmap: ColorMap | None = None) -> TextBuffer:
        lines: list[list[Glyph]] = []
        for raw in text.splitlines():
            line: list[Glyph] = []
            for ch in raw:
                # One glyph per terminal column: no control or double-width characters
                if ch != "\t" and (not ch.isprintable() or is_wide(ch)):
                    ch = "?"
                attr = cmap.attr_for(ch) if cmap is not None else 0
                line.append(Glyph(ch, attr))
            lines.append(line)
        return cls(name, lines)

    @classmethod
    def from_region(cls, name: str, region: Region) -> TextBuffer:
        """Materialise a stepped region; blanks become spaces, glyphs are kept as-is."""
        return cls(
            name,
            [[BLANK_GLYPH if slot is None else slot for slot in row[1:]] for row in region],
        )


class Pane:
    """A terminal viewport onto one buffer."""

    def __init__(self, buffer: TextBuffer, tab_width: int = DEFAULT_TAB_WIDTH,
                 dedicated: bool = False) -> None:
        self.buffer = buffer
        self.tab_width = tab_width
        self.dedicated = dedicated
        self.top: int = 0
        self.y0: int = 0
        self.height: int = 0
        self.width: int = 0

    # ── Viewport interface ──────────────────────────────────────────

    def is_dedicated(self) -> bool:
        return self.dedicated

    def visible_height(self) -> int:
        return self.height

    def read_region(self) -> Region:
        if self.height <= 0:
            return []
        lines = self.buffer.lines[self.top : self.top + self.height]
        return [
            scan_row(((g.char, g) for g in line), tab_width=self.tab_width)
            for line in lines
        ]

    def write_region(self, region: Region) -> None:
        name = self.buffer.name
        if not name.startswith("*life"):
            name = f"*life: {name}*"
        self.buffer = TextBuffer.from_region(name, region)
        self.top = 0

    # ── Scrolling ───────────────────────────────────────────────────

    def scroll(self, delta: int) -> None:
        last = max(0, len(self.buffer.lines) - 1)
        self.top = max(0, min(self.top + delta, last))


# ═══════════════════════════════════════════════════════════════════════
#  The host
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LayoutSnapshot:
    """Which buffer each pane showed, where it was scrolled, what was selected."""
    entries: tuple[tuple[Pane, TextBuffer, int], ...]
    selected: int


class TerminalHost:
    """Implements the textlife host interface on a curses screen.

    The screen is split top to bottom into ``n_panes`` text panes, each
    with a one-line mode line, and a dedicated status line at the very
    bottom which the animation never touches.
    """

    def __init__(
        self,
        stdscr: curses.window,
        buffers: Sequence[TextBuffer],
        n_panes: int = DEFAULT_PANES,
        tab_width: int = DEFAULT_TAB_WIDTH,
    ) -> None:
        self.stdscr = stdscr
        self.panes: list[Pane] = [
            Pane(buffers[i % len(buffers)], tab_width=tab_width) for i in range(max(1, n_panes))
        ]
        self.status = Pane(TextBuffer("*status*"), tab_width=tab_width, dedicated=True)
        self.selected: int = 0
        self.status_text: Callable[[], str] = lambda: ""

        self.last_input: float = time.monotonic()
        self._idle_threshold: float | None = None
        self._idle_callback: Callable[[], Any] | None = None
        self._idle_fired: bool = False

        self.layout()

    def layout(self) -> None:
        """Split the screen between the panes and the status line."""
        max_y, max_x = self.stdscr.getmaxyx()
        usable = max(0, max_y - 1)
        n = len(self.panes)
        y = 0
        for i, pane in enumerate(self.panes):
            share = usable // n + (1 if i < usable % n else 0)
            pane.y0 = y
            pane.height = max(0, share - 1)  # last row of the share is the mode line
            pane.width = max_x
            y += share
        self.status.y0 = max(0, max_y - 1)
        self.status.height = 1
        self.status.width = max_x

    # ── Viewport enumeration and focus ──────────────────────────────

    def enumerate_viewports(self, frame_scope: str = FRAME_SCOPE_VISIBLE) -> list[Pane]:
        # One terminal is one frame, so every scope sees the same panes
        return [*self.panes, self.status]

    def selected_viewport(self) -> Pane:
        return self.panes[self.selected]

    def select_viewport(self, viewport: Any) -> None:
        if viewport in self.panes:
            self.selected = self.panes.index(viewport)

    def select_next(self) -> None:
        self.selected = (self.selected + 1) % len(self.panes)

    # ── Layout save/restore ─────────────────────────────────────────

    def capture_layout(self) -> LayoutSnapshot:
        return LayoutSnapshot(
            entries=tuple((p, p.buffer, p.top) for p in self.panes),
            selected=self.selected,
        )

    def restore_layout(self, snapshot: LayoutSnapshot) -> None:
        for pane, buffer, top in snapshot.entries:
            pane.buffer = buffer
            pane.top = top
        self.selected = snapshot.selected
        self.layout()
        self.redisplay()

    # ── Input and pacing ────────────────────────────────────────────

    def input_pending(self) -> bool:
        try:
            key = self.stdscr.getch()
        except curses.error:
            key = -1
        if key == -1:
            return False
        curses.ungetch(key)
        return True

    def sleep(self, duration: float) -> bool:
        """Redraw, then wait. False if a key cut the wait short."""
        self.redisplay()
        deadline = time.monotonic() + duration
        while not self.input_pending():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return True
            time.sleep(min(remaining, POLL_SLICE))
        return False

    def touch(self) -> None:
        """Record user activity (restarts the idle clock)."""
        self.last_input = time.monotonic()
        self._idle_fired = False

    def settle(self) -> None:
        """Swallow whatever key ended a session and restart the idle clock."""
        curses.flushinp()
        self.touch()

    # ── Idle timer ──────────────────────────────────────────────────

    def arm_idle_timer(self, threshold: float, callback: Callable[[], Any]) -> None:
        self._idle_threshold = threshold
        self._idle_callback = callback
        self._idle_fired = False

    def cancel_idle_timer(self) -> None:
        self._idle_threshold = None
        self._idle_callback = None

    def idle_due(self) -> Callable[[], Any] | None:
        """The armed callback, once per idle period, if the threshold has passed."""
        if self._idle_callback is None or self._idle_threshold is None or self._idle_fired:
            return None
        if time.monotonic() - self.last_input < self._idle_threshold:
            return None
        self._idle_fired = True
        return self._idle_callback

    # ── Drawing ─────────────────────────────────────────────────────

    def redisplay(self) -> None:
        self.stdscr.erase()
        for i, pane in enumerate(self.panes):
            self._draw_pane(pane)
            self._draw_mode_line(pane, selected=(i == self.selected))
        self._draw_status()
        self.stdscr.refresh()

    def _draw_pane(self, pane: Pane) -> None:
        _addstr = self.stdscr.addstr
        for r, row in enumerate(pane.read_region()):
            for c, slot in enumerate(row[1 : pane.width + 1]):
                if slot is None:
                    continue
                char = slot.char if isinstance(slot, Glyph) else str(slot)
                attr = slot.attr if isinstance(slot, Glyph) else curses.A_NORMAL
                try:
                    _addstr(pane.y0 + r, c, char, attr)
                except curses.error:
                    pass

    def _draw_mode_line(self, pane: Pane, selected: bool) -> None:
        y = pane.y0 + pane.height
        text = f" {pane.buffer.name}  L{pane.top + 1}/{max(1, len(pane.buffer.lines))} "
        attr = curses.A_REVERSE if selected else curses.A_DIM
        try:
            self.stdscr.addstr(y, 0, text.ljust(pane.width)[: max(0, pane.width - 1)], attr)
        except curses.error:
            pass

    def _draw_status(self) -> None:
        text = self.status_text()[: max(0, self.status.width - 1)]
        try:
            self.stdscr.addstr(self.status.y0, 0, text, curses.A_DIM)
        except curses.error:
            pass


# ═══════════════════════════════════════════════════════════════════════
#  Main loop
# ═══════════════════════════════════════════════════════════════════════

def main(
    stdscr: curses.window,
    config: LifeConfig,
    sources: Sequence[tuple[str, str]],
    n_panes: int = DEFAULT_PANES,
) -> None:
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    stdscr.nodelay(True)
    stdscr.timeout(0)
    stdscr.keypad(True)

    cmap = ColorMap()
    cmap.setup()

    buffers = [TextBuffer.from_text(name, text, cmap) for name, text in sources]
    host = TerminalHost(stdscr, buffers, n_panes=n_panes, tab_width=config.tab_width)

    logger: SessionLogger | None = None
    if config.log_path is not None:
        logger = SessionLogger(config.log_path)
        logger.open()

    session = AnimationSession(host, interval=config.interval, logger=logger)
    saver = ScreensaverController(
        host,
        idle_seconds=config.idle_seconds,
        generations=config.generations,
        session=session,
    )
    if config.screensaver:
        saver.enable()

    def status() -> str:
        saver_label = f"saver {config.idle_seconds:g}s" if saver.enabled else "saver off"
        running = "running" if session.running else (session.last_stop or "ready")
        return (
            f"  gen {session.generation:,}  live {session.live_cells:,}  {running}"
            f"  {saver_label}   q l g s tab arrows"
        )

    host.status_text = status

    try:
        while True:
            # ── Input ──────────────────────────────────────────────
            try:
                key = stdscr.getch()
            except curses.error:
                key = -1
            if key != -1:
                host.touch()

            if key in (ord("q"), ord("Q")):
                break
            elif key in (ord("l"), ord("L")):
                session.run()
                host.settle()
            elif key in (ord("g"), ord("G")):
                session.run(config.generations)
                host.settle()
            elif key in (ord("s"), ord("S")):
                saver.toggle()
            elif key == ord("\t"):
                host.select_next()
            elif key in (curses.KEY_UP, ord("k")):
                host.selected_viewport().scroll(-1)
            elif key in (curses.KEY_DOWN, ord("j")):
                host.selected_viewport().scroll(1)
            elif key == curses.KEY_PPAGE:
                pane = host.selected_viewport()
                pane.scroll(-max(1, pane.height))
            elif key == curses.KEY_NPAGE:
                pane = host.selected_viewport()
                pane.scroll(max(1, pane.height))
            elif key == curses.KEY_RESIZE:
                host.layout()

            # ── Screensaver ────────────────────────────────────────
            callback = host.idle_due()
            if callback is not None:
                callback()
                host.settle()

            # ── Render ─────────────────────────────────────────────
            host.redisplay()
            time.sleep(POLL_SLICE)

    finally:
        saver.disable()
        if logger is not None:
            logger.close()


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Conway's Life on your text")
    parser.add_argument("files", nargs="*", type=Path,
                        help="Text files to show (default: this script)")
    parser.add_argument("--panes", type=int, default=DEFAULT_PANES,
                        help=f"Number of panes (default: {DEFAULT_PANES})")
    parser.add_argument("--interval", type=float, default=LifeConfig.interval,
                        help=f"Seconds between generations (default: {LifeConfig.interval})")
    parser.add_argument("--idle", type=float, default=LifeConfig.idle_seconds,
                        help=f"Idle seconds before the screensaver (default: {LifeConfig.idle_seconds:g})")
    parser.add_argument("--generations", type=int, default=LifeConfig.generations,
                        help=f"Generations per bounded run (default: {LifeConfig.generations})")
    parser.add_argument("--tab-width", type=int, default=LifeConfig.tab_width,
                        help=f"Tab stop width (default: {LifeConfig.tab_width})")
    parser.add_argument("--no-screensaver", action="store_true",
                        help="Start with the idle screensaver disabled")
    log = parser.add_mutually_exclusive_group()
    log.add_argument("--log", type=Path, default=LOG_PATH,
                     help=f"Telemetry CSV path (default: {LOG_PATH.name} beside this script)")
    log.add_argument("--no-log", action="store_true", help="Do not write telemetry")
    args = parser.parse_args(argv)

    if args.panes < 1:
        parser.error("--panes must be at least 1")
    args.config = LifeConfig(
        interval=args.interval,
        idle_seconds=args.idle,
        generations=args.generations,
        tab_width=args.tab_width,
        screensaver=not args.no_screensaver,
        log_path=None if args.no_log else args.log,
    )
    try:
        args.config.validate()
    except ValueError as exc:
        parser.error(str(exc))

    paths = args.files or [Path(__file__).resolve()]
    sources: list[tuple[str, str]] = []
    for path in paths:
        try:
            sources.append((path.name, path.read_text(errors="replace")))
        except OSError as exc:
            parser.error(f"cannot read {path}: {exc}")
    args.sources = sources
    return args


def run(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        curses.wrapper(main, args.config, args.sources, args.panes)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
