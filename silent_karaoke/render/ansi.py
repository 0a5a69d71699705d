from __future__ import annotations

import shutil
import signal
import sys
from dataclasses import dataclass
from typing import Callable

import colorama

from silent_karaoke.i18n import t
from silent_karaoke.sync.timeline import KaraokeFrame


CSI = "\x1b["


def _sgr(*codes: int) -> str:
    return CSI + ";".join(str(c) for c in codes) + "m"


def format_clock(seconds: float) -> str:
    seconds = max(seconds, 0.0)
    m = int(seconds // 60)
    s = int(seconds % 60)
    return f"{m:02d}:{s:02d}"


@dataclass(frozen=True, slots=True)
class Theme:
    title: str = _sgr(36, 1)  # cyan bold
    sung: str = _sgr(35, 1)  # magenta bold
    current: str = _sgr(37, 1)  # white bold
    dim: str = _sgr(90)  # bright black
    rec: str = _sgr(31, 1)  # red bold
    reset: str = _sgr(0)


class AnsiRenderer:
    def __init__(self, use_alt_screen: bool = True, theme: Theme | None = None):
        self.use_alt_screen = use_alt_screen
        self.theme = theme or Theme()
        self._entered = False
        self._resize_handler: Callable[[], None] | None = None
        self._last_render_args: tuple[str, KaraokeFrame, str, bool] | None = None

    def __enter__(self):
        self.enter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.exit()

    def enter(self) -> None:
        if self._entered:
            return
        colorama.just_fix_windows_console()
        if self.use_alt_screen:
            sys.stdout.write(CSI + "?1049h")  # alt screen
        sys.stdout.write(CSI + "?25l")  # hide cursor
        sys.stdout.write(CSI + "H" + CSI + "2J")  # home + clear
        sys.stdout.flush()
        self._entered = True

        def _on_resize(signum=None, frame=None):
            if self._last_render_args:
                self.render(*self._last_render_args)

        self._resize_handler = _on_resize
        if hasattr(signal, "SIGWINCH"):
            signal.signal(signal.SIGWINCH, _on_resize)

    def exit(self) -> None:
        if not self._entered:
            return
        if self._resize_handler:
            if hasattr(signal, "SIGWINCH"):
                signal.signal(signal.SIGWINCH, signal.SIG_DFL)
            self._resize_handler = None
        sys.stdout.write(self.theme.reset)
        sys.stdout.write(CSI + "?25h")  # show cursor
        if self.use_alt_screen:
            sys.stdout.write(CSI + "?1049l")  # normal screen
        sys.stdout.flush()
        self._entered = False
        self._last_render_args = None

    def karaoke_line(self, frame: KaraokeFrame) -> str:
        """Active line with the sung part of each word highlighted."""
        if frame.line is None:
            return f"{self.theme.dim}{t('waiting')}{self.theme.reset}"
        out: list[str] = []
        for word, p in zip(frame.line.words, frame.progress):
            k = int(len(word.text) * p)
            out.append(f"{self.theme.sung}{word.text[:k]}{self.theme.current}{word.text[k:]}")
        return "".join(out) + self.theme.reset

    def render(self, title: str, frame: KaraokeFrame, clock: str, recording: bool = False) -> None:
        # Store args for SIGWINCH redraw
        self._last_render_args = (title, frame, clock, recording)

        _cols, rows = shutil.get_terminal_size(fallback=(80, 24))

        header = f"{self.theme.title}♫ {title} ♫{self.theme.reset}  {clock}"
        if recording:
            header += f"  {self.theme.rec}● {t('rec')}{self.theme.reset}"

        next_text = frame.next_text if frame.next_text is not None else t("end")
        out = [
            header,
            "",
            self.karaoke_line(frame),
            f"{self.theme.dim}{next_text.strip()}{self.theme.reset}",
        ]
        out = out[: max(rows, 1)]

        # move home + clear, then print full frame
        sys.stdout.write(CSI + "H" + CSI + "2J")
        sys.stdout.write("\n".join(out))
        sys.stdout.write(self.theme.reset)
        sys.stdout.flush()
