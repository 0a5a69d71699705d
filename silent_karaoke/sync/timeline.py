from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Iterable

from silent_karaoke.lyrics.model import LyricLine, Word


def word_progress(word: Word, now_s: float) -> float:
    """Highlight fraction of a word at `now_s`: 0 before it starts, 1 once sung."""
    if word.duration <= 0:
        return 1.0 if now_s >= word.time else 0.0
    return min(max((now_s - word.time) / word.duration, 0.0), 1.0)


@dataclass(frozen=True, slots=True)
class KaraokeFrame:
    index: int
    line: LyricLine | None
    progress: tuple[float, ...]
    next_text: str | None


@dataclass(frozen=True, slots=True)
class LyricTimeline:
    """
    Read-only lyric lines plus O(log n) lookup of the active line.

    Built once per lyric file; a new file replaces the whole timeline.
    """

    lines: tuple[LyricLine, ...]
    _times: tuple[float, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        lines = tuple(sorted(self.lines, key=lambda ln: ln.time))
        object.__setattr__(self, "lines", lines)
        object.__setattr__(self, "_times", tuple(ln.time for ln in lines))

    @classmethod
    def from_lines(cls, lines: Iterable[LyricLine]) -> "LyricTimeline":
        return cls(lines=tuple(lines))

    def __len__(self) -> int:
        return len(self.lines)

    def active_index(self, now_s: float) -> int:
        i = bisect_right(self._times, now_s) - 1
        return i if i >= 0 else -1

    def tick(self, now_s: float) -> KaraokeFrame:
        idx = self.active_index(now_s)
        if idx + 1 < len(self.lines):
            next_text: str | None = self.lines[idx + 1].text
        else:
            next_text = None
        if idx < 0:
            return KaraokeFrame(index=-1, line=None, progress=(), next_text=next_text)
        line = self.lines[idx]
        progress = tuple(word_progress(w, now_s) for w in line.words)
        return KaraokeFrame(index=idx, line=line, progress=progress, next_text=next_text)

    @property
    def end_time(self) -> float:
        if not self.lines:
            return 0.0
        last = self.lines[-1]
        return max((w.end for w in last.words), default=last.time)


@dataclass(slots=True)
class LineTracker:
    """Render-on-change state for one view of a timeline."""

    timeline: LyricTimeline
    last_idx: int = -1

    def changed_index(self, now_s: float) -> int | None:
        i = self.timeline.active_index(now_s)
        if i != self.last_idx:
            self.last_idx = i
            return i
        return None
