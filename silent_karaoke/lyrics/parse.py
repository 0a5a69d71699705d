from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from silent_karaoke.sync.timeline import LyricTimeline

from .ass import parse_ass
from .lrc import parse_lrc
from .model import LyricFormat, LyricLine
from .srt import parse_srt

logger = logging.getLogger(__name__)

_PARSERS: dict[LyricFormat, Callable[[str], list[LyricLine]]] = {
    LyricFormat.LRC: parse_lrc,
    LyricFormat.SRT: parse_srt,
    LyricFormat.ASS: parse_ass,
}


@dataclass(frozen=True, slots=True)
class LyricStats:
    format: LyricFormat
    lines_total: int
    words_total: int
    first_s: float | None
    last_s: float | None


def parse_lyrics(text: str, fmt: LyricFormat) -> LyricTimeline:
    return LyricTimeline.from_lines(_PARSERS[fmt](text))


def load_lyrics(path: Path, fmt: LyricFormat | None = None) -> LyricTimeline:
    """Read a lyric file, picking the dialect from its extension unless given."""
    fmt = fmt or LyricFormat.from_path(path)
    text = path.read_text(encoding="utf-8-sig")
    timeline = parse_lyrics(text, fmt)
    logger.info("Loaded %d %s line(s) from %s", len(timeline), fmt.value, path.name)
    return timeline


def timeline_stats(timeline: LyricTimeline, fmt: LyricFormat) -> LyricStats:
    lines = timeline.lines
    return LyricStats(
        format=fmt,
        lines_total=len(lines),
        words_total=sum(len(ln.words) for ln in lines),
        first_s=lines[0].time if lines else None,
        last_s=timeline.end_time if lines else None,
    )
