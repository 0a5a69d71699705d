from __future__ import annotations

import re

from .model import MIN_WORD_DURATION_S, LyricLine, Word
from .timetag import parse_lrc_tag

_TAG_SPLIT_RE = re.compile(r"(\[\d{2}:\d{2}\.\d{2,3}\])")

# silence kept after the last timed word of a line
LAST_WORD_DURATION_S = 0.5


def _parse_line(line: str) -> LyricLine | None:
    parts = [p for p in _TAG_SPLIT_RE.split(line) if p.strip()]
    if not parts:
        return None

    current = parse_lrc_tag(parts[0])
    if current is None:
        # metadata ([ar:...], [ti:...]) and untimed text
        return None

    raw: list[tuple[float, str]] = []
    for part in parts:
        if part.startswith("["):
            t = parse_lrc_tag(part)
            if t is not None:
                current = t
        else:
            raw.append((current, part))

    if not raw:
        return None

    words: list[Word] = []
    for i, (t, text) in enumerate(raw):
        if i < len(raw) - 1:
            duration = raw[i + 1][0] - t
        else:
            duration = LAST_WORD_DURATION_S
        words.append(Word(time=t, duration=max(duration, MIN_WORD_DURATION_S), text=text))

    return LyricLine(time=words[0].time, text="".join(w.text for w in words), words=tuple(words))


def parse_lrc(text: str) -> list[LyricLine]:
    """
    Supported:
    - [mm:ss.xx] / [mm:ss.xxx] line tags
    - inline tags between words: [00:01.50]hel[00:01.80]lo

    Lines without a leading time tag are skipped. Result is sorted by time.
    """
    lines: list[LyricLine] = []
    for raw in text.splitlines():
        stripped = raw.strip()
        if not stripped:
            continue
        line = _parse_line(stripped)
        if line is not None:
            lines.append(line)
    lines.sort(key=lambda ln: ln.time)
    return lines
