from __future__ import annotations

import logging
import math
import re

from .model import LyricLine
from .timetag import parse_srt_time
from .words import synthesize_words

logger = logging.getLogger(__name__)

_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")


def _parse_block(block: str) -> LyricLine | None:
    lines = [ln.strip() for ln in block.split("\n")]
    lines = [ln for ln in lines if ln]
    if len(lines) < 2:
        return None

    time_idx = next((i for i, ln in enumerate(lines) if "-->" in ln), -1)
    if time_idx == -1:
        return None

    start_str, _, end_str = lines[time_idx].partition("-->")
    start = parse_srt_time(start_str)
    end = parse_srt_time(end_str)
    if math.isnan(start) or math.isnan(end) or end < start:
        return None

    # cue index (if any) sits before the time line and is not part of the text
    text = " ".join(lines[time_idx + 1 :])
    words = synthesize_words(text, start, end - start)
    if not words:
        return None
    return LyricLine(time=start, text=text, words=words)


def parse_srt(text: str) -> list[LyricLine]:
    """Parse SubRip cues; blocks without a usable time range are skipped."""
    lines: list[LyricLine] = []
    skipped = 0
    for block in _BLOCK_SPLIT_RE.split(text.replace("\r\n", "\n")):
        if not block.strip():
            continue
        line = _parse_block(block)
        if line is None:
            skipped += 1
            continue
        lines.append(line)
    if skipped:
        logger.debug("SRT: skipped %d malformed cue block(s)", skipped)
    lines.sort(key=lambda ln: ln.time)
    return lines
