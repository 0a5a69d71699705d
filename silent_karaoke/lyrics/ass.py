from __future__ import annotations

import logging
import math
import re

from .model import LyricLine
from .timetag import parse_ass_time
from .words import synthesize_words

logger = logging.getLogger(__name__)

_OVERRIDE_RE = re.compile(r"\{.*?\}")  # {\k20}, {\an8}, ...
_ESCAPE_RE = re.compile(r"\\[Nnh]")  # soft/hard line breaks, hard space
_SECTION_RE = re.compile(r"^\[[^\]]+\]$")


def _clean_text(text: str) -> str:
    text = _OVERRIDE_RE.sub("", text)
    text = _ESCAPE_RE.sub(" ", text)
    return text.strip()


def _parse_dialogue(body: str, fields: list[str]) -> LyricLine | None:
    # Text is the last field and may itself contain commas
    parts = body.split(",", len(fields) - 1)
    if len(parts) < len(fields):
        return None
    meta, raw_text = parts[:-1], parts[-1]

    try:
        start_idx = fields.index("start")
        end_idx = fields.index("end")
    except ValueError:
        return None
    if start_idx >= len(meta) or end_idx >= len(meta):
        return None

    start = parse_ass_time(meta[start_idx])
    end = parse_ass_time(meta[end_idx])
    if math.isnan(start) or math.isnan(end) or end < start:
        return None

    text = _clean_text(raw_text)
    words = synthesize_words(text, start, end - start)
    if not words:
        return None
    return LyricLine(time=start, text=text, words=words)


def parse_ass(text: str) -> list[LyricLine]:
    """
    Parse Dialogue events of an Advanced SubStation Alpha script.

    Field order comes from the [Events] Format line; Dialogue lines seen
    before it are skipped.
    """
    lines: list[LyricLine] = []
    fields: list[str] = []
    in_events = False
    skipped = 0

    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue

        if _SECTION_RE.match(line):
            in_events = line.lower() == "[events]"
            continue
        if not in_events:
            continue

        if line.startswith("Format:"):
            fields = [f.strip().lower() for f in line[len("Format:") :].split(",")]
            continue

        if line.startswith("Dialogue:"):
            if not fields:
                skipped += 1
                continue
            parsed = _parse_dialogue(line[len("Dialogue:") :].strip(), fields)
            if parsed is None:
                skipped += 1
                continue
            lines.append(parsed)

    if skipped:
        logger.debug("ASS: skipped %d dialogue line(s)", skipped)
    lines.sort(key=lambda ln: ln.time)
    return lines
