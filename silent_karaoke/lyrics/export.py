from __future__ import annotations

import json

from silent_karaoke.sync.timeline import LyricTimeline

from .timetag import fmt_lrc_time, fmt_srt_time


def export_json(timeline: LyricTimeline) -> str:
    return json.dumps(
        {
            "lines": [
                {
                    "time": ln.time,
                    "text": ln.text,
                    "words": [{"time": w.time, "duration": w.duration, "text": w.text} for w in ln.words],
                }
                for ln in timeline.lines
            ],
        },
        ensure_ascii=False,
        indent=2,
    )


def export_lrc(timeline: LyricTimeline, word_tags: bool = True) -> str:
    """
    One line per lyric line. With word_tags every word gets its own tag,
    which parse_lrc reads back as word timing.
    """
    out: list[str] = []
    for ln in timeline.lines:
        if word_tags and ln.words:
            out.append("".join(f"[{fmt_lrc_time(w.time)}]{w.text}" for w in ln.words))
        else:
            out.append(f"[{fmt_lrc_time(ln.time)}]{ln.text}")
    return "\n".join(out) + ("\n" if out else "")


def export_srt(timeline: LyricTimeline, last_line_duration_s: float = 2.0) -> str:
    """
    Cue ends when its last word ends; a line without words lasts
    last_line_duration_s.
    """
    lines = timeline.lines
    if not lines:
        return ""
    out: list[str] = []
    for i, ln in enumerate(lines, start=1):
        start = ln.time
        if ln.words:
            end = max(ln.words[-1].end, start + 0.001)
        else:
            end = start + last_line_duration_s
        out.append(str(i))
        out.append(f"{fmt_srt_time(start)} --> {fmt_srt_time(end)}")
        out.append(ln.text.strip())
        out.append("")
    return "\n".join(out)
