from __future__ import annotations

import math
import re

_LRC_TAG_RE = re.compile(r"\[(\d{2}):(\d{2})\.(\d{2,3})\]")  # [mm:ss.xx] / [mm:ss.xxx]
LRC_MAX_CS = 99 * 6000 + 5999
_FLOAT_PREFIX_RE = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX_RE = re.compile(r"\s*[+-]?\d+")


def _leading_float(text: str) -> float:
    # "12.5abc" -> 12.5, "abc" -> nan
    m = _FLOAT_PREFIX_RE.match(text)
    return float(m.group(0)) if m else math.nan


def _leading_int(text: str) -> float:
    m = _INT_PREFIX_RE.match(text)
    return float(int(m.group(0))) if m else math.nan


def parse_lrc_tag(token: str) -> float | None:
    """
    Seconds for an LRC time tag, or None when the token holds no valid tag.

    The fraction is right-padded to milliseconds: "2" -> 200ms, "23" -> 230ms.
    """
    m = _LRC_TAG_RE.search(token)
    if not m:
        return None
    minutes = int(m.group(1))
    seconds = int(m.group(2))
    ms = int(m.group(3).ljust(3, "0"))
    return minutes * 60 + seconds + ms / 1000


def parse_srt_time(value: str) -> float:
    """
    Seconds for an SRT timestamp; nan when a field is not numeric.

    Accepts HH:MM:SS,mmm, HH:MM:SS.mmm, HH:MM:SS:mmm and MM:SS. Anything after
    the first whitespace (position hints like "X1:40") is ignored.
    """
    fields = value.split()
    if not fields:
        return math.nan
    parts = fields[0].replace(",", ".", 1).split(":")
    if len(parts) == 4:
        h, m, s, frac = parts
        parts = [h, m, f"{s}.{frac}"]
    if len(parts) == 3:
        h, m, s = parts
        return _leading_float(h) * 3600 + _leading_float(m) * 60 + _leading_float(s)
    if len(parts) == 2:
        m, s = parts
        return _leading_float(m) * 60 + _leading_float(s)
    return math.nan


def parse_ass_time(value: str) -> float:
    """Seconds for an ASS timestamp (H:MM:SS.cc); nan when malformed."""
    parts = value.strip().split(":")
    if len(parts) != 3:
        return math.nan
    h, m, s = parts
    return _leading_int(h) * 3600 + _leading_int(m) * 60 + _leading_float(s)


def fmt_lrc_time(seconds: float) -> str:
    """mm:ss.xx, capped at 99:59.99 since LRC tags carry two minute digits."""
    total_cs = min(max(int(round(seconds * 100)), 0), LRC_MAX_CS)
    m, rem = divmod(total_cs, 6000)
    s, cs = divmod(rem, 100)
    return f"{m:02d}:{s:02d}.{cs:02d}"


def fmt_srt_time(seconds: float) -> str:
    # HH:MM:SS,mmm
    ms = max(int(round(seconds * 1000)), 0)
    h, rem = divmod(ms, 3_600_000)
    m, rem = divmod(rem, 60_000)
    s, ms2 = divmod(rem, 1_000)
    return f"{h:02d}:{m:02d}:{s:02d},{ms2:03d}"
