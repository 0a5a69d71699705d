from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

MIN_WORD_DURATION_S = 0.1


@dataclass(frozen=True, slots=True)
class Word:
    time: float
    duration: float
    text: str

    @property
    def end(self) -> float:
        return self.time + self.duration


@dataclass(frozen=True, slots=True)
class LyricLine:
    time: float
    text: str
    words: tuple[Word, ...]


class LyricFormat(str, Enum):
    LRC = "lrc"
    SRT = "srt"
    ASS = "ass"

    @classmethod
    def from_path(cls, path: str | Path) -> "LyricFormat":
        suffix = Path(path).suffix.lower()
        if suffix == ".srt":
            return cls.SRT
        if suffix == ".ass":
            return cls.ASS
        # .lrc, .txt and anything unknown
        return cls.LRC
