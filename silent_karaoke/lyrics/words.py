from __future__ import annotations

from .model import Word


def synthesize_words(text: str, start: float, duration: float) -> tuple[Word, ...]:
    """
    Spread a cue's duration over its words by non-whitespace character count.

    Subtitle cues carry no per-word timing, so "ab cdef" over 3s gives
    "ab " 1s and "cdef " 2s. Each word keeps one trailing space for display.
    Returns an empty tuple when the text has no visible characters.
    """
    tokens = text.split()
    total_chars = sum(len(tok) for tok in tokens)
    if total_chars == 0:
        return ()

    words: list[Word] = []
    t = start
    for tok in tokens:
        share = duration * (len(tok) / total_chars)
        words.append(Word(time=t, duration=share, text=tok + " "))
        t += share
    return tuple(words)
