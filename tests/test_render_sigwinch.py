from __future__ import annotations

import signal
from unittest.mock import patch

import pytest

from silent_karaoke.i18n import set_lang
from silent_karaoke.lyrics.lrc import parse_lrc
from silent_karaoke.render.ansi import AnsiRenderer, Theme, format_clock
from silent_karaoke.sync.timeline import LyricTimeline

pytestmark = pytest.mark.skipif(not hasattr(signal, "SIGWINCH"), reason="SIGWINCH is POSIX only")


def _frame(now_s: float = 1.25):
    timeline = LyricTimeline.from_lines(parse_lrc("[00:01.00]ab[00:01.50]cd\n[00:03.00]next line\n"))
    return timeline.tick(now_s)


class TestAnsiRendererSigwinch:
    """Test SIGWINCH handling in renderer."""

    def test_sigwinch_registered_on_enter(self):
        renderer = AnsiRenderer(use_alt_screen=False)
        old_handler = signal.getsignal(signal.SIGWINCH)

        renderer.enter()
        try:
            assert signal.getsignal(signal.SIGWINCH) != old_handler
        finally:
            renderer.exit()
            signal.signal(signal.SIGWINCH, old_handler)

    def test_sigwinch_restored_on_exit(self):
        renderer = AnsiRenderer(use_alt_screen=False)
        old_handler = signal.getsignal(signal.SIGWINCH)

        renderer.enter()
        renderer.exit()

        assert signal.getsignal(signal.SIGWINCH) == signal.SIG_DFL
        signal.signal(signal.SIGWINCH, old_handler)

    def test_sigwinch_redraws_last_frame(self):
        renderer = AnsiRenderer(use_alt_screen=False)
        frame = _frame()

        renderer.enter()
        renderer.render("Song", frame, "00:01 / 03:00", recording=True)
        with patch.object(renderer, "render") as mock_render:
            assert renderer._resize_handler is not None
            renderer._resize_handler()
            mock_render.assert_called_once_with("Song", frame, "00:01 / 03:00", True)
        renderer.exit()

    def test_last_render_args_stored(self):
        renderer = AnsiRenderer(use_alt_screen=False)
        renderer.enter()
        assert renderer._last_render_args is None

        frame = _frame()
        renderer.render("Title", frame, "00:00 / 00:10")

        title, stored, clock, recording = renderer._last_render_args
        assert title == "Title"
        assert stored is frame
        assert clock == "00:00 / 00:10"
        assert recording is False

        renderer.exit()
        assert renderer._last_render_args is None


class TestKaraokeLine:
    PLAIN = Theme(title="", sung="<", current=">", dim="", rec="", reset="")

    def test_sung_part_highlighted(self):
        renderer = AnsiRenderer(use_alt_screen=False, theme=self.PLAIN)
        # "ab" fully sung at 1.5+, "cd" half sung at 1.75
        assert renderer.karaoke_line(_frame(1.75)) == "<ab><c>d"

    def test_nothing_sung_yet(self):
        renderer = AnsiRenderer(use_alt_screen=False, theme=self.PLAIN)
        assert renderer.karaoke_line(_frame(1.0)) == "<>ab<>cd"

    def test_waiting_before_first_line(self):
        set_lang("EN")
        renderer = AnsiRenderer(use_alt_screen=False, theme=self.PLAIN)
        assert renderer.karaoke_line(_frame(0.0)) == "Waiting to start..."

    def test_render_writes_frame(self, capsys):
        set_lang("EN")
        renderer = AnsiRenderer(use_alt_screen=False, theme=self.PLAIN)
        renderer.render("Song", _frame(3.5), "00:03 / 00:10", recording=True)
        out = capsys.readouterr().out
        assert "Song" in out
        assert "REC" in out
        assert "~ End ~" in out


def test_format_clock():
    assert format_clock(0) == "00:00"
    assert format_clock(83.9) == "01:23"
    assert format_clock(-4) == "00:00"
