from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path

from silent_karaoke.audio.buffers import Take
from silent_karaoke.audio.engine import AudioEngine
from silent_karaoke.audio.errors import AudioDecodeError
from silent_karaoke.audio.mixer import MixConfig
from silent_karaoke.config import AppConfig
from silent_karaoke.i18n import set_lang, t
from silent_karaoke.render.ansi import AnsiRenderer, format_clock
from silent_karaoke.session import KaraokeSession
from silent_karaoke.sync.ticker import TickLoop
from silent_karaoke.sync.timeline import LineTracker

logger = logging.getLogger(__name__)


def sing(
    cfg: AppConfig,
    backing_path: Path,
    lyrics_path: Path | None,
    *,
    out_dir: Path,
    mix: bool = True,
) -> int:
    """
    Main karaoke loop:
    record + play backing -> (position) -> lyric frame -> render, until the
    track ends or Ctrl+C skips the outro. Then export vocal (and mix).
    """
    set_lang(cfg.lang)

    with AudioEngine(sample_rate=cfg.sample_rate) as engine, KaraokeSession(cfg, engine) as session:
        if not session.load_backing(backing_path):
            return 1
        if lyrics_path is not None:
            session.load_lyrics(lyrics_path)
        if not session.check_microphone():
            return 1

        backing = session.backing
        assert backing is not None
        duration = backing.duration
        title = backing_path.stem

        renderer = AnsiRenderer(use_alt_screen=cfg.use_alt_screen)
        loop = TickLoop(cfg.refresh_hz)
        tracker = LineTracker(session.timeline)

        # Ctrl+C ends the take early instead of killing the process
        def _on_sigint(signum, frame):
            loop.cancel()

        previous_handler = signal.signal(signal.SIGINT, _on_sigint)
        renderer.enter()
        try:
            if not session.start_take():
                return 1

            def _step() -> bool:
                pos = session.poll()
                frame = session.timeline.tick(pos)
                if tracker.changed_index(pos) is not None and frame.line is not None:
                    logger.debug("Line %d at %.2fs: %s", frame.index, pos, frame.line.text)
                renderer.render(
                    title,
                    frame,
                    f"{format_clock(pos)} / {format_clock(duration)}",
                    recording=session.recorder.recording,
                )
                return pos < duration

            loop.run(_step)
        finally:
            renderer.exit()
            signal.signal(signal.SIGINT, previous_handler)
            if session.playing and session.engine.playback_position() < duration:
                session.skip_outro()
            else:
                session.finish_take()

        if session.take is None:
            logger.warning("No audio was captured")
            return 1

        session.export_vocal(out_dir)
        if mix:
            if session.mix_available:
                session.export_mix(out_dir)
            else:
                session.notify(t("nothing_to_mix"))
    return 0


def audition(
    cfg: AppConfig,
    backing_path: Path | None,
    vocal_path: Path,
    *,
    seek_s: float = 0.0,
    latency_offset_ms: int | None = None,
    vocal_volume: float | None = None,
) -> int:
    """Preview a recorded vocal against the backing track from `seek_s`."""
    set_lang(cfg.lang)

    with AudioEngine(sample_rate=cfg.sample_rate) as engine, KaraokeSession(cfg, engine) as session:
        if backing_path is not None:
            session.load_backing(backing_path)
        try:
            vocal = engine.decode(vocal_path)
        except AudioDecodeError as e:
            logger.error("%s", e)
            session.notify(t("no_take"))
            return 1

        session.load_take(Take.from_asset(vocal))
        session.mix = MixConfig.clamped(
            vocal_volume if vocal_volume is not None else session.mix.vocal_volume,
            latency_offset_ms if latency_offset_ms is not None else session.mix.latency_offset_ms,
        )
        session.preview.seek(seek_s)
        if not session.toggle_preview():
            return 1

        loop = TickLoop(cfg.refresh_hz)
        total = format_clock(session.preview.duration)

        def _on_sigint(signum, frame):
            loop.cancel()

        def _step() -> bool:
            pos = session.preview.tick()
            sys.stdout.write(f"\r{format_clock(pos)} / {total}")
            sys.stdout.flush()
            return session.preview.playing

        previous_handler = signal.signal(signal.SIGINT, _on_sigint)
        try:
            loop.run(_step)
        finally:
            signal.signal(signal.SIGINT, previous_handler)
            session.keep_take()
            sys.stdout.write("\n")
    return 0
