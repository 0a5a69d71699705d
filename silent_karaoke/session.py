from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Callable

from silent_karaoke.audio.buffers import AudioAsset, Take
from silent_karaoke.audio.capture import Recorder
from silent_karaoke.audio.engine import AudioEngine, CaptureRequest
from silent_karaoke.audio.errors import AudioDecodeError, MicrophoneUnavailable, PlaybackStartError
from silent_karaoke.audio.mixer import MixConfig, clamp_vocal_volume, render_mix
from silent_karaoke.audio.preview import PreviewEngine
from silent_karaoke.audio.wav import asset_to_wav, encode_wav
from silent_karaoke.config import AppConfig, save_latency_offset
from silent_karaoke.i18n import t
from silent_karaoke.lyrics.parse import load_lyrics
from silent_karaoke.sync.timeline import LyricTimeline

logger = logging.getLogger(__name__)

PURPOSE_VOCAL = "vocal-only"
PURPOSE_MIX = "mixed"


def export_filename(purpose: str, day: date | None = None, prefix: str = "karaoke") -> str:
    day = day or date.today()
    return f"{prefix}_{purpose}_{day.isoformat()}.wav"


def _log_notify(message: str) -> None:
    logger.info(message)


class KaraokeSession:
    """
    State of one karaoke run: backing track, lyrics, the current take and
    the mix settings. Components get what they need from here explicitly.
    """

    def __init__(
        self,
        cfg: AppConfig,
        engine: AudioEngine,
        *,
        notify: Callable[[str], None] | None = None,
        recorder: Recorder | None = None,
        preview: PreviewEngine | None = None,
    ):
        self.cfg = cfg
        self.engine = engine
        self.notify = notify or _log_notify
        self.mix = MixConfig.clamped(cfg.vocal_volume, cfg.latency_offset_ms)
        self.request = CaptureRequest(sample_rate=cfg.sample_rate, channel_count=cfg.capture_channels)
        self.recorder = recorder or Recorder(
            engine,
            self.request,
            frame_size=cfg.frame_size,
            max_pending=cfg.capture_queue_frames,
        )
        self.preview = preview or PreviewEngine(
            engine.output_stream,
            lead_s=cfg.preview_lead_s,
            ramp_s=cfg.gain_ramp_s,
        )

        self.timeline = LyricTimeline.from_lines(())
        self.backing: AudioAsset | None = None
        self.take: Take | None = None
        self.mic_available = True
        self.playing = False

    def __enter__(self) -> "KaraokeSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # -- loading ------------------------------------------------------------

    def load_lyrics(self, path: Path) -> LyricTimeline:
        self.timeline = load_lyrics(path)
        self.notify(t("lyrics_loaded", count=len(self.timeline)))
        return self.timeline

    def load_backing(self, path: Path) -> bool:
        """Decode the backing track; False (and no mix export) when it cannot be decoded."""
        self.notify(t("backing_decoding"))
        try:
            self.backing = self.engine.decode(path)
        except AudioDecodeError as e:
            logger.warning("%s", e)
            self.backing = None
            self.notify(t("backing_decode_failed"))
            return False
        self.notify(t("backing_loaded"))
        return True

    def check_microphone(self) -> bool:
        self.mic_available = self.engine.microphone_available(self.request)
        if not self.mic_available:
            self.notify(t("mic_unavailable"))
        return self.mic_available

    @property
    def mix_available(self) -> bool:
        return self.backing is not None and self.take is not None and not self.take.is_empty

    # -- take ---------------------------------------------------------------

    def start_take(self) -> bool:
        """
        Start recording, then the backing track. Recording goes first so the
        vocal can never lead the music; if playback fails the recording is
        torn down again.
        """
        if self.backing is None:
            self.notify(t("no_backing"))
            return False
        if not self.mic_available:
            self.notify(t("mic_unavailable"))
            return False

        if self.playing:
            self.engine.stop_playback()
            self.playing = False
        self.preview.unload()
        self.take = None

        try:
            self.recorder.start()
        except MicrophoneUnavailable as e:
            logger.error("Recording failed to start: %s", e)
            self.mic_available = False
            self.notify(t("recording_start_failed"))
            return False

        try:
            self.engine.play(self.backing)
        except PlaybackStartError as e:
            logger.error("Playback failed: %s", e)
            self.recorder.teardown()
            self.notify(t("playback_failed"))
            return False

        self.playing = True
        return True

    def poll(self) -> float:
        """Per-tick housekeeping: drain captured frames, return the playback position."""
        self.recorder.drain()
        if not self.playing:
            return 0.0
        return self.engine.playback_position()

    def finish_take(self) -> Take | None:
        """Stop music and recording and keep what was captured."""
        if self.playing:
            self.engine.stop_playback()
            self.playing = False
        take = self.recorder.stop()
        if take is None or take.is_empty:
            return None
        self.load_take(take)
        self.notify(t("recording_done", sample_rate=take.sample_rate))
        return take

    def load_take(self, take: Take) -> None:
        """Make `take` the current vocal for preview, mix and export."""
        self.take = take
        self.preview.load(take, self.backing)

    def skip_outro(self) -> Take | None:
        """
        Finish early. The take is shorter, but a later mix still spans the
        whole backing track.
        """
        if not self.playing:
            return None
        self.notify(t("skip_outro"))
        return self.finish_take()

    def keep_take(self) -> None:
        self.preview.stop()

    def discard_take(self) -> None:
        self.preview.unload()
        self.take = None
        self.notify(t("take_discarded"))

    # -- settings -----------------------------------------------------------

    def set_latency_offset(self, ms: int) -> int:
        value = save_latency_offset(ms)
        self.mix = replace(self.mix, latency_offset_ms=value)
        self.preview.set_latency_offset(value)
        return value

    def set_vocal_volume(self, volume: float) -> float:
        volume = clamp_vocal_volume(volume)
        self.mix = replace(self.mix, vocal_volume=volume)
        self.preview.set_vocal_volume(volume)
        return volume

    # -- preview / export ---------------------------------------------------

    def toggle_preview(self) -> bool:
        if not self.preview.loaded:
            self.notify(t("no_take"))
            return False
        try:
            return self.preview.toggle(self.mix)
        except PlaybackStartError as e:
            logger.error("Preview failed: %s", e)
            self.preview.stop()
            self.notify(t("preview_failed"))
            return False

    def render_mix(self) -> AudioAsset | None:
        return render_mix(self.backing, self.take, self.mix)

    def export_vocal(self, out_dir: Path | None = None, day: date | None = None) -> Path | None:
        take = self.take
        if take is None:
            self.notify(t("no_take"))
            return None
        blob = encode_wav(take.samples, take.sample_rate, take.channel_count, self.cfg.vocal_bit_depth)
        path = blob.write((out_dir or self.cfg.output_dir) / export_filename(PURPOSE_VOCAL, day))
        self.notify(t("vocal_exported", path=str(path)))
        return path

    def export_mix(self, out_dir: Path | None = None, day: date | None = None) -> Path | None:
        mixed = self.render_mix()
        if mixed is None:
            self.notify(t("nothing_to_mix"))
            return None
        blob = asset_to_wav(mixed, self.cfg.mix_bit_depth)
        path = blob.write((out_dir or self.cfg.output_dir) / export_filename(PURPOSE_MIX, day))
        self.notify(t("mix_exported", path=str(path)))
        return path

    def close(self) -> None:
        self.preview.stop()
        if self.playing:
            self.engine.stop_playback()
            self.playing = False
        self.recorder.teardown()
