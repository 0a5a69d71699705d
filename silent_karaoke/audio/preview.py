from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

import numpy as np

from .buffers import AudioAsset, Take, conform
from .mixer import MixConfig, clamp_latency_offset, clamp_vocal_volume

logger = logging.getLogger(__name__)

PREVIEW_LEAD_S = 0.1
GAIN_RAMP_S = 0.05


@dataclass(frozen=True, slots=True)
class PreviewSchedule:
    """Clock times (seconds) at which both sources begin, and where in each buffer."""

    reference_s: float
    seek_s: float
    vocal_start_s: float
    vocal_offset_s: float
    vocal_audible: bool


def schedule_preview(
    now_s: float,
    seek_s: float,
    latency_offset_ms: int,
    vocal_duration_s: float,
    lead_s: float = PREVIEW_LEAD_S,
) -> PreviewSchedule:
    """
    Backing starts at the reference instant (now + lead) at `seek_s`.

    With a positive offset the vocal runs behind the backing: inside the
    pre-roll (seek < offset) it starts later at buffer position 0, otherwise
    it starts with the backing at seek - offset. Zero or negative offsets
    start it with the backing at seek + |offset|.
    """
    reference = now_s + lead_s
    offset_s = latency_offset_ms / 1000
    if offset_s > 0:
        if seek_s < offset_s:
            vocal_start = reference + (offset_s - seek_s)
            vocal_offset = 0.0
        else:
            vocal_start = reference
            vocal_offset = seek_s - offset_s
    else:
        vocal_start = reference
        vocal_offset = seek_s - offset_s
    return PreviewSchedule(
        reference_s=reference,
        seek_s=seek_s,
        vocal_start_s=vocal_start,
        vocal_offset_s=vocal_offset,
        vocal_audible=vocal_offset < vocal_duration_s,
    )


class GainRamp:
    """Per-sample gain that glides linearly to a new target."""

    def __init__(self, value: float):
        self._lock = threading.Lock()
        self.value = float(value)
        self._target = float(value)
        self._step = 0.0
        self._remaining = 0

    @property
    def target(self) -> float:
        with self._lock:
            return self._target

    def set_target(self, target: float, ramp_samples: int) -> None:
        with self._lock:
            self._target = float(target)
            if ramp_samples <= 0:
                self.value = self._target
                self._remaining = 0
            else:
                self._step = (self._target - self.value) / ramp_samples
                self._remaining = ramp_samples

    def render(self, n: int) -> np.ndarray:
        with self._lock:
            if self._remaining == 0:
                return np.full(n, self.value, dtype=np.float32)
            k = min(n, self._remaining)
            out = np.full(n, self._target, dtype=np.float32)
            out[:k] = self.value + self._step * np.arange(1, k + 1)
            self._remaining -= k
            self.value = self._target if self._remaining == 0 else float(out[k - 1])
            return out


def _add_source(out: np.ndarray, src: np.ndarray, start: int, offset: int, block_start: int) -> None:
    # clock sample p plays src[p - start + offset] once p >= start
    frames = out.shape[0]
    first = max(block_start, start)
    src_first = first - start + offset
    n = min(block_start + frames - first, src.shape[0] - src_first)
    if n <= 0:
        return
    o = first - block_start
    out[o : o + n] += src[src_first : src_first + n]


class PreviewEngine:
    """
    Dual-source (vocal + optional backing) audition before export.

    `stream_factory(samplerate=, channels=, callback=)` returns a PortAudio
    style output stream; the engine's clock is the number of frames that
    stream has pulled.
    """

    def __init__(
        self,
        stream_factory: Callable[..., Any],
        *,
        lead_s: float = PREVIEW_LEAD_S,
        ramp_s: float = GAIN_RAMP_S,
    ):
        self._stream_factory = stream_factory
        self.lead_s = lead_s
        self.ramp_s = ramp_s

        self._lock = threading.Lock()
        self._stream: Any = None
        self._take: Take | None = None
        self._backing_asset: AudioAsset | None = None
        self._config = MixConfig()

        # live sources, released on stop
        self._backing: np.ndarray | None = None
        self._vocal: np.ndarray | None = None
        self._gain: GainRamp | None = None
        self._schedule: PreviewSchedule | None = None
        self._rate = 0
        self._channels = 0
        self._clock_frames = 0

        self.playing = False
        self.current_time = 0.0
        self.duration = 0.0

    # -- material -----------------------------------------------------------

    def load(self, take: Take, backing: AudioAsset | None) -> None:
        self.stop()
        self._take = take
        self._backing_asset = backing
        self.duration = max(take.duration, backing.duration if backing is not None else 0.0)
        self.current_time = 0.0

    def unload(self) -> None:
        self.stop()
        self._take = None
        self._backing_asset = None
        self.duration = 0.0
        self.current_time = 0.0

    @property
    def loaded(self) -> bool:
        return self._take is not None

    # -- transport ----------------------------------------------------------

    def start(self, config: MixConfig) -> PreviewSchedule | None:
        """Start from `current_time`; None when no take is loaded."""
        take, backing = self._take, self._backing_asset
        if take is None or take.is_empty:
            return None
        self.stop()

        if backing is not None:
            rate, channels = backing.sample_rate, backing.channel_count
        else:
            rate, channels = take.sample_rate, take.channel_count
        vocal = conform(take.to_asset(), rate, channels)

        with self._lock:
            self._rate = rate
            self._channels = channels
            self._clock_frames = 0
        schedule = schedule_preview(self.clock(), self.current_time, config.latency_offset_ms, vocal.shape[0] / rate, self.lead_s)

        # Nothing is held until the device accepts the stream.
        stream = self._stream_factory(samplerate=rate, channels=channels, callback=self._callback)
        with self._lock:
            self._backing = backing.samples if backing is not None else None
            self._vocal = vocal
            self._gain = GainRamp(config.vocal_volume)
            self._schedule = schedule
        self._config = config
        self._stream = stream
        self.playing = True
        stream.start()
        logger.debug(
            "Preview from %.2fs: vocal at +%.3fs offset %.3fs (audible=%s)",
            schedule.seek_s,
            schedule.vocal_start_s - schedule.reference_s,
            schedule.vocal_offset_s,
            schedule.vocal_audible,
        )
        return schedule

    def stop(self) -> None:
        if not self.playing and self._stream is None:
            return
        stream, self._stream = self._stream, None
        self.playing = False
        try:
            if stream is not None:
                stream.stop()
                stream.close()
        finally:
            with self._lock:
                self._backing = None
                self._vocal = None
                self._gain = None
                self._schedule = None

    def toggle(self, config: MixConfig) -> bool:
        """Play/stop button; returns whether the preview is now playing."""
        if self.playing:
            self.stop()
        else:
            self.start(config)
        return self.playing

    def seek(self, position_s: float) -> None:
        self.current_time = min(max(position_s, 0.0), self.duration)
        if self.playing:
            self.start(self._config)

    def set_vocal_volume(self, volume: float) -> None:
        volume = clamp_vocal_volume(volume)
        self._config = MixConfig(vocal_volume=volume, latency_offset_ms=self._config.latency_offset_ms)
        with self._lock:
            gain, rate = self._gain, self._rate
        if gain is not None:
            gain.set_target(volume, int(round(self.ramp_s * rate)))

    def set_latency_offset(self, ms: int) -> None:
        """Takes effect on the next start or seek."""
        self._config = MixConfig(vocal_volume=self._config.vocal_volume, latency_offset_ms=clamp_latency_offset(ms))

    # -- clock --------------------------------------------------------------

    def clock(self) -> float:
        with self._lock:
            if not self._rate:
                return 0.0
            return self._clock_frames / self._rate

    def tick(self) -> float:
        """Advance `current_time` from the audio clock; stops itself at the end."""
        schedule = self._schedule
        if not self.playing or schedule is None:
            return self.current_time
        elapsed = max(self.clock() - schedule.reference_s, 0.0)
        current = schedule.seek_s + elapsed
        if current >= self.duration:
            self.current_time = self.duration
            self.stop()
            self.current_time = 0.0
        else:
            self.current_time = current
        return self.current_time

    # -- audio thread -------------------------------------------------------

    def _callback(self, outdata, frames, time_info, status) -> None:
        outdata[:] = self.render_block(frames)

    def render_block(self, frames: int) -> np.ndarray:
        with self._lock:
            block_start = self._clock_frames
            self._clock_frames += frames
            backing, vocal, gain, schedule = self._backing, self._vocal, self._gain, self._schedule
            rate, channels = self._rate, self._channels

        out = np.zeros((frames, max(channels, 1)), dtype=np.float32)
        if schedule is None:
            return out

        if backing is not None:
            start = int(round(schedule.reference_s * rate))
            _add_source(out, backing, start, int(round(schedule.seek_s * rate)), block_start)

        if vocal is not None and gain is not None and schedule.vocal_audible:
            voice = np.zeros_like(out)
            start = int(round(schedule.vocal_start_s * rate))
            _add_source(voice, vocal, start, int(round(schedule.vocal_offset_s * rate)), block_start)
            out += voice * gain.render(frames)[:, None]
        return out
