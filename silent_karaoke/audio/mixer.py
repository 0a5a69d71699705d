from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .buffers import AudioAsset, Take, conform

logger = logging.getLogger(__name__)

LATENCY_OFFSET_RANGE_MS = (-500, 500)
VOCAL_VOLUME_RANGE = (0.0, 3.0)


def clamp_latency_offset(ms: int) -> int:
    lo, hi = LATENCY_OFFSET_RANGE_MS
    return min(max(int(ms), lo), hi)


def clamp_vocal_volume(volume: float) -> float:
    lo, hi = VOCAL_VOLUME_RANGE
    return min(max(float(volume), lo), hi)


@dataclass(frozen=True, slots=True)
class MixConfig:
    vocal_volume: float = 1.0
    latency_offset_ms: int = 0

    def __post_init__(self) -> None:
        lo, hi = VOCAL_VOLUME_RANGE
        if not lo <= self.vocal_volume <= hi:
            raise ValueError(f"vocal_volume out of range: {self.vocal_volume}")
        lo_ms, hi_ms = LATENCY_OFFSET_RANGE_MS
        if not lo_ms <= self.latency_offset_ms <= hi_ms:
            raise ValueError(f"latency_offset_ms out of range: {self.latency_offset_ms}")

    @classmethod
    def clamped(cls, vocal_volume: float, latency_offset_ms: int) -> "MixConfig":
        return cls(
            vocal_volume=clamp_vocal_volume(vocal_volume),
            latency_offset_ms=clamp_latency_offset(latency_offset_ms),
        )

    @property
    def offset_s(self) -> float:
        return self.latency_offset_ms / 1000


def vocal_placement(offset_s: float) -> tuple[float, float]:
    """
    (start, skip) for the vocal relative to backing time zero.

    A positive offset delays the vocal; a negative one starts it at once but
    skips that much of the recording.
    """
    if offset_s > 0:
        return offset_s, 0.0
    return 0.0, -offset_s


def render_mix(backing: AudioAsset | None, take: Take | None, config: MixConfig) -> AudioAsset | None:
    """
    Backing track plus the latency-shifted, gained vocal.

    The result has the backing's length, rate and channel layout. Returns None
    when there is no backing or the take is empty. Inputs are not modified.
    """
    if backing is None or take is None or take.is_empty:
        return None

    rate = backing.sample_rate
    out = backing.samples.astype(np.float32, copy=True)
    vocal = conform(take.to_asset(), rate, backing.channel_count)

    start_s, skip_s = vocal_placement(config.offset_s)
    start = int(round(start_s * rate))
    skip = int(round(skip_s * rate))

    n = min(out.shape[0] - start, vocal.shape[0] - skip)
    if n > 0:
        out[start : start + n] += vocal[skip : skip + n] * np.float32(config.vocal_volume)

    logger.debug(
        "Mixed %.2fs backing with %.2fs vocal (offset=%dms, volume=%.2f)",
        backing.duration,
        take.duration,
        config.latency_offset_ms,
        config.vocal_volume,
    )
    return AudioAsset(samples=out, sample_rate=rate)
