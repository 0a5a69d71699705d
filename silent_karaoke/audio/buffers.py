from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True, eq=False)
class AudioAsset:
    """Decoded audio, shaped (frames, channels), float32. Holds a read-only copy of `samples`."""

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        samples = np.array(self.samples, dtype=np.float32)
        if samples.ndim != 2:
            raise ValueError(f"expected (frames, channels) samples, got shape {samples.shape}")
        samples.flags.writeable = False
        object.__setattr__(self, "samples", samples)

    @property
    def channel_count(self) -> int:
        return int(self.samples.shape[1])

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate


@dataclass(frozen=True, slots=True, eq=False)
class Take:
    """A frozen capture session: interleaved float32 samples (L,R,L,R... for stereo)."""

    samples: np.ndarray
    channel_count: int
    sample_rate: int

    def __post_init__(self) -> None:
        samples = np.array(self.samples, dtype=np.float32)
        samples.flags.writeable = False
        object.__setattr__(self, "samples", samples)

    @classmethod
    def from_asset(cls, asset: AudioAsset) -> "Take":
        # C-ordered (frames, channels) flattens to interleaved
        flat = np.ascontiguousarray(asset.samples, dtype=np.float32).reshape(-1)
        return cls(samples=flat, channel_count=asset.channel_count, sample_rate=asset.sample_rate)

    @property
    def frame_count(self) -> int:
        return int(self.samples.size // self.channel_count)

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate

    @property
    def is_empty(self) -> bool:
        return self.frame_count == 0

    def to_asset(self) -> AudioAsset:
        n = self.frame_count
        frames = self.samples[: n * self.channel_count].reshape(n, self.channel_count)
        return AudioAsset(samples=frames, sample_rate=self.sample_rate)


def match_channels(samples: np.ndarray, channels: int) -> np.ndarray:
    """
    Map (frames, c_in) to (frames, channels) as a new array.

    mono -> stereo duplicates, stereo -> mono averages; other layouts copy the
    shared channels and leave the rest silent.
    """
    c_in = samples.shape[1]
    if c_in == channels:
        return samples.astype(np.float32, copy=True)
    if c_in == 1 and channels == 2:
        return np.repeat(samples, 2, axis=1).astype(np.float32)
    if c_in == 2 and channels == 1:
        return samples.mean(axis=1, keepdims=True).astype(np.float32)
    out = np.zeros((samples.shape[0], channels), dtype=np.float32)
    shared = min(c_in, channels)
    out[:, :shared] = samples[:, :shared]
    return out


def resample(samples: np.ndarray, src_rate: int, dst_rate: int) -> np.ndarray:
    """Linear-interpolation resample of (frames, channels)."""
    if src_rate == dst_rate or samples.shape[0] == 0:
        return samples.astype(np.float32, copy=True)
    n_in = samples.shape[0]
    n_out = int(round(n_in * dst_rate / src_rate))
    positions = np.arange(n_out) * (src_rate / dst_rate)
    src_idx = np.arange(n_in)
    out = np.empty((n_out, samples.shape[1]), dtype=np.float32)
    for c in range(samples.shape[1]):
        out[:, c] = np.interp(positions, src_idx, samples[:, c])
    return out


def conform(asset: AudioAsset, sample_rate: int, channels: int) -> np.ndarray:
    """Copy of `asset` resampled and channel-mapped to the target layout."""
    return match_channels(resample(asset.samples, asset.sample_rate, sample_rate), channels)
