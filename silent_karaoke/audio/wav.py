from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .buffers import AudioAsset
from .errors import WavFormatError

HEADER_SIZE = 44
FORMAT_PCM = 1
FORMAT_IEEE_FLOAT = 3
BIT_DEPTHS = (16, 32)

# RIFF size, WAVE, fmt chunk (16 bytes), data chunk header
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True, slots=True)
class WavBlob:
    data: bytes
    sample_rate: int
    channel_count: int
    bit_depth: int

    def write(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.data)
        return path


@dataclass(frozen=True, slots=True)
class WavHeader:
    format_tag: int
    channel_count: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bit_depth: int
    data_size: int


def interleave(left: np.ndarray, right: np.ndarray) -> np.ndarray:
    """L,R,L,R... from two equally long channel arrays."""
    left = np.asarray(left, dtype=np.float32)
    right = np.asarray(right, dtype=np.float32)
    if left.shape != right.shape:
        raise ValueError(f"channel length mismatch: {left.shape} vs {right.shape}")
    out = np.empty(left.size * 2, dtype=np.float32)
    out[0::2] = left
    out[1::2] = right
    return out


def _to_pcm16(samples: np.ndarray) -> bytes:
    s = np.clip(np.nan_to_num(samples.astype(np.float64), nan=0.0), -1.0, 1.0)
    scaled = np.where(s < 0, s * 32768.0, s * 32767.0)
    # astype truncates toward zero
    return scaled.astype("<i2").tobytes()


def encode_wav(
    samples: np.ndarray,
    sample_rate: int,
    channel_count: int = 1,
    bit_depth: int = 32,
) -> WavBlob:
    """
    Canonical 44-byte-header WAV.

    `samples` is interleaved (a C-ordered (frames, channels) array works too).
    32-bit writes IEEE float (format 3), 16-bit writes integer PCM (format 1).
    """
    if bit_depth not in BIT_DEPTHS:
        raise ValueError(f"Unsupported bit depth: {bit_depth} (expected 16 or 32)")
    if bit_depth == 32:
        fmt = FORMAT_IEEE_FLOAT
        payload = np.asarray(samples, dtype="<f4").reshape(-1).tobytes()
    else:
        fmt = FORMAT_PCM
        payload = _to_pcm16(np.asarray(samples).reshape(-1))

    bytes_per_sample = bit_depth // 8
    data_size = len(payload)
    header = _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        fmt,
        channel_count,
        sample_rate,
        sample_rate * channel_count * bytes_per_sample,
        channel_count * bytes_per_sample,
        bit_depth,
        b"data",
        data_size,
    )
    return WavBlob(data=header + payload, sample_rate=sample_rate, channel_count=channel_count, bit_depth=bit_depth)


def asset_to_wav(asset: AudioAsset, bit_depth: int = 32) -> WavBlob:
    if asset.channel_count == 2:
        flat = interleave(asset.samples[:, 0], asset.samples[:, 1])
    else:
        flat = np.ascontiguousarray(asset.samples).reshape(-1)
    return encode_wav(flat, asset.sample_rate, asset.channel_count, bit_depth)


def read_wav_header(data: bytes) -> WavHeader:
    if len(data) < HEADER_SIZE:
        raise WavFormatError(f"WAV too short: {len(data)} bytes")
    (riff, _riff_size, wave, fmt_id, fmt_size, fmt_tag, channels, rate, byte_rate, align, bits, data_id, data_size) = (
        _HEADER.unpack_from(data)
    )
    if riff != b"RIFF" or wave != b"WAVE":
        raise WavFormatError("Not a RIFF/WAVE file")
    if fmt_id != b"fmt " or fmt_size != 16 or data_id != b"data":
        raise WavFormatError("Not a canonical 44-byte WAV header")
    return WavHeader(
        format_tag=fmt_tag,
        channel_count=channels,
        sample_rate=rate,
        byte_rate=byte_rate,
        block_align=align,
        bit_depth=bits,
        data_size=data_size,
    )
