from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import soundfile as sf

from .buffers import AudioAsset
from .errors import AudioDecodeError, AudioError, MicrophoneUnavailable, PlaybackStartError

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 44100


def _sd():
    # PortAudio is loaded on first use so decoding/mixing work without it
    import sounddevice as sd

    return sd


@dataclass(frozen=True, slots=True)
class CaptureRequest:
    """
    Microphone request. Karaoke capture wants the raw signal, so every
    processing stage stays off; PortAudio delivers unprocessed input anyway.
    """

    sample_rate: int = DEFAULT_SAMPLE_RATE
    channel_count: int = 2
    echo_cancellation: bool = False
    noise_suppression: bool = False
    auto_gain_control: bool = False
    device: int | str | None = None


class AudioEngine:
    """
    Process-wide audio context: decoding, input/output streams and the
    backing-track transport. Open once, close on shutdown.
    """

    def __init__(self, sample_rate: int = DEFAULT_SAMPLE_RATE):
        self.sample_rate = sample_rate
        self._open = False
        self._playback_t0: float | None = None

    def __enter__(self) -> "AudioEngine":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if self._open:
            return
        self._open = True
        logger.debug("Audio engine opened (%d Hz)", self.sample_rate)

    def close(self) -> None:
        if not self._open:
            return
        self.stop_playback()
        self._open = False
        logger.debug("Audio engine closed")

    def _require_open(self) -> None:
        if not self._open:
            raise AudioError("audio engine is closed")

    # -- decoding -----------------------------------------------------------

    def decode(self, path: Path) -> AudioAsset:
        try:
            data, rate = sf.read(str(path), dtype="float32", always_2d=True)
        except (RuntimeError, OSError) as e:
            raise AudioDecodeError(f"Cannot decode {path.name}: {e}") from e
        if data.shape[0] == 0:
            raise AudioDecodeError(f"No audio frames in {path.name}")
        return AudioAsset(samples=data, sample_rate=int(rate))

    # -- input --------------------------------------------------------------

    def negotiate_channels(self, request: CaptureRequest) -> int:
        sd = _sd()
        try:
            info = sd.query_devices(request.device, "input")
        except (sd.PortAudioError, ValueError) as e:
            raise MicrophoneUnavailable(str(e)) from e
        reported = info.get("max_input_channels")
        if reported is None:
            return request.channel_count
        if int(reported) <= 0:
            raise MicrophoneUnavailable(f"Input device has no channels: {info.get('name', '?')}")
        return max(1, min(request.channel_count, int(reported)))

    def microphone_available(self, request: CaptureRequest) -> bool:
        try:
            self.negotiate_channels(request)
        except MicrophoneUnavailable as e:
            logger.warning("Microphone unavailable: %s", e)
            return False
        return True

    def open_input(self, request: CaptureRequest, channels: int, callback: Callable[..., None]) -> Any:
        self._require_open()
        sd = _sd()
        logger.debug(
            "Input request: %d ch @ %d Hz (echo_cancellation=%s noise_suppression=%s auto_gain=%s)",
            channels,
            request.sample_rate,
            request.echo_cancellation,
            request.noise_suppression,
            request.auto_gain_control,
        )
        try:
            stream = sd.InputStream(
                samplerate=request.sample_rate,
                channels=channels,
                dtype="float32",
                device=request.device,
                callback=callback,
            )
            stream.start()
        except sd.PortAudioError as e:
            raise MicrophoneUnavailable(str(e)) from e
        return stream

    # -- output -------------------------------------------------------------

    def output_stream(self, *, samplerate: int, channels: int, callback: Callable[..., None]) -> Any:
        self._require_open()
        sd = _sd()
        try:
            return sd.OutputStream(samplerate=samplerate, channels=channels, dtype="float32", callback=callback)
        except sd.PortAudioError as e:
            raise PlaybackStartError(str(e)) from e

    def play(self, asset: AudioAsset) -> None:
        """Start the backing track from the top."""
        self._require_open()
        sd = _sd()
        try:
            sd.play(asset.samples, asset.sample_rate)
        except sd.PortAudioError as e:
            raise PlaybackStartError(str(e)) from e
        self._playback_t0 = time.monotonic()

    def playback_position(self) -> float:
        if self._playback_t0 is None:
            return 0.0
        return time.monotonic() - self._playback_t0

    def stop_playback(self) -> None:
        if self._playback_t0 is None:
            return
        self._playback_t0 = None
        _sd().stop()
