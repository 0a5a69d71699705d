from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import numpy as np

from silent_karaoke.audio.buffers import AudioAsset
from silent_karaoke.audio.errors import AudioDecodeError, MicrophoneUnavailable, PlaybackStartError


class FakeStream:
    """
    Stand-in for a PortAudio stream.

    Keeps the constructor kwargs so tests can reach the callback and drive
    it by hand.
    """

    def __init__(self, **kwargs: Any):
        self.kwargs = kwargs
        self.callback: Callable[..., None] | None = kwargs.get("callback")
        self.started = False
        self.stop_calls = 0
        self.closed = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stop_calls += 1
        self.started = False

    def close(self) -> None:
        self.closed = True

    def feed(self, block: np.ndarray) -> None:
        """Deliver an input block as the audio thread would."""
        assert self.callback is not None
        self.callback(block, block.shape[0], None, None)


class FakeEngine:
    """
    Mock audio engine for testing.

    Simulates decode, a microphone with `channels` inputs and the backing
    transport, whose position tests set directly.
    """

    def __init__(
        self,
        *,
        channels: int = 2,
        mic_ok: bool = True,
        play_fails: bool = False,
        assets: dict[str, AudioAsset] | None = None,
    ):
        self.channels = channels
        self.mic_ok = mic_ok
        self.play_fails = play_fails
        self.assets = dict(assets or {})
        self.input_streams: list[FakeStream] = []
        self.output_streams: list[FakeStream] = []
        self.played: list[AudioAsset] = []
        self.playing = False
        self.position = 0.0
        self.closed = False

    def __enter__(self) -> "FakeEngine":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop_playback()
        self.closed = True

    def decode(self, path: Path) -> AudioAsset:
        try:
            return self.assets[Path(path).name]
        except KeyError:
            raise AudioDecodeError(f"Cannot decode {Path(path).name}") from None

    def negotiate_channels(self, request) -> int:
        if not self.mic_ok:
            raise MicrophoneUnavailable("permission denied")
        return min(request.channel_count, self.channels)

    def microphone_available(self, request) -> bool:
        return self.mic_ok

    def open_input(self, request, channels: int, callback) -> FakeStream:
        stream = FakeStream(samplerate=request.sample_rate, channels=channels, callback=callback)
        stream.start()
        self.input_streams.append(stream)
        return stream

    def output_stream(self, *, samplerate: int, channels: int, callback) -> FakeStream:
        stream = FakeStream(samplerate=samplerate, channels=channels, callback=callback)
        self.output_streams.append(stream)
        return stream

    def play(self, asset: AudioAsset) -> None:
        if self.play_fails:
            raise PlaybackStartError("device busy")
        self.played.append(asset)
        self.playing = True

    def playback_position(self) -> float:
        return self.position

    def stop_playback(self) -> None:
        self.playing = False


def tone(frames: int, channels: int = 1, value: float = 1.0, sample_rate: int = 1000) -> AudioAsset:
    return AudioAsset(samples=np.full((frames, channels), value, dtype=np.float32), sample_rate=sample_rate)
