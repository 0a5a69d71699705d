from __future__ import annotations

import logging
import queue
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

import numpy as np

from .buffers import Take

if TYPE_CHECKING:
    from .engine import AudioEngine, CaptureRequest

logger = logging.getLogger(__name__)

FRAME_SIZE = 4096
MAX_PENDING_FRAMES = 1024


class FrameChunker:
    """
    Producer side of the capture path; runs inside the input stream callback.

    Interleaves the first two input channels (or takes channel 0) into a
    preallocated frame and posts a copy each time it fills up. A partly
    filled frame is never posted.
    """

    def __init__(self, post: Callable[[np.ndarray], None], frame_size: int = FRAME_SIZE):
        self._post = post
        self._buffer = np.zeros(frame_size, dtype=np.float32)
        self._fill = 0

    def push(self, block: np.ndarray) -> None:
        if block.shape[1] >= 2:
            flat = block[:, :2].reshape(-1)
        else:
            flat = block[:, 0]

        size = self._buffer.size
        i = 0
        n = flat.size
        while i < n:
            k = min(size - self._fill, n - i)
            self._buffer[self._fill : self._fill + k] = flat[i : i + k]
            self._fill += k
            i += k
            if self._fill == size:
                self._post(self._buffer.copy())
                self._fill = 0


@dataclass(eq=False)
class CaptureSession:
    """
    Frames of one start-to-stop recording.

    `post` is the producer's non-blocking handoff; `drain` moves pending
    frames into `frames` on the consumer side. Each session owns its inbox,
    so a stale producer can never write into a newer session.
    """

    channel_count: int
    sample_rate: int
    max_pending: int = MAX_PENDING_FRAMES
    frames: list[np.ndarray] = field(default_factory=list)
    active: bool = True
    dropped_frames: int = 0
    _inbox: queue.Queue = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._inbox = queue.Queue(maxsize=self.max_pending)

    def post(self, frame: np.ndarray) -> None:
        if not self.active:
            return
        try:
            self._inbox.put_nowait(frame)
        except queue.Full:
            self.dropped_frames += 1

    def drain(self) -> int:
        n = 0
        while True:
            try:
                frame = self._inbox.get_nowait()
            except queue.Empty:
                break
            self.frames.append(frame)
            n += 1
        return n

    def freeze(self) -> Take:
        """Stop accepting frames and concatenate them in arrival order."""
        self.active = False
        self.drain()
        if self.dropped_frames:
            logger.warning("Capture dropped %d frame(s); take is shorter", self.dropped_frames)
        if self.frames:
            samples = np.concatenate(self.frames)
        else:
            samples = np.zeros(0, dtype=np.float32)
        return Take(samples=samples, channel_count=self.channel_count, sample_rate=self.sample_rate)


class Recorder:
    """Owns the input stream and the capture session; one recording at a time."""

    def __init__(
        self,
        engine: "AudioEngine",
        request: "CaptureRequest",
        *,
        frame_size: int = FRAME_SIZE,
        max_pending: int = MAX_PENDING_FRAMES,
    ):
        self.engine = engine
        self.request = request
        self.frame_size = frame_size
        self.max_pending = max_pending
        self.session: CaptureSession | None = None
        self._stream: Any = None

    @property
    def recording(self) -> bool:
        return self.session is not None and self.session.active

    def start(self) -> CaptureSession:
        # never let two producers run
        self.teardown()

        channels = self.engine.negotiate_channels(self.request)
        session = CaptureSession(
            channel_count=channels,
            sample_rate=self.request.sample_rate,
            max_pending=self.max_pending,
        )
        chunker = FrameChunker(session.post, frame_size=self.frame_size)

        def _on_input(indata, frames, time_info, status):
            chunker.push(indata)

        self._stream = self.engine.open_input(self.request, channels, _on_input)
        self.session = session
        logger.info("Recording: %d channel(s) @ %d Hz", channels, session.sample_rate)
        return session

    def drain(self) -> int:
        return self.session.drain() if self.session is not None else 0

    def stop(self) -> Take | None:
        """Close the input and freeze the session; None when nothing was recording."""
        session = self.session
        if session is None:
            return None
        self._close_stream()
        self.session = None
        take = session.freeze()
        logger.info("Recording stopped: %.2fs captured", take.duration)
        return take

    def teardown(self) -> None:
        """Drop any recording in progress without producing a take."""
        self._close_stream()
        if self.session is not None:
            self.session.active = False
            self.session = None

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
