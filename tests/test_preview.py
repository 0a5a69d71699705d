from __future__ import annotations

import numpy as np
import pytest

from silent_karaoke.audio.buffers import Take
from silent_karaoke.audio.errors import PlaybackStartError
from silent_karaoke.audio.mixer import MixConfig
from silent_karaoke.audio.preview import GainRamp, PreviewEngine, schedule_preview
from tests.mocks.audio_mock import FakeStream, tone

RATE = 1000
BLOCK = 100


def _take(frames: int, value: float = 1.0) -> Take:
    return Take(samples=np.full(frames, value, dtype=np.float32), channel_count=1, sample_rate=RATE)


class StreamFactory:
    def __init__(self):
        self.streams: list[FakeStream] = []

    def __call__(self, **kwargs):
        stream = FakeStream(**kwargs)
        self.streams.append(stream)
        return stream


@pytest.fixture
def factory():
    return StreamFactory()


@pytest.fixture
def preview(factory):
    engine = PreviewEngine(factory, lead_s=0.1, ramp_s=0.05)
    engine.load(_take(500), tone(1000, value=0.5))
    return engine


class TestSchedule:
    def test_zero_offset(self):
        s = schedule_preview(now_s=2.0, seek_s=1.5, latency_offset_ms=0, vocal_duration_s=10.0)
        assert s.reference_s == pytest.approx(2.1)
        assert s.vocal_start_s == s.reference_s
        assert s.vocal_offset_s == pytest.approx(1.5)

    def test_positive_offset_inside_preroll(self):
        s = schedule_preview(now_s=0.0, seek_s=0.1, latency_offset_ms=300, vocal_duration_s=10.0)
        assert s.vocal_start_s == pytest.approx(s.reference_s + 0.2)
        assert s.vocal_offset_s == 0.0

    def test_positive_offset_boundary(self):
        s = schedule_preview(now_s=0.0, seek_s=0.3, latency_offset_ms=300, vocal_duration_s=10.0)
        assert s.vocal_start_s == s.reference_s
        assert s.vocal_offset_s == 0.0

    def test_positive_offset_after_preroll(self):
        s = schedule_preview(now_s=0.0, seek_s=1.0, latency_offset_ms=300, vocal_duration_s=10.0)
        assert s.vocal_start_s == s.reference_s
        assert s.vocal_offset_s == pytest.approx(0.7)

    def test_negative_offset(self):
        s = schedule_preview(now_s=0.0, seek_s=1.0, latency_offset_ms=-200, vocal_duration_s=10.0)
        assert s.vocal_start_s == s.reference_s
        assert s.vocal_offset_s == pytest.approx(1.2)

    def test_vocal_past_its_end_is_silent(self):
        s = schedule_preview(now_s=0.0, seek_s=5.0, latency_offset_ms=0, vocal_duration_s=2.0)
        assert not s.vocal_audible


def test_gain_ramp_is_linear():
    ramp = GainRamp(1.0)
    ramp.set_target(0.0, 4)
    np.testing.assert_allclose(ramp.render(6), [0.75, 0.5, 0.25, 0.0, 0.0, 0.0])
    assert ramp.target == 0.0
    np.testing.assert_allclose(ramp.render(2), [0.0, 0.0])


def test_gain_ramp_immediate():
    ramp = GainRamp(1.0)
    ramp.set_target(2.0, 0)
    np.testing.assert_allclose(ramp.render(3), 2.0)


class TestPreviewEngine:
    def test_duration_is_longer_source(self, preview):
        assert preview.duration == pytest.approx(1.0)
        assert preview.loaded

    def test_start_opens_stream_in_backing_layout(self, preview, factory):
        schedule = preview.start(MixConfig())
        assert schedule is not None
        assert preview.playing
        (stream,) = factory.streams
        assert stream.started
        assert stream.kwargs["samplerate"] == RATE
        assert stream.kwargs["channels"] == 1

    def test_lead_then_both_sources(self, preview):
        preview.start(MixConfig())
        np.testing.assert_allclose(preview.render_block(BLOCK), 0.0)
        np.testing.assert_allclose(preview.render_block(BLOCK), 1.5)

    def test_positive_offset_delays_vocal(self, preview):
        preview.start(MixConfig(latency_offset_ms=200))
        preview.render_block(BLOCK)
        np.testing.assert_allclose(preview.render_block(BLOCK), 0.5)
        np.testing.assert_allclose(preview.render_block(BLOCK), 0.5)
        np.testing.assert_allclose(preview.render_block(BLOCK), 1.5)

    def test_callback_fills_outdata(self, preview, factory):
        preview.start(MixConfig())
        preview.render_block(BLOCK)
        outdata = np.zeros((BLOCK, 1), dtype=np.float32)
        factory.streams[0].callback(outdata, BLOCK, None, None)
        np.testing.assert_allclose(outdata, 1.5)

    def test_tick_follows_audio_clock(self, preview):
        preview.start(MixConfig())
        preview.render_block(BLOCK)
        preview.render_block(BLOCK)
        assert preview.tick() == pytest.approx(0.1)

    def test_auto_stop_at_end_resets_position(self, preview, factory):
        preview.start(MixConfig())
        for _ in range(12):
            preview.render_block(BLOCK)
        assert preview.tick() == 0.0
        assert not preview.playing
        stream = factory.streams[0]
        assert stream.stop_calls == 1
        assert stream.closed

    def test_stop_is_idempotent(self, preview, factory):
        preview.start(MixConfig())
        preview.stop()
        preview.stop()
        assert factory.streams[0].stop_calls == 1
        np.testing.assert_allclose(preview.render_block(BLOCK), 0.0)

    def test_toggle(self, preview):
        assert preview.toggle(MixConfig()) is True
        assert preview.toggle(MixConfig()) is False

    def test_seek_while_playing_restarts(self, preview, factory):
        preview.start(MixConfig())
        preview.seek(0.25)
        assert len(factory.streams) == 2
        assert factory.streams[0].closed
        assert preview.current_time == pytest.approx(0.25)

    def test_latency_change_used_by_next_seek(self, preview):
        preview.start(MixConfig())
        preview.set_latency_offset(300)
        preview.seek(0.5)
        assert preview._schedule.vocal_offset_s == pytest.approx(0.2)

    def test_failed_stream_holds_no_audio(self, preview):
        def refuse(**kwargs):
            raise PlaybackStartError("device busy")

        preview._stream_factory = refuse
        with pytest.raises(PlaybackStartError):
            preview.start(MixConfig())

        assert not preview.playing
        assert preview._backing is None
        assert preview._vocal is None
        assert preview._schedule is None
        np.testing.assert_allclose(preview.render_block(BLOCK), 0.0)

    def test_seek_is_clamped(self, preview):
        preview.seek(5.0)
        assert preview.current_time == pytest.approx(1.0)
        preview.seek(-1.0)
        assert preview.current_time == 0.0

    def test_volume_ramps_to_silence(self, preview):
        preview.start(MixConfig())
        preview.render_block(BLOCK)
        preview.set_vocal_volume(0.0)
        preview.render_block(BLOCK)  # 50ms ramp happens here
        np.testing.assert_allclose(preview.render_block(BLOCK), 0.5)

    def test_start_without_take(self, factory):
        engine = PreviewEngine(factory)
        assert engine.start(MixConfig()) is None
        assert factory.streams == []

    def test_vocal_only_preview(self, factory):
        engine = PreviewEngine(factory, lead_s=0.0)
        engine.load(_take(300, value=0.5), None)
        engine.start(MixConfig())
        assert engine.duration == pytest.approx(0.3)
        np.testing.assert_allclose(engine.render_block(BLOCK), 0.5)

    def test_unload(self, preview):
        preview.start(MixConfig())
        preview.unload()
        assert not preview.loaded
        assert not preview.playing
        assert preview.duration == 0.0
