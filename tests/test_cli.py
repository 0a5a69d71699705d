from __future__ import annotations

import json

import numpy as np
import pytest
import soundfile as sf
from typer.testing import CliRunner

from silent_karaoke.audio.wav import read_wav_header
from silent_karaoke.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("SILENT_KARAOKE_OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.delenv("SILENT_KARAOKE_LANG", raising=False)


@pytest.fixture
def lrc_file(tmp_path):
    p = tmp_path / "song.lrc"
    p.write_text("[00:01.00]hello [00:01.50]world\n[00:04.00]bye\n", encoding="utf-8")
    return p


def test_parse_prints_stats(lrc_file):
    result = runner.invoke(app, ["parse", str(lrc_file)])
    assert result.exit_code == 0, result.output
    assert "format=lrc" in result.output
    assert "lines_total=2" in result.output
    assert "words_total=3" in result.output


def test_export_json(lrc_file):
    result = runner.invoke(app, ["export", str(lrc_file), "--format", "json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert [ln["text"] for ln in data["lines"]] == ["hello world", "bye"]


def test_export_srt_to_file(lrc_file, tmp_path):
    out = tmp_path / "song.srt"
    result = runner.invoke(app, ["export", str(lrc_file), "--format", "srt", "--out", str(out)])
    assert result.exit_code == 0, result.output
    assert out.read_text(encoding="utf-8").startswith("1\n00:00:01,000 --> ")


def test_export_rejects_unknown_format(lrc_file):
    result = runner.invoke(app, ["export", str(lrc_file), "--format", "xml"])
    assert result.exit_code != 0


def test_config_roundtrip():
    result = runner.invoke(app, ["config", "--lang", "zh", "--latency-ms", "700"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["config", "--json"])
    data = json.loads(result.output)
    assert data["lang"] == "ZH"
    assert data["latency_offset_ms"] == 500


def test_config_rejects_unknown_lang():
    result = runner.invoke(app, ["config", "--lang", "xx"])
    assert result.exit_code != 0


def test_mix_command(tmp_path):
    rate = 8000
    backing = tmp_path / "backing.wav"
    vocal = tmp_path / "vocal.wav"
    sf.write(str(backing), np.zeros((rate, 2), dtype=np.float32), rate, subtype="FLOAT")
    sf.write(str(vocal), np.full(rate // 2, 0.5, dtype=np.float32), rate, subtype="FLOAT")
    out = tmp_path / "mixed.wav"

    result = runner.invoke(
        app,
        ["mix", str(backing), str(vocal), "--latency-ms", "100", "--bit-depth", "16", "--out", str(out)],
    )

    assert result.exit_code == 0, result.output
    header = read_wav_header(out.read_bytes())
    assert header.channel_count == 2
    assert header.bit_depth == 16
    assert header.data_size == rate * 2 * 2
    data, _ = sf.read(str(out), dtype="float32")
    np.testing.assert_allclose(data[: rate // 10], 0.0)
    np.testing.assert_allclose(data[rate // 10 : rate // 10 + rate // 2], 0.5, atol=1e-4)


def test_mix_missing_input(tmp_path):
    result = runner.invoke(app, ["mix", str(tmp_path / "nope.wav"), str(tmp_path / "nope2.wav")])
    assert result.exit_code == 1
