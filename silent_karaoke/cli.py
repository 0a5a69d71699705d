from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import typer

from silent_karaoke.app import audition, sing as sing_loop
from silent_karaoke.audio.buffers import Take
from silent_karaoke.audio.engine import AudioEngine
from silent_karaoke.audio.errors import AudioDecodeError
from silent_karaoke.audio.mixer import MixConfig, render_mix
from silent_karaoke.audio.wav import asset_to_wav
from silent_karaoke.config import load_config, save_config_lang, save_latency_offset, LANGS
from silent_karaoke.i18n import set_lang, t
from silent_karaoke.logging_setup import setup_logging
from silent_karaoke.lyrics.export import export_json, export_lrc, export_srt
from silent_karaoke.lyrics.model import LyricFormat
from silent_karaoke.lyrics.parse import load_lyrics, timeline_stats
from silent_karaoke.session import PURPOSE_MIX, export_filename


app = typer.Typer(no_args_is_help=True, add_completion=False)


@app.command()
def sing(
    backing: Path = typer.Argument(..., help="Backing track (any format libsndfile decodes)"),
    lyrics: Path | None = typer.Argument(None, help="Lyrics file (.lrc, .srt, .ass)"),
    out_dir: Path | None = typer.Option(None, "--out-dir", help="Where WAV files are written"),
    no_mix: bool = typer.Option(False, "--no-mix", help="Only export the vocal track"),
    volume: float | None = typer.Option(None, "--volume", help="Vocal volume in the mix (0-3)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    refresh_hz: float | None = typer.Option(None, "--refresh-hz", help="Lyric refresh rate (Hz)"),
    no_alt_screen: bool = typer.Option(False, "--no-alt-screen", help="Do not use alternate screen buffer"),
):
    """
    Sing along: plays the backing track, records the microphone and shows the
    lyrics word by word. Ctrl+C skips the outro and finishes the take.
    """
    cfg = load_config()
    if refresh_hz is not None:
        cfg = replace(cfg, refresh_hz=refresh_hz)
    if no_alt_screen:
        cfg = replace(cfg, use_alt_screen=False)
    if volume is not None:
        cfg = replace(cfg, vocal_volume=volume)

    setup_logging(debug)
    raise typer.Exit(code=sing_loop(cfg, backing, lyrics, out_dir=out_dir or cfg.output_dir, mix=not no_mix))


@app.command()
def parse(lyrics_path: Path):
    """Parse a lyrics file and print stats."""
    fmt = LyricFormat.from_path(lyrics_path)
    timeline = load_lyrics(lyrics_path, fmt)
    stats = timeline_stats(timeline, fmt)
    typer.echo(f"format={stats.format.value}")
    typer.echo(f"lines_total={stats.lines_total}")
    typer.echo(f"words_total={stats.words_total}")
    typer.echo(f"first_s={stats.first_s}")
    typer.echo(f"last_s={stats.last_s}")


@app.command()
def export(
    lyrics_path: Path,
    fmt: str = typer.Option("lrc", "--format", case_sensitive=False, help="lrc|srt|json"),
    out: Path | None = typer.Option(None, "--out", help="Output file (default: stdout)"),
):
    """Convert lyrics (LRC/SRT/ASS) to word-timed LRC, SRT or JSON."""
    timeline = load_lyrics(lyrics_path)
    fmt_l = fmt.lower()
    if fmt_l == "json":
        data = export_json(timeline)
    elif fmt_l == "lrc":
        data = export_lrc(timeline)
    elif fmt_l == "srt":
        data = export_srt(timeline)
    else:
        raise typer.BadParameter("format must be one of: lrc, srt, json")

    if out:
        out.write_text(data, encoding="utf-8")
    else:
        typer.echo(data, nl=False)


@app.command()
def mix(
    backing: Path,
    vocal: Path,
    latency_ms: int | None = typer.Option(None, "--latency-ms", help="Latency offset (-500..500 ms); default: saved value"),
    volume: float | None = typer.Option(None, "--volume", help="Vocal volume (0-3)"),
    bit_depth: int | None = typer.Option(None, "--bit-depth", help="16 or 32"),
    out: Path | None = typer.Option(None, "--out", help="Output WAV (default: output dir)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Mix a recorded vocal WAV onto a backing track."""
    cfg = load_config()
    setup_logging(debug)
    set_lang(cfg.lang)

    engine = AudioEngine(sample_rate=cfg.sample_rate)
    try:
        backing_asset = engine.decode(backing)
        vocal_asset = engine.decode(vocal)
    except AudioDecodeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    mix_config = MixConfig.clamped(
        volume if volume is not None else cfg.vocal_volume,
        latency_ms if latency_ms is not None else cfg.latency_offset_ms,
    )
    mixed = render_mix(backing_asset, Take.from_asset(vocal_asset), mix_config)
    if mixed is None:
        typer.echo(t("nothing_to_mix"), err=True)
        raise typer.Exit(code=1)

    depth = bit_depth or cfg.mix_bit_depth
    try:
        blob = asset_to_wav(mixed, depth)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    path = blob.write(out or cfg.output_dir / export_filename(PURPOSE_MIX))
    typer.echo(t("mix_exported", path=str(path)))


@app.command()
def preview(
    vocal: Path,
    backing: Path | None = typer.Argument(None, help="Backing track to play under the vocal"),
    seek: float = typer.Option(0.0, "--seek", help="Start position (s)"),
    latency_ms: int | None = typer.Option(None, "--latency-ms", help="Latency offset (-500..500 ms)"),
    volume: float | None = typer.Option(None, "--volume", help="Vocal volume (0-3)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Audition a vocal take (optionally over the backing track)."""
    cfg = load_config()
    setup_logging(debug)
    raise typer.Exit(
        code=audition(cfg, backing, vocal, seek_s=seek, latency_offset_ms=latency_ms, vocal_volume=volume)
    )


@app.command()
def config(
    lang: str | None = typer.Option(None, "--lang", help="UI language: EN or ZH"),
    latency_ms: int | None = typer.Option(None, "--latency-ms", help="Save latency offset (-500..500 ms)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show or change saved settings."""
    if lang is not None:
        if lang.upper() not in LANGS:
            raise typer.BadParameter(f"lang must be one of: {', '.join(LANGS)}")
        save_config_lang(lang)
        set_lang(lang)
        typer.echo(t("lang_saved", lang=lang.upper()))
    if latency_ms is not None:
        stored = save_latency_offset(latency_ms)
        typer.echo(t("latency_saved", ms=stored))

    cfg = load_config()
    if json_output:
        typer.echo(
            json.dumps(
                {
                    "lang": cfg.lang,
                    "latency_offset_ms": cfg.latency_offset_ms,
                    "output_dir": str(cfg.output_dir),
                    "config_dir": str(cfg.config_dir),
                },
                indent=2,
                ensure_ascii=False,
            )
        )
    elif lang is None and latency_ms is None:
        typer.echo(f"lang={cfg.lang}")
        typer.echo(f"latency_offset_ms={cfg.latency_offset_ms}")
        typer.echo(f"output_dir={cfg.output_dir}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
