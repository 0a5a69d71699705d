from __future__ import annotations

import json
import logging
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any

from silent_karaoke.audio.mixer import clamp_latency_offset, clamp_vocal_volume
from silent_karaoke.audio.wav import BIT_DEPTHS
from silent_karaoke.i18n import available_langs

logger = logging.getLogger(__name__)

LATENCY_SETTING_KEY = "latency_offset_ms"
LANGS = tuple(code.upper() for code in available_langs())


def _config_dir() -> Path:
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "silent-karaoke"
    return Path.home() / ".config" / "silent-karaoke"


def _config_file() -> Path:
    return _config_dir() / "config.json"


@dataclass(frozen=True)
class AppConfig:
    # Storage
    config_dir: Path
    output_dir: Path

    # Locale
    lang: str

    # Mix
    latency_offset_ms: int
    vocal_volume: float

    # Capture / export
    sample_rate: int
    capture_channels: int
    frame_size: int
    capture_queue_frames: int
    vocal_bit_depth: int
    mix_bit_depth: int

    # Preview
    preview_lead_s: float
    gain_ramp_s: float

    # Rendering
    refresh_hz: float
    use_alt_screen: bool


def load_config() -> AppConfig:
    # XDG base dir fallback
    out_env = os.getenv("SILENT_KARAOKE_OUTPUT_DIR")
    output_dir = Path(out_env) if out_env else Path.home() / "Music" / "silent-karaoke"

    config_dir = _config_dir()
    settings = _read_settings(config_dir)

    return AppConfig(
        config_dir=config_dir,
        output_dir=output_dir,
        lang=_load_lang(settings),
        latency_offset_ms=_load_latency_offset(settings),
        vocal_volume=clamp_vocal_volume(float(os.getenv("SILENT_KARAOKE_VOCAL_VOLUME", "1.0"))),
        sample_rate=int(os.getenv("SILENT_KARAOKE_SAMPLE_RATE", "44100")),
        capture_channels=int(os.getenv("SILENT_KARAOKE_CHANNELS", "2")),
        frame_size=int(os.getenv("SILENT_KARAOKE_FRAME_SIZE", "4096")),
        capture_queue_frames=int(os.getenv("SILENT_KARAOKE_QUEUE_FRAMES", "1024")),
        vocal_bit_depth=_load_bit_depth("SILENT_KARAOKE_VOCAL_BIT_DEPTH"),
        mix_bit_depth=_load_bit_depth("SILENT_KARAOKE_MIX_BIT_DEPTH"),
        preview_lead_s=float(os.getenv("SILENT_KARAOKE_PREVIEW_LEAD", "0.1")),
        gain_ramp_s=float(os.getenv("SILENT_KARAOKE_GAIN_RAMP", "0.05")),
        refresh_hz=float(os.getenv("SILENT_KARAOKE_REFRESH_HZ", "30.0")),
        use_alt_screen=os.getenv("SILENT_KARAOKE_ALT_SCREEN", "1") not in ("0", "false", "False"),
    )


def _read_settings(config_dir: Path) -> dict[str, Any]:
    cfg_path = config_dir / "config.json"
    if not cfg_path.exists():
        return {}
    try:
        data = json.loads(cfg_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", cfg_path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _load_lang(settings: dict[str, Any]) -> str:
    # Priority: config.json → SILENT_KARAOKE_LANG → "EN"
    raw = str(settings.get("lang") or "").upper()
    if raw in LANGS:
        return raw
    env_lang = os.getenv("SILENT_KARAOKE_LANG")
    if env_lang and env_lang.upper() in LANGS:
        return env_lang.upper()
    return "EN"


def _load_latency_offset(settings: dict[str, Any]) -> int:
    raw = settings.get(LATENCY_SETTING_KEY, 0)
    try:
        return clamp_latency_offset(int(raw))
    except (TypeError, ValueError):
        logger.warning("Invalid %s in settings: %r", LATENCY_SETTING_KEY, raw)
        return 0


def _load_bit_depth(env_name: str) -> int:
    raw = os.getenv(env_name, "32")
    try:
        depth = int(raw)
    except ValueError:
        depth = 0
    if depth not in BIT_DEPTHS:
        logger.warning("Invalid %s=%r, using 32-bit float", env_name, raw)
        return 32
    return depth


def _update_settings(key: str, value: Any) -> None:
    cfg_path = _config_file()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    data = _read_settings(cfg_path.parent)
    data[key] = value
    cfg_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def save_config_lang(lang: str) -> None:
    _update_settings("lang", lang.upper())


def save_latency_offset(ms: int) -> int:
    """Persist the latency offset (clamped to the supported range); returns the stored value."""
    value = clamp_latency_offset(ms)
    _update_settings(LATENCY_SETTING_KEY, value)
    return value
