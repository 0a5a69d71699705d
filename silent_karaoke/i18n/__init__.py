"""
UI strings, one JSON catalog per language beside this module.

English is the base catalog: other languages only override what they
translate, so a key missing from zh.json still renders in English.
"""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from importlib.resources import files

logger = logging.getLogger(__name__)

BASE_LANG = "en"
_lang = BASE_LANG


def available_langs() -> tuple[str, ...]:
    return tuple(sorted(p.name[:-5] for p in files(__name__).iterdir() if p.name.endswith(".json")))


@lru_cache(maxsize=None)
def catalog(lang: str) -> dict[str, str]:
    try:
        own = json.loads((files(__name__) / f"{lang}.json").read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Cannot load %s strings: %s", lang, e)
        own = {}
    if lang == BASE_LANG:
        return own
    return {**catalog(BASE_LANG), **own}


def set_lang(lang: str | None) -> str:
    global _lang
    code = (lang or "").strip().lower()
    if code not in available_langs():
        code = BASE_LANG
    _lang = code
    return code


def current_lang() -> str:
    return _lang


def t(key: str, **kwargs: str | int | float) -> str:
    """Catalog text for `key` (the key itself when unknown), formatted with kwargs."""
    template = catalog(_lang).get(key, key)
    if not kwargs:
        return template
    try:
        return template.format(**kwargs)
    except (KeyError, IndexError):
        logger.debug("Placeholders of %r not filled by %s", key, sorted(kwargs))
        return template
