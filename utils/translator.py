#!/usr/bin/env python3
"""
Translator Module

Loads user-facing strings from lang.yaml. The file has an `en` section and
an optional `custom` section; LOCALE_LANG=custom selects the custom strings
and any key missing there falls back to English, then to the key itself.
"""

import logging
import os

import yaml

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = 'en'
CUSTOM_LOCALE = 'custom'
DEFAULT_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'lang.yaml')

_translations = {DEFAULT_LOCALE: {}, CUSTOM_LOCALE: {}}
_active_locale = DEFAULT_LOCALE


def load_translations(path: str = DEFAULT_PATH, locale: str = DEFAULT_LOCALE):
    """
    Load the translation file and select the active locale

    A missing or unparsable file leaves empty tables behind so t() keeps
    working (it returns keys).
    """
    global _translations, _active_locale

    loaded = {}
    try:
        with open(path, encoding='utf-8') as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError("translation file must contain a mapping")
        logger.info(f"🌐 Loaded translations from {path}")
    except FileNotFoundError:
        logger.error(f"❌ Translation file not found at {path}")
        loaded = {}
    except (yaml.YAMLError, ValueError) as e:
        logger.error(f"❌ Could not parse translation file {path}: {str(e)}")
        loaded = {}

    for key in (DEFAULT_LOCALE, CUSTOM_LOCALE):
        if not isinstance(loaded.get(key), dict):
            if key == DEFAULT_LOCALE:
                logger.warning(f"⚠️ Default language section '{key}' missing in translations")
            loaded[key] = {}
    _translations = loaded

    locale = (locale or DEFAULT_LOCALE).lower()
    if locale == CUSTOM_LOCALE:
        _active_locale = CUSTOM_LOCALE
    else:
        if locale != DEFAULT_LOCALE:
            logger.warning(f"⚠️ Unsupported LOCALE_LANG '{locale}', using '{DEFAULT_LOCALE}'")
        _active_locale = DEFAULT_LOCALE
    return _active_locale


def _lookup(table, key):
    node = table
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node if isinstance(node, str) else None


def t(key: str, **kwargs) -> str:
    """Translate a dotted key, formatting {placeholders} from kwargs"""
    text = _lookup(_translations.get(_active_locale, {}), key)
    if text is None and _active_locale != DEFAULT_LOCALE:
        text = _lookup(_translations.get(DEFAULT_LOCALE, {}), key)
    if text is None:
        logger.debug(f"Missing translation for '{key}'")
        return key
    try:
        return text.format(**kwargs)
    except (KeyError, IndexError) as e:
        logger.warning(f"⚠️ Placeholder error in translation '{key}': {str(e)}")
        return text
