"""Persisted pacing preferences ↔ RsvpConfig.

WHY: Preferences are stored as flat key/value maps (JSON files, request
bodies) whose keys must stay stable even when RsvpConfig fields are
renamed. Older stores also carry a words-per-minute setting from before
tempo became the primary speed control. Both concerns belong at this
boundary so the engine only ever sees a canonical config.

HOW: PREF_KEYS maps every config field to its stable external key.
load_rsvp_config() reads a mapping, coerces each value to its field's
type, and applies the legacy base_wpm → tempo migration.
dump_rsvp_config() writes the inverse. migrate_preferences() rewrites a
stored mapping in place of the old key.

RULES:
- Unknown keys are ignored; missing keys take RsvpConfig defaults
- Uncoercible values raise ValueError naming the key
- Legacy tempo = max(10, int(60000 / base_wpm)); a missing or
  non-positive base_wpm gives the default tempo
- base_wpm on the returned config is always max(1, int(60000 / tempo))
- dump_rsvp_config() never writes the legacy base_wpm key
"""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, Mapping

from rsvp_pacer.core.models import BlinkMode, RsvpConfig

LEGACY_BASE_WPM_KEY = "base_wpm"
MIN_LEGACY_TEMPO_MS = 10

PREF_KEYS: Dict[str, str] = {
    "tempo_ms_per_word": "tempo_ms_per_word",
    "min_word_ms": "min_word_ms",
    "long_word_min_ms": "long_word_min_ms",
    "long_word_chars": "long_word_chars",
    "syllable_extra_ms": "syllable_extra_ms",
    "rarity_extra_max_ms": "rarity_extra_max_ms",
    "complexity_strength": "complexity_strength",
    "length_strength": "length_strength",
    "length_exponent": "length_exponent",
    "enable_phrase_chunking": "enable_phrase_chunking",
    "max_words_per_unit": "max_words_per_unit",
    "max_chars_per_unit": "max_chars_per_unit",
    "comma_pause_ms": "comma_pause_ms",
    "semicolon_pause_ms": "semicolon_pause_ms",
    "colon_pause_ms": "colon_pause_ms",
    "dash_pause_ms": "dash_pause_ms",
    "parentheses_pause_ms": "parentheses_pause_ms",
    "quote_pause_ms": "quote_pause_ms",
    "sentence_end_pause_ms": "sentence_end_pause_ms",
    "paragraph_pause_ms": "paragraph_pause_ms",
    "pause_scale_exponent": "pause_scale_exponent",
    "min_pause_scale": "min_pause_scale",
    "parenthetical_multiplier": "parenthetical_multiplier",
    "dialogue_multiplier": "dialogue_multiplier",
    "smoothing_alpha": "rhythm_smoothing_alpha",
    "max_speedup_factor": "rhythm_max_speedup_factor",
    "max_slowdown_factor": "rhythm_max_slowdown_factor",
    "orp_enabled": "orp_enabled",
    "start_delay_ms": "start_delay_ms",
    "end_delay_ms": "end_delay_ms",
    "ramp_up_frames": "ramp_up_frames",
    "ramp_down_frames": "ramp_down_frames",
    "blink_mode": "blink_mode",
    "words_per_frame": "words_per_frame",
    "max_chunk_length": "max_chunk_length",
    "punctuation_pause_factor": "punctuation_pause_factor",
    "long_word_multiplier": "long_word_multiplier",
    "use_adaptive_timing": "use_adaptive_timing",
    "use_clause_pausing": "use_clause_pausing",
    "use_dialogue_detection": "use_dialogue_detection",
    "complex_word_threshold": "complex_word_threshold",
    "clause_pause_factor": "clause_pause_factor",
}
"""RsvpConfig field name → stable preference key (base_wpm is derived, never stored)."""

_FIELD_TYPES = {f.name: f.type for f in dataclasses.fields(RsvpConfig)}
_DEFAULTS = RsvpConfig()


def _coerce(key: str, value: Any, type_name: str) -> Any:
    try:
        if type_name == "bool":
            if isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().lower() in ("true", "false"):
                return value.strip().lower() == "true"
            if isinstance(value, int) and value in (0, 1):
                return bool(value)
            raise ValueError(value)
        if type_name == "int":
            if isinstance(value, bool):
                raise ValueError(value)
            return int(value)
        if type_name == "float":
            if isinstance(value, bool):
                raise ValueError(value)
            return float(value)
        if type_name == "BlinkMode":
            return BlinkMode(str(value).strip().lower())
    except (TypeError, ValueError):
        raise ValueError(
            "Preference '{}' must be a valid {}, got {!r}".format(key, type_name, value)
        )
    return value


def tempo_from_legacy_wpm(base_wpm: Any) -> int:
    """Tempo for a legacy words-per-minute value (default tempo when unusable)."""
    if base_wpm is None:
        return _DEFAULTS.tempo_ms_per_word
    wpm = _coerce(LEGACY_BASE_WPM_KEY, base_wpm, "int")
    if wpm <= 0:
        return _DEFAULTS.tempo_ms_per_word
    return max(MIN_LEGACY_TEMPO_MS, int(60000.0 / wpm))


def derived_base_wpm(tempo_ms_per_word: int) -> int:
    return max(1, int(60000.0 / max(1, tempo_ms_per_word)))


def load_rsvp_config(prefs: Mapping[str, Any]) -> RsvpConfig:
    """Build a canonical RsvpConfig from a stored preference mapping."""
    values: Dict[str, Any] = {}
    for field_name, key in PREF_KEYS.items():
        if key in prefs and prefs[key] is not None:
            values[field_name] = _coerce(key, prefs[key], _FIELD_TYPES[field_name])

    if "tempo_ms_per_word" not in values:
        values["tempo_ms_per_word"] = tempo_from_legacy_wpm(prefs.get(LEGACY_BASE_WPM_KEY))
    values["base_wpm"] = derived_base_wpm(values["tempo_ms_per_word"])

    return RsvpConfig(**values)


def dump_rsvp_config(config: RsvpConfig) -> Dict[str, Any]:
    """Stable-key mapping for a config, JSON-serializable."""
    out: Dict[str, Any] = {}
    for field_name, key in PREF_KEYS.items():
        value = getattr(config, field_name)
        out[key] = value.value if isinstance(value, BlinkMode) else value
    return out


def migrate_preferences(prefs: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of stored preferences with base_wpm rewritten to tempo.

    An explicit tempo wins over the legacy value; the legacy key is
    dropped either way.
    """
    migrated = dict(prefs)
    if LEGACY_BASE_WPM_KEY not in migrated:
        return migrated
    legacy = migrated.pop(LEGACY_BASE_WPM_KEY)
    if PREF_KEYS["tempo_ms_per_word"] not in migrated:
        migrated[PREF_KEYS["tempo_ms_per_word"]] = tempo_from_legacy_wpm(legacy)
    return migrated
