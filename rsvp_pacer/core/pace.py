"""Words-per-minute estimate for a pacing configuration.

WHY: The engine is driven by tempo and a difficulty model, not by a
fixed WPM interval, so "how fast is this setting?" has no closed-form
answer. Running the engine over a representative passage gives one.

HOW: Tokenize a fixed sample passage (commas, semicolons, dashes, a
parenthetical, and quoted dialogue), generate frames with session ramps
and start/end delays switched off, and divide words by total time.

RULES:
- Result is round(words × 60000 / total_ms), at least 1
- Total time is floored at 1 ms; word count at 1
- Deterministic for a given config
"""

from __future__ import annotations

from dataclasses import replace

from rsvp_pacer.core.engine import PacingEngine
from rsvp_pacer.core.models import Chapter, RsvpConfig, TokenType
from rsvp_pacer.core.rhythm import round_half_up
from rsvp_pacer.core.tokenizer import Tokenizer

SAMPLE_TEXT = (
    "RSVP Pacer is built for calm comprehension, even at high speed. "
    "When a sentence turns—unexpectedly—your eyes should not feel rushed. "
    "Short words flow; longer words (especially technical ones) slow slightly. "
    "We pause at commas, breathe at semicolons, and settle at full stops. "
    "A parenthetical aside (like this) should read naturally, not abruptly. "
    "\"Quoted dialogue\" can move a bit faster, but remains legible."
)

_tokenizer = Tokenizer()
_engine = PacingEngine()


def steady_config(config: RsvpConfig) -> RsvpConfig:
    """The config without ramps or delays, i.e. mid-session pacing."""
    return replace(config, start_delay_ms=0, end_delay_ms=0, ramp_up_frames=0, ramp_down_frames=0)


def estimate_wpm(config: RsvpConfig) -> int:
    sample = Chapter(index=0, title="Sample", html_content="", plain_text=SAMPLE_TEXT)
    tokens = _tokenizer.tokenize(sample)
    word_count = max(1, sum(1 for t in tokens if t.type == TokenType.WORD))

    frames = _engine.generate_frames(tokens, 0, steady_config(config))
    total_ms = max(1, sum(f.duration_ms for f in frames))

    return max(1, round_half_up(word_count * 60000.0 / total_ms))
