"""RSVP Pacer: timed reading frames for rapid serial visual presentation.

WHY: Speed reading one word at a time only works when every word stays
on screen long enough to be recognised. Fixed words-per-minute timers
flash long words away and stall on "the". This package turns chapter
prose into display units whose durations follow word difficulty,
punctuation, and sentence rhythm.

HOW: Four-stage pipeline: tokenize (core.tokenizer) → annotate
(core.linguistics, core.orp) → pace (core.engine with core.timing and
core.rhythm) → export (pluggable exporters). Each stage is independently
testable and the whole core is pure, synchronous Python.

RULES:
- The core never raises for bad input; it degrades deterministically
- RsvpConfig is the only knob the engine reads; legacy preference
  migration lives in rsvp_pacer.preferences, outside the core
- Adding an output format = one new exporter module, no core changes
"""

__version__ = "0.1.0"
