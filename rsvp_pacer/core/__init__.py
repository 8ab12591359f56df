"""Core reading pipeline: models, analysis, tokenization, and pacing.

WHY: The core package is the stable heart of the reader. Everything in
it is pure, synchronous computation with no I/O, so it can be called
from any thread and tested without fixtures.

HOW: models.py defines the data structures; linguistics.py, orp.py and
text.py score and reshape single words; tokenizer.py builds the token
stream; punctuation.py, timing.py and rhythm.py feed engine.py, which
produces timed frames; pace.py and metrics.py derive reading figures.

RULES:
- No module here performs I/O or holds module-level mutable state
- Nothing here raises for malformed text or out-of-range indices
"""
