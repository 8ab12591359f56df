"""Tests for rhythm smoothing, flow, session ramps, and blink frames."""

from dataclasses import replace

from rsvp_pacer.core.models import BlinkMode, Frame, RsvpConfig
from rsvp_pacer.core.rhythm import (
    BLINK_TEXT,
    FlowState,
    RhythmState,
    apply_blink_separation,
    apply_session_ramps,
    round_half_up,
    target_blink_ms,
)
from rsvp_pacer.core.tokenizer import make_word_token


def _frames(durations, words=None):
    words = words or ["word"] * len(durations)
    return [
        Frame(tokens=(make_word_token(text),), duration_ms=ms, original_token_index=i)
        for i, (text, ms) in enumerate(zip(words, durations))
    ]


class TestRoundHalfUp:

    def test_rounding(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2
        assert round_half_up(0.5) == 1


class TestRhythmState:
    """Exponential smoothing with speed-up / slow-down clamps."""

    def test_first_value_passes_through(self):
        rhythm = RhythmState(0.5, 1.5, 1.5)
        assert rhythm.apply(100, False) == 100

    def test_smoothing_and_slowdown_clamp(self):
        rhythm = RhythmState(0.5, 1.5, 1.5)
        rhythm.apply(100, False)
        assert rhythm.apply(200, False) == 150
        assert rhythm.apply(1000, False) == 225

    def test_speedup_clamp(self):
        rhythm = RhythmState(1.0, 1.25, 1.45)
        rhythm.apply(500, False)
        assert rhythm.apply(100, False) == 400

    def test_boundary_returns_raw(self):
        rhythm = RhythmState(0.5, 1.5, 1.5)
        rhythm.apply(100, False)
        assert rhythm.apply(900, True) == 900

    def test_reset(self):
        rhythm = RhythmState(0.5, 1.5, 1.5)
        rhythm.apply(100, False)
        rhythm.reset()
        assert rhythm.apply(700, False) == 700

    def test_parameters_are_clamped(self):
        rhythm = RhythmState(3.0, 0.5, 0.2)
        assert rhythm.smoothing_alpha == 1.0
        assert rhythm.max_speedup_factor == 1.0
        assert rhythm.max_slowdown_factor == 1.0


class TestFlowState:

    def test_boundary_is_neutral(self):
        assert FlowState().apply(0.9, 1.0, True) == 1.0

    def test_first_value_is_neutral(self):
        assert FlowState().apply(0.2, 1.0, False) == 1.0

    def test_harder_text_slows_down_within_bounds(self):
        flow = FlowState()
        flow.apply(0.2, 1.0, False)
        assert flow.apply(1.0, 1.0, False) == 1.08

    def test_easier_text_speeds_up_within_bounds(self):
        flow = FlowState()
        flow.apply(1.0, 1.0, False)
        assert flow.apply(0.0, 1.0, False) == 0.9


class TestSessionRamps:

    def test_ramp_shape(self):
        config = replace(RsvpConfig(), start_delay_ms=0, end_delay_ms=0, ramp_up_frames=3, ramp_down_frames=3)
        ramped = apply_session_ramps(_frames([100] * 10), config)
        assert [f.duration_ms for f in ramped] == [135, 123, 111, 100, 100, 100, 100, 100, 108, 116]

    def test_delays_land_on_first_and_last(self):
        config = replace(RsvpConfig(), ramp_up_frames=0, ramp_down_frames=0)
        ramped = apply_session_ramps(_frames([100, 100, 100]), config)
        assert [f.duration_ms for f in ramped] == [350, 100, 450]

    def test_negative_delays_and_ramps_count_as_zero(self):
        config = replace(
            RsvpConfig(), start_delay_ms=-500, end_delay_ms=-500, ramp_up_frames=-2, ramp_down_frames=-2
        )
        ramped = apply_session_ramps(_frames([100, 100, 100]), config)
        assert [f.duration_ms for f in ramped] == [100, 100, 100]

    def test_ramped_frames_keep_floor(self):
        config = replace(RsvpConfig(), start_delay_ms=0, end_delay_ms=0, ramp_up_frames=1, ramp_down_frames=1)
        ramped = apply_session_ramps(_frames([10, 10, 10, 10]), config)
        assert [f.duration_ms for f in ramped] == [40, 10, 10, 40]

    def test_ramps_capped_at_half(self):
        config = replace(RsvpConfig(), start_delay_ms=0, end_delay_ms=0, ramp_up_frames=5, ramp_down_frames=5)
        ramped = apply_session_ramps(_frames([100, 100]), config)
        assert [f.duration_ms for f in ramped] == [135, 100]

    def test_empty_and_input_untouched(self):
        assert apply_session_ramps([], RsvpConfig()) == []
        frames = _frames([100, 100])
        apply_session_ramps(frames, RsvpConfig())
        assert [f.duration_ms for f in frames] == [100, 100]


class TestBlinkSeparation:
    """Micro-blank frames at high speed."""

    def test_target_blink(self):
        assert target_blink_ms(200) is None
        assert target_blink_ms(40) == 22

    def test_off_mode_is_unchanged(self):
        frames = _frames([200, 200], ["house", "garden"])
        config = replace(RsvpConfig(), tempo_ms_per_word=40)
        assert apply_blink_separation(frames, config) == frames

    def test_slow_tempo_is_unchanged(self):
        frames = _frames([200, 200], ["house", "garden"])
        config = replace(RsvpConfig(), tempo_ms_per_word=200, blink_mode=BlinkMode.SUBTLE)
        assert apply_blink_separation(frames, config) == frames

    def test_subtle_borrows_time_from_word(self):
        frames = _frames([200, 200], ["house", "garden"])
        config = replace(RsvpConfig(), tempo_ms_per_word=40, blink_mode=BlinkMode.SUBTLE)
        result = apply_blink_separation(frames, config)
        assert [f.duration_ms for f in result] == [178, 22, 200]
        assert result[1].text == BLINK_TEXT
        assert not result[1].has_word
        assert result[1].original_token_index == 0

    def test_donor_keeps_floor(self):
        frames = _frames([50, 200], ["house", "garden"])
        config = replace(RsvpConfig(), tempo_ms_per_word=40, blink_mode=BlinkMode.SUBTLE)
        # Only 5 ms above the floor: too short for a blink.
        assert apply_blink_separation(frames, config) == frames

    def test_adaptive_skips_hard_words(self):
        frames = _frames([300, 300], ["psychology", "psychology"])
        config = replace(RsvpConfig(), tempo_ms_per_word=40, blink_mode=BlinkMode.ADAPTIVE)
        assert apply_blink_separation(frames, config) == frames
