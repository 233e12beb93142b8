"""
Unit tests for the rate-limited color smoother.
"""

import pytest

from elksync.consumer.color_smoother import ColorSmoother, SmootherConfig
from elksync.utils.color import hue_delta


class TestBasicSmoothing:
    """Test steady-state and convergence behavior."""

    def test_reset_then_same_color_is_stable(self):
        """Smoothing toward the color already shown returns it unchanged."""
        smoother = ColorSmoother()
        smoother.reset((255, 0, 0))

        assert smoother.smooth((255, 0, 0)) == (255, 0, 0)
        assert smoother.current_color == (255, 0, 0)

    def test_first_step_is_rate_limited(self):
        """From black, one update moves value by at most the max step."""
        smoother = ColorSmoother()

        color = smoother.smooth((255, 0, 0))

        assert smoother.current_hsv[2] <= 0.08 + 1e-9
        assert max(color) <= 21

    def test_converges_to_target(self):
        """A constant input is reached eventually."""
        smoother = ColorSmoother()

        for _ in range(100):
            color = smoother.smooth((255, 0, 0))

        assert color == (255, 0, 0)

    def test_initial_color(self):
        smoother = ColorSmoother(initial_color=(0, 0, 255))

        assert smoother.current_color == (0, 0, 255)

    def test_dim_input_snaps_to_black(self):
        """Near-black targets go fully dark."""
        smoother = ColorSmoother()

        assert smoother.smooth((3, 3, 3)) == (0, 0, 0)
        assert smoother.current_hsv[2] == 0.0


class TestHueHandling:
    """Test circular hue behavior."""

    def test_hue_takes_short_path_across_zero(self):
        """Moving from ~350 to ~10 degrees goes through 0, never through 180."""
        smoother = ColorSmoother()
        smoother.reset((255, 0, 43))
        target_hue = 10.1

        hues = []
        for _ in range(60):
            smoother.smooth((255, 43, 0))
            hues.append(smoother.current_hsv[0])

        assert all(h >= 349.0 or h <= 11.0 for h in hues)
        assert abs(hue_delta(hues[-1], target_hue)) < 1.0

    def test_hue_snaps_when_current_is_grey(self):
        """From an unsaturated color the hue adopts the target immediately."""
        smoother = ColorSmoother()
        smoother.reset((128, 128, 128))

        smoother.smooth((0, 255, 0))

        assert smoother.current_hsv[0] == pytest.approx(120.0)


class TestSlowdown:
    """Test scene-cut and rapid-change slowdown."""

    def test_large_jump_moves_slower(self):
        """A hue jump over the threshold is slowed relative to no slowdown."""
        damped = ColorSmoother()
        undamped = ColorSmoother(SmootherConfig(slowdown=1.0))
        for smoother in (damped, undamped):
            smoother.reset((255, 0, 0))
            smoother.smooth((0, 255, 0))

        assert damped.current_hsv[0] < undamped.current_hsv[0]
        assert damped.current_hsv[0] == pytest.approx(1.68, abs=0.01)

    def test_hue_step_is_capped(self):
        """Without slowdown the hue step is still capped per update."""
        smoother = ColorSmoother(SmootherConfig(slowdown=1.0, target_smoothing=1.0, hue_speed=1.0))
        smoother.reset((255, 0, 0))

        smoother.smooth((0, 255, 0))

        assert smoother.current_hsv[0] == pytest.approx(12.0)

    def test_rapid_change_episode(self):
        """Three consecutive large changes start an episode; a steady frame ends it."""
        smoother = ColorSmoother()

        smoother.smooth((255, 255, 255))
        smoother.smooth((0, 0, 0))
        assert not smoother.in_rapid_change

        smoother.smooth((255, 255, 255))
        assert smoother.in_rapid_change

        smoother.smooth((255, 255, 255))
        assert not smoother.in_rapid_change


class TestResponsiveness:
    """Test the color-picker entry point."""

    def test_instant_responsiveness_snaps(self):
        smoother = ColorSmoother()

        assert smoother.smooth_with_responsiveness((10, 200, 30), 1.0) == (10, 200, 30)
        assert smoother.current_color == (10, 200, 30)

    def test_higher_responsiveness_moves_further(self):
        slow = ColorSmoother()
        fast = ColorSmoother()

        slow.smooth_with_responsiveness((255, 0, 0), 0.0)
        fast.smooth_with_responsiveness((255, 0, 0), 0.5)

        assert 0.0 < slow.current_hsv[2] < fast.current_hsv[2]

    def test_responsiveness_is_clamped(self):
        """Values above 1 behave like instant."""
        smoother = ColorSmoother()

        assert smoother.smooth_with_responsiveness((0, 0, 255), 7.0) == (0, 0, 255)


class TestOutOfRangeInput:
    """Channel values outside 0-255 are saturated at every entry point."""

    def test_reset_clamps(self):
        smoother = ColorSmoother()
        smoother.reset((400, 0, 0))

        hue, saturation, value = smoother.current_hsv
        assert 0.0 <= saturation <= 1.0
        assert 0.0 <= value <= 1.0
        assert smoother.current_color == (255, 0, 0)

    def test_instant_path_clamps(self):
        smoother = ColorSmoother()

        assert smoother.smooth_with_responsiveness((300, -5, 0), 1.0) == (255, 0, 0)
        assert all(0.0 <= c <= 1.0 for c in smoother.current_hsv[1:])

    def test_smooth_clamps(self):
        smoother = ColorSmoother()
        smoother.reset((255, 0, 0))

        output = smoother.smooth((999, -50, -50))

        assert output == (255, 0, 0)
        assert smoother.state.target[2] <= 1.0
