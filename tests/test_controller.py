"""
Controller Tests — match state machine, serve sequence, scoring, rally/combo
and feedback events.
"""

import sys
import os
import random
import dataclasses
import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from config import COURT_WIDTH, COURT_HEIGHT, THEMES, MatchSettings
from physics import LEFT, RIGHT
from controls import PaddleControl
from controller import MatchController


class FakeClock:
    """Millisecond clock the tests advance by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_controller(mode: str = "single", difficulty: str = "medium", win_score: int = 7,
                    seed: int = 1, clock=None, **settings) -> MatchController:
    ctrl = MatchController(settings=MatchSettings(**settings), rng=random.Random(seed),
                           clock=clock or FakeClock())
    ctrl.start(difficulty, win_score, mode)
    return ctrl


def skip_countdown(ctrl: MatchController) -> None:
    ctrl.state.serve_countdown = 0.0


def place_ball_at_left_paddle(ctrl: MatchController) -> None:
    st = ctrl.state
    st.ball.position = np.array([st.left.x + st.left.width + st.ball.radius + 3.0,
                                 st.left.center_y])
    st.ball.velocity = np.array([-5.0, 0.0])


def place_ball_at_right_paddle(ctrl: MatchController) -> None:
    st = ctrl.state
    st.ball.position = np.array([st.right.x - 10.0, st.right.center_y])
    st.ball.velocity = np.array([5.0, 0.0])


def send_ball_out_left(ctrl: MatchController) -> None:
    st = ctrl.state
    st.ball.position = np.array([-25.0, 200.0])
    st.ball.velocity = np.array([-5.0, 0.0])


def of_type(events, kind):
    return [e for e in events if e["type"] == kind]


# ── State machine ────────────────────────────────────────

class TestStatusTransitions:

    def test_initial_status_is_menu(self):
        ctrl = MatchController(rng=random.Random(0))
        assert ctrl.state.status == "menu"

    def test_start_enters_playing_with_countdown(self):
        ctrl = make_controller()
        snap = ctrl.snapshot()
        assert snap.status == "playing"
        assert snap.serve_countdown == 3
        assert snap.scores == {LEFT: 0, RIGHT: 0}
        assert of_type(ctrl.drain_events(), "match_started")

    def test_pause_round_trip(self):
        ctrl = make_controller()
        ctrl.toggle_pause()
        assert ctrl.state.status == "paused"
        ctrl.toggle_pause()
        assert ctrl.state.status == "playing"

    def test_pause_ignored_in_menu(self):
        ctrl = MatchController(rng=random.Random(0))
        ctrl.toggle_pause()
        ctrl.pause()
        assert ctrl.state.status == "menu"
        assert ctrl.drain_events() == []

    def test_visibility_pause_only_when_playing(self):
        ctrl = make_controller()
        ctrl.pause()
        ctrl.pause()
        assert ctrl.state.status == "paused"

    def test_return_to_menu(self):
        ctrl = make_controller()
        ctrl.return_to_menu()
        assert ctrl.state.status == "menu"

    def test_start_from_any_state_resets_scores(self):
        ctrl = make_controller()
        ctrl.state.left.score = 4
        ctrl.toggle_pause()
        ctrl.start("hard", 5, "multi")
        st = ctrl.state
        assert st.status == "playing"
        assert st.scores == (0, 0)
        assert (st.difficulty, st.win_score, st.mode) == ("hard", 5, "multi")

    @pytest.mark.parametrize("args", [
        ("nightmare", 7, "single"),
        ("medium", 0, "single"),
        ("medium", 7, "co-op"),
    ])
    def test_invalid_start_changes_nothing(self, args):
        ctrl = MatchController(rng=random.Random(0))
        with pytest.raises(ValueError):
            ctrl.start(*args)
        assert ctrl.state.status == "menu"

    def test_invalid_settings_rejected(self):
        ctrl = make_controller()
        with pytest.raises(ValueError):
            ctrl.set_theme("vapor")
        with pytest.raises(ValueError):
            ctrl.set_spawn_rate("extreme")
        with pytest.raises(ValueError):
            ctrl.set_difficulty("nightmare")
        assert ctrl.settings.theme == "neon"
        assert ctrl.state.difficulty == "medium"


class TestFrozenOutsidePlay:

    @pytest.mark.parametrize("enter", ["menu", "paused", "gameOver"])
    def test_update_is_noop(self, enter):
        ctrl = make_controller()
        skip_countdown(ctrl)
        ctrl.update()
        if enter == "menu":
            ctrl.return_to_menu()
        elif enter == "paused":
            ctrl.toggle_pause()
        else:
            ctrl.state.right.score = 6
            send_ball_out_left(ctrl)
            ctrl.update()
            assert ctrl.state.status == "gameOver"
        ctrl.drain_events()
        before = ctrl.snapshot()
        particles = len(ctrl.cosmetics.particles)
        for _ in range(30):
            ctrl.update(PaddleControl.move(1), PaddleControl.move(-1))
        assert ctrl.snapshot() == before
        assert len(ctrl.cosmetics.particles) == particles
        assert ctrl.drain_events() == []

    def test_snapshot_is_immutable(self):
        ctrl = make_controller()
        snap = ctrl.snapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            snap.status = "paused"


# ── Serve ────────────────────────────────────────────────

class TestServe:

    def test_countdown_launches_after_three_seconds(self):
        ctrl = make_controller()
        st = ctrl.state
        ticks = 0
        while st.serve_countdown > 0 and ticks < 200:
            ctrl.update()
            ticks += 1
        assert 180 <= ticks <= 181
        assert st.ball.velocity[0] == pytest.approx(5.0 * st.serve_direction)
        assert abs(st.ball.velocity[1]) <= 1.5

    def test_countdown_emits_one_tick_per_second(self):
        ctrl = make_controller()
        ctrl.drain_events()
        ctrl.simulate(185)
        events = ctrl.drain_events()
        assert [e["seconds"] for e in of_type(events, "countdown")] == [3, 2, 1]
        cues = [e["cue"] for e in of_type(events, "tone")]
        assert cues.count("serve_tick") == 3
        assert cues.count("serve_launch") == 1

    def test_paddles_and_ball_frozen_during_countdown(self):
        ctrl = make_controller()
        st = ctrl.state
        left_y, right_y = st.left.y, st.right.y
        for _ in range(10):
            ctrl.update(PaddleControl.move(1))
        assert st.left.y == left_y and st.right.y == right_y
        np.testing.assert_allclose(st.ball.position, [COURT_WIDTH / 2, COURT_HEIGHT / 2])

    def test_launch_speed_follows_difficulty(self):
        ctrl = make_controller(difficulty="impossible")
        ctrl.simulate(182)
        assert abs(ctrl.state.ball.velocity[0]) == pytest.approx(5.0 * 1.3)


# ── Scoring ──────────────────────────────────────────────

class TestScoring:

    def test_ball_past_left_edge_scores_for_right(self):
        ctrl = make_controller()
        skip_countdown(ctrl)
        send_ball_out_left(ctrl)
        ctrl.update()
        st = ctrl.state
        assert st.right.score == 1 and st.left.score == 0
        np.testing.assert_allclose(st.ball.position, [COURT_WIDTH / 2, COURT_HEIGHT / 2])
        np.testing.assert_allclose(st.ball.velocity, [0.0, 0.0])
        assert ctrl.snapshot().serve_countdown == 3
        assert st.serve_direction == -1, "serve heads toward the side that lost the point"

    def test_ball_past_right_edge_scores_for_left(self):
        ctrl = make_controller(mode="multi")
        skip_countdown(ctrl)
        st = ctrl.state
        st.ball.position = np.array([COURT_WIDTH + 25.0, 100.0])
        st.ball.velocity = np.array([5.0, 0.0])
        ctrl.update()
        assert st.left.score == 1
        assert st.serve_direction == 1

    def test_win_score_ends_match(self):
        ctrl = make_controller(win_score=7)
        skip_countdown(ctrl)
        ctrl.state.right.score = 6
        send_ball_out_left(ctrl)
        ctrl.update()
        st = ctrl.state
        assert st.status == "gameOver"
        assert st.winner == "AI"
        assert st.scores == (0, 7)
        assert of_type(ctrl.drain_events(), "game_over")[0]["winner"] == "AI"

    def test_multi_winner_label(self):
        ctrl = make_controller(mode="multi", win_score=1)
        skip_countdown(ctrl)
        send_ball_out_left(ctrl)
        ctrl.update()
        assert ctrl.state.winner == "P2"

    def test_rematch_keeps_setup(self):
        ctrl = make_controller(difficulty="hard", win_score=3, mode="single")
        skip_countdown(ctrl)
        ctrl.state.right.score = 2
        send_ball_out_left(ctrl)
        ctrl.update()
        ctrl.rematch()
        st = ctrl.state
        assert st.status == "playing"
        assert st.scores == (0, 0)
        assert (st.difficulty, st.win_score, st.mode) == ("hard", 3, "single")

    def test_game_over_recorded_in_stats(self):
        clock = FakeClock(1000.0)
        ctrl = make_controller(win_score=1, clock=clock)
        skip_countdown(ctrl)
        clock.now = 66_000.0
        send_ball_out_left(ctrl)
        ctrl.update()
        assert ctrl.stats.matches_played == 1
        assert ctrl.stats.wins["AI"] == 1
        assert ctrl.stats.history[-1].duration_label == "01:05"

    def test_point_clears_powerups_and_effects(self):
        ctrl = make_controller()
        skip_countdown(ctrl)
        st = ctrl.state
        ctrl.powerups.spawn(st)
        ctrl.powerups.apply_effect(st, "enlarge", LEFT)
        send_ball_out_left(ctrl)
        ctrl.update()
        assert st.powerups == []
        assert st.left.height == 90.0
        assert st.effects.enlarge[LEFT] == 0.0


# ── Rally + combo ────────────────────────────────────────

class TestRallyAndCombo:

    def test_rally_and_combo_window(self):
        clock = FakeClock(10_000.0)
        ctrl = make_controller(mode="multi", clock=clock)
        skip_countdown(ctrl)
        st = ctrl.state

        place_ball_at_left_paddle(ctrl)
        ctrl.update()
        assert (st.rally, st.combo) == (1, 1)

        clock.now += 500
        place_ball_at_left_paddle(ctrl)
        ctrl.update()
        assert (st.rally, st.combo) == (2, 2)

        place_ball_at_right_paddle(ctrl)
        ctrl.update()
        assert (st.rally, st.combo) == (3, 2), "right hits do not touch the combo"
        assert st.last_hit_by == RIGHT

        clock.now += 2500
        place_ball_at_left_paddle(ctrl)
        ctrl.update()
        assert (st.rally, st.combo) == (4, 1)
        assert st.max_rally == 4

        send_ball_out_left(ctrl)
        ctrl.update()
        assert (st.rally, st.combo) == (0, 0)
        assert st.max_rally == 4
        assert ctrl.stats.best_rally == 4
        assert ctrl.stats.best_combo == 2

    def test_top_speed_ball_is_returned_by_centred_paddle(self):
        ctrl = make_controller(mode="multi", difficulty="impossible")
        skip_countdown(ctrl)
        st = ctrl.state
        st.effects.fast, st.effects.fast_factor = 6.0, 1.6
        st.ball.speed = 20.8
        st.ball.position = np.array([746.0, st.right.center_y])
        st.ball.velocity = np.array([20.8 * 1.6, 0.0])
        for _ in range(5):
            ctrl.update()
        assert st.rally == 1, "ball passed through a centred paddle"
        assert st.scores == (0, 0)
        assert st.last_hit_by == RIGHT

    def test_power_hit_from_touch_placement(self):
        ctrl = make_controller(mode="multi")
        skip_countdown(ctrl)
        st = ctrl.state
        place_ball_at_left_paddle(ctrl)
        ctrl.drain_events()
        ctrl.update(PaddleControl.place(st.left.center_y + 10.0))
        assert st.is_power_hit
        assert st.ball.speed == pytest.approx(5.0 * 1.05 * 1.2)
        events = ctrl.drain_events()
        assert "power_hit" in [e["cue"] for e in of_type(events, "tone")]
        assert any(e["intensity"] == 8 for e in of_type(events, "shake"))
        for _ in range(31):
            ctrl.update()
        assert not st.is_power_hit


# ── Settings + feedback ──────────────────────────────────

class TestSettingsAndFeedback:

    def test_disabling_powerups_clears_standing(self):
        ctrl = make_controller()
        ctrl.powerups.spawn(ctrl.state)
        ctrl.set_powerups_enabled(False)
        assert ctrl.state.powerups == []

    def test_wall_hit_requests_particles_and_tone(self):
        ctrl = make_controller(mode="multi")
        skip_countdown(ctrl)
        st = ctrl.state
        st.ball.position = np.array([400.0, 12.0])
        st.ball.velocity = np.array([5.0, -6.0])
        ctrl.drain_events()
        ctrl.update()
        events = ctrl.drain_events()
        assert of_type(events, "particles")[0]["count"] == 5
        assert of_type(events, "tone")[0]["cue"] == "wall"

    def test_sound_off_suppresses_tones(self):
        ctrl = make_controller(sound_enabled=False)
        ctrl.simulate(200)
        assert of_type(ctrl.drain_events(), "tone") == []

    def test_reduced_motion_scales_feedback(self):
        ctrl = make_controller(reduced_motion=True)
        skip_countdown(ctrl)
        send_ball_out_left(ctrl)
        ctrl.drain_events()
        ctrl.update()
        events = ctrl.drain_events()
        assert of_type(events, "particles")[0]["count"] == 10
        assert of_type(events, "shake")[0]["intensity"] == pytest.approx(3.5)

    def test_theme_change_recolours_particles(self):
        ctrl = make_controller(mode="multi")
        ctrl.set_theme("classic")
        skip_countdown(ctrl)
        place_ball_at_left_paddle(ctrl)
        ctrl.drain_events()
        ctrl.update()
        colors = {e["color"] for e in of_type(ctrl.drain_events(), "particles")}
        assert colors == {THEMES["classic"]["player"]}

    def test_simulate_stops_at_game_over(self):
        ctrl = make_controller(win_score=1)
        skip_countdown(ctrl)
        send_ball_out_left(ctrl)
        assert ctrl.simulate(50) == 1
