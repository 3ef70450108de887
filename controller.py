"""
MatchController — match state machine + per-tick orchestration.

Owns the single ``MatchState`` and every subsystem that mutates it.
The host talks to it through:
  ctrl.start(difficulty, win_score, mode)   — new match (any state)
  ctrl.toggle_pause() / ctrl.return_to_menu() / ctrl.rematch()
  ctrl.set_*(...)                           — settings, read on the next tick
  ctrl.update(left, right)                  — one logical tick
  ctrl.snapshot()                           — frozen view for renderers
  ctrl.drain_events()                       — feedback requests (particles, shake, tone)
"""

import logging
import math
import random
import time
from typing import Callable, Optional

from config import (
    COURT_WIDTH, COURT_HEIGHT, BALL_INITIAL_SPEED, PLAYER_PADDLE_SPEED,
    TICK_DT, SCORE_MARGIN, SERVE_COUNTDOWN, SERVE_VY_SPREAD, DEFAULT_WIN_SCORE,
    POWER_HIT_DURATION, COMBO_WINDOW_MS, MODES, SPAWN_RATES,
    MatchSettings, difficulty_settings, theme_palette,
)
from physics import PhysicsEngine, LEFT, RIGHT, opponent_of
from ai import AIController
from controls import PaddleControl, apply_control
from cosmetics import Cosmetics
from powerups import PowerUpSystem, tick_timer
from state import MatchState, MatchSnapshot, WINNER_LABELS, take_snapshot
from stats import SessionStats, summarize

logger = logging.getLogger(__name__)


def wall_clock_ms() -> float:
    return time.time() * 1000.0


class MatchController:
    """Single owner of the match; the only place state changes."""

    # name -> (frequency Hz, duration s, volume)
    TONES = {
        "wall":         (700, 0.1, 0.4),
        "paddle_left":  (600, 0.1, 0.4),
        "paddle_right": (500, 0.1, 0.4),
        "power_hit":    (1000, 0.1, 0.4),
        "pickup":       (800, 0.1, 0.4),
        "point":        (400, 0.1, 0.4),
        "win":          (900, 0.1, 0.4),
        "lose":         (300, 0.1, 0.4),
        "serve_tick":   (760, 0.06, 0.22),
        "serve_launch": (950, 0.08, 0.32),
    }

    # Palette role used for each side's bursts
    SIDE_COLOR = {LEFT: "player", RIGHT: "ai"}
    PICKUP_COLOR = {"enlarge": "player", "shrink": "ai", "fast": "accent", "slow": "power_hit"}

    def __init__(self, settings: Optional[MatchSettings] = None,
                 rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], float]] = None):
        self.settings = settings or MatchSettings()
        self.rng = rng or random.Random()
        self.clock = clock or wall_clock_ms

        self.state = MatchState()
        self.engine = PhysicsEngine(COURT_WIDTH, COURT_HEIGHT)
        self.ai = AIController(self.rng, COURT_HEIGHT)
        self.powerups = PowerUpSystem(self.rng, COURT_WIDTH, COURT_HEIGHT)
        self.cosmetics = Cosmetics()
        self.cosmetics.set_reduced_motion(self.settings.reduced_motion)
        self.stats = SessionStats()

        self.pending_events: list[dict] = []

    # ──────────────────────────────────────────────────────────────────────────
    # State machine entry points
    # ──────────────────────────────────────────────────────────────────────────

    def start(self, difficulty: str = "medium", win_score: int = DEFAULT_WIN_SCORE,
              mode: str = "single") -> None:
        """Begin a fresh match from any state and enter the opening serve."""
        tuning = difficulty_settings(difficulty)
        if mode not in MODES:
            raise ValueError(f"unknown mode '{mode}'")
        win_score = int(win_score)
        if win_score < 1:
            raise ValueError(f"win score must be positive, got {win_score}")

        st = MatchState(difficulty=difficulty, win_score=win_score, mode=mode)
        st.right.speed = PLAYER_PADDLE_SPEED if mode == "multi" else tuning["ai_speed"]
        st.status = "playing"
        st.match_start_ms = self.clock()
        self.state = st
        self.cosmetics.clear()

        self._prepare_serve(1 if self.rng.random() > 0.5 else -1)
        self.pending_events.append({
            "type": "match_started", "difficulty": difficulty,
            "win_score": win_score, "mode": mode,
        })
        logger.info("[MATCH] start difficulty=%s win_score=%d mode=%s",
                    difficulty, win_score, mode)

    def rematch(self) -> None:
        st = self.state
        self.start(st.difficulty, st.win_score, st.mode)

    def toggle_pause(self) -> None:
        st = self.state
        if st.status == "playing":
            st.status = "paused"
        elif st.status == "paused":
            st.status = "playing"
        else:
            return
        self.pending_events.append({"type": "status", "status": st.status})
        logger.debug("[MATCH] %s", st.status)

    def pause(self) -> None:
        """Pause only if running (focus/visibility loss)."""
        if self.state.status == "playing":
            self.toggle_pause()

    def return_to_menu(self) -> None:
        st = self.state
        if st.status not in ("playing", "paused", "gameOver"):
            return
        st.status = "menu"
        self.pending_events.append({"type": "status", "status": "menu"})
        logger.info("[MATCH] back to menu")

    # ──────────────────────────────────────────────────────────────────────────
    # Settings (consumed on the next tick)
    # ──────────────────────────────────────────────────────────────────────────

    def set_difficulty(self, difficulty: str) -> None:
        difficulty_settings(difficulty)
        self.state.difficulty = difficulty

    def set_theme(self, theme: str) -> None:
        theme_palette(theme)
        self.settings.theme = theme

    def set_sound(self, enabled: bool) -> None:
        self.settings.sound_enabled = bool(enabled)

    def set_reduced_motion(self, enabled: bool) -> None:
        self.settings.reduced_motion = bool(enabled)
        self.cosmetics.set_reduced_motion(self.settings.reduced_motion)

    def set_adaptive_ai(self, enabled: bool) -> None:
        self.settings.adaptive_ai = bool(enabled)

    def set_powerups_enabled(self, enabled: bool) -> None:
        self.settings.powerups_enabled = bool(enabled)
        if not enabled:
            self.powerups.clear_live(self.state)

    def set_spawn_rate(self, rate: str) -> None:
        if rate not in SPAWN_RATES:
            raise ValueError(f"unknown spawn rate '{rate}'")
        self.settings.spawn_rate = rate

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    def update(self, left: Optional[PaddleControl] = None,
               right: Optional[PaddleControl] = None, dt: float = TICK_DT) -> None:
        """Advance one logical tick. A no-op unless the match is playing."""
        st = self.state
        if st.status != "playing":
            return
        left = left or PaddleControl.idle()
        right = right or PaddleControl.idle()
        tuning = difficulty_settings(st.difficulty)

        if st.serve_countdown > 0:
            self._tick_serve(dt, tuning)
            self.cosmetics.decay(dt)
            return

        st.power_hit_timer, expired = tick_timer(st.power_hit_timer, dt)
        if expired:
            st.is_power_hit = False

        self._move_paddles(left, right, tuning)

        self.cosmetics.add_trail(float(st.ball.position[0]), float(st.ball.position[1]))
        self.engine.update(st.ball, st.left, st.right,
                           tuning["ball_speed_mul"], st.effects.velocity_mul)
        for ev in self.engine.events:
            if ev["type"] == "wall":
                self._on_wall(ev)
            elif ev["type"] == "paddle":
                self._on_paddle_hit(ev)

        self.powerups.update(st, self.settings, dt)
        self.powerups.check_pickups(st)
        for ev in self.powerups.events:
            if ev["type"] == "pickup":
                self._on_pickup(ev)
            self.pending_events.append(ev)

        conceded = self.engine.out_of_bounds(st.ball, SCORE_MARGIN)
        if conceded is not None:
            self._award_point(opponent_of(conceded))

        self.stats.observe(st.rally, st.combo)
        self.cosmetics.decay(dt)

    def simulate(self, ticks: int, left: Optional[PaddleControl] = None,
                 right: Optional[PaddleControl] = None) -> int:
        """Run up to ``ticks`` updates; stops early once play ends.

        Returns the number of ticks executed.
        """
        for n in range(ticks):
            if self.state.status != "playing":
                return n
            self.update(left, right)
        return ticks

    def _move_paddles(self, left: PaddleControl, right: PaddleControl, tuning: dict) -> None:
        st = self.state
        apply_control(st.left, left, COURT_HEIGHT)
        if st.mode == "single":
            self.ai.update(st.ball, st.right, tuning, st.left.score, st.right.score,
                           self.settings.adaptive_ai)
        else:
            apply_control(st.right, right, COURT_HEIGHT)
        st.left.track_displacement()
        st.right.track_displacement()

    # ──────────────────────────────────────────────────────────────────────────
    # Serve sequence
    # ──────────────────────────────────────────────────────────────────────────

    def _prepare_serve(self, direction: int) -> None:
        """Clear per-point effects, park the ball and arm the countdown."""
        st = self.state
        tuning = difficulty_settings(st.difficulty)
        self.powerups.reset(st)
        st.rally = 0
        st.combo = 0
        st.is_power_hit = False
        st.power_hit_timer = 0.0
        st.serve_direction = direction
        st.serve_countdown = SERVE_COUNTDOWN
        st.serve_countdown_last_int = 0
        st.ball.center(speed=BALL_INITIAL_SPEED * tuning["ball_speed_mul"])
        self.cosmetics.clear_trails()
        self.pending_events.append({"type": "serve", "direction": direction})

    def _tick_serve(self, dt: float, tuning: dict) -> None:
        st = self.state
        st.serve_countdown -= dt
        sec_left = max(0, math.ceil(st.serve_countdown))
        if sec_left != st.serve_countdown_last_int and sec_left > 0:
            st.serve_countdown_last_int = sec_left
            self.pending_events.append({"type": "countdown", "seconds": sec_left})
            self._tone("serve_tick")
        if st.serve_countdown <= 0:
            st.serve_countdown = 0.0
            st.serve_countdown_last_int = 0
            self._launch_ball(tuning)
            self._tone("serve_launch")

    def _launch_ball(self, tuning: dict) -> None:
        st = self.state
        speed = BALL_INITIAL_SPEED * tuning["ball_speed_mul"]
        st.ball.center(speed=speed)
        st.ball.velocity[0] = speed * st.serve_direction
        st.ball.velocity[1] = (self.rng.random() - 0.5) * SERVE_VY_SPREAD
        st.rally = 0
        st.combo = 0
        st.is_power_hit = False
        st.power_hit_timer = 0.0
        self.cosmetics.clear_trails()
        logger.debug("[SERVE] launch dir=%d v=(%.2f, %.2f)",
                     st.serve_direction, st.ball.velocity[0], st.ball.velocity[1])

    # ──────────────────────────────────────────────────────────────────────────
    # Collision / pickup handlers
    # ──────────────────────────────────────────────────────────────────────────

    def _on_wall(self, ev: dict) -> None:
        self._particles(ev["x"], ev["y"], "ball", 5, 0.5)
        self._tone("wall")

    def _on_paddle_hit(self, ev: dict) -> None:
        st = self.state
        side = ev["side"]

        st.rally += 1
        if st.rally > st.max_rally:
            st.max_rally = st.rally

        if side == LEFT:
            now = self.clock()
            if now - st.last_player_hit_ms < COMBO_WINDOW_MS:
                st.combo += 1
            else:
                st.combo = 1
            st.last_player_hit_ms = now

        st.last_hit_by = side

        if ev["power"]:
            st.is_power_hit = True
            st.power_hit_timer = POWER_HIT_DURATION
            self._shake(8)
            self._particles(ev["x"], ev["y"], "power_hit", 25, 2)
            self._tone("power_hit")

        self._particles(ev["x"], ev["y"], self.SIDE_COLOR[side], 15, 1.5)
        self._shake(8 if ev["power"] else 4)
        self._tone("paddle_left" if side == LEFT else "paddle_right")

    def _on_pickup(self, ev: dict) -> None:
        self._tone("pickup")
        self._particles(ev["x"], ev["y"], self.PICKUP_COLOR[ev["kind"]], 25, 2)

    # ──────────────────────────────────────────────────────────────────────────
    # Scoring
    # ──────────────────────────────────────────────────────────────────────────

    def _award_point(self, scorer: str) -> None:
        st = self.state
        paddle = st.paddle(scorer)
        paddle.score += 1
        edge_x = COURT_WIDTH if scorer == LEFT else 0.0
        self._particles(edge_x, float(st.ball.position[1]), self.SIDE_COLOR[scorer], 30, 2)
        self._shake(10)
        self.pending_events.append({
            "type": "point", "side": scorer,
            "scores": {LEFT: st.left.score, RIGHT: st.right.score},
        })
        logger.debug("[POINT] %s scores (%d-%d)", scorer, st.left.score, st.right.score)

        if paddle.score >= st.win_score:
            self._end_match(scorer)
        else:
            # Serve toward the side that just lost the point
            self._prepare_serve(-1 if scorer == RIGHT else 1)
            self._tone("point")

    def _end_match(self, winner_side: str) -> None:
        st = self.state
        st.status = "gameOver"
        st.winner = WINNER_LABELS[st.mode][winner_side]
        st.match_end_ms = self.clock()
        self._particles(COURT_WIDTH / 2, COURT_HEIGHT / 2, self.SIDE_COLOR[winner_side], 60, 3)
        self._tone("win" if winner_side == LEFT else "lose")

        summary = summarize(st)
        self.stats.record_match(summary)
        self.pending_events.append({"type": "game_over", "winner": st.winner})
        logger.info("[MATCH] game over winner=%s score=%d-%d duration=%s",
                    st.winner, st.left.score, st.right.score, summary.duration_label)

    # ──────────────────────────────────────────────────────────────────────────
    # Feedback events
    # ──────────────────────────────────────────────────────────────────────────

    def _particles(self, x: float, y: float, role: str, count: int, spread: float) -> None:
        color = theme_palette(self.settings.theme)[role]
        emitted = self.cosmetics.burst(x, y, color, count, spread)
        self.pending_events.append({
            "type": "particles", "x": float(x), "y": float(y),
            "color": color, "count": emitted, "spread": spread,
        })

    def _shake(self, intensity: float) -> None:
        applied = self.cosmetics.add_shake(intensity)
        self.pending_events.append({"type": "shake", "intensity": applied})

    def _tone(self, cue: str) -> None:
        if not self.settings.sound_enabled:
            return
        freq, duration, volume = self.TONES[cue]
        self.pending_events.append({
            "type": "tone", "cue": cue, "frequency": freq,
            "duration": duration, "volume": volume,
        })

    # ──────────────────────────────────────────────────────────────────────────
    # Read-only surface
    # ──────────────────────────────────────────────────────────────────────────

    def snapshot(self) -> MatchSnapshot:
        return take_snapshot(self.state)

    def drain_events(self) -> list[dict]:
        events, self.pending_events = self.pending_events, []
        return events
