"""
Power-up subsystem — spawn scheduling, expiry, pickup and timed effects.

Every effect follows the same pattern: apply sets a value and a timer,
the timer counts down in tick units, expiry restores the neutral value.
Ball speed effects scale the current velocity and are divided back out
exactly on expiry so the other active factor survives.
"""

import logging
import random
from typing import List, Optional, Tuple

from config import (
    COURT_WIDTH, COURT_HEIGHT, PADDLE_HEIGHT, MAX_PADDLE_HEIGHT, MIN_PADDLE_HEIGHT,
    POWERUP_TTL, POWERUP_MAX_STANDING, POWERUP_SERVE_SPAWN,
    POWERUP_INSET_X, POWERUP_INSET_Y, POWERUP_WEIGHTS, SPAWN_RATES,
    EFFECT_DURATION, ENLARGE_SCALE, SHRINK_SCALE, SLOW_FACTOR, FAST_FACTOR,
    MatchSettings,
)
from physics import Paddle, PowerUp, PowerUpType, SIDES, opponent_of
from state import EffectTimers, MatchState

logger = logging.getLogger(__name__)


def tick_timer(remaining: float, dt: float) -> Tuple[float, bool]:
    """Count a timer down. Returns (new value, expired this tick)."""
    if remaining <= 0:
        return 0.0, False
    remaining -= dt
    if remaining <= 0:
        return 0.0, True
    return remaining, False


def resize_paddle(paddle: Paddle, height: float,
                  court_height: float = COURT_HEIGHT) -> None:
    """Change height and keep the paddle on court.

    A resize is not movement, so ``prev_y`` shifts with any clamp and the
    next tick's displacement stays clean.
    """
    old_y = paddle.y
    paddle.set_height(height)
    paddle.clamp_to_court(court_height)
    paddle.prev_y += paddle.y - old_y


class PowerUpSystem:
    """Operates on a ``MatchState``; emits events into ``self.events``."""

    def __init__(self, rng: Optional[random.Random] = None,
                 court_width: float = COURT_WIDTH, court_height: float = COURT_HEIGHT):
        self.rng = rng or random.Random()
        self.court_width = court_width
        self.court_height = court_height
        self.events: list = []

    # ──────────────────────────────────────────
    # Scheduling
    # ──────────────────────────────────────────
    def next_spawn_interval(self, rate: str) -> float:
        low, span = SPAWN_RATES.get(rate, SPAWN_RATES["normal"])
        return low + self.rng.random() * span

    def pick_kind(self) -> PowerUpType:
        r = self.rng.random()
        for name, bound in POWERUP_WEIGHTS:
            if r < bound:
                return PowerUpType(name)
        return PowerUpType(POWERUP_WEIGHTS[-1][0])

    def spawn(self, state: MatchState, rate: str = "normal") -> PowerUp:
        kind = self.pick_kind()
        x = POWERUP_INSET_X + self.rng.random() * (self.court_width - 2 * POWERUP_INSET_X)
        y = POWERUP_INSET_Y + self.rng.random() * (self.court_height - 2 * POWERUP_INSET_Y)
        if len(state.powerups) >= POWERUP_MAX_STANDING:
            state.powerups.pop(0)
        pu = PowerUp(kind=kind, position=[x, y], ttl=POWERUP_TTL, max_ttl=POWERUP_TTL)
        state.powerups.append(pu)
        state.powerup_spawn_timer = self.next_spawn_interval(rate)
        self.events.append({"type": "powerup_spawn", "kind": kind.value, "x": x, "y": y})
        logger.debug("[PWR] spawn %s at (%.1f, %.1f)", kind.value, x, y)
        return pu

    # ──────────────────────────────────────────
    # Reset
    # ──────────────────────────────────────────
    def reset(self, state: MatchState) -> None:
        """Clear every live power-up and effect (serve boundary)."""
        state.powerups = []
        state.powerup_spawn_timer = POWERUP_SERVE_SPAWN
        for side in SIDES:
            resize_paddle(state.paddle(side), PADDLE_HEIGHT, self.court_height)
        effects = state.effects
        if effects.velocity_mul != 1.0:
            state.ball.velocity = state.ball.velocity / effects.velocity_mul
        state.effects = EffectTimers()

    # ──────────────────────────────────────────
    # Per-tick update
    # ──────────────────────────────────────────
    def update(self, state: MatchState, settings: MatchSettings, dt: float) -> None:
        """Spawn, expire standing power-ups and run effect timers."""
        self.events.clear()

        if settings.powerups_enabled and state.serve_countdown <= 0:
            state.powerup_spawn_timer -= dt
            if state.powerup_spawn_timer <= 0:
                self.spawn(state, settings.spawn_rate)

        if state.powerups:
            for pu in state.powerups:
                pu.ttl -= dt
            expired = [pu for pu in state.powerups if pu.ttl <= 0]
            if expired:
                state.powerups = [pu for pu in state.powerups if pu.ttl > 0]
                for pu in expired:
                    self.events.append({"type": "powerup_expired", "kind": pu.kind.value})

        self._tick_effects(state, dt)

    def _tick_effects(self, state: MatchState, dt: float) -> None:
        effects = state.effects
        for side in SIDES:
            paddle = state.paddle(side)
            for name, timers in (("enlarge", effects.enlarge), ("shrink", effects.shrink)):
                timers[side], expired = tick_timer(timers[side], dt)
                if expired:
                    resize_paddle(paddle, PADDLE_HEIGHT, self.court_height)
                    self._expired(name, side)

        effects.slow, expired = tick_timer(effects.slow, dt)
        if expired:
            if effects.slow_factor != 1.0:
                state.ball.velocity = state.ball.velocity / effects.slow_factor
                effects.slow_factor = 1.0
            self._expired("slow")

        effects.fast, expired = tick_timer(effects.fast, dt)
        if expired:
            if effects.fast_factor != 1.0:
                state.ball.velocity = state.ball.velocity / effects.fast_factor
                effects.fast_factor = 1.0
            self._expired("fast")

    def _expired(self, effect: str, side: Optional[str] = None) -> None:
        self.events.append({"type": "effect_expired", "effect": effect, "side": side})
        logger.debug("[PWR] %s expired%s", effect, f" on {side}" if side else "")

    # ──────────────────────────────────────────
    # Pickup
    # ──────────────────────────────────────────
    def check_pickups(self, state: MatchState) -> List[PowerUp]:
        """Collect every power-up the ball overlaps; credit ``last_hit_by``."""
        picked, remaining = [], []
        for pu in state.powerups:
            (picked if pu.touches(state.ball) else remaining).append(pu)
        if not picked:
            return picked
        state.powerups = remaining
        beneficiary = state.last_hit_by
        for pu in picked:
            state.powerups_collected[beneficiary] += 1
            self.apply_effect(state, pu.kind, beneficiary)
            self.events.append({
                "type": "pickup", "kind": pu.kind.value, "side": beneficiary,
                "x": float(pu.position[0]), "y": float(pu.position[1]),
            })
            logger.debug("[PWR] %s picked up %s", beneficiary, pu.kind.value)
        return picked

    def apply_effect(self, state: MatchState, kind: PowerUpType, beneficiary: str) -> None:
        """Apply one power-up effect; enlarge/slow/fast help the beneficiary,
        shrink hits the opponent."""
        effects = state.effects
        kind = PowerUpType(kind)

        if kind is PowerUpType.ENLARGE:
            paddle = state.paddle(beneficiary)
            effects.shrink[beneficiary] = 0.0
            resize_paddle(paddle, PADDLE_HEIGHT, self.court_height)
            resize_paddle(paddle, min(PADDLE_HEIGHT * ENLARGE_SCALE, MAX_PADDLE_HEIGHT),
                          self.court_height)
            effects.enlarge[beneficiary] = EFFECT_DURATION

        elif kind is PowerUpType.SHRINK:
            target = opponent_of(beneficiary)
            paddle = state.paddle(target)
            effects.enlarge[target] = 0.0
            resize_paddle(paddle, PADDLE_HEIGHT, self.court_height)
            resize_paddle(paddle, max(PADDLE_HEIGHT * SHRINK_SCALE, MIN_PADDLE_HEIGHT),
                          self.court_height)
            effects.shrink[target] = EFFECT_DURATION

        elif kind is PowerUpType.SLOW:
            if effects.slow_factor == 1.0:
                state.ball.velocity = state.ball.velocity * SLOW_FACTOR
                effects.slow_factor = SLOW_FACTOR
            effects.slow = EFFECT_DURATION

        elif kind is PowerUpType.FAST:
            if effects.fast_factor == 1.0:
                state.ball.velocity = state.ball.velocity * FAST_FACTOR
                effects.fast_factor = FAST_FACTOR
            effects.fast = EFFECT_DURATION

    def clear_live(self, state: MatchState) -> None:
        state.powerups = []


