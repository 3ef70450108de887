"""
AI opponent for single-player matches.

The AI aims at where the ball will cross its paddle line, folding the
straight-line prediction back into the court to mirror wall bounces, then
moves a reaction-scaled step toward that target.
"""

import random
import numpy as np
from typing import Optional

from config import (
    COURT_HEIGHT, ADAPTIVE_GAIN, ADAPTIVE_MIN, ADAPTIVE_MAX, AI_MIN_STEP,
)
from physics import Ball, Paddle


def adaptive_speed(base: float, player_score: int, ai_score: int, adaptive: bool) -> float:
    """AI paddle speed; with ``adaptive`` the AI speeds up while trailing."""
    if not adaptive:
        return base
    target = base + (player_score - ai_score) * ADAPTIVE_GAIN
    return max(base * ADAPTIVE_MIN, min(base * ADAPTIVE_MAX, target))


def fold_into_court(y: float, court_height: float = COURT_HEIGHT) -> float:
    """Reflect ``y`` across 0 and ``court_height`` until it lies inside.

    Closed form of repeated mirroring: the bounce pattern repeats every
    2 * court_height, so one modulo and one mirror are enough.
    """
    if court_height <= 0:
        return 0.0
    period = 2.0 * court_height
    m = float(np.mod(y, period))
    return m if m <= court_height else period - m


def predict_intercept(ball: Ball, target_x: float, court_height: float = COURT_HEIGHT) -> float:
    """Ball y when it reaches ``target_x``, assuming it is moving toward it."""
    vx, vy = ball.velocity
    if vx == 0:
        return float(ball.position[1])
    time_to_reach = (target_x - ball.position[0]) / vx
    predicted = ball.position[1] + vy * time_to_reach
    return fold_into_court(float(predicted), court_height)


class AIController:
    """Drives the right paddle from the difficulty row."""

    def __init__(self, rng: Optional[random.Random] = None, court_height: float = COURT_HEIGHT):
        self.rng = rng or random.Random()
        self.court_height = court_height
        self.last_target: Optional[float] = None

    def target_y(self, ball: Ball, paddle: Paddle, ai_error: float) -> float:
        error = (self.rng.random() - 0.5) * ai_error
        if ball.velocity[0] > 0:
            return predict_intercept(ball, paddle.x, self.court_height) + error
        return float(ball.position[1]) + error

    @staticmethod
    def step_toward(paddle: Paddle, target: float, reaction: float, speed: float) -> float:
        """Per-tick displacement toward ``target`` (capped at ``speed``)."""
        diff = target - paddle.center_y
        return float(np.sign(diff)) * min(abs(diff) * reaction + AI_MIN_STEP, speed)

    def update(self, ball: Ball, paddle: Paddle, settings: dict,
               player_score: int, ai_score: int, adaptive: bool = False) -> None:
        paddle.speed = adaptive_speed(settings["ai_speed"], player_score, ai_score, adaptive)
        target = self.target_y(ball, paddle, settings["ai_error"])
        self.last_target = target
        paddle.y += self.step_toward(paddle, target, settings["ai_reaction"], paddle.speed)
        paddle.clamp_to_court(self.court_height)
