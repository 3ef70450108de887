"""
Match state aggregate and its read-only snapshot.

``MatchState`` is owned and mutated by ``MatchController`` alone. Renderers,
audio and UI get a ``MatchSnapshot`` built after each tick.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config import (
    COURT_WIDTH, COURT_HEIGHT, DEFAULT_WIN_SCORE, POWERUP_SERVE_SPAWN,
)
from physics import Ball, Paddle, PowerUp, LEFT, RIGHT

WINNER_LABELS = {
    "single": {LEFT: "Player", RIGHT: "AI"},
    "multi":  {LEFT: "P1", RIGHT: "P2"},
}


def _per_side(value=0.0) -> dict:
    return {LEFT: value, RIGHT: value}


@dataclass
class EffectTimers:
    """Remaining seconds of every power-up effect.

    Each ball factor lives next to its timer; both are set and cleared
    together.
    """
    enlarge: Dict[str, float] = field(default_factory=_per_side)
    shrink: Dict[str, float] = field(default_factory=_per_side)
    slow: float = 0.0
    slow_factor: float = 1.0
    fast: float = 0.0
    fast_factor: float = 1.0

    @property
    def velocity_mul(self) -> float:
        return self.slow_factor * self.fast_factor

    def rounded(self) -> dict:
        """Whole seconds left per effect, rounded up for HUD display."""
        def up(t):
            return max(0, math.ceil(t))
        return {
            "left_enlarge": up(self.enlarge[LEFT]),
            "right_enlarge": up(self.enlarge[RIGHT]),
            "left_shrink": up(self.shrink[LEFT]),
            "right_shrink": up(self.shrink[RIGHT]),
            "slow": up(self.slow),
            "fast": up(self.fast),
        }


@dataclass
class MatchState:
    ball: Ball = field(default_factory=Ball)
    left: Paddle = field(default_factory=lambda: Paddle.for_side(LEFT))
    right: Paddle = field(default_factory=lambda: Paddle.for_side(RIGHT))

    status: str = "menu"
    mode: str = "single"
    difficulty: str = "medium"
    win_score: int = DEFAULT_WIN_SCORE
    winner: str = ""

    rally: int = 0
    max_rally: int = 0
    combo: int = 0
    last_player_hit_ms: float = 0.0
    last_hit_by: str = LEFT
    is_power_hit: bool = False
    power_hit_timer: float = 0.0

    serve_countdown: float = 0.0
    serve_direction: int = 1
    serve_countdown_last_int: int = 0

    powerups: List[PowerUp] = field(default_factory=list)
    powerup_spawn_timer: float = POWERUP_SERVE_SPAWN
    effects: EffectTimers = field(default_factory=EffectTimers)
    powerups_collected: Dict[str, int] = field(default_factory=lambda: _per_side(0))

    match_start_ms: float = 0.0
    match_end_ms: float = 0.0

    def paddle(self, side: str) -> Paddle:
        return self.left if side == LEFT else self.right

    @property
    def scores(self) -> Tuple[int, int]:
        return self.left.score, self.right.score


@dataclass(frozen=True)
class PaddleView:
    x: float
    y: float
    width: float
    height: float
    score: int


@dataclass(frozen=True)
class PowerUpView:
    kind: str
    x: float
    y: float
    radius: float
    ttl: float
    max_ttl: float


@dataclass(frozen=True)
class MatchSnapshot:
    """Immutable view of one tick, safe to hand to any collaborator."""
    status: str
    mode: str
    difficulty: str
    win_score: int
    winner: str
    scores: Dict[str, int]
    rally: int
    max_rally: int
    combo: int
    is_power_hit: bool
    serve_countdown: int
    ball: Tuple[float, float]
    ball_radius: float
    left: PaddleView
    right: PaddleView
    powerups: Tuple[PowerUpView, ...]
    effect_seconds: Dict[str, int]
    powerups_collected: Dict[str, int]
    match_start_ms: float
    match_end_ms: float
    court: Tuple[float, float] = (COURT_WIDTH, COURT_HEIGHT)

    def duration_seconds(self, now_ms: Optional[float] = None) -> int:
        if not self.match_start_ms:
            return 0
        end = self.match_end_ms or now_ms or self.match_start_ms
        return max(0, int((end - self.match_start_ms) // 1000))


def _paddle_view(p: Paddle) -> PaddleView:
    return PaddleView(x=float(p.x), y=float(p.y), width=float(p.width),
                      height=float(p.height), score=int(p.score))


def take_snapshot(state: MatchState) -> MatchSnapshot:
    return MatchSnapshot(
        status=state.status,
        mode=state.mode,
        difficulty=state.difficulty,
        win_score=state.win_score,
        winner=state.winner,
        scores={LEFT: state.left.score, RIGHT: state.right.score},
        rally=state.rally,
        max_rally=state.max_rally,
        combo=state.combo,
        is_power_hit=state.is_power_hit,
        serve_countdown=max(0, math.ceil(state.serve_countdown)),
        ball=(float(state.ball.position[0]), float(state.ball.position[1])),
        ball_radius=float(state.ball.radius),
        left=_paddle_view(state.left),
        right=_paddle_view(state.right),
        powerups=tuple(
            PowerUpView(kind=pu.kind.value, x=float(pu.position[0]), y=float(pu.position[1]),
                        radius=pu.radius, ttl=pu.ttl, max_ttl=pu.max_ttl)
            for pu in state.powerups
        ),
        effect_seconds=state.effects.rounded(),
        powerups_collected=dict(state.powerups_collected),
        match_start_ms=state.match_start_ms,
        match_end_ms=state.match_end_ms,
    )
