"""
Paddle Match Physics
Entity model, ball integration, wall bounce, paddle collision and deflection.

All motion is expressed per logical tick (1/60 s); positions and velocities
are in court units. The engine appends collision events to ``self.events``
and leaves bookkeeping (rally, combo, feedback) to the controller.
"""

import enum
import math
import numpy as np
from dataclasses import dataclass, field
from typing import Optional

from config import (
    COURT_WIDTH, COURT_HEIGHT, PADDLE_WIDTH, PADDLE_HEIGHT, PADDLE_MARGIN,
    BALL_RADIUS, BALL_INITIAL_SPEED, PLAYER_PADDLE_SPEED,
    MAX_PADDLE_HEIGHT, MIN_PADDLE_HEIGHT, POWERUP_RADIUS, POWERUP_TTL,
    MAX_BOUNCE_ANGLE, SPEED_GROWTH, SPEED_CAP,
    POWER_HIT_THRESHOLD, POWER_HIT_GROWTH, POWER_HIT_CAP,
)

LEFT = "left"
RIGHT = "right"
SIDES = (LEFT, RIGHT)


def opponent_of(side: str) -> str:
    return RIGHT if side == LEFT else LEFT


def clamp_height(height: float) -> float:
    """Keep a paddle height inside the collidable range."""
    return max(MIN_PADDLE_HEIGHT, min(MAX_PADDLE_HEIGHT, height))


class PowerUpType(enum.Enum):
    ENLARGE = "enlarge"
    SHRINK = "shrink"
    SLOW = "slow"
    FAST = "fast"


@dataclass
class Ball:
    """Ball with per-tick velocity and a logical speed used for escalation."""
    position: np.ndarray = field(
        default_factory=lambda: np.array([COURT_WIDTH / 2, COURT_HEIGHT / 2]))
    velocity: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0]))
    speed: float = BALL_INITIAL_SPEED
    radius: float = BALL_RADIUS

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        self.velocity = np.array(self.velocity, dtype=float)

    @property
    def velocity_magnitude(self) -> float:
        return float(np.linalg.norm(self.velocity))

    def center(self, speed: Optional[float] = None) -> None:
        """Park the ball mid-court with zero velocity."""
        self.position = np.array([COURT_WIDTH / 2, COURT_HEIGHT / 2])
        self.velocity = np.array([0.0, 0.0])
        if speed is not None:
            self.speed = speed


@dataclass
class Paddle:
    """Axis-aligned paddle; ``y`` is the top edge."""
    x: float
    y: float = COURT_HEIGHT / 2 - PADDLE_HEIGHT / 2
    width: float = PADDLE_WIDTH
    height: float = PADDLE_HEIGHT
    speed: float = PLAYER_PADDLE_SPEED
    score: int = 0
    dy: float = 0.0
    prev_y: Optional[float] = None

    def __post_init__(self):
        self.height = clamp_height(self.height)
        if self.prev_y is None:
            self.prev_y = self.y

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    def set_height(self, height: float) -> None:
        self.height = clamp_height(height)

    def clamp_to_court(self, court_height: float = COURT_HEIGHT) -> None:
        self.y = max(0.0, min(court_height - self.height, self.y))

    def track_displacement(self) -> float:
        """Derive ``dy`` from the actual move since the previous tick."""
        self.dy = self.y - self.prev_y
        self.prev_y = self.y
        return self.dy

    @classmethod
    def for_side(cls, side: str, speed: float = PLAYER_PADDLE_SPEED) -> "Paddle":
        if side == LEFT:
            x = PADDLE_MARGIN
        else:
            x = COURT_WIDTH - PADDLE_MARGIN - PADDLE_WIDTH
        return cls(x=x, speed=speed)


@dataclass
class PowerUp:
    """Pickup standing on the court until it expires or the ball touches it."""
    kind: PowerUpType
    position: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0]))
    radius: float = POWERUP_RADIUS
    ttl: float = POWERUP_TTL
    max_ttl: float = POWERUP_TTL

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        self.kind = PowerUpType(self.kind)

    def touches(self, ball: Ball) -> bool:
        dist = np.linalg.norm(ball.position - self.position)
        return dist <= ball.radius + self.radius


class PhysicsEngine:
    """Ball/paddle physics for one court."""

    def __init__(self, court_width: float = COURT_WIDTH, court_height: float = COURT_HEIGHT):
        self.court_width = court_width
        self.court_height = court_height
        self.events: list = []

    # ──────────────────────────────────────────
    # Integration + walls
    # ──────────────────────────────────────────
    @staticmethod
    def move_ball(ball: Ball) -> None:
        ball.position = ball.position + ball.velocity

    def _check_wall_collisions(self, ball: Ball) -> None:
        """Reflect off the top and bottom walls, clamping the ball inside."""
        r = ball.radius
        if ball.position[1] - r <= 0.0:
            ball.position[1] = r
            ball.velocity[1] = abs(ball.velocity[1])
            self.events.append({"type": "wall", "wall": "top",
                                "x": float(ball.position[0]), "y": float(ball.position[1])})
        if ball.position[1] + r >= self.court_height:
            ball.position[1] = self.court_height - r
            ball.velocity[1] = -abs(ball.velocity[1])
            self.events.append({"type": "wall", "wall": "bottom",
                                "x": float(ball.position[0]), "y": float(ball.position[1])})

    # ──────────────────────────────────────────
    # Paddle collision
    # ──────────────────────────────────────────
    @staticmethod
    def check_paddle_collision(ball: Ball, paddle: Paddle) -> bool:
        """Overlap between the ball's bounding box and the paddle rectangle."""
        bx, by = ball.position
        r = ball.radius
        return (bx - r < paddle.x + paddle.width and
                bx + r > paddle.x and
                by + r > paddle.y and
                by - r < paddle.y + paddle.height)

    def swept_face_contact(self, prev_position: np.ndarray, ball: Ball,
                           paddle: Paddle, side: str) -> Optional[float]:
        """Ball y where its leading edge crossed the paddle face this tick.

        Catches fast balls that step over the paddle between two ticks.
        Returns None when the face was not crossed or the ball passed
        above or below the paddle.
        """
        r = ball.radius
        if side == LEFT:
            face = paddle.x + paddle.width
            before, after = prev_position[0] - r, ball.position[0] - r
            crossed = before >= face > after
        else:
            face = paddle.x
            before, after = prev_position[0] + r, ball.position[0] + r
            crossed = before <= face < after
        if not crossed:
            return None
        t = (face - before) / (after - before)
        y = prev_position[1] + (ball.position[1] - prev_position[1]) * t
        y = max(r, min(self.court_height - r, y))
        if y + r > paddle.y and y - r < paddle.y + paddle.height:
            return float(y)
        return None

    @staticmethod
    def deflection_angle(ball_y: float, paddle: Paddle) -> float:
        """Bounce angle in radians, ±60° at the paddle tips.

        hit_pos = (ball_y - paddle_center) / (height / 2), clamped to [-1, 1].
        The height floor keeps the divisor positive.
        """
        half = max(paddle.height, MIN_PADDLE_HEIGHT) / 2
        hit_pos = (ball_y - paddle.center_y) / half
        hit_pos = max(-1.0, min(1.0, hit_pos))
        return hit_pos * MAX_BOUNCE_ANGLE

    @staticmethod
    def escalate_speed(speed: float, ball_speed_mul: float, power_hit: bool) -> float:
        """Grow the logical ball speed on a paddle hit; never shrinks it."""
        grown = max(speed, min(speed * SPEED_GROWTH, SPEED_CAP * ball_speed_mul))
        if power_hit:
            grown = max(grown, min(grown * POWER_HIT_GROWTH, POWER_HIT_CAP * ball_speed_mul))
        return grown

    def resolve_paddle_hit(self, ball: Ball, paddle: Paddle, side: str,
                           ball_speed_mul: float = 1.0, velocity_mul: float = 1.0) -> bool:
        """Redirect the ball off ``paddle``. Returns True for a power hit.

        ``velocity_mul`` is the product of the active slow/fast factors; it
        scales the outgoing velocity while ``ball.speed`` stays logical.
        """
        angle = self.deflection_angle(float(ball.position[1]), paddle)
        power_hit = abs(paddle.dy) > POWER_HIT_THRESHOLD
        ball.speed = self.escalate_speed(ball.speed, ball_speed_mul, power_hit)

        direction = 1.0 if side == LEFT else -1.0
        ball.velocity = np.array([
            math.cos(angle) * ball.speed * direction * velocity_mul,
            math.sin(angle) * ball.speed * velocity_mul,
        ])

        # Push the ball clear of the paddle so it cannot re-trigger next tick
        if side == LEFT:
            ball.position[0] = paddle.x + paddle.width + ball.radius
        else:
            ball.position[0] = paddle.x - ball.radius

        self.events.append({
            "type": "paddle", "side": side, "power": power_hit,
            "angle": angle, "speed": ball.speed,
            "x": float(ball.position[0]), "y": float(ball.position[1]),
        })
        return power_hit

    # ──────────────────────────────────────────
    # Main update
    # ──────────────────────────────────────────
    def update(self, ball: Ball, left: Paddle, right: Paddle,
               ball_speed_mul: float = 1.0, velocity_mul: float = 1.0) -> None:
        """Advance the ball one tick and resolve wall/paddle contacts."""
        self.events.clear()
        prev_position = ball.position.copy()
        self.move_ball(ball)
        self._check_wall_collisions(ball)

        # Only the paddle the ball is travelling toward can be hit
        if ball.velocity[0] < 0:
            side, paddle = LEFT, left
        else:
            side, paddle = RIGHT, right
        if self.check_paddle_collision(ball, paddle):
            self.resolve_paddle_hit(ball, paddle, side, ball_speed_mul, velocity_mul)
            return
        contact_y = self.swept_face_contact(prev_position, ball, paddle, side)
        if contact_y is not None:
            ball.position[1] = contact_y
            self.resolve_paddle_hit(ball, paddle, side, ball_speed_mul, velocity_mul)

    def out_of_bounds(self, ball: Ball, margin: float) -> Optional[str]:
        """Side that conceded, if the ball has left the court."""
        if ball.position[0] < -margin:
            return LEFT
        if ball.position[0] > self.court_width + margin:
            return RIGHT
        return None


